# Fintrack - Small-business bookkeeping ledger & brand profitability reports
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Core aggregation engine for Fintrack.

This module derives the company-wide financial views from a single
transaction log. Every function is a pure function of its inputs: it never
mutates the transactions it receives and performs no I/O.

1. Cashflow (cash basis)
   ----------------------
   ``cashflow()`` counts income actually received (``revenue_mode`` other
   than "accrual") and every expense at full value on its transaction
   date. ``summarize()`` repackages it as the headline KPIs used by
   dashboards.

2. Profit & loss, accrual basis
   -----------------------------
   ``pnl_accrual()`` recognizes all income (earned revenue included) and
   spreads amortized expenses over their monthly schedule (see
   ``amortization.py``).

3. Profit & loss, actual basis
   ----------------------------
   ``pnl_actual()`` uses the cashflow formulas but reports them with the
   P/L shape ``{income, expense, profit}``.

4. Reporting helpers
   ------------------
   - ``filter_rows()``       : order-preserving row filters for table views,
   - ``compare_periods()``   : current vs previous range KPIs with growth,
   - ``daily_cash_trend()``  : per-day cash-basis income/expense series,
   - ``spend_by_category()`` : expense totals by category,
   - ``balance_sheet()``     : cash and prepaid expenses for a range.

Per-brand profitability and join-cost allocation live in ``brands.py``.
"""

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import asdict, dataclass
from datetime import date
from decimal import Decimal
from typing import Literal, Optional

import pandas as pd

from .amortization import ZERO, prepaid_balance, recognized_expense
from .periods import RangeLike, in_range, parse_timestamp, previous_range
from .transactions import Transaction, TxType

View = Literal["cashflow", "accrual", "actual"]


@dataclass(frozen=True)
class Cashflow:
    """Cash-basis movements for a range."""

    inflow: Decimal
    outflow: Decimal
    net: Decimal

    def as_dict(self) -> dict[str, Decimal]:
        return asdict(self)


@dataclass(frozen=True)
class PnL:
    """Profit & loss for a range (shared by accrual and actual bases)."""

    income: Decimal
    expense: Decimal
    profit: Decimal

    def as_dict(self) -> dict[str, Decimal]:
        return asdict(self)


@dataclass(frozen=True)
class Summary:
    """Headline KPIs (cash basis)."""

    income: Decimal
    expense: Decimal
    cashflow: Decimal

    def as_dict(self) -> dict[str, Decimal]:
        return asdict(self)


@dataclass(frozen=True)
class BalanceSheet:
    """
    Simplified balance sheet for a range.

    Assets are the net cash movement of the range plus prepaid expenses
    (amortized expenses paid but not yet recognized). There is no
    liability tracking, so equity equals total assets.
    """

    cash: Decimal
    prepaid: Decimal
    total_assets: Decimal
    liabilities: Decimal
    equity: Decimal

    def as_dict(self) -> dict[str, Decimal]:
        return asdict(self)


# ---------------------------------------------------------------------------
# Basis calculators
# ---------------------------------------------------------------------------


def _cash_income(
    transactions: Iterable[Transaction], date_range: RangeLike
) -> Decimal:
    return sum(
        (
            t.amount
            for t in transactions
            if t.type == "income" and t.recognizes_cash and in_range(t.date, date_range)
        ),
        ZERO,
    )


def _cash_expense(
    transactions: Iterable[Transaction], date_range: RangeLike
) -> Decimal:
    return sum(
        (
            t.amount
            for t in transactions
            if t.type == "expense" and in_range(t.date, date_range)
        ),
        ZERO,
    )


def cashflow(
    transactions: Iterable[Transaction], date_range: RangeLike = None
) -> Cashflow:
    """
    Cash-basis inflow/outflow for a range.

    - inflow  : income rows with ``revenue_mode != "accrual"`` dated in range,
    - outflow : every expense dated in range, at full amount (amortization
                is ignored),
    - net     : inflow - outflow.
    """
    rows = list(transactions)
    inflow = _cash_income(rows, date_range)
    outflow = _cash_expense(rows, date_range)
    return Cashflow(inflow=inflow, outflow=outflow, net=inflow - outflow)


def pnl_accrual(
    transactions: Iterable[Transaction], date_range: RangeLike = None
) -> PnL:
    """
    Accrual-basis profit & loss.

    Income includes every income row dated in range, earned revenue
    included. Amortized expenses contribute their in-range monthly portions
    (even when the payment itself is dated outside the range); other
    expenses their full amount when dated in range.
    """
    rows = list(transactions)
    income = sum(
        (t.amount for t in rows if t.type == "income" and in_range(t.date, date_range)),
        ZERO,
    )
    expense = sum(
        (
            recognized_expense(t, date_range, amortize=True)
            for t in rows
            if t.type == "expense"
        ),
        ZERO,
    )
    return PnL(income=income, expense=expense, profit=income - expense)


def pnl_actual(
    transactions: Iterable[Transaction], date_range: RangeLike = None
) -> PnL:
    """Actual (cash-received) profit & loss: the cashflow formulas in P/L form."""
    rows = list(transactions)
    income = _cash_income(rows, date_range)
    expense = _cash_expense(rows, date_range)
    return PnL(income=income, expense=expense, profit=income - expense)


def summarize(
    transactions: Iterable[Transaction], date_range: RangeLike = None
) -> Summary:
    """Headline KPIs based on cashflow."""
    cf = cashflow(transactions, date_range)
    return Summary(income=cf.inflow, expense=cf.outflow, cashflow=cf.net)


def filter_rows(
    rows: Iterable[Transaction],
    date_range: RangeLike = None,
    tx_type: Optional[TxType] = None,
    brand: Optional[str] = None,
) -> list[Transaction]:
    """
    Filter rows by range, type and brand (all optional, combined with AND).

    The input order is preserved; nothing is aggregated.
    """
    return [
        r
        for r in rows
        if in_range(r.date, date_range)
        and (not tx_type or r.type == tx_type)
        and (not brand or r.brand == brand)
    ]


# ---------------------------------------------------------------------------
# Period comparison
# ---------------------------------------------------------------------------


def percent_change(current: float, previous: float) -> float:
    """
    Growth of ``current`` over ``previous`` in percent.

    When ``previous`` is 0 the change is reported as 100 if ``current`` is
    positive and 0 otherwise. The denominator is ``abs(previous)`` so that
    an improvement from a loss reads as a positive change.
    """
    current = float(current)
    previous = float(previous)
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return (current - previous) / abs(previous) * 100.0


def _headline(
    transactions: list[Transaction], date_range: RangeLike, view: View
) -> tuple[Decimal, Decimal, Decimal]:
    if view == "cashflow":
        cf = cashflow(transactions, date_range)
        return cf.inflow, cf.outflow, cf.net
    if view == "accrual":
        p = pnl_accrual(transactions, date_range)
    elif view == "actual":
        p = pnl_actual(transactions, date_range)
    else:
        raise ValueError(f"Unknown view: {view!r}")
    return p.income, p.expense, p.profit


def compare_periods(
    transactions: Iterable[Transaction],
    date_range: RangeLike = None,
    *,
    view: View = "cashflow",
    today: Optional[date] = None,
) -> pd.DataFrame:
    """
    Compare headline KPIs of a range with the previous range.

    The current/previous ranges come from ``periods.previous_range``. The
    returned DataFrame has one row per measure (income, expense, profit,
    margin) and the columns:

        measure, current, previous, change_pct

    ``margin`` is profit / income in percent (0 when income is not
    positive).
    """
    rows = list(transactions)
    current_rng, previous_rng = previous_range(date_range, today=today)

    cur = _headline(rows, current_rng, view)
    prev = _headline(rows, previous_rng, view)

    def _margin(income: Decimal, profit: Decimal) -> float:
        return float(profit / income * 100) if income > 0 else 0.0

    measures = [
        ("income", float(cur[0]), float(prev[0])),
        ("expense", float(cur[1]), float(prev[1])),
        ("profit", float(cur[2]), float(prev[2])),
        ("margin", _margin(cur[0], cur[2]), _margin(prev[0], prev[2])),
    ]
    return pd.DataFrame(
        [
            {
                "measure": name,
                "current": c,
                "previous": p,
                "change_pct": percent_change(c, p),
            }
            for name, c, p in measures
        ],
        columns=["measure", "current", "previous", "change_pct"],
    )


# ---------------------------------------------------------------------------
# Series and breakdowns
# ---------------------------------------------------------------------------


def daily_cash_trend(
    transactions: Iterable[Transaction], date_range: RangeLike = None
) -> pd.DataFrame:
    """
    Per-day cash-basis totals, sorted by date.

    Columns: date (ISO string), income, expense. Earned-but-unpaid revenue
    is excluded, like in ``cashflow()``.
    """
    income: dict[str, Decimal] = defaultdict(lambda: ZERO)
    expense: dict[str, Decimal] = defaultdict(lambda: ZERO)
    days: set[str] = set()

    for t in transactions:
        if not in_range(t.date, date_range):
            continue
        day = parse_timestamp(t.date).date().isoformat()
        days.add(day)
        if t.type == "income" and t.recognizes_cash:
            income[day] += t.amount
        elif t.type == "expense":
            expense[day] += t.amount

    data = [
        {"date": d, "income": float(income[d]), "expense": float(expense[d])}
        for d in sorted(days)
    ]
    return pd.DataFrame(data, columns=["date", "income", "expense"])


def spend_by_category(
    transactions: Iterable[Transaction], date_range: RangeLike = None
) -> pd.DataFrame:
    """
    Expense totals per category (full amount on the transaction date).

    Columns: category, amount. Sorted by amount descending, then category.
    """
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for t in transactions:
        if t.type == "expense" and in_range(t.date, date_range):
            totals[t.category] += t.amount

    df = pd.DataFrame(
        [{"category": k, "amount": float(v)} for k, v in totals.items()],
        columns=["category", "amount"],
    )
    if df.empty:
        return df
    return df.sort_values(
        ["amount", "category"], ascending=[False, True], kind="stable"
    ).reset_index(drop=True)


def balance_sheet(
    transactions: Iterable[Transaction], date_range: RangeLike = None
) -> BalanceSheet:
    """Simplified balance sheet: cash (net cashflow) plus prepaid expenses."""
    rows = list(transactions)
    cash = cashflow(rows, date_range).net
    prepaid = prepaid_balance(rows, date_range)
    total = cash + prepaid
    return BalanceSheet(
        cash=cash,
        prepaid=prepaid,
        total_assets=total,
        liabilities=ZERO,
        equity=total,
    )
