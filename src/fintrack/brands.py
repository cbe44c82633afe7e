# Fintrack - Small-business bookkeeping ledger & brand profitability reports
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Per-brand profitability and join-cost allocation.

Expenses are attributed to brands in two ways:

- **direct** costs: expense rows with ``scope="brand"`` and a brand name,
- **join** costs: expense rows with ``scope="join"``, pooled and shared
  between brands in proportion to each brand's income.

Two recognition bases are supported:

- ``accrual``: all income is recognized (earned revenue included) and
  amortized expenses contribute their in-range monthly portions,
- ``actual`` : only cash-received income is recognized and expenses count
  at full value on their payment date.

Two views are provided:

``by_brand()``
    One BrandReport per brand found in the transaction set. The join pool
    is the sum of *all* join expenses recognized in the range and is shared
    by income share across every brand; ``join_targets`` is not applied
    here.

``brand_detail()``
    Drill-down for a single brand. Each join expense is allocated
    separately, only to the brands listed in its ``join_targets`` (every
    brand when empty), using the brand's income share among those targets.

Rounding
--------
In ``by_brand()`` each allocation is rounded once, on the final value,
half-up to ``quantum`` (whole currency units by default). Rounded
allocations may not add up to the pool; pass ``conserve=True`` to apply a
largest-remainder correction so that they sum to the rounded pool.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable, Sequence
from dataclasses import asdict, dataclass
from decimal import ROUND_FLOOR, ROUND_HALF_UP, Decimal
from typing import Literal, Optional

import pandas as pd

from .amortization import ZERO, recognized_expense
from .periods import RangeLike, in_range
from .transactions import Transaction

logger = logging.getLogger(__name__)

Basis = Literal["accrual", "actual"]
BASES: tuple[str, ...] = ("accrual", "actual")

UNKNOWN_CHANNEL = "Other"


@dataclass(frozen=True)
class BrandReport:
    """Profitability of one brand for a range."""

    brand: str
    income: Decimal
    direct: Decimal
    join_allocated: Decimal
    profit: Decimal

    def as_dict(self) -> dict[str, object]:
        return asdict(self)


@dataclass(frozen=True)
class JoinAllocation:
    """Share of one join expense charged to a brand in the detail view."""

    source_id: str
    date: str
    category: str
    description: str
    share: Decimal
    amount: Decimal


@dataclass(frozen=True)
class BrandDetail:
    """
    Drill-down for a single brand.

    Attributes
    ----------
    income_rows :
        Income rows of the brand dated in range (earned revenue excluded on
        the actual basis).
    direct_rows :
        Brand-scoped expense rows of the brand dated in range.
    allocations :
        One JoinAllocation per join expense charged to the brand.
    expense_by_category :
        DataFrame (category, amount): recognized direct expenses plus join
        allocations, sorted by amount descending.
    income_by_channel :
        DataFrame (channel, amount), rows without channel grouped as
        "Other", sorted by amount descending.
    """

    brand: str
    basis: Basis
    income: Decimal
    direct: Decimal
    join_allocated: Decimal
    income_rows: list[Transaction]
    direct_rows: list[Transaction]
    allocations: list[JoinAllocation]
    expense_by_category: pd.DataFrame
    income_by_channel: pd.DataFrame

    @property
    def profit(self) -> Decimal:
        return self.income - self.direct - self.join_allocated

    @property
    def net_margin(self) -> Optional[float]:
        """Profit over income in percent, None when there is no income."""
        if self.income <= 0:
            return None
        return float(self.profit / self.income * 100)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _check_basis(basis: str) -> None:
    if basis not in BASES:
        raise ValueError(f"Invalid basis {basis!r}, expected one of {BASES}.")


def _income_recognized(t: Transaction, basis: str, date_range: RangeLike) -> bool:
    if t.type != "income" or not in_range(t.date, date_range):
        return False
    return basis == "accrual" or t.recognizes_cash


def discover_brands(transactions: Iterable[Transaction]) -> list[str]:
    """Distinct non-empty brand names used in the transactions, sorted."""
    return sorted({t.brand for t in transactions if t.brand})


def find_unattributed_rows(transactions: Iterable[Transaction]) -> list[Transaction]:
    """
    Brand-scoped rows without a brand name.

    These rows cannot be attributed and are left out of every per-brand
    aggregate. They are reported here so that callers can ask for the data
    to be fixed.
    """
    return [t for t in transactions if t.scope == "brand" and not t.brand]


def income_by_brand(
    transactions: Iterable[Transaction],
    basis: Basis = "accrual",
    date_range: RangeLike = None,
) -> dict[str, Decimal]:
    """Recognized income per brand (unbranded income is ignored)."""
    _check_basis(basis)
    totals: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for t in transactions:
        if t.brand and _income_recognized(t, basis, date_range):
            totals[t.brand] += t.amount
    return dict(totals)


def _quantize(
    value: Decimal, quantum: Decimal, rounding: str = ROUND_HALF_UP
) -> Decimal:
    return value.quantize(quantum, rounding=rounding)


def _allocate(
    pool: Decimal,
    incomes: dict[str, Decimal],
    brands: Sequence[str],
    quantum: Decimal,
    conserve: bool,
) -> dict[str, Decimal]:
    total_income = sum((incomes.get(b, ZERO) for b in brands), ZERO)
    if total_income <= 0:
        return {b: _quantize(ZERO, quantum) for b in brands}

    raw = {b: pool * incomes.get(b, ZERO) / total_income for b in brands}
    if not conserve:
        return {b: _quantize(v, quantum) for b, v in raw.items()}

    # Largest remainder: floor every share, then hand out the missing units
    # to the largest fractional parts (ties broken by brand name).
    floors = {b: _quantize(v, quantum, ROUND_FLOOR) for b, v in raw.items()}
    target = _quantize(pool, quantum)
    units = int((target - sum(floors.values(), ZERO)) / quantum)
    order = sorted(brands, key=lambda b: (-(raw[b] - floors[b]), b))
    for b in order[: max(units, 0)]:
        floors[b] += quantum
    return floors


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def by_brand(
    transactions: Iterable[Transaction],
    basis: Basis = "accrual",
    date_range: RangeLike = None,
    *,
    quantum: Decimal = Decimal(1),
    conserve: bool = False,
) -> list[BrandReport]:
    """
    Profitability per brand with join costs allocated by income share.

    Steps:
        1. discover the brands present in the transactions,
        2. recognized income per brand (basis-dependent),
        3. direct brand-scoped expenses per brand (amortized on the accrual
           basis, full amount on the payment date otherwise),
        4. join pool: every join-scoped expense, same recognition rule,
        5. ``join_allocated = round(pool * income / total_income)`` (0 for
           every brand when total income is 0),
        6. ``profit = income - direct - join_allocated``.

    Args:
        transactions: Full transaction collection.
        basis: "accrual" or "actual".
        date_range: Optional reporting range.
        quantum: Rounding unit of the allocated join cost.
        conserve: Make allocations sum to the rounded pool.

    Returns:
        BrandReport list sorted by brand name.

    Raises:
        ValueError: on an unknown basis or a malformed date.
    """
    _check_basis(basis)
    rows = list(transactions)
    amortize = basis == "accrual"

    unattributed = find_unattributed_rows(rows)
    if unattributed:
        logger.warning(
            "%d brand-scoped transaction(s) without brand excluded from brand "
            "report: %s",
            len(unattributed),
            ", ".join(t.id for t in unattributed),
        )

    brands = discover_brands(rows)
    incomes = income_by_brand(rows, basis, date_range)

    direct: dict[str, Decimal] = defaultdict(lambda: ZERO)
    join_pool = ZERO
    for t in rows:
        if t.type != "expense":
            continue
        if t.scope == "brand" and t.brand:
            direct[t.brand] += recognized_expense(t, date_range, amortize=amortize)
        elif t.scope == "join":
            join_pool += recognized_expense(t, date_range, amortize=amortize)

    allocated = _allocate(join_pool, incomes, brands, quantum, conserve)

    result = []
    for b in brands:
        income = incomes.get(b, ZERO)
        d = direct.get(b, ZERO)
        j = allocated[b]
        result.append(
            BrandReport(
                brand=b,
                income=income,
                direct=d,
                join_allocated=j,
                profit=income - d - j,
            )
        )
    return result


def brand_reports_to_frame(reports: Iterable[BrandReport]) -> pd.DataFrame:
    """Tabular view of brand reports (amounts as floats)."""
    columns = ["brand", "income", "direct", "join_allocated", "profit"]
    return pd.DataFrame(
        [
            {
                "brand": r.brand,
                "income": float(r.income),
                "direct": float(r.direct),
                "join_allocated": float(r.join_allocated),
                "profit": float(r.profit),
            }
            for r in reports
        ],
        columns=columns,
    )


def _share_within_targets(
    incomes: dict[str, Decimal],
    targets: tuple[str, ...],
    brand: str,
) -> Decimal:
    if targets:
        incomes = {b: v for b, v in incomes.items() if b in targets}
    total = sum(incomes.values(), ZERO)
    if total <= 0:
        return ZERO
    return incomes.get(brand, ZERO) / total


def _grouped(amounts: dict[str, Decimal], key: str) -> pd.DataFrame:
    df = pd.DataFrame(
        [{key: k, "amount": float(v)} for k, v in amounts.items()],
        columns=[key, "amount"],
    )
    if df.empty:
        return df
    df = df.sort_values(["amount", key], ascending=[False, True], kind="stable")
    return df.reset_index(drop=True)


def brand_detail(
    transactions: Iterable[Transaction],
    brand: str,
    basis: Basis = "accrual",
    date_range: RangeLike = None,
) -> BrandDetail:
    """
    Drill-down report for one brand.

    Unlike ``by_brand()``, join costs are allocated expense by expense:
    a join expense is charged to ``brand`` only when its ``join_targets``
    is empty or lists the brand, and the share is the brand's income over
    the income of the targeted brands. Allocations are not rounded.
    """
    _check_basis(basis)
    rows = list(transactions)
    amortize = basis == "accrual"

    income_rows = [
        t for t in rows if t.brand == brand and _income_recognized(t, basis, date_range)
    ]
    brand_expenses = [
        t
        for t in rows
        if t.type == "expense" and t.scope == "brand" and t.brand == brand
    ]
    direct_rows = [t for t in brand_expenses if in_range(t.date, date_range)]

    by_category: dict[str, Decimal] = defaultdict(lambda: ZERO)
    direct_total = ZERO
    for t in brand_expenses:
        amount = recognized_expense(t, date_range, amortize=amortize)
        if amount > 0:
            by_category[t.category] += amount
            direct_total += amount

    incomes = income_by_brand(rows, basis, date_range)
    allocations: list[JoinAllocation] = []
    for t in rows:
        if t.type != "expense" or t.scope != "join":
            continue
        if t.join_targets and brand not in t.join_targets:
            continue
        recognized = recognized_expense(t, date_range, amortize=amortize)
        if recognized <= 0:
            continue
        share = _share_within_targets(incomes, t.join_targets, brand)
        if share <= 0:
            continue
        amount = recognized * share
        allocations.append(
            JoinAllocation(
                source_id=t.id,
                date=t.date,
                category=t.category,
                description=(f"{t.description} • " if t.description else "")
                + "Join cost (allocated)",
                share=share,
                amount=amount,
            )
        )
        by_category[t.category] += amount

    by_channel: dict[str, Decimal] = defaultdict(lambda: ZERO)
    for t in income_rows:
        by_channel[t.channel or UNKNOWN_CHANNEL] += t.amount

    return BrandDetail(
        brand=brand,
        basis=basis,
        income=sum((t.amount for t in income_rows), ZERO),
        direct=direct_total,
        join_allocated=sum((a.amount for a in allocations), ZERO),
        income_rows=income_rows,
        direct_rows=direct_rows,
        allocations=allocations,
        expense_by_category=_grouped(by_category, "category"),
        income_by_channel=_grouped(by_channel, "channel"),
    )
