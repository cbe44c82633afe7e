# Fintrack - Small-business bookkeeping ledger & brand profitability reports
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Amortization of lump-sum expenses for accrual reporting.

An expense carrying ``amortize_months = N`` is recognized, in accrual
reports, as N equal monthly portions of ``amount / N``. Period ``i``
(0-based) starts at ``amortize_start + i months`` (calendar-month
addition, clamped to the end of shorter months) and contributes its
portion to a report only when that start falls inside the queried range.

Cash-basis reports ignore amortization entirely: the full amount is
counted on the transaction date.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import Decimal

import pandas as pd

from .periods import RangeLike, add_months, in_range
from .transactions import Transaction

ZERO = Decimal(0)


@dataclass(frozen=True)
class AmortizationPeriod:
    """One monthly slice of an amortized expense."""

    index: int
    period_start: pd.Timestamp
    amount: Decimal


def schedule_start(expense: Transaction) -> str:
    """First period start: ``amortize_start`` when set, else the transaction date."""
    return expense.amortize_start or expense.date


def amortization_schedule(expense: Transaction) -> list[AmortizationPeriod]:
    """
    Return the monthly periods of an amortized expense.

    The list is empty for incomes and for expenses without a valid
    schedule.
    """
    months = expense.schedule_months
    if months is None:
        return []
    start = schedule_start(expense)
    monthly = expense.amount / months
    return [
        AmortizationPeriod(index=i, period_start=add_months(start, i), amount=monthly)
        for i in range(months)
    ]


def amortized_amount_in_range(
    expense: Transaction, date_range: RangeLike = None
) -> Decimal:
    """
    Portion of an amortized expense recognized inside ``date_range``.

    Returns 0 for incomes, for expenses without a valid schedule and when no
    period start falls in range. The result is ``amount * k / N`` where k is
    the number of in-range periods, so summing over a range that covers the
    whole schedule gives back exactly ``amount``.
    """
    months = expense.schedule_months
    if months is None:
        return ZERO

    start = schedule_start(expense)
    hits = sum(1 for i in range(months) if in_range(add_months(start, i), date_range))
    if hits == 0:
        return ZERO
    return expense.amount * hits / months


def recognized_expense(
    expense: Transaction,
    date_range: RangeLike = None,
    *,
    amortize: bool,
) -> Decimal:
    """
    Expense recognized in ``date_range`` under the given recognition rule.

    With ``amortize=True`` (accrual basis) an amortized expense contributes
    its in-range portion, whatever its own date. Every other expense
    contributes its full amount when its date is in range.
    """
    if amortize and expense.schedule_months is not None:
        return amortized_amount_in_range(expense, date_range)
    if in_range(expense.date, date_range):
        return expense.amount
    return ZERO


def prepaid_balance(
    transactions: Iterable[Transaction],
    date_range: RangeLike = None,
) -> Decimal:
    """
    Prepaid expenses carried at the end of the range.

    For every amortized expense: amount paid in the range (full amount when
    its date is in range) minus the portion already recognized in the range.
    """
    total = ZERO
    for t in transactions:
        if t.schedule_months is None:
            continue
        paid = t.amount if in_range(t.date, date_range) else ZERO
        total += paid - amortized_amount_in_range(t, date_range)
    return total
