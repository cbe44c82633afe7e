from decimal import Decimal

import pandas as pd

from fintrack.amortization import (
    amortization_schedule,
    amortized_amount_in_range,
    prepaid_balance,
    recognized_expense,
)
from fintrack.periods import DateRange
from fintrack.transactions import Transaction


def make_expense(amount="1200", months=12, start=None, date="2024-01-15", **kw):
    return Transaction(
        id=kw.pop("id", "e1"),
        date=date,
        type="expense",
        category="Rent",
        amount=Decimal(amount),
        amortize_months=months,
        amortize_start=start,
        **kw,
    )


def test_schedule_has_one_period_per_month() -> None:
    """Periods start on the schedule start and step by calendar months."""
    schedule = amortization_schedule(make_expense(start="2024-01-31", months=3))

    assert [p.period_start for p in schedule] == [
        pd.Timestamp("2024-01-31"),
        pd.Timestamp("2024-02-29"),
        pd.Timestamp("2024-03-31"),
    ]
    assert all(p.amount == Decimal(400) for p in schedule)


def test_schedule_defaults_to_transaction_date() -> None:
    schedule = amortization_schedule(make_expense(months=2))

    assert schedule[0].period_start == pd.Timestamp("2024-01-15")


def test_no_schedule_for_invalid_months() -> None:
    for months in (None, 0, -3, 2.5):
        expense = make_expense(months=months)
        assert amortization_schedule(expense) == []
        assert amortized_amount_in_range(expense, DateRange()) == Decimal(0)


def test_amortized_amount_counts_in_range_periods() -> None:
    """1200 over 12 months starting 2024-01-01: Q1 recognizes 300."""
    expense = make_expense(start="2024-01-01", date="2024-01-01")
    q1 = DateRange(start="2024-01-01", end="2024-03-31")

    assert amortized_amount_in_range(expense, q1) == Decimal(300)


def test_amortized_amount_is_conserved_over_full_schedule() -> None:
    """Portions summed over the whole schedule give back the amount."""
    expense = make_expense(amount="100", months=3, start="2024-01-01")

    months = [
        DateRange(start="2024-01-01", end="2024-01-31"),
        DateRange(start="2024-02-01", end="2024-02-29"),
        DateRange(start="2024-03-01", end="2024-03-31"),
    ]
    parts = [amortized_amount_in_range(expense, m) for m in months]

    assert sum(parts).quantize(Decimal("0.01")) == Decimal("100.00")
    assert amortized_amount_in_range(expense, None) == Decimal(100)


def test_amortized_amount_ignores_payment_date() -> None:
    """A prepaid expense weighs on later months even when paid earlier."""
    expense = make_expense(date="2023-12-20", start="2024-01-01")
    feb = DateRange(start="2024-02-01", end="2024-02-29")

    assert amortized_amount_in_range(expense, feb) == Decimal(100)


def test_recognized_expense_cash_rule_ignores_amortization() -> None:
    expense = make_expense(date="2024-01-15", start="2024-01-01")
    jan = DateRange(start="2024-01-01", end="2024-01-31")
    feb = DateRange(start="2024-02-01", end="2024-02-29")

    assert recognized_expense(expense, jan, amortize=False) == Decimal(1200)
    assert recognized_expense(expense, feb, amortize=False) == Decimal(0)
    assert recognized_expense(expense, feb, amortize=True) == Decimal(100)


def test_prepaid_balance_is_paid_minus_recognized() -> None:
    expense = make_expense(date="2024-01-01", start="2024-01-01")
    q1 = DateRange(start="2024-01-01", end="2024-03-31")

    assert prepaid_balance([expense], q1) == Decimal(900)
