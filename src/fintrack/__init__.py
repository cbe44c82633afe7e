# Fintrack - Small-business bookkeeping ledger & brand profitability reports
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Fintrack
--------

A small-business bookkeeping ledger with brand profitability reporting.
Transactions (income and expenses) are recorded once and reported under
several recognition bases.

Main capabilities:
- cashflow report (cash basis),
- accrual and actual (cash-received) profit & loss,
- monthly amortization of prepaid expenses in accrual reports,
- per-brand profitability with shared "join" costs allocated by income share,
- single-brand drill-down (join allocations, categories, channels),
- previous-period comparison, daily cash trend, spend by category,
- simplified balance sheet (cash and prepaid expenses),
- SQLite storage with CSV import and editable reference lists.

The accounting engine (``engine``, ``amortization``, ``brands``) is made of
pure functions over lists of ``Transaction``; storage (``db``,
``repository``), configuration (TOML) and presentation (CLI) sit around it.

Usage:
    python -m fintrack.cli --help
"""

__all__ = ["engine", "brands", "amortization", "periods", "transactions"]

__version__ = "0.1.0"
