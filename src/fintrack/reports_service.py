# Fintrack - Small-business bookkeeping ledger & brand profitability reports
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
High-level reporting services.

This module sits between:
- the data source (a ``TransactionRepository``), and
- user-facing layers such as the CLI.

Each service takes one snapshot of the transaction log from the
repository, hands it to the pure calculators of ``engine.py`` /
``brands.py`` and shapes the result as a DataFrame ready for display or
CSV export. No accounting rule is implemented here.
"""

from datetime import date
from pathlib import Path
from typing import Optional, Union

import pandas as pd

from .brands import (
    Basis,
    BrandDetail,
    brand_detail,
    brand_reports_to_frame,
    by_brand,
    find_unattributed_rows,
)
from .config import ReportingConfig
from .db import ImportStats
from .engine import (
    View,
    balance_sheet,
    cashflow,
    compare_periods,
    daily_cash_trend,
    filter_rows,
    pnl_accrual,
    pnl_actual,
    spend_by_category,
)
from .periods import RangeLike, parse_timestamp
from .repository import SqliteRepository, TransactionRepository
from .transactions import TxType, read_transactions, transactions_to_frame


def list_transactions(
    repo: TransactionRepository,
    date_range: RangeLike = None,
    *,
    tx_type: Optional[TxType] = None,
    brand: Optional[str] = None,
) -> pd.DataFrame:
    """Transactions matching the filters, in time order (stable)."""
    rows = filter_rows(repo.list_transactions(), date_range, tx_type, brand)
    rows = sorted(rows, key=lambda t: parse_timestamp(t.date))
    return transactions_to_frame(rows)


def basis_statement(
    repo: TransactionRepository,
    date_range: RangeLike = None,
    view: View = "cashflow",
) -> pd.DataFrame:
    """
    One of the three company-wide views as a (measure, amount) table.

    - "cashflow": inflow, outflow, net
    - "accrual" : income, expense, profit (accrual basis)
    - "actual"  : income, expense, profit (cash received)
    """
    rows = repo.list_transactions()
    if view == "cashflow":
        values = cashflow(rows, date_range).as_dict()
    elif view == "accrual":
        values = pnl_accrual(rows, date_range).as_dict()
    elif view == "actual":
        values = pnl_actual(rows, date_range).as_dict()
    else:
        raise ValueError(f"Unknown view: {view!r}")
    return pd.DataFrame(
        [{"measure": k, "amount": float(v)} for k, v in values.items()],
        columns=["measure", "amount"],
    )


def headline_kpis(
    repo: TransactionRepository,
    date_range: RangeLike = None,
    *,
    view: View = "cashflow",
    today: Optional[date] = None,
) -> pd.DataFrame:
    """Current vs previous period KPIs (see ``engine.compare_periods``)."""
    return compare_periods(repo.list_transactions(), date_range, view=view, today=today)


def brand_table(
    repo: TransactionRepository,
    basis: Basis,
    date_range: RangeLike = None,
    reporting: Optional[ReportingConfig] = None,
) -> pd.DataFrame:
    """Per-brand profitability with join costs allocated, as a DataFrame."""
    reporting = reporting or ReportingConfig()
    reports = by_brand(
        repo.list_transactions(),
        basis,
        date_range,
        quantum=reporting.allocation_quantum,
        conserve=reporting.conserve_join_allocation,
    )
    return brand_reports_to_frame(reports)


def brand_drilldown(
    repo: TransactionRepository,
    brand: str,
    basis: Basis,
    date_range: RangeLike = None,
) -> BrandDetail:
    """Detail view for a single brand (join targets honoured)."""
    return brand_detail(repo.list_transactions(), brand, basis, date_range)


def balance_table(
    repo: TransactionRepository, date_range: RangeLike = None
) -> pd.DataFrame:
    """Simplified balance sheet as a (line, amount) table."""
    sheet = balance_sheet(repo.list_transactions(), date_range)
    lines = [
        ("Cash (period)", sheet.cash),
        ("Prepaid expenses", sheet.prepaid),
        ("Total assets", sheet.total_assets),
        ("Total liabilities", sheet.liabilities),
        ("Equity", sheet.equity),
    ]
    return pd.DataFrame(
        [{"line": name, "amount": float(v)} for name, v in lines],
        columns=["line", "amount"],
    )


def trend_table(
    repo: TransactionRepository, date_range: RangeLike = None
) -> pd.DataFrame:
    return daily_cash_trend(repo.list_transactions(), date_range)


def category_table(
    repo: TransactionRepository, date_range: RangeLike = None
) -> pd.DataFrame:
    return spend_by_category(repo.list_transactions(), date_range)


def data_quality_report(repo: TransactionRepository) -> pd.DataFrame:
    """Brand-scoped transactions without brand (excluded from brand reports)."""
    return transactions_to_frame(find_unattributed_rows(repo.list_transactions()))


def import_csv(
    repo: TransactionRepository, path: Union[str, Path]
) -> ImportStats:
    """
    Read a transactions CSV and store its rows.

    Rows whose id already exists are skipped. The whole file is parsed
    before anything is written, so a malformed row (bad date, amount or
    enumerated value) leaves the repository untouched. On SQLite the rows
    are written in one database transaction, so an amount that cannot be
    stored also leaves it untouched.
    """
    transactions = read_transactions(path)
    if isinstance(repo, SqliteRepository):
        return repo.import_transactions(transactions)

    inserted = 0
    skipped = 0
    for t in transactions:
        if repo.get(t.id) is not None:
            skipped += 1
            continue
        repo.add(t)
        inserted += 1
    return ImportStats(rows_inserted=inserted, rows_skipped=skipped)
