# Fintrack - Small-business bookkeeping ledger & brand profitability reports
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Command-Line Interface (CLI) for Fintrack.

This module wires together the main building blocks of Fintrack:

- configuration (database path, reporting options, reference lists),
- the SQLite-backed transaction repository,
- the reporting services (cashflow, accrual/actual P&L, brands, balance).

The CLI is intentionally thin: it does not implement accounting logic
itself. It loads the configuration, opens the repository, resolves the
reporting range from the arguments and prints the resulting tables.

Commands
--------
- ``import CSV``          : import transactions from a CSV file,
- ``add``                 : record a single transaction,
- ``list``                : list transactions (range/type/brand filters),
- ``delete ID``           : delete a transaction,
- ``report KIND``         : print a report, KIND being one of
                            summary, cashflow, accrual, actual, brands,
                            brand-detail, balance, trend, categories,
- ``reference ACTION``    : list/add/remove brands, channels, categories,
- ``quality``             : list brand-scoped rows without a brand.

Range selection
---------------
``--from-date`` / ``--to-date`` define a custom range (either side
optional) and take precedence over ``--period`` (mtd, ytd, last-month,
last-30-days). Without any of them, reports cover all dates.
"""

import argparse
import logging
from pathlib import Path
from typing import Optional

import pandas as pd

from . import __version__
from .config import AppConfig, load_app_config
from .periods import DateRange, determine_range_from_args
from .reports_service import (
    balance_table,
    basis_statement,
    brand_drilldown,
    brand_table,
    category_table,
    data_quality_report,
    headline_kpis,
    import_csv,
    list_transactions,
    trend_table,
)
from .repository import SqliteRepository
from .transactions import new_transaction_id, transaction_from_mapping

REPORT_KINDS = [
    "summary",
    "cashflow",
    "accrual",
    "actual",
    "brands",
    "brand-detail",
    "balance",
    "trend",
    "categories",
]


def _add_range_arguments(ap: argparse.ArgumentParser) -> None:
    ap.add_argument(
        "--period",
        choices=["mtd", "ytd", "last-month", "last-30-days"],
        help="Predefined reporting range.",
    )
    ap.add_argument(
        "--from-date",
        dest="from_date",
        help="Custom range start (YYYY-MM-DD). Takes precedence over --period.",
    )
    ap.add_argument(
        "--to-date",
        dest="to_date",
        help="Custom range end (YYYY-MM-DD). Takes precedence over --period.",
    )


def _build_parser() -> argparse.ArgumentParser:
    """Create and configure the argument parser for the CLI."""
    ap = argparse.ArgumentParser(
        prog="python -m fintrack.cli",
        description=(
            "Fintrack - small-business bookkeeping ledger. Records income and "
            "expenses and prints cashflow, accrual and actual P&L, and per-brand "
            "profitability with join costs allocated."
        ),
    )
    ap.add_argument(
        "--version",
        action="store_true",
        help="Show the installed version of fintrack and exit.",
    )
    ap.add_argument(
        "--config",
        dest="config_path",
        help=(
            "Path to the TOML configuration file. If omitted, "
            "'fintrack_config.toml' in the current directory is used when present."
        ),
    )
    ap.add_argument(
        "--log-level",
        dest="log_level",
        default="WARNING",
        help="Logging level (DEBUG, INFO, WARNING, ERROR). Default: WARNING.",
    )

    sub = ap.add_subparsers(dest="command")

    p_import = sub.add_parser("import", help="Import transactions from a CSV file.")
    p_import.add_argument("csv_path", metavar="CSV_PATH")

    p_add = sub.add_parser("add", help="Record a single transaction.")
    p_add.add_argument("--date", required=True)
    p_add.add_argument(
        "--type", dest="tx_type", required=True, choices=["income", "expense"]
    )
    p_add.add_argument("--category", required=True)
    p_add.add_argument("--amount", required=True)
    p_add.add_argument("--scope", choices=["global", "brand", "join"])
    p_add.add_argument("--brand")
    p_add.add_argument(
        "--join-targets",
        dest="join_targets",
        help="';'-separated brands sharing a join cost (default: all brands).",
    )
    p_add.add_argument("--channel")
    p_add.add_argument(
        "--revenue-mode", dest="revenue_mode", choices=["accrual", "actual"]
    )
    p_add.add_argument("--amortize-months", dest="amortize_months", type=int)
    p_add.add_argument("--amortize-start", dest="amortize_start")
    p_add.add_argument("--description")
    p_add.add_argument("--input-by", dest="input_by")

    p_list = sub.add_parser("list", help="List transactions.")
    _add_range_arguments(p_list)
    p_list.add_argument("--type", dest="tx_type", choices=["income", "expense"])
    p_list.add_argument("--brand")

    p_delete = sub.add_parser("delete", help="Delete a transaction by id.")
    p_delete.add_argument("tx_id", metavar="ID")

    p_report = sub.add_parser("report", help="Print a report.")
    p_report.add_argument("kind", choices=REPORT_KINDS)
    _add_range_arguments(p_report)
    p_report.add_argument(
        "--basis",
        choices=["accrual", "actual"],
        help="Recognition basis for brand reports (default from config).",
    )
    p_report.add_argument("--brand", help="Brand for 'brand-detail'.")
    p_report.add_argument(
        "--compare",
        action="store_true",
        help="For cashflow/accrual/actual: compare with the previous period.",
    )

    p_ref = sub.add_parser("reference", help="Manage reference lists.")
    p_ref.add_argument("action", choices=["list", "add", "remove"])
    p_ref.add_argument(
        "kind", choices=["brand", "channel", "income_category", "expense_category"]
    )
    p_ref.add_argument("name", nargs="?")

    sub.add_parser("quality", help="Show brand-scoped rows without a brand.")

    return ap


def _fmt_frame(df: pd.DataFrame, decimals: int) -> str:
    """Render a DataFrame with float columns formatted to ``decimals``."""
    out = df.copy()
    for col in out.columns:
        if pd.api.types.is_float_dtype(out[col]):
            out[col] = out[col].map(lambda v: f"{v:,.{decimals}f}")
    return out.to_string(index=False)


def _print_table(title: str, df: pd.DataFrame, decimals: int) -> None:
    print()
    print(title)
    if df.empty:
        print("  (no data)")
        return
    print(_fmt_frame(df, decimals))


def _resolve_range(
    args: argparse.Namespace, parser: argparse.ArgumentParser
) -> DateRange:
    try:
        return determine_range_from_args(args)
    except ValueError as exc:
        parser.error(str(exc))
        raise  # pragma: no cover - parser.error exits


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _handle_import(args, repo: SqliteRepository, parser) -> None:
    csv_path = Path(args.csv_path)
    if not csv_path.is_file():
        parser.error(f"CSV file not found: {csv_path}")

    print(f"Importing transactions from {csv_path}...")
    try:
        stats = import_csv(repo, csv_path)
    except ValueError as exc:
        raise SystemExit(f"Import failed: {exc}") from exc
    print(
        f"Imported {stats.rows_inserted} transactions, "
        f"{stats.rows_skipped} skipped (id already present)."
    )


def _handle_add(args, repo: SqliteRepository) -> None:
    data = {
        "id": new_transaction_id(),
        "date": args.date,
        "type": args.tx_type,
        "category": args.category,
        "amount": args.amount,
        "scope": args.scope,
        "brand": args.brand,
        "join_targets": args.join_targets,
        "channel": args.channel,
        "revenue_mode": args.revenue_mode,
        "amortize_months": args.amortize_months,
        "amortize_start": args.amortize_start,
        "description": args.description,
        "input_by": args.input_by,
    }
    try:
        tx = transaction_from_mapping(data)
        if tx.scope == "brand" and not tx.brand:
            raise ValueError("--brand is required when --scope is 'brand'.")
        tx = repo.add(tx)
    except ValueError as exc:
        raise SystemExit(f"Invalid transaction: {exc}") from exc
    print(f"Recorded transaction {tx.id} ({tx.type} {tx.amount} on {tx.date}).")


def _handle_list(args, repo: SqliteRepository, config: AppConfig, parser) -> None:
    rng = _resolve_range(args, parser)
    df = list_transactions(repo, rng, tx_type=args.tx_type, brand=args.brand)
    print(f"Applied range: {rng.describe()}")
    if df.empty:
        print("No transactions found for the given criteria.")
        return

    columns = ["id", "date", "type", "category", "brand", "scope", "amount"]
    print()
    print(_fmt_frame(df[columns], config.decimals))
    print()
    print(f"Total transactions: {len(df)}")


def _handle_delete(args, repo: SqliteRepository) -> None:
    try:
        repo.delete(args.tx_id)
    except KeyError as exc:
        raise SystemExit(f"Transaction {args.tx_id!r} not found.") from exc
    print(f"Deleted transaction {args.tx_id}.")


def _handle_report(args, repo: SqliteRepository, config: AppConfig, parser) -> None:
    rng = _resolve_range(args, parser)
    basis = args.basis or config.reporting.default_basis
    decimals = config.decimals
    currency = config.reporting.currency

    print(f"Applied range: {rng.describe()} | Currency: {currency}")

    kind = args.kind
    if kind == "summary":
        _print_table(
            "Headline KPIs (cash basis) vs previous period",
            headline_kpis(repo, rng, view="cashflow"),
            decimals,
        )
    elif kind in ("cashflow", "accrual", "actual"):
        titles = {
            "cashflow": "Cashflow (cash basis)",
            "accrual": "Profit & loss (accrual basis)",
            "actual": "Profit & loss (actual basis)",
        }
        if args.compare:
            _print_table(titles[kind], headline_kpis(repo, rng, view=kind), decimals)
        else:
            _print_table(titles[kind], basis_statement(repo, rng, kind), decimals)
    elif kind == "brands":
        _print_table(
            f"Profitability by brand ({basis} basis)",
            brand_table(repo, basis, rng, config.reporting),
            decimals,
        )
    elif kind == "brand-detail":
        if not args.brand:
            parser.error("--brand is required for 'report brand-detail'.")
        _print_brand_detail(repo, args.brand, basis, rng, decimals)
    elif kind == "balance":
        _print_table("Simplified balance sheet", balance_table(repo, rng), decimals)
    elif kind == "trend":
        _print_table("Daily cash trend", trend_table(repo, rng), decimals)
    elif kind == "categories":
        _print_table("Spending by category", category_table(repo, rng), decimals)


def _print_brand_detail(repo, brand: str, basis, rng: DateRange, decimals: int) -> None:
    detail = brand_drilldown(repo, brand, basis, rng)

    lines = pd.DataFrame(
        [
            {"measure": "income", "amount": float(detail.income)},
            {"measure": "direct", "amount": float(detail.direct)},
            {"measure": "join_allocated", "amount": float(detail.join_allocated)},
            {"measure": "profit", "amount": float(detail.profit)},
        ]
    )
    _print_table(f"Brand {brand} ({basis} basis)", lines, decimals)
    margin = detail.net_margin
    if margin is None:
        print("Net profit margin: -")
    else:
        print(f"Net profit margin: {margin:.1f}%")

    if detail.allocations:
        alloc_df = pd.DataFrame(
            [
                {
                    "source_id": a.source_id,
                    "date": a.date,
                    "category": a.category,
                    "share_pct": float(a.share * 100),
                    "amount": float(a.amount),
                }
                for a in detail.allocations
            ]
        )
        _print_table("Join cost allocations", alloc_df, decimals)

    _print_table("Expenses by category", detail.expense_by_category, decimals)
    _print_table("Income by channel", detail.income_by_channel, decimals)


def _handle_reference(args, repo: SqliteRepository, parser) -> None:
    if args.action == "list":
        names = repo.list_reference(args.kind)
        if not names:
            print(f"No {args.kind} defined.")
        for name in names:
            print(name)
        return

    if not args.name:
        parser.error(f"A name is required for 'reference {args.action}'.")
    if args.action == "add":
        repo.add_reference(args.kind, args.name)
        print(f"Added {args.kind} {args.name!r}.")
    else:
        repo.remove_reference(args.kind, args.name)
        print(f"Removed {args.kind} {args.name!r}.")


def _handle_quality(repo: SqliteRepository) -> None:
    df = data_quality_report(repo)
    if df.empty:
        print("No data quality issue detected.")
        return
    print("Brand-scoped transactions without brand (excluded from brand reports):")
    print()
    print(df[["id", "date", "type", "category", "amount"]].to_string(index=False))


def main(argv: Optional[list[str]] = None) -> None:
    """Entry point for the Fintrack CLI."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.version:
        print(f"fintrack version {__version__}")
        return

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return

    try:
        config = load_app_config(args.config_path)
    except (FileNotFoundError, ValueError) as exc:
        raise SystemExit(f"Configuration error: {exc}") from exc

    repo = SqliteRepository(config.database, reference=config.reference)

    if args.command == "import":
        _handle_import(args, repo, parser)
    elif args.command == "add":
        _handle_add(args, repo)
    elif args.command == "list":
        try:
            _handle_list(args, repo, config, parser)
        except ValueError as exc:
            raise SystemExit(f"Listing failed: {exc}") from exc
    elif args.command == "delete":
        _handle_delete(args, repo)
    elif args.command == "report":
        try:
            _handle_report(args, repo, config, parser)
        except ValueError as exc:
            raise SystemExit(f"Report failed: {exc}") from exc
    elif args.command == "reference":
        _handle_reference(args, repo, parser)
    elif args.command == "quality":
        _handle_quality(repo)


if __name__ == "__main__":
    main()
