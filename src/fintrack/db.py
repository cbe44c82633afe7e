# Fintrack - Small-business bookkeeping ledger & brand profitability reports
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.


"""
Database layer for Fintrack.

This module provides the low-level accessors for the SQLite database that
stores the transaction log and the reference lists (brands, channels,
income and expense categories). The accounting engine never touches the
database: services load a snapshot of transactions and hand it to the
pure calculators.

------------------------------------------------------------------------------
Schema Overview
------------------------------------------------------------------------------

1) transactions
   One row per transaction.

   Columns:
   - id               TEXT    PRIMARY KEY     -- opaque identifier
   - date             TEXT    NOT NULL        -- ISO date or datetime
   - type             TEXT    NOT NULL        -- "income" | "expense"
   - category         TEXT    NOT NULL
   - description      TEXT
   - amount_cents     INTEGER NOT NULL        -- amount in hundredths
   - scope            TEXT    NOT NULL        -- "global" | "brand" | "join"
   - brand            TEXT
   - join_targets     TEXT                    -- ';'-separated brand names
   - channel          TEXT
   - revenue_mode     TEXT                    -- "accrual" | "actual"
   - amortize_months  INTEGER
   - amortize_start   TEXT
   - input_by         TEXT
   - created_at       TEXT    NOT NULL        -- UTC timestamp
   - updated_at       TEXT                    -- UTC timestamp of last replace

2) reference_items
   Small master-data lists used by entry forms and filters.

   Columns:
   - kind  TEXT NOT NULL  -- "brand" | "channel" | "income_category"
                          --  | "expense_category"
   - name  TEXT NOT NULL
   PRIMARY KEY (kind, name)

Amounts are stored as integer cents and rebuilt as ``Decimal`` with two
decimal places, so no binary floating point is involved in storage.
Amounts with more than two decimal places are rejected with ``ValueError``
rather than rounded.

Each public function opens and closes its own connection.
"""

import sqlite3
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from pathlib import Path
from typing import Literal, Optional

from .periods import DateRange, in_range
from .transactions import Transaction

ReferenceKind = Literal["brand", "channel", "income_category", "expense_category"]
REFERENCE_KINDS: tuple[str, ...] = (
    "brand",
    "channel",
    "income_category",
    "expense_category",
)

_CENT = Decimal("0.01")

_TX_COLUMNS = (
    "id",
    "date",
    "type",
    "category",
    "description",
    "amount_cents",
    "scope",
    "brand",
    "join_targets",
    "channel",
    "revenue_mode",
    "amortize_months",
    "amortize_start",
    "input_by",
)


@dataclass(frozen=True)
class DatabaseConfig:
    """
    Database configuration for Fintrack.

    Attributes
    ----------
    engine:
        Database engine identifier. Only "sqlite" is supported.
    path:
        Path to the SQLite database file.
    """

    engine: str
    path: Path


@dataclass(frozen=True)
class ImportStats:
    """
    Summary of a bulk import.

    Attributes
    ----------
    rows_inserted:
        Number of new transactions written.
    rows_skipped:
        Number of transactions ignored because their id already exists.
    """

    rows_inserted: int
    rows_skipped: int


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _ensure_sqlite(cfg: DatabaseConfig) -> None:
    """Raise if the configuration does not refer to a supported engine."""
    if cfg.engine.lower() != "sqlite":
        msg = (
            f"Unsupported database engine: {cfg.engine!r}. "
            "Only 'sqlite' is supported for now."
        )
        raise ValueError(msg)


def _connect(cfg: DatabaseConfig) -> sqlite3.Connection:
    """
    Open a SQLite connection.

    The caller is responsible for closing the connection.
    """
    _ensure_sqlite(cfg)
    return sqlite3.connect(cfg.path)


def _create_schema_if_needed(conn: sqlite3.Connection) -> None:
    """
    Create tables and indexes if they do not exist yet.

    This function is idempotent and can be called multiple times safely.
    """
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS transactions (
            id               TEXT    PRIMARY KEY,
            date             TEXT    NOT NULL,
            type             TEXT    NOT NULL,
            category         TEXT    NOT NULL,
            description      TEXT,
            amount_cents     INTEGER NOT NULL,
            scope            TEXT    NOT NULL DEFAULT 'global',
            brand            TEXT,
            join_targets     TEXT,
            channel          TEXT,
            revenue_mode     TEXT,
            amortize_months  INTEGER,
            amortize_start   TEXT,
            input_by         TEXT,
            created_at       TEXT    NOT NULL,
            updated_at       TEXT
        );
        """
    )

    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS reference_items (
            kind  TEXT NOT NULL,
            name  TEXT NOT NULL,
            PRIMARY KEY (kind, name)
        );
        """
    )

    conn.execute(
        """
        CREATE INDEX IF NOT EXISTS idx_transactions_date
            ON transactions(date);
        """
    )

    conn.commit()


def _now_utc_iso() -> str:
    """Return the current UTC datetime as ISO string."""
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _to_cents(amount: Decimal) -> int:
    """
    Convert an amount to integer cents.

    Raises
    ------
    ValueError
        If the amount has more than two decimal places.
    """
    cents = amount / _CENT
    if cents != cents.to_integral_value():
        raise ValueError(
            f"Amount {amount} has more than two decimal places and cannot be stored."
        )
    return int(cents)


def _from_cents(cents: int) -> Decimal:
    return Decimal(int(cents)).scaleb(-2)


def _tx_values(t: Transaction) -> tuple:
    return (
        t.id,
        t.date,
        t.type,
        t.category,
        t.description,
        _to_cents(t.amount),
        t.scope,
        t.brand,
        ";".join(t.join_targets) or None,
        t.channel,
        t.revenue_mode,
        t.amortize_months,
        t.amortize_start,
        t.input_by,
    )


def _row_to_transaction(row: tuple) -> Transaction:
    """Convert a SELECT row (in ``_TX_COLUMNS`` order) into a Transaction."""
    (
        tx_id,
        tx_date,
        tx_type,
        category,
        description,
        amount_cents,
        scope,
        brand,
        join_targets,
        channel,
        revenue_mode,
        amortize_months,
        amortize_start,
        input_by,
    ) = row
    return Transaction(
        id=tx_id,
        date=tx_date,
        type=tx_type,
        category=category,
        amount=_from_cents(amount_cents),
        scope=scope,
        brand=brand,
        join_targets=join_targets or (),
        channel=channel,
        revenue_mode=revenue_mode,
        amortize_months=amortize_months,
        amortize_start=amortize_start,
        description=description,
        input_by=input_by,
    )


def _check_kind(kind: str) -> None:
    if kind not in REFERENCE_KINDS:
        raise ValueError(
            f"Unknown reference list {kind!r}, expected one of {REFERENCE_KINDS}."
        )


# ---------------------------------------------------------------------------
# Public API: schema
# ---------------------------------------------------------------------------


def init_database(cfg: DatabaseConfig) -> None:
    """
    Initialize the database schema if needed.

    - Creates the SQLite file (and its parent directory) if missing.
    - Creates the tables and indexes if they are missing.
    - Idempotent: calling it multiple times is safe.

    Raises
    ------
    ValueError
        If cfg.engine is not supported.
    sqlite3.Error
        If schema creation fails.
    """
    cfg.path.parent.mkdir(parents=True, exist_ok=True)

    conn = _connect(cfg)
    try:
        _create_schema_if_needed(conn)
    finally:
        conn.close()


def has_transactions(cfg: DatabaseConfig) -> bool:
    """Return True if at least one transaction is stored."""
    conn = _connect(cfg)
    try:
        row = conn.execute("SELECT 1 FROM transactions LIMIT 1;").fetchone()
    finally:
        conn.close()
    return row is not None


# ---------------------------------------------------------------------------
# Public API: transactions
# ---------------------------------------------------------------------------


def get_transaction(cfg: DatabaseConfig, tx_id: str) -> Optional[Transaction]:
    """Load one transaction by id, or None if it does not exist."""
    conn = _connect(cfg)
    try:
        row = conn.execute(
            f"SELECT {', '.join(_TX_COLUMNS)} FROM transactions WHERE id = ?;",
            (tx_id,),
        ).fetchone()
    finally:
        conn.close()
    return _row_to_transaction(row) if row is not None else None


def load_transactions(
    cfg: DatabaseConfig,
    start: Optional[str] = None,
    end: Optional[str] = None,
) -> list[Transaction]:
    """
    Load transactions, optionally restricted to an inclusive date range.

    Range filtering uses ``periods.in_range`` rather than SQL string
    comparison so that date and datetime values (with or without offsets)
    compare as points in time. Rows are ordered by date then id.

    Note that amortized expenses dated before ``start`` may still weigh on
    an accrual report of the range; callers computing accrual views should
    load the full log.
    """
    conn = _connect(cfg)
    try:
        rows = conn.execute(
            f"SELECT {', '.join(_TX_COLUMNS)} FROM transactions ORDER BY date, id;"
        ).fetchall()
    finally:
        conn.close()

    transactions = [_row_to_transaction(r) for r in rows]
    if start is None and end is None:
        return transactions
    rng = DateRange(start=start, end=end)
    return [t for t in transactions if in_range(t.date, rng)]


def insert_transaction(cfg: DatabaseConfig, transaction: Transaction) -> Transaction:
    """
    Insert a new transaction.

    Raises
    ------
    ValueError
        If a transaction with the same id already exists.
    """
    placeholders = ", ".join("?" for _ in _TX_COLUMNS)
    conn = _connect(cfg)
    try:
        try:
            conn.execute(
                f"INSERT INTO transactions ({', '.join(_TX_COLUMNS)}, created_at) "
                f"VALUES ({placeholders}, ?);",
                (*_tx_values(transaction), _now_utc_iso()),
            )
        except sqlite3.IntegrityError as exc:
            raise ValueError(f"Transaction {transaction.id!r} already exists.") from exc
        conn.commit()
    finally:
        conn.close()

    result = get_transaction(cfg, transaction.id)
    if result is None:
        msg = f"Transaction {transaction.id!r} was inserted but could not be reloaded."
        raise RuntimeError(msg)
    return result


def replace_transaction(cfg: DatabaseConfig, transaction: Transaction) -> Transaction:
    """
    Replace every field of an existing transaction (matched by id).

    Raises
    ------
    KeyError
        If no transaction with this id exists.
    """
    assignments = ", ".join(f"{c} = ?" for c in _TX_COLUMNS[1:])
    values = _tx_values(transaction)
    conn = _connect(cfg)
    try:
        cur = conn.execute(
            f"UPDATE transactions SET {assignments}, updated_at = ? WHERE id = ?;",
            (*values[1:], _now_utc_iso(), transaction.id),
        )
        if cur.rowcount == 0:
            raise KeyError(f"Transaction {transaction.id!r} not found.")
        conn.commit()
    finally:
        conn.close()

    result = get_transaction(cfg, transaction.id)
    if result is None:
        raise KeyError(f"Transaction {transaction.id!r} not found.")
    return result


def delete_transaction(cfg: DatabaseConfig, tx_id: str) -> None:
    """
    Permanently delete a transaction.

    Raises
    ------
    KeyError
        If no transaction with this id exists.
    """
    conn = _connect(cfg)
    try:
        cur = conn.execute("DELETE FROM transactions WHERE id = ?;", (tx_id,))
        if cur.rowcount == 0:
            raise KeyError(f"Transaction {tx_id!r} not found.")
        conn.commit()
    finally:
        conn.close()


def import_transactions(
    transactions: Iterable[Transaction],
    cfg: DatabaseConfig,
) -> ImportStats:
    """
    Bulk-insert transactions in a single database transaction.

    Rows whose id already exists in the database (or earlier in the same
    batch) are skipped and counted in ``rows_skipped``.
    """
    init_database(cfg)
    placeholders = ", ".join("?" for _ in _TX_COLUMNS)
    now = _now_utc_iso()

    inserted = 0
    skipped = 0
    conn = _connect(cfg)
    try:
        for t in transactions:
            cur = conn.execute(
                f"INSERT OR IGNORE INTO transactions ({', '.join(_TX_COLUMNS)}, "
                f"created_at) VALUES ({placeholders}, ?);",
                (*_tx_values(t), now),
            )
            if cur.rowcount == 1:
                inserted += 1
            else:
                skipped += 1
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()

    return ImportStats(rows_inserted=inserted, rows_skipped=skipped)


# ---------------------------------------------------------------------------
# Public API: reference lists
# ---------------------------------------------------------------------------


def list_reference(cfg: DatabaseConfig, kind: ReferenceKind) -> list[str]:
    """Return the names of a reference list, sorted alphabetically."""
    _check_kind(kind)
    conn = _connect(cfg)
    try:
        rows = conn.execute(
            "SELECT name FROM reference_items WHERE kind = ? ORDER BY name;",
            (kind,),
        ).fetchall()
    finally:
        conn.close()
    return [r[0] for r in rows]


def add_reference(cfg: DatabaseConfig, kind: ReferenceKind, name: str) -> None:
    """Add a name to a reference list (no-op if already present)."""
    _check_kind(kind)
    name = name.strip()
    if not name:
        raise ValueError("Reference name cannot be empty.")
    conn = _connect(cfg)
    try:
        conn.execute(
            "INSERT OR IGNORE INTO reference_items (kind, name) VALUES (?, ?);",
            (kind, name),
        )
        conn.commit()
    finally:
        conn.close()


def remove_reference(cfg: DatabaseConfig, kind: ReferenceKind, name: str) -> None:
    """Remove a name from a reference list (no-op if absent)."""
    _check_kind(kind)
    conn = _connect(cfg)
    try:
        conn.execute(
            "DELETE FROM reference_items WHERE kind = ? AND name = ?;",
            (kind, name),
        )
        conn.commit()
    finally:
        conn.close()


def seed_reference(
    cfg: DatabaseConfig, kind: ReferenceKind, names: Iterable[str]
) -> None:
    """Fill a reference list with default names, only if it is still empty."""
    if list_reference(cfg, kind):
        return
    for name in names:
        add_reference(cfg, kind, name)
