# Fintrack - Small-business bookkeeping ledger & brand profitability reports
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Transaction repositories.

A repository is the data source handed to the reporting services: it owns
the transaction log and the reference lists (brands, channels, income and
expense categories). Report functions receive a repository explicitly and
take a snapshot with ``list_transactions()``; the accounting engine itself
never reaches into shared state.

Two implementations are provided:

- ``InMemoryRepository`` : a plain in-process store, handy for tests,
  scripts and offline use,
- ``SqliteRepository``   : backed by the SQLite helpers of ``db.py``.

Transactions are immutable. Editing means ``replace()`` with a new
instance carrying the same id; removing means ``delete()`` by id.
"""

import abc
from collections.abc import Iterable, Mapping
from typing import Optional

from . import db
from .db import REFERENCE_KINDS, DatabaseConfig, ReferenceKind
from .transactions import Transaction

DEFAULT_REFERENCE: dict[str, list[str]] = {
    "brand": [],
    "channel": ["shopee", "tiktok"],
    "income_category": ["Sales", "Other Income"],
    "expense_category": [
        "Operational",
        "Salaries",
        "Advertising",
        "Rent",
        "Utilities",
        "COGS",
    ],
}


class TransactionRepository(abc.ABC):
    """Interface shared by every transaction store."""

    @abc.abstractmethod
    def list_transactions(self) -> list[Transaction]:
        """Return a snapshot of all transactions."""

    @abc.abstractmethod
    def get(self, tx_id: str) -> Optional[Transaction]:
        """Return the transaction with this id, or None."""

    @abc.abstractmethod
    def add(self, transaction: Transaction) -> Transaction:
        """Store a new transaction. Raises ValueError on a duplicate id."""

    @abc.abstractmethod
    def replace(self, transaction: Transaction) -> Transaction:
        """Replace the transaction with the same id. Raises KeyError if absent."""

    @abc.abstractmethod
    def delete(self, tx_id: str) -> None:
        """Delete by id. Raises KeyError if absent."""

    @abc.abstractmethod
    def list_reference(self, kind: ReferenceKind) -> list[str]:
        """Names of a reference list, sorted."""

    @abc.abstractmethod
    def add_reference(self, kind: ReferenceKind, name: str) -> None:
        """Add a name to a reference list (idempotent)."""

    @abc.abstractmethod
    def remove_reference(self, kind: ReferenceKind, name: str) -> None:
        """Remove a name from a reference list (idempotent)."""

    def list_brands(self) -> list[str]:
        return self.list_reference("brand")


class InMemoryRepository(TransactionRepository):
    """Repository keeping everything in process memory."""

    def __init__(
        self,
        transactions: Iterable[Transaction] = (),
        reference: Optional[Mapping[str, Iterable[str]]] = None,
    ) -> None:
        self._transactions: dict[str, Transaction] = {}
        for t in transactions:
            self.add(t)

        source = DEFAULT_REFERENCE if reference is None else reference
        self._reference: dict[str, set[str]] = {k: set() for k in REFERENCE_KINDS}
        for kind, names in source.items():
            for name in names:
                self.add_reference(kind, name)  # type: ignore[arg-type]

    def list_transactions(self) -> list[Transaction]:
        return list(self._transactions.values())

    def get(self, tx_id: str) -> Optional[Transaction]:
        return self._transactions.get(tx_id)

    def add(self, transaction: Transaction) -> Transaction:
        if transaction.id in self._transactions:
            raise ValueError(f"Transaction {transaction.id!r} already exists.")
        self._transactions[transaction.id] = transaction
        return transaction

    def replace(self, transaction: Transaction) -> Transaction:
        if transaction.id not in self._transactions:
            raise KeyError(f"Transaction {transaction.id!r} not found.")
        self._transactions[transaction.id] = transaction
        return transaction

    def delete(self, tx_id: str) -> None:
        if tx_id not in self._transactions:
            raise KeyError(f"Transaction {tx_id!r} not found.")
        del self._transactions[tx_id]

    def _names(self, kind: str) -> set[str]:
        if kind not in self._reference:
            raise ValueError(
                f"Unknown reference list {kind!r}, expected one of {REFERENCE_KINDS}."
            )
        return self._reference[kind]

    def list_reference(self, kind: ReferenceKind) -> list[str]:
        return sorted(self._names(kind))

    def add_reference(self, kind: ReferenceKind, name: str) -> None:
        name = name.strip()
        if not name:
            raise ValueError("Reference name cannot be empty.")
        self._names(kind).add(name)

    def remove_reference(self, kind: ReferenceKind, name: str) -> None:
        self._names(kind).discard(name)


class SqliteRepository(TransactionRepository):
    """Repository backed by the SQLite database described in ``db.py``."""

    def __init__(
        self,
        cfg: DatabaseConfig,
        reference: Optional[Mapping[str, Iterable[str]]] = None,
    ) -> None:
        self.cfg = cfg
        db.init_database(cfg)
        if reference:
            for kind, names in reference.items():
                db.seed_reference(cfg, kind, names)  # type: ignore[arg-type]

    def list_transactions(self) -> list[Transaction]:
        return db.load_transactions(self.cfg)

    def get(self, tx_id: str) -> Optional[Transaction]:
        return db.get_transaction(self.cfg, tx_id)

    def add(self, transaction: Transaction) -> Transaction:
        return db.insert_transaction(self.cfg, transaction)

    def replace(self, transaction: Transaction) -> Transaction:
        return db.replace_transaction(self.cfg, transaction)

    def delete(self, tx_id: str) -> None:
        db.delete_transaction(self.cfg, tx_id)

    def list_reference(self, kind: ReferenceKind) -> list[str]:
        return db.list_reference(self.cfg, kind)

    def add_reference(self, kind: ReferenceKind, name: str) -> None:
        db.add_reference(self.cfg, kind, name)

    def remove_reference(self, kind: ReferenceKind, name: str) -> None:
        db.remove_reference(self.cfg, kind, name)

    def import_transactions(
        self, transactions: Iterable[Transaction]
    ) -> db.ImportStats:
        return db.import_transactions(transactions, self.cfg)
