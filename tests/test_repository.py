from decimal import Decimal

import pytest

from fintrack.db import DatabaseConfig
from fintrack.repository import (
    DEFAULT_REFERENCE,
    InMemoryRepository,
    SqliteRepository,
)
from fintrack.transactions import Transaction


def make_tx(tx_id: str, amount: str = "10") -> Transaction:
    return Transaction(
        id=tx_id,
        date="2024-01-01",
        type="income",
        category="Sales",
        amount=Decimal(amount),
    )


def make_repos(tmp_path):
    cfg = DatabaseConfig(engine="sqlite", path=tmp_path / "repo.sqlite")
    return [InMemoryRepository(), SqliteRepository(cfg, reference=DEFAULT_REFERENCE)]


@pytest.mark.parametrize("index", [0, 1], ids=["memory", "sqlite"])
def test_repository_crud(tmp_path, index) -> None:
    repo = make_repos(tmp_path)[index]

    repo.add(make_tx("a"))
    repo.add(make_tx("b"))
    assert sorted(t.id for t in repo.list_transactions()) == ["a", "b"]

    with pytest.raises(ValueError):
        repo.add(make_tx("a"))

    repo.replace(make_tx("a", "99"))
    assert repo.get("a").amount == Decimal("99")

    repo.delete("b")
    assert repo.get("b") is None
    with pytest.raises(KeyError):
        repo.delete("b")
    with pytest.raises(KeyError):
        repo.replace(make_tx("b"))


@pytest.mark.parametrize("index", [0, 1], ids=["memory", "sqlite"])
def test_repository_reference_lists(tmp_path, index) -> None:
    repo = make_repos(tmp_path)[index]

    assert repo.list_reference("channel") == ["shopee", "tiktok"]
    assert repo.list_brands() == []

    repo.add_reference("brand", "Kopi")
    repo.add_reference("brand", "Kopi")
    repo.add_reference("brand", "Batik")
    assert repo.list_brands() == ["Batik", "Kopi"]

    repo.remove_reference("brand", "Kopi")
    assert repo.list_brands() == ["Batik"]

    with pytest.raises(ValueError):
        repo.add_reference("brand", "   ")


def test_list_transactions_returns_snapshot() -> None:
    repo = InMemoryRepository([make_tx("a")])

    snapshot = repo.list_transactions()
    repo.add(make_tx("b"))

    assert [t.id for t in snapshot] == ["a"]


def test_sqlite_repository_keeps_edited_reference_lists(tmp_path) -> None:
    """Defaults only seed an empty list; later edits survive a reopen."""
    cfg = DatabaseConfig(engine="sqlite", path=tmp_path / "repo.sqlite")
    repo = SqliteRepository(cfg, reference=DEFAULT_REFERENCE)
    repo.remove_reference("channel", "tiktok")

    reopened = SqliteRepository(cfg, reference=DEFAULT_REFERENCE)

    assert reopened.list_reference("channel") == ["shopee"]
