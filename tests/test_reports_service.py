from datetime import date
from decimal import Decimal

from fintrack.config import ReportingConfig
from fintrack.db import DatabaseConfig
from fintrack.periods import DateRange
from fintrack.reports_service import (
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
from fintrack.repository import InMemoryRepository, SqliteRepository
from fintrack.transactions import Transaction

JANUARY = DateRange(start="2024-01-01", end="2024-01-31")

CSV_CONTENT = (
    "id,date,type,category,amount,scope,brand,join_targets,revenue_mode,"
    "amortize_months,amortize_start\n"
    "i1,2024-01-15,income,Sales,1000,brand,A,,actual,,\n"
    "i2,2024-01-20,income,Sales,3000,brand,B,,accrual,,\n"
    "e1,2024-01-01,expense,Rent,1200,brand,A,,,12,2024-01-01\n"
    "j1,2024-01-10,expense,Ads,400,join,,,,,\n"
    "g1,2024-01-05,expense,Salaries,500,global,,,,,\n"
)


def make_repo(tmp_path) -> SqliteRepository:
    cfg = DatabaseConfig(engine="sqlite", path=tmp_path / "service.sqlite")
    repo = SqliteRepository(cfg)
    csv_path = tmp_path / "tx.csv"
    csv_path.write_text(CSV_CONTENT, encoding="utf-8")
    import_csv(repo, csv_path)
    return repo


def as_mapping(df, key="measure", value="amount"):
    return dict(zip(df[key], df[value]))


def test_import_csv_twice_skips_existing(tmp_path) -> None:
    repo = make_repo(tmp_path)
    csv_path = tmp_path / "tx.csv"

    stats = import_csv(repo, csv_path)

    assert stats.rows_inserted == 0
    assert stats.rows_skipped == 5
    assert len(repo.list_transactions()) == 5


def test_import_csv_into_memory_repository(tmp_path) -> None:
    csv_path = tmp_path / "tx.csv"
    csv_path.write_text(CSV_CONTENT, encoding="utf-8")
    repo = InMemoryRepository()

    stats = import_csv(repo, csv_path)

    assert stats.rows_inserted == 5
    assert stats.rows_skipped == 0


def test_basis_statements(tmp_path) -> None:
    repo = make_repo(tmp_path)

    cash = as_mapping(basis_statement(repo, JANUARY, "cashflow"))
    accrual = as_mapping(basis_statement(repo, JANUARY, "accrual"))
    actual = as_mapping(basis_statement(repo, JANUARY, "actual"))

    assert cash == {"inflow": 1000.0, "outflow": 2100.0, "net": -1100.0}
    assert accrual == {"income": 4000.0, "expense": 1000.0, "profit": 3000.0}
    assert actual == {"income": 1000.0, "expense": 2100.0, "profit": -1100.0}


def test_brand_table_accrual(tmp_path) -> None:
    repo = make_repo(tmp_path)

    df = brand_table(repo, "accrual", JANUARY, ReportingConfig())
    rows = df.set_index("brand")

    assert list(df["brand"]) == ["A", "B"]
    assert rows.loc["A", "join_allocated"] == 100.0
    assert rows.loc["B", "join_allocated"] == 300.0
    assert rows.loc["A", "direct"] == 100.0
    assert rows.loc["A", "profit"] == 800.0


def test_brand_table_actual_gives_pool_to_cash_brands(tmp_path) -> None:
    repo = make_repo(tmp_path)

    rows = brand_table(repo, "actual", JANUARY).set_index("brand")

    assert rows.loc["A", "join_allocated"] == 400.0
    assert rows.loc["B", "income"] == 0.0
    assert rows.loc["B", "join_allocated"] == 0.0


def test_brand_drilldown(tmp_path) -> None:
    repo = make_repo(tmp_path)

    detail = brand_drilldown(repo, "A", "accrual", JANUARY)

    assert detail.income == Decimal(1000)
    assert detail.join_allocated == Decimal(100)
    assert [a.source_id for a in detail.allocations] == ["j1"]


def test_list_transactions_sorted_and_filtered(tmp_path) -> None:
    repo = make_repo(tmp_path)

    df = list_transactions(repo, JANUARY, tx_type="expense")

    assert list(df["id"]) == ["e1", "g1", "j1"]
    assert list_transactions(repo, JANUARY, brand="Nope").empty


def test_headline_kpis_against_previous_period(tmp_path) -> None:
    repo = make_repo(tmp_path)

    df = headline_kpis(repo, JANUARY).set_index("measure")

    assert df.loc["income", "current"] == 1000.0
    assert df.loc["income", "previous"] == 0.0
    assert df.loc["income", "change_pct"] == 100.0


def test_headline_kpis_default_range(tmp_path) -> None:
    repo = make_repo(tmp_path)

    df = headline_kpis(repo, None, today=date(2024, 1, 30)).set_index("measure")

    assert df.loc["expense", "current"] == 2100.0


def test_balance_trend_and_categories(tmp_path) -> None:
    repo = make_repo(tmp_path)

    balance = as_mapping(balance_table(repo, JANUARY), key="line")
    assert balance["Cash (period)"] == -1100.0
    assert balance["Prepaid expenses"] == 1100.0
    assert balance["Equity"] == 0.0

    trend = trend_table(repo, JANUARY)
    assert list(trend["date"]) == [
        "2024-01-01",
        "2024-01-05",
        "2024-01-10",
        "2024-01-15",
        "2024-01-20",
    ]

    categories = category_table(repo, JANUARY)
    assert list(categories["category"]) == ["Rent", "Salaries", "Ads"]


def test_data_quality_report_lists_unattributed_rows() -> None:
    repo = InMemoryRepository(
        [
            Transaction(
                id="x1",
                date="2024-01-01",
                type="expense",
                category="COGS",
                amount=Decimal(5),
                scope="brand",
            )
        ]
    )

    df = data_quality_report(repo)

    assert list(df["id"]) == ["x1"]


def test_list_transactions_orders_by_point_in_time() -> None:
    """Offsets are honoured: 01:00+07:00 on Jan 2 is 18:00 UTC on Jan 1."""

    def tx(tx_id: str, when: str) -> Transaction:
        return Transaction(
            id=tx_id, date=when, type="income", category="Sales", amount=Decimal(1)
        )

    repo = InMemoryRepository(
        [
            tx("late", "2024-01-01T20:00:00"),
            tx("early", "2024-01-02T01:00:00+07:00"),
            tx("first", "2024-01-01"),
        ]
    )

    df = list_transactions(repo)

    assert list(df["id"]) == ["first", "early", "late"]
