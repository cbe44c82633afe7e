from decimal import Decimal

import pytest

from fintrack.transactions import (
    Transaction,
    read_transactions,
    transaction_from_mapping,
    transactions_from_frame,
    transactions_to_frame,
)


def write_csv(tmp_path, content: str):
    path = tmp_path / "transactions.csv"
    path.write_text(content, encoding="utf-8")
    return path


def test_transaction_normalizes_amount_and_targets() -> None:
    t = Transaction(
        id="t1",
        date="2024-01-01",
        type="expense",
        category="Ads",
        amount=0.1,  # type: ignore[arg-type]
        scope="join",
        join_targets="A; B;",  # type: ignore[arg-type]
    )

    assert t.amount == Decimal("0.1")
    assert t.join_targets == ("A", "B")


@pytest.mark.parametrize(
    "field,value",
    [("type", "transfer"), ("scope", "team"), ("revenue_mode", "later")],
)
def test_transaction_rejects_unknown_enum_values(field, value) -> None:
    data = {
        "id": "t1",
        "date": "2024-01-01",
        "type": "income",
        "category": "Sales",
        "amount": Decimal(1),
    }
    data[field] = value

    with pytest.raises(ValueError):
        Transaction(**data)


def test_transaction_rejects_negative_amount() -> None:
    with pytest.raises(ValueError):
        Transaction(
            id="t1", date="2024-01-01", type="expense", category="X", amount=Decimal(-1)
        )


def test_from_mapping_accepts_camel_case_aliases() -> None:
    t = transaction_from_mapping(
        {
            "date": "2024-01-01",
            "type": "Expense",
            "category": "Rent",
            "amount": "1200",
            "amortizeMonths": "12",
            "amortizeStart": "2024-01-01",
            "joinTargets": "A;B",
            "scope": "join",
            "inputBy": "sari",
        }
    )

    assert t.type == "expense"
    assert t.schedule_months == 12
    assert t.amortize_start == "2024-01-01"
    assert t.join_targets == ("A", "B")
    assert t.input_by == "sari"
    assert t.id  # generated


def test_from_mapping_scope_defaults_from_brand() -> None:
    base = {"date": "2024-01-01", "type": "income", "category": "Sales", "amount": 5}

    branded = transaction_from_mapping({**base, "brand": "A"})
    plain = transaction_from_mapping(base)

    assert branded.scope == "brand"
    assert plain.scope == "global"


def test_from_mapping_requires_core_fields() -> None:
    with pytest.raises(ValueError, match="amount"):
        transaction_from_mapping(
            {"date": "2024-01-01", "type": "income", "category": "Sales"}
        )


def test_unreadable_amortize_months_means_no_schedule() -> None:
    t = transaction_from_mapping(
        {
            "date": "2024-01-01",
            "type": "expense",
            "category": "Rent",
            "amount": "100",
            "amortize_months": "1.5",
        }
    )

    assert t.amortize_months is None
    assert t.schedule_months is None


def test_read_transactions_from_csv(tmp_path) -> None:
    path = write_csv(
        tmp_path,
        "id,date,type,category,amount,scope,brand,join_targets,revenue_mode\n"
        "i1,2024-01-15,income,Sales,1000.50,brand,A,,actual\n"
        "j1,2024-01-20,expense,Ads,300,join,,A;B,\n",
    )

    rows = read_transactions(path)

    assert [t.id for t in rows] == ["i1", "j1"]
    assert rows[0].amount == Decimal("1000.50")
    assert rows[0].revenue_mode == "actual"
    assert rows[1].brand is None
    assert rows[1].join_targets == ("A", "B")


def test_read_transactions_missing_columns(tmp_path) -> None:
    path = write_csv(tmp_path, "date,type,amount\n2024-01-01,income,5\n")

    with pytest.raises(ValueError, match="category"):
        read_transactions(path)


def test_read_transactions_reports_line_number(tmp_path) -> None:
    path = write_csv(
        tmp_path,
        "date,type,category,amount\n"
        "2024-01-01,income,Sales,5\n"
        "2024-01-02,income,Sales,abc\n",
    )

    with pytest.raises(ValueError, match="line 3"):
        read_transactions(path)


def test_frame_conversion_keeps_fields() -> None:
    rows = [
        Transaction(
            id="t1",
            date="2024-01-01",
            type="expense",
            category="Ads",
            amount=Decimal("12.5"),
            scope="join",
            join_targets=("A", "B"),
        )
    ]

    df = transactions_to_frame(rows)
    back = transactions_from_frame(df)

    assert df.loc[0, "join_targets"] == "A;B"
    assert df.loc[0, "amount"] == 12.5
    assert back[0].join_targets == ("A", "B")
    assert back[0].amount == Decimal("12.5")


@pytest.mark.parametrize(
    "field,value",
    [("date", "not-a-date"), ("date", ""), ("amortize_start", "2024-02-31")],
)
def test_transaction_rejects_malformed_dates(field, value) -> None:
    data = {
        "id": "t1",
        "date": "2024-01-01",
        "type": "expense",
        "category": "Rent",
        "amount": Decimal(100),
        "amortize_months": 3,
    }
    data[field] = value

    with pytest.raises(ValueError, match="Invalid timestamp"):
        Transaction(**data)


def test_read_transactions_rejects_row_with_bad_date(tmp_path) -> None:
    path = write_csv(
        tmp_path,
        "date,type,category,amount\n"
        "2024-01-01,income,Sales,5\n"
        "not-a-date,income,Sales,7\n",
    )

    with pytest.raises(ValueError, match="line 3"):
        read_transactions(path)
