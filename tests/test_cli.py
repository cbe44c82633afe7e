import pytest

from fintrack import __version__
from fintrack.cli import main


def write_config(tmp_path):
    path = tmp_path / "fintrack_config.toml"
    path.write_text(
        '[database]\npath = "ledger.sqlite"\n\n[reference]\nbrands = ["A", "B"]\n',
        encoding="utf-8",
    )
    return str(path)


def write_csv(tmp_path):
    path = tmp_path / "tx.csv"
    path.write_text(
        "id,date,type,category,amount,scope,brand\n"
        "i1,2024-01-15,income,Sales,300,brand,A\n"
        "i2,2024-01-16,income,Sales,700,brand,B\n"
        "j1,2024-01-20,expense,Ads,100,join,\n",
        encoding="utf-8",
    )
    return str(path)


def test_version_flag(capsys) -> None:
    main(["--version"])

    assert __version__ in capsys.readouterr().out


def test_import_then_brand_report(tmp_path, capsys) -> None:
    config = write_config(tmp_path)

    main(["--config", config, "import", write_csv(tmp_path)])
    out = capsys.readouterr().out
    assert "Imported 3 transactions" in out

    main(
        [
            "--config",
            config,
            "report",
            "brands",
            "--from-date",
            "2024-01-01",
            "--to-date",
            "2024-01-31",
        ]
    )
    out = capsys.readouterr().out
    assert "Profitability by brand (accrual basis)" in out
    assert "join_allocated" in out


def test_add_list_and_delete(tmp_path, capsys) -> None:
    config = write_config(tmp_path)

    main(
        [
            "--config",
            config,
            "add",
            "--date",
            "2024-02-01",
            "--type",
            "expense",
            "--category",
            "Rent",
            "--amount",
            "1200",
            "--amortize-months",
            "12",
        ]
    )
    out = capsys.readouterr().out
    assert "Recorded transaction" in out
    tx_id = out.split("Recorded transaction ")[1].split(" ")[0]

    main(["--config", config, "list", "--type", "expense"])
    assert tx_id in capsys.readouterr().out

    main(["--config", config, "delete", tx_id])
    assert f"Deleted transaction {tx_id}" in capsys.readouterr().out

    with pytest.raises(SystemExit):
        main(["--config", config, "delete", tx_id])


def test_brand_scope_requires_brand(tmp_path) -> None:
    config = write_config(tmp_path)

    with pytest.raises(SystemExit):
        main(
            [
                "--config",
                config,
                "add",
                "--date",
                "2024-02-01",
                "--type",
                "expense",
                "--category",
                "COGS",
                "--amount",
                "10",
                "--scope",
                "brand",
            ]
        )


def test_reference_commands(tmp_path, capsys) -> None:
    config = write_config(tmp_path)

    main(["--config", config, "reference", "list", "brand"])
    assert capsys.readouterr().out.split() == ["A", "B"]

    main(["--config", config, "reference", "add", "brand", "C"])
    main(["--config", config, "reference", "remove", "brand", "A"])
    capsys.readouterr()

    main(["--config", config, "reference", "list", "brand"])
    assert capsys.readouterr().out.split() == ["B", "C"]


def test_brand_detail_requires_brand(tmp_path) -> None:
    config = write_config(tmp_path)

    with pytest.raises(SystemExit):
        main(["--config", config, "report", "brand-detail"])


def test_inverted_custom_range_is_rejected(tmp_path) -> None:
    config = write_config(tmp_path)

    with pytest.raises(SystemExit):
        main(
            [
                "--config",
                config,
                "report",
                "cashflow",
                "--from-date",
                "2024-02-01",
                "--to-date",
                "2024-01-01",
            ]
        )


def test_missing_config_file_exits(tmp_path) -> None:
    with pytest.raises(SystemExit):
        main(["--config", str(tmp_path / "missing.toml"), "list"])


def test_add_with_malformed_date_is_rejected(tmp_path, capsys) -> None:
    config = write_config(tmp_path)

    with pytest.raises(SystemExit, match="Invalid transaction"):
        main(
            [
                "--config",
                config,
                "add",
                "--date",
                "not-a-date",
                "--type",
                "income",
                "--category",
                "Sales",
                "--amount",
                "5",
            ]
        )
    capsys.readouterr()

    main(["--config", config, "list"])
    assert "No transactions found" in capsys.readouterr().out


def test_import_with_malformed_date_stores_nothing(tmp_path, capsys) -> None:
    config = write_config(tmp_path)
    csv_path = tmp_path / "bad.csv"
    csv_path.write_text(
        "id,date,type,category,amount\n"
        "i1,2024-01-15,income,Sales,300\n"
        "i2,not-a-date,income,Sales,700\n",
        encoding="utf-8",
    )

    with pytest.raises(SystemExit, match="line 3"):
        main(["--config", config, "import", str(csv_path)])
    capsys.readouterr()

    main(["--config", config, "list"])
    assert "No transactions found" in capsys.readouterr().out
