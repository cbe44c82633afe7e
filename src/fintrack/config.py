# Fintrack - Small-business bookkeeping ledger & brand profitability reports
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Configuration helpers for Fintrack.

This module is responsible for:
- loading the application configuration from a TOML file,
- exposing typed dataclasses used by the services and the CLI.

Expected sections (all optional)
--------------------------------
[database]
    engine = "sqlite"
    path   = "data/fintrack.sqlite"   # relative to the TOML file

[reporting]
    default_basis            = "accrual"   # or "actual"
    currency                 = "IDR"
    allocation_quantum       = "1"         # rounding unit of join allocations
    conserve_join_allocation = false       # largest-remainder correction

[display]
    decimals = 0

[reference]
    brands             = ["Brand A", "Brand B"]
    channels           = ["shopee", "tiktok"]
    income_categories  = ["Sales", "Other Income"]
    expense_categories = ["Operational", "Rent"]

Reference lists only seed an empty database; afterwards the database is
the source of truth.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover - fallback for older Python
    import tomli as tomllib  # type: ignore[import]

from .brands import BASES
from .db import DatabaseConfig
from .repository import DEFAULT_REFERENCE
from .transactions import to_decimal

DEFAULT_CONFIG_FILE = "fintrack_config.toml"


@dataclass(frozen=True)
class ReportingConfig:
    """Reporting options: default basis, currency and join-cost rounding."""

    default_basis: str = "accrual"
    currency: str = "IDR"
    allocation_quantum: Decimal = Decimal(1)
    conserve_join_allocation: bool = False


@dataclass(frozen=True)
class AppConfig:
    """
    Application-wide configuration for Fintrack.

    This aggregates:
    - the database configuration (where transactions are stored),
    - reporting options,
    - display options,
    - reference lists used to seed a new database.
    """

    database: DatabaseConfig
    reporting: ReportingConfig = field(default_factory=ReportingConfig)
    decimals: int = 0
    reference: dict[str, list[str]] = field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_REFERENCE.items()}
    )


def _load_toml(path: Path) -> dict[str, Any]:
    """
    Load a TOML file and return its content as a dictionary.

    Raises:
        FileNotFoundError: if the file does not exist.
        ValueError: if the TOML content cannot be parsed or is not a table.
    """
    if not path.is_file():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except Exception as exc:  # noqa: BLE001
        raise ValueError(f"Failed to parse TOML config file: {path}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Invalid TOML root type in {path}, expected a table.")

    return data


def _section(raw: Mapping[str, Any], name: str) -> Mapping[str, Any]:
    value = raw.get(name) or {}
    if not isinstance(value, Mapping):
        return {}
    return value


def _parse_reporting(section: Mapping[str, Any]) -> ReportingConfig:
    """
    Parse the [reporting] table.

    Raises:
        ValueError: on an unknown basis, a non-positive rounding quantum or a
            non-boolean conservation flag.
    """
    basis = str(section.get("default_basis") or "accrual").lower()
    if basis not in BASES:
        raise ValueError(
            f"Invalid value for 'reporting.default_basis': {basis!r}. "
            f"Expected one of {BASES}."
        )

    raw_quantum = section.get("allocation_quantum", "1")
    try:
        quantum = to_decimal(raw_quantum)
    except ValueError as exc:
        raise ValueError(
            "Invalid value for 'reporting.allocation_quantum' in the configuration."
        ) from exc
    if quantum <= 0:
        raise ValueError("'reporting.allocation_quantum' must be positive.")

    conserve = section.get("conserve_join_allocation", False)
    if not isinstance(conserve, bool):
        raise ValueError(
            "Invalid value for 'reporting.conserve_join_allocation': "
            f"{conserve!r}. Expected true or false."
        )

    return ReportingConfig(
        default_basis=basis,
        currency=str(section.get("currency") or "IDR"),
        allocation_quantum=quantum,
        conserve_join_allocation=conserve,
    )


def _parse_reference(section: Mapping[str, Any]) -> dict[str, list[str]]:
    keys = {
        "brands": "brand",
        "channels": "channel",
        "income_categories": "income_category",
        "expense_categories": "expense_category",
    }
    reference = {k: list(v) for k, v in DEFAULT_REFERENCE.items()}
    for toml_key, kind in keys.items():
        names = section.get(toml_key)
        if isinstance(names, list):
            reference[kind] = [str(n).strip() for n in names if str(n).strip()]
    return reference


def load_app_config(config_path: Optional[str] = None) -> AppConfig:
    """
    Load the Fintrack configuration from a TOML file.

    If ``config_path`` is None, ``fintrack_config.toml`` in the current
    directory is used when it exists; otherwise built-in defaults apply.
    An explicitly given path must exist.

    All file paths in the TOML are resolved relative to the directory of
    the TOML file itself.

    Returns
    -------
    AppConfig
        Parsed and validated application configuration.
    """
    if config_path is None:
        config_file = Path(DEFAULT_CONFIG_FILE).resolve()
        raw = _load_toml(config_file) if config_file.is_file() else {}
    else:
        config_file = Path(config_path).resolve()
        raw = _load_toml(config_file)

    base_dir = config_file.parent

    # 1) Database section
    database_section = _section(raw, "database")
    db_engine = str(database_section.get("engine") or "sqlite")
    db_path_raw = database_section.get("path") or "data/fintrack.sqlite"
    db_path = (base_dir / str(db_path_raw)).resolve()

    # 2) Reporting options
    reporting = _parse_reporting(_section(raw, "reporting"))

    # 3) Display options
    display_section = _section(raw, "display")
    try:
        decimals = int(display_section.get("decimals", 0))
    except (TypeError, ValueError):
        decimals = 0

    # 4) Reference lists
    reference = _parse_reference(_section(raw, "reference"))

    return AppConfig(
        database=DatabaseConfig(engine=db_engine, path=db_path),
        reporting=reporting,
        decimals=decimals,
        reference=reference,
    )
