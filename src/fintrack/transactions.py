# Fintrack - Small-business bookkeeping ledger & brand profitability reports
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Transaction model and tabular I/O for Fintrack.

This module defines the single entity handled by the accounting engine,
the ``Transaction`` record, together with helpers to move transactions in
and out of pandas DataFrames and CSV files.

Transaction
-----------
A transaction is a dated money movement, either an ``income`` or an
``expense``. Beyond the core fields (date, category, amount), each row
carries attribution and recognition metadata:

- ``scope``           : "global" (company-wide), "brand" (one brand) or
                        "join" (shared cost allocated across brands),
- ``brand``           : brand name, required when scope="brand",
- ``join_targets``    : brands eligible for a share of a join cost
                        (empty means every brand),
- ``channel``         : sales channel tag (income only, informational),
- ``revenue_mode``    : "accrual" (earned, cash not received yet) or
                        "actual" (cash received), income only,
- ``amortize_months`` : spread an expense evenly over N monthly periods in
                        accrual reports,
- ``amortize_start``  : first monthly period (defaults to ``date``).

Amounts are held as ``decimal.Decimal`` so that sums and monthly divisions
do not drift the way binary floats do.

CSV format
----------
Required columns (case-insensitive):

    date, type, category, amount

Optional columns:

    id, scope, brand, join_targets, channel, revenue_mode,
    amortize_months, amortize_start, description, input_by

``join_targets`` is a ``;``-separated list of brand names. The camelCase
names used by older exports (``revenueMode``, ``amortizeMonths``,
``amortizeStart``, ``joinTargets``, ``inputBy``) are accepted as aliases.
"""

import os
import uuid
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Literal, Optional, Union

import pandas as pd

from .periods import parse_timestamp

TxType = Literal["income", "expense"]
Scope = Literal["global", "brand", "join"]
RevenueMode = Literal["accrual", "actual"]

TX_TYPES: tuple[str, ...] = ("income", "expense")
SCOPES: tuple[str, ...] = ("global", "brand", "join")
REVENUE_MODES: tuple[str, ...] = ("accrual", "actual")

FRAME_COLUMNS = [
    "id",
    "date",
    "type",
    "category",
    "description",
    "amount",
    "scope",
    "brand",
    "join_targets",
    "channel",
    "revenue_mode",
    "amortize_months",
    "amortize_start",
    "input_by",
]

_COLUMN_ALIASES = {
    "revenuemode": "revenue_mode",
    "amortizemonths": "amortize_months",
    "amortizestart": "amortize_start",
    "jointargets": "join_targets",
    "inputby": "input_by",
    "label": "description",
}


def to_decimal(value: Any) -> Decimal:
    """
    Convert a numeric-like value to ``Decimal``.

    Floats go through ``str()`` so that ``0.1`` becomes ``Decimal("0.1")``
    rather than its binary expansion.

    Raises
    ------
    ValueError
        If the value cannot be interpreted as a number.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid amount: {value!r}")
    if isinstance(value, int):
        return Decimal(value)
    try:
        result = Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as exc:
        raise ValueError(f"Invalid amount: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid amount: {value!r}")
    return result


def new_transaction_id() -> str:
    """Return a fresh opaque transaction identifier."""
    return uuid.uuid4().hex[:16]


@dataclass(frozen=True)
class Transaction:
    """
    A dated income or expense row.

    Instances are immutable: editing a transaction means replacing it with
    a new instance carrying the same ``id`` (see ``dataclasses.replace``).

    ``amount`` is normalized to ``Decimal`` and ``join_targets`` to a tuple
    on construction. Unknown ``type``/``scope``/``revenue_mode`` values and
    negative amounts raise ``ValueError``. ``date`` and ``amortize_start``
    are kept as the ISO strings they were given in, but must parse as points
    in time: a malformed value raises ``ValueError`` here rather than later
    in a report.
    """

    id: str
    date: str
    type: TxType
    category: str
    amount: Decimal
    scope: Scope = "global"
    brand: Optional[str] = None
    join_targets: tuple[str, ...] = field(default_factory=tuple)
    channel: Optional[str] = None
    revenue_mode: Optional[RevenueMode] = None
    amortize_months: Optional[int] = None
    amortize_start: Optional[str] = None
    description: Optional[str] = None
    input_by: Optional[str] = None

    def __post_init__(self) -> None:
        if self.type not in TX_TYPES:
            raise ValueError(
                f"Invalid transaction type {self.type!r}, expected one of {TX_TYPES}."
            )
        if self.scope not in SCOPES:
            raise ValueError(
                f"Invalid transaction scope {self.scope!r}, expected one of {SCOPES}."
            )
        if self.revenue_mode is not None and self.revenue_mode not in REVENUE_MODES:
            raise ValueError(
                f"Invalid revenue mode {self.revenue_mode!r}, "
                f"expected one of {REVENUE_MODES}."
            )

        amount = to_decimal(self.amount)
        if amount < 0:
            raise ValueError(f"Transaction amount cannot be negative: {amount}")
        object.__setattr__(self, "amount", amount)

        targets = self.join_targets or ()
        if isinstance(targets, str):
            targets = _split_targets(targets)
        object.__setattr__(self, "join_targets", tuple(targets))

        parse_timestamp(self.date)
        if self.amortize_start is not None:
            parse_timestamp(self.amortize_start)

    @property
    def schedule_months(self) -> Optional[int]:
        """
        Number of amortization months, or None when the row is not amortized.

        Only expenses with a positive integer ``amortize_months`` are
        amortized. Zero, negative or fractional values are tolerated (legacy
        data) and simply mean "no amortization".
        """
        if self.type != "expense":
            return None
        months = self.amortize_months
        if months is None or isinstance(months, bool):
            return None
        if isinstance(months, float):
            if not months.is_integer():
                return None
            months = int(months)
        if not isinstance(months, int) or months <= 0:
            return None
        return months

    @property
    def recognizes_cash(self) -> bool:
        """True unless this is revenue recognized before cash was received."""
        return self.revenue_mode != "accrual"


# ---------------------------------------------------------------------------
# Mapping / DataFrame conversion
# ---------------------------------------------------------------------------


def _split_targets(raw: Any) -> tuple[str, ...]:
    if raw is None:
        return ()
    if isinstance(raw, (list, tuple, set, frozenset)):
        items = [str(x) for x in raw]
    else:
        items = str(raw).split(";")
    return tuple(s.strip() for s in items if s and s.strip())


def _clean(value: Any) -> Optional[str]:
    """Return a stripped string, or None for empty / NaN values."""
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    s = str(value).strip()
    return s or None


def _normalize_key(key: Any) -> str:
    k = str(key).strip().lower()
    return _COLUMN_ALIASES.get(k.replace("_", ""), k)


def _lower_or_none(value: Any) -> Optional[str]:
    s = _clean(value)
    return s.lower() if s else None


def _parse_months(value: Any) -> Optional[int]:
    """Parse an amortization duration; unreadable values mean no schedule."""
    s = _clean(value)
    if s is None:
        return None
    try:
        number = float(s)
    except ValueError:
        return None
    if not number.is_integer():
        return None
    return int(number)


def transaction_from_mapping(data: Mapping[str, Any]) -> Transaction:
    """
    Build a Transaction from a loosely typed mapping (CSV row, JSON object).

    Keys are matched case-insensitively; camelCase aliases are accepted.
    A missing ``id`` gets a freshly generated identifier and a missing
    ``scope`` defaults to "global" (or "brand" when a brand is given).

    Raises
    ------
    ValueError
        If a required field (date, type, category, amount) is missing or
        one of the enumerated fields holds an unknown value.
    """
    norm: dict[str, Any] = {}
    for key, value in data.items():
        norm[_normalize_key(key)] = value

    missing = [
        c for c in ("date", "type", "category", "amount") if _clean(norm.get(c)) is None
    ]
    if missing:
        raise ValueError(
            f"Transaction is missing required field(s): {', '.join(missing)}"
        )

    brand = _clean(norm.get("brand"))
    targets_raw = norm.get("join_targets")
    if not isinstance(targets_raw, (list, tuple, set, frozenset)):
        targets_raw = _clean(targets_raw)
    scope = _clean(norm.get("scope"))
    if scope is None:
        scope = "brand" if brand else "global"

    return Transaction(
        id=_clean(norm.get("id")) or new_transaction_id(),
        date=str(_clean(norm["date"])),
        type=str(_clean(norm["type"])).lower(),  # type: ignore[arg-type]
        category=str(_clean(norm["category"])),
        amount=to_decimal(_clean(norm["amount"])),
        scope=scope.lower(),  # type: ignore[arg-type]
        brand=brand,
        join_targets=_split_targets(targets_raw),
        channel=_clean(norm.get("channel")),
        revenue_mode=_lower_or_none(norm.get("revenue_mode")),  # type: ignore[arg-type]
        amortize_months=_parse_months(norm.get("amortize_months")),
        amortize_start=_clean(norm.get("amortize_start")),
        description=_clean(norm.get("description")),
        input_by=_clean(norm.get("input_by")),
    )


def transactions_from_frame(df: pd.DataFrame) -> list[Transaction]:
    """Convert every row of a DataFrame into a Transaction, in order."""
    return [transaction_from_mapping(row) for row in df.to_dict(orient="records")]


def transactions_to_frame(transactions: Iterable[Transaction]) -> pd.DataFrame:
    """
    Convert transactions to a DataFrame with the ``FRAME_COLUMNS`` layout.

    ``amount`` is exported as float for display and CSV export;
    ``join_targets`` as a ``;``-joined string.
    """
    rows = []
    for t in transactions:
        rows.append(
            {
                "id": t.id,
                "date": t.date,
                "type": t.type,
                "category": t.category,
                "description": t.description,
                "amount": float(t.amount),
                "scope": t.scope,
                "brand": t.brand,
                "join_targets": ";".join(t.join_targets),
                "channel": t.channel,
                "revenue_mode": t.revenue_mode,
                "amortize_months": t.amortize_months,
                "amortize_start": t.amortize_start,
                "input_by": t.input_by,
            }
        )
    return pd.DataFrame(rows, columns=FRAME_COLUMNS)


def read_transactions(path: Union[str, "os.PathLike[str]"]) -> list[Transaction]:
    """
    Read transactions from a CSV file.

    All cells are read as strings and converted by
    ``transaction_from_mapping`` so that amounts keep their exact decimal
    representation.

    Raises
    ------
    ValueError
        If the required columns are missing or a row cannot be converted.
        The error message carries the 1-based CSV line number.
    """
    df = pd.read_csv(path, dtype=str, keep_default_na=False)

    cols = {_normalize_key(c) for c in df.columns}
    required = {"date", "type", "category", "amount"}
    if not required.issubset(cols):
        missing = ", ".join(sorted(required - cols))
        raise ValueError(
            f"Invalid transactions CSV structure, missing column(s): {missing}. "
            "Expected at least: date, type, category, amount."
        )

    out: list[Transaction] = []
    for idx, row in enumerate(df.to_dict(orient="records")):
        try:
            out.append(transaction_from_mapping(row))
        except ValueError as exc:
            # +2: header line and 1-based numbering
            raise ValueError(f"Invalid transaction on line {idx + 2}: {exc}") from exc
    return out
