# Fintrack - Small-business bookkeeping ledger & brand profitability reports
# Copyright (c) 2025 Maxence Bernard (maxencebernardhub)
# Licensed under the MIT License. See LICENSE file for details.

"""
Date range helpers for Fintrack.

This module defines the DateRange value object used by every report and
the inclusive range test (``in_range``) that all calculators rely on. It
also provides helpers to derive reporting ranges (month-to-date,
year-to-date, last month, last 30 days) and the "previous period" used for
growth KPIs.

A DateRange has two independently optional bounds. ``None`` means "no
bound on that side"; there are no sentinel dates. Bounds and transaction
dates are ISO-8601 strings (date or datetime) and are compared as points
in time, so a date-only upper bound such as ``2024-01-31`` stands for
midnight at the start of that day.
"""

import functools
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Optional, Union

import pandas as pd

TimestampLike = Union[str, date, datetime, pd.Timestamp]


@dataclass(frozen=True)
class DateRange:
    """
    Inclusive reporting range with independently optional bounds.

    Attributes
    ----------
    start:
        Lower bound (ISO string), or None for an unbounded past.
    end:
        Upper bound (ISO string), or None for an unbounded future.
    label:
        Optional human-readable label (not part of equality).
    """

    start: Optional[str] = None
    end: Optional[str] = None
    label: str = field(default="", compare=False)

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "DateRange":
        """Build a range from the ``{"from": ..., "to": ...}`` mapping shape."""
        if not data:
            return cls()
        start = data.get("from", data.get("start")) or None
        end = data.get("to", data.get("end")) or None
        return cls(
            start=str(start) if start is not None else None,
            end=str(end) if end is not None else None,
        )

    @property
    def is_unbounded(self) -> bool:
        return self.start is None and self.end is None

    def describe(self) -> str:
        if self.label:
            return self.label
        if self.is_unbounded:
            return "All dates"
        return f"{self.start or '…'} → {self.end or '…'}"


RangeLike = Union[DateRange, Mapping[str, Any], None]


def as_range(value: RangeLike) -> Optional[DateRange]:
    """Normalize a DateRange, a ``{from, to}`` mapping or None."""
    if value is None or isinstance(value, DateRange):
        return value
    return DateRange.from_dict(value)


@functools.lru_cache(maxsize=4096)
def _parse_iso(value: str) -> pd.Timestamp:
    try:
        ts = pd.Timestamp(value.strip())
    except (ValueError, TypeError) as exc:
        raise ValueError(f"Invalid timestamp: {value!r}") from exc
    if pd.isna(ts):
        raise ValueError(f"Invalid timestamp: {value!r}")
    return _naive_utc(ts)


def _naive_utc(ts: pd.Timestamp) -> pd.Timestamp:
    if ts.tzinfo is not None:
        ts = ts.tz_convert("UTC").tz_localize(None)
    return ts


def parse_timestamp(value: TimestampLike) -> pd.Timestamp:
    """
    Parse an ISO-8601 date/datetime (or date-like object) into a Timestamp.

    Timezone-aware values are converted to UTC and returned naive, so that
    naive and aware inputs can be compared.

    Raises
    ------
    ValueError
        If the value cannot be interpreted as a point in time.
    """
    if isinstance(value, str):
        return _parse_iso(value)
    if value is None:
        raise ValueError("Invalid timestamp: None")
    try:
        ts = pd.Timestamp(value)
    except (ValueError, TypeError) as exc:
        raise ValueError(f"Invalid timestamp: {value!r}") from exc
    if pd.isna(ts):
        raise ValueError(f"Invalid timestamp: {value!r}")
    return _naive_utc(ts)


def in_range(timestamp: TimestampLike, date_range: RangeLike = None) -> bool:
    """
    Return True if ``timestamp`` falls inside ``date_range`` (bounds inclusive).

    With no range, or a range without any bound, every timestamp is in
    range. Otherwise ``start <= timestamp <= end`` where a missing bound is
    unbounded on that side.

    Raises
    ------
    ValueError
        If the timestamp or a bound is malformed (even when the other side
        of the comparison would have decided the result).
    """
    rng = as_range(date_range)
    ts = parse_timestamp(timestamp)
    if rng is None or rng.is_unbounded:
        return True
    start = parse_timestamp(rng.start) if rng.start is not None else None
    end = parse_timestamp(rng.end) if rng.end is not None else None
    if start is not None and ts < start:
        return False
    if end is not None and ts > end:
        return False
    return True


def add_months(timestamp: TimestampLike, months: int) -> pd.Timestamp:
    """
    Calendar-month addition: same day-of-month, clamped to the end of a
    shorter target month (Jan 31 + 1 month -> Feb 28/29).
    """
    return parse_timestamp(timestamp) + pd.DateOffset(months=months)


# ---------------------------------------------------------------------------
# Reporting ranges
# ---------------------------------------------------------------------------


def _today() -> date:
    """Return today's date as a date object (isolated for easier testing)."""
    return datetime.today().date()


def _as_date(value: TimestampLike) -> date:
    return parse_timestamp(value).date()


def range_mtd(today: Optional[date] = None) -> DateRange:
    """Month-to-date."""
    today = today or _today()
    return DateRange(
        start=today.replace(day=1).isoformat(),
        end=today.isoformat(),
        label="Month to date",
    )


def range_ytd(today: Optional[date] = None) -> DateRange:
    """Calendar year-to-date."""
    today = today or _today()
    return DateRange(
        start=date(today.year, 1, 1).isoformat(),
        end=today.isoformat(),
        label="Year to date",
    )


def range_last_month(today: Optional[date] = None) -> DateRange:
    """Full previous calendar month."""
    today = today or _today()
    end = today.replace(day=1) - timedelta(days=1)
    start = end.replace(day=1)
    return DateRange(start=start.isoformat(), end=end.isoformat(), label="Last month")


def range_last_30_days(today: Optional[date] = None) -> DateRange:
    """The 30 days ending today (inclusive)."""
    today = today or _today()
    return DateRange(
        start=(today - timedelta(days=29)).isoformat(),
        end=today.isoformat(),
        label="Last 30 days",
    )


def previous_range(
    date_range: RangeLike,
    today: Optional[date] = None,
) -> tuple[DateRange, DateRange]:
    """
    Return ``(current, previous)`` ranges for period-over-period KPIs.

    - With both bounds, ``current`` is the given range and ``previous`` is
      the window of the same length (in calendar days, at least one day)
      that ends the day before ``current.start``.
    - Otherwise, ``current`` is the last 30 days ending today and
      ``previous`` the 30 days before it.
    """
    rng = as_range(date_range)
    if rng is not None and rng.start and rng.end:
        start = _as_date(rng.start)
        end = _as_date(rng.end)
        days = max(1, (end - start).days + 1)
        prev_end = start - timedelta(days=1)
        prev_start = prev_end - timedelta(days=days - 1)
        current = DateRange(start=rng.start, end=rng.end, label=rng.label)
        return current, DateRange(
            start=prev_start.isoformat(),
            end=prev_end.isoformat(),
            label="Previous period",
        )

    current = range_last_30_days(today)
    prev_end = _as_date(current.start) - timedelta(days=1)
    prev_start = prev_end - timedelta(days=29)
    return current, DateRange(
        start=prev_start.isoformat(),
        end=prev_end.isoformat(),
        label="Previous 30 days",
    )


def determine_range_from_args(args) -> DateRange:
    """
    Determine the reporting range from CLI arguments.

    Priority (highest to lowest):

        1. args.from_date / args.to_date (custom range, either side optional)
        2. args.period (mtd, ytd, last-month, last-30-days)
        3. unbounded range by default
    """
    from_raw: Optional[str] = getattr(args, "from_date", None)
    to_raw: Optional[str] = getattr(args, "to_date", None)

    if from_raw or to_raw:
        start = parse_timestamp(from_raw) if from_raw else None
        end = parse_timestamp(to_raw) if to_raw else None
        if start is not None and end is not None and end < start:
            raise ValueError("Custom range end date cannot be before start date.")
        rng = DateRange(start=from_raw or None, end=to_raw or None)
        return DateRange(
            start=rng.start, end=rng.end, label=f"Custom range ({rng.describe()})"
        )

    p = getattr(args, "period", None)
    if p:
        if p == "mtd":
            return range_mtd()
        if p == "ytd":
            return range_ytd()
        if p == "last-month":
            return range_last_month()
        if p == "last-30-days":
            return range_last_30_days()
        raise ValueError(f"Unknown period: {p!r}")

    return DateRange(label="All dates")
