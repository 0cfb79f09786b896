"""
Time and reporting-period utilities.

Key concepts:
  - All wall-clock reads go through ``utcnow()`` so callers (and tests) can
    pass a fixed ``datetime`` instead.
  - Reporting periods are calendar quarters: Q1 = Jan–Mar, Q2 = Apr–Jun,
    Q3 = Jul–Sep, Q4 = Oct–Dec.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime, timezone


@dataclass(frozen=True)
class ReportingPeriod:
    """Calendar quarter a snapshot is reported against."""

    year: int
    quarter: int    # 1..4

    @property
    def label(self) -> str:
        """Composite label, e.g. ``"2026Q4"``."""
        return f"{self.year}Q{self.quarter}"


def quarter_of_month(month: int) -> int:
    """Return the calendar quarter (1–4) for a month number (1–12).

    Raises:
        ValueError: If ``month`` is outside 1..12.
    """
    if not 1 <= month <= 12:
        raise ValueError(f"month must be in 1..12, got {month}.")
    return math.ceil(month / 3)


def to_utc(moment: datetime) -> datetime:
    """Convert an aware datetime to UTC; naive datetimes are assumed UTC already."""
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc)


def reporting_period(moment: datetime) -> ReportingPeriod:
    """Return the UTC :class:`ReportingPeriod` containing ``moment``."""
    moment = to_utc(moment)
    return ReportingPeriod(year=moment.year, quarter=quarter_of_month(moment.month))


def isoformat_utc(moment: datetime) -> str:
    """Format a datetime as ISO-8601 UTC with millisecond precision.

    Naive datetimes are assumed to already be UTC.

    Example::

        isoformat_utc(datetime(2026, 10, 17, 8, 5, 3, 120000, tzinfo=timezone.utc))
        # → "2026-10-17T08:05:03.120Z"
    """
    moment = to_utc(moment)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def epoch_millis(moment: datetime) -> int:
    """Milliseconds since the Unix epoch (used as a cache-busting token)."""
    return int(moment.timestamp() * 1000)


def utcnow() -> datetime:
    """Return the current UTC datetime with timezone info.

    Prefer this over ``datetime.utcnow()`` (which returns naive datetimes).
    """
    return datetime.now(tz=timezone.utc)
