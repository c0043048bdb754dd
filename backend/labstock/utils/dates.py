from __future__ import annotations

import calendar
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalise a timestamp read back from the store to an aware UTC datetime.

    SQLite drops tzinfo on ``DateTime(timezone=True)`` columns; values are
    always written in UTC, so a naive value is UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def subtract_months(base: datetime, months: int) -> datetime:
    """
    Move a timestamp back by a number of calendar months.

    The day is clamped to the last valid day of the target month, so
    31 May minus 3 months is 28/29 February.
    """
    if months <= 0:
        return base
    index = base.year * 12 + (base.month - 1) - months
    year, month = divmod(index, 12)
    month += 1
    day = min(base.day, calendar.monthrange(year, month)[1])
    return base.replace(year=year, month=month, day=day)


def month_key(value: datetime) -> str:
    """Calendar month bucket key, ``YYYY-MM``."""
    return f"{value.year:04d}-{value.month:02d}"
