"""
Timezone utilities for the booking engine.

All instants are stored and compared in UTC. SQLite hands back naive
datetimes, so values read from the store go through ``ensure_utc`` before
any arithmetic.
"""

import calendar
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Return the current timezone-aware UTC instant."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime to aware UTC.

    Naive values are treated as already being UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def add_months(value: datetime, months: int) -> datetime:
    """Shift ``value`` by whole months, clamping to the last day of the month."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def from_epoch_seconds(value: Optional[int]) -> Optional[datetime]:
    """Convert a provider epoch timestamp to aware UTC."""
    if value is None:
        return None
    return datetime.fromtimestamp(int(value), tz=timezone.utc)
