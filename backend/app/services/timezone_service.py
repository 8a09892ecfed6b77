"""
Centralized week and timezone handling for the studio.

Rules:
- All storage: UTC
- All comparisons: UTC
- Week boundaries: Monday 00:00 in the studio timezone
- Week keys: the Monday's calendar date (YYYY-MM-DD)

Everything here is a pure function of its inputs; nothing reads the store.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

import pytz

from ..core.config import settings
from ..core.constants import DEFAULT_STUDIO_TIMEZONE
from ..core.timezone_utils import ensure_utc, utc_now


class TimezoneService:
    """Maps instants onto the studio's Monday-anchored weeks."""

    DEFAULT_TIMEZONE = DEFAULT_STUDIO_TIMEZONE

    @staticmethod
    def get_timezone(tz_str: Optional[str]) -> pytz.BaseTzInfo:
        """
        Get timezone object.

        Unknown names fall back to the configured studio timezone, and a bad
        configured value falls back to the built-in default.
        """
        for candidate in (tz_str, settings.studio_timezone):
            if not candidate:
                continue
            try:
                return pytz.timezone(candidate)
            except pytz.UnknownTimeZoneError:
                continue
        return pytz.timezone(TimezoneService.DEFAULT_TIMEZONE)

    @staticmethod
    def to_studio_time(instant: datetime, tz_str: Optional[str] = None) -> datetime:
        """Convert an instant (naive values are UTC) to studio local time."""
        aware = ensure_utc(instant)
        assert aware is not None
        return aware.astimezone(TimezoneService.get_timezone(tz_str))

    @staticmethod
    def week_start_for(instant: datetime, tz_str: Optional[str] = None) -> date:
        """
        Monday of the week ``instant`` falls in, as seen in ``tz_str``.

        An instant late on Sunday UTC can already be Monday in the studio,
        so the conversion happens before the weekday arithmetic.
        """
        local_day = TimezoneService.to_studio_time(instant, tz_str).date()
        return local_day - timedelta(days=local_day.weekday())

    @staticmethod
    def next_week_start_for(instant: datetime, tz_str: Optional[str] = None) -> date:
        return TimezoneService.week_start_for(instant, tz_str) + timedelta(days=7)

    @staticmethod
    def current_week_start(tz_str: Optional[str] = None, now: Optional[datetime] = None) -> date:
        return TimezoneService.week_start_for(now or utc_now(), tz_str)

    @staticmethod
    def week_start_instant(week_start: date, tz_str: Optional[str] = None) -> datetime:
        """UTC instant of Monday 00:00 local time for the given week key."""
        tz = TimezoneService.get_timezone(tz_str)
        local_midnight = tz.localize(datetime.combine(week_start, time.min))
        return local_midnight.astimezone(timezone.utc)

    @staticmethod
    def hours_until(target: datetime, now: Optional[datetime] = None) -> float:
        target_utc = ensure_utc(target)
        assert target_utc is not None
        return (target_utc - (now or utc_now())).total_seconds() / 3600.0
