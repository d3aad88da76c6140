"""
Datetime helpers: timezone-aware "now" values and business-day arithmetic.
"""
from __future__ import annotations

from datetime import UTC, date, datetime, timedelta

import pytz

DEFAULT_TIMEZONE = "America/Santiago"


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def local_now(tz_name: str = DEFAULT_TIMEZONE) -> datetime:
    """Current time in the business timezone."""
    return datetime.now(pytz.timezone(tz_name))


def local_today(tz_name: str = DEFAULT_TIMEZONE) -> date:
    """Current calendar date in the business timezone."""
    return local_now(tz_name).date()


def next_weekdays(start: date, count: int = 3) -> list[date]:
    """
    Return the next `count` weekdays strictly after `start` (Saturday/Sunday skipped).

    Args:
        start: Reference date (not included in the result)
        count: Number of weekdays to return

    Returns:
        List of dates in ascending order
    """
    days: list[date] = []
    current = start
    while len(days) < count:
        current = current + timedelta(days=1)
        if current.weekday() < 5:
            days.append(current)
    return days

