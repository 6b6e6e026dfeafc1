"""
Date/Time Handling Utilities

Calendar-day rules (streaks, distinct study days, early/late completions)
are evaluated in a single configured timezone:
- Timestamps are stored and passed around as aware UTC datetimes
- Calendar days and hours are read after converting to the configured timezone
- Naive datetimes are assumed to be UTC
"""

import logging
from datetime import datetime, date
from typing import Optional, Union
from zoneinfo import ZoneInfo

from src.config import DEFAULT_TIMEZONE

logger = logging.getLogger(__name__)


def get_timezone(tz: Optional[Union[str, ZoneInfo]] = None) -> ZoneInfo:
    """
    Resolve a timezone name (or pass through a ZoneInfo)

    Falls back to DEFAULT_TIMEZONE when tz is None.
    """
    if isinstance(tz, ZoneInfo):
        return tz
    return ZoneInfo(tz or DEFAULT_TIMEZONE)


def now_utc() -> datetime:
    """
    Get current datetime in UTC (timezone-aware)

    Returns:
        Current datetime in UTC with timezone info
    """
    return datetime.now(ZoneInfo("UTC"))


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure datetime is in UTC

    Args:
        dt: Datetime (can be None, naive, or aware)

    Returns:
        Datetime in UTC, or None if input was None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        # Assume UTC for naive datetimes
        logger.debug(f"Received naive datetime, assuming UTC: {dt}")
        return dt.replace(tzinfo=ZoneInfo("UTC"))

    return dt.astimezone(ZoneInfo("UTC"))


def to_local(dt: datetime, tz: Optional[Union[str, ZoneInfo]] = None) -> datetime:
    """Convert a datetime into the calendar timezone"""
    return ensure_utc(dt).astimezone(get_timezone(tz))


def to_local_date(
    value: Union[date, datetime],
    tz: Optional[Union[str, ZoneInfo]] = None
) -> date:
    """
    Calendar date of a timestamp in the calendar timezone

    Plain dates are returned unchanged.
    """
    if isinstance(value, datetime):
        return to_local(value, tz).date()
    return value


def today_local(tz: Optional[Union[str, ZoneInfo]] = None) -> date:
    """Today's date in the calendar timezone"""
    return to_local(now_utc(), tz).date()


def days_between(
    earlier: Union[date, datetime],
    later: Union[date, datetime],
    tz: Optional[Union[str, ZoneInfo]] = None
) -> int:
    """
    Whole calendar days from `earlier` to `later`

    Negative when `later` falls on an earlier calendar day (clock skew).
    """
    return (to_local_date(later, tz) - to_local_date(earlier, tz)).days
