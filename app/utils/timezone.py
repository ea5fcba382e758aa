"""
Timezone utilities for the tournament API.

All times are stored as naive UTC and converted to Indochina Time for
display, which is what the dashboard audience reads.

Indochina Time (Asia/Bangkok):
- ICT: UTC+7 all year, no daylight saving time
"""
from datetime import datetime, timedelta, timezone, UTC
from typing import Optional

from app.core.config import settings

DISPLAY_FORMAT = "%Y-%m-%d %H:%M:%S"


def display_offset() -> timedelta:
    """Fixed display offset from UTC (UTC+7 unless configured otherwise)."""
    return timedelta(hours=settings.DISPLAY_UTC_OFFSET_HOURS)


def utc_to_display(utc_datetime: Optional[datetime]) -> Optional[datetime]:
    """
    Convert a UTC datetime to display time.

    Args:
        utc_datetime: UTC datetime (naive or timezone-aware)

    Returns:
        Display-time datetime as naive datetime (for JSON serialization)

    Example:
        >>> utc_to_display(datetime(2024, 3, 1, 20, 30))
        datetime.datetime(2024, 3, 2, 3, 30)
    """
    if utc_datetime is None:
        return None

    # Ensure input is UTC before dropping tzinfo
    if utc_datetime.tzinfo is not None:
        utc_datetime = utc_datetime.astimezone(timezone.utc).replace(tzinfo=None)

    return utc_datetime + display_offset()


def format_display_time(utc_datetime: Optional[datetime], format_str: str = DISPLAY_FORMAT) -> Optional[str]:
    """
    Format a UTC datetime in display time.

    Example:
        >>> format_display_time(datetime(2024, 1, 1, 0, 0))
        '2024-01-01 07:00:00'
    """
    display = utc_to_display(utc_datetime)
    if display is None:
        return None
    return display.strftime(format_str)


def utc_now() -> datetime:
    """Current time as naive UTC (the storage convention)."""
    return datetime.now(UTC).replace(tzinfo=None)
