"""Datetime utilities with consistent UTC timezone handling.

This module provides centralized datetime functions to ensure all datetime
operations in the Olive Lifecycle Platform are timezone-aware and use UTC
consistently. Calendar keys used by the analytics buckets are derived from
the UTC date of a timestamp.
"""

from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union


def now_utc() -> datetime:
    """Return current datetime in UTC timezone.

    Returns:
        Current datetime with timezone=UTC
    """
    return datetime.now(timezone.utc)


def ensure_aware(dt: Optional[datetime]) -> Optional[datetime]:
    """Ensure datetime is timezone-aware, assuming UTC if naive.

    Args:
        dt: Datetime to check/convert, or None

    Returns:
        Timezone-aware datetime in UTC, or None if input was None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        # Naive datetime - assume UTC
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def parse_iso(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse an ISO 8601 string (``Z`` suffix accepted) into an aware datetime.

    Args:
        value: ISO string, datetime, or None

    Returns:
        Timezone-aware datetime in UTC, or None for empty input

    Raises:
        ValueError: If the string is not a valid ISO timestamp
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_aware(value)
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return ensure_aware(datetime.fromisoformat(text))


def to_iso_string(dt: Optional[datetime]) -> Optional[str]:
    """Convert datetime to ISO string with timezone info.

    Args:
        dt: Datetime to convert, or None

    Returns:
        ISO format string with timezone, or None if input was None
    """
    if dt is None:
        return None

    aware_dt = ensure_aware(dt)
    return aware_dt.isoformat()


def start_of_day(day: Union[date, datetime]) -> datetime:
    """Return 00:00:00 UTC of the given calendar day."""
    if isinstance(day, datetime):
        day = ensure_aware(day).date()
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)


def end_of_day(day: Union[date, datetime]) -> datetime:
    """Return the last microsecond of the given calendar day in UTC."""
    return start_of_day(day) + timedelta(days=1) - timedelta(microseconds=1)


def day_key(dt: datetime) -> str:
    """UTC calendar day of ``dt`` as ``YYYY-MM-DD``."""
    return ensure_aware(dt).date().isoformat()


def month_key(dt: datetime) -> str:
    """UTC calendar month of ``dt`` as ``YYYY-MM``."""
    aware = ensure_aware(dt)
    return f"{aware.year:04d}-{aware.month:02d}"


def week_start_key(day: str) -> str:
    """Return the Sunday that starts the week containing ``day``.

    Args:
        day: Calendar day as ``YYYY-MM-DD``

    Returns:
        The week's Sunday as ``YYYY-MM-DD``
    """
    parsed = date.fromisoformat(day)
    # weekday(): Monday=0 .. Sunday=6
    offset = (parsed.weekday() + 1) % 7
    return (parsed - timedelta(days=offset)).isoformat()
