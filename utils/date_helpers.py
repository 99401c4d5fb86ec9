"""Date and time utility functions.

All datetimes handled by the engine are naive UTC; anything timezone-aware
is converted on the way in.
"""
import calendar
from datetime import date, datetime, timedelta
from typing import Any, Optional

import pytz


def utc_now() -> datetime:
    """
    Get current UTC datetime (naive).

    Returns:
        Current UTC datetime without tzinfo
    """
    return datetime.now(pytz.UTC).replace(tzinfo=None)


def to_naive_utc(dt: datetime) -> datetime:
    """
    Normalize a datetime to naive UTC.

    Args:
        dt: Datetime to convert (assumed UTC if naive)

    Returns:
        Naive datetime in UTC
    """
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(pytz.UTC).replace(tzinfo=None)


def parse_datetime(value: Any) -> Optional[datetime]:
    """
    Parse a datetime from an ISO-8601 string, date or datetime.

    Args:
        value: Raw value from a request payload

    Returns:
        Naive UTC datetime, or None if the value cannot be parsed
    """
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        return to_naive_utc(value)

    if isinstance(value, date):
        return datetime.combine(value, datetime.min.time())

    if not isinstance(value, str):
        return None

    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"

    try:
        return to_naive_utc(datetime.fromisoformat(text))
    except ValueError:
        return None


def add_months(start: datetime, months: int) -> datetime:
    """
    Add calendar months, clamping the day to the target month's length.

    2024-01-31 + 1 month is 2024-02-29; 2024-01-15 + 3 months is 2024-04-15.

    Args:
        start: Starting datetime
        months: Number of months to add

    Returns:
        Shifted datetime (time of day preserved)
    """
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    day = min(start.day, calendar.monthrange(year, month)[1])
    return start.replace(year=year, month=month, day=day)


def add_years(start: datetime, years: int) -> datetime:
    """
    Add calendar years; Feb 29 falls back to Feb 28 in non-leap years.

    Args:
        start: Starting datetime
        years: Number of years to add

    Returns:
        Shifted datetime
    """
    return add_months(start, years * 12)


def add_weeks(start: datetime, weeks: int) -> datetime:
    """
    Add fixed 7 x 24 hour weeks.

    Args:
        start: Starting datetime
        weeks: Number of weeks to add

    Returns:
        Shifted datetime
    """
    return start + timedelta(hours=weeks * 7 * 24)


def is_within_window(
    target: datetime,
    window: timedelta,
    now: Optional[datetime] = None
) -> bool:
    """
    Check whether target falls within [now, now + window].

    Args:
        target: Datetime to check
        window: Forward-looking window size
        now: Reference time (default: current UTC)

    Returns:
        True if target is not in the past and not beyond the window
    """
    now = now or utc_now()
    target = to_naive_utc(target)
    return now <= target <= now + window


def isoformat_or_none(dt: Optional[datetime]) -> Optional[str]:
    """Serialize a naive UTC datetime as ISO-8601 with a Z suffix."""
    if dt is None:
        return None
    return to_naive_utc(dt).isoformat() + "Z"
