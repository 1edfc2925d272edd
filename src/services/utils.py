"""
Shared calendar-date utilities for cycle services.

The engine works exclusively with datetime.date values. Anything carrying a
time of day or a timezone is converted here, at the boundary, by taking the
calendar date in UTC.
"""
import math
from typing import Iterator, Union
from datetime import date, datetime, timedelta, timezone

DateLike = Union[date, datetime, str]

def to_calendar_date(value: DateLike) -> date:
    """
    Normalize a date, datetime or ISO 8601 string to a calendar date.

    Aware datetimes are converted to UTC before the date is taken; naive
    datetimes are assumed to already be in UTC.

    Args:
        value: Date-like value to normalize

    Returns:
        Calendar date with no time component

    Raises:
        ValueError: If the value cannot be interpreted as a date

    Example:
        >>> to_calendar_date("2025-01-02")
        datetime.date(2025, 1, 2)
        >>> to_calendar_date("2025-01-01T23:30:00-05:00")
        datetime.date(2025, 1, 2)
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("Empty date string")
        if len(text) == 10:
            return date.fromisoformat(text)
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return to_calendar_date(datetime.fromisoformat(text))
    raise ValueError(f"Unsupported date value: {value!r}")

def iter_dates(start_date: date, end_date: date) -> Iterator[date]:
    """
    Yield every calendar date from start_date to end_date, both included.

    Yields nothing when start_date is after end_date.
    """
    current = start_date
    while current <= end_date:
        yield current
        if current == end_date:
            return
        current += timedelta(days=1)

def days_between(start_date: date, end_date: date) -> int:
    """Number of days from start_date to end_date, counting both ends."""
    return (end_date - start_date).days + 1

def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves rounded up (29.5 -> 30)."""
    return int(math.floor(value + 0.5))
