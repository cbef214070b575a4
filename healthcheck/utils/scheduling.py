"""Calendar helpers for doctor availability."""

from datetime import date, timedelta
from typing import List

WEEKDAY_NAMES = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


def weekday_name(day: date) -> str:
    """Lower-case English weekday name, independent of the process locale."""
    return WEEKDAY_NAMES[day.weekday()]


def upcoming_days(start: date, count: int = 7) -> List[date]:
    """The ``count`` consecutive days beginning at ``start`` (the booking window)."""
    return [start + timedelta(days=offset) for offset in range(count)]
