"""French public holidays and working-day counting."""

from __future__ import annotations

from datetime import date, timedelta
from functools import lru_cache
from typing import FrozenSet

from dateutil.easter import easter

FIXED_HOLIDAYS = (
    (1, 1),    # New Year's Day
    (5, 1),    # Labour Day
    (5, 8),    # Victory in Europe Day
    (7, 14),   # Bastille Day
    (8, 15),   # Assumption
    (11, 1),   # All Saints
    (11, 11),  # Armistice
    (12, 25),  # Christmas
)

# Offsets in days from Easter Sunday.
EASTER_OFFSETS = (
    1,   # Easter Monday
    39,  # Ascension
    50,  # Whit Monday
)


@lru_cache(maxsize=64)
def public_holidays(year: int) -> FrozenSet[date]:
    """All public holidays of a year."""
    days = {date(year, month, day) for month, day in FIXED_HOLIDAYS}
    easter_sunday = easter(year)
    days.update(easter_sunday + timedelta(days=offset) for offset in EASTER_OFFSETS)
    return frozenset(days)


def is_public_holiday(day: date) -> bool:
    return day in public_holidays(day.year)


def count_working_days(start: date, end: date) -> int:
    """
    Weekdays between two dates (both inclusive), excluding public holidays.

    Returns 0 when ``end`` is before ``start``.
    """
    count = 0
    current = start
    while current <= end:
        if current.weekday() < 5 and not is_public_holiday(current):
            count += 1
        current += timedelta(days=1)
    return count
