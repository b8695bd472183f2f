"""Date manipulation utilities"""

from datetime import date, datetime
from typing import Optional
from zoneinfo import ZoneInfo


def months_remaining_in_year(hire_date: Optional[date], reference_year: int) -> int:
    """
    Months of benefit eligibility in reference_year, hire month included.

    Hired before the reference year -> 12; hired in it -> 13 - month;
    hired after it -> 0. A missing hire date counts as the start of the year.
    """
    if hire_date is None or hire_date.year < reference_year:
        return 12
    if hire_date.year > reference_year:
        return 0
    return 13 - hire_date.month


def to_local(moment: datetime, tz_name: str) -> datetime:
    """Convert an aware datetime to the given zone"""
    return moment.astimezone(ZoneInfo(tz_name))


def is_weekend(day: date) -> bool:
    return day.weekday() >= 5  # Saturday=5, Sunday=6
