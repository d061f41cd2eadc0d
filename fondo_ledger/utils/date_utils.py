"""Date manipulation utilities"""

import calendar
from datetime import date, datetime


def add_months(from_date: date, months: int) -> date:
    """
    Calendar month arithmetic.

    Keeps the day of month when the target month has it, otherwise clamps to
    the target month's last day (Jan 31 + 1 month -> Feb 28/29).
    """
    month_index = from_date.month - 1 + months
    year = from_date.year + month_index // 12
    month = month_index % 12 + 1
    day = min(from_date.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def days_between(start: date, end: date) -> int:
    """Whole days from start to end; negative when end is earlier"""
    return (as_date(end) - as_date(start)).days


def months_between(start: date, end: date) -> int:
    """Completed calendar months from start to end, never negative"""
    start, end = as_date(start), as_date(end)
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if end.day < start.day:
        months -= 1
    return max(0, months)


def as_date(value: date) -> date:
    return value.date() if isinstance(value, datetime) else value
