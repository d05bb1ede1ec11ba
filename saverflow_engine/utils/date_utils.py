"""Date manipulation utilities"""

from datetime import date, datetime, time, timedelta
from typing import Union

DateLike = Union[date, datetime]


def as_datetime(value: DateLike) -> datetime:
    """Promote a date to midnight; datetimes pass through"""
    if isinstance(value, datetime):
        return value
    return datetime.combine(value, time.min)


def as_date(value: DateLike) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def days_between(later: DateLike, earlier: DateLike) -> int:
    """
    Whole days from earlier to later, truncated toward zero.

    Mixing dates and datetimes is allowed; a bare date counts as midnight.
    """
    delta = as_datetime(later) - as_datetime(earlier)
    return int(delta.total_seconds() / 86400)


def start_of_week(value: date) -> date:
    """Monday of the week containing value"""
    return value - timedelta(days=value.weekday())
