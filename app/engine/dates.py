# app/engine/dates.py
"""
Calendar-day interval helpers.

Every date in the booking domain is a whole calendar day with no time of
day. Ranges are closed: both the start and the end day belong to the trip.
"""
from datetime import date, datetime
from typing import Union

from app.core.exceptions import InvalidRange

DateLike = Union[date, datetime, str]


def as_day(value: DateLike) -> date:
    """Normalize a date, datetime or ``YYYY-MM-DD`` string to a ``date``."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            raise InvalidRange(f"Invalid date '{value}', expected YYYY-MM-DD")
    raise InvalidRange(f"Unsupported date value: {value!r}")


def ensure_range(start: DateLike, end: DateLike) -> tuple[date, date]:
    start_day, end_day = as_day(start), as_day(end)
    if end_day < start_day:
        raise InvalidRange("End date must be on or after start date")
    return start_day, end_day


def day_count(start: DateLike, end: DateLike) -> int:
    """Inclusive number of days, so a same-day trip is 1 day."""
    start_day, end_day = ensure_range(start, end)
    return (end_day - start_day).days + 1


def overlaps(a_start: DateLike, a_end: DateLike, b_start: DateLike, b_end: DateLike) -> bool:
    """Closed-interval overlap; a single shared day counts as a conflict."""
    return as_day(a_start) <= as_day(b_end) and as_day(b_start) <= as_day(a_end)


def today() -> date:
    return date.today()
