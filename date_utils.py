"""
Date parsing and calendar boundary helpers.

All instants handled by the budget tracker are naive ``datetime`` objects
interpreted as local wall-clock time. ISO-8601 strings carrying a UTC offset
keep their wall-clock fields and drop the offset; no timezone conversion is
ever applied, so every period boundary is computed with the same calendar
semantics.
"""

import calendar
import logging
from datetime import date, datetime, time, timedelta
from typing import Union

from dateutil.parser import isoparse
from dateutil.relativedelta import relativedelta

from exceptions import InvalidDateError

logger = logging.getLogger(__name__)

DateLike = Union[str, date, datetime]

END_OF_DAY = datetime.max.time()


def parse_instant(value: DateLike) -> datetime:
    """
    Normalize an ISO-8601 date or date-time into a naive instant.

    Args:
        value: ISO-8601 string, ``date`` or ``datetime``.

    Returns:
        Naive ``datetime``. Plain dates map to midnight.

    Raises:
        InvalidDateError: If the value is not a date or does not parse.
    """
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if not isinstance(value, str):
        raise InvalidDateError(
            "Expected an ISO-8601 date string",
            details={"value": repr(value), "type": type(value).__name__}
        )

    text = value.strip()
    if not text:
        raise InvalidDateError("Empty date string", details={"value": repr(value)})
    try:
        parsed = isoparse(text)
    except (ValueError, OverflowError) as exc:
        raise InvalidDateError(
            f"Invalid ISO-8601 date: {value!r}",
            details={"value": value},
            original_error=exc
        ) from exc
    return parsed.replace(tzinfo=None)


def start_of_day(instant: datetime) -> datetime:
    return datetime.combine(instant.date(), time.min)


def end_of_day(instant: datetime) -> datetime:
    return datetime.combine(instant.date(), END_OF_DAY)


def start_of_week(instant: datetime) -> datetime:
    """Return Monday 00:00 of the ISO week containing ``instant``."""
    # weekday() is Monday=0 .. Sunday=6, so Sunday closes its week
    monday = instant.date() - timedelta(days=instant.weekday())
    return datetime.combine(monday, time.min)


def end_of_week(instant: datetime) -> datetime:
    """Return Sunday 23:59:59.999999 of the ISO week containing ``instant``."""
    sunday = instant.date() + timedelta(days=6 - instant.weekday())
    return datetime.combine(sunday, END_OF_DAY)


def start_of_month(instant: datetime) -> datetime:
    return datetime(instant.year, instant.month, 1)


def end_of_month(instant: datetime) -> datetime:
    last_day = calendar.monthrange(instant.year, instant.month)[1]
    return datetime.combine(date(instant.year, instant.month, last_day), END_OF_DAY)


def start_of_year(instant: datetime) -> datetime:
    return datetime(instant.year, 1, 1)


def end_of_year(instant: datetime) -> datetime:
    return datetime.combine(date(instant.year, 12, 31), END_OF_DAY)


def add_months(instant: datetime, months: int) -> datetime:
    """
    Step ``instant`` by calendar months.

    A day-of-month missing from the target month is clamped to that month's
    last day (Jan 31 + 1 month -> Feb 28/29).
    """
    return instant + relativedelta(months=months)


def add_years(instant: datetime, years: int) -> datetime:
    """Step ``instant`` by calendar years, clamping Feb 29 to Feb 28."""
    return instant + relativedelta(years=years)


def months_between(earlier: datetime, later: datetime) -> int:
    """Number of whole calendar-month boundaries from ``earlier`` to ``later``."""
    return (later.year - earlier.year) * 12 + (later.month - earlier.month)


def parse_window_end(value: DateLike) -> datetime:
    """
    Normalize the inclusive end of a reporting window.

    A plain date (a ``date`` object or an ISO string with no time part)
    covers that whole day and resolves to its last instant; anything
    carrying a time is taken as given.

    Raises:
        InvalidDateError: If the value is not a date or does not parse.
    """
    instant = parse_instant(value)
    if isinstance(value, datetime):
        return instant
    if isinstance(value, date) or ("T" not in value.strip() and " " not in value.strip()):
        return end_of_day(instant)
    return instant
