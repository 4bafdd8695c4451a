"""
Calendar arithmetic for phasekit.

All functions work on calendar dates. ``datetime`` values are normalized to
their date first, so the time of day never leaks into day counts.
"""

from datetime import date, datetime, timedelta
from typing import Iterable, Iterator, Set, Union

from dateutil.relativedelta import relativedelta

from phasekit.models.project import Holiday

DateLike = Union[date, datetime]


def normalize_to_midnight(value: DateLike) -> date:
    """Return the calendar date of ``value``.

    Idempotent: ``normalize_to_midnight(normalize_to_midnight(d)) == normalize_to_midnight(d)``.
    """
    if isinstance(value, datetime):
        return value.date()
    return value


def add_days(value: DateLike, days: int) -> date:
    """Add ``days`` (possibly negative) calendar days."""
    return normalize_to_midnight(value) + timedelta(days=days)


def day_difference(start: DateLike, end: DateLike) -> int:
    """Whole days from ``start`` to ``end`` (``end - start``, sign preserved)."""
    return (normalize_to_midnight(end) - normalize_to_midnight(start)).days


def day_of_week(value: DateLike) -> int:
    """Weekday with 0 = Sunday through 6 = Saturday."""
    return (normalize_to_midnight(value).weekday() + 1) % 7


def days_in_month(year: int, month: int) -> int:
    """Number of days in the given month."""
    first_of_next = date(year, month, 1) + relativedelta(months=1)
    return (first_of_next - timedelta(days=1)).day


def add_months(value: DateLike, months: int) -> date:
    """Add calendar months, clamping the day to the target month's length."""
    return normalize_to_midnight(value) + relativedelta(months=months)


def expand_holidays(holidays: Iterable[Union[Holiday, date]]) -> Set[date]:
    """Expand holiday ranges into the set of dates they cover."""
    days: Set[date] = set()
    for holiday in holidays:
        if isinstance(holiday, date):
            days.add(normalize_to_midnight(holiday))
            continue
        days.update(date_range(holiday.start_date, holiday.end_date))
    return days


def is_business_day(value: DateLike, holidays: Iterable[Union[Holiday, date]] = ()) -> bool:
    """True for Monday to Friday dates that are not holidays."""
    day = normalize_to_midnight(value)
    if day.weekday() >= 5:
        return False
    holiday_days = holidays if isinstance(holidays, (set, frozenset)) else expand_holidays(holidays)
    return day not in holiday_days


def add_business_days(
    value: DateLike, days: int, holidays: Iterable[Union[Holiday, date]] = ()
) -> date:
    """Move ``days`` business days forwards (or backwards when negative)."""
    holiday_days = expand_holidays(holidays)
    current = normalize_to_midnight(value)
    step = 1 if days >= 0 else -1
    remaining = abs(days)
    while remaining > 0:
        current += timedelta(days=step)
        if is_business_day(current, holiday_days):
            remaining -= 1
    return current


def date_range(start: DateLike, end: DateLike) -> Iterator[date]:
    """Yield every date from ``start`` to ``end`` inclusive."""
    current = normalize_to_midnight(start)
    last = normalize_to_midnight(end)
    while current <= last:
        yield current
        current += timedelta(days=1)


def is_date_in_range(value: DateLike, start: DateLike, end: DateLike) -> bool:
    """True when ``start <= value <= end`` (inclusive, by calendar date)."""
    return normalize_to_midnight(start) <= normalize_to_midnight(value) <= normalize_to_midnight(end)
