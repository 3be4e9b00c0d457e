# auto_enrolment/utils/date_utils.py

"""Date utility functions for enrolment date arithmetic.

All helpers return new ``datetime.date`` values and never mutate their
inputs. Anything time-of-day is discarded, so comparisons are always
between calendar days.
"""

import calendar
from datetime import date, datetime
from typing import Any, Optional, Union

import pandas as pd  # type: ignore[import-untyped]
from dateutil.relativedelta import relativedelta

DateLike = Union[date, datetime, pd.Timestamp, str]


def to_date(value: Any) -> Optional[date]:
    """
    Coerce a date-like value to a midnight-normalised ``date``.

    Returns None for None, NaT, empty strings and values pandas cannot parse.
    """
    if value is None or value is pd.NaT:
        return None
    if isinstance(value, pd.Timestamp):
        return None if pd.isna(value) else value.date()
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and not value.strip():
        return None
    parsed = pd.to_datetime(value, errors="coerce")
    if pd.isna(parsed):
        return None
    return parsed.date()


def clamp_day(year: int, month: int, day: int) -> date:
    """Build a date, capping ``day`` at the last valid day of the month (31 Feb -> 28/29 Feb)."""
    _, last_day_of_month = calendar.monthrange(year, month)
    return date(year, month, min(day, last_day_of_month))


def add_months(value: date, months: int) -> date:
    """Add calendar months; a day past the target month's end lands on its last day."""
    return value + relativedelta(months=months)


def add_years(value: date, years: int) -> date:
    """Add calendar years; 29 Feb maps to 28 Feb in non-leap years."""
    return value + relativedelta(years=years)


def full_years_between(start: date, end: date) -> int:
    """Completed years from ``start`` to ``end`` (negative if ``end`` precedes ``start``)."""
    return relativedelta(end, start).years


def days_between(start: date, end: date) -> int:
    """Signed number of days from ``start`` to ``end``."""
    return (end - start).days


def calculate_age(
    birth_date: Union[pd.Series, DateLike, None],
    current_date: DateLike,
) -> Union[pd.Series, Optional[int]]:
    """
    Calculate age in completed years based on birth_date and current_date.
    - If birth_date is a Series, returns a nullable Int64 Series.
    - If birth_date is scalar, returns an int, or None when it cannot be parsed.
    """
    as_of = to_date(current_date)
    if as_of is None:
        raise ValueError(f"Invalid reference date for age calculation: {current_date!r}")
    if isinstance(birth_date, pd.Series):
        return birth_date.map(lambda bd: calculate_age(bd, as_of)).astype("Int64")
    bd = to_date(birth_date)
    if bd is None:
        return None
    return full_years_between(bd, as_of)
