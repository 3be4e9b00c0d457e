from datetime import date, datetime
from decimal import Decimal

import pandas as pd
import pytest

from auto_enrolment.utils.date_utils import (
    add_months,
    add_years,
    calculate_age,
    clamp_day,
    days_between,
    full_years_between,
    to_date,
)
from auto_enrolment.utils.decimal_helpers import to_money
from auto_enrolment.utils.status_enums import StagingFrequency


@pytest.mark.parametrize(
    "year,month,day,expected",
    [
        (2024, 2, 31, date(2024, 2, 29)),
        (2025, 2, 31, date(2025, 2, 28)),
        (2025, 4, 31, date(2025, 4, 30)),
        (2025, 1, 15, date(2025, 1, 15)),
    ],
)
def test_clamp_day(year, month, day, expected):
    assert clamp_day(year, month, day) == expected


def test_add_months_clamps_to_month_end():
    assert add_months(date(2024, 8, 31), 6) == date(2025, 2, 28)
    assert add_months(date(2023, 8, 31), 6) == date(2024, 2, 29)


def test_add_months_does_not_mutate_input():
    start = date(2025, 3, 15)
    add_months(start, 6)
    assert start == date(2025, 3, 15)


def test_add_years_leap_day():
    assert add_years(date(2024, 2, 29), 3) == date(2027, 2, 28)
    assert add_years(date(2024, 1, 15), 3) == date(2027, 1, 15)


def test_full_years_between():
    assert full_years_between(date(2023, 6, 1), date(2025, 5, 31)) == 1
    assert full_years_between(date(2023, 6, 1), date(2025, 6, 1)) == 2


def test_days_between_is_signed():
    assert days_between(date(2025, 1, 1), date(2025, 1, 31)) == 30
    assert days_between(date(2025, 1, 31), date(2025, 1, 1)) == -30


def test_to_date_normalises_values():
    assert to_date(datetime(2025, 7, 15, 23, 59)) == date(2025, 7, 15)
    assert to_date(pd.Timestamp("2025-07-15 08:00")) == date(2025, 7, 15)
    assert to_date("2025-07-15") == date(2025, 7, 15)
    assert to_date(pd.NaT) is None
    assert to_date("") is None
    assert to_date("not a date") is None


def test_calculate_age_scalar_and_series():
    assert calculate_age(date(1990, 7, 1), date(2025, 6, 30)) == 34
    assert calculate_age(date(1990, 6, 30), date(2025, 6, 30)) == 35
    assert calculate_age(None, date(2025, 6, 30)) is None

    ages = calculate_age(pd.Series([date(1990, 7, 1), None]), date(2025, 6, 30))
    assert str(ages.dtype) == "Int64"
    assert ages.iloc[0] == 34
    assert pd.isna(ages.iloc[1])


def test_calculate_age_rejects_bad_reference_date():
    with pytest.raises(ValueError):
        calculate_age(date(1990, 1, 1), "garbage")


def test_to_money_rounds_half_up():
    assert to_money(2.675) == Decimal("2.68")
    assert to_money(1.005) == Decimal("1.01")
    assert to_money(Decimal("0.125")) == Decimal("0.13")


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("quarterly", StagingFrequency.QUARTERLY),
        ("BI_ANNUALLY", StagingFrequency.BI_ANNUAL),
        ("bi-annual", StagingFrequency.BI_ANNUAL),
        ("ANNUALLY", StagingFrequency.ANNUAL),
        ("Monthly", StagingFrequency.MONTHLY),
    ],
)
def test_staging_frequency_aliases(raw, expected):
    assert StagingFrequency(raw) is expected


def test_staging_frequency_rejects_unknown():
    with pytest.raises(ValueError):
        StagingFrequency("fortnightly")
