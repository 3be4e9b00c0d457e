from datetime import date

import pytest
from pydantic import ValidationError

from auto_enrolment.config.plan_rules import DEFAULT_STAGING_CONFIG, StagingConfig
from auto_enrolment.exceptions import ConfigurationError
from auto_enrolment.plan_rules.staging import (
    build_staging_config,
    next_staging_date,
    resolve_staging_config,
    select_staging_config,
    staging_dates_for_year,
    validate_staging_config,
)


def test_default_config_is_quarterly_day_one():
    assert resolve_staging_config(None) is DEFAULT_STAGING_CONFIG
    result = next_staging_date(None, date(2025, 3, 15))
    assert result.date == date(2025, 4, 1)
    assert result.days_until == 17
    assert result.following == date(2025, 7, 1)


def test_reference_on_staging_date_moves_to_next(quarterly):
    assert next_staging_date(quarterly, date(2025, 4, 1)).date == date(2025, 7, 1)


def test_rolls_into_next_year(quarterly):
    result = next_staging_date(quarterly, date(2025, 10, 1))
    assert result.date == date(2026, 1, 1)
    assert result.following == date(2026, 4, 1)


def test_day_beyond_month_length_is_clamped():
    cfg = StagingConfig(frequency="monthly", days_of_month=[31])
    result = next_staging_date(cfg, date(2025, 1, 31))
    assert result.date == date(2025, 2, 28)
    assert result.following == date(2025, 3, 31)
    assert next_staging_date(cfg, date(2024, 1, 31)).date == date(2024, 2, 29)


def test_multiple_days_of_month():
    cfg = StagingConfig(frequency="monthly", days_of_month=[15, 1])
    assert cfg.days_of_month == (1, 15)
    result = next_staging_date(cfg, date(2025, 1, 1))
    assert result.date == date(2025, 1, 15)
    assert result.following == date(2025, 2, 1)


def test_bi_annual_and_annual_anchors():
    bi_annual = StagingConfig(frequency="bi-annual", days_of_month=[1])
    assert next_staging_date(bi_annual, date(2025, 2, 1)).date == date(2025, 7, 1)
    assert next_staging_date(bi_annual, date(2025, 7, 1)).date == date(2026, 1, 1)

    annual = StagingConfig(frequency="annual", days_of_month=[1])
    result = next_staging_date(annual, date(2025, 1, 1))
    assert result.date == date(2026, 1, 1)
    assert result.following == date(2027, 1, 1)


@pytest.mark.parametrize("frequency", ["monthly", "quarterly", "bi-annual", "annual"])
@pytest.mark.parametrize(
    "reference",
    [date(2024, 2, 29), date(2025, 1, 1), date(2025, 6, 30), date(2025, 12, 31), date(2025, 12, 1)],
)
def test_reapplying_to_result_yields_following(frequency, reference):
    cfg = StagingConfig(frequency=frequency, days_of_month=[1, 31])
    result = next_staging_date(cfg, reference)
    assert result.date > reference
    assert result.following > result.date
    assert next_staging_date(cfg, result.date).date == result.following


def test_staging_dates_for_year():
    cfg = StagingConfig(frequency="quarterly", days_of_month=[1, 15])
    dates = staging_dates_for_year(2025, cfg)
    assert dates == [
        date(2025, 1, 1), date(2025, 1, 15),
        date(2025, 4, 1), date(2025, 4, 15),
        date(2025, 7, 1), date(2025, 7, 15),
        date(2025, 10, 1), date(2025, 10, 15),
    ]
    assert len(staging_dates_for_year(2025, None)) == 4


def test_validate_reports_every_problem():
    errors = validate_staging_config({"frequency": None, "days_of_month": []})
    assert errors == ["Frequency is required", "At least one date is required"]


def test_validate_day_range_and_effective_dates():
    errors = validate_staging_config(
        {
            "frequency": "quarterly",
            "days_of_month": [0, 15, 32],
            "effective_from": date(2025, 6, 1),
            "effective_to": date(2025, 1, 1),
        }
    )
    assert "Invalid day of month: 0. Must be 1-31" in errors
    assert "Invalid day of month: 32. Must be 1-31" in errors
    assert "Effective to date must be after effective from date" in errors
    assert len(errors) == 3


def test_validate_accepts_good_config(quarterly):
    assert validate_staging_config({"frequency": "monthly", "dates": [1, 15]}) == []
    assert validate_staging_config(quarterly) == []


def test_model_refuses_invalid_values():
    with pytest.raises(ValidationError):
        StagingConfig(frequency="quarterly", days_of_month=[32])
    with pytest.raises(ValidationError):
        StagingConfig(frequency="weekly", days_of_month=[1])


def test_build_staging_config():
    cfg = build_staging_config({"frequency": "monthly", "dates": [15, 1]})
    assert cfg.days_of_month == (1, 15)

    with pytest.raises(ConfigurationError) as excinfo:
        build_staging_config({"frequency": "quarterly", "days_of_month": []})
    assert excinfo.value.errors == ["At least one date is required"]


def test_select_staging_config():
    old = StagingConfig(frequency="quarterly", days_of_month=[1], effective_from=date(2025, 1, 1),
                        effective_to=date(2026, 1, 1))
    new = StagingConfig(frequency="monthly", days_of_month=[1], effective_from=date(2025, 7, 1))

    assert select_staging_config([old, new], date(2025, 3, 1)) is old
    assert select_staging_config([old, new], date(2025, 8, 1)) is new
    assert select_staging_config([old], date(2026, 1, 1)) is None
    assert select_staging_config([old, new], date(2024, 12, 31)) is None
