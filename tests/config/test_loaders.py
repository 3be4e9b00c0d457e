from datetime import date
from pathlib import Path

import pytest
from pydantic import ValidationError

from auto_enrolment.config.loaders import ConfigLoadError, load_plan_rules, load_yaml_config, plan_rules_from_dict
from auto_enrolment.config.plan_rules import (
    ContributionConfig,
    ContributionStep,
    EarningsBand,
    EligibilityConfig,
    PlanRules,
    StagingConfig,
)
from auto_enrolment.utils.status_enums import StagingFrequency

SAMPLE_CONFIG = Path(__file__).parent.parent.parent / "config" / "plan_rules.yaml"


def test_sample_config_matches_defaults():
    rules = load_plan_rules(SAMPLE_CONFIG)
    defaults = PlanRules()
    assert rules.staging.frequency is StagingFrequency.QUARTERLY
    assert rules.staging.days_of_month == (1,)
    assert rules.staging.effective_from == date(2025, 1, 1)
    assert rules.eligibility == defaults.eligibility
    assert rules.earnings == defaults.earnings
    assert rules.contributions == defaults.contributions
    assert rules.opt_out == defaults.opt_out
    assert rules.variable_earnings == defaults.variable_earnings


def test_partial_config_keeps_defaults():
    rules = plan_rules_from_dict({"eligibility": {"min_age": 18}})
    assert rules.eligibility.min_age == 18
    assert rules.eligibility.max_age == 60
    assert rules.staging is None


def test_dates_alias_for_staging_days():
    rules = plan_rules_from_dict({"staging": {"frequency": "monthly", "dates": [15, 1]}})
    assert rules.staging.days_of_month == (1, 15)


@pytest.mark.parametrize(
    "raw",
    [
        {"staging": {"frequency": "quarterly", "days_of_month": [32]}},
        {"staging": {"frequency": "fortnightly"}},
        {"eligibility": {"min_age": "twenty"}},
        {"surprise": True},
        {"earnings": {"lower_threshold": 50000, "upper_threshold": 10000}},
    ],
)
def test_invalid_config_raises(raw):
    with pytest.raises(ConfigLoadError):
        plan_rules_from_dict(raw)


def test_missing_file(tmp_path):
    with pytest.raises(ConfigLoadError):
        load_yaml_config(tmp_path / "missing.yaml")


def test_non_mapping_yaml(tmp_path):
    path = tmp_path / "list.yaml"
    path.write_text("- 1\n- 2\n")
    with pytest.raises(ConfigLoadError):
        load_yaml_config(path)


def test_empty_yaml_gives_defaults(tmp_path):
    path = tmp_path / "empty.yaml"
    path.write_text("")
    assert load_plan_rules(path) == PlanRules()


def test_contribution_rates_may_not_decrease():
    with pytest.raises(ValidationError):
        ContributionConfig(
            schedule=(
                ContributionStep(year=1, employee_rate=0.03, employer_rate=0.03, state_rate=0.01),
                ContributionStep(year=2, employee_rate=0.02, employer_rate=0.03, state_rate=0.01),
            )
        )


def test_schedule_years_strictly_increase():
    step = ContributionStep(year=1, employee_rate=0.01, employer_rate=0.01, state_rate=0.0)
    with pytest.raises(ValidationError):
        ContributionConfig(schedule=(step, step))


def test_inverted_bands_are_rejected():
    with pytest.raises(ValidationError):
        EarningsBand(lower_threshold=80000, upper_threshold=20000)
    with pytest.raises(ValidationError):
        EligibilityConfig(min_age=60, max_age=23)


def test_models_are_frozen():
    with pytest.raises(ValidationError):
        EligibilityConfig().min_age = 18
    with pytest.raises(ValidationError):
        StagingConfig().frequency = StagingFrequency.MONTHLY


def test_variable_earnings_thresholds_must_be_ordered():
    with pytest.raises(ConfigLoadError, match="minimum_months"):
        plan_rules_from_dict({"variable_earnings": {"minimum_months": 8}})


def test_unknown_variable_earnings_key_is_rejected():
    with pytest.raises(ConfigLoadError, match="Config validation failed"):
        plan_rules_from_dict({"variable_earnings": {"lookback": 6}})
