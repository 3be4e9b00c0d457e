import pytest

from auto_enrolment.config.plan_rules import PlanRules, ValidationConfig
from auto_enrolment.utils.status_enums import RiskBand, Severity
from auto_enrolment.validation.results import RuleResult
from auto_enrolment.validation.risk import (
    band_risk,
    score_issues,
    summaries_frame,
    summarise_population,
    summarize_record,
    tally_severities,
)


@pytest.mark.parametrize(
    "score,band",
    [
        (0, RiskBand.LOW),
        (2, RiskBand.LOW),
        (3, RiskBand.MEDIUM),
        (7, RiskBand.MEDIUM),
        (8, RiskBand.HIGH),
        (11, RiskBand.HIGH),
        (12, RiskBand.CRITICAL),
        (40, RiskBand.CRITICAL),
    ],
)
def test_band_boundaries(score, band):
    assert band_risk(score) is band


def test_custom_band_thresholds():
    assert band_risk(2, {"critical": 4, "high": 2, "medium": 1}) is RiskBand.HIGH


def test_score_and_tally():
    issues = [
        RuleResult("a", "a", Severity.CRITICAL),
        RuleResult("b", "b", Severity.HIGH),
        RuleResult("c", "c", Severity.WARNING),
        RuleResult("d", "d", Severity.INFO),
    ]
    assert score_issues(issues) == 9
    assert tally_severities(issues) == {"critical": 1, "high": 1, "warning": 1, "info": 1}
    assert tally_severities([]) == {"critical": 0, "high": 0, "warning": 0, "info": 0}


def test_clean_record_scores_low(make_record, as_of):
    summary = summarize_record(make_record(), as_of)
    assert summary.issues == ()
    assert summary.eligible is True
    assert summary.risk_score == 0
    assert summary.risk_band is RiskBand.LOW
    assert summary.has_critical is False


def test_critical_finding_and_ineligibility_add_up(make_record, as_of):
    summary = summarize_record(make_record(gross_pay=-10.0), as_of)
    assert [i.code for i in summary.issues] == ["non_positive_pay"]
    assert summary.eligible is False
    # 5 for the critical finding plus the ineligibility penalty
    assert summary.risk_score == 7
    assert summary.risk_band is RiskBand.MEDIUM
    assert summary.has_critical is True


def test_ineligibility_penalty_is_configurable(make_record, as_of):
    rules = PlanRules(validation=ValidationConfig(ineligible_risk_points=0))
    assert summarize_record(make_record(age=70), as_of, rules).risk_score == 0


def test_summary_carries_sanitised_record(make_record, as_of):
    summary = summarize_record(make_record(employee_id="E0\x0001"), as_of)
    assert summary.employee_id == "E001"
    assert summary.severity_tally["info"] == 1


def test_summary_uses_requested_phase(make_record, as_of):
    summary = summarize_record(make_record(gross_pay=5000.0), as_of, phase_year=1)
    assert summary.contribution.phase_year == 1


def test_summaries_frame(make_record, as_of):
    summaries = [
        summarize_record(make_record(), as_of),
        summarize_record(make_record(employee_id="E002", pay_frequency="quarterly"), as_of),
    ]
    df = summaries_frame(summaries)
    assert list(df["employee_id"]) == ["E001", "E002"]
    assert df.loc[1, "issue_codes"] == "invalid_frequency"
    assert df.loc[1, "critical"] == 1


def test_summarise_population(make_record, as_of):
    summaries = [
        summarize_record(make_record(), as_of),
        summarize_record(make_record(employee_id="E002"), as_of),
        summarize_record(make_record(employee_id="E003", gross_pay=-10.0), as_of),
    ]
    rollup = summarise_population(summaries)
    assert list(rollup.index) == ["low", "medium", "high", "critical"]
    assert rollup.loc["low", "employees"] == 2
    assert rollup.loc["medium", "employees"] == 1
    assert rollup.loc["medium", "critical"] == 1
    assert rollup.loc["medium", "mean_risk_score"] == pytest.approx(7.0)
    assert rollup.loc["critical", "employees"] == 0


def test_summarise_empty_population():
    rollup = summarise_population([])
    assert list(rollup.index) == ["low", "medium", "high", "critical"]
    assert rollup["employees"].sum() == 0
