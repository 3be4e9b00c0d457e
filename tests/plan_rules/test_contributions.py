from datetime import date

import pytest

from auto_enrolment.config.plan_rules import ContributionConfig, ContributionStep
from auto_enrolment.plan_rules.contributions import (
    calculate_contributions,
    escalation_step,
    phase_year_for,
    project_contributions,
    summarise_contributions,
    years_in_scheme,
)


def test_default_phase_is_fully_escalated(make_record):
    b = calculate_contributions(make_record(gross_pay=5000.0))
    assert b.phase_year == 4
    # 60,000 annual -> 40,000 qualifying -> 3,333.33 per month
    assert b.pensionable_pay == pytest.approx(40000 / 12)
    assert b.employee_amount == pytest.approx(200.0)
    assert b.employer_amount == pytest.approx(200.0)
    assert b.state_amount == pytest.approx(40000 / 12 * 0.02)
    assert b.total == pytest.approx(b.employee_amount + b.employer_amount + b.state_amount)


def test_phase_one_rates(make_record):
    b = calculate_contributions(make_record(gross_pay=5000.0), phase_year=1)
    assert (b.employee_rate, b.employer_rate, b.state_rate) == (0.015, 0.015, 0.005)
    assert b.employee_amount == pytest.approx(50.0)


@pytest.mark.parametrize("phase_year", [5, 10, 40])
def test_years_beyond_schedule_use_last_entry(make_record, phase_year):
    last = calculate_contributions(make_record(), phase_year=4)
    beyond = calculate_contributions(make_record(), phase_year=phase_year)
    assert (beyond.employee_rate, beyond.employer_rate, beyond.state_rate) == (
        last.employee_rate,
        last.employer_rate,
        last.state_rate,
    )
    assert beyond.total == pytest.approx(last.total)


def test_schedule_lookup_gaps_and_lower_bound():
    cfg = ContributionConfig(
        schedule=(
            ContributionStep(year=2, employee_rate=0.01, employer_rate=0.01, state_rate=0.0),
            ContributionStep(year=5, employee_rate=0.05, employer_rate=0.05, state_rate=0.01),
        )
    )
    assert escalation_step(1, cfg).year == 2
    assert escalation_step(4, cfg).year == 2
    assert escalation_step(5, cfg).year == 5
    assert escalation_step(9, cfg).year == 5


def test_qualifying_earnings_capped_at_upper_threshold(make_record):
    b = calculate_contributions(make_record(gross_pay=10000.0), phase_year=4)
    assert b.pensionable_pay == pytest.approx(60000 / 12)


@pytest.mark.parametrize("gross_pay", [1000.0, 0.0, -10.0])
def test_no_contributions_below_lower_threshold(make_record, gross_pay):
    b = calculate_contributions(make_record(gross_pay=gross_pay))
    assert b.pensionable_pay == 0.0
    assert b.total == 0.0


def test_weekly_pay_per_period(make_record):
    b = calculate_contributions(make_record(gross_pay=1000.0, pay_frequency="weekly"), phase_year=4)
    assert b.pensionable_pay == pytest.approx((52000 - 20000) / 52)


def test_rounded_total_is_sum_of_rounded_components(make_record):
    b = calculate_contributions(make_record(gross_pay=4321.0), phase_year=3).rounded()
    for amount in (b.employee_amount, b.employer_amount, b.state_amount, b.total):
        assert round(amount, 2) == amount
    assert b.total == pytest.approx(b.employee_amount + b.employer_amount + b.state_amount, abs=1e-9)


def test_rounding_happens_only_on_request(make_record):
    b = calculate_contributions(make_record(gross_pay=5000.0))
    assert b.state_amount != round(b.state_amount, 2)
    assert b.rounded().state_amount == 66.67


def test_years_in_scheme_and_phase():
    assert years_in_scheme(date(2024, 1, 15), date(2025, 1, 14)) == 0
    assert years_in_scheme(date(2024, 1, 15), date(2025, 1, 15)) == 1
    assert years_in_scheme(date(2025, 1, 15), date(2024, 1, 15)) == 0
    assert phase_year_for(date(2024, 1, 15), date(2025, 6, 30)) == 2
    assert phase_year_for(None, date(2025, 6, 30)) == 4


def test_project_contributions(make_record):
    df = project_contributions(make_record(gross_pay=5000.0), years=6)
    assert list(df["phase_year"]) == [1, 2, 3, 4, 5, 6]
    assert df["total_contribution"].is_monotonic_increasing
    assert df["total_contribution"].iloc[4] == pytest.approx(df["total_contribution"].iloc[3])
    # annual amounts at phase 4: 40,000 * 14%
    assert df["total_contribution"].iloc[3] == pytest.approx(5600.0)
    assert df["cumulative_total"].iloc[-1] == pytest.approx(df["total_contribution"].sum())


def test_summarise_contributions(make_record):
    b = calculate_contributions(make_record(gross_pay=5000.0))
    totals = summarise_contributions([b, b])
    assert totals["employees"] == 2
    assert totals["employee_contribution"] == 400.0
    assert totals["total_contribution"] == pytest.approx(
        totals["employee_contribution"] + totals["employer_contribution"] + totals["state_contribution"]
    )
    assert summarise_contributions([])["total_contribution"] == 0.0
