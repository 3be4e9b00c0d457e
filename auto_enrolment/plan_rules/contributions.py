# auto_enrolment/plan_rules/contributions.py
"""
Contribution calculation under the escalation schedule.

Amounts are per pay period and stay unrounded; ``ContributionBreakdown.rounded``
produces the two-decimal form used for reporting.
"""

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Dict, Iterable, Optional

import numpy as np
import pandas as pd

from auto_enrolment.config.plan_rules import ContributionConfig, ContributionStep, EarningsBand
from auto_enrolment.plan_rules.eligibility import annualise_pay, pay_periods_per_year
from auto_enrolment.schema.records import PayrollRecord
from auto_enrolment.utils.columns import (
    ANNUALISED_PAY,
    EMP_CONTR,
    EMP_ID,
    EMPLOYER_CONTR,
    PENSIONABLE_PAY,
    PHASE_YEAR,
    STATE_CONTR,
    TOTAL_CONTR,
)
from auto_enrolment.utils.date_utils import full_years_between
from auto_enrolment.utils.decimal_helpers import to_money

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContributionBreakdown:
    """Per-period contribution amounts for one employee."""

    pensionable_pay: float
    employee_amount: float
    employer_amount: float
    state_amount: float
    total: float
    phase_year: int
    employee_rate: float
    employer_rate: float
    state_rate: float

    def rounded(self) -> "ContributionBreakdown":
        """
        Two-decimal reporting form.

        Components are rounded half-up individually and ``total`` is their
        exact sum, so a report never shows a total that differs from its parts.
        """
        employee = to_money(self.employee_amount)
        employer = to_money(self.employer_amount)
        state = to_money(self.state_amount)
        return replace(
            self,
            pensionable_pay=float(to_money(self.pensionable_pay)),
            employee_amount=float(employee),
            employer_amount=float(employer),
            state_amount=float(state),
            total=float(employee + employer + state),
        )


def escalation_step(phase_year: int, cfg: Optional[ContributionConfig] = None) -> ContributionStep:
    """
    Schedule entry applying in ``phase_year``.

    The latest entry at or below ``phase_year`` wins, so years past the end of
    the schedule keep the final rates; a year below the first entry uses it.
    """
    cfg = cfg or ContributionConfig()
    applicable = [step for step in cfg.schedule if step.year <= phase_year]
    if not applicable:
        return cfg.schedule[0]
    return applicable[-1]


def qualifying_earnings(annual_pay: float, earnings: EarningsBand) -> float:
    """Annual pay inside the band: clamp(pay, 0, upper) - lower, floored at zero."""
    capped = min(max(annual_pay, 0.0), earnings.upper_threshold)
    return max(0.0, capped - earnings.lower_threshold)


def calculate_contributions(
    record: PayrollRecord,
    phase_year: Optional[int] = None,
    cfg: Optional[ContributionConfig] = None,
    earnings: Optional[EarningsBand] = None,
) -> ContributionBreakdown:
    """
    Calculate per-period contributions for one record.

    Args:
        record: Payroll record supplying gross pay and pay frequency.
        phase_year: Scheme year (1-based); None uses ``cfg.default_phase_year``.
        cfg: Escalation schedule.
        earnings: Qualifying earnings band.
    """
    cfg = cfg or ContributionConfig()
    earnings = earnings or EarningsBand()
    if phase_year is None:
        phase_year = cfg.default_phase_year

    step = escalation_step(phase_year, cfg)
    periods = pay_periods_per_year(record.pay_frequency)
    annual_pay = annualise_pay(record.gross_pay, record.pay_frequency)
    if np.isnan(annual_pay):
        annual_pay = 0.0
    pensionable = qualifying_earnings(annual_pay, earnings) / periods

    employee = pensionable * step.employee_rate
    employer = pensionable * step.employer_rate
    state = pensionable * step.state_rate
    return ContributionBreakdown(
        pensionable_pay=pensionable,
        employee_amount=employee,
        employer_amount=employer,
        state_amount=state,
        total=employee + employer + state,
        phase_year=phase_year,
        employee_rate=step.employee_rate,
        employer_rate=step.employer_rate,
        state_rate=step.state_rate,
    )


def years_in_scheme(enrolment_date: date, as_of: date) -> int:
    """Completed scheme anniversaries (zero before the first, never negative)."""
    return max(0, full_years_between(enrolment_date, as_of))


def phase_year_for(enrolment_date: Optional[date], as_of: date, cfg: Optional[ContributionConfig] = None) -> int:
    """Scheme year in force on ``as_of``; without an enrolment date the configured default applies."""
    if enrolment_date is None:
        return (cfg or ContributionConfig()).default_phase_year
    return years_in_scheme(enrolment_date, as_of) + 1


def project_contributions(
    record: PayrollRecord,
    years: int,
    cfg: Optional[ContributionConfig] = None,
    earnings: Optional[EarningsBand] = None,
    start_phase_year: int = 1,
) -> pd.DataFrame:
    """
    Annual contribution projection over ``years`` scheme years at constant pay.

    Amounts are annual (per-period amount times periods) and unrounded.
    """
    periods = pay_periods_per_year(record.pay_frequency)
    rows = []
    for offset in range(years):
        phase = start_phase_year + offset
        b = calculate_contributions(record, phase, cfg, earnings)
        rows.append(
            {
                EMP_ID: record.employee_id,
                PHASE_YEAR: phase,
                PENSIONABLE_PAY: b.pensionable_pay * periods,
                EMP_CONTR: b.employee_amount * periods,
                EMPLOYER_CONTR: b.employer_amount * periods,
                STATE_CONTR: b.state_amount * periods,
                TOTAL_CONTR: b.total * periods,
            }
        )
    columns = [EMP_ID, PHASE_YEAR, PENSIONABLE_PAY, EMP_CONTR, EMPLOYER_CONTR, STATE_CONTR, TOTAL_CONTR]
    df = pd.DataFrame(rows, columns=columns)
    if not df.empty:
        df["cumulative_total"] = df[TOTAL_CONTR].cumsum()
    return df


def summarise_contributions(breakdowns: Iterable[ContributionBreakdown]) -> Dict[str, float]:
    """Population totals of per-period amounts, rounded for reporting."""
    items = list(breakdowns)
    if not items:
        return {
            "employees": 0,
            PENSIONABLE_PAY: 0.0,
            EMP_CONTR: 0.0,
            EMPLOYER_CONTR: 0.0,
            STATE_CONTR: 0.0,
            TOTAL_CONTR: 0.0,
        }
    amounts = np.array(
        [[b.pensionable_pay, b.employee_amount, b.employer_amount, b.state_amount] for b in items]
    )
    pensionable, employee, employer, state = amounts.sum(axis=0)
    employee_m, employer_m, state_m = to_money(employee), to_money(employer), to_money(state)
    return {
        "employees": len(items),
        PENSIONABLE_PAY: float(to_money(pensionable)),
        EMP_CONTR: float(employee_m),
        EMPLOYER_CONTR: float(employer_m),
        STATE_CONTR: float(state_m),
        TOTAL_CONTR: float(employee_m + employer_m + state_m),
    }


def contribution_row(record: PayrollRecord, breakdown: ContributionBreakdown) -> Dict[str, object]:
    """Flatten a breakdown into the rounded column layout used by result frames."""
    r = breakdown.rounded()
    return {
        EMP_ID: record.employee_id,
        ANNUALISED_PAY: annualise_pay(record.gross_pay, record.pay_frequency),
        PHASE_YEAR: r.phase_year,
        PENSIONABLE_PAY: r.pensionable_pay,
        EMP_CONTR: r.employee_amount,
        EMPLOYER_CONTR: r.employer_amount,
        STATE_CONTR: r.state_amount,
        TOTAL_CONTR: r.total,
    }
