# auto_enrolment/plan_rules/eligibility.py
"""
Eligibility module for deciding whether an employee must be auto-enrolled.

An employee is eligible when every check passes: age band, qualifying
earnings band, active employment, an auto-enrolment PRSI class, no director
or self-employment exclusion, no existing scheme membership and no recent
opt-out still inside its cooldown.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple

import pandas as pd

from auto_enrolment.config.plan_rules import EarningsBand, EligibilityConfig
from auto_enrolment.plan_rules.exclusions import exclusion_for_record
from auto_enrolment.plan_rules.insurance_class import classify_record
from auto_enrolment.schema.records import PayrollRecord
from auto_enrolment.utils.columns import (
    ANNUALISED_PAY,
    ELIGIBILITY_REASON,
    EMP_AGE,
    EMP_ID,
    IS_ELIGIBLE,
    OPT_OUT_WINDOW_OPEN,
)
from auto_enrolment.utils.date_utils import calculate_age, full_years_between
from auto_enrolment.utils.status_enums import DEFAULT_PAY_PERIODS, PAY_PERIODS_PER_YEAR

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EligibilityOutcome:
    eligible: bool
    opt_out_window_open: bool
    reason: Optional[str] = None
    age: Optional[int] = None
    annualised_pay: float = 0.0
    reasons: Tuple[str, ...] = field(default_factory=tuple)


def pay_periods_per_year(pay_frequency: Optional[str]) -> int:
    """Number of pay periods in a year; unknown frequencies count as monthly."""
    if not pay_frequency:
        return DEFAULT_PAY_PERIODS
    return PAY_PERIODS_PER_YEAR.get(str(pay_frequency).strip().lower(), DEFAULT_PAY_PERIODS)


def annualise_pay(gross_pay: float, pay_frequency: Optional[str]) -> float:
    """Annual pay assuming every period pays ``gross_pay``."""
    return float(gross_pay) * pay_periods_per_year(pay_frequency)


def resolve_age(record: PayrollRecord, as_of: date) -> Optional[int]:
    """Supplied age wins; otherwise completed years from date of birth to ``as_of``."""
    if record.age is not None:
        return record.age
    if record.date_of_birth is not None:
        return calculate_age(record.date_of_birth, as_of)
    return None


def evaluate(
    record: PayrollRecord,
    as_of: date,
    cfg: Optional[EligibilityConfig] = None,
    earnings: Optional[EarningsBand] = None,
    annual_pay: Optional[float] = None,
) -> EligibilityOutcome:
    """
    Apply the eligibility thresholds to one payroll record.

    Every failed check contributes a reason; ``reason`` joins them with "; ".
    ``annual_pay`` overrides the annualised payroll figure, e.g. with a
    projection from variable earnings.
    """
    cfg = cfg or EligibilityConfig()
    earnings = earnings or EarningsBand()
    reasons: List[str] = []

    age = resolve_age(record, as_of)
    if age is None:
        reasons.append("Age could not be determined")
    elif not cfg.min_age <= age <= cfg.max_age:
        reasons.append(f"Age {age} is outside the eligible range {cfg.min_age}-{cfg.max_age}")

    if annual_pay is None:
        annual_pay = annualise_pay(record.gross_pay, record.pay_frequency)
    if not earnings.lower_threshold <= annual_pay <= earnings.upper_threshold:
        reasons.append(
            f"Annualised pay {annual_pay:.2f} is outside the qualifying band "
            f"{earnings.lower_threshold:.2f}-{earnings.upper_threshold:.2f}"
        )

    status = (record.employment_status or "").strip().lower()
    if status not in {s.lower() for s in cfg.active_statuses}:
        reasons.append(f"Employment status '{record.employment_status}' is not active")

    insurance = classify_record(record, age, annual_pay)
    if insurance is not None and insurance.insurance_class.value not in cfg.eligible_insurance_classes:
        reasons.append(
            f"PRSI Class {insurance.insurance_class.value} is not eligible for auto-enrolment "
            f"({insurance.reason})"
        )

    exclusion = exclusion_for_record(record, cfg.controlling_shareholding_threshold)
    if exclusion is not None and exclusion.excluded:
        reasons.extend(exclusion.reasons)

    if record.existing_scheme:
        reasons.append("Already a member of an existing pension scheme")

    if record.has_opted_out and record.prior_opt_out_date is not None:
        years_since = full_years_between(record.prior_opt_out_date, as_of)
        if years_since < cfg.opt_out_cooldown_years:
            reasons.append(
                f"Opted out on {record.prior_opt_out_date.isoformat()}; "
                f"{cfg.opt_out_cooldown_years}-year cooldown has not elapsed"
            )

    eligible = not reasons
    outcome = EligibilityOutcome(
        eligible=eligible,
        opt_out_window_open=eligible and not record.has_opted_out,
        reason="; ".join(reasons) if reasons else None,
        age=age,
        annualised_pay=annual_pay,
        reasons=tuple(reasons),
    )
    logger.debug(
        f"Eligibility check for '{record.employee_id}': age={age}, "
        f"annual_pay={annual_pay:.2f}, eligible={eligible}"
    )
    return outcome


def run(
    records: Iterable[PayrollRecord],
    as_of: date,
    cfg: Optional[EligibilityConfig] = None,
    earnings: Optional[EarningsBand] = None,
) -> pd.DataFrame:
    """
    Evaluate eligibility for every record.
    Returns one row per record, in input order.
    """
    rows = []
    for record in records:
        outcome = evaluate(record, as_of, cfg, earnings)
        rows.append(
            {
                EMP_ID: record.employee_id,
                EMP_AGE: outcome.age,
                ANNUALISED_PAY: outcome.annualised_pay,
                IS_ELIGIBLE: outcome.eligible,
                OPT_OUT_WINDOW_OPEN: outcome.opt_out_window_open,
                ELIGIBILITY_REASON: outcome.reason,
            }
        )
    columns = [EMP_ID, EMP_AGE, ANNUALISED_PAY, IS_ELIGIBLE, OPT_OUT_WINDOW_OPEN, ELIGIBILITY_REASON]
    df = pd.DataFrame(rows, columns=columns)
    if not df.empty:
        df[EMP_AGE] = df[EMP_AGE].astype("Int64")
        logger.info(f"Eligibility as of {as_of}: {int(df[IS_ELIGIBLE].sum())} of {len(df)} eligible")
    return df


def summarise_eligibility(outcomes: Iterable[EligibilityOutcome]) -> Dict[str, Any]:
    """
    Population roll-up of eligibility outcomes.

    ``reasons`` counts each individual reason over the ineligible outcomes,
    most frequent first; ``eligibility_rate`` is a fraction (0 for no outcomes).
    """
    items = list(outcomes)
    eligible = sum(1 for o in items if o.eligible)
    reasons = Counter(reason for o in items if not o.eligible for reason in o.reasons)
    return {
        "total": len(items),
        "eligible": eligible,
        "ineligible": len(items) - eligible,
        "eligibility_rate": eligible / len(items) if items else 0.0,
        "reasons": dict(reasons.most_common()),
    }
