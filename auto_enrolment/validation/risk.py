"""
Compliance risk scoring.

A record's risk score is the sum of its findings' severity weights, plus a
fixed penalty when the employee is not eligible. Scores map onto bands with
the thresholds in ValidationConfig.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, Mapping, Optional, Tuple

import pandas as pd

from auto_enrolment.config.plan_rules import PlanRules
from auto_enrolment.plan_rules.contributions import ContributionBreakdown, calculate_contributions
from auto_enrolment.plan_rules.eligibility import EligibilityOutcome, evaluate
from auto_enrolment.schema.records import PayrollRecord
from auto_enrolment.utils.columns import EMP_ID, ISSUE_CODES, ISSUE_COUNT, RISK_BAND, RISK_SCORE
from auto_enrolment.utils.status_enums import SEVERITY_WEIGHTS, RiskBand, Severity
from auto_enrolment.validation.results import RuleResult
from auto_enrolment.validation.rules import check_record

logger = logging.getLogger(__name__)

DEFAULT_BAND_THRESHOLDS = {"critical": 12, "high": 8, "medium": 3}


@dataclass(frozen=True)
class ValidationSummary:
    record: PayrollRecord
    issues: Tuple[RuleResult, ...]
    eligibility: EligibilityOutcome
    contribution: ContributionBreakdown
    risk_score: int
    risk_band: RiskBand
    severity_tally: Dict[str, int] = field(default_factory=dict)

    @property
    def employee_id(self) -> Optional[str]:
        return self.record.employee_id

    @property
    def eligible(self) -> bool:
        return self.eligibility.eligible

    @property
    def has_critical(self) -> bool:
        return self.severity_tally.get(Severity.CRITICAL.value, 0) > 0


def score_issues(issues: Iterable[RuleResult]) -> int:
    return sum(SEVERITY_WEIGHTS[issue.severity] for issue in issues)


def band_risk(score: int, thresholds: Optional[Mapping[str, int]] = None) -> RiskBand:
    thresholds = thresholds or DEFAULT_BAND_THRESHOLDS
    if score >= thresholds["critical"]:
        return RiskBand.CRITICAL
    if score >= thresholds["high"]:
        return RiskBand.HIGH
    if score >= thresholds["medium"]:
        return RiskBand.MEDIUM
    return RiskBand.LOW


def tally_severities(issues: Iterable[RuleResult]) -> Dict[str, int]:
    """Count of findings per severity; every severity is present."""
    tally = {severity.value: 0 for severity in Severity}
    for issue in issues:
        tally[issue.severity.value] += 1
    return tally


def summarize_record(
    record: PayrollRecord,
    as_of: date,
    plan_rules: Optional[PlanRules] = None,
    phase_year: Optional[int] = None,
) -> ValidationSummary:
    """
    Validate a record and score it.

    Security checks run first; eligibility and contributions are computed
    from the sanitised record.
    """
    plan_rules = plan_rules or PlanRules()
    cfg = plan_rules.validation

    sanitised, issues = check_record(record, as_of, cfg)

    eligibility = evaluate(sanitised, as_of, plan_rules.eligibility, plan_rules.earnings)
    contribution = calculate_contributions(
        sanitised, phase_year, plan_rules.contributions, plan_rules.earnings
    )
    score = score_issues(issues) + (0 if eligibility.eligible else cfg.ineligible_risk_points)
    band = band_risk(score, cfg.risk_band_thresholds)
    if band in (RiskBand.HIGH, RiskBand.CRITICAL):
        logger.info(f"Record '{sanitised.employee_id}' scored {score} ({band.value})")

    return ValidationSummary(
        record=sanitised,
        issues=tuple(issues),
        eligibility=eligibility,
        contribution=contribution,
        risk_score=score,
        risk_band=band,
        severity_tally=tally_severities(issues),
    )


def summaries_frame(summaries: Iterable[ValidationSummary]) -> pd.DataFrame:
    """One row per record: score, band and the codes of its findings."""
    rows = [
        {
            EMP_ID: s.employee_id,
            RISK_SCORE: s.risk_score,
            RISK_BAND: s.risk_band.value,
            ISSUE_COUNT: len(s.issues),
            ISSUE_CODES: ",".join(issue.code for issue in s.issues),
            **s.severity_tally,
        }
        for s in summaries
    ]
    columns = [EMP_ID, RISK_SCORE, RISK_BAND, ISSUE_COUNT, ISSUE_CODES] + [s.value for s in Severity]
    return pd.DataFrame(rows, columns=columns)


def summarise_population(summaries: Iterable[ValidationSummary]) -> pd.DataFrame:
    """
    Roll up summaries by risk band for reporting.

    Returns a frame indexed by band (low to critical, every band present)
    with employee counts, finding counts per severity and the mean score.
    """
    frame = summaries_frame(summaries)
    bands = [band.value for band in RiskBand]
    severities = [s.value for s in Severity]
    if frame.empty:
        rollup = pd.DataFrame(0, index=bands, columns=["employees"] + severities)
        rollup["mean_risk_score"] = 0.0
    else:
        grouped = frame.groupby(RISK_BAND)
        rollup = grouped[severities].sum()
        rollup.insert(0, "employees", grouped.size())
        rollup["mean_risk_score"] = grouped[RISK_SCORE].mean()
        rollup = rollup.reindex(bands)
        rollup[["employees"] + severities] = rollup[["employees"] + severities].fillna(0).astype(int)
        rollup["mean_risk_score"] = rollup["mean_risk_score"].fillna(0.0)
    rollup.index.name = RISK_BAND
    return rollup
