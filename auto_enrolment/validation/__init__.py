"""
Payroll validation: field security checks, data-quality rules and risk scoring.
"""

from auto_enrolment.validation.results import RuleResult
from auto_enrolment.validation.risk import (
    ValidationSummary,
    band_risk,
    score_issues,
    summarise_population,
    summarize_record,
    tally_severities,
)
from auto_enrolment.validation.rules import RULES, apply_rules, check_record, validate_record
from auto_enrolment.validation.security import check_security

__all__ = [
    "RuleResult",
    "ValidationSummary",
    "RULES",
    "apply_rules",
    "band_risk",
    "check_record",
    "check_security",
    "score_issues",
    "summarise_population",
    "summarize_record",
    "tally_severities",
    "validate_record",
]
