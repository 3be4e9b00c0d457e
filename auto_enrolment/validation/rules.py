"""
Payroll data-quality rules.

Each rule inspects one aspect of a record and returns a RuleResult or None.
Rules are independent and all of them run for every record, so a single
row can accumulate several findings; their order is fixed by ``RULES``.
"""

import logging
import re
from datetime import date, timedelta
from typing import Callable, List, Optional, Tuple

from auto_enrolment.config.plan_rules import ValidationConfig
from auto_enrolment.schema.records import PayrollRecord
from auto_enrolment.utils.date_utils import add_months, calculate_age, to_date
from auto_enrolment.utils.status_enums import Severity
from auto_enrolment.validation.results import RuleResult
from auto_enrolment.validation.security import check_security

logger = logging.getLogger(__name__)

Rule = Callable[[PayrollRecord, date, ValidationConfig], Optional[RuleResult]]

_NON_LETTERS = re.compile(r"[^A-Z]")


def _blank(value: Optional[str]) -> bool:
    return value is None or not str(value).strip()


def unparseable_values(record: PayrollRecord, as_of: date, cfg: ValidationConfig) -> Optional[RuleResult]:
    """Census cells that were present but could not be parsed were dropped on load."""
    if record.invalid_fields:
        return RuleResult(
            "unparseable_values",
            f"Values could not be parsed: {', '.join(record.invalid_fields)}",
            Severity.CRITICAL,
            record.invalid_fields[0],
        )
    return None


def missing_employee_id(record: PayrollRecord, as_of: date, cfg: ValidationConfig) -> Optional[RuleResult]:
    if _blank(record.employee_id):
        return RuleResult("missing_employee_id", "Employee ID is required", Severity.CRITICAL, "employee_id")
    return None


def missing_tax_id(record: PayrollRecord, as_of: date, cfg: ValidationConfig) -> Optional[RuleResult]:
    if _blank(record.tax_identifier):
        return RuleResult("missing_tax_id", "Tax identifier is required", Severity.CRITICAL, "tax_identifier")
    return None


def missing_age(record: PayrollRecord, as_of: date, cfg: ValidationConfig) -> Optional[RuleResult]:
    if record.date_of_birth is None and record.age is None:
        return RuleResult(
            "missing_age",
            "Either date of birth or age must be supplied to determine eligibility",
            Severity.CRITICAL,
            "date_of_birth",
        )
    return None


def non_positive_pay(record: PayrollRecord, as_of: date, cfg: ValidationConfig) -> Optional[RuleResult]:
    # NaN fails the comparison too
    if not record.gross_pay > 0:
        return RuleResult(
            "non_positive_pay",
            "Gross pay must be positive for an active employee",
            Severity.CRITICAL,
            "gross_pay",
        )
    return None


def implausible_age(record: PayrollRecord, as_of: date, cfg: ValidationConfig) -> Optional[RuleResult]:
    age = record.age
    if age is None and record.date_of_birth is not None:
        age = calculate_age(record.date_of_birth, as_of)
    if age is None:
        return None
    if age < cfg.min_employment_age or age > cfg.max_employment_age:
        return RuleResult(
            "implausible_age",
            f"Age {age} appears outside normal employment bounds "
            f"({cfg.min_employment_age}-{cfg.max_employment_age})",
            Severity.HIGH,
            "age",
        )
    return None


def invalid_insurance_class(record: PayrollRecord, as_of: date, cfg: ValidationConfig) -> Optional[RuleResult]:
    raw = (record.insurance_class or "").strip().upper()
    letter = _NON_LETTERS.sub("", raw)[:1]
    if not letter or letter not in cfg.allowed_insurance_classes:
        return RuleResult(
            "invalid_insurance_class",
            "Social insurance class is missing or not recognised for auto-enrolment",
            Severity.CRITICAL,
            "insurance_class",
        )
    return None


def pay_period(record: PayrollRecord, as_of: date, cfg: ValidationConfig) -> Optional[RuleResult]:
    """Pay period end must parse, not lie in the future and not be stale."""
    period_end = to_date(record.pay_period_end)
    if period_end is None:
        return RuleResult("invalid_period", "Pay period end date is invalid", Severity.CRITICAL, "pay_period_end")
    if period_end > as_of + timedelta(days=cfg.future_period_tolerance_days):
        return RuleResult(
            "future_period",
            "Pay period end date appears to be in the future",
            Severity.WARNING,
            "pay_period_end",
        )
    if period_end < add_months(as_of, -cfg.pay_period_staleness_months):
        return RuleResult(
            "stale_period",
            "Pay period end date is older than current payroll cycles",
            Severity.HIGH,
            "pay_period_end",
        )
    return None


def invalid_frequency(record: PayrollRecord, as_of: date, cfg: ValidationConfig) -> Optional[RuleResult]:
    if (record.pay_frequency or "").strip().lower() not in cfg.supported_pay_frequencies:
        return RuleResult(
            "invalid_frequency",
            f"Pay frequency '{record.pay_frequency}' is not supported",
            Severity.CRITICAL,
            "pay_frequency",
        )
    return None


def missing_opt_out_date(record: PayrollRecord, as_of: date, cfg: ValidationConfig) -> Optional[RuleResult]:
    if record.has_opted_out and record.prior_opt_out_date is None:
        return RuleResult(
            "missing_opt_out_date",
            "Opt-out flag provided without a prior opt-out date",
            Severity.WARNING,
            "prior_opt_out_date",
        )
    return None


RULES: List[Rule] = [
    unparseable_values,
    missing_employee_id,
    missing_tax_id,
    missing_age,
    non_positive_pay,
    implausible_age,
    invalid_insurance_class,
    pay_period,
    invalid_frequency,
    missing_opt_out_date,
]


def apply_rules(record: PayrollRecord, as_of: date, cfg: Optional[ValidationConfig] = None) -> List[RuleResult]:
    """Run every data-quality rule against ``record`` in RULES order."""
    cfg = cfg or ValidationConfig()
    issues = []
    for rule in RULES:
        result = rule(record, as_of, cfg)
        if result is not None:
            issues.append(result)
    return issues


def check_record(
    record: PayrollRecord, as_of: date, cfg: Optional[ValidationConfig] = None
) -> Tuple[PayrollRecord, List[RuleResult]]:
    """
    Full validation pass: security checks first, then the data-quality rules
    on the sanitised record.

    Returns the sanitised record together with every finding.
    """
    cfg = cfg or ValidationConfig()
    sanitised, issues = check_security(record, cfg)
    issues.extend(apply_rules(sanitised, as_of, cfg))
    logger.debug(f"Record '{sanitised.employee_id}': {[i.code for i in issues]}")
    return sanitised, issues


def validate_record(record: PayrollRecord, as_of: date, cfg: Optional[ValidationConfig] = None) -> List[RuleResult]:
    """Findings of ``check_record`` without the sanitised record."""
    return check_record(record, as_of, cfg)[1]
