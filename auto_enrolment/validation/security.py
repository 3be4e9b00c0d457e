"""
Security checks for free-text payroll fields.

Spreadsheet formulas, markup, SQL metacharacters and over-long values are
reported as critical findings and left in place. Benign control characters
are the one exception: they are stripped and the cleaned record is what the
remaining rules see.
"""

import logging
import re
from typing import Dict, List, Optional, Tuple

from auto_enrolment.config.plan_rules import ValidationConfig
from auto_enrolment.schema.records import TEXT_FIELDS, PayrollRecord
from auto_enrolment.utils.status_enums import Severity
from auto_enrolment.validation.results import RuleResult

logger = logging.getLogger(__name__)

# Leading characters a spreadsheet evaluates as a formula
FORMULA_PREFIXES = ("=", "+", "@", "\t", "\r")

CONTROL_CHARACTERS = re.compile(r"[\x00-\x1f\x7f-\x9f]")

MARKUP_PATTERN = re.compile(
    r"<\s*script\b|<\s*iframe\b|javascript\s*:|\bon\w+\s*=|<\s*/?\s*[a-z][a-z0-9]*(\s[^>]*)?>",
    re.IGNORECASE,
)

SQL_PATTERN = re.compile(
    r"--|;|/\*|\*/|\bxp_\w+"
    r"|\bunion\s+(all\s+)?select\b|\bdrop\s+table\b|\binsert\s+into\b"
    r"|\bdelete\s+from\b|\bupdate\s+\w+\s+set\b|\bexec(ute)?\s*\("
    r"|'\s*or\s+'?\w+'?\s*=\s*'?\w+",
    re.IGNORECASE,
)

# Values echoed in messages are cut to this length
_PREVIEW = 20


def _preview(value: str) -> str:
    text = value.encode("unicode_escape").decode("ascii")
    return text if len(text) <= _PREVIEW else text[:_PREVIEW] + "..."


def strip_control_characters(value: str) -> str:
    return CONTROL_CHARACTERS.sub("", value)


def sanitise_record(record: PayrollRecord) -> Tuple[PayrollRecord, Dict[str, str]]:
    """
    Strip control characters from every free-text field.

    Returns the cleaned record and a mapping of field name to original value
    for each field that changed.
    """
    updates: Dict[str, str] = {}
    originals: Dict[str, str] = {}
    for name in TEXT_FIELDS:
        value = getattr(record, name)
        if not isinstance(value, str):
            continue
        cleaned = strip_control_characters(value)
        if cleaned != value:
            updates[name] = cleaned
            originals[name] = value
    if not updates:
        return record, originals
    return record.model_copy(update=updates), originals


def check_field(
    name: str,
    value: Optional[str],
    max_length: int,
    original: Optional[str] = None,
) -> List[RuleResult]:
    """
    Run the security checks on one field value, in fixed order.

    ``original`` is the value before control characters were stripped; a
    formula prefix in either version is reported.
    """
    issues: List[RuleResult] = []
    if value is None and original is None:
        return issues
    value = value or ""

    if value.startswith(FORMULA_PREFIXES) or (original or "").startswith(FORMULA_PREFIXES):
        issues.append(
            RuleResult(
                code="formula_injection",
                message=f"Field '{name}' starts with a spreadsheet formula character: {_preview(original or value)}",
                severity=Severity.CRITICAL,
                field=name,
            )
        )

    if original is not None:
        issues.append(
            RuleResult(
                code="control_characters_stripped",
                message=f"Control characters were removed from field '{name}'",
                severity=Severity.INFO,
                field=name,
            )
        )

    if MARKUP_PATTERN.search(value):
        issues.append(
            RuleResult(
                code="unsafe_markup",
                message=f"Field '{name}' contains script or HTML markup",
                severity=Severity.CRITICAL,
                field=name,
            )
        )

    if SQL_PATTERN.search(value):
        issues.append(
            RuleResult(
                code="unsafe_sql",
                message=f"Field '{name}' contains SQL metacharacters or keywords",
                severity=Severity.CRITICAL,
                field=name,
            )
        )

    if len(value) > max_length:
        issues.append(
            RuleResult(
                code="field_too_long",
                message=f"Field '{name}' is {len(value)} characters long; the limit is {max_length}",
                severity=Severity.CRITICAL,
                field=name,
            )
        )
    return issues


def check_security(
    record: PayrollRecord, cfg: Optional[ValidationConfig] = None
) -> Tuple[PayrollRecord, List[RuleResult]]:
    """
    Security pass over every free-text field of a record.

    Returns the sanitised record together with the findings, ordered by
    field and then by check.
    """
    cfg = cfg or ValidationConfig()
    sanitised, originals = sanitise_record(record)
    issues: List[RuleResult] = []
    for name in TEXT_FIELDS:
        max_length = cfg.max_field_lengths.get(name, cfg.default_max_field_length)
        issues.extend(check_field(name, getattr(sanitised, name), max_length, originals.get(name)))

    critical = sum(1 for issue in issues if issue.severity is Severity.CRITICAL)
    if critical:
        logger.warning(f"Record '{sanitised.employee_id}' failed {critical} security check(s)")
    return sanitised, issues
