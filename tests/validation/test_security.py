import pytest

from auto_enrolment.config.plan_rules import ValidationConfig
from auto_enrolment.utils.status_enums import Severity
from auto_enrolment.validation.security import check_security, sanitise_record


def _codes(issues):
    return [issue.code for issue in issues]


def test_formula_in_employee_id_is_critical(make_record):
    _, issues = check_security(make_record(employee_id="=SUM(A1:A10)"))
    assert _codes(issues) == ["formula_injection"]
    assert issues[0].severity is Severity.CRITICAL
    assert issues[0].field == "employee_id"


@pytest.mark.parametrize("value", ["+44123", "@cmd", "=1+1"])
def test_formula_prefixes(make_record, value):
    _, issues = check_security(make_record(contract_type=value))
    assert "formula_injection" in _codes(issues)


def test_negative_looking_values_are_not_formulas(make_record):
    _, issues = check_security(make_record(contract_type="-permanent"))
    assert issues == []


def test_tab_prefix_is_flagged_and_stripped(make_record):
    sanitised, issues = check_security(make_record(employee_id="\tE001"))
    assert _codes(issues) == ["formula_injection", "control_characters_stripped"]
    assert sanitised.employee_id == "E001"


def test_benign_control_characters_are_stripped(make_record):
    record = make_record(employee_id="E0\x0001", contract_type="perm\x07anent")
    sanitised, issues = check_security(record)
    assert sanitised.employee_id == "E001"
    assert sanitised.contract_type == "permanent"
    assert _codes(issues) == ["control_characters_stripped", "control_characters_stripped"]
    assert all(issue.severity is Severity.INFO for issue in issues)
    # the input record is left untouched
    assert record.employee_id == "E0\x0001"


def test_sanitise_returns_same_record_when_clean(make_record):
    record = make_record()
    sanitised, originals = sanitise_record(record)
    assert sanitised is record
    assert originals == {}


@pytest.mark.parametrize(
    "value",
    ["<script>alert(1)</script>", "<iframe src=x>", "javascript:alert(1)", "x onload=run", "<b>bold</b>"],
)
def test_markup_is_rejected(make_record, value):
    _, issues = check_security(make_record(contract_type=value))
    assert "unsafe_markup" in _codes(issues)
    assert all(i.severity is Severity.CRITICAL for i in issues if i.code == "unsafe_markup")


@pytest.mark.parametrize(
    "value",
    ["x'; DROP TABLE staff; --", "1 UNION SELECT password", "a/*b*/", "xp_cmdshell", "' or 1=1"],
)
def test_sql_is_rejected(make_record, value):
    _, issues = check_security(make_record(contract_type=value))
    assert "unsafe_sql" in _codes(issues)


def test_ordinary_text_passes(make_record):
    record = make_record(contract_type="part-time (fixed term)", employment_status="Active")
    assert check_security(record)[1] == []


def test_field_length_ceilings(make_record):
    _, issues = check_security(make_record(employee_id="E" * 51, currency="EURO"))
    assert _codes(issues) == ["field_too_long", "field_too_long"]
    assert [i.field for i in issues] == ["employee_id", "currency"]


def test_custom_length_ceiling(make_record):
    cfg = ValidationConfig(max_field_lengths={"employee_id": 3})
    _, issues = check_security(make_record(employee_id="E001"), cfg)
    assert _codes(issues) == ["field_too_long"]
