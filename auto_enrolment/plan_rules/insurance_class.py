# auto_enrolment/plan_rules/insurance_class.py
"""
PRSI class determination.

Only classes A and P are brought into auto-enrolment; the other classes
cover public servants and officers with occupational schemes, the
self-employed, pensioners and very low earners.

The class is derived from the employment type when the payroll record
carries one; otherwise the class reported by payroll is used as given.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date
from typing import Optional

from auto_enrolment.schema.records import PayrollRecord
from auto_enrolment.utils.status_enums import EmploymentType, InsuranceClass

logger = logging.getLogger(__name__)

# 365.25 / 7
WEEKS_PER_YEAR = 52.178571428571
WEEKLY_EARNINGS_THRESHOLD = 38.0
ANNUAL_INCOME_THRESHOLD = 5000.0
PENSIONER_AGE = 66
PUBLIC_SECTOR_CUTOFF_DATE = date(1995, 4, 6)

# Employee and employer PRSI rates, in percent
INSURANCE_CLASS_RATES = {
    InsuranceClass.A: (4.0, 11.05),
    InsuranceClass.B: (4.0, 11.05),
    InsuranceClass.C: (4.0, 11.05),
    InsuranceClass.D: (4.0, 11.05),
    InsuranceClass.E: (4.0, 11.05),
    InsuranceClass.H: (0.9, 0.0),
    InsuranceClass.J: (0.0, 0.5),
    InsuranceClass.K: (4.0, 0.5),
    InsuranceClass.M: (0.0, 0.5),
    InsuranceClass.P: (4.0, 11.05),
    InsuranceClass.S: (4.0, 0.0),
}

INSURANCE_CLASS_DESCRIPTIONS = {
    InsuranceClass.A: "Industrial, commercial and service-type employment under age 66",
    InsuranceClass.B: "Permanent and pensionable employees of health boards",
    InsuranceClass.C: "Commissioned officers of Defence Forces and Gardaí",
    InsuranceClass.D: "Permanent and pensionable public servants (recruited before 6 April 1995)",
    InsuranceClass.E: "Permanent and pensionable public servants (recruited from 6 April 1995)",
    InsuranceClass.H: "Members of Defence Forces (non-commissioned)",
    InsuranceClass.J: "Employees with income under €38 per week from each employment",
    InsuranceClass.K: "Employees aged 66 or over with reckonable pay of €5,000 or more",
    InsuranceClass.M: "Employees with reckonable earnings under €38 per week (aged 16-65)",
    InsuranceClass.P: "Share fishermen",
    InsuranceClass.S: "Self-employed with reckonable income of €5,000 or more",
}

AUTO_ENROLMENT_CLASSES = frozenset({InsuranceClass.A, InsuranceClass.P})

_NON_LETTERS = re.compile(r"[^A-Z]")


@dataclass(frozen=True)
class InsuranceClassification:
    insurance_class: InsuranceClass
    eligible: bool
    reason: str
    age: Optional[int] = None
    employee_rate: float = 0.0
    employer_rate: float = 0.0
    mandatory: bool = True


def is_insurance_class_eligible(insurance_class: InsuranceClass) -> bool:
    return InsuranceClass(insurance_class) in AUTO_ENROLMENT_CLASSES


def insurance_class_description(insurance_class: InsuranceClass) -> str:
    return INSURANCE_CLASS_DESCRIPTIONS[InsuranceClass(insurance_class)]


def _classification(
    insurance_class: InsuranceClass, reason: str, age: Optional[int], mandatory: bool = True
) -> InsuranceClassification:
    employee_rate, employer_rate = INSURANCE_CLASS_RATES[insurance_class]
    return InsuranceClassification(
        insurance_class=insurance_class,
        eligible=is_insurance_class_eligible(insurance_class),
        reason=reason,
        age=age,
        employee_rate=employee_rate,
        employer_rate=employer_rate,
        mandatory=mandatory,
    )


def determine_insurance_class(
    age: int,
    employment_type: EmploymentType,
    weekly_earnings: float,
    annual_income: float,
    employment_start_date: Optional[date] = None,
) -> InsuranceClassification:
    """
    Derive the PRSI class from age, employment type and earnings.

    The first matching rule wins: pensioners with reckonable pay, then low
    earners, then the employment-type classes, and class A otherwise.

    Raises:
        ValueError: If either earnings figure is negative.
    """
    if weekly_earnings < 0:
        raise ValueError("Weekly earnings cannot be negative")
    if annual_income < 0:
        raise ValueError("Annual income cannot be negative")
    employment_type = EmploymentType(employment_type)

    if age >= PENSIONER_AGE and annual_income >= ANNUAL_INCOME_THRESHOLD:
        return _classification(
            InsuranceClass.K,
            "Employee aged 66 or over with reckonable pay of €5,000 or more per year",
            age,
        )

    if weekly_earnings < WEEKLY_EARNINGS_THRESHOLD:
        if 16 <= age <= 65:
            return _classification(
                InsuranceClass.M, "Weekly earnings under €38 (age 16-65)", age, mandatory=False
            )
        return _classification(InsuranceClass.J, "Weekly earnings under €38", age, mandatory=False)

    if employment_type is EmploymentType.SELF_EMPLOYED and annual_income >= ANNUAL_INCOME_THRESHOLD:
        return _classification(
            InsuranceClass.S, "Self-employed with reckonable income of €5,000 or more", age
        )

    if employment_type is EmploymentType.SHARE_FISHERMAN:
        return _classification(InsuranceClass.P, "Share fisherman employment", age)

    recruited_before_cutoff = (
        employment_start_date is not None and employment_start_date < PUBLIC_SECTOR_CUTOFF_DATE
    )
    if employment_type is EmploymentType.PUBLIC_SECTOR_PRE_1995 or (
        employment_type is EmploymentType.PUBLIC_SECTOR_POST_1995 and recruited_before_cutoff
    ):
        return _classification(
            InsuranceClass.D,
            "Permanent and pensionable public servant recruited before 6 April 1995",
            age,
        )

    if employment_type is EmploymentType.PUBLIC_SECTOR_POST_1995:
        return _classification(
            InsuranceClass.E,
            "Permanent and pensionable public servant recruited from 6 April 1995",
            age,
        )

    if employment_type in (EmploymentType.DEFENCE_FORCES_OFFICER, EmploymentType.GARDA_OFFICER):
        return _classification(
            InsuranceClass.C, "Commissioned officer of Defence Forces or Garda Síochána", age
        )

    if employment_type is EmploymentType.DEFENCE_FORCES_NON_OFFICER:
        return _classification(InsuranceClass.H, "Non-commissioned member of Defence Forces", age)

    if employment_type is EmploymentType.HEALTH_BOARD:
        return _classification(
            InsuranceClass.B, "Permanent and pensionable employee of health board", age
        )

    return _classification(
        InsuranceClass.A, "Industrial, commercial and service-type employment", age
    )


def parse_insurance_class(value: Optional[str]) -> Optional[InsuranceClass]:
    """Class letter of a payroll code such as ``A1`` or ``a``; None when unrecognised."""
    letter = _NON_LETTERS.sub("", (value or "").strip().upper())[:1]
    try:
        return InsuranceClass(letter)
    except ValueError:
        return None


def parse_employment_type(value: Optional[str]) -> Optional[EmploymentType]:
    if value is None or not str(value).strip():
        return None
    try:
        return EmploymentType(str(value).strip().lower())
    except ValueError:
        return None


def classify_record(
    record: PayrollRecord, age: Optional[int], annual_pay: float
) -> Optional[InsuranceClassification]:
    """
    PRSI class of a payroll record.

    A recognised employment type, a known age and non-negative pay give the
    derived class. Otherwise the class letter reported by payroll is used;
    None when neither is available.
    """
    employment_type = parse_employment_type(record.employment_type)
    if record.employment_type and employment_type is None:
        logger.warning(
            f"Record '{record.employee_id}': unknown employment type {record.employment_type!r}"
        )
    if employment_type is not None and age is not None and annual_pay >= 0:
        return determine_insurance_class(
            age,
            employment_type,
            weekly_earnings=annual_pay / WEEKS_PER_YEAR,
            annual_income=annual_pay,
            employment_start_date=record.employment_start_date,
        )

    reported = parse_insurance_class(record.insurance_class)
    if reported is None:
        return None
    return _classification(reported, insurance_class_description(reported), age)
