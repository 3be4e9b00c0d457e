# auto_enrolment/utils/status_enums.py

from enum import Enum


class StagingFrequency(str, Enum):
    """How often an employer processes new auto-enrolments."""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    BI_ANNUAL = "bi-annual"
    ANNUAL = "annual"

    @classmethod
    def _missing_(cls, value):
        # Accept the upper-case spellings used by payroll exports (e.g. BI_ANNUALLY)
        if isinstance(value, str):
            key = value.strip().lower().replace("_", "-")
            aliases = {
                "bi-annually": cls.BI_ANNUAL,
                "biannual": cls.BI_ANNUAL,
                "semi-annual": cls.BI_ANNUAL,
                "annually": cls.ANNUAL,
                "yearly": cls.ANNUAL,
            }
            for member in cls:
                if member.value == key:
                    return member
            return aliases.get(key)
        return None


# Anchor months for each staging frequency
STAGING_ANCHOR_MONTHS = {
    StagingFrequency.MONTHLY: tuple(range(1, 13)),
    StagingFrequency.QUARTERLY: (1, 4, 7, 10),
    StagingFrequency.BI_ANNUAL: (1, 7),
    StagingFrequency.ANNUAL: (1,),
}


class PayFrequency(str, Enum):
    """Payroll frequencies accepted by the engine."""

    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    FORTNIGHTLY = "fortnightly"
    MONTHLY = "monthly"


PAY_PERIODS_PER_YEAR = {
    PayFrequency.WEEKLY.value: 52,
    PayFrequency.BIWEEKLY.value: 26,
    PayFrequency.FORTNIGHTLY.value: 26,
    PayFrequency.MONTHLY.value: 12,
}
DEFAULT_PAY_PERIODS = 12


class EnrolmentEventType(str, Enum):
    """Lifecycle transitions recorded in the enrolment history."""

    AUTO_ENROLLED = "AUTO_ENROLLED"
    OPTED_OUT = "OPTED_OUT"
    RE_ENROLLED = "RE_ENROLLED"
    MANUALLY_ENROLLED = "MANUALLY_ENROLLED"
    EMPLOYMENT_ENDED = "EMPLOYMENT_ENDED"
    BECAME_INELIGIBLE = "BECAME_INELIGIBLE"


ENROLMENT_EVENTS = frozenset(
    {
        EnrolmentEventType.AUTO_ENROLLED,
        EnrolmentEventType.RE_ENROLLED,
        EnrolmentEventType.MANUALLY_ENROLLED,
    }
)
EXIT_EVENTS = frozenset(
    {EnrolmentEventType.EMPLOYMENT_ENDED, EnrolmentEventType.BECAME_INELIGIBLE}
)


class EnrolmentState(str, Enum):
    """Current enrolment status derived from history."""

    ENROLLED = "ENROLLED"
    OPTED_OUT = "OPTED_OUT"
    PENDING_ENROLMENT = "PENDING_ENROLMENT"
    INELIGIBLE = "INELIGIBLE"
    NOT_STARTED = "NOT_STARTED"


class Severity(str, Enum):
    """Severity of a validation finding."""

    CRITICAL = "critical"
    HIGH = "high"
    WARNING = "warning"
    INFO = "info"


SEVERITY_WEIGHTS = {
    Severity.CRITICAL: 5,
    Severity.HIGH: 3,
    Severity.WARNING: 1,
    Severity.INFO: 0,
}


class RiskBand(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class InsuranceClass(str, Enum):
    """PRSI (Pay Related Social Insurance) contribution classes."""

    A = "A"
    B = "B"
    C = "C"
    D = "D"
    E = "E"
    H = "H"
    J = "J"
    K = "K"
    M = "M"
    P = "P"
    S = "S"


class EmploymentType(str, Enum):
    """Employment category used to derive the PRSI class."""

    PRIVATE_SECTOR = "private_sector"
    PUBLIC_SECTOR_POST_1995 = "public_sector_post_1995"
    PUBLIC_SECTOR_PRE_1995 = "public_sector_pre_1995"
    DEFENCE_FORCES_OFFICER = "defence_forces_officer"
    DEFENCE_FORCES_NON_OFFICER = "defence_forces_non_officer"
    GARDA_OFFICER = "garda_officer"
    HEALTH_BOARD = "health_board"
    SELF_EMPLOYED = "self_employed"
    SHARE_FISHERMAN = "share_fisherman"


class DirectorType(str, Enum):
    NONE = "none"
    EXECUTIVE = "executive"
    NON_EXECUTIVE = "non_executive"
    SHADOW = "shadow"


class EmploymentClassification(str, Enum):
    EMPLOYEE = "employee"
    SELF_EMPLOYED = "self_employed"
    PARTNER = "partner"
    CONTRACTOR = "contractor"
    CONTROLLING_DIRECTOR = "controlling_director"


class EarningsConfidence(str, Enum):
    """How far a projection from irregular earnings can be trusted."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"
    INSUFFICIENT = "INSUFFICIENT"


class EarningsTrend(str, Enum):
    INCREASING = "INCREASING"
    DECREASING = "DECREASING"
    STABLE = "STABLE"


class ProjectionMethod(str, Enum):
    ACTUAL = "ACTUAL"
    EXTRAPOLATED = "EXTRAPOLATED"
    AVERAGE_BASED = "AVERAGE_BASED"


# Explicit exports
__all__ = [
    "StagingFrequency",
    "STAGING_ANCHOR_MONTHS",
    "PayFrequency",
    "PAY_PERIODS_PER_YEAR",
    "DEFAULT_PAY_PERIODS",
    "EnrolmentEventType",
    "ENROLMENT_EVENTS",
    "EXIT_EVENTS",
    "EnrolmentState",
    "Severity",
    "SEVERITY_WEIGHTS",
    "RiskBand",
    "InsuranceClass",
    "EmploymentType",
    "DirectorType",
    "EmploymentClassification",
    "EarningsConfidence",
    "EarningsTrend",
    "ProjectionMethod",
]
