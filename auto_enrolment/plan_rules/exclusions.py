# auto_enrolment/plan_rules/exclusions.py
"""
Director and self-employment exclusions.

Self-employed people, partners and directors who control their company
(personally or with family holdings, or through de facto control) fall
outside auto-enrolment. Shareholdings are fractions between 0 and 1.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Tuple

from auto_enrolment.schema.records import PayrollRecord
from auto_enrolment.utils.status_enums import DirectorType, EmploymentClassification, InsuranceClass

logger = logging.getLogger(__name__)

CONTROLLING_SHAREHOLDING_THRESHOLD = 0.5


@dataclass(frozen=True)
class ShareholdingDetails:
    personal: float
    family: float
    exceeds_threshold: bool
    threshold: float


@dataclass(frozen=True)
class DirectorExclusion:
    excluded: bool
    classification: EmploymentClassification
    shareholding: ShareholdingDetails
    reasons: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def eligible(self) -> bool:
        return not self.excluded

    @property
    def reason(self) -> Optional[str]:
        return self.reasons[0] if self.reasons else None


def check_director_exclusion(
    director_type: DirectorType = DirectorType.NONE,
    shareholding: float = 0.0,
    classification: EmploymentClassification = EmploymentClassification.EMPLOYEE,
    de_facto_control: bool = False,
    related_to_shareholders: bool = False,
    family_shareholding: Optional[float] = None,
    threshold: float = CONTROLLING_SHAREHOLDING_THRESHOLD,
) -> DirectorExclusion:
    """
    Apply the exclusion rules; every rule that matches adds a reason.

    An excluded director is reclassified as a controlling director.

    Raises:
        ValueError: If ``shareholding`` is outside 0-1.
    """
    if not 0.0 <= shareholding <= 1.0:
        raise ValueError("Shareholding must be between 0 and 1")
    director_type = DirectorType(director_type)
    classification = EmploymentClassification(classification)
    is_director = director_type is not DirectorType.NONE
    reasons = []

    if classification is EmploymentClassification.SELF_EMPLOYED:
        reasons.append("Self-employed individuals are excluded from automatic enrolment (PRSI Class S)")
    if classification is EmploymentClassification.PARTNER:
        reasons.append("Partners in partnerships are excluded from automatic enrolment")
    if is_director and shareholding > threshold:
        reasons.append(
            f"Directors with >{threshold * 100:g}% shareholding are excluded "
            f"(current shareholding: {shareholding * 100:.1f}%)"
        )
    if is_director and related_to_shareholders and family_shareholding and family_shareholding > threshold:
        reasons.append(
            f"Directors with combined family shareholding >{threshold * 100:g}% are excluded "
            f"(combined family shareholding: {family_shareholding * 100:.1f}%)"
        )
    if is_director and de_facto_control:
        reasons.append("Directors with de facto control of the company are excluded")
    if director_type is DirectorType.SHADOW:
        reasons.append("Shadow directors are excluded from automatic enrolment")

    excluded = bool(reasons)
    if excluded and is_director:
        classification = EmploymentClassification.CONTROLLING_DIRECTOR

    family = family_shareholding or shareholding
    return DirectorExclusion(
        excluded=excluded,
        classification=classification,
        shareholding=ShareholdingDetails(
            personal=shareholding,
            family=family,
            exceeds_threshold=shareholding > threshold or family > threshold,
            threshold=threshold,
        ),
        reasons=tuple(reasons),
    )


def calculate_family_shareholding(
    individual: float, spouse: float = 0.0, children: float = 0.0, parents: float = 0.0
) -> float:
    """Combined family holding, capped at the whole company."""
    return min(individual + spouse + children + parents, 1.0)


def has_de_facto_control(
    shareholding: float,
    voting_rights_agreement: bool = False,
    controls_board_majority: bool = False,
    veto_rights: bool = False,
    managing_director: bool = False,
    sole_director: bool = False,
    threshold: float = CONTROLLING_SHAREHOLDING_THRESHOLD,
) -> bool:
    """Control without a majority holding: sole director, MD with over 25%, board or voting control."""
    if shareholding > threshold or sole_director:
        return True
    if managing_director and shareholding > 0.25:
        return True
    return controls_board_majority or veto_rights or voting_rights_agreement


def classify_from_insurance_class(insurance_class: InsuranceClass) -> EmploymentClassification:
    """Classes S and M are self-employed contributors; everyone else is an employee."""
    if InsuranceClass(insurance_class) in (InsuranceClass.S, InsuranceClass.M):
        return EmploymentClassification.SELF_EMPLOYED
    return EmploymentClassification.EMPLOYEE


def _parse(enum_cls, value):
    if value is None or not str(value).strip():
        return None
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        return None


def exclusion_for_record(
    record: PayrollRecord, threshold: float = CONTROLLING_SHAREHOLDING_THRESHOLD
) -> Optional[DirectorExclusion]:
    """
    Exclusion check for a payroll record.

    Records without director, shareholding or classification data are not
    assessed and give None. A shareholding outside 0-1 cannot be assessed
    and is reported as an exclusion reason of its own.
    """
    director_type = _parse(DirectorType, record.director_type)
    classification = _parse(EmploymentClassification, record.employment_classification)
    if director_type is None and classification is None and record.shareholding is None:
        return None

    shareholding = record.shareholding or 0.0
    classification = classification or EmploymentClassification.EMPLOYEE
    if not 0.0 <= shareholding <= 1.0:
        logger.warning(f"Record '{record.employee_id}': shareholding {shareholding} outside 0-1")
        return DirectorExclusion(
            excluded=True,
            classification=classification,
            shareholding=ShareholdingDetails(
                personal=shareholding,
                family=record.family_shareholding or shareholding,
                exceeds_threshold=False,
                threshold=threshold,
            ),
            reasons=(f"Shareholding {shareholding} could not be assessed; expected a fraction between 0 and 1",),
        )

    return check_director_exclusion(
        director_type=director_type or DirectorType.NONE,
        shareholding=shareholding,
        classification=classification,
        de_facto_control=record.de_facto_control,
        related_to_shareholders=record.related_to_shareholders,
        family_shareholding=record.family_shareholding,
        threshold=threshold,
    )
