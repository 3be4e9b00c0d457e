"""
Definition of Pydantic config models for the auto-enrolment plan rules.
Each config model specifies the parameters needed by its corresponding engine.
Defaults reflect the 2024 auto-enrolment legislation thresholds.
"""

import logging
from datetime import date
from typing import Any, Dict, List, Mapping, Optional, Tuple

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator

from auto_enrolment.utils.date_utils import to_date
from auto_enrolment.utils.status_enums import PayFrequency, StagingFrequency

logger = logging.getLogger(__name__)


def collect_staging_config_errors(raw: Mapping[str, Any]) -> List[str]:
    """
    Check a raw staging configuration mapping and return every problem found.

    Accepts either ``days_of_month`` or the legacy ``dates`` key.
    """
    errors: List[str] = []

    frequency = raw.get("frequency")
    if frequency is None or (isinstance(frequency, str) and not frequency.strip()):
        errors.append("Frequency is required")
    else:
        try:
            StagingFrequency(frequency)
        except ValueError:
            errors.append(f"Unknown staging frequency: {frequency}")

    days = raw.get("days_of_month", raw.get("dates"))
    if isinstance(days, int) and not isinstance(days, bool):
        days = [days]
    if not days:
        errors.append("At least one date is required")
    else:
        for day in days:
            if isinstance(day, bool) or not isinstance(day, int) or day < 1 or day > 31:
                errors.append(f"Invalid day of month: {day}. Must be 1-31")

    effective_from = to_date(raw.get("effective_from"))
    effective_to = to_date(raw.get("effective_to"))
    if effective_from is not None and effective_to is not None and effective_to <= effective_from:
        errors.append("Effective to date must be after effective from date")

    return errors


class StagingConfig(BaseModel):
    """
    Employer staging-date configuration.

    Attributes:
        frequency: How often auto-enrolments are processed.
        days_of_month: Days (1-31) on which staging occurs in every anchor month.
        effective_from: First day this configuration applies.
        effective_to: Optional last boundary (exclusive) of the configuration.
        employer_id: Employer that owns the configuration.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    frequency: StagingFrequency = StagingFrequency.QUARTERLY
    days_of_month: Tuple[int, ...] = Field(
        (1,),
        validation_alias=AliasChoices("days_of_month", "dates"),
        description="Staging days of month, e.g. (1,) or (1, 15).",
    )
    effective_from: date = date(2025, 1, 1)
    effective_to: Optional[date] = None
    employer_id: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def check_raw_config(cls, data: Any) -> Any:
        if isinstance(data, Mapping):
            merged = {
                "frequency": data.get("frequency", StagingFrequency.QUARTERLY),
                "days_of_month": data.get("days_of_month", data.get("dates", (1,))),
                "effective_from": data.get("effective_from"),
                "effective_to": data.get("effective_to"),
            }
            errors = collect_staging_config_errors(merged)
            if errors:
                raise ValueError("; ".join(errors))
        return data

    @field_validator("days_of_month", mode="before")
    @classmethod
    def normalise_days(cls, value: Any) -> Tuple[int, ...]:
        if isinstance(value, int):
            value = [value]
        return tuple(sorted(set(value)))

    def is_effective_on(self, on: date) -> bool:
        """True when ``on`` falls within [effective_from, effective_to)."""
        if on < self.effective_from:
            return False
        return self.effective_to is None or on < self.effective_to


# Quarterly on the 1st of Jan, Apr, Jul and Oct
DEFAULT_STAGING_CONFIG = StagingConfig(
    frequency=StagingFrequency.QUARTERLY,
    days_of_month=(1,),
    effective_from=date(2025, 1, 1),
)


class EarningsBand(BaseModel):
    """Annual qualifying-earnings thresholds shared by eligibility and contributions."""

    model_config = ConfigDict(frozen=True)

    lower_threshold: float = Field(20_000.0, ge=0.0)
    upper_threshold: float = Field(80_000.0, ge=0.0)

    @model_validator(mode="after")
    def check_band_order(self) -> "EarningsBand":
        if self.upper_threshold < self.lower_threshold:
            raise ValueError(
                f"upper_threshold ({self.upper_threshold}) must not be below "
                f"lower_threshold ({self.lower_threshold})"
            )
        return self


class EligibilityConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_age: int = Field(23, ge=0)
    max_age: int = Field(60, ge=0)
    opt_out_cooldown_years: int = Field(
        2, ge=0, description="Full years after an opt-out before the employee is eligible again"
    )
    active_statuses: Tuple[str, ...] = ("active",)
    eligible_insurance_classes: Tuple[str, ...] = ("A", "P")
    controlling_shareholding_threshold: float = Field(
        0.5, ge=0.0, le=1.0, description="Director shareholding (fraction) above which the director is excluded"
    )

    @model_validator(mode="after")
    def check_age_range(self) -> "EligibilityConfig":
        if self.max_age < self.min_age:
            raise ValueError(f"max_age ({self.max_age}) must not be below min_age ({self.min_age})")
        return self


class AutoEnrolmentConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    waiting_period_months: int = Field(
        6, ge=0, description="Calendar months between employment start and enrolment eligibility"
    )


class ContributionStep(BaseModel):
    """One scheme year of the contribution escalation schedule."""

    model_config = ConfigDict(frozen=True)

    year: int = Field(..., ge=1)
    employee_rate: float = Field(..., ge=0.0, le=1.0)
    employer_rate: float = Field(..., ge=0.0, le=1.0)
    state_rate: float = Field(..., ge=0.0, le=1.0)


DEFAULT_ESCALATION_SCHEDULE = (
    ContributionStep(year=1, employee_rate=0.015, employer_rate=0.015, state_rate=0.005),
    ContributionStep(year=2, employee_rate=0.03, employer_rate=0.03, state_rate=0.01),
    ContributionStep(year=3, employee_rate=0.045, employer_rate=0.045, state_rate=0.015),
    ContributionStep(year=4, employee_rate=0.06, employer_rate=0.06, state_rate=0.02),
)


class ContributionConfig(BaseModel):
    """
    Configuration for the contribution escalation schedule.

    Attributes:
        schedule: Steps ordered by scheme year; rates must never decrease.
        default_phase_year: Phase used when no enrolment date is known
            (the fully escalated year reports maximum exposure).
    """

    model_config = ConfigDict(frozen=True)

    schedule: Tuple[ContributionStep, ...] = DEFAULT_ESCALATION_SCHEDULE
    default_phase_year: int = Field(4, ge=1)

    @model_validator(mode="after")
    def check_schedule(self) -> "ContributionConfig":
        if not self.schedule:
            raise ValueError("Contribution schedule must contain at least one step")
        years = [step.year for step in self.schedule]
        if any(y2 <= y1 for y1, y2 in zip(years, years[1:])):
            raise ValueError("Contribution schedule years must be strictly increasing")
        for prev, nxt in zip(self.schedule, self.schedule[1:]):
            if (
                nxt.employee_rate < prev.employee_rate
                or nxt.employer_rate < prev.employer_rate
                or nxt.state_rate < prev.state_rate
            ):
                raise ValueError(
                    f"Contribution rates must not decrease (year {prev.year} -> year {nxt.year})"
                )
        return self


class OptOutConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    window_months: int = Field(6, ge=0, description="Opt-out window length after enrolment")
    re_enrolment_years: int = Field(3, ge=0, description="Cooldown before mandatory re-enrolment")


class VariableEarningsConfig(BaseModel):
    """
    Configuration for projecting annual pay from irregular monthly earnings.

    Attributes:
        minimum_months: Fewest months of history that still give a projection.
        medium_confidence_months: Months needed for medium confidence.
        high_confidence_months: Months needed for high confidence.
        seasonality_threshold: Coefficient of variation above which pay is
            treated as seasonal.
        outlier_z_score: Months further than this many standard deviations
            from the mean are dropped.
        trend_threshold: Relative change between the first and last thirds
            of the history that counts as a trend.
    """

    model_config = ConfigDict(frozen=True)

    minimum_months: int = Field(3, ge=1)
    medium_confidence_months: int = Field(6, ge=1)
    high_confidence_months: int = Field(12, ge=1)
    seasonality_threshold: float = Field(0.3, ge=0.0)
    outlier_z_score: float = Field(2.5, gt=0.0)
    trend_threshold: float = Field(0.1, ge=0.0)

    @model_validator(mode="after")
    def check_month_thresholds(self) -> "VariableEarningsConfig":
        if not self.minimum_months <= self.medium_confidence_months <= self.high_confidence_months:
            raise ValueError(
                "Month thresholds must satisfy minimum_months <= medium_confidence_months "
                "<= high_confidence_months"
            )
        return self


class ValidationConfig(BaseModel):
    """
    Configuration for the payroll validation rules and risk bands.
    """

    model_config = ConfigDict(frozen=True)

    min_employment_age: int = 16
    max_employment_age: int = 75
    pay_period_staleness_months: int = Field(18, ge=1)
    future_period_tolerance_days: int = Field(7, ge=0)
    allowed_insurance_classes: Tuple[str, ...] = (
        "A", "B", "C", "D", "E", "H", "J", "K", "M", "S", "P",
    )
    supported_pay_frequencies: Tuple[str, ...] = tuple(f.value for f in PayFrequency)
    max_field_lengths: Dict[str, int] = Field(
        default_factory=lambda: {
            "employee_id": 50,
            "tax_identifier": 20,
            "insurance_class": 10,
            "employment_status": 50,
            "contract_type": 50,
            "currency": 3,
        }
    )
    default_max_field_length: int = 255
    ineligible_risk_points: int = 2
    risk_band_thresholds: Dict[str, int] = Field(
        default_factory=lambda: {"critical": 12, "high": 8, "medium": 3}
    )

    @model_validator(mode="after")
    def check_bounds(self) -> "ValidationConfig":
        if self.max_employment_age < self.min_employment_age:
            raise ValueError("max_employment_age must not be below min_employment_age")
        missing = {"critical", "high", "medium"} - set(self.risk_band_thresholds)
        if missing:
            raise ValueError(f"risk_band_thresholds missing bands: {sorted(missing)}")
        return self


class PlanRules(BaseModel):
    """Container for all plan rule configurations."""

    model_config = ConfigDict(frozen=True)

    staging: Optional[StagingConfig] = None
    eligibility: EligibilityConfig = Field(default_factory=EligibilityConfig)
    earnings: EarningsBand = Field(default_factory=EarningsBand)
    auto_enrolment: AutoEnrolmentConfig = Field(default_factory=AutoEnrolmentConfig)
    contributions: ContributionConfig = Field(default_factory=ContributionConfig)
    opt_out: OptOutConfig = Field(default_factory=OptOutConfig)
    validation: ValidationConfig = Field(default_factory=ValidationConfig)
    variable_earnings: VariableEarningsConfig = Field(default_factory=VariableEarningsConfig)
