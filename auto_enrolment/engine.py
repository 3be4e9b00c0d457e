# auto_enrolment/engine.py
"""
Per-employee orchestration.

The engine resolves its configuration once, then for every payroll record
runs validation (which also yields eligibility and contributions), resolves
the auto-enrolment date and, when an event store is injected, derives the
current enrolment status from history.
"""

import logging
from dataclasses import dataclass, replace
from datetime import date
from typing import Iterable, List, Optional, Union

import pandas as pd

from auto_enrolment.config.plan_rules import PlanRules, StagingConfig
from auto_enrolment.exceptions import EnrolmentEngineError
from auto_enrolment.plan_rules.contributions import ContributionBreakdown, contribution_row, phase_year_for
from auto_enrolment.plan_rules.eligibility import EligibilityOutcome
from auto_enrolment.plan_rules.enrolment import AutoEnrolmentDate, resolve_auto_enrolment_date
from auto_enrolment.plan_rules.opt_out import (
    ReEnrolmentCalculation,
    TransitionCheck,
    get_employees_due_for_re_enrolment,
    record_event,
)
from auto_enrolment.plan_rules.staging import resolve_staging_config
from auto_enrolment.schema.records import PayrollRecord, records_from_frame
from auto_enrolment.state.enrolment_status import EnrolmentStatus, build_enrolment_status, build_statuses
from auto_enrolment.state.event_log import EnrolmentEvent, EventStore
from auto_enrolment.utils.columns import (
    AUTO_ENROLMENT_DATE,
    DAYS_UNTIL_ENROLMENT,
    ELIGIBILITY_REASON,
    EMP_AGE,
    ENROLMENT_STATUS,
    ISSUE_CODES,
    ISSUE_COUNT,
    IS_ELIGIBLE,
    OPT_OUT_WINDOW_OPEN,
    READY_TO_ENROL,
    RISK_BAND,
    RISK_SCORE,
    WAITING_PERIOD_END,
)
from auto_enrolment.utils.status_enums import EnrolmentState
from auto_enrolment.validation.risk import ValidationSummary, summarize_record
from auto_enrolment.validation.security import sanitise_record

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmployeeResult:
    employee_id: Optional[str]
    eligibility: EligibilityOutcome
    contribution: ContributionBreakdown
    auto_enrolment: Optional[AutoEnrolmentDate]
    validation: ValidationSummary
    enrolment_status: Optional[EnrolmentStatus] = None


class AutoEnrolmentEngine:
    """
    Library boundary of the enrolment engine.

    Args:
        plan_rules: Thresholds, schedules and validation settings.
        staging_config: Employer staging configuration; falls back to
            ``plan_rules.staging`` and then to the default schedule.
        event_store: Enrolment history; without one no status is derived.
    """

    def __init__(
        self,
        plan_rules: Optional[PlanRules] = None,
        staging_config: Optional[StagingConfig] = None,
        event_store: Optional[EventStore] = None,
    ):
        self.plan_rules = plan_rules or PlanRules()
        self.staging_config = resolve_staging_config(staging_config or self.plan_rules.staging)
        self.event_store = event_store

    def _status_for(self, employee_id: Optional[str]) -> Optional[EnrolmentStatus]:
        if self.event_store is None or not employee_id:
            return None
        return build_enrolment_status(employee_id, self.event_store.history(employee_id))

    def evaluate(self, record: PayrollRecord, as_of: date) -> EmployeeResult:
        """Evaluate one payroll record as of ``as_of``."""
        # History is keyed by the sanitised id reported in the result
        clean_record, _ = sanitise_record(record)
        status = self._status_for(clean_record.employee_id)
        phase_year = None
        if status is not None and status.status is EnrolmentState.ENROLLED:
            phase_year = phase_year_for(status.last_enrolment_date, as_of, self.plan_rules.contributions)

        summary = summarize_record(record, as_of, self.plan_rules, phase_year)

        auto_enrolment = None
        if record.employment_start_date is not None:
            auto_enrolment = resolve_auto_enrolment_date(
                record.employment_start_date,
                self.staging_config,
                as_of,
                employee_id=clean_record.employee_id,
                cfg=self.plan_rules.auto_enrolment,
            )

        if (
            status is not None
            and not status.history
            and summary.eligibility.eligible
        ):
            status = replace(
                status,
                status=EnrolmentState.PENDING_ENROLMENT,
                status_date=auto_enrolment.auto_enrolment_date if auto_enrolment else None,
            )

        return EmployeeResult(
            employee_id=summary.employee_id,
            eligibility=summary.eligibility,
            contribution=summary.contribution,
            auto_enrolment=auto_enrolment,
            validation=summary,
            enrolment_status=status,
        )

    def evaluate_population(
        self, records: Union[Iterable[PayrollRecord], pd.DataFrame], as_of: date
    ) -> List[EmployeeResult]:
        """Evaluate every record; results keep the input order."""
        if isinstance(records, pd.DataFrame):
            records = records_from_frame(records)
        results = [self.evaluate(record, as_of) for record in records]
        eligible = sum(1 for r in results if r.eligibility.eligible)
        critical = sum(1 for r in results if r.validation.has_critical)
        logger.info(
            f"Evaluated {len(results)} employees as of {as_of}: "
            f"{eligible} eligible, {critical} with critical findings"
        )
        return results

    def record_event(self, event: EnrolmentEvent) -> TransitionCheck:
        """Append a lifecycle event if it is a legal transition."""
        return record_event(
            self._require_store(), event, self.staging_config, self.plan_rules.opt_out
        )

    def due_for_re_enrolment(self, as_of: date) -> List[ReEnrolmentCalculation]:
        """Opted-out employees in the store whose re-enrolment date has arrived."""
        statuses = build_statuses(self._require_store())
        return get_employees_due_for_re_enrolment(
            statuses, self.staging_config, as_of, self.plan_rules.opt_out
        )

    def _require_store(self) -> EventStore:
        if self.event_store is None:
            raise EnrolmentEngineError("No event store configured for this engine")
        return self.event_store


def results_frame(results: Iterable[EmployeeResult]) -> pd.DataFrame:
    """Flatten engine results into one reporting row per employee (amounts rounded)."""
    rows = []
    for result in results:
        summary = result.validation
        row = contribution_row(summary.record, result.contribution)
        ae = result.auto_enrolment
        row.update(
            {
                EMP_AGE: result.eligibility.age,
                IS_ELIGIBLE: result.eligibility.eligible,
                OPT_OUT_WINDOW_OPEN: result.eligibility.opt_out_window_open,
                ELIGIBILITY_REASON: result.eligibility.reason,
                WAITING_PERIOD_END: ae.waiting_period_end if ae else None,
                AUTO_ENROLMENT_DATE: ae.auto_enrolment_date if ae else None,
                DAYS_UNTIL_ENROLMENT: ae.days_until_enrolment if ae else None,
                READY_TO_ENROL: ae.ready_to_enrol if ae else None,
                ENROLMENT_STATUS: (
                    result.enrolment_status.status.value if result.enrolment_status else None
                ),
                RISK_SCORE: summary.risk_score,
                RISK_BAND: summary.risk_band.value,
                ISSUE_COUNT: len(summary.issues),
                ISSUE_CODES: ",".join(issue.code for issue in summary.issues),
            }
        )
        rows.append(row)
    df = pd.DataFrame(rows)
    if EMP_AGE in df.columns:
        df[EMP_AGE] = df[EMP_AGE].astype("Int64")
    return df
