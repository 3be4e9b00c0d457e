# auto_enrolment/plan_rules/opt_out.py
"""
Opt-out and re-enrolment tracking.

An enrolled employee may opt out within a window of calendar months after
enrolment and receives a refund of employee and employer contributions
(state contributions are retained). Opted-out employees are re-enrolled
after a cooldown, on the next staging date once the cooldown has run.

Policy rejections (an opt-out after the window closed, a re-enrolment that
is not yet due) are returned as typed results, never raised.
"""

import logging
import math
from dataclasses import dataclass, replace
from datetime import date
from typing import Iterable, List, Optional

import pandas as pd

from auto_enrolment.config.plan_rules import OptOutConfig, StagingConfig
from auto_enrolment.plan_rules.staging import next_staging_date, resolve_staging_config
from auto_enrolment.state.enrolment_status import (
    ALLOWED_FROM,
    EnrolmentStatus,
    build_enrolment_status,
    state_after,
)
from auto_enrolment.state.event_log import EnrolmentEvent, EventStore, parse_event_type
from auto_enrolment.utils.columns import (
    EMP_ID,
    OPT_OUT_DATE,
    OPT_OUT_WINDOW_END,
    RE_ENROLMENT_CYCLE,
    RE_ENROLMENT_DATE,
    RE_ENROLMENT_TARGET,
)
from auto_enrolment.utils.date_utils import add_months, add_years, days_between, to_date
from auto_enrolment.utils.decimal_helpers import to_money
from auto_enrolment.utils.status_enums import EnrolmentEventType, EnrolmentState

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContributionTotals:
    """Contributions paid so far, by contributor."""

    employee: float = 0.0
    employer: float = 0.0
    state: float = 0.0


@dataclass(frozen=True)
class OptOutValidation:
    is_valid: bool
    reason: str
    window_end_date: date
    days_remaining: Optional[int] = None
    days_overdue: Optional[int] = None
    refund_amount: Optional[float] = None
    next_re_enrolment_date: Optional[date] = None


@dataclass(frozen=True)
class ReEnrolmentCalculation:
    employee_id: str
    is_due: bool
    re_enrolment_date: date
    target_date: date
    days_until: int
    last_opt_out_date: date
    opt_out_cycles: int = 1


@dataclass(frozen=True)
class TransitionCheck:
    allowed: bool
    reason: Optional[str] = None
    resulting_state: Optional[EnrolmentState] = None
    event: Optional[EnrolmentEvent] = None


def opt_out_window_end(enrolment_date: date, cfg: Optional[OptOutConfig] = None) -> date:
    cfg = cfg or OptOutConfig()
    return add_months(to_date(enrolment_date), cfg.window_months)


def calculate_opt_out_refund(employee_contributions: float, employer_contributions: float) -> float:
    """Refund due on opt-out: employee plus employer contributions, to the cent."""
    return float(to_money(employee_contributions + employer_contributions))


def is_within_opt_out_window(
    enrolment_date: date, check_date: date, cfg: Optional[OptOutConfig] = None
) -> bool:
    """True when ``check_date`` is on or before the last day of the opt-out window."""
    return to_date(check_date) <= opt_out_window_end(enrolment_date, cfg)


def validate_opt_out(
    enrolment_date: date,
    request_date: date,
    contributions: Optional[ContributionTotals] = None,
    cfg: Optional[OptOutConfig] = None,
) -> OptOutValidation:
    """
    Check an opt-out request against the window that opened at enrolment.

    Both dates are reduced to calendar days, so a request at any time on the
    last day of the window is still valid.

    Args:
        enrolment_date: Date the employee was enrolled.
        request_date: Date the opt-out was requested.
        contributions: Amounts paid so far, used for the refund.
        cfg: Window and cooldown lengths.
    """
    cfg = cfg or OptOutConfig()
    contributions = contributions or ContributionTotals()
    enrolled_on = to_date(enrolment_date)
    requested_on = to_date(request_date)
    window_end = opt_out_window_end(enrolled_on, cfg)

    if requested_on > window_end:
        overdue = days_between(window_end, requested_on)
        return OptOutValidation(
            is_valid=False,
            reason=(
                f"Opt-out window closed {overdue} days ago. "
                f"Window ended on {window_end.isoformat()}."
            ),
            window_end_date=window_end,
            days_overdue=overdue,
        )

    remaining = days_between(requested_on, window_end)
    return OptOutValidation(
        is_valid=True,
        reason=f"Opt-out is valid. {remaining} days remaining in opt-out window.",
        window_end_date=window_end,
        days_remaining=remaining,
        refund_amount=calculate_opt_out_refund(contributions.employee, contributions.employer),
        next_re_enrolment_date=add_years(enrolled_on, cfg.re_enrolment_years),
    )


def calculate_re_enrolment_date(
    employee_id: str,
    last_opt_out_date: date,
    config: Optional[StagingConfig],
    as_of: date,
    cfg: Optional[OptOutConfig] = None,
) -> ReEnrolmentCalculation:
    """
    Mandatory re-enrolment date after an opt-out.

    The cooldown is added to the opt-out date and the result snapped forward
    to the next staging date; the re-enrolment is due once that date is
    on or before ``as_of``.
    """
    cfg = cfg or OptOutConfig()
    opted_out_on = to_date(last_opt_out_date)
    target = add_years(opted_out_on, cfg.re_enrolment_years)
    re_enrolment_date = next_staging_date(config, target).date
    return ReEnrolmentCalculation(
        employee_id=employee_id,
        is_due=re_enrolment_date <= as_of,
        re_enrolment_date=re_enrolment_date,
        target_date=target,
        days_until=days_between(as_of, re_enrolment_date),
        last_opt_out_date=opted_out_on,
    )


def get_employees_due_for_re_enrolment(
    statuses: Iterable[EnrolmentStatus],
    config: Optional[StagingConfig],
    as_of: date,
    cfg: Optional[OptOutConfig] = None,
) -> List[ReEnrolmentCalculation]:
    """Opted-out employees whose re-enrolment date has arrived, in input order."""
    staging_cfg = resolve_staging_config(config)
    due = []
    for status in statuses:
        if status.status is not EnrolmentState.OPTED_OUT or status.last_opt_out_date is None:
            continue
        calc = calculate_re_enrolment_date(
            status.employee_id, status.last_opt_out_date, staging_cfg, as_of, cfg
        )
        if calc.is_due:
            due.append(replace(calc, opt_out_cycles=status.opt_out_count))
    logger.info(f"{len(due)} employees due for re-enrolment as of {as_of}")
    return due


def re_enrolment_projection(
    employee_id: str,
    initial_opt_out_date: date,
    years: int,
    config: Optional[StagingConfig] = None,
    cfg: Optional[OptOutConfig] = None,
) -> pd.DataFrame:
    """
    Re-enrolment schedule for an employee who keeps opting out.

    Each cycle re-enrols on the staging-snapped date after the cooldown and
    assumes the employee opts out again on the last day of the new window,
    which starts the next cycle. Enough cycles are produced to cover
    ``years`` (rounded up to whole cooldowns).

    Raises:
        ValueError: If the configured cooldown is zero years.
    """
    cfg = cfg or OptOutConfig()
    if cfg.re_enrolment_years <= 0:
        raise ValueError("Re-enrolment projection needs a cooldown of at least one year")
    staging_cfg = resolve_staging_config(config)
    cycles = math.ceil(years / cfg.re_enrolment_years)

    rows = []
    opted_out_on = to_date(initial_opt_out_date)
    for cycle in range(1, cycles + 1):
        target = add_years(opted_out_on, cfg.re_enrolment_years)
        re_enrolment_date = next_staging_date(staging_cfg, target).date
        window_end = opt_out_window_end(re_enrolment_date, cfg)
        rows.append(
            {
                EMP_ID: employee_id,
                RE_ENROLMENT_CYCLE: cycle,
                OPT_OUT_DATE: opted_out_on,
                RE_ENROLMENT_TARGET: target,
                RE_ENROLMENT_DATE: re_enrolment_date,
                OPT_OUT_WINDOW_END: window_end,
            }
        )
        opted_out_on = window_end
    columns = [EMP_ID, RE_ENROLMENT_CYCLE, OPT_OUT_DATE, RE_ENROLMENT_TARGET, RE_ENROLMENT_DATE, OPT_OUT_WINDOW_END]
    return pd.DataFrame(rows, columns=columns)


def check_transition(
    status: EnrolmentStatus,
    event_type: EnrolmentEventType,
    event_date: date,
    staging_config: Optional[StagingConfig] = None,
    cfg: Optional[OptOutConfig] = None,
) -> TransitionCheck:
    """
    Decide whether ``event_type`` on ``event_date`` is a legal next step.

    Returns a TransitionCheck; ``allowed`` is False with a reason for every
    rejection.
    """
    event_type = parse_event_type(event_type)
    event_date = to_date(event_date)

    if status.status_date is not None and event_date < status.status_date:
        return TransitionCheck(
            allowed=False,
            reason=(
                f"{event_type.value} on {event_date.isoformat()} precedes the last recorded "
                f"event on {status.status_date.isoformat()}"
            ),
        )

    if status.status not in ALLOWED_FROM[event_type]:
        return TransitionCheck(
            allowed=False,
            reason=f"{event_type.value} is not allowed while {status.status.value}",
        )

    if event_type is EnrolmentEventType.OPTED_OUT:
        if status.last_enrolment_date is None:
            return TransitionCheck(allowed=False, reason="No enrolment on record to opt out of")
        validation = validate_opt_out(status.last_enrolment_date, event_date, cfg=cfg)
        if not validation.is_valid:
            return TransitionCheck(allowed=False, reason=validation.reason)

    if event_type is EnrolmentEventType.RE_ENROLLED:
        if status.last_opt_out_date is None:
            return TransitionCheck(allowed=False, reason="No opt-out on record to re-enrol from")
        calc = calculate_re_enrolment_date(
            status.employee_id, status.last_opt_out_date, staging_config, event_date, cfg
        )
        if not calc.is_due:
            return TransitionCheck(
                allowed=False,
                reason=f"Re-enrolment is not due until {calc.re_enrolment_date.isoformat()}",
            )

    return TransitionCheck(allowed=True, resulting_state=state_after(event_type))


def record_event(
    store: EventStore,
    event: EnrolmentEvent,
    staging_config: Optional[StagingConfig] = None,
    cfg: Optional[OptOutConfig] = None,
) -> TransitionCheck:
    """
    Append ``event`` to ``store`` if it is a legal transition.

    Opt-out events are completed with their window end and re-enrolment date
    when the caller left them blank. The returned check carries the stored
    event when the append happened.
    """
    event_type = parse_event_type(event.event_type)
    status = build_enrolment_status(event.employee_id, store.history(event.employee_id))
    check = check_transition(status, event_type, event.event_date, staging_config, cfg)
    if not check.allowed:
        logger.info(f"Rejected {event_type.value} for {event.employee_id}: {check.reason}")
        return check

    if event_type is EnrolmentEventType.OPTED_OUT:
        event = replace(
            event,
            opt_out_window_end=event.opt_out_window_end
            or opt_out_window_end(status.last_enrolment_date, cfg),
            next_re_enrolment_date=event.next_re_enrolment_date
            or calculate_re_enrolment_date(
                event.employee_id, event.event_date, staging_config, event.event_date, cfg
            ).re_enrolment_date,
        )

    stored = store.append(event)
    return replace(check, event=stored)
