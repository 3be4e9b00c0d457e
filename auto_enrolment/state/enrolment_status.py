"""
Enrolment status derivation.

The current status of an employee is a fold over their enrolment history,
recomputed on demand and never stored. The lifecycle tables here are also
used by the opt-out tracker to decide whether a new event may be recorded.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from auto_enrolment.exceptions import HistoryOrderingError
from auto_enrolment.state.event_log import EnrolmentEvent, EventStore, parse_event_type
from auto_enrolment.utils.status_enums import (
    ENROLMENT_EVENTS,
    EnrolmentEventType,
    EnrolmentState,
)

logger = logging.getLogger(__name__)

# State reached after each event type. Must cover every EnrolmentEventType.
EVENT_STATE: Dict[EnrolmentEventType, EnrolmentState] = {
    EnrolmentEventType.AUTO_ENROLLED: EnrolmentState.ENROLLED,
    EnrolmentEventType.RE_ENROLLED: EnrolmentState.ENROLLED,
    EnrolmentEventType.MANUALLY_ENROLLED: EnrolmentState.ENROLLED,
    EnrolmentEventType.OPTED_OUT: EnrolmentState.OPTED_OUT,
    EnrolmentEventType.EMPLOYMENT_ENDED: EnrolmentState.INELIGIBLE,
    EnrolmentEventType.BECAME_INELIGIBLE: EnrolmentState.INELIGIBLE,
}

_NOT_ENROLLED = frozenset(
    {
        EnrolmentState.NOT_STARTED,
        EnrolmentState.PENDING_ENROLMENT,
        EnrolmentState.OPTED_OUT,
        EnrolmentState.INELIGIBLE,
    }
)
_ANY_STATE = frozenset(EnrolmentState)

# States from which each event type is a legal transition
ALLOWED_FROM: Dict[EnrolmentEventType, FrozenSet[EnrolmentState]] = {
    EnrolmentEventType.AUTO_ENROLLED: frozenset(
        {EnrolmentState.NOT_STARTED, EnrolmentState.PENDING_ENROLMENT, EnrolmentState.INELIGIBLE}
    ),
    EnrolmentEventType.MANUALLY_ENROLLED: _NOT_ENROLLED,
    EnrolmentEventType.OPTED_OUT: frozenset({EnrolmentState.ENROLLED}),
    EnrolmentEventType.RE_ENROLLED: frozenset({EnrolmentState.OPTED_OUT}),
    EnrolmentEventType.EMPLOYMENT_ENDED: _ANY_STATE,
    EnrolmentEventType.BECAME_INELIGIBLE: _ANY_STATE,
}

assert set(EVENT_STATE) == set(EnrolmentEventType), "EVENT_STATE must map every event type"
assert set(ALLOWED_FROM) == set(EnrolmentEventType), "ALLOWED_FROM must cover every event type"


@dataclass(frozen=True)
class EnrolmentStatus:
    employee_id: str
    status: EnrolmentState
    status_date: Optional[date] = None
    enrolment_count: int = 0
    opt_out_count: int = 0
    last_enrolment_date: Optional[date] = None
    last_opt_out_date: Optional[date] = None
    opt_out_window_end: Optional[date] = None
    next_re_enrolment_date: Optional[date] = None
    history: Tuple[EnrolmentEvent, ...] = field(default_factory=tuple)
    anomalies: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def last_event(self) -> Optional[EnrolmentEvent]:
        return self.history[0] if self.history else None


def state_after(event_type: EnrolmentEventType) -> EnrolmentState:
    """Lifecycle state an event leads to; unknown types raise UnknownEventTypeError."""
    return EVENT_STATE[parse_event_type(event_type)]


def _type_name(event: EnrolmentEvent) -> str:
    return getattr(event.event_type, "value", str(event.event_type))


def order_history(history: Iterable[EnrolmentEvent]) -> List[EnrolmentEvent]:
    """
    Chronological order by ``(event_date, sequence)``.

    Raises:
        HistoryOrderingError: if two events share a date and neither carries a
            distinguishing sequence number.
    """
    ordered = sorted(history, key=lambda e: e.sort_key)
    for prev, nxt in zip(ordered, ordered[1:]):
        if prev.event_date == nxt.event_date and (
            prev.sequence is None or nxt.sequence is None or prev.sequence == nxt.sequence
        ):
            raise HistoryOrderingError(
                f"Events for employee {nxt.employee_id} on {nxt.event_date} "
                f"({_type_name(prev)}, {_type_name(nxt)}) have no distinct sequence numbers"
            )
    return ordered


def build_enrolment_status(employee_id: str, history: Iterable[EnrolmentEvent]) -> EnrolmentStatus:
    """
    Fold an employee's history into their current enrolment status.

    The state is that of the chronologically last event. Transitions that
    break the lifecycle are kept (the log is an audit trail) and reported in
    ``anomalies``.
    """
    ordered = order_history(history)
    if not ordered:
        return EnrolmentStatus(employee_id=employee_id, status=EnrolmentState.NOT_STARTED)

    state = EnrolmentState.NOT_STARTED
    anomalies: List[str] = []
    enrolment_count = 0
    opt_out_count = 0
    last_enrolment: Optional[EnrolmentEvent] = None
    last_opt_out: Optional[EnrolmentEvent] = None

    for event in ordered:
        event_type = parse_event_type(event.event_type)
        if state not in ALLOWED_FROM[event_type]:
            anomalies.append(
                f"{event_type.value} on {event.event_date.isoformat()} recorded while {state.value}"
            )
        if event_type in ENROLMENT_EVENTS:
            enrolment_count += 1
            last_enrolment = event
        elif event_type is EnrolmentEventType.OPTED_OUT:
            opt_out_count += 1
            last_opt_out = event
        state = EVENT_STATE[event_type]

    if anomalies:
        logger.warning(f"Enrolment history for {employee_id} has {len(anomalies)} anomalies: {anomalies}")

    return EnrolmentStatus(
        employee_id=employee_id,
        status=state,
        status_date=ordered[-1].event_date,
        enrolment_count=enrolment_count,
        opt_out_count=opt_out_count,
        last_enrolment_date=last_enrolment.event_date if last_enrolment else None,
        last_opt_out_date=last_opt_out.event_date if last_opt_out else None,
        opt_out_window_end=last_opt_out.opt_out_window_end if last_opt_out else None,
        next_re_enrolment_date=last_opt_out.next_re_enrolment_date if last_opt_out else None,
        history=tuple(reversed(ordered)),
        anomalies=tuple(anomalies),
    )


def build_statuses(store: EventStore) -> List[EnrolmentStatus]:
    """Current status of every employee with history in ``store``."""
    return [build_enrolment_status(emp_id, store.history(emp_id)) for emp_id in store.employee_ids()]
