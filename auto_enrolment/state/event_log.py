"""
Append-only enrolment history.

Events are never updated or removed. The store stamps each appended event
with a monotonic ``sequence`` that breaks ties between events sharing an
``event_date``; status is always re-derived from the log.
"""

import logging
from dataclasses import asdict, dataclass, replace
from datetime import date, datetime, timezone
from typing import Dict, Iterator, List, Optional, Protocol, Union, runtime_checkable

import pandas as pd

from auto_enrolment.exceptions import UnknownEventTypeError
from auto_enrolment.logging_config import AUDIT_LOGGER
from auto_enrolment.utils.columns import EMP_ID, EMPLOYER_ID, EVENT_DATE, EVENT_SEQUENCE, EVENT_TYPE, RECORDED_AT
from auto_enrolment.utils.status_enums import EnrolmentEventType

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger(AUDIT_LOGGER)

EVENT_COLUMNS = [
    EVENT_SEQUENCE,
    EMP_ID,
    EMPLOYER_ID,
    EVENT_TYPE,
    EVENT_DATE,
    "contribution_phase",
    "contribution_rate",
    "opt_out_window_end",
    "next_re_enrolment_date",
    "refund_amount",
    "notes",
    RECORDED_AT,
]


def parse_event_type(value: Union[EnrolmentEventType, str]) -> EnrolmentEventType:
    """Map a raw event type onto the closed set of lifecycle events."""
    try:
        return EnrolmentEventType(value)
    except ValueError as e:
        raise UnknownEventTypeError(f"Unknown enrolment event type: {value!r}") from e


@dataclass(frozen=True)
class EnrolmentEvent:
    """One lifecycle transition in an employee's enrolment history."""

    employee_id: str
    event_type: EnrolmentEventType
    event_date: date
    employer_id: Optional[str] = None
    sequence: Optional[int] = None
    contribution_phase: Optional[int] = None
    contribution_rate: Optional[float] = None
    opt_out_window_end: Optional[date] = None
    next_re_enrolment_date: Optional[date] = None
    refund_amount: Optional[float] = None
    notes: Optional[str] = None
    recorded_at: Optional[datetime] = None

    @property
    def sort_key(self):
        return (self.event_date, self.sequence if self.sequence is not None else -1)


@runtime_checkable
class EventStore(Protocol):
    """Interface for an append-only enrolment history store."""

    def append(self, event: EnrolmentEvent) -> EnrolmentEvent:
        """Persist ``event`` and return it stamped with its sequence number."""
        ...

    def history(self, employee_id: str) -> List[EnrolmentEvent]:
        """All events for one employee, in append order."""
        ...

    def employee_ids(self) -> List[str]:
        """Employees with at least one event, in first-seen order."""
        ...


class InMemoryEventStore:
    """Process-local EventStore, used by tests and single-run batches."""

    def __init__(self) -> None:
        self._events: List[EnrolmentEvent] = []
        self._by_employee: Dict[str, List[EnrolmentEvent]] = {}
        self._next_sequence = 1

    def append(self, event: EnrolmentEvent) -> EnrolmentEvent:
        event_type = parse_event_type(event.event_type)
        stamped = replace(
            event,
            event_type=event_type,
            sequence=self._next_sequence,
            recorded_at=event.recorded_at or datetime.now(timezone.utc),
        )
        self._next_sequence += 1
        self._events.append(stamped)
        self._by_employee.setdefault(stamped.employee_id, []).append(stamped)
        audit_logger.info(
            f"seq={stamped.sequence} employee={stamped.employee_id} "
            f"employer={stamped.employer_id} event={event_type.value} date={stamped.event_date}"
        )
        return stamped

    def history(self, employee_id: str) -> List[EnrolmentEvent]:
        return list(self._by_employee.get(employee_id, []))

    def employee_ids(self) -> List[str]:
        return list(self._by_employee)

    def __len__(self) -> int:
        return len(self._events)

    def __iter__(self) -> Iterator[EnrolmentEvent]:
        return iter(list(self._events))

    def to_frame(self) -> pd.DataFrame:
        """The full log as a DataFrame in append order."""
        rows = []
        for event in self._events:
            row = asdict(event)
            row[EVENT_TYPE] = event.event_type.value
            rows.append(row)
        return pd.DataFrame(rows, columns=EVENT_COLUMNS)


def create_enrolment_record(
    employee_id: str,
    event_type: Union[EnrolmentEventType, str],
    event_date: date,
    employer_id: Optional[str] = None,
    **details,
) -> EnrolmentEvent:
    """Build an (unsequenced) history event; ``details`` fill the optional fields."""
    return EnrolmentEvent(
        employee_id=employee_id,
        employer_id=employer_id,
        event_type=parse_event_type(event_type),
        event_date=event_date,
        **details,
    )
