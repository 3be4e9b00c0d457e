"""
Enrolment history store and status derivation.
"""

from auto_enrolment.state.enrolment_status import EnrolmentStatus, build_enrolment_status, build_statuses
from auto_enrolment.state.event_log import EnrolmentEvent, EventStore, InMemoryEventStore, create_enrolment_record

__all__ = [
    "EnrolmentEvent",
    "EventStore",
    "InMemoryEventStore",
    "create_enrolment_record",
    "EnrolmentStatus",
    "build_enrolment_status",
    "build_statuses",
]
