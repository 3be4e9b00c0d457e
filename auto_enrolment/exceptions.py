"""
Custom exception classes for the auto-enrolment engine.

Expected policy outcomes (an opt-out outside its window, a re-enrolment that
is not yet due, a payroll row with missing fields) are returned as typed
results, never raised. These exceptions cover configuration and integrity
failures only.
"""


class EnrolmentEngineError(Exception):
    """Base exception for all engine errors."""

    pass


class ConfigurationError(EnrolmentEngineError):
    """Raised when a staging or plan-rule configuration fails validation."""

    def __init__(self, message: str, errors=None):
        super().__init__(message)
        self.errors = list(errors or [])


class HistoryOrderingError(EnrolmentEngineError):
    """Raised when enrolment history cannot be put in a single deterministic order."""

    pass


class UnknownEventTypeError(EnrolmentEngineError):
    """Raised when an enrolment history event has no mapped lifecycle state."""

    pass
