"""Exceptions raised by the triage wizard and the booking flow."""


class TriageFlowError(Exception):
    """Base class for wizard errors surfaced to API callers."""

    status_code = 400
    error_code = "TRIAGE_FLOW_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ActionDisabledError(TriageFlowError):
    """The requested action is not enabled in the current wizard state."""

    status_code = 409
    error_code = "ACTION_DISABLED"


class InvalidTransitionError(TriageFlowError):
    """A step change not present in the transition table."""

    status_code = 409
    error_code = "INVALID_TRANSITION"


class SlotUnavailableError(TriageFlowError):
    status_code = 422
    error_code = "SLOT_UNAVAILABLE"


class BookingFailedError(TriageFlowError):
    """The appointment could not be written."""

    status_code = 503
    error_code = "BOOKING_FAILED"


class DoctorNotFoundError(TriageFlowError):
    status_code = 404
    error_code = "DOCTOR_NOT_FOUND"
