"""Triage enums shared by the wizard, the stores and the API."""

from enum import Enum


class UrgencyLevel(str, Enum):
    """Triage urgency levels returned by the symptom classifier."""

    EMERGENCY = "emergency"  # Call emergency services now
    URGENT = "urgent"  # Same-day medical attention
    ROUTINE = "routine"  # Home care or a scheduled appointment


class SessionStatus(str, Enum):
    """Status of a persisted triage session."""

    ACTIVE = "active"
    COMPLETED = "completed"
    EMERGENCY = "emergency"


class AppointmentStatus(str, Enum):
    """Appointment lifecycle. Cancellation is one-way."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


class NoticeLevel(str, Enum):
    """Severity of a user-facing notice."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
