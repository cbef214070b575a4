"""Wizard steps, user actions and the step transition table."""

from enum import Enum
from typing import Dict, FrozenSet


class WizardStep(str, Enum):
    """Steps of the symptom-check wizard."""

    INPUT = "input"  # Collecting symptom tags and narrative
    FOLLOWUP = "followup"  # One follow-up question at a time
    RESULT = "result"  # Verdict displayed
    BOOKING = "booking"  # Picking a doctor, date and slot
    CONFIRMED = "confirmed"  # Appointment booked; terminal


class WizardAction(str, Enum):
    """User actions the wizard can enable for the current step."""

    ANALYZE = "analyze"
    ANSWER = "answer"
    BACK = "back"
    START_OVER = "start_over"
    BOOK_APPOINTMENT = "book_appointment"
    CALL_EMERGENCY = "call_emergency"
    CONFIRM_BOOKING = "confirm_booking"


ALLOWED_TRANSITIONS: Dict[WizardStep, FrozenSet[WizardStep]] = {
    WizardStep.INPUT: frozenset(
        {WizardStep.INPUT, WizardStep.FOLLOWUP, WizardStep.RESULT}
    ),
    WizardStep.FOLLOWUP: frozenset(
        {WizardStep.INPUT, WizardStep.FOLLOWUP, WizardStep.RESULT}
    ),
    WizardStep.RESULT: frozenset({WizardStep.INPUT, WizardStep.BOOKING}),
    WizardStep.BOOKING: frozenset(
        {WizardStep.INPUT, WizardStep.RESULT, WizardStep.CONFIRMED}
    ),
    WizardStep.CONFIRMED: frozenset(),
}


def can_transition(source: WizardStep, target: WizardStep) -> bool:
    return target in ALLOWED_TRANSITIONS.get(source, frozenset())
