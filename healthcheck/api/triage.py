"""Symptom-check wizard endpoints.

Each wizard is an in-memory controller owned by the authenticated user.
Routes forward one user action to the controller and return the wizard
snapshot together with any notices the action raised. Disabled actions and
illegal step changes surface as 409 through the app's TriageFlowError
handler.
"""

from fastapi import APIRouter, Depends, HTTPException, status
from typing import Any, Dict
from healthcheck.api.dependencies import get_current_user
from healthcheck.models.messages import (
    AddSymptomRequest,
    AnswerRequest,
    BookingOptionsResponse,
    BookingRequest,
    NoticeModel,
    SymptomInputRequest,
    WizardResponse,
)
from healthcheck.services.wizard_registry import (
    WizardEntry,
    WizardNotFoundError,
    WizardRegistry,
    get_wizard_registry,
)
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/triage/wizards", tags=["Triage wizard"])


def _entry(
    wizard_id: str, user: Dict[str, Any], registry: WizardRegistry
) -> WizardEntry:
    try:
        return registry.get(wizard_id, user["user_id"])
    except WizardNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Wizard not found"
        )


def _respond(entry: WizardEntry) -> WizardResponse:
    return WizardResponse(
        wizard=entry.controller.snapshot(),
        notices=[
            NoticeModel(level=n.level.value, title=n.title, message=n.message)
            for n in entry.notices.drain()
        ],
    )


@router.post("", response_model=WizardResponse, status_code=status.HTTP_201_CREATED)
async def create_wizard(
    current_user: Dict[str, Any] = Depends(get_current_user),
    registry: WizardRegistry = Depends(get_wizard_registry),
):
    """Start a new symptom check on the input step."""
    return _respond(registry.create(current_user))


@router.get("/{wizard_id}", response_model=WizardResponse)
async def get_wizard(
    wizard_id: str,
    current_user: Dict[str, Any] = Depends(get_current_user),
    registry: WizardRegistry = Depends(get_wizard_registry),
):
    return _respond(_entry(wizard_id, current_user, registry))


@router.delete("/{wizard_id}", status_code=status.HTTP_204_NO_CONTENT)
async def discard_wizard(
    wizard_id: str,
    current_user: Dict[str, Any] = Depends(get_current_user),
    registry: WizardRegistry = Depends(get_wizard_registry),
):
    entry = _entry(wizard_id, current_user, registry)
    await entry.controller.wait_for_persistence()
    registry.discard(wizard_id, current_user["user_id"])


@router.put("/{wizard_id}/input", response_model=WizardResponse)
async def replace_input(
    wizard_id: str,
    request: SymptomInputRequest,
    current_user: Dict[str, Any] = Depends(get_current_user),
    registry: WizardRegistry = Depends(get_wizard_registry),
):
    """Replace all symptom tags and the narrative."""
    entry = _entry(wizard_id, current_user, registry)
    entry.controller.replace_input(request.symptoms, request.narrative)
    return _respond(entry)


@router.post("/{wizard_id}/symptoms", response_model=WizardResponse)
async def add_symptom(
    wizard_id: str,
    request: AddSymptomRequest,
    current_user: Dict[str, Any] = Depends(get_current_user),
    registry: WizardRegistry = Depends(get_wizard_registry),
):
    entry = _entry(wizard_id, current_user, registry)
    entry.controller.add_symptom(request.symptom)
    return _respond(entry)


@router.delete("/{wizard_id}/symptoms/{symptom:path}", response_model=WizardResponse)
async def remove_symptom(
    wizard_id: str,
    symptom: str,
    current_user: Dict[str, Any] = Depends(get_current_user),
    registry: WizardRegistry = Depends(get_wizard_registry),
):
    entry = _entry(wizard_id, current_user, registry)
    entry.controller.remove_symptom(symptom)
    return _respond(entry)


@router.post("/{wizard_id}/analyze", response_model=WizardResponse)
async def analyze(
    wizard_id: str,
    current_user: Dict[str, Any] = Depends(get_current_user),
    registry: WizardRegistry = Depends(get_wizard_registry),
):
    """
    Classify the entered symptoms.

    Moves to the follow-up step when the verdict asks questions, otherwise
    to the result step.
    """
    entry = _entry(wizard_id, current_user, registry)
    await entry.controller.analyze()
    return _respond(entry)


@router.post("/{wizard_id}/answer", response_model=WizardResponse)
async def answer(
    wizard_id: str,
    request: AnswerRequest,
    current_user: Dict[str, Any] = Depends(get_current_user),
    registry: WizardRegistry = Depends(get_wizard_registry),
):
    """Answer the current follow-up question. The last answer yields the result."""
    entry = _entry(wizard_id, current_user, registry)
    await entry.controller.answer(request.answer)
    return _respond(entry)


@router.post("/{wizard_id}/back", response_model=WizardResponse)
async def back(
    wizard_id: str,
    current_user: Dict[str, Any] = Depends(get_current_user),
    registry: WizardRegistry = Depends(get_wizard_registry),
):
    entry = _entry(wizard_id, current_user, registry)
    entry.controller.back()
    return _respond(entry)


@router.post("/{wizard_id}/start-over", response_model=WizardResponse)
async def start_over(
    wizard_id: str,
    current_user: Dict[str, Any] = Depends(get_current_user),
    registry: WizardRegistry = Depends(get_wizard_registry),
):
    entry = _entry(wizard_id, current_user, registry)
    entry.controller.start_over()
    return _respond(entry)


@router.post("/{wizard_id}/booking", response_model=WizardResponse)
async def open_booking(
    wizard_id: str,
    current_user: Dict[str, Any] = Depends(get_current_user),
    registry: WizardRegistry = Depends(get_wizard_registry),
):
    """Move from the result to the booking step. Not offered for emergencies."""
    entry = _entry(wizard_id, current_user, registry)
    entry.controller.open_booking()
    return _respond(entry)


@router.get("/{wizard_id}/doctors", response_model=BookingOptionsResponse)
async def booking_options(
    wizard_id: str,
    current_user: Dict[str, Any] = Depends(get_current_user),
    registry: WizardRegistry = Depends(get_wizard_registry),
):
    """Doctors matching the recommended specialist and the bookable dates."""
    controller = _entry(wizard_id, current_user, registry).controller
    doctors = await controller.available_doctors()
    return BookingOptionsResponse(
        recommended_specialist=controller.verdict.recommended_specialist,
        doctors=doctors,
        dates=controller.available_dates(),
    )


@router.post("/{wizard_id}/book", response_model=WizardResponse)
async def book(
    wizard_id: str,
    request: BookingRequest,
    current_user: Dict[str, Any] = Depends(get_current_user),
    registry: WizardRegistry = Depends(get_wizard_registry),
):
    """Book the chosen doctor and slot.

    Success ends the wizard: the confirmed snapshot is returned once and the
    wizard is released after its session write settles.
    """
    entry = _entry(wizard_id, current_user, registry)
    await entry.controller.book(
        request.doctor_id, request.appointment_date, request.appointment_time
    )
    response = _respond(entry)
    await entry.controller.wait_for_persistence()
    registry.release(wizard_id)
    return response
