"""History, doctor directory and appointment endpoints."""

from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query, status
from typing import Any, Dict, List, Optional
from healthcheck.agents.errors import DoctorNotFoundError
from healthcheck.api.dependencies import get_current_user
from healthcheck.models.appointment import Appointment, Doctor
from healthcheck.models.messages import (
    AppointmentDetail,
    AppointmentsResponse,
    DirectBookingRequest,
    SessionSummary,
    SlotsResponse,
    UserSessionsResponse,
)
from healthcheck.models.session import HistorySummary, TriageSession
from healthcheck.models.triage import AppointmentStatus
from healthcheck.services.appointment_service import (
    AppointmentService,
    get_appointment_service,
    place_booking,
)
from healthcheck.services.doctor_service import DoctorService, get_doctor_service
from healthcheck.services.session_service import SessionService, get_session_service
from healthcheck.tools.email_client import EmailClient, get_email_client
from healthcheck.utils.scheduling import weekday_name
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1", tags=["Records"])


# ---------------------------------------------------------------------------
# Triage history
# ---------------------------------------------------------------------------


@router.get("/sessions", response_model=UserSessionsResponse)
async def list_sessions(
    limit: int = Query(10, ge=1, le=100),
    offset: int = Query(0, ge=0),
    current_user: Dict[str, Any] = Depends(get_current_user),
    sessions: SessionService = Depends(get_session_service),
):
    """List the user's stored triage sessions, newest first."""
    user_id = current_user["user_id"]
    items = await sessions.get_user_sessions(user_id, limit=limit, offset=offset)
    total = await sessions.count_user_sessions(user_id)

    return UserSessionsResponse(
        total=total,
        limit=limit,
        offset=offset,
        sessions=[SessionSummary.from_session(s) for s in items],
    )


@router.get("/sessions/summary", response_model=HistorySummary)
async def history_summary(
    current_user: Dict[str, Any] = Depends(get_current_user),
    sessions: SessionService = Depends(get_session_service),
):
    """Urgency totals, top symptoms, categories and recent activity."""
    return await sessions.get_history_summary(current_user["user_id"])


@router.get("/sessions/{session_id}", response_model=TriageSession)
async def get_session(
    session_id: str,
    current_user: Dict[str, Any] = Depends(get_current_user),
    sessions: SessionService = Depends(get_session_service),
):
    session = await sessions.get_session(session_id)

    if not session:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Session not found"
        )

    if session.user_id != current_user["user_id"]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to access this session",
        )

    return session


# ---------------------------------------------------------------------------
# Doctor directory
# ---------------------------------------------------------------------------


@router.get("/doctors", response_model=List[Doctor])
async def list_doctors(
    specialty: Optional[str] = None,
    current_user: Dict[str, Any] = Depends(get_current_user),
    doctors: DoctorService = Depends(get_doctor_service),
):
    """Available doctors, best rated first."""
    return await doctors.list_available(specialty=specialty)


@router.get("/doctors/{doctor_id}/slots", response_model=SlotsResponse)
async def doctor_slots(
    doctor_id: str,
    day: date = Query(..., alias="date"),
    current_user: Dict[str, Any] = Depends(get_current_user),
    doctors: DoctorService = Depends(get_doctor_service),
):
    slots = await doctors.get_slots(doctor_id, day)
    if slots is None:
        raise DoctorNotFoundError(f"Doctor {doctor_id} not found")

    return SlotsResponse(
        doctor_id=doctor_id, slot_date=day, weekday=weekday_name(day), slots=slots
    )


# ---------------------------------------------------------------------------
# Appointments
# ---------------------------------------------------------------------------


@router.get("/appointments", response_model=AppointmentsResponse)
async def list_appointments(
    current_user: Dict[str, Any] = Depends(get_current_user),
    appointments: AppointmentService = Depends(get_appointment_service),
    doctors: DoctorService = Depends(get_doctor_service),
):
    """The user's appointments by date, with doctor contact details."""
    items = await appointments.list_user_appointments(current_user["user_id"])

    cache: Dict[str, Optional[Doctor]] = {}
    details = []
    for appointment in items:
        if appointment.doctor_id not in cache:
            cache[appointment.doctor_id] = await doctors.get_doctor(
                appointment.doctor_id
            )
        doctor = cache[appointment.doctor_id]
        details.append(
            AppointmentDetail(
                appointment=appointment,
                doctor_name=doctor.full_name if doctor else None,
                doctor_specialty=doctor.specialty if doctor else None,
                doctor_phone=doctor.phone if doctor else None,
                doctor_email=doctor.email if doctor else None,
            )
        )

    return AppointmentsResponse(appointments=details)


@router.post(
    "/appointments", response_model=Appointment, status_code=status.HTTP_201_CREATED
)
async def book_appointment(
    request: DirectBookingRequest,
    current_user: Dict[str, Any] = Depends(get_current_user),
    appointments: AppointmentService = Depends(get_appointment_service),
    doctors: DoctorService = Depends(get_doctor_service),
    email: EmailClient = Depends(get_email_client),
):
    """Book a doctor directly from the directory, outside the wizard."""
    doctor = await doctors.get_doctor(request.doctor_id)
    if doctor is None:
        raise DoctorNotFoundError(f"Doctor {request.doctor_id} not found")

    return await place_booking(
        store=appointments,
        doctor=doctor,
        user=current_user,
        day=request.appointment_date,
        time=request.appointment_time,
        reason=request.reason or f"Consultation with {doctor.specialty}",
        email_sender=email,
    )


@router.post("/appointments/{appointment_id}/cancel", response_model=Appointment)
async def cancel_appointment(
    appointment_id: str,
    current_user: Dict[str, Any] = Depends(get_current_user),
    appointments: AppointmentService = Depends(get_appointment_service),
):
    """Cancel an appointment. Cancellation is one-way."""
    appointment = await appointments.get_appointment(appointment_id)

    if not appointment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="Appointment not found"
        )

    if appointment.user_id != current_user["user_id"]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to cancel this appointment",
        )

    if appointment.status == AppointmentStatus.CANCELLED:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Appointment is already cancelled",
        )

    if not await appointments.cancel_appointment(appointment_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Appointment is already cancelled",
        )

    return appointment.model_copy(update={"status": AppointmentStatus.CANCELLED})
