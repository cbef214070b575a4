"""Appointment store and the shared booking procedure."""

from datetime import date, datetime
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol
from healthcheck.agents.errors import BookingFailedError, SlotUnavailableError
from healthcheck.config.database import get_appointments_collection
from healthcheck.models.appointment import Appointment, Doctor
from healthcheck.models.triage import AppointmentStatus
from healthcheck.utils.scheduling import weekday_name
import logging

logger = logging.getLogger(__name__)


class AppointmentStore(Protocol):
    async def create_appointment(self, appointment: Appointment) -> Appointment: ...


class ConfirmationSender(Protocol):
    async def send_appointment_confirmation(self, **kwargs: Any) -> Dict[str, Any]: ...


class AppointmentService:
    """Service for writing, listing and cancelling appointments."""

    def __init__(
        self,
        collection_getter: Callable[[], Awaitable] = get_appointments_collection,
    ):
        self._collection = collection_getter

    async def create_appointment(self, appointment: Appointment) -> Appointment:
        collection = await self._collection()
        await collection.insert_one(appointment.to_document())

        logger.info(
            f"Created appointment {appointment.appointment_id} for user "
            f"{appointment.user_id} with doctor {appointment.doctor_id} "
            f"on {appointment.appointment_date} {appointment.appointment_time}"
        )
        return appointment

    async def get_appointment(self, appointment_id: str) -> Optional[Appointment]:
        collection = await self._collection()
        doc = await collection.find_one({"appointment_id": appointment_id})

        if doc:
            return Appointment(**doc)
        return None

    async def list_user_appointments(self, user_id: str) -> List[Appointment]:
        """
        Get a user's appointments in date order.

        Args:
            user_id: User identifier

        Returns:
            List of Appointment, earliest first
        """
        collection = await self._collection()
        cursor = collection.find({"user_id": user_id}).sort(
            [("appointment_date", 1), ("appointment_time", 1)]
        )

        appointments = []
        async for doc in cursor:
            appointments.append(Appointment(**doc))

        return appointments

    async def cancel_appointment(self, appointment_id: str) -> bool:
        """
        Mark an appointment as cancelled. The record is kept.

        Returns:
            True if the appointment moved to cancelled, False if it was
            missing or already cancelled
        """
        collection = await self._collection()
        result = await collection.update_one(
            {
                "appointment_id": appointment_id,
                "status": {"$ne": AppointmentStatus.CANCELLED.value},
            },
            {
                "$set": {
                    "status": AppointmentStatus.CANCELLED.value,
                    "updated_at": datetime.utcnow(),
                }
            },
        )

        if result.modified_count > 0:
            logger.info(f"Cancelled appointment {appointment_id}")
            return True
        return False


def format_long_date(day: date) -> str:
    """``October 19, 2026``"""
    return f"{day:%B} {day.day}, {day.year}"


async def send_confirmation_email(
    sender: Optional[ConfirmationSender],
    user: Dict[str, Any],
    doctor: Doctor,
    appointment: Appointment,
) -> bool:
    """Best-effort confirmation e-mail. Failures are logged, never raised."""
    if sender is None:
        return False
    try:
        await sender.send_appointment_confirmation(
            to=user.get("email", ""),
            user_name=user.get("full_name") or user.get("username"),
            doctor_name=doctor.full_name,
            specialty=doctor.specialty,
            appointment_date=format_long_date(appointment.appointment_date),
            appointment_time=appointment.appointment_time,
            reason=appointment.reason,
        )
    except Exception as e:
        logger.warning(
            f"Confirmation e-mail for appointment {appointment.appointment_id} "
            f"failed: {e}"
        )
        return False
    return True


async def place_booking(
    *,
    store: AppointmentStore,
    doctor: Doctor,
    user: Dict[str, Any],
    day: date,
    time: str,
    reason: str,
    symptoms_summary: Optional[str] = None,
    session_id: Optional[str] = None,
    email_sender: Optional[ConfirmationSender] = None,
) -> Appointment:
    """
    Validate the slot, write a confirmed appointment and send the e-mail.

    Args:
        store: Appointment store to write to
        doctor: Doctor being booked
        user: Authenticated user dict (``user_id``, ``email``)
        day: Appointment date
        time: Slot string, must be offered on the weekday of ``day``
        reason: Appointment reason
        symptoms_summary: Verdict summary, for wizard bookings
        session_id: Finalized triage session the booking follows from
        email_sender: Confirmation sender; None skips the e-mail

    Returns:
        The stored Appointment

    Raises:
        SlotUnavailableError: Doctor unavailable or slot not offered that day
        BookingFailedError: The appointment write failed
    """
    if not doctor.is_available:
        raise SlotUnavailableError(f"{doctor.full_name} is not accepting bookings")
    if not doctor.offers_slot(day, time):
        raise SlotUnavailableError(
            f"{doctor.full_name} has no {time} slot on {weekday_name(day).title()}s"
        )

    appointment = Appointment(
        user_id=user["user_id"],
        doctor_id=doctor.doctor_id,
        session_id=session_id,
        appointment_date=day,
        appointment_time=time,
        reason=reason,
        symptoms_summary=symptoms_summary,
        status=AppointmentStatus.CONFIRMED,
    )

    try:
        await store.create_appointment(appointment)
    except Exception as e:
        logger.error(f"Appointment write failed for user {user['user_id']}: {e}")
        raise BookingFailedError(
            "Failed to book appointment. Please try again."
        ) from e

    await send_confirmation_email(email_sender, user, doctor, appointment)
    return appointment


# Global service instance
_appointment_service: Optional[AppointmentService] = None


def get_appointment_service() -> AppointmentService:
    """Get or create AppointmentService instance."""
    global _appointment_service
    if _appointment_service is None:
        _appointment_service = AppointmentService()
    return _appointment_service
