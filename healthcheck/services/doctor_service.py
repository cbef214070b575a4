"""Doctor directory service."""

from datetime import date
from typing import Awaitable, Callable, Iterable, List, Optional
from healthcheck.config.database import get_doctors_collection
from healthcheck.models.appointment import Doctor
from healthcheck.models.verdict import DEFAULT_SPECIALIST
import logging

logger = logging.getLogger(__name__)


def matches_specialist(doctor: Doctor, specialist: str) -> bool:
    """Case-insensitive substring match in either direction.

    General practitioners always match.
    """
    specialty = doctor.specialty.lower()
    wanted = (specialist or "").lower()
    return (
        wanted in specialty
        or specialty in wanted
        or doctor.specialty == DEFAULT_SPECIALIST
    )


def filter_for_specialist(doctors: Iterable[Doctor], specialist: str) -> List[Doctor]:
    """Doctors suited to a verdict's recommended specialist, order preserved."""
    return [d for d in doctors if matches_specialist(d, specialist)]


class DoctorService:
    """Read-only access to bookable doctors."""

    def __init__(
        self, collection_getter: Callable[[], Awaitable] = get_doctors_collection
    ):
        self._collection = collection_getter

    async def list_available(self, specialty: Optional[str] = None) -> List[Doctor]:
        """
        List available doctors, best rated first.

        Args:
            specialty: Optional exact specialty filter

        Returns:
            List of Doctor
        """
        query = {"is_available": True}
        if specialty:
            query["specialty"] = specialty

        collection = await self._collection()
        cursor = collection.find(query).sort("rating", -1)

        doctors = []
        async for doc in cursor:
            doctors.append(Doctor(**doc))

        logger.debug(f"Loaded {len(doctors)} available doctor(s) (specialty={specialty})")
        return doctors

    async def get_doctor(self, doctor_id: str) -> Optional[Doctor]:
        collection = await self._collection()
        doc = await collection.find_one({"doctor_id": doctor_id})

        if doc:
            return Doctor(**doc)
        return None

    async def list_for_specialist(self, specialist: str) -> List[Doctor]:
        return filter_for_specialist(await self.list_available(), specialist)

    async def get_slots(self, doctor_id: str, day: date) -> Optional[List[str]]:
        """Slots offered on ``day``, or None if the doctor does not exist."""
        doctor = await self.get_doctor(doctor_id)
        if doctor is None:
            return None
        return doctor.slots_for(day)


# Global service instance
_doctor_service: Optional[DoctorService] = None


def get_doctor_service() -> DoctorService:
    """Get or create DoctorService instance."""
    global _doctor_service
    if _doctor_service is None:
        _doctor_service = DoctorService()
    return _doctor_service
