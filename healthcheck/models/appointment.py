"""MongoDB schemas for doctors and appointments."""

from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional
from datetime import date, datetime
from healthcheck.models.triage import AppointmentStatus
from healthcheck.utils.scheduling import weekday_name
import uuid


class Doctor(BaseModel):
    """Bookable specialist with a weekly slot map."""

    doctor_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    full_name: str
    specialty: str
    email: Optional[str] = None
    phone: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    years_experience: Optional[int] = None
    consultation_fee: Optional[float] = None
    is_available: bool = True
    # Weekday name ("monday") -> list of slot strings ("09:00")
    available_slots: Dict[str, List[str]] = Field(default_factory=dict)
    rating: Optional[float] = Field(default=None, ge=0.0, le=5.0)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("available_slots", mode="before")
    @classmethod
    def _null_slots_as_empty(cls, value: Any) -> Any:
        return {} if value is None else value

    def slots_for(self, day: date) -> List[str]:
        """Time slots offered on the weekday of ``day``."""
        return list(self.available_slots.get(weekday_name(day), []))

    def offers_slot(self, day: date, time: str) -> bool:
        return time in self.slots_for(day)


class Appointment(BaseModel):
    """Appointment document."""

    appointment_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    doctor_id: str
    session_id: Optional[str] = None
    appointment_date: date
    appointment_time: str
    reason: Optional[str] = None
    symptoms_summary: Optional[str] = None
    status: AppointmentStatus = AppointmentStatus.CONFIRMED
    notes: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Config:
        json_schema_extra = {
            "example": {
                "appointment_id": "123e4567-e89b-12d3-a456-426614174000",
                "user_id": "user456",
                "doctor_id": "doc789",
                "appointment_date": "2026-10-19",
                "appointment_time": "09:00",
                "reason": "Symptom check: headache",
                "status": "confirmed",
            }
        }

    def to_document(self) -> dict:
        """Mongo document; BSON has no date type, so the date is stored as ISO text."""
        doc = self.model_dump()
        doc["appointment_date"] = self.appointment_date.isoformat()
        return doc
