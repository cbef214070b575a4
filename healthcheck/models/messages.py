"""API request and response models."""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Any, Dict, List, Optional
from datetime import date, datetime
from healthcheck.agents.state import WizardAction, WizardStep
from healthcheck.models.appointment import Appointment, Doctor
from healthcheck.models.session import TriageSession
from healthcheck.models.verdict import FollowUpAnswer


class AnalyzeSymptomsRequest(BaseModel):
    """Body of the stateless classifier endpoint."""

    model_config = ConfigDict(populate_by_name=True)

    symptoms: List[str] = Field(default_factory=list)
    narrative: Optional[str] = Field(None, max_length=4000)
    follow_up_responses: Optional[List[FollowUpAnswer]] = Field(
        None,
        alias="followUpResponses",
        description="Ordered [{question, answer}] pairs, or a {question: answer} map",
    )

    @field_validator("follow_up_responses", mode="before")
    @classmethod
    def _accept_question_map(cls, value: Any) -> Any:
        if isinstance(value, dict):
            return [{"question": q, "answer": a} for q, a in value.items()]
        return value


class SymptomInputRequest(BaseModel):
    """Replace the wizard's symptom tags and narrative."""

    symptoms: List[str] = Field(default_factory=list)
    narrative: Optional[str] = Field(None, max_length=4000)


class AddSymptomRequest(BaseModel):
    symptom: str = Field(..., max_length=200)


class AnswerRequest(BaseModel):
    answer: str = Field(..., max_length=2000, description="Answer to the current question")


class BookingRequest(BaseModel):
    """Doctor, date and slot chosen on the booking step."""

    doctor_id: str
    appointment_date: date
    appointment_time: str = Field(..., description="Slot string, e.g. 09:00")


class DirectBookingRequest(BookingRequest):
    """Booking from the doctors page, outside any wizard."""

    reason: Optional[str] = Field(None, max_length=500)


class NoticeModel(BaseModel):
    level: str
    title: str
    message: str


class WizardSnapshot(BaseModel):
    """Serializable view of one symptom-check wizard."""

    wizard_id: str
    step: WizardStep
    symptoms: List[str] = Field(default_factory=list)
    narrative: Optional[str] = None
    verdict: Optional[Dict[str, Any]] = None
    current_question: Optional[str] = None
    question_index: Optional[int] = None
    question_count: int = 0
    current_answer: Optional[str] = None
    answers: List[FollowUpAnswer] = Field(default_factory=list)
    can_analyze: bool = False
    is_analyzing: bool = False
    is_booking: bool = False
    degraded: bool = False
    session_id: Optional[str] = None
    appointment: Optional[Appointment] = None
    actions: List[WizardAction] = Field(default_factory=list)


class WizardResponse(BaseModel):
    """Wizard snapshot plus the notices raised by the last action."""

    wizard: WizardSnapshot
    notices: List[NoticeModel] = Field(default_factory=list)


class BookingOptionsResponse(BaseModel):
    """Doctors matching the verdict and the dates that can be booked."""

    recommended_specialist: str
    doctors: List[Doctor]
    dates: List[date]


class SessionSummary(BaseModel):
    """Summary of a stored triage session."""

    session_id: str
    created_at: datetime
    status: str
    urgency_level: str
    symptoms: List[str]
    recommended_specialist: Optional[str] = None

    @classmethod
    def from_session(cls, session: TriageSession) -> "SessionSummary":
        return cls(
            session_id=session.session_id,
            created_at=session.created_at,
            status=session.status.value,
            urgency_level=session.urgency_level.value,
            symptoms=session.symptoms,
            recommended_specialist=session.recommended_specialist,
        )


class UserSessionsResponse(BaseModel):
    """Response containing user's triage history."""

    total: int
    limit: int
    offset: int
    sessions: List[SessionSummary]


class SlotsResponse(BaseModel):
    doctor_id: str
    slot_date: date
    weekday: str
    slots: List[str]


class AppointmentDetail(BaseModel):
    """Appointment with the doctor fields the appointments page shows."""

    appointment: Appointment
    doctor_name: Optional[str] = None
    doctor_specialty: Optional[str] = None
    doctor_phone: Optional[str] = None
    doctor_email: Optional[str] = None


class AppointmentsResponse(BaseModel):
    appointments: List[AppointmentDetail]
