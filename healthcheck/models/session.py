"""MongoDB schema for finalized triage sessions."""

from pydantic import BaseModel, Field
from typing import Dict, Optional, List
from datetime import datetime
from healthcheck.models.triage import SessionStatus, UrgencyLevel
from healthcheck.models.verdict import FollowUpAnswer, TriageVerdict
import uuid


class TriageSession(BaseModel):
    """Triage session document, written once per finalized verdict."""

    session_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    user_id: str
    status: SessionStatus = SessionStatus.COMPLETED
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    # Symptom input
    symptoms: List[str] = Field(default_factory=list)
    narrative: Optional[str] = None
    symptom_categories: List[str] = Field(default_factory=list)

    # Verdict (full copy plus flattened fields for history queries)
    ai_analysis: TriageVerdict
    urgency_level: UrgencyLevel
    possible_conditions: List[str] = Field(default_factory=list)
    recommended_specialist: Optional[str] = None
    home_remedies: List[str] = Field(default_factory=list)
    follow_up_questions: List[str] = Field(default_factory=list)
    follow_up_responses: Optional[List[FollowUpAnswer]] = None

    class Config:
        json_schema_extra = {
            "example": {
                "session_id": "123e4567-e89b-12d3-a456-426614174000",
                "user_id": "user123",
                "status": "completed",
                "symptoms": ["headache", "nausea"],
                "urgency_level": "routine",
                "recommended_specialist": "Neurologist",
            }
        }

    @classmethod
    def from_verdict(
        cls,
        *,
        session_id: str,
        user_id: str,
        symptoms: List[str],
        narrative: Optional[str],
        verdict: TriageVerdict,
        responses: Optional[List[FollowUpAnswer]] = None,
    ) -> "TriageSession":
        """Build the stored document for a finalized classification round."""
        status = (
            SessionStatus.EMERGENCY if verdict.is_emergency else SessionStatus.COMPLETED
        )
        return cls(
            session_id=session_id,
            user_id=user_id,
            status=status,
            symptoms=list(symptoms),
            narrative=narrative,
            symptom_categories=list(verdict.symptom_categories),
            ai_analysis=verdict,
            urgency_level=verdict.urgency_level,
            possible_conditions=list(verdict.possible_conditions),
            recommended_specialist=verdict.recommended_specialist,
            home_remedies=list(verdict.home_remedies),
            follow_up_questions=list(verdict.follow_up_questions),
            follow_up_responses=list(responses) if responses else None,
        )


class SymptomCount(BaseModel):
    symptom: str
    count: int


class DailySessionCount(BaseModel):
    date: str  # ISO date
    sessions: int


class HistorySummary(BaseModel):
    """Aggregates shown on the health history page."""

    total_sessions: int = 0
    emergency_count: int = 0
    urgent_count: int = 0
    routine_count: int = 0
    top_symptoms: List[SymptomCount] = Field(default_factory=list)
    category_distribution: Dict[str, int] = Field(default_factory=dict)
    sessions_over_time: List[DailySessionCount] = Field(default_factory=list)
