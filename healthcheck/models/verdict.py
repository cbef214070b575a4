"""Symptom input, triage verdict and follow-up answer models.

The verdict is the single canonical classifier schema: symptom tags plus an
optional narrative go in, and the verdict carries the clarification extension
(``needsClarification`` / ``clarificationMessage``). Field aliases match the
camelCase JSON produced by the classifier.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from typing import Any, List, Optional
from healthcheck.models.triage import UrgencyLevel

MAX_FOLLOW_UP_QUESTIONS = 3
DEFAULT_SPECIALIST = "General Practitioner"

GENERIC_FOLLOW_UP_QUESTIONS = [
    "How long have you been experiencing these symptoms?",
    "On a scale of 1 to 10, how severe are your symptoms right now?",
    "Have you noticed anything that makes your symptoms better or worse?",
]

GENERIC_SELF_CARE = [
    "Rest",
    "Stay hydrated",
    "Monitor your symptoms",
]


def _urgency_text(value: Any) -> str:
    if isinstance(value, UrgencyLevel):
        return value.value
    return str(value or "").strip().lower()


class SymptomInput(BaseModel):
    """Ordered, unique symptom tags plus an optional free-form narrative."""

    symptoms: List[str] = Field(default_factory=list)
    narrative: Optional[str] = None

    def add(self, tag: str) -> bool:
        """Append a tag. Blank and duplicate tags are ignored."""
        cleaned = (tag or "").strip()
        if not cleaned or cleaned in self.symptoms:
            return False
        self.symptoms.append(cleaned)
        return True

    def remove(self, tag: str) -> bool:
        cleaned = (tag or "").strip()
        if cleaned not in self.symptoms:
            return False
        self.symptoms.remove(cleaned)
        return True

    def is_empty(self) -> bool:
        return not self.symptoms and not (self.narrative or "").strip()

    def clear(self) -> None:
        self.symptoms = []
        self.narrative = None


class FollowUpAnswer(BaseModel):
    """One answered follow-up question, kept in question order."""

    question: str
    answer: str


class TriageVerdict(BaseModel):
    """Structured triage verdict. Immutable once received."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    urgency_level: UrgencyLevel = Field(..., alias="urgencyLevel")
    possible_conditions: List[str] = Field(
        default_factory=list, alias="possibleConditions"
    )
    symptom_categories: List[str] = Field(
        default_factory=list, alias="symptomCategories"
    )
    follow_up_questions: List[str] = Field(
        default_factory=list, alias="followUpQuestions"
    )
    home_remedies: List[str] = Field(default_factory=list, alias="homeRemedies")
    recommended_specialist: str = Field(
        DEFAULT_SPECIALIST, alias="recommendedSpecialist"
    )
    summary: str = ""
    precautions: List[str] = Field(default_factory=list)
    warning_signs_to_watch: List[str] = Field(
        default_factory=list, alias="warningSignsToWatch"
    )
    needs_clarification: bool = Field(False, alias="needsClarification")
    clarification_message: Optional[str] = Field(None, alias="clarificationMessage")

    @model_validator(mode="before")
    @classmethod
    def _remedies_only_for_routine(cls, data: Any) -> Any:
        if isinstance(data, dict):
            urgency = _urgency_text(
                data.get("urgencyLevel", data.get("urgency_level"))
            )
            if urgency and urgency != UrgencyLevel.ROUTINE.value:
                data = {
                    k: v
                    for k, v in data.items()
                    if k not in ("homeRemedies", "home_remedies")
                }
        return data

    @field_validator("urgency_level", mode="before")
    @classmethod
    def _normalize_urgency(cls, value: Any) -> str:
        return _urgency_text(value)

    @field_validator(
        "possible_conditions",
        "symptom_categories",
        "follow_up_questions",
        "home_remedies",
        "precautions",
        "warning_signs_to_watch",
        mode="before",
    )
    @classmethod
    def _coerce_string_list(cls, value: Any) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, (list, tuple)):
            raise ValueError("expected a list of strings")
        return [str(item).strip() for item in value if str(item).strip()]

    @field_validator("follow_up_questions")
    @classmethod
    def _cap_follow_up_questions(cls, value: List[str]) -> List[str]:
        return value[:MAX_FOLLOW_UP_QUESTIONS]

    @field_validator("recommended_specialist", mode="before")
    @classmethod
    def _default_specialist(cls, value: Any) -> str:
        text = str(value or "").strip()
        return text or DEFAULT_SPECIALIST

    @field_validator("summary", mode="before")
    @classmethod
    def _coerce_summary(cls, value: Any) -> str:
        return str(value or "").strip()

    @property
    def is_emergency(self) -> bool:
        return self.urgency_level == UrgencyLevel.EMERGENCY

    @property
    def has_follow_up(self) -> bool:
        return len(self.follow_up_questions) > 0

    def to_wire(self) -> dict:
        """Serialize with the classifier's camelCase field names."""
        return self.model_dump(by_alias=True, mode="json")


def fallback_verdict() -> TriageVerdict:
    """Generic routine verdict used whenever classification fails.

    It never leaves the user stuck: it carries self-care advice and asks for
    clarification through three generic follow-up questions.
    """
    return TriageVerdict(
        urgency_level=UrgencyLevel.ROUTINE,
        possible_conditions=[
            "Unable to analyze - please consult a healthcare professional"
        ],
        symptom_categories=["general"],
        follow_up_questions=list(GENERIC_FOLLOW_UP_QUESTIONS),
        home_remedies=list(GENERIC_SELF_CARE),
        recommended_specialist=DEFAULT_SPECIALIST,
        summary=(
            "I couldn't fully analyze your symptoms. Please consult with a "
            "healthcare professional for proper evaluation."
        ),
        precautions=["Seek medical attention if symptoms worsen"],
        warning_signs_to_watch=[
            "Worsening of symptoms",
            "New symptoms developing",
        ],
        needs_clarification=True,
        clarification_message=(
            "Could you tell us a bit more about your symptoms so we can give "
            "you better guidance?"
        ),
    )
