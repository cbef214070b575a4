from __future__ import annotations

import asyncio
from datetime import date
from typing import Any, Dict, List, Optional

from langchain_core.messages import AIMessage

from healthcheck.agents.triage_controller import TriageSessionController
from healthcheck.models.appointment import Appointment, Doctor
from healthcheck.models.session import TriageSession
from healthcheck.models.verdict import FollowUpAnswer, TriageVerdict
from healthcheck.services.notices import NoticeBuffer

MONDAY = date(2024, 1, 1)
TUESDAY = date(2024, 1, 2)

USER = {"user_id": "user-a", "email": "a@example.com", "full_name": "Alex A", "role": ""}


def make_verdict(
    urgency: str = "routine",
    questions: tuple = (),
    specialist: str = "General Practitioner",
    needs_clarification: bool = False,
    **extra: Any,
) -> TriageVerdict:
    data = {
        "urgencyLevel": urgency,
        "possibleConditions": ["Common cold"],
        "symptomCategories": ["respiratory"],
        "followUpQuestions": list(questions),
        "homeRemedies": ["Rest"],
        "recommendedSpecialist": specialist,
        "summary": f"{urgency} summary",
        "precautions": ["Stay hydrated"],
        "warningSignsToWatch": ["High fever"],
        "needsClarification": needs_clarification,
    }
    data.update(extra)
    return TriageVerdict.model_validate(data)


def make_doctor(
    doctor_id: str,
    specialty: str = "General Practitioner",
    slots: Optional[Dict[str, List[str]]] = None,
    rating: float = 4.5,
    is_available: bool = True,
) -> Doctor:
    return Doctor(
        doctor_id=doctor_id,
        full_name=f"Dr. {doctor_id.title()}",
        specialty=specialty,
        email=f"{doctor_id}@clinic.test",
        available_slots=slots if slots is not None else {"monday": ["09:00", "10:00"]},
        rating=rating,
        is_available=is_available,
    )


class FakeClassifier:
    """Returns queued results in order; the last one repeats."""

    def __init__(self, *results: Any):
        self.results = list(results) or [make_verdict()]
        self.calls: List[Dict[str, Any]] = []
        self.gate: Optional[asyncio.Event] = None

    async def classify(
        self,
        symptoms: List[str],
        narrative: Optional[str] = None,
        responses: Optional[List[FollowUpAnswer]] = None,
    ) -> TriageVerdict:
        self.calls.append(
            {
                "symptoms": list(symptoms),
                "narrative": narrative,
                "responses": list(responses) if responses else None,
            }
        )
        if self.gate is not None:
            await self.gate.wait()
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


class FakeLLM:
    """Stands in for a chat model: returns fixed content or raises."""

    def __init__(self, content: str = "", error: Optional[Exception] = None):
        self.content = content
        self.error = error
        self.messages: List[Any] = []

    async def ainvoke(self, messages):
        self.messages = list(messages)
        if self.error is not None:
            raise self.error
        return AIMessage(content=self.content)


class FakeSessionStore:
    def __init__(self, fail: bool = False):
        self.sessions: List[TriageSession] = []
        self.fail = fail

    async def insert_session(self, session: TriageSession) -> TriageSession:
        if self.fail:
            raise ConnectionError("mongo down")
        self.sessions.append(session)
        return session


class FakeDoctorDirectory:
    def __init__(self, *doctors: Doctor):
        self.doctors = list(doctors)

    async def list_available(self, specialty: Optional[str] = None) -> List[Doctor]:
        found = [
            d
            for d in self.doctors
            if d.is_available and (specialty is None or d.specialty == specialty)
        ]
        return sorted(found, key=lambda d: d.rating or 0, reverse=True)

    async def get_doctor(self, doctor_id: str) -> Optional[Doctor]:
        for doctor in self.doctors:
            if doctor.doctor_id == doctor_id:
                return doctor
        return None


class FakeAppointmentStore:
    def __init__(self, fail: bool = False):
        self.appointments: List[Appointment] = []
        self.fail = fail

    async def create_appointment(self, appointment: Appointment) -> Appointment:
        if self.fail:
            raise ConnectionError("mongo down")
        self.appointments.append(appointment)
        return appointment


class FakeEmailSender:
    def __init__(self, fail: bool = False):
        self.sent: List[Dict[str, Any]] = []
        self.fail = fail

    async def send_appointment_confirmation(self, **kwargs: Any) -> Dict[str, Any]:
        if self.fail:
            raise ValueError("Email service not configured")
        self.sent.append(kwargs)
        return {"id": f"email-{len(self.sent)}"}


class Harness:
    """A controller wired to fakes, with the fakes kept at hand."""

    def __init__(
        self,
        classifier: FakeClassifier,
        doctors: Optional[List[Doctor]] = None,
        session_store: Optional[FakeSessionStore] = None,
        appointment_store: Optional[FakeAppointmentStore] = None,
        email: Optional[FakeEmailSender] = None,
    ):
        self.classifier = classifier
        self.notices = NoticeBuffer()
        self.sessions = session_store or FakeSessionStore()
        self.directory = FakeDoctorDirectory(
            *(doctors if doctors is not None else [make_doctor("house")])
        )
        self.appointments = appointment_store or FakeAppointmentStore()
        self.email = email or FakeEmailSender()
        self.controller = TriageSessionController(
            user=dict(USER),
            classifier=classifier,
            session_store=self.sessions,
            doctor_directory=self.directory,
            appointment_store=self.appointments,
            notices=self.notices,
            email_sender=self.email,
        )


# ---------------------------------------------------------------------------
# Minimal async Mongo collection
# ---------------------------------------------------------------------------


def _matches(doc: Dict[str, Any], query: Dict[str, Any]) -> bool:
    for key, expected in query.items():
        if isinstance(expected, dict) and "$ne" in expected:
            if doc.get(key) == expected["$ne"]:
                return False
        elif doc.get(key) != expected:
            return False
    return True


class _UpdateResult:
    def __init__(self, modified_count: int):
        self.modified_count = modified_count


class FakeCursor:
    def __init__(self, docs: List[Dict[str, Any]]):
        self._docs = docs

    def sort(self, key_or_list, direction: Optional[int] = None) -> "FakeCursor":
        keys = key_or_list if isinstance(key_or_list, list) else [(key_or_list, direction)]
        for key, order in reversed(keys):
            self._docs.sort(key=lambda d: d.get(key) or 0, reverse=order == -1)
        return self

    def skip(self, count: int) -> "FakeCursor":
        self._docs = self._docs[count:]
        return self

    def limit(self, count: int) -> "FakeCursor":
        self._docs = self._docs[:count]
        return self

    def __aiter__(self):
        self._iter = iter(self._docs)
        return self

    async def __anext__(self):
        try:
            return next(self._iter)
        except StopIteration:
            raise StopAsyncIteration


class FakeCollection:
    def __init__(self, docs: Optional[List[Dict[str, Any]]] = None):
        self.docs: List[Dict[str, Any]] = list(docs or [])

    async def insert_one(self, doc: Dict[str, Any]):
        self.docs.append(dict(doc))

    async def find_one(self, query: Dict[str, Any]):
        for doc in self.docs:
            if _matches(doc, query):
                return dict(doc)
        return None

    def find(self, query: Dict[str, Any]) -> FakeCursor:
        return FakeCursor([dict(d) for d in self.docs if _matches(d, query)])

    async def count_documents(self, query: Dict[str, Any]) -> int:
        return sum(1 for d in self.docs if _matches(d, query))

    async def update_one(self, query: Dict[str, Any], update: Dict[str, Any]):
        for doc in self.docs:
            if _matches(doc, query):
                doc.update(update.get("$set", {}))
                return _UpdateResult(1)
        return _UpdateResult(0)


def collection_getter(collection: FakeCollection):
    async def _get():
        return collection

    return _get
