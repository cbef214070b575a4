"""Symptom-check wizard controller.

One controller drives one user's wizard through
``input -> followup -> result -> booking -> confirmed``. Every step change
goes through the transition table in :mod:`healthcheck.agents.state`.
Collaborators (classifier, stores, e-mail sender, notice sink) are passed in
explicitly so the controller can run against fakes.
"""

import asyncio
import uuid
from datetime import date, datetime
from typing import Any, Dict, List, Optional, Protocol, Set
from healthcheck.agents.errors import (
    ActionDisabledError,
    BookingFailedError,
    DoctorNotFoundError,
    InvalidTransitionError,
)
from healthcheck.agents.state import WizardAction, WizardStep, can_transition
from healthcheck.agents.symptom_classifier import SymptomClassifier
from healthcheck.config.settings import settings
from healthcheck.models.appointment import Appointment, Doctor
from healthcheck.models.messages import WizardSnapshot
from healthcheck.models.session import TriageSession
from healthcheck.models.triage import NoticeLevel
from healthcheck.models.verdict import (
    FollowUpAnswer,
    SymptomInput,
    TriageVerdict,
    fallback_verdict,
)
from healthcheck.services.appointment_service import (
    AppointmentStore,
    ConfirmationSender,
    format_long_date,
    place_booking,
)
from healthcheck.services.doctor_service import filter_for_specialist
from healthcheck.services.notices import Notice, NoticeSink
from healthcheck.utils.scheduling import upcoming_days
import logging

logger = logging.getLogger(__name__)


class SessionStore(Protocol):
    async def insert_session(self, session: TriageSession) -> TriageSession: ...


class DoctorDirectory(Protocol):
    async def list_available(self, specialty: Optional[str] = None) -> List[Doctor]: ...

    async def get_doctor(self, doctor_id: str) -> Optional[Doctor]: ...


class TriageSessionController:
    """In-memory state machine for one symptom-check wizard."""

    def __init__(
        self,
        *,
        user: Dict[str, Any],
        classifier: SymptomClassifier,
        session_store: SessionStore,
        doctor_directory: DoctorDirectory,
        appointment_store: AppointmentStore,
        notices: NoticeSink,
        email_sender: Optional[ConfirmationSender] = None,
        wizard_id: Optional[str] = None,
    ):
        self.wizard_id = wizard_id or str(uuid.uuid4())
        self.user = user
        self._classifier = classifier
        self._sessions = session_store
        self._doctors = doctor_directory
        self._appointments = appointment_store
        self._notices = notices
        self._email = email_sender

        self.step = WizardStep.INPUT
        self.input = SymptomInput()
        self.verdict: Optional[TriageVerdict] = None
        self.answers: List[Optional[str]] = []
        self.question_index = 0
        self.degraded = False
        self.session_id: Optional[str] = None
        self.appointment: Optional[Appointment] = None

        self.is_analyzing = False
        self.is_booking = False
        # Bumped by start_over so in-flight classifications can be discarded
        self._generation = 0
        self._persist_tasks: Set[asyncio.Task] = set()

        self.created_at = datetime.utcnow()
        self.updated_at = self.created_at

    @property
    def user_id(self) -> str:
        return self.user["user_id"]

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _transition(self, target: WizardStep) -> None:
        if not can_transition(self.step, target):
            raise InvalidTransitionError(
                f"Cannot move from '{self.step.value}' to '{target.value}'"
            )
        if target != self.step:
            logger.info(
                f"Wizard {self.wizard_id}: {self.step.value} -> {target.value}"
            )
        self.step = target
        self.updated_at = datetime.utcnow()

    def _notify(self, level: NoticeLevel, title: str, message: str) -> None:
        self._notices.push(Notice(level=level, title=title, message=message))

    def _require_input_step(self) -> None:
        if self.step != WizardStep.INPUT:
            raise ActionDisabledError("Symptoms can only be edited before analysis")
        if self.is_analyzing:
            raise ActionDisabledError("Analysis in progress")

    def _reset_follow_up(self) -> None:
        self.answers = []
        self.question_index = 0

    @property
    def questions(self) -> List[str]:
        return list(self.verdict.follow_up_questions) if self.verdict else []

    def _answered_pairs(self) -> List[FollowUpAnswer]:
        return [
            FollowUpAnswer(question=q, answer=a)
            for q, a in zip(self.questions, self.answers)
            if a
        ]

    async def _classify(
        self, responses: Optional[List[FollowUpAnswer]]
    ) -> TriageVerdict:
        """Call the classifier; any failure yields the fallback verdict."""
        try:
            verdict = await self._classifier.classify(
                list(self.input.symptoms), self.input.narrative, responses
            )
            self.degraded = False
            return verdict
        except Exception as e:
            logger.error(f"Wizard {self.wizard_id}: classification failed: {e}")
            self.degraded = True
            self._notify(
                NoticeLevel.WARNING,
                "Analysis incomplete",
                "We couldn't fully analyze your symptoms, so general guidance "
                "is shown instead.",
            )
            return fallback_verdict()

    def _enter_result(
        self, verdict: TriageVerdict, responses: Optional[List[FollowUpAnswer]]
    ) -> None:
        self.verdict = verdict
        self._transition(WizardStep.RESULT)
        if not verdict.needs_clarification:
            self._schedule_persist(verdict, responses)

    def _schedule_persist(
        self, verdict: TriageVerdict, responses: Optional[List[FollowUpAnswer]]
    ) -> None:
        session = TriageSession.from_verdict(
            session_id=str(uuid.uuid4()),
            user_id=self.user_id,
            symptoms=self.input.symptoms,
            narrative=self.input.narrative,
            verdict=verdict,
            responses=responses,
        )
        self.session_id = session.session_id
        task = asyncio.create_task(self._persist(session))
        self._persist_tasks.add(task)
        task.add_done_callback(self._persist_tasks.discard)

    async def _persist(self, session: TriageSession) -> bool:
        try:
            await self._sessions.insert_session(session)
        except Exception as e:
            logger.error(
                f"Wizard {self.wizard_id}: failed to store session "
                f"{session.session_id}: {e}"
            )
            if self.session_id == session.session_id:
                self.session_id = None
            self._notify(
                NoticeLevel.WARNING,
                "Session not saved",
                "Your results are shown below but could not be saved to your "
                "health history.",
            )
            return False
        return True

    # ------------------------------------------------------------------
    # Symptom input
    # ------------------------------------------------------------------

    def add_symptom(self, tag: str) -> bool:
        self._require_input_step()
        return self.input.add(tag)

    def remove_symptom(self, tag: str) -> bool:
        self._require_input_step()
        return self.input.remove(tag)

    def set_narrative(self, text: Optional[str]) -> None:
        self._require_input_step()
        self.input.narrative = text if (text or "").strip() else None

    def replace_input(self, symptoms: List[str], narrative: Optional[str]) -> None:
        """Replace all tags and the narrative. Blank and duplicate tags are dropped."""
        self._require_input_step()
        self.input.clear()
        for tag in symptoms:
            self.input.add(tag)
        self.set_narrative(narrative)

    @property
    def can_analyze(self) -> bool:
        return (
            self.step == WizardStep.INPUT
            and not self.input.is_empty()
            and not self.is_analyzing
        )

    # ------------------------------------------------------------------
    # Classification rounds
    # ------------------------------------------------------------------

    async def analyze(self) -> WizardStep:
        """
        Run the initial classification.

        Returns:
            ``followup`` if the verdict asks questions, otherwise ``result``

        Raises:
            ActionDisabledError: Empty input, wrong step or a call in flight
        """
        if not self.can_analyze:
            raise ActionDisabledError(
                "Add at least one symptom or describe how you feel first"
                if self.step == WizardStep.INPUT and not self.is_analyzing
                else "Analysis is not available right now"
            )

        generation = self._generation
        self.is_analyzing = True
        try:
            verdict = await self._classify(None)
        finally:
            self.is_analyzing = False

        if generation != self._generation:
            logger.info(f"Wizard {self.wizard_id}: discarding stale verdict")
            return self.step

        if verdict.has_follow_up:
            self.verdict = verdict
            self._reset_follow_up()
            self.answers = [None] * len(verdict.follow_up_questions)
            self._transition(WizardStep.FOLLOWUP)
        else:
            self._enter_result(verdict, None)
        return self.step

    async def answer(self, text: str) -> WizardStep:
        """
        Answer the current follow-up question.

        The last answer re-runs classification with every answered pair and
        always lands on ``result``.
        """
        if self.step != WizardStep.FOLLOWUP or self.is_analyzing:
            raise ActionDisabledError("There is no question to answer right now")
        cleaned = (text or "").strip()
        if not cleaned:
            raise ActionDisabledError("Please provide an answer")

        self.answers[self.question_index] = cleaned
        if self.question_index < len(self.answers) - 1:
            self.question_index += 1
            self._transition(WizardStep.FOLLOWUP)
            return self.step

        responses = self._answered_pairs()
        generation = self._generation
        self.is_analyzing = True
        try:
            verdict = await self._classify(responses)
        finally:
            self.is_analyzing = False

        if generation != self._generation:
            logger.info(f"Wizard {self.wizard_id}: discarding stale verdict")
            return self.step

        self._enter_result(verdict, responses)
        return self.step

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def back(self) -> WizardStep:
        if self.step == WizardStep.FOLLOWUP:
            if self.is_analyzing:
                raise ActionDisabledError("Analysis in progress")
            if self.question_index > 0:
                self.question_index -= 1
                self._transition(WizardStep.FOLLOWUP)
            else:
                self._reset_follow_up()
                self.verdict = None
                self._transition(WizardStep.INPUT)
        elif self.step == WizardStep.BOOKING:
            if self.is_booking:
                raise ActionDisabledError("Booking in progress")
            self._transition(WizardStep.RESULT)
        else:
            raise InvalidTransitionError(
                f"There is no previous step from '{self.step.value}'"
            )
        return self.step

    def start_over(self) -> WizardStep:
        """Clear tags, narrative, verdict and answers and return to ``input``."""
        if self.is_booking:
            raise ActionDisabledError("Booking in progress")
        self._transition(WizardStep.INPUT)
        self._generation += 1
        self.input.clear()
        self.verdict = None
        self._reset_follow_up()
        self.degraded = False
        self.session_id = None
        return self.step

    def open_booking(self) -> WizardStep:
        if self.step == WizardStep.RESULT and self.verdict and self.verdict.is_emergency:
            raise ActionDisabledError(
                "Emergency symptoms need immediate care. Please call emergency services."
            )
        self._transition(WizardStep.BOOKING)
        return self.step

    def available_actions(self) -> List[WizardAction]:
        actions: Set[WizardAction] = set()
        if self.step == WizardStep.INPUT:
            actions.add(WizardAction.START_OVER)
            if self.can_analyze:
                actions.add(WizardAction.ANALYZE)
        elif self.step == WizardStep.FOLLOWUP:
            actions.add(WizardAction.START_OVER)
            if not self.is_analyzing:
                actions.update({WizardAction.ANSWER, WizardAction.BACK})
        elif self.step == WizardStep.RESULT:
            actions.add(WizardAction.START_OVER)
            if self.verdict and self.verdict.is_emergency:
                actions.add(WizardAction.CALL_EMERGENCY)
            else:
                actions.add(WizardAction.BOOK_APPOINTMENT)
        elif self.step == WizardStep.BOOKING and not self.is_booking:
            actions.update(
                {
                    WizardAction.CONFIRM_BOOKING,
                    WizardAction.BACK,
                    WizardAction.START_OVER,
                }
            )
        return [a for a in WizardAction if a in actions]

    # ------------------------------------------------------------------
    # Booking
    # ------------------------------------------------------------------

    async def available_doctors(self) -> List[Doctor]:
        """Available doctors suited to the verdict's recommended specialist."""
        if self.step not in (WizardStep.RESULT, WizardStep.BOOKING) or not self.verdict:
            raise ActionDisabledError("Doctors are shown once a verdict is available")
        doctors = await self._doctors.list_available()
        return filter_for_specialist(doctors, self.verdict.recommended_specialist)

    def available_dates(self, today: Optional[date] = None) -> List[date]:
        return upcoming_days(today or date.today(), settings.booking_window_days)

    def _booking_reason(self) -> str:
        if self.input.symptoms:
            return f"Symptom check: {', '.join(self.input.symptoms)}"
        return f"Symptom check: {self.input.narrative or 'general consultation'}"

    async def book(self, doctor_id: str, day: date, time: str) -> Appointment:
        """
        Book the chosen doctor and slot.

        Raises:
            ActionDisabledError: Not on the booking step or a booking in flight
            DoctorNotFoundError: Unknown doctor
            SlotUnavailableError: Slot not offered on that weekday (nothing written)
            BookingFailedError: Write failed; the wizard stays on ``booking``
        """
        if self.step != WizardStep.BOOKING:
            raise ActionDisabledError("Open the booking step first")
        if self.is_booking:
            raise ActionDisabledError("A booking is already in progress")

        self.is_booking = True
        try:
            doctor = await self._doctors.get_doctor(doctor_id)
            if doctor is None:
                raise DoctorNotFoundError(f"Doctor {doctor_id} not found")
            try:
                appointment = await place_booking(
                    store=self._appointments,
                    doctor=doctor,
                    user=self.user,
                    day=day,
                    time=time,
                    reason=self._booking_reason(),
                    symptoms_summary=self.verdict.summary if self.verdict else None,
                    session_id=self.session_id,
                    email_sender=self._email,
                )
            except BookingFailedError as e:
                self._notify(NoticeLevel.WARNING, "Booking failed", e.message)
                raise
        finally:
            self.is_booking = False

        self.appointment = appointment
        self._transition(WizardStep.CONFIRMED)
        self._notify(
            NoticeLevel.INFO,
            "Appointment booked!",
            f"Your appointment with {doctor.full_name} is confirmed for "
            f"{format_long_date(day)} at {time}.",
        )
        return appointment

    # ------------------------------------------------------------------
    # Views
    # ------------------------------------------------------------------

    def snapshot(self) -> WizardSnapshot:
        in_followup = self.step == WizardStep.FOLLOWUP and bool(self.answers)
        return WizardSnapshot(
            wizard_id=self.wizard_id,
            step=self.step,
            symptoms=list(self.input.symptoms),
            narrative=self.input.narrative,
            verdict=self.verdict.to_wire() if self.verdict else None,
            current_question=(
                self.questions[self.question_index] if in_followup else None
            ),
            question_index=self.question_index if in_followup else None,
            question_count=len(self.answers),
            current_answer=self.answers[self.question_index] if in_followup else None,
            answers=self._answered_pairs(),
            can_analyze=self.can_analyze,
            is_analyzing=self.is_analyzing,
            is_booking=self.is_booking,
            degraded=self.degraded,
            session_id=self.session_id,
            appointment=self.appointment,
            actions=self.available_actions(),
        )

    @property
    def is_busy(self) -> bool:
        return self.is_analyzing or self.is_booking or any(
            not t.done() for t in self._persist_tasks
        )

    async def wait_for_persistence(self) -> None:
        """Wait for any pending session writes."""
        pending = [t for t in self._persist_tasks if not t.done()]
        if pending:
            await asyncio.gather(*pending)
