"""Per-process registry of live symptom-check wizards.

Wizards leave memory when they are discarded, when they reach the terminal
confirmed step (``release``), or when they sit idle longer than
``settings.wizard_idle_ttl_seconds`` (swept on every ``create``).
"""

import asyncio
import time
from typing import Any, Callable, Dict, List, Optional
from healthcheck.agents.symptom_classifier import get_symptom_classifier
from healthcheck.agents.triage_controller import TriageSessionController
from healthcheck.config.settings import settings
from healthcheck.services.appointment_service import get_appointment_service
from healthcheck.services.doctor_service import get_doctor_service
from healthcheck.services.notices import NoticeBuffer
from healthcheck.services.session_service import get_session_service
from healthcheck.tools.email_client import get_email_client
import logging

logger = logging.getLogger(__name__)


class WizardNotFoundError(LookupError):
    """No wizard with that id belongs to the caller."""


class WizardEntry:
    """A controller together with the notice buffer it reports into."""

    def __init__(
        self, controller: TriageSessionController, notices: NoticeBuffer, seen_at: float
    ):
        self.controller = controller
        self.notices = notices
        self.last_seen = seen_at


class WizardRegistry:
    """Maps wizard ids to controllers. Controllers share no state."""

    def __init__(
        self,
        controller_factory: Callable[..., TriageSessionController],
        idle_ttl: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._factory = controller_factory
        self._idle_ttl = settings.wizard_idle_ttl_seconds if idle_ttl is None else idle_ttl
        self._clock = clock
        self._entries: Dict[str, WizardEntry] = {}

    def create(self, user: Dict[str, Any]) -> WizardEntry:
        self.sweep_idle()
        notices = NoticeBuffer()
        controller = self._factory(user=user, notices=notices)
        entry = WizardEntry(controller, notices, self._clock())
        self._entries[controller.wizard_id] = entry
        logger.info(f"Created wizard {controller.wizard_id} for user {user['user_id']}")
        return entry

    def get(self, wizard_id: str, user_id: str) -> WizardEntry:
        """
        Look up a wizard owned by ``user_id`` and mark it as seen.

        Raises:
            WizardNotFoundError: Unknown id or owned by someone else
        """
        entry = self._entries.get(wizard_id)
        if entry is None or entry.controller.user_id != user_id:
            raise WizardNotFoundError(wizard_id)
        entry.last_seen = self._clock()
        return entry

    def discard(self, wizard_id: str, user_id: str) -> None:
        self.get(wizard_id, user_id)
        self.release(wizard_id)

    def release(self, wizard_id: str) -> None:
        if self._entries.pop(wizard_id, None) is not None:
            logger.info(f"Released wizard {wizard_id}")

    def sweep_idle(self) -> int:
        """Drop wizards idle past the TTL. Busy wizards are kept."""
        cutoff = self._clock() - self._idle_ttl
        stale = [
            wizard_id
            for wizard_id, entry in self._entries.items()
            if entry.last_seen < cutoff and not entry.controller.is_busy
        ]
        for wizard_id in stale:
            del self._entries[wizard_id]
        if stale:
            logger.info(f"Swept {len(stale)} idle wizard(s)")
        return len(stale)

    def list_for_user(self, user_id: str) -> List[WizardEntry]:
        return [e for e in self._entries.values() if e.controller.user_id == user_id]

    def __len__(self) -> int:
        return len(self._entries)

    async def wait_for_persistence(self) -> None:
        """Flush pending session writes of every wizard (used at shutdown)."""
        await asyncio.gather(
            *(e.controller.wait_for_persistence() for e in self._entries.values())
        )


def _default_factory(**kwargs) -> TriageSessionController:
    return TriageSessionController(
        classifier=get_symptom_classifier(),
        session_store=get_session_service(),
        doctor_directory=get_doctor_service(),
        appointment_store=get_appointment_service(),
        email_sender=get_email_client(),
        **kwargs,
    )


# Global registry instance
_wizard_registry: Optional[WizardRegistry] = None


def get_wizard_registry() -> WizardRegistry:
    """Get or create the process-wide WizardRegistry."""
    global _wizard_registry
    if _wizard_registry is None:
        _wizard_registry = WizardRegistry(_default_factory)
    return _wizard_registry
