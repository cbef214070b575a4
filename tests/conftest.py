from __future__ import annotations

import sys
import time
from pathlib import Path
from typing import Callable

import jwt
import pytest
from fastapi.testclient import TestClient

ROOT_DIR = Path(__file__).resolve().parents[1]
TESTS_DIR = Path(__file__).resolve().parent
for path in (ROOT_DIR, TESTS_DIR):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from healthcheck.agents.symptom_classifier import get_symptom_classifier  # noqa: E402
from healthcheck.config.settings import settings  # noqa: E402
from healthcheck.services.appointment_service import (  # noqa: E402
    AppointmentService,
    get_appointment_service,
)
from healthcheck.services.doctor_service import DoctorService, get_doctor_service  # noqa: E402
from healthcheck.services.session_service import SessionService, get_session_service  # noqa: E402
from healthcheck.services.wizard_registry import (  # noqa: E402
    WizardRegistry,
    get_wizard_registry,
)
from healthcheck.agents.triage_controller import TriageSessionController  # noqa: E402
from healthcheck.tools.email_client import get_email_client  # noqa: E402

from fakes import (  # noqa: E402
    FakeClassifier,
    FakeCollection,
    FakeEmailSender,
    collection_getter,
    make_doctor,
)

TEST_SECRET = "test-secret-for-hs256-signing-0123456789abcdef"


@pytest.fixture(autouse=True)
def jwt_settings(monkeypatch):
    monkeypatch.setattr(settings, "jwt_secret", TEST_SECRET)
    monkeypatch.setattr(settings, "jwt_audience", "authenticated")


@pytest.fixture
def make_token() -> Callable[..., str]:
    def _make(user_id: str, email: str = "", expires_in: int = 3600, **claims) -> str:
        payload = {
            "sub": user_id,
            "email": email or f"{user_id}@example.com",
            "aud": "authenticated",
            "role": "authenticated",
            "exp": int(time.time()) + expires_in,
            **claims,
        }
        return jwt.encode(payload, TEST_SECRET, algorithm="HS256")

    return _make


@pytest.fixture
def auth_headers(make_token) -> Callable[[str], dict[str, str]]:
    def _make(user_id: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {make_token(user_id)}"}

    return _make


class Backend:
    """Fake collaborators behind the HTTP app."""

    def __init__(self):
        self.classifier = FakeClassifier()
        self.email = FakeEmailSender()
        self.sessions = FakeCollection()
        self.appointments = FakeCollection()
        self.doctors = FakeCollection(
            [
                make_doctor("house", "General Practitioner", rating=4.2).model_dump(),
                make_doctor(
                    "lung", "Pulmonologist", {"monday": ["09:00"]}, rating=4.9
                ).model_dump(),
                make_doctor("heart", "Cardiologist", rating=4.7).model_dump(),
                make_doctor("away", "Pulmonologist", is_available=False).model_dump(),
            ]
        )
        self.session_service = SessionService(collection_getter(self.sessions))
        self.appointment_service = AppointmentService(
            collection_getter(self.appointments)
        )
        self.doctor_service = DoctorService(collection_getter(self.doctors))
        self.registry = WizardRegistry(self._controller)

    def _controller(self, **kwargs) -> TriageSessionController:
        return TriageSessionController(
            classifier=self.classifier,
            session_store=self.session_service,
            doctor_directory=self.doctor_service,
            appointment_store=self.appointment_service,
            email_sender=self.email,
            **kwargs,
        )


@pytest.fixture
def backend():
    return Backend()


@pytest.fixture
def app(backend):
    from main import app as fastapi_app

    fastapi_app.dependency_overrides = {
        get_wizard_registry: lambda: backend.registry,
        get_session_service: lambda: backend.session_service,
        get_appointment_service: lambda: backend.appointment_service,
        get_doctor_service: lambda: backend.doctor_service,
        get_email_client: lambda: backend.email,
        get_symptom_classifier: lambda: backend.classifier,
    }
    yield fastapi_app
    fastapi_app.dependency_overrides = {}


@pytest.fixture
def client(app):
    # No context manager: the lifespan would connect to MongoDB.
    return TestClient(app)
