from __future__ import annotations

from healthcheck.agents.symptom_classifier import ClassifierError, VerdictParseError
from healthcheck.models.session import TriageSession

from fakes import MONDAY, make_verdict

WIZARDS = "/api/v1/triage/wizards"


def _start(client, headers) -> str:
    response = client.post(WIZARDS, headers=headers)
    assert response.status_code == 201
    return response.json()["wizard"]["wizard_id"]


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


def test_public_routes_need_no_token(client):
    assert client.get("/").status_code == 200
    health = client.get("/health")
    assert health.status_code == 200
    assert health.json()["status"] == "ok"


def test_missing_or_invalid_token_is_rejected(client, make_token):
    assert client.post(WIZARDS).status_code == 401

    expired = make_token("user-a", expires_in=-60)
    response = client.post(WIZARDS, headers={"Authorization": f"Bearer {expired}"})
    assert response.status_code == 401
    assert response.json()["error"] == "TOKEN_EXPIRED"

    wrong_audience = make_token("user-a", aud="someone-else")
    response = client.post(
        WIZARDS, headers={"Authorization": f"Bearer {wrong_audience}"}
    )
    assert response.status_code == 401
    assert response.json()["error"] == "INVALID_TOKEN"


def test_access_token_cookie_is_accepted(client, make_token):
    client.cookies.set("access_token", make_token("user-a"))
    assert client.post(WIZARDS).status_code == 201


# ---------------------------------------------------------------------------
# Wizard flow
# ---------------------------------------------------------------------------


def test_wizard_flow_with_follow_up_and_booking(client, auth_headers, backend):
    backend.classifier.results = [
        make_verdict(questions=("How long?",), specialist="Pulmonologist"),
        make_verdict(specialist="Pulmonologist"),
    ]
    headers = auth_headers("user-a")
    wizard_id = _start(client, headers)
    base = f"{WIZARDS}/{wizard_id}"

    response = client.put(
        f"{base}/input", headers=headers, json={"symptoms": ["cough", " cough "]}
    )
    assert response.json()["wizard"]["symptoms"] == ["cough"]
    assert client.post(
        f"{base}/symptoms", headers=headers, json={"symptom": "wheezing"}
    ).json()["wizard"]["symptoms"] == ["cough", "wheezing"]

    wizard = client.post(f"{base}/analyze", headers=headers).json()["wizard"]
    assert wizard["step"] == "followup"
    assert wizard["current_question"] == "How long?"
    assert set(wizard["actions"]) == {"answer", "back", "start_over"}

    wizard = client.post(
        f"{base}/answer", headers=headers, json={"answer": "Two weeks"}
    ).json()["wizard"]
    assert wizard["step"] == "result"
    assert wizard["verdict"]["recommendedSpecialist"] == "Pulmonologist"
    assert "book_appointment" in wizard["actions"]

    assert client.post(f"{base}/booking", headers=headers).json()["wizard"]["step"] == "booking"

    options = client.get(f"{base}/doctors", headers=headers).json()
    assert [d["doctor_id"] for d in options["doctors"]] == ["lung", "house"]
    assert len(options["dates"]) == 7

    response = client.post(
        f"{base}/book",
        headers=headers,
        json={"doctor_id": "lung", "appointment_date": MONDAY.isoformat(), "appointment_time": "09:00"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["wizard"]["step"] == "confirmed"
    assert body["wizard"]["appointment"]["reason"] == "Symptom check: cough, wheezing"
    assert [n["title"] for n in body["notices"]] == ["Appointment booked!"]
    assert len(backend.appointments.docs) == 1
    assert backend.email.sent[0]["doctor_name"] == "Dr. Lung"

    # The finalized round is stored and the booking points at it
    assert len(backend.sessions.docs) == 1
    session_id = backend.sessions.docs[0]["session_id"]
    assert backend.sessions.docs[0]["user_id"] == "user-a"
    assert body["wizard"]["appointment"]["session_id"] == session_id
    assert backend.appointments.docs[0]["session_id"] == session_id

    # A confirmed wizard is released once its final snapshot is returned
    assert len(backend.registry) == 0
    assert client.get(base, headers=headers).status_code == 404


def test_confirmed_wizards_do_not_accumulate(client, auth_headers, backend):
    headers = auth_headers("user-a")
    for _ in range(3):
        base = f"{WIZARDS}/{_start(client, headers)}"
        client.post(f"{base}/symptoms", headers=headers, json={"symptom": "cough"})
        client.post(f"{base}/analyze", headers=headers)
        client.post(f"{base}/booking", headers=headers)
        response = client.post(
            f"{base}/book",
            headers=headers,
            json={"doctor_id": "lung", "appointment_date": MONDAY.isoformat(), "appointment_time": "09:00"},
        )
        assert response.json()["wizard"]["step"] == "confirmed"

    assert len(backend.registry) == 0
    assert len(backend.appointments.docs) == 3


def test_symptom_containing_slash_can_be_removed(client, auth_headers):
    headers = auth_headers("user-a")
    base = f"{WIZARDS}/{_start(client, headers)}"
    client.post(f"{base}/symptoms", headers=headers, json={"symptom": "nausea/vomiting"})
    client.post(f"{base}/symptoms", headers=headers, json={"symptom": "fever"})

    response = client.delete(f"{base}/symptoms/nausea/vomiting", headers=headers)
    assert response.status_code == 200
    assert response.json()["wizard"]["symptoms"] == ["fever"]


def test_unoffered_slot_is_unprocessable(client, auth_headers, backend):
    headers = auth_headers("user-a")
    wizard_id = _start(client, headers)
    base = f"{WIZARDS}/{wizard_id}"
    client.post(f"{base}/symptoms", headers=headers, json={"symptom": "cough"})
    client.post(f"{base}/analyze", headers=headers)
    client.post(f"{base}/booking", headers=headers)

    response = client.post(
        f"{base}/book",
        headers=headers,
        json={"doctor_id": "lung", "appointment_date": MONDAY.isoformat(), "appointment_time": "11:00"},
    )
    assert response.status_code == 422
    assert response.json()["error"] == "SLOT_UNAVAILABLE"
    assert backend.appointments.docs == []


def test_disabled_actions_return_conflict(client, auth_headers, backend):
    headers = auth_headers("user-a")
    wizard_id = _start(client, headers)
    base = f"{WIZARDS}/{wizard_id}"

    response = client.post(f"{base}/analyze", headers=headers)
    assert response.status_code == 409
    assert response.json()["error"] == "ACTION_DISABLED"
    assert backend.classifier.calls == []

    response = client.post(f"{base}/back", headers=headers)
    assert response.status_code == 409
    assert response.json()["error"] == "INVALID_TRANSITION"


def test_emergency_result_blocks_booking(client, auth_headers, backend):
    backend.classifier.results = [make_verdict(urgency="emergency")]
    headers = auth_headers("user-a")
    wizard_id = _start(client, headers)
    base = f"{WIZARDS}/{wizard_id}"
    client.post(f"{base}/symptoms", headers=headers, json={"symptom": "chest pain"})

    wizard = client.post(f"{base}/analyze", headers=headers).json()["wizard"]
    assert set(wizard["actions"]) == {"call_emergency", "start_over"}
    assert client.post(f"{base}/booking", headers=headers).status_code == 409

    wizard = client.post(f"{base}/start-over", headers=headers).json()["wizard"]
    assert wizard["step"] == "input"
    assert wizard["symptoms"] == []


def test_classifier_failure_degrades_with_notice(client, auth_headers, backend):
    backend.classifier.results = [ClassifierError("AI gateway error: 500")]
    headers = auth_headers("user-a")
    wizard_id = _start(client, headers)
    base = f"{WIZARDS}/{wizard_id}"
    client.post(f"{base}/symptoms", headers=headers, json={"symptom": "tired"})

    body = client.post(f"{base}/analyze", headers=headers).json()
    assert body["wizard"]["degraded"] is True
    assert body["wizard"]["question_count"] == 3
    assert [n["level"] for n in body["notices"]] == ["warning"]

    # Notices are delivered once
    assert client.get(base, headers=headers).json()["notices"] == []


def test_wizards_are_private_to_their_owner(client, auth_headers):
    wizard_id = _start(client, auth_headers("user-a"))
    response = client.get(f"{WIZARDS}/{wizard_id}", headers=auth_headers("user-b"))
    assert response.status_code == 404

    response = client.delete(f"{WIZARDS}/{wizard_id}", headers=auth_headers("user-a"))
    assert response.status_code == 204
    response = client.get(f"{WIZARDS}/{wizard_id}", headers=auth_headers("user-a"))
    assert response.status_code == 404


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


def test_history_endpoints(client, auth_headers, backend):
    for user_id, symptoms in (("user-a", ["cough"]), ("user-a", ["cough", "fever"]), ("user-b", ["rash"])):
        session = TriageSession.from_verdict(
            session_id=f"{user_id}-{len(backend.sessions.docs)}",
            user_id=user_id,
            symptoms=symptoms,
            narrative=None,
            verdict=make_verdict(),
        )
        backend.sessions.docs.append(session.model_dump())

    headers = auth_headers("user-a")
    listing = client.get("/api/v1/sessions?limit=1", headers=headers).json()
    assert listing["total"] == 2
    assert len(listing["sessions"]) == 1

    summary = client.get("/api/v1/sessions/summary", headers=headers).json()
    assert summary["routine_count"] == 2
    assert summary["top_symptoms"][0] == {"symptom": "cough", "count": 2}

    assert client.get("/api/v1/sessions/user-a-0", headers=headers).status_code == 200
    assert client.get("/api/v1/sessions/user-b-2", headers=headers).status_code == 403
    assert client.get("/api/v1/sessions/missing", headers=headers).status_code == 404


def test_doctor_directory_endpoints(client, auth_headers):
    headers = auth_headers("user-a")
    doctors = client.get("/api/v1/doctors", headers=headers).json()
    assert [d["doctor_id"] for d in doctors] == ["lung", "heart", "house"]

    doctors = client.get("/api/v1/doctors?specialty=Pulmonologist", headers=headers).json()
    assert [d["doctor_id"] for d in doctors] == ["lung"]

    slots = client.get(
        f"/api/v1/doctors/lung/slots?date={MONDAY.isoformat()}", headers=headers
    ).json()
    assert slots["weekday"] == "monday"
    assert slots["slots"] == ["09:00"]

    response = client.get(f"/api/v1/doctors/nobody/slots?date={MONDAY.isoformat()}", headers=headers)
    assert response.status_code == 404


def test_doctor_without_slot_map_is_listed_and_unbookable(client, auth_headers, backend):
    backend.doctors.docs.append(
        {
            "doctor_id": "skin",
            "full_name": "Dr. Skin",
            "specialty": "Dermatologist",
            "is_available": True,
            "available_slots": None,
            "rating": 4.0,
        }
    )
    headers = auth_headers("user-a")

    doctors = client.get("/api/v1/doctors", headers=headers)
    assert doctors.status_code == 200
    assert doctors.json()[-1]["doctor_id"] == "skin"
    assert doctors.json()[-1]["available_slots"] == {}

    slots = client.get(
        f"/api/v1/doctors/skin/slots?date={MONDAY.isoformat()}", headers=headers
    )
    assert slots.json()["slots"] == []

    response = client.post(
        "/api/v1/appointments",
        headers=headers,
        json={"doctor_id": "skin", "appointment_date": MONDAY.isoformat(), "appointment_time": "09:00"},
    )
    assert response.status_code == 422
    assert response.json()["error"] == "SLOT_UNAVAILABLE"


def test_direct_booking_and_cancellation(client, auth_headers, backend):
    headers = auth_headers("user-a")
    response = client.post(
        "/api/v1/appointments",
        headers=headers,
        json={"doctor_id": "heart", "appointment_date": MONDAY.isoformat(), "appointment_time": "10:00"},
    )
    assert response.status_code == 201
    appointment = response.json()
    assert appointment["reason"] == "Consultation with Cardiologist"
    assert appointment["status"] == "confirmed"
    assert appointment["session_id"] is None

    listing = client.get("/api/v1/appointments", headers=headers).json()["appointments"]
    assert listing[0]["doctor_name"] == "Dr. Heart"

    cancel_url = f"/api/v1/appointments/{appointment['appointment_id']}/cancel"
    assert client.post(cancel_url, headers=auth_headers("user-b")).status_code == 403
    cancelled = client.post(cancel_url, headers=headers)
    assert cancelled.status_code == 200
    assert cancelled.json()["status"] == "cancelled"
    assert client.post(cancel_url, headers=headers).status_code == 409
    assert len(backend.appointments.docs) == 1


def test_direct_booking_of_unknown_doctor(client, auth_headers):
    response = client.post(
        "/api/v1/appointments",
        headers=auth_headers("user-a"),
        json={"doctor_id": "nobody", "appointment_date": MONDAY.isoformat(), "appointment_time": "10:00"},
    )
    assert response.status_code == 404
    assert response.json()["error"] == "DOCTOR_NOT_FOUND"


# ---------------------------------------------------------------------------
# Classifier endpoint
# ---------------------------------------------------------------------------


def test_analyze_symptoms_returns_camel_case_verdict(client, auth_headers, backend):
    backend.classifier.results = [make_verdict(urgency="urgent")]
    response = client.post(
        "/api/v1/analyze-symptoms",
        headers=auth_headers("user-a"),
        json={
            "symptoms": ["headache"],
            "followUpResponses": {"How long?": "Two days"},
        },
    )
    assert response.status_code == 200
    assert response.json()["urgencyLevel"] == "urgent"
    responses = backend.classifier.calls[0]["responses"]
    assert [(r.question, r.answer) for r in responses] == [("How long?", "Two days")]


def test_analyze_symptoms_error_statuses(client, auth_headers, backend):
    headers = auth_headers("user-a")

    backend.classifier.results = [ClassifierError("Rate limit exceeded. Please try again later.", 429)]
    response = client.post("/api/v1/analyze-symptoms", headers=headers, json={"symptoms": ["cough"]})
    assert response.status_code == 429
    assert "Rate limit" in response.json()["error"]

    backend.classifier.results = [VerdictParseError("not json")]
    response = client.post("/api/v1/analyze-symptoms", headers=headers, json={"symptoms": ["cough"]})
    assert response.status_code == 200
    assert response.json()["needsClarification"] is True

    response = client.post("/api/v1/analyze-symptoms", headers=headers, json={"symptoms": [" "]})
    assert response.status_code == 400
