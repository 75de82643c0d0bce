"""
Tests for the HTTP surface.
"""

from unittest.mock import AsyncMock, Mock

import pytest
from fastapi.testclient import TestClient

from clinic_receptionist.api import create_app
from clinic_receptionist.api.dependencies import Services
from clinic_receptionist.core.exceptions import ClinicNotFoundError, PlanExpiredError
from clinic_receptionist.core.models import ChatTurnResponse
from clinic_receptionist.services.guard import RateLimiter, SQLiteCounterStore
from clinic_receptionist.services.orchestration import ChatOrchestrator
from clinic_receptionist.utils.signature import sign_clinic_slug

SECRET = "s3cret"
SIG = sign_clinic_slug("bright-smiles", SECRET)


@pytest.fixture
def orchestrator():
    orchestrator = Mock(spec=ChatOrchestrator)
    orchestrator.handle_turn = AsyncMock(return_value=ChatTurnResponse(message="Hi! How can I help?"))
    return orchestrator


@pytest.fixture
def client(settings, mock_store, mock_executor, availability, orchestrator):
    signed = settings.model_copy(update={"chat_protection_secret": SECRET})
    services = Services(
        settings=signed,
        store=mock_store,
        executor=mock_executor,
        availability=availability,
        rate_limiter=RateLimiter(SQLiteCounterStore(signed.counter_db_path), signed),
        orchestrator=orchestrator,
    )
    with TestClient(create_app(services)) as test_client:
        yield test_client


def chat_body(**overrides):
    body = {"clinicSlug": "bright-smiles", "sig": SIG, "messages": [{"role": "user", "content": "hello"}]}
    body.update(overrides)
    return body


def test_health(client):
    response = client.get("/health/")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.headers["X-Content-Type-Options"] == "nosniff"


def test_ready_reads_counter_database(client):
    response = client.get("/health/ready")

    assert response.status_code == 200
    assert response.json() == {"status": "ready", "counters": "ok"}


def test_ready_fails_when_counter_database_is_unreachable(
    settings, mock_store, mock_executor, availability, orchestrator, tmp_path
):
    broken = settings.model_copy(update={"counter_db_path": str(tmp_path / "missing" / "counters.db")})
    services = Services(
        settings=broken,
        store=mock_store,
        executor=mock_executor,
        availability=availability,
        rate_limiter=RateLimiter(SQLiteCounterStore(broken.counter_db_path), broken),
        orchestrator=orchestrator,
    )

    with TestClient(create_app(services)) as test_client:
        response = test_client.get("/health/ready")

    assert response.status_code == 503
    assert response.json()["status"] == "unavailable"


def test_chat_turn(client, orchestrator):
    response = client.post("/api/embed/chat", json=chat_body(), headers={"X-Forwarded-For": "203.0.113.9, 10.0.0.1"})

    assert response.status_code == 200
    assert response.json() == {"message": "Hi! How can I help?"}
    assert orchestrator.handle_turn.await_args.kwargs["client_ip"] == "203.0.113.9"


def test_chat_rejects_bad_signature(client, orchestrator):
    response = client.post("/api/embed/chat", json=chat_body(sig="deadbeef"))

    assert response.status_code == 401
    assert response.json() == {"error": "Invalid signature"}
    orchestrator.handle_turn.assert_not_awaited()


@pytest.mark.parametrize(
    "error,status",
    [(ClinicNotFoundError("nope"), 404), (PlanExpiredError("lapsed"), 403), (ValueError("no user message"), 400)],
)
def test_chat_error_mapping(client, orchestrator, error, status):
    orchestrator.handle_turn.side_effect = error

    response = client.post("/api/embed/chat", json=chat_body())

    assert response.status_code == status
    assert "error" in response.json()


def test_dialogue_start(client):
    response = client.post("/api/embed/dialogue", json={"clinicSlug": "bright-smiles", "sig": SIG})

    body = response.json()
    assert response.status_code == 200
    assert body["context"]["state"] == "GREETING"
    assert [c["key"] for c in body["suggestions"]] == ["book", "change_cancel", "clinic_info", "emergency"]


def test_dialogue_clears_stale_busy_flag(client):
    response = client.post("/api/embed/dialogue", json={
        "clinicSlug": "bright-smiles",
        "sig": SIG,
        "context": {"state": "GREETING", "busy": True},
        "event": {"type": "chip", "key": "clinic_info"},
    })

    body = response.json()
    assert body["ignored"] is False
    assert body["context"]["state"] == "CLINIC_INFO"
    assert body["context"]["busy"] is False
    assert body["message"].startswith("We're at 12 Main St.")


def test_dialogue_unknown_clinic(client, mock_store):
    mock_store.get_clinic.side_effect = ClinicNotFoundError("nope")

    response = client.post("/api/embed/dialogue", json={"clinicSlug": "bright-smiles", "sig": SIG})

    assert response.status_code == 404


def test_slots_for_date(client):
    # Wednesday
    response = client.get("/api/embed/slots", params={"clinicSlug": "bright-smiles", "sig": SIG, "date": "2030-01-16"})

    slots = response.json()["slots"]
    assert len(slots) == 16
    assert slots[0] == {
        "label": "9:00 AM",
        "start": "2030-01-16T09:00:00-05:00",
        "end": "2030-01-16T09:30:00-05:00",
    }


def test_slots_for_closed_day(client):
    # Saturday
    response = client.get("/api/embed/slots", params={"clinicSlug": "bright-smiles", "sig": SIG, "date": "2030-01-19"})

    assert response.json() == {"slots": []}


def test_working_days(client):
    response = client.get("/api/embed/slots", params={"clinicSlug": "bright-smiles", "sig": SIG, "days": 1})

    days = response.json()["workingDays"]
    assert len(days) == 5
    assert set(days[0]) == {"dateStr", "label"}


def test_next_slots(client):
    response = client.get("/api/embed/slots", params={"clinicSlug": "bright-smiles", "sig": SIG})

    body = response.json()
    assert len(body["slots"]) == 12
    assert isinstance(body["hasSlotsToday"], bool)


def test_slots_reject_malformed_date(client):
    response = client.get("/api/embed/slots", params={"clinicSlug": "bright-smiles", "sig": SIG, "date": "16/01/2030"})

    assert response.status_code == 422
