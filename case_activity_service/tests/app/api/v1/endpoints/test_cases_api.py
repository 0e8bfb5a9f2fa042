import pytest
from unittest.mock import AsyncMock

from fastapi import FastAPI
from fastapi.testclient import TestClient

from case_activity_service.app.api.v1.endpoints import cases as cases_router
from case_activity_service.app.dependencies.services import get_state_machine
from case_activity_service.app.models import CaseDB, CaseEventDB
from case_activity_service.app.service.exceptions import CaseNumberConflictError, NotFoundError, ValidationError
from case_activity_service.tests.fakes import NOW


@pytest.fixture
def state_machine():
    return AsyncMock()


@pytest.fixture
def client(state_machine):
    app = FastAPI()
    app.include_router(cases_router.router, prefix="/api/v1")
    app.dependency_overrides[get_state_machine] = lambda: state_machine
    return TestClient(app)


def make_case(**fields) -> CaseDB:
    defaults = dict(
        id="case-1",
        case_number="2025-PI-0001",
        sequence=1,
        client_id="client-1",
        title="Slip and fall",
        case_type="personal_injury",
        last_activity_at=NOW,
        created_at=NOW,
        updated_at=NOW,
    )
    defaults.update(fields)
    return CaseDB(**defaults)


def make_event(**fields) -> CaseEventDB:
    defaults = dict(case_id="case-1", event_type="case_created", description="Case created", created_at=NOW)
    defaults.update(fields)
    return CaseEventDB(**defaults)


# --- POST /cases ---

def test_create_case_success(client, state_machine):
    state_machine.create.return_value = make_case()

    response = client.post("/api/v1/cases", json={
        "client_id": "client-1",
        "title": "Slip and fall",
        "case_type": "personal_injury",
        "actor_id": "admin-user",
    })

    assert response.status_code == 201
    body = response.json()
    assert body["case_number"] == "2025-PI-0001"
    assert body["status"] == "new"

    state_machine.create.assert_awaited_once()
    case_input = state_machine.create.await_args.args[0]
    assert case_input.client_id == "client-1"
    assert case_input.case_type == "personal_injury"
    assert not hasattr(case_input, "actor_id")
    assert state_machine.create.await_args.kwargs == {"actor_id": "admin-user"}


def test_create_case_rejects_malformed_body(client, state_machine):
    response = client.post("/api/v1/cases", json={"title": "No client", "priority": 9})

    assert response.status_code == 422
    state_machine.create.assert_not_awaited()


@pytest.mark.parametrize("error, expected_status", [
    (NotFoundError("Client", "client-1"), 404),
    (ValidationError("title", "must not be empty"), 422),
    (CaseNumberConflictError("2025-PI-0001"), 409),
    (RuntimeError("boom"), 500),
])
def test_create_case_maps_errors(client, state_machine, error, expected_status):
    state_machine.create.side_effect = error

    response = client.post("/api/v1/cases", json={"client_id": "client-1", "title": "x"})

    assert response.status_code == expected_status
    if expected_status == 500:
        assert response.json()["detail"] == "Failed to create case."
    else:
        assert response.json()["detail"] == str(error)


# --- GET /cases/{case_id} ---

def test_get_case_success(client, state_machine):
    state_machine.get_case.return_value = make_case()

    response = client.get("/api/v1/cases/case-1")

    assert response.status_code == 200
    assert response.json()["id"] == "case-1"
    state_machine.get_case.assert_awaited_once_with("case-1")


def test_get_case_not_found(client, state_machine):
    state_machine.get_case.side_effect = NotFoundError("Case", "missing")

    response = client.get("/api/v1/cases/missing")

    assert response.status_code == 404
    assert "missing" in response.json()["detail"]


# --- PATCH /cases/{case_id}/status ---

def test_update_status_success(client, state_machine):
    state_machine.update_status.return_value = make_case(status="in_progress")

    response = client.patch("/api/v1/cases/case-1/status", json={"status": "in_progress", "actor_id": "lawyer-user"})

    assert response.status_code == 200
    assert response.json()["status"] == "in_progress"
    args = state_machine.update_status.await_args
    assert args.args[0] == "case-1"
    assert args.args[1] == "in_progress"
    assert args.kwargs == {"actor_id": "lawyer-user"}


def test_update_status_rejects_unknown_status(client, state_machine):
    response = client.patch("/api/v1/cases/case-1/status", json={"status": "on_the_moon"})

    assert response.status_code == 422
    state_machine.update_status.assert_not_awaited()


def test_update_status_unexpected_error(client, state_machine):
    state_machine.update_status.side_effect = Exception("database down")

    response = client.patch("/api/v1/cases/case-1/status", json={"status": "closed"})

    assert response.status_code == 500
    assert response.json()["detail"] == "Failed to update status of case case-1."


# --- POST /cases/{case_id}/lawyer ---

def test_assign_lawyer_success(client, state_machine):
    state_machine.assign_lawyer.return_value = make_case(lawyer_id="lawyer-1")

    response = client.post("/api/v1/cases/case-1/lawyer", json={"lawyer_id": "lawyer-1"})

    assert response.status_code == 200
    assert response.json()["lawyer_id"] == "lawyer-1"
    state_machine.assign_lawyer.assert_awaited_once_with("case-1", "lawyer-1", actor_id=None)


def test_assign_lawyer_unknown_lawyer(client, state_machine):
    state_machine.assign_lawyer.side_effect = NotFoundError("Lawyer", "nobody")

    response = client.post("/api/v1/cases/case-1/lawyer", json={"lawyer_id": "nobody"})

    assert response.status_code == 404


# --- GET /cases/{case_id}/timeline ---

def test_get_timeline(client, state_machine):
    state_machine.timeline.return_value = [
        make_event(),
        make_event(event_type="status_changed", description="Status changed from New to Active"),
    ]

    response = client.get("/api/v1/cases/case-1/timeline")

    assert response.status_code == 200
    assert [e["event_type"] for e in response.json()] == ["case_created", "status_changed"]


# --- POST /cases/{case_id}/documents and /messages ---

def test_record_document_uploaded(client, state_machine):
    state_machine.record_document_uploaded.return_value = make_event(
        event_type="document_uploaded",
        description="Document uploaded: contract.pdf",
        metadata={"document_name": "contract.pdf"},
    )

    response = client.post("/api/v1/cases/case-1/documents", json={
        "uploader_user_id": "client-user",
        "document_name": "contract.pdf",
    })

    assert response.status_code == 201
    assert response.json()["metadata"] == {"document_name": "contract.pdf"}
    state_machine.record_document_uploaded.assert_awaited_once_with("case-1", "client-user", "contract.pdf", None)


def test_record_message_sent(client, state_machine):
    state_machine.record_message_sent.return_value = make_event(event_type="message_sent", description="Message sent")

    response = client.post("/api/v1/cases/case-1/messages", json={
        "sender_user_id": "lawyer-user",
        "content": "Please sign the attached form.",
        "message_id": "msg-9",
    })

    assert response.status_code == 201
    state_machine.record_message_sent.assert_awaited_once_with(
        "case-1", "lawyer-user", "Please sign the attached form.", "msg-9"
    )


def test_record_message_validation_error(client, state_machine):
    state_machine.record_message_sent.side_effect = ValidationError("content", "must not be empty")

    response = client.post("/api/v1/cases/case-1/messages", json={"sender_user_id": "u", "content": " "})

    assert response.status_code == 422
    assert response.json()["detail"] == "Invalid value for 'content': must not be empty"
