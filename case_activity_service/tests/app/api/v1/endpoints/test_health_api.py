import pytest
from unittest.mock import AsyncMock, MagicMock

from fastapi import FastAPI
from fastapi.testclient import TestClient

from case_activity_service.app.api.v1.endpoints import health as health_router
from case_activity_service.app.config import settings
from case_activity_service.infrastructure.database.connection import get_db

# --- Fixtures ---

@pytest.fixture
def app():
    app = FastAPI()
    app.include_router(health_router.router)
    return app


@pytest.fixture
def mock_db_session():
    db = MagicMock()
    db.command = AsyncMock() # The 'ping' command is an async operation
    return db


@pytest.fixture
def client(app, mock_db_session):
    async def override_get_db():
        yield mock_db_session
    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)

# --- Tests for GET /health ---

def test_health_check_db_connected(client, mock_db_session):
    mock_db_session.command.return_value = {"ok": 1}

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "components": {
            "mongodb": "connected",
            "notification_dispatcher": {"running": False, "queue_depth": 0},
        },
        "service_name": settings.SERVICE_NAME_API,
    }
    mock_db_session.command.assert_called_once_with('ping')


def test_health_check_db_disconnected(client, mock_db_session):
    mock_db_session.command.side_effect = Exception("Connection failed")

    response = client.get("/health")

    assert response.status_code == 200 # The endpoint itself still answers
    assert response.json()["components"]["mongodb"] == "disconnected"


def test_health_check_reports_dispatcher_state(app, client):
    app.state.services = MagicMock()
    app.state.services.dispatcher.is_running = True
    app.state.services.dispatcher.queue_depth = 7

    response = client.get("/health")

    assert response.json()["components"]["notification_dispatcher"] == {"running": True, "queue_depth": 7}
