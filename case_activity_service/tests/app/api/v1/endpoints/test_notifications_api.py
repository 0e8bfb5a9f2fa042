import datetime

import pytest
from unittest.mock import AsyncMock

from fastapi import FastAPI
from fastapi.testclient import TestClient

from case_activity_service.app.api.v1.endpoints import notifications as notifications_router
from case_activity_service.app.dependencies.services import get_notification_store
from case_activity_service.app.models import NotificationDB
from case_activity_service.tests.fakes import NOW, InMemoryNotificationStore


@pytest.fixture
def store():
    store = InMemoryNotificationStore()
    for i, (user_id, case_id) in enumerate([
        ("user-1", "case-1"),
        ("user-1", "case-1"),
        ("user-1", "case-2"),
        ("user-2", "case-1"),
    ]):
        store.notifications.append(NotificationDB(
            id=f"n-{i}",
            user_id=user_id,
            type="case_update",
            title=f"Update {i}",
            message="Something happened",
            case_id=case_id,
            created_at=NOW + datetime.timedelta(minutes=i),
        ))
    return store


def make_client(store) -> TestClient:
    app = FastAPI()
    app.include_router(notifications_router.router, prefix="/api/v1")
    app.dependency_overrides[get_notification_store] = lambda: store
    return TestClient(app)


@pytest.fixture
def client(store):
    return make_client(store)


def test_list_notifications_newest_first(client):
    response = client.get("/api/v1/notifications", params={"user_id": "user-1"})

    assert response.status_code == 200
    assert [n["id"] for n in response.json()] == ["n-2", "n-1", "n-0"]


def test_list_notifications_unread_only_and_limit(client, store):
    store.notifications[2].is_read = True

    response = client.get("/api/v1/notifications", params={"user_id": "user-1", "unread_only": True, "limit": 1})

    assert response.status_code == 200
    assert [n["id"] for n in response.json()] == ["n-1"]


def test_list_notifications_rejects_out_of_range_limit(client):
    response = client.get("/api/v1/notifications", params={"user_id": "user-1", "limit": 0})

    assert response.status_code == 422


def test_unread_count(client):
    assert client.get("/api/v1/notifications/unread-count", params={"user_id": "user-1"}).json() == {"count": 3}
    assert client.get(
        "/api/v1/notifications/unread-count", params={"user_id": "user-1", "case_id": "case-2"}
    ).json() == {"count": 1}


def test_mark_notification_read(client, store):
    response = client.post("/api/v1/notifications/n-0/read", params={"user_id": "user-1"})

    assert response.status_code == 200
    assert response.json()["is_read"] is True
    assert store.notifications[0].is_read is True


def test_mark_notification_read_of_another_user_is_not_found(client, store):
    response = client.post("/api/v1/notifications/n-3/read", params={"user_id": "user-1"})

    assert response.status_code == 404
    assert store.notifications[3].is_read is False


def test_mark_case_notifications_read(client):
    response = client.post("/api/v1/cases/case-1/notifications/read", params={"user_id": "user-1"})

    assert response.status_code == 200
    assert response.json() == {"updated": 2}
    assert client.get("/api/v1/notifications/unread-count", params={"user_id": "user-1"}).json() == {"count": 1}


def test_mark_all_read(client):
    response = client.post("/api/v1/notifications/read-all", params={"user_id": "user-1"})

    assert response.json() == {"updated": 3}
    assert client.get("/api/v1/notifications/unread-count", params={"user_id": "user-2"}).json() == {"count": 1}


def test_delete_notification(client, store):
    response = client.delete("/api/v1/notifications/n-1", params={"user_id": "user-1"})

    assert response.status_code == 204
    assert "n-1" not in [n.id for n in store.notifications]


def test_delete_notification_not_found(client):
    response = client.delete("/api/v1/notifications/n-1", params={"user_id": "user-2"})

    assert response.status_code == 404


def test_store_failure_returns_500():
    store = AsyncMock()
    store.list_for_user.side_effect = Exception("mongo unavailable")
    client = make_client(store)

    response = client.get("/api/v1/notifications", params={"user_id": "user-1"})

    assert response.status_code == 500
    assert response.json() == {"detail": "Failed to list notifications"}
