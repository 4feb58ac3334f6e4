"""HTTP tests for the admin quota endpoints."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from quota_guard.adapters.counter_store.in_memory import InMemoryCounterStore
from quota_guard.core.app_factory import create_app

ADMIN = {"X-Admin-Key": "test-admin-key-123"}


@pytest.fixture
def client():
    store = InMemoryCounterStore()
    app = create_app(store=store)
    assert app.state.counter_store is store
    with TestClient(app) as test_client:
        yield test_client


def test_status_requires_admin_key(client: TestClient) -> None:
    response = client.get("/v1/admin/limits/ip/1.2.3.4")

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "invalid_admin_key"


def test_status_rejects_unknown_admin_key(client: TestClient) -> None:
    response = client.get("/v1/admin/limits/ip/1.2.3.4", headers={"X-Admin-Key": "nope"})

    assert response.status_code == 403


def test_status_reports_blocked_identity(client: TestClient) -> None:
    for _ in range(6):
        client.get("/", headers={"X-Forwarded-For": "1.2.3.4"})

    response = client.get("/v1/admin/limits/ip/1.2.3.4", headers=ADMIN)

    assert response.status_code == 200
    body = response.json()
    assert body["limit_type"] == "ip"
    assert body["limit"] == 5
    assert body["blocked"] is True


def test_reset_unblocks_identity(client: TestClient) -> None:
    for _ in range(11):
        client.get("/", headers={"API_KEY": "abc"})
    assert client.get("/", headers={"API_KEY": "abc"}).status_code == 429

    response = client.delete("/v1/admin/limits/token/abc", headers=ADMIN)

    assert response.status_code == 204
    assert client.get("/", headers={"API_KEY": "abc"}).status_code == 200


def test_invalid_limit_type_returns_400(client: TestClient) -> None:
    response = client.get("/v1/admin/limits/user/alice", headers=ADMIN)

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "invalid_limit_type"
    assert error["details"]["allowed_types"] == ["ip", "token"]
