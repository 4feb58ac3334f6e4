"""HTTP-level tests for the rate limiting dependency."""

from __future__ import annotations

from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from quota_guard.adapters.counter_store.in_memory import InMemoryCounterStore
from quota_guard.core.app_factory import create_app
from quota_guard.core.rate_limit import RATE_LIMIT_EXCEEDED_DETAIL


class _BrokenStore(InMemoryCounterStore):
    async def exists(self, key: str) -> bool:
        raise ConnectionError("redis down")


@pytest.fixture
def client():
    store = InMemoryCounterStore()
    app = create_app(store=store)
    assert app.state.counter_store is store
    with TestClient(app) as test_client:
        yield test_client


def test_ip_quota_returns_429_on_sixth_request(client: TestClient) -> None:
    headers = {"X-Forwarded-For": "1.2.3.4"}

    responses = [client.get("/", headers=headers) for _ in range(6)]

    assert [r.status_code for r in responses[:5]] == [200] * 5
    assert responses[0].json() == {"message": "Rate Limiter API", "status": "running"}
    assert [r.headers["X-RateLimit-Remaining"] for r in responses[:5]] == ["4", "3", "2", "1", "0"]

    denied = responses[5]
    assert denied.status_code == 429
    assert denied.json()["detail"] == RATE_LIMIT_EXCEEDED_DETAIL
    assert denied.headers["X-RateLimit-Limit"] == "5"
    assert denied.headers["X-RateLimit-Remaining"] == "0"
    assert int(denied.headers["Retry-After"]) > 0
    assert int(denied.headers["X-RateLimit-Reset"]) > 0


def test_blocked_ip_stays_blocked(client: TestClient) -> None:
    headers = {"X-Real-IP": "10.0.0.1"}
    for _ in range(6):
        client.post("/test", headers=headers)

    assert client.post("/test", headers=headers).status_code == 429
    assert client.get("/", headers=headers).status_code == 429


def test_distinct_ips_do_not_share_quota(client: TestClient) -> None:
    for _ in range(6):
        client.get("/", headers={"X-Forwarded-For": "1.1.1.1"})

    assert client.get("/", headers={"X-Forwarded-For": "2.2.2.2"}).status_code == 200


def test_token_takes_priority_over_ip(client: TestClient) -> None:
    ip_headers = {"X-Forwarded-For": "5.5.5.5"}
    for _ in range(6):
        client.get("/", headers=ip_headers)
    assert client.get("/", headers=ip_headers).status_code == 429

    response = client.post("/test", headers={**ip_headers, "API_KEY": "  abc  "})

    assert response.status_code == 200
    assert response.headers["X-RateLimit-Limit"] == "10"
    assert response.json()["message"] == "Request processed successfully"


def test_token_quota_is_per_token(client: TestClient) -> None:
    statuses = [client.get("/", headers={"API_KEY": "abc"}).status_code for _ in range(11)]
    assert statuses == [200] * 10 + [429]

    assert client.get("/", headers={"API_KEY": "xyz"}).status_code == 200


def test_blank_token_falls_back_to_ip(client: TestClient) -> None:
    response = client.get("/", headers={"API_KEY": "   ", "X-Client-IP": "7.7.7.7"})

    assert response.headers["X-RateLimit-Limit"] == "5"


def test_health_is_not_rate_limited(client: TestClient) -> None:
    headers = {"X-Forwarded-For": "9.9.9.9"}
    for _ in range(6):
        client.get("/", headers=headers)

    response = client.get("/health", headers=headers)

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert "X-RateLimit-Limit" not in response.headers


def test_injected_empty_store_is_used() -> None:
    store = InMemoryCounterStore()
    assert len(store) == 0

    with patch("quota_guard.core.app_factory.settings.rate_limit.store_backend", "redis"):
        app = create_app(store=store)

    assert app.state.counter_store is store
    assert app.state.rate_limiter.store is store


def test_store_failure_returns_500_error_body() -> None:
    store = _BrokenStore()
    app = create_app(store=store)
    assert app.state.counter_store is store

    with TestClient(app) as client:
        response = client.get("/")

    assert response.status_code == 500
    error = response.json()["error"]
    assert error["code"] == "store_error"
    assert error["details"]["operation"] == "exists"
    assert error["request_id"]


def test_store_failure_fails_open_when_configured() -> None:
    with patch("quota_guard.core.rate_limit.settings.rate_limit.fail_open", True):
        store = _BrokenStore()
        app = create_app(store=store)
        assert app.state.counter_store is store
        with TestClient(app) as client:
            response = client.get("/")

    assert response.status_code == 200
    assert "X-RateLimit-Limit" not in response.headers


def test_disabled_rate_limit_lets_everything_through(client: TestClient) -> None:
    with patch("quota_guard.core.rate_limit.settings.rate_limit.enabled", False):
        statuses = [client.get("/").status_code for _ in range(8)]

    assert statuses == [200] * 8


def test_headers_can_be_suppressed(client: TestClient) -> None:
    with patch("quota_guard.core.rate_limit.settings.rate_limit.include_headers", False):
        responses = [client.get("/", headers={"X-Forwarded-For": "8.8.8.8"}) for _ in range(6)]

    assert "X-RateLimit-Limit" not in responses[0].headers
    assert responses[5].status_code == 429
    assert "Retry-After" not in responses[5].headers
