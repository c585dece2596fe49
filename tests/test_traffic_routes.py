"""Tests for the traffic check endpoint and the enforce_traffic_limit dependency.

The TestClient reports its client host as ``testclient``, which is not an IP
address; exemption tests rely on the literal-match fallback for it.
"""

import pytest
from fastapi import Request
from fastapi.testclient import TestClient

from traffic_limiter.adapters.rate_table import InMemoryRateTableStore
from traffic_limiter.core import traffic_limit
from traffic_limiter.core.config import settings
from traffic_limiter.core.errors import StorageAppError
from traffic_limiter.main import app

CHECK_URL = "/v1/traffic/check"


@pytest.fixture
def client(monkeypatch: pytest.MonkeyPatch) -> TestClient:
    """Client against a fresh in-memory table with a 10 second window."""
    monkeypatch.setattr(settings.traffic, "limit", 10)
    monkeypatch.setattr(settings.traffic, "backend", "memory")
    monkeypatch.setattr(settings.traffic, "exempted_ip", None)
    monkeypatch.setattr(settings.traffic, "header", None)
    monkeypatch.setattr(settings.traffic, "salt", "route-salt")
    monkeypatch.setattr(settings.traffic, "include_headers", True)
    monkeypatch.setattr(traffic_limit, "_store", None)
    monkeypatch.setattr(traffic_limit, "_salt_provider", None)
    return TestClient(app)


def test_first_post_is_allowed(client: TestClient) -> None:
    response = client.post(CHECK_URL)

    assert response.status_code == 200
    body = response.json()
    assert body["allowed"] is True
    assert len(body["client_id"]) == 128


def test_second_post_within_window_is_rejected(client: TestClient) -> None:
    client.post(CHECK_URL)

    response = client.post(CHECK_URL)

    assert response.status_code == 429
    assert response.json()["detail"] == "Please wait 10 seconds between each post."
    assert response.headers["Retry-After"] == "10"


def test_retry_after_header_can_be_disabled(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings.traffic, "include_headers", False)
    client.post(CHECK_URL)

    response = client.post(CHECK_URL)

    assert response.status_code == 429
    assert "Retry-After" not in response.headers


def test_disabled_limit_always_allows(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings.traffic, "limit", 0)

    assert all(client.post(CHECK_URL).status_code == 200 for _ in range(3))


def test_exempted_client_always_allowed(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings.traffic, "exempted_ip", "10.0.0.0/8, testclient")

    assert all(client.post(CHECK_URL).status_code == 200 for _ in range(3))


def test_configured_header_identifies_clients(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings.traffic, "header", "X_REAL_IP")

    first = client.post(CHECK_URL, headers={"X-Real-IP": "203.0.113.1"})
    other = client.post(CHECK_URL, headers={"X-Real-IP": "203.0.113.2"})
    repeat = client.post(CHECK_URL, headers={"X-Real-IP": "203.0.113.1"})

    assert first.status_code == 200
    assert other.status_code == 200
    assert first.json()["client_id"] != other.json()["client_id"]
    assert repeat.status_code == 429


def test_header_exemption_by_range(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings.traffic, "header", "X-Forwarded-For")
    monkeypatch.setattr(settings.traffic, "exempted_ip", "192.168.*.*")
    headers = {"X-Forwarded-For": "192.168.4.20"}

    assert client.post(CHECK_URL, headers=headers).status_code == 200
    assert client.post(CHECK_URL, headers=headers).status_code == 200


class _BrokenStore(InMemoryRateTableStore):
    def exists(self, name: str) -> bool:
        return True

    def load(self, name: str):
        raise StorageAppError(code="storage_error", message="Unable to read the rate table")


def test_storage_failure_returns_500(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(traffic_limit, "get_rate_table_store", lambda: _BrokenStore())

    response = client.post(CHECK_URL)

    assert response.status_code == 500
    error = response.json()["error"]
    assert error["code"] == "storage_error"
    assert "details" not in error


def test_store_is_reused_across_requests(client: TestClient) -> None:
    client.post(CHECK_URL)
    store = traffic_limit.get_rate_table_store()

    assert traffic_limit.get_rate_table_store() is store
    assert isinstance(store, InMemoryRateTableStore)
    assert store.stores == 1


def test_health_reports_limiting_state(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    assert client.get("/health").json() == {"status": "ok", "limiting": "enabled"}

    monkeypatch.setattr(settings.traffic, "limit", -1)
    assert client.get("/health").json() == {"status": "ok", "limiting": "disabled"}


def test_build_environ_joins_repeated_headers() -> None:
    request = Request(
        {
            "type": "http",
            "method": "POST",
            "path": CHECK_URL,
            "headers": [
                (b"x-forwarded-for", b"203.0.113.1"),
                (b"x-forwarded-for", b"10.0.0.1"),
                (b"user-agent", b"pytest"),
            ],
            "client": ("198.51.100.7", 51000),
        }
    )

    environ = traffic_limit.build_environ(request)

    assert environ["HTTP_X_FORWARDED_FOR"] == "203.0.113.1, 10.0.0.1"
    assert environ["HTTP_USER_AGENT"] == "pytest"
    assert environ["REMOTE_ADDR"] == "198.51.100.7"
