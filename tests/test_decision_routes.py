"""Tests for the decision service HTTP routes."""

import pytest
from fastapi.testclient import TestClient

from kvlimit.adapters.rate_limit.base import RatelimitResponse
from kvlimit.core import rate_limit
from kvlimit.core.app_factory import create_app
from kvlimit.core.config import settings
from kvlimit.core.errors import InvalidDurationError, NonNumericValueError
from kvlimit.core.rate_limit import reset_rate_limiter
from kvlimit.main import app
from kvlimit.schemas.decision import DecisionResponse

client = TestClient(app)


@pytest.fixture(autouse=True)
def _fresh_limiter():
    reset_rate_limiter()
    yield
    reset_rate_limiter()


def test_health() -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_decision_allowed_returns_body_and_headers() -> None:
    response = client.get("/v1/decisions/user-1")

    assert response.status_code == 200
    data = response.json()
    assert data["namespace"] == settings.limiter.namespace
    assert data["success"] is True
    assert data["limit"] == settings.limiter.max_tokens
    assert data["remaining"] == settings.limiter.max_tokens - 1
    assert isinstance(data["remaining"], int)
    assert response.headers["X-RateLimit-Remaining"] == str(settings.limiter.max_tokens - 1)
    assert response.headers["X-RateLimit-Reset"] == str(data["reset"])
    assert "Retry-After" not in response.headers


def test_decision_denied_returns_429() -> None:
    for _ in range(settings.limiter.max_tokens):
        assert client.get("/v1/decisions/user-2").status_code == 200

    response = client.get("/v1/decisions/user-2")

    assert response.status_code == 429
    data = response.json()
    assert data["success"] is False
    assert data["remaining"] == 0
    assert "Retry-After" in response.headers


def test_decisions_are_per_identifier() -> None:
    for _ in range(settings.limiter.max_tokens + 1):
        client.get("/v1/decisions/user-3")

    assert client.get("/v1/decisions/user-4").status_code == 200


def test_store_error_maps_to_503(monkeypatch: pytest.MonkeyPatch) -> None:
    limiter = rate_limit.get_rate_limiter()

    async def _broken(ctx, identifier):
        raise NonNumericValueError(
            code="non_numeric_value",
            message="Cannot increment non-numeric value",
            details={"key": "test:user:1"},
        )

    monkeypatch.setattr(limiter.limiter, "evaluate", _broken)

    response = client.get("/v1/decisions/user-5")

    assert response.status_code == 503
    assert response.json()["error"]["code"] == "non_numeric_value"


def test_fractional_remaining_is_kept() -> None:
    result = RatelimitResponse(success=True, limit=10, remaining=2.5, reset=0)

    body = DecisionResponse.from_result("api", result)

    assert body.model_dump()["remaining"] == 2.5


def test_misconfigured_limiter_fails_at_startup(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(settings.limiter, "algorithm", "fixed_window")
    monkeypatch.setattr(settings.limiter, "window", "ten seconds")

    with pytest.raises(InvalidDurationError):
        create_app()
