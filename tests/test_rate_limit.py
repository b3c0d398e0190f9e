import pytest

from conftest import API, bearer, register

from app.config import settings
from app.middleware.rate_limit import current_window, rate_limit_key

# Long enough that a test never straddles two windows
WINDOW = 10 ** 9


@pytest.fixture
def limits(monkeypatch):
    def apply(requests: int = 100, auth_failures: int = 5):
        monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", True)
        monkeypatch.setattr(settings, "RATE_LIMIT_WINDOW_SECONDS", WINDOW)
        monkeypatch.setattr(settings, "RATE_LIMIT_MAX_REQUESTS", requests)
        monkeypatch.setattr(settings, "AUTH_RATE_LIMIT_MAX_FAILURES", auth_failures)

    return apply


def test_current_window():
    assert current_window(60, now=125.0) == (2, 55)
    assert current_window(60, now=179.5) == (2, 1)
    assert rate_limit_key("api", "1.2.3.4:anonymous", 2) == "ratelimit:api:1.2.3.4:anonymous:2"


async def test_requests_over_the_limit_get_429(client, limits):
    limits(requests=3)

    statuses = [(await client.get(f"{API}/fares")).status_code for _ in range(3)]
    blocked = await client.get(f"{API}/fares")

    assert 429 not in statuses
    assert blocked.status_code == 429
    payload = blocked.json()
    assert payload["success"] is False
    assert payload["message"] == "Too many requests, please try again later"
    assert payload["error"]["statusCode"] == 429
    assert int(blocked.headers["Retry-After"]) > 0
    assert blocked.headers["RateLimit-Remaining"] == "0"


async def test_remaining_budget_is_reported(client, limits):
    limits(requests=5)

    first = await client.get(f"{API}/fares")
    second = await client.get(f"{API}/fares")

    assert first.headers["RateLimit-Limit"] == "5"
    assert first.headers["RateLimit-Remaining"] == "4"
    assert second.headers["RateLimit-Remaining"] == "3"


async def test_authenticated_callers_have_their_own_budget(client, limits):
    tokens = await register(client, "busy@example.com")
    limits(requests=2)

    for _ in range(2):
        await client.get(f"{API}/fares")
    assert (await client.get(f"{API}/fares")).status_code == 429

    response = await client.get(f"{API}/auth/me", headers=bearer(tokens))
    assert response.status_code == 200


async def test_health_is_not_limited(client, limits):
    limits(requests=1)

    for _ in range(3):
        response = await client.get("/health")
        assert response.status_code != 429
        assert "RateLimit-Limit" not in response.headers


async def test_failed_logins_are_throttled(client, limits):
    await register(client, "target@example.com")
    limits(auth_failures=2)
    wrong = {"email": "target@example.com", "password": "wrong-pass"}

    assert (await client.post(f"{API}/auth/login", json=wrong)).status_code == 401
    assert (await client.post(f"{API}/auth/login", json=wrong)).status_code == 401

    blocked = await client.post(
        f"{API}/auth/login", json={"email": "target@example.com", "password": "secret123"}
    )
    assert blocked.status_code == 429
    assert blocked.json()["message"] == "Too many authentication attempts, please try again later"


async def test_successful_logins_do_not_count(client, limits):
    await register(client, "regular@example.com")
    limits(auth_failures=1)
    good = {"email": "regular@example.com", "password": "secret123"}

    for _ in range(3):
        assert (await client.post(f"{API}/auth/login", json=good)).status_code == 200


async def test_disabled_limiter_lets_everything_through(client, monkeypatch):
    monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", False)
    monkeypatch.setattr(settings, "RATE_LIMIT_MAX_REQUESTS", 1)

    for _ in range(3):
        response = await client.get(f"{API}/fares")
        assert response.status_code != 429
