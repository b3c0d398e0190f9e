from conftest import API, bearer, register


async def test_register_returns_token_pair_and_sends_welcome(client, application, email_service):
    tokens = await register(client, "new@example.com")
    await application.state.event_bus.drain()

    assert tokens["accessToken"]
    assert tokens["refreshToken"]
    assert tokens["tokenType"] == "bearer"
    assert tokens["user"]["email"] == "new@example.com"
    assert tokens["user"]["role"] == "USER"
    assert "passwordHash" not in tokens["user"]

    welcomes = email_service.of_kind("welcome")
    assert len(welcomes) == 1
    assert welcomes[0]["user"]["email"] == "new@example.com"


async def test_duplicate_email_conflicts(client):
    await register(client, "dup@example.com")

    response = await client.post(
        f"{API}/auth/register",
        json={"email": "DUP@example.com", "password": "secret123", "name": "Dup"},
    )

    assert response.status_code == 409
    assert response.json()["message"] == "Email already exists"


async def test_invalid_registration_lists_field_errors(client):
    response = await client.post(f"{API}/auth/register", json={"email": "not-an-email", "password": "x"})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Validation failed"
    fields = {detail["field"] for detail in body["error"]["details"]}
    assert {"email", "password", "name"} <= fields


async def test_login_with_wrong_password(client):
    await register(client, "login@example.com")

    response = await client.post(f"{API}/auth/login", json={"email": "login@example.com", "password": "wrong-pass"})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid credentials"


async def test_login_and_profile(client):
    await register(client, "me@example.com", "MANAGER")

    response = await client.post(f"{API}/auth/login", json={"email": "me@example.com", "password": "secret123"})
    assert response.status_code == 200
    tokens = response.json()

    profile = await client.get(f"{API}/auth/me", headers=bearer(tokens))
    assert profile.status_code == 200
    assert profile.json()["email"] == "me@example.com"
    assert profile.json()["role"] == "MANAGER"


async def test_refresh_token_is_single_use(client):
    tokens = await register(client, "rotate@example.com")

    first = await client.post(f"{API}/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
    assert first.status_code == 200
    rotated = first.json()
    assert rotated["refreshToken"] != tokens["refreshToken"]

    replay = await client.post(f"{API}/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
    assert replay.status_code == 401
    assert replay.json()["message"] == "Invalid token"

    again = await client.post(f"{API}/auth/refresh", json={"refreshToken": rotated["refreshToken"]})
    assert again.status_code == 200


async def test_logout_revokes_refresh_token(client):
    tokens = await register(client, "bye@example.com")

    response = await client.post(f"{API}/auth/logout", json={"refreshToken": tokens["refreshToken"]})
    assert response.status_code == 200
    assert response.json()["message"] == "Logged out successfully"

    refresh = await client.post(f"{API}/auth/refresh", json={"refreshToken": tokens["refreshToken"]})
    assert refresh.status_code == 401


async def test_protected_route_requires_token(client):
    response = await client.get(f"{API}/auth/me")

    assert response.status_code == 401
    body = response.json()
    assert body == {
        "success": False,
        "message": "Authentication required",
        "error": {"statusCode": 401, "message": "Authentication required"},
    }


async def test_garbage_token_is_rejected(client):
    response = await client.get(f"{API}/auth/me", headers={"Authorization": "Bearer nonsense"})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid or expired token"


async def test_responses_carry_security_headers(client):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.json()["checks"] == {"database": "connected", "cache": "connected"}
