import uuid
from datetime import datetime, timedelta, timezone

from jose import jwt
from sqlalchemy.future import select

from todo_api.models.user import User


async def test_register_returns_profile_and_access_token(client):
    response = await client.post("/api/auth/register", json={
        "username": "alice",
        "email": "alice@example.com",
        "password": "secret123",
        "confirmPassword": "secret123",
    })

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    user = body["data"]["user"]
    assert user["username"] == "alice"
    assert user["email"] == "alice@example.com"
    assert "password" not in user
    assert "hashedPassword" not in user
    assert body["data"]["accessToken"]

    cookie = response.headers["set-cookie"]
    assert cookie.startswith("refreshToken=")
    assert "HttpOnly" in cookie
    assert "SameSite=strict" in cookie


async def test_password_is_stored_hashed(register, db):
    await register(password="secret123")

    result = await db.execute(select(User).filter(User.email == "alice@example.com"))
    user = result.scalars().first()
    assert user.hashed_password != "secret123"
    assert user.hashed_password.startswith("$2")


async def test_duplicate_email_conflicts(client, register):
    await register()

    response = await client.post("/api/auth/register", json={
        "username": "alice2",
        "email": "alice@example.com",
        "password": "another1",
        "confirmPassword": "another1",
    })

    assert response.status_code == 409
    assert response.json() == {
        "success": False,
        "message": "User already exists",
        "errors": [{"field": "email", "message": "User already exists"}],
    }


async def test_register_validation_errors(client):
    response = await client.post("/api/auth/register", json={
        "username": "a!",
        "email": "not-an-email",
        "password": "123",
        "confirmPassword": "456",
    })

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    fields = {e["field"] for e in body["errors"]}
    assert {"username", "email", "password"} <= fields


async def test_register_password_confirmation_must_match(client):
    response = await client.post("/api/auth/register", json={
        "username": "alice",
        "email": "alice@example.com",
        "password": "secret123",
        "confirmPassword": "secret124",
    })

    assert response.status_code == 400
    assert response.json()["errors"] == [
        {"field": "confirmPassword", "message": "Passwords do not match"}
    ]


async def test_login_sets_last_login(client, register):
    await register()

    response = await client.post("/api/auth/login", json={
        "email": "alice@example.com",
        "password": "secret123",
    })

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["user"]["lastLogin"] is not None
    assert data["accessToken"]
    assert "refreshToken=" in response.headers["set-cookie"]


async def test_login_failures_are_indistinguishable(client, register):
    await register()

    wrong_password = await client.post("/api/auth/login", json={
        "email": "alice@example.com",
        "password": "wrong-password",
    })
    unknown_email = await client.post("/api/auth/login", json={
        "email": "nobody@example.com",
        "password": "secret123",
    })

    assert wrong_password.status_code == unknown_email.status_code == 401
    assert wrong_password.json() == unknown_email.json() == {
        "success": False,
        "message": "Invalid credentials",
    }


async def test_refresh_rotates_tokens(client, register):
    await register()
    login = await client.post("/api/auth/login", json={
        "email": "alice@example.com",
        "password": "secret123",
    })
    first_access = login.json()["data"]["accessToken"]
    first_refresh = login.cookies["refreshToken"]

    response = await client.post("/api/auth/refresh")

    assert response.status_code == 200
    new_access = response.json()["data"]["accessToken"]
    assert new_access != first_access
    assert response.cookies["refreshToken"] != first_refresh

    profile = await client.get("/api/auth/profile", headers={"Authorization": f"Bearer {new_access}"})
    assert profile.status_code == 200


async def test_refresh_requires_cookie(client):
    client.cookies.clear()

    response = await client.post("/api/auth/refresh")

    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Refresh token required"}


async def test_refresh_rejects_tampered_token(client, register):
    await register()
    client.cookies.clear()
    client.cookies.set("refreshToken", "tampered.token.value")

    response = await client.post("/api/auth/refresh")

    assert response.status_code == 401
    body = response.json()
    assert body == {"success": False, "message": "Invalid refresh token"}
    assert "set-cookie" not in response.headers


async def test_refresh_rejects_access_token(client, register):
    headers, body = await register()
    client.cookies.clear()
    client.cookies.set("refreshToken", body["data"]["accessToken"])

    response = await client.post("/api/auth/refresh")

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid refresh token"


async def test_refresh_rejects_expired_token(client, register, settings):
    _, body = await register()
    claims = {
        "sub": body["data"]["user"]["id"],
        "type": "refresh",
        "exp": datetime.now(timezone.utc) - timedelta(minutes=1),
    }
    expired = jwt.encode(claims, settings.REFRESH_TOKEN_SECRET, algorithm=settings.ALGORITHM)
    client.cookies.clear()
    client.cookies.set("refreshToken", expired)

    response = await client.post("/api/auth/refresh")

    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Refresh token expired"}


async def test_refresh_for_deleted_user(client, register, db):
    _, body = await register()
    result = await db.execute(select(User).filter(User.id == uuid.UUID(body["data"]["user"]["id"])))
    await db.delete(result.scalars().first())
    await db.commit()

    response = await client.post("/api/auth/refresh")

    assert response.status_code == 401
    assert response.json()["message"] == "User not found"


async def test_logout_clears_cookie(client, register):
    await register()

    response = await client.post("/api/auth/logout")

    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Logged out successfully"}
    cookie = response.headers["set-cookie"]
    assert cookie.startswith('refreshToken=""') or "Max-Age=0" in cookie


async def test_logout_without_session_still_succeeds(client):
    response = await client.post("/api/auth/logout")
    assert response.status_code == 200


async def test_profile_requires_access_token(client):
    response = await client.get("/api/auth/profile")

    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "Access token required"}


async def test_profile_rejects_garbage_token(client):
    response = await client.get("/api/auth/profile", headers={"Authorization": "Bearer nope"})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid access token"


async def test_get_profile(client, alice):
    response = await client.get("/api/auth/profile", headers=alice)

    assert response.status_code == 200
    user = response.json()["data"]["user"]
    assert user["email"] == "alice@example.com"
    assert "hashedPassword" not in user


async def test_update_profile_partial(client, alice):
    response = await client.put("/api/auth/profile", headers=alice, json={"username": "alicia"})

    assert response.status_code == 200
    user = response.json()["data"]["user"]
    assert user["username"] == "alicia"
    assert user["email"] == "alice@example.com"


async def test_update_profile_to_own_email_is_allowed(client, alice):
    response = await client.put("/api/auth/profile", headers=alice, json={"email": "alice@example.com"})
    assert response.status_code == 200


async def test_update_profile_email_conflict(client, alice, bob):
    response = await client.put("/api/auth/profile", headers=alice, json={"email": "bob@example.com"})

    assert response.status_code == 409
    assert response.json() == {
        "success": False,
        "message": "Email already in use",
        "errors": [{"field": "email", "message": "Email already in use"}],
    }


async def test_changed_email_is_used_for_login(client, alice):
    await client.put("/api/auth/profile", headers=alice, json={"email": "alice@example.org"})

    response = await client.post("/api/auth/login", json={
        "email": "alice@example.org",
        "password": "secret123",
    })
    assert response.status_code == 200


async def test_openapi_documents_error_bodies(client):
    response = await client.get("/openapi.json")

    schema = response.json()
    register = schema["paths"]["/api/auth/register"]["post"]["responses"]
    list_todos = schema["paths"]["/api/todos"]["get"]["responses"]
    for responses in (register, list_todos):
        for status_code in ("400", "401", "404", "409"):
            ref = responses[status_code]["content"]["application/json"]["schema"]["$ref"]
            assert ref.endswith("/ErrorResponse")
    assert "FieldError" in schema["components"]["schemas"]
