"""
User and authentication endpoint tests: registration, login, the current
user's record, and how the Authorization header is interpreted.
"""
import pytest
from httpx import AsyncClient


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _register(client: AsyncClient, username: str, password: str = "password123") -> dict:
    resp = await client.post("/api/users", json={"user": {
        "username": username,
        "email": f"{username}@example.com",
        "password": password,
    }})
    assert resp.status_code == 201, resp.text
    return resp.json()["user"]


def _auth(token: str) -> dict:
    return {"Authorization": f"Token {token}"}


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_register_returns_user_with_token(async_client: AsyncClient):
    user = await _register(async_client, "jake")
    assert user["username"] == "jake"
    assert user["email"] == "jake@example.com"
    assert user["bio"] is None
    assert user["image"] is None
    assert user["token"]
    assert "password" not in user
    assert "passwordHash" not in user


@pytest.mark.asyncio
async def test_register_duplicate_email_returns_409(async_client: AsyncClient):
    await _register(async_client, "first")
    resp = await async_client.post("/api/users", json={"user": {
        "username": "second",
        "email": "first@example.com",
        "password": "password123",
    }})
    assert resp.status_code == 409
    assert resp.json() == {"errors": {"email": ["has already been taken"]}}


@pytest.mark.asyncio
async def test_register_duplicate_username_returns_409(async_client: AsyncClient):
    await _register(async_client, "taken")
    resp = await async_client.post("/api/users", json={"user": {
        "username": "taken",
        "email": "other@example.com",
        "password": "password123",
    }})
    assert resp.status_code == 409
    assert resp.json() == {"errors": {"username": ["has already been taken"]}}


@pytest.mark.asyncio
async def test_register_rejects_short_password(async_client: AsyncClient):
    resp = await async_client.post("/api/users", json={"user": {
        "username": "shorty",
        "email": "shorty@example.com",
        "password": "short",
    }})
    assert resp.status_code == 422
    assert "user.password" in resp.json()["errors"]


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_login_with_valid_credentials(async_client: AsyncClient):
    await _register(async_client, "loginuser")
    resp = await async_client.post("/api/users/login", json={"user": {
        "email": "loginuser@example.com",
        "password": "password123",
    }})
    assert resp.status_code == 200
    data = resp.json()["user"]
    assert data["username"] == "loginuser"
    assert data["token"]


@pytest.mark.asyncio
async def test_login_wrong_password_returns_401(async_client: AsyncClient):
    await _register(async_client, "wrongpw")
    resp = await async_client.post("/api/users/login", json={"user": {
        "email": "wrongpw@example.com",
        "password": "not-the-password",
    }})
    assert resp.status_code == 401
    assert resp.json() == {"errors": {"credentials": ["email or password is invalid"]}}


@pytest.mark.asyncio
async def test_login_unknown_email_matches_wrong_password(async_client: AsyncClient):
    """An unknown email is indistinguishable from a wrong password."""
    resp = await async_client.post("/api/users/login", json={"user": {
        "email": "nobody@example.com",
        "password": "password123",
    }})
    assert resp.status_code == 401
    assert resp.json() == {"errors": {"credentials": ["email or password is invalid"]}}


# ---------------------------------------------------------------------------
# Current user
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_current_user_requires_token(async_client: AsyncClient):
    resp = await async_client.get("/api/user")
    assert resp.status_code == 401
    assert "token" in resp.json()["errors"]


@pytest.mark.asyncio
async def test_current_user_with_token(async_client: AsyncClient):
    registered = await _register(async_client, "me")
    resp = await async_client.get("/api/user", headers=_auth(registered["token"]))
    assert resp.status_code == 200
    assert resp.json()["user"]["username"] == "me"


@pytest.mark.asyncio
async def test_bearer_scheme_is_accepted(async_client: AsyncClient):
    registered = await _register(async_client, "bearer")
    resp = await async_client.get(
        "/api/user", headers={"Authorization": f"Bearer {registered['token']}"}
    )
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_malformed_authorization_header_returns_401(async_client: AsyncClient):
    resp = await async_client.get("/api/user", headers={"Authorization": "Basic abc"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_tampered_token_returns_401(async_client: AsyncClient):
    registered = await _register(async_client, "tamper")
    resp = await async_client.get("/api/user", headers=_auth(registered["token"] + "x"))
    assert resp.status_code == 401
    assert resp.json() == {"errors": {"token": ["is invalid, expired, or malformed"]}}


@pytest.mark.asyncio
async def test_invalid_token_on_public_endpoint_is_rejected(async_client: AsyncClient):
    """A bad token is an error even where anonymous access is allowed."""
    resp = await async_client.get("/api/articles", headers=_auth("garbage"))
    assert resp.status_code == 401


# ---------------------------------------------------------------------------
# Update current user
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_update_bio_and_image(async_client: AsyncClient):
    registered = await _register(async_client, "updater")
    resp = await async_client.put("/api/user", headers=_auth(registered["token"]), json={
        "user": {"bio": "I like to skateboard", "image": "https://example.com/me.png"},
    })
    assert resp.status_code == 200
    user = resp.json()["user"]
    assert user["bio"] == "I like to skateboard"
    assert user["image"] == "https://example.com/me.png"
    assert user["username"] == "updater"


@pytest.mark.asyncio
async def test_update_null_clears_image_but_not_email(async_client: AsyncClient):
    registered = await _register(async_client, "clearer")
    headers = _auth(registered["token"])
    await async_client.put("/api/user", headers=headers, json={
        "user": {"image": "https://example.com/a.png"},
    })

    resp = await async_client.put("/api/user", headers=headers, json={
        "user": {"image": None, "email": None},
    })
    assert resp.status_code == 200
    user = resp.json()["user"]
    assert user["image"] is None
    assert user["email"] == "clearer@example.com"


@pytest.mark.asyncio
async def test_update_to_taken_username_returns_409(async_client: AsyncClient):
    await _register(async_client, "alice")
    bob = await _register(async_client, "bob")
    resp = await async_client.put("/api/user", headers=_auth(bob["token"]), json={
        "user": {"username": "alice"},
    })
    assert resp.status_code == 409
    assert resp.json() == {"errors": {"username": ["has already been taken"]}}


@pytest.mark.asyncio
async def test_update_keeping_own_email_is_not_a_conflict(async_client: AsyncClient):
    registered = await _register(async_client, "sameemail")
    resp = await async_client.put("/api/user", headers=_auth(registered["token"]), json={
        "user": {"email": "sameemail@example.com"},
    })
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_password_change_takes_effect_on_login(async_client: AsyncClient):
    registered = await _register(async_client, "rotator")
    resp = await async_client.put("/api/user", headers=_auth(registered["token"]), json={
        "user": {"password": "a-new-password"},
    })
    assert resp.status_code == 200

    old = await async_client.post("/api/users/login", json={"user": {
        "email": "rotator@example.com", "password": "password123",
    }})
    assert old.status_code == 401
    new = await async_client.post("/api/users/login", json={"user": {
        "email": "rotator@example.com", "password": "a-new-password",
    }})
    assert new.status_code == 200
