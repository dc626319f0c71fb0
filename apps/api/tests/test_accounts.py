import pytest
from sqlalchemy import select

from helpers import PNG_BYTES, TEST_PASSWORD, auth_headers, login_user, register_user, signup
from models.user import User


@pytest.mark.asyncio
async def test_register_returns_public_account_fields(client, media_store):
    response = await register_user(client, "Alice", with_cover=True)
    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "User registered successfully"

    user = body["data"]
    assert user["username"] == "alice"
    assert user["email"] == "alice@example.com"
    assert user["avatar"].startswith("https://media.test/image/")
    assert user["coverImage"].startswith("https://media.test/image/")
    assert "password" not in user and "passwordHash" not in user
    assert "refreshToken" not in user
    assert len(media_store.objects) == 2


@pytest.mark.asyncio
async def test_duplicate_username_is_case_insensitive(client):
    first = await register_user(client, "alice", email="first@example.com")
    assert first.status_code == 201

    second = await register_user(client, "Alice", email="second@example.com")
    assert second.status_code == 409
    assert second.json()["message"] == "User with email or username already exists"

    same_email = await register_user(client, "bob", email="FIRST@example.com")
    assert same_email.status_code == 409


@pytest.mark.asyncio
async def test_register_requires_fields_and_avatar(client):
    blank = await client.post(
        "/api/v1/users/register",
        data={"fullName": "  ", "email": "x@example.com", "username": "x", "password": "pw"},
        files={"avatar": ("a.png", PNG_BYTES, "image/png")},
    )
    assert blank.status_code == 400
    assert blank.json()["message"] == "Please fill all the fields"

    no_avatar = await client.post(
        "/api/v1/users/register",
        data={"fullName": "X", "email": "x@example.com", "username": "x", "password": "pw"},
    )
    assert no_avatar.status_code == 400
    assert no_avatar.json()["message"] == "Please upload an avatar"

    bad_email = await client.post(
        "/api/v1/users/register",
        data={"fullName": "X", "email": "not-an-email", "username": "x", "password": "pw"},
        files={"avatar": ("a.png", PNG_BYTES, "image/png")},
    )
    assert bad_email.status_code == 400


@pytest.mark.asyncio
async def test_oversized_upload_is_rejected_and_not_stored(client, media_store):
    response = await client.post(
        "/api/v1/users/register",
        data={"fullName": "Big", "email": "big@example.com", "username": "big", "password": "pw"},
        files={"avatar": ("big.png", b"0" * (70 * 1024), "image/png")},
    )
    assert response.status_code == 413
    assert media_store.objects == {}


@pytest.mark.asyncio
async def test_login_by_username_or_email(client):
    await register_user(client, "carol")

    by_email = await client.post("/api/v1/users/login", json={"email": "CAROL@example.com", "password": TEST_PASSWORD})
    assert by_email.status_code == 200
    data = by_email.json()["data"]
    assert data["user"]["username"] == "carol"
    assert data["accessToken"] and data["refreshToken"]
    assert "accessToken" in by_email.cookies

    missing = await client.post("/api/v1/users/login", json={"password": TEST_PASSWORD})
    assert missing.status_code == 400

    unknown = await client.post("/api/v1/users/login", json={"username": "nobody", "password": TEST_PASSWORD})
    assert unknown.status_code == 401

    wrong = await client.post("/api/v1/users/login", json={"username": "carol", "password": "wrong"})
    assert wrong.status_code == 401
    assert wrong.json()["message"] == "Invalid user credentials"


@pytest.mark.asyncio
async def test_login_email_is_normalized_like_registration(client):
    decomposed = "zoe\u0308@example.com"
    registered = await register_user(client, "zoe", email=decomposed)
    assert registered.status_code == 201
    assert registered.json()["data"]["email"] == "zo\u00eb@example.com"

    for attempt in (decomposed, "Zoe\u0308@Example.COM", "zo\u00eb@example.com"):
        response = await client.post("/api/v1/users/login", json={"email": attempt, "password": TEST_PASSWORD})
        assert response.status_code == 200, attempt
        assert response.json()["data"]["user"]["username"] == "zoe"

    not_an_address = await client.post("/api/v1/users/login", json={"email": "zoe", "password": TEST_PASSWORD})
    assert not_an_address.status_code == 401
    assert not_an_address.json()["message"] == "User does not exist"


@pytest.mark.asyncio
async def test_access_cookie_authenticates(client):
    await register_user(client, "dave")
    response = await client.post("/api/v1/users/login", json={"username": "dave", "password": TEST_PASSWORD})
    assert response.status_code == 200

    me = await client.get("/api/v1/users/current-user")
    assert me.status_code == 200
    assert me.json()["data"]["username"] == "dave"


@pytest.mark.asyncio
async def test_refresh_rotates_and_rejects_reuse(client):
    await register_user(client, "erin")
    session = await login_user(client, "erin")
    original = session["refreshToken"]

    rotated = await client.post("/api/v1/users/refresh-token", json={"refreshToken": original})
    assert rotated.status_code == 200
    client.cookies.clear()
    fresh = rotated.json()["data"]
    assert fresh["refreshToken"] != original

    me = await client.get("/api/v1/users/current-user", headers=auth_headers(fresh["accessToken"]))
    assert me.status_code == 200

    reused = await client.post("/api/v1/users/refresh-token", json={"refreshToken": original})
    assert reused.status_code == 401

    again = await client.post("/api/v1/users/refresh-token", json={"refreshToken": fresh["refreshToken"]})
    assert again.status_code == 200
    client.cookies.clear()

    access_as_refresh = await client.post("/api/v1/users/refresh-token", json={"refreshToken": fresh["accessToken"]})
    assert access_as_refresh.status_code == 401

    missing = await client.post("/api/v1/users/refresh-token")
    assert missing.status_code == 401


@pytest.mark.asyncio
async def test_logout_revokes_refresh_token(client, session_maker):
    await register_user(client, "frank")
    session = await login_user(client, "frank")

    out = await client.post("/api/v1/users/logout", headers=auth_headers(session["accessToken"]))
    assert out.status_code == 200
    assert out.json()["data"] == {}

    async with session_maker() as db:
        stored = (await db.execute(select(User.refresh_token).where(User.username == "frank"))).scalar_one()
    assert stored is None

    refresh = await client.post("/api/v1/users/refresh-token", json={"refreshToken": session["refreshToken"]})
    assert refresh.status_code == 401


@pytest.mark.asyncio
async def test_change_password(client):
    account = await signup(client, "grace")

    wrong = await client.post(
        "/api/v1/users/change-password",
        json={"oldPassword": "nope", "newPassword": "another secret"},
        headers=account["headers"],
    )
    assert wrong.status_code == 400

    changed = await client.post(
        "/api/v1/users/change-password",
        json={"oldPassword": TEST_PASSWORD, "newPassword": "another secret"},
        headers=account["headers"],
    )
    assert changed.status_code == 200

    old_login = await client.post("/api/v1/users/login", json={"username": "grace", "password": TEST_PASSWORD})
    assert old_login.status_code == 401
    await login_user(client, "grace", password="another secret")


@pytest.mark.asyncio
async def test_update_account_details(client):
    heidi = await signup(client, "heidi")
    await signup(client, "ivan")

    nothing = await client.patch("/api/v1/users/update-account", json={}, headers=heidi["headers"])
    assert nothing.status_code == 400

    taken = await client.patch(
        "/api/v1/users/update-account",
        json={"email": "ivan@example.com"},
        headers=heidi["headers"],
    )
    assert taken.status_code == 409

    updated = await client.patch(
        "/api/v1/users/update-account",
        json={"fullName": "Heidi Renamed", "email": "Heidi.New@example.com"},
        headers=heidi["headers"],
    )
    assert updated.status_code == 200
    assert updated.json()["data"]["fullName"] == "Heidi Renamed"
    assert updated.json()["data"]["email"] == "heidi.new@example.com"


@pytest.mark.asyncio
async def test_avatar_replacement_discards_previous_asset(client, media_store):
    judy = await signup(client, "judy")
    before = (await client.get("/api/v1/users/current-user", headers=judy["headers"])).json()["data"]

    response = await client.patch(
        "/api/v1/users/avatar",
        files={"avatar": ("new.png", PNG_BYTES, "image/png")},
        headers=judy["headers"],
    )
    assert response.status_code == 200
    after = response.json()["data"]
    assert after["avatar"] != before["avatar"]

    old_public_id = before["avatar"].removeprefix("https://media.test/")
    assert old_public_id in media_store.deleted

    cover = await client.patch(
        "/api/v1/users/cover-image",
        files={"coverImage": ("cover.png", PNG_BYTES, "image/png")},
        headers=judy["headers"],
    )
    assert cover.status_code == 200
    assert cover.json()["data"]["coverImage"].startswith("https://media.test/image/")

    missing = await client.patch("/api/v1/users/avatar", headers=judy["headers"])
    assert missing.status_code == 400
