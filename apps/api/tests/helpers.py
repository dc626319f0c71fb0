"""HTTP helpers shared by the API tests."""

from typing import Dict, Optional

from httpx import AsyncClient

TEST_PASSWORD = "correct horse battery"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"0" * 64
MP4_BYTES = b"\x00\x00\x00\x18ftypmp42" + b"1" * 256


def auth_headers(token: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def register_user(
    client: AsyncClient,
    username: str,
    email: Optional[str] = None,
    password: str = TEST_PASSWORD,
    with_cover: bool = False,
):
    files = {"avatar": ("avatar.png", PNG_BYTES, "image/png")}
    if with_cover:
        files["coverImage"] = ("cover.png", PNG_BYTES, "image/png")
    return await client.post(
        "/api/v1/users/register",
        data={
            "fullName": f"{username.title()} Example",
            "email": email or f"{username.lower()}@example.com",
            "username": username,
            "password": password,
        },
        files=files,
    )


async def login_user(client: AsyncClient, username: str, password: str = TEST_PASSWORD) -> dict:
    response = await client.post("/api/v1/users/login", json={"username": username, "password": password})
    assert response.status_code == 200, response.text
    # Requests authenticate explicitly with Bearer headers; drop the session cookies.
    client.cookies.clear()
    return response.json()["data"]


async def signup(client: AsyncClient, username: str) -> dict:
    """Register and log in; returns ``{"id", "token", "headers"}``."""
    registered = await register_user(client, username)
    assert registered.status_code == 201, registered.text
    session = await login_user(client, username)
    return {
        "id": session["user"]["id"],
        "token": session["accessToken"],
        "headers": auth_headers(session["accessToken"]),
    }


async def publish_video(client: AsyncClient, headers: Dict[str, str], title: str = "First video") -> dict:
    response = await client.post(
        "/api/v1/videos",
        data={"title": title, "description": f"{title} description"},
        files={
            "videoFile": ("clip.mp4", MP4_BYTES, "video/mp4"),
            "thumbnail": ("thumb.png", PNG_BYTES, "image/png"),
        },
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]
