"""Authentication dependencies resolving the acting account."""

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from config import Settings
from database import get_db
from models.user import User
from routers.deps import get_settings_dependency
from services.errors import ApiError
from services.session_token import ACCESS_TOKEN_TYPE, decode_token


auth_scheme = HTTPBearer(auto_error=False)

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"


@dataclass
class Actor:
    user_id: str
    username: str
    email: str
    full_name: str


def _extract_access_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials],
) -> Optional[str]:
    cookie_token = (request.cookies.get(ACCESS_COOKIE) or "").strip()
    if cookie_token:
        return cookie_token
    if credentials and credentials.scheme.lower() == "bearer" and credentials.credentials:
        return credentials.credentials.strip()
    return None


async def _resolve_actor(token: str, db: AsyncSession, settings: Settings) -> Actor:
    try:
        payload = decode_token(token, ACCESS_TOKEN_TYPE, settings)
    except ValueError as exc:
        raise ApiError(401, "Invalid access token") from exc

    result = await db.execute(select(User).where(User.id == str(payload["sub"])))
    user = result.scalar_one_or_none()
    if user is None:
        raise ApiError(401, "Invalid access token")

    return Actor(
        user_id=user.id,
        username=user.username,
        email=user.email,
        full_name=user.full_name,
    )


async def get_current_actor(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings_dependency),
) -> Actor:
    """Resolve the authenticated account from the access cookie or Bearer header."""
    token = _extract_access_token(request, credentials)
    if not token:
        raise ApiError(401, "Unauthorized request")
    return await _resolve_actor(token, db, settings)


async def get_optional_actor(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(auth_scheme),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings_dependency),
) -> Optional[Actor]:
    """Like ``get_current_actor`` but anonymous callers (or stale tokens) resolve to ``None``."""
    token = _extract_access_token(request, credentials)
    if not token:
        return None
    try:
        return await _resolve_actor(token, db, settings)
    except ApiError as exc:
        if exc.status_code != 401:
            raise
        return None
