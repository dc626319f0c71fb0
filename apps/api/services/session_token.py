"""Access/refresh token helpers for backend-authenticated user scope."""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
import uuid

from jose import JWTError, jwt

from config import Settings


ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


def _encode(claims: Dict[str, Any], secret: str, algorithm: str, ttl: timedelta) -> Dict[str, Any]:
    now = datetime.now(timezone.utc)
    expires_at = now + ttl
    payload = {
        **claims,
        "iat": int(now.timestamp()),
        "exp": int(expires_at.timestamp()),
    }
    return {
        "token": jwt.encode(payload, secret, algorithm=algorithm),
        "expires_at": int(expires_at.timestamp()),
    }


def create_access_token(
    user_id: str,
    email: Optional[str] = None,
    username: Optional[str] = None,
    full_name: Optional[str] = None,
    *,
    settings: Settings,
) -> Dict[str, Any]:
    """Create a short-lived signed access token."""
    claims: Dict[str, Any] = {"sub": user_id, "type": ACCESS_TOKEN_TYPE}
    if email:
        claims["email"] = email
    if username:
        claims["username"] = username
    if full_name:
        claims["fullName"] = full_name
    ttl = timedelta(minutes=max(int(settings.ACCESS_TOKEN_EXPIRY_MINUTES), 1))
    return _encode(claims, settings.ACCESS_TOKEN_SECRET, settings.JWT_ALGORITHM, ttl)


def create_refresh_token(user_id: str, *, settings: Settings) -> Dict[str, Any]:
    """Create a long-lived refresh token; ``jti`` makes every issued token distinct."""
    claims = {"sub": user_id, "type": REFRESH_TOKEN_TYPE, "jti": uuid.uuid4().hex}
    ttl = timedelta(days=max(int(settings.REFRESH_TOKEN_EXPIRY_DAYS), 1))
    return _encode(claims, settings.REFRESH_TOKEN_SECRET, settings.JWT_ALGORITHM, ttl)


def decode_token(token: str, token_type: str, settings: Settings) -> Dict[str, Any]:
    """Decode and validate a signed token of the expected type."""
    secret = settings.ACCESS_TOKEN_SECRET if token_type == ACCESS_TOKEN_TYPE else settings.REFRESH_TOKEN_SECRET
    try:
        payload = jwt.decode(token, secret, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as exc:
        raise ValueError(f"Invalid or expired {token_type} token.") from exc

    if str(payload.get("type", "")).strip() != token_type:
        raise ValueError(f"Invalid {token_type} token type.")

    subject = str(payload.get("sub", "")).strip()
    if not subject:
        raise ValueError(f"{token_type.capitalize()} token missing subject.")

    return payload
