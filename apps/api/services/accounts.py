"""Account registration, session issuance and profile maintenance."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from email_validator import EmailNotValidError, validate_email
from fastapi import UploadFile
from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from config import Settings
from models.user import User
from services.errors import ApiError
from services.media_store import MediaStore, discard_media, store_upload
from services.passwords import hash_password, password_too_long, verify_password
from services.session_token import (
    REFRESH_TOKEN_TYPE,
    create_access_token,
    create_refresh_token,
    decode_token,
)

logger = logging.getLogger(__name__)


def serialize_user(user: User) -> Dict[str, Any]:
    """Public account fields; the password hash and refresh token never leave the service."""
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "fullName": user.full_name,
        "avatar": user.avatar,
        "coverImage": user.cover_image or "",
        "createdAt": user.created_at,
        "updatedAt": user.updated_at,
    }


def owner_fields(user: Any = User) -> Dict[str, Any]:
    """Projection of the account embedded in listings (``user`` may be an alias)."""
    return {
        "id": user.id,
        "username": user.username,
        "fullName": user.full_name,
        "avatar": user.avatar,
    }


def owner_summary(user: User) -> Dict[str, Any]:
    return {"id": user.id, "username": user.username, "fullName": user.full_name, "avatar": user.avatar}


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


def _normalize_email(value: str) -> str:
    try:
        return validate_email(value, check_deliverability=False).normalized.lower()
    except EmailNotValidError as exc:
        raise ApiError(400, "Invalid email address", [{"field": "email", "message": str(exc)}]) from exc


def _login_email(value: str) -> str:
    """Match the stored form of a registered address; text that is not an address is only lowercased."""
    if not value:
        return ""
    try:
        return validate_email(value, check_deliverability=False).normalized.lower()
    except EmailNotValidError:
        return value.lower()


def _has_file(file: Optional[UploadFile]) -> bool:
    return file is not None and bool(file.filename)


async def _get_user(db: AsyncSession, user_id: str) -> User:
    user = await db.get(User, user_id)
    if user is None:
        raise ApiError(404, "User not found")
    return user


async def issue_session_tokens(db: AsyncSession, user: User, settings: Settings) -> Dict[str, Any]:
    """Mint an access/refresh pair bound to ``user`` and store the refresh token on the account."""
    access = create_access_token(
        user.id,
        email=user.email,
        username=user.username,
        full_name=user.full_name,
        settings=settings,
    )
    refresh = create_refresh_token(user.id, settings=settings)
    user.refresh_token = refresh["token"]
    await db.commit()
    return {
        "accessToken": access["token"],
        "accessTokenExpiresAt": access["expires_at"],
        "refreshToken": refresh["token"],
        "refreshTokenExpiresAt": refresh["expires_at"],
    }


async def register_user_service(
    *,
    full_name: Optional[str],
    email: Optional[str],
    username: Optional[str],
    password: Optional[str],
    avatar: Optional[UploadFile],
    cover_image: Optional[UploadFile],
    db: AsyncSession,
    store: MediaStore,
    settings: Settings,
) -> Dict[str, Any]:
    fields = {"fullName": full_name, "email": email, "username": username, "password": password}
    missing = [name for name, value in fields.items() if not _clean(value)]
    if missing:
        raise ApiError(400, "Please fill all the fields", [{"field": name, "message": "required"} for name in missing])
    if password_too_long(password):
        raise ApiError(400, "Password must be at most 72 bytes")

    normalized_username = _clean(username).lower()
    normalized_email = _normalize_email(_clean(email))

    existing = await db.execute(
        select(User.id).where(or_(User.username == normalized_username, User.email == normalized_email)).limit(1)
    )
    if existing.scalar_one_or_none() is not None:
        raise ApiError(409, "User with email or username already exists")

    if not _has_file(avatar):
        raise ApiError(400, "Please upload an avatar")

    uploaded_avatar = await store_upload(store, avatar, kind="image", label="avatar", settings=settings)
    uploaded_cover = None
    try:
        if _has_file(cover_image):
            uploaded_cover = await store_upload(store, cover_image, kind="image", label="cover image", settings=settings)

        user = User(
            username=normalized_username,
            email=normalized_email,
            full_name=_clean(full_name),
            password_hash=hash_password(password, settings.BCRYPT_ROUNDS),
            avatar=uploaded_avatar.url,
            avatar_public_id=uploaded_avatar.public_id,
            cover_image=uploaded_cover.url if uploaded_cover else None,
            cover_image_public_id=uploaded_cover.public_id if uploaded_cover else None,
        )
        db.add(user)
        await db.commit()
    except Exception as exc:
        await db.rollback()
        await discard_media(store, uploaded_avatar.public_id, "image")
        await discard_media(store, uploaded_cover.public_id if uploaded_cover else None, "image")
        if isinstance(exc, IntegrityError):
            raise ApiError(409, "User with email or username already exists") from exc
        raise

    logger.info("user_registered user=%s username=%s", user.id, user.username)
    return serialize_user(user)


async def login_user_service(
    *,
    username: Optional[str],
    email: Optional[str],
    password: Optional[str],
    db: AsyncSession,
    settings: Settings,
) -> Dict[str, Any]:
    username = _clean(username).lower()
    email = _login_email(_clean(email))
    if not username and not email:
        raise ApiError(400, "Please provide username or email")

    criteria = []
    if username:
        criteria.append(User.username == username)
    if email:
        criteria.append(User.email == email)
    result = await db.execute(select(User).where(or_(*criteria)).limit(1))
    user = result.scalar_one_or_none()
    if user is None:
        raise ApiError(401, "User does not exist")

    if not verify_password(password or "", user.password_hash):
        logger.warning("login_rejected user=%s", user.id)
        raise ApiError(401, "Invalid user credentials")

    tokens = await issue_session_tokens(db, user, settings)
    logger.info("user_logged_in user=%s", user.id)
    return {"user": serialize_user(user), **tokens}


async def logout_user_service(*, user_id: str, db: AsyncSession) -> None:
    await db.execute(update(User).where(User.id == user_id).values(refresh_token=None))
    await db.commit()
    logger.info("user_logged_out user=%s", user_id)


async def refresh_access_token_service(
    *,
    incoming_token: Optional[str],
    db: AsyncSession,
    settings: Settings,
) -> Dict[str, Any]:
    """Exchange a live refresh token for a new pair; the presented token stops working."""
    incoming_token = _clean(incoming_token)
    if not incoming_token:
        raise ApiError(401, "Unauthorized request")

    try:
        payload = decode_token(incoming_token, REFRESH_TOKEN_TYPE, settings)
    except ValueError as exc:
        raise ApiError(401, "Invalid refresh token") from exc

    user = await db.get(User, str(payload["sub"]))
    if user is None:
        raise ApiError(401, "Invalid refresh token")
    if user.refresh_token != incoming_token:
        logger.warning("refresh_token_reuse user=%s", user.id)
        raise ApiError(401, "Refresh token is expired or used")

    access = create_access_token(
        user.id,
        email=user.email,
        username=user.username,
        full_name=user.full_name,
        settings=settings,
    )
    refresh = create_refresh_token(user.id, settings=settings)

    # Compare-and-swap so two concurrent refreshes with the same token cannot both win.
    result = await db.execute(
        update(User)
        .where(User.id == user.id, User.refresh_token == incoming_token)
        .values(refresh_token=refresh["token"])
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        await db.rollback()
        raise ApiError(401, "Refresh token is expired or used")
    await db.commit()

    logger.info("session_refreshed user=%s", user.id)
    return {
        "accessToken": access["token"],
        "accessTokenExpiresAt": access["expires_at"],
        "refreshToken": refresh["token"],
        "refreshTokenExpiresAt": refresh["expires_at"],
    }


async def get_current_user_service(*, user_id: str, db: AsyncSession) -> Dict[str, Any]:
    return serialize_user(await _get_user(db, user_id))


async def change_password_service(
    *,
    user_id: str,
    old_password: Optional[str],
    new_password: Optional[str],
    db: AsyncSession,
    settings: Settings,
) -> None:
    user = await _get_user(db, user_id)
    if not verify_password(old_password or "", user.password_hash):
        raise ApiError(400, "Invalid old password")
    if not _clean(new_password):
        raise ApiError(400, "New password is required")
    if password_too_long(new_password):
        raise ApiError(400, "Password must be at most 72 bytes")

    user.password_hash = hash_password(new_password, settings.BCRYPT_ROUNDS)
    await db.commit()
    logger.info("password_changed user=%s", user.id)


async def update_account_service(
    *,
    user_id: str,
    full_name: Optional[str],
    email: Optional[str],
    db: AsyncSession,
) -> Dict[str, Any]:
    full_name = _clean(full_name)
    email = _clean(email)
    if not full_name and not email:
        raise ApiError(400, "Please provide full name or email to update")

    user = await _get_user(db, user_id)
    if email:
        normalized_email = _normalize_email(email)
        taken = await db.execute(
            select(User.id).where(User.email == normalized_email, User.id != user.id).limit(1)
        )
        if taken.scalar_one_or_none() is not None:
            raise ApiError(409, "Email is already in use")
        user.email = normalized_email
    if full_name:
        user.full_name = full_name

    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise ApiError(409, "Email is already in use") from exc
    return serialize_user(user)


async def _replace_image(
    *,
    user_id: str,
    file: Optional[UploadFile],
    url_attr: str,
    public_id_attr: str,
    label: str,
    db: AsyncSession,
    store: MediaStore,
    settings: Settings,
) -> Dict[str, Any]:
    if not _has_file(file):
        raise ApiError(400, f"{label.capitalize()} file is missing")

    user = await _get_user(db, user_id)
    previous_public_id = getattr(user, public_id_attr)
    uploaded = await store_upload(store, file, kind="image", label=label, settings=settings)

    setattr(user, url_attr, uploaded.url)
    setattr(user, public_id_attr, uploaded.public_id)
    try:
        await db.commit()
    except Exception:
        await db.rollback()
        await discard_media(store, uploaded.public_id, "image")
        raise

    await discard_media(store, previous_public_id, "image")
    logger.info("user_image_updated user=%s field=%s", user.id, url_attr)
    return serialize_user(user)


async def update_avatar_service(
    *,
    user_id: str,
    avatar: Optional[UploadFile],
    db: AsyncSession,
    store: MediaStore,
    settings: Settings,
) -> Dict[str, Any]:
    return await _replace_image(
        user_id=user_id,
        file=avatar,
        url_attr="avatar",
        public_id_attr="avatar_public_id",
        label="avatar",
        db=db,
        store=store,
        settings=settings,
    )


async def update_cover_image_service(
    *,
    user_id: str,
    cover_image: Optional[UploadFile],
    db: AsyncSession,
    store: MediaStore,
    settings: Settings,
) -> Dict[str, Any]:
    return await _replace_image(
        user_id=user_id,
        file=cover_image,
        url_attr="cover_image",
        public_id_attr="cover_image_public_id",
        label="cover image",
        db=db,
        store=store,
        settings=settings,
    )
