"""
Account router: registration, sessions and profile maintenance.
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, File, Form, Request, UploadFile
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from config import Settings
from database import get_db
from routers.auth_scope import ACCESS_COOKIE, REFRESH_COOKIE, Actor, get_current_actor
from routers.boundary import BoundaryRoute
from routers.deps import get_media_store, get_settings_dependency
from routers.rate_limit import rate_limit
from routers.responses import respond
from services.accounts import (
    change_password_service,
    get_current_user_service,
    login_user_service,
    logout_user_service,
    refresh_access_token_service,
    register_user_service,
    update_account_service,
    update_avatar_service,
    update_cover_image_service,
)
from services.media_store import MediaStore

router = APIRouter(route_class=BoundaryRoute)


class LoginRequest(BaseModel):
    username: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class RefreshTokenRequest(BaseModel):
    refreshToken: Optional[str] = None


class ChangePasswordRequest(BaseModel):
    oldPassword: Optional[str] = None
    newPassword: Optional[str] = None


class UpdateAccountRequest(BaseModel):
    fullName: Optional[str] = None
    email: Optional[str] = None


def _set_session_cookies(response: JSONResponse, tokens: Dict[str, Any], settings: Settings) -> None:
    common = {"httponly": True, "secure": settings.COOKIE_SECURE, "samesite": "lax"}
    response.set_cookie(
        ACCESS_COOKIE,
        tokens["accessToken"],
        max_age=int(settings.ACCESS_TOKEN_EXPIRY_MINUTES) * 60,
        **common,
    )
    response.set_cookie(
        REFRESH_COOKIE,
        tokens["refreshToken"],
        max_age=int(settings.REFRESH_TOKEN_EXPIRY_DAYS) * 24 * 60 * 60,
        **common,
    )


def _clear_session_cookies(response: JSONResponse, settings: Settings) -> None:
    for name in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(name, httponly=True, secure=settings.COOKIE_SECURE, samesite="lax")


@router.post("/register", dependencies=[Depends(rate_limit("register", limit=10, window_seconds=60))])
async def register_user(
    fullName: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    username: Optional[str] = Form(None),
    password: Optional[str] = Form(None),
    avatar: Optional[UploadFile] = File(None),
    coverImage: Optional[UploadFile] = File(None),
    db: AsyncSession = Depends(get_db),
    store: MediaStore = Depends(get_media_store),
    settings: Settings = Depends(get_settings_dependency),
):
    user = await register_user_service(
        full_name=fullName,
        email=email,
        username=username,
        password=password,
        avatar=avatar,
        cover_image=coverImage,
        db=db,
        store=store,
        settings=settings,
    )
    return respond(201, user, "User registered successfully")


@router.post("/login", dependencies=[Depends(rate_limit("login", limit=20, window_seconds=60))])
async def login_user(
    request: LoginRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings_dependency),
):
    session = await login_user_service(
        username=request.username,
        email=request.email,
        password=request.password,
        db=db,
        settings=settings,
    )
    response = respond(200, session, "User logged in successfully")
    _set_session_cookies(response, session, settings)
    return response


@router.post("/logout")
async def logout_user(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings_dependency),
):
    await logout_user_service(user_id=actor.user_id, db=db)
    response = respond(200, {}, "User logged out successfully")
    _clear_session_cookies(response, settings)
    return response


@router.post("/refresh-token", dependencies=[Depends(rate_limit("refresh", limit=30, window_seconds=60))])
async def refresh_access_token(
    http_request: Request,
    payload: Optional[RefreshTokenRequest] = Body(None),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings_dependency),
):
    incoming = http_request.cookies.get(REFRESH_COOKIE) or (payload.refreshToken if payload else None)
    tokens = await refresh_access_token_service(incoming_token=incoming, db=db, settings=settings)
    response = respond(200, tokens, "Access token refreshed")
    _set_session_cookies(response, tokens, settings)
    return response


@router.get("/current-user")
async def get_current_user(
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    user = await get_current_user_service(user_id=actor.user_id, db=db)
    return respond(200, user, "Current user fetched successfully")


@router.post("/change-password")
async def change_current_password(
    request: ChangePasswordRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings_dependency),
):
    await change_password_service(
        user_id=actor.user_id,
        old_password=request.oldPassword,
        new_password=request.newPassword,
        db=db,
        settings=settings,
    )
    return respond(200, {}, "Password changed successfully")


@router.patch("/update-account")
async def update_account_details(
    request: UpdateAccountRequest,
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
):
    user = await update_account_service(
        user_id=actor.user_id,
        full_name=request.fullName,
        email=request.email,
        db=db,
    )
    return respond(200, user, "Account details updated successfully")


@router.patch("/avatar")
async def update_user_avatar(
    avatar: Optional[UploadFile] = File(None),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    store: MediaStore = Depends(get_media_store),
    settings: Settings = Depends(get_settings_dependency),
):
    user = await update_avatar_service(user_id=actor.user_id, avatar=avatar, db=db, store=store, settings=settings)
    return respond(200, user, "Avatar updated successfully")


@router.patch("/cover-image")
async def update_user_cover_image(
    coverImage: Optional[UploadFile] = File(None),
    actor: Actor = Depends(get_current_actor),
    db: AsyncSession = Depends(get_db),
    store: MediaStore = Depends(get_media_store),
    settings: Settings = Depends(get_settings_dependency),
):
    user = await update_cover_image_service(
        user_id=actor.user_id,
        cover_image=coverImage,
        db=db,
        store=store,
        settings=settings,
    )
    return respond(200, user, "Cover image updated successfully")
