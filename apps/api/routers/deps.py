"""Request-scoped dependencies shared by the API routers."""

from typing import Optional
import uuid

from fastapi import Depends, Query, Request

from config import Settings
from services.aggregation import PageRequest
from services.errors import ApiError
from services.media_store import MediaStore


def get_settings_dependency(request: Request) -> Settings:
    return request.app.state.settings


def get_media_store(request: Request) -> MediaStore:
    return request.app.state.media_store


def parse_id(value: Optional[str], label: str) -> str:
    """Return ``value`` as a canonical UUID string or raise 400 before touching the store."""
    try:
        return str(uuid.UUID(str(value or "").strip()))
    except ValueError as exc:
        raise ApiError(400, f"Invalid {label} ID provided") from exc


def get_page_request(
    page: Optional[str] = Query(None),
    limit: Optional[str] = Query(None),
    settings: Settings = Depends(get_settings_dependency),
) -> PageRequest:
    return PageRequest.parse(
        page,
        limit,
        default_limit=settings.DEFAULT_PAGE_SIZE,
        max_limit=settings.MAX_PAGE_SIZE,
    )


def client_viewer_key(request: Request) -> str:
    host = request.client.host if request.client and request.client.host else "unknown"
    return f"anon:{host}"
