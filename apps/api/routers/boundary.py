"""
Boundary between route handlers and the client.

Routers are built with ``route_class=BoundaryRoute``: every handler runs
inside a wrapper that turns any raised failure into exactly one
envelope-shaped error response, so nothing escapes to the server loop.
"""

import logging
from typing import Callable

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.routing import APIRoute
from sqlalchemy.exc import IntegrityError
from starlette.exceptions import HTTPException as StarletteHTTPException

from routers.responses import ApiResponse
from services.errors import ApiError

logger = logging.getLogger(__name__)


def _validation_details(exc: RequestValidationError) -> list:
    details = []
    for error in exc.errors():
        location = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path", "form")]
        details.append({
            "field": ".".join(location) or None,
            "message": error.get("msg", "Invalid value"),
            "type": error.get("type"),
        })
    return details


def error_response(request: Request, exc: Exception) -> JSONResponse:
    """Translate any failure into the error envelope."""
    if isinstance(exc, ApiError):
        status_code, message, errors = exc.status_code, exc.message, exc.errors
    elif isinstance(exc, RequestValidationError):
        status_code, message, errors = 400, "Validation failed", _validation_details(exc)
    elif isinstance(exc, StarletteHTTPException):
        status_code, message, errors = exc.status_code, str(exc.detail), []
    elif isinstance(exc, IntegrityError):
        status_code, message, errors = 409, "A record with this information already exists", []
    else:
        status_code, message, errors = 500, "Internal server error", []

    if status_code >= 500:
        logger.error(
            "request_failed method=%s path=%s status=%s error=%s",
            request.method,
            request.url.path,
            status_code,
            type(exc).__name__,
            exc_info=exc,
        )
    else:
        logger.warning(
            "request_rejected method=%s path=%s status=%s message=%s",
            request.method,
            request.url.path,
            status_code,
            message,
        )

    envelope = ApiResponse.build(status_code, None, message, errors)
    headers = getattr(exc, "headers", None) if isinstance(exc, StarletteHTTPException) else None
    return JSONResponse(status_code=status_code, content=envelope.to_content(), headers=headers)


class BoundaryRoute(APIRoute):
    def get_route_handler(self) -> Callable:
        original_route_handler = super().get_route_handler()

        async def guarded_route_handler(request: Request) -> Response:
            try:
                return await original_route_handler(request)
            except Exception as exc:
                return error_response(request, exc)

        return guarded_route_handler


def register_error_handlers(app: FastAPI) -> None:
    """Route-level failures (unknown path, wrong method) use the same envelope."""

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return error_response(request, exc)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return error_response(request, exc)

    @app.exception_handler(ApiError)
    async def handle_api_error(request: Request, exc: ApiError) -> JSONResponse:
        return error_response(request, exc)
