"""Single error type for every handler-level failure."""

from __future__ import annotations

from typing import Any, List, Optional


class ApiError(Exception):
    """Failure carrying the HTTP status code and message sent to the client.

    400 malformed input, 401 missing/invalid authentication, 404 absent or
    not owned by the actor, 409 conflict, 413 upload too large, 5xx store,
    upstream or unexpected failure.
    """

    def __init__(
        self,
        status_code: int = 500,
        message: str = "Something went wrong",
        errors: Optional[List[Any]] = None,
    ):
        super().__init__(message)
        self.status_code = int(status_code)
        self.message = message
        self.errors = list(errors or [])

    def __repr__(self) -> str:
        return f"ApiError(status_code={self.status_code}, message={self.message!r})"
