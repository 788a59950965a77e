"""Custom exception types for form, session and backend failures."""
from __future__ import annotations

from typing import Any


class AppError(Exception):
    """Base app exception."""


class ValidationError(AppError):
    """Validation failure for user input. No backend call is issued."""


class BackendError(AppError):
    """Remote API call failed: non-2xx status, unsuccessful body or transport error."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        payload: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload or {}

    @property
    def is_transport_error(self) -> bool:
        return self.status_code is None


class SessionExpiredError(BackendError):
    """Missing, expired or rejected bearer token."""

    def __init__(self, message: str = "Your session has expired. Please log in again."):
        super().__init__(message, status_code=401)


class PermissionDeniedError(BackendError):
    """Authenticated, but not allowed to use the resource."""

    def __init__(self, message: str = "You do not have access to that page."):
        super().__init__(message, status_code=403)
