"""Shared route dependencies."""
from fastapi import Request

from portal.core.security import current_token, require_admin, require_token
from portal.integrations.backend import BackendClient


def get_backend(request: Request) -> BackendClient:
    return request.app.state.backend


__all__ = ["current_token", "get_backend", "require_admin", "require_token"]
