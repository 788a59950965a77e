"""Session helpers for the bearer token issued by the backend."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict

import jwt
from fastapi import Request

from portal.core.exceptions import PermissionDeniedError, SessionExpiredError
from portal.schemas.user import UserProfile

logger = logging.getLogger(__name__)

TOKEN_KEY = "token"
USER_KEY = "user"


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


def token_claims(token: str) -> Dict[str, Any]:
    """
    Read the token's claims without checking the signature.

    The backend signs and verifies the token; the portal only needs `role` and
    `exp` to gate pages and to notice an expired session before calling out.
    """
    try:
        return jwt.decode(token, options={"verify_signature": False, "verify_exp": False})
    except jwt.PyJWTError:
        return {}


def token_expired(token: str) -> bool:
    exp = token_claims(token).get("exp")
    if exp is None:
        return False
    try:
        return int(exp) <= int(now_utc().timestamp())
    except (TypeError, ValueError):
        return False


def store_session(request: Request, token: str, user: UserProfile | Dict[str, Any]) -> None:
    summary = user.session_summary() if isinstance(user, UserProfile) else dict(user)
    request.session[TOKEN_KEY] = token
    request.session[USER_KEY] = summary


def update_session_user(request: Request, **fields: Any) -> None:
    user = dict(request.session.get(USER_KEY) or {})
    user.update(fields)
    request.session[USER_KEY] = user


def clear_session(request: Request) -> None:
    request.session.pop(TOKEN_KEY, None)
    request.session.pop(USER_KEY, None)


def current_token(request: Request) -> str | None:
    token = request.session.get(TOKEN_KEY)
    if not token or token_expired(token):
        return None
    return token


def current_user(request: Request) -> Dict[str, Any] | None:
    if current_token(request) is None:
        return None
    return request.session.get(USER_KEY)


def session_role(request: Request) -> str:
    token = current_token(request)
    if token is None:
        return ""
    cached = (request.session.get(USER_KEY) or {}).get("role")
    return str(cached or token_claims(token).get("role") or "user")


def require_token(request: Request) -> str:
    """Route dependency: the caller's bearer token, or a redirect to login."""
    token = request.session.get(TOKEN_KEY)
    if not token:
        raise SessionExpiredError("Please log in to continue.")
    if token_expired(token):
        logger.info("Session token expired")
        raise SessionExpiredError()
    return token


def require_admin(request: Request) -> str:
    token = require_token(request)
    if session_role(request) != "admin":
        raise PermissionDeniedError("Admin access required")
    return token
