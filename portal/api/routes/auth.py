from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import RedirectResponse

from portal.api.dependencies import get_backend
from portal.config import settings
from portal.core.exceptions import BackendError, ValidationError
from portal.core.security import (
    clear_session,
    current_token,
    current_user,
    session_role,
    store_session,
    token_claims,
)
from portal.core.validation import validate_login, validate_registration
from portal.integrations.backend import BackendClient
from portal.schemas.auth import RegisterRequest
from portal.templating import flash, render

logger = logging.getLogger(__name__)

router = APIRouter()

GENDER_OPTIONS = ["Male", "Female", "Non-binary", "Other"]
ORIENTATION_OPTIONS = ["Straight", "Gay", "Lesbian", "Bisexual", "Pansexual", "Asexual"]
NATIONALITY_OPTIONS = ["Kenyan", "Ugandan", "Tanzanian", "Rwandan", "Burundian", "Other"]


def _register_context(form: dict, services: list[str], error: str = "", success: str = "") -> dict:
    return {
        "form": form,
        "selected_services": services,
        "gender_options": GENDER_OPTIONS,
        "orientation_options": ORIENTATION_OPTIONS,
        "nationality_options": NATIONALITY_OPTIONS,
        "error": error,
        "success": success,
    }


def _landing_for(role: str) -> str:
    return "/admin" if role == "admin" else "/dashboard"


@router.get("/register")
async def register_form(request: Request):
    return render(request, "register.html", _register_context({}, []))


@router.post("/register")
async def register(request: Request, backend: BackendClient = Depends(get_backend)):
    form_data = await request.form()
    form = {key: value for key, value in form_data.items() if key not in ("services", "custom_service")}
    services = list(form_data.getlist("services"))
    custom = str(form_data.get("custom_service") or "").strip()
    if custom:
        services.append(custom)

    try:
        payload = validate_registration(form, services)
        await backend.register(RegisterRequest(**payload))
    except (ValidationError, BackendError) as exc:
        error = exc.message if isinstance(exc, BackendError) else str(exc)
        return render(
            request,
            "register.html",
            _register_context(form, services, error=error or "Registration failed. Please try again."),
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    logger.info("Registered new provider account")
    return render(
        request,
        "register.html",
        _register_context(
            {},
            [],
            success=(
                "Registration successful! Your account is pending admin approval. "
                "You will be notified once approved."
            ),
        ),
    )


@router.get("/login")
async def login_form(request: Request):
    if current_token(request):
        return RedirectResponse(_landing_for(session_role(request)), status_code=status.HTTP_303_SEE_OTHER)
    return render(request, "login.html", {"email": ""})


@router.post("/login")
async def login(request: Request, backend: BackendClient = Depends(get_backend)):
    form = await request.form()
    email = str(form.get("email") or "")
    try:
        email, password = validate_login(email, str(form.get("password") or ""))
        result = await backend.login(email, password)
    except (ValidationError, BackendError) as exc:
        error = exc.message if isinstance(exc, BackendError) else str(exc)
        return render(
            request,
            "login.html",
            {"email": email, "error": error},
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    claims = token_claims(result.token)
    role = result.role or str(claims.get("role") or "user")
    fallback = {
        "id": result.id or claims.get("user_id") or "",
        "name": email,
        "email": email,
        "role": role,
        "is_active": False,
    }
    try:
        user = await backend.me(result.token)
        store_session(request, result.token, user)
    except BackendError as exc:
        logger.warning("Login profile fetch failed, using login response: %s", exc.message)
        store_session(request, result.token, fallback)

    if role != "admin" and not (current_user(request) or {}).get("is_active"):
        flash(request, "Your account is not active yet. Activate it to appear in the directory.", "info")
    return RedirectResponse(_landing_for(role), status_code=status.HTTP_303_SEE_OTHER)


@router.post("/logout")
async def logout(request: Request):
    clear_session(request)
    flash(request, "You have been logged out.", "success")
    return RedirectResponse("/login", status_code=status.HTTP_303_SEE_OTHER)


@router.get("/logout")
async def logout_link(request: Request):
    return await logout(request)


@router.get("/about")
async def about(request: Request):
    return render(request, "about.html", {"app_name": settings.app_name})
