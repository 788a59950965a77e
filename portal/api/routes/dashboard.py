"""
Per-user dashboard: profile, photos and account status.
"""
from __future__ import annotations

import logging
from typing import List

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from fastapi.responses import RedirectResponse

from portal.api.dependencies import get_backend, require_token
from portal.api.routes.auth import GENDER_OPTIONS, NATIONALITY_OPTIONS, ORIENTATION_OPTIONS
from portal.config import settings
from portal.core.exceptions import BackendError, SessionExpiredError, ValidationError
from portal.core.security import store_session
from portal.core.validation import validate_profile_update
from portal.integrations.backend import BackendClient
from portal.schemas.subscription import SubscriptionStatus
from portal.schemas.user import ProfileUpdate
from portal.services.photos import delete_photo, read_uploads, upload_photos
from portal.templating import flash, render

logger = logging.getLogger(__name__)

router = APIRouter()


def _back_to_dashboard() -> RedirectResponse:
    return RedirectResponse("/dashboard", status_code=status.HTTP_303_SEE_OTHER)


@router.get("")
async def dashboard(
    request: Request,
    token: str = Depends(require_token),
    backend: BackendClient = Depends(get_backend),
):
    user = await backend.me(token)
    store_session(request, token, user)

    subscription = SubscriptionStatus()
    try:
        subscription = await backend.subscription_status(token)
    except SessionExpiredError:
        raise
    except BackendError as exc:
        logger.warning("Subscription status unavailable: %s", exc.message)

    pending = not user.is_active and not subscription.has_subscription
    return render(
        request,
        "dashboard.html",
        {
            "user": user,
            "subscription": subscription,
            "slots_left": user.photo_slots_left(settings.max_profile_images),
            "refresh_seconds": settings.dashboard_refresh_seconds if pending else None,
        },
    )


@router.get("/profile")
async def edit_profile_form(
    request: Request,
    token: str = Depends(require_token),
    backend: BackendClient = Depends(get_backend),
):
    user = await backend.me(token)
    return render(request, "profile_edit.html", _profile_context(user.model_dump(), user.services))


@router.post("/profile")
async def edit_profile(
    request: Request,
    token: str = Depends(require_token),
    backend: BackendClient = Depends(get_backend),
):
    form_data = await request.form()
    form = {key: value for key, value in form_data.items() if key != "services"}
    services = list(form_data.getlist("services"))
    try:
        fields = validate_profile_update(form, services)
        updated = await backend.update_profile(token, ProfileUpdate(**fields).to_payload())
    except SessionExpiredError:
        raise
    except (ValidationError, BackendError) as exc:
        error = exc.message if isinstance(exc, BackendError) else str(exc)
        return render(
            request,
            "profile_edit.html",
            _profile_context(form, services, error=error or "Failed to update profile"),
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    if updated.id:
        store_session(request, token, updated)
    flash(request, "Profile updated successfully!", "success")
    return _back_to_dashboard()


@router.post("/photos")
async def upload(
    request: Request,
    images: List[UploadFile] = File(default=[]),
    token: str = Depends(require_token),
    backend: BackendClient = Depends(get_backend),
):
    user = await backend.me(token)
    try:
        uploads = await read_uploads(images, max_bytes=settings.max_image_bytes)
        urls = await upload_photos(
            backend,
            token,
            user,
            uploads,
            max_images=settings.max_profile_images,
            max_bytes=settings.max_image_bytes,
        )
    except SessionExpiredError:
        raise
    except ValidationError as exc:
        flash(request, str(exc), "error")
        return _back_to_dashboard()
    except BackendError as exc:
        flash(request, exc.message, "error")
        return _back_to_dashboard()

    flash(request, f"{len(urls)} photo(s) uploaded successfully!", "success")
    return _back_to_dashboard()


@router.post("/photos/delete")
async def remove_photo(
    request: Request,
    image_url: str = Form(...),
    token: str = Depends(require_token),
    backend: BackendClient = Depends(get_backend),
):
    user = await backend.me(token)
    try:
        await delete_photo(backend, token, user, image_url)
    except SessionExpiredError:
        raise
    except ValidationError as exc:
        flash(request, str(exc), "error")
        return _back_to_dashboard()
    except BackendError as exc:
        flash(request, exc.message, "error")
        return _back_to_dashboard()

    flash(request, "Photo deleted.", "success")
    return _back_to_dashboard()


def _profile_context(form: dict, services: list, error: str = "") -> dict:
    return {
        "form": form,
        "selected_services": list(services),
        "gender_options": GENDER_OPTIONS,
        "orientation_options": ORIENTATION_OPTIONS,
        "nationality_options": NATIONALITY_OPTIONS,
        "error": error,
    }
