"""
Admin console: stats, user moderation and subscription management.
"""
from __future__ import annotations

import logging
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Form, Query, Request, status
from fastapi.responses import RedirectResponse

from portal.api.dependencies import get_backend, require_admin
from portal.config import settings
from portal.core.exceptions import BackendError, SessionExpiredError
from portal.integrations.backend import BackendClient
from portal.schemas.admin import Report
from portal.templating import flash, render

logger = logging.getLogger(__name__)

router = APIRouter()

USER_STATUS_FILTERS = ("all", "active", "inactive")
SUBSCRIPTION_STATUS_FILTERS = ("all", "active", "pending", "expired")
SUBSCRIPTION_STATES = ("pending", "active", "failed", "expired", "cancelled")


def _redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=status.HTTP_303_SEE_OTHER)


def _users_url(page: int = 1, status_filter: str = "", search: str = "") -> str:
    params = {"page": page}
    if status_filter and status_filter != "all":
        params["status"] = status_filter
    if search:
        params["search"] = search
    return f"/admin/users?{urlencode(params)}"


@router.get("")
async def overview(
    request: Request,
    token: str = Depends(require_admin),
    backend: BackendClient = Depends(get_backend),
):
    stats = await backend.admin_stats(token)
    return render(request, "admin/overview.html", {"stats": stats})


@router.get("/users")
async def users(
    request: Request,
    page: int = 1,
    status_param: str = Query("all", alias="status"),
    search: str = "",
    token: str = Depends(require_admin),
    backend: BackendClient = Depends(get_backend),
):
    status_filter = status_param if status_param in USER_STATUS_FILTERS else "all"
    error = ""
    result = None
    try:
        result = await backend.admin_list_users(
            token,
            page=max(page, 1),
            limit=settings.admin_page_size,
            status=None if status_filter == "all" else status_filter,
            search=search.strip() or None,
        )
    except SessionExpiredError:
        raise
    except BackendError as exc:
        error = exc.message
    return render(
        request,
        "admin/users.html",
        {
            "result": result,
            "status_filter": status_filter,
            "status_filters": USER_STATUS_FILTERS,
            "search": search,
            "error": error,
            "users_url": _users_url,
        },
    )


@router.get("/users/{user_id}")
async def user_detail(
    request: Request,
    user_id: str,
    token: str = Depends(require_admin),
    backend: BackendClient = Depends(get_backend),
):
    detail = await backend.admin_get_user(token, user_id)
    return render(request, "admin/user_detail.html", {"detail": detail})


@router.post("/users/{user_id}/approve")
async def approve_user(
    request: Request,
    user_id: str,
    next_url: str = Form("/admin/users", alias="next"),
    token: str = Depends(require_admin),
    backend: BackendClient = Depends(get_backend),
):
    try:
        await backend.admin_approve_user(token, user_id)
    except SessionExpiredError:
        raise
    except BackendError as exc:
        flash(request, f"Failed to approve user: {exc.message}", "error")
    else:
        logger.info("Admin approved user %s", user_id)
        flash(request, "User approved successfully!", "success")
    return _redirect(_safe_next(next_url))


@router.post("/users/{user_id}/status")
async def toggle_user_status(
    request: Request,
    user_id: str,
    is_active: bool = Form(...),
    next_url: str = Form("/admin/users", alias="next"),
    token: str = Depends(require_admin),
    backend: BackendClient = Depends(get_backend),
):
    """Set the account to `is_active`; the form posts the opposite of the current state."""
    action = "activated" if is_active else "deactivated"
    try:
        await backend.admin_set_user_status(token, user_id, is_active)
    except SessionExpiredError:
        raise
    except BackendError as exc:
        flash(request, f"Failed to update user status: {exc.message}", "error")
    else:
        logger.info("Admin %s user %s", action, user_id)
        flash(request, f"User {action} successfully!", "success")
    return _redirect(_safe_next(next_url))


@router.post("/users/{user_id}/delete")
async def delete_user(
    request: Request,
    user_id: str,
    next_url: str = Form("/admin/users", alias="next"),
    token: str = Depends(require_admin),
    backend: BackendClient = Depends(get_backend),
):
    try:
        await backend.admin_delete_user(token, user_id)
    except SessionExpiredError:
        raise
    except BackendError as exc:
        flash(request, f"Failed to delete user: {exc.message}", "error")
        return _redirect(_safe_next(next_url))
    logger.info("Admin deleted user %s", user_id)
    flash(request, "User deleted successfully!", "success")
    # The detail page no longer exists after a delete.
    target = _safe_next(next_url)
    if target.startswith(f"/admin/users/{user_id}"):
        target = "/admin/users"
    return _redirect(target)


@router.get("/subscriptions")
async def subscriptions(
    request: Request,
    page: int = 1,
    status_param: str = Query("all", alias="status"),
    token: str = Depends(require_admin),
    backend: BackendClient = Depends(get_backend),
):
    status_filter = status_param if status_param in SUBSCRIPTION_STATUS_FILTERS else "all"
    result = await backend.admin_list_subscriptions(
        token,
        page=max(page, 1),
        limit=settings.admin_page_size,
        status=None if status_filter == "all" else status_filter,
    )
    return render(
        request,
        "admin/subscriptions.html",
        {
            "result": result,
            "status_filter": status_filter,
            "status_filters": SUBSCRIPTION_STATUS_FILTERS,
            "states": SUBSCRIPTION_STATES,
        },
    )


@router.post("/subscriptions/{subscription_id}")
async def update_subscription(
    request: Request,
    subscription_id: str,
    new_status: str = Form(..., alias="status"),
    expiry_date: Optional[str] = Form(None),
    notes: Optional[str] = Form(None),
    token: str = Depends(require_admin),
    backend: BackendClient = Depends(get_backend),
):
    if new_status not in SUBSCRIPTION_STATES:
        flash(request, f"Unknown subscription status: {new_status}", "error")
        return _redirect("/admin/subscriptions")

    expiry = f"{expiry_date}T23:59:59Z" if expiry_date and len(expiry_date) == 10 else expiry_date
    try:
        await backend.admin_update_subscription(
            token, subscription_id, new_status, expiry_date=expiry, notes=notes
        )
    except SessionExpiredError:
        raise
    except BackendError as exc:
        flash(request, f"Failed to update subscription: {exc.message}", "error")
    else:
        logger.info("Admin set subscription %s to %s", subscription_id, new_status)
        flash(request, "Subscription updated successfully!", "success")
    return _redirect("/admin/subscriptions")


@router.get("/reports")
async def reports(
    request: Request,
    token: str = Depends(require_admin),
    backend: BackendClient = Depends(get_backend),
):
    user_report = await backend.admin_user_report(token)
    try:
        subscription_report = await backend.admin_subscription_report(token)
    except SessionExpiredError:
        raise
    except BackendError as exc:
        logger.warning("Subscription report unavailable: %s", exc.message)
        subscription_report = Report()
    return render(
        request,
        "admin/reports.html",
        {"user_report": user_report, "subscription_report": subscription_report},
    )


def _safe_next(url: str) -> str:
    """Only follow redirects back into the admin console."""
    if url and url.startswith("/admin") and not url.startswith("//"):
        return url
    return "/admin/users"
