"""
Account activation: plan selection, MPESA checkout and payment status polling.
"""
from __future__ import annotations

import json
import logging

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import RedirectResponse
from sse_starlette.sse import EventSourceResponse

from portal.api.dependencies import get_backend, require_token
from portal.config import settings
from portal.core.exceptions import BackendError, SessionExpiredError, ValidationError
from portal.core.security import update_session_user
from portal.core.validation import validate_checkout
from portal.integrations.backend import BackendClient
from portal.schemas.subscription import PaymentStatus
from portal.services.payment_poller import PaymentStatusPoller
from portal.templating import flash, render

logger = logging.getLogger(__name__)

router = APIRouter()


async def _plans_page(
    request: Request,
    backend: BackendClient,
    selected_plan: str = "",
    phone: str = "",
    error: str = "",
    status_code: int = 200,
):
    plans = []
    load_error = ""
    try:
        plans = await backend.list_plans()
    except BackendError as exc:
        logger.warning("Plans unavailable: %s", exc.message)
        load_error = exc.message
    selected = next((plan for plan in plans if plan.id == selected_plan), None)
    return render(
        request,
        "activate.html",
        {
            "plans": plans,
            "selected_plan": selected_plan,
            "selected": selected,
            "phone": phone,
            "error": error or load_error,
        },
        status_code=status_code,
    )


@router.get("/activate")
async def activate_form(
    request: Request,
    plan: str = "",
    token: str = Depends(require_token),
    backend: BackendClient = Depends(get_backend),
):
    try:
        current = await backend.subscription_status(token)
    except SessionExpiredError:
        raise
    except BackendError as exc:
        logger.warning("Subscription status unavailable: %s", exc.message)
    else:
        if current.has_subscription:
            flash(request, "You already have an active subscription.", "info")
            return RedirectResponse("/dashboard", status_code=status.HTTP_303_SEE_OTHER)
    return await _plans_page(request, backend, selected_plan=plan)


@router.post("/activate")
async def subscribe(
    request: Request,
    token: str = Depends(require_token),
    backend: BackendClient = Depends(get_backend),
):
    form = await request.form()
    plan_id = str(form.get("plan_id") or "")
    phone = str(form.get("phone") or "")
    try:
        plan_id, msisdn = validate_checkout(plan_id, phone)
    except ValidationError as exc:
        return await _plans_page(
            request, backend, plan_id, phone, error=str(exc), status_code=status.HTTP_400_BAD_REQUEST
        )

    try:
        checkout = await backend.subscribe(token, plan_id, msisdn)
    except SessionExpiredError:
        raise
    except BackendError as exc:
        return await _plans_page(
            request,
            backend,
            plan_id,
            phone,
            error=exc.message or "Failed to initiate payment",
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    logger.info("Checkout %s initiated for plan %s", checkout.checkout_id, plan_id)
    flash(request, checkout.message, "success")
    return RedirectResponse(
        request.url_for("payment_status").include_query_params(checkout_id=checkout.checkout_id),
        status_code=status.HTTP_303_SEE_OTHER,
    )


@router.get("/payment-status", name="payment_status")
async def payment_status(
    request: Request,
    checkout_id: str = "",
    token: str = Depends(require_token),
    backend: BackendClient = Depends(get_backend),
):
    """One status check per render; the page re-requests itself while pending."""
    if not checkout_id:
        return render(
            request,
            "payment_status.html",
            {"status": None, "checkout_id": "", "error": "Missing checkout reference."},
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    poller = PaymentStatusPoller(backend, token, checkout_id)
    result = await poller.check_once()
    if result.status is PaymentStatus.ACTIVE:
        update_session_user(request, is_active=True)

    return render(
        request,
        "payment_status.html",
        {
            "status": result.status.value,
            "checkout_id": checkout_id,
            "error": result.error or "",
            "poll_seconds": settings.payment_poll_seconds,
            "redirect_seconds": settings.payment_success_redirect_seconds,
        },
    )


@router.get("/payment-status/check")
async def payment_status_check(
    checkout_id: str,
    token: str = Depends(require_token),
    backend: BackendClient = Depends(get_backend),
) -> dict:
    result = await PaymentStatusPoller(backend, token, checkout_id).check_once()
    return {"checkout_id": checkout_id, "status": result.status.value, "error": result.error}


@router.get("/payment-status/stream")
async def payment_status_stream(
    request: Request,
    checkout_id: str,
    token: str = Depends(require_token),
    backend: BackendClient = Depends(get_backend),
):
    poller = PaymentStatusPoller(
        backend,
        token,
        checkout_id,
        poll_seconds=settings.payment_poll_seconds,
        max_attempts=settings.payment_poll_max_attempts,
    )

    async def event_generator():
        try:
            async for result in poller.watch():
                if await request.is_disconnected():
                    poller.stop()
                    break
                payload = {"status": result.status.value, "attempt": result.attempt, "error": result.error}
                yield {"event": "status", "data": json.dumps(payload)}
        except SessionExpiredError as exc:
            yield {"event": "expired", "data": json.dumps({"error": exc.message})}
        finally:
            poller.stop()

    return EventSourceResponse(event_generator())
