"""
Marketplace backend API client.

Every page of the portal reads and writes through this client; the backend owns
users, subscriptions, images and payment status.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

import httpx

from portal.config import settings
from portal.core.exceptions import BackendError, PermissionDeniedError, SessionExpiredError
from portal.schemas.admin import DashboardStats, Report, SubscriptionPage, UserDetail, UserPage
from portal.schemas.auth import LoginRequest, LoginResponse, RegisterRequest
from portal.schemas.subscription import (
    CheckoutResult,
    PaymentCheck,
    SubscriptionPlan,
    SubscriptionStatus,
)
from portal.schemas.user import Provider, UserProfile

logger = logging.getLogger(__name__)

UploadFile = tuple[str, bytes, str]


class BackendClient:
    """Async wrapper around the backend's JSON API."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.backend_url).rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or settings.backend_timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    def _headers(self, token: str | None) -> dict[str, str]:
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}

    async def _request(
        self,
        method: str,
        path: str,
        token: str | None = None,
        **kwargs: Any,
    ) -> dict[str, Any]:
        try:
            response = await self._client.request(
                method, path, headers=self._headers(token), **kwargs
            )
        except httpx.HTTPError as exc:
            logger.error("Backend %s %s unreachable: %s", method, path, exc)
            raise BackendError(
                "Could not reach the server. Please check your connection and try again."
            ) from exc

        logger.debug("Backend %s %s -> %s", method, path, response.status_code)
        body = _json_body(response)

        if response.status_code == 401:
            logger.info("Backend rejected token on %s %s", method, path)
            raise SessionExpiredError()
        if response.status_code == 403:
            raise PermissionDeniedError(_error_message(body, "Access denied"))
        if response.status_code >= 400 or body.get("success") is False:
            message = _error_message(body, f"Request failed with status {response.status_code}")
            logger.warning("Backend %s %s failed (%s): %s", method, path, response.status_code, message)
            raise BackendError(message, status_code=response.status_code, payload=body)
        return body

    # Public directory

    async def list_providers(self, location: str | None = None) -> list[Provider]:
        params = {"location": location} if location else None
        body = await self._request("GET", "/users", params=params)
        return [Provider.model_validate(row) for row in body.get("data") or []]

    async def get_provider(self, user_id: str) -> UserProfile:
        body = await self._request("GET", f"/user/{user_id}")
        user = body.get("user") or body.get("data")
        if not user:
            raise BackendError(body.get("error") or "Provider not found", status_code=404)
        return UserProfile.model_validate(user)

    async def list_plans(self) -> list[SubscriptionPlan]:
        body = await self._request("GET", "/subscription/plans")
        return [SubscriptionPlan.model_validate(row) for row in body.get("data") or []]

    # Account

    async def register(self, request: RegisterRequest) -> dict[str, Any]:
        return await self._request("POST", "/auth/register", json=request.model_dump())

    async def login(self, email: str, password: str) -> LoginResponse:
        try:
            body = await self._request(
                "POST", "/auth/login", json=LoginRequest(email=email, password=password).model_dump()
            )
        except SessionExpiredError as exc:
            # Bad credentials also come back as 401.
            raise BackendError("Invalid email or password", status_code=401) from exc
        if not body.get("token"):
            raise BackendError(_error_message(body, "Login failed"), payload=body)
        return LoginResponse.model_validate(body)

    async def me(self, token: str) -> UserProfile:
        body = await self._request("GET", "/auth/me", token=token)
        return UserProfile.model_validate(body.get("user") or {})

    async def update_profile(self, token: str, fields: dict[str, Any]) -> UserProfile:
        body = await self._request("PUT", "/auth/update-profile", token=token, json=fields)
        return UserProfile.model_validate(body.get("user") or {})

    async def upload_images(self, token: str, files: Iterable[UploadFile]) -> dict[str, Any]:
        multipart = [("images", (name, content, content_type)) for name, content, content_type in files]
        return await self._request("POST", "/auth/upload-images", token=token, files=multipart)

    async def delete_image(self, token: str, image_url: str, filename: str) -> dict[str, Any]:
        return await self._request(
            "DELETE",
            "/auth/delete-image",
            token=token,
            json={"imageUrl": image_url, "filename": filename},
        )

    # Subscription and payment

    async def subscribe(self, token: str, plan_id: str, phone: str) -> CheckoutResult:
        body = await self._request(
            "POST", "/auth/subscribe", token=token, json={"plan_id": plan_id, "phone": phone}
        )
        if not body.get("checkout_id"):
            raise BackendError("Payment was not initiated. Please try again.", payload=body)
        return CheckoutResult.model_validate(body)

    async def subscription_status(self, token: str) -> SubscriptionStatus:
        body = await self._request("GET", "/auth/subscription/status", token=token)
        return SubscriptionStatus.model_validate(body)

    async def check_payment(self, token: str, checkout_id: str) -> PaymentCheck:
        body = await self._request(
            "GET",
            "/auth/subscription/check-status",
            token=token,
            params={"checkout_id": checkout_id},
        )
        return PaymentCheck.model_validate(body)

    # Admin

    async def admin_stats(self, token: str) -> DashboardStats:
        body = await self._request("GET", "/admin/stats", token=token)
        return DashboardStats.model_validate(body.get("stats") or {})

    async def admin_list_users(
        self,
        token: str,
        page: int = 1,
        limit: int = 20,
        status: Optional[str] = None,
        search: Optional[str] = None,
        role: Optional[str] = None,
    ) -> UserPage:
        params = _compact({"page": page, "limit": limit, "status": status, "search": search, "role": role})
        body = await self._request("GET", "/admin/users", token=token, params=params)
        return UserPage.model_validate(body)

    async def admin_get_user(self, token: str, user_id: str) -> UserDetail:
        body = await self._request("GET", f"/admin/users/{user_id}", token=token)
        return UserDetail.model_validate(body)

    async def admin_approve_user(self, token: str, user_id: str) -> dict[str, Any]:
        return await self._request("PUT", f"/admin/approve/{user_id}", token=token)

    async def admin_set_user_status(self, token: str, user_id: str, is_active: bool) -> dict[str, Any]:
        return await self._request(
            "PUT", f"/admin/users/{user_id}/status", token=token, json={"is_active": is_active}
        )

    async def admin_delete_user(self, token: str, user_id: str) -> dict[str, Any]:
        return await self._request("DELETE", f"/admin/users/{user_id}", token=token)

    async def admin_list_subscriptions(
        self,
        token: str,
        page: int = 1,
        limit: int = 20,
        status: Optional[str] = None,
    ) -> SubscriptionPage:
        params = _compact({"page": page, "limit": limit, "status": status})
        body = await self._request("GET", "/admin/subscriptions", token=token, params=params)
        return SubscriptionPage.model_validate(body)

    async def admin_update_subscription(
        self,
        token: str,
        subscription_id: str,
        status: str,
        expiry_date: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> dict[str, Any]:
        payload = _compact({"status": status, "expiry_date": expiry_date, "notes": notes})
        return await self._request(
            "PUT", f"/admin/subscriptions/{subscription_id}", token=token, json=payload
        )

    async def admin_user_report(self, token: str) -> Report:
        body = await self._request("GET", "/admin/reports/users", token=token)
        return Report.model_validate(body.get("report") or {})

    async def admin_subscription_report(self, token: str) -> Report:
        body = await self._request("GET", "/admin/reports/subscriptions", token=token)
        return Report.model_validate(body.get("report") or {})


def _json_body(response: httpx.Response) -> dict[str, Any]:
    if not response.content:
        return {}
    try:
        body = response.json()
    except ValueError:
        return {"error": response.text[:200]}
    return body if isinstance(body, dict) else {"data": body}


def _error_message(body: dict[str, Any], default: str) -> str:
    return str(body.get("error") or body.get("message") or default)


def _compact(values: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in values.items() if value not in (None, "")}
