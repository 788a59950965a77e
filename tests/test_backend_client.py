from __future__ import annotations

import json

import httpx
import pytest

from portal.core.exceptions import BackendError, PermissionDeniedError, SessionExpiredError
from portal.integrations.backend import BackendClient
from portal.schemas.auth import RegisterRequest


@pytest.mark.asyncio
async def test_list_providers_reads_data_envelope(fake_backend, backend):
    fake_backend.add(
        "GET",
        "/users",
        {"success": True, "count": 1, "data": [{"_id": "p1", "full_name": "Jane W", "services": "A,B"}]},
    )
    providers = await backend.list_providers()
    assert [p.id for p in providers] == ["p1"]
    assert providers[0].services == ["A", "B"]


@pytest.mark.asyncio
async def test_status_codes_map_to_error_types(fake_backend, backend):
    fake_backend.add("GET", "/auth/me", {"error": "token expired"}, status_code=401)
    fake_backend.add("GET", "/admin/stats", {"error": "Admin only"}, status_code=403)
    fake_backend.add("GET", "/auth/subscription/status", {"error": "boom"}, status_code=500)

    with pytest.raises(SessionExpiredError):
        await backend.me("tok")
    with pytest.raises(PermissionDeniedError) as denied:
        await backend.admin_stats("tok")
    assert denied.value.message == "Admin only"
    with pytest.raises(BackendError) as failed:
        await backend.subscription_status("tok")
    assert failed.value.status_code == 500
    assert failed.value.message == "boom"


@pytest.mark.asyncio
async def test_success_false_body_is_an_error(fake_backend, backend):
    fake_backend.add("GET", "/subscription/plans", {"success": False, "message": "Plans unavailable"})
    with pytest.raises(BackendError, match="Plans unavailable"):
        await backend.list_plans()


@pytest.mark.asyncio
async def test_transport_error_has_no_status_code():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = BackendClient(base_url="http://backend.test", transport=httpx.MockTransport(refuse))
    with pytest.raises(BackendError) as excinfo:
        await client.list_plans()
    assert excinfo.value.is_transport_error
    assert "Could not reach the server" in excinfo.value.message
    await client.aclose()


@pytest.mark.asyncio
async def test_login_with_bad_credentials_is_not_a_session_error(fake_backend, backend):
    fake_backend.add("POST", "/auth/login", {"error": "invalid credentials"}, status_code=401)
    with pytest.raises(BackendError) as excinfo:
        await backend.login("jane@example.com", "wrong")
    assert not isinstance(excinfo.value, SessionExpiredError)
    assert excinfo.value.message == "Invalid email or password"


@pytest.mark.asyncio
async def test_register_posts_camel_case_body(fake_backend, backend):
    fake_backend.add("POST", "/auth/register", {"message": "ok"}, status_code=201)
    await backend.register(
        RegisterRequest(
            firstName="Jane",
            lastName="W",
            email="jane@example.com",
            phoneNo="254712345678",
            password="secret1",
            gender="Female",
            services=["Massage"],
        )
    )
    body = json.loads(fake_backend.calls("POST", "/auth/register")[0].content)
    assert body["firstName"] == "Jane"
    assert body["phoneNo"] == "254712345678"
    assert body["sexualOrientation"] == "Straight"
    assert body["age"] == 25


@pytest.mark.asyncio
async def test_subscribe_requires_checkout_id(fake_backend, backend):
    fake_backend.add("POST", "/auth/subscribe", {"message": "queued"})
    with pytest.raises(BackendError, match="Payment was not initiated"):
        await backend.subscribe("tok", "basic", "254712345678")

    fake_backend.add(
        "POST",
        "/auth/subscribe",
        {"checkout_id": "ws_CO_1", "message": "Check your phone", "amount": 500, "phone_used": "254712345678"},
    )
    checkout = await backend.subscribe("tok", "basic", "254712345678")
    assert checkout.checkout_id == "ws_CO_1"
    body = json.loads(fake_backend.calls("POST", "/auth/subscribe")[-1].content)
    assert body == {"plan_id": "basic", "phone": "254712345678"}


@pytest.mark.asyncio
async def test_admin_list_users_omits_blank_filters(fake_backend, backend):
    fake_backend.add("GET", "/admin/users", {"users": [], "pagination": {"total": 0, "page": 1, "limit": 20}})
    await backend.admin_list_users("tok", page=2, limit=20, status=None, search="")
    params = fake_backend.calls("GET", "/admin/users")[0].url.params
    assert dict(params) == {"page": "2", "limit": "20"}
