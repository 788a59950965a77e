from __future__ import annotations

import json

from conftest import make_token

REGISTRATION = {
    "first_name": "Jane",
    "last_name": "Wanjiru",
    "email": "jane@example.com",
    "phone_no": "0712345678",
    "password": "secret1",
    "confirm_password": "secret1",
    "gender": "Female",
    "services": ["Massage", "Events"],
    "custom_service": "Poetry",
}


def test_register_validation_error_makes_no_backend_call(client, fake_backend):
    response = client.post("/register", data={**REGISTRATION, "confirm_password": "different"})

    assert response.status_code == 400
    assert "Passwords do not match" in response.text
    assert fake_backend.requests == []


def test_register_posts_once_and_shows_pending_banner(client, fake_backend):
    fake_backend.add("POST", "/auth/register", {"message": "User registered"}, status_code=201)

    response = client.post("/register", data=REGISTRATION)

    assert response.status_code == 200
    assert "pending admin approval" in response.text
    calls = fake_backend.calls("POST", "/auth/register")
    assert len(calls) == 1
    body = json.loads(calls[0].content)
    assert body["phoneNo"] == "254712345678"
    assert body["services"] == ["Massage", "Events", "Poetry"]
    assert body["location"] == "Nairobi"


def test_register_surfaces_backend_error(client, fake_backend):
    fake_backend.add("POST", "/auth/register", {"error": "email already registered"}, status_code=409)

    response = client.post("/register", data=REGISTRATION)

    assert response.status_code == 400
    assert "email already registered" in response.text


def test_login_redirects_users_to_dashboard(client, login):
    login(role="user")
    response = client.get("/login", follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/dashboard"


def test_login_redirects_admins_to_console(client, fake_backend):
    token = make_token(role="admin")
    fake_backend.add("POST", "/auth/login", {"token": token, "role": "admin", "id": "a1"})
    fake_backend.add("GET", "/auth/me", {"user": {"_id": "a1", "email": "admin@example.com", "role": "admin", "is_active": True}})

    response = client.post(
        "/login", data={"email": "admin@example.com", "password": "secret123"}, follow_redirects=False
    )

    assert response.status_code == 303
    assert response.headers["location"] == "/admin"


def test_login_falls_back_to_token_claims_when_profile_fetch_fails(client, fake_backend):
    token = make_token(role="admin", user_id="a9")
    fake_backend.add("POST", "/auth/login", {"token": token, "role": "", "id": ""})
    fake_backend.add("GET", "/auth/me", {"error": "boom"}, status_code=500)

    response = client.post(
        "/login", data={"email": "admin@example.com", "password": "secret123"}, follow_redirects=False
    )

    assert response.headers["location"] == "/admin"


def test_login_rejects_bad_credentials(client, fake_backend):
    fake_backend.add("POST", "/auth/login", {"error": "invalid credentials"}, status_code=401)

    response = client.post("/login", data={"email": "jane@example.com", "password": "nope"})

    assert response.status_code == 400
    assert "Invalid email or password" in response.text


def test_login_requires_both_fields(client, fake_backend):
    response = client.post("/login", data={"email": "jane@example.com", "password": ""})

    assert response.status_code == 400
    assert fake_backend.requests == []


def test_logout_clears_session(client, login):
    login()
    response = client.post("/logout", follow_redirects=False)
    assert response.headers["location"] == "/login"

    dashboard = client.get("/dashboard", follow_redirects=False)
    assert dashboard.status_code == 303
    assert dashboard.headers["location"] == "/login"


def test_inactive_account_is_told_to_activate(client, fake_backend, login):
    login(is_active=False)
    fake_backend.add("GET", "/auth/subscription/status", {"has_subscription": False})

    page = client.get("/dashboard")

    assert "Your account is not active yet" in page.text


def test_active_account_gets_no_activation_notice(client, fake_backend, login):
    login(is_active=True)
    fake_backend.add("GET", "/auth/subscription/status", {"has_subscription": True, "days_remaining": 10})

    page = client.get("/dashboard")

    assert "Your account is not active yet" not in page.text
