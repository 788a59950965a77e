import os
import sys
import time
from pathlib import Path

import httpx
import jwt
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault('APP_ENV', 'test')
os.environ.setdefault('BACKEND_URL', 'http://backend.test')
os.environ.setdefault('SECRET_KEY', 'test-session-secret')
os.environ.setdefault('LOG_LEVEL', 'WARNING')

from fastapi.testclient import TestClient  # noqa: E402

from portal.integrations.backend import BackendClient  # noqa: E402
from portal.main import create_app  # noqa: E402

TOKEN_SECRET = 'backend-signing-key-used-only-in-tests'


def make_token(role='user', user_id='u1', expires_in=3600):
    claims = {'user_id': user_id, 'role': role, 'exp': int(time.time()) + expires_in}
    return jwt.encode(claims, TOKEN_SECRET, algorithm='HS256')


def user_payload(**overrides):
    user = {
        '_id': 'u1',
        'first_name': 'Jane',
        'last_name': 'Wanjiru',
        'email': 'jane@example.com',
        'phone_no': '254712345678',
        'location': 'Nairobi',
        'gender': 'Female',
        'services': 'Massage, Dinner Dates',
        'images': [],
        'is_active': False,
        'has_subscription': False,
        'role': 'user',
        'created_at': '2026-01-05T10:00:00Z',
    }
    user.update(overrides)
    return user


class FakeBackend:
    """Route table behind an httpx.MockTransport; records every request it sees."""

    def __init__(self):
        self.routes = {}
        self.requests = []

    def add(self, method, path, json=None, status_code=200, handler=None):
        self.routes[(method, path)] = handler or (status_code, json if json is not None else {})

    def calls(self, method=None, path=None):
        return [
            request for request in self.requests
            if (method is None or request.method == method) and (path is None or request.url.path == path)
        ]

    def __call__(self, request):
        self.requests.append(request)
        route = self.routes.get((request.method, request.url.path))
        if route is None:
            return httpx.Response(404, json={'error': 'not found'})
        if callable(route):
            return route(request)
        status_code, body = route
        return httpx.Response(status_code, json=body)


@pytest.fixture
def fake_backend():
    return FakeBackend()


@pytest.fixture
def backend(fake_backend):
    return BackendClient(base_url='http://backend.test', transport=httpx.MockTransport(fake_backend))


@pytest.fixture
def client(backend):
    return TestClient(create_app(backend=backend))


@pytest.fixture
def login(client, fake_backend):
    """Log the test client in through the real /login form."""

    def _login(role='user', **user_overrides):
        token = make_token(role=role, user_id=user_overrides.get('_id', 'u1'))
        fake_backend.add('POST', '/auth/login', {'token': token, 'role': role, 'id': 'u1'})
        fake_backend.add('GET', '/auth/me', {'user': user_payload(role=role, **user_overrides)})
        response = client.post(
            '/login',
            data={'email': 'jane@example.com', 'password': 'secret123'},
            follow_redirects=False,
        )
        assert response.status_code == 303
        return token

    return _login
