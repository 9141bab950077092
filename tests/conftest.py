"""
Shared fixtures: fast settings, a fresh in-memory database per test, and
a TestClient wired to a fake Google.
"""

from typing import Callable, List
from urllib.parse import parse_qs

import httpx
import pytest
import pytest_asyncio
from fastapi import Depends
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession

from taskvault.core.config import Settings
from taskvault.db.session import create_session_factory, get_db, init_db
from taskvault.dependencies.auth import get_google_auth_service, get_settings
from taskvault.main import create_app
from taskvault.services.google_auth_service import GoogleAuthService


def make_settings(**overrides) -> Settings:
    values = dict(
        environment="test",
        secret_key="test-secret-key",
        database_url="sqlite+aiosqlite:///:memory:",
        auth_token_ttl="24H",
        # Cheapest argon2 parameters so tests stay fast
        password_time_cost=1,
        password_memory_cost=8,
        password_parallelism=1,
        google_client_id="client-id.apps.googleusercontent.com",
        google_client_secret="client-secret",
        google_redirect_uri="http://localhost:4000/auth/google/callback",
        frontend_url="http://localhost:3000/dashboard",
        rate_limit_max_requests=1000,
        rate_limit_window_seconds=600,
    )
    values.update(overrides)
    return Settings(**values)


class FakeGoogle:
    """Stands in for Google's token and userinfo endpoints."""

    def __init__(self, token_response=None, profile_response=None):
        self.token_response = token_response or httpx.Response(
            200, json={"access_token": "ya29.access-token", "token_type": "Bearer", "expires_in": 3599}
        )
        self.profile_response = profile_response or httpx.Response(
            200, json={"id": "108234567890123456789", "name": "Ana", "email": "ana@x.com"}
        )
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.host == "oauth2.googleapis.com" and request.url.path == "/token":
            return self.token_response
        if request.url.host == "www.googleapis.com" and request.url.path == "/oauth2/v1/userinfo":
            return self.profile_response
        return httpx.Response(404, json={"error": "not_found"})

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def token_form(self) -> dict:
        token_request = next(r for r in self.requests if r.url.path == "/token")
        return {key: values[0] for key, values in parse_qs(token_request.content.decode()).items()}

    def paths(self) -> List[str]:
        return [request.url.path for request in self.requests]


@pytest.fixture
def settings() -> Settings:
    return make_settings()


@pytest_asyncio.fixture
async def db_session(settings):
    engine, session_factory = create_session_factory(settings.database_url)
    await init_db(engine)
    async with session_factory() as session:
        yield session
    await engine.dispose()


@pytest.fixture
def fake_google() -> FakeGoogle:
    return FakeGoogle()


@pytest.fixture
def make_client(fake_google) -> Callable[..., TestClient]:
    clients = []

    def factory(settings: Settings = None) -> TestClient:
        app = create_app(settings or make_settings())

        def google_service_override(
            app_settings: Settings = Depends(get_settings),
            db: AsyncSession = Depends(get_db),
        ) -> GoogleAuthService:
            return GoogleAuthService(app_settings, db, transport=fake_google.transport)

        app.dependency_overrides[get_google_auth_service] = google_service_override
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield factory

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client()


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def register(client: TestClient, name="Ana", email="ana@x.com", password="password123") -> httpx.Response:
    return client.post("/api/users/register", json={"name": name, "email": email, "password": password})
