"""Pytest fixtures for testing."""
import json
import os
import time
from collections.abc import AsyncGenerator, Callable, Generator
from typing import Any

import httpx
import pytest
import respx
from httpx import ASGITransport, AsyncClient

# Settings are validated when api.main is imported; point them at a fake platform first
SUPABASE_URL = "https://testref.supabase.co"
SUPABASE_ANON_KEY = "anon-test-key"
os.environ["SUPABASE_URL"] = SUPABASE_URL
os.environ["SUPABASE_ANON_KEY"] = SUPABASE_ANON_KEY
os.environ.pop("APP_URL", None)
os.environ.pop("REALTIME_FORWARD", None)

from core.config import Settings  # noqa: E402
from core.cookies import CookieJar  # noqa: E402
from core.session_storage import encode_value  # noqa: E402
from services.backend_client import BackendClient, create_backend_client  # noqa: E402
from services.broadcast import BroadcastHub  # noqa: E402


@pytest.fixture
def settings() -> Settings:
    """Settings pointing at the fake backend platform."""
    return Settings(
        _env_file=None,
        SUPABASE_URL=SUPABASE_URL,
        SUPABASE_ANON_KEY=SUPABASE_ANON_KEY,
    )


@pytest.fixture
def mock_backend() -> Generator[respx.MockRouter]:
    """Mock the backend platform's HTTP API."""
    with respx.mock(base_url=SUPABASE_URL, assert_all_called=False) as respx_mock:
        yield respx_mock


@pytest.fixture
async def http_client() -> AsyncGenerator[httpx.AsyncClient]:
    """Shared HTTP client, as created at app startup."""
    async with httpx.AsyncClient() as client:
        yield client


@pytest.fixture
def session_data() -> dict[str, Any]:
    """A valid, unexpired session for the test user."""
    return {
        "access_token": "access-token-1",
        "refresh_token": "refresh-token-1",
        "token_type": "bearer",
        "expires_in": 3600,
        "expires_at": int(time.time()) + 3600,
        "user": {"id": "user-1", "email": "user@example.com"},
    }


@pytest.fixture
def session_cookies(settings: Settings) -> Callable[[dict[str, Any]], dict[str, str]]:
    """Build request cookies that carry a stored session."""

    def build(session: dict[str, Any]) -> dict[str, str]:
        return {settings.storage_key: encode_value(json.dumps(session))}

    return build


@pytest.fixture
def signed_in_cookies(
    session_data: dict[str, Any],
    session_cookies: Callable[[dict[str, Any]], dict[str, str]],
) -> dict[str, str]:
    """Request cookies for a signed-in user."""
    return session_cookies(session_data)


@pytest.fixture
def backend(
    settings: Settings,
    http_client: httpx.AsyncClient,
    signed_in_cookies: dict[str, str],
) -> BackendClient:
    """Backend client for a signed-in request."""
    return create_backend_client(settings, http_client, CookieJar(signed_in_cookies))


@pytest.fixture
def hub() -> BroadcastHub:
    """Broadcast hub without remote forwarding."""
    return BroadcastHub()


@pytest.fixture
def sample_bookmarks() -> list[dict[str, Any]]:
    """Bookmark rows as the platform returns them, newest first."""
    return [
        {
            "id": "b3",
            "title": "Third",
            "url": "https://third.example.com",
            "created_at": "2025-03-03T12:00:00+00:00",
            "user_id": "user-1",
        },
        {
            "id": "b2",
            "title": "Second",
            "url": "https://second.example.com",
            "created_at": "2025-02-02T12:00:00+00:00",
            "user_id": "user-1",
        },
        {
            "id": "b1",
            "title": "First",
            "url": "https://first.example.com",
            "created_at": "2025-01-01T12:00:00+00:00",
            "user_id": "user-1",
        },
    ]


@pytest.fixture
def app_overrides(
    settings: Settings,
    http_client: httpx.AsyncClient,
    hub: BroadcastHub,
) -> Generator[Any]:
    """Point the app's dependencies at the test settings, client and hub."""
    from api.dependencies import get_hub, get_shared_http_client
    from api.main import app
    from core.config import get_settings

    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_shared_http_client] = lambda: http_client
    app.dependency_overrides[get_hub] = lambda: hub

    yield app

    app.dependency_overrides.clear()


@pytest.fixture
async def client(app_overrides: Any) -> AsyncGenerator[AsyncClient]:
    """Create a test client against the app with dependency overrides."""
    async with AsyncClient(
        transport=ASGITransport(app=app_overrides),
        base_url="http://test",
    ) as test_client:
        yield test_client
