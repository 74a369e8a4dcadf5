"""FastAPI dependencies for injection."""
import httpx
from fastapi import Depends, Request

from core.config import Settings, get_settings
from core.cookies import CookieJar
from core.http_client import get_http_client
from services.backend_client import BackendClient, create_backend_client
from services.broadcast import BroadcastHub, get_broadcast_hub


def get_shared_http_client() -> httpx.AsyncClient:
    """Shared backend HTTP client created during app startup."""
    client = get_http_client()
    if client is None:
        raise RuntimeError("HTTP client is not initialized; is the app lifespan running?")
    return client


def get_hub() -> BroadcastHub:
    """Broadcast hub created during app startup."""
    hub = get_broadcast_hub()
    if hub is None:
        raise RuntimeError("Broadcast hub is not initialized; is the app lifespan running?")
    return hub


def get_cookie_jar(request: Request) -> CookieJar:
    """Cookie capability for this request (one instance per request)."""
    return CookieJar(request.cookies)


def get_backend(
    settings: Settings = Depends(get_settings),
    http_client: httpx.AsyncClient = Depends(get_shared_http_client),
    cookies: CookieJar = Depends(get_cookie_jar),
) -> BackendClient:
    """Backend client bound to this request's session cookies."""
    return create_backend_client(settings, http_client, cookies)


def request_origin(request: Request) -> str:
    """Scheme and host of the incoming request, e.g. 'https://garner.example'."""
    return f"{request.url.scheme}://{request.url.netloc}"


__all__ = [
    "get_backend",
    "get_cookie_jar",
    "get_hub",
    "get_settings",
    "get_shared_http_client",
    "request_origin",
]
