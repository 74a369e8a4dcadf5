"""Per-request facade over the backend platform's auth and bookmark APIs."""
from dataclasses import dataclass

import httpx

from core.config import Settings
from core.cookies import CookieJar, CookieOptions
from core.session_storage import CookieSessionStorage
from services.auth_service import AuthService
from services.bookmark_service import BookmarkService


@dataclass
class BackendClient:
    """Auth and bookmark clients sharing one request's cookie-backed session."""

    auth: AuthService
    bookmarks: BookmarkService
    cookies: CookieJar


def create_backend_client(
    settings: Settings,
    http_client: httpx.AsyncClient,
    cookies: CookieJar,
) -> BackendClient:
    """
    Build a backend client for one request.

    `settings` is the process-wide configuration and `cookies` the request's
    cookie capability; nothing here reads the environment or ambient request state.
    """
    storage = CookieSessionStorage(cookies, CookieOptions(secure=settings.cookie_secure))
    auth = AuthService(http_client, settings, storage)
    return BackendClient(
        auth=auth,
        bookmarks=BookmarkService(http_client, settings, auth),
        cookies=cookies,
    )
