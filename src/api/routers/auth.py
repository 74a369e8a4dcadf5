"""Sign-in endpoints: landing, OAuth start, and the authorization-code callback."""
import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse
from pydantic import BaseModel

from api.dependencies import get_backend, get_cookie_jar, request_origin
from core.config import Settings, get_settings
from core.cookies import CookieJar
from services.backend_client import BackendClient
from services.exceptions import BackendError


logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])

DASHBOARD_PATH = "/dashboard"
CALLBACK_PATH = "/callback"


class LandingResponse(BaseModel):
    """Unauthenticated landing route."""

    app: str
    login_url: str


@router.get("/", response_model=LandingResponse)
async def landing() -> LandingResponse:
    """Landing route for signed-out users."""
    return LandingResponse(app="Garner", login_url="/login")


@router.get("/login")
async def login(
    request: Request,
    settings: Settings = Depends(get_settings),
    backend: BackendClient = Depends(get_backend),
    cookies: CookieJar = Depends(get_cookie_jar),
) -> RedirectResponse:
    """Start OAuth sign-in with the configured provider."""
    redirect_base = settings.app_url or request_origin(request)
    authorize_url = backend.auth.sign_in_with_oauth(
        settings.oauth_provider,
        redirect_to=f"{redirect_base}{CALLBACK_PATH}",
    )
    return cookies.apply(RedirectResponse(authorize_url))


@router.get(CALLBACK_PATH)
async def auth_callback(
    request: Request,
    code: str | None = None,
    backend: BackendClient = Depends(get_backend),
    cookies: CookieJar = Depends(get_cookie_jar),
) -> RedirectResponse:
    """
    Exchange the provider's authorization code for a session.

    Always redirects to the dashboard. Session cookies are written only when
    the exchange succeeds; failures are logged and the dashboard's own session
    check sends the user back to the landing route.
    """
    response = RedirectResponse(f"{request_origin(request)}{DASHBOARD_PATH}")
    if not code:
        return response

    try:
        session = await backend.auth.exchange_code_for_session(code)
    except BackendError as e:
        logger.warning(
            "exchange_code_for_session error: %s (status=%s, code=%s)",
            e.message, e.status_code, e.code,
        )
    except Exception:
        logger.exception("Callback route error")
    else:
        logger.info("exchange_code_for_session success: %s", session.user is not None)
        cookies.apply(response)
    return response
