"""FastAPI application entry point."""
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from api.routers import auth, dashboard, health
from core.config import get_settings
from core.http_client import create_http_client, set_http_client
from services.broadcast import BroadcastHub, realtime_forwarder, set_broadcast_hub


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifespan - startup and shutdown."""
    app_settings = get_settings()

    # Startup: one pooled HTTP client for every call to the backend platform
    http_client = create_http_client(app_settings)
    set_http_client(http_client)

    # Startup: broadcast hub for dashboard live sync
    forward = None
    if app_settings.realtime_forward:
        forward = realtime_forwarder(http_client, app_settings)
    set_broadcast_hub(BroadcastHub(forward=forward))

    yield

    # Shutdown: drop the hub, then close the HTTP client
    set_broadcast_hub(None)
    await http_client.aclose()
    set_http_client(None)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process request and add security headers to response."""
        response = await call_next(request)
        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"
        # Prevent clickjacking
        response.headers["X-Frame-Options"] = "DENY"
        # Session cookies must never leak into third-party referrers
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


app_settings = get_settings()

app = FastAPI(
    title="Garner",
    description="Save, list and delete personal bookmarks behind OAuth sign-in.",
    version="0.1.0",
    lifespan=lifespan,
)

# Security headers middleware (runs after CORS, adds headers to responses)
app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(auth.router)
app.include_router(dashboard.router)
