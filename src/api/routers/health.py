"""Health check endpoints."""
import logging

import httpx
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from api.dependencies import get_shared_http_client
from core.config import Settings, get_settings


logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    backend: str


@router.get("/health", response_model=HealthResponse)
async def health_check(
    settings: Settings = Depends(get_settings),
    http_client: httpx.AsyncClient = Depends(get_shared_http_client),
) -> HealthResponse:
    """Check application health and whether the backend platform's auth API answers."""
    backend_status = "healthy"
    try:
        response = await http_client.get(
            f"{settings.supabase_url}/auth/v1/health",
            headers={"apikey": settings.supabase_anon_key},
        )
        response.raise_for_status()
    except httpx.HTTPError:
        logger.exception("Backend health check failed")
        backend_status = "unhealthy"

    return HealthResponse(
        status="healthy" if backend_status == "healthy" else "degraded",
        backend=backend_status,
    )
