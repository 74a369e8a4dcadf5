"""Tests for health check endpoint."""
import httpx
import respx
from httpx import AsyncClient, Response


async def test_health_check_healthy(client: AsyncClient, mock_backend: respx.MockRouter) -> None:
    """Test health check when the backend platform answers."""
    mock_backend.get("/auth/v1/health").mock(return_value=Response(200, json={"name": "GoTrue"}))

    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "backend": "healthy"}
    assert response.headers["x-content-type-options"] == "nosniff"
    assert response.headers["x-frame-options"] == "DENY"


async def test_health_check_degraded(client: AsyncClient, mock_backend: respx.MockRouter) -> None:
    """Test health check when the backend platform is unreachable."""
    mock_backend.get("/auth/v1/health").mock(side_effect=httpx.ConnectError("unreachable"))

    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "degraded", "backend": "unhealthy"}
