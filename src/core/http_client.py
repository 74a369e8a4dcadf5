"""Shared async HTTP client for talking to the backend platform."""
import httpx

from core.config import Settings


def create_http_client(settings: Settings) -> httpx.AsyncClient:
    """Create the process-wide client; one connection pool serves every request."""
    return httpx.AsyncClient(
        timeout=settings.backend_timeout,
        headers={"X-Client-Info": "garner-api"},
    )


# Global HTTP client state using a container to avoid global statement
class _HttpClientState:
    """Container for global HTTP client state."""

    client: httpx.AsyncClient | None = None


_state = _HttpClientState()


def get_http_client() -> httpx.AsyncClient | None:
    """Get the global HTTP client instance."""
    return _state.client


def set_http_client(client: httpx.AsyncClient | None) -> None:
    """Set the global HTTP client instance."""
    _state.client = client
