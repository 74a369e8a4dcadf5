"""Exceptions raised by clients of the backend platform."""
from typing import Any, TypeVar

import httpx


class BackendError(Exception):
    """
    Raised when the backend platform rejects a request.

    Carries the HTTP status and the platform's error code (when it sends one) so
    callers can distinguish "signed out" from "platform unavailable".
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        code: str | None = None,
    ) -> None:
        self.message = message
        self.status_code = status_code
        self.code = code
        super().__init__(message)


E = TypeVar("E", bound="BackendError")


class AuthApiError(BackendError):
    """Raised by the auth API (code exchange, token refresh, user lookup, sign-out)."""


class DataApiError(BackendError):
    """Raised by the row API (bookmark select, insert, delete)."""


def _safe_json(response: httpx.Response) -> Any:
    """Return the response body as JSON, or None if it isn't JSON."""
    try:
        return response.json()
    except ValueError:
        return None


def error_from_response(
    response: httpx.Response,
    error_cls: type[E],
) -> E:
    """
    Build an error from a failed platform response.

    The auth API reports `msg`/`error_description`/`error` and `error_code`;
    the row API reports `message` and `code`. Non-JSON bodies fall back to the
    raw text or the HTTP reason phrase.
    """
    body = _safe_json(response)
    message = None
    code = None
    if isinstance(body, dict):
        for field in ("msg", "message", "error_description", "error"):
            value = body.get(field)
            if isinstance(value, str) and value:
                message = value
                break
        raw_code = body.get("error_code") or body.get("code")
        code = str(raw_code) if raw_code is not None else None
    if not message:
        message = response.text.strip() or response.reason_phrase or "Request failed"
    return error_cls(message, status_code=response.status_code, code=code)
