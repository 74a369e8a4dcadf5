"""
Explicit cookie capability for session persistence.

Request handlers never touch ambient cookie state directly. Instead they build a
CookieJar from the incoming request, hand it to whatever needs to read or write
session cookies, and flush the recorded writes onto the outgoing response.
"""
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Literal

from starlette.responses import Response

# Matches the lifetime the backend platform's SSR helpers use for auth cookies
DEFAULT_COOKIE_MAX_AGE = 400 * 24 * 60 * 60


@dataclass(frozen=True)
class CookieOptions:
    """Attributes applied when a cookie is written to a response."""

    path: str = "/"
    max_age: int = DEFAULT_COOKIE_MAX_AGE
    samesite: Literal["lax", "strict", "none"] = "lax"
    httponly: bool = True
    secure: bool = False
    domain: str | None = None

    def expired(self) -> "CookieOptions":
        """Return a copy that instructs the browser to delete the cookie."""
        return CookieOptions(
            path=self.path,
            max_age=0,
            samesite=self.samesite,
            httponly=self.httponly,
            secure=self.secure,
            domain=self.domain,
        )


@dataclass(frozen=True)
class CookieToSet:
    """A single pending cookie write."""

    name: str
    value: str
    options: CookieOptions = field(default_factory=CookieOptions)

    @property
    def is_deletion(self) -> bool:
        """True when the write removes the cookie."""
        return self.options.max_age <= 0


class CookieJar:
    """
    Request-scoped cookie store.

    Reads see the request's cookies plus any writes made earlier in the same
    request. Writes are recorded in order and only reach the browser once
    apply() is called with the outgoing response.
    """

    def __init__(self, request_cookies: Mapping[str, str] | None = None) -> None:
        self._cookies: dict[str, str] = dict(request_cookies or {})
        self._pending: dict[str, CookieToSet] = {}

    def read(self) -> list[tuple[str, str]]:
        """Return all current cookies as (name, value) pairs."""
        return list(self._cookies.items())

    def get(self, name: str) -> str | None:
        """Return the current value of a cookie, or None if it is not set."""
        return self._cookies.get(name)

    def write(self, batch: Iterable[CookieToSet]) -> None:
        """Record a batch of cookie writes; deletions remove the cookie from reads."""
        for cookie in batch:
            if cookie.is_deletion:
                self._cookies.pop(cookie.name, None)
            else:
                self._cookies[cookie.name] = cookie.value
            # Later writes to the same name replace earlier ones
            self._pending[cookie.name] = cookie

    @property
    def pending(self) -> list[CookieToSet]:
        """Writes recorded since the jar was created."""
        return list(self._pending.values())

    def apply(self, response: Response) -> Response:
        """Copy recorded writes onto the outgoing response and return it."""
        for cookie in self._pending.values():
            opts = cookie.options
            if cookie.is_deletion:
                response.delete_cookie(
                    cookie.name,
                    path=opts.path,
                    domain=opts.domain,
                    secure=opts.secure,
                    httponly=opts.httponly,
                    samesite=opts.samesite,
                )
            else:
                response.set_cookie(
                    cookie.name,
                    cookie.value,
                    max_age=opts.max_age,
                    path=opts.path,
                    domain=opts.domain,
                    secure=opts.secure,
                    httponly=opts.httponly,
                    samesite=opts.samesite,
                )
        return response
