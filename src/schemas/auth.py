"""Pydantic schemas for the backend platform's auth payloads."""
import time

from pydantic import BaseModel, ConfigDict


class User(BaseModel):
    """Authenticated identity as returned by the auth API."""

    model_config = ConfigDict(extra="ignore")

    id: str
    email: str | None = None


class Session(BaseModel):
    """Access/refresh token pair for one authenticated user."""

    model_config = ConfigDict(extra="ignore")

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int | None = None
    expires_at: int | None = None
    user: User | None = None

    def with_expiry(self) -> "Session":
        """Fill in expires_at from expires_in when the platform omits it."""
        if self.expires_at is None and self.expires_in is not None:
            return self.model_copy(update={"expires_at": int(time.time()) + self.expires_in})
        return self

    def expires_within(self, seconds: int) -> bool:
        """True if the access token expires within `seconds` from now."""
        if self.expires_at is None:
            return False
        return self.expires_at - seconds <= time.time()
