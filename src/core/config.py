"""Application configuration using pydantic-settings."""
from functools import lru_cache
from urllib.parse import urlparse

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Backend platform (auth, bookmarks table, realtime)
    supabase_url: str = Field(validation_alias="SUPABASE_URL")
    supabase_anon_key: str = Field(validation_alias="SUPABASE_ANON_KEY")
    backend_timeout: float = Field(default=30.0, validation_alias="BACKEND_TIMEOUT")

    # Public origin used for the OAuth redirect target; falls back to the request origin
    app_url: str = Field(default="", validation_alias="APP_URL")
    oauth_provider: str = Field(default="google", validation_alias="OAUTH_PROVIDER")

    # Live sync
    sync_topic: str = Field(default="dashboard-sync", validation_alias="SYNC_TOPIC")
    realtime_forward: bool = Field(default=False, validation_alias="REALTIME_FORWARD")

    # Session cookies
    cookie_secure: bool = Field(default=False, validation_alias="COOKIE_SECURE")

    # CORS - comma-separated list of allowed origins (stored as string, parsed via property)
    cors_origins_str: str = Field(
        default="http://localhost:3000",
        validation_alias="CORS_ORIGINS",
    )

    @field_validator("supabase_url", "app_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        """Store origins without a trailing slash so paths can be appended."""
        return value.rstrip("/")

    @field_validator("supabase_url")
    @classmethod
    def validate_supabase_url(cls, value: str) -> str:
        """Require an absolute http(s) URL for the backend platform."""
        parsed = urlparse(value)
        if parsed.scheme not in ("http", "https") or not parsed.hostname:
            raise ValueError(f"SUPABASE_URL must be an http(s) URL, got '{value}'")
        return value

    @property
    def project_ref(self) -> str:
        """Project reference: the first label of the platform hostname."""
        hostname = urlparse(self.supabase_url).hostname or ""
        return hostname.split(".")[0]

    @property
    def storage_key(self) -> str:
        """Cookie name under which the session is stored."""
        return f"sb-{self.project_ref}-auth-token"

    @property
    def cors_origins(self) -> list[str]:
        """Parse comma-separated CORS origins string into a list."""
        if not self.cors_origins_str:
            return []
        return [origin.strip() for origin in self.cors_origins_str.split(",") if origin.strip()]


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
