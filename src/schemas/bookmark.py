"""Pydantic schemas for bookmarks."""
from datetime import datetime
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict

REQUIRED_FIELDS_MESSAGE = "Title and URL are required"
INVALID_URL_MESSAGE = "Please enter a valid http(s) URL"


class BookmarkCreate(BaseModel):
    """Fields supplied by the add-bookmark form."""

    title: str
    url: str


class BookmarkResponse(BaseModel):
    """A bookmark row as stored by the backend platform."""

    model_config = ConfigDict(extra="ignore")

    id: str
    title: str
    url: str
    created_at: datetime
    user_id: str | None = None


def validate_bookmark_form(title: str, url: str) -> BookmarkCreate:
    """
    Validate add-bookmark form input.

    Both fields must be non-empty after trimming whitespace, and the URL must be
    an absolute http(s) URL.

    Returns:
        BookmarkCreate with trimmed title and url.

    Raises:
        ValueError: With a user-facing message when validation fails.
    """
    title = title.strip()
    url = url.strip()
    if not title or not url:
        raise ValueError(REQUIRED_FIELDS_MESSAGE)
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError(INVALID_URL_MESSAGE)
    return BookmarkCreate(title=title, url=url)
