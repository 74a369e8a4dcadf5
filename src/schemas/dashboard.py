"""Schemas for the bookmark dashboard view."""
from pydantic import BaseModel, Field

from schemas.auth import User
from schemas.bookmark import BookmarkResponse


class DashboardState(BaseModel):
    """
    Everything the dashboard view renders.

    `deleting` holds the id of the bookmark whose delete request is in flight,
    so only that row's control is disabled.
    """

    user: User | None = None
    bookmarks: list[BookmarkResponse] = Field(default_factory=list)
    title: str = ""
    url: str = ""
    error: str = ""
    success: str = ""
    loading: bool = True
    deleting: str | None = None


class BookmarkForm(BaseModel):
    """Request body for the add-bookmark endpoint."""

    title: str = ""
    url: str = ""
