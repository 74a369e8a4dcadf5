"""Service layer for bookmark operations against the backend platform's row API."""
import logging

import httpx
from pydantic import TypeAdapter

from core.config import Settings
from schemas.bookmark import BookmarkCreate, BookmarkResponse
from services.auth_service import AuthService
from services.exceptions import DataApiError, error_from_response


logger = logging.getLogger(__name__)

REST_PATH = "/rest/v1"
BOOKMARKS_TABLE = "bookmarks"

_bookmark_list = TypeAdapter(list[BookmarkResponse])


class BookmarkService:
    """
    Bookmark table client.

    Row ownership is enforced by the platform's access policy; requests carry
    the signed-in user's access token and the platform filters by identity.
    """

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        settings: Settings,
        auth: AuthService,
    ) -> None:
        self._http = http_client
        self._settings = settings
        self._auth = auth
        self._url = f"{settings.supabase_url}{REST_PATH}/{BOOKMARKS_TABLE}"

    async def _headers(self, **extra: str) -> dict[str, str]:
        token = await self._auth.get_access_token()
        return {
            "apikey": self._settings.supabase_anon_key,
            "Authorization": f"Bearer {token}",
            **extra,
        }

    async def list_bookmarks(self) -> list[BookmarkResponse]:
        """
        Fetch all bookmarks visible to the current session, newest first.

        The order of the returned list is the server's order.
        """
        response = await self._http.get(
            self._url,
            params={"select": "*", "order": "created_at.desc"},
            headers=await self._headers(),
        )
        if response.is_error:
            raise error_from_response(response, DataApiError)
        try:
            return _bookmark_list.validate_python(response.json())
        except ValueError as e:
            raise DataApiError("Malformed bookmark rows", status_code=response.status_code) from e

    async def create_bookmark(self, data: BookmarkCreate, user_id: str) -> None:
        """Insert one bookmark owned by `user_id`; id and created_at are server-assigned."""
        response = await self._http.post(
            self._url,
            json=[{"title": data.title, "url": data.url, "user_id": user_id}],
            headers=await self._headers(Prefer="return=minimal"),
        )
        if response.is_error:
            raise error_from_response(response, DataApiError)
        logger.info("Created bookmark for user %s", user_id)

    async def delete_bookmark(self, bookmark_id: str) -> None:
        """Delete the bookmark with the given id."""
        response = await self._http.delete(
            self._url,
            params={"id": f"eq.{bookmark_id}"},
            headers=await self._headers(),
        )
        if response.is_error:
            raise error_from_response(response, DataApiError)
        logger.info("Deleted bookmark %s", bookmark_id)
