"""
Bookmark dashboard view controller.

One controller instance backs one mounted dashboard view: a WebSocket
connection for the live view, or a single HTTP request for the one-shot
endpoints. It owns the view state, talks to the backend platform, and keeps the
bookmark list fresh through a RefreshLoop fed by user actions and sync
broadcasts.
"""
import asyncio
import contextlib
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from schemas.bookmark import validate_bookmark_form
from schemas.dashboard import DashboardState
from services.backend_client import BackendClient
from services.broadcast import BroadcastChannel, BroadcastHub
from services.refresh_loop import RefreshLoop


logger = logging.getLogger(__name__)

LANDING_ROUTE = "/"
SYNC_EVENT = "sync"

ADD_SUCCESS_CLEAR_SECONDS = 3.0
DELETE_SUCCESS_CLEAR_SECONDS = 2.0

LOAD_FAILED_MESSAGE = "Failed to load bookmarks"
ADD_FAILED_MESSAGE = "Failed to add bookmark"
DELETE_FAILED_MESSAGE = "Failed to delete bookmark"
ADDED_MESSAGE = "Bookmark added!"
DELETED_MESSAGE = "Bookmark deleted"

Navigate = Callable[[str], Awaitable[None] | None]
StateListener = Callable[[DashboardState], Awaitable[None]]


class DashboardController:
    """State and actions for one mounted bookmark dashboard."""

    def __init__(
        self,
        backend: BackendClient,
        hub: BroadcastHub,
        navigate: Navigate,
        *,
        topic: str = "dashboard-sync",
        on_change: StateListener | None = None,
        live_sync: bool = True,
    ) -> None:
        self.state = DashboardState()
        self._backend = backend
        self._hub = hub
        self._navigate_cb = navigate
        self._topic = topic
        self._on_change = on_change
        self._live_sync = live_sync
        self._refresh = RefreshLoop(self.fetch_bookmarks)
        self._success_timer: asyncio.Task[None] | None = None
        self.channel: BroadcastChannel | None = None
        self.redirected_to: str | None = None

    async def mount(self, fetch: bool = True) -> None:
        """
        Bring the view up.

        Subscribes to sync broadcasts, verifies the session and loads the
        bookmark list. Without a user the view navigates to the landing route
        and never fetches. `loading` is cleared however this ends.

        Args:
            fetch: Load the list after authenticating. One-shot mutation
                requests pass False because the mutation re-fetches anyway.
        """
        if self._live_sync:
            self.channel = (
                self._hub.channel(self._topic).on(SYNC_EVENT, self._on_sync).subscribe()
            )
        self._refresh.start()
        try:
            if await self.authenticate() and fetch:
                await self._refresh.refresh()
        finally:
            self.state.loading = False
            await self._notify()

    async def authenticate(self) -> bool:
        """Load the current user; navigate to the landing route if there is none."""
        try:
            user = await self._backend.auth.get_user()
        except Exception:
            logger.exception("Auth error while loading dashboard")
            user = None
        if user is None:
            await self._navigate(LANDING_ROUTE)
            return False
        self.state.user = user
        return True

    async def unmount(self) -> None:
        """Tear the view down: unsubscribe, stop refreshing, cancel timers."""
        if self.channel is not None:
            self._hub.remove_channel(self.channel)
            self.channel = None
        await self._refresh.stop()
        await self._cancel_success_timer()

    async def fetch_bookmarks(self) -> None:
        """Replace the list with the server's; failures become an error banner."""
        try:
            bookmarks = await self._backend.bookmarks.list_bookmarks()
        except Exception:
            logger.exception("Failed to fetch bookmarks")
            self.state.error = LOAD_FAILED_MESSAGE
        else:
            self.state.bookmarks = bookmarks
        await self._notify()

    async def refresh(self) -> None:
        """Queue a re-fetch and wait for it."""
        await self._refresh.refresh()

    async def add_bookmark(self, title: str | None = None, url: str | None = None) -> bool:
        """
        Submit the add form.

        `title` and `url` update the form fields before submission when given.

        Returns:
            True if the bookmark was created.
        """
        if title is not None:
            self.state.title = title
        if url is not None:
            self.state.url = url
        if self.state.user is None:
            return False

        self.state.error = ""
        await self._set_success("")
        try:
            data = validate_bookmark_form(self.state.title, self.state.url)
        except ValueError as e:
            self.state.error = str(e)
            await self._notify()
            return False

        try:
            await self._backend.bookmarks.create_bookmark(data, user_id=self.state.user.id)
        except Exception:
            logger.exception("Insert error")
            self.state.error = ADD_FAILED_MESSAGE
            await self._notify()
            return False

        self.state.title = ""
        self.state.url = ""
        await self._flash_success(ADDED_MESSAGE, ADD_SUCCESS_CLEAR_SECONDS)
        await self._refresh.refresh()
        return True

    async def delete_bookmark(self, bookmark_id: str) -> bool:
        """
        Delete one bookmark, marking its row as pending for the duration.

        Returns:
            True if the bookmark was deleted.
        """
        self.state.deleting = bookmark_id
        await self._notify()
        try:
            await self._backend.bookmarks.delete_bookmark(bookmark_id)
        except Exception:
            logger.exception("Delete error")
            self.state.error = DELETE_FAILED_MESSAGE
            return False
        else:
            await self._flash_success(DELETED_MESSAGE, DELETE_SUCCESS_CLEAR_SECONDS)
            await self._refresh.refresh()
            return True
        finally:
            self.state.deleting = None
            await self._notify()

    async def sign_out(self) -> None:
        """Sign out on the platform, then navigate to the landing route."""
        try:
            await self._backend.auth.sign_out()
        except Exception:
            logger.exception("Sign-out error")
        await self._navigate(LANDING_ROUTE)

    async def dismiss_error(self) -> None:
        self.state.error = ""
        await self._notify()

    async def dismiss_success(self) -> None:
        await self._set_success("")

    def _on_sync(self, _payload: dict[str, Any]) -> None:
        logger.debug("Received broadcast sync signal on '%s'", self._topic)
        if self.state.user is not None:
            self._refresh.request()

    async def _navigate(self, route: str) -> None:
        self.redirected_to = route
        result = self._navigate_cb(route)
        if inspect.isawaitable(result):
            await result

    async def _notify(self) -> None:
        if self._on_change is not None:
            await self._on_change(self.state)

    async def _set_success(self, message: str) -> None:
        await self._cancel_success_timer()
        self.state.success = message
        await self._notify()

    async def _flash_success(self, message: str, seconds: float) -> None:
        """Show a success banner that clears itself after `seconds`."""
        await self._set_success(message)
        self._success_timer = asyncio.create_task(self._expire_success(seconds))

    async def _expire_success(self, seconds: float) -> None:
        await asyncio.sleep(seconds)
        self._success_timer = None
        self.state.success = ""
        await self._notify()

    async def _cancel_success_timer(self) -> None:
        timer, self._success_timer = self._success_timer, None
        if timer is not None and not timer.done():
            timer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await timer
