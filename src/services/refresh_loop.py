"""Single-consumer refresh queue that coalesces overlapping refresh requests."""
import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable


logger = logging.getLogger(__name__)


class RefreshLoop:
    """
    Serializes list re-fetches behind one background task.

    Any number of producers (user actions, broadcast signals) call request().
    Requests made while a fetch is running collapse into one follow-up fetch,
    and fetches never overlap, so the newest request always wins.
    """

    def __init__(self, fetch: Callable[[], Awaitable[None]], name: str = "refresh-loop") -> None:
        self._fetch = fetch
        self._name = name
        self._wakeup = asyncio.Event()
        self._waiter: asyncio.Future[None] | None = None
        self._task: asyncio.Task[None] | None = None
        self.fetch_count = 0

    @property
    def running(self) -> bool:
        """True while the consumer task is alive."""
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the consumer task; calling it again is a no-op."""
        if self._task is None:
            self._task = asyncio.create_task(self._run(), name=self._name)

    def request(self) -> asyncio.Future[None]:
        """
        Ask for a refresh.

        Returns:
            A future resolved once a fetch that started after this call completes.
        """
        if self._task is None:
            raise RuntimeError("Refresh loop is not running")
        if self._waiter is None:
            self._waiter = asyncio.get_running_loop().create_future()
            self._wakeup.set()
        return self._waiter

    async def refresh(self) -> None:
        """Request a refresh and wait for it without cancelling it for other waiters."""
        await asyncio.shield(self.request())

    async def _run(self) -> None:
        while True:
            await self._wakeup.wait()
            self._wakeup.clear()
            waiter, self._waiter = self._waiter, None
            try:
                self.fetch_count += 1
                await self._fetch()
            except Exception:
                logger.exception("Refresh failed")
            finally:
                if waiter is not None and not waiter.done():
                    waiter.set_result(None)

    async def stop(self) -> None:
        """Cancel the consumer task and any pending request."""
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        if self._waiter is not None and not self._waiter.done():
            self._waiter.cancel()
        self._waiter = None
