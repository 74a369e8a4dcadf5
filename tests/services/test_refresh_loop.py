"""Tests for the coalescing refresh loop."""
import asyncio

import pytest

from services.refresh_loop import RefreshLoop


class BlockingFetch:
    """Fetch stub that records calls and can be held open."""

    def __init__(self) -> None:
        self.calls = 0
        self.active = 0
        self.max_active = 0
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self.release.set()

    async def __call__(self) -> None:
        self.calls += 1
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        self.started.set()
        try:
            await self.release.wait()
        finally:
            self.active -= 1


async def test__refresh__runs_one_fetch() -> None:
    fetch = BlockingFetch()
    loop = RefreshLoop(fetch)
    loop.start()

    await loop.refresh()

    assert fetch.calls == 1
    await loop.stop()


async def test__requests_during_fetch_coalesce_into_one_follow_up() -> None:
    """Three requests made while a fetch is in flight cause exactly one more fetch."""
    fetch = BlockingFetch()
    fetch.release.clear()
    loop = RefreshLoop(fetch)
    loop.start()

    first = loop.request()
    await fetch.started.wait()

    followups = [loop.request() for _ in range(3)]
    assert followups[0] is followups[1] is followups[2]
    assert followups[0] is not first

    fetch.release.set()
    await asyncio.gather(first, *followups)

    assert fetch.calls == 2
    await loop.stop()


async def test__fetches_never_overlap() -> None:
    fetch = BlockingFetch()
    loop = RefreshLoop(fetch)
    loop.start()

    await asyncio.gather(*(loop.refresh() for _ in range(5)))
    for _ in range(3):
        loop.request()
        await asyncio.sleep(0)
    await loop.refresh()

    assert fetch.max_active == 1
    await loop.stop()


async def test__failed_fetch_resolves_waiter_and_loop_continues(
    caplog: pytest.LogCaptureFixture,
) -> None:
    calls = 0

    async def flaky() -> None:
        nonlocal calls
        calls += 1
        if calls == 1:
            raise RuntimeError("network down")

    loop = RefreshLoop(flaky)
    loop.start()

    await loop.refresh()
    await loop.refresh()

    assert calls == 2
    assert "Refresh failed" in caplog.text
    await loop.stop()


async def test__request_before_start_raises() -> None:
    loop = RefreshLoop(BlockingFetch())
    with pytest.raises(RuntimeError):
        loop.request()


async def test__stop_cancels_pending_request() -> None:
    fetch = BlockingFetch()
    fetch.release.clear()
    loop = RefreshLoop(fetch)
    loop.start()

    loop.request()
    await fetch.started.wait()
    pending = loop.request()

    await loop.stop()

    assert pending.cancelled()
    assert not loop.running
    with pytest.raises(RuntimeError):
        loop.request()


async def test__caller_cancellation_does_not_cancel_shared_request() -> None:
    """A cancelled waiter leaves the shared request intact for other waiters."""
    fetch = BlockingFetch()
    fetch.release.clear()
    loop = RefreshLoop(fetch)
    loop.start()

    impatient = asyncio.create_task(loop.refresh())
    await fetch.started.wait()
    shared = loop.request()
    second = asyncio.create_task(loop.refresh())
    await asyncio.sleep(0)

    impatient.cancel()
    fetch.release.set()
    await second

    assert shared.done() and not shared.cancelled()
    await loop.stop()
