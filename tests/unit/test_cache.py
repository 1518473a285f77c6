"""Unit tests for the in-memory access cache."""

from __future__ import annotations

import asyncio
import datetime as dt
import threading
import time
import typing as typ

import pytest

from hubrelay.cache import MemoryAccessCache

TTL = dt.timedelta(seconds=30)


class _Clock:
    def __init__(self) -> None:
        self.now = 100.0

    def __call__(self) -> float:
        return self.now


class _Compute:
    """Counts invocations and optionally fails or blocks."""

    def __init__(self, value: object = True) -> None:
        self.value = value
        self.calls = 0
        self.error: Exception | None = None
        self.gate: asyncio.Event | None = None

    async def __call__(self) -> object:
        self.calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.value


@pytest.mark.asyncio
async def test_hit_within_ttl_skips_compute() -> None:
    """A second fetch inside the TTL returns the stored value."""
    cache = MemoryAccessCache(clock=_Clock())
    compute = _Compute(value="first")

    assert await cache.fetch("k", compute, TTL) == "first"
    compute.value = "second"
    assert await cache.fetch("k", compute, TTL) == "first"
    assert compute.calls == 1


@pytest.mark.asyncio
async def test_expired_entry_is_recomputed() -> None:
    """Entries expire strictly by time."""
    clock = _Clock()
    cache = MemoryAccessCache(clock=clock)
    compute = _Compute(value=False)

    await cache.fetch("k", compute, TTL)
    clock.now += TTL.total_seconds()
    compute.value = True

    assert await cache.fetch("k", compute, TTL) is True
    assert compute.calls == 2


@pytest.mark.asyncio
async def test_concurrent_misses_share_one_compute() -> None:
    """Concurrent callers for one key wait for a single computation."""
    cache = MemoryAccessCache(clock=_Clock())
    compute = _Compute(value=True)
    compute.gate = asyncio.Event()

    waiters = [asyncio.create_task(cache.fetch("k", compute, TTL)) for _ in range(5)]
    await asyncio.sleep(0)
    compute.gate.set()
    results = await asyncio.gather(*waiters)

    assert results == [True] * 5
    assert compute.calls == 1


@pytest.mark.asyncio
async def test_distinct_keys_compute_independently() -> None:
    """Different keys never share a stored value."""
    cache = MemoryAccessCache(clock=_Clock())
    compute = _Compute()

    await cache.fetch("a", compute, TTL)
    await cache.fetch("b", compute, TTL)

    assert compute.calls == 2
    assert len(cache) == 2


@pytest.mark.asyncio
async def test_failed_compute_is_not_cached() -> None:
    """Errors propagate and the next fetch computes again."""
    cache = MemoryAccessCache(clock=_Clock())
    compute = _Compute(value=True)
    compute.error = ConnectionError("github unreachable")

    with pytest.raises(ConnectionError):
        await cache.fetch("k", compute, TTL)

    compute.error = None
    assert await cache.fetch("k", compute, TTL) is True
    assert compute.calls == 2
    assert len(cache) == 1


@pytest.mark.asyncio
async def test_failure_reaches_every_waiter_of_the_flight() -> None:
    """Callers sharing a failed computation all see its error."""
    cache = MemoryAccessCache(clock=_Clock())
    compute = _Compute(value=True)
    compute.gate = asyncio.Event()
    compute.error = ConnectionError("github unreachable")

    waiters = [asyncio.create_task(cache.fetch("k", compute, TTL)) for _ in range(3)]
    await asyncio.sleep(0)
    compute.gate.set()
    results = await asyncio.gather(*waiters, return_exceptions=True)

    assert all(isinstance(result, ConnectionError) for result in results)
    assert compute.calls == 1
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_waiter_takes_over_when_computing_caller_is_cancelled() -> None:
    """Cancelling the computing caller hands the key to a waiter."""
    cache = MemoryAccessCache(clock=_Clock())
    compute = _Compute(value="fresh")
    compute.gate = asyncio.Event()

    owner = asyncio.create_task(cache.fetch("k", compute, TTL))
    await asyncio.sleep(0)
    waiter = asyncio.create_task(cache.fetch("k", compute, TTL))
    await asyncio.sleep(0)

    owner.cancel()
    with pytest.raises(asyncio.CancelledError):
        await owner
    for _ in range(3):
        await asyncio.sleep(0)
    compute.gate.set()

    assert await waiter == "fresh"
    assert compute.calls == 2


def test_waiter_on_another_event_loop_is_woken() -> None:
    """A fetch on another thread's loop wakes as soon as the flight settles."""
    cache = MemoryAccessCache()
    started = threading.Event()
    release = threading.Event()
    calls: list[str] = []
    results: dict[str, object] = {}

    async def slow_check() -> bool:
        calls.append("first")
        started.set()
        await asyncio.to_thread(release.wait, 5)
        return True

    async def second_check() -> bool:
        calls.append("second")
        return False

    def run(name: str, compute: typ.Callable[[], typ.Awaitable[bool]]) -> None:
        results[name] = asyncio.run(
            asyncio.wait_for(cache.fetch("k", compute, TTL), timeout=5)
        )

    first = threading.Thread(target=run, args=("first", slow_check))
    first.start()
    assert started.wait(5)
    second = threading.Thread(target=run, args=("second", second_check))
    second.start()
    time.sleep(0.1)

    released_at = time.monotonic()
    release.set()
    first.join(5)
    second.join(5)

    assert results == {"first": True, "second": True}
    assert calls == ["first"]
    assert time.monotonic() - released_at < 2
