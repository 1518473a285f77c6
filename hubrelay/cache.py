"""Time-bounded memoization for expensive access checks.

Usage
-----
>>> cache = MemoryAccessCache()
>>> allowed = await cache.fetch(
...     "creator-access#1:2", lambda: identity.has_repo_access(2),
...     dt.timedelta(minutes=10),
... )

"""

from __future__ import annotations

import asyncio
import concurrent.futures
import dataclasses
import threading
import time
import typing as typ

if typ.TYPE_CHECKING:
    import datetime as dt


class AccessCache(typ.Protocol):
    """Get-or-compute cache keyed by string."""

    async def fetch[T](
        self,
        key: str,
        compute: typ.Callable[[], typ.Awaitable[T]],
        ttl: dt.timedelta,
    ) -> T:
        """Return the cached value for ``key`` or compute and store it."""
        ...


@dataclasses.dataclass(slots=True)
class _Entry:
    value: object
    expires_at: float


class MemoryAccessCache:
    """In-process cache with single-flight computation per key.

    One instance may be shared by coroutines running on different event
    loops in different threads, as Dramatiq worker threads do. The first
    caller to miss a key computes it on its own loop and publishes the
    result through a :class:`concurrent.futures.Future`; callers that
    miss the same key meanwhile await that future from their own loops.

    A failing ``compute`` stores nothing and its error is raised in every
    caller waiting on that flight. If the computing caller is cancelled,
    one of the waiters takes the key over. Entries are never invalidated;
    they only expire.

    Parameters
    ----------
    clock
        Monotonic clock in seconds, injectable for tests.

    """

    def __init__(self, clock: typ.Callable[[], float] = time.monotonic) -> None:
        """Initialise empty storage."""
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, _Entry] = {}
        self._flights: dict[str, concurrent.futures.Future[object]] = {}

    def _live_entry(self, key: str) -> _Entry | None:
        """Return the unexpired entry for ``key``; caller holds ``_lock``."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            del self._entries[key]
            return None
        return entry

    async def fetch[T](
        self,
        key: str,
        compute: typ.Callable[[], typ.Awaitable[T]],
        ttl: dt.timedelta,
    ) -> T:
        """Return the live value for ``key``, computing it at most once per TTL."""
        while True:
            with self._lock:
                entry = self._live_entry(key)
                if entry is not None:
                    return typ.cast("T", entry.value)
                flight = self._flights.get(key)
                if flight is None:
                    flight = concurrent.futures.Future()
                    self._flights[key] = flight
                    break

            try:
                # Shielded so a cancelled waiter never cancels the shared flight.
                value = await asyncio.shield(asyncio.wrap_future(flight))
            except asyncio.CancelledError:
                if not flight.cancelled():
                    raise
                continue
            return typ.cast("T", value)

        return await self._compute(key, flight, compute, ttl)

    async def _compute[T](
        self,
        key: str,
        flight: concurrent.futures.Future[object],
        compute: typ.Callable[[], typ.Awaitable[T]],
        ttl: dt.timedelta,
    ) -> T:
        try:
            value = await compute()
        except Exception as exc:
            self._end_flight(key)
            flight.set_exception(exc)
            raise
        except BaseException:
            self._end_flight(key)
            flight.cancel()
            raise

        with self._lock:
            self._entries[key] = _Entry(
                value=value,
                expires_at=self._clock() + ttl.total_seconds(),
            )
            del self._flights[key]
        flight.set_result(value)
        return value

    def _end_flight(self, key: str) -> None:
        with self._lock:
            del self._flights[key]

    def __len__(self) -> int:
        """Return the number of stored entries, including expired ones."""
        with self._lock:
            return len(self._entries)
