"""Replication-lag mitigation for GitHub API calls made during delivery.

GitHub may answer API reads with stale data for a short while after a
webhook fires. Each delivery pipeline opens its own client whose
requests are held back until the configured delay has passed since the
client was opened.
"""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import datetime as dt
import time
import typing as typ

import httpx

from .access import GitHubApiConfig

if typ.TYPE_CHECKING:
    import collections.abc as cabc


@dataclasses.dataclass(frozen=True, slots=True)
class ReplicationLagPolicy:
    """Minimum age of a delivery before it may call the GitHub API."""

    delay: dt.timedelta = dataclasses.field(
        default_factory=lambda: dt.timedelta(seconds=1)
    )


class _DelayUntilSettled:
    """httpx request hook sleeping until the policy delay has elapsed."""

    def __init__(
        self,
        policy: ReplicationLagPolicy,
        *,
        clock: typ.Callable[[], float],
        sleep: typ.Callable[[float], typ.Awaitable[None]],
    ) -> None:
        self._not_before = clock() + policy.delay.total_seconds()
        self._clock = clock
        self._sleep = sleep

    async def __call__(self, request: httpx.Request) -> None:
        del request
        remaining = self._not_before - self._clock()
        if remaining > 0:
            await self._sleep(remaining)


class GitHubClientFactory:
    """Opens lag-mitigated GitHub clients for delivery callbacks.

    Parameters
    ----------
    config
        REST API configuration shared by every client.
    policy
        Replication-lag policy applied to each opened client.
    transport
        Optional transport override, used by tests.

    """

    def __init__(
        self,
        config: GitHubApiConfig | None = None,
        policy: ReplicationLagPolicy | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: typ.Callable[[], float] = time.monotonic,
        sleep: typ.Callable[[float], typ.Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Store configuration used by :meth:`open`."""
        self._config = config or GitHubApiConfig()
        self._policy = policy or ReplicationLagPolicy()
        self._transport = transport
        self._clock = clock
        self._sleep = sleep

    @contextlib.asynccontextmanager
    async def open(
        self, token: str | None = None
    ) -> cabc.AsyncIterator[httpx.AsyncClient]:
        """Yield a client whose requests wait out replication lag."""
        headers = (
            self._config.headers(token)
            if token
            else {"User-Agent": self._config.user_agent}
        )
        hook = _DelayUntilSettled(self._policy, clock=self._clock, sleep=self._sleep)
        async with httpx.AsyncClient(
            base_url=self._config.base_url,
            headers=headers,
            timeout=self._config.timeout_s,
            transport=self._transport,
            event_hooks={"request": [hook]},
        ) as client:
            yield client
