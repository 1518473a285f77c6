"""Configuration for event routing.

Usage
-----
>>> config = RouterConfig()
>>> config.access_cache_ttl
datetime.timedelta(seconds=600)

Or load from environment variables:

>>> import os
>>> os.environ["HUBRELAY_ACCESS_CACHE_TTL_S"] = "60"
>>> RouterConfig.from_env().access_cache_ttl
datetime.timedelta(seconds=60)

"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt
import os


@dc.dataclass(frozen=True, slots=True)
class RouterConfig:
    """Tunables for the routing pipeline.

    Attributes
    ----------
    access_cache_ttl
        How long a creator's repository access answer is reused.
    replication_lag_delay
        Minimum age of an event before delivery callbacks may call GitHub.
    max_concurrent_deliveries
        Upper bound on subscription pipelines running at once for one event.

    """

    access_cache_ttl: dt.timedelta = dc.field(
        default_factory=lambda: dt.timedelta(minutes=10)
    )
    replication_lag_delay: dt.timedelta = dc.field(
        default_factory=lambda: dt.timedelta(seconds=1)
    )
    max_concurrent_deliveries: int = 10

    @staticmethod
    def _parse_int(env_var: str, default: int, *, minimum: int) -> int:
        """Read an integer env var no smaller than ``minimum``."""
        raw = os.environ.get(env_var, "")
        if not raw.strip():
            return default
        try:
            value = int(raw)
        except ValueError as exc:
            msg = f"{env_var} must be an integer, got: {raw!r}"
            raise ValueError(msg) from exc
        if value < minimum:
            msg = f"{env_var} must be at least {minimum}, got: {value}"
            raise ValueError(msg)
        return value

    @classmethod
    def from_env(cls) -> RouterConfig:
        """Create configuration from environment variables.

        Reads the following environment variables:

        - ``HUBRELAY_ACCESS_CACHE_TTL_S``: access cache TTL in seconds.
        - ``HUBRELAY_REPLICATION_LAG_MS``: GitHub call delay in milliseconds;
          ``0`` disables the delay.
        - ``HUBRELAY_MAX_CONCURRENT_DELIVERIES``: pipeline concurrency bound.

        Raises
        ------
        ValueError
            If any variable is not an integer within range.

        """
        ttl_s = cls._parse_int("HUBRELAY_ACCESS_CACHE_TTL_S", 600, minimum=1)
        lag_ms = cls._parse_int("HUBRELAY_REPLICATION_LAG_MS", 1000, minimum=0)
        max_concurrent = cls._parse_int(
            "HUBRELAY_MAX_CONCURRENT_DELIVERIES", 10, minimum=1
        )
        return cls(
            access_cache_ttl=dt.timedelta(seconds=ttl_s),
            replication_lag_delay=dt.timedelta(milliseconds=lag_ms),
            max_concurrent_deliveries=max_concurrent,
        )
