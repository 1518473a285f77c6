"""Build a fully wired :class:`Router` from a session factory.

Usage
-----
Build a router for the worker or API layer::

    from hubrelay.routing.factory import build_router

    router = build_router(session_factory)

"""

from __future__ import annotations

import typing as typ

from hubrelay.cache import MemoryAccessCache
from hubrelay.github import (
    GitHubApiConfig,
    GitHubClientFactory,
    ReplicationLagPolicy,
    access_checker_factory,
)
from hubrelay.slack import HttpxSlackClientFactory, SlackApiConfig
from hubrelay.subscriptions import SqlIdentityResolver, SqlSubscriptionStore

from .access import AccessGuard
from .config import RouterConfig
from .filters import SubscriptionFilter
from .outcome import DeliveryOutcomeHandler
from .router import Router

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from hubrelay.cache import AccessCache

__all__ = ["build_router"]


def build_router(
    session_factory: async_sessionmaker[AsyncSession],
    *,
    config: RouterConfig | None = None,
    cache: AccessCache | None = None,
) -> Router:
    """Build a ``Router`` from environment configuration.

    Parameters
    ----------
    session_factory
        Async session factory for the subscription database.
    config
        Router tunables; read from the environment when omitted.
    cache
        Access cache to share across routers; a fresh in-memory cache is
        created when omitted.

    Returns
    -------
    Router
        Router backed by SQL storage, httpx GitHub and Slack clients.

    """
    config = config or RouterConfig.from_env()
    github_config = GitHubApiConfig.from_env()
    slack_clients = HttpxSlackClientFactory(SlackApiConfig.from_env())
    store = SqlSubscriptionStore(session_factory)
    identities = SqlIdentityResolver(
        session_factory, access_checker_factory(github_config)
    )
    guard = AccessGuard(
        cache or MemoryAccessCache(),
        identities,
        store,
        slack_clients,
        ttl=config.access_cache_ttl,
    )
    return Router(
        store,
        SubscriptionFilter(),
        guard,
        DeliveryOutcomeHandler(store),
        slack_clients,
        github_clients=GitHubClientFactory(
            github_config, ReplicationLagPolicy(delay=config.replication_lag_delay)
        ),
        config=config,
    )
