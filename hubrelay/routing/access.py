"""Re-validate that a subscription's creator can still see the repository."""

from __future__ import annotations

import datetime as dt
import typing as typ

from hubrelay.logging import get_logger, log_info
from hubrelay.slack import re_enable_subscription_message
from hubrelay.subscriptions import SubscriptionScope

if typ.TYPE_CHECKING:
    from hubrelay.cache import AccessCache
    from hubrelay.events import RepositoryRef
    from hubrelay.slack import SlackClientFactory
    from hubrelay.subscriptions import (
        IdentityResolver,
        Subscription,
        SubscriptionStore,
    )

logger = get_logger(__name__)

DEFAULT_ACCESS_TTL = dt.timedelta(minutes=10)


def access_cache_key(
    creator_id: int, github_user_id: int | None, repository_id: int
) -> str:
    """Return the cache key for a creator/repository access answer.

    Linked creators are keyed by GitHub user id, unlinked creators by
    their Slack user id.
    """
    owner = github_user_id if github_user_id is not None else f"slack:{creator_id}"
    return f"creator-access#{owner}:{repository_id}"


class AccessGuard:
    """Checks creator access and retires repository subscriptions that lost it.

    Parameters
    ----------
    cache
        Shared access cache; answers are reused for ``ttl``.
    identities
        Resolves ``creator_id`` to the creator's GitHub identity.
    store
        Used to destroy repository subscriptions whose creator lost access.
    slack_clients
        Builds the client that posts the re-enable notice.
    ttl
        Lifetime of cached access answers.

    """

    def __init__(
        self,
        cache: AccessCache,
        identities: IdentityResolver,
        store: SubscriptionStore,
        slack_clients: SlackClientFactory,
        *,
        ttl: dt.timedelta = DEFAULT_ACCESS_TTL,
    ) -> None:
        """Store collaborators."""
        self._cache = cache
        self._identities = identities
        self._store = store
        self._slack_clients = slack_clients
        self._ttl = ttl

    async def check_access(
        self, subscription: Subscription, repository: RepositoryRef
    ) -> bool:
        """Return whether the creator of ``subscription`` can see ``repository``.

        Account subscriptions are skipped silently on denial. Repository
        subscriptions are destroyed and the creator is told how to
        re-enable them. Lookup failures propagate.
        """
        if subscription.creator_id is None:
            return True

        creator = await self._identities.resolve(subscription.creator_id)
        has_access = await self._cache.fetch(
            access_cache_key(
                subscription.creator_id, creator.github_user_id, repository.id
            ),
            lambda: creator.has_repo_access(repository.id),
            self._ttl,
        )
        if has_access:
            return True

        if subscription.scope is SubscriptionScope.ACCOUNT:
            # Partial access to an account's repositories is expected.
            return False

        log_info(
            logger,
            "User lost access to resource. Deleting subscription "
            "(channel=%s, creator=%s, github_id=%s, workspace=%s)",
            subscription.channel_id,
            subscription.creator_id,
            subscription.github_id,
            subscription.workspace.slack_id,
        )
        if await self._store.destroy(subscription):
            slack = self._slack_clients.for_workspace(subscription.workspace)
            await slack.post_message(
                subscription.channel_id,
                re_enable_subscription_message(repository, creator.slack_user_id),
            )
        return False
