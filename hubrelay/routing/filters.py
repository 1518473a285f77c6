"""Decide whether an event should be delivered to a subscription."""

from __future__ import annotations

import typing as typ

from hubrelay.logging import get_logger, log_debug
from hubrelay.subscriptions import SubscriptionScope

if typ.TYPE_CHECKING:
    from hubrelay.events import ActivityEvent, IssueRef
    from hubrelay.subscriptions import Subscription, SubscriptionSettings

logger = get_logger(__name__)


class SubscriptionFilter:
    """Pure filtering decisions applied before delivery."""

    def is_enabled(self, subscription: Subscription, event: ActivityEvent) -> bool:
        """Return True when the subscription wants this kind of event."""
        return subscription.is_enabled_for_event(event.name)

    def excludes_deletion(
        self, subscription: Subscription, event: ActivityEvent
    ) -> bool:
        """Return True for repository deletions reaching account subscriptions."""
        return (
            event.is_repository_deletion
            and subscription.scope is SubscriptionScope.ACCOUNT
        )

    def passes_label_filter(
        self, issue: IssueRef | None, settings: SubscriptionSettings
    ) -> bool:
        """Apply the label whitelist to an issue or pull request.

        Filtering only applies when the event carries an issue or pull
        request with a label array and the whitelist is non-empty. The
        item passes when any attached label name is whitelisted (exact,
        case-sensitive match).
        """
        whitelist = settings.labels
        if issue is None or issue.labels is None or not whitelist:
            return True

        labels = issue.label_names
        if labels.isdisjoint(whitelist):
            log_debug(
                logger,
                "Stop routing due to label filtering (labels=%s, whitelist=%s)",
                sorted(labels),
                list(whitelist),
            )
            return False
        return True
