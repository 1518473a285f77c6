"""Classify delivery failures and retire subscriptions that cannot recover."""

from __future__ import annotations

import enum
import typing as typ

from hubrelay.logging import get_logger, log_info
from hubrelay.slack import SlackDeliveryError

if typ.TYPE_CHECKING:
    from hubrelay.events import ActivityEvent
    from hubrelay.subscriptions import Subscription, SubscriptionStore

logger = get_logger(__name__)


class DeliveryOutcome(enum.StrEnum):
    """Classification of a delivery error."""

    PERMANENT = "permanent"
    TRANSIENT = "transient"


def classify(error: BaseException) -> DeliveryOutcome:
    """Return PERMANENT only for Slack errors of a permanent kind."""
    if isinstance(error, SlackDeliveryError) and error.kind.is_permanent:
        return DeliveryOutcome.PERMANENT
    return DeliveryOutcome.TRANSIENT


class DeliveryOutcomeHandler:
    """Acts on delivery errors for a single subscription."""

    def __init__(self, store: SubscriptionStore) -> None:
        """Store the subscription store used for retirement."""
        self._store = store

    def classify(self, error: BaseException) -> DeliveryOutcome:
        """Classify ``error``; see :func:`classify`."""
        return classify(error)

    async def handle(
        self,
        error: Exception,
        subscription: Subscription,
        event: ActivityEvent,
    ) -> None:
        """Destroy the subscription on permanent errors, re-raise otherwise.

        No notification is sent: the channel is unreachable by definition.
        """
        if self.classify(error) is DeliveryOutcome.TRANSIENT:
            raise error

        repository = event.repository
        log_info(
            logger,
            "Permanent error from Slack. Removing subscription "
            "(subscription=%s, event=%s, repo=%s, error=%s)",
            subscription.id,
            event.event_type,
            repository.full_name if repository is not None else None,
            error,
        )
        await self._store.destroy(subscription)
