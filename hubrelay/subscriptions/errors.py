"""Errors raised by the subscription store and identity resolver."""

from __future__ import annotations


class SubscriptionStoreError(Exception):
    """Base class for subscription persistence errors."""


class CreatorNotFoundError(SubscriptionStoreError):
    """Raised when a subscription's creator no longer exists."""

    def __init__(self, creator_id: int) -> None:
        """Initialise with the missing Slack user id."""
        self.creator_id = creator_id
        super().__init__(f"Subscription creator not found: {creator_id}")


class InvalidSettingsError(SubscriptionStoreError):
    """Raised when stored subscription settings cannot be decoded."""

    def __init__(self, subscription_id: int, reason: str) -> None:
        """Initialise with the offending subscription id and decoder reason."""
        self.subscription_id = subscription_id
        self.reason = reason
        super().__init__(
            f"Subscription {subscription_id} has invalid settings: {reason}"
        )
