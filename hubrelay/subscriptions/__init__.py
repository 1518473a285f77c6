"""Channel subscriptions, their storage and creator identities."""

from __future__ import annotations

from .errors import CreatorNotFoundError, InvalidSettingsError, SubscriptionStoreError
from .identity import (
    CreatorIdentity,
    IdentityResolver,
    RepoAccessChecker,
    SqlIdentityResolver,
)
from .models import (
    DEFAULT_EVENT_FEATURES,
    EventFeatureMap,
    LookupCriterion,
    Subscription,
    SubscriptionScope,
    SubscriptionSettings,
    Workspace,
    decode_settings,
    encode_settings,
)
from .storage import (
    GitHubUser,
    SlackUser,
    SlackWorkspace,
    SubscriptionRecord,
    init_subscription_storage,
)
from .store import SqlSubscriptionStore, SubscriptionStore

__all__ = [
    "DEFAULT_EVENT_FEATURES",
    "CreatorIdentity",
    "CreatorNotFoundError",
    "EventFeatureMap",
    "GitHubUser",
    "IdentityResolver",
    "InvalidSettingsError",
    "LookupCriterion",
    "RepoAccessChecker",
    "SlackUser",
    "SlackWorkspace",
    "SqlIdentityResolver",
    "SqlSubscriptionStore",
    "Subscription",
    "SubscriptionRecord",
    "SubscriptionScope",
    "SubscriptionSettings",
    "SubscriptionStore",
    "SubscriptionStoreError",
    "Workspace",
    "decode_settings",
    "encode_settings",
    "init_subscription_storage",
]
