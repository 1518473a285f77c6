"""Typed subscription records used by the router.

Rows from :mod:`hubrelay.subscriptions.storage` are converted into these
immutable values before routing starts, so routing never touches an ORM
session or probes loosely typed settings.
"""

from __future__ import annotations

import dataclasses
import enum
import typing as typ

import msgspec


class SubscriptionScope(enum.StrEnum):
    """What a subscription's ``github_id`` refers to."""

    REPO = "repo"
    ACCOUNT = "account"


class SubscriptionSettings(msgspec.Struct, kw_only=True, omit_defaults=True):
    """Per-subscription feature toggles and label whitelist.

    Attributes
    ----------
    issues, pulls, commits, statuses, deployments, public, releases
        Features enabled when a channel subscribes without arguments.
    reviews, comments, branches
        Opt-in features.
    labels
        Optional label whitelist, stored under the ``label`` key. ``None``
        or an empty list disables label filtering.

    """

    issues: bool = True
    pulls: bool = True
    commits: bool = True
    statuses: bool = True
    deployments: bool = True
    public: bool = True
    releases: bool = True
    reviews: bool = False
    comments: bool = False
    branches: bool = False
    labels: list[str] | None = msgspec.field(default=None, name="label")

    def feature_enabled(self, feature: str) -> bool:
        """Return the toggle value for ``feature``."""
        return bool(getattr(self, feature))


@dataclasses.dataclass(frozen=True, slots=True)
class EventFeatureMap:
    """Strategy mapping GitHub event names onto subscription features.

    Event names that map to no feature (``repository``, ``member`` and so
    on) are always enabled.
    """

    features: typ.Mapping[str, str]

    def feature_for(self, event_name: str) -> str | None:
        """Return the feature toggle governing ``event_name``, if any."""
        return self.features.get(event_name)

    def is_enabled(self, settings: SubscriptionSettings, event_name: str) -> bool:
        """Return True when ``settings`` allow delivery of ``event_name``."""
        feature = self.feature_for(event_name)
        if feature is None:
            return True
        return settings.feature_enabled(feature)


DEFAULT_EVENT_FEATURES = EventFeatureMap(
    features={
        "issues": "issues",
        "pull_request": "pulls",
        "push": "commits",
        "status": "statuses",
        "deployment": "deployments",
        "deployment_status": "deployments",
        "public": "public",
        "release": "releases",
        "pull_request_review": "reviews",
        "issue_comment": "comments",
        "commit_comment": "comments",
        "pull_request_review_comment": "comments",
        "create": "branches",
        "delete": "branches",
    }
)


@dataclasses.dataclass(frozen=True, slots=True)
class Workspace:
    """Slack workspace a subscription delivers into."""

    slack_id: str
    access_token: str = dataclasses.field(repr=False)


@dataclasses.dataclass(frozen=True, slots=True)
class LookupCriterion:
    """One ``(github_id, scope)`` pair to match subscriptions against."""

    github_id: int
    scope: SubscriptionScope


@dataclasses.dataclass(frozen=True, slots=True)
class Subscription:
    """Channel subscription ready for routing."""

    id: int
    channel_id: str
    scope: SubscriptionScope
    github_id: int
    workspace: Workspace
    creator_id: int | None = None
    settings: SubscriptionSettings = dataclasses.field(
        default_factory=SubscriptionSettings
    )
    event_features: EventFeatureMap = dataclasses.field(
        default=DEFAULT_EVENT_FEATURES, repr=False, compare=False
    )

    def is_enabled_for_event(self, event_name: str) -> bool:
        """Return True when this subscription wants ``event_name`` events."""
        return self.event_features.is_enabled(self.settings, event_name)

    @property
    def label_whitelist(self) -> tuple[str, ...]:
        """Return the configured label whitelist (empty when unset)."""
        return tuple(self.settings.labels or ())


def decode_settings(raw: typ.Mapping[str, typ.Any] | None) -> SubscriptionSettings:
    """Convert a stored settings mapping into :class:`SubscriptionSettings`."""
    return msgspec.convert(dict(raw or {}), SubscriptionSettings)


def encode_settings(settings: SubscriptionSettings) -> dict[str, typ.Any]:
    """Convert settings into a JSON-compatible mapping for storage."""
    return msgspec.to_builtins(settings)
