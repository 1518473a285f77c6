"""Slack collaborators: delivery client, typed errors and messages."""

from __future__ import annotations

from .client import (
    HttpxSlackClient,
    HttpxSlackClientFactory,
    SlackApiConfig,
    SlackClient,
    SlackClientFactory,
)
from .errors import SlackDeliveryError, SlackErrorKind
from .messages import (
    event_summary_message,
    post_event_summary,
    re_enable_subscription_message,
)

__all__ = [
    "HttpxSlackClient",
    "HttpxSlackClientFactory",
    "SlackApiConfig",
    "SlackClient",
    "SlackClientFactory",
    "SlackDeliveryError",
    "SlackErrorKind",
    "event_summary_message",
    "post_event_summary",
    "re_enable_subscription_message",
]
