"""GitHub webhook receiver."""

from __future__ import annotations

from .resources import (
    EventDispatcher,
    GitHubWebhookResource,
    WebhookConfig,
    enqueue_for_routing,
    verify_signature,
)

__all__ = [
    "EventDispatcher",
    "GitHubWebhookResource",
    "WebhookConfig",
    "enqueue_for_routing",
    "verify_signature",
]
