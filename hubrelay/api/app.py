"""Application factory for the hubrelay Falcon ASGI application.

Usage
-----
Create a health-only app::

    app = create_app()

Create an app that accepts GitHub webhooks::

    from hubrelay.api.app import AppDependencies, create_app

    deps = AppDependencies(
        webhook_config=WebhookConfig(secret="..."),
        dispatch=enqueue_for_routing(database_url),
    )
    app = create_app(deps)

"""

from __future__ import annotations

import dataclasses as dc
import typing as typ

import falcon.asgi

from hubrelay.api.errors import (
    InvalidInputError,
    InvalidSignatureError,
    handle_event_decode_error,
    handle_invalid_input,
    handle_invalid_signature,
)
from hubrelay.api.health.resources import HealthResource, ReadyResource
from hubrelay.events import EventDecodeError

if typ.TYPE_CHECKING:
    from hubrelay.api.webhooks import EventDispatcher, WebhookConfig

__all__ = ["AppDependencies", "create_app"]


@dc.dataclass(frozen=True, slots=True)
class AppDependencies:
    """Dependencies for the Falcon ASGI application.

    The webhook route is registered only when both fields are provided.

    Attributes
    ----------
    webhook_config
        Shared secret for verifying GitHub deliveries.
    dispatch
        Receives each verified event.

    """

    webhook_config: WebhookConfig | None = None
    dispatch: EventDispatcher | None = None


def create_app(
    dependencies: AppDependencies | None = None,
) -> falcon.asgi.App:
    """Create and configure the Falcon ASGI application.

    Parameters
    ----------
    dependencies
        Optional application dependencies. When ``None`` or incomplete,
        only ``/health`` and ``/ready`` are available.

    Returns
    -------
    falcon.asgi.App
        Configured Falcon ASGI application.

    """
    app = falcon.asgi.App()

    webhook_resource = None
    if (
        dependencies is not None
        and dependencies.webhook_config is not None
        and dependencies.dispatch is not None
    ):
        from hubrelay.api.webhooks import GitHubWebhookResource

        webhook_resource = GitHubWebhookResource(
            dependencies.webhook_config, dependencies.dispatch
        )

    app.add_route("/health", HealthResource())
    app.add_route(
        "/ready", ReadyResource(webhooks_enabled=webhook_resource is not None)
    )
    if webhook_resource is not None:
        app.add_route("/webhooks/github", webhook_resource)

    app.add_error_handler(InvalidSignatureError, handle_invalid_signature)
    app.add_error_handler(InvalidInputError, handle_invalid_input)
    app.add_error_handler(EventDecodeError, handle_event_decode_error)

    return app
