"""Falcon resource receiving GitHub webhooks.

The resource authenticates each delivery with the shared webhook secret,
decodes just enough of the body to validate it, and hands the event to a
dispatcher. Routing itself happens off the request path.

Usage
-----
::

    config = WebhookConfig.from_env()
    app.add_route(
        "/webhooks/github",
        GitHubWebhookResource(config, enqueue_for_routing(database_url)),
    )

"""

from __future__ import annotations

import asyncio
import dataclasses
import hashlib
import hmac
import os
import typing as typ
from http import HTTPStatus

from hubrelay.api.errors import InvalidInputError, InvalidSignatureError
from hubrelay.events import decode_event
from hubrelay.logging import get_logger, log_debug

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from hubrelay.events import ActivityEvent

__all__ = [
    "EventDispatcher",
    "GitHubWebhookResource",
    "WebhookConfig",
    "enqueue_for_routing",
    "verify_signature",
]

logger = get_logger(__name__)

_SIGNATURE_PREFIX = "sha256="


@dataclasses.dataclass(frozen=True, slots=True)
class WebhookConfig:
    """Webhook receiver configuration."""

    secret: str = dataclasses.field(repr=False)

    @classmethod
    def from_env(cls) -> WebhookConfig | None:
        """Read ``HUBRELAY_WEBHOOK_SECRET``; return None when unset."""
        secret = os.environ.get("HUBRELAY_WEBHOOK_SECRET", "").strip()
        if not secret:
            return None
        return cls(secret=secret)


type EventDispatcher = typ.Callable[[ActivityEvent, bytes], typ.Awaitable[None]]


def verify_signature(secret: str, body: bytes, signature: str | None) -> bool:
    """Return True when ``signature`` is the HMAC-SHA256 of ``body``."""
    if not signature or not signature.startswith(_SIGNATURE_PREFIX):
        return False
    expected = _SIGNATURE_PREFIX + hmac.new(
        secret.encode("utf-8"), body, hashlib.sha256
    ).hexdigest()
    return hmac.compare_digest(expected, signature)


def enqueue_for_routing(database_url: str) -> EventDispatcher:
    """Return a dispatcher that queues events for the routing actor."""
    from hubrelay.routing.actor import route_event_job

    async def dispatch(event: ActivityEvent, body: bytes) -> None:
        # Broker publishes are blocking network calls.
        await asyncio.to_thread(
            route_event_job.send,
            database_url,
            event.name,
            body.decode("utf-8"),
            delivery_id=event.delivery_id,
            received_at_iso=event.received_at.isoformat(),
        )

    return dispatch


class GitHubWebhookResource:
    """``POST /webhooks/github`` endpoint.

    Parameters
    ----------
    config
        Holds the shared secret used to verify deliveries.
    dispatch
        Called with each verified event and its raw body.

    """

    def __init__(self, config: WebhookConfig, dispatch: EventDispatcher) -> None:
        """Store the secret and dispatcher."""
        self._config = config
        self._dispatch = dispatch

    async def on_post(self, req: Request, resp: Response) -> None:
        """Verify, decode and dispatch a webhook delivery.

        Raises
        ------
        InvalidSignatureError
            If the signature header is missing or wrong.
        InvalidInputError
            If the ``X-GitHub-Event`` header is missing.
        EventDecodeError
            If the body is not a valid event payload.

        """
        body = await req.stream.read()
        if not verify_signature(
            self._config.secret, body, req.get_header("X-Hub-Signature-256")
        ):
            raise InvalidSignatureError

        event_name = req.get_header("X-GitHub-Event")
        if not event_name:
            raise InvalidInputError("header is required", field="X-GitHub-Event")

        event = decode_event(
            event_name, body, delivery_id=req.get_header("X-GitHub-Delivery")
        )
        log_debug(
            logger,
            "Accepted %s webhook (delivery=%s)",
            event.event_type,
            event.delivery_id,
        )
        await self._dispatch(event, body)
        resp.media = {"status": "accepted"}
        resp.status = HTTPStatus.ACCEPTED
