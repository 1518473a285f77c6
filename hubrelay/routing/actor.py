"""Dramatiq actor that routes queued webhook events.

Usage
-----
Queue an event received by the webhook endpoint:

>>> route_event_job.send(
...     database_url="postgresql+asyncpg://...",
...     event_name="issues",
...     body='{"action": "opened", "repository": {...}}',
...     delivery_id="72d3162e-cc78-11e3-81ab-4c9367dc0958",
... )

The webhook body travels through the broker verbatim and is decoded once,
here, by :func:`hubrelay.events.decode_event`.

"""

from __future__ import annotations

import asyncio
import datetime as dt
import os
import sys
import threading
import typing as typ

import dramatiq
from dramatiq.brokers.stub import StubBroker
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from hubrelay.cache import MemoryAccessCache
from hubrelay.events import decode_event
from hubrelay.logging import get_logger, log_warning
from hubrelay.slack import post_event_summary

from .factory import build_router

if typ.TYPE_CHECKING:
    from hubrelay.events import ActivityEvent

    from .context import DeliveryCallback
    from .router import Router, RoutingResult

type SessionFactory = async_sessionmaker[AsyncSession]

logger = get_logger(__name__)

# Reused across actor invocations and worker threads so access answers
# outlive a single event.
_SESSION_FACTORY_CACHE: dict[str, SessionFactory] = {}
_ACCESS_CACHE = MemoryAccessCache()
_CACHE_LOCK = threading.Lock()

_TRUTHY = frozenset({"1", "true", "yes"})


def _stub_broker_allowed() -> bool:
    """Return True under pytest or when ``HUBRELAY_ALLOW_STUB_BROKER`` is set."""
    flag = os.environ.get("HUBRELAY_ALLOW_STUB_BROKER", "").strip().lower()
    return flag in _TRUTHY or "pytest" in sys.modules


def _install_routing_broker() -> None:
    """Ensure a broker exists before ``route_event_job`` is declared.

    Dramatiq binds actors to the global broker at declaration time and
    defaults to RabbitMQ. When no broker client library is installed the
    routing queue falls back to an in-memory :class:`StubBroker`, but only
    where that is explicitly allowed: a stub in production would accept
    webhooks and never route them.

    Raises
    ------
    RuntimeError
        If no broker can be created and a stub broker is not allowed.

    """
    try:
        dramatiq.get_broker()
    except ImportError as exc:
        if not _stub_broker_allowed():
            msg = (
                "No Dramatiq broker available for event routing. Install "
                "dramatiq[rabbitmq] or dramatiq[redis], or set "
                "HUBRELAY_ALLOW_STUB_BROKER=1 for local/test runs."
            )
            raise RuntimeError(msg) from exc
        dramatiq.set_broker(StubBroker())
        log_warning(
            logger,
            "Routing queue is using an in-memory StubBroker; "
            "queued webhooks are lost on restart",
        )


def _get_or_create_session_factory(database_url: str) -> SessionFactory:
    """Get or create an async session factory for the given database URL.

    Thread-safe: Dramatiq runs actors on several worker threads.
    """
    with _CACHE_LOCK:
        if database_url not in _SESSION_FACTORY_CACHE:
            engine = create_async_engine(database_url)
            _SESSION_FACTORY_CACHE[database_url] = async_sessionmaker(
                engine, expire_on_commit=False
            )
        return _SESSION_FACTORY_CACHE[database_url]


def _build_router(database_url: str) -> Router:
    return build_router(
        _get_or_create_session_factory(database_url), cache=_ACCESS_CACHE
    )


def _parse_received_at(received_at_iso: str | None) -> dt.datetime | None:
    """Parse an ISO timestamp, requiring timezone information.

    Raises
    ------
    ValueError
        If the timestamp lacks timezone information.

    """
    if received_at_iso is None:
        return None
    parsed = dt.datetime.fromisoformat(received_at_iso)
    if parsed.tzinfo is None:
        msg = (
            "received_at_iso must include timezone information, got naive "
            f"datetime: {received_at_iso!r}"
        )
        raise ValueError(msg)
    return parsed


async def _route_event_async(
    router: Router,
    event: ActivityEvent,
    callback: DeliveryCallback = post_event_summary,
) -> RoutingResult:
    """Route ``event`` with the default summary callback."""
    return await router.route(event, callback)


_install_routing_broker()


@dramatiq.actor
def route_event_job(
    database_url: str,
    event_name: str,
    body: str,
    *,
    delivery_id: str | None = None,
    received_at_iso: str | None = None,
) -> int:
    """Dramatiq actor routing one webhook event to its subscriptions.

    Parameters
    ----------
    database_url
        SQLAlchemy URL for the subscription database.
    event_name
        Value of the ``X-GitHub-Event`` header.
    body
        Raw webhook body as received, decoded as UTF-8.
    delivery_id
        Optional ``X-GitHub-Delivery`` identifier.
    received_at_iso
        When the webhook was received, as a timezone-aware ISO timestamp.

    Returns
    -------
    int
        Number of channels the event was delivered to.

    Raises
    ------
    EventDecodeError
        If ``body`` is not a valid event payload.
    RoutingError
        When any subscription failed transiently; Dramatiq's retry
        middleware decides whether to requeue.

    """
    event = decode_event(
        event_name,
        body.encode("utf-8"),
        delivery_id=delivery_id,
        received_at=_parse_received_at(received_at_iso),
    )
    router = _build_router(database_url)
    result = asyncio.run(_route_event_async(router, event))
    return len(result.delivered)
