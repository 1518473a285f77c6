"""Values handed to delivery callbacks."""

from __future__ import annotations

import dataclasses
import typing as typ

if typ.TYPE_CHECKING:
    import httpx

    from hubrelay.events import ActivityEvent
    from hubrelay.slack import SlackClient
    from hubrelay.subscriptions import Subscription


@dataclasses.dataclass(frozen=True, slots=True)
class EventContext:
    """The routed event plus the GitHub client a callback may use.

    ``github`` is ``None`` when the router was built without a GitHub
    client factory. The client is only valid for the duration of the
    callback.
    """

    event: ActivityEvent
    github: httpx.AsyncClient | None = None


type DeliveryCallback = typ.Callable[
    [EventContext, Subscription, SlackClient], typ.Awaitable[None]
]
