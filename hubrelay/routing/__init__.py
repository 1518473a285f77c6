"""Route activity events to subscribed channels."""

from __future__ import annotations

from .access import AccessGuard, access_cache_key
from .config import RouterConfig
from .context import DeliveryCallback, EventContext
from .errors import RoutingError
from .filters import SubscriptionFilter
from .outcome import DeliveryOutcome, DeliveryOutcomeHandler, classify
from .router import PipelineOutcome, Router, RoutingResult, candidate_criteria

__all__ = [
    "AccessGuard",
    "DeliveryCallback",
    "DeliveryOutcome",
    "DeliveryOutcomeHandler",
    "EventContext",
    "PipelineOutcome",
    "Router",
    "RouterConfig",
    "RoutingError",
    "RoutingResult",
    "SubscriptionFilter",
    "access_cache_key",
    "candidate_criteria",
    "classify",
]
