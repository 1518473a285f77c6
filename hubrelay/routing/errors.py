"""Errors surfaced by the router."""

from __future__ import annotations


class RoutingError(Exception):
    """Raised when one or more subscription pipelines failed transiently.

    Every pipeline is allowed to finish before this is raised, so
    ``exceptions`` holds each unrecovered failure for the event.

    Parameters
    ----------
    event_type
        ``name.action`` of the routed event.
    exceptions
        Exceptions raised by failing pipelines.

    Attributes
    ----------
    exceptions
        Immutable tuple of the underlying exceptions.

    """

    exceptions: tuple[Exception, ...]

    def __init__(self, event_type: str, exceptions: list[Exception]) -> None:
        """Initialise with the event type and the collected failures."""
        self.event_type = event_type
        self.exceptions = tuple(exceptions)
        count = len(self.exceptions)
        super().__init__(f"Routing {event_type} failed: {count} error(s) occurred")
