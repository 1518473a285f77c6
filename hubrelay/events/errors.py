"""Errors raised while decoding inbound activity events."""

from __future__ import annotations


class EventDecodeError(ValueError):
    """Raised when a webhook body cannot be decoded into an activity event."""

    def __init__(self, event_name: str, reason: str) -> None:
        """Initialise with the event name and decoder failure reason."""
        self.event_name = event_name
        self.reason = reason
        super().__init__(f"Cannot decode {event_name!r} event: {reason}")
