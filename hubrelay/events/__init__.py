"""Inbound GitHub activity event models."""

from __future__ import annotations

from .errors import EventDecodeError
from .models import (
    REPOSITORY_DELETED,
    ActivityEvent,
    EventPayload,
    IssueRef,
    Label,
    Owner,
    RepositoryRef,
    decode_event,
)

__all__ = [
    "REPOSITORY_DELETED",
    "ActivityEvent",
    "EventDecodeError",
    "EventPayload",
    "IssueRef",
    "Label",
    "Owner",
    "RepositoryRef",
    "decode_event",
]
