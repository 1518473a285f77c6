"""Typed models for inbound GitHub activity events.

Only the fields the router inspects are modelled; every other key in a
webhook body is ignored by the decoder. Events are immutable once decoded.
"""

from __future__ import annotations

import dataclasses
import datetime as dt
import typing as typ

import msgspec

from hubrelay.common.time import utcnow

from .errors import EventDecodeError

REPOSITORY_DELETED = "repository.deleted"


class Owner(msgspec.Struct, frozen=True, kw_only=True):
    """Account that owns a repository (user or organisation)."""

    id: int
    login: str | None = None


class RepositoryRef(msgspec.Struct, frozen=True, kw_only=True):
    """Repository reference carried by most webhook payloads."""

    id: int
    full_name: str
    owner: Owner


class Label(msgspec.Struct, frozen=True, kw_only=True):
    """Label attached to an issue or pull request."""

    name: str


class IssueRef(msgspec.Struct, frozen=True, kw_only=True):
    """Issue or pull request reference.

    ``labels`` is ``None`` when the payload omits the label array, which
    is distinct from an issue that carries no labels.
    """

    number: int | None = None
    title: str | None = None
    html_url: str | None = None
    labels: list[Label] | None = None

    @property
    def label_names(self) -> frozenset[str]:
        """Return the names of attached labels."""
        return frozenset(label.name for label in self.labels or ())


class EventPayload(msgspec.Struct, frozen=True, kw_only=True):
    """Subset of a webhook body needed for routing."""

    action: str | None = None
    repository: RepositoryRef | None = None
    issue: IssueRef | None = None
    pull_request: IssueRef | None = None


@dataclasses.dataclass(frozen=True, slots=True)
class ActivityEvent:
    """One inbound activity notification.

    Attributes
    ----------
    name
        GitHub event name from the ``X-GitHub-Event`` header, e.g. ``issues``.
    payload
        Decoded webhook body.
    delivery_id
        Optional ``X-GitHub-Delivery`` identifier used in log messages.
    received_at
        When the webhook reached this service.

    """

    name: str
    payload: EventPayload
    delivery_id: str | None = None
    received_at: dt.datetime = dataclasses.field(default_factory=utcnow)

    @property
    def action(self) -> str | None:
        """Return the payload action, if any."""
        return self.payload.action

    @property
    def event_type(self) -> str:
        """Return ``name.action``, or just ``name`` for action-less events."""
        if self.action is None:
            return self.name
        return f"{self.name}.{self.action}"

    @property
    def repository(self) -> RepositoryRef | None:
        """Return the repository the event belongs to, if any."""
        return self.payload.repository

    @property
    def issue_or_pull_request(self) -> IssueRef | None:
        """Return the issue, falling back to the pull request."""
        if self.payload.issue is not None:
            return self.payload.issue
        return self.payload.pull_request

    @property
    def is_repository_deletion(self) -> bool:
        """Return True for ``repository.deleted`` events."""
        return self.event_type == REPOSITORY_DELETED

    @classmethod
    def from_payload(
        cls,
        name: str,
        payload: typ.Mapping[str, typ.Any],
        *,
        delivery_id: str | None = None,
        received_at: dt.datetime | None = None,
    ) -> ActivityEvent:
        """Build an event from an already-parsed webhook body."""
        try:
            decoded = msgspec.convert(payload, EventPayload)
        except msgspec.ValidationError as exc:
            raise EventDecodeError(name, str(exc)) from exc
        return cls._build(name, decoded, delivery_id, received_at)

    @classmethod
    def _build(
        cls,
        name: str,
        payload: EventPayload,
        delivery_id: str | None,
        received_at: dt.datetime | None,
    ) -> ActivityEvent:
        return cls(
            name=name,
            payload=payload,
            delivery_id=delivery_id,
            received_at=received_at or utcnow(),
        )


_DECODER = msgspec.json.Decoder(EventPayload)


def decode_event(
    name: str,
    body: bytes,
    *,
    delivery_id: str | None = None,
    received_at: dt.datetime | None = None,
) -> ActivityEvent:
    """Decode a raw webhook body into an :class:`ActivityEvent`.

    Raises
    ------
    EventDecodeError
        If ``body`` is not valid JSON or does not match the expected shape.

    """
    try:
        payload = _DECODER.decode(body)
    except msgspec.DecodeError as exc:
        raise EventDecodeError(name, str(exc)) from exc
    return ActivityEvent._build(name, payload, delivery_id, received_at)  # noqa: SLF001
