"""Slack delivery errors with a closed set of failure kinds."""

from __future__ import annotations

import enum


class SlackErrorKind(enum.StrEnum):
    """Why a Slack API call failed.

    Permanent kinds mean the channel or workspace integration is gone and
    retrying will never succeed.
    """

    ACCOUNT_INACTIVE = "account_inactive"
    TOKEN_REVOKED = "token_revoked"
    INVALID_AUTH = "invalid_auth"
    TEAM_DISABLED = "team_disabled"
    CHANNEL_NOT_FOUND = "channel_not_found"
    CHANNEL_ARCHIVED = "is_archived"
    NOT_IN_CHANNEL = "not_in_channel"
    RATE_LIMITED = "ratelimited"
    SERVER_ERROR = "server_error"
    TRANSPORT = "transport"
    OTHER = "other"

    @property
    def is_permanent(self) -> bool:
        """Return True when the failure will not heal on its own."""
        return self in _PERMANENT_KINDS


_PERMANENT_KINDS = frozenset(
    {
        SlackErrorKind.ACCOUNT_INACTIVE,
        SlackErrorKind.TOKEN_REVOKED,
        SlackErrorKind.INVALID_AUTH,
        SlackErrorKind.TEAM_DISABLED,
        SlackErrorKind.CHANNEL_NOT_FOUND,
        SlackErrorKind.CHANNEL_ARCHIVED,
        SlackErrorKind.NOT_IN_CHANNEL,
    }
)

_KINDS_BY_CODE = {kind.value: kind for kind in SlackErrorKind}


class SlackDeliveryError(RuntimeError):
    """Raised when a message could not be posted to Slack.

    Attributes
    ----------
    kind
        Classified failure kind.
    code
        Raw error code reported by Slack, if any.

    """

    def __init__(self, kind: SlackErrorKind, *, code: str | None = None) -> None:
        """Initialise with a failure kind and the raw Slack code."""
        self.kind = kind
        self.code = code
        detail = code if code is not None else kind.value
        super().__init__(f"Slack delivery failed: {detail}")

    @classmethod
    def from_error_code(cls, code: str) -> SlackDeliveryError:
        """Classify a Slack ``error`` field; unknown codes become ``OTHER``."""
        return cls(_KINDS_BY_CODE.get(code, SlackErrorKind.OTHER), code=code)

    @classmethod
    def rate_limited(cls) -> SlackDeliveryError:
        """Return an error for HTTP 429 responses."""
        return cls(SlackErrorKind.RATE_LIMITED, code="ratelimited")

    @classmethod
    def server_error(cls, status_code: int) -> SlackDeliveryError:
        """Return an error for 5xx responses."""
        return cls(SlackErrorKind.SERVER_ERROR, code=f"http_{status_code}")

    @classmethod
    def transport(cls, reason: str) -> SlackDeliveryError:
        """Return an error for requests that never produced a response."""
        return cls(SlackErrorKind.TRANSPORT, code=reason)

    @property
    def is_permanent(self) -> bool:
        """Return True when the subscription should be retired."""
        return self.kind.is_permanent
