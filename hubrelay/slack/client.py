"""Slack Web API client used to deliver channel messages."""

from __future__ import annotations

import dataclasses
import os
import typing as typ

import httpx
import msgspec

from .errors import SlackDeliveryError

if typ.TYPE_CHECKING:
    from hubrelay.subscriptions import Workspace

_DEFAULT_BASE_URL = "https://slack.com/api"
_DEFAULT_TIMEOUT_S = 10.0


class SlackClient(typ.Protocol):
    """Posts messages into a Slack channel."""

    async def post_message(
        self, channel: str, content: typ.Mapping[str, typ.Any]
    ) -> None:
        """Post ``content`` to ``channel`` or raise :class:`SlackDeliveryError`."""
        ...


class SlackClientFactory(typ.Protocol):
    """Builds a Slack client authenticated for a workspace."""

    def for_workspace(self, workspace: Workspace) -> SlackClient:
        """Return a client using the workspace bot token."""
        ...


@dataclasses.dataclass(frozen=True, slots=True)
class SlackApiConfig:
    """Configuration for the Slack Web API client."""

    base_url: str = _DEFAULT_BASE_URL
    timeout_s: float = _DEFAULT_TIMEOUT_S

    @classmethod
    def from_env(cls) -> SlackApiConfig:
        """Build configuration from ``HUBRELAY_SLACK_*`` variables.

        Raises
        ------
        ValueError
            If ``HUBRELAY_SLACK_TIMEOUT_S`` is not a positive number.

        """
        base_url = os.environ.get("HUBRELAY_SLACK_API_URL", "").strip()
        raw_timeout = os.environ.get("HUBRELAY_SLACK_TIMEOUT_S", "").strip()
        timeout_s = _DEFAULT_TIMEOUT_S
        if raw_timeout:
            try:
                timeout_s = float(raw_timeout)
            except ValueError as exc:
                msg = f"HUBRELAY_SLACK_TIMEOUT_S must be a number, got: {raw_timeout!r}"
                raise ValueError(msg) from exc
            if timeout_s <= 0:
                msg = f"HUBRELAY_SLACK_TIMEOUT_S must be positive, got: {timeout_s}"
                raise ValueError(msg)
        return cls(base_url=base_url or _DEFAULT_BASE_URL, timeout_s=timeout_s)


class _SlackResponse(msgspec.Struct):
    ok: bool
    error: str | None = None


class HttpxSlackClient:
    """Slack client calling ``chat.postMessage`` over httpx."""

    def __init__(
        self,
        token: str,
        *,
        config: SlackApiConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Store the bot token and HTTP configuration."""
        self._token = token
        self._config = config or SlackApiConfig()
        self._transport = transport

    async def post_message(
        self, channel: str, content: typ.Mapping[str, typ.Any]
    ) -> None:
        """Post a message, translating Slack failures into typed errors."""
        body = {**content, "channel": channel}
        async with httpx.AsyncClient(
            base_url=self._config.base_url,
            timeout=self._config.timeout_s,
            transport=self._transport,
            headers={"Authorization": f"Bearer {self._token}"},
        ) as client:
            try:
                response = await client.post(
                    "/chat.postMessage",
                    content=msgspec.json.encode(body),
                    headers={"Content-Type": "application/json; charset=utf-8"},
                )
            except httpx.HTTPError as exc:
                raise SlackDeliveryError.transport(type(exc).__name__) from exc

        if response.status_code == httpx.codes.TOO_MANY_REQUESTS:
            raise SlackDeliveryError.rate_limited()
        if response.is_server_error:
            raise SlackDeliveryError.server_error(response.status_code)

        try:
            result = msgspec.json.decode(response.content, type=_SlackResponse)
        except msgspec.DecodeError as exc:
            raise SlackDeliveryError.transport("invalid_response") from exc
        if not result.ok:
            raise SlackDeliveryError.from_error_code(result.error or "unknown_error")


class HttpxSlackClientFactory:
    """Builds :class:`HttpxSlackClient` instances per workspace."""

    def __init__(
        self,
        config: SlackApiConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Store shared configuration."""
        self._config = config or SlackApiConfig()
        self._transport = transport

    def for_workspace(self, workspace: Workspace) -> HttpxSlackClient:
        """Return a client authenticated with the workspace bot token."""
        return HttpxSlackClient(
            workspace.access_token, config=self._config, transport=self._transport
        )
