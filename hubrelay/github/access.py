"""Repository access checks performed with a user's GitHub token."""

from __future__ import annotations

import dataclasses
import os
import typing as typ
from http import HTTPStatus

import httpx

from .errors import GitHubAPIError, GitHubConfigError

_DEFAULT_BASE_URL = "https://api.github.com"
_DEFAULT_TIMEOUT_S = 10.0

_RATE_LIMIT_MESSAGE = "rate limit"


@dataclasses.dataclass(frozen=True, slots=True)
class GitHubApiConfig:
    """Configuration for GitHub REST API clients."""

    base_url: str = _DEFAULT_BASE_URL
    timeout_s: float = _DEFAULT_TIMEOUT_S
    user_agent: str = "hubrelay/0.1"

    @classmethod
    def from_env(cls) -> GitHubApiConfig:
        """Build configuration from ``HUBRELAY_GITHUB_*`` variables.

        Reads ``HUBRELAY_GITHUB_API_URL`` and ``HUBRELAY_GITHUB_TIMEOUT_S``;
        both are optional.

        Raises
        ------
        GitHubConfigError
            If the timeout is not a positive number.

        """
        base_url = os.environ.get("HUBRELAY_GITHUB_API_URL", "").strip()
        raw_timeout = os.environ.get("HUBRELAY_GITHUB_TIMEOUT_S", "").strip()
        timeout_s = _DEFAULT_TIMEOUT_S
        if raw_timeout:
            try:
                timeout_s = float(raw_timeout)
            except ValueError as exc:
                raise GitHubConfigError.invalid_timeout(raw_timeout) from exc
            if timeout_s <= 0:
                raise GitHubConfigError.invalid_timeout(raw_timeout)
        return cls(base_url=base_url or _DEFAULT_BASE_URL, timeout_s=timeout_s)

    def headers(self, token: str) -> dict[str, str]:
        """Return request headers authenticating with ``token``."""
        return {
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
            "User-Agent": self.user_agent,
        }


class GitHubRepoAccess:
    """Checks repository visibility for one GitHub user token.

    A repository the token cannot see answers 404, or 403 for some
    organisation policies; both mean "no access". GitHub also answers 403
    when a rate limit is hit, which is an infrastructure failure like any
    other non-2xx status and raises.
    """

    def __init__(
        self,
        token: str,
        *,
        config: GitHubApiConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Store the token and HTTP configuration."""
        if not token.strip():
            raise GitHubConfigError.empty_token()
        self._token = token
        self._config = config or GitHubApiConfig()
        self._transport = transport

    async def has_repo_access(self, repository_id: int) -> bool:
        """Return True when ``GET /repositories/{id}`` succeeds for the token."""
        async with httpx.AsyncClient(
            base_url=self._config.base_url,
            headers=self._config.headers(self._token),
            timeout=self._config.timeout_s,
            transport=self._transport,
        ) as client:
            try:
                response = await client.get(f"/repositories/{repository_id}")
            except httpx.HTTPError as exc:
                raise GitHubAPIError.transport_error(str(exc)) from exc

        if response.is_success:
            return True
        if response.status_code == HTTPStatus.NOT_FOUND:
            return False
        if response.status_code == HTTPStatus.FORBIDDEN:
            if _is_rate_limited(response):
                raise GitHubAPIError.rate_limited(response.status_code)
            return False
        raise GitHubAPIError.http_error(response.status_code)


def access_checker_factory(
    config: GitHubApiConfig,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> typ.Callable[[str], GitHubRepoAccess]:
    """Return a factory building :class:`GitHubRepoAccess` for a token."""

    def build(token: str) -> GitHubRepoAccess:
        return GitHubRepoAccess(token, config=config, transport=transport)

    return build


def _is_rate_limited(response: httpx.Response) -> bool:
    """Return True when a 403 reports a primary or secondary rate limit."""
    if response.headers.get("x-ratelimit-remaining") == "0":
        return True
    if "retry-after" in response.headers:
        return True
    return _RATE_LIMIT_MESSAGE in response.text.lower()
