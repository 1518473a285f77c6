"""GitHub API errors."""

from __future__ import annotations


class GitHubAPIError(RuntimeError):
    """Raised when GitHub returns an unexpected response or is unreachable."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        """Initialise with a message and optional HTTP status code."""
        self.status_code = status_code
        super().__init__(message)

    @classmethod
    def http_error(cls, status_code: int) -> GitHubAPIError:
        """Return an error for unexpected HTTP responses."""
        return cls(f"GitHub REST HTTP {status_code}", status_code=status_code)

    @classmethod
    def rate_limited(cls, status_code: int) -> GitHubAPIError:
        """Return an error for responses rejected by a rate limit."""
        return cls(f"GitHub rate limit hit (HTTP {status_code})", status_code=status_code)

    @classmethod
    def transport_error(cls, reason: str) -> GitHubAPIError:
        """Return an error for requests that never produced a response."""
        return cls(f"GitHub request failed: {reason}")


class GitHubConfigError(RuntimeError):
    """Raised when GitHub client configuration is invalid."""

    @classmethod
    def empty_token(cls) -> GitHubConfigError:
        """Return an error when the provided token is empty."""
        return cls("GitHub token must be non-empty")

    @classmethod
    def invalid_timeout(cls, raw: str) -> GitHubConfigError:
        """Return an error for an unparsable or non-positive timeout."""
        return cls(f"HUBRELAY_GITHUB_TIMEOUT_S must be a positive number, got: {raw!r}")
