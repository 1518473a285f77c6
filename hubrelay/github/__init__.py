"""GitHub API collaborators used while routing events."""

from __future__ import annotations

from .access import GitHubApiConfig, GitHubRepoAccess, access_checker_factory
from .errors import GitHubAPIError, GitHubConfigError
from .lag import GitHubClientFactory, ReplicationLagPolicy

__all__ = [
    "GitHubAPIError",
    "GitHubApiConfig",
    "GitHubClientFactory",
    "GitHubConfigError",
    "GitHubRepoAccess",
    "ReplicationLagPolicy",
    "access_checker_factory",
]
