"""Resolve subscription creators to their linked GitHub identity."""

from __future__ import annotations

import dataclasses
import typing as typ

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from .errors import CreatorNotFoundError
from .storage import SlackUser

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


class RepoAccessChecker(typ.Protocol):
    """Answers whether a GitHub identity can read a repository."""

    async def has_repo_access(self, repository_id: int) -> bool:
        """Return True when the repository is visible to this identity."""
        ...


class _NoLinkedAccount:
    """Access checker for creators who never linked a GitHub account."""

    async def has_repo_access(self, repository_id: int) -> bool:
        del repository_id
        return False


@dataclasses.dataclass(frozen=True, slots=True)
class CreatorIdentity:
    """Slack creator together with their linked GitHub identity."""

    slack_user_id: str
    github_user_id: int | None
    access: RepoAccessChecker = dataclasses.field(repr=False, compare=False)

    async def has_repo_access(self, repository_id: int) -> bool:
        """Delegate to the linked GitHub identity."""
        return await self.access.has_repo_access(repository_id)


class IdentityResolver(typ.Protocol):
    """Looks up the identity behind a subscription's ``creator_id``."""

    async def resolve(self, creator_id: int) -> CreatorIdentity:
        """Return the creator identity, raising if the creator is unknown."""
        ...


class SqlIdentityResolver:
    """Identity resolver reading Slack and GitHub users from SQL.

    Parameters
    ----------
    session_factory:
        Factory for sessions bound to the subscription database.
    access_for_token:
        Builds a :class:`RepoAccessChecker` from a GitHub user token.

    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        access_for_token: typ.Callable[[str], RepoAccessChecker],
    ) -> None:
        """Configure the resolver with storage and an access-check factory."""
        self._session_factory = session_factory
        self._access_for_token = access_for_token

    async def resolve(self, creator_id: int) -> CreatorIdentity:
        """Load the creator and wrap their GitHub token in an access checker."""
        async with self._session_factory() as session:
            creator = await session.scalar(
                select(SlackUser)
                .where(SlackUser.id == creator_id)
                .options(selectinload(SlackUser.github_user))
            )
        if creator is None:
            raise CreatorNotFoundError(creator_id)

        github_user = creator.github_user
        if github_user is None:
            return CreatorIdentity(
                slack_user_id=creator.slack_id,
                github_user_id=None,
                access=_NoLinkedAccount(),
            )
        return CreatorIdentity(
            slack_user_id=creator.slack_id,
            github_user_id=github_user.id,
            access=self._access_for_token(github_user.access_token),
        )
