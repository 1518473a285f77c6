"""Subscription lookup and retirement backed by SQLAlchemy."""

from __future__ import annotations

import typing as typ

import msgspec
from sqlalchemy import and_, delete, or_, select
from sqlalchemy.orm import selectinload

from .errors import InvalidSettingsError
from .models import (
    LookupCriterion,
    Subscription,
    SubscriptionScope,
    Workspace,
    decode_settings,
)
from .storage import SubscriptionRecord

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

type SessionFactory = async_sessionmaker[AsyncSession]


@typ.runtime_checkable
class SubscriptionStore(typ.Protocol):
    """Lookup and retirement of channel subscriptions."""

    async def lookup_all(
        self, criteria: typ.Sequence[LookupCriterion]
    ) -> list[Subscription]:
        """Return subscriptions matching any of ``criteria``."""
        ...

    async def destroy(self, subscription: Subscription) -> bool:
        """Remove ``subscription``; return False when it was already gone."""
        ...


def _to_subscription(record: SubscriptionRecord) -> Subscription:
    try:
        settings = decode_settings(record.settings)
    except msgspec.ValidationError as exc:
        raise InvalidSettingsError(record.id, str(exc)) from exc
    return Subscription(
        id=record.id,
        channel_id=record.channel_id,
        scope=SubscriptionScope(record.type),
        github_id=record.github_id,
        creator_id=record.creator_id,
        settings=settings,
        workspace=Workspace(
            slack_id=record.workspace.slack_id,
            access_token=record.workspace.access_token,
        ),
    )


class SqlSubscriptionStore:
    """Subscription store over an async SQLAlchemy session factory.

    Parameters
    ----------
    session_factory:
        Factory for sessions bound to the subscription database.

    """

    def __init__(self, session_factory: SessionFactory) -> None:
        """Configure the store with a session factory."""
        self._session_factory = session_factory

    async def lookup_all(
        self, criteria: typ.Sequence[LookupCriterion]
    ) -> list[Subscription]:
        """Return subscriptions matching any ``(github_id, scope)`` criterion.

        Results keep database order; a subscription matching several
        criteria is returned once per matching row, never merged.
        """
        if not criteria:
            return []

        clauses = [
            and_(
                SubscriptionRecord.github_id == criterion.github_id,
                SubscriptionRecord.type == criterion.scope.value,
            )
            for criterion in criteria
        ]
        async with self._session_factory() as session:
            records = await session.scalars(
                select(SubscriptionRecord)
                .where(or_(*clauses))
                .options(selectinload(SubscriptionRecord.workspace))
                .order_by(SubscriptionRecord.id)
            )
            return [_to_subscription(record) for record in records]

    async def destroy(self, subscription: Subscription) -> bool:
        """Delete the subscription row, returning whether a row was removed."""
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                delete(SubscriptionRecord).where(
                    SubscriptionRecord.id == subscription.id
                )
            )
        return bool(result.rowcount)
