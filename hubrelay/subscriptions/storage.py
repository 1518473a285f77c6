"""Persistence models for workspaces, users and channel subscriptions."""

from __future__ import annotations

import datetime as dt
import typing as typ

from sqlalchemy import (
    JSON,
    BigInteger,
    DateTime,
    ForeignKey,
    Index,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator

from hubrelay.common.time import utcnow

if typ.TYPE_CHECKING:
    from sqlalchemy.engine import Dialect
    from sqlalchemy.ext.asyncio import AsyncEngine


class Base(DeclarativeBase):
    """Base declarative class for subscription models."""


class UTCDateTime(TypeDecorator[dt.datetime]):
    """DateTime wrapper that round-trips UTC tzinfo even on SQLite."""

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Normalise bound datetimes to UTC, treating naive values as UTC."""
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.UTC)
        return value.astimezone(dt.UTC)

    def process_result_value(
        self, value: dt.datetime | None, dialect: Dialect
    ) -> dt.datetime | None:
        """Ensure result datetimes are UTC and timezone aware."""
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=dt.UTC)
        return value.astimezone(dt.UTC)


class SlackWorkspace(Base):
    """Slack workspace with the bot token used for deliveries."""

    __tablename__ = "slack_workspaces"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    slack_id: Mapped[str] = mapped_column(String(32), unique=True)
    access_token: Mapped[str] = mapped_column(String(255))
    created_at: Mapped[dt.datetime] = mapped_column(UTCDateTime(), default=utcnow)

    subscriptions: Mapped[list[SubscriptionRecord]] = relationship(
        back_populates="workspace"
    )


class GitHubUser(Base):
    """GitHub account linked to a Slack user; ``id`` is the GitHub user id."""

    __tablename__ = "github_users"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    access_token: Mapped[str] = mapped_column(String(255))


class SlackUser(Base):
    """Slack user who may create subscriptions."""

    __tablename__ = "slack_users"
    __table_args__ = (
        UniqueConstraint(
            "slack_id", "slack_workspace_id", name="uq_slack_users_workspace"
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    slack_id: Mapped[str] = mapped_column(String(32))
    slack_workspace_id: Mapped[int] = mapped_column(
        ForeignKey("slack_workspaces.id", ondelete="CASCADE")
    )
    github_user_id: Mapped[int | None] = mapped_column(
        ForeignKey("github_users.id", ondelete="SET NULL"), default=None
    )

    github_user: Mapped[GitHubUser | None] = relationship()


class SubscriptionRecord(Base):
    """Channel subscription to a repository or account."""

    __tablename__ = "subscriptions"
    __table_args__ = (
        UniqueConstraint(
            "slack_workspace_id",
            "channel_id",
            "github_id",
            "type",
            name="uq_subscriptions_channel_target",
        ),
        Index("ix_subscriptions_github_type", "github_id", "type"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    channel_id: Mapped[str] = mapped_column(String(32))
    slack_workspace_id: Mapped[int] = mapped_column(
        ForeignKey("slack_workspaces.id", ondelete="CASCADE")
    )
    type: Mapped[str] = mapped_column(String(16))
    github_id: Mapped[int] = mapped_column(BigInteger)
    creator_id: Mapped[int | None] = mapped_column(
        ForeignKey("slack_users.id", ondelete="SET NULL"), default=None
    )
    settings: Mapped[dict[str, typ.Any]] = mapped_column(JSON, default=dict)
    created_at: Mapped[dt.datetime] = mapped_column(UTCDateTime(), default=utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(
        UTCDateTime(), default=utcnow, onupdate=utcnow
    )

    workspace: Mapped[SlackWorkspace] = relationship(back_populates="subscriptions")


async def init_subscription_storage(engine: AsyncEngine) -> None:
    """Create all tables registered with Base if they are absent."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
