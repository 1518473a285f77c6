"""Unit tests for the routing Dramatiq actor."""

from __future__ import annotations

import datetime as dt
import typing as typ

import dramatiq
import msgspec
import pytest
from dramatiq.brokers.stub import StubBroker

from hubrelay.routing import Router, RouterConfig
from hubrelay.routing import actor as routing_actor
from hubrelay.routing.factory import build_router
from tests.helpers.routing_fakes import build_harness, make_event, make_subscription

if typ.TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


class TestParseReceivedAt:
    """Tests for _parse_received_at."""

    def test_none_passes_through(self) -> None:
        """A missing timestamp lets the event default to now."""
        assert routing_actor._parse_received_at(None) is None

    def test_parses_aware_timestamp(self) -> None:
        """Aware ISO timestamps round-trip."""
        parsed = routing_actor._parse_received_at("2024-07-14T09:30:00+00:00")
        assert parsed == dt.datetime(2024, 7, 14, 9, 30, tzinfo=dt.UTC)

    def test_rejects_naive_timestamp(self) -> None:
        """Naive timestamps are rejected."""
        with pytest.raises(ValueError, match="timezone"):
            routing_actor._parse_received_at("2024-07-14T09:30:00")


@pytest.mark.asyncio
async def test_route_event_async_posts_summaries() -> None:
    """The default callback posts a summary to each delivered channel."""
    harness = build_harness([make_subscription(1)])

    result = await routing_actor._route_event_async(
        harness.router, make_event("issues", "opened", labels=[])
    )

    assert [sub.id for sub in result.delivered] == [1]
    [message] = harness.slack.posted_to("C0001")
    assert message.content["text"].startswith("[octocat/Hello-World]")


def test_job_returns_delivered_count(monkeypatch: pytest.MonkeyPatch) -> None:
    """The actor decodes the raw body and reports how many channels got it."""
    harness = build_harness(
        [make_subscription(1), make_subscription(2, issues=False)]
    )
    monkeypatch.setattr(routing_actor, "_build_router", lambda _url: harness.router)
    payload = {
        "action": "opened",
        "repository": {
            "id": 1296269,
            "full_name": "octocat/Hello-World",
            "owner": {"id": 1},
        },
    }

    delivered = routing_actor.route_event_job.fn(
        "sqlite+aiosqlite:///:memory:",
        "issues",
        msgspec.json.encode(payload).decode("utf-8"),
        delivery_id="72d3162e",
        received_at_iso="2024-07-14T09:30:00+00:00",
    )

    assert delivered == 1
    assert [message.channel for message in harness.slack.posted] == ["C0001"]


def test_session_factories_are_reused() -> None:
    """One session factory is created per database URL."""
    url = "sqlite+aiosqlite:///:memory:"
    first = routing_actor._get_or_create_session_factory(url)
    assert routing_actor._get_or_create_session_factory(url) is first


@pytest.mark.asyncio
async def test_build_router_routes_against_sql_store(
    session_factory: async_sessionmaker[AsyncSession],
) -> None:
    """A router built from a session factory finds no subscriptions in an empty DB."""
    router = build_router(session_factory, config=RouterConfig())

    result = await router.route(make_event(), _never_called)

    assert isinstance(router, Router)
    assert result.outcomes == ()


async def _never_called(*_args: object) -> None:
    pytest.fail("no subscription should be delivered")


class TestInstallRoutingBroker:
    """Tests for the broker bootstrap run when the actor module loads."""

    @pytest.fixture
    def missing_broker(self, monkeypatch: pytest.MonkeyPatch) -> list[object]:
        """Make ``dramatiq.get_broker`` fail as it does without pika/redis."""

        def _get_broker() -> typ.NoReturn:
            msg = "No module named 'pika'"
            raise ModuleNotFoundError(msg)

        installed: list[object] = []
        monkeypatch.setattr(dramatiq, "get_broker", _get_broker)
        monkeypatch.setattr(dramatiq, "set_broker", installed.append)
        return installed

    def test_existing_broker_is_left_alone(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """A configured broker is never replaced."""
        installed: list[object] = []
        monkeypatch.setattr(dramatiq, "get_broker", StubBroker)
        monkeypatch.setattr(dramatiq, "set_broker", installed.append)

        routing_actor._install_routing_broker()

        assert installed == []

    def test_stub_installed_when_allowed(
        self, monkeypatch: pytest.MonkeyPatch, missing_broker: list[object]
    ) -> None:
        """Without a broker library an allowed run falls back to a stub."""
        monkeypatch.setattr(routing_actor, "_stub_broker_allowed", lambda: True)

        routing_actor._install_routing_broker()

        [broker] = missing_broker
        assert isinstance(broker, StubBroker)

    def test_missing_broker_fails_when_stub_not_allowed(
        self, monkeypatch: pytest.MonkeyPatch, missing_broker: list[object]
    ) -> None:
        """Production start-up refuses to route webhooks into a stub."""
        monkeypatch.setattr(routing_actor, "_stub_broker_allowed", lambda: False)

        with pytest.raises(RuntimeError, match="HUBRELAY_ALLOW_STUB_BROKER"):
            routing_actor._install_routing_broker()

        assert missing_broker == []

    @pytest.mark.parametrize("flag", ["1", "true", "YES"])
    def test_env_flag_allows_stub(
        self, monkeypatch: pytest.MonkeyPatch, flag: str
    ) -> None:
        """The opt-in flag is case-insensitive."""
        monkeypatch.setenv("HUBRELAY_ALLOW_STUB_BROKER", flag)
        assert routing_actor._stub_broker_allowed()
