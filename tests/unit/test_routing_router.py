"""Unit tests for the event router."""

from __future__ import annotations

import asyncio
import typing as typ

import pytest

from hubrelay.github import GitHubAPIError
from hubrelay.routing import PipelineOutcome, RoutingError, candidate_criteria
from hubrelay.slack import SlackDeliveryError, SlackErrorKind
from hubrelay.subscriptions import LookupCriterion, SubscriptionScope
from tests.helpers.routing_fakes import (
    OWNER_ID,
    REPO_ID,
    CountingAccess,
    RecordingCallback,
    build_harness,
    make_event,
    make_subscription,
)

if typ.TYPE_CHECKING:
    from hubrelay.routing import EventContext
    from hubrelay.subscriptions import Subscription


class TestCandidateResolution:
    """Tests for subscription lookup."""

    @pytest.mark.asyncio
    async def test_event_without_repository_is_a_no_op(self) -> None:
        """Events without a repository perform no lookups or deliveries."""
        harness = build_harness([make_subscription()])
        callback = RecordingCallback()

        result = await harness.router.route(
            make_event("installation", "created", with_repository=False), callback
        )

        assert harness.store.lookups == []
        assert callback.delivered == []
        assert result.outcomes == ()

    @pytest.mark.asyncio
    async def test_looks_up_repository_and_owner_scopes(self) -> None:
        """Exactly one repo-scoped and one account-scoped criterion are issued."""
        harness = build_harness()

        await harness.router.route(make_event(), RecordingCallback())

        assert harness.store.lookups == [
            [
                LookupCriterion(github_id=REPO_ID, scope=SubscriptionScope.REPO),
                LookupCriterion(github_id=OWNER_ID, scope=SubscriptionScope.ACCOUNT),
            ]
        ]

    def test_candidate_criteria_empty_without_repository(self) -> None:
        """No criteria are built for events lacking a repository."""
        event = make_event("ping", None, with_repository=False)
        assert candidate_criteria(event) == []

    @pytest.mark.asyncio
    async def test_delivers_to_repo_and_account_subscriptions(self) -> None:
        """Subscriptions matching either scope receive the event."""
        repo_sub = make_subscription(1)
        account_sub = make_subscription(2, scope=SubscriptionScope.ACCOUNT)
        other_repo = make_subscription(3, github_id=42)
        harness = build_harness([repo_sub, account_sub, other_repo])
        callback = RecordingCallback()

        result = await harness.router.route(make_event(), callback)

        assert sorted(callback.delivered) == [1, 2]
        assert [sub.id for sub in result.delivered] == [1, 2]


class TestFiltering:
    """Tests for enablement, deletion and label filtering."""

    @pytest.mark.asyncio
    async def test_disabled_feature_is_not_delivered(self) -> None:
        """Subscriptions with the event's feature disabled are skipped."""
        harness = build_harness([make_subscription(1, issues=False)])
        callback = RecordingCallback()

        result = await harness.router.route(make_event("issues"), callback)

        assert callback.delivered == []
        assert result.with_outcome(PipelineOutcome.DISABLED)[0].id == 1

    @pytest.mark.asyncio
    async def test_repository_deleted_skips_account_subscriptions(self) -> None:
        """Account subscriptions never receive repository.deleted."""
        account_sub = make_subscription(
            1, scope=SubscriptionScope.ACCOUNT, creator_id=7
        )
        repo_sub = make_subscription(2)
        harness = build_harness([account_sub, repo_sub])
        callback = RecordingCallback()

        result = await harness.router.route(
            make_event("repository", "deleted"), callback
        )

        assert callback.delivered == [2]
        suppressed = result.with_outcome(PipelineOutcome.DELETION_SUPPRESSED)
        assert [sub.id for sub in suppressed] == [1]

    @pytest.mark.asyncio
    async def test_repository_deleted_skips_access_check(self) -> None:
        """Repository deletions reach repo subscriptions without an access check."""
        access = CountingAccess(allowed=False)
        harness = build_harness([make_subscription(1, creator_id=7)])
        harness.identities.add(7, access)
        callback = RecordingCallback()

        await harness.router.route(make_event("repository", "deleted"), callback)

        assert access.calls == []
        assert callback.delivered == [1]
        assert harness.store.destroyed == set()

    @pytest.mark.parametrize(
        ("labels", "expected"),
        [
            pytest.param(["enhancement"], [], id="no_whitelisted_label"),
            pytest.param(["bug"], [1], id="whitelisted_label"),
        ],
    )
    @pytest.mark.asyncio
    async def test_label_whitelist(self, labels: list[str], expected: list[int]) -> None:
        """Delivery only happens when a whitelisted label is present."""
        harness = build_harness([make_subscription(1, labels=["bug", "urgent"])])
        callback = RecordingCallback()

        await harness.router.route(make_event(labels=labels), callback)

        assert callback.delivered == expected


class TestAccessGuarding:
    """Tests for creator access re-validation during routing."""

    @pytest.mark.asyncio
    async def test_shared_creator_checks_access_once(self) -> None:
        """Subscriptions sharing creator and repository share one check."""
        access = CountingAccess(allowed=True)
        harness = build_harness(
            [make_subscription(1, creator_id=7), make_subscription(2, creator_id=7)]
        )
        harness.identities.add(7, access)
        callback = RecordingCallback()

        await harness.router.route(make_event(), callback)

        assert access.calls == [REPO_ID]
        assert sorted(callback.delivered) == [1, 2]

    @pytest.mark.asyncio
    async def test_lost_access_retires_repo_subscription(self) -> None:
        """Repo subscriptions are destroyed once and the creator notified once."""
        access = CountingAccess(allowed=False)
        harness = build_harness(
            [make_subscription(1, creator_id=7), make_subscription(2, creator_id=7)]
        )
        harness.identities.add(7, access)
        callback = RecordingCallback()

        result = await harness.router.route(make_event(), callback)

        assert callback.delivered == []
        assert harness.store.destroy_calls == {1: 1, 2: 1}
        assert len(harness.slack.posted_to("C0001")) == 1
        assert len(harness.slack.posted_to("C0002")) == 1
        assert len(result.with_outcome(PipelineOutcome.ACCESS_DENIED)) == 2

    @pytest.mark.asyncio
    async def test_lost_access_skips_account_subscription_silently(self) -> None:
        """Account subscriptions are neither destroyed nor notified."""
        access = CountingAccess(allowed=False)
        harness = build_harness(
            [make_subscription(1, scope=SubscriptionScope.ACCOUNT, creator_id=7)]
        )
        harness.identities.add(7, access)
        callback = RecordingCallback()

        await harness.router.route(make_event(), callback)

        assert callback.delivered == []
        assert harness.store.destroy_calls == {}
        assert harness.slack.posted == []

    @pytest.mark.asyncio
    async def test_access_check_failure_surfaces_without_destroying(self) -> None:
        """Identity lookup errors propagate and never retire the subscription."""
        failure = GitHubAPIError.http_error(502)
        access = CountingAccess(error=failure)
        harness = build_harness(
            [make_subscription(1, creator_id=7), make_subscription(2)]
        )
        harness.identities.add(7, access)
        callback = RecordingCallback()

        with pytest.raises(RoutingError) as excinfo:
            await harness.router.route(make_event(), callback)

        assert excinfo.value.exceptions == (failure,)
        assert callback.delivered == [2]
        assert harness.store.destroy_calls == {}


class TestDeliveryOutcomes:
    """Tests for delivery error isolation and classification."""

    @pytest.mark.asyncio
    async def test_permanent_error_retires_subscription_silently(self) -> None:
        """Permanent Slack errors destroy the subscription and do not surface."""
        harness = build_harness([make_subscription(1)])
        callback = RecordingCallback(
            {1: SlackDeliveryError.from_error_code("channel_not_found")}
        )

        result = await harness.router.route(make_event(), callback)

        assert harness.store.destroyed == {1}
        assert harness.slack.posted == []
        assert [sub.id for sub in result.with_outcome(PipelineOutcome.RETIRED)] == [1]

    @pytest.mark.asyncio
    async def test_transient_error_surfaces_without_destroying(self) -> None:
        """Transient Slack errors propagate and leave the subscription intact."""
        failure = SlackDeliveryError(SlackErrorKind.RATE_LIMITED)
        harness = build_harness([make_subscription(1)])

        with pytest.raises(RoutingError) as excinfo:
            await harness.router.route(
                make_event(), RecordingCallback({1: failure})
            )

        assert excinfo.value.exceptions == (failure,)
        assert harness.store.destroyed == set()

    @pytest.mark.asyncio
    async def test_one_permanent_failure_among_many(self) -> None:
        """Only the failing subscription is retired; the rest are delivered."""
        subscriptions = [make_subscription(sub_id) for sub_id in range(1, 7)]
        harness = build_harness(subscriptions)
        callback = RecordingCallback(
            {4: SlackDeliveryError.from_error_code("account_inactive")}
        )

        await harness.router.route(make_event(), callback)

        assert harness.store.destroyed == {4}
        assert sorted(callback.delivered) == [1, 2, 3, 5, 6]

    @pytest.mark.asyncio
    async def test_all_transient_errors_are_collected(self) -> None:
        """Every transient failure is reported after all pipelines settle."""
        first = RuntimeError("boom")
        second = SlackDeliveryError.server_error(503)
        harness = build_harness([make_subscription(n) for n in (1, 2, 3)])
        callback = RecordingCallback({1: first, 3: second})

        with pytest.raises(RoutingError) as excinfo:
            await harness.router.route(make_event(), callback)

        assert set(excinfo.value.exceptions) == {first, second}
        assert callback.delivered == [2]

    @pytest.mark.asyncio
    async def test_lookup_failure_propagates_unchanged(self) -> None:
        """Store failures are infrastructure errors raised directly."""
        harness = build_harness([make_subscription(1)])
        harness.store.lookup_error = ConnectionError("database down")

        with pytest.raises(ConnectionError):
            await harness.router.route(make_event(), RecordingCallback())

    @pytest.mark.asyncio
    async def test_pipelines_run_concurrently(self) -> None:
        """A slow delivery does not hold back the others."""
        release = asyncio.Event()
        started: list[int] = []

        async def callback(
            context: EventContext, subscription: Subscription, slack: object
        ) -> None:
            del context, slack
            sub_id = subscription.id
            started.append(sub_id)
            if sub_id == 1:
                await release.wait()
            elif len(started) == 3:
                release.set()

        harness = build_harness([make_subscription(n) for n in (1, 2, 3)])

        result = await asyncio.wait_for(
            harness.router.route(make_event(), callback), timeout=1.0
        )

        assert sorted(started) == [1, 2, 3]
        assert len(result.delivered) == 3
