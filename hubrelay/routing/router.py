"""Fan a single activity event out to every subscribed channel.

For each candidate subscription the router runs an independent pipeline:

1. skip when the subscription does not want this event name;
2. skip ``repository.deleted`` for account subscriptions;
3. re-check creator access (except for repository deletions);
4. apply the label whitelist;
5. invoke the delivery callback, retiring the subscription on permanent
   Slack errors.

Pipelines run concurrently; one pipeline's failure never stops another.
Transient failures are collected and raised together once every
pipeline has settled.
"""

from __future__ import annotations

import asyncio
import contextlib
import dataclasses
import enum
import typing as typ

from hubrelay.logging import get_logger, log_debug, log_warning
from hubrelay.subscriptions import LookupCriterion, SubscriptionScope

from .config import RouterConfig
from .context import EventContext
from .errors import RoutingError

if typ.TYPE_CHECKING:
    import httpx

    from hubrelay.events import ActivityEvent
    from hubrelay.github import GitHubClientFactory
    from hubrelay.slack import SlackClientFactory
    from hubrelay.subscriptions import Subscription, SubscriptionStore

    from .access import AccessGuard
    from .context import DeliveryCallback
    from .filters import SubscriptionFilter
    from .outcome import DeliveryOutcomeHandler

logger = get_logger(__name__)


class PipelineOutcome(enum.StrEnum):
    """How a single subscription pipeline ended."""

    DELIVERED = "delivered"
    DISABLED = "disabled"
    DELETION_SUPPRESSED = "deletion_suppressed"
    ACCESS_DENIED = "access_denied"
    LABEL_FILTERED = "label_filtered"
    RETIRED = "retired"


@dataclasses.dataclass(frozen=True, slots=True)
class RoutingResult:
    """Outcomes of every successful pipeline for one event.

    ``outcomes`` pairs each candidate with its outcome in lookup order.
    """

    event_type: str
    outcomes: tuple[tuple[Subscription, PipelineOutcome], ...] = ()

    @property
    def delivered(self) -> list[Subscription]:
        """Return subscriptions whose callback succeeded."""
        return self.with_outcome(PipelineOutcome.DELIVERED)

    def with_outcome(self, outcome: PipelineOutcome) -> list[Subscription]:
        """Return subscriptions whose pipeline ended with ``outcome``."""
        return [sub for sub, result in self.outcomes if result is outcome]


def candidate_criteria(event: ActivityEvent) -> list[LookupCriterion]:
    """Return the repository and owning-account lookups for ``event``."""
    repository = event.repository
    if repository is None:
        return []
    return [
        LookupCriterion(github_id=repository.id, scope=SubscriptionScope.REPO),
        LookupCriterion(
            github_id=repository.owner.id, scope=SubscriptionScope.ACCOUNT
        ),
    ]


class Router:
    """Routes activity events to subscribed channels.

    Parameters
    ----------
    store
        Subscription lookup and retirement.
    subscription_filter
        Enablement, deletion and label decisions.
    guard
        Creator access re-validation.
    outcomes
        Delivery error classification and retirement.
    slack_clients
        Builds the delivery client for a subscription's workspace.
    github_clients
        Optional factory for lag-mitigated GitHub clients handed to
        callbacks through :class:`EventContext`.
    config
        Concurrency bound and related tunables.

    """

    def __init__(  # noqa: PLR0913
        self,
        store: SubscriptionStore,
        subscription_filter: SubscriptionFilter,
        guard: AccessGuard,
        outcomes: DeliveryOutcomeHandler,
        slack_clients: SlackClientFactory,
        *,
        github_clients: GitHubClientFactory | None = None,
        config: RouterConfig | None = None,
    ) -> None:
        """Store collaborators."""
        self._store = store
        self._filter = subscription_filter
        self._guard = guard
        self._outcomes = outcomes
        self._slack_clients = slack_clients
        self._github_clients = github_clients
        self._config = config or RouterConfig()

    async def route(
        self, event: ActivityEvent, callback: DeliveryCallback
    ) -> RoutingResult:
        """Deliver ``event`` to every matching subscription.

        Returns
        -------
        RoutingResult
            Outcome of each subscription pipeline.

        Raises
        ------
        RoutingError
            After all pipelines settle, when any raised a transient or
            infrastructure error.

        """
        criteria = candidate_criteria(event)
        if not criteria:
            return RoutingResult(event_type=event.event_type)

        subscriptions = await self._store.lookup_all(criteria)
        log_debug(
            logger,
            "Delivering %s to %d subscribed channel(s) (delivery=%s)",
            event.event_type,
            len(subscriptions),
            event.delivery_id,
        )

        semaphore = asyncio.Semaphore(self._config.max_concurrent_deliveries)

        async def bounded(subscription: Subscription) -> PipelineOutcome:
            async with semaphore:
                return await self._run_pipeline(event, subscription, callback)

        gathered = await asyncio.gather(
            *(bounded(subscription) for subscription in subscriptions),
            return_exceptions=True,
        )
        return self._collect(event, subscriptions, gathered)

    def _collect(
        self,
        event: ActivityEvent,
        subscriptions: list[Subscription],
        gathered: list[PipelineOutcome | BaseException],
    ) -> RoutingResult:
        outcomes: list[tuple[Subscription, PipelineOutcome]] = []
        exceptions: list[Exception] = []
        for subscription, result in zip(subscriptions, gathered, strict=True):
            if isinstance(result, Exception):
                log_warning(
                    logger,
                    "Delivery of %s to channel %s failed: %s",
                    event.event_type,
                    subscription.channel_id,
                    result,
                    exc_info=result,
                )
                exceptions.append(result)
            elif isinstance(result, BaseException):
                raise result
            else:
                outcomes.append((subscription, result))

        if exceptions:
            raise RoutingError(event.event_type, exceptions)
        return RoutingResult(event_type=event.event_type, outcomes=tuple(outcomes))

    async def _run_pipeline(
        self,
        event: ActivityEvent,
        subscription: Subscription,
        callback: DeliveryCallback,
    ) -> PipelineOutcome:
        if not self._filter.is_enabled(subscription, event):
            return PipelineOutcome.DISABLED

        if self._filter.excludes_deletion(subscription, event):
            return PipelineOutcome.DELETION_SUPPRESSED

        repository = event.repository
        if (
            repository is not None
            and subscription.creator_id is not None
            and not event.is_repository_deletion
            and not await self._guard.check_access(subscription, repository)
        ):
            return PipelineOutcome.ACCESS_DENIED

        if not self._filter.passes_label_filter(
            event.issue_or_pull_request, subscription.settings
        ):
            return PipelineOutcome.LABEL_FILTERED

        slack = self._slack_clients.for_workspace(subscription.workspace)
        try:
            async with self._open_github() as github:
                context = EventContext(event=event, github=github)
                await callback(context, subscription, slack)
        except Exception as exc:  # noqa: BLE001 - classified below
            await self._outcomes.handle(exc, subscription, event)
            return PipelineOutcome.RETIRED
        return PipelineOutcome.DELIVERED

    def _open_github(
        self,
    ) -> contextlib.AbstractAsyncContextManager[httpx.AsyncClient | None]:
        if self._github_clients is None:
            return contextlib.nullcontext()
        return self._github_clients.open()
