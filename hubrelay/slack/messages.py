"""Plain Slack message bodies sent by the router.

Rich, per-event templates live with the delivery callbacks that callers
supply; this module only renders the access-loss notice and a compact
default summary.
"""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    from hubrelay.events import ActivityEvent, RepositoryRef
    from hubrelay.routing.context import EventContext
    from hubrelay.subscriptions import Subscription

    from .client import SlackClient


def re_enable_subscription_message(
    repository: RepositoryRef, slack_user_id: str
) -> dict[str, typ.Any]:
    """Return the notice posted when a creator loses repository access."""
    text = (
        f"<@{slack_user_id}> no longer has access to {repository.full_name}, "
        f"so this channel's subscription was removed. Anyone with access can "
        f"run `/github subscribe {repository.full_name}` to re-enable it."
    )
    return {
        "text": text,
        "attachments": [
            {
                "color": "#24292f",
                "mrkdwn_in": ["text"],
                "text": text,
            }
        ],
    }


def event_summary_message(event: ActivityEvent) -> dict[str, typ.Any]:
    """Return a one-line summary of ``event``."""
    repository = event.repository
    where = repository.full_name if repository is not None else "GitHub"
    parts = [f"[{where}]", event.event_type.replace("_", " ")]

    item = event.issue_or_pull_request
    if item is not None:
        reference = f"#{item.number}" if item.number is not None else ""
        title = item.title or ""
        label = " ".join(part for part in (reference, title) if part)
        if item.html_url:
            label = f"<{item.html_url}|{label}>"
        if label:
            parts.append(label)
    return {"text": " ".join(parts)}


async def post_event_summary(
    context: EventContext, subscription: Subscription, slack: SlackClient
) -> None:
    """Deliver the default summary message for an event."""
    await slack.post_message(
        subscription.channel_id, event_summary_message(context.event)
    )
