"""
Placeholder Signals

Demo chat signals shown to a freshly connected user whose workspace has
nothing in the sync window yet. Disabled unless sync.backfill_placeholders
is turned on. All placeholder ids live in the ``fallback-`` namespace so
they can be told apart from real signals.
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional

from ..common.schemas import ActivitySignal, SignalMetadata, SignalSource, UserPrioritizationConfig

PLACEHOLDER_PREFIX = "fallback-"
PLACEHOLDER_MENTION_ID = "fallback-slack-mention"
PLACEHOLDER_DM_ID = "fallback-slack-dm"

# Source ids written by earlier releases; always purged on reconcile
LEGACY_PREFIXES = (
    "slack-mention-",
    "slack-dm-",
    "meeting-prep-",
    "email-flagged-",
    "seed-slack-",
    "seed-email-",
    "seed-calendar-",
)


def build_placeholder_signals(
    user_id: str,
    config: UserPrioritizationConfig,
    now: Optional[datetime] = None,
) -> List[ActivitySignal]:
    now = now or datetime.now(timezone.utc)
    channels = config.key_channels or ["#general"]

    return [
        ActivitySignal(
            user_id=user_id,
            source=SignalSource.CHANNEL_MESSAGE,
            source_id=PLACEHOLDER_MENTION_ID,
            title="Respond to product VP mention on automation blockers",
            body="ASAP: team needs unblock before EOD deployment window.",
            url="https://slack.com/app_redirect?channel=automation",
            author=config.key_people[0] if config.key_people else "vp-product@company.com",
            channel=channels[0],
            priority_hint=0.93,
            due_at=now + timedelta(hours=2),
            event_at=now - timedelta(hours=2),
            metadata=SignalMetadata(type="mention", tags=["urgent", "delivery"]),
            is_unread=True,
            is_flagged=True,
            is_mention=True,
            is_direct_message=False,
            is_starred=True,
        ),
        ActivitySignal(
            user_id=user_id,
            source=SignalSource.CHANNEL_MESSAGE,
            source_id=PLACEHOLDER_DM_ID,
            title="Draft update for #ai-enablement weekly sync",
            body="Need concise summary + CTA for adoption metrics.",
            url="https://slack.com/app_redirect?channel=ai-enablement",
            author="team-lead@company.com",
            channel=channels[1] if len(channels) > 1 else channels[0],
            priority_hint=0.72,
            due_at=now + timedelta(hours=5),
            event_at=now - timedelta(hours=4),
            metadata=SignalMetadata(type="dm", tags=["communication"]),
            is_unread=True,
            is_flagged=False,
            is_mention=False,
            is_direct_message=True,
            is_starred=False,
        ),
    ]
