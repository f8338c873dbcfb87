"""
Conversation Selector

Narrows the directory to the conversations worth reading: every DM, plus
either the member channels named in the user's key channels or, when none
match, the first few member channels. Pure function, no I/O.
"""

from typing import List, Sequence

from .directory import Conversation, dedupe_conversations

DEFAULT_MEMBER_CHANNEL_LIMIT = 6
DEFAULT_CONVERSATION_LIMIT = 20


def normalize_channel_name(name: str) -> str:
    return name.strip().lower().lstrip("#")


def pick_conversations(
    conversations: Sequence[Conversation],
    key_channels: Sequence[str],
    member_channel_limit: int = DEFAULT_MEMBER_CHANNEL_LIMIT,
) -> List[Conversation]:
    """DMs + key member channels, or DMs + the first member channels."""
    if not conversations:
        return []

    direct_messages = [c for c in conversations if c.is_im]
    preferred_names = {normalize_channel_name(n) for n in key_channels if normalize_channel_name(n)}

    if preferred_names:
        preferred = [
            c for c in conversations
            if not c.is_im
            and c.is_member
            and c.name
            and c.name.lower() in preferred_names
        ]
        if preferred:
            return dedupe_conversations(direct_messages + preferred)

    member_channels = [c for c in conversations if not c.is_im and c.is_member]
    return dedupe_conversations(direct_messages + member_channels[:member_channel_limit])


def select_conversations(
    conversations: Sequence[Conversation],
    key_channels: Sequence[str],
    member_channel_limit: int = DEFAULT_MEMBER_CHANNEL_LIMIT,
    limit: int = DEFAULT_CONVERSATION_LIMIT,
) -> List[Conversation]:
    """
    Bounded candidate set for one sync run, DMs first.

    Falls back to every DM or member conversation when the pick is empty.
    """
    selected = pick_conversations(conversations, key_channels, member_channel_limit)
    if not selected:
        selected = dedupe_conversations(c for c in conversations if c.is_im or c.is_member)

    # sorted() is stable, so relative order inside each group is kept
    prioritized = sorted(selected, key=lambda c: 0 if c.is_im else 1)
    return prioritized[:limit]
