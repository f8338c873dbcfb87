"""
Conversation Directory

Enumerates the DMs and channels reachable with a connected account.
User tokens list through users.conversations (what the user belongs to)
and fall back to the workspace-wide conversations.list.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

from .slack_api import SlackWebClient, is_likely_user_token

logger = logging.getLogger("workboard.sync.directory")

PAGE_SIZE = 200
CONVERSATION_TYPES = "im,public_channel,private_channel"

# Page caps bound worst-case latency for large workspaces
USER_SCOPED_MAX_PAGES = 8
WORKSPACE_SCOPED_MAX_PAGES = 4


@dataclass(frozen=True)
class Conversation:
    """A DM or channel visible to the connected account"""
    id: str
    name: Optional[str] = None
    is_im: bool = False
    is_member: bool = False

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "Conversation":
        return cls(
            id=data["id"],
            name=data.get("name") or None,
            is_im=bool(data.get("is_im")),
            is_member=bool(data.get("is_member")),
        )

    @property
    def label(self) -> str:
        """Channel label shown on signals"""
        if self.is_im:
            return "DM"
        if self.name:
            return f"#{self.name}"
        return "Slack"


def dedupe_conversations(conversations: Iterable[Conversation]) -> List[Conversation]:
    """Drop repeated ids, keeping the first occurrence and the input order"""
    seen = set()
    unique = []
    for conversation in conversations:
        if conversation.id in seen:
            continue
        seen.add(conversation.id)
        unique.append(conversation)
    return unique


class ConversationDirectory:
    """
    Lists conversations for a Slack access token.

    Strategy:
    1. User tokens: users.conversations (up to 8 pages)
    2. On failure, or for other tokens: conversations.list (up to 4 pages)

    A failure of the last strategy propagates to the caller.
    """

    def __init__(self, client: SlackWebClient):
        self._client = client

    def list_conversations(self) -> List[Conversation]:
        if is_likely_user_token(self._client.token):
            try:
                conversations = self._paginate("users.conversations", USER_SCOPED_MAX_PAGES)
                logger.info("users.conversations returned %d conversations", len(conversations))
                return conversations
            except Exception as e:
                logger.warning("users.conversations failed; falling back to conversations.list: %s", e)

        conversations = self._paginate("conversations.list", WORKSPACE_SCOPED_MAX_PAGES)
        logger.info("conversations.list returned %d conversations", len(conversations))
        return conversations

    def _paginate(self, method: str, max_pages: int) -> List[Conversation]:
        collected: List[Conversation] = []
        cursor: Optional[str] = None

        for _ in range(max_pages):
            response = self._client.call(
                method,
                limit=PAGE_SIZE,
                types=CONVERSATION_TYPES,
                cursor=cursor,
            )
            collected.extend(
                Conversation.from_api(item) for item in response.get("channels", []) if item.get("id")
            )
            cursor = (response.get("response_metadata") or {}).get("next_cursor") or None
            if not cursor:
                break

        return dedupe_conversations(collected)
