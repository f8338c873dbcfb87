"""
Activity Signal Schema

Core principle: a signal is identified by its natural key
(user_id, source, source_id). Re-ingesting the same key is an update,
never a second record.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from pydantic import BaseModel, Field, field_validator
from enum import Enum


# Titles longer than this are cut to 97 chars + "..."
MAX_TITLE_LENGTH = 100


# ============================================================================
# Enums
# ============================================================================

class SignalSource(str, Enum):
    """Where a signal came from"""
    CHANNEL_MESSAGE = "channel_message"
    DIRECT_MESSAGE = "direct_message"
    CALENDAR = "calendar"
    EMAIL = "email"
    ISSUE_TRACKER = "issue_tracker"
    MANUAL = "manual"

    @property
    def is_chat(self) -> bool:
        return self in (SignalSource.CHANNEL_MESSAGE, SignalSource.DIRECT_MESSAGE)


class MentionMatchMode(str, Enum):
    """How mentions were matched against the user"""
    STRICT_TARGET_USER = "strict-target-user"
    FALLBACK_ANY_MENTION = "fallback-any-mention"


# ============================================================================
# Sub-models
# ============================================================================

class SignalMetadata(BaseModel):
    """
    Provenance bag attached to a signal.

    Well-known fields are typed; anything else goes in ``extra``.
    """
    type: Optional[str] = None  # "dm" | "channel" | "mention"
    task_reason: Optional[str] = None
    classifier_title: Optional[str] = None
    classifier_confidence: Optional[float] = None
    conversation_id: Optional[str] = None
    raw_ts: Optional[str] = None
    mention_target_user_id: Optional[str] = None
    mention_match_mode: Optional[MentionMatchMode] = None
    mentioned_user_ids: List[str] = Field(default_factory=list)
    is_direct_dm_to_me: Optional[bool] = None
    original_text: Optional[str] = None  # set only when normalization changed the text
    language: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    extra: Dict[str, Any] = Field(default_factory=dict)


# ============================================================================
# Main Schema
# ============================================================================

class ActivitySignal(BaseModel):
    """One observed unit of incoming work-relevant activity."""
    user_id: str
    source: SignalSource
    source_id: str = Field(..., min_length=1, description="Stable per-source id, e.g. C123:1700000000.0001")

    title: str = Field(..., description="Short task title (<=100 chars)")
    body: Optional[str] = None
    url: Optional[str] = None
    author: Optional[str] = None
    channel: Optional[str] = None
    priority_hint: float = Field(ge=0.0, le=1.0, default=0.5)
    due_at: Optional[datetime] = None
    event_at: datetime

    metadata: SignalMetadata = Field(default_factory=SignalMetadata)

    is_unread: bool = True
    is_flagged: bool = False
    is_mention: bool = False
    is_direct_message: bool = False
    is_starred: bool = False

    @field_validator("title")
    @classmethod
    def _truncate_title(cls, value: str) -> str:
        return truncate_title(value)

    @field_validator("due_at", "event_at")
    @classmethod
    def _ensure_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value)

    @property
    def natural_key(self) -> Tuple[str, str, str]:
        return (self.user_id, self.source.value, self.source_id)


def truncate_title(title: str, limit: int = MAX_TITLE_LENGTH) -> str:
    """Cut a title to ``limit`` chars, ending in '...' when cut"""
    title = (title or "").strip()
    if len(title) <= limit:
        return title
    return title[: limit - 3].rstrip() + "..."


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Naive datetimes are treated as UTC"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
