"""
Workboard Schemas

Activity signals, per-user prioritization config, and scored board tasks.
"""

from .signal import (
    ActivitySignal,
    SignalMetadata,
    SignalSource,
    MentionMatchMode,
    MAX_TITLE_LENGTH,
    truncate_title,
    ensure_utc,
)
from .board import (
    Column,
    ScoredTask,
    UserProfile,
    UserPrioritizationConfig,
)

__all__ = [
    "ActivitySignal",
    "SignalMetadata",
    "SignalSource",
    "MentionMatchMode",
    "MAX_TITLE_LENGTH",
    "truncate_title",
    "ensure_utc",
    "Column",
    "ScoredTask",
    "UserProfile",
    "UserPrioritizationConfig",
]
