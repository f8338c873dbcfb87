"""
Board Pipeline

sync -> chat mention/DM signals -> ranked tasks -> snapshot -> sink.
Persisting and rendering the board belong to whoever implements BoardSink.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Protocol

from ..common.schemas import ActivitySignal, ScoredTask, UserPrioritizationConfig, UserProfile
from ..sync.service import SignalSyncService
from .prioritization import build_task_board

logger = logging.getLogger("workboard.board.pipeline")


@dataclass
class BoardSnapshot:
    """One generated board for a sync window"""
    user_id: str
    window_start: datetime
    window_end: datetime
    tasks: List[ScoredTask] = field(default_factory=list)

    @property
    def total_tasks(self) -> int:
        return len(self.tasks)


class BoardSink(Protocol):
    """Receives generated boards (persistence, rendering, analytics)."""

    def save(self, user: UserProfile, snapshot: BoardSnapshot) -> None:
        ...


def board_candidates(signals: List[ActivitySignal]) -> List[ActivitySignal]:
    """Chat signals that are a mention or a DM."""
    return [s for s in signals if s.source.is_chat and (s.is_mention or s.is_direct_message)]


def generate_board(
    service: SignalSyncService,
    user: UserProfile,
    preferences: UserPrioritizationConfig,
    window_hours: int = 720,
    sink: Optional[BoardSink] = None,
    now: Optional[datetime] = None,
) -> BoardSnapshot:
    """Sync the user's signals and build their board for the window."""
    now = now or datetime.now(timezone.utc)
    signals = service.sync_signals(user, preferences, window_hours=window_hours, now=now)

    tasks = build_task_board(user, preferences, board_candidates(signals), now=now)
    snapshot = BoardSnapshot(
        user_id=user.id,
        window_start=now - timedelta(hours=window_hours),
        window_end=now,
        tasks=tasks[: preferences.task_max],
    )
    logger.info("Generated board for %s with %d tasks", user.id, snapshot.total_tasks)

    if sink is not None:
        sink.save(user, snapshot)
    return snapshot
