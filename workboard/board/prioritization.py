"""
Prioritization Engine

Scores deduplicated activity signals and returns a bounded, ranked task
list with a column and a human-readable rationale for each entry.

score = source weight + due score + urgency + stakeholder
        + meeting dependency + role focus boost

Pure: no I/O, ``now`` is injectable.
"""

import math
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Sequence

from ..common.schemas import (
    ActivitySignal,
    Column,
    ScoredTask,
    SignalSource,
    UserPrioritizationConfig,
    UserProfile,
)

URGENCY_HINTS = ("asap", "urgent", "eod", "blocking", "today", "now")
ROLE_FOCUS_RE = re.compile(r"automation|agent|ai|workflow|enablement", re.IGNORECASE)

MAX_BOARD_SIZE = 20
MIN_CONFIDENCE = 0.45
MAX_CONFIDENCE = 0.99

ROLE_FOCUS_BOOST = 0.14
KEYWORD_HIT_SCORE = 0.08
KEYWORD_SCORE_CAP = 0.22
FLAG_SCORE = 0.05
URGENCY_SCORE_CAP = 0.30
KEY_STAKEHOLDER_SCORE = 0.20
OTHER_STAKEHOLDER_SCORE = 0.04

NOW_THRESHOLD = 0.78
NEXT_THRESHOLD = 0.58

# Sources deduplicated by their upstream id rather than by title
_ID_KEYED_SOURCES = (SignalSource.ISSUE_TRACKER, SignalSource.MANUAL)

_EFFORT_BASE_MINUTES: Dict[SignalSource, int] = {
    SignalSource.CHANNEL_MESSAGE: 12,
    SignalSource.DIRECT_MESSAGE: 12,
    SignalSource.EMAIL: 18,
    SignalSource.CALENDAR: 25,
    SignalSource.ISSUE_TRACKER: 22,
    SignalSource.MANUAL: 20,
}

_WHITESPACE_RE = re.compile(r"\s+")


@dataclass
class RankedTask:
    """A scored task with its internal score, dropped before return"""
    task: ScoredTask
    score: float


def normalize_key(value: Optional[str]) -> str:
    return _WHITESPACE_RE.sub(" ", (value or "").lower()).strip()


def activity_key(signal: ActivitySignal) -> str:
    source = signal.source.value
    if signal.source in _ID_KEYED_SOURCES:
        return f"{source}:{normalize_key(signal.source_id)}"

    title = normalize_key(signal.title)
    if not title:
        return f"{source}:{normalize_key(signal.source_id)}"
    return f"{source}:{title}:{normalize_key(signal.author)}:{normalize_key(signal.channel)}"


def dedupe_signals(signals: Iterable[ActivitySignal]) -> List[ActivitySignal]:
    """Newest first; later duplicates of a key are dropped."""
    ordered = sorted(signals, key=lambda s: s.event_at, reverse=True)
    seen = set()
    unique = []
    for signal in ordered:
        key = activity_key(signal)
        if key in seen:
            continue
        seen.add(key)
        unique.append(signal)
    return unique


def merge_keywords(keywords: Sequence[str]) -> List[str]:
    merged: List[str] = []
    for keyword in list(URGENCY_HINTS) + [k.lower() for k in keywords]:
        if keyword and keyword not in merged:
            merged.append(keyword)
    return merged


def _hours_until(when: datetime, now: datetime) -> float:
    return (when - now).total_seconds() / 3600.0


def source_weight(source: SignalSource, config: UserPrioritizationConfig) -> float:
    if source == SignalSource.MANUAL:
        return 0.95
    if source.is_chat:
        return config.channel_weight
    if source == SignalSource.EMAIL:
        return config.email_weight
    if source == SignalSource.CALENDAR:
        return config.calendar_weight
    if source == SignalSource.ISSUE_TRACKER:
        return 0.32
    return 0.20


def due_score(due_at: Optional[datetime], now: datetime) -> float:
    if due_at is None:
        return 0.08
    hours = _hours_until(due_at, now)
    if hours <= 0:
        return 0.28
    if hours <= 2:
        return 0.24
    if hours <= 8:
        return 0.18
    if hours <= 24:
        return 0.12
    return 0.06


def _signal_text(signal: ActivitySignal) -> str:
    return f"{signal.title} {signal.body or ''}"


def urgency_score(signal: ActivitySignal, keywords: Sequence[str]) -> float:
    text = _signal_text(signal).lower()
    hits = sum(1 for keyword in keywords if keyword in text)

    score = min(KEYWORD_SCORE_CAP, hits * KEYWORD_HIT_SCORE)
    for flag in (signal.is_mention, signal.is_direct_message, signal.is_flagged):
        if flag:
            score += FLAG_SCORE
    return min(URGENCY_SCORE_CAP, score)


def stakeholder_score(author: Optional[str], exec_senders: Sequence[str]) -> float:
    if not author:
        return 0.0
    lowered = author.lower()
    if any(sender.lower() in lowered for sender in exec_senders):
        return KEY_STAKEHOLDER_SCORE
    return OTHER_STAKEHOLDER_SCORE


def meeting_dependency_score(signal: ActivitySignal, now: datetime) -> float:
    if signal.source != SignalSource.CALENDAR:
        return 0.0
    if signal.due_at is None:
        return 0.07
    hours = _hours_until(signal.due_at, now)
    if hours <= 0:
        return 0.16
    if hours <= 3:
        return 0.14
    if hours <= 8:
        return 0.11
    return 0.06


def role_focus_boost(signal: ActivitySignal) -> float:
    return ROLE_FOCUS_BOOST if ROLE_FOCUS_RE.search(_signal_text(signal)) else 0.0


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def estimate_effort(signal: ActivitySignal) -> int:
    size_adjust = min(20, round_half_up(len(_signal_text(signal)) / 45))
    return _EFFORT_BASE_MINUTES.get(signal.source, 20) + size_adjust


def pick_column(score: float, due_at: Optional[datetime], now: datetime) -> Column:
    if due_at is not None and due_at < now:
        return Column.NOW
    if score >= NOW_THRESHOLD:
        return Column.NOW
    if score >= NEXT_THRESHOLD:
        return Column.NEXT
    return Column.WAITING


def board_limit(config: UserPrioritizationConfig) -> int:
    return min(MAX_BOARD_SIZE, max(config.task_min, min(config.task_max, MAX_BOARD_SIZE)))


def score_signal(
    signal: ActivitySignal,
    user: UserProfile,
    config: UserPrioritizationConfig,
    keywords: Sequence[str],
    now: datetime,
) -> RankedTask:
    due = due_score(signal.due_at, now)
    urgency = urgency_score(signal, keywords)
    stakeholder = stakeholder_score(signal.author, config.exec_senders)
    dependency = meeting_dependency_score(signal, now)
    boost = role_focus_boost(signal)

    score = source_weight(signal.source, config) + due + urgency + stakeholder + dependency + boost

    why_parts = [
        f"from {signal.author}" if signal.author else "",
        "has a near deadline" if due > 0.15 else "active signal",
        "contains urgency language" if urgency > 0.12 else "",
        "from a key stakeholder" if stakeholder > 0.12 else "",
        "is tied to an upcoming meeting" if dependency > 0.12 else "",
        f"matches {user.role_title} focus" if boost > 0 else "",
    ]

    task = ScoredTask(
        title=signal.title,
        source=signal.source,
        effort_minutes=estimate_effort(signal),
        due_at=signal.due_at,
        column=pick_column(score, signal.due_at, now),
        link=signal.url,
        confidence=max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, score)),
        why="; ".join(part for part in why_parts if part),
    )
    return RankedTask(task=task, score=score)


def rank_signals(
    user: UserProfile,
    config: UserPrioritizationConfig,
    signals: Iterable[ActivitySignal],
    now: Optional[datetime] = None,
) -> List[RankedTask]:
    """Deduplicated, scored and sorted by score descending; not bounded."""
    now = now or datetime.now(timezone.utc)
    keywords = merge_keywords(config.keywords)
    ranked = [score_signal(s, user, config, keywords, now) for s in dedupe_signals(signals)]
    ranked.sort(key=lambda r: r.score, reverse=True)
    return ranked


def build_task_board(
    user: UserProfile,
    config: UserPrioritizationConfig,
    signals: Iterable[ActivitySignal],
    now: Optional[datetime] = None,
) -> List[ScoredTask]:
    """
    Rank signals into a board.

    Args:
        user: Board owner (role title feeds the rationale)
        config: Per-user weights, keywords, stakeholders and size bounds
        signals: Candidate signals, any order, may contain duplicates
        now: Reference time for due/meeting scores

    Returns:
        At most 20 tasks, highest score first
    """
    ranked = rank_signals(user, config, signals, now)
    return [r.task for r in ranked[: board_limit(config)]]
