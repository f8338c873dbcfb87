"""
Slack Signal Collector

Reads recent DMs and mentions for one connected account and turns the
actionable ones into ActivitySignals.

Flow per run:
1. auth.test, resolve whose mentions count
2. Directory -> selector (DMs first, bounded)
3. conversations.history per conversation, through a bounded worker pool
4. Per message: filter -> normalise -> classify -> build signal
"""

import logging
import math
import re
import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..common.config import SlackConfig
from ..common.errors import SlackApiError, SyncFetchError, categorize_error
from ..common.schemas import (
    ActivitySignal,
    MentionMatchMode,
    SignalMetadata,
    SignalSource,
    UserPrioritizationConfig,
    truncate_title,
)
from .classifier import (
    ClassificationContext,
    ClassificationResult,
    TaskClassifier,
    build_task_title,
)
from .credentials import Connection
from .directory import Conversation, ConversationDirectory
from .normalizer import MessageNormalizer, compact_text, extract_mentioned_user_ids
from .selector import select_conversations
from .slack_api import SlackWebClient, is_bot_token

logger = logging.getLogger("workboard.sync.collector")

URGENCY_RE = re.compile(r"asap|urgent|eod|blocking|today|now", re.IGNORECASE)
_ACCOUNT_USER_ID_RE = re.compile(r"\b([UW][A-Z0-9]{5,})\b", re.IGNORECASE)

MIN_TITLE_LENGTH = 10
MAX_PRIORITY_HINT = 0.95
PRIORITY_HINT_SCALE = 0.9
INCLUDED_SUBTYPES = ("thread_broadcast",)

ClientFactory = Callable[[str], SlackWebClient]


def parse_user_id_from_account_name(account_name: Optional[str]) -> Optional[str]:
    if not account_name:
        return None
    match = _ACCOUNT_USER_ID_RE.search(account_name)
    return match.group(1).upper() if match else None


def resolve_mention_target_user_id(
    token: str,
    configured: Optional[str] = None,
    account_id: Optional[str] = None,
    account_name: Optional[str] = None,
    auth_user_id: Optional[str] = None,
) -> Optional[str]:
    """
    Whose mentions count, first hit wins:
    configured id, connection account id, an id inside the account name,
    then the auth.test user (never for bot tokens).
    """
    for candidate in (configured, account_id):
        if candidate and candidate.strip():
            return candidate.strip().upper()

    from_name = parse_user_id_from_account_name(account_name)
    if from_name:
        return from_name

    if not auth_user_id or not auth_user_id.strip():
        return None
    # A bot token's auth user is the bot, not the human
    if is_bot_token(token):
        return None
    return auth_user_id.strip().upper()


def parse_slack_ts(ts: str) -> Optional[datetime]:
    try:
        seconds = float(ts)
        if math.isnan(seconds) or math.isinf(seconds):
            return None
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        return None


class DisplayNameCache:
    """Append-only user id -> display name cache; lookup failures cache the id."""

    def __init__(self):
        self._names: Dict[str, str] = {}
        self._lock = threading.Lock()

    def resolve(self, client: SlackWebClient, user_id: Optional[str]) -> Optional[str]:
        if not user_id:
            return None
        key = user_id.upper()

        with self._lock:
            cached = self._names.get(key)
        if cached:
            return cached

        try:
            response = client.call("users.info", user=key)
            label = self._pick_label(response.get("user") or {}) or key
        except SlackApiError as e:
            logger.debug("users.info failed for %s: %s", key, e)
            label = key

        with self._lock:
            self._names.setdefault(key, label)
        return label

    @staticmethod
    def _pick_label(user: dict) -> Optional[str]:
        profile = user.get("profile") or {}
        for value in (
            profile.get("display_name"),
            user.get("real_name"),
            profile.get("real_name"),
            user.get("name"),
        ):
            if value and value.strip():
                return value.strip()
        return None


class _RunContext:
    """Per-run state shared by the history workers"""

    def __init__(
        self,
        user_id: str,
        client: SlackWebClient,
        target_user_id: Optional[str],
        my_user_id: Optional[str],
        allow_unverified: bool,
        oldest: str,
    ):
        self.user_id = user_id
        self.client = client
        self.target_user_id = target_user_id
        self.my_user_id = my_user_id
        self.allow_unverified = allow_unverified
        self.oldest = oldest

    @property
    def match_mode(self) -> MentionMatchMode:
        if self.target_user_id:
            return MentionMatchMode.STRICT_TARGET_USER
        return MentionMatchMode.FALLBACK_ANY_MENTION


class SlackSignalCollector:
    """
    Collects actionable chat signals for one user.

    Usage:
        collector = SlackSignalCollector(config.slack, normalizer, classifier)
        signals = collector.collect(user_id, token, connection, preferences, window_start)
    """

    def __init__(
        self,
        slack_config: SlackConfig,
        normalizer: MessageNormalizer,
        classifier: TaskClassifier,
        client_factory: Optional[ClientFactory] = None,
        max_signals: int = 80,
    ):
        self._config = slack_config
        self._normalizer = normalizer
        self._classifier = classifier
        self._client_factory = client_factory or self._default_client
        self._max_signals = max_signals
        self._display_names = DisplayNameCache()

    def _default_client(self, token: str) -> SlackWebClient:
        return SlackWebClient(token, api_base=self._config.api_base, timeout=self._config.timeout)

    def close(self) -> None:
        """Release the translator connection; per-run Slack clients close themselves."""
        self._normalizer.close()

    def collect(
        self,
        user_id: str,
        token: str,
        connection: Connection,
        preferences: UserPrioritizationConfig,
        window_start: datetime,
    ) -> List[ActivitySignal]:
        """
        Live signals for the window, newest first.

        Raises:
            SlackApiError: auth.test or the conversation listing failed
            SyncFetchError: every history fetch that ran failed and nothing was produced
        """
        client = self._client_factory(token)
        try:
            return self._collect(client, user_id, token, connection, preferences, window_start)
        finally:
            client.close()

    def _collect(
        self,
        client: SlackWebClient,
        user_id: str,
        token: str,
        connection: Connection,
        preferences: UserPrioritizationConfig,
        window_start: datetime,
    ) -> List[ActivitySignal]:
        auth = client.call("auth.test")
        auth_user_id = (auth.get("user_id") or "").strip().upper() or None

        target = resolve_mention_target_user_id(
            token,
            configured=self._config.target_user_id,
            account_id=connection.account_id,
            account_name=connection.account_name,
            auth_user_id=auth_user_id,
        )
        strict_only = self._config.mention_mode == "strict"
        if not target:
            if strict_only:
                logger.warning("Strict mention mode without a resolvable user id; mention and DM signals are disabled")
            else:
                logger.warning(
                    "Mention filtering is using fallback (any explicit @mention). "
                    "Set SLACK_TARGET_USER_ID for strict personal filtering."
                )

        conversations = ConversationDirectory(client).list_conversations()
        selected = select_conversations(
            conversations,
            preferences.key_channels,
            limit=self._config.max_conversations,
        )
        if not selected:
            logger.info("No readable conversations for %s", user_id)
            return []

        run = _RunContext(
            user_id=user_id,
            client=client,
            target_user_id=target,
            my_user_id=target or auth_user_id,
            allow_unverified=not strict_only,
            oldest=str(math.floor(window_start.timestamp())),
        )

        signals, categories = self._fetch_all(run, selected)

        if not signals and categories:
            error = SyncFetchError(categories)
            logger.error("Slack signal sync failed: %s", error)
            raise error

        signals.sort(key=lambda s: s.event_at, reverse=True)
        logger.info("Collected %d chat signals from %d conversations", len(signals), len(selected))
        return signals[: self._max_signals]

    def _fetch_all(
        self, run: _RunContext, conversations: Sequence[Conversation]
    ) -> Tuple[List[ActivitySignal], List[str]]:
        signals: List[ActivitySignal] = []
        categories: List[str] = []
        workers = max(1, self._config.max_workers)

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="slack-history") as pool:
            futures = [(c, pool.submit(self._process_conversation, run, c)) for c in conversations]
            # Results are consumed in submission order
            for conversation, future in futures:
                try:
                    signals.extend(future.result())
                except Exception as e:
                    category = categorize_error(e)
                    categories.append(category)
                    logger.warning("Slack channel history skipped %s (%s): %s", conversation.id, category, e)

        return signals, categories

    def _process_conversation(self, run: _RunContext, conversation: Conversation) -> List[ActivitySignal]:
        history = run.client.call(
            "conversations.history",
            channel=conversation.id,
            oldest=run.oldest,
            limit=self._config.history_limit,
            inclusive="true",
        )

        signals = []
        for message in history.get("messages") or []:
            signal = self._process_message(run, conversation, message)
            if signal is not None:
                signals.append(signal)
        return signals

    def _process_message(
        self, run: _RunContext, conversation: Conversation, message: dict
    ) -> Optional[ActivitySignal]:
        ts = message.get("ts")
        raw = message.get("text")
        if not ts or not raw:
            return None
        subtype = message.get("subtype")
        if subtype and subtype not in INCLUDED_SUBTYPES:
            return None

        event_at = parse_slack_ts(ts)
        if event_at is None:
            return None

        raw_text = compact_text(raw)
        if not raw_text:
            return None

        mentioned = extract_mentioned_user_ids(raw_text)
        if run.target_user_id:
            is_mention = run.target_user_id in mentioned
        else:
            is_mention = run.allow_unverified and bool(mentioned)

        sender_id = (message.get("user") or "").strip().upper() or None
        if run.my_user_id:
            is_dm_to_me = conversation.is_im and bool(sender_id) and sender_id != run.my_user_id
        else:
            # Without a known identity our own outgoing DMs look like incoming ones
            is_dm_to_me = conversation.is_im and bool(sender_id) and run.allow_unverified
        if not is_mention and not is_dm_to_me:
            return None

        normalized = self._normalizer.normalize(raw_text)
        text = normalized.text
        if not text:
            return None
        is_flagged = bool(URGENCY_RE.search(text))
        sender_name = self._display_names.resolve(run.client, sender_id)

        result = self._classify(
            text,
            ClassificationContext(
                is_mention=is_mention,
                is_direct_message=is_dm_to_me,
                sender_name=sender_name,
                is_flagged=is_flagged,
            ),
        )
        if not result.is_task and not is_flagged:
            return None

        task_title = result.task_title or build_task_title(text)
        if len(task_title) < MIN_TITLE_LENGTH:
            return None

        return ActivitySignal(
            user_id=run.user_id,
            source=SignalSource.CHANNEL_MESSAGE,
            source_id=f"{conversation.id}:{ts}",
            title=truncate_title(task_title),
            body=text,
            author=sender_name,
            channel=conversation.label,
            priority_hint=min(MAX_PRIORITY_HINT, result.confidence * PRIORITY_HINT_SCALE),
            event_at=event_at,
            metadata=SignalMetadata(
                type="dm" if conversation.is_im else "channel",
                task_reason=result.reason,
                classifier_title=result.task_title,
                classifier_confidence=result.confidence,
                conversation_id=conversation.id,
                raw_ts=ts,
                mention_target_user_id=run.target_user_id,
                mention_match_mode=run.match_mode,
                mentioned_user_ids=mentioned,
                is_direct_dm_to_me=is_dm_to_me,
                original_text=normalized.original if normalized.changed else None,
                language=normalized.language,
            ),
            is_unread=True,
            is_flagged=is_flagged,
            is_mention=is_mention,
            is_direct_message=is_dm_to_me,
            is_starred=False,
        )

    def _classify(self, text: str, context: ClassificationContext) -> ClassificationResult:
        try:
            return self._classifier.classify(text, context)
        except Exception as e:
            logger.warning("Classifier raised, treating message as not a task: %s", e)
            return ClassificationResult.failed()
