"""
Signal Sync Service

Entry point for one sync run: resolve credentials, collect live chat
signals, reconcile them with the store, and return the user's window.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import List, Optional

from ..common.config import WorkboardConfig
from ..common.errors import CredentialError
from ..common.schemas import ActivitySignal, SignalSource, UserPrioritizationConfig, UserProfile
from ..store.signal_store import SignalStore
from .classifier import build_classifier
from .collector import SlackSignalCollector
from .credentials import CredentialProvider, SlackCredential
from .normalizer import MessageNormalizer, build_translator
from .placeholders import LEGACY_PREFIXES, PLACEHOLDER_PREFIX, build_placeholder_signals
from .upserter import ReconcileResult, SignalUpserter

logger = logging.getLogger("workboard.sync.service")

CHAT_SOURCE = SignalSource.CHANNEL_MESSAGE


class SignalSyncService:
    """
    Runs chat syncs for users against one store.

    Usage:
        service = SignalSyncService.from_config(config, credentials)
        signals = service.sync_signals(user, preferences)
    """

    def __init__(
        self,
        config: WorkboardConfig,
        store: SignalStore,
        credentials: CredentialProvider,
        collector: SlackSignalCollector,
    ):
        self._config = config
        self._store = store
        self._credentials = credentials
        self._collector = collector
        self._upserter = SignalUpserter(store)
        self.last_result: Optional[ReconcileResult] = None

    @classmethod
    def from_config(
        cls,
        config: WorkboardConfig,
        credentials: CredentialProvider,
        store: Optional[SignalStore] = None,
    ) -> "SignalSyncService":
        """Wire the default collector (configured translator and classifier)."""
        collector = SlackSignalCollector(
            config.slack,
            MessageNormalizer(build_translator(config.translation)),
            build_classifier(config.llm),
            max_signals=config.sync.max_live_signals,
        )
        return cls(config, store or SignalStore.from_config(config.store), credentials, collector)

    def close(self) -> None:
        self._collector.close()

    def __enter__(self) -> "SignalSyncService":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def sync_signals(
        self,
        user: UserProfile,
        preferences: UserPrioritizationConfig,
        window_hours: Optional[int] = None,
        now: Optional[datetime] = None,
    ) -> List[ActivitySignal]:
        """
        Sync the user's chat signals and return their in-window signals.

        Raises:
            ConfigurationError: Encryption key missing
            SlackApiError: Token owner or conversation listing unavailable
            SyncFetchError: Every history fetch failed with nothing produced
            StoreError: Reconcile transaction rolled back
        """
        now = now or datetime.now(timezone.utc)
        hours = window_hours if window_hours is not None else self._config.sync.default_window_hours
        window_start = now - timedelta(hours=hours)

        credential = self._resolve_credential(user)

        real_count = self._store.count_real_chat_signals(
            user.id, window_start, excluded_prefixes=(PLACEHOLDER_PREFIX,) + LEGACY_PREFIXES
        )

        live: List[ActivitySignal] = []
        if credential is not None:
            live = self._collector.collect(
                user.id,
                credential.token,
                credential.connection,
                preferences,
                window_start,
            )

        use_placeholders = self._config.sync.backfill_placeholders and real_count == 0 and not live
        generated = list(live)
        if use_placeholders:
            logger.info("No chat activity for %s yet; adding placeholder signals", user.id)
            generated.extend(build_placeholder_signals(user.id, preferences, now))

        self.last_result = self._upserter.reconcile(
            user.id,
            CHAT_SOURCE,
            window_start,
            generated,
            keep_placeholders=use_placeholders,
        )

        return self._store.list_window(user.id, window_start, limit=self._config.sync.max_returned_signals)

    def _resolve_credential(self, user: UserProfile) -> Optional[SlackCredential]:
        try:
            return self._credentials.resolve(user.id)
        except CredentialError as e:
            logger.info("Skipping live Slack sync for %s (%s): %s", user.id, e.reason, e)
            return None
