"""
Signal Upserter

Reconciles one sync run's generated signals with the store in a single
transaction: the window is rebuilt from the live view of the source, so
messages that disappeared upstream disappear here too.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Sequence, Tuple

from ..common.schemas import ActivitySignal, SignalSource
from ..store.signal_store import SignalStore
from .placeholders import LEGACY_PREFIXES, PLACEHOLDER_PREFIX

logger = logging.getLogger("workboard.sync.upserter")


@dataclass
class ReconcileResult:
    deleted_in_window: int = 0
    deleted_legacy: int = 0
    deleted_placeholders: int = 0
    inserted: int = 0
    updated: int = 0

    @property
    def written(self) -> int:
        return self.inserted + self.updated


def collapse_by_natural_key(signals: Sequence[ActivitySignal]) -> Dict[Tuple[str, str, str], ActivitySignal]:
    """Last signal generated for a key wins; first-seen order is kept."""
    collapsed: Dict[Tuple[str, str, str], ActivitySignal] = {}
    for signal in signals:
        collapsed[signal.natural_key] = signal
    return collapsed


class SignalUpserter:
    """Applies a sync run to the store as one unit of work."""

    def __init__(self, store: SignalStore):
        self._store = store

    def reconcile(
        self,
        user_id: str,
        source: SignalSource,
        window_start: datetime,
        signals: Sequence[ActivitySignal],
        keep_placeholders: bool = False,
    ) -> ReconcileResult:
        """
        Rebuild the user's window for one source.

        Steps, all in one transaction:
        1. Delete the source's signals with event_at >= window_start
        2. Delete legacy-prefixed signals of the user, any window
        3. Upsert each generated signal by natural key
        4. Delete placeholder signals unless this run used them

        Raises:
            StoreError: The transaction was rolled back
        """
        result = ReconcileResult()
        owned = [s for s in signals if s.user_id == user_id and s.source == source]
        if len(owned) != len(signals):
            logger.warning("Ignoring %d signals for another user or source", len(signals) - len(owned))
        collapsed = collapse_by_natural_key(owned)

        with self._store.transaction() as session:
            result.deleted_in_window = self._store.delete_window(session, user_id, source, window_start)
            result.deleted_legacy = self._store.delete_by_prefixes(session, user_id, LEGACY_PREFIXES)

            for signal in collapsed.values():
                if self._store.upsert(session, signal):
                    result.inserted += 1
                else:
                    result.updated += 1

            if not keep_placeholders:
                result.deleted_placeholders = self._store.delete_by_prefixes(
                    session, user_id, [PLACEHOLDER_PREFIX], source=source
                )

        logger.info(
            "Reconciled %s signals for %s: %d inserted, %d updated, %d removed from window",
            source.value,
            user_id,
            result.inserted,
            result.updated,
            result.deleted_in_window,
        )
        return result
