"""
Signal Store

Durable keyed store of activity signals on SQLAlchemy. Writes that must
succeed or fail together go through ``transaction()``; read helpers open
their own short-lived session.
"""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional, Sequence

from sqlalchemy import create_engine, delete, func, not_, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..common.config import StoreConfig
from ..common.errors import StoreError
from ..common.schemas import ActivitySignal, SignalMetadata, SignalSource, ensure_utc
from .models import Base, SignalRow

logger = logging.getLogger("workboard.store.signal_store")

CHAT_SOURCES = (SignalSource.CHANNEL_MESSAGE.value, SignalSource.DIRECT_MESSAGE.value)


def _to_db_time(value: Optional[datetime]) -> Optional[datetime]:
    value = ensure_utc(value)
    return value.replace(tzinfo=None) if value is not None else None


def _is_memory_sqlite(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:")


class SignalStore:
    """
    Keyed signal storage.

    Usage:
        store = SignalStore("sqlite://")
        with store.transaction() as session:
            store.upsert(session, signal)
    """

    def __init__(self, database_url: str, echo: bool = False):
        engine_kwargs = {"echo": echo}
        if _is_memory_sqlite(database_url):
            # One shared connection, otherwise every session sees an empty database
            engine_kwargs["poolclass"] = StaticPool
            engine_kwargs["connect_args"] = {"check_same_thread": False}

        self.engine = create_engine(database_url, **engine_kwargs)
        self._session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        Base.metadata.create_all(self.engine)
        logger.info("Signal store ready (%s)", self.engine.url.render_as_string(hide_password=True))

    @classmethod
    def from_config(cls, config: StoreConfig) -> "SignalStore":
        return cls(config.database_url, echo=config.echo)

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        One atomic unit of work.

        Raises:
            StoreError: A database error occurred; nothing was committed
        """
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except SQLAlchemyError as e:
            session.rollback()
            logger.error("Signal store transaction rolled back: %s", e)
            raise StoreError(f"Signal store transaction failed: {e}") from e
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    # ------------------------------------------------------------------
    # Writes (inside a transaction)
    # ------------------------------------------------------------------

    def delete_window(self, session: Session, user_id: str, source: SignalSource, window_start: datetime) -> int:
        result = session.execute(
            delete(SignalRow).where(
                SignalRow.user_id == user_id,
                SignalRow.source == source.value,
                SignalRow.event_at >= _to_db_time(window_start),
            )
        )
        return result.rowcount or 0

    def delete_by_prefixes(
        self,
        session: Session,
        user_id: str,
        prefixes: Sequence[str],
        source: Optional[SignalSource] = None,
    ) -> int:
        """Delete the user's signals whose source_id starts with any prefix."""
        if not prefixes:
            return 0
        stmt = delete(SignalRow).where(
            SignalRow.user_id == user_id,
            or_(*[SignalRow.source_id.startswith(prefix, autoescape=True) for prefix in prefixes]),
        )
        if source is not None:
            stmt = stmt.where(SignalRow.source == source.value)
        result = session.execute(stmt)
        return result.rowcount or 0

    def upsert(self, session: Session, signal: ActivitySignal) -> bool:
        """Insert or update by natural key. Returns True when a row was inserted."""
        existing = session.execute(
            select(SignalRow).where(
                SignalRow.user_id == signal.user_id,
                SignalRow.source == signal.source.value,
                SignalRow.source_id == signal.source_id,
            )
        ).scalar_one_or_none()

        if existing is None:
            session.add(self._to_row(signal))
            return True

        self._apply(existing, signal)
        return False

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def count_real_chat_signals(
        self,
        user_id: str,
        window_start: datetime,
        excluded_prefixes: Sequence[str] = (),
    ) -> int:
        """Chat signals in the window, ignoring placeholder and legacy ids."""
        stmt = select(func.count()).select_from(SignalRow).where(
            SignalRow.user_id == user_id,
            SignalRow.source.in_(CHAT_SOURCES),
            SignalRow.event_at >= _to_db_time(window_start),
        )
        if excluded_prefixes:
            stmt = stmt.where(
                not_(or_(*[SignalRow.source_id.startswith(p, autoescape=True) for p in excluded_prefixes]))
            )
        with self._read_session() as session:
            return session.execute(stmt).scalar_one()

    def list_window(self, user_id: str, window_start: datetime, limit: int = 120) -> List[ActivitySignal]:
        """
        The user's signals since window_start, newest first.

        Non-chat sources are always included; chat signals only when they
        are a mention or a direct message.
        """
        stmt = (
            select(SignalRow)
            .where(
                SignalRow.user_id == user_id,
                SignalRow.event_at >= _to_db_time(window_start),
                or_(
                    SignalRow.source.not_in(CHAT_SOURCES),
                    SignalRow.is_mention.is_(True),
                    SignalRow.is_direct_message.is_(True),
                ),
            )
            .order_by(SignalRow.event_at.desc(), SignalRow.id.desc())
            .limit(limit)
        )
        with self._read_session() as session:
            return [self._to_signal(row) for row in session.execute(stmt).scalars()]

    def list_signals(self, user_id: str) -> List[ActivitySignal]:
        stmt = select(SignalRow).where(SignalRow.user_id == user_id).order_by(SignalRow.event_at.desc())
        with self._read_session() as session:
            return [self._to_signal(row) for row in session.execute(stmt).scalars()]

    def get(self, user_id: str, source: SignalSource, source_id: str) -> Optional[ActivitySignal]:
        stmt = select(SignalRow).where(
            SignalRow.user_id == user_id,
            SignalRow.source == source.value,
            SignalRow.source_id == source_id,
        )
        with self._read_session() as session:
            row = session.execute(stmt).scalar_one_or_none()
            return self._to_signal(row) if row is not None else None

    def save(self, signal: ActivitySignal) -> None:
        """Upsert a single signal in its own transaction (non-chat producers)."""
        with self.transaction() as session:
            self.upsert(session, signal)

    @contextmanager
    def _read_session(self) -> Iterator[Session]:
        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as e:
            raise StoreError(f"Signal store read failed: {e}") from e
        finally:
            session.close()

    # ------------------------------------------------------------------
    # Mapping
    # ------------------------------------------------------------------

    @staticmethod
    def _to_row(signal: ActivitySignal) -> SignalRow:
        row = SignalRow(
            user_id=signal.user_id,
            source=signal.source.value,
            source_id=signal.source_id,
        )
        SignalStore._apply(row, signal)
        return row

    @staticmethod
    def _apply(row: SignalRow, signal: ActivitySignal) -> None:
        row.title = signal.title
        row.body = signal.body
        row.url = signal.url
        row.author = signal.author
        row.channel = signal.channel
        row.priority_hint = signal.priority_hint
        row.due_at = _to_db_time(signal.due_at)
        row.event_at = _to_db_time(signal.event_at)
        row.metadata_ = signal.metadata.model_dump(mode="json", exclude_defaults=True)
        row.is_unread = signal.is_unread
        row.is_flagged = signal.is_flagged
        row.is_mention = signal.is_mention
        row.is_direct_message = signal.is_direct_message
        row.is_starred = signal.is_starred

    @staticmethod
    def _to_signal(row: SignalRow) -> ActivitySignal:
        return ActivitySignal(
            user_id=row.user_id,
            source=SignalSource(row.source),
            source_id=row.source_id,
            title=row.title,
            body=row.body,
            url=row.url,
            author=row.author,
            channel=row.channel,
            priority_hint=row.priority_hint,
            due_at=row.due_at,
            event_at=row.event_at,
            metadata=SignalMetadata.model_validate(row.metadata_ or {}),
            is_unread=row.is_unread,
            is_flagged=row.is_flagged,
            is_mention=row.is_mention,
            is_direct_message=row.is_direct_message,
            is_starred=row.is_starred,
        )
