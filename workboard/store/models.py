"""
SQLAlchemy models for the signal store.

One table, keyed by the natural key (user_id, source, source_id).
Datetimes are stored as naive UTC.
"""

from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import JSON, Boolean, DateTime, Float, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class SignalRow(Base):
    """Persisted activity signal."""
    __tablename__ = "activity_signals"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    user_id: Mapped[str] = mapped_column(String(100), nullable=False)
    source: Mapped[str] = mapped_column(String(30), nullable=False)
    source_id: Mapped[str] = mapped_column(String(255), nullable=False)

    title: Mapped[str] = mapped_column(String(100), nullable=False)
    body: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    author: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    channel: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    priority_hint: Mapped[float] = mapped_column(Float, default=0.5)
    due_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    event_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    # "metadata" is reserved on declarative classes
    metadata_: Mapped[Dict[str, Any]] = mapped_column("metadata", JSON, default=dict)

    is_unread: Mapped[bool] = mapped_column(Boolean, default=True)
    is_flagged: Mapped[bool] = mapped_column(Boolean, default=False)
    is_mention: Mapped[bool] = mapped_column(Boolean, default=False)
    is_direct_message: Mapped[bool] = mapped_column(Boolean, default=False)
    is_starred: Mapped[bool] = mapped_column(Boolean, default=False)

    __table_args__ = (
        UniqueConstraint("user_id", "source", "source_id", name="uq_signal_natural_key"),
        Index("idx_signals_user_event", "user_id", "event_at"),
    )
