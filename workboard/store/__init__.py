"""
Workboard Store

SQLAlchemy-backed persistence for activity signals.
"""

from .models import Base, SignalRow
from .signal_store import SignalStore

__all__ = ["Base", "SignalRow", "SignalStore"]
