"""
Workboard Common Module

Shared infrastructure for the sync pipeline and the board engine.
"""

from .config import WorkboardConfig, load_config
from .errors import (
    WorkboardError,
    ConfigurationError,
    CredentialError,
    SlackApiError,
    SyncFetchError,
    StoreError,
)
from .llm_client import LLMClient

__all__ = [
    "WorkboardConfig",
    "load_config",
    "WorkboardError",
    "ConfigurationError",
    "CredentialError",
    "SlackApiError",
    "SyncFetchError",
    "StoreError",
    "LLMClient",
]
