"""
Workboard Sync

Chat ingestion: conversation discovery, message normalisation,
actionability classification, and reconciliation with the signal store.
"""

from .classifier import (
    ClassificationContext,
    ClassificationResult,
    HeuristicTaskClassifier,
    LLMTaskClassifier,
    TaskClassifier,
    build_classifier,
)
from .collector import SlackSignalCollector
from .credentials import Connection, CredentialProvider, InMemoryCredentialProvider
from .directory import Conversation, ConversationDirectory
from .normalizer import HttpTranslator, MessageNormalizer, NullTranslator, Translator
from .selector import select_conversations
from .service import SignalSyncService
from .slack_api import SlackWebClient
from .upserter import ReconcileResult, SignalUpserter

__all__ = [
    "ClassificationContext",
    "ClassificationResult",
    "HeuristicTaskClassifier",
    "LLMTaskClassifier",
    "TaskClassifier",
    "build_classifier",
    "SlackSignalCollector",
    "Connection",
    "CredentialProvider",
    "InMemoryCredentialProvider",
    "Conversation",
    "ConversationDirectory",
    "HttpTranslator",
    "MessageNormalizer",
    "NullTranslator",
    "Translator",
    "select_conversations",
    "SignalSyncService",
    "SlackWebClient",
    "ReconcileResult",
    "SignalUpserter",
]
