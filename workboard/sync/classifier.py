"""
Actionability Classifier

Decides whether a normalised chat message is a real work request aimed at
the user, and proposes a clean task title for it.

Two implementations:
- LLMTaskClassifier: small JSON-only LLM call (~200 tokens per message)
- HeuristicTaskClassifier: offline rules, used when no LLM key is configured
"""

import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

from ..common.config import LLMConfig
from ..common.llm_client import LLMClient
from ..common.llm_utils import parse_bool, parse_confidence, parse_llm_json
from .normalizer import compact_text

logger = logging.getLogger("workboard.sync.classifier")

TASK_TITLE_LIMIT = 120
MIN_HEURISTIC_TEXT_LENGTH = 30
MIN_HEURISTIC_TITLE_LENGTH = 15
HEURISTIC_CONFIDENCE = 0.85

SYSTEM_PROMPT = "You are a task classifier. Respond only with valid JSON."

CONFIDENCE_SCALE = 100.0

CLASSIFY_PROMPT = """Analyze this Slack message and determine if it's a REAL work task that requires action from the recipient.

Message: "{message}"
Context: {context}

Classification rules:
- ACCEPT: Clear requests for help, action, approval, review, or information directed AT the recipient
- REJECT: Greetings, casual conversation, statements without requests, announcements, FYI messages

Respond ONLY with valid JSON:
{{
  "isTask": boolean,
  "taskTitle": "clean task title (15-80 chars, no formatting, just the action needed)",
  "confidence": 0-100,
  "reason": "brief explanation"
}}"""

_MARKDOWN_PATTERNS = [
    (re.compile(r"```[^`]*```"), ""),
    (re.compile(r"\*([^*]+)\*"), r"\1"),
    (re.compile(r"_([^_]+)_"), r"\1"),
    (re.compile(r"~([^~]+)~"), r"\1"),
    (re.compile(r"`([^`]+)`"), r"\1"),
]

_SUBJECT_PREFIX_RE = re.compile(r"^(RE|FWD|FW):\s*", re.IGNORECASE)
_BRACKET_TAG_RE = re.compile(r"^\[.*?\]\s*")
_LEADING_MENTIONS_RE = re.compile(r"^(@[A-Za-z0-9._-]+\s+)+")
_USER_ID_RE = re.compile(r"@[UW][A-Z0-9]+")
_TRAILING_THANKS_RE = re.compile(r"\b(thanks|thank you|pls|please)\b[!. ]*$", re.IGNORECASE)
_CLAUSE_SPLIT_RE = re.compile(r"[.!?\n;]")

TASK_PREFIX_PATTERNS = [
    re.compile(r"^(can you|could you|would you|please|pls|kindly)\s+", re.IGNORECASE),
    re.compile(r"^(i need you to|need you to|need to)\s+", re.IGNORECASE),
    re.compile(r"^(action item|todo|to-do|next step|follow up|follow-up)\s*[:\-]?\s*", re.IGNORECASE),
]

_GREETING_RE = re.compile(r"^(hi|hello|hey|good morning|good afternoon|good evening|greetings)")
_ACKNOWLEDGEMENT_RE = re.compile(r"^(thanks|thank you|ok|okay|got it|noted|yes|yeah|yep|no|nope)")
_STATEMENT_RE = re.compile(r"^i (have|had) (a|an|another)")

EXPLICIT_REQUEST_PATTERNS = [
    re.compile(r"^(can you|could you|would you|will you) ", re.IGNORECASE),
    re.compile(r"^(please|pls) ", re.IGNORECASE),
    re.compile(r"^(i need you to|need you to) ", re.IGNORECASE),
    re.compile(r"^(requesting|require) ", re.IGNORECASE),
]


def strip_chat_markdown(text: str) -> str:
    for pattern, replacement in _MARKDOWN_PATTERNS:
        text = pattern.sub(replacement, text)
    return text.strip()


def build_task_title(text: str) -> str:
    """
    Derive a short imperative title from message text.

    Strips markdown, subject prefixes, leading mentions, request phrasing
    and trailing thanks, then keeps the first clause.
    """
    value = compact_text(text or "")
    if not value:
        return ""

    value = strip_chat_markdown(value)
    value = _SUBJECT_PREFIX_RE.sub("", value)
    value = _BRACKET_TAG_RE.sub("", value).strip()

    value = _LEADING_MENTIONS_RE.sub("", value)
    value = _USER_ID_RE.sub("", value)

    for pattern in TASK_PREFIX_PATTERNS:
        value = pattern.sub("", value)

    value = _TRAILING_THANKS_RE.sub("", value)
    value = compact_text(value)

    clauses = [clause.strip() for clause in _CLAUSE_SPLIT_RE.split(value)]
    task = next((clause for clause in clauses if clause), value)
    if not task:
        return ""

    title = task[0].upper() + task[1:]
    if len(title) > TASK_TITLE_LIMIT:
        return title[:TASK_TITLE_LIMIT - 3].rstrip() + "..."
    return title


@dataclass(frozen=True)
class ClassificationContext:
    is_mention: bool = False
    is_direct_message: bool = False
    sender_name: Optional[str] = None
    is_flagged: bool = False


@dataclass(frozen=True)
class ClassificationResult:
    """Result of one actionability check."""
    is_task: bool
    task_title: str = ""
    confidence: float = 0.0
    reason: str = ""

    @classmethod
    def failed(cls) -> "ClassificationResult":
        return cls(is_task=False, task_title="", confidence=0.0, reason="classification failed")


class TaskClassifier(ABC):
    """Implementations never raise; failures map to ClassificationResult.failed()."""

    @abstractmethod
    def classify(self, text: str, context: ClassificationContext) -> ClassificationResult:
        ...


class LLMTaskClassifier(TaskClassifier):
    """
    LLM-backed classifier.

    Any exception, unavailable client or unparsable answer yields the
    conservative ``failed()`` result, so a flaky model never blocks a sync.
    """

    def __init__(self, llm_client: LLMClient, max_tokens: int = 200, timeout: float = 20.0):
        self._llm = llm_client
        self._max_tokens = max_tokens
        self._timeout = timeout

    @property
    def is_available(self) -> bool:
        return self._llm.is_available

    def classify(self, text: str, context: ClassificationContext) -> ClassificationResult:
        if not self.is_available:
            return ClassificationResult.failed()

        try:
            raw = self._llm.generate(
                self._build_prompt(text, context),
                system=SYSTEM_PROMPT,
                max_tokens=self._max_tokens,
                timeout=self._timeout,
                json_mode=True,
            )
        except Exception as e:
            logger.warning("Task classification failed: %s", e)
            return ClassificationResult.failed()

        return self._parse_response(raw)

    @staticmethod
    def _build_prompt(text: str, context: ClassificationContext) -> str:
        where = "Direct message" if context.is_direct_message else "Mention"
        if context.sender_name:
            where += f" from {context.sender_name}"
        return CLASSIFY_PROMPT.format(message=text[:1000], context=where)

    @staticmethod
    def _parse_response(raw: str) -> ClassificationResult:
        data = parse_llm_json(raw)
        if not data or "isTask" not in data:
            logger.warning("Classifier returned no usable JSON")
            return ClassificationResult.failed()

        return ClassificationResult(
            is_task=parse_bool(data.get("isTask")),
            task_title=str(data.get("taskTitle") or "").strip(),
            confidence=parse_confidence(data.get("confidence"), scale=CONFIDENCE_SCALE),
            reason=str(data.get("reason") or ""),
        )


class HeuristicTaskClassifier(TaskClassifier):
    """Rule-based classifier for explicit requests sent by DM or mention."""

    def classify(self, text: str, context: ClassificationContext) -> ClassificationResult:
        if not context.is_mention and not context.is_direct_message:
            return self._reject("not DM/mention")

        cleaned = self._clean(text)
        if len(cleaned) < MIN_HEURISTIC_TEXT_LENGTH:
            return self._reject("too short")

        lower = cleaned.lower()
        if _GREETING_RE.match(lower):
            return self._reject("greeting")
        if _ACKNOWLEDGEMENT_RE.match(lower):
            return self._reject("acknowledgment")
        if _STATEMENT_RE.match(lower):
            return self._reject("statement not request")

        is_request = any(pattern.match(cleaned) for pattern in EXPLICIT_REQUEST_PATTERNS)
        if not is_request and not context.is_flagged:
            return self._reject("no explicit request")

        title = build_task_title(text)
        if len(title) < MIN_HEURISTIC_TITLE_LENGTH:
            return self._reject("no meaningful task title")

        return ClassificationResult(
            is_task=True,
            task_title=title,
            confidence=HEURISTIC_CONFIDENCE,
            reason="urgent request" if context.is_flagged else "explicit request",
        )

    @staticmethod
    def _reject(reason: str) -> ClassificationResult:
        return ClassificationResult(is_task=False, reason=reason)

    @staticmethod
    def _clean(text: str) -> str:
        value = strip_chat_markdown(compact_text(text or ""))
        value = _SUBJECT_PREFIX_RE.sub("", value)
        value = _BRACKET_TAG_RE.sub("", value)
        value = re.sub(r"^[^:]+:\s*", "", value).strip()
        # Drop a subject line that runs into the greeting or the request
        value = re.sub(
            r"^[^.!?]*?\s+(Hi|Hello|Hey|Good morning)\s+@", r"\1 @", value, flags=re.IGNORECASE
        )
        value = re.sub(
            r"^[^.!?]*?\s+(I have|I had|Can you|Could you|Would you|Please|Pls)\s+",
            r"\1 ",
            value,
            flags=re.IGNORECASE,
        ).strip()
        value = _USER_ID_RE.sub("", value)
        return compact_text(value)


def build_classifier(config: LLMConfig, llm_client: Optional[LLMClient] = None) -> TaskClassifier:
    """LLM classifier when a provider key is configured, heuristic otherwise."""
    client = llm_client or LLMClient.from_config(config)
    if client.is_available:
        logger.info("Using LLM task classifier (%s/%s)", config.provider, config.model)
        return LLMTaskClassifier(client, timeout=config.timeout)

    logger.info("LLM unavailable; using heuristic task classifier")
    return HeuristicTaskClassifier()
