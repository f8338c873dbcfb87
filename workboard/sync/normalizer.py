"""
Message Normalizer

Turns raw chat markup into compact English text for classification:
decode Slack markup, apply a small Tagalog task glossary, and translate
through an external service only when the text does not already look
English. Results are memoised per decoded text.
"""

import logging
import re
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from ..common.config import TranslationConfig
from ..common.language import detect_language, looks_like_english

logger = logging.getLogger("workboard.sync.normalizer")

_WHITESPACE_RE = re.compile(r"\s+")

_USER_REF_RE = re.compile(r"<@([A-Z0-9]+)>", re.IGNORECASE)
_CHANNEL_REF_RE = re.compile(r"<#([A-Z0-9]+)\|([^>]+)>", re.IGNORECASE)
_LABELED_LINK_RE = re.compile(r"<([^>|]+)\|([^>]+)>")
_BARE_REF_RE = re.compile(r"<([^>]+)>")
_MENTION_RE = re.compile(r"<@([UW][A-Z0-9]+)(?:\|[^>]+)?>", re.IGNORECASE)

# Tagalog task vocabulary seen in mixed-language workspaces
GLOSSARY = [
    (re.compile(r"\bpaki\b", re.IGNORECASE), "please"),
    (re.compile(r"\bpakisuyo\b", re.IGNORECASE), "please"),
    (re.compile(r"\bkailangan\b", re.IGNORECASE), "need"),
    (re.compile(r"\bngayon\b", re.IGNORECASE), "today"),
    (re.compile(r"\bbukas\b", re.IGNORECASE), "tomorrow"),
    (re.compile(r"\bmamaya\b", re.IGNORECASE), "later"),
    (re.compile(r"\bagad\b", re.IGNORECASE), "immediately"),
    (re.compile(r"\bsalamat\b", re.IGNORECASE), "thanks"),
    (re.compile(r"\bpa-?review\b", re.IGNORECASE), "review"),
    (re.compile(r"\bpa-?approve\b", re.IGNORECASE), "approve"),
    (re.compile(r"\bpa-?update\b", re.IGNORECASE), "update"),
]


def compact_text(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def decode_markup(text: str) -> str:
    """Replace Slack angle-bracket references with their readable form."""
    text = _USER_REF_RE.sub(r"@\1", text)
    text = _CHANNEL_REF_RE.sub(r"#\2", text)
    text = _LABELED_LINK_RE.sub(r"\2", text)
    return _BARE_REF_RE.sub(r"\1", text)


def extract_mentioned_user_ids(text: str) -> List[str]:
    """User ids referenced as ``<@U123>`` or ``<@U123|label>``, upper-cased."""
    return [match.upper() for match in _MENTION_RE.findall(text)]


def apply_glossary(text: str) -> str:
    for pattern, replacement in GLOSSARY:
        text = pattern.sub(replacement, text)
    return compact_text(text)


class Translator(ABC):
    """Translates text to English. Returns None when translation is unavailable."""

    @abstractmethod
    def translate(self, text: str) -> Optional[str]:
        ...

    def close(self) -> None:
        pass


class NullTranslator(Translator):
    """Used when no translation service is configured."""

    def translate(self, text: str) -> Optional[str]:
        return None


class HttpTranslator(Translator):
    """
    LibreTranslate-compatible translation endpoint.

    Errors, timeouts and non-2xx responses all come back as None so the
    caller keeps the untranslated text.
    """

    def __init__(
        self,
        api_url: str,
        api_key: str = "",
        timeout: float = 3.5,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self._api_url = api_url
        self._api_key = api_key
        self._http = httpx.Client(timeout=httpx.Timeout(timeout), transport=transport)

    def translate(self, text: str) -> Optional[str]:
        body: Dict[str, Any] = {
            "q": text,
            "source": "auto",
            "target": "en",
            "format": "text",
        }
        headers = {}
        if self._api_key:
            body["api_key"] = self._api_key
            headers["x-api-key"] = self._api_key

        try:
            response = self._http.post(self._api_url, json=body, headers=headers)
        except httpx.HTTPError as e:
            logger.warning("Translation request failed: %s", e)
            return None

        if not response.is_success:
            logger.warning("Translation service returned HTTP %d", response.status_code)
            return None

        try:
            payload = response.json()
        except ValueError:
            logger.warning("Translation service returned invalid JSON")
            return None

        translated = self._extract(payload)
        return compact_text(translated) if translated else None

    @staticmethod
    def _extract(payload: Any) -> Optional[str]:
        if not isinstance(payload, dict):
            return None
        for key in ("translatedText", "translation"):
            if payload.get(key):
                return str(payload[key])
        translations = (payload.get("data") or {}).get("translations") or []
        if translations and isinstance(translations[0], dict):
            return translations[0].get("translatedText") or None
        return None

    def close(self) -> None:
        self._http.close()


def build_translator(config: TranslationConfig) -> Translator:
    if not config.api_url:
        logger.info("No translation endpoint configured; non-English text is kept as-is")
        return NullTranslator()
    return HttpTranslator(config.api_url, api_key=config.api_key, timeout=config.timeout)


@dataclass(frozen=True)
class NormalizedText:
    text: str
    original: str
    translated: bool = False
    language: Optional[str] = None

    @property
    def changed(self) -> bool:
        return self.text != self.original


class MessageNormalizer:
    """
    Normalises raw message text into compact English.

    The cache is keyed by the decoded text and only ever grows; it is safe
    to share between collector worker threads.
    """

    def __init__(self, translator: Optional[Translator] = None):
        self._translator = translator or NullTranslator()
        self._cache: Dict[str, NormalizedText] = {}
        self._lock = threading.Lock()

    def close(self) -> None:
        self._translator.close()

    def normalize(self, raw_text: str) -> NormalizedText:
        decoded = compact_text(decode_markup(raw_text or ""))
        if not decoded:
            return NormalizedText(text="", original="")

        with self._lock:
            cached = self._cache.get(decoded)
        if cached is not None:
            return cached

        text = apply_glossary(decoded)
        translated = False
        language = None

        if not looks_like_english(text):
            language = detect_language(text).code
            try:
                result = self._translator.translate(text)
            except Exception as e:
                logger.warning("Translator raised, keeping original text: %s", e)
                result = None
            if result:
                text = result
                translated = True

        normalized = NormalizedText(
            text=text,
            original=decoded,
            translated=translated,
            language=language,
        )
        with self._lock:
            self._cache.setdefault(decoded, normalized)
        return normalized

    @property
    def cache_size(self) -> int:
        with self._lock:
            return len(self._cache)
