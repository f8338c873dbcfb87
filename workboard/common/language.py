"""
Language Detection Service

Cheap "already English?" test used to decide whether a chat message needs
a translation call, plus per-message language tagging (langdetect with a
Unicode script fallback) recorded on translated signals.
"""

import re
from dataclasses import dataclass
from typing import Optional

from langdetect import DetectorFactory, LangDetectException, detect_langs

# Seed langdetect for deterministic results
DetectorFactory.seed = 0

# Words that show up constantly in English task chatter
ENGLISH_COMMON_WORDS = frozenset({
    "a", "an", "and", "are", "as", "at", "be", "by", "can", "deadline",
    "deploy", "done", "due", "for", "from", "has", "have", "in", "is", "it",
    "need", "next", "now", "on", "please", "priority", "reply", "review",
    "schedule", "share", "task", "the", "this", "to", "today", "tomorrow",
    "update", "urgent", "we", "with", "you",
})

MIN_ASCII_RATIO = 0.9
MIN_WORD_HIT_RATE = 0.18

_WORD_RE = re.compile(r"[a-z']+")
_ASCII_RE = re.compile(r"[\x00-\x7F]")

# Unicode range based script detection
_SCRIPT_RANGES = [
    (0xAC00, 0xD7AF, "Hangul", "ko"),    # Hangul Syllables
    (0x1100, 0x11FF, "Hangul", "ko"),    # Hangul Jamo
    (0x3130, 0x318F, "Hangul", "ko"),    # Hangul Compatibility Jamo
    (0x3040, 0x309F, "Kana", "ja"),      # Hiragana
    (0x30A0, 0x30FF, "Kana", "ja"),      # Katakana
    (0x4E00, 0x9FFF, "CJK", "zh"),      # CJK Unified Ideographs
    (0x3400, 0x4DBF, "CJK", "zh"),      # CJK Extension A
]


@dataclass(frozen=True)
class LanguageInfo:
    """Detected language information"""
    code: str           # ISO 639-1: "en", "tl", "ko"
    confidence: float   # 0.0~1.0
    script: str         # "Latin", "Hangul", "CJK", "Kana"

    @property
    def is_english(self) -> bool:
        return self.code == "en"


def looks_like_english(text: str) -> bool:
    """ASCII-ratio + common-word-hit-rate test.

    Text with no Latin words at all is treated as English so that emoji-only
    or id-only messages never trigger a translation call.
    """
    if not text:
        return True

    ascii_chars = len(_ASCII_RE.findall(text))
    ascii_ratio = ascii_chars / max(1, len(text))

    words = _WORD_RE.findall(text.lower())
    if not words:
        return True

    hits = sum(1 for word in words if word in ENGLISH_COMMON_WORDS)
    min_hits = max(2, int(len(words) * MIN_WORD_HIT_RATE))

    return ascii_ratio >= MIN_ASCII_RATIO and hits >= min_hits


def _detect_script(text: str) -> tuple[str, Optional[str]]:
    """Detect dominant non-Latin script from Unicode character ranges.

    Returns:
        (script_name, language_code) or ("Latin", None) for Latin-dominant text
    """
    counts: dict[tuple[str, str], int] = {}
    total = 0

    for ch in text:
        if ch.isspace() or ch in '.,!?;:"\'-()[]{}':
            continue
        total += 1
        cp = ord(ch)
        for start, end, script, lang in _SCRIPT_RANGES:
            if start <= cp <= end:
                counts[(script, lang)] = counts.get((script, lang), 0) + 1
                break

    if total == 0 or not counts:
        return "Latin", None

    # Kanji mixed with kana is Japanese
    if any(script == "Kana" for script, _ in counts):
        return "Kana", "ja"

    (script, lang), count = max(counts.items(), key=lambda item: item[1])
    if count > total * 0.15:
        return script, lang
    return "Latin", None


def detect_language(text: Optional[str]) -> LanguageInfo:
    """Detect language of input text.

    Uses langdetect with a Unicode script fallback. Short texts (<10 chars)
    rely on the script check alone.
    """
    if not text or not text.strip():
        return LanguageInfo(code="en", confidence=1.0, script="Latin")

    cleaned = text.strip()
    script, script_lang = _detect_script(cleaned)

    if len(cleaned) < 10:
        if script_lang:
            return LanguageInfo(code=script_lang, confidence=0.6, script=script)
        return LanguageInfo(code="en", confidence=0.5, script="Latin")

    try:
        results = detect_langs(cleaned)
    except LangDetectException:
        results = []

    if results:
        top = results[0]
        return LanguageInfo(code=top.lang, confidence=round(top.prob, 4), script=script)

    if script_lang:
        return LanguageInfo(code=script_lang, confidence=0.7, script=script)

    return LanguageInfo(code="en", confidence=0.5, script="Latin")
