"""Helpers for reading structured answers out of LLM responses."""

from __future__ import annotations

import json
from typing import Any, Optional


def _strip_fences(text: str) -> str:
    if not text.startswith("```"):
        return text
    lines = [line for line in text.split("\n") if not line.strip().startswith("```")]
    return "\n".join(lines)


def parse_llm_json(raw: str) -> dict:
    """Parse a JSON object from an LLM response.

    Handles markdown code fences and chatter around the object. Anything
    that does not decode to a JSON object yields an empty dict.
    """
    if not raw:
        return {}

    text = _strip_fences(raw.strip())
    candidates = [text]
    start = text.find("{")
    end = text.rfind("}") + 1
    if start >= 0 and end > start:
        candidates.append(text[start:end])

    for candidate in candidates:
        try:
            data = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(data, dict):
            return data
    return {}


def parse_confidence(value: Any, scale: Optional[float] = None) -> float:
    """Read a confidence and clamp it to [0, 1].

    With ``scale`` the value is always divided by it (a prompt that asks for
    0-100 passes 100, so an answer of 1 means 1%). Without it, values above
    1 are taken as percentages.
    """
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if number != number:  # NaN
        return 0.0
    if scale:
        number = number / scale
    elif number > 1.0:
        number = number / 100.0
    return max(0.0, min(1.0, number))


def parse_bool(value: Any) -> bool:
    """LLMs sometimes answer "true"/"false" as strings."""
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "1")
    return bool(value)
