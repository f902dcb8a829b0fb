"""Structured-answer decoding with text-JSON fallback.

Turns whatever text a vendor produced into a StructuredAnswer. Decoding
never raises: non-JSON text becomes the unparsed fallback answer, and a
JSON object with missing or mistyped fields gets per-field defaults.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any

from vouch.models.answer import DEFAULT_CONFIDENCE, StructuredAnswer

_FENCED_BLOCK = re.compile(r"```(?:json)?\s*\n?(.*?)\n?\s*```", re.DOTALL)


def _loads_object(text: str) -> dict[str, Any] | None:
    try:
        result = json.loads(text)
    except (json.JSONDecodeError, ValueError):
        return None
    return result if isinstance(result, dict) else None


def extract_json_object(text: str) -> dict[str, Any] | None:
    """Extract a JSON object from vendor text.

    Tries three strategies in order:
    1. Direct json.loads on the stripped text
    2. Markdown code block (```json ... ``` or bare ```)
    3. Brace extraction (first '{' to last '}')

    Returns:
        Parsed dict or None if all strategies fail.
    """
    if not text or not text.strip():
        return None

    result = _loads_object(text.strip())
    if result is not None:
        return result

    match = _FENCED_BLOCK.search(text)
    if match:
        result = _loads_object(match.group(1).strip())
        if result is not None:
            return result

    first_brace = text.find("{")
    last_brace = text.rfind("}")
    if first_brace != -1 and last_brace > first_brace:
        return _loads_object(text[first_brace : last_brace + 1])

    return None


def coerce_confidence(value: Any) -> float | None:
    """Convert a vendor-reported confidence to the 0-100 scale.

    Floats in (0.0, 1.0] are read as fractions and scaled up; integers
    are always percentages. Non-numeric values (including bools and NaN)
    return None. The result is clamped to [0, 100].
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    number = float(value)
    if math.isnan(number):
        return None
    if isinstance(value, float) and 0.0 < number <= 1.0:
        number *= 100.0
    return max(0.0, min(100.0, number))


def _string_list(value: Any) -> list[str] | None:
    if not isinstance(value, list):
        return None
    return [
        item if isinstance(item, str) else json.dumps(item, ensure_ascii=False)
        for item in value
        if item is not None
    ]


def answer_from_payload(payload: dict[str, Any], raw_text: str) -> StructuredAnswer:
    """Build a StructuredAnswer from a decoded object, defaulting per field."""
    answer = payload.get("answer")
    if not isinstance(answer, str) or not answer:
        answer = raw_text

    confidence = coerce_confidence(payload.get("confidence"))
    if confidence is None:
        confidence = DEFAULT_CONFIDENCE

    evidence = _string_list(payload.get("evidence")) or []

    alternatives = _string_list(payload.get("alternatives"))
    if alternatives is None:
        # Older prompt variants name this list "risks".
        alternatives = _string_list(payload.get("risks")) or []

    return StructuredAnswer(
        answer=answer,
        confidence=confidence,
        evidence=tuple(evidence),
        alternatives=tuple(alternatives),
    )


def try_decode_structured_answer(raw_text: str) -> StructuredAnswer | None:
    """Decode only when the text holds an object with a string answer.

    Used by escalation to decide whether another attempt is needed.
    """
    payload = extract_json_object(raw_text)
    if payload is None:
        return None
    answer = payload.get("answer")
    if not isinstance(answer, str) or not answer:
        return None
    return answer_from_payload(payload, raw_text)


def decode_structured_answer(raw_text: str) -> StructuredAnswer:
    """Decode vendor text into a StructuredAnswer. Never raises."""
    payload = extract_json_object(raw_text)
    if payload is None:
        return StructuredAnswer.fallback(raw_text)
    return answer_from_payload(payload, raw_text)
