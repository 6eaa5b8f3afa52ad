"""
Parsers for the untyped JSON returned by AI backends.

Every parser here is total: a payload of an unexpected shape yields an empty
value rather than an exception, so a malformed answer degrades to "no text
extracted" instead of aborting a stage.
"""

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r'```(?:json)?\s*')
_DECODER = json.JSONDecoder()
_MEANING_LINE = re.compile(
    r'["\']([\u3400-\u4dbf\u4e00-\u9fff])["\']\s*:\s*["\']([^"\']+)["\']'
)


def parse_gemini_text(data: Any) -> str:
    """Text of the first candidate of a generateContent response."""
    if not isinstance(data, dict):
        return ""
    candidates = data.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return ""
    first = candidates[0]
    if not isinstance(first, dict):
        return ""
    content = first.get("content")
    if not isinstance(content, dict):
        return ""
    parts = content.get("parts")
    if not isinstance(parts, list):
        return ""
    texts = [
        part["text"] for part in parts
        if isinstance(part, dict) and isinstance(part.get("text"), str)
    ]
    return "".join(texts).strip()


def parse_hf_generated_text(data: Any) -> str:
    """Text of a Hugging Face inference response.

    Handles plain strings, ``{"generated_text"|"text"|"caption": ...}`` objects
    and lists of either.
    """
    if isinstance(data, str):
        return data.strip()
    if isinstance(data, dict):
        for key in ("generated_text", "text", "caption"):
            value = data.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
        return ""
    if isinstance(data, list) and data:
        return parse_hf_generated_text(data[0])
    return ""


def _strip_fences(text: str) -> str:
    return _CODE_FENCE.sub('', text or '').strip()


def _first_json(text: str, opener: str, kind: type):
    """Decode the first value starting at ``opener``; trailing chatter is ignored."""
    text = _strip_fences(text)
    start = text.find(opener)
    while start != -1:
        try:
            data, _ = _DECODER.raw_decode(text, start)
        except ValueError:
            data = None
        if isinstance(data, kind):
            return data
        start = text.find(opener, start + 1)
    return kind()


def extract_json_object(text: str) -> dict:
    """First ``{...}`` value of a model answer, or an empty dict."""
    return _first_json(text, "{", dict)


def extract_json_array(text: str) -> list:
    """First ``[...]`` value of a model answer, or an empty list."""
    return _first_json(text, "[", list)


def parse_meanings(text: str) -> dict[str, str]:
    """Character → meaning map from a model answer.

    Tries the JSON object first; when that fails, salvages ``"字": "meaning"``
    pairs line by line (truncated output usually still has complete lines).
    """
    meanings: dict[str, str] = {}
    for char, meaning in extract_json_object(text).items():
        if isinstance(char, str) and isinstance(meaning, str) and meaning.strip():
            meanings[char] = meaning.strip()
    if meanings:
        return meanings

    for line in (text or "").splitlines():
        match = _MEANING_LINE.search(line)
        if match:
            meanings[match.group(1)] = match.group(2).strip()
    if meanings:
        logger.debug("Salvaged %d meanings line by line", len(meanings))
    return meanings
