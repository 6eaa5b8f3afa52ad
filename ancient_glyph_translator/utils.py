"""
Utility functions for the glyph recognition pipeline.
"""

import logging
import re
from typing import Iterable, Iterator, Sequence, TypeVar

import httpx

from ancient_glyph_translator.errors import ErrorKind

logger = logging.getLogger(__name__)

T = TypeVar("T")

# CJK Unified Ideographs + Extension A
CJK_PATTERN = re.compile(r'[\u3400-\u4dbf\u4e00-\u9fff]')

_WHITESPACE = re.compile(r'\s+')


def setup_logging(level: int = logging.INFO) -> None:
    """Configure logging for the pipeline."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(name)-30s | %(levelname)-7s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    """Clamp a confidence value into [low, high]."""
    return max(low, min(high, float(value)))


def mean(values: Iterable[float], default: float = 0.0) -> float:
    values = list(values)
    if not values:
        return default
    return sum(values) / len(values)


def strip_whitespace(text: str) -> str:
    """Remove every whitespace character, including ideographic spaces."""
    return _WHITESPACE.sub('', text or '')


def is_script_char(char: str) -> bool:
    """Check if a character belongs to the CJK ideograph blocks."""
    return bool(CJK_PATTERN.fullmatch(char))


def unique_script_chars(text: str) -> list[str]:
    """Distinct ideographs of ``text`` in first-seen order."""
    seen: dict[str, None] = {}
    for char in strip_whitespace(text):
        if is_script_char(char):
            seen.setdefault(char, None)
    return list(seen)


def chunked(items: Sequence[T], size: int) -> Iterator[list[T]]:
    """Yield consecutive slices of ``items`` of at most ``size`` elements."""
    if size < 1:
        raise ValueError("chunk size must be >= 1")
    for start in range(0, len(items), size):
        yield list(items[start:start + size])


def classify_sdk_error(exc: Exception) -> ErrorKind:
    """Map an anthropic / openai / httpx exception onto an ErrorKind."""
    # Anthropic SDK errors
    try:
        import anthropic
        if isinstance(exc, anthropic.APITimeoutError):
            return ErrorKind.TIMEOUT
        if isinstance(exc, anthropic.APIConnectionError):
            return ErrorKind.CONNECTION
        if isinstance(exc, anthropic.NotFoundError):
            return ErrorKind.NOT_FOUND
        if isinstance(exc, anthropic.RateLimitError):
            return ErrorKind.RATE_LIMITED
    except ImportError:
        pass

    # OpenAI SDK errors
    try:
        import openai
        if isinstance(exc, openai.APITimeoutError):
            return ErrorKind.TIMEOUT
        if isinstance(exc, openai.APIConnectionError):
            return ErrorKind.CONNECTION
        if isinstance(exc, openai.NotFoundError):
            return ErrorKind.NOT_FOUND
        if isinstance(exc, openai.RateLimitError):
            return ErrorKind.RATE_LIMITED
    except ImportError:
        pass

    if isinstance(exc, httpx.TimeoutException):
        return ErrorKind.TIMEOUT

    # HTTP response errors (SDK status errors, httpx)
    status_code = getattr(exc, 'status_code', None) or getattr(
        getattr(exc, 'response', None), 'status_code', None
    )
    if status_code == 410:
        return ErrorKind.GONE
    if status_code is not None:
        return ErrorKind.HTTP_ERROR

    return ErrorKind.APPLICATION
