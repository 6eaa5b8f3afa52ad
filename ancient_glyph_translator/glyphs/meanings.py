"""
Character meaning inference via a language-model backend.

All distinct characters of a text are sent in one request, optionally with a
draft translation of the whole text as context. If that request fails or the
answer cannot be parsed, the characters are re-queried in smaller batches.
"""

import logging
from typing import Optional

from ancient_glyph_translator.config import PipelineConfig
from ancient_glyph_translator.errors import BackendError
from ancient_glyph_translator.providers.base import BaseProvider
from ancient_glyph_translator.responses import parse_meanings
from ancient_glyph_translator.utils import chunked

logger = logging.getLogger(__name__)

BULK_MEANINGS_PROMPT = """You are an expert in ancient Chinese characters. For each of these {count} Chinese characters: "{chars}", provide its English meaning(s).
{context}

CRITICAL: Return ONLY a valid JSON object where each key is a Chinese character and the value is its English meaning(s).
Format: {{"的": "possessive particle, of", "是": "to be, is, are", "不": "not, no", "人": "person, people, human"}}
Include multiple meanings separated by commas when applicable.
You MUST provide meanings for ALL {count} characters in the list.
Do not include any explanation, only the JSON object."""

BATCH_MEANINGS_PROMPT = """Translate each of these Chinese characters to English, providing their meanings: "{chars}".
Return a JSON object where each character is a key and its English meaning is the value.
Format: {{"寒": "cold, winter", "蝉": "cicada"}}"""

SINGLE_MEANING_PROMPT = (
    'What does the Chinese character "{char}" mean in English? '
    "Provide a brief meaning."
)


class MeaningService:
    """Looks up English meanings for characters from text providers."""

    def __init__(
        self,
        providers: list[BaseProvider],
        config: PipelineConfig,
    ):
        self.providers = providers
        self.batch_size = config.meaning_batch_size
        self.tokens_per_char = config.meaning_tokens_per_char
        self.min_tokens = config.meaning_min_tokens
        self.max_tokens = config.meaning_max_tokens
        self.context_chars = config.context_chars
        self.timeout = config.transport.text_timeout
        self.lookup_timeout = config.transport.lookup_timeout

    @property
    def available(self) -> bool:
        return bool(self.providers)

    def token_budget(self, char_count: int) -> int:
        """Output budget sized to the character count, bounded by a hard cap."""
        return min(max(self.min_tokens, char_count * self.tokens_per_char), self.max_tokens)

    def infer_meanings(
        self, chars: list[str], translation_context: Optional[str] = None
    ) -> dict[str, str]:
        """
        Request meanings for ``chars`` in bulk, then in batches on failure.

        Returns:
            Mapping of character to meaning; characters the service could not
            explain are absent.
        """
        if not chars or not self.available:
            if chars:
                logger.warning("No semantic service configured, cannot infer meanings")
            return {}

        if translation_context:
            context = (
                f'The text was translated as: "{translation_context[: self.context_chars]}". '
                "Use this context to provide accurate meanings."
            )
        else:
            context = "Provide the most common meanings for each character."

        prompt = BULK_MEANINGS_PROMPT.format(
            count=len(chars), chars="".join(chars), context=context
        )
        budget = self.token_budget(len(chars))
        logger.info(
            "Requesting meanings for %d unique characters (%d tokens)", len(chars), budget
        )
        meanings = self._request(prompt, budget, self.timeout)
        meanings = {c: m for c, m in meanings.items() if c in chars}

        if meanings:
            logger.info("Extracted meanings for %d/%d characters", len(meanings), len(chars))
            return meanings

        logger.info("Bulk meaning request failed, retrying in batches of %d", self.batch_size)
        for number, batch in enumerate(chunked(chars, self.batch_size), start=1):
            prompt = BATCH_MEANINGS_PROMPT.format(chars="".join(batch))
            found = self._request(prompt, 1000, self.timeout)
            if not found:
                logger.info("Batch %d yielded no meanings", number)
            meanings.update({c: m for c, m in found.items() if c in batch})

        if not meanings:
            logger.error(
                "No character meanings extracted for %d characters", len(chars)
            )
        return meanings

    def lookup(self, char: str) -> Optional[str]:
        """Last-resort meaning lookup for one character."""
        prompt = SINGLE_MEANING_PROMPT.format(char=char)
        for provider in self.providers:
            try:
                text = provider.generate(
                    prompt, max_tokens=50, temperature=0.1, timeout=self.lookup_timeout
                )
            except BackendError as e:
                logger.debug("Single lookup for %s via %s failed: %s", char, provider.name, e)
                continue
            except Exception as e:
                logger.warning("Single lookup for %s via %s failed: %s", char, provider.name, e)
                continue
            text = (text or "").strip()
            if text:
                logger.info("Fallback meaning for %s: %s", char, text)
                return text
        return None

    def _request(self, prompt: str, max_tokens: int, timeout: float) -> dict[str, str]:
        """Ask each provider in turn until one returns parseable meanings."""
        for provider in self.providers:
            try:
                text = provider.generate(
                    prompt, max_tokens=max_tokens, temperature=0.1, timeout=timeout
                )
            except BackendError as e:
                logger.info("Meaning request via %s failed: %s", provider.name, e)
                continue
            except Exception as e:
                logger.warning("Meaning request via %s failed: %s", provider.name, e)
                continue

            meanings = parse_meanings(text)
            if meanings:
                return meanings
            logger.info("Could not parse meanings from %s response", provider.name)
        return {}
