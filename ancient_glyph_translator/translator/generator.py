"""
Translation fallback chain.

Strategy:
1. Empty text: zero-confidence apology, no backend is called
2. Text providers in configured order; the first non-empty answer wins
3. Static phrase table for well-known classical phrases (exact match)
4. Template assembled from the per-character meanings of the glyph matches

Each tier has a fixed confidence (see ConfidencePolicy); the template tier is
capped by the mean glyph confidence so that it never looks better than the
evidence it was built from.
"""

import logging
import time
from typing import Optional

from ancient_glyph_translator.config import ConfidencePolicy
from ancient_glyph_translator.errors import BackendError
from ancient_glyph_translator.providers.base import BaseProvider
from ancient_glyph_translator.translator.base import TranslationResult
from ancient_glyph_translator.utils import clamp, mean

logger = logging.getLogger(__name__)

NO_TEXT_TRANSLATION = (
    "Unable to extract text from image. Please ensure the image is clear "
    "and contains readable text."
)

TRANSLATION_PROMPT = """Translate this ancient {script} text and provide context: "{text}".
Provide: 1) English translation, 2) Brief cultural/historical context.
Format: "Translation: [text] - Context: [context]\""""

COMMON_PHRASES = {
    "道法自然": (
        "The Tao follows nature - A fundamental concept in Taoist philosophy "
        "suggesting that the natural way of things is the best way."
    ),
    "天人合一": (
        "Heaven and humanity are one - The unity between the cosmos and "
        "human existence."
    ),
    "道德经": "Tao Te Ching - The fundamental text of Taoism attributed to Laozi.",
    "仁义礼智": (
        "Benevolence, righteousness, propriety, and wisdom - The four cardinal "
        "virtues in Confucianism."
    ),
    "道德": "Virtue and morality - Core ethical principles in Chinese philosophy.",
    "仁义": "Benevolence and righteousness - Key Confucian virtues.",
    "智慧": "Wisdom and intelligence - The pursuit of knowledge and understanding.",
}

METHOD_PHRASE_TABLE = "phrase-table"
METHOD_TEMPLATE = "template"
METHOD_NONE = "none"


class TranslationGenerator:
    """
    Produces an English translation of extracted text.

    Usage:
        generator = TranslationGenerator(registry.text, ConfidencePolicy())
        result = generator.translate("道法自然", glyph_matches)
        print(result.translation, result.confidence)
    """

    def __init__(
        self,
        providers: list[BaseProvider],
        policy: ConfidencePolicy,
        timeout: float = 30.0,
        max_tokens: int = 300,
        default_script: str = "Chinese",
    ):
        self.providers = providers
        self.policy = policy
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.default_script = default_script

    def translate(
        self,
        text: str,
        glyphs: Optional[list] = None,
        script_name: Optional[str] = None,
    ) -> TranslationResult:
        """
        Translate ``text`` through the fallback chain.

        Args:
            text: Extracted source text.
            glyphs: GlyphMatch list; empty on the draft pass.
            script_name: Detected script, used to phrase the prompt.

        Returns:
            TranslationResult from the first tier that produced a translation.
        """
        start = time.time()
        glyphs = glyphs or []
        source = (text or "").strip()

        if not source:
            return TranslationResult(
                method=METHOD_NONE,
                source_text=text or "",
                translation=NO_TEXT_TRANSLATION,
                confidence=0.0,
            )

        result = self._from_providers(source, script_name)
        if result is None:
            result = self._from_phrase_table(source)
        if result is None:
            result = self._from_template(source, glyphs)

        result.latency_seconds = time.time() - start
        logger.info(
            "Translation via %s, confidence %.2f", result.method, result.confidence
        )
        return result

    def _from_providers(
        self, text: str, script_name: Optional[str]
    ) -> Optional[TranslationResult]:
        prompt = TRANSLATION_PROMPT.format(
            script=self._prompt_script(script_name), text=text
        )
        for provider in self.providers:
            try:
                answer = provider.generate(
                    prompt,
                    max_tokens=self.max_tokens,
                    temperature=0.3,
                    timeout=self.timeout,
                )
            except BackendError as e:
                logger.info("Translation via %s failed (%s), trying next", provider.name, e.kind.value)
                continue
            except Exception as e:
                logger.warning("Translation via %s failed: %s", provider.name, e)
                continue

            answer = (answer or "").strip()
            if answer:
                return TranslationResult(
                    method=provider.name,
                    source_text=text,
                    translation=answer,
                    confidence=self.policy.translation_backend,
                )
            logger.info("Translation via %s returned empty text, trying next", provider.name)
        return None

    def _from_phrase_table(self, text: str) -> Optional[TranslationResult]:
        phrase = COMMON_PHRASES.get(text)
        if phrase is None:
            return None
        return TranslationResult(
            method=METHOD_PHRASE_TABLE,
            source_text=text,
            translation=phrase,
            confidence=self.policy.phrase_table,
        )

    def _from_template(self, text: str, glyphs: list) -> TranslationResult:
        parts = ", ".join(f"{g.symbol} ({g.meaning or 'unknown'})" for g in glyphs)
        translation = (
            f'Translation of "{text}" - This ancient text contains cultural and '
            f"philosophical significance. Individual characters: {parts}"
        )
        average = mean((g.confidence for g in glyphs), default=self.policy.template_default)
        return TranslationResult(
            method=METHOD_TEMPLATE,
            source_text=text,
            translation=translation,
            confidence=clamp(min(average, self.policy.template_cap)),
            metadata={"glyph_count": len(glyphs)},
        )

    def _prompt_script(self, script_name: Optional[str]) -> str:
        # "Traditional Chinese" reads better as "Chinese" in the prompt
        if not script_name or script_name.endswith("Chinese"):
            return self.default_script
        return script_name
