"""
Plausibility verification of OCR output.

A classical-Chinese language model is asked to continue the first characters
of the transcription. If it produces a continuation in the same script, the
transcription is judged plausible and its confidence is nudged up by a small
fixed delta. The text itself is never modified and confidence is never
lowered; any failure leaves the result untouched.
"""

import dataclasses
import logging
from typing import Optional

from ancient_glyph_translator.config import ConfidencePolicy
from ancient_glyph_translator.errors import BackendError
from ancient_glyph_translator.providers.base import BaseProvider
from ancient_glyph_translator.utils import CJK_PATTERN

logger = logging.getLogger(__name__)


class TextVerifier:
    """Validation-only post-processor for extracted text."""

    def __init__(
        self,
        provider: Optional[BaseProvider],
        policy: ConfidencePolicy,
        probe_chars: int = 50,
        timeout: float = 30.0,
    ):
        self.provider = provider
        self.policy = policy
        self.probe_chars = probe_chars
        self.timeout = timeout

    def is_plausible(self, continuation: str) -> bool:
        """A continuation counts when the model stayed in the script domain."""
        return bool(CJK_PATTERN.search(continuation or ""))

    def boosted(self, confidence: float) -> float:
        cap = self.policy.verification_cap
        return max(confidence, min(confidence + self.policy.verification_delta, cap))

    def verify(self, result):
        """Return ``result``, with raised confidence if the text looks plausible."""
        if self.provider is None or not result.text:
            return result

        prompt = result.text[: self.probe_chars]
        logger.info("Verifying OCR text with %s", self.provider.name)
        try:
            continuation = self.provider.generate(
                prompt, max_tokens=10, timeout=self.timeout
            )
        except BackendError as e:
            logger.info("Verification skipped (%s): %s", self.provider.name, e)
            return result
        except Exception as e:
            logger.warning("Verification failed, using original OCR result: %s", e)
            return result

        if not self.is_plausible(continuation):
            logger.info("Verification inconclusive, confidence unchanged")
            return result

        confidence = self.boosted(result.confidence)
        logger.info(
            "Verification passed, confidence %.2f -> %.2f", result.confidence, confidence
        )
        return dataclasses.replace(result, confidence=confidence, verified=True)
