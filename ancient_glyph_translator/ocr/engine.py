"""
OCR orchestration for inscription images.

Tries the configured vision backends in a fixed order and returns the first
non-empty transcription, tagged with the tier that produced it.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ancient_glyph_translator.config import ConfidencePolicy
from ancient_glyph_translator.errors import BackendError
from ancient_glyph_translator.ocr.image import ImagePayload
from ancient_glyph_translator.providers.base import BaseProvider
from ancient_glyph_translator.utils import clamp

logger = logging.getLogger(__name__)

OCR_PROMPT = (
    "Extract all text from this image. If it contains ancient Chinese "
    "characters, transcribe them exactly as they appear. Return only the "
    "extracted text, no explanations."
)

NO_TEXT_ERROR = (
    "All OCR methods failed. Please ensure the image is clear and contains "
    "readable text."
)

# Used only by the development escape hatch
DEV_SAMPLE_TEXT = "道法自然"


class ExtractionMethod(Enum):
    PRIMARY_VISION = "primary-vision"
    AUXILIARY_VISION = "auxiliary-vision"
    VERIFICATION = "verification"
    NONE = "none"


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of text extraction for one image.

    Confidence reflects the reliability of the backend tier, not
    per-character certainty.
    """
    text: str
    confidence: float
    method: ExtractionMethod
    error: Optional[str] = None
    provider: Optional[str] = None
    verified: bool = False

    @property
    def is_successful(self) -> bool:
        return self.error is None and bool(self.text.strip())

    @classmethod
    def failure(cls, error: str) -> "ExtractionResult":
        return cls(text="", confidence=0.0, method=ExtractionMethod.NONE, error=error)


@dataclass(frozen=True)
class OCRBackend:
    """A provider together with the tier it represents."""
    provider: BaseProvider
    method: ExtractionMethod
    confidence: float


class OCROrchestrator:
    """
    Runs OCR backends in fallback order.

    Strategy:
    1. Call each backend with a bounded timeout
    2. "Not found", "gone" and "rate limited" answers skip to the next backend
    3. Other failures are remembered as the last error, then skipped
    4. Empty text is a soft failure, skip
    5. The first non-empty text wins; later backends are not called
    """

    def __init__(
        self,
        backends: list[OCRBackend],
        verifier=None,
        timeout: float = 60.0,
        max_tokens: int = 500,
    ):
        self.backends = backends
        self.verifier = verifier
        self.timeout = timeout
        self.max_tokens = max_tokens

    @classmethod
    def from_registry(
        cls,
        registry,
        policy: ConfidencePolicy,
        verifier=None,
        timeout: float = 60.0,
    ) -> "OCROrchestrator":
        backends = []
        for provider in registry.vision:
            if provider.name in registry.primary:
                backends.append(OCRBackend(
                    provider, ExtractionMethod.PRIMARY_VISION, policy.primary_vision
                ))
            elif not provider.accepts_prompt:
                backends.append(OCRBackend(
                    provider, ExtractionMethod.AUXILIARY_VISION, policy.local_ocr
                ))
            else:
                backends.append(OCRBackend(
                    provider, ExtractionMethod.AUXILIARY_VISION, policy.auxiliary_vision
                ))
        return cls(backends, verifier=verifier, timeout=timeout)

    def extract(self, image: ImagePayload) -> ExtractionResult:
        """
        Extract text using the first backend that produces any.

        Returns:
            A successful ExtractionResult, or a failure result with confidence
            0 and the last recorded error.
        """
        logger.info("Starting OCR extraction with %d backends", len(self.backends))
        last_error: Optional[str] = None

        for backend in self.backends:
            name = backend.provider.name
            logger.info("Trying OCR backend: %s", name)
            try:
                text = backend.provider.generate(
                    OCR_PROMPT,
                    image,
                    max_tokens=self.max_tokens,
                    temperature=0.1,
                    timeout=self.timeout,
                )
            except BackendError as e:
                if e.kind.skippable:
                    logger.info("OCR backend %s: %s (%s), trying next", name, e.kind.value, e)
                else:
                    logger.warning("OCR backend %s failed: %s, trying next", name, e)
                    last_error = str(e)
                continue
            except Exception as e:
                logger.error("OCR backend %s failed unexpectedly: %s", name, e)
                last_error = str(e)
                continue

            text = (text or "").strip()
            if not text:
                logger.info("OCR backend %s returned empty text, trying next", name)
                continue

            logger.info(
                "OCR backend %s succeeded: %d chars, confidence %.2f",
                name, len(text), backend.confidence,
            )
            result = ExtractionResult(
                text=text,
                confidence=clamp(backend.confidence),
                method=backend.method,
                provider=name,
            )
            if self.verifier is not None:
                result = self.verifier.verify(result)
            return result

        logger.error("All OCR backends failed: %s", last_error or "no text produced")
        return ExtractionResult.failure(last_error or NO_TEXT_ERROR)
