"""
Main pipeline coordinator for ancient glyph recognition.

Ties together, strictly in sequence for one image:
1. OCR extraction with ordered backend fallback (+ plausibility verification)
2. Draft translation (no glyph context yet)
3. Glyph matching, with the draft translation as meaning context
4. Final translation, when the draft was only a template
5. Generative reconstruction of damaged / low-confidence glyphs

Every run walks a validated state machine. Only a total extraction failure
ends in FAILED; later stages degrade to fallback output instead.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

from ancient_glyph_translator.config import PipelineConfig
from ancient_glyph_translator.errors import ExtractionFailedError, InvalidTransitionError
from ancient_glyph_translator.glyphs.matcher import GlyphMatch, GlyphMatcher
from ancient_glyph_translator.glyphs.meanings import MeaningService
from ancient_glyph_translator.glyphs.store import GlyphStore, InMemoryGlyphStore
from ancient_glyph_translator.ocr.engine import (
    DEV_SAMPLE_TEXT,
    ExtractionMethod,
    ExtractionResult,
    OCROrchestrator,
)
from ancient_glyph_translator.ocr.image import ImagePayload
from ancient_glyph_translator.ocr.postprocessor import TextVerifier
from ancient_glyph_translator.providers.registry import ProviderRegistry
from ancient_glyph_translator.reconstruction.grm import (
    GlyphReconstructor,
    ReconstructionContext,
    needs_reconstruction,
)
from ancient_glyph_translator.reconstruction.versions import (
    ReconstructionHistory,
    ReconstructionVersion,
)
from ancient_glyph_translator.transport import HTTPTransport
from ancient_glyph_translator.translator.base import TranslationResult
from ancient_glyph_translator.translator.generator import (
    METHOD_NONE,
    METHOD_TEMPLATE,
    TranslationGenerator,
)
from ancient_glyph_translator.utils import setup_logging, strip_whitespace

logger = logging.getLogger(__name__)


class ProcessingStatus(Enum):
    PENDING = "pending"
    EXTRACTING = "extracting"
    EXTRACTED = "extracted"
    FAILED = "failed"
    TRANSLATING_DRAFT = "translating_draft"
    MATCHING = "matching"
    TRANSLATING_FINAL = "translating_final"
    RECONSTRUCTING = "reconstructing"
    COMPLETED = "completed"


ALLOWED_TRANSITIONS: dict[ProcessingStatus, frozenset] = {
    ProcessingStatus.PENDING: frozenset({ProcessingStatus.EXTRACTING}),
    ProcessingStatus.EXTRACTING: frozenset(
        {ProcessingStatus.EXTRACTED, ProcessingStatus.FAILED}
    ),
    ProcessingStatus.EXTRACTED: frozenset({ProcessingStatus.TRANSLATING_DRAFT}),
    ProcessingStatus.TRANSLATING_DRAFT: frozenset({ProcessingStatus.MATCHING}),
    ProcessingStatus.MATCHING: frozenset({
        ProcessingStatus.TRANSLATING_FINAL,
        ProcessingStatus.RECONSTRUCTING,
        ProcessingStatus.COMPLETED,
    }),
    ProcessingStatus.TRANSLATING_FINAL: frozenset(
        {ProcessingStatus.RECONSTRUCTING, ProcessingStatus.COMPLETED}
    ),
    ProcessingStatus.RECONSTRUCTING: frozenset({ProcessingStatus.COMPLETED}),
    # A completed run may be reconstructed again, creating a new version
    ProcessingStatus.COMPLETED: frozenset({ProcessingStatus.RECONSTRUCTING}),
    ProcessingStatus.FAILED: frozenset(),
}


@dataclass
class ProcessingResult:
    """Complete result for one processed image."""
    source_id: str
    status: ProcessingStatus = ProcessingStatus.PENDING
    status_history: list[ProcessingStatus] = field(
        default_factory=lambda: [ProcessingStatus.PENDING]
    )
    extracted_text: str = ""
    glyphs: list[GlyphMatch] = field(default_factory=list)
    script_type: Optional[str] = None
    confidence: float = 0.0
    method: str = ExtractionMethod.NONE.value
    extraction: Optional[ExtractionResult] = None
    translation: Optional[TranslationResult] = None
    reconstruction: Optional[ReconstructionVersion] = None
    source_path: Optional[str] = None
    processing_time_seconds: float = 0.0
    error: Optional[str] = None

    def transition(self, new_status: ProcessingStatus) -> None:
        """Move to ``new_status``, or raise InvalidTransitionError."""
        if new_status not in ALLOWED_TRANSITIONS[self.status]:
            raise InvalidTransitionError(
                f"Invalid transition {self.status.value} -> {new_status.value} "
                f"for {self.source_id}"
            )
        logger.debug("%s: %s -> %s", self.source_id, self.status.value, new_status.value)
        self.status = new_status
        self.status_history.append(new_status)

    def to_dict(self) -> dict:
        """Convert to a serializable dictionary."""
        return {
            "source_id": self.source_id,
            "status": self.status.value,
            "status_history": [s.value for s in self.status_history],
            "extracted_text": self.extracted_text,
            "glyphs": [g.to_dict() for g in self.glyphs],
            "script_type": self.script_type,
            "confidence": self.confidence,
            "method": self.method,
            "extraction": {
                "method": self.extraction.method.value,
                "confidence": self.extraction.confidence,
                "provider": self.extraction.provider,
                "verified": self.extraction.verified,
            } if self.extraction else None,
            "translation": self.translation.to_dict() if self.translation else None,
            "reconstruction": self.reconstruction.to_dict() if self.reconstruction else None,
            "processing_time_seconds": self.processing_time_seconds,
            "error": self.error,
        }


class GlyphPipeline:
    """
    Complete recognition and reconstruction pipeline.

    Usage:
        config = PipelineConfig(gemini_api_key="...")
        pipeline = GlyphPipeline(config)
        result = pipeline.process_image("stele.jpg")
        print(result.extracted_text, result.translation.translation)
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        store: Optional[GlyphStore] = None,
        history: Optional[ReconstructionHistory] = None,
        transport: Optional[HTTPTransport] = None,
        registry: Optional[ProviderRegistry] = None,
    ):
        self.config = config or PipelineConfig()
        setup_logging()

        policy = self.config.confidence
        timeouts = self.config.transport
        self.transport = transport or HTTPTransport(timeouts)
        self.registry = registry or ProviderRegistry.from_config(self.config, self.transport)
        self.store = store if store is not None else InMemoryGlyphStore()
        self.history = history if history is not None else ReconstructionHistory()

        # Initialize components
        self.verifier = None
        if self.registry.verifier is not None:
            self.verifier = TextVerifier(
                self.registry.verifier,
                policy,
                probe_chars=self.config.verification_probe_chars,
                timeout=timeouts.text_timeout,
            )
        self.ocr = OCROrchestrator.from_registry(
            self.registry, policy, verifier=self.verifier, timeout=timeouts.vision_timeout
        )
        self.matcher = GlyphMatcher(
            MeaningService(self.registry.text, self.config),
            policy,
            default_script=self.config.default_script,
        )
        self.translator = TranslationGenerator(
            self.registry.text, policy, timeout=timeouts.text_timeout
        )
        self.reconstructor = GlyphReconstructor(
            self.registry.reconstruction,
            batch_size=self.config.reconstruction_batch_size,
            timeout=timeouts.vision_timeout,
        )

        logger.info("GlyphPipeline initialized")
        logger.info("OCR backends: %s", [b.provider.name for b in self.ocr.backends])
        logger.info("Text backends: %s", [p.name for p in self.registry.text])

    def process_image(
        self,
        image: Union[str, ImagePayload],
        source_id: Optional[str] = None,
        enable_reconstruction: Optional[bool] = None,
    ) -> ProcessingResult:
        """
        Run the full pipeline over one image.

        Args:
            image: Image path or an already decoded ImagePayload.
            source_id: Identifier for versioning; defaults to the image path.
            enable_reconstruction: Override ``config.enable_reconstruction``.

        Returns:
            ProcessingResult in status COMPLETED.

        Raises:
            FileNotFoundError / ValueError: the image cannot be read.
            ExtractionFailedError: no text could be extracted and the
                development fallback is off.
        """
        start = time.time()
        payload = image if isinstance(image, ImagePayload) else ImagePayload.from_path(image)
        result = ProcessingResult(
            source_id=source_id or payload.path or uuid.uuid4().hex,
            source_path=payload.path,
        )
        logger.info("Processing image: %s", result.source_id)

        result.transition(ProcessingStatus.EXTRACTING)
        extraction = self.ocr.extract(payload)

        if not extraction.is_successful:
            if not self.config.enable_ocr_fallback:
                self._fail(result, extraction.error, start)
            logger.warning("OCR failed, using development fallback text")
            extraction = ExtractionResult(
                text=DEV_SAMPLE_TEXT,
                confidence=self.config.confidence.dev_fallback,
                method=ExtractionMethod.NONE,
                provider="dev-fallback",
            )

        return self._run_stages(result, extraction, payload, enable_reconstruction, start)

    def process_text(
        self,
        text: str,
        source_id: Optional[str] = None,
        image: Optional[Union[str, ImagePayload]] = None,
        enable_reconstruction: Optional[bool] = None,
    ) -> ProcessingResult:
        """
        Run the pipeline over already transcribed text (skip OCR).

        The text is still checked by the verification probe. Reconstruction
        runs only when the source ``image`` is supplied.
        """
        start = time.time()
        payload = None
        if image is not None:
            payload = image if isinstance(image, ImagePayload) else ImagePayload.from_path(image)
        result = ProcessingResult(
            source_id=source_id or (payload.path if payload else None) or uuid.uuid4().hex,
            source_path=payload.path if payload else None,
        )

        result.transition(ProcessingStatus.EXTRACTING)
        text = (text or "").strip()
        if not text:
            self._fail(result, "No text supplied", start)

        extraction = ExtractionResult(
            text=text,
            confidence=self.config.confidence.supplied_text,
            method=ExtractionMethod.VERIFICATION,
            provider="supplied",
        )
        if self.verifier is not None:
            extraction = self.verifier.verify(extraction)

        return self._run_stages(result, extraction, payload, enable_reconstruction, start)

    def reconstruct_existing(
        self,
        result: ProcessingResult,
        image: Optional[Union[str, ImagePayload]] = None,
    ) -> Optional[ReconstructionVersion]:
        """
        Re-run reconstruction over a completed result, creating the next version.

        Returns:
            The new ReconstructionVersion, or None if no glyph needs it.
        """
        if result.status != ProcessingStatus.COMPLETED:
            raise InvalidTransitionError(
                f"Cannot reconstruct {result.source_id} in status {result.status.value}"
            )
        image = image if image is not None else result.source_path
        if image is None:
            logger.warning("No source image for %s, skipping reconstruction", result.source_id)
            return None
        payload = image if isinstance(image, ImagePayload) else ImagePayload.from_path(image)

        candidates = self._candidates(result.glyphs)
        if not candidates:
            logger.info("No glyphs of %s need reconstruction", result.source_id)
            return None

        result.transition(ProcessingStatus.RECONSTRUCTING)
        version = self._reconstruct(result, payload, candidates)
        if version is not None:
            result.reconstruction = version
        result.transition(ProcessingStatus.COMPLETED)
        return version

    def _run_stages(
        self,
        result: ProcessingResult,
        extraction: ExtractionResult,
        payload: Optional[ImagePayload],
        enable_reconstruction: Optional[bool],
        start: float,
    ) -> ProcessingResult:
        result.transition(ProcessingStatus.EXTRACTED)
        result.extraction = extraction
        result.extracted_text = extraction.text
        result.method = extraction.method.value
        text = extraction.text

        script_type = self._detect_script(text)
        result.script_type = script_type

        # Draft translation, used as context for meaning inference
        result.transition(ProcessingStatus.TRANSLATING_DRAFT)
        draft = self._translate(text, [], script_type)
        context = draft.translation if draft.method not in (METHOD_TEMPLATE, METHOD_NONE) else None

        result.transition(ProcessingStatus.MATCHING)
        try:
            result.glyphs = self.matcher.match(
                text, self.store, translation_context=context, script_name=script_type
            )
        except Exception as e:
            logger.error("Glyph matching failed for %s: %s", result.source_id, e)
            result.glyphs = []

        translation = draft
        if self.config.refine_translation and draft.method == METHOD_TEMPLATE and result.glyphs:
            result.transition(ProcessingStatus.TRANSLATING_FINAL)
            translation = self._translate(text, result.glyphs, script_type)
        result.translation = translation
        result.confidence = translation.confidence

        if enable_reconstruction is None:
            enable_reconstruction = self.config.enable_reconstruction
        if enable_reconstruction and payload is not None:
            candidates = self._candidates(result.glyphs)
            if candidates:
                result.transition(ProcessingStatus.RECONSTRUCTING)
                result.reconstruction = self._reconstruct(result, payload, candidates)

        result.transition(ProcessingStatus.COMPLETED)
        result.processing_time_seconds = time.time() - start
        logger.info(
            "Processed %s: %d glyphs, translation via %s (%.2f), %.1fs",
            result.source_id,
            len(result.glyphs),
            translation.method,
            result.confidence,
            result.processing_time_seconds,
        )
        return result

    def _translate(
        self, text: str, glyphs: list[GlyphMatch], script_type: Optional[str]
    ) -> TranslationResult:
        try:
            return self.translator.translate(text, glyphs, script_name=script_type)
        except Exception as e:
            logger.error("Translation failed: %s", e)
            return TranslationResult(
                method=METHOD_NONE, source_text=text, translation="", confidence=0.0
            )

    def _candidates(self, glyphs: list[GlyphMatch]) -> list[GlyphMatch]:
        return [
            g for g in glyphs
            if needs_reconstruction(
                g,
                threshold=self.config.confidence.reconstruction_threshold,
                min_size_px=self.config.min_glyph_size_px,
            )
        ]

    def _reconstruct(
        self,
        result: ProcessingResult,
        payload: ImagePayload,
        candidates: list[GlyphMatch],
    ) -> Optional[ReconstructionVersion]:
        context = ReconstructionContext(
            script_type=result.script_type, extracted_text=result.extracted_text
        )
        try:
            results = self.reconstructor.reconstruct(payload, candidates, context)
        except Exception as e:
            logger.error("Reconstruction failed for %s: %s", result.source_id, e)
            return None
        if not results:
            return None
        return self.history.create(result.source_id, results)

    def _detect_script(self, text: str) -> str:
        """First script recorded in the store for any character of ``text``."""
        try:
            for char in dict.fromkeys(strip_whitespace(text)):
                record = self.store.find_by_symbol(None, char)
                if record is None:
                    continue
                script = self.store.get_script(record.script_id)
                if script is not None:
                    return script.name
        except Exception as e:
            logger.warning("Script detection failed: %s", e)
        return self.config.default_script

    def _fail(self, result: ProcessingResult, error: Optional[str], start: float) -> None:
        result.transition(ProcessingStatus.FAILED)
        result.error = error
        result.processing_time_seconds = time.time() - start
        logger.error("Extraction failed for %s: %s", result.source_id, error)
        raise ExtractionFailedError(detail=error, status_history=list(result.status_history))

    def close(self) -> None:
        self.transport.close()
