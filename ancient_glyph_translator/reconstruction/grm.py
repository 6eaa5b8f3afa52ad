"""
Generative Reconstruction Module (GRM).

Flags damaged or illegible glyph instances and asks a vision model to propose
the original glyph for each of them, looking at the source image.

Candidates are sent in batches, one prompt per batch. A batch that no provider
can answer is retried one candidate at a time, and a candidate that still gets
no answer is reported with zero confidence instead of aborting its siblings.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional

from ancient_glyph_translator.errors import BackendError
from ancient_glyph_translator.ocr.image import ImagePayload
from ancient_glyph_translator.providers.base import BaseProvider
from ancient_glyph_translator.responses import extract_json_array
from ancient_glyph_translator.utils import chunked, clamp

logger = logging.getLogger(__name__)

RECONSTRUCTION_METHOD = "generative-reconstruction"

RECONSTRUCTION_PROMPT = """You are an expert palaeographer restoring damaged {script} inscriptions.
The attached image contains glyphs that are damaged, faded or only partially legible.
For each numbered region below, propose the most plausible original glyph, using
forms appropriate to the period and script of the inscription.

Regions:
{regions}

Return ONLY a JSON array with one object per region:
[{{"index": 0, "glyph": "字", "confidence": 0.0, "rationale": "short explanation"}}]
"confidence" is your certainty between 0 and 1. Do not include any other text."""

NO_ANSWER_DETAILS = "Reconstruction unavailable: no backend produced a usable answer"


def needs_reconstruction(
    glyph,
    threshold: float = 0.70,
    min_size_px: int = 10,
) -> bool:
    """
    True if a glyph instance should be sent to reconstruction.

    A glyph is flagged when its symbol is missing, its confidence is below
    ``threshold``, or its bounding box is smaller than ``min_size_px`` in
    either dimension (a fragment too small to have been read reliably).
    Lowering confidence or shrinking the box never clears the flag.
    """
    if not getattr(glyph, "symbol", None):
        return True
    confidence = getattr(glyph, "confidence", None)
    if confidence is None or confidence < threshold:
        return True
    box = getattr(glyph, "bounding_box", None)
    if box is not None and (box.width < min_size_px or box.height < min_size_px):
        return True
    return False


@dataclass
class ReconstructionContext:
    """Extra information biasing the generative prompt."""
    script_type: Optional[str] = None
    extracted_text: Optional[str] = None


@dataclass
class ReconstructionResult:
    """One proposed glyph for one reconstruction candidate."""
    reconstructed_glyph: str
    confidence: float
    method: str = RECONSTRUCTION_METHOD
    details: str = ""
    position: Optional[int] = None
    original_symbol: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "reconstructed_glyph": self.reconstructed_glyph,
            "confidence": self.confidence,
            "method": self.method,
            "details": self.details,
            "position": self.position,
            "original_symbol": self.original_symbol,
        }


@dataclass
class _Attempt:
    answers: dict[int, ReconstructionResult] = field(default_factory=dict)
    error: Optional[str] = None


class GlyphReconstructor:
    """
    Batched generative reconstruction against the source image.

    Usage:
        grm = GlyphReconstructor(registry.reconstruction, batch_size=10)
        flagged = [g for g in glyphs if needs_reconstruction(g)]
        results = grm.reconstruct(image, flagged, ReconstructionContext("Seal Script"))
    """

    def __init__(
        self,
        providers: list[BaseProvider],
        batch_size: int = 10,
        timeout: float = 60.0,
        tokens_per_candidate: int = 150,
    ):
        self.providers = providers
        self.batch_size = max(1, batch_size)
        self.timeout = timeout
        self.tokens_per_candidate = tokens_per_candidate

    def reconstruct(
        self,
        image: ImagePayload,
        candidates: list,
        context: Optional[ReconstructionContext] = None,
    ) -> list[ReconstructionResult]:
        """
        Propose a reconstruction for every candidate.

        Returns:
            One ReconstructionResult per candidate, in candidate order.
        """
        context = context or ReconstructionContext()
        results: list[ReconstructionResult] = []
        if not candidates:
            return results

        logger.info(
            "Reconstructing %d glyphs in batches of %d", len(candidates), self.batch_size
        )
        for batch in chunked(candidates, self.batch_size):
            attempt = self._attempt(image, batch, context)
            missing = [i for i in range(len(batch)) if i not in attempt.answers]
            if missing and len(batch) > 1:
                logger.info(
                    "Batch reconstruction left %d of %d glyphs unanswered, retrying individually",
                    len(missing), len(batch),
                )
                for index in missing:
                    single = self._attempt(image, [batch[index]], context)
                    if 0 in single.answers:
                        attempt.answers[index] = single.answers[0]
                    elif single.error:
                        attempt.error = single.error

            for index, candidate in enumerate(batch):
                result = attempt.answers.get(index)
                if result is None:
                    result = ReconstructionResult(
                        reconstructed_glyph="",
                        confidence=0.0,
                        details=(
                            f"{NO_ANSWER_DETAILS} ({attempt.error})"
                            if attempt.error else NO_ANSWER_DETAILS
                        ),
                    )
                result.position = getattr(candidate, "position", None)
                result.original_symbol = getattr(candidate, "symbol", None) or None
                results.append(result)

        reconstructed = sum(1 for r in results if r.confidence > 0)
        logger.info("Reconstructed %d/%d glyphs", reconstructed, len(results))
        return results

    def build_prompt(self, batch: list, context: ReconstructionContext) -> str:
        lines = []
        for index, candidate in enumerate(batch):
            box = getattr(candidate, "bounding_box", None)
            region = (
                f"x={box.x}, y={box.y}, width={box.width}, height={box.height}"
                if box is not None else "location unknown"
            )
            symbol = getattr(candidate, "symbol", None) or "unreadable"
            confidence = getattr(candidate, "confidence", None) or 0.0
            lines.append(
                f"{index}. region {region}; current reading: {symbol} "
                f"(confidence {confidence:.2f})"
            )
        prompt = RECONSTRUCTION_PROMPT.format(
            script=context.script_type or "ancient", regions="\n".join(lines)
        )
        if context.extracted_text:
            prompt += f'\nThe legible text of the inscription reads: "{context.extracted_text}".'
        return prompt

    def _attempt(
        self, image: ImagePayload, batch: list, context: ReconstructionContext
    ) -> _Attempt:
        """One prompt for ``batch``, across providers until one answers."""
        attempt = _Attempt()
        if not self.providers:
            attempt.error = "no reconstruction backend configured"
            return attempt

        prompt = self.build_prompt(batch, context)
        for provider in self.providers:
            try:
                text = provider.generate(
                    prompt,
                    image,
                    max_tokens=self.tokens_per_candidate * len(batch) + 100,
                    temperature=0.2,
                    timeout=self.timeout,
                )
            except BackendError as e:
                logger.info("Reconstruction via %s failed: %s", provider.name, e)
                attempt.error = str(e)
                continue
            except Exception as e:
                logger.warning("Reconstruction via %s failed: %s", provider.name, e)
                attempt.error = str(e)
                continue

            answers = self.parse_answers(text, len(batch))
            if answers:
                attempt.answers = answers
                return attempt
            attempt.error = f"unparseable answer from {provider.name}"
        return attempt

    @staticmethod
    def parse_answers(text: str, size: int) -> dict[int, ReconstructionResult]:
        """Map batch index to result; entries without a glyph are dropped."""
        answers: dict[int, ReconstructionResult] = {}
        for entry in extract_json_array(text):
            if not isinstance(entry, dict):
                continue
            index = entry.get("index")
            glyph = entry.get("glyph")
            if not isinstance(index, int) or not 0 <= index < size:
                continue
            if not isinstance(glyph, str) or not glyph.strip():
                continue
            try:
                confidence = clamp(float(entry.get("confidence", 0.0)))
            except (TypeError, ValueError):
                confidence = 0.0
            rationale = entry.get("rationale")
            answers[index] = ReconstructionResult(
                reconstructed_glyph=glyph.strip(),
                confidence=confidence,
                details=rationale if isinstance(rationale, str) else "",
            )
        return answers
