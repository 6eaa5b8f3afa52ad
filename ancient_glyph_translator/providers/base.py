"""
Base provider interface shared by OCR, meaning inference, translation and
reconstruction.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ancient_glyph_translator.ocr.image import ImagePayload


class BaseProvider(ABC):
    """Abstract base for all external AI backends.

    A provider turns a prompt (and optionally an image) into text. Failures
    are raised as BackendError with an ErrorKind so that callers can decide
    between "skip to next" and "record and advance"; providers never retry.
    """

    #: Whether the provider can read images.
    supports_images: bool = False
    #: Whether the provider follows free-form instructions (Tesseract does not).
    accepts_prompt: bool = True

    @property
    @abstractmethod
    def name(self) -> str:
        """Identifier used in logs and results, e.g. ``gemini-2.5-flash@v1``."""
        ...

    @abstractmethod
    def generate(
        self,
        prompt: str,
        image: Optional[ImagePayload] = None,
        *,
        max_tokens: int = 500,
        temperature: float = 0.1,
        timeout: float = 30.0,
    ) -> str:
        """
        Run one completion.

        Args:
            prompt: Instruction text.
            image: Optional image for vision-capable providers.
            max_tokens: Output budget.
            temperature: Sampling temperature.
            timeout: Per-call timeout in seconds.

        Returns:
            The generated text, possibly empty.

        Raises:
            BackendError: if the call failed.
        """
        ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"
