"""
Local Tesseract OCR provider.

Last-resort extraction when no vision API is reachable. It ignores the
prompt and only transcribes, so it is never used for reconstruction.
"""

import logging
from typing import Optional

from ancient_glyph_translator.errors import BackendError, ErrorKind
from ancient_glyph_translator.ocr.image import ImagePayload
from ancient_glyph_translator.providers.base import BaseProvider

logger = logging.getLogger(__name__)


class TesseractProvider(BaseProvider):
    """Tesseract wrapper for traditional Chinese inscriptions."""

    supports_images = True
    accepts_prompt = False

    def __init__(self, lang: str = "chi_tra", psm: int = 6):
        try:
            import pytesseract
            self.pytesseract = pytesseract
        except ImportError:
            raise ImportError(
                "pytesseract is required. Install with: pip install pytesseract\n"
                "Also install Tesseract binary: sudo apt-get install tesseract-ocr tesseract-ocr-chi-tra"
            )
        self.lang = lang
        self.psm = psm

    @property
    def name(self) -> str:
        return f"tesseract:{self.lang}"

    def generate(
        self,
        prompt: str,
        image: Optional[ImagePayload] = None,
        *,
        max_tokens: int = 500,
        temperature: float = 0.1,
        timeout: float = 60.0,
    ) -> str:
        if image is None:
            raise BackendError(
                "Tesseract needs an image", kind=ErrorKind.APPLICATION, provider=self.name
            )
        try:
            text = self.pytesseract.image_to_string(
                image.to_pil(),
                lang=self.lang,
                config=f"--psm {self.psm}",
                timeout=timeout,
            )
        except (self.pytesseract.TesseractError, OSError) as e:
            # OSError covers a missing tesseract binary
            raise BackendError(str(e), kind=ErrorKind.APPLICATION, provider=self.name) from e
        except RuntimeError as e:
            # pytesseract signals its own timeout with a bare RuntimeError
            raise BackendError(str(e), kind=ErrorKind.TIMEOUT, provider=self.name) from e

        text = text.strip()
        logger.info("Tesseract OCR: extracted %d chars", len(text))
        return text
