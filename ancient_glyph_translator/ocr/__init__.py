"""
OCR subsystem for inscription images.

Tries vision backends in fallback order and optionally verifies the
transcription against a classical-Chinese language model.
"""

from ancient_glyph_translator.ocr.image import ImagePayload


def __getattr__(name: str):
    if name in ("OCROrchestrator", "ExtractionResult", "ExtractionMethod"):
        from ancient_glyph_translator.ocr import engine
        return getattr(engine, name)
    if name == "TextVerifier":
        from ancient_glyph_translator.ocr.postprocessor import TextVerifier
        return TextVerifier
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "ImagePayload",
    "OCROrchestrator",
    "ExtractionResult",
    "ExtractionMethod",
    "TextVerifier",
]
