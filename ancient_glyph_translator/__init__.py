"""
Ancient Glyph Recognition & Reconstruction
==========================================

Extracts text from images of ancient inscriptions, matches each character
against a glyph store, translates the text and proposes reconstructions for
damaged or illegible glyphs.

Architecture:
    Image → OCR (ordered backend fallback) → Verification probe
        → Draft translation → Glyph matching + meaning inference
        → Final translation → Generative reconstruction (GRM)

OCR Backends:
    1. Gemini vision (four model configurations) — primary tier
    2. Claude / OpenAI vision — auxiliary tier
    3. Tesseract (opt-in) — local last resort

Translation Chain:
    Text backends → static phrase table → glyph-meaning template
"""

__version__ = "1.0.0"

from ancient_glyph_translator.config import PipelineConfig


def __getattr__(name: str):
    """Lazy import so that config-only users skip the SDK imports."""
    if name == "GlyphPipeline":
        from ancient_glyph_translator.pipeline import GlyphPipeline
        return GlyphPipeline
    if name == "BatchProcessor":
        from ancient_glyph_translator.batch import BatchProcessor
        return BatchProcessor
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["GlyphPipeline", "BatchProcessor", "PipelineConfig"]
