"""
Translation subsystem: ordered backends, a static phrase table and a
glyph-meaning template as the last resort.
"""

from ancient_glyph_translator.translator.base import TranslationResult

__all__ = [
    "TranslationResult",
    "TranslationGenerator",
    "COMMON_PHRASES",
]


def __getattr__(name: str):
    if name in ("TranslationGenerator", "COMMON_PHRASES"):
        from ancient_glyph_translator.translator import generator
        return getattr(generator, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
