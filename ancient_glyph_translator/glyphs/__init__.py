"""
Glyph Store access, meaning inference and per-character matching.
"""

from ancient_glyph_translator.glyphs.store import (
    GlyphRecord,
    GlyphStore,
    InMemoryGlyphStore,
    ScriptRecord,
)


def __getattr__(name: str):
    if name in ("GlyphMatcher", "GlyphMatch", "BoundingBox", "choose_meaning", "is_placeholder"):
        from ancient_glyph_translator.glyphs import matcher
        return getattr(matcher, name)
    if name == "MeaningService":
        from ancient_glyph_translator.glyphs.meanings import MeaningService
        return MeaningService
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "GlyphRecord",
    "GlyphStore",
    "InMemoryGlyphStore",
    "ScriptRecord",
    "GlyphMatcher",
    "GlyphMatch",
    "BoundingBox",
    "MeaningService",
    "choose_meaning",
    "is_placeholder",
]
