"""
Generative glyph reconstruction and its version history.
"""

from ancient_glyph_translator.reconstruction.grm import (
    GlyphReconstructor,
    ReconstructionContext,
    ReconstructionResult,
    needs_reconstruction,
)
from ancient_glyph_translator.reconstruction.versions import (
    ReconstructionHistory,
    ReconstructionVersion,
)

__all__ = [
    "GlyphReconstructor",
    "ReconstructionContext",
    "ReconstructionResult",
    "ReconstructionHistory",
    "ReconstructionVersion",
    "needs_reconstruction",
]
