"""
Glyph matching.

Maps every character of the extracted text onto the Glyph Store, attaches a
meaning and a confidence driven by where that meaning came from, and records
first sightings / improved meanings back into the store.

Confidence tiers:
    semantic meaning from the inference service     0.85
    non-placeholder meaning already in the store    max(stored, 0.75)
    single-character last-resort lookup             0.70
    character recognised, no meaning                0.60
"""

import logging
from dataclasses import asdict, dataclass
from typing import Optional

from ancient_glyph_translator.config import ConfidencePolicy
from ancient_glyph_translator.glyphs.meanings import MeaningService
from ancient_glyph_translator.glyphs.store import GlyphRecord, GlyphStore
from ancient_glyph_translator.utils import clamp, strip_whitespace, unique_script_chars

logger = logging.getLogger(__name__)

UNKNOWN_MEANING = "unknown character"

# Never matched as glyphs
PUNCTUATION = frozenset(
    ".,;:!?-_=+()[]{}"
    "。，、；：！？「」『』（）《》〈〉【】〔〕·…—～"
)

# Case-sensitive: "the unknown" is an ordinary meaning, "Unknown" a stand-in
_PLACEHOLDER_MARKERS = ("Character:", "Unknown", "not available")

# Synthetic layout: matches are placed left to right with a fixed pitch
BOX_PITCH = 60
BOX_OFFSET_X = 10
BOX_Y = 20
BOX_SIZE = 50


@dataclass(frozen=True)
class BoundingBox:
    x: int
    y: int
    width: int
    height: int


@dataclass
class GlyphMatch:
    """One recognised character of a processing run."""
    symbol: str
    position: int
    confidence: float
    meaning: str
    bounding_box: Optional[BoundingBox] = None

    def to_dict(self) -> dict:
        return asdict(self)


def is_placeholder(meaning: Optional[str]) -> bool:
    """True for empty or non-informative stand-in descriptions."""
    if not meaning or not meaning.strip():
        return True
    if meaning.strip().lower() == UNKNOWN_MEANING:
        return True
    return any(marker in meaning for marker in _PLACEHOLDER_MARKERS)


def choose_meaning(existing: Optional[str], candidate: Optional[str]) -> Optional[str]:
    """
    Decide whether a stored description should be replaced.

    Returns the candidate when it is a real meaning and the existing one is a
    placeholder, otherwise None (keep what is stored). A good meaning is never
    replaced by a worse one.
    """
    if is_placeholder(candidate):
        return None
    if not is_placeholder(existing):
        return None
    return candidate.strip()


def placeholder_description(symbol: str) -> str:
    return f"Character: {symbol}"


def synthetic_box(position: int) -> BoundingBox:
    return BoundingBox(
        x=position * BOX_PITCH + BOX_OFFSET_X,
        y=BOX_Y,
        width=BOX_SIZE,
        height=BOX_SIZE,
    )


class GlyphMatcher:
    """
    Matches extracted text against a Glyph Store.

    Usage:
        matcher = GlyphMatcher(MeaningService(providers, config), ConfidencePolicy())
        glyphs = matcher.match("道法自然", store, translation_context="The Tao ...")
    """

    def __init__(
        self,
        meanings: MeaningService,
        policy: ConfidencePolicy,
        default_script: str = "Traditional Chinese",
    ):
        self.meanings = meanings
        self.policy = policy
        self.default_script = default_script

    def match(
        self,
        text: str,
        store: GlyphStore,
        translation_context: Optional[str] = None,
        script_name: Optional[str] = None,
    ) -> list[GlyphMatch]:
        """
        Match each non-punctuation character of ``text``.

        Args:
            text: Extracted text; whitespace is ignored.
            store: Glyph Store to read and update.
            translation_context: Draft translation used to bias meanings.
            script_name: Script new glyphs are recorded under.

        Returns:
            GlyphMatch list ordered by position.
        """
        characters = strip_whitespace(text)
        if not characters:
            return []

        semantic = self.meanings.infer_meanings(
            unique_script_chars(characters), translation_context
        )
        logger.info("Retrieved %d character meanings from semantic service", len(semantic))

        script = store.find_or_create_script(script_name or self.default_script)
        catalogue = store.list_glyphs()
        lookups: dict[str, Optional[str]] = {}
        matches: list[GlyphMatch] = []

        for position, char in enumerate(characters):
            if char in PUNCTUATION:
                continue

            record = store.find_by_symbol(None, char) or self._relaxed_match(char, catalogue)
            if record is not None:
                meaning, confidence = self._score_known(char, record, semantic)
            else:
                meaning, confidence = self._score_unknown(char, semantic, lookups)

            matches.append(GlyphMatch(
                symbol=char,
                position=position,
                confidence=clamp(confidence),
                meaning=meaning,
                bounding_box=synthetic_box(position),
            ))

        # Scoring reads the store as it was before this run
        for match in matches:
            self._record_sighting(store, script.id, match)

        with_meaning = sum(1 for m in matches if not is_placeholder(m.meaning))
        logger.info("Matched %d glyphs, %d with meanings", len(matches), with_meaning)
        return matches

    def _score_known(
        self, char: str, record: GlyphRecord, semantic: dict[str, str]
    ) -> tuple[str, float]:
        # A fresh semantic meaning always wins over a possibly generic stored one
        if char in semantic:
            return semantic[char], self.policy.semantic_meaning

        stored = record.description or record.name
        if not is_placeholder(stored):
            floor = self.policy.stored_meaning_floor
            return stored, max(record.confidence or floor, floor)

        return UNKNOWN_MEANING, self.policy.recognized_only

    def _score_unknown(
        self,
        char: str,
        semantic: dict[str, str],
        lookups: dict[str, Optional[str]],
    ) -> tuple[str, float]:
        if char in semantic:
            return semantic[char], self.policy.semantic_meaning

        if char not in lookups:
            lookups[char] = self.meanings.lookup(char) if self.meanings.available else None
        fallback = lookups[char]
        if fallback:
            return fallback, self.policy.single_lookup

        logger.warning("Character %s recognized but no meaning found", char)
        return UNKNOWN_MEANING, self.policy.recognized_only

    @staticmethod
    def _relaxed_match(char: str, catalogue: list[GlyphRecord]) -> Optional[GlyphRecord]:
        """Same leading code point, or the glyph's name mentions the character."""
        lowered = char.lower()
        for glyph in catalogue:
            if glyph.symbol and ord(glyph.symbol[0]) == ord(char):
                return glyph
            if glyph.name and lowered in glyph.name.lower():
                return glyph
        return None

    def _record_sighting(self, store: GlyphStore, script_id: int, match: GlyphMatch) -> None:
        """Create the glyph on first sighting, or improve a placeholder meaning."""
        meaning = None if is_placeholder(match.meaning) else match.meaning
        record = store.find_by_symbol(script_id, match.symbol)
        if record is None:
            store.create_glyph(
                script_id,
                match.symbol,
                description=meaning or placeholder_description(match.symbol),
                confidence=match.confidence,
            )
            return

        improved = choose_meaning(record.description, meaning)
        if improved is not None:
            store.update_glyph(
                record.id,
                description=improved,
                confidence=max(record.confidence or 0.0, match.confidence),
            )
            logger.debug("Improved meaning of %s: %s", match.symbol, improved)
