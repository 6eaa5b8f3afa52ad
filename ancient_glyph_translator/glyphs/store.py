"""
Glyph Store interface and an in-memory implementation.

The real persistent store (schema, queries) belongs to the host
application; the pipeline only needs the small protocol below. Glyph
creation must be race-safe: concurrent runs that see the same new symbol
end up sharing one record per (script, symbol).
"""

import itertools
import json
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScriptRecord:
    id: int
    name: str
    description: Optional[str] = None
    region: Optional[str] = None
    time_period: Optional[str] = None


@dataclass(frozen=True)
class GlyphRecord:
    id: int
    script_id: int
    symbol: str
    name: Optional[str] = None
    description: Optional[str] = None
    confidence: float = 0.0
    stroke_count: Optional[int] = None


class GlyphStore(ABC):
    """Protocol the pipeline uses to read and write known glyphs."""

    @abstractmethod
    def find_by_symbol(self, script_id: Optional[int], symbol: str) -> Optional[GlyphRecord]:
        """Exact symbol lookup, restricted to ``script_id`` unless it is None."""

    @abstractmethod
    def list_glyphs(self) -> list[GlyphRecord]:
        """Every glyph, used for relaxed matching."""

    @abstractmethod
    def create_glyph(
        self,
        script_id: int,
        symbol: str,
        description: Optional[str] = None,
        confidence: float = 0.0,
        name: Optional[str] = None,
    ) -> GlyphRecord:
        """Create the glyph, or return the existing one for (script_id, symbol)."""

    @abstractmethod
    def update_glyph(self, glyph_id: int, **fields) -> GlyphRecord:
        """Update fields of an existing glyph."""

    @abstractmethod
    def find_or_create_script(self, name: str) -> ScriptRecord:
        """Return the script named ``name``, creating it if needed."""

    @abstractmethod
    def get_script(self, script_id: int) -> Optional[ScriptRecord]:
        ...


class InMemoryGlyphStore(GlyphStore):
    """Thread-safe dictionary-backed store, with JSON load/save for the CLI."""

    def __init__(self):
        self._lock = threading.RLock()
        self._ids = itertools.count(1)
        self._glyphs: dict[int, GlyphRecord] = {}
        self._by_key: dict[tuple[int, str], int] = {}
        self._scripts: dict[int, ScriptRecord] = {}
        self._scripts_by_name: dict[str, int] = {}

    def find_by_symbol(self, script_id: Optional[int], symbol: str) -> Optional[GlyphRecord]:
        with self._lock:
            if script_id is not None:
                glyph_id = self._by_key.get((script_id, symbol))
                return self._glyphs.get(glyph_id) if glyph_id is not None else None
            for glyph in self._glyphs.values():
                if glyph.symbol == symbol:
                    return glyph
            return None

    def list_glyphs(self) -> list[GlyphRecord]:
        with self._lock:
            return list(self._glyphs.values())

    def create_glyph(
        self,
        script_id: int,
        symbol: str,
        description: Optional[str] = None,
        confidence: float = 0.0,
        name: Optional[str] = None,
    ) -> GlyphRecord:
        with self._lock:
            if script_id not in self._scripts:
                raise KeyError(f"Unknown script id: {script_id}")
            existing = self._by_key.get((script_id, symbol))
            if existing is not None:
                return self._glyphs[existing]
            glyph = GlyphRecord(
                id=next(self._ids),
                script_id=script_id,
                symbol=symbol,
                name=name or symbol,
                description=description,
                confidence=confidence,
            )
            self._glyphs[glyph.id] = glyph
            self._by_key[(script_id, symbol)] = glyph.id
            logger.debug("Created glyph %s in script %d", symbol, script_id)
            return glyph

    def update_glyph(self, glyph_id: int, **fields) -> GlyphRecord:
        with self._lock:
            glyph = self._glyphs.get(glyph_id)
            if glyph is None:
                raise KeyError(f"Unknown glyph id: {glyph_id}")
            fields.pop("id", None)
            fields.pop("symbol", None)
            fields.pop("script_id", None)
            updated = replace(glyph, **fields)
            self._glyphs[glyph_id] = updated
            return updated

    def find_or_create_script(self, name: str) -> ScriptRecord:
        with self._lock:
            script_id = self._scripts_by_name.get(name)
            if script_id is not None:
                return self._scripts[script_id]
            script = ScriptRecord(
                id=next(self._ids),
                name=name,
                description=f"Detected script type: {name}",
                region="Unknown",
                time_period="Unknown",
            )
            self._scripts[script.id] = script
            self._scripts_by_name[name] = script.id
            logger.info("Created script record: %s", name)
            return script

    def get_script(self, script_id: int) -> Optional[ScriptRecord]:
        with self._lock:
            return self._scripts.get(script_id)

    def save(self, path: str) -> None:
        """Write all scripts and glyphs to a JSON file."""
        with self._lock:
            data = {
                "scripts": [asdict(s) for s in self._scripts.values()],
                "glyphs": [asdict(g) for g in self._glyphs.values()],
            }
        out = Path(path)
        out.parent.mkdir(parents=True, exist_ok=True)
        with open(out, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        logger.info("Glyph store saved to: %s", out)

    @classmethod
    def load(cls, path: str) -> "InMemoryGlyphStore":
        """Read a store written by :meth:`save`; a missing file gives an empty store."""
        store = cls()
        src = Path(path)
        if not src.exists():
            return store
        with open(src, encoding="utf-8") as f:
            data = json.load(f)

        max_id = 0
        for item in data.get("scripts", []):
            script = ScriptRecord(**item)
            store._scripts[script.id] = script
            store._scripts_by_name[script.name] = script.id
            max_id = max(max_id, script.id)
        for item in data.get("glyphs", []):
            glyph = GlyphRecord(**item)
            store._glyphs[glyph.id] = glyph
            store._by_key[(glyph.script_id, glyph.symbol)] = glyph.id
            max_id = max(max_id, glyph.id)
        store._ids = itertools.count(max_id + 1)
        logger.info(
            "Loaded %d scripts and %d glyphs from %s",
            len(store._scripts), len(store._glyphs), src,
        )
        return store
