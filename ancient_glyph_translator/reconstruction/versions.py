"""
Reconstruction versioning.

Every reconstruction run over a source image is stored as a new version whose
number is the count of prior versions for that source plus one.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from ancient_glyph_translator.reconstruction.grm import (
    RECONSTRUCTION_METHOD,
    ReconstructionResult,
)
from ancient_glyph_translator.utils import mean

logger = logging.getLogger(__name__)


@dataclass
class ReconstructionVersion:
    source_id: str
    version_number: int
    results: list[ReconstructionResult]
    confidence: float
    method: str = RECONSTRUCTION_METHOD
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "source_id": self.source_id,
            "version_number": self.version_number,
            "results": [r.to_dict() for r in self.results],
            "confidence": self.confidence,
            "method": self.method,
            "created_at": self.created_at.isoformat(),
        }


class ReconstructionHistory:
    """In-memory, thread-safe version store keyed by source id."""

    def __init__(self):
        self._lock = threading.Lock()
        self._versions: dict[str, list[ReconstructionVersion]] = {}

    def count(self, source_id: str) -> int:
        with self._lock:
            return len(self._versions.get(source_id, []))

    def versions(self, source_id: str) -> list[ReconstructionVersion]:
        with self._lock:
            return list(self._versions.get(source_id, []))

    def latest(self, source_id: str) -> Optional[ReconstructionVersion]:
        with self._lock:
            versions = self._versions.get(source_id)
            return versions[-1] if versions else None

    def create(
        self,
        source_id: str,
        results: list[ReconstructionResult],
        method: str = RECONSTRUCTION_METHOD,
    ) -> ReconstructionVersion:
        """Record ``results`` as the next version of ``source_id``."""
        with self._lock:
            versions = self._versions.setdefault(source_id, [])
            version = ReconstructionVersion(
                source_id=source_id,
                version_number=len(versions) + 1,
                results=list(results),
                confidence=mean(r.confidence for r in results),
                method=method,
            )
            versions.append(version)
        logger.info(
            "Created reconstruction version %d for %s (%d glyphs, confidence %.2f)",
            version.version_number, source_id, len(results), version.confidence,
        )
        return version
