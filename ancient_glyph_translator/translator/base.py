"""
Translation result data structure.
"""

from dataclasses import dataclass, field


@dataclass
class TranslationResult:
    """Result from one tier of the translation fallback chain."""
    method: str
    source_text: str
    translation: str
    confidence: float  # Tier confidence 0.0–1.0
    latency_seconds: float = 0.0
    metadata: dict = field(default_factory=dict)

    @property
    def is_successful(self) -> bool:
        return self.confidence > 0 and bool(self.translation.strip())

    def to_dict(self) -> dict:
        return {
            "method": self.method,
            "translation": self.translation,
            "confidence": self.confidence,
            "latency_seconds": self.latency_seconds,
            "metadata": self.metadata,
        }
