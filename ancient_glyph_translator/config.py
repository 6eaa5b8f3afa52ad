"""
Configuration management for the ancient glyph recognition pipeline.

A single PipelineConfig is built at process start and handed down to the
transport layer, the provider registry and every pipeline stage.
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class Provider(Enum):
    GEMINI = "gemini"
    CLAUDE = "claude"
    OPENAI = "openai"
    TESSERACT = "tesseract"
    HUGGINGFACE = "huggingface"


@dataclass(frozen=True)
class ModelConfig:
    """One Gemini API version + model pair."""
    version: str
    model: str

    @property
    def label(self) -> str:
        return f"{self.model}@{self.version}"


DEFAULT_GEMINI_MODELS = [
    ModelConfig("v1beta", "gemini-2.5-flash"),
    ModelConfig("v1", "gemini-2.5-flash"),
    ModelConfig("v1beta", "gemini-2.5-flash-lite"),
    ModelConfig("v1", "gemini-2.5-flash-lite"),
]


def _proxychains_active() -> bool:
    preload = os.environ.get("LD_PRELOAD", "")
    return "proxychains" in preload or bool(os.environ.get("PROXYCHAINS_CONF_FILE"))


@dataclass
class TransportConfig:
    """Outbound HTTP settings."""
    socks_proxy: Optional[str] = None
    # proxychains already routes the process; a code-level proxy would conflict
    proxychains_active: bool = False
    text_timeout: float = 30.0
    vision_timeout: float = 60.0
    lookup_timeout: float = 10.0

    @classmethod
    def from_env(cls) -> "TransportConfig":
        return cls(
            socks_proxy=os.environ.get("SOCKS5_PROXY") or os.environ.get("SOCKS_PROXY"),
            proxychains_active=_proxychains_active(),
        )

    @property
    def proxy_url(self) -> Optional[str]:
        if self.proxychains_active:
            return None
        return self.socks_proxy or None


@dataclass
class ConfidencePolicy:
    """Confidence assigned by each fallback tier."""
    # OCR
    primary_vision: float = 0.90
    auxiliary_vision: float = 0.85
    local_ocr: float = 0.65
    supplied_text: float = 0.80
    dev_fallback: float = 0.50
    verification_delta: float = 0.05
    verification_cap: float = 0.95
    # Glyph matching
    semantic_meaning: float = 0.85
    stored_meaning_floor: float = 0.75
    single_lookup: float = 0.70
    recognized_only: float = 0.60
    # Translation
    translation_backend: float = 0.88
    phrase_table: float = 0.90
    template_cap: float = 0.85
    template_default: float = 0.70
    # Reconstruction
    reconstruction_threshold: float = 0.70


@dataclass
class PipelineConfig:
    """Pipeline configuration."""
    # API keys, loaded from env vars if not set
    gemini_api_key: Optional[str] = None
    anthropic_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    huggingface_api_key: Optional[str] = None

    # Provider order per role; unavailable providers are dropped
    vision_providers: list[Provider] = field(
        default_factory=lambda: [
            Provider.GEMINI,
            Provider.CLAUDE,
            Provider.OPENAI,
            Provider.TESSERACT,
        ]
    )
    text_providers: list[Provider] = field(
        default_factory=lambda: [Provider.GEMINI, Provider.CLAUDE, Provider.OPENAI]
    )

    # Models
    gemini_models: list[ModelConfig] = field(
        default_factory=lambda: list(DEFAULT_GEMINI_MODELS)
    )
    claude_model: str = "claude-sonnet-4-6"
    openai_model: str = "gpt-4o"
    verification_model: str = "uer/gpt2-chinese-ancient"

    # Local OCR is opt-in: it needs the tesseract binary and language data
    enable_tesseract: bool = False
    tesseract_lang: str = "chi_tra"

    # Verification probe
    enable_verification: bool = True
    verification_probe_chars: int = 50

    # Glyph matching
    default_script: str = "Traditional Chinese"
    meaning_batch_size: int = 20
    meaning_tokens_per_char: int = 60
    meaning_min_tokens: int = 800
    meaning_max_tokens: int = 8000
    context_chars: int = 500

    # Translation
    refine_translation: bool = True

    # Reconstruction
    enable_reconstruction: bool = True
    reconstruction_batch_size: int = 10
    min_glyph_size_px: int = 10

    # Batch
    max_concurrent: int = 3

    # Development escape hatch: substitute sample text when OCR is unreachable
    enable_ocr_fallback: Optional[bool] = None

    transport: TransportConfig = field(default_factory=TransportConfig.from_env)
    confidence: ConfidencePolicy = field(default_factory=ConfidencePolicy)

    def __post_init__(self):
        """Load API keys and flags from environment variables if not provided."""
        if not self.gemini_api_key:
            self.gemini_api_key = os.environ.get("GOOGLE_GEMINI_API_KEY")
        if not self.anthropic_api_key:
            self.anthropic_api_key = os.environ.get("ANTHROPIC_API_KEY")
        if not self.openai_api_key:
            self.openai_api_key = os.environ.get("OPENAI_API_KEY")
        if not self.huggingface_api_key:
            self.huggingface_api_key = os.environ.get("HUGGINGFACE_API_KEY")
        if self.enable_ocr_fallback is None:
            self.enable_ocr_fallback = (
                os.environ.get("ENABLE_OCR_FALLBACK", "").lower() == "true"
            )

    def is_available(self, provider: Provider) -> bool:
        """A provider is available when its credential (or opt-in flag) is set."""
        key_map = {
            Provider.GEMINI: self.gemini_api_key,
            Provider.CLAUDE: self.anthropic_api_key,
            Provider.OPENAI: self.openai_api_key,
            Provider.HUGGINGFACE: self.huggingface_api_key,
            Provider.TESSERACT: self.enable_tesseract,
        }
        return bool(key_map.get(provider))

    def get_available_providers(self, providers: list[Provider]) -> list[Provider]:
        """Return only providers from ``providers`` that are configured, in order."""
        return [p for p in providers if self.is_available(p)]
