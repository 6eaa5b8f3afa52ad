"""
Declarative, ordered registry of capability providers.

The order in which providers are tried is configuration (PipelineConfig's
``vision_providers`` / ``text_providers`` lists); whether a provider takes
part is decided by its availability predicate (credential present). Adding or
removing a backend never touches orchestration code.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from ancient_glyph_translator.config import PipelineConfig, Provider
from ancient_glyph_translator.providers.base import BaseProvider
from ancient_glyph_translator.transport import HTTPTransport

logger = logging.getLogger(__name__)

ProviderFactory = Callable[[PipelineConfig, HTTPTransport], list[BaseProvider]]


def _gemini(config: PipelineConfig, transport: HTTPTransport) -> list[BaseProvider]:
    from ancient_glyph_translator.providers.gemini import GeminiProvider
    return [
        GeminiProvider(config.gemini_api_key, model, transport)
        for model in config.gemini_models
    ]


def _claude(config: PipelineConfig, transport: HTTPTransport) -> list[BaseProvider]:
    from ancient_glyph_translator.providers.claude import ClaudeProvider
    return [ClaudeProvider(config.anthropic_api_key, config.claude_model, transport)]


def _openai(config: PipelineConfig, transport: HTTPTransport) -> list[BaseProvider]:
    from ancient_glyph_translator.providers.openai_provider import OpenAIProvider
    return [OpenAIProvider(config.openai_api_key, config.openai_model, transport)]


def _tesseract(config: PipelineConfig, transport: HTTPTransport) -> list[BaseProvider]:
    from ancient_glyph_translator.providers.tesseract import TesseractProvider
    return [TesseractProvider(lang=config.tesseract_lang)]


PROVIDER_FACTORIES: dict[Provider, ProviderFactory] = {
    Provider.GEMINI: _gemini,
    Provider.CLAUDE: _claude,
    Provider.OPENAI: _openai,
    Provider.TESSERACT: _tesseract,
}

# First vision provider in the list is the primary tier
PRIMARY_VISION = Provider.GEMINI


@dataclass
class ProviderRegistry:
    """Providers available to each pipeline role, in fallback order."""
    vision: list[BaseProvider] = field(default_factory=list)
    text: list[BaseProvider] = field(default_factory=list)
    verifier: Optional[BaseProvider] = None
    #: Names of vision providers belonging to the primary tier.
    primary: set[str] = field(default_factory=set)

    @classmethod
    def from_config(
        cls, config: PipelineConfig, transport: HTTPTransport
    ) -> "ProviderRegistry":
        """Instantiate every configured provider, skipping unavailable ones."""
        cache: dict[Provider, list[BaseProvider]] = {}

        def build(provider: Provider) -> list[BaseProvider]:
            if provider not in cache:
                factory = PROVIDER_FACTORIES.get(provider)
                if factory is None:
                    logger.warning("Unknown provider: %s", provider)
                    cache[provider] = []
                else:
                    try:
                        cache[provider] = factory(config, transport)
                        logger.info("Initialized provider: %s", provider.value)
                    except ImportError as e:
                        logger.warning("Provider %s unavailable: %s", provider.value, e)
                        cache[provider] = []
            return cache[provider]

        registry = cls()
        for provider in config.get_available_providers(config.vision_providers):
            built = build(provider)
            registry.vision.extend(p for p in built if p.supports_images)
            if provider == PRIMARY_VISION:
                registry.primary.update(p.name for p in built)
        for provider in config.get_available_providers(config.text_providers):
            registry.text.extend(p for p in build(provider) if p.accepts_prompt)

        if config.enable_verification and config.is_available(Provider.HUGGINGFACE):
            from ancient_glyph_translator.providers.huggingface import HuggingFaceProvider
            registry.verifier = HuggingFaceProvider(
                config.huggingface_api_key, config.verification_model, transport
            )

        if not registry.vision:
            logger.warning(
                "No OCR providers configured. Set GOOGLE_GEMINI_API_KEY, "
                "ANTHROPIC_API_KEY or OPENAI_API_KEY, or enable Tesseract."
            )
        logger.info(
            "Provider registry: vision=%s text=%s verifier=%s",
            [p.name for p in registry.vision],
            [p.name for p in registry.text],
            registry.verifier.name if registry.verifier else None,
        )
        return registry

    @property
    def reconstruction(self) -> list[BaseProvider]:
        """Vision providers able to follow a reconstruction prompt."""
        return [p for p in self.vision if p.accepts_prompt]
