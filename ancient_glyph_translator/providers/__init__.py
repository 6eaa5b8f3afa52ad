"""
External AI backends behind a uniform ``generate(prompt, image)`` contract.
"""

from ancient_glyph_translator.providers.base import BaseProvider

__all__ = [
    "BaseProvider",
    "GeminiProvider",
    "ClaudeProvider",
    "OpenAIProvider",
    "HuggingFaceProvider",
    "TesseractProvider",
    "ProviderRegistry",
]


def __getattr__(name: str):
    if name == "GeminiProvider":
        from ancient_glyph_translator.providers.gemini import GeminiProvider
        return GeminiProvider
    if name == "ClaudeProvider":
        from ancient_glyph_translator.providers.claude import ClaudeProvider
        return ClaudeProvider
    if name == "OpenAIProvider":
        from ancient_glyph_translator.providers.openai_provider import OpenAIProvider
        return OpenAIProvider
    if name == "HuggingFaceProvider":
        from ancient_glyph_translator.providers.huggingface import HuggingFaceProvider
        return HuggingFaceProvider
    if name == "TesseractProvider":
        from ancient_glyph_translator.providers.tesseract import TesseractProvider
        return TesseractProvider
    if name == "ProviderRegistry":
        from ancient_glyph_translator.providers.registry import ProviderRegistry
        return ProviderRegistry
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
