"""Tests for the translation fallback chain."""

import pytest
from conftest import FakeProvider
from ancient_glyph_translator.config import ConfidencePolicy
from ancient_glyph_translator.errors import BackendError, ErrorKind
from ancient_glyph_translator.glyphs.matcher import UNKNOWN_MEANING, GlyphMatch
from ancient_glyph_translator.translator.generator import COMMON_PHRASES, TranslationGenerator


def glyphs(text, confidence=0.60, meaning=UNKNOWN_MEANING):
    return [GlyphMatch(symbol=c, position=i, confidence=confidence, meaning=meaning)
            for i, c in enumerate(text)]


class TestTranslationGenerator:
    def setup_method(self):
        self.policy = ConfidencePolicy()

    def test_empty_text(self):
        provider = FakeProvider("gemini", ["unused"])
        result = TranslationGenerator([provider], self.policy).translate("   ")
        assert result.confidence == 0.0
        assert result.method == "none"
        assert "Unable to extract text" in result.translation
        assert provider.calls == []

    def test_backend_translation(self):
        provider = FakeProvider("gemini:gemini-2.5-flash@v1beta", ["Translation: The Tao follows nature"])
        result = TranslationGenerator([provider], self.policy).translate("道法自然")

        assert result.translation == "Translation: The Tao follows nature"
        assert result.confidence == 0.88
        assert result.method == "gemini:gemini-2.5-flash@v1beta"
        call = provider.calls[0]
        assert call["temperature"] == 0.3
        assert call["max_tokens"] == 300
        assert call["timeout"] == 30.0
        assert '"道法自然"' in call["prompt"]

    def test_backend_preferred_over_phrase_table(self):
        provider = FakeProvider("claude", ["The Way models itself on nature."])
        result = TranslationGenerator([provider], self.policy).translate("道法自然")
        assert result.confidence == 0.88

    def test_failures_and_empty_answers_advance(self):
        providers = [
            FakeProvider("gemini:a", [BackendError("404", kind=ErrorKind.NOT_FOUND)]),
            FakeProvider("gemini:b", [RuntimeError("boom")]),
            FakeProvider("claude", ["  "]),
            FakeProvider("openai", ["Heaven and humanity are one."]),
        ]
        result = TranslationGenerator(providers, self.policy).translate("天人合一")
        assert result.method == "openai"
        assert all(len(p.calls) == 1 for p in providers)

    def test_phrase_table(self):
        failing = FakeProvider("gemini", [BackendError("timeout", kind=ErrorKind.TIMEOUT)])
        result = TranslationGenerator([failing], self.policy).translate("道法自然")
        assert result.method == "phrase-table"
        assert result.confidence == 0.90
        assert result.translation == COMMON_PHRASES["道法自然"]

    def test_phrase_table_has_seven_entries(self):
        assert len(COMMON_PHRASES) == 7
        assert "道德经" in COMMON_PHRASES

    def test_template_from_unknown_glyphs(self):
        result = TranslationGenerator([], self.policy).translate("山高水長", glyphs("山高水長"))

        assert result.method == "template"
        assert result.confidence == pytest.approx(0.60)
        assert result.translation.startswith('Translation of "山高水長"')
        assert f"山 ({UNKNOWN_MEANING})" in result.translation

    def test_template_is_capped(self):
        result = TranslationGenerator([], self.policy).translate(
            "山水", glyphs("山水", confidence=0.95, meaning="mountain")
        )
        assert result.confidence == 0.85

    def test_template_without_glyphs(self):
        result = TranslationGenerator([], self.policy).translate("山水")
        assert result.confidence == 0.70
        assert result.metadata == {"glyph_count": 0}

    def test_script_in_prompt(self):
        provider = FakeProvider("gemini", ["ok"])
        TranslationGenerator([provider], self.policy).translate("道", script_name="Seal Script")
        assert "ancient Seal Script text" in provider.calls[0]["prompt"]
