"""Tests for backend response parsers."""

import pytest
from ancient_glyph_translator.responses import (
    extract_json_array,
    extract_json_object,
    parse_gemini_text,
    parse_hf_generated_text,
    parse_meanings,
)


class TestParseGeminiText:
    def test_joins_parts(self):
        data = {"candidates": [{"content": {"parts": [{"text": "道法"}, {"text": "自然\n"}]}}]}
        assert parse_gemini_text(data) == "道法自然"

    @pytest.mark.parametrize("data", [
        None,
        "text",
        {},
        {"candidates": []},
        {"candidates": ["x"]},
        {"candidates": [{"content": {"parts": "x"}}]},
        {"candidates": [{"finishReason": "SAFETY"}]},
    ])
    def test_unexpected_shapes_degrade_to_empty(self, data):
        assert parse_gemini_text(data) == ""


class TestParseHfGeneratedText:
    def test_list_of_generated_text(self):
        assert parse_hf_generated_text([{"generated_text": " 之道 "}]) == "之道"

    def test_caption(self):
        assert parse_hf_generated_text({"caption": "stone"}) == "stone"

    def test_unexpected_shapes(self):
        assert parse_hf_generated_text({"error": "loading"}) == ""
        assert parse_hf_generated_text([]) == ""
        assert parse_hf_generated_text(42) == ""


class TestJsonExtraction:
    def test_object_inside_code_fence(self):
        text = 'Here you go:\n```json\n{"道": "the way"}\n```'
        assert extract_json_object(text) == {"道": "the way"}

    def test_object_invalid(self):
        assert extract_json_object("{not json}") == {}
        assert extract_json_object("") == {}

    def test_array(self):
        text = '```json\n[{"index": 0, "glyph": "道"}]\n```'
        assert extract_json_array(text) == [{"index": 0, "glyph": "道"}]

    def test_array_invalid(self):
        assert extract_json_array("no array here") == []

    def test_array_followed_by_bracketed_remark(self):
        text = '[{"index": 0, "glyph": "道"}]\nSee region [0] above.'
        assert extract_json_array(text) == [{"index": 0, "glyph": "道"}]

    def test_object_followed_by_braces(self):
        text = '{"道": "the way"} {see note}'
        assert extract_json_object(text) == {"道": "the way"}

    def test_leading_remark_is_skipped(self):
        text = 'Regions [unclear]: [{"index": 1, "glyph": "法"}]'
        assert extract_json_array(text) == [{"index": 1, "glyph": "法"}]


class TestParseMeanings:
    def test_json_object(self):
        text = '{"道": "the way, path", "法": "law", "x": ""}'
        assert parse_meanings(text) == {"道": "the way, path", "法": "law"}

    def test_truncated_answer_is_salvaged(self):
        text = '{\n"道": "the way",\n"法": "law, method",\n"自": "se'
        assert parse_meanings(text) == {"道": "the way", "法": "law, method"}

    def test_nothing_to_parse(self):
        assert parse_meanings("I cannot help with that.") == {}
