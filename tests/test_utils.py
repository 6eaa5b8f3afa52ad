"""Tests for utility functions and error classification."""

import sys

import anthropic
import httpx
import openai
import pytest
from ancient_glyph_translator.errors import BackendError, ErrorKind
from ancient_glyph_translator.utils import (
    chunked,
    clamp,
    classify_sdk_error,
    is_script_char,
    mean,
    strip_whitespace,
    unique_script_chars,
)

REQUEST = httpx.Request("POST", "https://api.example.com/v1/messages")


class TestTextHelpers:
    def test_strip_whitespace(self):
        assert strip_whitespace("道 法\n自" + chr(0x3000) + "然") == "道法自然"
        assert strip_whitespace(None) == ""

    def test_is_script_char(self):
        assert is_script_char("道") is True
        assert is_script_char("a") is False
        assert is_script_char("，") is False

    def test_unique_script_chars_keeps_first_seen_order(self):
        assert unique_script_chars("道法道 自然!") == ["道", "法", "自", "然"]

    def test_unique_script_chars_empty(self):
        assert unique_script_chars("") == []


class TestNumericHelpers:
    def test_clamp(self):
        assert clamp(1.5) == 1.0
        assert clamp(-0.2) == 0.0
        assert clamp(0.42) == 0.42

    def test_mean(self):
        assert mean([0.6, 0.8]) == pytest.approx(0.7)
        assert mean([], default=0.7) == 0.7

    def test_chunked(self):
        assert list(chunked([1, 2, 3, 4, 5], 2)) == [[1, 2], [3, 4], [5]]
        assert list(chunked([], 3)) == []

    def test_chunked_rejects_zero(self):
        with pytest.raises(ValueError):
            list(chunked([1], 0))


class TestErrorKind:
    def test_skippable_kinds(self):
        assert ErrorKind.NOT_FOUND.skippable
        assert ErrorKind.GONE.skippable
        assert ErrorKind.RATE_LIMITED.skippable
        assert not ErrorKind.TIMEOUT.skippable
        assert not ErrorKind.HTTP_ERROR.skippable

    @pytest.mark.parametrize("status,kind", [
        (404, ErrorKind.NOT_FOUND),
        (410, ErrorKind.GONE),
        (429, ErrorKind.RATE_LIMITED),
        (500, ErrorKind.HTTP_ERROR),
        (403, ErrorKind.HTTP_ERROR),
    ])
    def test_from_status(self, status, kind):
        error = BackendError.from_status(status, "failed", provider="gemini")
        assert error.kind == kind
        assert error.status_code == status
        assert error.provider == "gemini"


class TestClassifySdkError:
    def test_anthropic_timeout(self):
        assert classify_sdk_error(anthropic.APITimeoutError(request=REQUEST)) == ErrorKind.TIMEOUT

    def test_anthropic_rate_limit(self):
        response = httpx.Response(429, request=REQUEST)
        error = anthropic.RateLimitError("slow down", response=response, body=None)
        assert classify_sdk_error(error) == ErrorKind.RATE_LIMITED

    def test_openai_connection(self):
        error = openai.APIConnectionError(request=REQUEST)
        assert classify_sdk_error(error) == ErrorKind.CONNECTION

    def test_openai_not_found(self):
        response = httpx.Response(404, request=REQUEST)
        error = openai.NotFoundError("no such model", response=response, body=None)
        assert classify_sdk_error(error) == ErrorKind.NOT_FOUND

    def test_httpx_timeout(self):
        assert classify_sdk_error(httpx.ReadTimeout("timed out")) == ErrorKind.TIMEOUT

    def test_gone_status(self):
        response = httpx.Response(410, request=REQUEST)
        error = anthropic.APIStatusError("gone", response=response, body=None)
        assert classify_sdk_error(error) == ErrorKind.GONE

    def test_other_status(self):
        response = httpx.Response(500, request=REQUEST)
        error = openai.InternalServerError("boom", response=response, body=None)
        assert classify_sdk_error(error) == ErrorKind.HTTP_ERROR

    def test_unknown_exception(self):
        assert classify_sdk_error(ValueError("bad")) == ErrorKind.APPLICATION

    def test_without_sdks_installed(self, monkeypatch):
        monkeypatch.setitem(sys.modules, "anthropic", None)
        monkeypatch.setitem(sys.modules, "openai", None)
        assert classify_sdk_error(httpx.ReadTimeout("timed out")) == ErrorKind.TIMEOUT
        assert classify_sdk_error(ValueError("bad")) == ErrorKind.APPLICATION
