"""Tests for the HTTP transport layer."""

import json

import httpx
import pytest
from ancient_glyph_translator.config import TransportConfig
from ancient_glyph_translator.errors import BackendError, ErrorKind
from ancient_glyph_translator.transport import HTTPResponse, HTTPTransport

URL = "https://generativelanguage.googleapis.com/v1/models/m:generateContent"


def make_transport(handler) -> HTTPTransport:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return HTTPTransport(TransportConfig(), client=client)


class TestHTTPTransport:
    def test_post_json(self):
        seen = {}

        def handler(request):
            seen["headers"] = request.headers
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"ok": True})

        transport = make_transport(handler)
        response = transport.post_json(URL, {"inputs": "道"}, headers={"x-goog-api-key": "k"})

        assert response.ok
        assert response.json() == {"ok": True}
        assert seen["body"] == {"inputs": "道"}
        assert seen["headers"]["content-type"] == "application/json"
        assert seen["headers"]["x-goog-api-key"] == "k"

    def test_error_status_is_returned(self):
        transport = make_transport(lambda request: httpx.Response(404, json={}))
        response = transport.post_json(URL, {})
        assert response.status_code == 404
        assert not response.ok

    def test_timeout_is_classified(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with pytest.raises(BackendError) as exc_info:
            make_transport(handler).post_json(URL, {})
        assert exc_info.value.kind == ErrorKind.TIMEOUT
        assert str(exc_info.value) == "Request timeout"

    def test_connection_refused_mentions_proxy(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(BackendError) as exc_info:
            make_transport(handler).post_json(URL, {})
        assert exc_info.value.kind == ErrorKind.CONNECTION
        assert "SOCKS5_PROXY" in str(exc_info.value)

    def test_close_drops_client(self):
        transport = make_transport(lambda request: httpx.Response(200))
        transport.close()
        assert transport._client is None


class TestHTTPResponse:
    def test_error_message_from_nested_error(self):
        response = HTTPResponse(400, b'{"error": {"message": "API key not valid"}}')
        assert response.error_message() == "API key not valid"

    def test_error_message_from_string_error(self):
        response = HTTPResponse(503, b'{"error": "Model is loading"}')
        assert response.error_message() == "Model is loading"

    def test_error_message_without_json(self):
        assert HTTPResponse(500, b"<html>").error_message() == "Status 500"
