"""
Outbound HTTP transport.

Thin wrapper around httpx that applies the configured SOCKS proxy and
per-call timeouts, and converts network failures into BackendError so the
orchestrators can decide whether to skip or record them. No business logic
lives here.
"""

import json
import logging
import threading
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import urlsplit

import httpx

from ancient_glyph_translator.config import TransportConfig
from ancient_glyph_translator.errors import BackendError, ErrorKind

logger = logging.getLogger(__name__)


@dataclass
class HTTPResponse:
    """Buffered response of a single request."""
    status_code: int
    content: bytes

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    @property
    def text(self) -> str:
        return self.content.decode("utf-8", errors="replace")

    def json(self) -> Any:
        return json.loads(self.content.decode("utf-8"))

    def error_message(self) -> str:
        """Best-effort extraction of an API error message from the body."""
        try:
            data = self.json()
        except ValueError:
            return f"Status {self.status_code}"
        if isinstance(data, dict):
            error = data.get("error")
            if isinstance(error, dict) and error.get("message"):
                return str(error["message"])
            if isinstance(error, str) and error:
                return error
            if data.get("message"):
                return str(data["message"])
        return f"Status {self.status_code}"


class HTTPTransport:
    """
    Shared HTTP client for REST backends.

    Usage:
        transport = HTTPTransport(TransportConfig.from_env())
        response = transport.post_json(url, {"inputs": "..."}, timeout=30.0)
    """

    def __init__(self, config: TransportConfig, client: Optional[httpx.Client] = None):
        self.config = config
        self._client = client
        self._lock = threading.Lock()
        if config.proxychains_active:
            logger.info("Proxychains detected, skipping code-level proxy")
        elif config.proxy_url:
            logger.info("Using SOCKS proxy: %s", config.proxy_url)

    @property
    def client(self) -> httpx.Client:
        with self._lock:
            if self._client is None:
                self._client = self.new_client()
            return self._client

    def new_client(self) -> httpx.Client:
        """Build an httpx client honouring the proxy settings.

        Also handed to the anthropic / openai SDKs so every backend shares
        the same routing.
        """
        return httpx.Client(
            proxy=self.config.proxy_url,
            timeout=self.config.text_timeout,
        )

    def post_json(
        self,
        url: str,
        payload: dict,
        headers: Optional[dict[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> HTTPResponse:
        """POST a JSON body and return the buffered response.

        Non-2xx statuses are returned, not raised; callers classify them.

        Raises:
            BackendError: on timeout, connection or DNS failure.
        """
        request_headers = {"Content-Type": "application/json"}
        if headers:
            request_headers.update(headers)

        try:
            response = self.client.post(
                url,
                json=payload,
                headers=request_headers,
                timeout=timeout or self.config.text_timeout,
            )
        except httpx.TimeoutException as e:
            raise BackendError("Request timeout", kind=ErrorKind.TIMEOUT) from e
        except httpx.ConnectError as e:
            raise BackendError(
                f"Connection refused to {urlsplit(url).hostname}. Check the "
                f"SOCKS5_PROXY setting, proxychains configuration or network "
                f"connectivity. Original error: {e}",
                kind=ErrorKind.CONNECTION,
            ) from e
        except httpx.HTTPError as e:
            raise BackendError(str(e), kind=ErrorKind.CONNECTION) from e

        return HTTPResponse(status_code=response.status_code, content=response.content)

    def close(self) -> None:
        with self._lock:
            if self._client is not None:
                self._client.close()
                self._client = None
