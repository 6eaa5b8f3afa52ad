"""
Exception types shared across the recognition pipeline.
"""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Classification of a failed backend call."""
    NOT_FOUND = "not_found"          # model/endpoint does not exist (404)
    GONE = "gone"                    # capability removed (410)
    RATE_LIMITED = "rate_limited"    # 429
    TIMEOUT = "timeout"
    CONNECTION = "connection"
    HTTP_ERROR = "http_error"        # any other non-2xx status
    INVALID_RESPONSE = "invalid_response"
    APPLICATION = "application"      # backend-specific failure

    @property
    def skippable(self) -> bool:
        """True when the caller should move on without recording the error."""
        return self in (ErrorKind.NOT_FOUND, ErrorKind.GONE, ErrorKind.RATE_LIMITED)


class GlyphPipelineError(Exception):
    """Base class for all pipeline errors."""


class BackendError(GlyphPipelineError):
    """A call to an external OCR / language / vision backend failed."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.APPLICATION,
        status_code: Optional[int] = None,
        provider: Optional[str] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code
        self.provider = provider

    @classmethod
    def from_status(
        cls, status_code: int, message: str, provider: Optional[str] = None
    ) -> "BackendError":
        if status_code == 404:
            kind = ErrorKind.NOT_FOUND
        elif status_code == 410:
            kind = ErrorKind.GONE
        elif status_code == 429:
            kind = ErrorKind.RATE_LIMITED
        else:
            kind = ErrorKind.HTTP_ERROR
        return cls(message, kind=kind, status_code=status_code, provider=provider)


class ExtractionFailedError(GlyphPipelineError):
    """No text could be extracted and no fallback was permitted."""

    USER_MESSAGE = (
        "Failed to extract text from image. Please ensure the image is clear "
        "and contains readable text, and that at least one OCR backend is "
        "configured and reachable."
    )

    def __init__(self, detail: Optional[str] = None, status_history: Optional[list] = None):
        super().__init__(self.USER_MESSAGE)
        self.detail = detail
        self.status_history = status_history or []


class InvalidTransitionError(GlyphPipelineError):
    """A processing run attempted a state change the state machine forbids."""
