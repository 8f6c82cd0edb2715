from __future__ import annotations

from typing import Any


class UpstreamErrorKind:
    """Failure categories reported by the external model provider."""

    RATE_LIMIT = "rate_limit"
    AUTH = "auth"
    OVERLOADED = "overloaded"
    TIMEOUT = "timeout"
    OTHER = "other"

    ALL = (RATE_LIMIT, AUTH, OVERLOADED, TIMEOUT, OTHER)
    RETRYABLE = frozenset({RATE_LIMIT, OVERLOADED, TIMEOUT})


class ReconcilerError(RuntimeError):
    """Base class for failures surfaced by the analysis engine."""

    code = "INTERNAL_ERROR"


class DocumentTooLarge(ReconcilerError):
    """Raised before any upstream call when the document exceeds the size cap."""

    code = "DOCUMENT_TOO_LARGE"

    def __init__(self, length: int, limit: int) -> None:
        super().__init__(
            f"Document too large: {length:,} characters (maximum {limit:,})."
        )
        self.length = length
        self.limit = limit


class MalformedResponse(ReconcilerError):
    """Raised when the model reply does not contain a usable JSON object."""

    code = "MALFORMED_RESPONSE"

    def __init__(self, message: str, raw_text: str) -> None:
        super().__init__(message)
        self.raw_text = raw_text


class UpstreamError(ReconcilerError):
    """Raised when the external model call fails."""

    _CODES = {
        UpstreamErrorKind.RATE_LIMIT: "RATE_LIMIT_EXCEEDED",
        UpstreamErrorKind.AUTH: "INVALID_API_KEY",
        UpstreamErrorKind.OVERLOADED: "UPSTREAM_OVERLOADED",
        UpstreamErrorKind.TIMEOUT: "UPSTREAM_TIMEOUT",
        UpstreamErrorKind.OTHER: "INTERNAL_ERROR",
    }

    def __init__(self, kind: str, message: str) -> None:
        if kind not in UpstreamErrorKind.ALL:
            raise ValueError(f"Unknown upstream error kind '{kind}'.")
        super().__init__(message)
        self.kind = kind

    @property
    def code(self) -> str:  # type: ignore[override]
        return self._CODES[self.kind]

    @property
    def retryable(self) -> bool:
        return self.kind in UpstreamErrorKind.RETRYABLE


def http_status_for(error: BaseException) -> int:
    """Map an engine failure onto the status code the transport layer returns."""
    if isinstance(error, DocumentTooLarge):
        return 413
    if isinstance(error, UpstreamError):
        if error.kind == UpstreamErrorKind.RATE_LIMIT:
            return 429
        if error.kind == UpstreamErrorKind.AUTH:
            return 401
    return 500


def error_payload(error: BaseException) -> dict[str, Any]:
    """Build the JSON error body returned alongside ``http_status_for``."""
    code = getattr(error, "code", None) or ReconcilerError.code
    return {
        "error": "Analysis failed",
        "message": str(error),
        "code": code,
    }
