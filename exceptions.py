"""
Error taxonomy for the Lumina study pipeline.

Every stage fails fast with one of these types:

- NetworkError: transport failure before any response arrived
- UpstreamError: a response arrived but is unusable (empty body, HTTP error, API error)
- ExtractionError: the response is usable but the generated text is malformed
- DomainValidationError: well-formed JSON that violates the required domain shape
"""

from enum import Enum
from typing import Any, Dict, Optional


class LuminaError(Exception):
    """Base exception for all pipeline failures."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class NetworkError(LuminaError):
    """Raised when the proxy could not be reached at all."""


class UpstreamErrorKind(str, Enum):
    EMPTY_BODY = "empty_body"
    HTTP_ERROR = "http_error"
    API_ERROR = "api_error"


class UpstreamError(LuminaError):
    """Raised when the proxy answered but the answer cannot be used."""

    def __init__(
        self,
        kind: UpstreamErrorKind,
        message: str,
        *,
        status_code: Optional[int] = None,
        retry_after: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.kind = kind
        self.status_code = status_code
        self.retry_after = retry_after

    def __repr__(self) -> str:
        return f"UpstreamError(kind={self.kind.value!r}, status_code={self.status_code!r}, message={self.message!r})"


class ExtractionErrorKind(str, Enum):
    NO_CANDIDATE = "no_candidate"
    INVALID_JSON = "invalid_json"
    NO_INLINE_DATA = "no_inline_data"


class ExtractionError(LuminaError):
    """Raised when the generated text cannot be turned into a payload."""

    def __init__(self, kind: ExtractionErrorKind, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.kind = kind


class DomainValidationErrorKind(str, Enum):
    INVALID_PAYLOAD_SHAPE = "invalid_payload_shape"
    INVALID_QUIZ_SHAPE = "invalid_quiz_shape"
    INVALID_DOCUMENT_SHAPE = "invalid_document_shape"
    EMPTY_CONTENT = "empty_content"


class DomainValidationError(LuminaError):
    """Raised when extracted JSON does not fit the requested domain type."""

    def __init__(self, kind: DomainValidationErrorKind, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, details)
        self.kind = kind
