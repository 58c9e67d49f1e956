"""
Error Codes and Exception Taxonomy.

Every failure that can reach a caller is expressed as a TTAError subclass
carrying a machine-readable code and the HTTP status it maps to. The HTTP
layer serializes them with to_dict(); the chat layer turns them into a
plain-text reply.

Taxonomy:
    ValidationError     400  bad/empty/over-length text, unknown voice/speed
    CredentialError     401  missing or rejected provider credential
    ConfigurationError  401  credential absent at startup (fail fast)
    QuotaError          429  provider quota or rate limit exhausted
    ProviderError       500  any other synthesis failure
    DeliveryError       500  file could not be streamed or uploaded
    CleanupError        ---  delete/sweep failure, logged only

Response body:
    {
        "error": "<human readable message>",
        "code": "<ERROR_CODE>",
        ...details
    }
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class ErrorCode:
    """
    Standardized error codes for API responses.

    These values are part of the public HTTP contract and are consumed
    by the web UI, so they must not change.
    """
    MISSING_TEXT = "MISSING_TEXT"
    TEXT_TOO_LONG = "TEXT_TOO_LONG"
    INVALID_VOICE = "INVALID_VOICE"
    INVALID_SPEED = "INVALID_SPEED"
    INVALID_REQUEST = "INVALID_REQUEST"
    INVALID_JSON = "INVALID_JSON"
    PAYLOAD_TOO_LARGE = "PAYLOAD_TOO_LARGE"
    INVALID_API_KEY = "INVALID_API_KEY"
    QUOTA_EXCEEDED = "QUOTA_EXCEEDED"
    GENERATION_ERROR = "GENERATION_ERROR"
    SEND_FILE_ERROR = "SEND_FILE_ERROR"
    BOT_INFO_ERROR = "BOT_INFO_ERROR"
    VOICES_ERROR = "VOICES_ERROR"
    CLEANUP_ERROR = "CLEANUP_ERROR"
    NOT_FOUND = "NOT_FOUND"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class TTAError(Exception):
    """
    Base exception for request-level failures.

    Attributes:
        message: Human-readable error message.
        code: Error code from ErrorCode.
        status_code: HTTP status the error maps to.
        details: Extra fields merged into the response body.
    """
    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: str = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        self.message = message
        self.code = code
        self.details = details or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the JSON error body returned by the HTTP API."""
        result: Dict[str, Any] = {"error": self.message, "code": self.code}
        result.update(self.details)
        return result


class ValidationError(TTAError):
    """Raised when request input fails validation."""
    status_code = 400

    def __init__(self, message: str, code: str, details: Optional[Dict] = None):
        super().__init__(message, code, details)


class CredentialError(TTAError):
    """Raised when the provider rejects or lacks a credential."""
    status_code = 401

    def __init__(self, message: str = "OpenAI API key is invalid or missing", details: Optional[Dict] = None):
        super().__init__(message, ErrorCode.INVALID_API_KEY, details)


class ConfigurationError(CredentialError):
    """Raised at construction time when a required credential is unset."""


class QuotaError(TTAError):
    """Raised when the provider reports quota exhaustion or rate limiting."""
    status_code = 429

    def __init__(self, message: str = "OpenAI API quota exceeded", details: Optional[Dict] = None):
        super().__init__(message, ErrorCode.QUOTA_EXCEEDED, details)


class ProviderError(TTAError):
    """Raised for any other synthesis failure."""
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__("Failed to generate audio", ErrorCode.GENERATION_ERROR, details)
        self.reason = message
        self.details.setdefault("message", message)


class DeliveryError(TTAError):
    """Raised when a generated file cannot be handed to the caller."""
    status_code = 500

    def __init__(self, message: str = "Failed to send audio file", details: Optional[Dict] = None):
        super().__init__(message, ErrorCode.SEND_FILE_ERROR, details)


class CleanupError(TTAError):
    """Raised internally by the temp file store; never surfaced to callers."""

    def __init__(self, message: str, details: Optional[Dict] = None):
        super().__init__(message, ErrorCode.CLEANUP_ERROR, details)
