"""Domain exceptions for the upload pipeline.

Each failure is classified where it happens; callers decide on retries
from the `retryable` flag and on user messages from the class, never
from message text.
"""

from typing import Optional

TRANSIENT_STATUS_CODES = frozenset({408, 425, 429, 500, 502, 503, 504})


class DomainException(Exception):
    """Base exception for all domain errors."""

    retryable = False


class ValidationError(DomainException):
    """Raised when input is rejected before any I/O happens."""


class Timeout(DomainException):
    """Raised when a bounded wait or request exceeds its ceiling."""

    retryable = True

    def __init__(self, message: str, seconds: Optional[float] = None):
        super().__init__(message)
        self.seconds = seconds


class UpstreamError(DomainException):
    """Raised when the remote host answers with a rejection."""

    def __init__(self, status_code: int, message: Optional[str] = None):
        self.status_code = status_code
        self.message = message or f"HTTP {status_code}"
        super().__init__(self.message)

    @property
    def retryable(self) -> bool:
        return self.status_code in TRANSIENT_STATUS_CODES

    @property
    def is_rate_limited(self) -> bool:
        return self.status_code == 429

    @property
    def is_auth_failure(self) -> bool:
        return self.status_code in (401, 403)

    def __str__(self) -> str:
        return f"{self.message} (status {self.status_code})"


class NetworkError(DomainException):
    """Raised on transport-level failures (DNS, refused, reset)."""

    retryable = True


class ProtocolError(DomainException):
    """Raised when a response breaks the expected JSON contract."""


class ConfigurationError(DomainException):
    """Raised when configuration is invalid."""


class CompressionError(DomainException):
    """Raised by transcoder backends; always recovered by the engine."""
