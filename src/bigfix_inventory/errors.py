"""Error taxonomy surfaced by the BigFix inventory core."""

from collections.abc import Iterable
from typing import Any

NOT_FOUND_PATTERNS = ("not found",)


class BigFixError(Exception):
    """Base class for all BigFix inventory errors.

    Services attach request context (kind, id, site) through ``add_context`` so
    callers can log or suppress errors precisely.
    """

    code = "bigfix_error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message
        self.context: dict[str, Any] = {}

    def add_context(self, **context: Any) -> "BigFixError":
        """Merge request context into the error, keeping values already set."""
        for key, value in context.items():
            if value is not None and value != "":
                self.context.setdefault(key, value)
        return self

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{key}={value}" for key, value in self.context.items())
        return f"{self.message} ({details})"


class ValidationError(BigFixError):
    """Raised for request arguments rejected before any network call."""

    code = "validation_error"


class TransportError(BigFixError):
    """Raised when no response arrived (connection failure, timeout)."""

    code = "transport_error"

    def __init__(self, message: str, attempts: int | None = None) -> None:
        super().__init__(message)
        self.attempts = attempts


class HTTPStatusError(BigFixError):
    """Raised for a non-retryable, non-2xx response outside the 4xx band."""

    code = "http_error"

    def __init__(self, message: str, status: int) -> None:
        super().__init__(message)
        self.status = status


class ClientError(HTTPStatusError):
    """Raised for a 4xx response that must not be retried."""

    code = "client_error"


class RetriesExhaustedError(HTTPStatusError):
    """Raised when every attempt ended with a retryable status."""

    code = "server_error_exhausted"

    def __init__(self, message: str, status: int, attempts: int) -> None:
        super().__init__(message, status)
        self.attempts = attempts


class DecodeError(BigFixError):
    """Raised when a response payload is not well-formed XML."""

    code = "decode_error"

    def __init__(self, kind: str, length: int, reason: str) -> None:
        super().__init__(f"failed to parse {kind} XML response ({length} bytes): {reason}")
        self.kind = kind
        self.length = length


class EntityNotFoundError(BigFixError):
    """Raised when a well-formed response does not contain the requested entity."""

    code = "not_found"


class FetchCancelledError(BigFixError):
    """Raised when the caller cancelled the fetch between attempts."""

    code = "cancelled"


def is_not_found(exc: BaseException, extra_patterns: Iterable[str] = ()) -> bool:
    """Return True when an error means the entity does not exist.

    Combines the built-in classification (HTTP 404, missing entity, a message
    containing "not found") with caller-configured message substrings, matched
    case-insensitively.
    """
    if isinstance(exc, EntityNotFoundError):
        return True
    if isinstance(exc, HTTPStatusError) and exc.status == 404:
        return True

    text = str(exc).lower()
    patterns = [*NOT_FOUND_PATTERNS, *extra_patterns]
    return any(pattern and pattern.lower() in text for pattern in patterns)
