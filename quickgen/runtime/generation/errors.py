"""Generation error hierarchy.

Each subclass maps to one ``ErrorKind``.  The aggregator never lets these
escape to the consumer as exceptions; it converts them to a ``fail`` event
carrying ``to_info()``.
"""

from __future__ import annotations

from quickgen.runtime.models.enums import ErrorKind
from quickgen.runtime.models.events import ErrorInfo


class GenerationError(Exception):
    """Base class for failures of a generation request."""

    kind: ErrorKind = ErrorKind.TRANSPORT_FAILURE

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_info(self) -> ErrorInfo:
        return ErrorInfo(kind=self.kind, message=self.message)


class MissingCredentialError(GenerationError):
    kind = ErrorKind.MISSING_CREDENTIAL

    def __init__(self, message: str = "API key is not configured (set QUICKGEN_API_KEY).") -> None:
        super().__init__(message)


class InvalidEndpointError(GenerationError):
    kind = ErrorKind.INVALID_ENDPOINT


class TransportFailureError(GenerationError):
    kind = ErrorKind.TRANSPORT_FAILURE


class HTTPStatusError(GenerationError):
    """Non-2xx response.  ``server_message`` is the body's ``error.message`` if any."""

    kind = ErrorKind.HTTP_STATUS

    def __init__(self, status_code: int, server_message: str | None = None) -> None:
        message = server_message or f"HTTP error {status_code}"
        super().__init__(message)
        self.status_code = status_code
        self.server_message = server_message

    def to_info(self) -> ErrorInfo:
        return ErrorInfo(kind=self.kind, message=self.message, status_code=self.status_code)


class MalformedPayloadError(GenerationError):
    kind = ErrorKind.MALFORMED_PAYLOAD


class DecodeFailureError(GenerationError):
    kind = ErrorKind.DECODE_FAILURE


class EmptyResponseError(GenerationError):
    kind = ErrorKind.EMPTY_RESPONSE

    def __init__(self, message: str = "The server returned no content.") -> None:
        super().__init__(message)


class GenerationCancelledError(GenerationError):
    kind = ErrorKind.CANCELLED

    def __init__(self, message: str = "Generation was cancelled.") -> None:
        super().__init__(message)


class AggregatorStateError(RuntimeError):
    """Raised when ``start`` is called on an aggregator that already ran."""
