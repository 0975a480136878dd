"""Shared enumerations used across the runtime."""

from __future__ import annotations

from enum import StrEnum

# -- Chat --------------------------------------------------------------------


class MessageSender(StrEnum):
    USER = "user"
    ASSISTANT = "assistant"


# -- Streaming ---------------------------------------------------------------


class StreamState(StrEnum):
    """Lifecycle of a single aggregation request."""

    IDLE = "idle"
    STREAMING = "streaming"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (StreamState.COMPLETED, StreamState.FAILED, StreamState.CANCELLED)


# -- Events ------------------------------------------------------------------


class EventType(StrEnum):
    """Lifecycle events emitted by the stream aggregator."""

    UPDATE = "update"
    COMPLETE = "complete"
    FAIL = "fail"
    CANCEL = "cancel"


# -- Errors ------------------------------------------------------------------


class ErrorKind(StrEnum):
    """Failure categories surfaced to callers."""

    MISSING_CREDENTIAL = "missing_credential"
    INVALID_ENDPOINT = "invalid_endpoint"
    TRANSPORT_FAILURE = "transport_failure"
    HTTP_STATUS = "http_status"
    MALFORMED_PAYLOAD = "malformed_payload"
    DECODE_FAILURE = "decode_failure"
    EMPTY_RESPONSE = "empty_response"
    CANCELLED = "cancelled"
    PERSISTENCE_FAILURE = "persistence_failure"
