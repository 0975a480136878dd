"""Stream lifecycle event models.

Every aggregation request produces zero or more ``update`` events followed
by exactly one terminal event (``complete``, ``fail`` or ``cancel``).
``content`` always carries the cumulative text assembled so far, never a
bare delta.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from pydantic import BaseModel, Field

from quickgen.runtime.models.enums import ErrorKind, EventType


class ErrorInfo(BaseModel):
    """Serialisable description of a failure."""

    kind: ErrorKind
    message: str
    status_code: int | None = None


class StreamEvent(BaseModel):
    """Wire-format event envelope delivered to consumers (and over SSE)."""

    event_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    event_type: EventType
    request_id: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(tz=UTC))
    content: str = ""
    error: ErrorInfo | None = None

    @property
    def is_terminal(self) -> bool:
        return self.event_type is not EventType.UPDATE
