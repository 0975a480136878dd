"""Runtime generation context.

Pairs a live ``StreamAggregator`` with the bookkeeping the session
controller and the stream registry need while a request is in flight.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from quickgen.runtime.generation.aggregator import StreamAggregator


@dataclass
class ActiveGeneration:
    """In-flight state for a single generation request.

    Created by the session controller before the request starts; registered
    in the ``StreamRegistry`` so it can be cancelled; discarded after the
    outcome has been persisted.
    """

    # -- Identity --------------------------------------------------------------
    workspace_id: str
    prompt: str

    # -- Live reference --------------------------------------------------------
    aggregator: StreamAggregator
    """Handle used for cancellation."""

    started_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    @property
    def request_id(self) -> str:
        return self.aggregator.request_id

    def cancel(self) -> None:
        self.aggregator.cancel()
