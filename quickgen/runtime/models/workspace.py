"""Workspace, chat message and generated artifact models.

These are the records owned by the workspace store.  Instances handed to
callers are independent snapshots: mutating one never touches disk.  Use
the store's explicit save / rename operations to persist a change.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

from quickgen.runtime.models.enums import MessageSender


def _new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


def _as_utc(value: datetime) -> datetime:
    # Records written without an offset are read as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


UTCDateTime = Annotated[datetime, AfterValidator(_as_utc)]


# -- Workspace ---------------------------------------------------------------


class Workspace(BaseModel):
    """A named container for one conversation and its generated pages."""

    id: str = Field(default_factory=_new_id)
    name: str
    created_at: UTCDateTime = Field(default_factory=utcnow)
    last_modified_at: UTCDateTime = Field(default_factory=utcnow)
    is_favorite: bool = False
    generated_html: str | None = Field(default=None, description="Cached copy of the latest artifact's HTML")

    def touch(self) -> Workspace:
        """Return a copy with ``last_modified_at`` bumped to now."""
        return self.model_copy(update={"last_modified_at": utcnow()})

    def renamed(self, name: str) -> Workspace:
        return self.model_copy(update={"name": name, "last_modified_at": utcnow()})


# -- Chat --------------------------------------------------------------------


class ChatMessage(BaseModel):
    """One turn of the conversation.

    Streaming updates may rewrite the record with the same ``id``; order is
    defined by ``timestamp``, never by storage order.
    """

    id: str = Field(default_factory=_new_id)
    workspace_id: str
    sender: MessageSender
    content: str
    timestamp: UTCDateTime = Field(default_factory=utcnow)
    is_error: bool = False


# -- Artifact ----------------------------------------------------------------


class GeneratedArtifact(BaseModel):
    """Full HTML snapshot produced by one generation.  Never edited."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    workspace_id: str
    html_content: str
    timestamp: UTCDateTime = Field(default_factory=utcnow)
