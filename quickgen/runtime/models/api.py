"""API request / response schemas for the HTTP endpoints.

These thin schemas sit between HTTP and the store.  They are separate from
the records in ``workspace.py`` because they serve a different purpose:

- **Create** schemas validate user input.
- **Update** schemas allow partial updates via ``exclude_unset``.
- **Response** schemas shape what clients see (no cached HTML in listings).
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from quickgen.runtime.models.enums import MessageSender

# ---------------------------------------------------------------------------
# Workspace
# ---------------------------------------------------------------------------


class WorkspaceCreate(BaseModel):
    name: str = Field(min_length=1)


class WorkspaceUpdate(BaseModel):
    """Partial update -- only fields explicitly set by the caller are applied."""

    name: str | None = Field(default=None, min_length=1)
    is_favorite: bool | None = None


class WorkspaceResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    created_at: datetime
    last_modified_at: datetime
    is_favorite: bool = False


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


class ChatMessageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    sender: MessageSender
    content: str
    timestamp: datetime
    is_error: bool = False


class GenerateRequest(BaseModel):
    """Input for a generation turn.  ``prompt=None`` re-runs the last user message."""

    prompt: str | None = None


# ---------------------------------------------------------------------------
# Artifact
# ---------------------------------------------------------------------------


class ArtifactResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    html_content: str
    timestamp: datetime
