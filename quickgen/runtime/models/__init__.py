"""Data models for the runtime."""

from quickgen.runtime.models.api import (
    ArtifactResponse,
    ChatMessageResponse,
    GenerateRequest,
    WorkspaceCreate,
    WorkspaceResponse,
    WorkspaceUpdate,
)
from quickgen.runtime.models.completion import (
    ChatCompletionChunk,
    ChatCompletionRequest,
    ChatCompletionResponse,
    CompletionMessage,
)
from quickgen.runtime.models.enums import ErrorKind, EventType, MessageSender, StreamState
from quickgen.runtime.models.events import ErrorInfo, StreamEvent
from quickgen.runtime.models.workspace import ChatMessage, GeneratedArtifact, Workspace

__all__ = [
    # API schemas
    "ArtifactResponse",
    # Wire
    "ChatCompletionChunk",
    "ChatCompletionRequest",
    "ChatCompletionResponse",
    # Records
    "ChatMessage",
    "ChatMessageResponse",
    "CompletionMessage",
    # Events
    "ErrorInfo",
    # Enums
    "ErrorKind",
    "EventType",
    "GenerateRequest",
    "GeneratedArtifact",
    "MessageSender",
    "StreamEvent",
    "StreamState",
    "Workspace",
    "WorkspaceCreate",
    "WorkspaceResponse",
    "WorkspaceUpdate",
]
