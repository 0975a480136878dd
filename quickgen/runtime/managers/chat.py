"""Chat history and artifact reads for one workspace."""

from __future__ import annotations

from typing import TYPE_CHECKING

from anyio import to_thread

from quickgen.runtime.managers.workspaces import StoreWriteError, get_workspace

if TYPE_CHECKING:
    from quickgen.runtime.models.workspace import ChatMessage, GeneratedArtifact
    from quickgen.runtime.store.base import WorkspaceStore


class ArtifactNotFoundError(LookupError):
    """Raised when a workspace has no readable artifact."""


async def fetch_chat_history(store: WorkspaceStore, workspace_id: str) -> list[ChatMessage]:
    """Messages oldest first.  Raises ``WorkspaceNotFoundError`` if missing."""
    await get_workspace(store, workspace_id)
    return await to_thread.run_sync(store.fetch_chat_history, workspace_id)


async def clear_chat_history(store: WorkspaceStore, workspace_id: str) -> None:
    await get_workspace(store, workspace_id)
    if not await to_thread.run_sync(store.clear_chat_history, workspace_id):
        msg = f"Failed to clear chat history of workspace '{workspace_id}'"
        raise StoreWriteError(msg)


async def get_latest_artifact(store: WorkspaceStore, workspace_id: str) -> GeneratedArtifact:
    """Latest artifact.  Raises ``ArtifactNotFoundError`` if there is none."""
    await get_workspace(store, workspace_id)
    artifact = await to_thread.run_sync(store.get_latest_artifact, workspace_id)
    if artifact is None:
        raise ArtifactNotFoundError(workspace_id)
    return artifact
