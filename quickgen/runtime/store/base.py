"""Workspace store interface.

The store owns the on-disk representation of workspaces, chat messages and
generated artifacts.  Every operation is synchronous and best-effort: a
failed write or delete is reported through the boolean / optional result
and logged, never raised -- with the single exception of
``create_workspace``, which has no boolean channel and raises
``PersistenceError`` instead.

Async callers run these methods in a worker thread
(``anyio.to_thread.run_sync``).  The store does no locking across calls;
serialising writes to one workspace is the caller's job.
"""

from __future__ import annotations

from pathlib import Path
from typing import Protocol, runtime_checkable

from quickgen.runtime.models.enums import ErrorKind
from quickgen.runtime.models.workspace import ChatMessage, GeneratedArtifact, Workspace


class PersistenceError(OSError):
    """Raised when a record could not be written."""

    kind = ErrorKind.PERSISTENCE_FAILURE

    def __init__(self, path: str | Path, cause: BaseException) -> None:
        super().__init__(f"Failed to persist {path}: {cause}")
        self.path = Path(path)
        self.cause = cause


@runtime_checkable
class WorkspaceStore(Protocol):
    """Sync protocol for workspace, chat and artifact persistence.

    Storage layout (keyed by workspace id)::

        {root}/workspaces/{workspace_id}/metadata.json
        {root}/workspaces/{workspace_id}/chat/{message_id}.json
        {root}/workspaces/{workspace_id}/code/{artifact_id}.json
        {root}/workspaces/{workspace_id}/code/latest.txt
    """

    # -- Workspaces ------------------------------------------------------------

    def list_workspaces(self) -> list[Workspace]:
        """All workspaces, most recently modified first.  Unreadable ones are skipped."""
        ...

    def get_workspace(self, workspace_id: str) -> Workspace | None: ...

    def create_workspace(self, name: str) -> Workspace:
        """Provision a new workspace.  Raises ``PersistenceError`` on failure."""
        ...

    def save_workspace(self, workspace: Workspace) -> bool: ...

    def delete_workspace(self, workspace_id: str) -> bool: ...

    def rename_workspace(self, workspace_id: str, new_name: str) -> bool: ...

    def set_favorite(self, workspace_id: str, favorite: bool) -> bool: ...

    # -- Chat ------------------------------------------------------------------

    def fetch_chat_history(self, workspace_id: str) -> list[ChatMessage]:
        """Messages ascending by timestamp.  Unreadable records are skipped."""
        ...

    def save_chat_message(self, message: ChatMessage) -> bool: ...

    def clear_chat_history(self, workspace_id: str) -> bool: ...

    # -- Artifacts -------------------------------------------------------------

    def get_latest_artifact(self, workspace_id: str) -> GeneratedArtifact | None:
        """The artifact named by the pointer, or ``None`` if absent or unreadable."""
        ...

    def save_generated_artifact(self, artifact: GeneratedArtifact, workspace_id: str) -> bool:
        """Write the artifact record, then repoint ``latest`` at it."""
        ...


def sort_workspaces(workspaces: list[Workspace]) -> list[Workspace]:
    return sorted(workspaces, key=lambda w: w.last_modified_at, reverse=True)


def sort_messages(messages: list[ChatMessage]) -> list[ChatMessage]:
    # Ties on timestamp fall back to id so the order is stable across listings.
    return sorted(messages, key=lambda m: (m.timestamp, m.id))
