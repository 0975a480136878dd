"""In-memory workspace store for fast iteration and tests.

Mirrors ``FileWorkspaceStore`` semantics: writes into a workspace that was
never created (or was deleted) fail, records handed out are copies, and a
latest pointer is only moved after its artifact is stored.
"""

from __future__ import annotations

from quickgen.runtime.models.workspace import ChatMessage, GeneratedArtifact, Workspace
from quickgen.runtime.store.base import sort_messages, sort_workspaces


class InMemoryWorkspaceStore:
    """Dict-backed implementation of the WorkspaceStore protocol."""

    def __init__(self) -> None:
        self._workspaces: dict[str, Workspace] = {}
        self._messages: dict[str, dict[str, ChatMessage]] = {}
        self._artifacts: dict[str, dict[str, GeneratedArtifact]] = {}
        self._latest: dict[str, str] = {}

    # -- Workspaces ------------------------------------------------------------

    def list_workspaces(self) -> list[Workspace]:
        return sort_workspaces([w.model_copy() for w in self._workspaces.values()])

    def get_workspace(self, workspace_id: str) -> Workspace | None:
        workspace = self._workspaces.get(workspace_id)
        return workspace.model_copy() if workspace else None

    def create_workspace(self, name: str) -> Workspace:
        workspace = Workspace(name=name)
        self._workspaces[workspace.id] = workspace
        self._messages[workspace.id] = {}
        self._artifacts[workspace.id] = {}
        return workspace.model_copy()

    def save_workspace(self, workspace: Workspace) -> bool:
        if workspace.id not in self._messages:
            return False
        self._workspaces[workspace.id] = workspace.model_copy()
        return True

    def delete_workspace(self, workspace_id: str) -> bool:
        if workspace_id not in self._workspaces:
            return False
        del self._workspaces[workspace_id]
        self._messages.pop(workspace_id, None)
        self._artifacts.pop(workspace_id, None)
        self._latest.pop(workspace_id, None)
        return True

    def rename_workspace(self, workspace_id: str, new_name: str) -> bool:
        workspace = self._workspaces.get(workspace_id)
        if workspace is None:
            return False
        self._workspaces[workspace_id] = workspace.renamed(new_name)
        return True

    def set_favorite(self, workspace_id: str, favorite: bool) -> bool:
        workspace = self._workspaces.get(workspace_id)
        if workspace is None:
            return False
        self._workspaces[workspace_id] = workspace.model_copy(update={"is_favorite": favorite})
        return True

    # -- Chat ------------------------------------------------------------------

    def fetch_chat_history(self, workspace_id: str) -> list[ChatMessage]:
        messages = self._messages.get(workspace_id, {})
        return sort_messages([m.model_copy() for m in messages.values()])

    def save_chat_message(self, message: ChatMessage) -> bool:
        messages = self._messages.get(message.workspace_id)
        if messages is None:
            return False
        messages[message.id] = message.model_copy()
        return True

    def clear_chat_history(self, workspace_id: str) -> bool:
        messages = self._messages.get(workspace_id)
        if messages is None:
            return False
        messages.clear()
        return True

    # -- Artifacts -------------------------------------------------------------

    def get_latest_artifact(self, workspace_id: str) -> GeneratedArtifact | None:
        artifact_id = self._latest.get(workspace_id)
        if artifact_id is None:
            return None
        return self._artifacts.get(workspace_id, {}).get(artifact_id)

    def save_generated_artifact(self, artifact: GeneratedArtifact, workspace_id: str) -> bool:
        artifacts = self._artifacts.get(workspace_id)
        if artifacts is None:
            return False
        artifacts[artifact.id] = artifact
        self._latest[workspace_id] = artifact.id
        return True
