"""Workspace CRUD operations.

Encapsulates all workspace data access: create, list, get, update, delete.
The store is synchronous; every call runs in a worker thread.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from anyio import to_thread

from quickgen.runtime.models.api import WorkspaceCreate, WorkspaceUpdate

if TYPE_CHECKING:
    from quickgen.runtime.models.workspace import Workspace
    from quickgen.runtime.store.base import WorkspaceStore


class WorkspaceNotFoundError(LookupError):
    """Raised when a workspace is not found."""


class StoreWriteError(RuntimeError):
    """Raised when the store reports a failed write or delete."""


async def create_workspace(store: WorkspaceStore, body: WorkspaceCreate) -> Workspace:
    """Create a new workspace.  ``PersistenceError`` propagates on failure."""
    workspace = await to_thread.run_sync(store.create_workspace, body.name)
    return workspace


async def list_workspaces(store: WorkspaceStore) -> list[Workspace]:
    """List all workspaces, most recently modified first."""
    return await to_thread.run_sync(store.list_workspaces)


async def get_workspace(store: WorkspaceStore, workspace_id: str) -> Workspace:
    """Get a workspace by ID.  Raises ``WorkspaceNotFoundError`` if missing."""
    workspace = await to_thread.run_sync(store.get_workspace, workspace_id)
    if workspace is None:
        raise WorkspaceNotFoundError(workspace_id)
    return workspace


async def update_workspace(store: WorkspaceStore, workspace_id: str, body: WorkspaceUpdate) -> Workspace:
    """Partially update a workspace.  Raises ``WorkspaceNotFoundError`` if missing."""
    workspace = await get_workspace(store, workspace_id)

    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        return workspace

    if "name" in changes and not await to_thread.run_sync(store.rename_workspace, workspace_id, changes["name"]):
        msg = f"Failed to rename workspace '{workspace_id}'"
        raise StoreWriteError(msg)
    if "is_favorite" in changes and not await to_thread.run_sync(
        store.set_favorite, workspace_id, changes["is_favorite"]
    ):
        msg = f"Failed to update favorite flag of workspace '{workspace_id}'"
        raise StoreWriteError(msg)

    return await get_workspace(store, workspace_id)


async def delete_workspace(store: WorkspaceStore, workspace_id: str) -> None:
    """Delete a workspace.  Raises ``WorkspaceNotFoundError`` if missing."""
    await get_workspace(store, workspace_id)
    if not await to_thread.run_sync(store.delete_workspace, workspace_id):
        msg = f"Failed to delete workspace '{workspace_id}'"
        raise StoreWriteError(msg)
