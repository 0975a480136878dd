"""Workspace CRUD endpoints (RPC-style).

All write operations use POST; reads use GET.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from quickgen.runtime.deps import Store
from quickgen.runtime.managers import workspaces as workspace_mgr
from quickgen.runtime.models.api import WorkspaceCreate, WorkspaceResponse, WorkspaceUpdate
from quickgen.runtime.models.workspace import Workspace
from quickgen.runtime.store.base import PersistenceError

router = APIRouter(prefix="/workspaces", tags=["workspaces"])


def _not_found(workspace_id: str) -> HTTPException:
    return HTTPException(status.HTTP_404_NOT_FOUND, detail=f"Workspace '{workspace_id}' not found.")


@router.post("/create", response_model=WorkspaceResponse, status_code=status.HTTP_201_CREATED)
async def create_workspace(body: WorkspaceCreate, store: Store) -> Workspace:
    """Create a new workspace."""
    try:
        return await workspace_mgr.create_workspace(store, body)
    except PersistenceError as exc:
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from None


@router.get("/list", response_model=list[WorkspaceResponse])
async def list_workspaces(store: Store) -> list[Workspace]:
    """List all workspaces, most recently modified first."""
    return await workspace_mgr.list_workspaces(store)


@router.get("/{workspace_id}/get", response_model=WorkspaceResponse)
async def get_workspace(workspace_id: str, store: Store) -> Workspace:
    """Get a single workspace by ID."""
    try:
        return await workspace_mgr.get_workspace(store, workspace_id)
    except LookupError:
        raise _not_found(workspace_id) from None


@router.post("/{workspace_id}/update", response_model=WorkspaceResponse)
async def update_workspace(workspace_id: str, body: WorkspaceUpdate, store: Store) -> Workspace:
    """Rename a workspace and/or change its favorite flag."""
    try:
        return await workspace_mgr.update_workspace(store, workspace_id, body)
    except LookupError:
        raise _not_found(workspace_id) from None
    except workspace_mgr.StoreWriteError as exc:
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from None


@router.post("/{workspace_id}/delete", status_code=status.HTTP_204_NO_CONTENT)
async def delete_workspace(workspace_id: str, store: Store) -> None:
    """Delete a workspace with its chat history and artifacts."""
    try:
        await workspace_mgr.delete_workspace(store, workspace_id)
    except LookupError:
        raise _not_found(workspace_id) from None
    except workspace_mgr.StoreWriteError as exc:
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from None
