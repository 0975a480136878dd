"""FastAPI dependency injection for the store and the session controller.

Usage in route handlers::

    @router.get("/things")
    async def list_things(store: Store) -> list[ThingResponse]:
        ...

Both objects are created in the app lifespan and stored on ``app.state``.
Dependencies raise HTTP 503 if the lifespan has not initialised them.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from quickgen.runtime.managers.sessions import SessionController
from quickgen.runtime.store.base import WorkspaceStore


def get_store(request: Request) -> WorkspaceStore:
    store: WorkspaceStore | None = getattr(request.app.state, "store", None)
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Workspace store not initialised.",
        )
    return store


def get_controller(request: Request) -> SessionController:
    controller: SessionController | None = getattr(request.app.state, "controller", None)
    if controller is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Session controller not initialised.",
        )
    return controller


# -- Annotated type aliases for concise route signatures ---------------------

Store = Annotated[WorkspaceStore, Depends(get_store)]
"""Annotated dependency: the shared workspace store."""

Controller = Annotated[SessionController, Depends(get_controller)]
"""Annotated dependency: the shared session controller."""
