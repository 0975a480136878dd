"""Chat, artifact and generation endpoints for one workspace (RPC-style).

``/chat/generate`` answers with Server-Sent Events: one ``update`` event per
partial response (cumulative text), then exactly one of ``complete``,
``fail`` or ``cancel``.  Each ``data`` field is a JSON ``StreamEvent``.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import APIRouter, HTTPException, status
from sse_starlette import EventSourceResponse, ServerSentEvent

from quickgen.runtime.deps import Controller, Store
from quickgen.runtime.managers import chat as chat_mgr
from quickgen.runtime.managers.sessions import NothingToRegenerateError
from quickgen.runtime.managers.workspaces import StoreWriteError, WorkspaceNotFoundError
from quickgen.runtime.models.api import ArtifactResponse, ChatMessageResponse, GenerateRequest
from quickgen.runtime.models.events import StreamEvent
from quickgen.runtime.models.workspace import ChatMessage, GeneratedArtifact
from quickgen.runtime.registry import ShuttingDownError

router = APIRouter(prefix="/workspaces/{workspace_id}", tags=["chat"])


def _not_found(workspace_id: str) -> HTTPException:
    return HTTPException(status.HTTP_404_NOT_FOUND, detail=f"Workspace '{workspace_id}' not found.")


# -- History -----------------------------------------------------------------


@router.get("/chat/history", response_model=list[ChatMessageResponse])
async def chat_history(workspace_id: str, store: Store) -> list[ChatMessage]:
    """Chat messages, oldest first."""
    try:
        return await chat_mgr.fetch_chat_history(store, workspace_id)
    except WorkspaceNotFoundError:
        raise _not_found(workspace_id) from None


@router.post("/chat/clear", status_code=status.HTTP_204_NO_CONTENT)
async def clear_chat(workspace_id: str, store: Store) -> None:
    """Delete every chat message of the workspace.  Artifacts are kept."""
    try:
        await chat_mgr.clear_chat_history(store, workspace_id)
    except WorkspaceNotFoundError:
        raise _not_found(workspace_id) from None
    except StoreWriteError as exc:
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from None


# -- Artifacts ---------------------------------------------------------------


@router.get("/artifacts/latest", response_model=ArtifactResponse)
async def latest_artifact(workspace_id: str, store: Store) -> GeneratedArtifact:
    """The most recently generated page."""
    try:
        return await chat_mgr.get_latest_artifact(store, workspace_id)
    except WorkspaceNotFoundError:
        raise _not_found(workspace_id) from None
    except chat_mgr.ArtifactNotFoundError:
        raise HTTPException(
            status.HTTP_404_NOT_FOUND,
            detail=f"Workspace '{workspace_id}' has no generated page.",
        ) from None


# -- Generation --------------------------------------------------------------


@router.post("/chat/generate")
async def generate(workspace_id: str, body: GenerateRequest, controller: Controller) -> EventSourceResponse:
    """Send a message (or re-run the last one when ``prompt`` is omitted) and stream the reply."""
    try:
        if body.prompt is None:
            events = await controller.regenerate(workspace_id)
        else:
            events = await controller.send_message(workspace_id, body.prompt)
    except WorkspaceNotFoundError:
        raise _not_found(workspace_id) from None
    except NothingToRegenerateError:
        raise HTTPException(
            status.HTTP_409_CONFLICT,
            detail=f"Workspace '{workspace_id}' has no message to regenerate.",
        ) from None
    except ValueError as exc:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail=str(exc)) from None
    except ShuttingDownError:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, detail="Server is shutting down.") from None

    return EventSourceResponse(_to_sse(events))


@router.post("/chat/cancel")
async def cancel(workspace_id: str, controller: Controller) -> dict[str, bool]:
    """Cancel the workspace's running generation, if any."""
    return {"cancelled": controller.cancel(workspace_id)}


async def _to_sse(events: AsyncIterator[StreamEvent]) -> AsyncIterator[ServerSentEvent]:
    async for event in events:
        yield ServerSentEvent(data=event.model_dump_json(), event=event.event_type.value, id=event.event_id)
