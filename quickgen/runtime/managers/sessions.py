"""Session controller -- one chat turn from prompt to persisted page.

The SessionController is a process-level singleton initialised in the app
lifespan.  It coordinates between three collaborators:

- **Workspace store**: chat messages, artifacts and workspace metadata
- **Stream aggregator**: one remote generation request per turn
- **Registry**: the active aggregator of every workspace (cancel)

A turn is two steps.  ``send_message`` (or ``regenerate``) validates the
input eagerly and returns an async iterator of ``StreamEvent``; the
generation starts when the iterator is first consumed.  Consume it to
the end or close it with ``aclose()`` from the same task.

The outcome is persisted before the terminal event is handed on, so a
consumer that sees ``complete`` can read the new artifact straight away.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import AsyncIterator, Callable
from typing import TYPE_CHECKING, Any

import anyio
from loguru import logger

from quickgen.runtime.context import ActiveGeneration
from quickgen.runtime.generation.aggregator import DEFAULT_TIMEOUT, RequestConfig, StreamAggregator
from quickgen.runtime.generation.extract import extract_code_block
from quickgen.runtime.managers.workspaces import WorkspaceNotFoundError
from quickgen.runtime.models.enums import EventType, MessageSender
from quickgen.runtime.models.workspace import ChatMessage, GeneratedArtifact
from quickgen.runtime.registry import ShuttingDownError
from quickgen.runtime.settings import DEFAULT_SYSTEM_PROMPT, GenerationSettings

if TYPE_CHECKING:
    from quickgen.runtime.generation.transport import Transport
    from quickgen.runtime.models.events import StreamEvent
    from quickgen.runtime.registry import StreamRegistry
    from quickgen.runtime.store.base import WorkspaceStore


class NothingToRegenerateError(ValueError):
    """Raised when a workspace has no user message to re-run."""


class SessionController:
    """Runs chat turns and settles their outcome in the store.

    Store calls run in worker threads and are serialised per workspace.
    """

    def __init__(
        self,
        store: WorkspaceStore,
        registry: StreamRegistry,
        transport: Transport,
        settings_provider: Callable[[], GenerationSettings],
        *,
        timeout: float = DEFAULT_TIMEOUT,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
    ) -> None:
        self._store = store
        self._registry = registry
        self._transport = transport
        self._settings_provider = settings_provider
        self._timeout = timeout
        self._system_prompt = system_prompt
        self._locks: dict[str, anyio.Lock] = {}
        self._lock_users: Counter[str] = Counter()

    # -- Turns -----------------------------------------------------------------

    async def send_message(
        self,
        workspace_id: str,
        text: str,
        config: RequestConfig | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Save ``text`` as a user message and return the generation's events.

        Raises ``ValueError`` for blank text, ``WorkspaceNotFoundError`` for
        an unknown workspace and ``ShuttingDownError`` during shutdown.
        """
        if not text.strip():
            msg = "Message text must not be empty"
            raise ValueError(msg)
        await self._require_workspace(workspace_id)

        message = ChatMessage(workspace_id=workspace_id, sender=MessageSender.USER, content=text)
        if not await self._run(workspace_id, self._store.save_chat_message, message):
            logger.warning("User message {} was not persisted (workspace={})", message.id, workspace_id)
        logger.info("Turn started: workspace={} message={}", workspace_id, message.id)
        return self._generate(workspace_id, text, config)

    async def regenerate(
        self,
        workspace_id: str,
        config: RequestConfig | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Re-run the most recent user message without saving a new one."""
        await self._require_workspace(workspace_id)
        history = await self._run(workspace_id, self._store.fetch_chat_history, workspace_id)
        for message in reversed(history):
            if message.sender is MessageSender.USER:
                logger.info("Regenerating from message {} (workspace={})", message.id, workspace_id)
                return self._generate(workspace_id, message.content, config)
        raise NothingToRegenerateError(workspace_id)

    def cancel(self, workspace_id: str) -> bool:
        """Cancel the workspace's active generation.  Returns False if none."""
        return self._registry.cancel(workspace_id)

    # -- Generation ------------------------------------------------------------

    async def _generate(
        self,
        workspace_id: str,
        prompt: str,
        config: RequestConfig | None,
    ) -> AsyncIterator[StreamEvent]:
        aggregator = StreamAggregator(
            self._transport,
            self._settings_provider(),
            timeout=self._timeout,
            system_prompt=self._system_prompt,
        )
        generation = ActiveGeneration(workspace_id=workspace_id, prompt=prompt, aggregator=aggregator)
        self._registry.register(generation)
        try:
            async with aggregator.start(prompt, config) as events:
                async for event in events:
                    if event.is_terminal:
                        await self._settle(workspace_id, event)
                    yield event
        finally:
            self._registry.unregister(generation)

    async def _settle(self, workspace_id: str, event: StreamEvent) -> None:
        if event.event_type is EventType.COMPLETE:
            await self._run(workspace_id, self._record_completion, workspace_id, event.content)
        elif event.event_type is EventType.FAIL:
            text = event.error.message if event.error else "Generation failed."
            message = ChatMessage(
                workspace_id=workspace_id,
                sender=MessageSender.ASSISTANT,
                content=text,
                is_error=True,
            )
            await self._run(workspace_id, self._store.save_chat_message, message)
        else:
            logger.info("Turn cancelled: workspace={} request={}", workspace_id, event.request_id)

    def _record_completion(self, workspace_id: str, content: str) -> None:
        """Persist a finished reply: message, then artifact, then workspace."""
        store = self._store
        reply = ChatMessage(workspace_id=workspace_id, sender=MessageSender.ASSISTANT, content=content)
        if not store.save_chat_message(reply):
            logger.warning("Assistant message {} was not persisted (workspace={})", reply.id, workspace_id)

        workspace = store.get_workspace(workspace_id)
        if workspace is None:
            logger.warning("Workspace {} vanished before its reply was recorded", workspace_id)
            return

        html = extract_code_block(content)
        if not html:
            logger.info("Reply for workspace {} contains no html block; no artifact saved", workspace_id)
        else:
            artifact = GeneratedArtifact(workspace_id=workspace_id, html_content=html)
            if store.save_generated_artifact(artifact, workspace_id):
                workspace = workspace.model_copy(update={"generated_html": html})
                logger.info("Artifact {} saved (workspace={}, {} chars)", artifact.id, workspace_id, len(html))

        store.save_workspace(workspace.touch())

    # -- Helpers ---------------------------------------------------------------

    async def _require_workspace(self, workspace_id: str) -> None:
        if self._registry.is_shutting_down:
            raise ShuttingDownError
        workspace = await self._run(workspace_id, self._store.get_workspace, workspace_id)
        if workspace is None:
            raise WorkspaceNotFoundError(workspace_id)

    async def _run(self, workspace_id: str, func: Callable[..., Any], *args: Any) -> Any:
        lock = self._locks.setdefault(workspace_id, anyio.Lock())
        self._lock_users[workspace_id] += 1
        try:
            async with lock:
                return await anyio.to_thread.run_sync(func, *args)
        finally:
            # Drop the lock once nobody holds or waits on it.
            self._lock_users[workspace_id] -= 1
            if not self._lock_users[workspace_id]:
                del self._lock_users[workspace_id]
                del self._locks[workspace_id]
