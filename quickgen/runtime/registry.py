"""In-process stream registry.

Tracks the active generation of every workspace with a live aggregator
reference for direct control (cancel).  Ephemeral -- empty on process
restart.  All durable state lives in the workspace store.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from loguru import logger

if TYPE_CHECKING:
    from quickgen.runtime.context import ActiveGeneration


class ShuttingDownError(RuntimeError):
    """Raised when attempting to register a generation during shutdown."""


class StreamRegistry:
    """Registry of currently running generations, at most one per workspace.

    Registering a new generation for a workspace cancels the one already
    running there, so a superseded stream can never deliver events after its
    replacement has started.

    The registry also provides a drain mechanism for graceful shutdown:
    ``wait_until_drained`` blocks until all generations have been
    unregistered.
    """

    def __init__(self) -> None:
        self._active: dict[str, ActiveGeneration] = {}
        self._drain_event = asyncio.Event()
        self._drain_event.set()  # Starts "drained" (no generations).
        self._shutting_down = False

    # -- Mutation --------------------------------------------------------------

    def register(self, generation: ActiveGeneration) -> ActiveGeneration | None:
        """Register a generation, cancelling any previous one for the workspace.

        Returns the superseded generation, if any.  Raises
        ``ShuttingDownError`` if shutting down.
        """
        if self._shutting_down:
            raise ShuttingDownError
        previous = self._active.get(generation.workspace_id)
        if previous is not None and previous is not generation:
            logger.info(
                "Registry: workspace {} superseded request {} with {}",
                generation.workspace_id,
                previous.request_id,
                generation.request_id,
            )
            previous.cancel()
        logger.debug("Registry: register request {} (workspace={})", generation.request_id, generation.workspace_id)
        self._active[generation.workspace_id] = generation
        self._drain_event.clear()
        return previous

    def unregister(self, generation: ActiveGeneration) -> bool:
        """Remove ``generation`` if it is still the workspace's active one."""
        removed = False
        if self._active.get(generation.workspace_id) is generation:
            del self._active[generation.workspace_id]
            logger.debug("Registry: unregister request {}", generation.request_id)
            removed = True
        if not self._active:
            self._drain_event.set()
        return removed

    # -- Query -----------------------------------------------------------------

    def get(self, workspace_id: str) -> ActiveGeneration | None:
        return self._active.get(workspace_id)

    def all_generations(self) -> list[ActiveGeneration]:
        """Return a snapshot of all active generations."""
        return list(self._active.values())

    @property
    def active_count(self) -> int:
        return len(self._active)

    # -- Lifecycle -------------------------------------------------------------

    def begin_shutdown(self) -> None:
        """Mark the registry as shutting down.  New registrations are refused."""
        self._shutting_down = True
        logger.info("Registry: shutdown initiated, refusing new generations")
        if not self._active:
            self._drain_event.set()

    @property
    def is_shutting_down(self) -> bool:
        return self._shutting_down

    # -- Control ---------------------------------------------------------------

    def cancel(self, workspace_id: str) -> bool:
        """Cancel the workspace's active generation.  Returns False if none."""
        generation = self._active.get(workspace_id)
        if generation is None:
            return False
        generation.cancel()
        logger.info("Registry: cancelled request {} (workspace={})", generation.request_id, workspace_id)
        return True

    def cancel_all(self) -> int:
        """Cancel every active generation.

        Intended as a last resort during forced shutdown.  Normal graceful
        shutdown should use ``begin_shutdown`` + ``wait_until_drained``.
        """
        generations = list(self._active.values())
        for generation in generations:
            generation.cancel()
        if generations:
            logger.info("Registry: cancelled {} generations", len(generations))
        return len(generations)

    async def wait_until_drained(self, timeout: float | None = None) -> bool:
        """Wait until all generations have been unregistered.

        Returns ``True`` if the registry is empty, ``False`` if *timeout*
        expired with generations still active.
        """
        if not self._active:
            return True
        try:
            await asyncio.wait_for(self._drain_event.wait(), timeout=timeout)
        except TimeoutError:
            logger.warning(
                "Registry: drain timed out after {}s with {} generations still active",
                timeout,
                len(self._active),
            )
            return False
        else:
            return True
