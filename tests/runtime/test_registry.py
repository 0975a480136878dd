"""Unit tests for StreamRegistry."""

from __future__ import annotations

import anyio
import pytest

from quickgen.runtime.context import ActiveGeneration
from quickgen.runtime.registry import ShuttingDownError, StreamRegistry


class FakeAggregator:
    def __init__(self, request_id: str) -> None:
        self.request_id = request_id
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


def _generation(workspace_id: str, request_id: str) -> ActiveGeneration:
    return ActiveGeneration(workspace_id=workspace_id, prompt="p", aggregator=FakeAggregator(request_id))


def test_register_and_get(registry: StreamRegistry) -> None:
    gen = _generation("ws-1", "r1")
    assert registry.register(gen) is None
    assert registry.get("ws-1") is gen
    assert registry.active_count == 1


def test_register_supersedes_and_cancels_previous(registry: StreamRegistry) -> None:
    old = _generation("ws-1", "r1")
    new = _generation("ws-1", "r2")
    other = _generation("ws-2", "r3")
    registry.register(old)
    registry.register(other)

    assert registry.register(new) is old
    assert old.aggregator.cancelled is True
    assert other.aggregator.cancelled is False
    assert registry.get("ws-1") is new

    # A superseded generation unregistering must not evict its replacement.
    assert registry.unregister(old) is False
    assert registry.get("ws-1") is new


def test_cancel(registry: StreamRegistry) -> None:
    gen = _generation("ws-1", "r1")
    registry.register(gen)

    assert registry.cancel("ws-1") is True
    assert gen.aggregator.cancelled is True
    assert registry.cancel("ws-missing") is False


def test_cancel_all(registry: StreamRegistry) -> None:
    gens = [_generation(f"ws-{i}", f"r{i}") for i in range(3)]
    for gen in gens:
        registry.register(gen)

    assert registry.cancel_all() == 3
    assert all(g.aggregator.cancelled for g in gens)


def test_refuses_registration_during_shutdown(registry: StreamRegistry) -> None:
    registry.begin_shutdown()
    assert registry.is_shutting_down
    with pytest.raises(ShuttingDownError):
        registry.register(_generation("ws-1", "r1"))


async def test_wait_until_drained(registry: StreamRegistry) -> None:
    assert await registry.wait_until_drained(timeout=0.1) is True

    gen = _generation("ws-1", "r1")
    registry.register(gen)
    assert await registry.wait_until_drained(timeout=0.05) is False

    async def finish() -> None:
        await anyio.sleep(0.05)
        registry.unregister(gen)

    async with anyio.create_task_group() as tg:
        tg.start_soon(finish)
        assert await registry.wait_until_drained(timeout=2) is True
    assert registry.active_count == 0
