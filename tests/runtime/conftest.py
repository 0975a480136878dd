"""Shared fixtures for runtime tests.

No network and no Docker: the remote completion service is replaced by
``httpx.MockTransport`` and the store lives under ``tmp_path``.
"""

from __future__ import annotations

from collections.abc import AsyncIterator

import httpx
import pytest
from httpx import ASGITransport, AsyncClient
from pydantic import SecretStr
from sse_helpers import mock_transport, sse_body

from quickgen.runtime.app import app
from quickgen.runtime.managers.sessions import SessionController
from quickgen.runtime.registry import StreamRegistry
from quickgen.runtime.settings import GenerationSettings
from quickgen.runtime.store.local import FileWorkspaceStore

ENDPOINT = "https://llm.test/v1"


@pytest.fixture
def settings() -> GenerationSettings:
    return GenerationSettings(endpoint=ENDPOINT, api_key=SecretStr("sk-test"), model="gpt-test", temperature=0.7)


@pytest.fixture
def store(tmp_path) -> FileWorkspaceStore:
    return FileWorkspaceStore(tmp_path)


@pytest.fixture
def registry() -> StreamRegistry:
    return StreamRegistry()


@pytest.fixture
async def client(
    store: FileWorkspaceStore,
    registry: StreamRegistry,
    settings: GenerationSettings,
) -> AsyncIterator[AsyncClient]:
    """Async HTTP client wired to the app with a tmp-dir store.

    The app lifespan does NOT run under ``ASGITransport``, so state fields
    are pre-set here.  The completion service replies with one html block.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=sse_body("Here:\n```html\n", "<p>hi</p>\n", "```"))

    app.state.store = store
    app.state.registry = registry
    app.state.controller = SessionController(store, registry, mock_transport(handler), lambda: settings)

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.state.store = None
    app.state.registry = None
    app.state.controller = None
