"""Outbound transport for the chat-completions service.

The aggregator talks to the network only through the ``Transport``
protocol.  ``HttpxTransport`` is the production adapter; tests wire it to
an ``httpx.MockTransport`` so no socket is ever opened.

Both streaming and buffered requests use ``Transport.stream``: a buffered
caller simply reads the whole body with ``aread()``.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass, field
from typing import Protocol

import httpx

from quickgen.runtime.generation.errors import TransportFailureError


@dataclass(frozen=True)
class OutboundRequest:
    """A fully-built POST request."""

    url: str
    body: bytes
    headers: dict[str, str] = field(default_factory=dict)


class TransportResponse(Protocol):
    """The subset of ``httpx.Response`` the aggregator relies on."""

    @property
    def status_code(self) -> int: ...

    async def aread(self) -> bytes: ...

    def aiter_bytes(self) -> AsyncIterator[bytes]: ...


class Transport(Protocol):
    def stream(self, request: OutboundRequest) -> AbstractAsyncContextManager[TransportResponse]:
        """Issue the request; the response body is consumed inside the context.

        Leaving the context closes the connection.  Network failures raise
        ``TransportFailureError``.
        """
        ...


class HttpxTransport:
    """``Transport`` backed by a shared ``httpx.AsyncClient``."""

    def __init__(self, client: httpx.AsyncClient | None = None, *, timeout: float = 60.0) -> None:
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._owns_client = client is None

    @asynccontextmanager
    async def stream(self, request: OutboundRequest) -> AsyncIterator[httpx.Response]:
        try:
            async with self._client.stream(
                "POST",
                request.url,
                content=request.body,
                headers=request.headers,
            ) as response:
                yield response
        except httpx.HTTPError as exc:
            msg = str(exc) or type(exc).__name__
            raise TransportFailureError(msg) from exc

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
