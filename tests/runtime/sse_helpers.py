"""Builders for fake chat-completion responses."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator, Callable, Iterable

import httpx

from quickgen.runtime.generation.transport import HttpxTransport

DONE_RECORD = "data: [DONE]\n\n"


def chunk_record(content: str | None = None, finish_reason: str | None = None) -> str:
    """One ``data:`` record carrying a streaming delta."""
    delta = {} if content is None else {"content": content}
    payload = {"id": "chatcmpl-1", "choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}]}
    return f"data: {json.dumps(payload)}\n\n"


def sse_body(*deltas: str, done: bool = True) -> bytes:
    body = "".join(chunk_record(d) for d in deltas)
    if done:
        body += DONE_RECORD
    return body.encode()


def streaming_response(chunks: Iterable[bytes], status_code: int = 200) -> httpx.Response:
    """A response whose body arrives in exactly the given transport chunks."""

    async def body() -> AsyncIterator[bytes]:
        for chunk in chunks:
            yield chunk

    return httpx.Response(status_code, headers={"content-type": "text/event-stream"}, content=body())


def mock_transport(handler: Callable[[httpx.Request], httpx.Response]) -> HttpxTransport:
    return HttpxTransport(httpx.AsyncClient(transport=httpx.MockTransport(handler)))
