"""Stream aggregator -- one chat-completions request as an ordered event stream.

Lifecycle::

    idle -> streaming -> completed | failed | cancelled

Usage::

    aggregator = StreamAggregator(transport, settings)
    async with aggregator.start("A landing page for a bakery") as events:
        async for event in events:
            ...  # update* then exactly one of complete / fail / cancel

A pump task reads the transport, owns the text buffer (single writer) and
pushes events into a zero-capacity memory object stream.  The consumer
reads from its own task, so at most one event is in flight and network
timing never runs consumer code.

``cancel()`` moves to ``cancelled`` immediately and cancels the pump's
scope; an update the pump was already handing over may still arrive before
the ``cancel`` event, nothing arrives after it.
"""

from __future__ import annotations

import json
import logging
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass

import anyio
import httpx
from anyio.streams.memory import MemoryObjectReceiveStream, MemoryObjectSendStream
from pydantic import ValidationError

from quickgen.runtime.generation.errors import (
    AggregatorStateError,
    DecodeFailureError,
    EmptyResponseError,
    GenerationCancelledError,
    GenerationError,
    HTTPStatusError,
    InvalidEndpointError,
    MalformedPayloadError,
    MissingCredentialError,
    TransportFailureError,
)
from quickgen.runtime.generation.prompt import render_system_prompt
from quickgen.runtime.generation.records import DONE_SENTINEL, RecordSplitter
from quickgen.runtime.generation.transport import OutboundRequest, Transport, TransportResponse
from quickgen.runtime.models.completion import (
    ChatCompletionChunk,
    ChatCompletionRequest,
    ChatCompletionResponse,
    CompletionMessage,
)
from quickgen.runtime.models.enums import EventType, StreamState
from quickgen.runtime.models.events import ErrorInfo, StreamEvent
from quickgen.runtime.settings import DEFAULT_SYSTEM_PROMPT, GenerationSettings

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0

EventSender = MemoryObjectSendStream[StreamEvent]


@dataclass(frozen=True)
class RequestConfig:
    """Per-request overrides."""

    stream: bool = True
    temperature: float | None = None
    system_prompt: str | None = None


class StreamAggregator:
    """Aggregates one streamed completion into cumulative updates.

    Single-use: create a new instance for every request.  All methods must
    be called from the event loop that runs ``start``.
    """

    def __init__(
        self,
        transport: Transport,
        settings: GenerationSettings,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        request_id: str | None = None,
    ) -> None:
        self.request_id = request_id or uuid.uuid4().hex
        self._transport = transport
        self._settings = settings
        self._timeout = timeout
        self._system_prompt = system_prompt
        self._state = StreamState.IDLE
        self._chunks: list[str] = []
        self._scope: anyio.CancelScope | None = None

    @property
    def state(self) -> StreamState:
        return self._state

    @property
    def buffer(self) -> str:
        """Cumulative text received so far."""
        return "".join(self._chunks)

    # -- Control ---------------------------------------------------------------

    @asynccontextmanager
    async def start(
        self,
        prompt: str,
        config: RequestConfig | None = None,
    ) -> AsyncIterator[MemoryObjectReceiveStream[StreamEvent]]:
        """Issue the request and yield the event stream.

        Leaving the context before the terminal event cancels the request.
        Raises ``AggregatorStateError`` if this aggregator was already started
        or cancelled.
        """
        if self._state is not StreamState.IDLE:
            msg = f"Aggregator {self.request_id} is {self._state}; use a new instance per request"
            raise AggregatorStateError(msg)
        self._state = StreamState.STREAMING

        send, receive = anyio.create_memory_object_stream[StreamEvent](0)
        async with anyio.create_task_group() as tg:
            tg.start_soon(self._pump, prompt, config or RequestConfig(), send)
            with receive:
                try:
                    yield receive
                finally:
                    self.cancel()

    def cancel(self) -> None:
        """Abort the request.  No-op once a terminal state is reached."""
        if self._state.is_terminal:
            return
        logger.info("Cancelling generation %s (state=%s)", self.request_id, self._state)
        self._state = StreamState.CANCELLED
        if self._scope is not None:
            self._scope.cancel()

    async def run(
        self,
        prompt: str,
        config: RequestConfig | None = None,
        *,
        on_update: Callable[[str], Awaitable[None] | None] | None = None,
    ) -> StreamEvent:
        """Drive the request to completion and return its terminal event.

        ``on_update`` receives the cumulative text of every partial update.
        """
        terminal: StreamEvent | None = None
        async with self.start(prompt, config) as events:
            async for event in events:
                if event.event_type is EventType.UPDATE:
                    if on_update is not None:
                        result = on_update(event.content)
                        if result is not None:
                            await result
                else:
                    terminal = event
        if terminal is None:
            # Consumer-side cancellation raced the pump; report it as such.
            terminal = self._event(EventType.CANCEL, error=GenerationCancelledError().to_info())
        return terminal

    # -- Pump ------------------------------------------------------------------

    async def _pump(self, prompt: str, config: RequestConfig, send: EventSender) -> None:
        error: GenerationError | None = None
        async with send:
            with anyio.CancelScope() as scope:
                self._scope = scope
                if self._state is StreamState.CANCELLED:
                    scope.cancel()
                error = await self._execute(prompt, config, send)
                # No checkpoint between the outcome and the state change.
                if self._state is StreamState.STREAMING:
                    self._state = StreamState.FAILED if error else StreamState.COMPLETED

            # The terminal event is sent outside the cancel scope so a late
            # cancel() or the timeout can never swallow it.
            if self._state is StreamState.CANCELLED:
                event = self._event(EventType.CANCEL, error=GenerationCancelledError().to_info())
            elif self._state is StreamState.FAILED and error is not None:
                logger.warning("Generation %s failed: [%s] %s", self.request_id, error.kind, error.message)
                event = self._event(EventType.FAIL, error=error.to_info())
            else:
                logger.info("Generation %s completed (%d chars)", self.request_id, len(self.buffer))
                event = self._event(EventType.COMPLETE)
            await self._emit(send, event)

    async def _execute(self, prompt: str, config: RequestConfig, send: EventSender) -> GenerationError | None:
        try:
            request = self._build_request(prompt, config)
            with anyio.fail_after(self._timeout):
                if config.stream:
                    await self._consume_stream(request, send)
                else:
                    await self._consume_buffered(request)
        except TimeoutError:
            return TransportFailureError(f"Request timed out after {self._timeout:g}s")
        except GenerationError as exc:
            return exc
        return None

    async def _consume_stream(self, request: OutboundRequest, send: EventSender) -> None:
        splitter = RecordSplitter()
        try:
            async with self._transport.stream(request) as response:
                await _raise_for_status(response)
                async for chunk in response.aiter_bytes():
                    for payload in splitter.feed(chunk):
                        if await self._apply(payload, send):
                            return
                for payload in splitter.flush():
                    if await self._apply(payload, send):
                        return
        except TransportFailureError as exc:
            # A connection lost after output arrived is an early closure.
            if not self._chunks:
                raise
            logger.warning(
                "Stream %s dropped after %d chars (%s); finalizing possibly truncated text",
                self.request_id,
                len(self.buffer),
                exc.message,
            )
            return

        # Closed without [DONE] or finish_reason.
        if not self._chunks:
            msg = "Stream closed before any content was received."
            raise EmptyResponseError(msg)
        logger.warning(
            "Stream %s closed without a terminal marker; finalizing %d buffered chars",
            self.request_id,
            len(self.buffer),
        )

    async def _apply(self, payload: str, send: EventSender) -> bool:
        """Apply one record.  Returns True when the record finalizes the stream."""
        if payload == DONE_SENTINEL:
            return True
        try:
            chunk = ChatCompletionChunk.model_validate_json(payload)
        except ValidationError:
            logger.debug("Skipping undecodable record in %s: %.200s", self.request_id, payload)
            return False
        if not chunk.choices:
            return False

        choice = chunk.choices[0]
        # After cancel() the buffer is frozen at the cancellation point.
        if choice.delta is not None and choice.delta.content and self._state is StreamState.STREAMING:
            self._chunks.append(choice.delta.content)
            await self._emit(send, self._event(EventType.UPDATE))
        return choice.finish_reason is not None

    async def _consume_buffered(self, request: OutboundRequest) -> None:
        async with self._transport.stream(request) as response:
            await _raise_for_status(response)
            body = await response.aread()

        try:
            body.decode("utf-8")
        except UnicodeDecodeError as exc:
            msg = f"Response is not valid UTF-8: {exc}"
            raise DecodeFailureError(msg) from exc
        try:
            completion = ChatCompletionResponse.model_validate_json(body)
        except ValidationError as exc:
            msg = f"Response is not a chat completion ({exc.error_count()} validation errors)"
            raise MalformedPayloadError(msg) from exc

        content = completion.choices[0].message.content if completion.choices else ""
        if not content:
            raise EmptyResponseError
        self._chunks.append(content)

    # -- Helpers ---------------------------------------------------------------

    def _build_request(self, prompt: str, config: RequestConfig) -> OutboundRequest:
        settings = self._settings
        api_key = settings.api_key.get_secret_value().strip() if settings.api_key else ""
        if not api_key:
            raise MissingCredentialError
        url = completions_url(settings.endpoint)

        system_prompt = render_system_prompt(
            config.system_prompt or self._system_prompt,
            model_name=settings.model,
        )
        body = ChatCompletionRequest(
            model=settings.model,
            messages=[
                CompletionMessage(role="system", content=system_prompt),
                CompletionMessage(role="user", content=prompt),
            ],
            temperature=config.temperature if config.temperature is not None else settings.temperature,
            stream=config.stream,
        )
        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "Accept": "text/event-stream" if config.stream else "application/json",
        }
        return OutboundRequest(url=url, body=body.model_dump_json(exclude_none=True).encode(), headers=headers)

    def _event(self, event_type: EventType, *, error: ErrorInfo | None = None) -> StreamEvent:
        return StreamEvent(event_type=event_type, request_id=self.request_id, content=self.buffer, error=error)

    async def _emit(self, send: EventSender, event: StreamEvent) -> None:
        try:
            await send.send(event)
        except (anyio.BrokenResourceError, anyio.ClosedResourceError):
            logger.debug("Consumer of %s is gone; dropped %s event", self.request_id, event.event_type)


def completions_url(endpoint: str) -> str:
    """``{endpoint}/chat/completions``.  Raises ``InvalidEndpointError``."""
    try:
        url = httpx.URL(endpoint.strip())
    except httpx.InvalidURL as exc:
        msg = f"Invalid API endpoint {endpoint!r}: {exc}"
        raise InvalidEndpointError(msg) from exc
    if url.scheme not in ("http", "https") or not url.host:
        msg = f"API endpoint must be an absolute http(s) URL, got {endpoint!r}"
        raise InvalidEndpointError(msg)
    return f"{str(url).rstrip('/')}/chat/completions"


async def _raise_for_status(response: TransportResponse) -> None:
    if 200 <= response.status_code < 300:
        return
    body = await response.aread()
    raise HTTPStatusError(response.status_code, _server_message(body))


def _server_message(body: bytes) -> str | None:
    """Pull ``error.message`` out of an OpenAI-style error body."""
    try:
        data = json.loads(body)
    except ValueError:
        text = body.decode("utf-8", errors="replace").strip()
        return text[:500] or None
    error = data.get("error") if isinstance(data, dict) else None
    if isinstance(error, dict) and isinstance(error.get("message"), str):
        return error["message"]
    if isinstance(error, str):
        return error
    return None
