"""Chat-completions wire schemas (OpenAI-compatible).

Only the fields the runtime reads are modelled; everything else in the
server's payload is ignored.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

# -- Request -----------------------------------------------------------------


class CompletionMessage(BaseModel):
    role: str
    content: str


class ChatCompletionRequest(BaseModel):
    model: str
    messages: list[CompletionMessage]
    temperature: float | None = None
    stream: bool = False


# -- Streaming response ------------------------------------------------------


class ChunkDelta(BaseModel):
    model_config = ConfigDict(extra="ignore")

    role: str | None = None
    content: str | None = None


class ChunkChoice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    index: int | None = None
    delta: ChunkDelta | None = None
    finish_reason: str | None = None


class ChatCompletionChunk(BaseModel):
    """One ``data:`` record of a streaming response."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    model: str | None = None
    choices: list[ChunkChoice] = Field(default_factory=list)


# -- Buffered response -------------------------------------------------------


class ResponseChoice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    index: int | None = None
    message: CompletionMessage
    finish_reason: str | None = None


class ChatCompletionResponse(BaseModel):
    """Single JSON body of a non-streaming response."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    model: str | None = None
    choices: list[ResponseChoice] = Field(default_factory=list)
