"""Generation pipeline for the quickgen runtime.

This package turns a prompt into a page:

- **transport**: Outbound HTTP (``Transport`` protocol, httpx adapter)
- **records**: Wire framing (``data: <json>`` records, ``[DONE]`` sentinel)
- **prompt**: System prompt rendering (Jinja2 templates)
- **aggregator**: One request as an ordered stream of lifecycle events
- **extract**: Fenced code-block extraction from the finished text
- **errors**: Failure hierarchy mapped onto ``ErrorKind``
"""

from quickgen.runtime.generation.aggregator import RequestConfig, StreamAggregator
from quickgen.runtime.generation.errors import AggregatorStateError, GenerationError
from quickgen.runtime.generation.extract import extract_code_block
from quickgen.runtime.generation.transport import HttpxTransport, OutboundRequest, Transport

__all__ = [
    "AggregatorStateError",
    "GenerationError",
    "HttpxTransport",
    "OutboundRequest",
    "RequestConfig",
    "StreamAggregator",
    "Transport",
    "extract_code_block",
]
