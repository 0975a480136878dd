"""Record framing for the streaming wire protocol.

The server sends ``data: <json>`` records separated by a blank line and
ends with ``data: [DONE]``.  Transport chunks do not respect record
boundaries, so ``RecordSplitter`` keeps the unterminated tail between
feeds.
"""

from __future__ import annotations

import codecs

from quickgen.runtime.generation.errors import DecodeFailureError

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"
RECORD_DELIMITER = "\n\n"


class RecordSplitter:
    """Incrementally turn raw bytes into record payloads.

    ``feed`` returns the payloads (text after ``data: ``) of every record
    completed by the chunk; records without the prefix are dropped.
    ``flush`` returns whatever is left once the stream has ended.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")()
        self._pending = ""

    def feed(self, chunk: bytes) -> list[str]:
        try:
            text = self._decoder.decode(chunk)
        except UnicodeDecodeError as exc:
            msg = f"Response is not valid UTF-8: {exc}"
            raise DecodeFailureError(msg) from exc

        # A trailing "\r" from the previous chunk pairs up here.
        self._pending = (self._pending + text).replace("\r\n", "\n")
        *complete, self._pending = self._pending.split(RECORD_DELIMITER)
        return _payloads(complete)

    def flush(self) -> list[str]:
        try:
            tail = self._decoder.decode(b"", final=True)
        except UnicodeDecodeError as exc:
            msg = f"Response ends with a truncated UTF-8 sequence: {exc}"
            raise DecodeFailureError(msg) from exc
        remaining = (self._pending + tail).replace("\r\n", "\n")
        self._pending = ""
        return _payloads(remaining.split(RECORD_DELIMITER))


def _payloads(records: list[str]) -> list[str]:
    payloads = []
    for record in records:
        record = record.strip()
        if record.startswith(DATA_PREFIX):
            payloads.append(record[len(DATA_PREFIX) :].strip())
    return payloads
