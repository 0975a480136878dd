"""Unit tests for streaming record framing."""

from __future__ import annotations

import pytest

from quickgen.runtime.generation.errors import DecodeFailureError
from quickgen.runtime.generation.records import RecordSplitter


def test_complete_records_in_one_chunk() -> None:
    splitter = RecordSplitter()
    assert splitter.feed(b'data: {"a": 1}\n\ndata: [DONE]\n\n') == ['{"a": 1}', "[DONE]"]
    assert splitter.flush() == []


def test_record_split_across_chunks() -> None:
    splitter = RecordSplitter()
    assert splitter.feed(b'data: {"a"') == []
    assert splitter.feed(b": 1}\n") == []
    assert splitter.feed(b"\ndata: [DO") == ['{"a": 1}']
    assert splitter.feed(b"NE]\n\n") == ["[DONE]"]


def test_crlf_delimiters() -> None:
    splitter = RecordSplitter()
    assert splitter.feed(b"data: one\r\n\r") == []
    assert splitter.feed(b"\ndata: two\r\n\r\n") == ["one", "two"]


def test_non_data_records_are_ignored() -> None:
    splitter = RecordSplitter()
    assert splitter.feed(b": keep-alive\n\nevent: ping\n\ndata: x\n\n") == ["x"]


def test_flush_returns_unterminated_tail() -> None:
    splitter = RecordSplitter()
    assert splitter.feed(b"data: tail") == []
    assert splitter.flush() == ["tail"]


def test_multibyte_character_split_across_chunks() -> None:
    splitter = RecordSplitter()
    encoded = "data: café\n\n".encode()
    cut = encoded.index(b"\xa9")
    assert splitter.feed(encoded[:cut]) == []
    assert splitter.feed(encoded[cut:]) == ["café"]


def test_invalid_utf8_raises_decode_failure() -> None:
    splitter = RecordSplitter()
    with pytest.raises(DecodeFailureError):
        splitter.feed(b"data: \xff\xfe\n\n")


def test_truncated_utf8_at_end_raises_decode_failure() -> None:
    splitter = RecordSplitter()
    splitter.feed(b"data: caf\xc3")
    with pytest.raises(DecodeFailureError):
        splitter.flush()
