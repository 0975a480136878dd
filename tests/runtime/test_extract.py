"""Unit tests for fenced code-block extraction."""

from __future__ import annotations

import pytest

from quickgen.runtime.generation.extract import extract_code_block


def test_extracts_html_block() -> None:
    assert extract_code_block("intro\n```html\n<p>x</p>\n```") == "<p>x</p>\n"


def test_text_after_closing_fence_is_ignored() -> None:
    text = "Sure!\n```html\n<h1>Hi</h1>\n```\nLet me know if you want changes.\n```js\nx()\n```"
    assert extract_code_block(text) == "<h1>Hi</h1>\n"


@pytest.mark.parametrize(
    "text",
    [
        "no code here",
        "```html\n<p>unterminated",
        "```python\nprint(1)\n```",
        "",
    ],
)
def test_returns_none_without_complete_block(text: str) -> None:
    assert extract_code_block(text) is None


def test_block_without_newline_after_fence() -> None:
    assert extract_code_block("```html<p>x</p>```") == "<p>x</p>"


def test_empty_block() -> None:
    assert extract_code_block("```html\n```") == ""


def test_custom_fence() -> None:
    assert extract_code_block("```css\nbody {}\n```", fence="```css") == "body {}\n"
