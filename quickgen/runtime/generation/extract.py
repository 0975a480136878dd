"""Fenced code-block extraction.

Used on the cumulative buffer for live preview and on the finished message
for persistence, so both always agree on what the "page" is.
"""

from __future__ import annotations

HTML_FENCE = "```html"
CLOSING_FENCE = "```"


def extract_code_block(text: str, fence: str = HTML_FENCE) -> str | None:
    """Return the text between ``fence`` and the nearest following closing fence.

    The line break ending the opening fence is not part of the result.
    Returns ``None`` if either fence is missing.

    >>> extract_code_block("intro\\n```html\\n<p>x</p>\\n```")
    '<p>x</p>\\n'
    """
    start = text.find(fence)
    if start == -1:
        return None
    body_start = start + len(fence)
    if text.startswith("\n", body_start):
        body_start += 1
    end = text.find(CLOSING_FENCE, body_start)
    if end == -1:
        return None
    return text[body_start:end]
