"""Unit tests for system prompt rendering."""

from __future__ import annotations

from datetime import UTC, datetime

from quickgen.runtime.generation.prompt import render_system_prompt
from quickgen.runtime.settings import DEFAULT_SYSTEM_PROMPT


def test_plain_string_passthrough() -> None:
    result = render_system_prompt("You build web pages.", model_name="gpt-test")
    assert result == "You build web pages."


def test_template_with_model_name() -> None:
    result = render_system_prompt("Model: {{ model_name }}.", model_name="gpt-test")
    assert result == "Model: gpt-test."


def test_template_with_date() -> None:
    result = render_system_prompt("Today is {{ date }}.", model_name="m")
    assert result == f"Today is {datetime.now(tz=UTC).strftime('%Y-%m-%d')}."


def test_template_conditional() -> None:
    template = "Build pages.{% if model_name.startswith('gpt') %} Be concise.{% endif %}"
    assert render_system_prompt(template, model_name="gpt-4o") == "Build pages. Be concise."
    assert render_system_prompt(template, model_name="llama") == "Build pages."


def test_extra_vars_override_defaults() -> None:
    result = render_system_prompt("{{ model_name }} / {{ style }}", model_name="m", extra_vars={"style": "dark"})
    assert result == "m / dark"


def test_html_is_not_escaped() -> None:
    result = render_system_prompt("Wrap in {{ tag }}", model_name="m", extra_vars={"tag": "<html>"})
    assert result == "Wrap in <html>"


def test_default_prompt_asks_for_html_block() -> None:
    result = render_system_prompt(DEFAULT_SYSTEM_PROMPT, model_name="gpt-test")
    assert "```html" in result
    assert "gpt-test" in result
    assert "{{" not in result
