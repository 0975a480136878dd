"""System prompt rendering with Jinja2 template support.

The configured system prompt may contain Jinja2 template syntax.  This
module renders it with a few context variables.

Template variables available:

- ``model_name``: str -- model identifier
- ``date``      : str -- current date (YYYY-MM-DD)

Example template::

    You build HTML pages. Model: {{ model_name }}.
"""

from __future__ import annotations

from datetime import UTC, datetime

import jinja2


def render_system_prompt(
    template: str,
    *,
    model_name: str,
    extra_vars: dict[str, object] | None = None,
) -> str:
    """Render the system prompt template.

    If the template contains no Jinja2 syntax, it is returned unchanged.
    ``extra_vars`` override the defaults on conflict.
    """
    template_vars: dict[str, object] = {
        "model_name": model_name,
        "date": datetime.now(tz=UTC).strftime("%Y-%m-%d"),
    }

    if extra_vars:
        template_vars.update(extra_vars)

    # Fast path: skip Jinja2 if no template syntax detected
    if "{{" not in template and "{%" not in template:
        return template

    env = jinja2.Environment(autoescape=False)  # noqa: S701
    return env.from_string(template).render(**template_vars)
