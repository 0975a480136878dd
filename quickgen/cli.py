from __future__ import annotations

from typing import TYPE_CHECKING

import click

if TYPE_CHECKING:
    from quickgen.runtime.settings import QuickGenSettings
    from quickgen.runtime.store.local import FileWorkspaceStore


@click.group()
def main() -> None:
    """quickgen - chat-driven HTML page generator."""


@main.command()
@click.option("--host", default=None, help="Bind host (default: from QUICKGEN_HOST or 127.0.0.1).")
@click.option("--port", default=None, type=int, help="Bind port (default: from QUICKGEN_PORT or 8000).")
@click.option("--reload", is_flag=True, default=False, help="Enable auto-reload for development.")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Start the HTTP API server."""
    import uvicorn

    from quickgen.runtime.settings import QuickGenSettings

    settings = QuickGenSettings()

    uvicorn.run(
        "quickgen.runtime.app:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level="warning",  # uvicorn's own logging is intercepted by loguru
        # Drain timeout plus a buffer for closing SSE streams and the transport.
        timeout_graceful_shutdown=settings.graceful_shutdown_timeout + 30,
    )


# ---------------------------------------------------------------------------
# Local store helpers
# ---------------------------------------------------------------------------


def _settings() -> QuickGenSettings:
    from quickgen.runtime.log import setup_logging
    from quickgen.runtime.settings import QuickGenSettings

    settings = QuickGenSettings()
    setup_logging(settings)
    return settings


def _store(settings: QuickGenSettings) -> FileWorkspaceStore:
    from quickgen.runtime.store.local import FileWorkspaceStore

    return FileWorkspaceStore(settings.data_root, prefix=settings.data_prefix)


def _check(ok: bool, message: str) -> None:
    if not ok:
        raise click.ClickException(message)


# ---------------------------------------------------------------------------
# Workspaces
# ---------------------------------------------------------------------------


@main.group()
def workspaces() -> None:
    """Workspace management commands."""


@workspaces.command("list")
def list_workspaces() -> None:
    """List workspaces, most recently modified first."""
    for ws in _store(_settings()).list_workspaces():
        star = "*" if ws.is_favorite else " "
        click.echo(f"{star} {ws.id}  {ws.last_modified_at:%Y-%m-%d %H:%M}  {ws.name}")


@workspaces.command("create")
@click.argument("name")
def create_workspace(name: str) -> None:
    """Create a workspace and print its ID."""
    from quickgen.runtime.store.base import PersistenceError

    try:
        workspace = _store(_settings()).create_workspace(name)
    except PersistenceError as exc:
        raise click.ClickException(str(exc)) from None
    click.echo(workspace.id)


@workspaces.command("rename")
@click.argument("workspace_id")
@click.argument("name")
def rename_workspace(workspace_id: str, name: str) -> None:
    """Rename a workspace."""
    _check(_store(_settings()).rename_workspace(workspace_id, name), f"Could not rename workspace '{workspace_id}'.")


@workspaces.command("delete")
@click.argument("workspace_id")
@click.confirmation_option(prompt="Delete the workspace with its history and pages?")
def delete_workspace(workspace_id: str) -> None:
    """Delete a workspace."""
    _check(_store(_settings()).delete_workspace(workspace_id), f"Could not delete workspace '{workspace_id}'.")


@workspaces.command("favorite")
@click.argument("workspace_id")
@click.option("--off", is_flag=True, default=False, help="Remove the favorite flag.")
def favorite_workspace(workspace_id: str, off: bool) -> None:
    """Mark (or unmark) a workspace as favorite."""
    _check(
        _store(_settings()).set_favorite(workspace_id, not off),
        f"Could not update workspace '{workspace_id}'.",
    )


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


@main.command()
@click.argument("workspace_id")
def history(workspace_id: str) -> None:
    """Print the chat history of a workspace."""
    for message in _store(_settings()).fetch_chat_history(workspace_id):
        label = f"{message.sender}{' (error)' if message.is_error else ''}"
        click.echo(f"[{message.timestamp:%Y-%m-%d %H:%M:%S}] {label}:")
        click.echo(message.content)
        click.echo()


@main.command()
@click.argument("workspace_id")
def clear(workspace_id: str) -> None:
    """Delete the chat history of a workspace."""
    _check(_store(_settings()).clear_chat_history(workspace_id), f"Could not clear workspace '{workspace_id}'.")


@main.command()
@click.argument("workspace_id")
@click.argument("prompt", required=False)
@click.option("--no-stream", is_flag=True, default=False, help="Wait for the whole reply instead of streaming.")
def generate(workspace_id: str, prompt: str | None, no_stream: bool) -> None:
    """Send PROMPT to a workspace and print the reply as it arrives.

    Without PROMPT the last user message is sent again.
    """
    import anyio

    settings = _settings()
    if not anyio.run(_run_turn, settings, workspace_id, prompt, not no_stream):
        raise SystemExit(1)


async def _run_turn(settings: QuickGenSettings, workspace_id: str, prompt: str | None, stream: bool) -> bool:
    from quickgen.runtime.generation.aggregator import RequestConfig
    from quickgen.runtime.generation.transport import HttpxTransport
    from quickgen.runtime.managers.sessions import SessionController
    from quickgen.runtime.managers.workspaces import WorkspaceNotFoundError
    from quickgen.runtime.models.enums import EventType
    from quickgen.runtime.registry import StreamRegistry

    transport = HttpxTransport(timeout=settings.request_timeout)
    controller = SessionController(
        _store(settings),
        StreamRegistry(),
        transport,
        settings.generation_settings,
        timeout=settings.request_timeout,
        system_prompt=settings.system_prompt,
    )
    config = RequestConfig(stream=stream)
    terminal = None
    try:
        if prompt is None:
            events = await controller.regenerate(workspace_id, config)
        else:
            events = await controller.send_message(workspace_id, prompt, config)
        printed = 0
        async for event in events:
            click.echo(event.content[printed:], nl=False)
            printed = len(event.content)
            if event.is_terminal:
                terminal = event
    except WorkspaceNotFoundError:
        raise click.ClickException(f"Workspace '{workspace_id}' not found.") from None
    except ValueError as exc:
        raise click.ClickException(str(exc) or "Nothing to generate.") from None
    finally:
        await transport.aclose()

    click.echo()
    if terminal is None or terminal.event_type is not EventType.COMPLETE:
        reason = terminal.error.message if terminal is not None and terminal.error else "cancelled"
        click.echo(f"Generation failed: {reason}", err=True)
        return False
    return True


@main.command()
@click.argument("workspace_id")
@click.argument("output", required=False, type=click.Path(dir_okay=False, writable=True))
def export(workspace_id: str, output: str | None) -> None:
    """Write the latest generated page of a workspace to OUTPUT (default: <workspace-id>.html)."""
    from pathlib import Path

    artifact = _store(_settings()).get_latest_artifact(workspace_id)
    if artifact is None:
        raise click.ClickException(f"Workspace '{workspace_id}' has no generated page.")
    path = Path(output or f"{workspace_id}.html")
    path.write_text(artifact.html_content, encoding="utf-8")
    click.echo(f"Wrote {path} ({len(artifact.html_content)} chars).")


if __name__ == "__main__":
    main()
