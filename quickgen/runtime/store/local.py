"""Local filesystem workspace store.

Stores one JSON record per entity under a unified data root with optional
namespace prefix::

    {data_root}/{prefix}/workspaces/{workspace_id}/metadata.json
    {data_root}/{prefix}/workspaces/{workspace_id}/chat/{message_id}.json
    {data_root}/{prefix}/workspaces/{workspace_id}/code/{artifact_id}.json
    {data_root}/{prefix}/workspaces/{workspace_id}/code/latest.txt

When prefix is None, the path collapses to ``{data_root}/workspaces/...``.

Writes are atomic: data is written to a temporary file in the same
directory, then renamed over the target.  Writes never create missing
directories -- a workspace's ``chat/`` and ``code/`` areas exist only once
``create_workspace`` has provisioned them, so a write into a deleted or
unknown workspace fails instead of resurrecting it.

Artifact saves write the artifact record first and only then repoint
``latest.txt``.  A crash between the two leaves the previous pointer in
place; a reader never sees a pointer to a partially-written artifact.
"""

from __future__ import annotations

import contextlib
import os
import shutil
import tempfile
from pathlib import Path
from typing import TypeVar

from loguru import logger
from pydantic import ValidationError

from quickgen.runtime.models.workspace import ChatMessage, GeneratedArtifact, Workspace
from quickgen.runtime.store.base import PersistenceError, sort_messages, sort_workspaces

METADATA_FILE = "metadata.json"
CHAT_DIR = "chat"
CODE_DIR = "code"
LATEST_POINTER = "latest.txt"

RecordT = TypeVar("RecordT", Workspace, ChatMessage, GeneratedArtifact)


class FileWorkspaceStore:
    """Local filesystem implementation of the WorkspaceStore protocol.

    Layout::

        {base}/workspaces/{workspace_id}/...

    Where ``base`` is ``data_root / prefix`` (or just ``data_root`` if no prefix).
    """

    def __init__(self, data_root: str | Path, prefix: str | None = None) -> None:
        base = Path(data_root)
        if prefix:
            base = base / prefix
        self._base = base / "workspaces"
        try:
            self._base.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.warning("Could not create workspace root {}: {}", self._base, exc)

    @property
    def root(self) -> Path:
        return self._base

    # -- Paths -----------------------------------------------------------------

    def _workspace_dir(self, workspace_id: str) -> Path | None:
        if not _is_safe_id(workspace_id):
            logger.warning("Rejected workspace id {!r}", workspace_id)
            return None
        return self._base / workspace_id

    def _metadata_path(self, workspace_id: str) -> Path | None:
        ws_dir = self._workspace_dir(workspace_id)
        return ws_dir / METADATA_FILE if ws_dir else None

    def _chat_dir(self, workspace_id: str) -> Path | None:
        ws_dir = self._workspace_dir(workspace_id)
        return ws_dir / CHAT_DIR if ws_dir else None

    def _code_dir(self, workspace_id: str) -> Path | None:
        ws_dir = self._workspace_dir(workspace_id)
        return ws_dir / CODE_DIR if ws_dir else None

    # -- Workspaces ------------------------------------------------------------

    def list_workspaces(self) -> list[Workspace]:
        try:
            candidates = [p for p in self._base.iterdir() if p.is_dir()]
        except OSError as exc:
            logger.warning("Failed to list workspaces in {}: {}", self._base, exc)
            return []

        workspaces = []
        for ws_dir in candidates:
            workspace = _load_record(ws_dir / METADATA_FILE, Workspace)
            if workspace is not None:
                workspaces.append(workspace)
        return sort_workspaces(workspaces)

    def get_workspace(self, workspace_id: str) -> Workspace | None:
        path = self._metadata_path(workspace_id)
        if path is None or not path.exists():
            return None
        return _load_record(path, Workspace)

    def create_workspace(self, name: str) -> Workspace:
        workspace = Workspace(name=name)
        ws_dir = self._base / workspace.id

        # Structure first (root, chat, code), then the metadata record.
        current: Path = ws_dir
        try:
            ws_dir.mkdir()
            current = ws_dir / CHAT_DIR
            current.mkdir()
            current = ws_dir / CODE_DIR
            current.mkdir()
            current = ws_dir / METADATA_FILE
            _atomic_write(current, workspace.model_dump_json(indent=2))
        except OSError as exc:
            logger.warning("Failed to create workspace {} at {}: {}", workspace.id, current, exc)
            _rmtree(ws_dir)
            raise PersistenceError(current, exc) from exc

        logger.info("Workspace created: {} ({!r})", workspace.id, name)
        return workspace

    def save_workspace(self, workspace: Workspace) -> bool:
        path = self._metadata_path(workspace.id)
        if path is None:
            return False
        return _try_write(path, workspace.model_dump_json(indent=2))

    def delete_workspace(self, workspace_id: str) -> bool:
        ws_dir = self._workspace_dir(workspace_id)
        if ws_dir is None:
            return False
        try:
            shutil.rmtree(ws_dir)
        except OSError as exc:
            logger.warning("Failed to delete workspace {}: {}", workspace_id, exc)
            return False
        logger.info("Workspace deleted: {}", workspace_id)
        return True

    def rename_workspace(self, workspace_id: str, new_name: str) -> bool:
        workspace = self.get_workspace(workspace_id)
        if workspace is None:
            return False
        return self.save_workspace(workspace.renamed(new_name))

    def set_favorite(self, workspace_id: str, favorite: bool) -> bool:
        workspace = self.get_workspace(workspace_id)
        if workspace is None:
            return False
        return self.save_workspace(workspace.model_copy(update={"is_favorite": favorite}))

    # -- Chat ------------------------------------------------------------------

    def fetch_chat_history(self, workspace_id: str) -> list[ChatMessage]:
        chat_dir = self._chat_dir(workspace_id)
        if chat_dir is None or not chat_dir.is_dir():
            return []
        try:
            paths = list(chat_dir.glob("*.json"))
        except OSError as exc:
            logger.warning("Failed to list chat history for {}: {}", workspace_id, exc)
            return []

        messages = [m for m in (_load_record(p, ChatMessage) for p in paths) if m is not None]
        return sort_messages(messages)

    def save_chat_message(self, message: ChatMessage) -> bool:
        chat_dir = self._chat_dir(message.workspace_id)
        if chat_dir is None or not _is_safe_id(message.id):
            return False
        return _try_write(chat_dir / f"{message.id}.json", message.model_dump_json(indent=2))

    def clear_chat_history(self, workspace_id: str) -> bool:
        chat_dir = self._chat_dir(workspace_id)
        if chat_dir is None:
            return False
        try:
            for path in chat_dir.iterdir():
                path.unlink()
        except OSError as exc:
            logger.warning("Failed to clear chat history for {}: {}", workspace_id, exc)
            return False
        return True

    # -- Artifacts -------------------------------------------------------------

    def get_latest_artifact(self, workspace_id: str) -> GeneratedArtifact | None:
        code_dir = self._code_dir(workspace_id)
        if code_dir is None:
            return None
        pointer = code_dir / LATEST_POINTER
        if not pointer.exists():
            return None
        try:
            artifact_id = pointer.read_text(encoding="utf-8").strip()
        except OSError as exc:
            logger.warning("Failed to read latest pointer {}: {}", pointer, exc)
            return None
        if not _is_safe_id(artifact_id):
            logger.warning("Latest pointer {} holds an invalid id {!r}", pointer, artifact_id)
            return None
        # A dangling pointer degrades to "no artifact".
        return _load_record(code_dir / f"{artifact_id}.json", GeneratedArtifact)

    def save_generated_artifact(self, artifact: GeneratedArtifact, workspace_id: str) -> bool:
        code_dir = self._code_dir(workspace_id)
        if code_dir is None or not _is_safe_id(artifact.id):
            return False
        if not _try_write(code_dir / f"{artifact.id}.json", artifact.model_dump_json(indent=2)):
            return False
        return _try_write(code_dir / LATEST_POINTER, artifact.id)


# -- Sync helpers --------------------------------------------------------------


def _is_safe_id(value: str) -> bool:
    """Ids become path components; refuse anything that could escape the root."""
    return bool(value) and value not in (".", "..") and not any(c in value for c in ("/", "\\", "\0"))


def _atomic_write(path: Path, data: str) -> None:
    """Write data atomically: temp file + rename.

    Ensures readers never see a partially-written file.  The temp file is
    created in the same directory so ``os.replace`` is atomic on POSIX.
    The directory must already exist.
    """
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        # Clean up temp file on any failure.
        with contextlib.suppress(OSError):
            os.unlink(tmp_path)
        raise


def _try_write(path: Path, data: str) -> bool:
    try:
        _atomic_write(path, data)
    except OSError as exc:
        logger.warning("Failed to write {}: {}", path, exc)
        return False
    return True


def _load_record(path: Path, model: type[RecordT]) -> RecordT | None:
    """Parse one record; ``None`` if it is missing or malformed."""
    try:
        return model.model_validate_json(path.read_bytes())
    except (OSError, ValidationError) as exc:
        logger.warning("Skipping unreadable {} record {}: {}", model.__name__, path, exc)
        return None


def _rmtree(path: Path) -> None:
    """Remove directory tree.  No-op if path doesn't exist."""
    if path.exists():
        with contextlib.suppress(OSError):
            shutil.rmtree(path)
