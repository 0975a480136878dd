"""Unit tests for FileWorkspaceStore.

No network or Docker required -- uses a temporary directory.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime, timedelta

import pytest

from quickgen.runtime.models.enums import ErrorKind, MessageSender
from quickgen.runtime.models.workspace import ChatMessage, GeneratedArtifact
from quickgen.runtime.store.base import PersistenceError, WorkspaceStore
from quickgen.runtime.store.local import FileWorkspaceStore


@pytest.fixture
def prefixed_store(tmp_path) -> FileWorkspaceStore:
    return FileWorkspaceStore(tmp_path, prefix="alice")


def _message(workspace_id: str, content: str, ts: datetime, sender: MessageSender = MessageSender.USER) -> ChatMessage:
    return ChatMessage(workspace_id=workspace_id, sender=sender, content=content, timestamp=ts)


# -- Workspaces ----------------------------------------------------------------


def test_store_satisfies_protocol(store: FileWorkspaceStore) -> None:
    assert isinstance(store, WorkspaceStore)


def test_create_workspace_provisions_layout(store: FileWorkspaceStore) -> None:
    ws = store.create_workspace("Landing page")

    ws_dir = store.root / ws.id
    assert (ws_dir / "metadata.json").is_file()
    assert (ws_dir / "chat").is_dir()
    assert (ws_dir / "code").is_dir()
    assert store.get_workspace(ws.id) == ws


def test_prefix_in_path(prefixed_store: FileWorkspaceStore, tmp_path) -> None:
    ws = prefixed_store.create_workspace("Prefixed")
    assert (tmp_path / "alice" / "workspaces" / ws.id / "metadata.json").is_file()


def test_create_workspace_failure_raises(tmp_path) -> None:
    store = FileWorkspaceStore(tmp_path)
    (tmp_path / "workspaces").rmdir()
    (tmp_path / "workspaces").write_text("not a directory")

    with pytest.raises(PersistenceError) as exc_info:
        store.create_workspace("Broken")
    assert exc_info.value.cause is not None
    assert exc_info.value.kind is ErrorKind.PERSISTENCE_FAILURE
    assert store.list_workspaces() == []


def test_list_workspaces_newest_modified_first(store: FileWorkspaceStore) -> None:
    older = store.create_workspace("older")
    newer = store.create_workspace("newer")
    base = datetime(2024, 1, 1, tzinfo=UTC)
    store.save_workspace(older.model_copy(update={"last_modified_at": base}))
    store.save_workspace(newer.model_copy(update={"last_modified_at": base + timedelta(hours=1)}))

    assert [w.name for w in store.list_workspaces()] == ["newer", "older"]

    assert store.rename_workspace(older.id, "renamed")
    assert [w.name for w in store.list_workspaces()] == ["renamed", "newer"]


def test_list_skips_corrupt_metadata(store: FileWorkspaceStore) -> None:
    good = store.create_workspace("good")
    bad = store.create_workspace("bad")
    (store.root / bad.id / "metadata.json").write_text("{not json")

    assert [w.id for w in store.list_workspaces()] == [good.id]


def test_list_reads_timestamps_without_offset_as_utc(store: FileWorkspaceStore) -> None:
    aware = store.create_workspace("aware")
    naive = store.create_workspace("naive")
    path = store.root / naive.id / "metadata.json"
    record = json.loads(path.read_text())
    record["created_at"] = "2020-01-01T00:00:00"
    record["last_modified_at"] = "2020-01-01T00:00:00"
    path.write_text(json.dumps(record))

    listed = store.list_workspaces()

    assert [w.name for w in listed] == ["aware", "naive"]
    assert listed[1].last_modified_at == datetime(2020, 1, 1, tzinfo=UTC)
    assert store.get_workspace(aware.id) is not None


def test_save_workspace_round_trip(store: FileWorkspaceStore) -> None:
    ws = store.create_workspace("Site")
    updated = ws.model_copy(update={"is_favorite": True, "generated_html": "<p>x</p>"})

    assert store.save_workspace(updated) is True
    assert store.save_workspace(updated) is True  # idempotent
    assert store.get_workspace(ws.id) == updated


def test_rename_and_favorite(store: FileWorkspaceStore) -> None:
    ws = store.create_workspace("Draft")

    assert store.rename_workspace(ws.id, "Final") is True
    assert store.set_favorite(ws.id, True) is True

    loaded = store.get_workspace(ws.id)
    assert loaded.name == "Final"
    assert loaded.is_favorite is True
    assert loaded.last_modified_at >= ws.last_modified_at
    assert loaded.created_at == ws.created_at

    assert store.rename_workspace("missing", "x") is False


def test_delete_workspace(store: FileWorkspaceStore) -> None:
    ws = store.create_workspace("Doomed")
    store.save_chat_message(ChatMessage(workspace_id=ws.id, sender=MessageSender.USER, content="hi"))
    store.save_generated_artifact(GeneratedArtifact(workspace_id=ws.id, html_content="<p>bye</p>"), ws.id)

    assert store.delete_workspace(ws.id) is True
    assert not (store.root / ws.id).exists()
    assert store.get_workspace(ws.id) is None
    assert store.fetch_chat_history(ws.id) == []
    assert store.get_latest_artifact(ws.id) is None

    assert store.delete_workspace(ws.id) is False


def test_writes_never_resurrect_deleted_workspace(store: FileWorkspaceStore) -> None:
    ws = store.create_workspace("Gone")
    store.delete_workspace(ws.id)

    assert store.save_chat_message(ChatMessage(workspace_id=ws.id, sender=MessageSender.USER, content="x")) is False
    assert store.save_generated_artifact(GeneratedArtifact(workspace_id=ws.id, html_content="x"), ws.id) is False
    assert store.save_workspace(ws) is False
    assert not (store.root / ws.id).exists()


@pytest.mark.parametrize("bad_id", ["..", ".", "a/b", "", "..\\evil"])
def test_unsafe_ids_are_rejected(store: FileWorkspaceStore, bad_id: str) -> None:
    assert store.get_workspace(bad_id) is None
    assert store.delete_workspace(bad_id) is False
    assert store.fetch_chat_history(bad_id) == []
    assert store.get_latest_artifact(bad_id) is None
    assert store.root.is_dir()


# -- Chat ----------------------------------------------------------------------


def test_chat_history_is_sorted_by_timestamp(store: FileWorkspaceStore) -> None:
    ws = store.create_workspace("Chat")
    base = datetime(2024, 5, 1, tzinfo=UTC)
    m1 = _message(ws.id, "first", base)
    m2 = _message(ws.id, "second", base + timedelta(seconds=1), MessageSender.ASSISTANT)
    m3 = _message(ws.id, "third", base + timedelta(seconds=2))
    for message in (m3, m1, m2):
        assert store.save_chat_message(message) is True

    assert [m.content for m in store.fetch_chat_history(ws.id)] == ["first", "second", "third"]


def test_chat_message_overwrite_by_id(store: FileWorkspaceStore) -> None:
    ws = store.create_workspace("Chat")
    message = ChatMessage(workspace_id=ws.id, sender=MessageSender.ASSISTANT, content="partial")
    store.save_chat_message(message)
    store.save_chat_message(message.model_copy(update={"content": "partial and final"}))

    history = store.fetch_chat_history(ws.id)
    assert len(history) == 1
    assert history[0].content == "partial and final"


def test_chat_history_skips_corrupt_records(store: FileWorkspaceStore) -> None:
    ws = store.create_workspace("Chat")
    store.save_chat_message(ChatMessage(workspace_id=ws.id, sender=MessageSender.USER, content="ok"))
    (store.root / ws.id / "chat" / "garbage.json").write_text('{"content": 1}')

    assert [m.content for m in store.fetch_chat_history(ws.id)] == ["ok"]


def test_chat_history_reads_timestamps_without_offset_as_utc(store: FileWorkspaceStore) -> None:
    ws = store.create_workspace("Chat")
    base = datetime(2024, 5, 1, tzinfo=UTC)
    store.save_chat_message(_message(ws.id, "aware", base + timedelta(hours=1)))
    naive = _message(ws.id, "naive", base)
    store.save_chat_message(naive)
    path = store.root / ws.id / "chat" / f"{naive.id}.json"
    record = json.loads(path.read_text())
    record["timestamp"] = "2024-05-01T00:00:00"
    path.write_text(json.dumps(record))

    history = store.fetch_chat_history(ws.id)

    assert [m.content for m in history] == ["naive", "aware"]
    assert history[0].timestamp.tzinfo is not None


def test_clear_chat_history(store: FileWorkspaceStore) -> None:
    ws = store.create_workspace("Chat")
    for text in ("a", "b"):
        store.save_chat_message(ChatMessage(workspace_id=ws.id, sender=MessageSender.USER, content=text))

    assert store.clear_chat_history(ws.id) is True
    assert store.fetch_chat_history(ws.id) == []
    assert store.clear_chat_history("missing") is False


# -- Artifacts -----------------------------------------------------------------


def test_latest_artifact_absent(store: FileWorkspaceStore) -> None:
    ws = store.create_workspace("Empty")
    assert store.get_latest_artifact(ws.id) is None


def test_latest_artifact_tracks_last_save(store: FileWorkspaceStore) -> None:
    ws = store.create_workspace("Pages")
    first = GeneratedArtifact(workspace_id=ws.id, html_content="<p>1</p>")
    second = GeneratedArtifact(workspace_id=ws.id, html_content="<p>2</p>")

    assert store.save_generated_artifact(first, ws.id) is True
    assert store.get_latest_artifact(ws.id) == first
    assert store.save_generated_artifact(second, ws.id) is True
    assert store.get_latest_artifact(ws.id) == second

    code_dir = store.root / ws.id / "code"
    assert (code_dir / "latest.txt").read_text() == second.id
    assert (code_dir / f"{first.id}.json").is_file()


def test_dangling_pointer_reads_as_no_artifact(store: FileWorkspaceStore) -> None:
    ws = store.create_workspace("Pages")
    artifact = GeneratedArtifact(workspace_id=ws.id, html_content="<p>x</p>")
    store.save_generated_artifact(artifact, ws.id)
    (store.root / ws.id / "code" / f"{artifact.id}.json").unlink()

    assert store.get_latest_artifact(ws.id) is None


def test_corrupt_artifact_reads_as_no_artifact(store: FileWorkspaceStore) -> None:
    ws = store.create_workspace("Pages")
    artifact = GeneratedArtifact(workspace_id=ws.id, html_content="<p>x</p>")
    store.save_generated_artifact(artifact, ws.id)
    (store.root / ws.id / "code" / f"{artifact.id}.json").write_text("{")

    assert store.get_latest_artifact(ws.id) is None


def test_no_temp_files_left_behind(store: FileWorkspaceStore) -> None:
    ws = store.create_workspace("Tidy")
    store.save_chat_message(ChatMessage(workspace_id=ws.id, sender=MessageSender.USER, content="hi"))
    store.save_generated_artifact(GeneratedArtifact(workspace_id=ws.id, html_content="<p/>"), ws.id)

    assert not list((store.root / ws.id).rglob("*.tmp"))
