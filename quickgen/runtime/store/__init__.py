"""Workspace store implementations."""

from quickgen.runtime.store.base import PersistenceError, WorkspaceStore
from quickgen.runtime.store.local import FileWorkspaceStore
from quickgen.runtime.store.memory import InMemoryWorkspaceStore

__all__ = ["FileWorkspaceStore", "InMemoryWorkspaceStore", "PersistenceError", "WorkspaceStore"]
