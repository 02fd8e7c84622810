"""Protocols and abstract interfaces for dependency injection."""

from __future__ import annotations

from pathlib import Path
from typing import Protocol

from pygit_status.models import (
    CommitSummary,
    FileChange,
    RefSnapshot,
    RepoHandle,
    RepoHealth,
    WorkingTreeCounts,
)


class RepositoryReader(Protocol):
    """Read-only view of one opened repository.

    Implementations raise RepoOpenError for anything that prevents a read.
    """

    def read_refs(self) -> RefSnapshot: ...
    def read_status(self) -> WorkingTreeCounts: ...
    def read_stashes(self) -> int: ...
    def read_last_commit(self) -> CommitSummary: ...
    def close(self) -> None: ...

    @property
    def path(self) -> Path: ...


class GitBackend(Protocol):
    """Opens repositories for status reads (the pluggable git plumbing)"""

    def open(self, handle: RepoHandle) -> RepositoryReader: ...


class OutputHandler(Protocol):
    """Protocol for handling output"""

    def info(self, message: str, indent: int = 0) -> None: ...
    def warning(self, message: str, indent: int = 0) -> None: ...
    def error(self, message: str, indent: int = 0) -> None: ...
    def section(self, title: str) -> None: ...
    def debug(self, message: str) -> None: ...

    # Listing output
    def repo_line(self, message: str, health: RepoHealth, indent: int = 0) -> None: ...
    def heading(self, title: str) -> None: ...
    def field(self, label: str, value: str, indent: int = 1) -> None: ...
    def file_change(self, change: FileChange, indent: int = 2) -> None: ...
    def divider(self) -> None: ...
