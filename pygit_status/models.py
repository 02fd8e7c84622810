"""Domain models: enums, dataclasses, and configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum, auto
from pathlib import Path
from typing import Any


class RepoKind(Enum):
    """How a discovered repository relates to its surroundings"""
    STANDALONE = auto()
    LINKED_WORKTREE = auto()
    NESTED = auto()


class SessionState(Enum):
    """Lifecycle of a scan session"""
    RUNNING = auto()
    CANCELLED = auto()
    COMPLETED = auto()

    @property
    def is_terminal(self) -> bool:
        return self is not SessionState.RUNNING


class FailureCause(Enum):
    """Classified reason a repository could not be read"""
    NOT_A_REPOSITORY = auto()
    BROKEN_WORKTREE = auto()
    CORRUPT_OBJECTS = auto()
    UNREADABLE_REFS = auto()
    PERMISSION_DENIED = auto()
    UNKNOWN = auto()


class ChangeKind(Enum):
    """Display-level difference between two snapshots of one repository"""
    NEW = auto()
    BECAME_DIRTY = auto()
    BECAME_CLEAN = auto()
    HEAD_MOVED = auto()
    BRANCH_CHANGED = auto()
    AHEAD_CHANGED = auto()
    BEHIND_CHANGED = auto()
    STASH_CHANGED = auto()
    RECOVERED = auto()


class FileChangeStatus(Enum):
    """How a single path differs in the working tree"""
    STAGED = auto()
    MODIFIED = auto()
    UNTRACKED = auto()
    CONFLICTED = auto()


class RepoHealth(Enum):
    """Overall condition of a listed repository, worst first"""
    FAILED = auto()
    CONFLICTED = auto()
    DIRTY = auto()
    DIVERGED = auto()
    CLEAN = auto()


@dataclass(frozen=True)
class ScanRoot:
    """One traversal origin. max_depth=None means unbounded."""
    path: Path
    max_depth: int | None = 5
    exclude_patterns: tuple[str, ...] = ()
    follow_symlinks: bool = False
    nested_discovery: bool = False
    skip_hidden: bool = True

    def __post_init__(self):
        object.__setattr__(self, 'path', Path(self.path))
        object.__setattr__(self, 'exclude_patterns', tuple(self.exclude_patterns))
        if self.max_depth is not None and self.max_depth < 0:
            raise ValueError(f"max_depth must be non-negative or None, got {self.max_depth}")

    def allows_depth(self, depth: int) -> bool:
        """Return True if a directory at this depth may be visited."""
        return self.max_depth is None or depth <= self.max_depth


@dataclass(frozen=True)
class RepoError:
    """Immutable failure record carried by StatusFailed events"""
    cause: FailureCause
    message: str

    def __str__(self) -> str:
        return f"{self.cause.name.lower()}: {self.message}"

    def to_dict(self) -> dict[str, Any]:
        return {'cause': self.cause.name, 'message': self.message}


@dataclass(frozen=True)
class RepoHandle:
    """Identity of a discovered repository.

    The canonical path is the key: two handles with the same path compare
    equal regardless of how they were discovered.
    """
    path: Path
    depth: int = field(compare=False)
    root: ScanRoot = field(compare=False, repr=False)
    kind: RepoKind = field(compare=False, default=RepoKind.STANDALONE)
    git_dir: Path | None = field(compare=False, default=None)
    problem: RepoError | None = field(compare=False, default=None)

    @property
    def name(self) -> str:
        return self.path.name

    def to_dict(self) -> dict[str, Any]:
        return {
            'path': str(self.path),
            'name': self.name,
            'depth': self.depth,
            'kind': self.kind.name,
            'root': str(self.root.path),
        }


@dataclass(frozen=True)
class FileChange:
    """One changed path, relative to the working tree root"""
    path: str
    status: FileChangeStatus

    def to_dict(self) -> dict[str, str]:
        return {'path': self.path, 'status': self.status.name}


@dataclass(frozen=True)
class WorkingTreeCounts:
    """Counts of changed paths in a working tree, with the paths themselves"""
    staged: int = 0
    unstaged: int = 0
    untracked: int = 0
    conflicted: int = 0
    files: tuple[FileChange, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'files', tuple(self.files))

    @property
    def is_dirty(self) -> bool:
        return bool(self.staged or self.unstaged or self.untracked or self.conflicted)

    def to_dict(self) -> dict[str, int]:
        return {
            'staged': self.staged,
            'unstaged': self.unstaged,
            'untracked': self.untracked,
            'conflicted': self.conflicted,
        }


@dataclass(frozen=True)
class CommitSummary:
    """The most recent commit on HEAD"""
    commit: str
    timestamp: datetime
    summary: str
    author: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            'commit': self.commit,
            'timestamp': self.timestamp.isoformat(),
            'summary': self.summary,
            'author': self.author,
        }


@dataclass(frozen=True)
class RefSnapshot:
    """What a backend reports about HEAD and its upstream"""
    branch: str | None
    head_commit: str | None
    upstream: str | None = None
    ahead: int | None = None
    behind: int | None = None
    remote_url: str | None = None

    @property
    def detached(self) -> bool:
        return self.branch is None and self.head_commit is not None

    @property
    def unborn(self) -> bool:
        return self.head_commit is None


@dataclass(frozen=True)
class RepoStatus:
    """Immutable snapshot of one repository.

    For an unborn repository (no commits yet) every commit-derived field is
    None, never zero. Check ``unborn`` (or use ``divergence``) before reading
    ahead/behind.
    """
    branch: str
    head_commit: str | None = None
    detached: bool = False
    upstream: str | None = None
    ahead: int | None = None
    behind: int | None = None
    working_tree: WorkingTreeCounts | None = None
    stash_count: int | None = None
    last_commit: CommitSummary | None = None
    remote_url: str | None = None
    unborn: bool = False

    @classmethod
    def unborn_on(cls, branch: str, remote_url: str | None = None) -> RepoStatus:
        """Status for a repository whose HEAD does not resolve to a commit."""
        return cls(branch=branch, remote_url=remote_url, unborn=True)

    @property
    def divergence(self) -> tuple[int, int] | None:
        """(ahead, behind) when meaningful, else None."""
        if self.unborn or self.ahead is None or self.behind is None:
            return None
        return self.ahead, self.behind

    @property
    def is_dirty(self) -> bool:
        return self.working_tree is not None and self.working_tree.is_dirty

    @property
    def has_conflicts(self) -> bool:
        return self.working_tree is not None and self.working_tree.conflicted > 0

    @property
    def file_changes(self) -> tuple[FileChange, ...]:
        return self.working_tree.files if self.working_tree is not None else ()

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dict for JSON output."""
        return {
            'branch': self.branch,
            'detached': self.detached,
            'head_commit': self.head_commit,
            'upstream': self.upstream,
            'ahead': self.ahead,
            'behind': self.behind,
            'working_tree': self.working_tree.to_dict() if self.working_tree else None,
            'stash_count': self.stash_count,
            'last_commit': self.last_commit.to_dict() if self.last_commit else None,
            'remote_url': self.remote_url,
            'unborn': self.unborn,
            'dirty': self.is_dirty,
            'file_changes': [change.to_dict() for change in self.file_changes],
        }


@dataclass(frozen=True)
class ScanConfig:
    """Engine settings shared by every root of a session"""
    concurrency_limit: int = field(default_factory=lambda: min(os.cpu_count() or 4, 8))
    eviction_after_scans: int = 3
    queue_capacity: int | None = None

    def __post_init__(self):
        if self.concurrency_limit < 1:
            raise ValueError("concurrency_limit must be a positive integer")
        if self.eviction_after_scans < 1:
            raise ValueError("eviction_after_scans must be a positive integer")
        if self.queue_capacity is not None and self.queue_capacity < 1:
            raise ValueError("queue_capacity must be a positive integer")

    @property
    def effective_queue_capacity(self) -> int:
        return self.queue_capacity or self.concurrency_limit * 4

    def with_updates(self, **kwargs) -> ScanConfig:
        """Return a new ScanConfig with the given fields replaced."""
        current = {f.name: getattr(self, f.name) for f in fields(self)}
        current.update(kwargs)
        return ScanConfig(**current)
