"""Events emitted by a scan session, in the order consumers receive them."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Union

from pygit_status.models import ChangeKind, RepoError, RepoHandle, RepoStatus


@dataclass(frozen=True)
class Discovered:
    """A repository was found; its status event follows later."""
    handle: RepoHandle

    def to_dict(self) -> dict[str, Any]:
        return {'event': 'discovered', 'repo': self.handle.to_dict()}


@dataclass(frozen=True)
class StatusReady:
    """Status computed for a handle. ``changes`` is filled in by the session merge."""
    handle: RepoHandle
    status: RepoStatus
    changes: frozenset[ChangeKind] = field(default_factory=frozenset)

    def to_dict(self) -> dict[str, Any]:
        return {
            'event': 'status',
            'repo': self.handle.to_dict(),
            'status': self.status.to_dict(),
            'changes': sorted(c.name for c in self.changes),
        }


@dataclass(frozen=True)
class StatusFailed:
    """Status could not be computed for a handle."""
    handle: RepoHandle
    error: RepoError

    def to_dict(self) -> dict[str, Any]:
        return {'event': 'failed', 'repo': self.handle.to_dict(), 'error': self.error.to_dict()}


@dataclass(frozen=True)
class DiscoveryError:
    """A directory could not be enumerated; only its subtree is skipped."""
    path: Path
    error: str

    def to_dict(self) -> dict[str, Any]:
        return {'event': 'discovery_error', 'path': str(self.path), 'error': self.error}


@dataclass(frozen=True)
class ScanCompleted:
    def to_dict(self) -> dict[str, Any]:
        return {'event': 'completed'}


@dataclass(frozen=True)
class ScanCancelled:
    def to_dict(self) -> dict[str, Any]:
        return {'event': 'cancelled'}


StatusEvent = Union[StatusReady, StatusFailed]
ScanEvent = Union[Discovered, StatusReady, StatusFailed, DiscoveryError, ScanCompleted, ScanCancelled]
TERMINAL_EVENTS = (ScanCompleted, ScanCancelled)
