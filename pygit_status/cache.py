"""ResultCache: last known status per repository, kept across scan sessions."""

from __future__ import annotations

import dataclasses
import logging
import threading
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from pygit_status.events import StatusEvent, StatusFailed, StatusReady
from pygit_status.models import ChangeKind, RepoError, RepoHandle, RepoStatus

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """Latest outcome for one path. Exactly one of status/error is set."""
    handle: RepoHandle
    status: RepoStatus | None = None
    error: RepoError | None = None
    missed_scans: int = 0


class ResultCache:
    """Canonical path -> last outcome.

    Written only by a session's merge step. Entries survive new sessions until
    a fresher outcome replaces them or the path goes unseen for
    ``eviction_after_scans`` consecutive completed scans.
    """

    def __init__(self, eviction_after_scans: int = 3):
        if eviction_after_scans < 1:
            raise ValueError("eviction_after_scans must be a positive integer")
        self.eviction_after_scans = eviction_after_scans
        self._entries: dict[Path, CacheEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, path: object) -> bool:
        with self._lock:
            return path in self._entries

    def get(self, path: Path) -> CacheEntry | None:
        with self._lock:
            entry = self._entries.get(path)
            return dataclasses.replace(entry) if entry is not None else None

    def previous(self, path: Path) -> RepoStatus | None:
        """Last successfully computed status for path, if any."""
        with self._lock:
            entry = self._entries.get(path)
        return entry.status if entry is not None else None

    def store(self, event: StatusEvent) -> None:
        """Replace the entry for the event's handle wholesale."""
        if isinstance(event, StatusReady):
            entry = CacheEntry(event.handle, status=event.status)
        elif isinstance(event, StatusFailed):
            entry = CacheEntry(event.handle, error=event.error)
        else:
            raise TypeError(f"Cannot cache {type(event).__name__}")
        with self._lock:
            self._entries[event.handle.path] = entry

    def changes(self, path: Path, status: RepoStatus) -> frozenset[ChangeKind]:
        """Compare a new status against the cached one, field by field."""
        with self._lock:
            entry = self._entries.get(path)
        if entry is None:
            return frozenset({ChangeKind.NEW})
        if entry.status is None:
            return frozenset({ChangeKind.RECOVERED})

        old = entry.status
        found: set[ChangeKind] = set()
        if status.is_dirty and not old.is_dirty:
            found.add(ChangeKind.BECAME_DIRTY)
        elif old.is_dirty and not status.is_dirty:
            found.add(ChangeKind.BECAME_CLEAN)
        if status.branch != old.branch:
            found.add(ChangeKind.BRANCH_CHANGED)
        elif status.head_commit is not None and status.head_commit != old.head_commit:
            found.add(ChangeKind.HEAD_MOVED)
        if status.ahead != old.ahead:
            found.add(ChangeKind.AHEAD_CHANGED)
        if status.behind != old.behind:
            found.add(ChangeKind.BEHIND_CHANGED)
        if status.stash_count != old.stash_count:
            found.add(ChangeKind.STASH_CHANGED)
        return frozenset(found)

    def complete_scan(self, discovered: Iterable[Path]) -> list[Path]:
        """Account for a completed full scan. Returns the evicted paths."""
        seen = set(discovered)
        evicted = []
        with self._lock:
            for path, entry in list(self._entries.items()):
                if path in seen:
                    entry.missed_scans = 0
                    continue
                entry.missed_scans += 1
                if entry.missed_scans >= self.eviction_after_scans:
                    del self._entries[path]
                    evicted.append(path)
        if evicted:
            logger.debug("Evicted %d cache entries not seen for %d scans", len(evicted), self.eviction_after_scans)
        return evicted

    def evict(self, path: Path) -> bool:
        with self._lock:
            return self._entries.pop(path, None) is not None

    def snapshot(self) -> dict[Path, CacheEntry]:
        """Copy of every entry, safe to read while scans continue."""
        with self._lock:
            return {path: dataclasses.replace(entry) for path, entry in self._entries.items()}
