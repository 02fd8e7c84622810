"""PathWalker: finds git repository candidates under a scan root."""

from __future__ import annotations

import fnmatch
import logging
import os
import threading
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from pygit_status.events import DiscoveryError
from pygit_status.models import ScanRoot

logger = logging.getLogger(__name__)

GIT_ENTRY = '.git'


@dataclass(frozen=True)
class Candidate:
    """A directory holding a .git entry, not yet classified"""
    path: Path
    canonical: Path
    depth: int
    git_entry: Path
    enclosing: Path | None = None


class PathWalker:
    """Iterative, cycle-safe traversal of one ScanRoot.

    A walker is single use: ``walk()`` may only be consumed once. Pass the
    same ``visited`` set to walkers of one session so that a directory reached
    from two roots (or through a symlink) is reported only once.
    """

    def __init__(
        self,
        root: ScanRoot,
        cancel: threading.Event | None = None,
        visited: set[str] | None = None,
    ):
        self.root = root
        self._cancel = cancel
        self._visited = visited if visited is not None else set()
        self._consumed = False

    def walk(self) -> Iterator[Candidate | DiscoveryError]:
        """Yield candidates and subtree-scoped discovery errors, depth first in name order."""
        if self._consumed:
            raise RuntimeError("PathWalker.walk() can only be consumed once; create a new walker")
        self._consumed = True

        stack: list[tuple[Path, int, Path | None]] = [(self.root.path, 0, None)]
        while stack:
            if self._cancel is not None and self._cancel.is_set():
                logger.debug("Walk of %s cancelled with %d directories pending", self.root.path, len(stack))
                return

            current, depth, enclosing = stack.pop()
            canonical = os.path.realpath(current)
            if canonical in self._visited:
                logger.debug("Skipping already visited %s", current)
                continue
            self._visited.add(canonical)

            try:
                with os.scandir(current) as it:
                    entries = list(it)
            except OSError as e:
                logger.warning("Cannot read directory %s: %s", current, e)
                yield DiscoveryError(current, e.strerror or str(e))
                continue

            git_entry = self._find_git_entry(entries)
            if git_entry is not None:
                yield Candidate(
                    path=current,
                    canonical=Path(canonical),
                    depth=depth,
                    git_entry=Path(git_entry.path),
                    enclosing=enclosing,
                )
                if not self.root.nested_discovery:
                    continue
                enclosing = Path(canonical)

            if not self.root.allows_depth(depth + 1):
                continue

            children = [
                Path(entry.path) for entry in entries
                if entry.name != GIT_ENTRY and self._should_descend(entry)
            ]
            for child in sorted(children, reverse=True):
                stack.append((child, depth + 1, enclosing))

    def _find_git_entry(self, entries: list[os.DirEntry]) -> os.DirEntry | None:
        for entry in entries:
            if entry.name != GIT_ENTRY:
                continue
            try:
                if entry.is_dir() or entry.is_file():
                    return entry
            except OSError:
                # An unreadable .git is still a repository; the detector flags it
                return entry
        return None

    def _should_descend(self, entry: os.DirEntry) -> bool:
        """Return True if entry is a directory the root's policy lets us enter."""
        if self.root.skip_hidden and entry.name.startswith('.'):
            return False
        try:
            if entry.is_symlink():
                if not self.root.follow_symlinks:
                    return False
                is_dir = entry.is_dir()
            else:
                is_dir = entry.is_dir(follow_symlinks=False)
        except OSError:
            return False
        if not is_dir:
            return False
        if self._is_excluded(Path(entry.path)):
            logger.debug("Excluded %s", entry.path)
            return False
        return True

    def _is_excluded(self, path: Path) -> bool:
        """Match exclude globs against the directory name or its root-relative path."""
        if not self.root.exclude_patterns:
            return False
        try:
            relative = path.relative_to(self.root.path).as_posix()
        except ValueError:
            relative = path.name
        return any(
            fnmatch.fnmatch(path.name, pattern) or fnmatch.fnmatch(relative, pattern)
            for pattern in self.root.exclude_patterns
        )
