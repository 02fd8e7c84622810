"""RepoDetector: classifies candidates and locates their git metadata."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from pygit_status.models import FailureCause, RepoError, RepoHandle, RepoKind, ScanRoot
from pygit_status.walker import Candidate

logger = logging.getLogger(__name__)

GITDIR_PREFIX = 'gitdir:'


class RepoDetector:
    """Turns walker candidates into RepoHandles.

    Never raises for a broken or unreadable ``.git``; the problem is recorded
    on the handle and reported later as a failed status.
    """

    def __init__(self, root: ScanRoot):
        self.root = root

    def classify(self, candidate: Candidate) -> RepoHandle:
        git_entry = candidate.git_entry
        git_dir: Path | None = None
        problem: RepoError | None = None

        if git_entry.is_dir():
            kind = RepoKind.STANDALONE
            if os.access(git_entry, os.R_OK | os.X_OK):
                git_dir = Path(os.path.realpath(git_entry))
            else:
                problem = RepoError(FailureCause.PERMISSION_DENIED, f"Cannot read {git_entry}")
        else:
            kind = RepoKind.LINKED_WORKTREE
            git_dir, problem = self._resolve_gitdir_file(git_entry)

        if candidate.enclosing is not None:
            # Submodule checkouts land here too; they are not told apart from independent repos
            kind = RepoKind.NESTED

        if problem is not None:
            logger.warning("Repository %s flagged: %s", candidate.canonical, problem)
        else:
            logger.debug("Classified %s as %s", candidate.canonical, kind.name)

        return RepoHandle(
            path=candidate.canonical,
            depth=candidate.depth,
            root=self.root,
            kind=kind,
            git_dir=git_dir,
            problem=problem,
        )

    def _resolve_gitdir_file(self, git_file: Path) -> tuple[Path | None, RepoError | None]:
        """Follow a ``gitdir: <path>`` pointer file to the metadata directory."""
        try:
            content = git_file.read_text(encoding='utf-8', errors='replace').strip()
        except PermissionError:
            return None, RepoError(FailureCause.PERMISSION_DENIED, f"Cannot read {git_file}")
        except OSError as e:
            return None, RepoError(FailureCause.BROKEN_WORKTREE, f"Cannot read {git_file}: {e}")

        first_line = content.splitlines()[0] if content else ''
        if not first_line.startswith(GITDIR_PREFIX):
            return None, RepoError(
                FailureCause.BROKEN_WORKTREE,
                f"{git_file} does not contain a gitdir pointer",
            )

        pointer = Path(first_line[len(GITDIR_PREFIX):].strip())
        if not pointer.is_absolute():
            pointer = git_file.parent / pointer
        target = Path(os.path.realpath(pointer))
        if not target.is_dir():
            return None, RepoError(
                FailureCause.BROKEN_WORKTREE,
                f"gitdir pointer in {git_file} refers to missing {target}",
            )
        return target, None
