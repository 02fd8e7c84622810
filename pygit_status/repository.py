"""Concrete GitPython-based repository backend."""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Iterator
from pathlib import Path

from git import Repo
from git.exc import (
    BadName,
    BadObject,
    GitCommandError,
    InvalidGitRepositoryError,
    NoSuchPathError,
)
from git.refs.symbolic import SymbolicReference

from pygit_status.errors import RepoOpenError
from pygit_status.models import (
    CommitSummary,
    FailureCause,
    FileChange,
    FileChangeStatus,
    RefSnapshot,
    RepoHandle,
    WorkingTreeCounts,
)

logger = logging.getLogger(__name__)

DEFAULT_REMOTE = 'origin'


@contextlib.contextmanager
def _translated(path: Path, action: str, cause: FailureCause) -> Iterator[None]:
    """Re-raise anything GitPython throws while reading as a classified RepoOpenError."""
    try:
        yield
    except RepoOpenError:
        raise
    except PermissionError as e:
        raise RepoOpenError(FailureCause.PERMISSION_DENIED, f"{action} failed in {path}: {e}") from e
    except GitCommandError as e:
        stderr = (e.stderr or '').strip()
        if 'Permission denied' in stderr:
            raise RepoOpenError(FailureCause.PERMISSION_DENIED, f"{action} failed in {path}: {stderr}") from e
        raise RepoOpenError(cause, f"{action} failed in {path}: {stderr or e}") from e
    except (BadName, BadObject) as e:
        raise RepoOpenError(FailureCause.CORRUPT_OBJECTS, f"{action} failed in {path}: {e}") from e
    except (ValueError, OSError) as e:
        raise RepoOpenError(cause, f"{action} failed in {path}: {e}") from e


class GitPythonRepository:
    """Read-only repository view backed by GitPython"""

    def __init__(self, repo_path: Path):
        """Open the repository at repo_path (a .git file indirection is followed by GitPython)."""
        self._path = repo_path
        try:
            self._repo = Repo(repo_path)
        except (InvalidGitRepositoryError, NoSuchPathError) as e:
            raise RepoOpenError(FailureCause.NOT_A_REPOSITORY, f"Not a valid git repository: {repo_path}") from e
        except PermissionError as e:
            raise RepoOpenError(FailureCause.PERMISSION_DENIED, f"Cannot open {repo_path}: {e}") from e
        except (ValueError, OSError) as e:
            raise RepoOpenError(FailureCause.BROKEN_WORKTREE, f"Cannot open {repo_path}: {e}") from e

    def close(self) -> None:
        """Release underlying git resources."""
        self._repo.close()

    @property
    def path(self) -> Path:
        """Absolute path to the repository root."""
        return self._path

    def read_refs(self) -> RefSnapshot:
        """Resolve HEAD, its upstream and the ahead/behind counts against it."""
        with _translated(self._path, "Reading refs", FailureCause.UNREADABLE_REFS):
            head = self._repo.head
            if head.is_detached:
                return RefSnapshot(
                    branch=None,
                    head_commit=self._head_commit(),
                    remote_url=self._remote_url(None),
                )

            branch = head.reference
            if not self._ref_resolves(branch.path):
                return RefSnapshot(branch=branch.name, head_commit=None, remote_url=self._remote_url(None))

            head_commit = self._head_commit()
            tracking = branch.tracking_branch()
            if tracking is None:
                return RefSnapshot(branch=branch.name, head_commit=head_commit, remote_url=self._remote_url(None))

            ahead = behind = None
            if tracking.is_valid():
                ahead, behind = self._ahead_behind(tracking.path)
            else:
                logger.debug("Upstream %s of %s has not been fetched", tracking.name, self._path)

            return RefSnapshot(
                branch=branch.name,
                head_commit=head_commit,
                upstream=tracking.name,
                ahead=ahead,
                behind=behind,
                remote_url=self._remote_url(tracking.remote_name),
            )

    def read_status(self) -> WorkingTreeCounts:
        """Count staged, unstaged, untracked and conflicted paths and list them."""
        with _translated(self._path, "Reading working tree", FailureCause.CORRUPT_OBJECTS):
            index = self._repo.index
            staged = sorted(diff.b_path or diff.a_path for diff in index.diff('HEAD'))
            unstaged = sorted(diff.a_path or diff.b_path for diff in index.diff(None))
            untracked = sorted(self._repo.untracked_files)
            conflicted = sorted(str(path) for path in index.unmerged_blobs())

            files = [FileChange(path, FileChangeStatus.STAGED) for path in staged]
            files += [FileChange(path, FileChangeStatus.MODIFIED) for path in unstaged]
            files += [FileChange(path, FileChangeStatus.UNTRACKED) for path in untracked]
            files += [FileChange(path, FileChangeStatus.CONFLICTED) for path in conflicted]
            return WorkingTreeCounts(
                staged=len(staged),
                unstaged=len(unstaged),
                untracked=len(untracked),
                conflicted=len(conflicted),
                files=tuple(files),
            )

    def read_stashes(self) -> int:
        """Number of stash entries."""
        with _translated(self._path, "Reading stashes", FailureCause.UNREADABLE_REFS):
            output = self._repo.git.stash('list')
            return len(output.splitlines()) if output else 0

    def read_last_commit(self) -> CommitSummary:
        with _translated(self._path, "Reading last commit", FailureCause.CORRUPT_OBJECTS):
            commit = self._repo.head.commit
            summary = commit.summary
            if isinstance(summary, bytes):
                summary = summary.decode('utf-8', errors='replace')
            return CommitSummary(
                commit=commit.hexsha,
                timestamp=commit.committed_datetime,
                summary=summary,
                author=commit.author.name,
            )

    def _head_commit(self) -> str:
        """Id of the commit HEAD points at; the commit object itself must be readable."""
        with _translated(self._path, "Reading HEAD commit", FailureCause.CORRUPT_OBJECTS):
            return self._repo.head.commit.hexsha

    def _ref_resolves(self, ref_path: str) -> bool:
        """Return True if the ref resolves; False for an unborn branch.

        GitPython raises ValueError both for a missing ref and for one it
        cannot parse. Only a missing ref means unborn; a ref that exists on
        disk but does not resolve is reported as unreadable.
        """
        try:
            SymbolicReference.dereference_recursive(self._repo, ref_path)
        except ValueError as e:
            if self._ref_exists(ref_path):
                raise RepoOpenError(
                    FailureCause.UNREADABLE_REFS, f"Cannot resolve {ref_path} in {self._path}: {e}"
                ) from e
            return False
        return True

    def _ref_exists(self, ref_path: str) -> bool:
        """Return True if ref_path is stored as a loose ref or listed in packed-refs."""
        common_dir = Path(self._repo.common_dir)
        if (common_dir / ref_path).is_file():
            return True
        packed = common_dir / 'packed-refs'
        if not packed.is_file():
            return False
        with packed.open(encoding='utf-8', errors='replace') as fp:
            for line in fp:
                if line.startswith(('#', '^')):
                    continue
                parts = line.split()
                if len(parts) == 2 and parts[1] == ref_path:
                    return True
        return False

    def _ahead_behind(self, upstream_ref: str) -> tuple[int, int]:
        """Commits only on HEAD and only on upstream (symmetric difference)."""
        output = self._repo.git.rev_list('--left-right', '--count', f'HEAD...{upstream_ref}')
        left, right = output.split()
        return int(left), int(right)

    def _remote_url(self, preferred: str | None) -> str | None:
        """URL of the preferred remote, else origin, else the first configured remote."""
        names = [remote.name for remote in self._repo.remotes]
        if not names:
            return None
        for name in (preferred, DEFAULT_REMOTE, names[0]):
            if name and name in names:
                with self._repo.config_reader() as reader:
                    url = reader.get_value(f'remote "{name}"', 'url', '')
                if url:
                    return str(url)
        return None


class GitPythonBackend:
    """GitBackend that opens each handle with GitPython"""

    def open(self, handle: RepoHandle) -> GitPythonRepository:
        return GitPythonRepository(handle.path)
