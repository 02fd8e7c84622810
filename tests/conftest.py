"""Shared fixtures: real git repositories and an in-memory backend."""

from __future__ import annotations

import subprocess
import threading
import time
from datetime import datetime, timezone
from pathlib import Path

import pytest

from pygit_status import (
    CommitSummary,
    RefSnapshot,
    RepoHandle,
    WorkingTreeCounts,
)

# ---------------------------------------------------------------------------
# Real git helpers
# ---------------------------------------------------------------------------

def git(cwd: Path, *args: str) -> str:
    """Run a git command and return stdout."""
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


def init_repo(path: Path) -> Path:
    """Create an empty repository on branch main with a test identity."""
    path.mkdir(parents=True, exist_ok=True)
    git(path, "init", "-b", "main")
    git(path, "config", "user.email", "test@test.com")
    git(path, "config", "user.name", "Test")
    git(path, "config", "commit.gpgsign", "false")
    return path


def commit_file(repo: Path, filename: str, content: str, message: str) -> str:
    """Create/overwrite a file and commit it. Returns the commit hash."""
    filepath = repo / filename
    filepath.parent.mkdir(parents=True, exist_ok=True)
    filepath.write_text(content)
    git(repo, "add", filename)
    git(repo, "commit", "-m", message)
    return git(repo, "rev-parse", "HEAD")


def make_repo(path: Path) -> Path:
    """Repository with a single commit."""
    init_repo(path)
    commit_file(path, "README.md", "hello", "Initial commit")
    return path


def corrupt_objects(repo: Path) -> None:
    """Delete every object file while leaving the object directory layout intact."""
    for item in (repo / ".git" / "objects").rglob("*"):
        if item.is_file():
            item.chmod(0o644)
            item.unlink()


def wait_until(predicate, timeout: float = 5.0) -> None:
    """Poll until predicate() is true, failing the test after timeout seconds."""
    deadline = time.monotonic() + timeout
    while not predicate():
        assert time.monotonic() < deadline, "condition not reached in time"
        time.sleep(0.01)


# ---------------------------------------------------------------------------
# In-memory backend
# ---------------------------------------------------------------------------

CLEAN_REFS = RefSnapshot(
    branch="main",
    head_commit="a" * 40,
    upstream="origin/main",
    ahead=0,
    behind=0,
    remote_url="https://example.com/repo.git",
)
LAST_COMMIT = CommitSummary(
    commit="a" * 40,
    timestamp=datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc),
    summary="Initial commit",
    author="Test",
)


class FakeRepository:
    """RepositoryReader returning canned data"""

    def __init__(self, path: Path, canned: dict):
        self._path = path
        self._canned = canned
        self.calls: list[str] = []

    @property
    def path(self) -> Path:
        return self._path

    def read_refs(self) -> RefSnapshot:
        self.calls.append("read_refs")
        return self._canned.get("refs", CLEAN_REFS)

    def read_status(self) -> WorkingTreeCounts:
        self.calls.append("read_status")
        if "status_error" in self._canned:
            raise self._canned["status_error"]
        return self._canned.get("working_tree", WorkingTreeCounts())

    def read_stashes(self) -> int:
        self.calls.append("read_stashes")
        return self._canned.get("stashes", 0)

    def read_last_commit(self) -> CommitSummary:
        self.calls.append("read_last_commit")
        return self._canned.get("last_commit", LAST_COMMIT)

    def close(self) -> None:
        self.calls.append("close")


class FakeBackend:
    """GitBackend keyed by repository directory name"""

    def __init__(self):
        self.canned: dict[str, dict] = {}
        self.opened: list[str] = []
        self.repos: dict[str, FakeRepository] = {}
        self._lock = threading.Lock()

    def configure(self, name: str, **canned) -> None:
        self.canned[name] = canned

    def block(self, name: str, gate: threading.Event) -> None:
        self.canned.setdefault(name, {})["gate"] = gate

    def open(self, handle: RepoHandle) -> FakeRepository:
        canned = self.canned.get(handle.name, {})
        with self._lock:
            self.opened.append(handle.name)
        gate = canned.get("gate")
        if gate is not None:
            gate.wait(timeout=5)
        if "open_error" in canned:
            raise canned["open_error"]
        repo = FakeRepository(handle.path, canned)
        with self._lock:
            self.repos[handle.name] = repo
        return repo


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def fake_tree(tmp_path: Path):
    """Factory creating directories with an empty .git folder (enough for discovery)."""
    def _make(*relative: str) -> list[Path]:
        paths = []
        for rel in relative:
            repo = tmp_path / rel
            (repo / ".git").mkdir(parents=True, exist_ok=True)
            paths.append(repo)
        return paths
    return _make
