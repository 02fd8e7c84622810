"""Tests for RepoDetector."""

from pathlib import Path

from pygit_status import Candidate, FailureCause, RepoDetector, RepoKind, ScanRoot


def _candidate(path: Path, enclosing: Path | None = None, depth: int = 1) -> Candidate:
    return Candidate(
        path=path,
        canonical=path.resolve(),
        depth=depth,
        git_entry=path / ".git",
        enclosing=enclosing,
    )


class TestRepoDetector:
    def test_standalone(self, tmp_path: Path):
        repo = tmp_path / "repo"
        (repo / ".git").mkdir(parents=True)
        root = ScanRoot(tmp_path)

        handle = RepoDetector(root).classify(_candidate(repo, depth=1))
        assert handle.kind == RepoKind.STANDALONE
        assert handle.path == repo.resolve()
        assert handle.git_dir == (repo / ".git").resolve()
        assert handle.depth == 1
        assert handle.root is root
        assert handle.problem is None

    def test_linked_worktree_absolute_pointer(self, tmp_path: Path):
        metadata = tmp_path / "main" / ".git" / "worktrees" / "wt"
        metadata.mkdir(parents=True)
        worktree = tmp_path / "wt"
        worktree.mkdir()
        (worktree / ".git").write_text(f"gitdir: {metadata}\n")

        handle = RepoDetector(ScanRoot(tmp_path)).classify(_candidate(worktree))
        assert handle.kind == RepoKind.LINKED_WORKTREE
        assert handle.git_dir == metadata.resolve()
        assert handle.problem is None

    def test_linked_worktree_relative_pointer(self, tmp_path: Path):
        (tmp_path / "modules" / "lib").mkdir(parents=True)
        checkout = tmp_path / "lib"
        checkout.mkdir()
        (checkout / ".git").write_text("gitdir: ../modules/lib\n")

        handle = RepoDetector(ScanRoot(tmp_path)).classify(_candidate(checkout))
        assert handle.git_dir == (tmp_path / "modules" / "lib").resolve()
        assert handle.problem is None

    def test_broken_pointer_is_flagged_not_raised(self, tmp_path: Path):
        worktree = tmp_path / "wt"
        worktree.mkdir()
        (worktree / ".git").write_text("gitdir: /nonexistent/path/.git/worktrees/wt\n")

        handle = RepoDetector(ScanRoot(tmp_path)).classify(_candidate(worktree))
        assert handle.kind == RepoKind.LINKED_WORKTREE
        assert handle.git_dir is None
        assert handle.problem.cause == FailureCause.BROKEN_WORKTREE
        assert "missing" in handle.problem.message

    def test_git_file_without_pointer(self, tmp_path: Path):
        odd = tmp_path / "odd"
        odd.mkdir()
        (odd / ".git").write_text("this is not a pointer\n")

        handle = RepoDetector(ScanRoot(tmp_path)).classify(_candidate(odd))
        assert handle.problem.cause == FailureCause.BROKEN_WORKTREE

    def test_empty_git_file(self, tmp_path: Path):
        odd = tmp_path / "odd"
        odd.mkdir()
        (odd / ".git").write_text("")

        handle = RepoDetector(ScanRoot(tmp_path)).classify(_candidate(odd))
        assert handle.problem.cause == FailureCause.BROKEN_WORKTREE

    def test_nested_overrides_kind(self, tmp_path: Path):
        parent = tmp_path / "parent"
        child = parent / "libs" / "child"
        (parent / ".git").mkdir(parents=True)
        (child / ".git").mkdir(parents=True)

        handle = RepoDetector(ScanRoot(tmp_path)).classify(
            _candidate(child, enclosing=parent.resolve(), depth=3)
        )
        assert handle.kind == RepoKind.NESTED
        assert handle.problem is None
