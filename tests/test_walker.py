"""Tests for PathWalker."""

import os
import threading
from pathlib import Path

import pytest

from pygit_status import Candidate, DiscoveryError, PathWalker, ScanRoot


def _walk(root: ScanRoot, **kwargs) -> list:
    return list(PathWalker(root, **kwargs).walk())


def _names(items) -> list[str]:
    return [item.path.name for item in items if isinstance(item, Candidate)]


class TestPathWalker:
    def test_find_repositories(self, tmp_path: Path):
        (tmp_path / "repo1" / ".git").mkdir(parents=True)
        (tmp_path / "repo2" / ".git").mkdir(parents=True)
        (tmp_path / "not-a-repo").mkdir(parents=True)

        names = _names(_walk(ScanRoot(tmp_path)))
        assert names == ["repo1", "repo2"]

    def test_candidates_carry_depth_and_canonical_path(self, tmp_path: Path):
        (tmp_path / "group" / "repo" / ".git").mkdir(parents=True)

        [candidate] = _walk(ScanRoot(tmp_path))
        assert candidate.depth == 2
        assert candidate.canonical == Path(os.path.realpath(tmp_path / "group" / "repo"))
        assert candidate.git_entry.name == ".git"
        assert candidate.enclosing is None

    def test_root_itself_can_be_a_repository(self, tmp_path: Path):
        (tmp_path / ".git").mkdir()

        [candidate] = _walk(ScanRoot(tmp_path))
        assert candidate.depth == 0

    def test_no_repos_found(self, tmp_path: Path):
        (tmp_path / "a" / "b").mkdir(parents=True)
        assert _walk(ScanRoot(tmp_path)) == []

    def test_depth_limit(self, tmp_path: Path):
        (tmp_path / "shallow" / ".git").mkdir(parents=True)
        (tmp_path / "a" / "b" / "deep" / ".git").mkdir(parents=True)

        assert _names(_walk(ScanRoot(tmp_path, max_depth=1))) == ["shallow"]
        assert sorted(_names(_walk(ScanRoot(tmp_path, max_depth=3)))) == ["deep", "shallow"]

    def test_depth_zero_only_checks_root(self, tmp_path: Path):
        (tmp_path / "repo" / ".git").mkdir(parents=True)
        assert _walk(ScanRoot(tmp_path, max_depth=0)) == []

    def test_unbounded_depth(self, tmp_path: Path):
        deep = tmp_path.joinpath(*[f"d{i}" for i in range(12)], "repo")
        (deep / ".git").mkdir(parents=True)

        assert _names(_walk(ScanRoot(tmp_path, max_depth=None))) == ["repo"]

    def test_does_not_descend_into_repositories(self, tmp_path: Path):
        (tmp_path / "parent" / ".git").mkdir(parents=True)
        (tmp_path / "parent" / "vendor" / "child" / ".git").mkdir(parents=True)

        assert _names(_walk(ScanRoot(tmp_path))) == ["parent"]

    def test_nested_discovery_marks_enclosing(self, tmp_path: Path):
        (tmp_path / "parent" / ".git").mkdir(parents=True)
        (tmp_path / "parent" / "vendor" / "child" / ".git").mkdir(parents=True)

        items = _walk(ScanRoot(tmp_path, nested_discovery=True))
        assert _names(items) == ["parent", "child"]
        parent, child = items
        assert parent.enclosing is None
        assert child.enclosing == parent.canonical

    def test_exclude_by_name_prunes_traversal(self, tmp_path: Path):
        (tmp_path / "vendor" / "dep1" / ".git").mkdir(parents=True)
        (tmp_path / "vendor" / "dep2" / ".git").mkdir(parents=True)
        (tmp_path / "myrepo" / ".git").mkdir(parents=True)

        names = _names(_walk(ScanRoot(tmp_path, exclude_patterns=["vendor"])))
        assert names == ["myrepo"]

    def test_exclude_glob_and_relative_path(self, tmp_path: Path):
        (tmp_path / "app" / "build-cache" / "x" / ".git").mkdir(parents=True)
        (tmp_path / "work" / "old" / ".git").mkdir(parents=True)
        (tmp_path / "work" / "new" / ".git").mkdir(parents=True)

        root = ScanRoot(tmp_path, exclude_patterns=["build-*", "work/old"])
        assert _names(_walk(root)) == ["new"]

    def test_hidden_directories_skipped_by_default(self, tmp_path: Path):
        (tmp_path / ".cache" / "repo" / ".git").mkdir(parents=True)
        (tmp_path / "visible" / ".git").mkdir(parents=True)

        assert _names(_walk(ScanRoot(tmp_path))) == ["visible"]
        assert sorted(_names(_walk(ScanRoot(tmp_path, skip_hidden=False)))) == ["repo", "visible"]

    def test_git_file_is_a_candidate(self, tmp_path: Path):
        worktree = tmp_path / "wt"
        worktree.mkdir()
        (worktree / ".git").write_text("gitdir: ../somewhere")

        [candidate] = _walk(ScanRoot(tmp_path))
        assert candidate.path == worktree
        assert candidate.git_entry.is_file()

    def test_symlink_not_followed_by_default(self, tmp_path: Path):
        (tmp_path / "real_repo" / ".git").mkdir(parents=True)
        link_dir = tmp_path / "linked"
        link_dir.mkdir()
        (link_dir / "symlinked_repo").symlink_to(tmp_path / "real_repo")

        assert _names(_walk(ScanRoot(tmp_path))) == ["real_repo"]

    def test_followed_symlink_cycle_reports_each_repo_once(self, tmp_path: Path):
        (tmp_path / "a" / "repo" / ".git").mkdir(parents=True)
        (tmp_path / "a" / "loop").symlink_to(tmp_path)
        (tmp_path / "b").symlink_to(tmp_path / "a")

        items = _walk(ScanRoot(tmp_path, follow_symlinks=True, max_depth=None))
        candidates = [item for item in items if isinstance(item, Candidate)]
        assert len(candidates) == 1
        assert candidates[0].canonical == Path(os.path.realpath(tmp_path / "a" / "repo"))

    def test_shared_visited_set_deduplicates_across_walkers(self, tmp_path: Path):
        (tmp_path / "outer" / "repo" / ".git").mkdir(parents=True)
        visited: set[str] = set()

        first = _walk(ScanRoot(tmp_path), visited=visited)
        second = _walk(ScanRoot(tmp_path / "outer"), visited=visited)
        assert _names(first) == ["repo"]
        assert second == []

    def test_unreadable_directory_yields_discovery_error(self, tmp_path: Path, monkeypatch):
        (tmp_path / "ok" / ".git").mkdir(parents=True)
        locked = tmp_path / "locked"
        (locked / "hidden_repo" / ".git").mkdir(parents=True)

        real_scandir = os.scandir

        def fake_scandir(path):
            if Path(path) == locked:
                raise PermissionError(13, "Permission denied", str(path))
            return real_scandir(path)

        monkeypatch.setattr(os, "scandir", fake_scandir)
        items = _walk(ScanRoot(tmp_path))

        errors = [item for item in items if isinstance(item, DiscoveryError)]
        assert _names(items) == ["ok"]
        assert len(errors) == 1
        assert errors[0].path == locked
        assert errors[0].error == "Permission denied"

    def test_walk_is_single_use(self, tmp_path: Path):
        walker = PathWalker(ScanRoot(tmp_path))
        list(walker.walk())
        with pytest.raises(RuntimeError):
            list(walker.walk())

    def test_cancel_stops_the_walk(self, tmp_path: Path):
        for name in ("r1", "r2", "r3"):
            (tmp_path / name / ".git").mkdir(parents=True)
        cancel = threading.Event()

        found = []
        for item in PathWalker(ScanRoot(tmp_path), cancel=cancel).walk():
            found.append(item)
            cancel.set()
        assert _names(found) == ["r1"]

    def test_cancel_before_start_yields_nothing(self, tmp_path: Path):
        (tmp_path / "r1" / ".git").mkdir(parents=True)
        cancel = threading.Event()
        cancel.set()
        assert _walk(ScanRoot(tmp_path), cancel=cancel) == []
