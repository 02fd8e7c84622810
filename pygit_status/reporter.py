"""ListingReporter: turns a drained event stream into a table or a JSON document."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pygit_status.events import DiscoveryError, ScanCancelled, ScanEvent, StatusFailed, StatusReady
from pygit_status.models import RepoError, RepoHandle, RepoHealth, RepoStatus
from pygit_status.output import SECTION_WIDTH
from pygit_status.protocols import OutputHandler


@dataclass(frozen=True)
class RepoRow:
    """One repository in the listing"""
    handle: RepoHandle
    status: RepoStatus | None = None
    error: RepoError | None = None

    @property
    def health(self) -> RepoHealth:
        if self.error is not None:
            return RepoHealth.FAILED
        if self.status.has_conflicts:
            return RepoHealth.CONFLICTED
        if self.status.is_dirty:
            return RepoHealth.DIRTY
        if (self.status.divergence or (0, 0)) != (0, 0):
            return RepoHealth.DIVERGED
        return RepoHealth.CLEAN

    def to_dict(self) -> dict[str, Any]:
        data = self.handle.to_dict()
        data['status'] = self.status.to_dict() if self.status else None
        data['error'] = self.error.to_dict() if self.error else None
        return data


@dataclass
class ListingReport:
    """Final state of a scan as seen by the listing mode"""
    rows: list[RepoRow] = field(default_factory=list)
    discovery_errors: list[DiscoveryError] = field(default_factory=list)
    cancelled: bool = False

    @classmethod
    def from_events(
        cls,
        events: Iterable[ScanEvent],
        dirty_only: bool = False,
        conflicts_only: bool = False,
    ) -> ListingReport:
        """Collect the last outcome per repository, sorted by path.

        With dirty_only or conflicts_only, failed repositories are still listed.
        """
        outcomes: dict[Path, RepoRow] = {}
        report = cls()
        for event in events:
            if isinstance(event, StatusReady):
                outcomes[event.handle.path] = RepoRow(event.handle, status=event.status)
            elif isinstance(event, StatusFailed):
                outcomes[event.handle.path] = RepoRow(event.handle, error=event.error)
            elif isinstance(event, DiscoveryError):
                report.discovery_errors.append(event)
            elif isinstance(event, ScanCancelled):
                report.cancelled = True

        rows = sorted(outcomes.values(), key=lambda row: str(row.handle.path))
        if dirty_only:
            rows = [row for row in rows if row.error is not None or row.status.is_dirty]
        if conflicts_only:
            rows = [row for row in rows if row.error is not None or row.status.has_conflicts]
        report.rows = rows
        return report

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dict for JSON output."""
        return {
            'repositories': [row.to_dict() for row in self.rows],
            'discovery_errors': [
                {'path': str(e.path), 'error': e.error} for e in self.discovery_errors
            ],
            'failed': sum(1 for row in self.rows if row.error is not None),
            'cancelled': self.cancelled,
        }


def describe_changes(status: RepoStatus) -> str:
    """Compact working tree summary, e.g. '+3 ~2 ?1'."""
    if status.working_tree is None:
        return '-'
    counts = status.working_tree
    parts = []
    if counts.staged:
        parts.append(f"+{counts.staged}")
    if counts.unstaged:
        parts.append(f"~{counts.unstaged}")
    if counts.untracked:
        parts.append(f"?{counts.untracked}")
    if counts.conflicted:
        parts.append(f"!{counts.conflicted}")
    return ' '.join(parts) if parts else 'clean'


def describe_divergence(status: RepoStatus) -> str:
    if status.unborn:
        return 'unborn'
    if status.upstream is None:
        return 'no upstream'
    divergence = status.divergence
    if divergence is None:
        return f"{status.upstream} (not fetched)"
    ahead, behind = divergence
    if not ahead and not behind:
        return 'up to date'
    return f"↑{ahead} ↓{behind}"


def describe_sync(status: RepoStatus) -> str:
    """Long form of describe_divergence for the detail view."""
    divergence = status.divergence
    if divergence is None:
        return describe_divergence(status)
    ahead, behind = divergence
    return f"↑{ahead} ahead, ↓{behind} behind"


def describe_state(status: RepoStatus) -> str:
    if status.unborn:
        return "UNBORN (no commits yet)"
    counts = status.working_tree
    if status.has_conflicts:
        return f"CONFLICT (conflicts: {counts.conflicted})"
    if status.is_dirty:
        return f"DIRTY (staged: {counts.staged}, modified: {counts.unstaged}, untracked: {counts.untracked})"
    return "CLEAN"


class ListingReporter:
    """Prints a ListingReport as an aligned, colored table or as per-repository detail"""

    HEADERS = ('REPOSITORY', 'BRANCH', 'UPSTREAM', 'CHANGES', 'STASH', 'LAST COMMIT')

    def __init__(self, output: OutputHandler):
        """Create a reporter that writes to the given output handler."""
        self.output = output

    def print_report(self, report: ListingReport):
        """Print one line per repository, then discovery errors and a summary."""
        if not report.rows:
            self.output.warning("No git repositories found")
        else:
            cells = [self._cells(row) for row in report.rows]
            widths = [
                max(len(header), *(len(line[i]) for line in cells))
                for i, header in enumerate(self.HEADERS)
            ]
            self.output.info(self._format(self.HEADERS, widths))
            self.output.info("-" * max(SECTION_WIDTH, sum(widths) + 2 * (len(widths) - 1)))
            for row, line in zip(report.rows, cells):
                self.output.repo_line(self._format(line, widths), row.health)
                if row.error is not None:
                    self.output.error(f"↳ {row.error}", indent=1)

        self._print_footer(report)

    def print_detail(self, report: ListingReport):
        """Print every field of every repository, including its changed files."""
        if not report.rows:
            self.output.warning("No git repositories found")
        for row in report.rows:
            self.output.divider()
            self.output.heading(row.handle.name)
            self.output.field("Path", str(row.handle.path))
            if row.error is not None:
                self.output.repo_line(f"Error: {row.error}", RepoHealth.FAILED, indent=1)
                continue

            status = row.status
            self.output.field("Branch", status.branch)
            self.output.field("Status", describe_state(status))
            self.output.field("Sync", describe_sync(status))
            if status.stash_count:
                self.output.field("Stashes", str(status.stash_count))
            self.output.field("Remote", status.remote_url or "none")
            if status.last_commit is not None:
                last = status.last_commit
                self.output.field("Commit", f"{last.commit[:7]} {last.timestamp:%Y-%m-%d %H:%M} {last.summary}")
                if last.author:
                    self.output.field("Author", last.author)
            if status.file_changes:
                self.output.field("Files", str(len(status.file_changes)))
                for change in status.file_changes:
                    self.output.file_change(change)
        if report.rows:
            self.output.divider()

        self._print_footer(report)

    def _print_footer(self, report: ListingReport) -> None:
        if report.discovery_errors:
            self.output.section(f"Unreadable directories ({len(report.discovery_errors)})")
            for error in report.discovery_errors:
                self.output.warning(f"{error.path}: {error.error}", indent=1)

        self.output.info("")
        failed = sum(1 for row in report.rows if row.error is not None)
        dirty = sum(1 for row in report.rows if row.status is not None and row.status.is_dirty)
        self.output.info(f"{len(report.rows)} repositories, {dirty} dirty, {failed} failed")
        if report.cancelled:
            self.output.warning("Scan was cancelled; results are partial")

    def _cells(self, row: RepoRow) -> tuple[str, ...]:
        if row.status is None:
            return (row.handle.name, '?', '', 'error', '', '')
        status = row.status
        last_commit = ''
        if status.last_commit is not None:
            last_commit = f"{status.last_commit.timestamp:%Y-%m-%d} {status.last_commit.summary}"
        stash = str(status.stash_count) if status.stash_count else ''
        return (
            row.handle.name,
            status.branch,
            describe_divergence(status),
            describe_changes(status),
            stash,
            last_commit,
        )

    @staticmethod
    def _format(cells: tuple[str, ...], widths: list[int]) -> str:
        return "  ".join(cell.ljust(width) for cell, width in zip(cells, widths)).rstrip()
