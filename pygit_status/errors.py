"""Exceptions raised across the scanning engine."""

from __future__ import annotations

from pathlib import Path

from pygit_status.models import FailureCause, RepoError


class RepoOpenError(Exception):
    """A repository could not be opened or read. Scoped to that repository."""

    def __init__(self, cause: FailureCause, message: str):
        super().__init__(message)
        self.cause = cause
        self.message = message

    def to_repo_error(self) -> RepoError:
        return RepoError(self.cause, self.message)


class SessionFatalError(Exception):
    """The scan cannot start at all. No session is created."""

    def __init__(self, path: Path | None, reason: str):
        super().__init__(f"Cannot scan '{path}': {reason}" if path is not None else f"Cannot scan: {reason}")
        self.path = path
        self.reason = reason
