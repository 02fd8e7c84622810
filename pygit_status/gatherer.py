"""StatusGatherer: bounded worker pool computing one status per repository."""

from __future__ import annotations

import concurrent.futures
import logging
import os
import threading

from pygit_status.errors import RepoOpenError
from pygit_status.events import StatusEvent, StatusFailed, StatusReady
from pygit_status.models import FailureCause, RefSnapshot, RepoError, RepoHandle, RepoStatus
from pygit_status.protocols import GitBackend, RepositoryReader
from pygit_status.repository import GitPythonBackend

logger = logging.getLogger(__name__)

SHORT_SHA_LENGTH = 7
SLOT_POLL_INTERVAL = 0.1


def default_worker_count() -> int:
    return min(os.cpu_count() or 4, 8)


def branch_label(refs: RefSnapshot) -> str:
    """Branch name, or 'detached at <short id>' for a detached HEAD."""
    if refs.branch is not None:
        return refs.branch
    return f"detached at {refs.head_commit[:SHORT_SHA_LENGTH]}"


class StatusGatherer:
    """Fixed-size pool of workers, each turning one RepoHandle into one status event.

    ``schedule`` admits work through a bounded semaphore so a fast producer
    cannot queue an unbounded number of repositories ahead of the workers.
    """

    def __init__(
        self,
        backend: GitBackend | None = None,
        max_workers: int | None = None,
        queue_capacity: int | None = None,
    ):
        self.backend = backend or GitPythonBackend()
        self.max_workers = max_workers or default_worker_count()
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=self.max_workers,
            thread_name_prefix='pygit-status',
        )
        self._slots = threading.BoundedSemaphore(queue_capacity or self.max_workers * 4)

    def __enter__(self) -> StatusGatherer:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def gather(self, handle: RepoHandle) -> StatusEvent:
        """Compute the status of one repository. Never raises."""
        if handle.problem is not None:
            return StatusFailed(handle, handle.problem)

        repo: RepositoryReader | None = None
        try:
            repo = self.backend.open(handle)
            return StatusReady(handle, self._read_status(repo))
        except RepoOpenError as e:
            logger.warning("Failed to read %s: %s", handle.path, e)
            return StatusFailed(handle, e.to_repo_error())
        except Exception as e:
            logger.warning("Unexpected error reading %s", handle.path, exc_info=True)
            return StatusFailed(handle, RepoError(FailureCause.UNKNOWN, f"Unexpected error: {e}"))
        finally:
            if repo is not None:
                repo.close()

    def _read_status(self, repo: RepositoryReader) -> RepoStatus:
        refs = repo.read_refs()
        if refs.unborn:
            return RepoStatus.unborn_on(refs.branch or 'HEAD', remote_url=refs.remote_url)

        working_tree = repo.read_status()
        stash_count = repo.read_stashes()
        last_commit = repo.read_last_commit()
        return RepoStatus(
            branch=branch_label(refs),
            head_commit=refs.head_commit,
            detached=refs.detached,
            upstream=refs.upstream,
            ahead=refs.ahead,
            behind=refs.behind,
            working_tree=working_tree,
            stash_count=stash_count,
            last_commit=last_commit,
            remote_url=refs.remote_url,
        )

    def schedule(
        self,
        handle: RepoHandle,
        cancel: threading.Event,
    ) -> concurrent.futures.Future | None:
        """Queue a handle once a slot is free.

        Returns None if cancellation is observed while waiting for a slot. The
        future resolves to None if cancellation is observed before the unit starts.
        """
        while not self._slots.acquire(timeout=SLOT_POLL_INTERVAL):
            if cancel.is_set():
                return None
        if cancel.is_set():
            self._slots.release()
            return None

        def _run() -> StatusEvent | None:
            if cancel.is_set():
                logger.debug("Skipping %s: scan cancelled before it started", handle.path)
                return None
            return self.gather(handle)

        try:
            future = self._executor.submit(_run)
        except RuntimeError:
            self._slots.release()
            raise
        future.add_done_callback(lambda _f: self._slots.release())
        return future

    def submit(self, handle: RepoHandle) -> concurrent.futures.Future:
        """Queue a handle without admission control (single-repository refresh)."""
        return self._executor.submit(self.gather, handle)

    def close(self, wait: bool = True) -> None:
        """Shut the pool down; queued units that have not started are dropped."""
        self._executor.shutdown(wait=wait, cancel_futures=True)
