"""ScanSession: runs one discovery + status pipeline and streams its events."""

from __future__ import annotations

import concurrent.futures
import dataclasses
import logging
import os
import queue
import threading
from collections.abc import Iterable, Iterator
from pathlib import Path

from pygit_status.cache import ResultCache
from pygit_status.detector import RepoDetector
from pygit_status.errors import SessionFatalError
from pygit_status.events import (
    Discovered,
    DiscoveryError,
    ScanCancelled,
    ScanCompleted,
    ScanEvent,
    StatusEvent,
    StatusFailed,
    StatusReady,
    TERMINAL_EVENTS,
)
from pygit_status.gatherer import StatusGatherer
from pygit_status.models import RepoError, RepoHandle, RepoStatus, ScanConfig, ScanRoot, SessionState
from pygit_status.protocols import GitBackend
from pygit_status.walker import PathWalker

logger = logging.getLogger(__name__)


def start_scan(
    roots: Iterable[ScanRoot],
    config: ScanConfig | None = None,
    cache: ResultCache | None = None,
    backend: GitBackend | None = None,
) -> ScanSession:
    """Validate the roots and start a session in the background.

    Raises SessionFatalError before anything is created if a root cannot be scanned.
    """
    roots = tuple(roots)
    if not roots:
        raise SessionFatalError(None, "no scan roots given")
    for root in roots:
        _validate_root(root)

    session = ScanSession(roots, config=config, cache=cache, backend=backend)
    session.start()
    return session


def _validate_root(root: ScanRoot) -> None:
    path = root.path
    if not path.exists():
        raise SessionFatalError(path, "directory does not exist")
    if not path.is_dir():
        raise SessionFatalError(path, "not a directory")
    if not os.access(path, os.R_OK | os.X_OK):
        raise SessionFatalError(path, "permission denied")


class ScanSession:
    """One scan run: walker -> detector -> gatherer pool -> ordered event stream.

    The stream is meant for a single consumer. Every event passes through
    ``_merge`` as it is emitted, before it is queued, so the session's result
    set and the shared ResultCache are up to date whether or not anyone reads
    the stream. ``_merge`` is the only place either is written. A handle's
    Discovered event always precedes its status event; nothing is promised
    across handles.
    """

    def __init__(
        self,
        roots: Iterable[ScanRoot],
        config: ScanConfig | None = None,
        cache: ResultCache | None = None,
        backend: GitBackend | None = None,
    ):
        self.roots = tuple(roots)
        self.config = config or ScanConfig()
        self.cache = cache if cache is not None else ResultCache(self.config.eviction_after_scans)
        self._gatherer = StatusGatherer(
            backend,
            max_workers=self.config.concurrency_limit,
            queue_capacity=self.config.effective_queue_capacity,
        )

        self._cancel = threading.Event()
        self._terminal = threading.Event()
        self._state_lock = threading.Lock()
        self._merge_lock = threading.RLock()
        self._state = SessionState.RUNNING
        self._events: queue.Queue[ScanEvent] = queue.Queue()
        self._stream_done = False
        self._closed = False

        self._outstanding = 0
        self._idle = threading.Condition()

        # Written by _merge only
        self._handles: dict[Path, RepoHandle] = {}
        self._results: dict[Path, RepoStatus | RepoError | None] = {}
        self._discovery_errors: list[DiscoveryError] = []

        self._thread: threading.Thread | None = None

    def __enter__(self) -> ScanSession:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def state(self) -> SessionState:
        with self._state_lock:
            return self._state

    @property
    def handles(self) -> list[RepoHandle]:
        with self._merge_lock:
            return list(self._handles.values())

    @property
    def results(self) -> dict[Path, RepoStatus | RepoError | None]:
        """Merged outcome per discovered path; None while still pending."""
        with self._merge_lock:
            return dict(self._results)

    @property
    def discovery_errors(self) -> list[DiscoveryError]:
        with self._merge_lock:
            return list(self._discovery_errors)

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError("ScanSession already started")
        self._thread = threading.Thread(target=self._run, name='pygit-status-scan', daemon=True)
        self._thread.start()

    # -- producer side -------------------------------------------------------

    def _run(self) -> None:
        visited: set[str] = set()
        try:
            for root in self.roots:
                if self._cancel.is_set():
                    break
                self._scan_root(root, visited)
            self._wait_idle()
        except Exception:
            logger.exception("Scan aborted by an unexpected error")
            self.cancel()
        else:
            self._finish()

    def _scan_root(self, root: ScanRoot, visited: set[str]) -> None:
        logger.debug("Scanning %s (max depth %s)", root.path, root.max_depth)
        detector = RepoDetector(root)
        for item in PathWalker(root, self._cancel, visited).walk():
            if isinstance(item, DiscoveryError):
                self._emit(item)
                continue

            handle = detector.classify(item)
            self._emit(Discovered(handle))
            future = self._gatherer.schedule(handle, self._cancel)
            if future is None:
                return
            with self._idle:
                self._outstanding += 1
            future.add_done_callback(self._on_gathered)

    def _on_gathered(self, future: concurrent.futures.Future) -> None:
        try:
            if not future.cancelled():
                event = future.result()
                if event is not None:
                    self._emit(event)
        finally:
            with self._idle:
                self._outstanding -= 1
                self._idle.notify_all()

    def _wait_idle(self) -> None:
        with self._idle:
            self._idle.wait_for(lambda: self._outstanding == 0)

    def _emit(self, event: ScanEvent) -> bool:
        """Merge and queue an event unless the session already reached a terminal state."""
        with self._state_lock:
            if self._state is not SessionState.RUNNING:
                logger.debug("Dropping %s after session ended", type(event).__name__)
                return False
            self._events.put(self._merge(event))
            return True

    def _finish(self) -> None:
        with self._state_lock:
            if self._state is not SessionState.RUNNING:
                return
            self._state = SessionState.COMPLETED
            self._events.put(self._merge(ScanCompleted()))
        self._terminal.set()
        self._log_summary(SessionState.COMPLETED)

    # -- control -------------------------------------------------------------

    def cancel(self) -> bool:
        """Stop scheduling new work. Returns False if the session already ended."""
        with self._state_lock:
            if self._state is not SessionState.RUNNING:
                return False
            self._state = SessionState.CANCELLED
            self._cancel.set()
            self._events.put(self._merge(ScanCancelled()))
        self._terminal.set()
        self._log_summary(SessionState.CANCELLED)
        return True

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the session reaches a terminal state."""
        return self._terminal.wait(timeout)

    def refresh(self, handle: RepoHandle) -> concurrent.futures.Future:
        """Recompute one known handle's status without walking again.

        Any handle this session has emitted a Discovered event for is known,
        whether or not the stream has been read. The returned future resolves
        to the merged StatusReady/StatusFailed. The session's lifecycle is
        unaffected.

        Raises RuntimeError once the session is closed, KeyError for a handle
        the session never discovered.
        """
        if self._closed:
            raise RuntimeError("cannot refresh: the scan session is closed")
        with self._merge_lock:
            known = self._handles.get(handle.path)
        if known is None:
            raise KeyError(f"{handle.path} was not discovered by this session")

        outer: concurrent.futures.Future = concurrent.futures.Future()

        def _deliver(inner: concurrent.futures.Future) -> None:
            try:
                outer.set_result(self._merge(inner.result()))
            except Exception as e:
                outer.set_exception(e)

        self._gatherer.submit(known).add_done_callback(_deliver)
        return outer

    def close(self) -> None:
        """Cancel if still running, then release the producer thread and the pool."""
        self._closed = True
        self.cancel()
        if self._thread is not None:
            self._thread.join()
        self._gatherer.close()

    # -- consumer side -------------------------------------------------------

    def events(self) -> Iterator[ScanEvent]:
        """Blocking iterator over the stream; ends after ScanCompleted or ScanCancelled."""
        while not self._stream_done:
            yield self._take(self._events.get())

    def poll(self, timeout: float | None = 0) -> list[ScanEvent]:
        """Return whatever events are ready, waiting up to timeout for the first one."""
        batch: list[ScanEvent] = []
        block = timeout is None or timeout > 0
        while not self._stream_done:
            try:
                event = self._events.get(block=block, timeout=timeout if block else None)
            except queue.Empty:
                break
            batch.append(self._take(event))
            block = False
        return batch

    def drain(self) -> list[ScanEvent]:
        """Consume the stream to its terminal event."""
        return list(self.events())

    def _take(self, event: ScanEvent) -> ScanEvent:
        if isinstance(event, TERMINAL_EVENTS):
            self._stream_done = True
        return event

    # -- merge ---------------------------------------------------------------

    def _merge(self, event: ScanEvent) -> ScanEvent:
        # Runs under _state_lock when called from the producer side; must not
        # take it again.
        with self._merge_lock:
            if isinstance(event, Discovered):
                self._handles[event.handle.path] = event.handle
                self._results.setdefault(event.handle.path, None)
            elif isinstance(event, StatusReady):
                event = dataclasses.replace(
                    event, changes=self.cache.changes(event.handle.path, event.status)
                )
                self._store(event, event.status)
            elif isinstance(event, StatusFailed):
                self._store(event, event.error)
            elif isinstance(event, DiscoveryError):
                self._discovery_errors.append(event)
            elif isinstance(event, ScanCompleted):
                self.cache.complete_scan(self._handles)
        return event

    def _store(self, event: StatusEvent, outcome: RepoStatus | RepoError) -> None:
        self._results[event.handle.path] = outcome
        self.cache.store(event)

    def _log_summary(self, state: SessionState) -> None:
        with self._merge_lock:
            found = len(self._handles)
            failed = sum(isinstance(r, RepoError) for r in self._results.values())
            unreadable = len(self._discovery_errors)
        logger.info(
            "Scan %s: %d repositories, %d failed, %d discovery errors",
            state.name.lower(), found, failed, unreadable,
        )
