"""Resynchronization watcher for a reduced solution.

State machine:
IDLE → WATCHING ⇄ EVALUATING
          ↓          ↓
        STOPPED ←────┘

File system events are delivered by a watchdog observer thread, which only
signals. Evaluations run on a single worker thread, so at most one runs at a
time; events arriving during an evaluation are coalesced into one follow-up.
Events caused by the watcher's own write of the artifact are ignored.
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Any

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from ..errors import WatcherIOError
from ..solution.diff import Difference, apply_differences, diff_solutions
from ..solution.io import parse_solution, write_solution
from ..solution.model import SolutionFile

logger = logging.getLogger(__name__)

AcceptDifference = Callable[[Difference], bool]


def accept_all(difference: Difference) -> bool:
    """Acceptance policy that merges every difference."""
    return True


def reject_all(difference: Difference) -> bool:
    """Acceptance policy that only reports differences."""
    return False


def _normalize_path(path: str) -> str:
    return os.path.normcase(os.path.normpath(os.path.abspath(path)))


class WatcherState(str, Enum):
    """Watcher state machine states."""

    IDLE = "idle"
    WATCHING = "watching"
    EVALUATING = "evaluating"
    STOPPED = "stopped"


class _WatchedFilesHandler(FileSystemEventHandler):
    """Forwards events that touch one of the watched files."""

    def __init__(self, paths: list[str], on_change: Callable[[str], Any]):
        super().__init__()
        self._paths = {_normalize_path(p) for p in paths}
        self._on_change = on_change

    def _forward(self, path: str | bytes) -> None:
        if isinstance(path, bytes):
            path = os.fsdecode(path)
        if _normalize_path(path) in self._paths:
            self._on_change(path)

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._forward(event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._forward(event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        # Editors commonly save by renaming a temp file over the target
        if not event.is_directory:
            self._forward(event.dest_path)


class ChangeWatcher:
    """Keeps a reduced solution in sync with its source.

    On every change to the artifact or the source solution the reduced
    solution is recomputed and compared with the artifact on disk. Each
    difference is passed to ``accept``; accepted ones are merged into the
    artifact, rejected ones leave that part of it untouched.

    Usage:
        watcher = ChangeWatcher(artifact, source, recompute, accept).start()
        ...
        watcher.stop()
    """

    def __init__(
        self,
        artifact_path: str,
        source_path: str,
        recompute: Callable[[], SolutionFile],
        accept: AcceptDifference = accept_all,
        *,
        parser: Callable[[str], SolutionFile] = parse_solution,
        writer: Callable[[SolutionFile, str], Any] = write_solution,
        observer_factory: Callable[[], Any] = Observer,
    ):
        """Initialize watcher.

        Args:
            artifact_path: Reduced solution to keep in sync
            source_path: Full solution it was produced from
            recompute: Returns a freshly filtered solution
            accept: Called once per detected difference
            parser: Reads the artifact from disk
            writer: Writes the merged artifact
            observer_factory: Creates the watchdog observer
        """
        self._artifact_path = os.path.abspath(artifact_path)
        self._source_path = os.path.abspath(source_path)
        self._recompute = recompute
        self._accept = accept
        self._parser = parser
        self._writer = writer
        self._observer_factory = observer_factory

        self._lock = threading.Lock()
        self._state = WatcherState.IDLE
        self._pending: list[str | None] = []
        self._own_write: tuple[int, int] | None = None
        self._idle = threading.Event()
        self._idle.set()
        self._observer: Any = None
        self._executor: ThreadPoolExecutor | None = None
        self._state_listeners: list[Callable[[WatcherState], None]] = []

        self._evaluations = 0
        self._last_differences: list[Difference] = []
        self._last_accepted: list[Difference] = []
        self._last_error: str | None = None

    @property
    def state(self) -> WatcherState:
        """Current watcher state."""
        return self._state

    @property
    def is_active(self) -> bool:
        """Whether the watcher is observing files."""
        return self._state in (WatcherState.WATCHING, WatcherState.EVALUATING)

    @property
    def artifact_path(self) -> str:
        return self._artifact_path

    @property
    def source_path(self) -> str:
        return self._source_path

    @property
    def watched_paths(self) -> list[str]:
        """Files whose modification triggers an evaluation."""
        paths = [self._artifact_path]
        if _normalize_path(self._source_path) != _normalize_path(self._artifact_path):
            paths.append(self._source_path)
        return paths

    @property
    def evaluations(self) -> int:
        """Number of completed or running evaluations."""
        return self._evaluations

    @property
    def last_differences(self) -> list[Difference]:
        """Differences detected by the most recent evaluation."""
        return list(self._last_differences)

    @property
    def last_accepted(self) -> list[Difference]:
        """Differences merged by the most recent evaluation."""
        return list(self._last_accepted)

    @property
    def last_error(self) -> str | None:
        """Error of the most recent failed evaluation."""
        return self._last_error

    def on_state_change(self, listener: Callable[[WatcherState], None]) -> None:
        """Register state change listener."""
        self._state_listeners.append(listener)

    def _swap_state(self, new_state: WatcherState) -> WatcherState | None:
        """Set state; caller holds the lock. Returns the old state if it changed."""
        old_state = self._state
        if old_state == new_state:
            return None
        self._state = new_state
        return old_state

    def _announce(self, old_state: WatcherState | None, new_state: WatcherState) -> None:
        """Log a transition and notify listeners; caller must not hold the lock."""
        if old_state is None:
            return
        logger.info(f"Watcher {self._artifact_path}: {old_state.value} -> {new_state.value}")
        for listener in self._state_listeners:
            try:
                listener(new_state)
            except Exception:
                logger.exception("Watcher state listener error")

    def start(self) -> ChangeWatcher:
        """Begin monitoring the artifact and the source solution.

        Returns:
            This watcher, the handle whose stop() ends monitoring

        Raises:
            WatcherIOError: If a watched directory does not exist, the observer
                fails to attach, or the watcher was already stopped
        """
        with self._lock:
            if self._state == WatcherState.STOPPED:
                raise WatcherIOError(self._artifact_path, "watcher was stopped and cannot be restarted")
            if self._state != WatcherState.IDLE:
                return self

        directories = sorted({os.path.dirname(p) for p in self.watched_paths})
        for directory in directories:
            if not os.path.isdir(directory):
                self._fail_start()
                raise WatcherIOError(directory, "directory does not exist")

        handler = _WatchedFilesHandler(self.watched_paths, self.notify_change)
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="slnfilter_watch")
        observer = self._observer_factory()

        with self._lock:
            self._observer = observer
            self._executor = executor
            old_state = self._swap_state(WatcherState.WATCHING)

        try:
            for directory in directories:
                observer.schedule(handler, directory, recursive=False)
            observer.start()
        except OSError as e:
            self.stop()
            raise WatcherIOError(directories[0], str(e)) from e

        self._announce(old_state, WatcherState.WATCHING)
        return self

    def _fail_start(self) -> None:
        with self._lock:
            old_state = self._swap_state(WatcherState.STOPPED)
        self._announce(old_state, WatcherState.STOPPED)

    def notify_change(self, path: str | None = None) -> bool:
        """Signal that a watched file changed.

        Args:
            path: File that changed; None when the caller does not know

        Returns:
            True if an evaluation was scheduled, False if the change was
            coalesced into a running evaluation, was the watcher's own write
            of the artifact, or the watcher is not watching
        """
        with self._lock:
            if self._state == WatcherState.EVALUATING:
                self._pending.append(path)
                return False
            if self._state != WatcherState.WATCHING:
                return False
            if self._is_own_write(path):
                logger.debug(f"Ignoring own write of {path}")
                return False
            old_state = self._swap_state(WatcherState.EVALUATING)
            self._idle.clear()
            executor = self._executor

        if path:
            logger.debug(f"Change detected: {path}")
        self._announce(old_state, WatcherState.EVALUATING)

        try:
            executor.submit(self._run_evaluations)
        except RuntimeError:
            # Executor shut down by a concurrent stop()
            self._idle.set()
            return False
        return True

    def _run_evaluations(self) -> None:
        """Worker loop: evaluate until no change is pending."""
        while True:
            try:
                self._evaluate()
                self._last_error = None
            except Exception as e:
                self._last_error = str(e)
                logger.exception(f"Resync of {self._artifact_path} failed")

            with self._lock:
                if self._state == WatcherState.STOPPED:
                    self._idle.set()
                    return
                pending = [p for p in self._pending if not self._is_own_write(p)]
                self._pending.clear()
                if pending:
                    continue
                old_state = self._swap_state(WatcherState.WATCHING)
                self._idle.set()
            self._announce(old_state, WatcherState.WATCHING)
            return

    def _artifact_stat(self) -> tuple[int, int] | None:
        try:
            st = os.stat(self._artifact_path)
        except OSError:
            return None
        return st.st_mtime_ns, st.st_size

    def _is_own_write(self, path: str | None) -> bool:
        """Whether ``path`` is the artifact, unchanged since this watcher wrote it."""
        if path is None or self._own_write is None:
            return False
        if _normalize_path(path) != _normalize_path(self._artifact_path):
            return False
        return self._artifact_stat() == self._own_write

    def _read_artifact(self, fresh: SolutionFile) -> SolutionFile:
        if not os.path.exists(self._artifact_path):
            logger.info(f"Artifact {self._artifact_path} is missing, rebuilding")
            return SolutionFile(self._artifact_path, fresh.headers)
        return self._parser(self._artifact_path)

    def _evaluate(self) -> None:
        """Recompute, diff against the artifact and merge accepted differences."""
        self._evaluations += 1
        fresh = self._recompute()
        persisted = self._read_artifact(fresh)
        differences = diff_solutions(persisted, fresh)
        accepted = [d for d in differences if self._accept(d)]
        self._last_differences = differences
        self._last_accepted = accepted

        if not differences:
            logger.debug(f"{self._artifact_path} is up to date")
            return

        logger.info(
            f"{self._artifact_path}: {len(differences)} differences, {len(accepted)} accepted"
        )
        if accepted:
            merged = apply_differences(persisted, accepted)
            self._writer(merged, self._artifact_path)
            with self._lock:
                self._own_write = self._artifact_stat()

    def wait_idle(self, timeout: float | None = None) -> bool:
        """Block until no evaluation is running.

        Returns:
            False if the timeout expired first
        """
        return self._idle.wait(timeout)

    def stop(self) -> None:
        """Stop monitoring. Idempotent; a running evaluation is allowed to finish."""
        with self._lock:
            if self._state == WatcherState.STOPPED:
                return
            was_evaluating = self._state == WatcherState.EVALUATING
            old_state = self._swap_state(WatcherState.STOPPED)
            self._pending.clear()
            observer, self._observer = self._observer, None
            executor, self._executor = self._executor, None
            if not was_evaluating:
                self._idle.set()

        if observer is not None:
            observer.stop()
            if observer is not threading.current_thread() and observer.is_alive():
                observer.join()
        if executor is not None:
            executor.shutdown(wait=False)

        self._announce(old_state, WatcherState.STOPPED)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "state": self._state.value,
            "artifactPath": self._artifact_path,
            "sourcePath": self._source_path,
            "evaluations": self._evaluations,
            "lastDifferences": [d.to_dict() for d in self._last_differences],
            "lastAccepted": len(self._last_accepted),
        }
        if self._last_error:
            result["lastError"] = self._last_error
        return result
