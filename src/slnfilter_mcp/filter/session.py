"""Filter session - runs filters and owns their resync watchers.

Provides:
- Load source solution, filter, write the reduced solution
- Auxiliary file mirroring
- One watcher per filter document, started on demand
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from ..errors import ProjectNotFoundWarning, WatcherIOError
from ..solution.io import parse_solution, write_solution
from ..solution.model import SolutionFile
from .auxiliary import copy_auxiliary_files
from .closure import FilterOutcome, apply_filter
from .spec import FilterSpec
from .watcher import AcceptDifference, ChangeWatcher, WatcherState, accept_all

logger = logging.getLogger(__name__)


@dataclass
class ReducedArtifact:
    """Result of a filtering run."""

    path: str
    solution: SolutionFile
    warnings: list[ProjectNotFoundWarning] = field(default_factory=list)
    copied_files: list[str] = field(default_factory=list)
    watching: bool = False
    watch_error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "outputPath": self.path,
            "projectCount": len(self.solution),
            "projects": [p.full_name for p in self.solution.projects],
            "watching": self.watching,
        }
        if self.warnings:
            result["warnings"] = [str(w) for w in self.warnings]
        if self.copied_files:
            result["copiedFiles"] = list(self.copied_files)
        if self.watch_error:
            result["watchError"] = self.watch_error
        return result


class FilterSession:
    """Runs filters and keeps at most one watcher per filter document.

    Usage:
        session = FilterSession()
        artifact = session.run(FilterSpec.load("App.slnf"))
        ...
        session.stop_all()
    """

    def __init__(
        self,
        accept: AcceptDifference = accept_all,
        *,
        parser: Callable[[str], SolutionFile] = parse_solution,
        writer: Callable[[SolutionFile, str], Any] = write_solution,
        watcher_factory: Callable[..., ChangeWatcher] = ChangeWatcher,
    ):
        """Initialize session.

        Args:
            accept: Default acceptance policy for watchers
            parser: Solution reader
            writer: Solution writer
            watcher_factory: Builds watchers (same signature as ChangeWatcher)
        """
        self._accept = accept
        self._parser = parser
        self._writer = writer
        self._watcher_factory = watcher_factory
        self._watchers: dict[str, ChangeWatcher] = {}
        self._lock = threading.Lock()
        self._last_artifact: ReducedArtifact | None = None

    @property
    def last_artifact(self) -> ReducedArtifact | None:
        """Result of the most recent run."""
        return self._last_artifact

    @property
    def watchers(self) -> dict[str, ChangeWatcher]:
        """Active watchers keyed by normalized filter path."""
        with self._lock:
            return dict(self._watchers)

    def _key(self, spec: FilterSpec) -> str:
        """Normalize filter path for consistent lookup."""
        if not spec.filter_path:
            raise ValueError("Filter has no path")
        return os.path.normcase(os.path.normpath(os.path.abspath(spec.filter_path)))

    def _current(self, spec: FilterSpec) -> FilterSpec:
        """Saved version of ``spec``, or ``spec`` itself if it was never saved."""
        if spec.filter_path and os.path.isfile(spec.filter_path):
            return FilterSpec.load(spec.filter_path)
        return spec

    def load(self, spec: FilterSpec) -> SolutionFile:
        """Parse the source solution of ``spec``.

        Raises:
            SourceGraphError: Propagated from the parser
        """
        if not spec.source_path:
            raise ValueError("Filter has no source solution")
        return self._parser(spec.source_path)

    def recompute(self, spec: FilterSpec) -> FilterOutcome:
        """Load the source solution and filter it without writing anything."""
        return apply_filter(self.load(spec), spec)

    def run(self, spec: FilterSpec, accept: AcceptDifference | None = None) -> ReducedArtifact:
        """Filter the source solution and write the reduced solution.

        Starts a watcher when ``spec.auto_resync`` is set and none is active
        for this filter. A watcher that fails to attach is reported in
        ``ReducedArtifact.watch_error``; the written output is kept.

        Args:
            spec: Filter to run
            accept: Acceptance policy for a newly started watcher

        Returns:
            Reduced artifact

        Raises:
            SourceGraphError: If the source solution cannot be read
        """
        outcome = self.recompute(spec)
        output_path = spec.output_path
        self._writer(outcome.solution, output_path)
        logger.info(f"Wrote filtered solution {output_path}")

        artifact = ReducedArtifact(
            path=output_path,
            solution=outcome.solution,
            warnings=list(outcome.warnings),
        )

        if spec.copy_auxiliary_files:
            artifact.copied_files = copy_auxiliary_files(spec.source_path, output_path)

        if spec.auto_resync:
            try:
                self._start_watcher(spec, accept or self._accept)
                artifact.watching = True
            except WatcherIOError as e:
                logger.error(str(e))
                artifact.watch_error = str(e)
        else:
            artifact.watching = self.get_watcher(spec) is not None

        self._last_artifact = artifact
        return artifact

    def _start_watcher(self, spec: FilterSpec, accept: AcceptDifference) -> ChangeWatcher:
        key = self._key(spec)
        with self._lock:
            existing = self._watchers.get(key)
            if existing is not None and existing.state != WatcherState.STOPPED:
                return existing

            # Edits saved to the filter document apply from the next evaluation on
            watcher = self._watcher_factory(
                spec.output_path,
                spec.source_path,
                lambda: self.recompute(self._current(spec)).solution,
                accept,
                parser=self._parser,
                writer=self._writer,
            )
            self._watchers[key] = watcher

        try:
            watcher.start()
        except WatcherIOError:
            with self._lock:
                if self._watchers.get(key) is watcher:
                    del self._watchers[key]
            raise
        return watcher

    def get_watcher(self, spec: FilterSpec) -> ChangeWatcher | None:
        """Active watcher for ``spec``, if any."""
        with self._lock:
            watcher = self._watchers.get(self._key(spec))
        if watcher is None or watcher.state == WatcherState.STOPPED:
            return None
        return watcher

    def stop(self, spec: FilterSpec) -> bool:
        """Stop and release the watcher for ``spec``.

        Returns:
            True if a watcher was stopped
        """
        with self._lock:
            watcher = self._watchers.pop(self._key(spec), None)
        if watcher is None:
            return False
        watcher.stop()
        return True

    def stop_all(self) -> int:
        """Stop every watcher.

        Returns:
            Number of watchers stopped
        """
        with self._lock:
            watchers = list(self._watchers.values())
            self._watchers.clear()
        for watcher in watchers:
            watcher.stop()
        return len(watchers)

    def to_dict(self) -> dict[str, Any]:
        """Get session status as dictionary."""
        return {
            "watchers": {path: watcher.to_dict() for path, watcher in self.watchers.items()},
            "lastRun": self._last_artifact.to_dict() if self._last_artifact else None,
        }
