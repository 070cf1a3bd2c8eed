"""Solution filtering.

Provides:
- Filter documents (.slnf) naming a source solution and projects to keep
- Dependency closure over the kept projects
- Reduced solution output with optional ReSharper settings mirroring
- Watchers that resync the reduced solution as files change
"""

from .auxiliary import copy_auxiliary_files
from .closure import ClosureResult, FilterOutcome, apply_filter, build_reduced_solution, compute_closure
from .session import FilterSession, ReducedArtifact
from .spec import FilterSpec, derive_output_path, load_filter
from .watcher import AcceptDifference, ChangeWatcher, WatcherState, accept_all, reject_all

__all__ = [
    "FilterSpec",
    "load_filter",
    "derive_output_path",
    "ClosureResult",
    "FilterOutcome",
    "compute_closure",
    "build_reduced_solution",
    "apply_filter",
    "copy_auxiliary_files",
    "FilterSession",
    "ReducedArtifact",
    "ChangeWatcher",
    "WatcherState",
    "AcceptDifference",
    "accept_all",
    "reject_all",
]
