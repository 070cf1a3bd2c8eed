"""Dependency closure and reduced solution assembly.

The closure of a filter is every project named by a keep-entry, every
project nested under one, and every project any of those depend on,
transitively. Projects are collected in discovery order: earlier keep-entries
first, and within one entry the project before its dependencies.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from ..errors import ProjectNotFoundWarning
from ..solution.model import Project, SolutionFile
from .spec import FilterSpec

logger = logging.getLogger(__name__)


@dataclass
class ClosureResult:
    """Projects kept by a filter, each exactly once, in discovery order."""

    projects: list[Project] = field(default_factory=list)
    warnings: list[ProjectNotFoundWarning] = field(default_factory=list)

    @property
    def full_names(self) -> list[str]:
        return [p.full_name for p in self.projects]

    @property
    def guids(self) -> list[str]:
        return [p.guid for p in self.projects]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "projects": self.full_names,
            "warnings": [str(w) for w in self.warnings],
        }


@dataclass
class FilterOutcome:
    """Reduced solution together with the closure it was built from."""

    solution: SolutionFile
    closure: ClosureResult

    @property
    def warnings(self) -> list[ProjectNotFoundWarning]:
        return self.closure.warnings


def _add_with_dependencies(kept: dict[str, Project], project: Project) -> None:
    """Add ``project`` and its transitive dependencies, pre-order.

    A project is skipped when it is already kept, which makes shared
    dependencies and dependency cycles terminate.
    """
    stack = [project]
    while stack:
        current = stack.pop()
        if current.guid in kept:
            continue
        kept[current.guid] = current
        stack.extend(reversed(current.dependencies))


def compute_closure(graph: SolutionFile, keep: FilterSpec | Iterable[str]) -> ClosureResult:
    """Compute the projects a filter keeps.

    Args:
        graph: Source solution
        keep: Filter spec, or keep-entries directly

    Returns:
        Kept projects (attached to ``graph``) and a warning per keep-entry
        that matched no project
    """
    names = keep.projects_to_keep if isinstance(keep, FilterSpec) else list(keep)
    kept: dict[str, Project] = {}
    warnings: list[ProjectNotFoundWarning] = []

    for full_name in names:
        project = graph.find_by_full_name(full_name)
        if project is None:
            warning = ProjectNotFoundWarning(full_name)
            if warning not in warnings:
                warnings.append(warning)
                logger.warning(f"{warning} ({graph.path})")
            continue

        _add_with_dependencies(kept, project)
        for descendant in project.all_descendants:
            _add_with_dependencies(kept, descendant)

    return ClosureResult(projects=list(kept.values()), warnings=warnings)


def build_reduced_solution(graph: SolutionFile, closure: ClosureResult, path: str) -> SolutionFile:
    """Assemble a solution at ``path`` holding copies of the kept projects.

    Header lines and global sections of ``graph`` are passed through. A kept
    project whose folder was not kept moves to the solution root.
    """
    kept_guids = set(closure.guids)
    projects = []
    for project in closure.projects:
        parent_guid = project.parent_guid if project.parent_guid in kept_guids else None
        projects.append(project.copy(parent_guid=parent_guid))
    return SolutionFile(
        path,
        graph.headers,
        projects,
        [s.copy() for s in graph.global_sections],
    )


def apply_filter(graph: SolutionFile, spec: FilterSpec) -> FilterOutcome:
    """Filter ``graph`` down to the closure of ``spec``. Performs no I/O."""
    closure = compute_closure(graph, spec)
    solution = build_reduced_solution(graph, closure, spec.output_path)
    logger.info(
        f"Filter kept {len(closure.projects)} of {len(graph)} projects"
        + (f" ({len(closure.warnings)} not found)" if closure.warnings else "")
    )
    return FilterOutcome(solution=solution, closure=closure)
