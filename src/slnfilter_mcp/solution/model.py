"""In-memory solution graph.

A SolutionFile owns an ordered list of Projects. Projects only store GUID
references to their parent folder and their dependencies; the relations are
resolved through the owning solution, so the same Project copied into another
SolutionFile resolves against that solution instead.
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

SOLUTION_FOLDER_TYPE_GUID = "{2150E333-8FDC-42A3-9474-1A3956D46DE8}"

# Global sections regenerated from the projects when a solution is written
NESTED_PROJECTS_SECTION = "NestedProjects"
PROJECT_CONFIGURATIONS_SECTION = "ProjectConfigurationPlatforms"
DERIVED_SECTIONS = frozenset({NESTED_PROJECTS_SECTION, PROJECT_CONFIGURATIONS_SECTION})

FULL_NAME_SEPARATOR = "\\"


def normalize_guid(guid: str) -> str:
    """Normalize a GUID to the upper-case braced form used in solution files."""
    guid = guid.strip().upper()
    if not guid.startswith("{"):
        guid = "{" + guid + "}"
    return guid


@dataclass
class Section:
    """A ProjectSection or GlobalSection block."""

    name: str
    step: str
    entries: list[tuple[str, str]] = field(default_factory=list)

    def copy(self) -> Section:
        return Section(self.name, self.step, list(self.entries))

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "step": self.step,
            "entries": [{"key": k, "value": v} for k, v in self.entries],
        }


@dataclass(eq=False)
class Project:
    """A project (or solution folder) declared in a solution file."""

    guid: str
    type_guid: str
    name: str
    relative_path: str
    parent_guid: str | None = None
    dependency_guids: list[str] = field(default_factory=list)
    sections: list[Section] = field(default_factory=list)
    configurations: list[tuple[str, str]] = field(default_factory=list)
    """ProjectConfigurationPlatforms entries without the GUID prefix."""

    _solution: SolutionFile | None = field(default=None, repr=False)

    @property
    def solution(self) -> SolutionFile | None:
        """Solution this project is attached to."""
        return self._solution

    @property
    def is_folder(self) -> bool:
        """Whether this is a solution folder rather than a buildable project."""
        return self.type_guid == SOLUTION_FOLDER_TYPE_GUID

    @property
    def parent(self) -> Project | None:
        """Containing solution folder, if it is part of the same solution."""
        if self.parent_guid is None or self._solution is None:
            return None
        return self._solution.find_by_guid(self.parent_guid)

    @property
    def full_name(self) -> str:
        """Folder path and name joined with backslashes, e.g. ``Libs\\Core``."""
        names = [self.name]
        seen = {self.guid}
        current = self.parent
        while current is not None and current.guid not in seen:
            seen.add(current.guid)
            names.append(current.name)
            current = current.parent
        return FULL_NAME_SEPARATOR.join(reversed(names))

    @property
    def dependencies(self) -> list[Project]:
        """Direct dependencies resolved against the owning solution, in declared order."""
        if self._solution is None:
            return []
        resolved = []
        for guid in self.dependency_guids:
            dependency = self._solution.find_by_guid(guid)
            if dependency is None:
                logger.debug(f"{self.name}: dependency {guid} not in solution")
                continue
            resolved.append(dependency)
        return resolved

    @property
    def children(self) -> list[Project]:
        """Projects directly nested under this one."""
        if self._solution is None:
            return []
        return [p for p in self._solution.projects if p.parent_guid == self.guid]

    @property
    def all_descendants(self) -> list[Project]:
        """Every nested project, depth-first pre-order, excluding this project."""
        result: list[Project] = []
        seen = {self.guid}
        stack = list(reversed(self.children))
        while stack:
            current = stack.pop()
            if current.guid in seen:
                continue
            seen.add(current.guid)
            result.append(current)
            stack.extend(reversed(current.children))
        return result

    def copy(self, **changes: Any) -> Project:
        """Detached deep copy, optionally with some fields replaced."""
        values: dict[str, Any] = {
            "dependency_guids": list(self.dependency_guids),
            "sections": [s.copy() for s in self.sections],
            "configurations": list(self.configurations),
            "_solution": None,
        }
        values.update(changes)
        return dataclasses.replace(self, **values)

    def content_key(self) -> tuple:
        """Everything that is written to disk for this project."""
        return (
            self.type_guid,
            self.name,
            self.relative_path,
            self.parent_guid,
            tuple(self.dependency_guids),
            tuple((s.name, s.step, tuple(s.entries)) for s in self.sections),
            tuple(self.configurations),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "name": self.name,
            "fullName": self.full_name,
            "guid": self.guid,
            "path": self.relative_path,
            "isFolder": self.is_folder,
        }
        if self.parent_guid:
            result["parentGuid"] = self.parent_guid
        if self._solution is not None:
            result["dependencies"] = [d.full_name for d in self.dependencies]
        else:
            result["dependencies"] = list(self.dependency_guids)
        return result


class SolutionFile:
    """A solution: header lines, projects and global sections.

    Header lines and global sections are opaque and passed through unchanged
    when a reduced solution is assembled from this one.
    """

    def __init__(
        self,
        path: str | None,
        headers: Iterable[str] = (),
        projects: Iterable[Project] = (),
        global_sections: Iterable[Section] = (),
    ):
        self.path = path
        self.headers: list[str] = list(headers)
        self.global_sections: list[Section] = list(global_sections)
        self._projects: list[Project] = []
        self._by_guid: dict[str, Project] = {}
        for project in projects:
            self.add_project(project)

    @property
    def projects(self) -> list[Project]:
        """Projects in declaration order."""
        return list(self._projects)

    def __iter__(self) -> Iterator[Project]:
        return iter(self._projects)

    def __len__(self) -> int:
        return len(self._projects)

    def add_project(self, project: Project) -> None:
        """Attach a project. Projects already owned by another solution must be copied first."""
        if project.solution is not None and project.solution is not self:
            raise ValueError(f"Project {project.name} already belongs to another solution")
        if normalize_guid(project.guid) in self._by_guid:
            raise ValueError(f"Duplicate project GUID {project.guid}")
        project._solution = self
        self._projects.append(project)
        self._by_guid[normalize_guid(project.guid)] = project

    def find_by_guid(self, guid: str) -> Project | None:
        """Look up a project by GUID."""
        return self._by_guid.get(normalize_guid(guid))

    def find_by_full_name(self, full_name: str) -> Project | None:
        """Look up a project by its full name (``Folder\\Sub\\Name``)."""
        wanted = full_name.replace("/", FULL_NAME_SEPARATOR)
        for project in self._projects:
            if project.full_name == wanted:
                return project
        return None

    def get_global_section(self, name: str) -> Section | None:
        """Find a global section by name."""
        for section in self.global_sections:
            if section.name == name:
                return section
        return None

    def copy(self, path: str | None = None) -> SolutionFile:
        """Deep copy, optionally relocated."""
        return SolutionFile(
            path if path is not None else self.path,
            self.headers,
            [p.copy() for p in self._projects],
            [s.copy() for s in self.global_sections],
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "path": self.path,
            "projectCount": len(self._projects),
            "projects": [p.to_dict() for p in self._projects],
        }
