"""Structural differences between two solutions and how to merge them."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from .model import DERIVED_SECTIONS, Project, Section, SolutionFile


class DifferenceKind(str, Enum):
    """What changed between two solutions."""

    PROJECT_ADDED = "project_added"
    PROJECT_REMOVED = "project_removed"
    PROJECT_CHANGED = "project_changed"
    SECTION_ADDED = "section_added"
    SECTION_REMOVED = "section_removed"
    SECTION_CHANGED = "section_changed"


@dataclass(frozen=True)
class Difference:
    """One structural change from an old solution to a new one.

    ``key`` is the project GUID for project differences and the section name
    for global section differences. ``old``/``new`` hold detached copies.
    """

    kind: DifferenceKind
    key: str
    description: str
    old: Project | Section | None = None
    new: Project | Section | None = None

    @property
    def is_project(self) -> bool:
        return self.kind in (
            DifferenceKind.PROJECT_ADDED,
            DifferenceKind.PROJECT_REMOVED,
            DifferenceKind.PROJECT_CHANGED,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "kind": self.kind.value,
            "key": self.key,
            "description": self.description,
        }


def _describe_project_change(old: Project, new: Project) -> str:
    changes = []
    if old.name != new.name:
        changes.append(f"renamed to {new.name}")
    if old.relative_path != new.relative_path:
        changes.append(f"path {old.relative_path} -> {new.relative_path}")
    if old.parent_guid != new.parent_guid:
        changes.append("moved to another folder")
    added = [g for g in new.dependency_guids if g not in old.dependency_guids]
    removed = [g for g in old.dependency_guids if g not in new.dependency_guids]
    if added:
        changes.append(f"{len(added)} dependencies added")
    if removed:
        changes.append(f"{len(removed)} dependencies removed")
    if old.configurations != new.configurations:
        changes.append("configurations changed")
    if [s.name for s in old.sections] != [s.name for s in new.sections] or any(
        a.entries != b.entries for a, b in zip(old.sections, new.sections)
    ):
        changes.append("project sections changed")
    if old.type_guid != new.type_guid:
        changes.append("project type changed")
    return ", ".join(changes) or "changed"


def _section_key(section: Section) -> tuple:
    return (section.step, tuple(section.entries))


def diff_solutions(old: SolutionFile, new: SolutionFile) -> list[Difference]:
    """Compute the differences that turn ``old`` into ``new``.

    Projects are matched by GUID and global sections by name; header lines and
    the regenerated NestedProjects/ProjectConfigurationPlatforms sections are
    not compared.

    Returns:
        Additions and changes in ``new`` order, then removals in ``old`` order,
        projects before sections.
    """
    differences: list[Difference] = []

    removed: list[Difference] = []
    for project in new:
        previous = old.find_by_guid(project.guid)
        if previous is None:
            differences.append(
                Difference(
                    DifferenceKind.PROJECT_ADDED,
                    project.guid,
                    f"Project {project.full_name} added",
                    new=project.copy(),
                )
            )
        elif previous.content_key() != project.content_key():
            differences.append(
                Difference(
                    DifferenceKind.PROJECT_CHANGED,
                    project.guid,
                    f"Project {project.full_name}: {_describe_project_change(previous, project)}",
                    old=previous.copy(),
                    new=project.copy(),
                )
            )
    for project in old:
        if new.find_by_guid(project.guid) is None:
            removed.append(
                Difference(
                    DifferenceKind.PROJECT_REMOVED,
                    project.guid,
                    f"Project {project.full_name} removed",
                    old=project.copy(),
                )
            )
    differences.extend(removed)

    old_sections = {s.name: s for s in old.global_sections if s.name not in DERIVED_SECTIONS}
    new_sections = {s.name: s for s in new.global_sections if s.name not in DERIVED_SECTIONS}
    for name, section in new_sections.items():
        previous_section = old_sections.get(name)
        if previous_section is None:
            differences.append(
                Difference(
                    DifferenceKind.SECTION_ADDED,
                    name,
                    f"Global section {name} added",
                    new=section.copy(),
                )
            )
        elif _section_key(previous_section) != _section_key(section):
            differences.append(
                Difference(
                    DifferenceKind.SECTION_CHANGED,
                    name,
                    f"Global section {name} changed",
                    old=previous_section.copy(),
                    new=section.copy(),
                )
            )
    for name, section in old_sections.items():
        if name not in new_sections:
            differences.append(
                Difference(
                    DifferenceKind.SECTION_REMOVED,
                    name,
                    f"Global section {name} removed",
                    old=section.copy(),
                )
            )

    return differences


def apply_differences(solution: SolutionFile, differences: Iterable[Difference]) -> SolutionFile:
    """Merge differences into a copy of ``solution``.

    Portions of the solution not named by any difference are left untouched.
    Added projects and sections are appended; changed ones are replaced in
    place.
    """
    projects = [p.copy() for p in solution.projects]
    sections = [s.copy() for s in solution.global_sections]

    for difference in differences:
        kind = difference.kind
        if kind == DifferenceKind.PROJECT_ADDED:
            if not any(p.guid == difference.key for p in projects):
                projects.append(difference.new.copy())
        elif kind == DifferenceKind.PROJECT_REMOVED:
            projects = [p for p in projects if p.guid != difference.key]
        elif kind == DifferenceKind.PROJECT_CHANGED:
            projects = [
                difference.new.copy() if p.guid == difference.key else p for p in projects
            ]
        elif kind == DifferenceKind.SECTION_ADDED:
            if not any(s.name == difference.key for s in sections):
                sections.append(difference.new.copy())
        elif kind == DifferenceKind.SECTION_REMOVED:
            sections = [s for s in sections if s.name != difference.key]
        elif kind == DifferenceKind.SECTION_CHANGED:
            sections = [
                difference.new.copy() if s.name == difference.key else s for s in sections
            ]

    return SolutionFile(solution.path, solution.headers, projects, sections)
