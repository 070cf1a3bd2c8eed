"""Solution file reader and writer.

Understands just enough of the .sln format to filter it:

    Project("{type}") = "Name", "Path\\Name.csproj", "{guid}"
        ProjectSection(ProjectDependencies) = postProject
            {dependency} = {dependency}
        EndProjectSection
    EndProject
    Global
        GlobalSection(Name) = preSolution
            key = value
        EndGlobalSection
    EndGlobal

Every other section is kept as opaque key/value entries. NestedProjects and
ProjectConfigurationPlatforms are distributed onto the projects when reading
and regenerated from them when writing.
"""

from __future__ import annotations

import logging
import os
import re

from ..errors import SourceGraphError
from .model import (
    NESTED_PROJECTS_SECTION,
    PROJECT_CONFIGURATIONS_SECTION,
    Project,
    Section,
    SolutionFile,
    normalize_guid,
)

logger = logging.getLogger(__name__)

PROJECT_DEPENDENCIES_SECTION = "ProjectDependencies"

PROJECT_PATTERN = re.compile(
    r'^Project\("(?P<type>\{[^}]+\})"\)\s*=\s*'
    r'"(?P<name>[^"]*)"\s*,\s*"(?P<path>[^"]*)"\s*,\s*"(?P<guid>\{[^}]+\})"$'
)

SECTION_PATTERN = re.compile(
    r"^(?P<kind>ProjectSection|GlobalSection)\((?P<name>[^)]+)\)\s*=\s*(?P<step>\w+)$"
)

# {guid}.Debug|Any CPU.ActiveCfg
CONFIGURATION_KEY_PATTERN = re.compile(r"^(?P<guid>\{[0-9A-Fa-f-]{36}\})\.(?P<rest>.+)$")

SOLUTION_ENCODING = "utf-8-sig"
SOLUTION_NEWLINE = "\r\n"


def _split_entry(path: str, line_number: int, line: str) -> tuple[str, str]:
    # File names may contain '=', the writer always emits " = "
    key, sep, value = line.partition(" = ")
    if not sep:
        key, sep, value = line.partition("=")
    if not sep:
        raise SourceGraphError(path, f"expected 'key = value', got '{line}'", line_number)
    return key.strip(), value.strip()


def _read_section(
    path: str,
    lines: list[str],
    index: int,
    name: str,
    step: str,
    end_marker: str,
) -> tuple[Section, int]:
    """Read section entries starting after the header line at ``index``."""
    section = Section(name, step)
    index += 1
    while index < len(lines):
        line = lines[index].strip()
        if line == end_marker:
            return section, index
        if line:
            section.entries.append(_split_entry(path, index + 1, line))
        index += 1
    raise SourceGraphError(path, f"section '{name}' is missing {end_marker}")


def parse_solution_text(text: str, path: str) -> SolutionFile:
    """Parse solution file content.

    Args:
        text: Solution file content
        path: Path reported in errors and stored on the solution

    Returns:
        Parsed solution

    Raises:
        SourceGraphError: If a block is malformed or unterminated
    """
    lines = text.removeprefix("\ufeff").splitlines()
    headers: list[str] = []
    projects: list[Project] = []
    global_sections: list[Section] = []
    nested: list[tuple[str, str]] = []
    configurations: list[tuple[str, str]] = []
    seen_body = False

    index = 0
    while index < len(lines):
        line = lines[index].strip()

        if line.startswith("Project("):
            seen_body = True
            match = PROJECT_PATTERN.match(line)
            if not match:
                raise SourceGraphError(path, f"malformed project line '{line}'", index + 1)
            project = Project(
                guid=normalize_guid(match.group("guid")),
                type_guid=normalize_guid(match.group("type")),
                name=match.group("name"),
                relative_path=match.group("path"),
            )
            index += 1
            while True:
                if index >= len(lines):
                    raise SourceGraphError(path, f"project '{project.name}' is missing EndProject")
                inner = lines[index].strip()
                if inner == "EndProject":
                    break
                section_match = SECTION_PATTERN.match(inner)
                if section_match and section_match.group("kind") == "ProjectSection":
                    section, index = _read_section(
                        path,
                        lines,
                        index,
                        section_match.group("name"),
                        section_match.group("step"),
                        "EndProjectSection",
                    )
                    if section.name == PROJECT_DEPENDENCIES_SECTION:
                        project.dependency_guids.extend(normalize_guid(k) for k, _ in section.entries)
                    else:
                        project.sections.append(section)
                elif inner:
                    raise SourceGraphError(path, f"unexpected line in project '{inner}'", index + 1)
                index += 1
            projects.append(project)

        elif line == "Global":
            seen_body = True
            index += 1
            while True:
                if index >= len(lines):
                    raise SourceGraphError(path, "Global block is missing EndGlobal")
                inner = lines[index].strip()
                if inner == "EndGlobal":
                    break
                section_match = SECTION_PATTERN.match(inner)
                if section_match and section_match.group("kind") == "GlobalSection":
                    section, index = _read_section(
                        path,
                        lines,
                        index,
                        section_match.group("name"),
                        section_match.group("step"),
                        "EndGlobalSection",
                    )
                    if section.name == NESTED_PROJECTS_SECTION:
                        nested.extend(section.entries)
                        section.entries = []
                    elif section.name == PROJECT_CONFIGURATIONS_SECTION:
                        configurations.extend(section.entries)
                        section.entries = []
                    global_sections.append(section)
                elif inner:
                    raise SourceGraphError(path, f"unexpected line in Global '{inner}'", index + 1)
                index += 1

        elif line and not seen_body:
            headers.append(line)

        elif line:
            raise SourceGraphError(path, f"unexpected line '{line}'", index + 1)

        index += 1

    by_guid = {p.guid: p for p in projects}
    if len(by_guid) != len(projects):
        raise SourceGraphError(path, "duplicate project GUID")

    for child, parent in nested:
        project = by_guid.get(normalize_guid(child))
        if project is None:
            logger.debug(f"{path}: NestedProjects entry for unknown project {child}")
            continue
        project.parent_guid = normalize_guid(parent)

    for key, value in configurations:
        match = CONFIGURATION_KEY_PATTERN.match(key)
        project = by_guid.get(normalize_guid(match.group("guid"))) if match else None
        if project is None:
            logger.debug(f"{path}: configuration entry for unknown project {key}")
            continue
        project.configurations.append((match.group("rest"), value))

    return SolutionFile(path, headers, projects, global_sections)


def parse_solution(path: str) -> SolutionFile:
    """Read and parse a solution file.

    Raises:
        SourceGraphError: If the file is missing, unreadable or malformed
    """
    path = os.path.abspath(path)
    try:
        with open(path, encoding=SOLUTION_ENCODING) as f:
            text = f.read()
    except OSError as e:
        raise SourceGraphError(path, e.strerror or str(e)) from e
    except UnicodeDecodeError as e:
        raise SourceGraphError(path, f"not valid UTF-8: {e}") from e
    return parse_solution_text(text, path)


def _section_lines(kind: str, section: Section, entries: list[tuple[str, str]], indent: str) -> list[str]:
    lines = [f"{indent}{kind}({section.name}) = {section.step}"]
    lines.extend(f"{indent}\t{key} = {value}" for key, value in entries)
    lines.append(f"{indent}End{kind}")
    return lines


def format_solution(solution: SolutionFile) -> str:
    """Render a solution to text with ``\\n`` line endings."""
    lines = [""]
    lines.extend(solution.headers)

    for project in solution.projects:
        lines.append(
            f'Project("{project.type_guid}") = "{project.name}", '
            f'"{project.relative_path}", "{project.guid}"'
        )
        for section in project.sections:
            lines.extend(_section_lines("ProjectSection", section, section.entries, "\t"))
        if project.dependency_guids:
            dependencies = Section(PROJECT_DEPENDENCIES_SECTION, "postProject")
            entries = [(guid, guid) for guid in project.dependency_guids]
            lines.extend(_section_lines("ProjectSection", dependencies, entries, "\t"))
        lines.append("EndProject")

    generated = {
        PROJECT_CONFIGURATIONS_SECTION: [
            (f"{project.guid}.{key}", value)
            for project in solution.projects
            for key, value in project.configurations
        ],
        NESTED_PROJECTS_SECTION: [
            (project.guid, project.parent_guid)
            for project in solution.projects
            if project.parent_guid and solution.find_by_guid(project.parent_guid) is not None
        ],
    }
    default_steps = {
        PROJECT_CONFIGURATIONS_SECTION: "postSolution",
        NESTED_PROJECTS_SECTION: "preSolution",
    }

    lines.append("Global")
    for section in solution.global_sections:
        if section.name in generated:
            entries = generated.pop(section.name)
            if entries:
                lines.extend(_section_lines("GlobalSection", section, entries, "\t"))
        else:
            lines.extend(_section_lines("GlobalSection", section, section.entries, "\t"))
    for name, entries in generated.items():
        if entries:
            lines.extend(
                _section_lines("GlobalSection", Section(name, default_steps[name]), entries, "\t")
            )
    lines.append("EndGlobal")

    return "\n".join(lines) + "\n"


def write_solution(solution: SolutionFile, path: str | None = None) -> str:
    """Write a solution file with CRLF line endings and a UTF-8 BOM.

    Args:
        solution: Solution to write
        path: Destination (defaults to ``solution.path``)

    Returns:
        Absolute path written
    """
    target = path or solution.path
    if not target:
        raise ValueError("Solution has no path to write to")
    target = os.path.abspath(target)
    with open(target, "w", encoding=SOLUTION_ENCODING, newline=SOLUTION_NEWLINE) as f:
        f.write(format_solution(solution))
    logger.debug(f"Wrote solution {target} ({len(solution)} projects)")
    return target
