"""Filter document (.slnf) model and persistence.

A filter document names a source solution and the projects to keep:

    <Config>
      <SourceSLN>Full.sln</SourceSLN>
      <WatchForChangesOnFilteredSolution>True</WatchForChangesOnFilteredSolution>
      <CopyReSharperFiles>False</CopyReSharperFiles>
      <ProjectToKeep>Folder\\App</ProjectToKeep>
    </Config>

The source solution is stored as a bare file name and resolved against the
filter document's own directory, so a filter can be moved together with its
solution.
"""

from __future__ import annotations

import logging
import os
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Any

from ..errors import MalformedFilterError

logger = logging.getLogger(__name__)

FILTER_EXTENSION = ".slnf"
SOLUTION_EXTENSION = ".sln"

ROOT_ELEMENT = "Config"
SOURCE_ELEMENT = "SourceSLN"
AUTO_RESYNC_ELEMENT = "WatchForChangesOnFilteredSolution"
COPY_AUXILIARY_ELEMENT = "CopyReSharperFiles"
PROJECT_ELEMENT = "ProjectToKeep"

XML_DECLARATION = '<?xml version="1.0" encoding="utf-8"?>\n'


def derive_output_path(filter_path: str) -> str:
    """Path of the reduced solution produced by a filter document.

    ``C:/proj/app.slnf`` -> ``C:/proj/app.sln``.
    """
    root, _ = os.path.splitext(filter_path)
    return root + SOLUTION_EXTENSION


def _file_name(path: str) -> str:
    """File-name component, accepting both separators."""
    return os.path.basename(path.replace("\\", "/"))


def _format_bool(value: bool) -> str:
    return "True" if value else "False"


def _parse_bool(element: ET.Element | None, filter_path: str) -> bool:
    if element is None:
        return False
    token = (element.text or "").strip().lower()
    if token == "true":
        return True
    if token == "false":
        return False
    raise MalformedFilterError(
        filter_path, f"<{element.tag}> must be True or False, got '{element.text}'"
    )


@dataclass
class FilterSpec:
    """What to keep from a source solution and how to keep it in sync."""

    source_path: str | None = None
    """Absolute path to the full solution."""

    filter_path: str | None = None
    """Absolute path of the filter document."""

    projects_to_keep: list[str] = field(default_factory=list)
    """Project full names seeding the closure, in insertion order."""

    auto_resync: bool = False
    """Start a watcher after filtering."""

    copy_auxiliary_files: bool = False
    """Mirror the source solution's ReSharper settings next to the output."""

    @property
    def output_path(self) -> str:
        """Reduced solution path, derived from ``filter_path``."""
        if not self.filter_path:
            raise ValueError("Filter has no path; cannot derive output path")
        return derive_output_path(self.filter_path)

    def add_project(self, full_name: str) -> bool:
        """Add a keep-entry. Returns False if it was already present."""
        if full_name in self.projects_to_keep:
            return False
        self.projects_to_keep.append(full_name)
        return True

    def remove_project(self, full_name: str) -> bool:
        """Remove a keep-entry. Returns True if found."""
        original_count = len(self.projects_to_keep)
        self.projects_to_keep = [p for p in self.projects_to_keep if p != full_name]
        return len(self.projects_to_keep) < original_count

    @classmethod
    def load(cls, filter_path: str) -> FilterSpec:
        """Read a filter document.

        Args:
            filter_path: Path to the filter document

        Returns:
            Fully populated FilterSpec

        Raises:
            MalformedFilterError: If the document is not valid XML, has no
                <Config> root or <SourceSLN>, or holds an invalid flag
            OSError: If the file cannot be read
        """
        filter_path = os.path.abspath(filter_path)
        with open(filter_path, "rb") as f:
            content = f.read()
        return cls.from_xml(content, filter_path)

    @classmethod
    def from_xml(cls, content: str | bytes, filter_path: str) -> FilterSpec:
        """Build a FilterSpec from document content located at ``filter_path``."""
        filter_path = os.path.abspath(filter_path)
        try:
            root = ET.fromstring(content)
        except ET.ParseError as e:
            raise MalformedFilterError(filter_path, f"invalid XML: {e}") from e

        if root.tag != ROOT_ELEMENT:
            raise MalformedFilterError(filter_path, f"missing <{ROOT_ELEMENT}> root element")

        source_node = root.find(SOURCE_ELEMENT)
        source_name = _file_name((source_node.text or "").strip()) if source_node is not None else ""
        if not source_name:
            raise MalformedFilterError(filter_path, f"missing <{SOURCE_ELEMENT}>")

        spec = cls(
            source_path=os.path.join(os.path.dirname(filter_path), source_name),
            filter_path=filter_path,
            auto_resync=_parse_bool(root.find(AUTO_RESYNC_ELEMENT), filter_path),
            copy_auxiliary_files=_parse_bool(root.find(COPY_AUXILIARY_ELEMENT), filter_path),
        )
        for node in root.findall(PROJECT_ELEMENT):
            spec.projects_to_keep.append(node.text or "")

        logger.debug(
            f"Loaded filter {filter_path}: source={spec.source_path}, "
            f"{len(spec.projects_to_keep)} projects"
        )
        return spec

    def to_xml(self) -> str:
        """Render the filter document."""
        if not self.source_path:
            raise ValueError("Filter has no source solution")

        root = ET.Element(ROOT_ELEMENT)
        ET.SubElement(root, SOURCE_ELEMENT).text = _file_name(self.source_path)
        ET.SubElement(root, AUTO_RESYNC_ELEMENT).text = _format_bool(self.auto_resync)
        ET.SubElement(root, COPY_AUXILIARY_ELEMENT).text = _format_bool(self.copy_auxiliary_files)
        for full_name in self.projects_to_keep:
            ET.SubElement(root, PROJECT_ELEMENT).text = full_name

        ET.indent(root)
        return ET.tostring(root, encoding="unicode")

    def save(self, filter_path: str | None = None) -> str:
        """Write the filter document.

        Args:
            filter_path: New location ("save as"). Defaults to ``filter_path``.

        Returns:
            Absolute path written
        """
        target = filter_path or self.filter_path
        if not target:
            raise ValueError("Filter has no path to save to")
        target = os.path.abspath(target)
        content = self.to_xml()
        with open(target, "w", encoding="utf-8") as f:
            f.write(XML_DECLARATION)
            f.write(content)
            f.write("\n")
        self.filter_path = target
        logger.info(f"Saved filter {target}")
        return target

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "filterPath": self.filter_path,
            "sourcePath": self.source_path,
            "outputPath": derive_output_path(self.filter_path) if self.filter_path else None,
            "projectsToKeep": list(self.projects_to_keep),
            "autoResync": self.auto_resync,
            "copyAuxiliaryFiles": self.copy_auxiliary_files,
        }


def load_filter(filter_path: str) -> FilterSpec:
    """Read a filter document. See FilterSpec.load."""
    return FilterSpec.load(filter_path)
