"""Utility modules for slnfilter-mcp."""

from .project import configure_project_root, find_solution_root, resolve_tool_path

__all__ = [
    "configure_project_root",
    "find_solution_root",
    "resolve_tool_path",
]
