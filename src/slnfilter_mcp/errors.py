"""Solution filtering exceptions."""

from __future__ import annotations


class FilterError(Exception):
    """Base exception for solution filtering errors."""

    pass


class MalformedFilterError(FilterError):
    """Raised when a filter document cannot be turned into a FilterSpec."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Malformed filter file '{path}': {reason}")
        self.path = path
        self.reason = reason


class SourceGraphError(FilterError):
    """Raised when a solution file is missing or malformed."""

    def __init__(self, path: str, reason: str, line: int | None = None):
        location = f"{path}({line})" if line is not None else path
        super().__init__(f"Cannot read solution '{location}': {reason}")
        self.path = path
        self.reason = reason
        self.line = line


class WatcherIOError(FilterError):
    """Raised when file system monitoring cannot be attached."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"Cannot watch '{path}': {reason}")
        self.path = path
        self.reason = reason


class ProjectNotFoundWarning(UserWarning):
    """A keep-entry does not match any project of the source solution."""

    def __init__(self, project_name: str):
        super().__init__(f"Project '{project_name}' not found in source solution")
        self.project_name = project_name

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ProjectNotFoundWarning):
            return NotImplemented
        return self.project_name == other.project_name

    def __hash__(self) -> int:
        return hash(self.project_name)
