"""Project root detection.

Tools accept filter and solution paths relative to a project root, taken from
the first source that yields a directory:
1. MCP roots announced by the client
2. SLNFILTER_PROJECT_ROOT / MCP_PROJECT_ROOT environment variables
3. The path configured at startup (--project, or --project-from-cwd search)
"""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING
from urllib.parse import unquote, urlparse

if TYPE_CHECKING:
    from mcp.server.fastmcp import Context

logger = logging.getLogger(__name__)

ROOT_MARKERS = ("*.slnf", "*.sln")


@dataclass
class ProjectRootConfig:
    """Startup settings for project root detection."""

    explicit_project_path: Path | None = None
    """Root chosen on the command line."""

    env_var_names: tuple[str, ...] = field(
        default_factory=lambda: ("SLNFILTER_PROJECT_ROOT", "MCP_PROJECT_ROOT")
    )
    """Environment variables consulted before the configured path."""


_config = ProjectRootConfig()


def configure_project_root(explicit_project_path: str | Path | None = None) -> None:
    """Set the root used when neither the client nor the environment names one."""
    global _config
    _config = ProjectRootConfig(
        explicit_project_path=Path(explicit_project_path) if explicit_project_path else None,
    )
    logger.debug(f"Project root configured: {explicit_project_path}")


def parse_file_uri(uri: str) -> Path | None:
    """Convert a file:// URI announced as an MCP root to an absolute path.

    Returns:
        The path, or None for other schemes and relative results
    """
    try:
        parsed = urlparse(str(uri))
    except ValueError as e:
        logger.warning(f"Failed to parse file URI '{uri}': {e}")
        return None

    if parsed.scheme != "file":
        logger.warning(f"Not a file URI: {uri}")
        return None

    path_str = unquote(parsed.path)
    if sys.platform == "win32":
        # "/C:/src" -> "C:/src"
        if path_str.startswith("/") and len(path_str) > 2 and path_str[2] == ":":
            path_str = path_str[1:]
        if parsed.netloc:
            path_str = f"\\\\{parsed.netloc}{path_str}"

    path = Path(path_str)
    if not path.is_absolute():
        logger.warning(f"Parsed path is not absolute: {path}")
        return None
    return path


def find_solution_root(start_dir: Path | None = None) -> Path:
    """Walk up from ``start_dir`` (default: CWD) to the nearest solution directory.

    A directory holding a filter document wins over one holding only a
    solution; a git checkout root is the last resort, then ``start_dir``.
    """
    start = (start_dir or Path.cwd()).resolve()
    candidates = [start, *start.parents]

    for pattern in ROOT_MARKERS:
        for directory in candidates:
            if any(directory.glob(pattern)):
                return directory

    for directory in candidates:
        if (directory / ".git").exists():
            return directory
    return start


def configured_project_root() -> Path | None:
    """Project root from the environment or startup configuration."""
    for env_var in _config.env_var_names:
        value = os.environ.get(env_var)
        if not value:
            continue
        path = Path(value)
        if path.is_dir():
            return path
        logger.warning(f"{env_var}={value} is not a directory, ignoring")

    path = _config.explicit_project_path
    if path is not None:
        if path.is_dir():
            return path
        logger.warning(f"Configured project root {path} is not a directory")
    return None


async def get_project_root(ctx: Context | None = None) -> Path | None:
    """Project root for a tool call, preferring the client's MCP roots."""
    if ctx is not None:
        try:
            roots = await ctx.list_roots()
        except Exception as e:
            # Roots are optional in the protocol
            logger.info(f"Could not get roots from client: {e}")
            roots = None
        if roots:
            path = parse_file_uri(str(roots[0].uri))
            if path and path.is_dir():
                logger.debug(f"Using project root from MCP client: {path}")
                return path
            logger.warning(f"MCP root path invalid or not accessible: {path}")

    return configured_project_root()


async def resolve_tool_path(ctx: Context | None, path: str) -> str:
    """Resolve a path given to an MCP tool against the current project root."""
    return resolve_in_root(path, await get_project_root(ctx))


def resolve_in_root(path: str, root: Path | None) -> str:
    """Resolve ``path`` against ``root`` and ensure it stays inside it.

    Args:
        path: Absolute path, or path relative to ``root``
        root: Project root; when None, only absolutizes against CWD

    Returns:
        Absolute path

    Raises:
        ValueError: If the path escapes the project root
    """
    candidate = Path(path)
    if root is not None and not candidate.is_absolute():
        candidate = root / candidate
    resolved = candidate.resolve()
    if root is not None:
        root_resolved = root.resolve()
        if resolved != root_resolved and root_resolved not in resolved.parents:
            raise ValueError(f"Path {path} is outside project root {root}")
    return str(resolved)
