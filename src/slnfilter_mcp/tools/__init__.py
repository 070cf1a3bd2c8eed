"""MCP Tools for solution filtering."""

from .filters import register_filter_tools
from .watching import register_watch_tools

__all__ = [
    "register_filter_tools",
    "register_watch_tools",
]
