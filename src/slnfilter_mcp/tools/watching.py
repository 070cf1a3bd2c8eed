"""Resync watcher MCP tools."""

from __future__ import annotations

from typing import TYPE_CHECKING

from mcp.server.fastmcp import Context

from ..filter import FilterSpec
from ..utils.project import resolve_tool_path

if TYPE_CHECKING:
    from mcp.server.fastmcp import FastMCP

    from ..filter import FilterSession


def register_watch_tools(server: "FastMCP", session: "FilterSession") -> None:
    """Register watcher tools with MCP server."""

    @server.tool()
    async def stop_watching(ctx: Context, filter_path: str) -> dict:
        """
        Stop keeping a filtered solution in sync with its source.

        Args:
            filter_path: Path to the .slnf file whose watcher should stop
        """
        try:
            path = await resolve_tool_path(ctx, filter_path)
            stopped = session.stop(FilterSpec(filter_path=path))
            return {"success": True, "data": {"stopped": stopped}}
        except Exception as e:
            return {"success": False, "error": str(e)}

    @server.tool()
    async def get_watch_status() -> dict:
        """
        Get the state of every resync watcher and the differences each one
        detected most recently.
        """
        try:
            return {"success": True, "data": session.to_dict()}
        except Exception as e:
            return {"success": False, "error": str(e)}
