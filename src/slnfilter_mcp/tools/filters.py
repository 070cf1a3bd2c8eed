"""Filter document and filtering MCP tools."""

from __future__ import annotations

import asyncio
import os
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from mcp.server.fastmcp import Context

from ..filter import FilterSpec, compute_closure
from ..solution import parse_solution
from ..utils.project import resolve_tool_path

if TYPE_CHECKING:
    from mcp.server.fastmcp import FastMCP

    from ..filter import FilterSession


def register_filter_tools(
    server: "FastMCP",
    session: "FilterSession",
    on_run: Callable[[Context], Awaitable[None]] | None = None,
) -> None:
    """Register filter tools with MCP server."""

    async def _load(ctx: Context, filter_path: str) -> FilterSpec:
        path = await resolve_tool_path(ctx, filter_path)
        return await asyncio.to_thread(FilterSpec.load, path)

    @server.tool()
    async def create_filter(
        ctx: Context,
        filter_path: str,
        source_solution: str,
        projects: list[str] | None = None,
        auto_resync: bool = False,
        copy_auxiliary_files: bool = False,
    ) -> dict:
        """
        Create (or overwrite) a solution filter document (.slnf).

        The source solution must live in the same directory as the filter;
        only its file name is stored.

        Args:
            filter_path: Where to write the filter, e.g. "App.slnf"
            source_solution: Full solution to filter, e.g. "Everything.sln"
            projects: Project full names to keep, e.g. ["Apps\\\\Web", "Tools"]
            auto_resync: Keep the filtered solution in sync after apply_filter
            copy_auxiliary_files: Copy ReSharper .DotSettings files next to the output
        """
        try:
            path = await resolve_tool_path(ctx, filter_path)
            source = await resolve_tool_path(ctx, source_solution)
            if os.path.dirname(source) != os.path.dirname(path):
                return {
                    "success": False,
                    "error": f"Source solution {source} must be in the filter's directory "
                    f"{os.path.dirname(path)}",
                }
            spec = FilterSpec(
                source_path=source,
                filter_path=path,
                auto_resync=auto_resync,
                copy_auxiliary_files=copy_auxiliary_files,
            )
            for name in projects or []:
                spec.add_project(name)
            await asyncio.to_thread(spec.save)
            return {"success": True, "data": spec.to_dict()}
        except Exception as e:
            return {"success": False, "error": str(e)}

    @server.tool()
    async def get_filter(ctx: Context, filter_path: str) -> dict:
        """
        Read a solution filter document.

        Args:
            filter_path: Path to the .slnf file
        """
        try:
            spec = await _load(ctx, filter_path)
            return {"success": True, "data": spec.to_dict()}
        except Exception as e:
            return {"success": False, "error": str(e)}

    @server.tool()
    async def add_projects(ctx: Context, filter_path: str, projects: list[str]) -> dict:
        """
        Add projects to a filter's keep list and save it.

        Names are not checked against the solution here; use preview_filter
        to see which ones resolve.

        Args:
            filter_path: Path to the .slnf file
            projects: Project full names to add
        """
        try:
            spec = await _load(ctx, filter_path)
            added = [name for name in projects if spec.add_project(name)]
            await asyncio.to_thread(spec.save)
            return {"success": True, "data": {"added": added, "filter": spec.to_dict()}}
        except Exception as e:
            return {"success": False, "error": str(e)}

    @server.tool()
    async def remove_projects(ctx: Context, filter_path: str, projects: list[str]) -> dict:
        """
        Remove projects from a filter's keep list and save it.

        Args:
            filter_path: Path to the .slnf file
            projects: Project full names to remove
        """
        try:
            spec = await _load(ctx, filter_path)
            removed = [name for name in projects if spec.remove_project(name)]
            await asyncio.to_thread(spec.save)
            return {"success": True, "data": {"removed": removed, "filter": spec.to_dict()}}
        except Exception as e:
            return {"success": False, "error": str(e)}

    @server.tool()
    async def set_filter_options(
        ctx: Context,
        filter_path: str,
        auto_resync: bool | None = None,
        copy_auxiliary_files: bool | None = None,
    ) -> dict:
        """
        Change a filter's flags and save it. Omitted flags keep their value.

        Args:
            filter_path: Path to the .slnf file
            auto_resync: Keep the filtered solution in sync after apply_filter
            copy_auxiliary_files: Copy ReSharper .DotSettings files next to the output
        """
        try:
            spec = await _load(ctx, filter_path)
            if auto_resync is not None:
                spec.auto_resync = auto_resync
            if copy_auxiliary_files is not None:
                spec.copy_auxiliary_files = copy_auxiliary_files
            await asyncio.to_thread(spec.save)
            return {"success": True, "data": spec.to_dict()}
        except Exception as e:
            return {"success": False, "error": str(e)}

    @server.tool()
    async def list_solution_projects(ctx: Context, solution_path: str) -> dict:
        """
        List the projects of a solution with their full names and dependencies.

        Full names are what filters use in their keep list.

        Args:
            solution_path: Path to the .sln file
        """
        try:
            path = await resolve_tool_path(ctx, solution_path)
            solution = await asyncio.to_thread(parse_solution, path)
            return {"success": True, "data": solution.to_dict()}
        except Exception as e:
            return {"success": False, "error": str(e)}

    @server.tool()
    async def preview_filter(ctx: Context, filter_path: str) -> dict:
        """
        Show which projects a filter would keep, without writing anything.

        Args:
            filter_path: Path to the .slnf file
        """
        try:
            spec = await _load(ctx, filter_path)
            graph = await asyncio.to_thread(session.load, spec)
            closure = compute_closure(graph, spec)
            data = closure.to_dict()
            data["outputPath"] = spec.output_path
            data["totalProjects"] = len(graph)
            return {"success": True, "data": data}
        except Exception as e:
            return {"success": False, "error": str(e)}

    @server.tool()
    async def apply_filter(ctx: Context, filter_path: str) -> dict:
        """
        Write the filtered solution next to the filter (App.slnf -> App.sln).

        Keeps every listed project, everything nested under it, and all of
        their dependencies. Unknown project names are reported as warnings.
        Starts a resync watcher when the filter has auto_resync set.

        Args:
            filter_path: Path to the .slnf file
        """
        try:
            spec = await _load(ctx, filter_path)
            artifact = await asyncio.to_thread(session.run, spec)
            if on_run is not None:
                await on_run(ctx)
            return {"success": True, "data": artifact.to_dict()}
        except Exception as e:
            return {"success": False, "error": str(e)}
