"""MCP Server for solution filtering."""

from __future__ import annotations

import json
import logging

from mcp.server.fastmcp import Context, FastMCP
from pydantic import AnyUrl

from .filter import AcceptDifference, FilterSession, accept_all, reject_all
from .solution import Difference
from .tools import register_filter_tools, register_watch_tools

logger = logging.getLogger(__name__)

ACCEPT_POLICIES: dict[str, AcceptDifference] = {
    "all": accept_all,
    "none": reject_all,
}

# Global filter session (single client mode)
_session: FilterSession | None = None


def _logging_policy(policy: AcceptDifference) -> AcceptDifference:
    """Wrap an acceptance policy so every decision is logged."""

    def accept(difference: Difference) -> bool:
        decision = policy(difference)
        logger.info(f"{'Accepted' if decision else 'Rejected'}: {difference.description}")
        return decision

    return accept


def get_session(accept_policy: str = "all") -> FilterSession:
    """Get or create the filter session.

    Note: Single client mode - the acceptance policy is fixed by the first call.
    """
    global _session
    if _session is None:
        if accept_policy not in ACCEPT_POLICIES:
            raise ValueError(
                f"Unknown accept policy '{accept_policy}', expected one of {sorted(ACCEPT_POLICIES)}"
            )
        _session = FilterSession(_logging_policy(ACCEPT_POLICIES[accept_policy]))
    return _session


def create_server(accept_policy: str = "all") -> FastMCP:
    """Create and configure the MCP server.

    Args:
        accept_policy: How server-started watchers treat detected differences:
            "all" merges them, "none" only reports them
    """
    mcp = FastMCP("slnfilter-mcp")
    session = get_session(accept_policy)

    async def notify_run_completed(ctx: Context) -> None:
        """Notify client that filter resources have changed."""
        try:
            if ctx.session:
                await ctx.session.send_resource_updated(AnyUrl("slnfilter://last-run"))
                await ctx.session.send_resource_updated(AnyUrl("slnfilter://watchers"))
        except Exception:
            pass  # Notification failure shouldn't break the tool

    register_filter_tools(mcp, session, on_run=notify_run_completed)
    register_watch_tools(mcp, session)

    # ============== Prompts (slash commands) ==============

    @mcp.prompt(
        name="filter",
        description="Workflow guide for creating and applying solution filters",
    )
    def filter_prompt() -> list[dict]:
        """Start here when reducing a large .sln to the projects you work on."""
        return [
            {
                "role": "user",
                "content": """# Solution Filter Guide

A filter (.slnf) lists the projects to keep from a full solution (.sln).
Applying it writes a smaller solution next to the filter (App.slnf -> App.sln)
holding those projects, everything nested under them, and all of their
dependencies.

## 1. Discover Project Names
```
list_solution_projects(solution_path="Everything.sln")
```
Use the `fullName` values (solution folders joined with backslashes).

## 2. Create the Filter
```
create_filter(
    filter_path="App.slnf",
    source_solution="Everything.sln",   # must sit next to the filter
    projects=["Apps\\\\Web", "Tools\\\\Cli"],
    auto_resync=True,                    # keep App.sln in sync afterwards
)
```

## 3. Check, Then Apply
```
preview_filter(filter_path="App.slnf")   # kept projects + unknown names
apply_filter(filter_path="App.slnf")     # writes App.sln
```
Report any warnings to the user: they are names that matched no project.

## 4. Maintain
```
add_projects(filter_path="App.slnf", projects=["Libs\\\\Extra"])
remove_projects(filter_path="App.slnf", projects=["Tools\\\\Cli"])
get_watch_status()                       # resync state and last differences
stop_watching(filter_path="App.slnf")
```
""",
            }
        ]

    # ============== Resources ==============

    @mcp.resource("slnfilter://watchers", mime_type="application/json")
    async def watchers_resource() -> str:
        """Resync watchers (JSON).

        Contains: state, watched paths, evaluation count, last differences.
        Updates when: apply_filter starts a watcher, a watched file changes.
        """
        watchers = {path: watcher.to_dict() for path, watcher in session.watchers.items()}
        return json.dumps(watchers, indent=2)

    @mcp.resource("slnfilter://last-run", mime_type="application/json")
    async def last_run_resource() -> str:
        """Most recent apply_filter result (JSON).

        Contains: output path, kept projects, warnings, watcher status.
        Updates when: apply_filter completes.
        """
        artifact = session.last_artifact
        return json.dumps(artifact.to_dict() if artifact else None, indent=2)

    logger.info("Solution filter MCP Server initialized")
    return mcp
