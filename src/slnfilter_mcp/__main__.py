"""Entry point for slnfilter-mcp server."""

import argparse
import asyncio
import logging
import os
import sys

from .server import ACCEPT_POLICIES, create_server, get_session
from .utils.project import configure_project_root, find_solution_root


def configure_logging() -> None:
    """Configure logging based on environment."""
    level = os.environ.get("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    # watchdog logs every inotify event at DEBUG
    logging.getLogger("watchdog").setLevel(logging.WARNING)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Solution Filter MCP Server - reduce .sln files to the projects you need"
    )
    parser.add_argument(
        "--project",
        type=str,
        default=None,
        help="Project root path. Relative filter and solution paths are resolved "
        "against it and paths outside it are rejected.",
    )
    parser.add_argument(
        "--project-from-cwd",
        action="store_true",
        default=False,
        help="Auto-detect project from current working directory. "
        "Searches upward for .slnf, .sln, or .git markers. "
        "Cannot be used with --project.",
    )
    parser.add_argument(
        "--accept",
        choices=sorted(ACCEPT_POLICIES),
        default="all",
        help="How resync watchers treat detected differences: "
        "'all' merges them into the filtered solution, 'none' only reports them.",
    )
    return parser.parse_args(argv)


async def main() -> None:
    """Main entry point."""
    configure_logging()
    logger = logging.getLogger(__name__)

    args = parse_args()

    if args.project_from_cwd:
        if args.project is not None:
            logger.error("--project-from-cwd cannot be used with --project")
            sys.exit(1)
        project_path = str(find_solution_root())
        logger.info(f"Auto-detected project root: {project_path}")
    else:
        project_path = args.project or os.getcwd()

    configure_project_root(project_path)
    logger.info(f"Starting Solution Filter MCP Server (project: {project_path})...")

    mcp = create_server(args.accept)

    try:
        await mcp.run_stdio_async()
    except Exception:
        logger.exception("Server error")
        raise
    finally:
        stopped = get_session().stop_all()
        if stopped:
            logger.info(f"Stopped {stopped} watchers")
        logger.info("Server stopped")


def run() -> None:
    """Run the server."""
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
