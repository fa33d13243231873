"""Entry point for hookmake."""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import Iterator

from .build.orchestrator import BuildOrchestrator
from .build.runner import run_command
from .build.state import BuildError
from .config import CONFIG_FILENAME, ConfigError, load_config
from .host import EventBus


def find_service_root(root: str | Path | None = None) -> str:
    """Find the service root by walking up from CWD.

    Searches for markers in this order:
    1. hookmake.json (plugin config)
    2. Makefile
    3. .git (git root as fallback)

    Falls back to CWD if no marker is found.

    Args:
        root: If provided, constrains search to this directory and below.
              Search stops at this boundary.

    Returns:
        Absolute path to service root
    """
    current = Path.cwd().resolve()
    boundary = Path(root).resolve() if root is not None else None

    def ancestors() -> Iterator[Path]:
        """Yield current directory and ancestors up to boundary."""
        yield current
        if boundary is not None and current == boundary:
            return
        for parent in current.parents:
            yield parent
            if boundary is not None and parent == boundary:
                return

    for marker in (CONFIG_FILENAME, "Makefile", ".git"):
        for directory in ancestors():
            if (directory / marker).exists():
                return str(directory)

    return str(current)


def configure_logging(verbose: bool = False) -> None:
    """Configure logging based on environment.

    --verbose only lowers hookmake's own loggers; libraries stay at LOG_LEVEL.
    """
    level = os.environ.get("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        stream=sys.stderr,
    )
    if verbose:
        logging.getLogger("hookmake").setLevel(logging.DEBUG)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="hookmake - run make on host lifecycle events"
    )
    parser.add_argument(
        "--project",
        type=str,
        default=None,
        help="Service root. Relative build file and watch paths resolve "
        "against it. Auto-detected from CWD if omitted.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help=f"Path to config file (default: <project>/{CONFIG_FILENAME})",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        default=False,
        help="Show verbose plugin messages.",
    )
    commands = parser.add_subparsers(dest="command", required=True)

    fire = commands.add_parser("fire", help="Fire host events in order")
    fire.add_argument("events", nargs="+", help="Event names")

    commands.add_parser("serve", help="Run the MCP server over stdio")

    return parser.parse_args(argv)


async def fire_events(orchestrator: BuildOrchestrator, bus: EventBus, events: list[str]) -> int:
    """Fire events in order; keep running while a watcher is armed.

    Returns:
        Process exit code
    """
    for event in events:
        try:
            fatal = await bus.fire(event)
        except BuildError as e:
            logging.getLogger(__name__).error(f"{event} failed: {e}")
            orchestrator.close()
            return 1
        if fatal is not None:
            orchestrator.close()
            return fatal.exit_code

    if orchestrator.is_watching:
        try:
            await asyncio.Event().wait()
        finally:
            orchestrator.close()
    return 0


async def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    configure_logging(args.verbose)
    logger = logging.getLogger(__name__)

    project_path = args.project or find_service_root()
    config_path = args.config or os.path.join(project_path, CONFIG_FILENAME)

    try:
        settings = load_config(config_path)
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    runner = run_command
    if args.command == "serve":
        from .server import serve_runner

        runner = serve_runner()

    bus = EventBus()
    orchestrator = BuildOrchestrator(
        settings.build,
        project_path,
        environment=settings.environment,
        notify=bus.emit,
        runner=runner,
    )
    bus.attach(orchestrator.hooks)

    if args.command == "serve":
        from .server import create_server

        logger.info(f"Starting hookmake MCP server (project: {project_path})...")
        mcp = create_server(orchestrator, bus)
        try:
            await mcp.run_stdio_async()
        except Exception:
            logger.exception("Server error")
            raise
        finally:
            orchestrator.close()
            logger.info("Server stopped")
        return 0

    return await fire_events(orchestrator, bus, args.events)


def run() -> None:
    """Run hookmake and exit with its status."""
    try:
        code = asyncio.run(main())
    except KeyboardInterrupt:
        code = 0
    sys.exit(code)


if __name__ == "__main__":
    run()
