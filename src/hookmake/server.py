"""MCP server exposing the orchestrator to MCP clients."""

import asyncio
import functools
import json
import logging
from typing import Any

from mcp.server.fastmcp import Context, FastMCP

from .build.hooks import BUILD_COMPLETED
from .build.orchestrator import BuildOrchestrator, Runner
from .build.runner import run_command
from .host import EventBus

logger = logging.getLogger(__name__)

STATE_RESOURCE = "build://state"

STDERR_FILENO = 2


def serve_runner() -> Runner:
    """Command runner for serving over stdio.

    stdin and stdout carry JSON-RPC frames, so builds get no stdin and their
    stdout is sent to stderr.
    """
    return functools.partial(
        run_command, stdin=asyncio.subprocess.DEVNULL, stdout=STDERR_FILENO
    )


def create_server(orchestrator: BuildOrchestrator, bus: EventBus) -> FastMCP:
    """Create and configure the MCP server.

    Args:
        orchestrator: Orchestrator whose hooks are attached to bus
        bus: Host event bus; completion events are relayed to clients
    """
    mcp = FastMCP("hookmake")

    # Client sessions seen so far; background rebuilds have no request context
    sessions: list[Any] = []

    from pydantic import AnyUrl

    def remember(ctx: Context) -> None:
        try:
            session = ctx.session
        except Exception:
            return
        if session is not None and session not in sessions:
            sessions.append(session)

    async def notify_state_changed(event: str) -> None:
        """Tell every known client that build://state has changed."""
        for session in list(sessions):
            try:
                await session.send_resource_updated(AnyUrl(STATE_RESOURCE))
            except Exception:
                logger.debug("Dropping unreachable client session")
                sessions.remove(session)

    bus.on(BUILD_COMPLETED, notify_state_changed)

    @mcp.tool()
    async def fire_event(ctx: Context, event: str) -> dict:
        """
        Fire a host lifecycle event.

        Runs whatever hook is bound to the event: the built-in
        "before:offline:start" and "before:package:createDeploymentArtifacts"
        hooks build the configured target, user bindings build their own.

        Args:
            event: Event name, e.g. "before:offline:start"
        """
        remember(ctx)
        try:
            fatal = await bus.fire(event)
            if fatal is not None:
                return {"success": False, "error": str(fatal.error), "data": fatal.to_dict()}
            return {"success": True, "data": orchestrator.to_dict()}
        except Exception as e:
            return {"success": False, "error": str(e)}

    @mcp.tool()
    async def build(ctx: Context, watch: bool = False) -> dict:
        """
        Build the configured target.

        Args:
            watch: Keep watching the build file and watch paths, rebuilding on change
        """
        remember(ctx)
        try:
            outcome = await orchestrator.build(watch)
            return {"success": True, "data": outcome.to_dict()}
        except Exception as e:
            return {"success": False, "error": str(e)}

    @mcp.tool()
    async def make(ctx: Context, target: str) -> dict:
        """
        Build a single target without watching.

        Args:
            target: Build tool target name
        """
        remember(ctx)
        try:
            outcome = await orchestrator.make(target)
            return {"success": True, "data": outcome.to_dict()}
        except Exception as e:
            return {"success": False, "error": str(e)}

    @mcp.tool()
    async def get_build_state(ctx: Context) -> dict:
        """
        Get the current build state, hooks and last result.
        """
        remember(ctx)
        return {"success": True, "data": orchestrator.to_dict()}

    @mcp.resource(STATE_RESOURCE, mime_type="application/json")
    async def build_state_resource() -> str:
        """Current build state (JSON).

        Contains: state, build file, watched paths, hooks, last outcome/error.
        Updates when: a build completes.
        """
        return json.dumps(orchestrator.to_dict(), indent=2)

    logger.info("hookmake MCP server initialized")
    return mcp
