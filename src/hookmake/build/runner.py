"""External command execution.

Runs the build tool with the parent's stdin/stdout/stderr attached so its
output reaches the terminal unbuffered. Hosts that own stdout for a protocol
(the MCP stdio server) redirect the child's stdin and stdout instead. Success
is exit status 0; anything else raises a ``BuildError`` subclass.
"""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
from collections.abc import Mapping, Sequence
from typing import IO, Any

from ..log import PluginLog
from .state import CommandExitError, CommandSpawnError, ExecutableNotFoundError

logger = logging.getLogger(__name__)

Environment = Mapping[str, str | None]


def resolve_executable(command: str, environment: Environment | None = None) -> str:
    """Resolve a command name to an absolute path using PATH lookup.

    Args:
        command: Executable name or path
        environment: Environment whose PATH is searched (process env if None)

    Returns:
        Absolute path to the executable

    Raises:
        ExecutableNotFoundError: If the command is not found
    """
    search_path = None
    if environment is not None:
        search_path = environment.get("PATH")
    resolved = shutil.which(command, path=search_path)
    if resolved is None:
        raise ExecutableNotFoundError(command)
    return os.path.abspath(resolved)


def _child_environment(environment: Environment) -> dict[str, str]:
    """Drop unset variables; subprocess needs plain strings."""
    return {key: value for key, value in environment.items() if value is not None}


async def run_command(
    argv: Sequence[str],
    workdir: str,
    environment: Environment,
    log: PluginLog | None = None,
    *,
    stdin: int | IO[Any] | None = None,
    stdout: int | IO[Any] | None = None,
) -> None:
    """Run a command to completion, inheriting stdio unless redirected.

    Args:
        argv: Executable name followed by literal arguments
        workdir: Working directory for the child
        environment: Complete child environment
        log: Plugin log for the "Running command" line
        stdin: Child stdin (None shares ours)
        stdout: Child stdout (None shares ours)

    Raises:
        ValueError: If argv is empty
        ExecutableNotFoundError: If argv[0] cannot be resolved (nothing spawned)
        CommandSpawnError: If the process could not be started
        CommandExitError: If the process exited with a non-zero status
    """
    if not argv:
        raise ValueError("argv must contain at least the executable name")

    command = argv[0]
    executable = resolve_executable(command, environment)

    if log is not None:
        log.verbose(f"Running command (in {workdir}): {' '.join(argv)}")

    try:
        # stderr always shared; stdin/stdout only when left as None
        process = await asyncio.create_subprocess_exec(
            executable,
            *argv[1:],
            cwd=workdir,
            env=_child_environment(environment),
            stdin=stdin,
            stdout=stdout,
        )
    except OSError as e:
        raise CommandSpawnError(command, e) from e

    exit_code = await process.wait()
    logger.debug(f"{command} finished with exit code {exit_code}")

    if exit_code != 0:
        raise CommandExitError(command, exit_code)
