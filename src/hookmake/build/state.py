"""Build state and result types.

State machine for an orchestrator:
IDLE → BUILDING → IDLE | WATCHING | FAILED
                   ↑_____|  (each settled change rebuilds)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any


class BuildState(str, Enum):
    """Orchestrator state machine states."""

    IDLE = "idle"
    BUILDING = "building"
    WATCHING = "watching"  # Armed and idle
    FAILED = "failed"


class BuildError(Exception):
    """Build operation error."""

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        self.exit_code = exit_code

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {"error": str(self)}
        if self.exit_code is not None:
            result["exitCode"] = self.exit_code
        return result


class ExecutableNotFoundError(BuildError):
    """The requested executable is not on the search path."""

    def __init__(self, command: str):
        super().__init__(f"Unable to locate the '{command}' command on this system")
        self.command = command


class CommandSpawnError(BuildError):
    """The OS refused to start the child process."""

    def __init__(self, command: str, cause: OSError):
        super().__init__(f"Unable to start '{command}': {cause}")
        self.command = command
        self.cause = cause


class CommandExitError(BuildError):
    """The command ran but exited with a non-zero status."""

    def __init__(self, command: str, exit_code: int):
        super().__init__(f"Command {command} exited with code {exit_code}", exit_code)
        self.command = command


@dataclass(frozen=True)
class BuildOutcome:
    """Result of a successful make."""

    build_file: Path

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {"buildFile": str(self.build_file)}


@dataclass(frozen=True)
class FatalOutcome:
    """A foreground build failed; the host should end its run.

    Returned instead of exiting so the outermost caller decides what to do.
    """

    event: str
    error: BuildError
    exit_code: int = 1

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "event": self.event,
            "error": str(self.error),
            "exitCode": self.exit_code,
        }
