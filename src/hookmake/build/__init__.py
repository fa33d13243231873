"""Hook-driven build orchestration.

Provides:
- External command execution with inherited stdio
- Polling file watcher with debounced rebuilds
- Built-in and user-bound hook table
- Orchestrator tying host events to build runs
"""

from .hooks import (
    BEFORE_OFFLINE_START,
    BEFORE_PACKAGE,
    BUILD_COMPLETED,
    INITIALIZE,
    Hook,
    HookKind,
    HookRegistry,
    register_hooks,
)
from .orchestrator import BuildOrchestrator
from .runner import resolve_executable, run_command
from .state import (
    BuildError,
    BuildOutcome,
    BuildState,
    CommandExitError,
    CommandSpawnError,
    ExecutableNotFoundError,
    FatalOutcome,
)
from .watcher import ChangeWatcher, Debouncer

__all__ = [
    "BuildOrchestrator",
    "BuildState",
    "BuildOutcome",
    "FatalOutcome",
    "BuildError",
    "ExecutableNotFoundError",
    "CommandSpawnError",
    "CommandExitError",
    "ChangeWatcher",
    "Debouncer",
    "Hook",
    "HookKind",
    "HookRegistry",
    "register_hooks",
    "resolve_executable",
    "run_command",
    "INITIALIZE",
    "BEFORE_OFFLINE_START",
    "BEFORE_PACKAGE",
    "BUILD_COMPLETED",
]
