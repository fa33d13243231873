"""Build orchestrator - binds host events to build tool runs.

State machine:
IDLE → BUILDING → IDLE | WATCHING | FAILED
WATCHING → BUILDING → WATCHING  (each settled change, whatever the outcome)
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable, Mapping
from pathlib import Path
from typing import Any

from ..config import DEFAULT_BUILD_FILE, BuildConfig
from ..log import PluginLog
from .hooks import (
    BEFORE_OFFLINE_START,
    BEFORE_PACKAGE,
    BUILD_COMPLETED,
    INITIALIZE,
    HookHandler,
    HookRegistry,
    HookResult,
    register_hooks,
)
from .runner import run_command
from .state import BuildError, BuildOutcome, BuildState, FatalOutcome
from .watcher import DEFAULT_POLL_INTERVAL, DEFAULT_STABILITY_THRESHOLD, ChangeWatcher

logger = logging.getLogger(__name__)

Notify = Callable[[str], Awaitable[None]]
Runner = Callable[..., Awaitable[None]]


class BuildOrchestrator:
    """Runs the build tool when host events fire and, optionally, on change.

    Usage:
        orchestrator = BuildOrchestrator(config, "/path/to/service", notify=bus.emit)
        await orchestrator.build(watch=True)
    """

    def __init__(
        self,
        config: BuildConfig,
        service_path: str | Path,
        *,
        log: PluginLog | None = None,
        environment: Callable[[], Mapping[str, str | None]] | Mapping[str, str | None] | None = None,
        notify: Notify | None = None,
        runner: Runner = run_command,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        stability_threshold: float = DEFAULT_STABILITY_THRESHOLD,
    ):
        """Initialize orchestrator.

        Args:
            config: Plugin configuration
            service_path: Root that relative config paths are resolved against
            log: Plugin log (console-backed if not provided)
            environment: Host-declared variables, or a callable returning them
            notify: Host event emitter used for the completion event
            runner: Command runner (run_command unless testing)
            poll_interval: Watcher poll interval in seconds
            stability_threshold: Quiet period before a rebuild in seconds
        """
        self._config = config
        self._service_path = os.path.abspath(service_path)
        self._log = log or PluginLog()
        self._host_environment = environment
        self._notify = notify
        self._runner = runner
        self._poll_interval = poll_interval
        self._stability_threshold = stability_threshold

        self._state = BuildState.IDLE
        self._watcher: ChangeWatcher | None = None
        self._rebuild_lock = asyncio.Lock()
        self._rebuild_queued = False
        self._state_listeners: list[Callable[[BuildState], None]] = []
        self._last_outcome: BuildOutcome | None = None
        self._last_error: BuildError | None = None

        self.hooks = HookRegistry(
            register_hooks(
                self._builtin_hooks(), config.extra_bindings, self.make, self._log
            ),
            self._log,
        )

    @property
    def config(self) -> BuildConfig:
        return self._config

    @property
    def service_path(self) -> str:
        return self._service_path

    @property
    def state(self) -> BuildState:
        """Current build state."""
        return self._state

    @property
    def watcher(self) -> ChangeWatcher | None:
        """Armed watcher, if any."""
        return self._watcher

    @property
    def is_watching(self) -> bool:
        return self._watcher is not None and self._watcher.is_armed

    @property
    def build_file(self) -> Path:
        """Absolute path of the build file."""
        location = self._config.build_file_location or DEFAULT_BUILD_FILE
        return Path(self._under_service(location))

    def _under_service(self, path: str) -> str:
        """Join path onto the service root; absolute paths are nested too."""
        return os.path.normpath(os.path.join(self._service_path, path.lstrip("/\\")))

    @property
    def environment(self) -> dict[str, str | None]:
        """Ambient environment with host variables on top.

        Recomputed on every access since the host may change its variables
        between triggers.
        """
        host_env = self._host_environment
        if callable(host_env):
            host_env = host_env()
        return {**os.environ, **(host_env or {})}

    def on_state_change(self, listener: Callable[[BuildState], None]) -> None:
        """Register state change listener."""
        self._state_listeners.append(listener)

    def _set_state(self, new_state: BuildState) -> None:
        """Update state and notify listeners."""
        old_state = self._state
        self._state = new_state
        if old_state != new_state:
            logger.debug(f"Build state: {old_state.value} -> {new_state.value}")
            for listener in self._state_listeners:
                try:
                    listener(new_state)
                except Exception:
                    logger.exception("State listener error")

    def _resting_state(self) -> BuildState:
        return BuildState.WATCHING if self.is_watching else BuildState.IDLE

    def watch_set(self) -> list[str]:
        """Build file plus every configured watch path, made absolute."""
        paths = [str(self.build_file)]
        paths.extend(self._under_service(p) for p in self._config.watch_paths)
        return paths

    async def make(self, target: str) -> BuildOutcome:
        """Run the build tool for one target.

        Raises:
            BuildError: If the tool is missing, cannot start or fails
        """
        build_file = self.build_file
        workdir = str(build_file.parent)
        command = [self._config.build_tool, "-f", str(build_file), target]

        self._log.verbose(f'Making "{target}"...')

        await self._runner(command, workdir, self.environment, self._log)

        self._log.log(f'Made "{target}"...')

        return BuildOutcome(build_file=build_file)

    async def build(self, watch: bool = False) -> BuildOutcome:
        """Make the configured target, then optionally watch and rebuild.

        The first make must succeed before anything is watched. Failures of
        rebuilds triggered by the watcher are logged, never raised.

        Raises:
            BuildError: If the initial make fails
        """
        self._set_state(BuildState.BUILDING)
        try:
            outcome = await self.make(self._config.target)
        except BuildError as e:
            self._last_error = e
            self._set_state(BuildState.FAILED)
            raise

        self._last_outcome = outcome
        self._last_error = None

        if watch:
            self._arm()

        self._set_state(self._resting_state())
        await self._notify_built()
        return outcome

    def _arm(self) -> None:
        if self._watcher is not None:
            self._watcher.disarm()

        paths = self.watch_set()
        self._log.verbose(
            "Watching for changes in:\n" + "\n".join(f" - {p}" for p in paths)
        )
        watcher = ChangeWatcher(
            paths,
            self._on_settled,
            poll_interval=self._poll_interval,
            stability_threshold=self._stability_threshold,
            log=self._log,
        )
        watcher.arm()
        self._watcher = watcher

    async def _on_settled(self) -> None:
        """Settle callback: one rebuild at a time, at most one queued."""
        if self._rebuild_queued:
            return
        self._rebuild_queued = True
        async with self._rebuild_lock:
            self._rebuild_queued = False
            await self.rebuild()

    async def rebuild(self) -> None:
        """Background rebuild; errors are logged and swallowed."""
        self._log.log("Change detected, rebuilding...")
        try:
            await self.build(False)
        except BuildError as e:
            self._log.error(str(e))
            self._set_state(self._resting_state())

    async def _notify_built(self) -> None:
        if self._notify is None:
            return
        try:
            await self._notify(BUILD_COMPLETED)
        except Exception as e:
            self._log.warning(f"Unable to notify {BUILD_COMPLETED}: {e}")

    def close(self) -> None:
        """Stop watching."""
        if self._watcher is not None:
            self._watcher.disarm()
            self._watcher = None
        self._set_state(BuildState.IDLE)

    def _builtin_hooks(self) -> dict[str, HookHandler]:
        async def initialize() -> HookResult:
            return None

        async def before_offline_start() -> HookResult:
            self._log.verbose(BEFORE_OFFLINE_START)
            return await self._foreground(
                BEFORE_OFFLINE_START, self._config.rebuild_on_host_reload
            )

        async def before_package() -> HookResult:
            self._log.verbose(BEFORE_PACKAGE)
            return await self._foreground(BEFORE_PACKAGE, False)

        return {
            INITIALIZE: initialize,
            BEFORE_OFFLINE_START: before_offline_start,
            BEFORE_PACKAGE: before_package,
        }

    async def _foreground(self, event: str, watch: bool) -> HookResult:
        try:
            await self.build(watch)
        except BuildError as e:
            self._log.error(str(e))
            return FatalOutcome(event=event, error=e)
        return None

    def to_dict(self) -> dict[str, Any]:
        """Get orchestrator status as dictionary."""
        return {
            "state": self._state.value,
            "servicePath": self._service_path,
            "buildFile": str(self.build_file),
            "watching": self.watch_set() if self.is_watching else [],
            "hooks": self.hooks.to_dict(),
            "lastOutcome": self._last_outcome.to_dict() if self._last_outcome else None,
            "lastError": self._last_error.to_dict() if self._last_error else None,
        }
