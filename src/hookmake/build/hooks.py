"""Event-name to handler binding table.

Built-in hooks belong to the orchestrator and can never be replaced from
configuration; user bindings add new event names that each run one make
target.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterator, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from ..log import PluginLog
from .state import FatalOutcome

logger = logging.getLogger(__name__)

INITIALIZE = "initialize"
BEFORE_OFFLINE_START = "before:offline:start"
BEFORE_PACKAGE = "before:package:createDeploymentArtifacts"

# Emitted after every successful build; never bindable
BUILD_COMPLETED = "make:built"

HookResult = FatalOutcome | None
HookHandler = Callable[[], Awaitable[HookResult]]
MakeFunc = Callable[[str], Awaitable[Any]]


class HookKind(str, Enum):
    """Where a hook came from."""

    BUILTIN = "builtin"
    USER = "user"


@dataclass(frozen=True)
class Hook:
    """Tagged handler stored in the table."""

    kind: HookKind
    run: HookHandler
    target: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {"kind": self.kind.value}
        if self.target is not None:
            result["target"] = self.target
        return result


HookTable = dict[str, Hook]


def _user_hook(event: str, target: str, make: MakeFunc, log: PluginLog) -> Hook:
    async def run() -> HookResult:
        log.verbose(event)
        await make(target)
        return None

    return Hook(kind=HookKind.USER, run=run, target=target)


def register_hooks(
    builtins: Mapping[str, HookHandler],
    user_bindings: Mapping[str, str],
    make: MakeFunc,
    log: PluginLog,
) -> HookTable:
    """Build the hook table from built-in handlers and user bindings.

    Each user binding is checked against the built-in names alone, so the
    result does not depend on binding order.

    Args:
        builtins: Event name to built-in handler
        user_bindings: Event name to make target
        make: Coroutine function running one target
        log: Plugin log for conflict warnings

    Returns:
        The hook table
    """
    table: HookTable = {
        event: Hook(kind=HookKind.BUILTIN, run=handler)
        for event, handler in builtins.items()
    }
    protected = frozenset(builtins)

    for event, target in user_bindings.items():
        if event in protected:
            log.warning(f'Unable to override registered internal hook "{event}"!')
            continue
        if event == BUILD_COMPLETED:
            log.warning(f'Unable to bind reserved hook "{event}"!')
            continue
        table[event] = _user_hook(event, target, make, log)
        logger.debug(f"Bound {event} -> {target!r}")

    return table


class HookRegistry:
    """Read-only view over a hook table with dispatch."""

    def __init__(self, table: HookTable, log: PluginLog | None = None):
        self._table = dict(table)
        self._log = log or PluginLog()

    def __contains__(self, event: object) -> bool:
        return event in self._table

    def __iter__(self) -> Iterator[str]:
        return iter(self._table)

    def __len__(self) -> int:
        return len(self._table)

    def get(self, event: str) -> Hook | None:
        return self._table.get(event)

    def names(self) -> list[str]:
        return list(self._table)

    async def fire(self, event: str) -> HookResult:
        """Run the handler bound to event, if any.

        Build errors from user hooks propagate; built-in hooks report
        failure through the returned FatalOutcome.
        """
        hook = self._table.get(event)
        if hook is None:
            self._log.verbose(f"No hook bound to {event}")
            return None
        return await hook.run()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {event: hook.to_dict() for event, hook in self._table.items()}
