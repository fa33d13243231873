"""In-process host event bus.

Stands in for the host application: lifecycle events are dispatched to the
orchestrator's hook table, and outbound events (such as the build completion
notice) go to registered listeners.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable

from .build.hooks import HookRegistry, HookResult

logger = logging.getLogger(__name__)

Listener = Callable[[str], Awaitable[None]]


class EventBus:
    """Dispatches inbound events to hooks and outbound events to listeners."""

    def __init__(self, hooks: HookRegistry | None = None):
        self._hooks = hooks
        self._listeners: dict[str, list[Listener]] = {}

    def attach(self, hooks: HookRegistry) -> None:
        """Set the hook table inbound events are dispatched to."""
        self._hooks = hooks

    def on(self, event: str, listener: Listener) -> None:
        """Register a listener for an outbound event."""
        self._listeners.setdefault(event, []).append(listener)

    async def fire(self, event: str) -> HookResult:
        """Deliver a lifecycle event to its hook.

        Returns:
            FatalOutcome if a foreground build failed, else None
        """
        if self._hooks is None:
            raise RuntimeError("No hooks attached to event bus")
        logger.debug(f"Firing {event}")
        return await self._hooks.fire(event)

    async def emit(self, event: str) -> None:
        """Deliver an outbound event to its listeners.

        Listener errors propagate to the emitter.
        """
        for listener in list(self._listeners.get(event, [])):
            await listener(event)
