"""Polling file watcher with debounce.

Polling is used instead of native notifications so the watcher keeps working
on network mounts and container volumes. Bursts of changes are collapsed:
the settle callback fires once the watched paths have been quiet for the
stability threshold.
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass
from fnmatch import fnmatch

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers.polling import PollingObserver

from ..log import PluginLog

logger = logging.getLogger(__name__)

# Seconds
DEFAULT_POLL_INTERVAL: float = 0.1
DEFAULT_STABILITY_THRESHOLD: float = 0.5

GLOB_CHARS = ("*", "?", "[")

SettledCallback = Callable[[], Awaitable[None]]


def has_glob_chars(path: str) -> bool:
    """Return True if path contains shell glob characters."""
    return any(c in path for c in GLOB_CHARS)


def _glob_root(pattern: str) -> str:
    """Return the directory prefix of a pattern before its first glob part."""
    parts = pattern.split(os.sep)
    for i, part in enumerate(parts):
        if has_glob_chars(part):
            return os.sep.join(parts[:i]) or os.sep
    return pattern


def _existing_ancestor(path: str) -> str:
    """Nearest directory at or above path that exists."""
    current = path
    while not os.path.isdir(current):
        parent = os.path.dirname(current)
        if parent == current:
            break
        current = parent
    return current


@dataclass(frozen=True)
class WatchTarget:
    """One configured path and where it is observed from."""

    path: str
    root: str
    recursive: bool

    @classmethod
    def from_path(cls, path: str) -> WatchTarget:
        path = os.path.normpath(os.path.abspath(path))
        if has_glob_chars(path):
            return cls(path, _existing_ancestor(_glob_root(path)), True)
        if os.path.isfile(path):
            return cls(path, os.path.dirname(path), False)
        return cls(path, _existing_ancestor(path), True)

    def matches(self, candidate: str) -> bool:
        candidate = os.path.normpath(candidate)
        if has_glob_chars(self.path):
            return fnmatch(candidate, self.path)
        return candidate == self.path or candidate.startswith(self.path + os.sep)


class Debouncer:
    """Run an async callback once calls have stopped for ``delay`` seconds.

    ``trigger`` must be called on the loop thread; use ``trigger_threadsafe``
    from anywhere else.
    """

    def __init__(
        self,
        callback: SettledCallback,
        delay: float,
        loop: asyncio.AbstractEventLoop,
    ):
        self._callback = callback
        self._delay = delay
        self._loop = loop
        self._timer: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._closed = False

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    @property
    def pending(self) -> bool:
        """Whether a settle timer is running."""
        return self._timer is not None

    @property
    def closed(self) -> bool:
        return self._closed

    def trigger(self) -> None:
        """Restart the settle timer. No-op once cancelled."""
        if self._closed:
            return
        if self._timer is not None:
            self._timer.cancel()
        self._timer = self._loop.call_later(self._delay, self._fire)

    def trigger_threadsafe(self) -> None:
        self._loop.call_soon_threadsafe(self.trigger)

    def cancel(self) -> None:
        """Drop the pending timer and ignore every later trigger.

        Triggers already queued with ``trigger_threadsafe`` run after this
        and are ignored too.
        """
        self._closed = True
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self) -> None:
        self._timer = None
        if self._closed:
            return
        task = self._loop.create_task(self._callback())
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Settle callback failed", exc_info=task.exception())


class _ChangeHandler(FileSystemEventHandler):
    """Forwards matching watchdog events to the debouncer."""

    def __init__(self, watcher: ChangeWatcher):
        super().__init__()
        self._watcher = watcher

    def on_any_event(self, event: FileSystemEvent) -> None:
        src = os.fsdecode(event.src_path)
        if event.is_directory and event.event_type == "deleted" and src in self._watcher.roots:
            self._watcher._root_lost(src)
            return
        paths = [src]
        dest = getattr(event, "dest_path", "")
        if dest:
            paths.append(os.fsdecode(dest))
        if any(self._watcher.matches(p) for p in paths):
            self._watcher._changed()


class ChangeWatcher:
    """Watch a set of paths and call ``on_settled`` after each change burst.

    Usage:
        watcher = ChangeWatcher(paths, rebuild)
        watcher.arm()
        ...
        watcher.disarm()
    """

    def __init__(
        self,
        paths: Iterable[str],
        on_settled: SettledCallback,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        stability_threshold: float = DEFAULT_STABILITY_THRESHOLD,
        log: PluginLog | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
    ):
        self._targets = [WatchTarget.from_path(p) for p in paths]
        self._on_settled = on_settled
        self._poll_interval = poll_interval
        self._stability_threshold = stability_threshold
        self._log = log or PluginLog()
        self._loop = loop
        self._observer: PollingObserver | None = None
        self._debouncer: Debouncer | None = None

    @property
    def targets(self) -> list[WatchTarget]:
        return list(self._targets)

    @property
    def roots(self) -> set[str]:
        """Directories handed to the observer."""
        return {t.root for t in self._targets}

    @property
    def is_armed(self) -> bool:
        return self._observer is not None

    def matches(self, path: str) -> bool:
        return any(t.matches(path) for t in self._targets)

    def arm(self) -> ChangeWatcher:
        """Start polling. Existing files form the baseline and do not fire.

        Must be called from within the event loop that should run
        ``on_settled``.
        """
        if self.is_armed:
            return self

        loop = self._loop or asyncio.get_running_loop()
        self._debouncer = Debouncer(self._on_settled, self._stability_threshold, loop)

        observer = PollingObserver(timeout=self._poll_interval)
        handler = _ChangeHandler(self)
        scheduled: dict[str, bool] = {}
        for target in self._targets:
            scheduled[target.root] = scheduled.get(target.root, False) or target.recursive
        for root, recursive in scheduled.items():
            observer.schedule(handler, root, recursive=recursive)
        observer.start()

        self._observer = observer
        logger.debug(f"Polling {len(scheduled)} root(s) every {self._poll_interval}s")
        return self

    def disarm(self) -> None:
        """Stop polling and drop any pending settle timer.

        Joins the observer thread, so the calling loop is blocked until the
        current poll finishes (at most one poll interval). Once this returns
        no further events are delivered and ``on_settled`` is not called.
        """
        if self._debouncer is not None:
            self._debouncer.cancel()
            self._debouncer = None
        if self._observer is not None:
            self._observer.stop()
            self._observer.join()
            self._observer = None

    def _changed(self) -> None:
        # Observer thread
        if self._debouncer is not None:
            self._debouncer.trigger_threadsafe()

    def _root_lost(self, root: str) -> None:
        # Observer thread; watchdog has already stopped that root's emitter
        message = f"Stopped watching {root}: directory no longer exists"
        if self._debouncer is not None:
            self._debouncer.loop.call_soon_threadsafe(self._log.warning, message)
        else:
            self._log.warning(message)
