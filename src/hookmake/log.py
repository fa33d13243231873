"""Plugin logging capability.

The host may hand us its own logger; otherwise messages go through the
standard ``logging`` module. Either way every message is prefixed with the
plugin name so it stands out in the host's output.
"""

from __future__ import annotations

import logging
from typing import Protocol

PLUGIN_NAME = "make"

logger = logging.getLogger("hookmake")


class HostLog(Protocol):
    """Four-method logger a host can inject."""

    def log(self, message: str) -> None: ...

    def verbose(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class ConsoleLog:
    """Default host log backed by the ``hookmake`` stdlib logger.

    ``verbose`` maps to DEBUG, so it only shows with ``--verbose`` or
    ``LOG_LEVEL=DEBUG``.
    """

    def __init__(self, target: logging.Logger | None = None):
        self._logger = target or logger

    def log(self, message: str) -> None:
        self._logger.info(message)

    def verbose(self, message: str) -> None:
        self._logger.debug(message)

    def warning(self, message: str) -> None:
        self._logger.warning(message)

    def error(self, message: str) -> None:
        self._logger.error(message)


class PluginLog:
    """Prefixes messages with ``[make]`` and forwards them to a host log."""

    def __init__(self, host_log: HostLog | None = None):
        self._host_log: HostLog = host_log or ConsoleLog()

    @staticmethod
    def msg(message: str) -> str:
        return f"[{PLUGIN_NAME}] {message}"

    def log(self, message: str) -> None:
        self._host_log.log(self.msg(message))

    def verbose(self, message: str) -> None:
        self._host_log.verbose(self.msg(message))

    def warning(self, message: str) -> None:
        self._host_log.warning(self.msg(message))

    def error(self, message: str) -> None:
        self._host_log.error(self.msg(message))
