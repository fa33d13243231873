"""hookmake - run an external build tool on host lifecycle events."""

from .build import BuildOrchestrator, BuildOutcome, BuildState, FatalOutcome
from .config import BuildConfig, ConfigError, load_config
from .host import EventBus
from .log import PluginLog

__all__ = [
    "BuildConfig",
    "BuildOrchestrator",
    "BuildOutcome",
    "BuildState",
    "ConfigError",
    "EventBus",
    "FatalOutcome",
    "PluginLog",
    "load_config",
]
