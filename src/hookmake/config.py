"""Plugin configuration."""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "hookmake.json"

DEFAULT_BUILD_FILE = "./Makefile"
DEFAULT_BUILD_TOOL = "make"

# Original plugin key -> current key
_ALIASES = {
    "makefile": "buildFileLocation",
    "watch": "watchPaths",
    "reloadHandler": "rebuildOnHostReload",
    "hooks": "extraBindings",
}


class ConfigError(ValueError):
    """Invalid plugin configuration."""


def _frozen_mapping(value: Mapping[str, str] | None = None) -> Mapping[str, str]:
    return MappingProxyType(dict(value or {}))


@dataclass(frozen=True)
class BuildConfig:
    """Build settings for one host session."""

    target: str = ""  # Empty runs the build file's default target
    build_file_location: str = DEFAULT_BUILD_FILE
    watch_paths: tuple[str, ...] = ()
    rebuild_on_host_reload: bool = False
    extra_bindings: Mapping[str, str] = field(default_factory=_frozen_mapping)
    build_tool: str = DEFAULT_BUILD_TOOL

    def __post_init__(self) -> None:
        object.__setattr__(self, "watch_paths", tuple(self.watch_paths))
        object.__setattr__(self, "extra_bindings", _frozen_mapping(self.extra_bindings))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> BuildConfig:
        """Create from the host's configuration block.

        Accepts camelCase keys and the original plugin's key names.

        Raises:
            ConfigError: If a value has the wrong type
        """
        raw = dict(data or {})
        for old, new in _ALIASES.items():
            if old in raw and new not in raw:
                raw[new] = raw.pop(old)

        target = _expect(raw, "target", str, "")
        location = _expect(raw, "buildFileLocation", str, "") or DEFAULT_BUILD_FILE
        watch = _expect(raw, "watchPaths", list, [])
        reload = _expect(raw, "rebuildOnHostReload", bool, False)
        bindings = _expect(raw, "extraBindings", dict, {})
        tool = _expect(raw, "buildTool", str, "") or DEFAULT_BUILD_TOOL

        if not all(isinstance(p, str) for p in watch):
            raise ConfigError("watchPaths must be a list of strings")
        if not all(isinstance(k, str) and isinstance(v, str) for k, v in bindings.items()):
            raise ConfigError("extraBindings must map event names to target names")

        return cls(
            target=target,
            build_file_location=location,
            watch_paths=tuple(watch),
            rebuild_on_host_reload=reload,
            extra_bindings=bindings,
            build_tool=tool,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "target": self.target,
            "buildFileLocation": self.build_file_location,
            "watchPaths": list(self.watch_paths),
            "rebuildOnHostReload": self.rebuild_on_host_reload,
            "extraBindings": dict(self.extra_bindings),
            "buildTool": self.build_tool,
        }


def _expect(raw: dict[str, Any], key: str, kind: type, default: Any) -> Any:
    value = raw.get(key)
    if value is None:
        return default
    if not isinstance(value, kind):
        raise ConfigError(f"{key} must be of type {kind.__name__}, got {type(value).__name__}")
    return value


@dataclass(frozen=True)
class HostSettings:
    """Everything read from the config file."""

    build: BuildConfig
    environment: dict[str, str | None]


def load_config(path: str | Path) -> HostSettings:
    """Load settings from a JSON config file.

    A missing file yields defaults. The optional ``environment`` object holds
    host-declared variables for the build.

    Raises:
        ConfigError: If the file is not valid JSON or has bad values
    """
    path = Path(path)
    if not path.exists():
        logger.debug(f"No config at {path}, using defaults")
        return HostSettings(build=BuildConfig(), environment={})

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{path} must contain a JSON object")

    environment = data.pop("environment", None) or {}
    if not isinstance(environment, dict):
        raise ConfigError("environment must be an object")
    environment = {
        str(k): (None if v is None else str(v)) for k, v in environment.items()
    }

    return HostSettings(build=BuildConfig.from_dict(data), environment=environment)
