"""Pytest fixtures for hookmake tests."""

import os
import sys

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from hookmake.config import BuildConfig  # noqa: E402
from hookmake.log import PluginLog  # noqa: E402


class RecordingLog:
    """Host log that keeps every message by level."""

    def __init__(self):
        self.messages: dict[str, list[str]] = {
            "log": [],
            "verbose": [],
            "warning": [],
            "error": [],
        }

    def log(self, message: str) -> None:
        self.messages["log"].append(message)

    def verbose(self, message: str) -> None:
        self.messages["verbose"].append(message)

    def warning(self, message: str) -> None:
        self.messages["warning"].append(message)

    def error(self, message: str) -> None:
        self.messages["error"].append(message)


@pytest.fixture
def host_log():
    """Recording host log."""
    return RecordingLog()


@pytest.fixture
def plugin_log(host_log):
    """Plugin log writing to the recording host log."""
    return PluginLog(host_log)


@pytest.fixture
def sample_config():
    """Config from the typical service setup."""
    return BuildConfig(
        target="build",
        build_file_location="./Makefile",
        watch_paths=("src/",),
    )
