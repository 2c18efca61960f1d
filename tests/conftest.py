"""
Shared pytest fixtures and test doubles for analyzer tests.

This module provides:
- A sample engine manifest and the registry built from it
- ``FakeRuntime``: records pulls and fails the images it is told to
- ``RecordingListener``: captures started/finished events in order
"""

import sys
from pathlib import Path
from typing import Any

import pytest

# Ensure analyzer package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from analyzer.engines.registry import EngineRegistry


SAMPLE_MANIFEST: dict[str, Any] = {
    "rubocop": {
        "description": "Ruby static code analyzer",
        "channels": {
            "stable": "analyzer/rubocop",
            "beta": "analyzer/rubocop:beta",
        },
    },
    "eslint": {
        "description": "JavaScript linting",
        "channels": {"stable": "analyzer/eslint"},
    },
    "duplication": {
        "description": "Structural duplication detection",
        "channels": {"stable": "analyzer/duplication"},
    },
}


# =============================================================================
# Test doubles
# =============================================================================


class FakeRuntime:
    """Pull-only runtime double. Images in ``failing`` report failure."""

    def __init__(self, failing: set[str] | None = None):
        self.failing = failing or set()
        self.pulls: list[str] = []

    @property
    def runtime_name(self) -> str:
        return "fake"

    def pull(self, image: str) -> bool:
        self.pulls.append(image)
        return image not in self.failing


class RecordingListener:
    """Listener that records every event as a tuple."""

    def __init__(self):
        self.events: list[tuple] = []

    def started(self, engine, details):
        self.events.append(("started", engine.name, dict(details)))

    def finished(self, engine, details, result):
        self.events.append(("finished", engine.name, result))


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def manifest() -> dict[str, Any]:
    return {name: dict(entry, channels=dict(entry["channels"])) for name, entry in SAMPLE_MANIFEST.items()}


@pytest.fixture
def registry(manifest) -> EngineRegistry:
    return EngineRegistry.from_mapping(manifest)


@pytest.fixture
def fake_runtime() -> FakeRuntime:
    return FakeRuntime()


@pytest.fixture
def recording_listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def manifest_file(tmp_path) -> Path:
    path = tmp_path / "engines.yml"
    path.write_text(
        "rubocop:\n"
        "  description: Ruby static code analyzer\n"
        "  channels:\n"
        "    stable: analyzer/rubocop\n"
        "    beta: analyzer/rubocop:beta\n"
        "eslint:\n"
        "  description: JavaScript linting\n"
        "  channels:\n"
        "    stable: analyzer/eslint\n",
        encoding="utf-8",
    )
    return path
