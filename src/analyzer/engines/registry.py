"""Engine registry — name + channel → image reference.

The registry consumes an already-parsed manifest and exposes enumeration
and channel-qualified lookup. It is built once per process and never
mutated, so concurrent executor invocations may read it freely.

Manifest shape::

    rubocop:
      description: Ruby static code analyzer
      channels:
        stable: analyzer/rubocop
        beta: analyzer/rubocop:beta
    eslint:
      description: JavaScript linting
      channels:
        stable: analyzer/eslint

Example:
    >>> registry = EngineRegistry.from_mapping(manifest)
    >>> registry.resolve("rubocop", "beta").image
    'analyzer/rubocop:beta'
    >>> registry.find("rubocop", "nightly") is None
    True
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any

import yaml

from analyzer.core.errors import EngineNotFoundError, InvalidManifestError
from analyzer.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class EngineManifestEntry:
    """One engine in the manifest: description plus channel → image map."""

    name: str
    description: str
    channels: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "channels", MappingProxyType(dict(self.channels)))


@dataclass(frozen=True)
class ResolvedEngine:
    """An engine name and channel resolved to a concrete image reference."""

    name: str
    channel: str
    image: str

    @property
    def label(self) -> str:
        return f"{self.name}:{self.channel}"


class EngineRegistry:
    """Read-only lookup over the engine manifest.

    ``resolve`` is a pure mapping traversal: the name must be present and
    the channel must be a key of that engine's channel mapping.
    """

    def __init__(self, entries: Mapping[str, EngineManifestEntry] | None = None):
        self._entries: Mapping[str, EngineManifestEntry] = MappingProxyType(dict(entries or {}))

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_mapping(cls, manifest: Mapping[str, Any]) -> EngineRegistry:
        """Build a registry from a parsed manifest mapping.

        Raises:
            InvalidManifestError: If an entry is not a mapping or its
                ``channels`` is not a mapping of strings.
        """
        if not isinstance(manifest, Mapping):
            raise InvalidManifestError(
                f"Engine manifest must be a mapping, got {type(manifest).__name__}"
            )

        entries: dict[str, EngineManifestEntry] = {}
        for name, metadata in manifest.items():
            if not isinstance(metadata, Mapping):
                raise InvalidManifestError(
                    f"Manifest entry '{name}' must be a mapping"
                ).with_context(engine=str(name))

            channels = metadata.get("channels")
            if not isinstance(channels, Mapping):
                raise InvalidManifestError(
                    f"Manifest entry '{name}' has no channels mapping"
                ).with_context(engine=str(name))

            for channel, image in channels.items():
                if not isinstance(image, str) or not image.strip():
                    raise InvalidManifestError(
                        f"Manifest entry '{name}' channel '{channel}' has no image"
                    ).with_context(engine=str(name), channel=str(channel))

            entries[str(name)] = EngineManifestEntry(
                name=str(name),
                description=str(metadata.get("description") or ""),
                channels={str(k): v for k, v in channels.items()},
            )

        logger.debug("engine_manifest_loaded", engines=len(entries))
        return cls(entries)

    @classmethod
    def from_yaml(cls, content: str) -> EngineRegistry:
        """Build a registry from YAML manifest text."""
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as exc:
            raise InvalidManifestError(f"Engine manifest is not valid YAML: {exc}", cause=exc) from exc
        return cls.from_mapping(data or {})

    @classmethod
    def from_yaml_file(cls, path: str | Path) -> EngineRegistry:
        """Build a registry from a YAML manifest file."""
        path = Path(path)
        try:
            content = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise InvalidManifestError(
                f"Unable to read engine manifest {path}: {exc}", cause=exc
            ).with_context(path=str(path)) from exc
        return cls.from_yaml(content)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def entries(self) -> list[EngineManifestEntry]:
        """All manifest entries, ordered by name."""
        return sorted(self._entries.values(), key=lambda entry: entry.name)

    def names(self) -> list[str]:
        return sorted(self._entries)

    def get(self, name: str) -> EngineManifestEntry | None:
        return self._entries.get(name)

    def find(self, name: str, channel: str) -> ResolvedEngine | None:
        """Resolve without raising; ``None`` when name or channel is absent."""
        entry = self._entries.get(name)
        if entry is None:
            return None
        image = entry.channels.get(channel)
        if image is None:
            return None
        return ResolvedEngine(name=name, channel=channel, image=image)

    def resolve(self, name: str, channel: str) -> ResolvedEngine:
        """Resolve an engine and channel to its image reference.

        Raises:
            EngineNotFoundError: If the name is not in the manifest, or the
                name exists but the channel is not one of its channels.
        """
        resolved = self.find(name, channel)
        if resolved is None:
            raise EngineNotFoundError(name, channel)
        return resolved

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[EngineManifestEntry]:
        return iter(self.entries())
