"""Engine configuration entries.

Projects enable engines in their configuration file under ``engines``
(or the legacy ``plugins`` key). Each value is either a boolean or a
mapping with ``enabled`` and an optional ``channel``::

    engines:
      rubocop: true
      eslint:
        enabled: true
        channel: beta
      duplication: false

Entries keep file order; the Installer pulls images in that order.
Default engines (``AnalyzerSettings.default_engines``, name to channel)
come first and are always enabled unless the project sets them to
``false``; a project entry for a default engine replaces it in place and
inherits its channel when it names none.
A missing channel is filled from ``AnalyzerSettings.default_channel``
when the entry is resolved, never guessed here.
"""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field

from analyzer.core.errors import InvalidConfigError

CONFIG_KEYS = ("engines", "plugins")


class EngineConfigEntry(BaseModel):
    """One engine as configured by the project."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    channel: str | None = None
    enabled: bool = True

    def effective_channel(self, default: str) -> str:
        return self.channel or default


def _entry_from_value(name: str, value: Any) -> EngineConfigEntry:
    if isinstance(value, bool):
        return EngineConfigEntry(name=name, enabled=value)
    if isinstance(value, Mapping):
        channel = value.get("channel")
        if channel is not None and not isinstance(channel, str):
            raise InvalidConfigError(name, value, f"Channel for engine '{name}' must be a string")
        enabled = value.get("enabled", True)
        if not isinstance(enabled, bool):
            raise InvalidConfigError(name, value, f"'enabled' for engine '{name}' must be a boolean")
        return EngineConfigEntry(name=name, channel=channel, enabled=enabled)
    raise InvalidConfigError(name, value)


def merge_default_engines(
    entries: list[EngineConfigEntry],
    defaults: Mapping[str, str],
) -> list[EngineConfigEntry]:
    """Put default engines ahead of the configured ones.

    A configured entry for a default engine takes its place (so ``false``
    disables it) and keeps the default channel when it names none.
    """
    merged: dict[str, EngineConfigEntry] = {
        name: EngineConfigEntry(name=name, channel=channel) for name, channel in defaults.items()
    }
    for entry in entries:
        if entry.name in defaults and entry.channel is None:
            entry = entry.model_copy(update={"channel": defaults[entry.name]})
        merged[entry.name] = entry
    return list(merged.values())


def load_engine_config(
    config: Mapping[str, Any] | None,
    defaults: Mapping[str, str] | None = None,
) -> list[EngineConfigEntry]:
    """Parse engine entries from a project configuration mapping.

    ``defaults`` maps default engine names to their channels; see
    :func:`merge_default_engines`.
    """
    entries: list[EngineConfigEntry] = []
    for key in CONFIG_KEYS:
        section = (config or {}).get(key)
        if section is None:
            continue
        if not isinstance(section, Mapping):
            raise InvalidConfigError(key, section, f"'{key}' must be a mapping of engine names")
        entries.extend(_entry_from_value(str(name), value) for name, value in section.items())
    if defaults:
        entries = merge_default_engines(entries, defaults)
    return entries


def load_engine_config_file(
    path: str | Path,
    defaults: Mapping[str, str] | None = None,
) -> list[EngineConfigEntry]:
    """Parse engine entries from a YAML configuration file.

    A missing file means only the default engines are configured.
    """
    path = Path(path)
    if not path.exists():
        return load_engine_config(None, defaults)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise InvalidConfigError(str(path), None, f"Configuration {path} is not valid YAML: {exc}") from exc
    if data is not None and not isinstance(data, Mapping):
        raise InvalidConfigError(str(path), data, f"Configuration {path} must be a mapping")
    return load_engine_config(data, defaults)


def enabled_entries(entries: list[EngineConfigEntry]) -> list[EngineConfigEntry]:
    return [entry for entry in entries if entry.enabled]
