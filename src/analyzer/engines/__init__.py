"""Engine registry, configuration entries and image installation."""

from analyzer.engines.config import (
    EngineConfigEntry,
    enabled_entries,
    load_engine_config,
    load_engine_config_file,
)
from analyzer.engines.installer import ImagePuller, Installer, InstallReport
from analyzer.engines.registry import EngineManifestEntry, EngineRegistry, ResolvedEngine

__all__ = [
    "EngineConfigEntry",
    "EngineManifestEntry",
    "EngineRegistry",
    "ImagePuller",
    "InstallReport",
    "Installer",
    "ResolvedEngine",
    "enabled_entries",
    "load_engine_config",
    "load_engine_config_file",
]
