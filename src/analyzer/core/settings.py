"""Analyzer settings.

Configuration is explicit, validated, and environment-driven. Every field
can be overridden with an ``ANALYZER_``-prefixed environment variable or a
``.env`` file:

    ANALYZER_TIMEOUT_SECONDS=300
    ANALYZER_DEFAULT_CHANNEL=beta
    ANALYZER_REPO_ID=1234

Fields
──────
manifest_path       : YAML engine manifest (name → description, channels)
config_path         : Project configuration listing enabled engines
default_channel     : Channel used when a config entry omits one
default_engines     : Engines enabled ahead of the project's own (name → channel);
                      ANALYZER_DEFAULT_ENGINES='{}' turns them off
timeout_seconds     : Wall-clock limit per engine run
max_output_bytes    : Ceiling on bytes an engine may write to stdout
kill_grace_seconds  : Wait between SIGTERM and SIGKILL
max_concurrency     : Engines allowed to run at once
docker_binary       : Container runtime CLI
repo_id             : Optional repository identifier added to metric tags
log_level / log_json: Logging configuration
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CHANNEL = "stable"
DEFAULT_TIMEOUT_SECONDS = 15 * 60
DEFAULT_MAX_OUTPUT_BYTES = 500_000_000
DEFAULT_ENGINES = {"structure": "stable", "duplication": "cronopio"}


class AnalyzerSettings(BaseSettings):
    """Process-wide analyzer settings."""

    model_config = SettingsConfigDict(
        env_prefix="ANALYZER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Inputs ───────────────────────────────────────────────────
    manifest_path: Path = Field(
        default=Path("config/engines.yml"),
        description="Engine manifest (YAML)",
    )
    config_path: Path = Field(
        default=Path(".analyzer.yml"),
        description="Project configuration enabling engines",
    )
    default_channel: str = DEFAULT_CHANNEL
    default_engines: dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_ENGINES),
        description="Engines every project runs unless it disables them",
    )

    # ── Execution limits ─────────────────────────────────────────
    timeout_seconds: float = Field(default=DEFAULT_TIMEOUT_SECONDS, gt=0)
    max_output_bytes: int = Field(default=DEFAULT_MAX_OUTPUT_BYTES, gt=0)
    kill_grace_seconds: float = Field(default=10.0, ge=0)
    max_concurrency: int = Field(default=2, ge=1)

    # ── Runtime ──────────────────────────────────────────────────
    docker_binary: str = "docker"

    # ── Observability ────────────────────────────────────────────
    repo_id: str | None = None
    log_level: str = "INFO"
    log_json: bool | None = None


@lru_cache(maxsize=1)
def get_settings() -> AnalyzerSettings:
    """Return the cached process-wide settings."""
    return AnalyzerSettings()
