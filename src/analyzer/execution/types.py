"""Execution types: invocation spec, limits, and results.

- InvocationSpec: how to start an engine container (command, env, mounts)
- ExecutionLimits: wall-clock timeout and stdout byte ceiling for one run
- ExecutionResult: what happened, returned as data and never raised
- Outcome: the single classification of a result

Design Notes:
    A timed-out run, a run that wrote too much output, and an engine that
    exited non-zero are all *outcomes*, not exceptions. Only failures of the
    runtime itself (missing binary, process that cannot be spawned) raise.

    .. code-block:: text

        ExecutionResult
        ├── exit_status            runtime-reported, even after a kill
        ├── duration_seconds       wall clock, start → exit/termination
        ├── timed_out              ─┐ at most one of these
        ├── maximum_output_exceeded ─┘
        ├── aborted                external cancel (implies timed_out)
        ├── output                 captured stdout (empty when streamed)
        └── stderr                 bounded tail of stderr
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from analyzer.core.settings import DEFAULT_MAX_OUTPUT_BYTES, DEFAULT_TIMEOUT_SECONDS, AnalyzerSettings


class Outcome(str, Enum):
    """Classification of a finished run, in priority order."""

    TIMEOUT = "timeout"
    OUTPUT_EXCEEDED = "output_exceeded"
    ERROR = "error"
    SUCCESS = "success"


@dataclass(frozen=True)
class VolumeMount:
    """Bind mount into the engine container."""

    host_path: str
    mount_path: str
    read_only: bool = True


@dataclass
class InvocationSpec:
    """How to start one engine container.

    The image comes from the resolved engine; this spec carries everything
    else the runtime needs.

    Example:
        >>> spec = InvocationSpec(
        ...     name="rubocop",
        ...     volumes=[VolumeMount("/src/project", "/code")],
        ...     env={"ENGINE_CONFIG": "/config.json"},
        ... )
    """

    name: str
    """Engine name, used for container naming and logging."""

    command: list[str] | None = None
    """Command override. None = the image's default entrypoint."""

    env: dict[str, str] = field(default_factory=dict)

    volumes: list[VolumeMount] = field(default_factory=list)

    working_dir: str | None = None

    container_name: str | None = None
    """Explicit container name. None = runtime generates one."""

    network_disabled: bool = True
    """Engines run without network access unless asked otherwise."""

    memory: str | None = "1024m"
    """Memory limit in docker syntax. None = unlimited."""

    labels: dict[str, str] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logging."""
        d: dict[str, Any] = {"name": self.name}
        if self.command:
            d["command"] = list(self.command)
        if self.env:
            d["env"] = sorted(self.env)
        if self.volumes:
            d["volumes"] = [f"{v.host_path}:{v.mount_path}" for v in self.volumes]
        if self.working_dir:
            d["working_dir"] = self.working_dir
        if self.container_name:
            d["container_name"] = self.container_name
        d["network_disabled"] = self.network_disabled
        if self.memory:
            d["memory"] = self.memory
        return d


@dataclass(frozen=True)
class ExecutionLimits:
    """Timeout and output ceiling bounding one engine run."""

    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    max_output_bytes: int = DEFAULT_MAX_OUTPUT_BYTES

    def __post_init__(self) -> None:
        if self.timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {self.timeout_seconds}")
        if self.max_output_bytes <= 0:
            raise ValueError(f"max_output_bytes must be positive, got {self.max_output_bytes}")

    @classmethod
    def from_settings(cls, settings: AnalyzerSettings) -> ExecutionLimits:
        return cls(timeout_seconds=settings.timeout_seconds, max_output_bytes=settings.max_output_bytes)


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of one engine run. Read-only once produced."""

    exit_status: int
    duration_seconds: float
    timed_out: bool = False
    maximum_output_exceeded: bool = False
    aborted: bool = False
    output: bytes = b""
    stderr: str = ""
    container_name: str | None = None

    def __post_init__(self) -> None:
        if self.timed_out and self.maximum_output_exceeded:
            raise ValueError("A run is terminated by one limit; timed_out and maximum_output_exceeded are exclusive")
        if self.aborted and not self.timed_out:
            raise ValueError("An aborted run is reported as timed out")

    @property
    def duration_ms(self) -> float:
        return self.duration_seconds * 1000.0

    @property
    def outcome(self) -> Outcome:
        if self.timed_out:
            return Outcome.TIMEOUT
        if self.maximum_output_exceeded:
            return Outcome.OUTPUT_EXCEEDED
        if self.exit_status != 0:
            return Outcome.ERROR
        return Outcome.SUCCESS

    @property
    def succeeded(self) -> bool:
        return self.outcome is Outcome.SUCCESS

    def to_dict(self) -> dict[str, Any]:
        """Serialize for logging (output bytes are summarized, not copied)."""
        return {
            "exit_status": self.exit_status,
            "duration_ms": round(self.duration_ms, 3),
            "timed_out": self.timed_out,
            "maximum_output_exceeded": self.maximum_output_exceeded,
            "aborted": self.aborted,
            "outcome": self.outcome.value,
            "output_bytes": len(self.output),
            "container_name": self.container_name,
        }
