"""Container runtime boundary.

Two operations are consumed from a container runtime: ``pull`` an image,
and ``start`` an image as a process whose stdout/stderr are pipes. The
executor owns the race between exit, timeout and output ceiling; runtimes
only know how to start and stop.

Architecture:

    .. code-block:: text

        ContainerRuntime (Protocol)
        ├── runtime_name
        ├── pull(image) → bool                 sync, used by Installer
        ├── start(image, spec) → RunningProcess
        └── stop(running, grace_seconds)       SIGTERM → SIGKILL
              │
        ┌─────┴──────────────────────┐
        ▼                            ▼
    DockerRuntime               LocalProcessRuntime
    (docker CLI subprocess)     (spec.command as a local process,
                                 image ignored; dev + tests)

Both runtimes drive ``asyncio.subprocess``. Termination requests to a
process that has already exited are no-ops, and a process that ignores
SIGTERM for ``grace_seconds`` is killed.
"""

from __future__ import annotations

import asyncio
import os
import re
import shutil
import subprocess
import uuid
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from analyzer.core.errors import RuntimeUnavailableError
from analyzer.core.logging import get_logger
from analyzer.execution.types import InvocationSpec

logger = get_logger(__name__)

_SLUG_PATTERN = re.compile(r"[^a-z0-9_.-]")


def container_name_for(engine_name: str) -> str:
    """Generate a unique, docker-safe container name for an engine run.

    Example:
        >>> container_name_for("RuboCop")  # doctest: +SKIP
        'analyzer-rubocop-1a2b3c4d'
    """
    slug = _SLUG_PATTERN.sub("-", engine_name.lower()).strip("-") or "engine"
    return f"analyzer-{slug[:40]}-{uuid.uuid4().hex[:8]}"


@dataclass
class RunningProcess:
    """A started engine process and the container it belongs to."""

    process: asyncio.subprocess.Process
    container_name: str | None = None

    @property
    def returncode(self) -> int | None:
        return self.process.returncode


async def terminate_process(process: asyncio.subprocess.Process, grace_seconds: float) -> None:
    """Terminate a process: SIGTERM, then SIGKILL after ``grace_seconds``.

    A no-op when the process has already exited.
    """
    if process.returncode is not None:
        return

    try:
        process.terminate()
    except ProcessLookupError:
        return

    try:
        await asyncio.wait_for(process.wait(), timeout=grace_seconds)
    except TimeoutError:
        logger.warning("process_kill_escalated", pid=process.pid, grace_seconds=grace_seconds)
        try:
            process.kill()
        except ProcessLookupError:
            pass
        await process.wait()


@runtime_checkable
class ContainerRuntime(Protocol):
    """Protocol for the container runtime the analyzer drives."""

    @property
    def runtime_name(self) -> str:
        ...

    def pull(self, image: str) -> bool:
        """Pull an image. Returns False when the runtime reports failure."""
        ...

    async def start(self, image: str, spec: InvocationSpec) -> RunningProcess:
        """Start the image as a process with piped stdout/stderr.

        Raises:
            RuntimeUnavailableError: If the process cannot be started.
        """
        ...

    async def stop(self, running: RunningProcess, grace_seconds: float) -> None:
        """Force-terminate a running process. Idempotent."""
        ...


# ---------------------------------------------------------------------------
# Docker
# ---------------------------------------------------------------------------


class DockerRuntime:
    """Runs engines through the ``docker`` CLI.

    Containers are started with ``--rm``, no Linux capabilities, no new
    privileges, a memory limit, and no network unless the InvocationSpec enables it.
    """

    def __init__(self, *, docker_binary: str = "docker", pull_timeout_seconds: float | None = None):
        self._docker_binary = docker_binary
        self._pull_timeout = pull_timeout_seconds

    @property
    def runtime_name(self) -> str:
        return "docker"

    def _docker(self) -> str:
        path = shutil.which(self._docker_binary)
        if path is None:
            raise RuntimeUnavailableError(
                f"Container runtime '{self._docker_binary}' not found on PATH"
            )
        return path

    def pull(self, image: str) -> bool:
        """Pull ``image``; False on any failure, including a missing docker binary."""
        try:
            cmd = [self._docker(), "pull", image]
        except RuntimeUnavailableError as exc:
            logger.error("docker_pull_unavailable", image=image, error=exc.message)
            return False
        logger.debug("docker_exec", cmd=" ".join(cmd))
        try:
            result = subprocess.run(cmd, check=False, timeout=self._pull_timeout)
        except subprocess.TimeoutExpired:
            logger.error("docker_pull_timeout", image=image, timeout=self._pull_timeout)
            return False
        return result.returncode == 0

    def build_run_command(self, image: str, spec: InvocationSpec, container_name: str) -> list[str]:
        """Translate an InvocationSpec into ``docker run`` arguments."""
        cmd = [
            self._docker(),
            "run",
            "--rm",
            "--name", container_name,
            "--cap-drop", "all",
            "--security-opt", "no-new-privileges",
        ]
        if spec.network_disabled:
            cmd.extend(["--net", "none"])
        if spec.memory:
            cmd.extend(["--memory", spec.memory, "--memory-swap", "-1"])
        for key, value in sorted(spec.labels.items()):
            cmd.extend(["--label", f"{key}={value}"])
        for volume in spec.volumes:
            mount = f"{volume.host_path}:{volume.mount_path}"
            if volume.read_only:
                mount += ":ro"
            cmd.extend(["--volume", mount])
        for key, value in sorted(spec.env.items()):
            cmd.extend(["--env", f"{key}={value}"])
        if spec.working_dir:
            cmd.extend(["--workdir", spec.working_dir])
        cmd.append(image)
        if spec.command:
            cmd.extend(spec.command)
        return cmd

    async def start(self, image: str, spec: InvocationSpec) -> RunningProcess:
        container_name = spec.container_name or container_name_for(spec.name)
        cmd = self.build_run_command(image, spec, container_name)
        logger.debug("docker_exec", cmd=" ".join(cmd))
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            raise RuntimeUnavailableError(
                f"Failed to start container for {spec.name}: {exc}", cause=exc
            ).with_context(engine=spec.name, image=image) from exc
        return RunningProcess(process=process, container_name=container_name)

    async def stop(self, running: RunningProcess, grace_seconds: float) -> None:
        if running.returncode is not None:
            return

        if running.container_name:
            stop_cmd = [
                self._docker(), "stop",
                "--time", str(max(int(grace_seconds), 0)),
                running.container_name,
            ]
            logger.debug("docker_exec", cmd=" ".join(stop_cmd))
            stopper = await asyncio.create_subprocess_exec(
                *stop_cmd,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL,
            )
            try:
                await asyncio.wait_for(stopper.wait(), timeout=grace_seconds + 5.0)
            except TimeoutError:
                logger.warning("docker_stop_timeout", container=running.container_name)
                await terminate_process(stopper, 0)

        # The CLI process exits once the container is gone; escalate if not
        await terminate_process(running.process, grace_seconds)


# ---------------------------------------------------------------------------
# Local process
# ---------------------------------------------------------------------------


class LocalProcessRuntime:
    """Runs ``spec.command`` as a local subprocess; the image is ignored.

    Gives the same start/stop lifecycle without a container runtime, for
    development, CI without Docker, and tests.
    """

    def __init__(self, *, inherit_env: bool = True):
        self._inherit_env = inherit_env

    @property
    def runtime_name(self) -> str:
        return "local"

    def pull(self, image: str) -> bool:
        logger.debug("local_pull_skipped", image=image)
        return True

    def _build_env(self, spec: InvocationSpec) -> dict[str, str]:
        env = dict(os.environ) if self._inherit_env else {}
        env.update(spec.env)
        env["ANALYZER_RUNTIME"] = "local"
        env["ANALYZER_ENGINE_NAME"] = spec.name
        return env

    async def start(self, image: str, spec: InvocationSpec) -> RunningProcess:
        if not spec.command:
            raise RuntimeUnavailableError(
                f"No command specified for local engine {spec.name}"
            ).with_context(engine=spec.name, image=image)
        try:
            process = await asyncio.create_subprocess_exec(
                *spec.command,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self._build_env(spec),
                cwd=spec.working_dir,
            )
        except FileNotFoundError as exc:
            raise RuntimeUnavailableError(
                f"Command not found: {spec.command[0]}", cause=exc
            ).with_context(engine=spec.name) from exc
        except OSError as exc:
            raise RuntimeUnavailableError(
                f"Failed to start process: {exc}", cause=exc
            ).with_context(engine=spec.name) from exc
        return RunningProcess(process=process, container_name=spec.container_name)

    async def stop(self, running: RunningProcess, grace_seconds: float) -> None:
        await terminate_process(running.process, grace_seconds)
