"""Tests for the container runtime boundary (docker command, termination)."""

from __future__ import annotations

import asyncio
import subprocess
import sys
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from analyzer.core.errors import RuntimeUnavailableError
from analyzer.execution.runtime import (
    ContainerRuntime,
    DockerRuntime,
    LocalProcessRuntime,
    RunningProcess,
    container_name_for,
    terminate_process,
)
from analyzer.execution.types import InvocationSpec, VolumeMount

DOCKER = "/usr/bin/docker"


@pytest.fixture
def docker():
    with patch("analyzer.execution.runtime.shutil.which", return_value=DOCKER):
        yield DockerRuntime()


# ── Protocol ─────────────────────────────────────────────────────────────


class TestProtocol:
    def test_docker_satisfies_protocol(self):
        assert isinstance(DockerRuntime(), ContainerRuntime)

    def test_local_satisfies_protocol(self):
        assert isinstance(LocalProcessRuntime(), ContainerRuntime)

    def test_runtime_names(self):
        assert DockerRuntime().runtime_name == "docker"
        assert LocalProcessRuntime().runtime_name == "local"


class TestContainerName:
    def test_slug_and_suffix(self):
        name = container_name_for("RuboCop")
        assert name.startswith("analyzer-rubocop-")
        assert len(name.rsplit("-", 1)[1]) == 8

    def test_unique(self):
        assert container_name_for("eslint") != container_name_for("eslint")

    def test_unsafe_characters_replaced(self):
        assert container_name_for("my engine/v2").startswith("analyzer-my-engine-v2-")


# ── Docker ───────────────────────────────────────────────────────────────


class TestDockerRunCommand:
    def test_sandbox_flags(self, docker):
        cmd = docker.build_run_command("analyzer/rubocop", InvocationSpec(name="rubocop"), "c1")
        assert cmd[:4] == [DOCKER, "run", "--rm", "--name"]
        assert "--cap-drop" in cmd and cmd[cmd.index("--cap-drop") + 1] == "all"
        assert cmd[cmd.index("--security-opt") + 1] == "no-new-privileges"
        assert cmd[cmd.index("--net") + 1] == "none"
        assert cmd[cmd.index("--memory") + 1] == "1024m"
        assert cmd[-1] == "analyzer/rubocop"

    def test_network_and_memory_optional(self, docker):
        spec = InvocationSpec(name="rubocop", network_disabled=False, memory=None)
        cmd = docker.build_run_command("img", spec, "c1")
        assert "--net" not in cmd
        assert "--memory" not in cmd

    def test_volumes_env_workdir_command(self, docker):
        spec = InvocationSpec(
            name="rubocop",
            command=["/usr/src/app/bin/engine", "--debug"],
            env={"B": "2", "A": "1"},
            volumes=[
                VolumeMount("/src/project", "/code"),
                VolumeMount("/tmp/out", "/out", read_only=False),
            ],
            working_dir="/code",
            labels={"analyzer.engine": "rubocop"},
        )
        cmd = docker.build_run_command("analyzer/rubocop", spec, "c1")
        assert "/src/project:/code:ro" in cmd
        assert "/tmp/out:/out" in cmd
        env_values = [cmd[i + 1] for i, arg in enumerate(cmd) if arg == "--env"]
        assert env_values == ["A=1", "B=2"]
        assert cmd[cmd.index("--workdir") + 1] == "/code"
        assert cmd[cmd.index("--label") + 1] == "analyzer.engine=rubocop"
        assert cmd[-3:] == ["analyzer/rubocop", "/usr/src/app/bin/engine", "--debug"]

    def test_missing_binary(self):
        with patch("analyzer.execution.runtime.shutil.which", return_value=None):
            with pytest.raises(RuntimeUnavailableError):
                DockerRuntime().build_run_command("img", InvocationSpec(name="x"), "c1")


class TestDockerPull:
    def test_pull_success(self, docker):
        with patch("analyzer.execution.runtime.subprocess.run") as run:
            run.return_value = subprocess.CompletedProcess([], 0)
            assert docker.pull("analyzer/rubocop") is True
        assert run.call_args.args[0] == [DOCKER, "pull", "analyzer/rubocop"]

    def test_pull_failure(self, docker):
        with patch("analyzer.execution.runtime.subprocess.run") as run:
            run.return_value = subprocess.CompletedProcess([], 1)
            assert docker.pull("analyzer/missing") is False

    def test_pull_timeout_is_failure(self, docker):
        with patch("analyzer.execution.runtime.subprocess.run") as run:
            run.side_effect = subprocess.TimeoutExpired(cmd="docker pull", timeout=1)
            assert docker.pull("analyzer/slow") is False

    def test_missing_binary_is_failure(self):
        with patch("analyzer.execution.runtime.shutil.which", return_value=None), \
                patch("analyzer.execution.runtime.subprocess.run") as run:
            assert DockerRuntime().pull("analyzer/rubocop") is False
        run.assert_not_called()


class TestDockerStop:
    @pytest.mark.asyncio
    async def test_stop_after_exit_is_noop(self, docker):
        process = MagicMock(returncode=0)
        with patch("analyzer.execution.runtime.asyncio.create_subprocess_exec", new=AsyncMock()) as spawn:
            await docker.stop(RunningProcess(process, "c1"), grace_seconds=1)
        spawn.assert_not_called()


# ── Local process ────────────────────────────────────────────────────────


class TestLocalProcessRuntime:
    def test_pull_is_noop_success(self):
        assert LocalProcessRuntime().pull("anything") is True

    @pytest.mark.asyncio
    async def test_start_pipes_output(self):
        runtime = LocalProcessRuntime()
        spec = InvocationSpec(name="echo", command=[sys.executable, "-c", "print('hi')"])
        running = await runtime.start("ignored", spec)
        stdout, _ = await running.process.communicate()
        assert stdout.strip() == b"hi"
        assert running.returncode == 0

    @pytest.mark.asyncio
    async def test_without_inherited_env(self):
        runtime = LocalProcessRuntime(inherit_env=False)
        code = "import os; print(sorted(k for k in os.environ if k.startswith('ANALYZER_')))"
        spec = InvocationSpec(name="env", command=[sys.executable, "-c", code])
        running = await runtime.start("ignored", spec)
        stdout, _ = await running.process.communicate()
        assert b"ANALYZER_ENGINE_NAME" in stdout
        assert b"ANALYZER_RUNTIME" in stdout


# ── Termination ──────────────────────────────────────────────────────────


class TestTerminateProcess:
    @pytest.mark.asyncio
    async def test_exited_process_is_noop(self):
        process = await asyncio.create_subprocess_exec(sys.executable, "-c", "pass")
        await process.wait()
        await terminate_process(process, grace_seconds=0.1)
        assert process.returncode == 0

    @pytest.mark.asyncio
    async def test_terminates_sleeper(self):
        process = await asyncio.create_subprocess_exec(sys.executable, "-c", "import time; time.sleep(30)")
        await terminate_process(process, grace_seconds=5)
        assert process.returncode is not None
        assert process.returncode != 0

    @pytest.mark.asyncio
    @pytest.mark.skipif(sys.platform == "win32", reason="SIGTERM cannot be ignored on Windows")
    async def test_escalates_to_kill(self):
        code = (
            "import signal, sys, time\n"
            "signal.signal(signal.SIGTERM, signal.SIG_IGN)\n"
            "print('ready', flush=True)\n"
            "time.sleep(30)\n"
        )
        process = await asyncio.create_subprocess_exec(
            sys.executable, "-c", code, stdout=asyncio.subprocess.PIPE,
        )
        assert (await process.stdout.readline()).strip() == b"ready"
        await terminate_process(process, grace_seconds=0.3)
        assert process.returncode == -9
