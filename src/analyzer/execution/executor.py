"""ContainerExecutor — run one engine image under execution limits.

Architecture:

    .. code-block:: text

        run(image, spec, limits)
          │
          ├── runtime.start(image, spec) ──► RunningProcess
          │
          ├── stdout pump task    counts bytes, streams chunks,
          │                       completes early once the ceiling is passed
          ├── stderr drain task   keeps a bounded tail
          ├── exit task           process.wait()
          └── abort task          optional external cancel (asyncio.Event)
                │
                ▼
          asyncio.wait(FIRST_COMPLETED, timeout=deadline - now)
            ├── nothing completed before the deadline → TIMEOUT
            ├── stdout pump reports the ceiling passed → OUTPUT_EXCEEDED
            ├── abort event set                       → ABORTED
            └── exit + stdout EOF                     → EXITED
                │
                ▼
          runtime.stop(...) unless EXITED   (SIGTERM → grace → SIGKILL)
                │
                ▼
          ExecutionResult (never raised)

No polling: the event loop wakes only on output, exit, abort, or the
deadline. Output is streamed in fixed-size chunks, so memory stays bounded
by the ceiling even when nothing consumes the stream.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable
from enum import Enum

from analyzer.core.logging import LogContext, get_logger
from analyzer.execution.runtime import ContainerRuntime
from analyzer.execution.types import ExecutionLimits, ExecutionResult, InvocationSpec

logger = get_logger(__name__)

STDOUT_CHUNK_BYTES = 64 * 1024
STDERR_TAIL_BYTES = 64 * 1024
READER_DRAIN_SECONDS = 1.0

OutputCallback = Callable[[bytes], None]


class _Termination(str, Enum):
    EXITED = "exited"
    TIMEOUT = "timeout"
    OUTPUT_EXCEEDED = "output_exceeded"
    ABORTED = "aborted"


async def _pump_stdout(
    stream: asyncio.StreamReader,
    max_bytes: int,
    on_output: OutputCallback | None,
    captured: bytearray,
) -> bool:
    """Read stdout to EOF. Returns True as soon as ``max_bytes`` is passed."""
    total = 0
    while True:
        chunk = await stream.read(STDOUT_CHUNK_BYTES)
        if not chunk:
            return False

        allowed = max_bytes - total
        total += len(chunk)
        if total > max_bytes:
            chunk = chunk[:allowed]
        if chunk:
            if on_output is not None:
                on_output(chunk)
            else:
                captured.extend(chunk)
        if total > max_bytes:
            return True


async def _drain_stderr(stream: asyncio.StreamReader, tail: bytearray) -> None:
    while True:
        chunk = await stream.read(STDOUT_CHUNK_BYTES)
        if not chunk:
            return
        tail.extend(chunk)
        if len(tail) > STDERR_TAIL_BYTES:
            del tail[: len(tail) - STDERR_TAIL_BYTES]


class ContainerExecutor:
    """Runs engine images with a wall-clock timeout and an output ceiling.

    Concurrent ``run`` calls share nothing but the runtime.

    Example:
        >>> executor = ContainerExecutor(DockerRuntime(), kill_grace_seconds=10)
        >>> result = await executor.run(
        ...     "analyzer/rubocop",
        ...     InvocationSpec(name="rubocop"),
        ...     ExecutionLimits(timeout_seconds=900, max_output_bytes=500_000_000),
        ... )
        >>> result.outcome
        <Outcome.SUCCESS: 'success'>
    """

    def __init__(self, runtime: ContainerRuntime, *, kill_grace_seconds: float = 10.0):
        self._runtime = runtime
        self._kill_grace = kill_grace_seconds

    @property
    def runtime(self) -> ContainerRuntime:
        return self._runtime

    @property
    def kill_grace_seconds(self) -> float:
        return self._kill_grace

    async def run(
        self,
        image: str,
        spec: InvocationSpec,
        limits: ExecutionLimits,
        *,
        on_output: OutputCallback | None = None,
        abort: asyncio.Event | None = None,
    ) -> ExecutionResult:
        """Run ``image`` until it exits or a limit is breached.

        Args:
            image: Resolved image reference.
            spec: Invocation details (command, env, mounts).
            limits: Timeout and stdout byte ceiling.
            on_output: Receives stdout chunks as they arrive. When omitted,
                stdout is captured into ``ExecutionResult.output``.
            abort: Setting this event force-terminates the run; the result
                is reported as timed out and aborted.

        Raises:
            RuntimeUnavailableError: If the runtime cannot start the process.
                Execution outcomes are never raised.
        """
        async with LogContext(engine=spec.name):
            return await self._run(image, spec, limits, on_output, abort)

    async def _run(
        self,
        image: str,
        spec: InvocationSpec,
        limits: ExecutionLimits,
        on_output: OutputCallback | None,
        abort: asyncio.Event | None,
    ) -> ExecutionResult:
        started = time.monotonic()
        deadline = started + limits.timeout_seconds
        running = await self._runtime.start(image, spec)
        logger.debug("engine_process_started", image=image, container=running.container_name)

        process = running.process
        captured = bytearray()
        stderr_tail = bytearray()

        stdout_task = asyncio.create_task(
            _pump_stdout(process.stdout, limits.max_output_bytes, on_output, captured)
        )
        stderr_task = asyncio.create_task(_drain_stderr(process.stderr, stderr_tail))
        exit_task = asyncio.create_task(process.wait())
        abort_task = asyncio.create_task(abort.wait()) if abort is not None else None
        tasks = [t for t in (stdout_task, stderr_task, exit_task, abort_task) if t is not None]

        try:
            try:
                reason = await self._race(stdout_task, exit_task, abort_task, deadline)
            except BaseException:
                # Cancellation of the caller or a failing output consumer
                await self._runtime.stop(running, self._kill_grace)
                raise

            if reason is not _Termination.EXITED:
                logger.warning(
                    "engine_terminated",
                    reason=reason.value,
                    timeout_seconds=limits.timeout_seconds,
                    max_output_bytes=limits.max_output_bytes,
                )
                await self._runtime.stop(running, self._kill_grace)

            exit_status = await exit_task
            await self._drain_readers(stdout_task, stderr_task)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()

        duration = time.monotonic() - started
        result = ExecutionResult(
            exit_status=exit_status,
            duration_seconds=duration,
            timed_out=reason in (_Termination.TIMEOUT, _Termination.ABORTED),
            maximum_output_exceeded=reason is _Termination.OUTPUT_EXCEEDED,
            aborted=reason is _Termination.ABORTED,
            output=bytes(captured),
            stderr=stderr_tail.decode(errors="replace"),
            container_name=running.container_name,
        )
        logger.debug("engine_process_finished", **result.to_dict())
        return result

    async def _race(
        self,
        stdout_task: asyncio.Task[bool],
        exit_task: asyncio.Task[int],
        abort_task: asyncio.Task[bool] | None,
        deadline: float,
    ) -> _Termination:
        pending: set[asyncio.Task] = {stdout_task, exit_task}
        if abort_task is not None:
            pending.add(abort_task)

        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return _Termination.TIMEOUT

            done, pending = await asyncio.wait(
                pending, timeout=remaining, return_when=asyncio.FIRST_COMPLETED,
            )
            if not done:
                return _Termination.TIMEOUT
            if stdout_task in done and stdout_task.result():
                return _Termination.OUTPUT_EXCEEDED
            if abort_task is not None and abort_task in done:
                return _Termination.ABORTED
            if exit_task.done() and stdout_task.done():
                return _Termination.EXITED

    async def _drain_readers(self, stdout_task: asyncio.Task[bool], stderr_task: asyncio.Task[None]) -> None:
        """Give the pipe readers a moment to hit EOF after the process is gone."""
        readers = [t for t in (stdout_task, stderr_task) if not t.done()]
        if readers:
            await asyncio.wait(readers, timeout=READER_DRAIN_SECONDS)

    def run_sync(
        self,
        image: str,
        spec: InvocationSpec,
        limits: ExecutionLimits,
        *,
        on_output: OutputCallback | None = None,
    ) -> ExecutionResult:
        """Blocking wrapper around ``run`` for callers without an event loop."""
        return asyncio.run(self.run(image, spec, limits, on_output=on_output))


__all__ = ["ContainerExecutor", "OutputCallback"]
