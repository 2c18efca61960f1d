"""EngineRunner — run resolved engines with listener notifications.

Ties the executor to the listener protocol and bounds how many engines run
at once:

    .. code-block:: text

        run_all(jobs)
          │  asyncio.Semaphore(max_concurrency)
          ▼
        run(engine, spec)
          ├── listener.started(engine, details)
          ├── executor.run(engine.image, spec, limits)
          └── listener.finished(engine, details, result)

Per run, ``started`` always precedes ``finished``. Across engines no
ordering is promised. If the runtime cannot start the process, ``run``
raises and no ``finished`` is emitted. ``run_all`` keeps that error in the
job's result slot and lets the other jobs finish; jobs still waiting for a
slot when ``abort`` is set never start and emit nothing.

``EngineRunner.from_settings`` wires limits, kill grace, concurrency and
the default listeners (logging plus metrics) from ``AnalyzerSettings``.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from typing import Any

from analyzer.core.logging import get_logger
from analyzer.core.settings import AnalyzerSettings
from analyzer.engines.registry import ResolvedEngine
from analyzer.execution.executor import ContainerExecutor, OutputCallback
from analyzer.execution.runtime import ContainerRuntime
from analyzer.execution.types import ExecutionLimits, ExecutionResult, InvocationSpec
from analyzer.listeners.base import ContainerListener, ListenerDispatcher, LoggingContainerListener
from analyzer.listeners.statsd import StatsdContainerListener
from analyzer.observability.metrics import MetricsClient, RegistryMetricsClient, get_metrics_registry

logger = get_logger(__name__)


@dataclass
class EngineJob:
    """One engine to run as part of a batch."""

    engine: ResolvedEngine
    spec: InvocationSpec
    details: dict[str, Any] = field(default_factory=dict)
    on_output: OutputCallback | None = None


class EngineRunner:
    """Runs engines through a ContainerExecutor and notifies listeners."""

    def __init__(
        self,
        executor: ContainerExecutor,
        limits: ExecutionLimits,
        *,
        listener: ContainerListener | None = None,
        max_concurrency: int = 2,
    ):
        if max_concurrency < 1:
            raise ValueError(f"max_concurrency must be at least 1, got {max_concurrency}")
        self._executor = executor
        self._limits = limits
        self._listener = listener if listener is not None else ListenerDispatcher()
        self._max_concurrency = max_concurrency

    @classmethod
    def from_settings(
        cls,
        settings: AnalyzerSettings,
        runtime: ContainerRuntime,
        *,
        metrics: MetricsClient | None = None,
        listeners: Iterable[ContainerListener] = (),
    ) -> EngineRunner:
        """Build a runner from settings.

        Listeners, in order: logging, metrics (tagged with
        ``settings.repo_id``), then ``listeners``. Without ``metrics`` the
        counts land in the process-wide ``MetricsRegistry``.
        """
        dispatcher = ListenerDispatcher([
            LoggingContainerListener(),
            StatsdContainerListener(
                metrics if metrics is not None else RegistryMetricsClient(get_metrics_registry()),
                repo_id=settings.repo_id,
            ),
            *listeners,
        ])
        return cls(
            ContainerExecutor(runtime, kill_grace_seconds=settings.kill_grace_seconds),
            ExecutionLimits.from_settings(settings),
            listener=dispatcher,
            max_concurrency=settings.max_concurrency,
        )

    @property
    def listener(self) -> ContainerListener:
        return self._listener

    @property
    def limits(self) -> ExecutionLimits:
        return self._limits

    @property
    def max_concurrency(self) -> int:
        return self._max_concurrency

    @property
    def executor(self) -> ContainerExecutor:
        return self._executor

    async def run(
        self,
        engine: ResolvedEngine,
        spec: InvocationSpec,
        *,
        details: dict[str, Any] | None = None,
        on_output: OutputCallback | None = None,
        abort: asyncio.Event | None = None,
    ) -> ExecutionResult:
        """Run one engine, bracketed by ``started`` and ``finished``."""
        details = details or {}
        self._listener.started(engine, details)
        result = await self._executor.run(
            engine.image, spec, self._limits, on_output=on_output, abort=abort,
        )
        self._listener.finished(engine, details, result)
        return result

    async def run_all(
        self,
        jobs: Sequence[EngineJob],
        *,
        abort: asyncio.Event | None = None,
    ) -> list[ExecutionResult | Exception | None]:
        """Run jobs concurrently, at most ``max_concurrency`` at a time.

        Returns one slot per job, in job order: the ``ExecutionResult``, the
        exception that stopped the job (a runtime that could not start it),
        or ``None`` when ``abort`` was set before the job started. A failing
        job never cuts its siblings short; the call returns only after every
        job has settled.
        """
        semaphore = asyncio.Semaphore(self._max_concurrency)

        async def _run_one(job: EngineJob) -> ExecutionResult | Exception | None:
            async with semaphore:
                if abort is not None and abort.is_set():
                    logger.info("engine_skipped", engine=job.engine.name, reason="aborted")
                    return None
                try:
                    return await self.run(
                        job.engine, job.spec,
                        details=job.details, on_output=job.on_output, abort=abort,
                    )
                except Exception as exc:
                    logger.warning(
                        "engine_failed",
                        engine=job.engine.name,
                        channel=job.engine.channel,
                        error=str(exc),
                    )
                    return exc

        results = list(await asyncio.gather(*(_run_one(job) for job in jobs)))
        logger.info(
            "engine_batch_complete",
            jobs=len(results),
            failed=sum(isinstance(r, Exception) for r in results),
            skipped=sum(r is None for r in results),
        )
        return results
