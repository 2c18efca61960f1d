"""Metrics listener: counts and times engine runs.

Metric names are ``engines.<action>``:

    .. code-block:: text

        started  → engines.started
        finished → engines.time (timing, ms)
                   engines.finished
                   then exactly one of, in priority order:
                     timed out        → engines.result.error
                                        engines.result.error.timeout
                     output exceeded  → engines.result.error
                                        engines.result.error.output_exceeded
                     non-zero exit    → engines.result.error
                     otherwise        → engines.result.success

Every metric is tagged ``engine:<name>``, plus ``channel:<channel>`` when
the engine has one and ``repo_id:<id>`` when configured.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from analyzer.observability.metrics import MetricsClient

if TYPE_CHECKING:
    from analyzer.execution.types import ExecutionResult


class StatsdContainerListener:
    """ContainerListener that emits engine metrics to a MetricsClient.

    Args:
        metrics: Client exposing ``increment`` and ``timing``.
        repo_id: Optional repository identifier added to every tag set.
        duplicate_timeout_timing: Record the run time a second time on the
            timeout path, for dashboards built on the historical double
            sample. Off by default.
    """

    def __init__(
        self,
        metrics: MetricsClient,
        repo_id: str | None = None,
        *,
        duplicate_timeout_timing: bool = False,
    ):
        self._metrics = metrics
        self._repo_id = repo_id
        self._duplicate_timeout_timing = duplicate_timeout_timing

    def started(self, engine: Any, details: dict[str, Any]) -> None:
        self._increment(engine, "started")

    def finished(self, engine: Any, details: dict[str, Any], result: ExecutionResult) -> None:
        self._timing(engine, "time", result.duration_ms)
        self._increment(engine, "finished")

        if result.timed_out:
            if self._duplicate_timeout_timing:
                self._timing(engine, "time", result.duration_ms)
            self._increment(engine, "result.error")
            self._increment(engine, "result.error.timeout")
        elif result.maximum_output_exceeded:
            self._increment(engine, "result.error")
            self._increment(engine, "result.error.output_exceeded")
        elif result.exit_status != 0:
            self._increment(engine, "result.error")
        else:
            self._increment(engine, "result.success")

    def _increment(self, engine: Any, action: str) -> None:
        self._metrics.increment(self._metric_name(action), tags=self._engine_tags(engine))

    def _timing(self, engine: Any, action: str, millis: float) -> None:
        self._metrics.timing(self._metric_name(action), millis, tags=self._engine_tags(engine))

    @staticmethod
    def _metric_name(action: str) -> str:
        return f"engines.{action}"

    def _engine_tags(self, engine: Any) -> list[str]:
        tags = [f"engine:{engine.name}"]
        channel = getattr(engine, "channel", None)
        if channel:
            tags.append(f"channel:{channel}")
        if self._repo_id:
            tags.append(f"repo_id:{self._repo_id}")
        return tags
