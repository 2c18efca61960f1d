"""Tests for StatsdContainerListener — engine metrics and outcome tags."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import MagicMock, call

import pytest

from analyzer.engines.registry import ResolvedEngine
from analyzer.execution.types import ExecutionResult
from analyzer.listeners.statsd import StatsdContainerListener
from analyzer.observability.metrics import MetricsRegistry, RegistryMetricsClient

ENGINE = ResolvedEngine(name="rubocop", channel="stable", image="analyzer/rubocop")
TAGS = ["engine:rubocop", "channel:stable"]

RESULT_METRICS = (
    "engines.result.error",
    "engines.result.error.timeout",
    "engines.result.error.output_exceeded",
    "engines.result.success",
)


def _result(**kwargs) -> ExecutionResult:
    defaults = {"exit_status": 0, "duration_seconds": 0.5}
    defaults.update(kwargs)
    return ExecutionResult(**defaults)


@pytest.fixture
def metrics() -> MagicMock:
    return MagicMock()


def _increments(metrics: MagicMock) -> list[str]:
    return [c.args[0] for c in metrics.increment.call_args_list]


# ── Events ───────────────────────────────────────────────────────────────


class TestStarted:
    def test_increments_started(self, metrics):
        StatsdContainerListener(metrics).started(ENGINE, {})
        metrics.increment.assert_called_once_with("engines.started", tags=TAGS)

    def test_repo_id_tag(self, metrics):
        StatsdContainerListener(metrics, repo_id="42").started(ENGINE, {})
        assert metrics.increment.call_args.kwargs["tags"] == TAGS + ["repo_id:42"]

    def test_engine_without_channel(self, metrics):
        StatsdContainerListener(metrics).started(SimpleNamespace(name="custom"), {})
        assert metrics.increment.call_args.kwargs["tags"] == ["engine:custom"]


class TestFinished:
    def test_success(self, metrics):
        StatsdContainerListener(metrics).finished(ENGINE, {}, _result())
        metrics.timing.assert_called_once_with("engines.time", 500.0, tags=TAGS)
        assert _increments(metrics) == ["engines.finished", "engines.result.success"]

    def test_timeout(self, metrics):
        StatsdContainerListener(metrics).finished(ENGINE, {}, _result(exit_status=-15, timed_out=True))
        assert _increments(metrics) == [
            "engines.finished",
            "engines.result.error",
            "engines.result.error.timeout",
        ]
        assert metrics.timing.call_count == 1

    def test_timeout_duplicate_timing_opt_in(self, metrics):
        listener = StatsdContainerListener(metrics, duplicate_timeout_timing=True)
        listener.finished(ENGINE, {}, _result(exit_status=-15, timed_out=True))
        assert metrics.timing.call_args_list == [
            call("engines.time", 500.0, tags=TAGS),
            call("engines.time", 500.0, tags=TAGS),
        ]

    def test_duplicate_timing_only_on_timeout(self, metrics):
        listener = StatsdContainerListener(metrics, duplicate_timeout_timing=True)
        listener.finished(ENGINE, {}, _result())
        assert metrics.timing.call_count == 1

    def test_output_exceeded(self, metrics):
        result = _result(exit_status=-15, maximum_output_exceeded=True)
        StatsdContainerListener(metrics).finished(ENGINE, {}, result)
        assert _increments(metrics) == [
            "engines.finished",
            "engines.result.error",
            "engines.result.error.output_exceeded",
        ]

    def test_nonzero_exit(self, metrics):
        StatsdContainerListener(metrics).finished(ENGINE, {}, _result(exit_status=1))
        assert _increments(metrics) == ["engines.finished", "engines.result.error"]

    def test_timed_out_with_zero_exit_is_still_timeout(self, metrics):
        StatsdContainerListener(metrics).finished(ENGINE, {}, _result(exit_status=0, timed_out=True))
        assert "engines.result.error.timeout" in _increments(metrics)
        assert "engines.result.success" not in _increments(metrics)


# ── Classification is exclusive ──────────────────────────────────────────


class TestExclusiveClassification:
    @pytest.mark.parametrize(
        ("kwargs", "expected"),
        [
            ({}, {"engines.result.success"}),
            ({"exit_status": 2}, {"engines.result.error"}),
            ({"exit_status": -15, "timed_out": True}, {"engines.result.error", "engines.result.error.timeout"}),
            ({"exit_status": -15, "timed_out": True, "aborted": True},
             {"engines.result.error", "engines.result.error.timeout"}),
            ({"exit_status": -15, "maximum_output_exceeded": True},
             {"engines.result.error", "engines.result.error.output_exceeded"}),
        ],
    )
    def test_one_classification_per_run(self, metrics, kwargs, expected):
        StatsdContainerListener(metrics).finished(ENGINE, {}, _result(**kwargs))
        emitted = {name for name in _increments(metrics) if name in RESULT_METRICS}
        assert emitted == expected


# ── Against the in-process registry ──────────────────────────────────────


class TestWithRegistryClient:
    def test_records_counters_and_timing(self):
        registry = MetricsRegistry()
        listener = StatsdContainerListener(RegistryMetricsClient(registry), repo_id="7")

        listener.started(ENGINE, {})
        listener.finished(ENGINE, {}, _result(duration_seconds=1.5))

        labels = {"engine": "rubocop", "channel": "stable", "repo_id": "7"}
        assert registry.counter("engines.started").value(**labels) == 1.0
        assert registry.counter("engines.result.success").value(**labels) == 1.0
        timing = registry.histogram("engines.time").snapshot(**labels)
        assert timing.count == 1
        assert timing.sum == 1500.0
