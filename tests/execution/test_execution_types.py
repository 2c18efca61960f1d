"""Tests for ExecutionResult invariants and outcome classification."""

from __future__ import annotations

import pytest

from analyzer.execution.types import (
    ExecutionLimits,
    ExecutionResult,
    InvocationSpec,
    Outcome,
    VolumeMount,
)


class TestExecutionResult:
    def test_both_limits_rejected(self):
        with pytest.raises(ValueError):
            ExecutionResult(exit_status=137, duration_seconds=1, timed_out=True, maximum_output_exceeded=True)

    def test_aborted_requires_timed_out(self):
        with pytest.raises(ValueError):
            ExecutionResult(exit_status=143, duration_seconds=1, aborted=True)

    def test_frozen(self):
        result = ExecutionResult(exit_status=0, duration_seconds=1)
        with pytest.raises(AttributeError):
            result.exit_status = 1

    @pytest.mark.parametrize(
        ("kwargs", "outcome"),
        [
            ({"exit_status": 0}, Outcome.SUCCESS),
            ({"exit_status": 2}, Outcome.ERROR),
            ({"exit_status": -15, "timed_out": True}, Outcome.TIMEOUT),
            ({"exit_status": 0, "timed_out": True}, Outcome.TIMEOUT),
            ({"exit_status": -15, "maximum_output_exceeded": True}, Outcome.OUTPUT_EXCEEDED),
            ({"exit_status": -15, "timed_out": True, "aborted": True}, Outcome.TIMEOUT),
        ],
    )
    def test_outcome(self, kwargs, outcome):
        result = ExecutionResult(duration_seconds=0.5, **kwargs)
        assert result.outcome is outcome
        assert result.succeeded is (outcome is Outcome.SUCCESS)

    def test_duration_ms(self):
        assert ExecutionResult(exit_status=0, duration_seconds=1.25).duration_ms == 1250.0

    def test_to_dict_summarizes_output(self):
        result = ExecutionResult(exit_status=0, duration_seconds=0.1, output=b"x" * 10, container_name="c1")
        d = result.to_dict()
        assert d["output_bytes"] == 10
        assert d["outcome"] == "success"
        assert d["container_name"] == "c1"
        assert "output" not in d


class TestExecutionLimits:
    def test_defaults(self):
        limits = ExecutionLimits()
        assert limits.timeout_seconds == 900
        assert limits.max_output_bytes == 500_000_000

    @pytest.mark.parametrize("kwargs", [{"timeout_seconds": 0}, {"max_output_bytes": -1}])
    def test_must_be_positive(self, kwargs):
        with pytest.raises(ValueError):
            ExecutionLimits(**kwargs)


class TestInvocationSpec:
    def test_to_dict_hides_env_values(self):
        spec = InvocationSpec(
            name="rubocop",
            env={"TOKEN": "secret"},
            volumes=[VolumeMount("/src", "/code")],
        )
        d = spec.to_dict()
        assert d["env"] == ["TOKEN"]
        assert "secret" not in str(d)
        assert d["volumes"] == ["/src:/code"]
        assert d["network_disabled"] is True
