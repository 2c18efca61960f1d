"""Engine execution: container runtimes, executor, bounded runner.

Modules:
    types    - InvocationSpec, ExecutionLimits, ExecutionResult, Outcome
    runtime  - ContainerRuntime protocol, DockerRuntime, LocalProcessRuntime
    executor - ContainerExecutor (timeout / output ceiling race)
    runner   - EngineRunner (listener notifications, bounded concurrency)
"""

from analyzer.execution.executor import ContainerExecutor
from analyzer.execution.runner import EngineJob, EngineRunner
from analyzer.execution.runtime import (
    ContainerRuntime,
    DockerRuntime,
    LocalProcessRuntime,
    RunningProcess,
    terminate_process,
)
from analyzer.execution.types import (
    ExecutionLimits,
    ExecutionResult,
    InvocationSpec,
    Outcome,
    VolumeMount,
)

__all__ = [
    "ContainerExecutor",
    "ContainerRuntime",
    "DockerRuntime",
    "EngineJob",
    "EngineRunner",
    "ExecutionLimits",
    "ExecutionResult",
    "InvocationSpec",
    "LocalProcessRuntime",
    "Outcome",
    "RunningProcess",
    "VolumeMount",
    "terminate_process",
]
