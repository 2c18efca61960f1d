"""Core primitives: errors, structured logging, settings."""

from analyzer.core.errors import (
    AnalyzerError,
    ConfigError,
    ContainerRuntimeError,
    EngineNotFoundError,
    ErrorCategory,
    ErrorContext,
    ImagePullFailure,
    InvalidConfigError,
    InvalidLocationError,
    InvalidManifestError,
    RuntimeUnavailableError,
)
from analyzer.core.logging import LogContext, configure_logging, get_logger

__all__ = [
    "AnalyzerError",
    "ConfigError",
    "ContainerRuntimeError",
    "EngineNotFoundError",
    "ErrorCategory",
    "ErrorContext",
    "ImagePullFailure",
    "InvalidConfigError",
    "InvalidLocationError",
    "InvalidManifestError",
    "RuntimeUnavailableError",
    "LogContext",
    "configure_logging",
    "get_logger",
]
