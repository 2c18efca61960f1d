"""
Structured error types for the analyzer.

Every error raised by the analyzer derives from ``AnalyzerError`` and carries:
- **Category:** What kind of error (config, runtime, validation, ...)
- **Retryable:** Whether the caller may retry the operation
- **Context:** Engine, channel, image and free-form metadata for logging
- **Cause:** Chained underlying exception for root cause analysis

Execution outcomes are *not* errors. A timed-out run, a run that exceeded
its output ceiling, or an engine that exited non-zero is reported through
``ExecutionResult`` fields so callers and listeners can decide policy.

Architecture:
    ::

        ┌──────────────────────────────────────────────────────────────┐
        │                        AnalyzerError                          │
        │  (category, retryable, context, cause)                        │
        ├──────────────────────────────────────────────────────────────┤
        │                                                               │
        │  ConfigError           ContainerRuntimeError  InvalidLocation │
        │  (CONFIG)              (RUNTIME)              (VALIDATION)    │
        │     │                      │                                  │
        │  EngineNotFoundError    ImagePullFailure                      │
        │  InvalidManifestError   RuntimeUnavailableError               │
        │  InvalidConfigError                                           │
        └──────────────────────────────────────────────────────────────┘

Usage:
    from analyzer.core.errors import ImagePullFailure

    if not runtime.pull(image):
        raise ImagePullFailure(image)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    CONFIG = "CONFIG"             # Manifest, configuration, unknown engines
    RUNTIME = "RUNTIME"           # Container runtime, image pulls
    VALIDATION = "VALIDATION"     # Malformed engine output
    INTERNAL = "INTERNAL"         # Bugs, unexpected state
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """Structured metadata attached to an error.

    Only non-None fields are serialized by ``to_dict()``; anything without
    a dedicated field goes into ``metadata``.
    """

    engine: str | None = None
    channel: str | None = None
    image: str | None = None
    path: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Serialize non-None fields for logging."""
        result = {
            k: v
            for k, v in {
                "engine": self.engine,
                "channel": self.channel,
                "image": self.image,
                "path": self.path,
            }.items()
            if v is not None
        }
        result.update(self.metadata)
        return result


class AnalyzerError(Exception):
    """Base class for all analyzer errors.

    Subclasses set ``default_category`` and ``default_retryable``; both can
    be overridden per instance.
    """

    default_category: ErrorCategory = ErrorCategory.UNKNOWN
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> AnalyzerError:
        """Add context to this error (fluent API)."""
        for key, value in kwargs.items():
            if key != "metadata" and hasattr(self.context, key):
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result: dict[str, Any] = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# CONFIGURATION ERRORS (Never Retryable)
# =============================================================================


class ConfigError(AnalyzerError):
    """Manifest or configuration problem authored by a user."""

    default_category = ErrorCategory.CONFIG


class EngineNotFoundError(ConfigError):
    """An engine name, or a channel of a known engine, is not in the manifest."""

    def __init__(self, name: str, channel: str | None):
        self.name = name
        self.channel = channel
        super().__init__(
            f"unknown engine <{name}:{channel}>",
            context=ErrorContext(engine=name, channel=channel),
        )

    @property
    def label(self) -> str:
        return f"{self.name}:{self.channel}"


class InvalidManifestError(ConfigError):
    """The engine manifest does not have the expected shape."""


class InvalidConfigError(ConfigError):
    """An engine configuration entry does not have the expected shape."""

    def __init__(self, key: str, value: Any, message: str | None = None):
        self.key = key
        self.value = value
        super().__init__(
            message or f"Invalid configuration for '{key}': {value!r}",
            context=ErrorContext(engine=key),
        )


# =============================================================================
# RUNTIME ERRORS
# =============================================================================


class ContainerRuntimeError(AnalyzerError):
    """Base for failures of the container runtime itself."""

    default_category = ErrorCategory.RUNTIME


class ImagePullFailure(ContainerRuntimeError):
    """The runtime reported failure pulling a resolved image.

    Fatal to an installation batch. Not retried automatically; retry policy
    belongs to the caller.
    """

    def __init__(self, image: str, *, cause: Exception | None = None):
        self.image = image
        super().__init__(
            f"unable to pull image {image}",
            context=ErrorContext(image=image),
            cause=cause,
        )


class RuntimeUnavailableError(ContainerRuntimeError):
    """The runtime binary is missing or a process could not be started."""

    default_retryable = True


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class InvalidLocationError(AnalyzerError):
    """A location descriptor or source offset cannot be resolved."""

    default_category = ErrorCategory.VALIDATION
