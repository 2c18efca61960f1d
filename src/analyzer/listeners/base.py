"""Container listeners — observers of engine run lifecycle.

A listener is anything with ``started`` and ``finished`` hooks. The
dispatcher holds listeners in registration order and fans every event
out to each of them:

    .. code-block:: text

        EngineRunner
          │ started(engine, details)
          │ finished(engine, details, result)
          ▼
        ListenerDispatcher ──► LoggingContainerListener
                           ──► StatsdContainerListener
                           ──► ... (registration order)

A listener that raises is logged and skipped; delivery continues to the
remaining listeners.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from analyzer.core.logging import get_logger

if TYPE_CHECKING:
    from analyzer.execution.types import ExecutionResult

logger = get_logger(__name__)


@runtime_checkable
class ContainerListener(Protocol):
    """Observer of engine runs.

    ``engine`` is any object with a ``name``; resolved engines also carry
    a ``channel``.
    """

    def started(self, engine: Any, details: dict[str, Any]) -> None:
        ...

    def finished(self, engine: Any, details: dict[str, Any], result: ExecutionResult) -> None:
        ...


class ListenerDispatcher:
    """Fans lifecycle events out to registered listeners, in order."""

    def __init__(self, listeners: Iterable[ContainerListener] = ()):
        self._listeners: list[ContainerListener] = list(listeners)

    def add(self, listener: ContainerListener) -> None:
        self._listeners.append(listener)

    @property
    def listeners(self) -> list[ContainerListener]:
        return list(self._listeners)

    def __len__(self) -> int:
        return len(self._listeners)

    def started(self, engine: Any, details: dict[str, Any]) -> None:
        for listener in self._listeners:
            try:
                listener.started(engine, details)
            except Exception as exc:
                self._log_error(listener, "started", engine, exc)

    def finished(self, engine: Any, details: dict[str, Any], result: ExecutionResult) -> None:
        for listener in self._listeners:
            try:
                listener.finished(engine, details, result)
            except Exception as exc:
                self._log_error(listener, "finished", engine, exc)

    @staticmethod
    def _log_error(listener: ContainerListener, hook: str, engine: Any, exc: Exception) -> None:
        logger.warning(
            "listener_error",
            listener=type(listener).__name__,
            hook=hook,
            engine=getattr(engine, "name", None),
            error=str(exc),
            exc_info=exc,
        )


class LoggingContainerListener:
    """Writes one structured log event per lifecycle hook."""

    def started(self, engine: Any, details: dict[str, Any]) -> None:
        logger.info(
            "engine_started",
            engine=engine.name,
            channel=getattr(engine, "channel", None),
            details=details,
        )

    def finished(self, engine: Any, details: dict[str, Any], result: ExecutionResult) -> None:
        log = logger.info if result.succeeded else logger.warning
        log(
            "engine_finished",
            engine=engine.name,
            channel=getattr(engine, "channel", None),
            outcome=result.outcome.value,
            exit_status=result.exit_status,
            duration_ms=round(result.duration_ms, 3),
            details=details,
        )

