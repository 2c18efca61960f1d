"""Lifecycle listeners for engine runs."""

from analyzer.listeners.base import (
    ContainerListener,
    ListenerDispatcher,
    LoggingContainerListener,
)
from analyzer.listeners.statsd import StatsdContainerListener

__all__ = [
    "ContainerListener",
    "ListenerDispatcher",
    "LoggingContainerListener",
    "StatsdContainerListener",
]
