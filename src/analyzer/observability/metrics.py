"""In-process metrics for engine runs.

The metrics listener speaks the statsd client shape (``increment`` and
``timing`` with ``"key:value"`` tags). ``RegistryMetricsClient`` implements
that shape on top of a ``MetricsRegistry`` so counts and run times can be
inspected in the process that produced them:

    .. code-block:: text

        StatsdContainerListener
          │ increment("engines.started", tags=["engine:rubocop"])
          │ timing("engines.time", 812.0, tags=[...])
          ▼
        RegistryMetricsClient ──► MetricsRegistry
                                    ├── Counter   (per label set)
                                    └── Histogram (ms buckets, per label set)

Example:
    >>> client = RegistryMetricsClient()
    >>> client.increment("engines.started", tags=["engine:rubocop"])
    >>> client.registry.counter("engines.started").value(engine="rubocop")
    1.0
"""

from __future__ import annotations

import threading
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

# Engine run times in milliseconds, up to the default 15 minute timeout.
RUN_TIME_BUCKETS_MS = (100.0, 500.0, 1_000.0, 5_000.0, 15_000.0, 60_000.0, 300_000.0, 900_000.0, float("inf"))


@dataclass(frozen=True)
class Labels:
    """Hashable, order-independent label set."""

    pairs: tuple[tuple[str, str], ...] = ()

    @classmethod
    def of(cls, **labels: str) -> Labels:
        return cls(tuple(sorted(labels.items())))

    @classmethod
    def from_tags(cls, tags: Iterable[str]) -> Labels:
        """Parse ``"key:value"`` tags; a bare tag becomes ``{tag: "true"}``."""
        labels: dict[str, str] = {}
        for tag in tags:
            key, sep, value = tag.partition(":")
            labels[key] = value if sep else "true"
        return cls.of(**labels)

    def to_dict(self) -> dict[str, str]:
        return dict(self.pairs)


class Counter:
    """Monotonic count per label set."""

    kind = "counter"

    def __init__(self, name: str):
        self.name = name
        self._lock = threading.Lock()
        self._values: dict[Labels, float] = {}

    def inc(self, labels: Labels = Labels(), amount: float = 1.0) -> None:
        if amount < 0:
            raise ValueError(f"counter {self.name} cannot decrease")
        with self._lock:
            self._values[labels] = self._values.get(labels, 0.0) + amount

    def value(self, **labels: str) -> float:
        with self._lock:
            return self._values.get(Labels.of(**labels), 0.0)

    @property
    def total(self) -> float:
        with self._lock:
            return sum(self._values.values())

    def collect(self) -> list[dict[str, Any]]:
        with self._lock:
            return [
                {"name": self.name, "type": self.kind, "labels": labels.to_dict(), "value": value}
                for labels, value in self._values.items()
            ]


@dataclass
class HistogramSnapshot:
    """Observations recorded for one label set."""

    count: int = 0
    sum: float = 0.0
    buckets: dict[float, int] = field(default_factory=dict)


class Histogram:
    """Cumulative-bucket distribution per label set."""

    kind = "histogram"

    def __init__(self, name: str, buckets: tuple[float, ...] = RUN_TIME_BUCKETS_MS):
        if not buckets or list(buckets) != sorted(buckets):
            raise ValueError(f"histogram {name} needs ascending buckets")
        self.name = name
        self.buckets = buckets
        self._lock = threading.Lock()
        self._series: dict[Labels, HistogramSnapshot] = {}

    def _empty(self) -> HistogramSnapshot:
        return HistogramSnapshot(buckets=dict.fromkeys(self.buckets, 0))

    def observe(self, value: float, labels: Labels = Labels()) -> None:
        with self._lock:
            series = self._series.setdefault(labels, self._empty())
            series.count += 1
            series.sum += value
            for bound in self.buckets:
                if value <= bound:
                    series.buckets[bound] += 1

    def snapshot(self, **labels: str) -> HistogramSnapshot:
        """Copy of the observations for one label set (empty when unseen)."""
        with self._lock:
            series = self._series.get(Labels.of(**labels))
            if series is None:
                return self._empty()
            return HistogramSnapshot(series.count, series.sum, dict(series.buckets))

    def collect(self) -> list[dict[str, Any]]:
        with self._lock:
            return [
                {
                    "name": self.name,
                    "type": self.kind,
                    "labels": labels.to_dict(),
                    "count": series.count,
                    "sum": series.sum,
                    "buckets": dict(series.buckets),
                }
                for labels, series in self._series.items()
            ]


class MetricsRegistry:
    """Named counters and histograms, created on first use."""

    def __init__(self):
        self._lock = threading.Lock()
        self._metrics: dict[str, Counter | Histogram] = {}

    def _get_or_create(self, name: str, kind: type[Counter] | type[Histogram], **kwargs: Any) -> Any:
        with self._lock:
            metric = self._metrics.get(name)
            if metric is None:
                metric = self._metrics[name] = kind(name, **kwargs)
            elif not isinstance(metric, kind):
                raise TypeError(f"metric {name} is a {metric.kind}, not a {kind.kind}")
            return metric

    def counter(self, name: str) -> Counter:
        return self._get_or_create(name, Counter)

    def histogram(self, name: str, buckets: tuple[float, ...] = RUN_TIME_BUCKETS_MS) -> Histogram:
        return self._get_or_create(name, Histogram, buckets=buckets)

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._metrics)

    def collect(self) -> list[dict[str, Any]]:
        """Every series of every metric, ordered by metric name."""
        with self._lock:
            metrics = [self._metrics[name] for name in sorted(self._metrics)]
        return [sample for metric in metrics for sample in metric.collect()]


@runtime_checkable
class MetricsClient(Protocol):
    """The statsd-style client interface the metrics listener emits to."""

    def increment(self, metric: str, tags: list[str] | None = None) -> None:
        ...

    def timing(self, metric: str, millis: float, tags: list[str] | None = None) -> None:
        ...


class RegistryMetricsClient:
    """MetricsClient that records into a MetricsRegistry."""

    def __init__(self, registry: MetricsRegistry | None = None):
        self.registry = registry if registry is not None else MetricsRegistry()

    def increment(self, metric: str, tags: list[str] | None = None) -> None:
        self.registry.counter(metric).inc(Labels.from_tags(tags or []))

    def timing(self, metric: str, millis: float, tags: list[str] | None = None) -> None:
        self.registry.histogram(metric).observe(float(millis), Labels.from_tags(tags or []))


_process_registry = MetricsRegistry()


def get_metrics_registry() -> MetricsRegistry:
    """The process-wide registry ``EngineRunner.from_settings`` records into."""
    return _process_registry
