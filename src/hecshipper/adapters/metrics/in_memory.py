"""In-memory metrics registry."""

import bisect
import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field

from hecshipper.core.metrics import (
    DEFAULT_HISTOGRAM_BUCKETS,
    DELIVERY_METRICS,
    MetricDefinition,
    counter,
    histogram,
)
from hecshipper.core.models import MetricSample

LabelKey = tuple[tuple[str, str], ...]


def _label_key(labels: Mapping[str, str]) -> LabelKey:
    return tuple(sorted((k, str(v)) for k, v in labels.items()))


@dataclass
class _HistogramState:
    buckets: tuple[float, ...]
    bucket_counts: list[int] = field(default_factory=list)
    total: float = 0.0
    count: int = 0

    def __post_init__(self) -> None:
        self.bucket_counts = [0] * len(self.buckets)

    def observe(self, value: float) -> None:
        index = bisect.bisect_left(self.buckets, value)
        if index < len(self.buckets):
            self.bucket_counts[index] += 1
        self.total += value
        self.count += 1


class InMemoryMetricsRegistry:
    """In-memory implementation of MetricsSinkPort.

    Keeps cumulative counters and histograms per label set. All updates go
    through one lock, so a single registry can be shared by every worker
    thread. Suitable for testing and for hosts that scrape the values
    themselves.

    Args:
        definitions: Known metrics; histograms use their declared buckets.
            Unknown histograms fall back to DEFAULT_HISTOGRAM_BUCKETS.
    """

    def __init__(self, definitions: Iterable[MetricDefinition] = DELIVERY_METRICS) -> None:
        self._definitions = {d.name: d for d in definitions}
        self._lock = threading.Lock()
        self._counters: dict[tuple[str, LabelKey], float] = {}
        self._histograms: dict[tuple[str, LabelKey], _HistogramState] = {}

    def increment(
        self, name: str, labels: Mapping[str, str], by: float = 1.0
    ) -> None:
        """Add ``by`` to a counter."""
        if by < 0:
            raise ValueError("counters can only be incremented by non-negative amounts")
        key = (name, _label_key(labels))
        with self._lock:
            self._counters[key] = self._counters.get(key, 0.0) + by

    def observe(self, name: str, value: float, labels: Mapping[str, str]) -> None:
        """Record one histogram observation."""
        key = (name, _label_key(labels))
        with self._lock:
            state = self._histograms.get(key)
            if state is None:
                definition = self._definitions.get(name)
                buckets = (
                    definition.buckets if definition else DEFAULT_HISTOGRAM_BUCKETS
                )
                state = self._histograms[key] = _HistogramState(tuple(sorted(buckets)))
            state.observe(value)

    def counter_value(self, name: str, labels: Mapping[str, str]) -> float:
        """Return the current value of a counter, 0 if never incremented."""
        with self._lock:
            return self._counters.get((name, _label_key(labels)), 0.0)

    def histogram_count(self, name: str, labels: Mapping[str, str]) -> int:
        """Return the number of observations in a histogram."""
        with self._lock:
            state = self._histograms.get((name, _label_key(labels)))
            return state.count if state else 0

    def scrape(self) -> list[MetricSample]:
        """Snapshot every counter and histogram as metric samples."""
        samples: list[MetricSample] = []
        with self._lock:
            for (name, label_key), value in self._counters.items():
                samples.append(counter(name, value, dict(label_key)))
            for (name, label_key), state in self._histograms.items():
                samples.extend(
                    histogram(
                        name,
                        state.buckets,
                        state.bucket_counts,
                        state.total,
                        state.count,
                        dict(label_key),
                    )
                )
        return samples
