"""Delivery metric definitions and sample helpers."""

import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from hecshipper.core.models import MetricSample
from hecshipper.core.ports import MetricsSinkPort

DEFAULT_HISTOGRAM_BUCKETS = (0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1, 2.5, 5, 10)

BASE_LABELS = ("type", "plugin_id")


@dataclass(frozen=True)
class MetricDefinition:
    """Static description of one delivery metric.

    Attributes:
        name: Metric name.
        kind: "counter" or "histogram".
        description: Help text.
        label_names: Label keys every sample carries.
        buckets: Histogram bucket upper bounds (ignored for counters).
    """

    name: str
    kind: str
    description: str
    label_names: tuple[str, ...] = BASE_LABELS
    buckets: tuple[float, ...] = DEFAULT_HISTOGRAM_BUCKETS


RECORDS_COUNTER = MetricDefinition(
    "hec_output_write_records_count",
    "counter",
    "The number of log records being sent",
)
BYTES_COUNTER = MetricDefinition(
    "hec_output_write_bytes_count",
    "counter",
    "The number of log bytes being sent",
)
STATUS_COUNTER = MetricDefinition(
    "hec_output_write_status_count",
    "counter",
    "The count of sends by response_code",
    label_names=(*BASE_LABELS, "status"),
)
PAYLOAD_BYTES_HISTOGRAM = MetricDefinition(
    "hec_output_write_payload_bytes",
    "histogram",
    "The size of the write payload in bytes",
    buckets=(1024, 23_937, 47_875, 95_750, 191_500, 383_000, 766_000, 1_149_000),
)
PAYLOAD_RECORDS_HISTOGRAM = MetricDefinition(
    "hec_output_write_payload_records",
    "histogram",
    "The number of records written per write",
    buckets=(1, 10, 25, 100, 200, 300, 500, 750, 1000, 1500),
)
LATENCY_HISTOGRAM = MetricDefinition(
    "hec_output_write_latency_seconds",
    "histogram",
    "The latency of writes",
)

DELIVERY_METRICS = (
    RECORDS_COUNTER,
    BYTES_COUNTER,
    STATUS_COUNTER,
    PAYLOAD_BYTES_HISTOGRAM,
    PAYLOAD_RECORDS_HISTOGRAM,
    LATENCY_HISTOGRAM,
)


def counter(
    name: str,
    value: float,
    labels: Mapping[str, str] | None = None,
) -> MetricSample:
    """Create a counter metric sample.

    Args:
        name: Metric name (e.g., "hec_output_write_records_count")
        value: Current cumulative value
        labels: Optional dimension labels

    Returns:
        MetricSample with current timestamp
    """
    return MetricSample(
        name=name,
        timestamp=time.time(),
        value=value,
        labels=dict(labels or {}),
    )


def histogram(
    name: str,
    buckets: Sequence[float],
    bucket_counts: Sequence[int],
    total: float,
    count: int,
    labels: Mapping[str, str] | None = None,
) -> list[MetricSample]:
    """Create histogram metric samples from cumulative state.

    Args:
        name: Metric name (e.g., "hec_output_write_latency_seconds")
        buckets: Bucket upper bounds
        bucket_counts: Observations per bucket (not cumulative)
        total: Sum of all observations
        count: Number of observations
        labels: Optional dimension labels

    Returns:
        List of MetricSample objects (bucket samples + sum + count)
    """
    timestamp = time.time()
    base_labels = dict(labels or {})
    samples: list[MetricSample] = []

    cumulative = 0
    for boundary, bucket_count in zip(buckets, bucket_counts):
        cumulative += bucket_count
        samples.append(
            MetricSample(
                name=f"{name}_bucket",
                timestamp=timestamp,
                value=float(cumulative),
                labels={**base_labels, "le": str(boundary)},
            )
        )

    # +Inf bucket holds every observation
    samples.append(
        MetricSample(
            name=f"{name}_bucket",
            timestamp=timestamp,
            value=float(count),
            labels={**base_labels, "le": "+Inf"},
        )
    )
    samples.append(
        MetricSample(name=f"{name}_sum", timestamp=timestamp, value=total, labels=base_labels)
    )
    samples.append(
        MetricSample(
            name=f"{name}_count", timestamp=timestamp, value=float(count), labels=base_labels
        )
    )
    return samples


class DeliveryMetrics:
    """Report per-batch delivery metrics to a sink.

    Args:
        sink: Metrics sink owned by the host.
        plugin_type: Value of the "type" label.
        plugin_id: Value of the "plugin_id" label.
    """

    def __init__(self, sink: MetricsSinkPort, plugin_type: str, plugin_id: str) -> None:
        self.sink = sink
        self.labels = {"type": plugin_type, "plugin_id": plugin_id}

    def record_write(self, records: int, size: int, latency: float) -> None:
        """Record counts, sizes and latency of one write."""
        labels = self.labels
        self.sink.increment(RECORDS_COUNTER.name, labels, by=records)
        self.sink.increment(BYTES_COUNTER.name, labels, by=size)
        self.sink.observe(PAYLOAD_RECORDS_HISTOGRAM.name, records, labels)
        self.sink.observe(PAYLOAD_BYTES_HISTOGRAM.name, size, labels)
        self.sink.observe(LATENCY_HISTOGRAM.name, latency, labels)

    def record_status(self, status: str) -> None:
        """Count one response (or transport failure) by status."""
        self.sink.increment(STATUS_COUNTER.name, {**self.labels, "status": status})
