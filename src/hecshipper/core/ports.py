"""Port interfaces for collaborators owned by the host.

The core depends only on these protocols. Adapters under
``hecshipper.adapters`` provide concrete implementations.
"""

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class MetricsSinkPort(Protocol):
    """Port for recording delivery metrics.

    Implementations own registration and storage and must be safe to call
    from several threads. Examples: InMemoryMetricsRegistry,
    PrometheusMetricsSink.
    """

    def increment(
        self, name: str, labels: Mapping[str, str], by: float = 1.0
    ) -> None:
        """Add ``by`` to the counter ``name`` for the given label values."""
        ...

    def observe(self, name: str, value: float, labels: Mapping[str, str]) -> None:
        """Record one observation in the histogram ``name``."""
        ...


@runtime_checkable
class Formatter(Protocol):
    """Port for turning a record into the ``event`` value of a payload."""

    def format(self, tag: str, time: Any, record: Mapping[str, Any]) -> Any:
        """Return a string or a mapping to send as the event."""
        ...
