"""Prometheus metrics sink backed by prometheus_client."""

from collections.abc import Iterable, Mapping

from prometheus_client import CollectorRegistry, Counter, Histogram

from hecshipper.core.errors import ConfigurationError
from hecshipper.core.metrics import DELIVERY_METRICS, MetricDefinition


class PrometheusMetricsSink:
    """MetricsSinkPort implementation that feeds a Prometheus registry.

    Collectors are registered on the registry passed in, never on the
    process-global default registry. Share one sink between outputs that
    report to the same registry; the ``plugin_id`` label keeps their series
    apart.

    Args:
        registry: Target registry. A private registry is created if omitted.
        definitions: Metrics to register.

    Raises:
        ConfigurationError: If a metric name is already taken in the registry.
    """

    def __init__(
        self,
        registry: CollectorRegistry | None = None,
        definitions: Iterable[MetricDefinition] = DELIVERY_METRICS,
    ) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()
        self._counters: dict[str, Counter] = {}
        self._histograms: dict[str, Histogram] = {}
        for definition in definitions:
            try:
                self._register(definition)
            except ValueError as exc:
                raise ConfigurationError(
                    f"Metric {definition.name} is already registered: {exc}"
                ) from exc

    def _register(self, definition: MetricDefinition) -> None:
        if definition.kind == "counter":
            self._counters[definition.name] = Counter(
                definition.name,
                definition.description,
                labelnames=definition.label_names,
                registry=self.registry,
            )
        elif definition.kind == "histogram":
            self._histograms[definition.name] = Histogram(
                definition.name,
                definition.description,
                labelnames=definition.label_names,
                buckets=definition.buckets,
                registry=self.registry,
            )
        else:
            raise ConfigurationError(f"Unknown metric kind {definition.kind!r}")

    def increment(
        self, name: str, labels: Mapping[str, str], by: float = 1.0
    ) -> None:
        """Add ``by`` to a registered counter."""
        try:
            collector = self._counters[name]
        except KeyError:
            raise ValueError(f"Unknown counter {name!r}") from None
        collector.labels(**labels).inc(by)

    def observe(self, name: str, value: float, labels: Mapping[str, str]) -> None:
        """Record one observation in a registered histogram."""
        try:
            collector = self._histograms[name]
        except KeyError:
            raise ValueError(f"Unknown histogram {name!r}") from None
        collector.labels(**labels).observe(value)
