"""hecshipper - ship records to an HTTP Event Collector.

Example:
    ```python
    from hecshipper import HecOutput

    output = HecOutput.configure({"hec_host": "splunk.example.com", "hec_token": "..."})
    with output:
        outcome = output.emit("app.web", [(time.time(), {"message": "started"})])
    ```
"""

from hecshipper._version import __version__
from hecshipper.adapters.http import HecClient
from hecshipper.adapters.logging import HecHandler
from hecshipper.adapters.metrics import InMemoryMetricsRegistry, PrometheusMetricsSink
from hecshipper.config import HecSettings, load_settings
from hecshipper.core.classify import classify
from hecshipper.core.errors import (
    ConfigurationError,
    ConflictingFieldError,
    EncodingError,
    HecError,
    ServerError,
    TransportError,
)
from hecshipper.core.models import (
    Accept,
    AcceptWithWarning,
    DeliveryOutcome,
    MetricSample,
    Retry,
)
from hecshipper.core.ports import Formatter, MetricsSinkPort
from hecshipper.output import HecOutput

__all__ = [
    "__version__",
    # Output
    "HecOutput",
    "HecSettings",
    "load_settings",
    # Outcomes
    "Accept",
    "AcceptWithWarning",
    "Retry",
    "DeliveryOutcome",
    "classify",
    # Errors
    "HecError",
    "ConfigurationError",
    "ConflictingFieldError",
    "EncodingError",
    "TransportError",
    "ServerError",
    # Ports
    "Formatter",
    "MetricsSinkPort",
    # Adapters
    "HecClient",
    "HecHandler",
    "InMemoryMetricsRegistry",
    "PrometheusMetricsSink",
    "MetricSample",
]
