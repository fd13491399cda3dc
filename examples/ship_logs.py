"""Example: ship application logs and host metrics to a collector.

Run with:
    HEC_HOST=splunk.example.com HEC_TOKEN=... python examples/ship_logs.py

What it shows:
    - HecHandler forwarding stdlib logging records as events
    - HecOutput.emit for metric payloads derived from a record
    - PrometheusMetricsSink exposing delivery metrics for scraping
"""

import logging
import os
import time

from prometheus_client import CollectorRegistry, generate_latest

from hecshipper import HecHandler, HecOutput, PrometheusMetricsSink

registry = CollectorRegistry()
sink = PrometheusMetricsSink(registry)

events = HecOutput.configure(
    {
        "hec_host": os.environ.get("HEC_HOST", "localhost"),
        "hec_token": os.environ.get("HEC_TOKEN", "changeme"),
        "insecure_ssl": True,
        "sourcetype": "python:${tag}",
        "plugin_id": "events",
    },
    metrics_sink=sink,
)
metrics = HecOutput.configure(
    {
        "hec_host": os.environ.get("HEC_HOST", "localhost"),
        "hec_token": os.environ.get("HEC_TOKEN", "changeme"),
        "insecure_ssl": True,
        "data_type": "metric",
        "index": "metrics",
        "plugin_id": "metrics",
    },
    metrics_sink=sink,
)


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    with events, metrics:
        app_logger = logging.getLogger("example.app")
        app_logger.addHandler(HecHandler(events))

        app_logger.info("example started", extra={"pid": os.getpid()})
        load1, load5, load15 = os.getloadavg()
        outcome = metrics.emit(
            "example.host",
            [(time.time(), {"load1": load1, "load5": load5, "load15": load15})],
        )
        if not outcome.consumed:
            app_logger.warning("metrics batch needs a retry: %s", outcome)

    print(generate_latest(registry).decode())


if __name__ == "__main__":
    main()
