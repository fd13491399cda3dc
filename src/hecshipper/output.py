"""The output the host drives: format records, write batches.

HecOutput ties the transformer, the delivery client and the response
classifier together. It never retries; the returned outcome tells the host
whether to resend the batch.
"""

import logging
import socket
import threading
import time
from collections.abc import Iterable, Mapping, MutableMapping, Sequence
from typing import Any

import httpx

from hecshipper.adapters.http import HecClient
from hecshipper.adapters.metrics.in_memory import InMemoryMetricsRegistry
from hecshipper.config import HecSettings, load_settings
from hecshipper.core.accessors import compile_field_rules
from hecshipper.core.classify import classify
from hecshipper.core.encoding.utf8 import Utf8Sanitizer
from hecshipper.core.errors import TransportError
from hecshipper.core.formatters import MatchFormatter, build_formatter
from hecshipper.core.metrics import DeliveryMetrics
from hecshipper.core.models import (
    Accept,
    AcceptWithWarning,
    ConnectionConfig,
    DeliveryOutcome,
    Retry,
)
from hecshipper.core.ports import MetricsSinkPort
from hecshipper.core.transform import PayloadTransformer

logger = logging.getLogger(__name__)


def build_formatters(settings: HecSettings) -> list[MatchFormatter]:
    """Create the tag-matched formatters declared in settings, in order."""
    return [
        MatchFormatter(
            section.usage,
            build_formatter(section.type, **section.formatter_options()),
        )
        for section in settings.formats
    ]


class HecOutput:
    """Deliver batches of records to an HTTP Event Collector.

    Args:
        settings: Validated settings.
        metrics_sink: Receives delivery metrics. Defaults to a private
            InMemoryMetricsRegistry.
        formatters: Tag-matched formatters; built from settings if omitted.
        transport: httpx transport override for the delivery client.
        default_host: Host reported when no host rule is configured.
            Defaults to this machine's hostname.

    Example:
        ```python
        output = HecOutput.configure({"hec_host": "hec.local", "hec_token": "..."})
        with output:
            chunk = [output.format("app.web", time.time(), {"message": "hi"})]
            outcome = output.write(chunk)
        ```
    """

    def __init__(
        self,
        settings: HecSettings,
        *,
        metrics_sink: MetricsSinkPort | None = None,
        formatters: Sequence[MatchFormatter] | None = None,
        transport: httpx.BaseTransport | None = None,
        default_host: str | None = None,
    ) -> None:
        self.settings = settings
        self.connection: ConnectionConfig = settings.connection_config()
        self.metrics_sink = metrics_sink if metrics_sink is not None else InMemoryMetricsRegistry()
        self.plugin_id = settings.plugin_id or f"object:{id(self):x}"
        self._metrics = DeliveryMetrics(self.metrics_sink, settings.plugin_type, self.plugin_id)
        self._transport = transport
        self._client: HecClient | None = None
        self._inflight = 0
        self._idle = threading.Condition()

        accessors = compile_field_rules(
            settings.key_field_values(),
            settings.key_field_paths(),
            keep_keys=settings.keep_keys,
        )
        self.transformer = PayloadTransformer(
            accessors,
            default_host=default_host or socket.gethostname(),
            sanitizer=Utf8Sanitizer(
                coerce=settings.coerce_to_utf8,
                replacement=settings.non_utf8_replacement_string,
            ),
            formatters=formatters if formatters is not None else build_formatters(settings),
            extra_fields=settings.extra_fields(),
            data_type=settings.data_type,
            metrics_from_event=settings.metrics_from_event,
        )

    @classmethod
    def configure(cls, raw: dict[str, Any], **kwargs: Any) -> "HecOutput":
        """Validate raw options and build an output.

        Raises:
            ConfigurationError: On invalid settings or field rules.
        """
        return cls(load_settings(raw), **kwargs)

    @property
    def url(self) -> str:
        return self.connection.url

    def start(self) -> None:
        """Open the pooled connection."""
        if self._client is None:
            self._client = HecClient(self.connection, transport=self._transport)

    def shutdown(self) -> None:
        """Wait for in-flight writes, then close the connection."""
        with self._idle:
            self._idle.wait_for(lambda: self._inflight == 0)
            client, self._client = self._client, None
        if client is not None:
            client.close()

    def __enter__(self) -> "HecOutput":
        self.start()
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()

    def format(self, tag: str, time: Any, record: MutableMapping[str, Any]) -> bytes:
        """Format one record; may remove extracted keys from ``record``."""
        return self.transformer.format(tag, time, record)

    def write(self, chunk: Sequence[bytes]) -> DeliveryOutcome:
        """Deliver one batch of formatted records.

        Args:
            chunk: Output of ``format`` for each record of the batch.

        Returns:
            Accept or AcceptWithWarning when the batch must not be resent,
            Retry when the host should schedule it again.
        """
        with self._idle:
            client = self._client
            if client is None:
                raise RuntimeError("HecOutput.write() called before start()")
            self._inflight += 1
        try:
            return self._write(client, chunk)
        finally:
            with self._idle:
                self._inflight -= 1
                self._idle.notify_all()

    def _write(self, client: HecClient, chunk: Sequence[bytes]) -> DeliveryOutcome:
        body = b"".join(chunk)
        logger.debug("Received new chunk, records=%d size=%d", len(chunk), len(body))
        if not body:
            logger.debug("Chunk has no payload lines, nothing to send")
            return Accept()

        start = time.perf_counter()
        outcome: DeliveryOutcome
        try:
            response = client.deliver(body, compress=self.settings.gzip_compression)
        except TransportError as exc:
            outcome = Retry(reason=str(exc), error=exc, url=self.url)
            status = "transport_error"
        else:
            outcome = classify(
                response.status_code,
                self.settings.consume_chunk_on_4xx_errors,
                body=response.body,
                url=self.url,
            )
            status = str(response.status_code)
        latency = time.perf_counter() - start

        self._metrics.record_write(len(chunk), len(body), latency)
        self._metrics.record_status(status)
        self._log_outcome(outcome, body)
        return outcome

    def _log_outcome(self, outcome: DeliveryOutcome, body: bytes) -> None:
        if isinstance(outcome, Retry):
            logger.warning(
                "Failed POST to %s, batch will be retried (%s), response: %s",
                self.url,
                outcome.reason,
                outcome.body,
            )
        elif isinstance(outcome, AcceptWithWarning):
            logger.warning(
                "Failed POST to %s (%s), response: %s",
                self.url,
                outcome.reason,
                outcome.body,
            )
            logger.debug("Failed request body: %s", body)

    def emit(
        self, tag: str, events: Iterable[tuple[Any, Mapping[str, Any]]]
    ) -> DeliveryOutcome:
        """Format and write ``(time, record)`` pairs as one batch.

        Records are shallow-copied before formatting. Top-level keys of the
        caller's mappings survive extraction; nested ones may not.
        """
        chunk = [self.format(tag, event_time, dict(record)) for event_time, record in events]
        return self.write(chunk)
