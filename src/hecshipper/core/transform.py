"""Turn records into HEC payload lines.

Event mode produces one line per record. Metric mode produces one line per
record, or one line per key/value pair when metrics are derived from the
record itself.
"""

import logging
from collections.abc import Mapping, MutableMapping, Sequence
from datetime import datetime
from typing import Any

from hecshipper.core.accessors import Accessor
from hecshipper.core.encoding.ndjson import encode_payload, encode_payloads
from hecshipper.core.encoding.utf8 import Utf8Sanitizer
from hecshipper.core.errors import ConfigurationError
from hecshipper.core.formatters import MatchFormatter, find_formatter

logger = logging.getLogger(__name__)

DATA_TYPES = ("event", "metric")
_OPTIONAL_FIELDS = ("index", "source", "sourcetype")
_METRIC_FIELDS = ("metric_name", "metric_value")


def format_time(value: Any) -> str:
    """Render an event time as fractional seconds since the epoch."""
    if isinstance(value, datetime):
        return str(value.timestamp())
    return str(float(value))


class PayloadTransformer:
    """Build serialized payloads from records.

    Args:
        accessors: Compiled key-field accessors by field name.
        default_host: Host used when no host accessor is configured.
        sanitizer: UTF-8 policy applied before serialization.
        formatters: Tag-matched formatters for event mode, in priority order.
        extra_fields: Output field name to record key (indexed fields for
            events, dimensions for metrics).
        data_type: "event" or "metric".
        metrics_from_event: In metric mode, emit one metric per record key.
    """

    def __init__(
        self,
        accessors: Mapping[str, Accessor],
        default_host: str,
        sanitizer: Utf8Sanitizer,
        formatters: Sequence[MatchFormatter] = (),
        extra_fields: Mapping[str, str] | None = None,
        data_type: str = "event",
        metrics_from_event: bool = True,
    ) -> None:
        if data_type not in DATA_TYPES:
            raise ValueError(f"data_type must be one of {DATA_TYPES}, got {data_type!r}")
        if data_type == "metric" and not metrics_from_event:
            missing = [name for name in _METRIC_FIELDS if name not in accessors]
            if missing:
                raise ConfigurationError(
                    "Metric mode without metrics_from_event needs "
                    + " and ".join(missing)
                )
        self._accessors = dict(accessors)
        self._default_host = default_host
        self._sanitize = sanitizer
        self._formatters = tuple(formatters)
        self._extra_fields = dict(extra_fields) if extra_fields is not None else None
        self.data_type = data_type
        self.metrics_from_event = metrics_from_event

    def format(self, tag: str, time: Any, record: MutableMapping[str, Any]) -> bytes:
        """Format one record for the configured data type."""
        if self.data_type == "metric":
            return self.format_metric(tag, time, record)
        return self.format_event(tag, time, record)

    def _envelope(
        self, tag: str, time: Any, record: MutableMapping[str, Any]
    ) -> dict[str, Any]:
        accessors = self._accessors
        payload: dict[str, Any] = {
            "host": (
                accessors["host"](tag, record)
                if "host" in accessors
                else self._default_host
            ),
            "time": format_time(time),
        }
        if "time" in accessors:
            time_value = accessors["time"](tag, record)
            if time_value is not None:
                payload["time"] = time_value

        for name in _OPTIONAL_FIELDS:
            if name in accessors:
                payload[name] = accessors[name](tag, record)

        # HEC rejects null envelope values
        for name in ("host", *_OPTIONAL_FIELDS):
            if name in payload and payload[name] is None:
                del payload[name]
        return payload

    @staticmethod
    def _indexed_fields(
        extra_fields: Mapping[str, str], record: Mapping[str, Any]
    ) -> dict[str, Any]:
        return {
            name: record[source]
            for name, source in extra_fields.items()
            if record.get(source) is not None
        }

    def format_event(
        self, tag: str, time: Any, record: MutableMapping[str, Any]
    ) -> bytes:
        """Format one record as an event payload line.

        Returns:
            The serialized line, or empty bytes when the event is blank.
        """
        payload = self._envelope(tag, time, record)

        if self._extra_fields is not None:
            payload["fields"] = self._indexed_fields(self._extra_fields, record)
            # indexed fields are always moved out of the event
            for source in self._extra_fields.values():
                record.pop(source, None)

        # formatters may stringify values, so bytes are decoded before they run
        event: Any = self._sanitize(record)
        formatter = find_formatter(self._formatters, tag)
        if formatter is not None:
            event = formatter.format(tag, time, event)
        payload["event"] = event

        payload = self._sanitize(payload)
        if payload["event"] == "{}" or payload["event"] == {}:
            logger.warning("Event after formatting was blank, not sending")
            return b""
        return encode_payload(payload)

    def format_metric(
        self, tag: str, time: Any, record: MutableMapping[str, Any]
    ) -> bytes:
        """Format one record as one or more metric payload lines."""
        payload = self._envelope(tag, time, record)
        payload["event"] = "metric"

        if not self.metrics_from_event:
            fields: dict[str, Any] = {
                "metric_name": self._accessors["metric_name"](tag, record),
                "_value": self._accessors["metric_value"](tag, record),
            }
            if self._extra_fields is not None:
                fields.update(
                    (name, record.get(source))
                    for name, source in self._extra_fields.items()
                )
            else:
                fields.update(record)
            payload["fields"] = {k: v for k, v in fields.items() if v is not None}
            return encode_payload(self._sanitize(payload))

        return encode_payloads(
            self._sanitize({**payload, "fields": {"metric_name": key, "_value": value}})
            for key, value in list(record.items())
        )
