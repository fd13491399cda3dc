"""Python logging handler adapter for hecshipper.

This adapter bridges Python's standard library logging module to a
HecOutput, so application logs are shipped as events.
"""

from __future__ import annotations

import logging
import threading
import traceback
from typing import TYPE_CHECKING, Any

from hecshipper.core.models import Retry

if TYPE_CHECKING:
    from hecshipper.output import HecOutput

# Standard LogRecord attributes that should not be treated as extra fields
_STANDARD_LOGRECORD_ATTRS = frozenset(
    {
        "args",
        "asctime",
        "created",
        "exc_info",
        "exc_text",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "message",
        "module",
        "msecs",
        "msg",
        "name",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "taskName",
        "thread",
        "threadName",
    }
)

_DEFAULT_INCLUDE_ATTRS = ["module", "funcName", "lineno", "pathname"]

# Records from these loggers are produced while shipping and would feed back
_SKIPPED_LOGGERS = ("hecshipper", "httpx", "httpcore")


def _is_skipped(name: str) -> bool:
    return any(
        name == prefix or name.startswith(prefix + ".") for prefix in _SKIPPED_LOGGERS
    )


class HecHandler(logging.Handler):
    """Logging handler that ships each log record as one HEC event.

    The event tag is ``<tag_prefix>.<logger name>``, so formatter patterns
    and ``${tag}`` templates can select on the logger.

    Example:
        ```python
        output = HecOutput.configure({"hec_host": "hec.local", "hec_token": "..."})
        output.start()
        logging.getLogger().addHandler(HecHandler(output))
        ```
    """

    def __init__(
        self,
        output: HecOutput,
        tag_prefix: str = "python",
        include_attrs: list[str] | None = None,
    ) -> None:
        """Initialize the handler.

        Args:
            output: A started HecOutput.
            tag_prefix: First part of the event tag.
            include_attrs: LogRecord attributes to include. Defaults to
                ["module", "funcName", "lineno", "pathname"].
        """
        super().__init__()
        self._output = output
        self._tag_prefix = tag_prefix
        self._include_attrs = include_attrs or _DEFAULT_INCLUDE_ATTRS
        # set while this thread is shipping; records logged meanwhile are dropped
        self._shipping = threading.local()

    def build_event(self, record: logging.LogRecord) -> dict[str, Any]:
        """Turn a LogRecord into the record mapping handed to the output."""
        attr_mapping: dict[str, str | int | float | bool] = {
            "module": record.module,
            "funcName": record.funcName or "",
            "lineno": record.lineno,
            "pathname": record.pathname,
        }
        event: dict[str, Any] = {
            "message": record.getMessage(),
            "level": record.levelname,
            "logger": record.name,
        }
        event.update(
            (key, attr_mapping[key]) for key in self._include_attrs if key in attr_mapping
        )

        # Extra attributes passed via the logging call
        for key, value in record.__dict__.items():
            if key not in _STANDARD_LOGRECORD_ATTRS and isinstance(
                value, (str, int, float, bool)
            ):
                event[key] = value

        if record.exc_info:
            exc_type, exc_value, exc_tb = record.exc_info
            if exc_type is not None:
                event["exc_type"] = exc_type.__name__
            if exc_value is not None:
                event["exc_message"] = str(exc_value)
            if exc_tb is not None:
                event["exc_traceback"] = "".join(
                    traceback.format_exception(exc_type, exc_value, exc_tb)
                )
        return event

    def emit(self, record: logging.LogRecord) -> None:
        """Send one log record; failures go through ``handleError``.

        Args:
            record: The log record to emit.
        """
        if _is_skipped(record.name) or getattr(self._shipping, "active", False):
            return
        self._shipping.active = True
        try:
            outcome = self._output.emit(
                f"{self._tag_prefix}.{record.name}",
                [(record.created, self.build_event(record))],
            )
            if isinstance(outcome, Retry):
                outcome.raise_for_retry()
        except Exception:
            self.handleError(record)
        finally:
            self._shipping.active = False
