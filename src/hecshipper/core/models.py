"""Core domain models for record delivery."""

from dataclasses import dataclass, field
from typing import Any

from hecshipper.core.errors import ServerError

KEY_FIELDS = (
    "index",
    "time",
    "host",
    "source",
    "sourcetype",
    "metric_name",
    "metric_value",
)
TAG_PLACEHOLDER = "${tag}"


@dataclass(frozen=True)
class LiteralValue:
    """A constant key-field value.

    Attributes:
        value: Returned unchanged for every record.
    """

    value: Any


@dataclass(frozen=True)
class TagTemplate:
    """A key-field value with ``${tag}`` placeholders.

    Attributes:
        template: Text in which every placeholder is replaced by the tag.
    """

    template: str


@dataclass(frozen=True)
class PathExtract:
    """A key-field value read from the record.

    Attributes:
        keys: Key sequence walked through nested mappings.
        remove: Delete the terminal key from its parent after reading it.
    """

    keys: tuple[str, ...]
    remove: bool = False


FieldRule = LiteralValue | TagTemplate | PathExtract


@dataclass(frozen=True)
class ConnectionConfig:
    """Everything needed to open the pooled connection to the endpoint.

    Attributes:
        url: Fully built endpoint URL.
        headers: Headers sent with every request.
        insecure: Skip certificate and hostname verification.
        client_cert: Path to the client certificate (PEM).
        client_key: Path to the client private key (PEM).
        ca_file: Path to a CA bundle (PEM).
        ca_path: Directory of CA certificates (PEM).
        ciphers: Allowed cipher suites, OpenSSL names.
        require_min_tls: Refuse anything below TLS 1.2.
        idle_timeout: Seconds an idle pooled connection is kept alive.
        read_timeout: Seconds allowed between two reads, None for no limit.
        open_timeout: Seconds allowed to open a connection, None for no limit.
        trust_env: Take proxy settings from the environment.
    """

    url: str
    headers: dict[str, str] = field(default_factory=dict)
    insecure: bool = False
    client_cert: str | None = None
    client_key: str | None = None
    ca_file: str | None = None
    ca_path: str | None = None
    ciphers: tuple[str, ...] = ()
    require_min_tls: bool = True
    idle_timeout: float | None = 5.0
    read_timeout: float | None = None
    open_timeout: float | None = None
    trust_env: bool = True


@dataclass(frozen=True)
class DeliveryResponse:
    """Result of one POST to the endpoint.

    Attributes:
        status_code: HTTP status code.
        body: Response body text.
        duration: Seconds spent in the network call.
        sent_bytes: Size of the request body on the wire.
    """

    status_code: int
    body: str
    duration: float
    sent_bytes: int = 0


@dataclass(frozen=True)
class Accept:
    """The batch was delivered."""

    status_code: int | None = None

    @property
    def consumed(self) -> bool:
        return True


@dataclass(frozen=True)
class AcceptWithWarning:
    """The batch is consumed although the endpoint did not report success."""

    reason: str
    status_code: int | None = None
    body: str = ""

    @property
    def consumed(self) -> bool:
        return True


@dataclass(frozen=True)
class Retry:
    """The host should resend the whole batch.

    Attributes:
        reason: Human-readable description of the failure.
        status_code: HTTP status, None when no response arrived.
        body: Response body text.
        error: Transport failure behind the outcome, if any.
        url: Endpoint the batch was posted to.
    """

    reason: str
    status_code: int | None = None
    body: str = ""
    error: Exception | None = None
    url: str = ""

    @property
    def consumed(self) -> bool:
        return False

    def raise_for_retry(self) -> None:
        """Raise the failure as an exception for exception-driven retry loops."""
        if self.error is not None:
            raise self.error
        raise ServerError(self.status_code or 0, self.body, self.url)


DeliveryOutcome = Accept | AcceptWithWarning | Retry


@dataclass(frozen=True)
class MetricSample:
    """A single metric measurement.

    Attributes:
        name: Metric name (e.g., hec_output_write_records_count).
        timestamp: Unix timestamp in seconds.
        value: The metric value.
        labels: Key-value pairs for metric dimensions.
    """

    name: str
    timestamp: float
    value: float
    labels: dict[str, str] = field(default_factory=dict)
