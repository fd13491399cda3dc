"""Output configuration.

Settings are validated once at startup. Every problem is reported as a
ConfigurationError so the host can abort before any record is accepted.

Example usage:
    settings = load_settings({"hec_host": "splunk.example.com", "hec_token": "..."})
    connection = settings.connection_config()
"""

from typing import Any, Literal

import httpx
from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, model_validator

from hecshipper._version import __version__
from hecshipper.adapters.http import build_headers
from hecshipper.core.accessors import build_rule
from hecshipper.core.errors import ConfigurationError
from hecshipper.core.models import KEY_FIELDS, ConnectionConfig


class FormatSettings(BaseModel):
    """One tag-matched formatter.

    Attributes:
        usage: Whitespace-separated tag patterns the formatter applies to.
        type: Built-in formatter type ("json", "single_value" or "hash").
        message_key: Field sent by the "single_value" formatter.
    """

    model_config = ConfigDict(extra="forbid")

    usage: str = Field(default="**", min_length=1)
    type: str = "json"
    message_key: str | None = None

    def formatter_options(self) -> dict[str, Any]:
        if self.message_key is None:
            return {}
        return {"message_key": self.message_key}


class HecSettings(BaseModel):
    """All recognized output options.

    Key fields (index, time, host, source, sourcetype, metric_name,
    metric_value) accept either a literal (``index``) or a dotted record path
    (``index_key``), never both.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    # endpoint
    protocol: Literal["http", "https"] = "https"
    hec_host: str = ""
    hec_port: int = Field(default=8088, ge=1, le=65535)
    hec_endpoint: str = "services/collector"
    full_url: str = ""
    hec_token: SecretStr

    # connection
    idle_timeout: float | None = Field(default=5, ge=0)
    read_timeout: float | None = Field(default=None, ge=0)
    open_timeout: float | None = Field(default=None, ge=0)
    client_cert: str | None = None
    client_key: str | None = None
    ca_file: str | None = None
    ca_path: str | None = None
    ssl_ciphers: list[str] | None = None
    require_ssl_min_version: bool = True
    insecure_ssl: bool = False

    # payload
    data_type: Literal["event", "metric"] = "event"
    index: str | None = None
    index_key: str | None = None
    host: str | None = None
    host_key: str | None = None
    source: str | None = None
    source_key: str | None = None
    sourcetype: str | None = None
    sourcetype_key: str | None = None
    time: str | None = None
    time_key: str | None = None
    metric_name: str | None = None
    metric_name_key: str | None = None
    metric_value: str | None = None
    metric_value_key: str | None = None
    metrics_from_event: bool = True
    keep_keys: bool = False
    index_fields: dict[str, str] | None = Field(default=None, alias="fields")
    formats: list[FormatSettings] = Field(default_factory=lambda: [FormatSettings()])
    coerce_to_utf8: bool = True
    non_utf8_replacement_string: str = " "

    # delivery
    gzip_compression: bool = False
    consume_chunk_on_4xx_errors: bool = True
    custom_headers: dict[str, str] = Field(default_factory=dict)
    app_name: str = "hecshipper"
    app_version: str = __version__
    plugin_type: str = "splunk_hec"
    plugin_id: str | None = None

    @model_validator(mode="after")
    def _check_combinations(self) -> "HecSettings":
        if not self.hec_host and not self.full_url:
            raise ValueError("One of `hec_host` or `full_url` is required.")
        if not self.hec_token.get_secret_value():
            raise ValueError("`hec_token` must not be empty.")
        if self.client_key and not self.client_cert:
            raise ValueError("`client_key` requires `client_cert`.")
        for field in KEY_FIELDS:
            try:
                build_rule(
                    field,
                    getattr(self, field),
                    getattr(self, f"{field}_key"),
                    keep_keys=self.keep_keys,
                )
            except ConfigurationError as exc:
                raise ValueError(str(exc)) from exc
        if self.data_type == "metric":
            if self.metric_name_key:
                self.metrics_from_event = False
            if not self.metrics_from_event:
                if not (self.metric_name_key or self.metric_name):
                    raise ValueError(
                        "`metric_name_key` is required when `metrics_from_event` is `false`."
                    )
                if not (self.metric_value_key or self.metric_value):
                    raise ValueError(
                        "`metric_value_key` is required when `metric_name_key` is set."
                    )
        return self

    def key_field_values(self) -> dict[str, str]:
        """Literal key-field values that are set."""
        values = {name: getattr(self, name) for name in KEY_FIELDS}
        return {name: value for name, value in values.items() if value is not None}

    def key_field_paths(self) -> dict[str, str]:
        """Record paths (``<field>_key``) that are set."""
        paths = {name: getattr(self, f"{name}_key") for name in KEY_FIELDS}
        return {name: path for name, path in paths.items() if path is not None}

    def extra_fields(self) -> dict[str, str] | None:
        """Output field name to record key; an empty key means the same name."""
        if self.index_fields is None:
            return None
        return {name: source or name for name, source in self.index_fields.items()}

    def connection_config(self) -> ConnectionConfig:
        """Build the immutable connection bundle for the delivery client."""
        return ConnectionConfig(
            url=build_endpoint_url(self),
            headers=build_headers(
                self.hec_token.get_secret_value(),
                self.app_name,
                self.app_version,
                self.custom_headers,
            ),
            insecure=self.insecure_ssl,
            client_cert=self.client_cert,
            client_key=self.client_key,
            ca_file=self.ca_file,
            ca_path=self.ca_path,
            ciphers=tuple(self.ssl_ciphers or ()),
            require_min_tls=self.require_ssl_min_version,
            idle_timeout=self.idle_timeout,
            read_timeout=self.read_timeout,
            open_timeout=self.open_timeout,
        )


def build_endpoint_url(settings: HecSettings) -> str:
    """Join the base URL and the endpoint path.

    Raises:
        ConfigurationError: If the resulting URL is not a valid http(s) URL.
    """
    endpoint = settings.hec_endpoint.lstrip("/")
    if settings.full_url:
        url = f"{settings.full_url.rstrip('/')}/{endpoint}"
        problem = f"full_url ({settings.full_url}) is invalid."
    else:
        url = f"{settings.protocol}://{settings.hec_host}:{settings.hec_port}/{endpoint}"
        problem = (
            f"hec_host ({settings.hec_host}) and/or hec_port ({settings.hec_port}) "
            "are invalid."
        )
    try:
        parsed = httpx.URL(url)
    except httpx.InvalidURL as exc:
        raise ConfigurationError(problem) from exc
    if parsed.scheme not in ("http", "https") or not parsed.host:
        raise ConfigurationError(problem)
    return str(parsed)


def _describe(exc: ValidationError) -> str:
    messages = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"])
        message = error["msg"].removeprefix("Value error, ")
        messages.append(f"{location}: {message}" if location else message)
    return "; ".join(messages)


def load_settings(raw: dict[str, Any]) -> HecSettings:
    """Validate raw options and build the endpoint URL once.

    Args:
        raw: Option names to values, as parsed by the host.

    Returns:
        Validated settings.

    Raises:
        ConfigurationError: On any invalid option or combination.
    """
    try:
        settings = HecSettings.model_validate(raw)
    except ValidationError as exc:
        raise ConfigurationError(_describe(exc)) from exc
    build_endpoint_url(settings)
    return settings
