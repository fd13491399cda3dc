"""HTTP delivery client for the event collector endpoint.

One HecClient owns one pooled httpx.Client. httpx.Client is thread-safe and
its pool reuses connections, so every worker of an output shares it.
"""

import gzip
import logging
import ssl
import time
from collections.abc import Mapping

import httpx

from hecshipper._version import __version__
from hecshipper.core.errors import ConfigurationError, TransportError
from hecshipper.core.models import ConnectionConfig, DeliveryResponse

logger = logging.getLogger(__name__)

USER_AGENT = f"hecshipper/{__version__}"
MAX_CONNECTIONS = 100
MAX_KEEPALIVE_CONNECTIONS = 20


def build_headers(
    token: str,
    app_name: str,
    app_version: str,
    custom_headers: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Build the fixed request headers.

    Custom headers are applied last and replace same-named headers,
    regardless of case.
    """
    headers = httpx.Headers(
        {
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
            "Authorization": f"Splunk {token}",
            "__splunk_app_name": app_name,
            "__splunk_app_version": app_version,
        }
    )
    for name, value in (custom_headers or {}).items():
        headers[name] = value
    return {key.decode(): value.decode() for key, value in headers.raw}


def build_ssl_context(config: ConnectionConfig) -> ssl.SSLContext:
    """Create the TLS context for the connection.

    Raises:
        ConfigurationError: If certificates, keys or ciphers cannot be loaded.
    """
    try:
        context = ssl.create_default_context(
            cafile=config.ca_file, capath=config.ca_path
        )
        if config.insecure:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        if config.client_cert:
            context.load_cert_chain(config.client_cert, keyfile=config.client_key)
        if config.ciphers:
            context.set_ciphers(":".join(config.ciphers))
    except (OSError, ssl.SSLError) as exc:
        raise ConfigurationError(f"Invalid TLS configuration: {exc}") from exc
    if config.require_min_tls:
        context.minimum_version = ssl.TLSVersion.TLSv1_2
    return context


def build_limits(config: ConnectionConfig) -> httpx.Limits:
    """Bounds of the shared connection pool."""
    return httpx.Limits(
        max_connections=MAX_CONNECTIONS,
        max_keepalive_connections=MAX_KEEPALIVE_CONNECTIONS,
        keepalive_expiry=config.idle_timeout,
    )


def _root_cause(exc: BaseException) -> BaseException:
    cause = exc
    while cause.__cause__ is not None:
        cause = cause.__cause__
    return cause


class HecClient:
    """Post batches to the endpoint over a reusable connection.

    Args:
        config: Connection settings.
        transport: Optional httpx transport (e.g., httpx.MockTransport in tests).

    Example:
        ```python
        with HecClient(config) as client:
            response = client.deliver(b'{"event":"hello"}\\n', compress=True)
        ```
    """

    def __init__(
        self,
        config: ConnectionConfig,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.config = config
        self.url = config.url
        self._client = httpx.Client(
            headers=config.headers,
            verify=build_ssl_context(config),
            timeout=httpx.Timeout(
                None, connect=config.open_timeout, read=config.read_timeout
            ),
            limits=build_limits(config),
            trust_env=config.trust_env,
            follow_redirects=False,
            transport=transport,
        )

    def deliver(self, body: bytes, *, compress: bool = False) -> DeliveryResponse:
        """POST one batch.

        Args:
            body: Newline-delimited JSON payloads.
            compress: Gzip the body and send ``Content-Encoding: gzip``.

        Returns:
            Status, body and network duration of the response.

        Raises:
            TransportError: If no response was received.
        """
        headers: dict[str, str] = {}
        content = body
        if compress:
            content = gzip.compress(body)
            headers["Content-Encoding"] = "gzip"

        logger.debug("[Sending] %dB to %s", len(content), self.url)
        start = time.perf_counter()
        try:
            response = self._client.post(self.url, content=content, headers=headers)
        except httpx.TransportError as exc:
            cause = _root_cause(exc)
            raise TransportError(
                f"POST {self.url} failed: {type(cause).__name__}: {cause}", cause=cause
            ) from exc
        duration = time.perf_counter() - start

        logger.debug(
            "[Response] Status: %d Duration: %.3fs", response.status_code, duration
        )
        return DeliveryResponse(
            status_code=response.status_code,
            body=response.text,
            duration=duration,
            sent_bytes=len(content),
        )

    def close(self) -> None:
        """Close pooled connections."""
        self._client.close()

    def __enter__(self) -> "HecClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
