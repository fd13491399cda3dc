"""Exceptions raised by hecshipper.

Configuration errors are fatal at startup. Encoding errors are fatal for the
record being formatted. Transport and server errors are retryable; the
orchestrator turns them into ``Retry`` outcomes instead of raising.
"""


class HecError(Exception):
    """Base class for all hecshipper errors."""


class ConfigurationError(HecError):
    """Raised when settings are invalid or inconsistent."""


class ConflictingFieldError(ConfigurationError):
    """Raised when a key field has both a literal value and a ``<field>_key``.

    Attributes:
        field: Name of the key field (e.g., "index").
    """

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f"Can not set {field} and {field}_key at the same time.")


class EncodingError(HecError):
    """Raised in strict UTF-8 mode when a value holds invalid byte sequences.

    Attributes:
        value: The offending scalar.
    """

    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__(f"Invalid UTF-8 sequence in value {value!r}")


class TransportError(HecError):
    """Raised when a request never produced an HTTP response.

    Attributes:
        cause: Innermost exception behind the failure (socket, TLS, timeout).
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        self.cause = cause
        super().__init__(message)


class ServerError(HecError):
    """A response the host should retry (5xx, or 4xx when not consumed).

    Attributes:
        status_code: HTTP status code of the response.
        body: Response body text.
        url: Endpoint the batch was posted to.
    """

    def __init__(self, status_code: int, body: str, url: str = "") -> None:
        self.status_code = status_code
        self.body = body
        self.url = url
        target = f" for POST {url}" if url else ""
        super().__init__(f"Server error ({status_code}){target}, response: {body}")
