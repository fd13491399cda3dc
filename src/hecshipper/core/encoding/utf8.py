"""UTF-8 sanitation of record values.

Undecodable bytes show up either as raw ``bytes`` or as lone surrogates in a
``str`` (the ``surrogateescape`` representation). Both are replaced or
rejected here, before a payload is serialized.
"""

import logging
import re
from collections.abc import Mapping
from typing import Any

from hecshipper.core.errors import EncodingError

logger = logging.getLogger(__name__)

_SURROGATE = re.compile("[\ud800-\udfff]")


class Utf8Sanitizer:
    """Recursively clean strings in a value.

    Args:
        coerce: Replace invalid sequences instead of raising.
        replacement: Text substituted for each invalid byte.
    """

    def __init__(self, coerce: bool = True, replacement: str = " ") -> None:
        self.coerce = coerce
        self.replacement = replacement

    def __call__(self, value: Any) -> Any:
        if isinstance(value, Mapping):
            return {self(key): self(item) for key, item in value.items()}
        if isinstance(value, (list, tuple)):
            return [self(item) for item in value]
        if isinstance(value, (bytes, bytearray)):
            return self._clean(bytes(value).decode("utf-8", errors="surrogateescape"))
        if isinstance(value, str):
            return self._clean(value)
        return value

    def _clean(self, text: str) -> str:
        if not _SURROGATE.search(text):
            return text
        if self.coerce:
            return _SURROGATE.sub(lambda _: self.replacement, text)
        logger.error(
            "Encountered encoding issues potentially due to non UTF-8 "
            "characters. To allow non-UTF-8 characters and replace them "
            'with spaces, please set "coerce_to_utf8" to true.'
        )
        raise EncodingError(text)
