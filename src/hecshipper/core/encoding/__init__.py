"""Serialization helpers for payloads."""

from hecshipper.core.encoding.ndjson import encode_payload, encode_payloads
from hecshipper.core.encoding.utf8 import Utf8Sanitizer

__all__ = ["Utf8Sanitizer", "encode_payload", "encode_payloads"]
