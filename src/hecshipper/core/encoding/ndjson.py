"""NDJSON encoder for HEC payloads."""

import json
from collections.abc import Iterable, Mapping
from typing import Any


def encode_payload(payload: Mapping[str, Any]) -> bytes:
    """Encode one payload as a compact JSON line.

    Args:
        payload: HEC envelope with ``event`` or ``fields``.

    Returns:
        UTF-8 JSON object terminated by a single newline.
    """
    line = json.dumps(
        payload, separators=(",", ":"), ensure_ascii=False, default=str
    )
    return (line + "\n").encode("utf-8")


def encode_payloads(payloads: Iterable[Mapping[str, Any]]) -> bytes:
    """Encode payloads to newline-delimited JSON.

    Args:
        payloads: An iterable of HEC envelopes.

    Returns:
        One JSON line per payload, in order.
        Empty bytes if no payloads.
    """
    return b"".join(encode_payload(payload) for payload in payloads)
