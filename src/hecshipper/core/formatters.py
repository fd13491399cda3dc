"""Tag-matched formatters that build the ``event`` value.

A formatter is selected per record by matching the record tag against
glob-style patterns. Declaration order is the match priority.
"""

import json
import re
from collections.abc import Mapping, Sequence
from typing import Any

from hecshipper.core.errors import ConfigurationError
from hecshipper.core.ports import Formatter


def compile_tag_pattern(pattern: str) -> re.Pattern[str]:
    """Translate a tag glob into a regular expression.

    ``*`` matches one dot-separated tag part, ``**`` matches zero or more
    parts, ``{a,b}`` matches either alternative and ``\\`` escapes the next
    character.

    Args:
        pattern: Glob such as "app.**" or "k8s.{web,api}.*".

    Returns:
        Compiled pattern, to be used with ``fullmatch``.
    """
    stack: list[list[str]] = []
    parts = [""]
    escape = False
    dot = False
    i = 0
    while i < len(pattern):
        char = pattern[i]
        if escape:
            parts[-1] += re.escape(char)
            escape = False
            i += 1
            continue
        if pattern.startswith("**", i):
            if dot:
                parts[-1] += r"(?![^\.])"
                dot = False
            if pattern.startswith(".", i + 2):
                parts[-1] += r"(?:.*\.|\A)"
                i += 3
            else:
                parts[-1] += ".*"
                i += 2
            continue
        if dot:
            parts[-1] += r"\."
            dot = False

        if char == "\\":
            escape = True
        elif char == ".":
            dot = True
        elif char == "*":
            parts[-1] += r"[^\.]*"
        elif char == "{":
            stack.append([])
            parts.append("")
        elif char == "}" and stack:
            stack[-1].append(parts.pop())
            parts[-1] += "(?:" + "|".join(stack.pop()) + ")"
        elif char == "," and stack:
            stack[-1].append(parts.pop())
            parts.append("")
        else:
            parts[-1] += re.escape(char)
        i += 1

    while stack:
        stack[-1].append(parts.pop())
        parts[-1] += "(?:" + "|".join(stack.pop()) + ")"
    if dot:
        parts[-1] += r"\."
    return re.compile(parts[-1])


class MatchFormatter:
    """A formatter bound to one or more tag patterns.

    Args:
        usage: Whitespace-separated tag patterns, OR-combined.
        formatter: Formatter applied to matching records.
    """

    def __init__(self, usage: str, formatter: Formatter) -> None:
        patterns = usage.split()
        if not patterns:
            raise ConfigurationError("formatter usage pattern must not be empty")
        self.usage = usage
        self.formatter = formatter
        self._patterns = [compile_tag_pattern(p) for p in patterns]

    def match(self, tag: str) -> bool:
        """Return True if any pattern matches the whole tag."""
        return any(p.fullmatch(tag) for p in self._patterns)

    def format(self, tag: str, time: Any, record: Mapping[str, Any]) -> Any:
        return self.formatter.format(tag, time, record)


def find_formatter(
    formatters: Sequence[MatchFormatter], tag: str
) -> MatchFormatter | None:
    """Return the first formatter whose usage matches ``tag``."""
    for formatter in formatters:
        if formatter.match(tag):
            return formatter
    return None


class JsonFormatter:
    """Render the record as a compact JSON string."""

    def format(self, tag: str, time: Any, record: Mapping[str, Any]) -> str:
        return json.dumps(
            record, separators=(",", ":"), ensure_ascii=False, default=str
        )


class SingleValueFormatter:
    """Send a single record field as plain text.

    Args:
        message_key: Field to send (default "message").
    """

    def __init__(self, message_key: str = "message") -> None:
        self.message_key = message_key

    def format(self, tag: str, time: Any, record: Mapping[str, Any]) -> str:
        value = record.get(self.message_key)
        return "" if value is None else str(value)


class HashFormatter:
    """Send the record as a JSON object rather than a string."""

    def format(
        self, tag: str, time: Any, record: Mapping[str, Any]
    ) -> dict[str, Any]:
        return dict(record)


FORMATTER_TYPES: dict[str, type] = {
    "json": JsonFormatter,
    "single_value": SingleValueFormatter,
    "hash": HashFormatter,
}


def build_formatter(type_name: str, **options: Any) -> Formatter:
    """Create a built-in formatter by type name.

    Args:
        type_name: One of "json", "single_value" or "hash".
        **options: Constructor options (e.g., message_key).

    Raises:
        ConfigurationError: If the type is unknown or options do not apply.
    """
    try:
        formatter_cls = FORMATTER_TYPES[type_name]
    except KeyError:
        raise ConfigurationError(f"Unknown formatter type {type_name!r}") from None
    try:
        formatter: Formatter = formatter_cls(**options)
    except TypeError as exc:
        raise ConfigurationError(
            f"Invalid options for formatter {type_name!r}: {exc}"
        ) from exc
    return formatter
