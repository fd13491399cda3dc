"""Compile key-field rules into accessors.

Rules are resolved once from settings. Each accessor is a plain function
``(tag, record) -> value`` shared by every format call.
"""

import logging
from collections.abc import Callable, Mapping, MutableMapping
from typing import Any

from hecshipper.core.errors import ConfigurationError, ConflictingFieldError
from hecshipper.core.models import (
    KEY_FIELDS,
    TAG_PLACEHOLDER,
    FieldRule,
    LiteralValue,
    PathExtract,
    TagTemplate,
)

logger = logging.getLogger(__name__)

Accessor = Callable[[str, MutableMapping[str, Any]], Any]


def parse_path(path: str) -> tuple[str, ...]:
    """Split a dotted key path into its segments.

    Args:
        path: Path such as "kubernetes.namespace".

    Returns:
        Tuple of keys, outermost first.

    Raises:
        ConfigurationError: If the path or any segment is empty.
    """
    keys = tuple(path.split("."))
    if not path or any(not key for key in keys):
        raise ConfigurationError(f"Invalid key path {path!r}")
    return keys


def lookup(
    record: Mapping[str, Any], keys: tuple[str, ...], *, remove: bool = False
) -> Any:
    """Read a value from nested mappings.

    Args:
        record: The record to walk.
        keys: Key sequence, outermost first.
        remove: Pop the terminal key from its parent instead of reading it.

    Returns:
        The leaf value, or None when any segment is missing.
    """
    current: Any = record
    for depth, key in enumerate(keys[:-1]):
        if not isinstance(current, Mapping) or key not in current:
            logger.warning(
                "expected field %s but it's missing", ".".join(keys[: depth + 1])
            )
            return None
        current = current[key]

    if not isinstance(current, Mapping):
        logger.warning("expected field %s but it's missing", ".".join(keys[:-1]))
        return None

    leaf = keys[-1]
    if leaf not in current:
        logger.debug("field %s not present in record", ".".join(keys))
        return None
    if remove and isinstance(current, MutableMapping):
        return current.pop(leaf)
    return current[leaf]


def build_rule(
    field: str, value: Any, key: str | None, *, keep_keys: bool
) -> FieldRule | None:
    """Pick the rule for one key field.

    Args:
        field: Key field name (e.g., "sourcetype").
        value: Literal value, may contain the tag placeholder.
        key: Dotted path into the record.
        keep_keys: Leave extracted keys in the record.

    Returns:
        The rule, or None when neither a value nor a key is set.

    Raises:
        ConflictingFieldError: If both a value and a key are set.
    """
    if value is not None and key is not None:
        raise ConflictingFieldError(field)
    if key is not None:
        return PathExtract(keys=parse_path(key), remove=not keep_keys)
    if value is None:
        return None
    if isinstance(value, str) and TAG_PLACEHOLDER in value:
        return TagTemplate(template=value)
    return LiteralValue(value=value)


def compile_rule(rule: FieldRule) -> Accessor:
    """Bind a rule to an accessor function."""
    if isinstance(rule, PathExtract):
        keys, remove = rule.keys, rule.remove

        def extract(tag: str, record: MutableMapping[str, Any]) -> Any:
            return lookup(record, keys, remove=remove)

        return extract

    if isinstance(rule, TagTemplate):
        template = rule.template

        def substitute(tag: str, record: MutableMapping[str, Any]) -> Any:
            return template.replace(TAG_PLACEHOLDER, tag)

        return substitute

    if isinstance(rule, LiteralValue):
        constant = rule.value

        def literal(tag: str, record: MutableMapping[str, Any]) -> Any:
            return constant

        return literal

    raise TypeError(f"Unsupported field rule: {rule!r}")


def compile_field_rules(
    values: Mapping[str, Any],
    keys: Mapping[str, str | None],
    *,
    keep_keys: bool = False,
) -> dict[str, Accessor]:
    """Compile accessors for every configured key field.

    Args:
        values: Literal values by field name.
        keys: Dotted record paths by field name.
        keep_keys: Leave extracted keys in the record.

    Returns:
        Accessors by field name. Fields without a rule are absent.

    Raises:
        ConfigurationError: On unknown field names, bad paths or conflicts.
    """
    unknown = (set(values) | set(keys)) - set(KEY_FIELDS)
    if unknown:
        raise ConfigurationError(f"Unknown key fields: {', '.join(sorted(unknown))}")

    accessors: dict[str, Accessor] = {}
    for field in KEY_FIELDS:
        rule = build_rule(
            field, values.get(field), keys.get(field), keep_keys=keep_keys
        )
        if rule is not None:
            accessors[field] = compile_rule(rule)
    return accessors
