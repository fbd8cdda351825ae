"""Bounded, cycle-safe conversion of runtime values into JSON-safe data.

Framework internals reachable from a DOM element (component props, hook
state) are arbitrary object graphs: they can be deep, cyclic, or hold
callables. :func:`serialize` is the only path by which such values enter an
element descriptor, so it must never raise.
"""
from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Iterator, Set, Tuple

from .text import truncate

logger = logging.getLogger(__name__)

FUNCTION_MARKER = "$function"
"""Key used by browser snapshots to stand in for a JavaScript function value."""

MAX_STRING_LENGTH = 180
MAX_SEQUENCE_ITEMS = 6
MAX_MAPPING_KEYS = 10
TRUNCATED_KEY = "__truncated__"


def is_function_value(value: Any) -> bool:
    """Return True for Python callables and snapshot function markers."""

    if isinstance(value, Mapping):
        return FUNCTION_MARKER in value
    if isinstance(value, type):
        return False
    return callable(value)


def _iter_entries(value: Any) -> Iterator[Tuple[str, Any]]:
    if isinstance(value, Mapping):
        for key in value:
            yield str(key), value[key]
        return
    attributes = getattr(value, "__dict__", None)
    if isinstance(attributes, dict):
        for key, nested in attributes.items():
            yield str(key), nested
        return
    for key in getattr(type(value), "__slots__", ()):
        if hasattr(value, key):
            yield key, getattr(value, key)


def _serialize(value: Any, depth: int, max_depth: int, seen: Set[int]) -> Any:
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, str):
        return truncate(value, MAX_STRING_LENGTH)
    if isinstance(value, (int, float)):
        return value
    if is_function_value(value):
        return "[function]"
    if isinstance(value, (bytes, bytearray)):
        return truncate(f"<{len(value)} bytes>", MAX_STRING_LENGTH)

    is_sequence = isinstance(value, (list, tuple, set, frozenset))
    is_container = is_sequence or isinstance(value, Mapping) or hasattr(value, "__dict__") or hasattr(
        type(value), "__slots__"
    )
    if not is_container:
        return str(value)

    if id(value) in seen:
        return "[circular]"
    if depth >= max_depth:
        return "[max-depth]"
    seen.add(id(value))

    if is_sequence:
        items = list(value)[:MAX_SEQUENCE_ITEMS]
        return [_serialize(item, depth + 1, max_depth, seen) for item in items]

    result: dict[str, Any] = {}
    count = 0
    entries = _iter_entries(value)
    while True:
        try:
            key, nested = next(entries)
        except StopIteration:
            break
        except Exception as exc:
            logger.debug(f"Stopped reading entries of {type(value).__name__}: {exc}")
            break
        if count >= MAX_MAPPING_KEYS:
            result[TRUNCATED_KEY] = "[additional keys omitted]"
            break
        try:
            result[key] = _serialize(nested, depth + 1, max_depth, seen)
        except Exception as exc:
            logger.debug(f"Omitting unserializable entry {key!r}: {exc}")
            continue
        count += 1
    return result


def serialize(value: Any, max_depth: int = 2) -> Any:
    """Convert ``value`` into JSON-safe data.

    Strings are truncated, callables become ``"[function]"``, containers past
    ``max_depth`` become ``"[max-depth]"`` and containers already visited
    during this call become ``"[circular]"``. Sequences keep their first six
    items and mappings their first ten keys (plus a ``__truncated__`` marker).
    The visited set lives only for the duration of one call.
    """

    seen: Set[int] = set()
    try:
        return _serialize(value, 0, max_depth, seen)
    except Exception as exc:
        logger.debug(f"Serialization guard swallowed {exc}")
        return None


__all__ = [
    "FUNCTION_MARKER",
    "MAX_MAPPING_KEYS",
    "MAX_SEQUENCE_ITEMS",
    "MAX_STRING_LENGTH",
    "TRUNCATED_KEY",
    "is_function_value",
    "serialize",
]
