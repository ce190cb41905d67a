"""
Helpers for walking nested spec documents.

Spec documents nest path segments as object keys. A leaf is either a scalar,
a ``{"$value": ...}`` wrapper (optionally with ``$type``), or a structured
reference object carrying a ``collection`` key. Keys starting with ``$`` on
non-leaf objects are metadata and are skipped.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any

VALUE_KEY = "$value"
TYPE_KEY = "$type"
STRUCTURED_REF_KEY = "collection"


def is_value_leaf(node: Any) -> bool:
    """True when ``node`` holds a value rather than more path segments."""
    if not isinstance(node, Mapping):
        return True
    return VALUE_KEY in node or STRUCTURED_REF_KEY in node


def leaf_type(node: Any) -> str | None:
    if isinstance(node, Mapping):
        declared = node.get(TYPE_KEY)
        return str(declared) if declared is not None else None
    return None


def iter_leaves(node: Any, prefix: tuple[str, ...] = ()) -> Iterator[tuple[tuple[str, ...], Any]]:
    """Yield ``(path_parts, leaf)`` for every value leaf below ``node``."""
    if is_value_leaf(node):
        if prefix:
            yield prefix, node
        return
    for key, child in node.items():
        key = str(key)
        if key.startswith("$"):
            continue
        yield from iter_leaves(child, (*prefix, key))
