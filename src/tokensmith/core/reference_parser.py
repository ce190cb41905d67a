"""
Reference parser.

The one place that turns raw document values into the closed reference
union. Accepted forms:

    {tokens.color.gray.500}                      -> TokenRef
    {theme.palettes.neutral.100.tone}            -> ThemeRef (mode from caller)
    {brand.themes.dark.palettes.neutral.100.tone}-> ThemeRef (mode pinned)
    {ui-kit.button.variants.ghost.layers.layer-2.border-color}
                                                 -> ComponentRef
    {"collection": "Tokens", "name": "color/gray/500"}
    {"$value": ...}                              -> whatever the wrapped value is
    "#ff0000", 12, "Inter"                       -> LiteralValue
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from .documents import VALUE_KEY
from .errors import ErrorContext, ParseError
from .ir import ColorMode, ComponentRef, LiteralValue, Reference, ThemeRef, TokenRef

TOKEN_COLLECTIONS = frozenset({"tokens", "token"})
THEME_COLLECTIONS = frozenset({"theme", "themes", "brand"})
COMPONENT_COLLECTIONS = frozenset({"ui-kit", "uikit", "components", "component"})

_MODES = frozenset(mode.value for mode in ColorMode)


def extract_brace_content(value: Any) -> str | None:
    """Return the dotted path inside a ``{...}`` reference, or None.

    Whitespace around or instead of dots is tolerated:
    ``"{ tokens . color gray.500 }"`` -> ``"tokens.color.gray.500"``.
    """
    if isinstance(value, Mapping) and VALUE_KEY in value:
        value = value[VALUE_KEY]
    if not isinstance(value, str):
        return None
    text = value.strip()
    if not (text.startswith("{") and text.endswith("}")):
        return None
    inner = text[1:-1].strip()
    inner = re.sub(r"\s*\.\s*", ".", inner)
    inner = re.sub(r"\s+", ".", inner)
    inner = re.sub(r"\.+", ".", inner).strip(".")
    return inner or None


def is_reference_string(value: Any) -> bool:
    return isinstance(value, str) and value.strip().startswith("{") and value.strip().endswith("}")


def parse_reference(value: Any, *, context: ErrorContext | None = None) -> Reference:
    """Parse a raw document value into a reference.

    Raises:
        ParseError: If the value is brace-shaped or structured but malformed,
            or is not a number, string, or reference at all.
    """
    if isinstance(value, Mapping):
        if VALUE_KEY in value:
            return parse_reference(value[VALUE_KEY], context=context)
        if "collection" in value:
            return _parse_structured(value, context)
        raise ParseError(f"Object is not a value or a reference: {dict(value)!r}", context)

    if isinstance(value, bool) or value is None:
        raise ParseError(f"Unsupported value {value!r}: expected a number or string", context)
    if isinstance(value, int | float):
        return LiteralValue(value=value)
    if not isinstance(value, str):
        raise ParseError(f"Unsupported value of type {type(value).__name__}", context)

    if not is_reference_string(value):
        return LiteralValue(value=value)
    inner = extract_brace_content(value)
    if inner is None:
        raise ParseError(f"Empty reference: {value!r}", context)
    head, *rest = inner.split(".")
    return _parse_path(head, rest, raw=value, context=context)


def _parse_path(
    head: str,
    rest: list[str],
    *,
    raw: Any,
    context: ErrorContext | None,
    mode: ColorMode | None = None,
) -> Reference:
    collection = head.strip().lower()
    if collection in TOKEN_COLLECTIONS:
        if not rest:
            raise ParseError(f"Token reference without a path: {raw!r}", context)
        return TokenRef(name="/".join(rest))

    if collection in THEME_COLLECTIONS:
        parts = list(rest)
        if len(parts) > 1 and parts[0].lower() == "themes" and parts[1].lower() in _MODES:
            mode = ColorMode(parts[1].lower())
            parts = parts[2:]
        elif parts and parts[0].lower() in _MODES:
            mode = ColorMode(parts[0].lower())
            parts = parts[1:]
        if not parts:
            raise ParseError(f"Theme reference without a path: {raw!r}", context)
        return ThemeRef(path="/".join(parts), mode=mode)

    if collection in COMPONENT_COLLECTIONS:
        return _parse_component_path(rest, raw=raw, context=context)

    raise ParseError(f"Unknown reference collection {head!r} in {raw!r}", context)


def _parse_component_path(
    parts: list[str], *, raw: Any, context: ErrorContext | None
) -> ComponentRef:
    parts = list(parts)
    if parts and parts[0].lower() == "components":
        parts = parts[1:]
    if len(parts) < 2:
        raise ParseError(f"Component reference needs a component and a property: {raw!r}", context)
    component, parts = parts[0], parts[1:]
    variant = layer = None
    if len(parts) > 2 and parts[0].lower() == "variants":
        variant, parts = parts[1], parts[2:]
    if len(parts) > 2 and parts[0].lower() == "layers":
        layer, parts = parts[1], parts[2:]
    if not parts:
        raise ParseError(f"Component reference without a property: {raw!r}", context)
    return ComponentRef(component=component, variant=variant, layer=layer, property=".".join(parts))


def _parse_structured(value: Mapping[str, Any], context: ErrorContext | None) -> Reference:
    collection = str(value.get("collection", "")).strip().lower()
    mode_value = value.get("mode")
    mode = None
    if mode_value is not None:
        try:
            mode = ColorMode(str(mode_value).lower())
        except ValueError as e:
            raise ParseError(f"Unknown mode {mode_value!r} in structured reference", context) from e

    if collection in COMPONENT_COLLECTIONS and "component" in value:
        prop = value.get("property")
        if not prop:
            raise ParseError("Structured component reference without a property", context)
        return ComponentRef(
            component=str(value["component"]),
            property=str(prop),
            variant=value.get("variant"),
            layer=value.get("layer"),
        )

    name = value.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ParseError(f"Structured reference without a name: {dict(value)!r}", context)
    parts = [part for part in re.split(r"[./]", name.strip()) if part]
    return _parse_path(collection, parts, raw=dict(value), context=context, mode=mode)
