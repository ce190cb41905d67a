"""
Component style index.

Holds one style fact per ``(component, variant, layer, property)``. Lookups
here are exact; the fallback order lives in the resolver.

Document shape::

    {"ui-kit": {"components": {
        "button": {
            "border-color": "{theme.palettes.neutral.300.tone}",
            "variants": {
                "ghost": {
                    "layers": {"layer-2": {"border-color": "..."}},
                    "properties": {"colors": {"text-color": "..."}}
                }
            }
        }
    }}}

Under a component or variant, ``variants`` and ``layers`` are structural.
``properties`` and every other key hold properties; nested objects flatten
into dotted property names (``colors.text-color``).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from .documents import is_value_leaf
from .errors import ErrorContext, NameCollisionError, ParseError, SpecLoadError
from .ir import ComponentStyleEntry
from .naming import ComponentPath
from .reference_parser import parse_reference

logger = logging.getLogger(__name__)

ComponentKey = tuple[str, str | None, str | None, str]


def _components_root(document: Mapping[str, Any]) -> Any:
    root: Any = document
    for wrapper in ("ui-kit", "uikit", "components"):
        if isinstance(root, Mapping) and isinstance(root.get(wrapper), Mapping):
            root = root[wrapper]
    return root


def _walk(
    node: Mapping[str, Any],
    variant: str | None,
    layer: str | None,
    prefix: tuple[str, ...],
    structural: bool,
) -> Iterator[tuple[str | None, str | None, tuple[str, ...], tuple[str, ...], Any]]:
    """Yield ``(variant, layer, property_parts, location_parts, leaf)``."""
    for key, child in node.items():
        key = str(key)
        if key.startswith("$"):
            continue
        lowered = key.lower()
        nested = isinstance(child, Mapping) and not is_value_leaf(child)
        if structural and nested and lowered == "variants" and variant is None and layer is None:
            for name, sub in child.items():
                if isinstance(sub, Mapping):
                    for v, l, parts, loc, leaf in _walk(sub, str(name), None, (), True):
                        yield v, l, parts, (key, str(name), *loc), leaf
        elif structural and nested and lowered == "layers" and layer is None:
            for name, sub in child.items():
                if isinstance(sub, Mapping):
                    for v, l, parts, loc, leaf in _walk(sub, variant, str(name), (), True):
                        yield v, l, parts, (key, str(name), *loc), leaf
        elif structural and nested and lowered == "properties":
            for v, l, parts, loc, leaf in _walk(child, variant, layer, (), False):
                yield v, l, parts, (key, *loc), leaf
        elif nested:
            for v, l, parts, loc, leaf in _walk(child, variant, layer, (*prefix, key), False):
                yield v, l, parts, (key, *loc), leaf
        else:
            yield variant, layer, (*prefix, key), (key,), child


class ComponentStyleIndex:
    """Component style entries indexed by normalized (component, variant, layer, property)."""

    def __init__(
        self,
        entries: Iterable[ComponentStyleEntry] = (),
        invalid: Iterable[tuple[ComponentPath, ParseError]] = (),
    ) -> None:
        self._entries: dict[ComponentKey, ComponentStyleEntry] = {}
        self._invalid: dict[ComponentKey, tuple[ComponentPath, ParseError]] = {}
        for entry in entries:
            key = self._path_of(entry).key
            if key in self._entries:
                raise NameCollisionError(
                    f"Component styles {self._entries[key].property!r} and {entry.property!r} "
                    f"of {entry.component!r} map to the same name"
                )
            self._entries[key] = entry
        for path, error in invalid:
            self._invalid[path.key] = (path, error)

    @staticmethod
    def _path_of(entry: ComponentStyleEntry) -> ComponentPath:
        return ComponentPath(entry.component, entry.property, entry.variant, entry.layer)

    @classmethod
    def from_document(
        cls,
        document: Mapping[str, Any],
        *,
        source: str | None = None,
        strict: bool = False,
    ) -> ComponentStyleIndex:
        """Build an index from a component styles document.

        Raises:
            SpecLoadError: If the document or a component is not an object.
            NameCollisionError: If two properties normalize to the same name.
            ParseError: For malformed references when ``strict`` is set.
        """
        if not document:
            return cls()
        root = _components_root(document)
        if not isinstance(root, Mapping):
            raise SpecLoadError(
                "Components document must be an object", ErrorContext("components", source=source)
            )

        entries: list[ComponentStyleEntry] = []
        invalid: list[tuple[ComponentPath, ParseError]] = []
        seen: dict[ComponentKey, str] = {}
        for component, node in root.items():
            component = str(component)
            if component.startswith("$"):
                continue
            if not isinstance(node, Mapping):
                raise SpecLoadError(
                    f"Component {component!r} must be an object",
                    ErrorContext("components", component, source),
                )
            for variant, layer, parts, loc, leaf in _walk(node, None, None, (), True):
                location = ".".join((component, *loc))
                prop = ".".join(parts)
                path = ComponentPath(component, prop, variant, layer)
                context = ErrorContext("components", location, source)
                if path.key in seen:
                    raise NameCollisionError(
                        f"{seen[path.key]!r} and {location!r} map to the same name", context
                    )
                seen[path.key] = location
                try:
                    value = parse_reference(leaf, context=context)
                except ParseError as e:
                    if strict:
                        raise
                    logger.warning("Invalid component style %s: %s", context.format(), e.message)
                    invalid.append((path, e))
                    continue
                entries.append(
                    ComponentStyleEntry(
                        component=component, property=prop, value=value, variant=variant, layer=layer
                    )
                )
        return cls(entries, invalid)

    def __len__(self) -> int:
        return len(self._entries) + len(self._invalid)

    def __contains__(self, item: object) -> bool:
        if not isinstance(item, ComponentPath):
            return False
        key = item.key
        return key in self._entries or key in self._invalid

    def get(
        self,
        component: str,
        prop: str,
        variant: str | None = None,
        layer: str | None = None,
    ) -> ComponentStyleEntry | None:
        """Exact lookup. Re-raises the ParseError recorded for an invalid entry."""
        key = ComponentPath(component, prop, variant, layer).key
        if key in self._invalid:
            raise self._invalid[key][1]
        return self._entries.get(key)

    def components(self) -> list[str]:
        return sorted({path.component for path in self.paths()})

    def entries(self) -> list[ComponentStyleEntry]:
        return list(self._entries.values())

    def paths(self) -> list[ComponentPath]:
        """Every addressable path, including entries that failed to parse."""
        paths = [self._path_of(entry) for entry in self._entries.values()]
        return paths + [path for path, _ in self._invalid.values()]

    @property
    def parse_errors(self) -> list[ParseError]:
        return [error for _, error in self._invalid.values()]
