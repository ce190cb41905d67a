"""
Variable name builder.

Maps a structured style path to the external name consumers read values by.
Names are CSS custom property names:

    --ts-tokens--color-gray-500
    --ts-theme--light--palettes-neutral-100-color-tone
    --ts-components--button--variant-ghost--layer-layer-2--border-color

Each structural field is normalized into a segment (lowercase, with dots,
slashes, underscores and other separators collapsed to single hyphens) and
fields are joined with a double hyphen. A normalized segment never contains
``--``, so every name splits back into exactly the fields it was built from.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .ir import ColorMode

DEFAULT_PREFIX = "ts"
FIELD_SEPARATOR = "--"

TOKENS_KIND = "tokens"
THEME_KIND = "theme"
COMPONENTS_KIND = "components"

VARIANT_MARKER = "variant-"
LAYER_MARKER = "layer-"

_SEPARATOR_RUN = re.compile(r"[^a-z0-9]+")


def normalize_segment(value: str) -> str:
    """Normalize one structural field into a name segment.

    ``"colors.error.text_color"``, ``"colors/error/text-color"`` and
    ``"Colors Error Text Color"`` all become ``"colors-error-text-color"``.

    Raises:
        ValueError: If nothing is left after normalization.
    """
    segment = _SEPARATOR_RUN.sub("-", str(value).strip().lower()).strip("-")
    if not segment:
        raise ValueError(f"Cannot build a name segment from {value!r}")
    return segment


def split_path(path: str) -> list[str]:
    """Split a slash- or dot-delimited path into its parts."""
    return [part for part in re.split(r"[./]", path.strip()) if part.strip()]


@dataclass(frozen=True)
class TokenPath:
    """Path of a primitive token."""

    name: str

    @property
    def key(self) -> str:
        return normalize_segment(self.name)


@dataclass(frozen=True)
class ThemePath:
    """Path of a theme entry in one mode."""

    mode: ColorMode
    path: str

    @property
    def key(self) -> tuple[str, str]:
        return (ColorMode(self.mode).value, normalize_segment(self.path))


@dataclass(frozen=True)
class ComponentPath:
    """Path of a component style property."""

    component: str
    prop: str
    variant: str | None = None
    layer: str | None = None

    @property
    def key(self) -> tuple[str, str | None, str | None, str]:
        return (
            normalize_segment(self.component),
            normalize_segment(self.variant) if self.variant else None,
            normalize_segment(self.layer) if self.layer else None,
            normalize_segment(self.prop),
        )


StylePath = TokenPath | ThemePath | ComponentPath


class VariableNameBuilder:
    """Builds and parses external names under one prefix."""

    def __init__(self, prefix: str = DEFAULT_PREFIX) -> None:
        self.prefix = normalize_segment(prefix)
        if FIELD_SEPARATOR in self.prefix:
            raise ValueError(f"Prefix must not contain {FIELD_SEPARATOR!r}: {prefix!r}")

    def __repr__(self) -> str:
        return f"VariableNameBuilder(prefix={self.prefix!r})"

    def _head(self, kind: str) -> str:
        return f"--{self.prefix}-{kind}"

    def build(self, path: StylePath) -> str:
        """Build the external name for a structured path."""
        if isinstance(path, TokenPath):
            fields = [path.key]
            kind = TOKENS_KIND
        elif isinstance(path, ThemePath):
            fields = list(path.key)
            kind = THEME_KIND
        elif isinstance(path, ComponentPath):
            component, variant, layer, prop = path.key
            fields = [component]
            if variant:
                fields.append(VARIANT_MARKER + variant)
            if layer:
                fields.append(LAYER_MARKER + layer)
            fields.append(prop)
            kind = COMPONENTS_KIND
        else:
            raise TypeError(f"Unsupported style path: {path!r}")
        return FIELD_SEPARATOR.join([self._head(kind), *fields])

    def token(self, name: str) -> str:
        return self.build(TokenPath(name))

    def theme(self, mode: ColorMode | str, path: str) -> str:
        return self.build(ThemePath(ColorMode(mode), path))

    def component(
        self,
        component: str,
        prop: str,
        variant: str | None = None,
        layer: str | None = None,
    ) -> str:
        return self.build(ComponentPath(component, prop, variant, layer))

    def parse(self, name: str) -> StylePath:
        """Parse an external name back into its (normalized) structured path.

        Raises:
            ValueError: If the name was not produced by this builder.
        """
        if not name.startswith("--"):
            raise ValueError(f"Not an external name: {name!r}")
        head, *fields = name[2:].split(FIELD_SEPARATOR)
        prefix = f"{self.prefix}-"
        if not head.startswith(prefix) or not fields:
            raise ValueError(f"Not a {self.prefix!r} external name: {name!r}")
        kind = head[len(prefix) :]

        if kind == TOKENS_KIND and len(fields) == 1:
            return TokenPath(fields[0])
        if kind == THEME_KIND and len(fields) == 2:
            try:
                mode = ColorMode(fields[0])
            except ValueError as e:
                raise ValueError(f"Unknown mode in external name: {name!r}") from e
            return ThemePath(mode, fields[1])
        if kind == COMPONENTS_KIND and 2 <= len(fields) <= 4:
            component, *middle, prop = fields
            variant = layer = None
            for part in middle:
                if part.startswith(VARIANT_MARKER) and variant is None and layer is None:
                    variant = part[len(VARIANT_MARKER) :]
                elif part.startswith(LAYER_MARKER) and layer is None:
                    layer = part[len(LAYER_MARKER) :]
                else:
                    raise ValueError(f"Unexpected segment {part!r} in external name: {name!r}")
            return ComponentPath(component, prop, variant or None, layer or None)
        raise ValueError(f"Malformed external name: {name!r}")


_default_builder = VariableNameBuilder()


def build_external_name(path: StylePath, prefix: str = DEFAULT_PREFIX) -> str:
    """Build an external name with a given prefix (default ``ts``)."""
    builder = _default_builder if prefix == DEFAULT_PREFIX else VariableNameBuilder(prefix)
    return builder.build(path)


def parse_external_name(name: str, prefix: str = DEFAULT_PREFIX) -> StylePath:
    builder = _default_builder if prefix == DEFAULT_PREFIX else VariableNameBuilder(prefix)
    return builder.parse(name)


# =============================================================================
# Export naming
# =============================================================================
#
# Exported files use underscores between path segments, with a literal
# underscore inside a segment written as a double underscore.


def export_segments(path: StylePath) -> list[str]:
    """Structural segments of a path as they appear in an exported name."""
    if isinstance(path, TokenPath):
        return [TOKENS_KIND, *_normalized_parts(path.name)]
    if isinstance(path, ThemePath):
        return [THEME_KIND, ColorMode(path.mode).value, *_normalized_parts(path.path)]
    segments = [COMPONENTS_KIND, normalize_segment(path.component)]
    if path.variant:
        segments += ["variants", normalize_segment(path.variant)]
    if path.layer:
        segments += ["layers", normalize_segment(path.layer)]
    return segments + _normalized_parts(path.prop)


def _normalized_parts(path: str) -> list[str]:
    return [normalize_segment(part) for part in split_path(path)]


def to_export_name(segments: list[str], prefix: str = DEFAULT_PREFIX) -> str:
    escaped = [segment.replace("_", "__") for segment in segments]
    return f"--{prefix}_" + "_".join(escaped)


def export_name_to_segments(name: str, prefix: str = DEFAULT_PREFIX) -> list[str]:
    """Inverse of :func:`to_export_name`. Returns [] for foreign names."""
    head = f"--{prefix}_"
    if not name.startswith(head):
        return []
    body = name[len(head) :]
    segments: list[str] = []
    current: list[str] = []
    i = 0
    while i < len(body):
        if body.startswith("__", i):
            current.append("_")
            i += 2
        elif body[i] == "_":
            segments.append("".join(current))
            current = []
            i += 1
        else:
            current.append(body[i])
            i += 1
    segments.append("".join(current))
    return segments
