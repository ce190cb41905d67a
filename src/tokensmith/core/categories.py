"""
Property categories.

A category is derived from the words of a style path (``border-color`` is a
color, ``font-weight-bold`` a font weight) or from a token's ``$type``. It
decides the documented fallback literal and whether opacity normalization
applies.
"""

from __future__ import annotations

import math
from enum import StrEnum
from typing import Any

from .errors import CoercionError
from .ir import LiteralScalar
from .naming import ComponentPath, StylePath, ThemePath, TokenPath, normalize_segment


class PropertyCategory(StrEnum):
    COLOR = "color"
    OPACITY = "opacity"
    DIMENSION = "dimension"
    FONT_FAMILY = "font-family"
    FONT_WEIGHT = "font-weight"
    LINE_HEIGHT = "line-height"
    OTHER = "other"


FALLBACKS: dict[PropertyCategory, LiteralScalar] = {
    PropertyCategory.COLOR: "#000000",
    PropertyCategory.OPACITY: 1,
    PropertyCategory.DIMENSION: "0px",
    PropertyCategory.FONT_FAMILY: "sans-serif",
    PropertyCategory.FONT_WEIGHT: 400,
    PropertyCategory.LINE_HEIGHT: 1,
    PropertyCategory.OTHER: "initial",
}

_PAIRS = {
    ("line", "height"): PropertyCategory.LINE_HEIGHT,
    ("font", "weight"): PropertyCategory.FONT_WEIGHT,
    ("font", "family"): PropertyCategory.FONT_FAMILY,
    ("font", "size"): PropertyCategory.DIMENSION,
}

_WORDS = {
    **dict.fromkeys(("opacity", "opacities", "alpha"), PropertyCategory.OPACITY),
    **dict.fromkeys(("weight",), PropertyCategory.FONT_WEIGHT),
    **dict.fromkeys(("leading",), PropertyCategory.LINE_HEIGHT),
    **dict.fromkeys(("family", "font", "fonts", "typeface"), PropertyCategory.FONT_FAMILY),
    **dict.fromkeys(
        ("color", "colour", "colors", "tone", "surface", "background", "fill", "stroke", "foreground"),
        PropertyCategory.COLOR,
    ),
    **dict.fromkeys(
        (
            "width",
            "height",
            "size",
            "radius",
            "spacing",
            "space",
            "gap",
            "padding",
            "margin",
            "offset",
            "inset",
            "dimension",
            "blur",
        ),
        PropertyCategory.DIMENSION,
    ),
}

_TYPES = {
    "color": PropertyCategory.COLOR,
    "opacity": PropertyCategory.OPACITY,
    "percentage": PropertyCategory.OPACITY,
    "percent": PropertyCategory.OPACITY,
    "dimension": PropertyCategory.DIMENSION,
    "spacing": PropertyCategory.DIMENSION,
    "sizing": PropertyCategory.DIMENSION,
    "borderradius": PropertyCategory.DIMENSION,
    "fontfamily": PropertyCategory.FONT_FAMILY,
    "fontfamilies": PropertyCategory.FONT_FAMILY,
    "fontweight": PropertyCategory.FONT_WEIGHT,
    "fontweights": PropertyCategory.FONT_WEIGHT,
    "lineheight": PropertyCategory.LINE_HEIGHT,
    "lineheights": PropertyCategory.LINE_HEIGHT,
}


def category_for_name(text: str) -> PropertyCategory:
    """Category of a path, judged by its right-most recognizable word."""
    try:
        words = normalize_segment(text).split("-")
    except ValueError:
        return PropertyCategory.OTHER
    for i in range(len(words) - 1, -1, -1):
        if i > 0 and (words[i - 1], words[i]) in _PAIRS:
            return _PAIRS[(words[i - 1], words[i])]
        if words[i] in _WORDS:
            return _WORDS[words[i]]
    return PropertyCategory.OTHER


def category_for_type(declared: str | None) -> PropertyCategory | None:
    """Category of a DTCG ``$type``, if it names one."""
    if not declared:
        return None
    return _TYPES.get(declared.replace("-", "").replace("_", "").lower())


def category_for_path(path: StylePath, declared_type: str | None = None) -> PropertyCategory:
    by_type = category_for_type(declared_type)
    if by_type is not None:
        return by_type
    if isinstance(path, TokenPath):
        return category_for_name(path.name)
    if isinstance(path, ThemePath):
        return category_for_name(path.path)
    if isinstance(path, ComponentPath):
        return category_for_name(path.prop)
    return PropertyCategory.OTHER


def fallback_for(category: PropertyCategory) -> LiteralScalar:
    return FALLBACKS[category]


def normalize_opacity(value: Any) -> float:
    """Coerce an opacity to [0, 1].

    Numbers above 1 are read as percentages (``50`` -> ``0.5``), as are
    strings ending in ``%``. Numeric strings are accepted.

    Raises:
        CoercionError: If the value is not numeric.
    """
    if isinstance(value, bool):
        raise CoercionError(f"Opacity must be numeric, got {value!r}", value)
    if isinstance(value, str):
        text = value.strip()
        percent = text.endswith("%")
        if percent:
            text = text[:-1].strip()
        try:
            number = float(text)
        except ValueError as e:
            raise CoercionError(f"Opacity {value!r} is not numeric", value) from e
        if percent:
            number /= 100
    elif isinstance(value, int | float):
        number = float(value)
    else:
        raise CoercionError(f"Opacity must be numeric, got {type(value).__name__}", value)

    if math.isnan(number) or math.isinf(number):
        raise CoercionError(f"Opacity {value!r} is not a finite number", value)
    if number > 1:
        number /= 100
    return min(max(number, 0.0), 1.0)
