"""
CSS export for tokensmith.

Writes the resolved namespace as CSS custom properties: tokens under
``:root`` and, per mode, theme entries and component styles under
``[data-theme="<mode>"]``.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

from .ir import ColorMode, LiteralScalar
from .naming import TokenPath, export_segments, to_export_name

if TYPE_CHECKING:
    from .engine import ThemeEngine


def format_css_value(value: LiteralScalar) -> str:
    """Render a literal as a CSS value (``1.0`` -> ``1``, ``0.50`` -> ``0.5``)."""
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return str(value)


def export_name(engine: ThemeEngine, name: str) -> str:
    """Underscore export form of an external name. Names outside the spec pass through."""
    path = engine.path_for(name)
    if path is None:
        return name
    return to_export_name(export_segments(path), engine.names.prefix)


def mode_selector(mode: ColorMode | str) -> str:
    return f'[data-theme="{ColorMode(mode).value}"]'


def generate_css(
    engine: ThemeEngine,
    modes: Iterable[ColorMode | str] | None = None,
    indirection: bool = False,
    export_names: bool = False,
) -> str:
    """
    Generate CSS custom properties from an engine.

    Args:
        engine: Engine holding the loaded spec and overrides
        modes: Modes to emit blocks for (default: every mode the theme defines)
        indirection: Emit ``var(--target, literal)`` for reference-valued entries
        export_names: Write underscore export names (``--ts_tokens_color_white``)

    Returns:
        CSS string with a :root block and one block per mode
    """
    selected = [ColorMode(mode) for mode in modes] if modes else engine.spec.theme.modes()
    if not selected:
        selected = [engine.mode]
    token_names = set(engine.external_names(TokenPath))

    lines: list[str] = []
    lines.append("/* tokensmith design tokens */")
    lines.append(f"/* Spec version: {engine.spec.version or 'unknown'} */")
    lines.append("/* Auto-generated - do not edit */")
    lines.append("")

    base = engine.custom_properties(selected[0], indirection)
    lines.append(":root {")
    root = {k: v for k, v in base.items() if k in token_names}
    lines.extend(_property_lines(_with_export_names(engine, root) if export_names else root))
    lines.append("}")
    lines.append("")

    for mode in selected:
        properties = engine.custom_properties(mode, indirection)
        lines.append(f"{mode_selector(mode)} {{")
        scoped = {k: v for k, v in properties.items() if k not in token_names}
        lines.extend(_property_lines(_with_export_names(engine, scoped) if export_names else scoped))
        lines.append("}")
        lines.append("")

    return "\n".join(lines)


def _with_export_names(engine: ThemeEngine, properties: dict[str, str]) -> dict[str, str]:
    renamed: dict[str, str] = {}
    for name, value in properties.items():
        if value.startswith("var("):
            target, _, rest = value[len("var(") :].partition(",")
            value = f"var({export_name(engine, target)},{rest}"
        renamed[export_name(engine, name)] = value
    return renamed


def _property_lines(properties: dict[str, str], indent: int = 2) -> list[str]:
    prefix = " " * indent
    return [f"{prefix}{name}: {value};" for name, value in sorted(properties.items())]
