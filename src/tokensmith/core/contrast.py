"""
WCAG contrast checks.

Pure functions over hex colors. Besides luminance and contrast ratio, this
covers black/white text selection, alpha blending, the smallest opacity
step that still meets a threshold and the nearest compliant step of a
color family.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from .errors import CoercionError

RGB = tuple[int, int, int]

AA_THRESHOLD = 4.5
BLACK = "#000000"
WHITE = "#ffffff"

_HEX_SHORT = re.compile(r"^#?([0-9a-fA-F]{3})$")
_HEX_LONG = re.compile(r"^#?([0-9a-fA-F]{6})$")


@dataclass(frozen=True)
class PaletteStep:
    """One step of a color family, e.g. ``PaletteStep("500", "#6b7280")``."""

    level: str
    hex: str


WHITE_STEP = PaletteStep("white", WHITE)
BLACK_STEP = PaletteStep("black", BLACK)


@dataclass(frozen=True)
class ContrastCheck:
    foreground: str
    background: str
    ratio: float
    threshold: float = AA_THRESHOLD

    @property
    def passes(self) -> bool:
        return self.ratio >= self.threshold


def is_hex_color(value: object) -> bool:
    return isinstance(value, str) and bool(
        _HEX_SHORT.match(value.strip()) or _HEX_LONG.match(value.strip())
    )


def parse_hex(value: str) -> RGB:
    """Parse ``#rgb`` or ``#rrggbb`` (``#`` optional).

    Raises:
        CoercionError: If the value is not a hex color.
    """
    text = value.strip() if isinstance(value, str) else ""
    short = _HEX_SHORT.match(text)
    if short:
        chunk = short.group(1)
        return int(chunk[0] * 2, 16), int(chunk[1] * 2, 16), int(chunk[2] * 2, 16)
    long = _HEX_LONG.match(text)
    if long:
        chunk = long.group(1)
        return int(chunk[0:2], 16), int(chunk[2:4], 16), int(chunk[4:6], 16)
    raise CoercionError(f"Not a hex color: {value!r}", value)


def to_hex(rgb: RGB) -> str:
    return f"#{rgb[0]:02x}{rgb[1]:02x}{rgb[2]:02x}"


def _linearize(channel: int) -> float:
    c = channel / 255
    return c / 12.92 if c <= 0.03928 else ((c + 0.055) / 1.055) ** 2.4


def relative_luminance(color: str) -> float:
    r, g, b = (_linearize(c) for c in parse_hex(color))
    return 0.2126 * r + 0.7152 * g + 0.0722 * b


def contrast_ratio(first: str, second: str) -> float:
    """WCAG contrast ratio, from 1.0 (identical) to 21.0 (black on white)."""
    l1 = relative_luminance(first)
    l2 = relative_luminance(second)
    lighter, darker = max(l1, l2), min(l1, l2)
    return (lighter + 0.05) / (darker + 0.05)


def meets_threshold(first: str, second: str, threshold: float = AA_THRESHOLD) -> bool:
    return contrast_ratio(first, second) >= threshold


def check_contrast(foreground: str, background: str, threshold: float = AA_THRESHOLD) -> ContrastCheck:
    return ContrastCheck(foreground, background, contrast_ratio(foreground, background), threshold)


def pick_text_color(background: str, threshold: float = AA_THRESHOLD) -> str:
    """Black or white, whichever reads better on ``background``.

    A color meeting the threshold wins over one that does not; between two
    that both (or neither) meet it, the higher contrast wins. Callers decide
    whether a non-compliant result deserves a warning.
    """
    on_black = contrast_ratio(background, BLACK)
    on_white = contrast_ratio(background, WHITE)
    black_ok = on_black >= threshold
    white_ok = on_white >= threshold
    if black_ok != white_ok:
        return BLACK if black_ok else WHITE
    return BLACK if on_black >= on_white else WHITE


def blend_over(foreground: str, background: str, alpha: float) -> str:
    """Composite ``foreground`` at ``alpha`` over an opaque ``background``."""
    a = min(max(float(alpha), 0.0), 1.0)
    fg = parse_hex(foreground)
    bg = parse_hex(background)
    r, g, b = (round(a * f + (1 - a) * k) for f, k in zip(fg, bg, strict=True))
    return to_hex((r, g, b))


def min_alpha_for_threshold(
    background: str,
    dot: str,
    allowed_alphas: Iterable[float],
    threshold: float = AA_THRESHOLD,
) -> float:
    """Smallest allowed alpha at which ``dot`` blended over ``background`` meets the threshold.

    Only the discrete steps given are tried, in ascending order. If none
    qualify, full opacity (1.0) is returned.
    """
    for alpha in sorted(allowed_alphas):
        if contrast_ratio(background, blend_over(dot, background, alpha)) >= threshold:
            return alpha
    return 1.0


def pick_aa_step_in_family(
    background: str,
    steps: Sequence[PaletteStep],
    start_level: str | None = None,
    alpha: float = 1.0,
    threshold: float = AA_THRESHOLD,
) -> PaletteStep | None:
    """Nearest step of a color family that meets the threshold on ``background``.

    ``steps`` run lightest to darkest. The search starts next to
    ``start_level`` (the step that failed) and walks toward the light end
    first, then toward the dark end. Each candidate is blended over the
    background at ``alpha`` before it is measured.

    With no compliant step, white is returned if it meets the threshold,
    then black, else whichever of the two contrasts more. Without a start
    level only white and black are tried.

    Returns:
        The chosen step, or None when ``start_level`` is not in the family.
    """
    if start_level is not None:
        levels = [step.level for step in steps]
        if start_level not in levels:
            return None
        start = levels.index(start_level)
        for step in [*reversed(steps[:start]), *steps[start + 1 :]]:
            if contrast_ratio(background, blend_over(step.hex, background, alpha)) >= threshold:
                return step

    on_white = contrast_ratio(background, blend_over(WHITE, background, alpha))
    on_black = contrast_ratio(background, blend_over(BLACK, background, alpha))
    if on_white >= threshold:
        return WHITE_STEP
    if on_black >= threshold:
        return BLACK_STEP
    return WHITE_STEP if on_white >= on_black else BLACK_STEP
