"""
Contrast compliance audit.

Pairs background-like entries with their text-like partners and checks the
resolved colors against a contrast threshold in every mode:

    theme   ...-tone            vs ...-on-tone
    theme   ...-surface         vs ...-element-text-color / ...-text-color
    component ...background-color vs ...text-color (same component/variant/layer)
    component ...background     vs ...text-color / ...text

Pairs whose values are not hex colors are skipped. When a failing foreground
resolves through a numbered color token, the issue also names the nearest
step of that family that would pass.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from pydantic import BaseModel, ConfigDict, Field

from .context import ThemeContext
from .contrast import (
    AA_THRESHOLD,
    PaletteStep,
    contrast_ratio,
    is_hex_color,
    min_alpha_for_threshold,
    pick_aa_step_in_family,
    pick_text_color,
)
from .engine import ThemeEngine
from .ir import ColorMode
from .naming import ComponentPath, ThemePath, TokenPath, split_path

logger = logging.getLogger(__name__)

# background suffix -> text suffixes tried in order
PairRules = tuple[tuple[str, tuple[str, ...]], ...]

THEME_PAIRS: PairRules = (
    ("tone", ("on-tone",)),
    ("surface", ("element-text-color", "text-color")),
)
COMPONENT_PAIRS: PairRules = (
    ("background-color", ("text-color",)),
    ("background", ("text-color", "text")),
)


class ComplianceIssue(BaseModel):
    """One background/text pair below the threshold."""

    model_config = ConfigDict(frozen=True)

    mode: ColorMode
    background_name: str
    foreground_name: str
    background: str
    foreground: str
    ratio: float
    threshold: float
    suggested_text_color: str
    suggested_alpha: float | None = None
    suggested_step: str | None = Field(
        default=None, description="Compliant token from the foreground's color family"
    )
    message: str


class ComplianceReport(BaseModel):
    """Outcome of an audit across modes."""

    issues: list[ComplianceIssue] = Field(default_factory=list)
    checked: int = 0
    skipped: int = 0

    @property
    def passed(self) -> bool:
        return not self.issues

    def for_mode(self, mode: ColorMode | str) -> list[ComplianceIssue]:
        mode = ColorMode(mode)
        return [issue for issue in self.issues if issue.mode == mode]


def _partner_suffix(key: str, pairs: PairRules) -> tuple[str, tuple[str, ...]] | None:
    for suffix, partners in pairs:
        if key != suffix and not key.endswith("-" + suffix):
            continue
        # "on-tone" ends with "tone" but is itself a text color
        if any(key == p or key.endswith("-" + p) for _, ps in pairs for p in ps):
            return None
        return key[: len(key) - len(suffix)], partners
    return None


def _candidate_pairs(engine: ThemeEngine, mode: ColorMode) -> Iterable[tuple[str, str]]:
    """Yield ``(background_name, foreground_name)`` pairs defined in ``mode``."""
    scoped: dict[tuple[object, str], str] = {}
    for name in engine.external_names():
        path = engine.path_for(name)
        if isinstance(path, ThemePath) and path.mode == mode:
            scoped[("theme", path.key[1])] = name
        elif isinstance(path, ComponentPath):
            component, variant, layer, prop = path.key
            scoped[((component, variant, layer), prop)] = name

    for (scope, key), name in scoped.items():
        rules = THEME_PAIRS if scope == "theme" else COMPONENT_PAIRS
        match = _partner_suffix(key, rules)
        if match is None:
            continue
        base, partners = match
        for partner in partners:
            partner_name = scoped.get((scope, base + partner))
            if partner_name is not None:
                yield name, partner_name
                break


def _family_step(
    engine: ThemeEngine,
    foreground_name: str,
    background: str,
    context: ThemeContext,
    threshold: float,
) -> str | None:
    """Token name of the nearest compliant step in the foreground's color family.

    The family is the set of numbered sibling tokens of the token the
    foreground resolves through, e.g. ``color/gray/100`` .. ``color/gray/900``.
    """
    chain = engine.trace(foreground_name, context)
    path = engine.path_for(chain[-1]) if chain else None
    if not isinstance(path, TokenPath):
        return None
    *family, level = split_path(path.name)
    if not family or not level.isdigit():
        return None

    names: dict[str, str] = {}
    steps: list[PaletteStep] = []
    for token in engine.spec.tokens:
        *parent, step_level = split_path(token.name)
        if parent != family or not step_level.isdigit():
            continue
        name = engine.names.token(token.name)
        value = engine.resolve_external(name, context).value
        if is_hex_color(value):
            names[step_level] = name
            steps.append(PaletteStep(step_level, str(value)))
    steps.sort(key=lambda step: int(step.level))

    step = pick_aa_step_in_family(background, steps, level, threshold=threshold)
    return names.get(step.level) if step else None


def audit_compliance(
    engine: ThemeEngine,
    threshold: float | None = None,
    modes: Iterable[ColorMode | str] | None = None,
    allowed_alphas: Iterable[float] | None = None,
) -> ComplianceReport:
    """
    Check every background/text pair in the given modes (default: all).

    Args:
        engine: Engine to resolve values with (its overrides apply)
        threshold: Minimum ratio (default: configured threshold, else 4.5)
        modes: Modes to check
        allowed_alphas: Opacity steps for suggestions (default: configured, else opacity tokens)

    Returns:
        ComplianceReport listing each failing pair
    """
    threshold = threshold or engine.config.contrast.threshold or AA_THRESHOLD
    alphas = list(allowed_alphas or engine.config.contrast.allowed_alphas or engine.opacity_steps())
    report = ComplianceReport()

    for mode in [ColorMode(m) for m in modes] if modes else list(ColorMode):
        context = engine.context.switch_mode(mode)
        for background_name, foreground_name in _candidate_pairs(engine, mode):
            background = engine.resolve_external(background_name, context).value
            foreground = engine.resolve_external(foreground_name, context).value
            if not (is_hex_color(background) and is_hex_color(foreground)):
                logger.debug("Skipping non-hex pair %s / %s", background_name, foreground_name)
                report.skipped += 1
                continue
            report.checked += 1
            ratio = contrast_ratio(str(background), str(foreground))
            if ratio >= threshold:
                continue
            suggestion = pick_text_color(str(background), threshold)
            family_step = _family_step(engine, foreground_name, str(background), context, threshold)
            report.issues.append(
                ComplianceIssue(
                    mode=mode,
                    background_name=background_name,
                    foreground_name=foreground_name,
                    background=str(background),
                    foreground=str(foreground),
                    ratio=round(ratio, 2),
                    threshold=threshold,
                    suggested_text_color=suggestion,
                    suggested_alpha=(
                        min_alpha_for_threshold(str(background), suggestion, alphas, threshold)
                        if alphas
                        else None
                    ),
                    suggested_step=family_step,
                    message=(
                        f"{foreground_name} on {background_name} in {mode.value} mode: "
                        f"{ratio:.2f}:1 is below {threshold:.1f}:1"
                    ),
                )
            )

    logger.info(
        "Compliance audit: %d pairs checked, %d issues, %d skipped",
        report.checked,
        len(report.issues),
        report.skipped,
    )
    return report
