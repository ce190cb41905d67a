"""
Project configuration from tokensmith.toml.

Four optional tables map onto dataclasses: ``[spec]`` (document paths),
``[engine]`` (prefix, default mode, limits), ``[contrast]`` (threshold and
allowed opacity steps) and ``[overrides]`` (persistence file). Relative paths
are taken from the directory holding the file.
"""

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from .change_bus import DEFAULT_MAX_ROUNDS
from .contrast import AA_THRESHOLD
from .errors import ConfigError
from .ir import ColorMode
from .naming import DEFAULT_PREFIX, VariableNameBuilder
from .overrides import OVERRIDES_FILE
from .resolver import DEFAULT_MAX_HOPS

CONFIG_FILE = "tokensmith.toml"


@dataclass
class SpecPaths:
    """Where the three spec documents live."""

    tokens: Path | None = None
    theme: Path | None = None
    components: Path | None = None


@dataclass
class EngineConfig:
    """Resolution settings."""

    prefix: str = DEFAULT_PREFIX
    default_mode: ColorMode = ColorMode.LIGHT
    max_hops: int = DEFAULT_MAX_HOPS
    max_dispatch_rounds: int = DEFAULT_MAX_ROUNDS


@dataclass
class ContrastConfig:
    """Compliance thresholds."""

    threshold: float = AA_THRESHOLD
    allowed_alphas: tuple[float, ...] = ()  # empty: use the opacity tokens


@dataclass
class OverridesConfig:
    """Override persistence."""

    path: Path = field(default_factory=lambda: Path(OVERRIDES_FILE))


@dataclass
class TokensmithConfig:
    spec: SpecPaths = field(default_factory=SpecPaths)
    engine: EngineConfig = field(default_factory=EngineConfig)
    contrast: ContrastConfig = field(default_factory=ContrastConfig)
    overrides: OverridesConfig = field(default_factory=OverridesConfig)
    root: Path = field(default_factory=Path.cwd)


# =============================================================================
# Loading
# =============================================================================


def _section(data: dict, name: str) -> dict:
    section = data.get(name, {})
    if not isinstance(section, dict):
        raise ConfigError(f"[{name}] must be a table, got {section!r}")
    return section


def _positive_int(section: dict, key: str, default: int) -> int:
    value = section.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ConfigError(f"{key} must be a positive integer, got {value!r}")
    return value


def _path(root: Path, value: object, key: str) -> Path | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError(f"{key} must be a path string, got {value!r}")
    path = Path(value)
    return path if path.is_absolute() else root / path


def load_config(path: Path) -> TokensmithConfig:
    """Load tokensmith.toml. Relative paths are taken from the file's directory.

    Raises:
        ConfigError: If the file is not valid TOML or holds invalid values.
    """
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"Invalid TOML in {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    root = path.parent
    spec_data = _section(data, "spec")
    engine_data = _section(data, "engine")
    contrast_data = _section(data, "contrast")
    overrides_data = _section(data, "overrides")

    spec = SpecPaths(
        tokens=_path(root, spec_data.get("tokens"), "spec.tokens"),
        theme=_path(root, spec_data.get("theme"), "spec.theme"),
        components=_path(root, spec_data.get("components"), "spec.components"),
    )

    try:
        default_mode = ColorMode(str(engine_data.get("default_mode", ColorMode.LIGHT.value)).lower())
    except ValueError as e:
        raise ConfigError(f"Unknown default_mode {engine_data.get('default_mode')!r}") from e

    prefix = str(engine_data.get("prefix", DEFAULT_PREFIX))
    try:
        prefix = VariableNameBuilder(prefix).prefix
    except ValueError as e:
        raise ConfigError(f"Invalid engine.prefix: {e}") from e

    engine = EngineConfig(
        prefix=prefix,
        default_mode=default_mode,
        max_hops=_positive_int(engine_data, "max_hops", DEFAULT_MAX_HOPS),
        max_dispatch_rounds=_positive_int(engine_data, "max_dispatch_rounds", DEFAULT_MAX_ROUNDS),
    )

    threshold = contrast_data.get("threshold", AA_THRESHOLD)
    alphas = contrast_data.get("allowed_alphas", [])
    if isinstance(threshold, bool) or not isinstance(threshold, int | float) or threshold < 1:
        raise ConfigError(f"contrast.threshold must be a number >= 1, got {threshold!r}")
    if not isinstance(alphas, list) or any(
        isinstance(a, bool) or not isinstance(a, int | float) or not 0 <= a <= 1 for a in alphas
    ):
        raise ConfigError(f"contrast.allowed_alphas must be numbers in [0, 1], got {alphas!r}")
    contrast = ContrastConfig(threshold=float(threshold), allowed_alphas=tuple(sorted(alphas)))

    overrides = OverridesConfig(
        path=_path(root, overrides_data.get("path", OVERRIDES_FILE), "overrides.path")
        or root / OVERRIDES_FILE
    )

    return TokensmithConfig(
        spec=spec, engine=engine, contrast=contrast, overrides=overrides, root=root
    )


def find_config(start: Path | None = None) -> Path | None:
    """Find tokensmith.toml in ``start`` or any parent directory."""
    current = (start or Path.cwd()).resolve()
    for directory in (current, *current.parents):
        candidate = directory / CONFIG_FILE
        if candidate.exists():
            return candidate
    return None


def load_config_or_default(path: Path | None = None) -> TokensmithConfig:
    """Load the given or discovered config; defaults when there is none."""
    path = path or find_config()
    if path is None:
        return TokensmithConfig()
    return load_config(path)
