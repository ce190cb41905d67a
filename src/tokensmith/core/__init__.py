"""Core tokensmith functionality: IR, spec loading, resolution, overrides, contrast checks, export."""

from . import ir
from .change_bus import ChangeBus, Subscription
from .compliance import ComplianceIssue, ComplianceReport, audit_compliance
from .config import TokensmithConfig, find_config, load_config, load_config_or_default
from .context import ThemeContext
from .contrast import (
    blend_over,
    contrast_ratio,
    min_alpha_for_threshold,
    pick_aa_step_in_family,
    pick_text_color,
    relative_luminance,
)
from .css_export import generate_css
from .engine import ThemeEngine, engine_from_config
from .errors import (
    CoercionError,
    ConfigError,
    CycleError,
    ErrorContext,
    NameCollisionError,
    ParseError,
    ResolutionError,
    SpecLoadError,
    TokenNotFoundError,
    TokensmithError,
    UnresolvedReferenceError,
)
from .naming import (
    ComponentPath,
    ThemePath,
    TokenPath,
    VariableNameBuilder,
    build_external_name,
    parse_external_name,
)
from .overrides import InMemoryOverrideBackend, JsonFileOverrideBackend, OverrideStore
from .reference_parser import parse_reference
from .resolver import ReferenceResolver
from .spec_loader import DesignSpec, build_spec, load_spec

__all__ = [
    "ir",
    "ChangeBus",
    "Subscription",
    "ComplianceIssue",
    "ComplianceReport",
    "audit_compliance",
    "TokensmithConfig",
    "find_config",
    "load_config",
    "load_config_or_default",
    "ThemeContext",
    "blend_over",
    "contrast_ratio",
    "min_alpha_for_threshold",
    "pick_aa_step_in_family",
    "pick_text_color",
    "relative_luminance",
    "generate_css",
    "ThemeEngine",
    "engine_from_config",
    "CoercionError",
    "ConfigError",
    "CycleError",
    "ErrorContext",
    "NameCollisionError",
    "ParseError",
    "ResolutionError",
    "SpecLoadError",
    "TokenNotFoundError",
    "TokensmithError",
    "UnresolvedReferenceError",
    "ComponentPath",
    "ThemePath",
    "TokenPath",
    "VariableNameBuilder",
    "build_external_name",
    "parse_external_name",
    "InMemoryOverrideBackend",
    "JsonFileOverrideBackend",
    "OverrideStore",
    "parse_reference",
    "ReferenceResolver",
    "DesignSpec",
    "build_spec",
    "load_spec",
]
