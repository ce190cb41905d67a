"""
Theme engine.

Owns one loaded DesignSpec, the resolver and its cache, the override store
and the change bus, and answers ``resolve_external(name)`` for consumers.

Precedence for an external name: override, then the computed value, then
the documented fallback for the property's category.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from .categories import PropertyCategory, category_for_path, fallback_for, normalize_opacity
from .change_bus import ChangeBus, ChangeHandler, Subscription
from .config import TokensmithConfig
from .context import ThemeContext
from .css_export import format_css_value
from .errors import (
    CoercionError,
    CycleError,
    ParseError,
    SpecLoadError,
    TokenNotFoundError,
    UnresolvedReferenceError,
)
from .ir import ChangeEvent, ColorMode, LiteralScalar, Reference, ResolvedValue, ValueSource
from .naming import ComponentPath, StylePath, ThemePath, TokenPath, VariableNameBuilder
from .overrides import JsonFileOverrideBackend, OverrideBackend, OverrideStore
from .resolver import ReferenceResolver, reference_for_path
from .spec_loader import DesignSpec, load_spec

logger = logging.getLogger(__name__)


class ThemeEngine:
    """Resolves external names against a spec under an immutable ThemeContext."""

    def __init__(
        self,
        spec: DesignSpec,
        config: TokensmithConfig | None = None,
        backend: OverrideBackend | None = None,
        bus: ChangeBus | None = None,
        mode: ColorMode | str | None = None,
    ) -> None:
        self.config = config or TokensmithConfig()
        self.names = VariableNameBuilder(self.config.engine.prefix)
        self.bus = bus or ChangeBus(max_rounds=self.config.engine.max_dispatch_rounds)

        self._spec = spec
        self._resolver = ReferenceResolver(spec, self.names, self.config.engine.max_hops)
        self._registry = self._build_registry(spec)
        self._dependents = self._build_dependents(self._registry, self._resolver)
        self._diagnostics: dict[str, str] = {}
        self._record_parse_errors(spec)

        # The engine refreshes its snapshot before any other subscriber runs
        self.bus.subscribe(self._on_change)
        self.overrides = OverrideStore(backend, self.bus, expand=self.dependents_of)
        self._context = ThemeContext(
            ColorMode(mode or self.config.engine.default_mode), self.overrides.snapshot()
        )

    # =========================================================================
    # State
    # =========================================================================

    @property
    def spec(self) -> DesignSpec:
        return self._spec

    @property
    def context(self) -> ThemeContext:
        return self._context

    @property
    def mode(self) -> ColorMode:
        return self._context.mode

    @property
    def diagnostics(self) -> list[str]:
        """Surfaced cycle and parse failures, one message per affected name."""
        return list(self._diagnostics.values())

    def subscribe(self, handler: ChangeHandler) -> Subscription:
        return self.bus.subscribe(handler)

    def external_names(self, kind: type[StylePath] | None = None) -> list[str]:
        """Every name the spec defines, optionally only tokens, theme or components."""
        if kind is None:
            return list(self._registry)
        return [name for name, path in self._registry.items() if isinstance(path, kind)]

    def path_for(self, name: str) -> StylePath | None:
        return self._registry.get(name)

    def dependents_of(self, name: str) -> list[str]:
        """Names whose resolution passes through ``name``."""
        return sorted(self._dependents.get(name, ()))

    # =========================================================================
    # Resolution
    # =========================================================================

    def resolve(self, ref: Reference, context: ThemeContext | None = None) -> LiteralScalar:
        """Resolve a reference to a literal. Errors propagate to the caller."""
        ctx = context or self._context
        return self._resolver.resolve(ref, ctx.mode, ctx.overrides)

    def resolve_path(self, path: StylePath, context: ThemeContext | None = None) -> ResolvedValue:
        return self.resolve_external(self.names.build(path), context)

    def resolve_external(self, name: str, context: ThemeContext | None = None) -> ResolvedValue:
        """
        Resolve an external name. Never raises for missing or broken entries.

        Missing targets fall back with a warning; cycles and parse failures
        fall back with the error attached and recorded in ``diagnostics``;
        values that fail category coercion are passed through unverified.

        A component name with no exact entry still resolves through the
        component fallback order (drop layer, drop variant, default).

        Opacity names are normalized after the walk, overrides included:
        an override of ``50`` on an opacity token resolves to ``0.5``.
        """
        ctx = context or self._context
        path = self._registry.get(name)
        if path is None:
            return self._resolve_unknown(name, ctx)
        return self._resolve_known(name, path, ctx)

    def _resolve_known(self, name: str, path: StylePath, ctx: ThemeContext) -> ResolvedValue:
        try:
            resolution = self._resolver.resolve_path(path, self._mode_for(path, ctx), ctx.overrides)
        except (TokenNotFoundError, UnresolvedReferenceError) as e:
            logger.warning("Falling back for %s: %s", name, e.message)
            return self._fallback(name, path, e.message)
        except (CycleError, ParseError) as e:
            self._diagnostics[name] = f"{name}: {e.message}"
            logger.error("Cannot resolve %s: %s", name, e.message)
            return self._fallback(name, path, e.message)

        source = ValueSource.OVERRIDE if resolution.overridden_by == name else ValueSource.COMPUTED
        return ResolvedValue(
            external_name=name,
            value=resolution.value,
            source=source,
            verified=resolution.verified,
            error=resolution.error,
        )

    def resolve_all(self, mode: ColorMode | str | None = None) -> dict[str, ResolvedValue]:
        """Every name visible in one mode: tokens, that mode's theme entries, components."""
        ctx = self._context if mode is None else self._context.switch_mode(mode)
        return {
            name: self.resolve_external(name, ctx)
            for name, path in self._registry.items()
            if not isinstance(path, ThemePath) or path.mode == ctx.mode
        }

    def trace(self, name: str, context: ThemeContext | None = None) -> list[str]:
        """Names visited resolving ``name`` under the context's overrides, in order."""
        ctx = context or self._context
        path = self._registry.get(name) or self._component_path(name)
        if path is None:
            return []
        return self._resolver.trace(reference_for_path(path), self._mode_for(path, ctx), ctx.overrides)

    def direct_target(self, name: str, context: ThemeContext | None = None) -> str | None:
        """Name of the node ``name`` points at directly, or None for literal entries.

        For a component name with no entry of its own, that is the entry the
        fallback order settles on.
        """
        ctx = context or self._context
        path = self._registry.get(name)
        if path is None:
            component = self._component_path(name)
            if component is None:
                return None
            chain = self._resolver.trace(reference_for_path(component), ctx.mode)
            return chain[0] if chain else None
        chain = self._resolver.trace(reference_for_path(path), self._mode_for(path, ctx))
        return chain[1] if len(chain) > 1 else None

    def custom_properties(
        self, mode: ColorMode | str | None = None, indirection: bool = False
    ) -> dict[str, str]:
        """Flat ``{name: css value}`` namespace for one mode.

        With ``indirection``, reference-valued entries are emitted as
        ``var(--target, literal)`` so consumers can see the alias.
        """
        ctx = self._context if mode is None else self._context.switch_mode(mode)
        properties: dict[str, str] = {}
        for name, resolved in self.resolve_all(ctx.mode).items():
            literal = format_css_value(resolved.value)
            target = None
            if indirection and resolved.source == ValueSource.COMPUTED:
                target = self.direct_target(name, ctx)
            properties[name] = f"var({target}, {literal})" if target else literal
        return properties

    def opacity_steps(self) -> list[float]:
        """Distinct opacity values defined by opacity tokens, ascending."""
        steps: set[float] = set()
        for token in self._spec.tokens:
            if not self._spec.tokens.is_opacity(token.name):
                continue
            try:
                steps.add(normalize_opacity(token.value))
            except CoercionError as e:
                logger.warning("Skipping opacity token %s: %s", token.name, e.message)
        return sorted(steps)

    # =========================================================================
    # Mode, reload and overrides
    # =========================================================================

    def switch_mode(self, mode: ColorMode | str) -> ThemeContext:
        """Switch the active mode. The cache is cleared before this returns."""
        self._context = self._context.switch_mode(mode)
        self._resolver.invalidate()
        logger.debug("Switched to %s mode", self._context.mode.value)
        self.bus.publish(ChangeEvent.full_reset())
        return self._context

    def reload(self, spec: DesignSpec) -> None:
        """Swap in a new spec. If building the new indices fails, nothing changes."""
        resolver = ReferenceResolver(spec, self.names, self.config.engine.max_hops)
        registry = self._build_registry(spec)
        dependents = self._build_dependents(registry, resolver)

        self._spec = spec
        self._resolver = resolver
        self._registry = registry
        self._dependents = dependents
        self._diagnostics = {}
        self._record_parse_errors(spec)
        if isinstance(self.overrides.backend, JsonFileOverrideBackend):
            self.overrides.backend.spec_version = spec.version
        orphans = self.orphaned_overrides()
        if orphans:
            logger.warning("Overrides no longer match the spec: %s", ", ".join(orphans))
        logger.info("Reloaded spec %s", spec.version)
        self.bus.publish(ChangeEvent.full_reset())

    def set_override(self, name: str, value: LiteralScalar) -> None:
        if name not in self._registry:
            logger.warning("Override for %s does not match any name in the spec", name)
        self.overrides.set_override(name, value)

    def clear_override(self, name: str) -> bool:
        return self.overrides.clear_override(name)

    def clear_all(self) -> None:
        self.overrides.clear_all()

    def orphaned_overrides(self) -> list[str]:
        """Override names the current spec no longer defines."""
        return [name for name in self.overrides if name not in self._registry]

    # =========================================================================
    # Internals
    # =========================================================================

    def _on_change(self, event: ChangeEvent) -> None:
        self._context = self._context.with_overrides(self.overrides.snapshot())
        self._resolver.invalidate()

    def _mode_for(self, path: StylePath, ctx: ThemeContext) -> ColorMode:
        return path.mode if isinstance(path, ThemePath) else ctx.mode

    def _category(self, path: StylePath) -> PropertyCategory:
        declared = None
        if isinstance(path, TokenPath):
            token = self._spec.tokens.find(path.name)
            declared = token.type if token else None
        return category_for_path(path, declared)

    def _fallback(self, name: str, path: StylePath | None, error: str) -> ResolvedValue:
        category = self._category(path) if path is not None else PropertyCategory.OTHER
        return ResolvedValue(
            external_name=name,
            value=fallback_for(category),
            source=ValueSource.FALLBACK,
            error=error,
        )

    def _resolve_unknown(self, name: str, ctx: ThemeContext) -> ResolvedValue:
        override = ctx.override_for(name)
        if override is not None:
            return ResolvedValue(external_name=name, value=override, source=ValueSource.OVERRIDE)
        component = self._component_path(name)
        if component is not None:
            return self._resolve_known(name, component, ctx)
        try:
            path: StylePath | None = self.names.parse(name)
        except ValueError:
            path = None
        logger.warning("Unknown name %s, using fallback", name)
        return self._fallback(name, path, f"Unknown name: {name}")

    def _component_path(self, name: str) -> ComponentPath | None:
        try:
            path = self.names.parse(name)
        except ValueError:
            return None
        return path if isinstance(path, ComponentPath) else None

    def _record_parse_errors(self, spec: DesignSpec) -> None:
        for error in spec.parse_errors:
            location = error.context.format() if error.context else "spec"
            self._diagnostics[f"parse:{location}"] = str(error)

    def _build_registry(self, spec: DesignSpec) -> dict[str, StylePath]:
        paths: list[StylePath] = [TokenPath(token.name) for token in spec.tokens]
        paths += spec.theme.paths()
        paths += spec.components.paths()
        return {self.names.build(path): path for path in paths}

    @staticmethod
    def _build_dependents(
        registry: dict[str, StylePath], resolver: ReferenceResolver
    ) -> dict[str, set[str]]:
        """Reverse dependency graph: name -> every name whose chain passes through it."""
        dependents: dict[str, set[str]] = {}
        for name, path in registry.items():
            if isinstance(path, TokenPath):
                continue
            modes: Iterable[ColorMode] = (path.mode,) if isinstance(path, ThemePath) else ColorMode
            for mode in modes:
                for dependency in resolver.dependencies(reference_for_path(path), mode)[1:]:
                    if dependency != name:
                        dependents.setdefault(dependency, set()).add(name)
        return dependents


def engine_from_config(
    config: TokensmithConfig,
    *,
    tokens: Path | None = None,
    theme: Path | None = None,
    components: Path | None = None,
    mode: ColorMode | str | None = None,
    persist: bool = True,
) -> ThemeEngine:
    """Load the spec named by the config (or explicit paths) and build an engine.

    Raises:
        SpecLoadError: If no tokens document is configured or a file is invalid.
    """
    tokens = tokens or config.spec.tokens
    theme = theme or config.spec.theme
    components = components or config.spec.components
    if tokens is None:
        raise SpecLoadError("No tokens document given (use --tokens or [spec] tokens in tokensmith.toml)")
    spec = load_spec(tokens, theme, components)
    backend = JsonFileOverrideBackend(config.overrides.path, spec.version) if persist else None
    return ThemeEngine(spec, config, backend=backend, mode=mode)

