"""
Reference resolver.

Walks a reference to a literal through the three indices:

    component style -> theme entry -> token -> literal

Every node the walk passes is identified by ``(kind, key, mode)`` and kept in
a visited set, so a cycle is reported with its full chain instead of
recursing forever. A hop limit bounds pathological but acyclic chains.

Overrides are consulted at every node: if the external name of a node has an
override, the walk stops there with the override literal. If any node on the
chain is an opacity, the final literal is normalized, overrides included.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .categories import PropertyCategory, category_for_path, normalize_opacity
from .errors import (
    CoercionError,
    CycleError,
    ParseError,
    ResolutionError,
    TokenNotFoundError,
    UnresolvedReferenceError,
)
from .ir import (
    ColorMode,
    ComponentRef,
    LiteralScalar,
    LiteralValue,
    Reference,
    ThemeRef,
    TokenRef,
)
from .naming import ComponentPath, StylePath, ThemePath, TokenPath, VariableNameBuilder
from .spec_loader import DesignSpec

logger = logging.getLogger(__name__)

DEFAULT_MAX_HOPS = 64


@dataclass(frozen=True)
class Resolution:
    """Outcome of one walk.

    Attributes:
        value: The literal the chain ended at (or the override that stopped it).
        chain: External names of the nodes visited, in order.
        overridden_by: Name of the node whose override ended the walk, if any.
        verified: False when category coercion failed and ``value`` is raw.
        error: Coercion failure message when ``verified`` is False.
    """

    value: LiteralScalar
    chain: tuple[str, ...] = ()
    overridden_by: str | None = None
    verified: bool = True
    error: str | None = None


@dataclass(frozen=True)
class _Node:
    key: tuple[Any, ...]
    path: StylePath
    value: Reference
    mode: ColorMode
    declared_type: str | None = None


def reference_for_path(path: StylePath) -> Reference:
    """The reference that addresses a structured path."""
    if isinstance(path, TokenPath):
        return TokenRef(name=path.name)
    if isinstance(path, ThemePath):
        return ThemeRef(path=path.path, mode=path.mode)
    if isinstance(path, ComponentPath):
        return ComponentRef(
            component=path.component, property=path.prop, variant=path.variant, layer=path.layer
        )
    raise TypeError(f"Unsupported style path: {path!r}")


def component_candidates(ref: ComponentRef) -> list[ComponentPath]:
    """Lookup order for a component reference, most specific first.

    exact -> without layer -> without variant (keeping layer) -> component default
    """
    ordered = [
        ComponentPath(ref.component, ref.property, ref.variant, ref.layer),
        ComponentPath(ref.component, ref.property, ref.variant, None),
        ComponentPath(ref.component, ref.property, None, ref.layer),
        ComponentPath(ref.component, ref.property, None, None),
    ]
    return list(dict.fromkeys(ordered))


class ReferenceResolver:
    """Resolves references against one DesignSpec, with a per-(ref, mode) cache."""

    def __init__(
        self,
        spec: DesignSpec,
        names: VariableNameBuilder | None = None,
        max_hops: int = DEFAULT_MAX_HOPS,
    ) -> None:
        if max_hops < 1:
            raise ValueError(f"max_hops must be positive, got {max_hops}")
        self.spec = spec
        self.names = names or VariableNameBuilder()
        self.max_hops = max_hops
        self._cache: dict[tuple[Reference, ColorMode], Resolution] = {}
        self._cache_overrides: dict[str, LiteralScalar] = {}

    def invalidate(self) -> None:
        """Drop every memoized result."""
        if self._cache:
            logger.debug("Invalidating %d cached resolutions", len(self._cache))
        self._cache.clear()

    def resolve(
        self,
        ref: Reference,
        mode: ColorMode | str,
        overrides: Mapping[str, LiteralScalar] | None = None,
    ) -> LiteralScalar:
        """Resolve a reference to a literal.

        Raises:
            TokenNotFoundError: If the chain ends at a missing token.
            UnresolvedReferenceError: If a theme or component reference matches nothing.
            CycleError: If the chain revisits a node or exceeds the hop limit.
            ParseError: If the chain reaches an entry whose value could not be parsed.
            CoercionError: If an opacity value is not numeric.
        """
        resolution = self.resolve_detailed(ref, mode, overrides)
        if not resolution.verified:
            raise CoercionError(resolution.error or "Value could not be coerced", resolution.value)
        return resolution.value

    def resolve_path(
        self,
        path: StylePath,
        mode: ColorMode | str,
        overrides: Mapping[str, LiteralScalar] | None = None,
    ) -> Resolution:
        return self.resolve_detailed(reference_for_path(path), mode, overrides)

    def resolve_detailed(
        self,
        ref: Reference,
        mode: ColorMode | str,
        overrides: Mapping[str, LiteralScalar] | None = None,
    ) -> Resolution:
        """Resolve and report the chain. Coercion failures come back unverified."""
        mode = ColorMode(mode)
        overrides = overrides or {}
        if overrides != self._cache_overrides:
            self.invalidate()
            self._cache_overrides = dict(overrides)

        cache_key = (ref, mode)
        cached = self._cache.get(cache_key)
        if cached is not None:
            return cached
        resolution = self._walk(ref, mode, overrides, [])
        self._cache[cache_key] = resolution
        return resolution

    def trace(
        self,
        ref: Reference,
        mode: ColorMode | str,
        overrides: Mapping[str, LiteralScalar] | None = None,
    ) -> list[str]:
        """External names visited while resolving ``ref``, up to the first failure."""
        chain: list[str] = []
        try:
            self._walk(ref, ColorMode(mode), overrides or {}, chain)
        except (ResolutionError, ParseError) as e:
            logger.debug("Trace of %s stopped early: %s", ref, e.message)
        return chain

    def dependencies(self, ref: Reference, mode: ColorMode | str) -> list[str]:
        """Names ``ref`` depends on, ignoring overrides."""
        return self.trace(ref, mode, None)

    # -------------------------------------------------------------------------
    # Walk
    # -------------------------------------------------------------------------

    def _walk(
        self,
        ref: Reference,
        mode: ColorMode,
        overrides: Mapping[str, LiteralScalar],
        chain: list[str],
    ) -> Resolution:
        visited: set[tuple[Any, ...]] = set()
        is_opacity = False
        overridden_by: str | None = None
        current: Reference = ref
        current_mode = mode

        while not isinstance(current, LiteralValue):
            if len(chain) >= self.max_hops:
                raise CycleError(
                    chain,
                    f"Reference chain exceeded {self.max_hops} hops: " + " -> ".join(chain),
                )
            node = self._step(current, current_mode, chain)
            name = self.names.build(node.path)
            chain.append(name)
            if node.key in visited:
                raise CycleError(chain)
            visited.add(node.key)

            if category_for_path(node.path, node.declared_type) == PropertyCategory.OPACITY:
                is_opacity = True
            if name in overrides:
                overridden_by = name
                current = LiteralValue(value=overrides[name])
                break
            current = node.value
            current_mode = node.mode

        value = current.value
        if is_opacity:
            try:
                value = normalize_opacity(value)
            except CoercionError as e:
                logger.warning("Passing through unverified opacity %r: %s", value, e.message)
                return Resolution(
                    value, tuple(chain), overridden_by, verified=False, error=e.message
                )
        return Resolution(value, tuple(chain), overridden_by)

    def _step(self, ref: Reference, mode: ColorMode, chain: list[str]) -> _Node:
        if isinstance(ref, TokenRef):
            token = self.spec.tokens.find(ref.name)
            if token is None:
                raise TokenNotFoundError(ref.name, chain)
            path = TokenPath(token.name)
            return _Node(
                ("token", path.key, None),
                path,
                LiteralValue(value=token.value),
                mode,
                token.type,
            )

        if isinstance(ref, ThemeRef):
            target_mode = ref.mode or mode
            try:
                entry = self.spec.theme.get(target_mode, ref.path)
            except ValueError:
                entry = None
            if entry is None:
                raise UnresolvedReferenceError(
                    f"No theme entry {ref.path!r} in {target_mode.value} mode", chain
                )
            path = ThemePath(entry.mode, entry.path)
            return _Node(("theme", path.key, entry.mode), path, entry.value, entry.mode)

        if isinstance(ref, ComponentRef):
            tried = component_candidates(ref)
            for candidate in tried:
                try:
                    entry = self.spec.components.get(
                        candidate.component, candidate.prop, candidate.variant, candidate.layer
                    )
                except ValueError:
                    entry = None
                if entry is not None:
                    path = ComponentPath(entry.component, entry.property, entry.variant, entry.layer)
                    return _Node(("component", path.key, mode), path, entry.value, mode)
            levels = ", ".join(self.names.build(candidate) for candidate in tried)
            raise UnresolvedReferenceError(f"No component style for {ref} (tried {levels})", chain)

        raise TypeError(f"Unsupported reference: {ref!r}")
