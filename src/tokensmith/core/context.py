"""
ThemeContext: the mode and override snapshot every resolution runs under.

A context is immutable. Switching mode or applying overrides returns a new
context; nothing reads a process-wide "current mode".
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from types import MappingProxyType

from .ir import ColorMode, LiteralScalar


@dataclass(frozen=True)
class ThemeContext:
    """Active mode plus the overrides in force when the context was taken."""

    mode: ColorMode = ColorMode.LIGHT
    overrides: Mapping[str, LiteralScalar] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "mode", ColorMode(self.mode))
        object.__setattr__(self, "overrides", MappingProxyType(dict(self.overrides)))

    def switch_mode(self, mode: ColorMode | str) -> ThemeContext:
        return replace(self, mode=ColorMode(mode))

    def with_overrides(self, overrides: Mapping[str, LiteralScalar]) -> ThemeContext:
        return replace(self, overrides=overrides)

    def override_for(self, name: str) -> LiteralScalar | None:
        return self.overrides.get(name)
