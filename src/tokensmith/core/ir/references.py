"""
Reference types for tokensmith IR.

Every value in a theme or component document is one of four shapes: a
literal, or a reference into the token store, the theme index, or the
component style index. They form a closed union discriminated on ``kind``
so resolution code can match on the type instead of re-inspecting strings.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

# Value a reference chain ends at
LiteralScalar = int | float | str


class ColorMode(StrEnum):
    """Color mode a theme entry belongs to."""

    LIGHT = "light"
    DARK = "dark"


class LiteralValue(BaseModel):
    """A concrete value. Terminal: resolution stops here."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["literal"] = "literal"
    value: LiteralScalar

    def __str__(self) -> str:
        return str(self.value)


class TokenRef(BaseModel):
    """
    Reference to a primitive token.

    Examples:
        - {tokens.color.gray.500} -> TokenRef(name="color/gray/500")
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["token"] = "token"
    name: str = Field(description="Slash-delimited token path")

    def __str__(self) -> str:
        return "{tokens." + self.name.replace("/", ".") + "}"


class ThemeRef(BaseModel):
    """
    Reference to a theme entry.

    ``mode`` is None for mode-agnostic references, which resolve in
    whatever mode the caller supplies.

    Examples:
        - {theme.palettes.neutral.100.tone} -> ThemeRef(path="palettes/neutral/100/tone")
        - {brand.themes.dark.layers.layer-0.surface} -> ThemeRef(mode=DARK, ...)
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["theme"] = "theme"
    path: str = Field(description="Slash-delimited theme path")
    mode: ColorMode | None = Field(default=None, description="Explicit mode, if pinned")

    def __str__(self) -> str:
        head = f"theme.{self.mode.value}" if self.mode else "theme"
        return "{" + head + "." + self.path.replace("/", ".") + "}"


class ComponentRef(BaseModel):
    """
    Reference to a component style property.

    Examples:
        - {ui-kit.button.variants.ghost.layers.layer-2.border-color}
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["component"] = "component"
    component: str
    property: str
    variant: str | None = None
    layer: str | None = None

    def __str__(self) -> str:
        parts = ["ui-kit", self.component]
        if self.variant:
            parts += ["variants", self.variant]
        if self.layer:
            parts += ["layers", self.layer]
        parts.append(self.property)
        return "{" + ".".join(parts) + "}"


Reference = Annotated[
    LiteralValue | TokenRef | ThemeRef | ComponentRef,
    Field(discriminator="kind"),
]

REFERENCE_TYPES = (LiteralValue, TokenRef, ThemeRef, ComponentRef)
