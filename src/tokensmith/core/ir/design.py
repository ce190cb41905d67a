"""
Design spec IR types: tokens, theme entries, component style entries,
overrides, resolved values and change events.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .references import ColorMode, LiteralScalar, Reference


class Token(BaseModel):
    """A primitive design value. Never references anything."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(description="Slash-delimited path, e.g. color/gray/500")
    value: LiteralScalar
    type: str | None = Field(default=None, description="$type from the source document")


class ThemeEntry(BaseModel):
    """One semantic alias for one mode."""

    model_config = ConfigDict(frozen=True)

    mode: ColorMode
    path: str
    value: Reference


class ComponentStyleEntry(BaseModel):
    """One style fact for a component/variant/layer/property combination."""

    model_config = ConfigDict(frozen=True)

    component: str
    property: str
    value: Reference
    variant: str | None = None
    layer: str | None = None


class Override(BaseModel):
    """A user patch over one external name."""

    model_config = ConfigDict(frozen=True)

    external_name: str
    value: LiteralScalar


class ValueSource(StrEnum):
    """Where a resolved value came from."""

    OVERRIDE = "override"
    COMPUTED = "computed"
    FALLBACK = "fallback"


class ResolvedValue(BaseModel):
    """
    A value handed to consumers.

    ``verified`` is False when the value could not be coerced to the form its
    category expects (e.g. a non-numeric opacity) and was passed through as-is.
    ``error`` carries the message of a surfaced resolution failure.
    """

    model_config = ConfigDict(frozen=True)

    external_name: str
    value: LiteralScalar
    source: ValueSource
    verified: bool = True
    error: str | None = None


class ChangeEvent(BaseModel):
    """Payload delivered by the change bus: either some names, or everything."""

    model_config = ConfigDict(frozen=True)

    names: tuple[str, ...] = ()
    all: bool = False

    @model_validator(mode="before")
    @classmethod
    def _full_reset_has_no_names(cls, data: Any) -> Any:
        if isinstance(data, dict) and data.get("all"):
            return {**data, "names": ()}
        return data

    @classmethod
    def for_names(cls, *names: str) -> ChangeEvent:
        return cls(names=tuple(dict.fromkeys(names)))

    @classmethod
    def full_reset(cls) -> ChangeEvent:
        return cls(all=True)

    def merge(self, other: ChangeEvent | None) -> ChangeEvent:
        """Coalesce two events. A full reset absorbs any targeted update."""
        if other is None:
            return self
        if self.all or other.all:
            return ChangeEvent.full_reset()
        return ChangeEvent.for_names(*self.names, *other.names)

    def affects(self, name: str) -> bool:
        return self.all or name in self.names

    def as_payload(self) -> dict[str, object]:
        """Wire form: ``{"all": true}`` or ``{"names": [...]}``."""
        if self.all:
            return {"all": True}
        return {"names": list(self.names)}
