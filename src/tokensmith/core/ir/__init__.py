"""
tokensmith Intermediate Representation (IR) types.

All types are re-exported from this package.
"""

# Design spec entries
from .design import (
    ChangeEvent,
    ComponentStyleEntry,
    Override,
    ResolvedValue,
    ThemeEntry,
    Token,
    ValueSource,
)

# References
from .references import (
    REFERENCE_TYPES,
    ColorMode,
    ComponentRef,
    LiteralScalar,
    LiteralValue,
    Reference,
    ThemeRef,
    TokenRef,
)

__all__ = [
    "ChangeEvent",
    "ColorMode",
    "ComponentRef",
    "ComponentStyleEntry",
    "LiteralScalar",
    "LiteralValue",
    "Override",
    "REFERENCE_TYPES",
    "Reference",
    "ResolvedValue",
    "ThemeEntry",
    "ThemeRef",
    "Token",
    "TokenRef",
    "ValueSource",
]
