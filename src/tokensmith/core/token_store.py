"""
Token store: the leaf layer of a design spec.

Holds primitive tokens keyed by their normalized path for O(1) lookup.
No resolution happens here; a miss raises TokenNotFoundError and policy
belongs to the resolver.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from .documents import VALUE_KEY, iter_leaves, leaf_type
from .errors import (
    ErrorContext,
    NameCollisionError,
    SpecLoadError,
    TokenNotFoundError,
    make_parse_error,
)
from .ir import LiteralScalar, Token
from .naming import normalize_segment, split_path
from .reference_parser import is_reference_string

OPACITY_TYPES = frozenset({"opacity", "percentage", "percent"})
OPACITY_ROOTS = frozenset({"opacity", "opacities"})


class TokenStore:
    """Primitive tokens indexed by normalized name."""

    def __init__(self, tokens: Iterable[Token] = ()) -> None:
        self._tokens: dict[str, Token] = {}
        for token in tokens:
            key = normalize_segment(token.name)
            existing = self._tokens.get(key)
            if existing is not None:
                raise NameCollisionError(
                    f"Tokens {existing.name!r} and {token.name!r} map to the same name"
                )
            self._tokens[key] = token

    @classmethod
    def from_document(cls, document: Mapping[str, Any], *, source: str | None = None) -> TokenStore:
        """Build a store from a nested (DTCG-style) or flat tokens document.

        Raises:
            ParseError: If a token value is itself a reference.
            SpecLoadError: If a token value is not a number or string.
        """
        root = document.get("tokens", document) if isinstance(document, Mapping) else None
        if not isinstance(root, Mapping):
            raise SpecLoadError(
                "Tokens document must be an object", ErrorContext("tokens", source=source)
            )
        tokens: list[Token] = []
        for parts, leaf in iter_leaves(root):
            location = ".".join(parts)
            value = leaf.get(VALUE_KEY) if isinstance(leaf, Mapping) else leaf
            if is_reference_string(value):
                raise make_parse_error(
                    f"Token values must be literals, got reference {value!r}",
                    "tokens",
                    location,
                    source,
                )
            if isinstance(value, bool) or not isinstance(value, int | float | str):
                raise SpecLoadError(
                    f"Token value must be a number or string, got {value!r}",
                    ErrorContext("tokens", location, source),
                )
            name = "/".join(part for key in parts for part in split_path(key))
            tokens.append(Token(name=name, value=value, type=leaf_type(leaf)))
        return cls(tokens)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and self.find(name) is not None

    def __len__(self) -> int:
        return len(self._tokens)

    def __iter__(self) -> Iterator[Token]:
        return iter(self._tokens.values())

    def find(self, name: str) -> Token | None:
        try:
            return self._tokens.get(normalize_segment(name))
        except ValueError:
            return None

    def get_token(self, name: str) -> Token:
        token = self.find(name)
        if token is None:
            raise TokenNotFoundError(name)
        return token

    def get(self, name: str) -> LiteralScalar:
        """Return a token's literal value.

        Raises:
            TokenNotFoundError: If no token has this name.
        """
        return self.get_token(name).value

    def is_opacity(self, name: str) -> bool:
        """True for tokens declared as opacity/percentage, by type or by path."""
        token = self.find(name)
        if token is None:
            return False
        if token.type and token.type.lower() in OPACITY_TYPES:
            return True
        parts = split_path(token.name)
        return bool(parts) and parts[0].lower() in OPACITY_ROOTS
