"""
Error types for tokensmith spec loading, reference parsing and resolution.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Optional


class TokensmithError(Exception):
    """Base exception for all tokensmith errors."""

    def __init__(self, message: str, context: Optional["ErrorContext"] = None):
        self.message = message
        self.context = context
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format error message with context if available."""
        if self.context:
            return f"{self.context.format()}\n{self.message}"
        return self.message


class ParseError(TokensmithError):
    """
    Raised when a reference in a spec document cannot be parsed.

    Examples:
    - Unknown collection in a brace reference ({colors.gray.500})
    - Empty reference path ({tokens.})
    - Structured reference object missing its name
    """

    pass


class SpecLoadError(TokensmithError):
    """
    Raised when a spec document cannot be read or has the wrong shape.

    Examples:
    - Invalid JSON or YAML
    - Theme document without any light/dark section
    - Token value that is not a number or string
    """

    pass


class NameCollisionError(TokensmithError):
    """
    Raised when two entries of one index normalize to the same external name.

    Example: "color/gray/500" and "color.gray-500" in the same tokens document.
    """

    pass


class ConfigError(TokensmithError):
    """Raised when tokensmith.toml contains invalid values."""

    pass


class ResolutionError(TokensmithError):
    """Base class for failures while walking a reference chain."""

    def __init__(
        self,
        message: str,
        chain: Sequence[str] = (),
        context: Optional["ErrorContext"] = None,
    ):
        self.chain = tuple(chain)
        super().__init__(message, context)


class TokenNotFoundError(ResolutionError):
    """Raised when a token reference names a token the store does not hold."""

    def __init__(self, name: str, chain: Sequence[str] = ()):
        self.name = name
        super().__init__(f"Token not found: {name}", chain)


class UnresolvedReferenceError(ResolutionError):
    """
    Raised when a theme or component reference matches no entry.

    For component references the message lists every fallback level tried.
    """

    pass


class CycleError(ResolutionError):
    """Raised when a reference chain revisits a node it already passed."""

    def __init__(self, chain: Sequence[str], message: str | None = None):
        text = message or "Reference cycle: " + " -> ".join(chain)
        super().__init__(text, chain)


class CoercionError(TokensmithError):
    """
    Raised when a value is present but cannot be converted to the expected form.

    The original value is kept on ``value`` so callers can pass it through.
    """

    def __init__(self, message: str, value: Any = None):
        self.value = value
        super().__init__(message)


@dataclass
class ErrorContext:
    """
    Location of an error inside a spec document.

    Attributes:
        document: Which document the entry came from ("tokens", "theme", "components")
        location: Dotted path of the entry inside the document
        source: Optional file the document was read from
    """

    document: str
    location: str | None = None
    source: str | None = None

    def format(self) -> str:
        """
        Format the context as a human-readable string.

        Returns:
            Formatted string like: "theme.json: theme at light.palettes.neutral.100"
        """
        where = self.document
        if self.location:
            where += f" at {self.location}"
        if self.source:
            return f"{self.source}: {where}"
        return where


def make_parse_error(
    message: str,
    document: str,
    location: str | None = None,
    source: str | None = None,
) -> ParseError:
    """
    Helper to create a ParseError with context.

    Args:
        message: Error description
        document: Document kind the reference came from
        location: Path of the entry within the document
        source: File name, when the document was read from disk

    Returns:
        ParseError with context
    """
    return ParseError(message, ErrorContext(document=document, location=location, source=source))
