"""
tokensmith - design token resolution for themeable UI kits.

Resolves component styles through semantic theme aliases down to primitive
tokens, per color mode, with user overrides and contrast checks.
"""

from __future__ import annotations

import re
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as _metadata_version
from pathlib import Path as _Path

# Re-export commonly used types for convenience
from .core import ir
from .core.engine import ThemeEngine
from .core.errors import (
    CoercionError,
    CycleError,
    ParseError,
    TokenNotFoundError,
    TokensmithError,
    UnresolvedReferenceError,
)
from .core.spec_loader import build_spec, load_spec


def _get_version() -> str:
    """Get version from pyproject.toml (editable) or importlib.metadata (installed)."""
    # In editable mode, read directly from pyproject.toml for live updates
    pyproject = _Path(__file__).parent.parent.parent / "pyproject.toml"
    if pyproject.exists():
        content = pyproject.read_text()
        if match := re.search(r'^version\s*=\s*["\']([^"\']+)["\']', content, re.MULTILINE):
            return match.group(1)

    # Fall back to installed metadata
    try:
        return _metadata_version("tokensmith")
    except PackageNotFoundError:
        return "0.0.0"


__version__ = _get_version()

__all__ = [
    "__version__",
    "ir",
    "ThemeEngine",
    "build_spec",
    "load_spec",
    "TokensmithError",
    "ParseError",
    "TokenNotFoundError",
    "UnresolvedReferenceError",
    "CycleError",
    "CoercionError",
]
