"""
Theme index: semantic aliases per color mode.

Entries are keyed by ``(mode, normalized path)``. Keys at the theme root that
are not modes hold entries shared by every mode; a mode-specific entry with
the same path wins over the shared one.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from .documents import iter_leaves
from .errors import (
    ErrorContext,
    NameCollisionError,
    ParseError,
    SpecLoadError,
    UnresolvedReferenceError,
)
from .ir import ColorMode, ThemeEntry
from .naming import ThemePath, split_path
from .reference_parser import parse_reference

logger = logging.getLogger(__name__)

_MODES = {mode.value: mode for mode in ColorMode}


def _theme_root(document: Mapping[str, Any]) -> Mapping[str, Any]:
    root: Any = document
    for wrapper in ("brand", "themes"):
        if isinstance(root, Mapping) and isinstance(root.get(wrapper), Mapping):
            root = root[wrapper]
    return root


class ThemeIndex:
    """Theme entries indexed by mode and normalized path."""

    def __init__(
        self,
        entries: Iterable[ThemeEntry] = (),
        invalid: Iterable[tuple[ThemePath, ParseError]] = (),
    ) -> None:
        self._entries: dict[tuple[str, str], ThemeEntry] = {}
        self._invalid: dict[tuple[str, str], tuple[ThemePath, ParseError]] = {}
        for entry in entries:
            key = ThemePath(entry.mode, entry.path).key
            if key in self._entries:
                raise NameCollisionError(
                    f"Theme entries {self._entries[key].path!r} and {entry.path!r} "
                    f"map to the same name in {entry.mode.value} mode"
                )
            self._entries[key] = entry
        for path, error in invalid:
            self._invalid[path.key] = (path, error)

    @classmethod
    def from_document(
        cls,
        document: Mapping[str, Any],
        *,
        source: str | None = None,
        strict: bool = False,
    ) -> ThemeIndex:
        """Build an index from a theme document.

        With ``strict=False`` a malformed reference is recorded against its
        entry and raised only when that entry is looked up.

        Raises:
            SpecLoadError: If the document has no light/dark section.
            ParseError: For malformed references when ``strict`` is set.
        """
        if not document:
            return cls()
        root = _theme_root(document)
        if not isinstance(root, Mapping):
            raise SpecLoadError("Theme document must be an object", ErrorContext("theme", source=source))

        sections = {_MODES[key.lower()]: node for key, node in root.items() if key.lower() in _MODES}
        if not sections:
            raise SpecLoadError(
                "Theme document has no light or dark section", ErrorContext("theme", source=source)
            )
        shared = {key: node for key, node in root.items() if key.lower() not in _MODES}

        entries: dict[tuple[str, str], ThemeEntry] = {}
        invalid: dict[tuple[str, str], tuple[ThemePath, ParseError]] = {}
        for mode, section in sections.items():
            for scope, node in (("shared", shared), (mode.value, section)):
                seen: dict[tuple[str, str], str] = {}
                for parts, leaf in iter_leaves(node):
                    path = "/".join(part for key in parts for part in split_path(key))
                    theme_path = ThemePath(mode, path)
                    key = theme_path.key
                    if key in seen:
                        raise NameCollisionError(
                            f"Theme entries {seen[key]!r} and {path!r} map to the same name",
                            ErrorContext("theme", f"{scope}.{'.'.join(parts)}", source),
                        )
                    seen[key] = path
                    context = ErrorContext("theme", f"{scope}.{'.'.join(parts)}", source)
                    try:
                        value = parse_reference(leaf, context=context)
                    except ParseError as e:
                        if strict:
                            raise
                        logger.warning("Invalid theme entry %s: %s", context.format(), e.message)
                        entries.pop(key, None)
                        invalid[key] = (theme_path, e)
                        continue
                    invalid.pop(key, None)
                    entries[key] = ThemeEntry(mode=mode, path=path, value=value)
        return cls(entries.values(), invalid.values())

    def __len__(self) -> int:
        return len(self._entries) + len(self._invalid)

    def __contains__(self, item: object) -> bool:
        if not isinstance(item, ThemePath):
            return False
        key = item.key
        return key in self._entries or key in self._invalid

    def get(self, mode: ColorMode | str, path: str) -> ThemeEntry | None:
        """Exact lookup. Re-raises the ParseError recorded for an invalid entry."""
        key = ThemePath(ColorMode(mode), path).key
        if key in self._invalid:
            raise self._invalid[key][1]
        return self._entries.get(key)

    def lookup(self, mode: ColorMode | str, path: str) -> ThemeEntry:
        entry = self.get(mode, path)
        if entry is None:
            raise UnresolvedReferenceError(f"No theme entry {path!r} in {ColorMode(mode).value} mode")
        return entry

    def modes(self) -> list[ColorMode]:
        present = {path.mode for path in self.paths()}
        return [mode for mode in ColorMode if mode in present]

    def entries(self, mode: ColorMode | str | None = None) -> list[ThemeEntry]:
        if mode is None:
            return list(self._entries.values())
        mode = ColorMode(mode)
        return [entry for entry in self._entries.values() if entry.mode == mode]

    def paths(self) -> list[ThemePath]:
        """Every addressable path, including entries that failed to parse."""
        paths = [ThemePath(entry.mode, entry.path) for entry in self._entries.values()]
        return paths + [path for path, _ in self._invalid.values()]

    @property
    def parse_errors(self) -> list[ParseError]:
        return [error for _, error in self._invalid.values()]
