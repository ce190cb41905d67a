"""
Spec loading for tokensmith.

Reads the three spec documents (tokens, theme, component styles) from JSON
or YAML files and builds the read-only indices the resolver walks. Indices
are built once per load; reloading builds a fresh DesignSpec.
"""

from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .component_index import ComponentStyleIndex
from .errors import ErrorContext, ParseError, SpecLoadError
from .theme_index import ThemeIndex
from .token_store import TokenStore

logger = logging.getLogger(__name__)

YAML_SUFFIXES = frozenset({".yaml", ".yml"})


@dataclass(frozen=True)
class DesignSpec:
    """The three indices of one loaded spec plus its version stamp."""

    tokens: TokenStore
    theme: ThemeIndex
    components: ComponentStyleIndex
    version: str = ""
    sources: dict[str, str] = field(default_factory=dict)

    @property
    def parse_errors(self) -> list[ParseError]:
        """Entries whose reference could not be parsed, kept for diagnostics."""
        return [*self.theme.parse_errors, *self.components.parse_errors]


def spec_version(*documents: Any) -> str:
    """Stable hash of the given documents."""
    payload = json.dumps(documents, sort_keys=True, default=str, separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:16]


def build_spec(
    tokens_doc: Mapping[str, Any] | None,
    theme_doc: Mapping[str, Any] | None = None,
    components_doc: Mapping[str, Any] | None = None,
    *,
    strict: bool = False,
    sources: Mapping[str, str] | None = None,
) -> DesignSpec:
    """Build a DesignSpec from already-parsed documents.

    Args:
        tokens_doc: Tokens document.
        theme_doc: Theme document.
        components_doc: Component styles document.
        strict: Raise on the first malformed reference instead of recording it.
        sources: Optional file names per document kind, used in error messages.

    Raises:
        SpecLoadError: If a document has the wrong shape.
        NameCollisionError: If two entries of one document share a name.
        ParseError: For malformed token values, or any malformed reference when strict.
    """
    sources = dict(sources or {})
    tokens_doc = tokens_doc or {}
    theme_doc = theme_doc or {}
    components_doc = components_doc or {}
    for kind, doc in (("tokens", tokens_doc), ("theme", theme_doc), ("components", components_doc)):
        if not isinstance(doc, Mapping):
            raise SpecLoadError(
                f"Expected an object, got {type(doc).__name__}",
                ErrorContext(kind, source=sources.get(kind)),
            )

    try:
        spec = DesignSpec(
            tokens=TokenStore.from_document(tokens_doc, source=sources.get("tokens")),
            theme=ThemeIndex.from_document(theme_doc, source=sources.get("theme"), strict=strict),
            components=ComponentStyleIndex.from_document(
                components_doc, source=sources.get("components"), strict=strict
            ),
            version=spec_version(tokens_doc, theme_doc, components_doc),
            sources=sources,
        )
    except ValidationError as e:
        raise SpecLoadError(f"Invalid spec entry: {e}") from e

    logger.debug(
        "Built spec %s: %d tokens, %d theme entries, %d component styles",
        spec.version,
        len(spec.tokens),
        len(spec.theme),
        len(spec.components),
    )
    return spec


def read_document(path: Path, kind: str) -> dict[str, Any]:
    """Read one spec document. YAML for .yaml/.yml files, JSON otherwise.

    Raises:
        SpecLoadError: If the file is missing or cannot be parsed.
    """
    context = ErrorContext(kind, source=str(path))
    if not path.exists():
        raise SpecLoadError(f"File not found: {path}", context)
    try:
        content = path.read_text(encoding="utf-8")
        if path.suffix.lower() in YAML_SUFFIXES:
            data = yaml.safe_load(content)
        else:
            data = json.loads(content)
    except yaml.YAMLError as e:
        raise SpecLoadError(f"Invalid YAML: {e}", context) from e
    except json.JSONDecodeError as e:
        raise SpecLoadError(f"Invalid JSON: {e}", context) from e
    except OSError as e:
        raise SpecLoadError(f"Cannot read file: {e}", context) from e

    if data is None:
        logger.warning("Empty %s document at %s", kind, path)
        return {}
    if not isinstance(data, dict):
        raise SpecLoadError(f"Expected an object at the top level, got {type(data).__name__}", context)
    return data


def load_spec(
    tokens_path: Path | str,
    theme_path: Path | str | None = None,
    components_path: Path | str | None = None,
    *,
    strict: bool = False,
) -> DesignSpec:
    """Load a DesignSpec from files.

    Raises:
        SpecLoadError: If a file is missing, unparseable, or has the wrong shape.
        ParseError: For malformed references (see :func:`build_spec`).
    """
    sources: dict[str, str] = {}
    documents: dict[str, dict[str, Any]] = {}
    for kind, raw_path in (
        ("tokens", tokens_path),
        ("theme", theme_path),
        ("components", components_path),
    ):
        if raw_path is None:
            documents[kind] = {}
            continue
        path = Path(raw_path)
        sources[kind] = str(path)
        documents[kind] = read_document(path, kind)

    return build_spec(
        documents["tokens"],
        documents["theme"],
        documents["components"],
        strict=strict,
        sources=sources,
    )
