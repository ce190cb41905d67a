"""Shared pytest fixtures for tokensmith tests."""

import json
from pathlib import Path
from typing import Any

import pytest

from tokensmith.core.engine import ThemeEngine
from tokensmith.core.overrides import InMemoryOverrideBackend
from tokensmith.core.spec_loader import DesignSpec, build_spec

EXAMPLE_DIR = Path(__file__).parent.parent / "examples" / "basic"


def _read(name: str) -> dict[str, Any]:
    return json.loads((EXAMPLE_DIR / name).read_text(encoding="utf-8"))


@pytest.fixture
def example_dir() -> Path:
    """Return path to the example spec directory."""
    return EXAMPLE_DIR


@pytest.fixture
def tokens_doc() -> dict[str, Any]:
    """Fresh copy of the example tokens document."""
    return _read("tokens.json")


@pytest.fixture
def theme_doc() -> dict[str, Any]:
    return _read("theme.json")


@pytest.fixture
def components_doc() -> dict[str, Any]:
    return _read("components.json")


@pytest.fixture
def spec(tokens_doc, theme_doc, components_doc) -> DesignSpec:
    """The example spec built from its three documents."""
    return build_spec(tokens_doc, theme_doc, components_doc)


@pytest.fixture
def engine(spec: DesignSpec) -> ThemeEngine:
    """Engine over the example spec with in-memory overrides."""
    return ThemeEngine(spec, backend=InMemoryOverrideBackend())
