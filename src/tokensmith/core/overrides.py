"""
Override store and persistence backends.

Overrides are user patches keyed by external name. Every mutation is
persisted through a backend and announced on the change bus.

Default file location: ``.tokensmith/overrides.json``
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterable, Iterator, Mapping
from pathlib import Path
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, Field, ValidationError

from .change_bus import ChangeBus
from .errors import CoercionError
from .ir import ChangeEvent, LiteralScalar, Override

logger = logging.getLogger(__name__)

OVERRIDES_FILE = ".tokensmith/overrides.json"
OVERRIDES_FORMAT_VERSION = 1

# Maps a changed name to every name whose value may change with it
Expander = Callable[[str], Iterable[str]]


# =============================================================================
# Persistence
# =============================================================================


@runtime_checkable
class OverrideBackend(Protocol):
    """Where overrides live between sessions."""

    def read(self) -> dict[str, LiteralScalar]: ...

    def write(self, overrides: Mapping[str, LiteralScalar]) -> None: ...

    def clear(self) -> None: ...


class InMemoryOverrideBackend:
    """Backend that keeps overrides for the life of the process only."""

    def __init__(self, initial: Mapping[str, LiteralScalar] | None = None) -> None:
        self._data: dict[str, LiteralScalar] = dict(initial or {})

    def read(self) -> dict[str, LiteralScalar]:
        return dict(self._data)

    def write(self, overrides: Mapping[str, LiteralScalar]) -> None:
        self._data = dict(overrides)

    def clear(self) -> None:
        self._data = {}


class OverridesFile(BaseModel):
    """On-disk layout of the JSON override file."""

    version: int = OVERRIDES_FORMAT_VERSION
    spec_version: str | None = Field(default=None, description="Spec the overrides were made against")
    overrides: dict[str, LiteralScalar] = Field(default_factory=dict)


class JsonFileOverrideBackend:
    """Backend storing overrides in a JSON file.

    An unreadable or malformed file is logged and treated as empty so a bad
    file never blocks resolution.
    """

    def __init__(self, path: Path | str, spec_version: str | None = None) -> None:
        self.path = Path(path)
        self.spec_version = spec_version

    def read(self) -> dict[str, LiteralScalar]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            stored = OverridesFile.model_validate(data)
        except (json.JSONDecodeError, ValidationError, OSError) as e:
            logger.warning(f"Failed to load overrides from {self.path}: {e}")
            return {}
        if self.spec_version and stored.spec_version and stored.spec_version != self.spec_version:
            logger.info(
                "Overrides in %s were saved against spec %s (current %s)",
                self.path,
                stored.spec_version,
                self.spec_version,
            )
        return dict(stored.overrides)

    def write(self, overrides: Mapping[str, LiteralScalar]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        stored = OverridesFile(spec_version=self.spec_version, overrides=dict(overrides))
        self.path.write_text(
            json.dumps(stored.model_dump(mode="json"), indent=2, ensure_ascii=False),
            encoding="utf-8",
        )

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()


# =============================================================================
# Store
# =============================================================================


def check_override_value(value: object) -> LiteralScalar:
    """Accept numbers and strings only.

    Raises:
        CoercionError: For booleans, None, or containers.
    """
    if isinstance(value, bool) or not isinstance(value, int | float | str):
        raise CoercionError(f"Override value must be a number or string, got {value!r}", value)
    return value


class OverrideStore:
    """User overrides keyed by external name, persisted and announced on change."""

    def __init__(
        self,
        backend: OverrideBackend | None = None,
        bus: ChangeBus | None = None,
        expand: Expander | None = None,
    ) -> None:
        self.backend: OverrideBackend = backend or InMemoryOverrideBackend()
        self.bus = bus or ChangeBus()
        self.expand = expand
        self._overrides: dict[str, LiteralScalar] = {}
        for name, value in self.backend.read().items():
            try:
                self._overrides[name] = check_override_value(value)
            except CoercionError as e:
                logger.warning("Ignoring stored override %s: %s", name, e.message)

    def __contains__(self, name: object) -> bool:
        return name in self._overrides

    def __len__(self) -> int:
        return len(self._overrides)

    def __iter__(self) -> Iterator[str]:
        return iter(self._overrides)

    def items(self) -> list[Override]:
        return [Override(external_name=name, value=value) for name, value in self._overrides.items()]

    def snapshot(self) -> dict[str, LiteralScalar]:
        """Copy of the current overrides."""
        return dict(self._overrides)

    def get_override(self, name: str) -> LiteralScalar | None:
        return self._overrides.get(name)

    def set_override(self, name: str, value: LiteralScalar) -> None:
        """Store, persist and announce an override.

        Raises:
            CoercionError: If the value is not a number or string.
        """
        self._overrides[name] = check_override_value(value)
        self.backend.write(self._overrides)
        logger.debug("Set override %s = %r", name, value)
        self.bus.publish(self._event_for(name))

    def clear_override(self, name: str) -> bool:
        """Remove one override. Returns False (and publishes nothing) if it was not set."""
        if name not in self._overrides:
            return False
        del self._overrides[name]
        self.backend.write(self._overrides)
        logger.debug("Cleared override %s", name)
        self.bus.publish(self._event_for(name))
        return True

    def clear_all(self) -> None:
        self._overrides.clear()
        self.backend.clear()
        logger.debug("Cleared all overrides")
        self.bus.publish(ChangeEvent.full_reset())

    def _event_for(self, name: str) -> ChangeEvent:
        if self.expand is None:
            return ChangeEvent.for_names(name)
        return ChangeEvent.for_names(name, *self.expand(name))
