"""
Diagnostics, provenance and exceptions for the life-script interpreter.

The interpreter never raises on bad script input: every problem becomes a
``Diagnostic`` appended to a ``DiagnosticList``.  Exceptions are only used
when the Python API itself is misused.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, fields
from typing import Generic, Iterator, NamedTuple, TypeVar, overload

T = TypeVar("T")


# ── Exceptions ──────────────────────────────────────────────────────────

class ScriptError(RuntimeError):
    """Base class for API-level failures (never raised for script content)."""


class ConfigError(ScriptError):
    """Configuration file could not be read or has the wrong shape."""


# ── Diagnostics ─────────────────────────────────────────────────────────

class Diagnostic(NamedTuple):
    """One (source text, reason) pair shown to the user."""

    source: str
    reason: str

    def __str__(self) -> str:
        return f"{self.source}: {self.reason}"


class DiagnosticList:
    """Ordered, append-only list of diagnostics."""

    def __init__(self) -> None:
        self._items: list[Diagnostic] = []

    def add(self, source: str, reason: str) -> None:
        self._items.append(Diagnostic(source, reason))

    def overwrites(self, source: str, previous: object) -> None:
        self.add(source, f"overwrites {previous}")

    @property
    def clean(self) -> bool:
        return not self._items

    def as_tuple(self) -> tuple[Diagnostic, ...]:
        return tuple(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self._items)

    @overload
    def __getitem__(self, index: int) -> Diagnostic: ...

    @overload
    def __getitem__(self, index: slice) -> list[Diagnostic]: ...

    def __getitem__(self, index):
        return self._items[index]

    def __repr__(self) -> str:
        return f"DiagnosticList({self._items!r})"


# ── Provenance ──────────────────────────────────────────────────────────

class Origin(enum.Enum):
    """Where a waypoint setting came from."""

    SCRIPT = "script"        # literal argument in the script
    INITIAL = "initial"      # copied from waypoint zero with INITIAL
    INHERITED = "inherited"  # filled from an earlier keyframe
    LIVE = "live"            # back-filled from the live camera/engine


@dataclass(frozen=True)
class Setting(Generic[T]):
    """A value plus the provenance of whoever set it."""

    value: T
    source: str = ""
    origin: Origin = Origin.SCRIPT

    @property
    def explicit(self) -> bool:
        return self.origin in (Origin.SCRIPT, Origin.INITIAL)


def value_of(setting: Setting[T] | None, default: T) -> T:
    return default if setting is None else setting.value


# ── Suppression ─────────────────────────────────────────────────────────

@dataclass
class SuppressFlags:
    """
    One-shot overwrite suppression armed by SUPPRESS.

    A flag stays armed until it silences one overwrite warning for its
    field, then it is spent.
    """

    x: bool = False
    y: bool = False
    zoom: bool = False
    angle: bool = False
    tilt: bool = False
    layers: bool = False
    depth: bool = False
    theme: bool = False
    gps: bool = False
    step: bool = False
    loop: bool = False
    stop: bool = False
    width: bool = False
    height: bool = False

    def arm_all(self) -> None:
        for f in fields(self):
            setattr(self, f.name, True)

    def consume(self, name: str) -> bool:
        """Return True (and disarm) if warnings for ``name`` are suppressed."""
        armed = getattr(self, name)
        if armed:
            setattr(self, name, False)
        return armed


__all__ = [
    "ConfigError",
    "Diagnostic",
    "DiagnosticList",
    "Origin",
    "ScriptError",
    "Setting",
    "SuppressFlags",
    "value_of",
]
