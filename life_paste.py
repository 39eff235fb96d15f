"""
Scheduled pattern overlays ("pastes").

A ``PasteEntry`` is a cell buffer, a top-left position in pattern
coordinates, a ``Trigger`` saying on which generations it fires and a
``PasteMode`` saying how it is blended into the live grid.
"""

from __future__ import annotations

import enum
import hashlib
import logging
from dataclasses import dataclass, field

import numpy as np
from numpy.typing import NDArray

from life import LifeEngine
from life_rle import Transform, apply_transform

LOGGER = logging.getLogger("lifescript.paste")


class PasteMode(enum.Enum):
    """
    Four-bit truth table over (pattern cell, grid cell).

    Bit 3 is the result for (dead, dead), bit 2 for (dead, alive), bit 1
    for (alive, dead) and bit 0 for (alive, alive), so the binary form
    reads left to right: ``PASTEMODE 0110`` is XOR.
    """

    ZERO = 0
    AND = 1
    MODE_0010 = 2
    X = 3
    DIFF = 4
    Y = 5
    XOR = 6
    OR = 7
    NOR = 8
    XNOR = 9
    NOTY = 10
    MODE_1011 = 11
    NOTX = 12
    MODE_1101 = 13
    NAND = 14
    ONE = 15
    COPY = 3
    NOT = 12

    @property
    def word(self) -> str:
        return self.name.removeprefix("MODE_")

    @classmethod
    def from_word(cls, word: str) -> PasteMode | None:
        """Mode for a name (``XOR``, ``NOTY``) or a four-digit binary table."""
        if len(word) == 4 and set(word) <= {"0", "1"}:
            return cls(int(word, 2))
        if word.startswith("MODE_"):
            return None
        return cls.__members__.get(word)


# ── Triggers ────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Trigger:
    """
    When a paste fires.

    Either a list of absolute generations (``PASTET n [deltas]``) or a
    repeating rule (``PASTET EVERY period [start [end]]``).  ``end`` of -1
    means "forever".
    """

    generations: tuple[int, ...] = (0,)
    every: int = 0
    start: int = 0
    end: int = -1

    @classmethod
    def at(cls, first: int, deltas: tuple[int, ...] = ()) -> Trigger:
        """Absolute trigger list; each delta is added to the previous one."""
        gens = [first]
        for delta in deltas:
            if delta < 0:
                raise ValueError(f"paste delta must be >= 0, got {delta}")
            gens.append(gens[-1] + delta)
        return cls(generations=tuple(gens))

    @classmethod
    def repeating(cls, every: int, start: int = 0, end: int = -1) -> Trigger:
        return cls(generations=(), every=every, start=start, end=end)

    def fires(self, generation: int) -> bool:
        if self.every > 0:
            if (
                generation >= self.start
                and (generation - self.start) % self.every == 0
                and (self.end < 0 or generation <= self.end)
            ):
                return True
        return generation in self.generations

    def repeat(self, generation: int) -> int:
        """How many earlier firings an EVERY rule has had at ``generation``."""
        if self.every > 0 and generation >= self.start:
            return (generation - self.start) // self.every
        return 0

    def schedule(self, until: int) -> list[int]:
        """Every firing generation up to and including ``until``."""
        return [gen for gen in range(until + 1) if self.fires(gen)]

    @property
    def last(self) -> int:
        """Last generation that fires, or -1 for an unbounded rule."""
        if self.every > 0:
            if self.end < 0:
                return -1
            return self.start + ((self.end - self.start) // self.every) * self.every
        return max(self.generations, default=-1)


# ── Entries ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class PasteEntry:
    cells: NDArray[np.uint8] = field(compare=False, repr=False)
    x: int
    y: int
    trigger: Trigger
    mode: PasteMode = PasteMode.OR
    delta_x: int = 0
    delta_y: int = 0
    evolve: int = 0
    source: str = ""
    fingerprint: str = field(init=False, default="")

    def __post_init__(self) -> None:
        digest = hashlib.sha1(self.cells.tobytes()).hexdigest()
        object.__setattr__(self, "fingerprint", f"{self.cells.shape}:{digest}")

    @property
    def width(self) -> int:
        return int(self.cells.shape[1])

    @property
    def height(self) -> int:
        return int(self.cells.shape[0])

    def position(self, generation: int) -> tuple[int, int]:
        n = self.trigger.repeat(generation)
        return self.x + self.delta_x * n, self.y + self.delta_y * n


@dataclass(frozen=True)
class Snippet:
    """A named RLE defined with ``RLE name rle [x y] [transform]``."""

    name: str
    cells: NDArray[np.uint8] = field(compare=False, repr=False)
    x: int = 0
    y: int = 0
    transform: Transform = Transform.IDENTITY

    def placed(self) -> NDArray[np.uint8]:
        return apply_transform(self.cells, self.transform)


# ── Blending ────────────────────────────────────────────────────────────

def blend(dest: NDArray[np.uint8], src: NDArray[np.uint8], mode: PasteMode) -> NDArray[np.uint8]:
    """
    Combine a source buffer with the same-shaped destination block.

    Cells the truth table keeps alive take the pattern's state where the
    pattern is alive, else the grid's, else 1.
    """
    live = src != 0
    alive = dest != 0
    bit = 3 - (2 * live.astype(np.int16) + alive.astype(np.int16))
    keep = ((mode.value >> bit) & 1).astype(bool)
    state = np.where(live, src, np.where(alive, dest, 1))
    return np.where(keep, state, 0).astype(np.uint8)


def apply_paste(engine: LifeEngine, entry: PasteEntry, generation: int) -> None:
    if entry.cells.size == 0:
        return
    x, y = entry.position(generation)
    region = engine.get_region(x, y, entry.width, entry.height)
    engine.set_region(x, y, blend(region, entry.cells, entry.mode))
    LOGGER.debug(
        "Pasted %s (%s) at (%d, %d) on generation %d",
        entry.source or "rle", entry.mode.word, x, y, generation,
    )


# ── Evolution ───────────────────────────────────────────────────────────

def evolve_cells(
    cells: NDArray[np.uint8], generations: int
) -> tuple[NDArray[np.uint8], int, int]:
    """
    Run ``cells`` forward on an isolated engine.

    Returns the evolved cells cropped to their bounding box and the offset
    of that box from the original top-left corner.
    """
    height, width = cells.shape
    # growth is bounded by one cell per generation on each side
    size = max(height, width) + 2 * generations + 16
    size += size % 2
    scratch = LifeEngine(size, wrap=False)
    left, top = -(width // 2), -(height // 2)
    scratch.set_region(left, top, cells)
    for _ in range(generations):
        scratch.step_generation(collect_stats=False, skip_history=True, skip_graph=True)

    box = scratch.bounding_box()
    if box is None:
        return np.zeros((0, 0), dtype=np.uint8), 0, 0
    x0, y0, x1, y1 = box
    evolved = scratch.get_region(x0, y0, x1 - x0 + 1, y1 - y0 + 1)
    LOGGER.debug("Evolved %dx%d paste %d generations", width, height, generations)
    return evolved, x0 - left, y0 - top


def evolve_entry(entry: PasteEntry) -> PasteEntry:
    if entry.evolve <= 0:
        return entry
    cells, dx, dy = evolve_cells(entry.cells, entry.evolve)
    return PasteEntry(
        cells=cells,
        x=entry.x + dx,
        y=entry.y + dy,
        trigger=entry.trigger,
        mode=entry.mode,
        delta_x=entry.delta_x,
        delta_y=entry.delta_y,
        evolve=entry.evolve,
        source=entry.source,
    )


# ── Schedule ────────────────────────────────────────────────────────────

class PasteSchedule:
    """The registry of entries, queried once per generation."""

    def __init__(self, entries: tuple[PasteEntry, ...] = ()) -> None:
        self.entries: tuple[PasteEntry, ...] = entries

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def __eq__(self, other: object) -> bool:
        return isinstance(other, PasteSchedule) and self.entries == other.entries

    def due(self, generation: int) -> list[PasteEntry]:
        return [entry for entry in self.entries if entry.trigger.fires(generation)]

    def apply(self, engine: LifeEngine, generation: int) -> int:
        """Blend every entry due at ``generation``; returns how many fired."""
        fired = self.due(generation)
        for entry in fired:
            apply_paste(engine, entry, generation)
        return len(fired)

    @property
    def last_generation(self) -> int:
        """Generation of the final paste, or -1 if any rule is unbounded."""
        result = 0
        for entry in self.entries:
            last = entry.trigger.last
            if last < 0:
                return -1
            result = max(result, last)
        return result


__all__ = [
    "PasteEntry",
    "PasteMode",
    "PasteSchedule",
    "Snippet",
    "Trigger",
    "apply_paste",
    "blend",
    "evolve_cells",
    "evolve_entry",
]
