#!/usr/bin/env python3
"""
  ∞  L I F E  ∞   (headless)

  The stepping engine behind life-script playback.  A square B3/S23 grid
  addressed in pattern coordinates: (0, 0) is the centre of the grid, x grows
  to the right and y grows downwards.  Cells hold a state byte; anything
  non-zero counts as alive for the Life step, which always writes 0 or 1.

  The engine also carries the ``Camera`` that scripts drive.  Nothing here
  draws pixels.
"""

from __future__ import annotations

import time
from collections import deque
from dataclasses import dataclass, replace
from pathlib import Path
from typing import IO, ClassVar

import numpy as np
from numpy.typing import NDArray
from scipy.ndimage import convolve

# ── Convolution kernel (reused every step) ────────────────────────────
NEIGHBOR_KERNEL: NDArray = np.array([[1, 1, 1], [1, 0, 1], [1, 1, 1]], dtype=np.int16)

# ── Colour themes ───────────────────────────────────────────────────────
# Index into this tuple is the theme number; len(THEMES) is the custom theme
THEMES: tuple[str, ...] = (
    "Mono", "Classic", "Ocean", "Inferno", "Forest", "Neon",
    "Amber", "Ice", "Sunset", "Pastel", "Ember", "Spectrum",
)
CUSTOM_THEME: int = len(THEMES)


def theme_from_name(name: str) -> int:
    """Theme index for ``name`` (case-insensitive) or -1."""
    lowered = name.lower()
    for index, theme in enumerate(THEMES):
        if theme.lower() == lowered:
            return index
    return -1


def theme_name(index: int) -> str:
    if 0 <= index < len(THEMES):
        return THEMES[index]
    return "CUSTOM"


# ═══════════════════════════════════════════════════════════════════════
#  Camera
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class Camera:
    """Live view state.  ``offset_x``/``offset_y`` is the cell at the centre."""

    offset_x: float = 0.0
    offset_y: float = 0.0
    zoom: float = 1.0
    angle: float = 0.0
    tilt: float = 1.0
    layers: int = 1
    depth: float = 0.1
    theme: int = 1

    def copy(self) -> Camera:
        return replace(self)


# ═══════════════════════════════════════════════════════════════════════
#  The universe
# ═══════════════════════════════════════════════════════════════════════

class LifeEngine:
    """
    A bounded Game of Life grid.

    ``wrap=True`` gives the toroidal world used for playback; scratch engines
    used for pattern evolution run with dead borders instead so a pattern
    never interacts with its own far edge.
    """

    def __init__(self, size: int = 512, *, wrap: bool = True) -> None:
        if size < 8:
            raise ValueError(f"grid size must be at least 8, got {size}")
        self.size: int = size
        self.wrap: bool = wrap
        self.half: int = size // 2

        self.grid: NDArray[np.uint8] = np.zeros((size, size), dtype=np.uint8)
        self.camera: Camera = Camera()
        self.generation: int = 0

        # Population tracking
        self.pop_history: deque[int] = deque(maxlen=500)
        self.hash_history: deque[int] = deque(maxlen=60)
        self._cached_pop: int = 0

        # Generation-zero snapshot for reset
        self._initial: NDArray[np.uint8] = self.grid.copy()

        # Pre-allocated buffers for step() hot path
        self._grid_i16: NDArray[np.int16] = np.empty((size, size), dtype=np.int16)
        self._neighbor_buf: NDArray[np.int16] = np.empty((size, size), dtype=np.int16)

    # ── Cells ───────────────────────────────────────────────────────

    def _to_grid(self, x: int, y: int) -> tuple[int, int]:
        return int(y) + self.half, int(x) + self.half

    def in_bounds(self, x: int, y: int) -> bool:
        row, col = self._to_grid(x, y)
        return 0 <= row < self.size and 0 <= col < self.size

    def set_cell_state(self, x: int, y: int, state: int) -> None:
        """Set one cell; writes outside the grid are dropped."""
        row, col = self._to_grid(x, y)
        if 0 <= row < self.size and 0 <= col < self.size:
            self.grid[row, col] = state
            self._cached_pop = int(np.count_nonzero(self.grid))

    def get_cell_state(self, x: int, y: int) -> int:
        row, col = self._to_grid(x, y)
        if 0 <= row < self.size and 0 <= col < self.size:
            return int(self.grid[row, col])
        return 0

    def _clip(
        self, x: int, y: int, width: int, height: int
    ) -> tuple[slice, slice, slice, slice] | None:
        """Grid and local slices of a rectangle, or None if fully outside."""
        row, col = self._to_grid(x, y)
        r0, c0 = max(row, 0), max(col, 0)
        r1, c1 = min(row + height, self.size), min(col + width, self.size)
        if r0 >= r1 or c0 >= c1:
            return None
        return (
            slice(r0, r1), slice(c0, c1),
            slice(r0 - row, r1 - row), slice(c0 - col, c1 - col),
        )

    def get_region(self, x: int, y: int, width: int, height: int) -> NDArray[np.uint8]:
        """Copy of the ``height`` x ``width`` block whose top-left is (x, y)."""
        out = np.zeros((height, width), dtype=np.uint8)
        clip = self._clip(x, y, width, height)
        if clip is not None:
            gr, gc, lr, lc = clip
            out[lr, lc] = self.grid[gr, gc]
        return out

    def set_region(self, x: int, y: int, cells: NDArray[np.uint8]) -> None:
        """Write ``cells`` with its top-left at (x, y), clipped to the grid."""
        height, width = cells.shape
        clip = self._clip(x, y, width, height)
        if clip is None:
            return
        gr, gc, lr, lc = clip
        self.grid[gr, gc] = cells[lr, lc]
        self._cached_pop = int(np.count_nonzero(self.grid))

    def load(self, cells: NDArray[np.uint8], *, centred: bool = True) -> None:
        """Replace the grid with ``cells`` and make it generation 0."""
        self.clear()
        height, width = cells.shape
        x, y = (-(width // 2), -(height // 2)) if centred else (0, 0)
        self.set_region(x, y, cells)
        self.mark_initial()

    def clear(self) -> None:
        self.grid[:] = 0
        self._cached_pop = 0

    def bounding_box(self) -> tuple[int, int, int, int] | None:
        """(left, top, right, bottom) of live cells in pattern coordinates."""
        rows = np.flatnonzero(self.grid.any(axis=1))
        if rows.size == 0:
            return None
        cols = np.flatnonzero(self.grid.any(axis=0))
        return (
            int(cols[0]) - self.half, int(rows[0]) - self.half,
            int(cols[-1]) - self.half, int(rows[-1]) - self.half,
        )

    # ── Generation zero ─────────────────────────────────────────────

    def mark_initial(self) -> None:
        """Remember the current grid as generation 0."""
        self._initial = self.grid.copy()
        self.generation = 0
        self.pop_history.clear()
        self.hash_history.clear()
        self._cached_pop = int(np.count_nonzero(self.grid))

    def reset(self) -> None:
        """Back to the generation-0 grid."""
        np.copyto(self.grid, self._initial)
        self.generation = 0
        self.pop_history.clear()
        self.hash_history.clear()
        self._cached_pop = int(np.count_nonzero(self.grid))

    def scratch(self) -> LifeEngine:
        """An isolated engine of the same size with dead borders."""
        return LifeEngine(self.size, wrap=False)

    # ── Simulation ──────────────────────────────────────────────────

    def step_generation(
        self,
        collect_stats: bool = True,
        skip_history: bool = False,
        skip_graph: bool = False,
    ) -> None:
        """Advance one generation."""
        np.copyto(self._grid_i16, self.grid != 0)
        convolve(
            self._grid_i16,
            NEIGHBOR_KERNEL,
            output=self._neighbor_buf,
            mode="wrap" if self.wrap else "constant",
        )
        n = self._neighbor_buf

        alive = self.grid != 0
        n_is_3 = n == 3
        birth = ~alive & n_is_3
        survive = alive & (n_is_3 | (n == 2))
        np.logical_or(birth, survive, out=alive)
        np.copyto(self.grid, alive)
        self.generation += 1

        if collect_stats:
            self._cached_pop = int(np.count_nonzero(self.grid))
        if not skip_graph:
            self.pop_history.append(self._cached_pop)
        if not skip_history:
            self.hash_history.append(hash(self.grid.tobytes()))

    @property
    def population(self) -> int:
        return self._cached_pop


# ═══════════════════════════════════════════════════════════════════════
#  Playback recorder
# ═══════════════════════════════════════════════════════════════════════

class PlaybackRecorder:
    """Writes per-frame playback telemetry to CSV."""

    HEADER: ClassVar[str] = (
        "frame,gen,elapsed_ms,population,x,y,zoom,angle,"
        "steps_requested,steps_completed,event\n"
    )

    def __init__(self, path: Path) -> None:
        self._path = path
        self._fh: IO[str] | None = None
        self._t0: float = time.monotonic()
        self.rows: int = 0

    def open(self) -> None:
        self._fh = open(self._path, "w")
        self._fh.write(self.HEADER)
        self._fh.flush()

    def log(
        self,
        frame: int,
        gen: int,
        elapsed_ms: float,
        population: int,
        camera: Camera,
        requested: int,
        completed: int,
        event: str = "",
    ) -> None:
        if self._fh is None:
            return
        self._fh.write(
            f"{frame},{gen},{elapsed_ms:.1f},{population},"
            f"{camera.offset_x:.3f},{camera.offset_y:.3f},{camera.zoom:.4f},"
            f"{camera.angle:.2f},{requested},{completed},{event}\n"
        )
        self.rows += 1
        # Flush on events or periodically
        if event or frame % 50 == 0:
            self._fh.flush()

    def close(self) -> None:
        if self._fh is not None:
            self._fh.close()
            self._fh = None


__all__ = [
    "CUSTOM_THEME",
    "Camera",
    "LifeEngine",
    "PlaybackRecorder",
    "THEMES",
    "theme_from_name",
    "theme_name",
]
