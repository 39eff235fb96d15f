"""
Labels, arrows and polygons drawn over the grid.

Each annotation pairs its geometry with a frozen ``Style`` snapshot taken
when the command was read.  ``AnnotationRegistry.frames`` evaluates every
annotation for one generation: visibility, alpha, drifted position and
angle.  Rendering is left to the host.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass, field
from typing import Union

from life import Camera
from life_keywords import DEFAULT_ARROW_HEAD, DEFAULT_LABEL_SIZE, DEFAULT_LINE_SIZE

NO_ZOOM_RANGE = -1000.0
Colour = tuple[int, int, int]


class Align(enum.Enum):
    LEFT = "LEFT"
    CENTER = "CENTER"
    RIGHT = "RIGHT"


@dataclass(frozen=True)
class Style:
    """Settings shared by every annotation kind (``LABELALPHA`` etc.)."""

    colour: Colour = (255, 255, 255)
    alpha: float = 1.0
    size: float = DEFAULT_LABEL_SIZE
    size_fixed: bool = False
    t1: int = -1
    t2: int = -1
    fade: int = 0
    angle: float = 0.0
    angle_fixed: bool = False
    dx: float = 0.0
    dy: float = 0.0
    view_distance: float = -1.0
    min_zoom: float = NO_ZOOM_RANGE
    max_zoom: float = NO_ZOOM_RANGE
    shadow: bool = False
    align: Align = Align.CENTER
    target: tuple[float, float] | None = None
    standoff: float = 0.0
    head: float = DEFAULT_ARROW_HEAD

    @classmethod
    def for_lines(cls) -> Style:
        return cls(size=DEFAULT_LINE_SIZE)

    @property
    def always(self) -> bool:
        return self.t1 == -1 and self.t2 == -1

    def zoom_range(self, zoom: float) -> tuple[float, float]:
        """Display zoom range; unset limits default to zoom / 4 and zoom * 4."""
        low = zoom / 4 if self.min_zoom == NO_ZOOM_RANGE else self.min_zoom
        high = zoom * 4 if self.max_zoom == NO_ZOOM_RANGE else self.max_zoom
        return low, high


# ── Geometry ────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Label:
    x: float
    y: float
    zoom: float
    text: str
    style: Style = field(default_factory=Style)
    position_fixed: bool = False

    def points(self) -> tuple[tuple[float, float], ...]:
        return ((self.x, self.y),)

    def render_text(self, generation: int, population: int) -> str:
        return self.text.replace("#G", str(generation)).replace("#P", str(population))


@dataclass(frozen=True)
class Arrow:
    x1: float
    y1: float
    x2: float
    y2: float
    zoom: float
    style: Style = field(default_factory=Style.for_lines)
    position_fixed: bool = False

    def points(self) -> tuple[tuple[float, float], ...]:
        return ((self.x1, self.y1), (self.x2, self.y2))


@dataclass(frozen=True)
class Polygon:
    coords: tuple[tuple[float, float], ...]
    zoom: float
    filled: bool = False
    style: Style = field(default_factory=Style.for_lines)
    position_fixed: bool = False

    def points(self) -> tuple[tuple[float, float], ...]:
        return self.coords


Annotation = Union[Label, Arrow, Polygon]


# ── Fades ───────────────────────────────────────────────────────────────

def time_alpha(style: Style, generation: int) -> float:
    """Visibility window with linear fade in and fade out."""
    if style.always:
        return 1.0
    if generation < style.t1 or generation > style.t2:
        return 0.0
    if style.fade <= 0:
        return 1.0
    rise = (generation - style.t1) / style.fade
    fall = (style.t2 - generation) / style.fade
    return max(0.0, min(1.0, rise, fall))


def zoom_alpha(style: Style, display_zoom: float, camera_zoom: float) -> float:
    """Fade over the bottom and top quarter of the log zoom range."""
    low, high = style.zoom_range(display_zoom)
    if camera_zoom < low or camera_zoom > high:
        return 0.0
    if high <= low:
        return 1.0
    linear = math.log(camera_zoom / low) / math.log(high / low)
    if linear <= 0.25:
        return linear * 4
    if linear >= 0.75:
        return (1 - linear) * 4
    return 1.0


def distance_alpha(style: Style, anchor: tuple[float, float], camera: Camera) -> float:
    """Hidden beyond the view distance, fading over its last quarter."""
    if style.view_distance < 0:
        return 1.0
    distance = math.hypot(anchor[0] - camera.offset_x, anchor[1] - camera.offset_y)
    if distance > style.view_distance:
        return 0.0
    if style.view_distance > 0:
        ratio = distance / style.view_distance
        if ratio > 0.75:
            return 4 * (1 - ratio)
    return 1.0


# ── Frames ──────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class AnnotationFrame:
    """One annotation as it should appear this frame."""

    annotation: Annotation
    visible: bool
    alpha: float
    points: tuple[tuple[float, float], ...]
    angle: float
    size: float
    text: str = ""


def _bearing(origin: tuple[float, float], target: tuple[float, float]) -> float:
    return math.degrees(math.atan2(target[1] - origin[1], target[0] - origin[0])) % 360


def evaluate(
    annotation: Annotation, generation: int, population: int, camera: Camera
) -> AnnotationFrame:
    style = annotation.style
    points = annotation.points()

    # drift and look-at target move the whole shape
    if not annotation.position_fixed:
        elapsed = generation if style.t1 == -1 else generation - style.t1
        shift_x, shift_y = style.dx * elapsed, style.dy * elapsed
        anchor = (points[0][0] + shift_x, points[0][1] + shift_y)
        if style.target is not None and style.standoff > 0:
            tx, ty = style.target
            distance = math.hypot(anchor[0] - tx, anchor[1] - ty)
            if distance > style.standoff:
                scale = style.standoff / distance
                clamped = (tx + (anchor[0] - tx) * scale, ty + (anchor[1] - ty) * scale)
                shift_x += clamped[0] - anchor[0]
                shift_y += clamped[1] - anchor[1]
        points = tuple((px + shift_x, py + shift_y) for px, py in points)

    anchor = points[0]
    if style.angle_fixed:
        angle = style.angle
    elif style.target is not None:
        angle = _bearing(anchor, style.target)
    elif style.dx or style.dy:
        angle = math.degrees(math.atan2(style.dy, style.dx)) % 360
    else:
        angle = style.angle

    alpha = (
        style.alpha
        * time_alpha(style, generation)
        * zoom_alpha(style, annotation.zoom, camera.zoom)
        * distance_alpha(style, anchor, camera)
    )
    size = style.size if style.size_fixed else style.size * camera.zoom / annotation.zoom
    text = annotation.render_text(generation, population) if isinstance(annotation, Label) else ""
    return AnnotationFrame(
        annotation=annotation,
        visible=alpha > 0,
        alpha=alpha,
        points=points,
        angle=angle,
        size=size,
        text=text,
    )


@dataclass(frozen=True)
class AnnotationRegistry:
    labels: tuple[Label, ...] = ()
    arrows: tuple[Arrow, ...] = ()
    polygons: tuple[Polygon, ...] = ()

    def __len__(self) -> int:
        return len(self.labels) + len(self.arrows) + len(self.polygons)

    def __iter__(self):
        yield from self.polygons
        yield from self.arrows
        yield from self.labels

    def frames(self, generation: int, population: int, camera: Camera) -> list[AnnotationFrame]:
        """Evaluated annotations, polygons first and labels last (draw order)."""
        return [evaluate(item, generation, population, camera) for item in self]


__all__ = [
    "Align",
    "Annotation",
    "AnnotationFrame",
    "AnnotationRegistry",
    "Arrow",
    "Label",
    "NO_ZOOM_RANGE",
    "Polygon",
    "Style",
    "distance_alpha",
    "evaluate",
    "time_alpha",
    "zoom_alpha",
]
