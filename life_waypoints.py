"""
Waypoints, points of interest and keyframe interpolation.

Parsing fills mutable ``Waypoint`` builders whose fields are
``Setting | None``.  ``build_chain`` resolves them into immutable
``Keyframe`` values: waypoint zero is back-filled from the live camera,
later waypoints inherit from their predecessor and POIs inherit from
waypoint zero.  ``WaypointCursor`` is the per-playback state that walks the
chain.
"""

from __future__ import annotations

import enum
import logging
import math
from dataclasses import dataclass, field, replace
from typing import Any, Callable

from life import Camera, theme_name
from life_diagnostics import DiagnosticList, Origin, Setting, SuppressFlags, value_of
from life_keywords import INITIAL_WORD, OFF_WORD, SINGLE_FRAME_SECONDS
from life_tokens import format_number

LOGGER = logging.getLogger("lifescript.waypoints")

DEFAULT_POI_SPEED = 12
MAX_POI_SPEED = 200
SINGLE_FRAME_MS = SINGLE_FRAME_SECONDS * 1000.0

# Fields that INITIAL can copy from waypoint zero, keyed by command word
INITIAL_FIELDS: dict[str, str] = {
    "X": "x", "Y": "y", "ZOOM": "zoom", "ANGLE": "angle", "TILT": "tilt",
    "LAYERS": "layers", "DEPTH": "depth", "THEME": "theme", "GPS": "gps",
    "STEP": "step", "LOOP": "loop", "STOP": "stop",
}


class PoiAction(enum.Enum):
    NONE = "NONE"
    PLAY = "POIPLAY"
    STOP = "POISTOP"


def describe_zoom(zoom: float) -> str:
    """Zoom as it would be written: ``-n`` below 1."""
    return format_number(-(1 / zoom) if zoom < 1 else zoom)


def describe_generation(gen: int) -> str:
    return OFF_WORD if gen == -1 else format_number(gen)


DESCRIBE: dict[str, Callable[[Any], str]] = {
    "zoom": describe_zoom,
    "stop": describe_generation,
    "loop": describe_generation,
    "theme": theme_name,
}


# ═══════════════════════════════════════════════════════════════════════
#  Builder
# ═══════════════════════════════════════════════════════════════════════

@dataclass
class Waypoint:
    """A keyframe or POI while the script is being read."""

    x: Setting[float] | None = None
    y: Setting[float] | None = None
    zoom: Setting[float] | None = None
    angle: Setting[float] | None = None
    tilt: Setting[float] | None = None
    layers: Setting[int] | None = None
    depth: Setting[float] | None = None
    theme: Setting[int] | None = None
    gps: Setting[float] | None = None
    step: Setting[int] | None = None
    stop: Setting[int] | None = None
    loop: Setting[int] | None = None
    x_linear: Setting[bool] | None = None
    y_linear: Setting[bool] | None = None
    zoom_linear: Setting[bool] | None = None
    grid: Setting[bool] | None = None
    stars: Setting[bool] | None = None
    message: Setting[str] | None = None
    target_gen: Setting[int] | None = None
    pause_seconds: Setting[float] | None = None
    autofit: bool = False
    interval: bool = False

    is_poi: bool = False
    action: PoiAction = PoiAction.NONE
    reset: bool = False
    speed: Setting[int] | None = None
    start_gen: int = -1

    def set_field(
        self,
        name: str,
        value: Any,
        source: str,
        diagnostics: DiagnosticList,
        suppress: SuppressFlags,
    ) -> None:
        """Assign a scripted value, reporting an overwrite unless suppressed."""
        current: Setting | None = getattr(self, name)
        if (
            current is not None
            and current.origin is not Origin.INITIAL
            and not suppress.consume(name)
        ):
            describe = DESCRIBE.get(name, format_number)
            diagnostics.overwrites(source, describe(current.value))
        setattr(self, name, Setting(value, source))

    def copy_initial(
        self, word: str, first: Waypoint | None, diagnostics: DiagnosticList
    ) -> None:
        """Copy one field from waypoint zero (``X INITIAL`` etc.)."""
        source = f"{word} {INITIAL_WORD}"
        if first is None:
            diagnostics.add(source, "no initial waypoint defined")
            return
        name = INITIAL_FIELDS.get(word)
        if name is None:
            diagnostics.add(source, f"illegal command before {INITIAL_WORD}")
            return
        current: Setting | None = getattr(self, name)
        if current is not None:
            if current.origin is Origin.INITIAL:
                diagnostics.add(source, "already defined")
            else:
                describe = DESCRIBE.get(name, format_number)
                diagnostics.overwrites(source, describe(current.value))
        # waypoint zero may still be undefined here; resolved in build_chain
        setattr(self, name, Setting(value_of(getattr(first, name), None), source, Origin.INITIAL))

    def copy_initial_all(self, first: Waypoint | None, diagnostics: DiagnosticList) -> None:
        for word in INITIAL_FIELDS:
            self.copy_initial(word, first, diagnostics)

    # ── POI actions ─────────────────────────────────────────────────

    def set_action(self, action: PoiAction, diagnostics: DiagnosticList) -> None:
        if not self.is_poi:
            diagnostics.add(action.value, "only valid at POI")
            return
        if self.action is not PoiAction.NONE:
            diagnostics.overwrites(action.value, self.action.name)
        self.action = action

    def set_reset(self, diagnostics: DiagnosticList) -> None:
        if not self.is_poi:
            diagnostics.add("POIRESET", "only valid at POI")
            return
        if self.reset:
            diagnostics.add("POIRESET", "already defined")
        self.reset = True

    def set_speed(self, speed: int, diagnostics: DiagnosticList) -> None:
        if not self.is_poi:
            diagnostics.add("POITRANS", "only valid at POI")
            return
        source = f"POITRANS {speed}"
        if self.speed is not None:
            diagnostics.overwrites(source, self.speed.value)
        self.speed = Setting(speed, source)

    @property
    def controls_camera(self) -> bool:
        return self.autofit or any(
            getattr(self, name) is not None for name in ("x", "y", "zoom", "angle", "tilt")
        )


# ═══════════════════════════════════════════════════════════════════════
#  Resolved keyframes
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Keyframe:
    """A fully resolved waypoint or POI.  ``target_time`` is in ms."""

    x: float = 0.0
    y: float = 0.0
    zoom: float = 1.0
    angle: float = 0.0
    tilt: float = 1.0
    layers: int = 1
    depth: float = 0.1
    theme: int = 1
    gps: float = 60.0
    step: int = 1
    stop: int = -1
    loop: int = -1
    x_linear: bool = False
    y_linear: bool = False
    zoom_linear: bool = False
    grid: bool = False
    stars: bool = False
    message: str = ""
    target_gen: int = 0
    target_time: float = 0.0
    autofit: bool = False
    interval: bool = False
    is_poi: bool = False
    action: PoiAction = PoiAction.NONE
    reset: bool = False
    speed: int = DEFAULT_POI_SPEED
    start_gen: int = -1
    provenance: dict[str, Origin] = field(default_factory=dict, compare=False, repr=False)

    @classmethod
    def from_camera(cls, camera: Camera, gps: float, step: int, **extra: Any) -> Keyframe:
        return cls(
            x=camera.offset_x, y=camera.offset_y, zoom=camera.zoom,
            angle=camera.angle, tilt=camera.tilt, layers=camera.layers,
            depth=camera.depth, theme=camera.theme, gps=gps, step=step, **extra,
        )

    def apply_to(self, camera: Camera) -> None:
        camera.offset_x = self.x
        camera.offset_y = self.y
        camera.zoom = self.zoom
        camera.angle = self.angle
        camera.tilt = self.tilt
        camera.layers = self.layers
        camera.depth = self.depth
        camera.theme = self.theme


CAMERA_FIELDS = ("x", "y", "zoom", "angle", "tilt", "layers", "depth", "theme", "gps", "step")
INHERITED_FIELDS = CAMERA_FIELDS + ("x_linear", "y_linear", "zoom_linear", "grid", "stars")


def _resolve(
    builder: Waypoint,
    base: Keyframe,
    refresh_rate: int,
    *,
    initial: Keyframe | None = None,
) -> dict[str, Any]:
    """Field values for ``builder`` with undefined fields taken from ``base``."""
    values: dict[str, Any] = {}
    provenance: dict[str, Origin] = {}
    for name in INHERITED_FIELDS + ("stop", "loop"):
        setting: Setting | None = getattr(builder, name)
        if setting is None or (setting.origin is Origin.INITIAL and initial is not None):
            source = initial if setting is not None and initial is not None else base
            values[name] = getattr(source, name)
            provenance[name] = Origin.INITIAL if setting is not None else Origin.INHERITED
        elif setting.value is None:
            values[name] = getattr(base, name)
            provenance[name] = Origin.INITIAL
        else:
            values[name] = setting.value
            provenance[name] = setting.origin

    # playback speed: GPS alone means 1 step, STEP pins gps to the refresh rate
    gps_set = builder.gps is not None
    step_set = builder.step is not None
    if gps_set and not step_set:
        values["step"] = 1
    if step_set:
        values["gps"] = float(refresh_rate)

    values["message"] = value_of(builder.message, "")
    values["autofit"] = builder.autofit
    values["interval"] = builder.interval
    values["is_poi"] = builder.is_poi
    values["action"] = builder.action
    values["reset"] = builder.reset
    values["speed"] = value_of(builder.speed, DEFAULT_POI_SPEED)
    values["start_gen"] = builder.start_gen
    values["provenance"] = provenance
    return values


def build_chain(
    waypoints: list[Waypoint],
    pois: list[Waypoint],
    live: Keyframe,
    refresh_rate: int,
    diagnostics: DiagnosticList,
) -> tuple[tuple[Keyframe, ...], tuple[Keyframe, ...]]:
    """Resolve builders into the keyframe chain and the POI list."""
    if not waypoints:
        waypoints = [Waypoint()]

    first = waypoints[0]
    zero_values = _resolve(first, live, refresh_rate)
    zero_values["provenance"] = {
        name: (Origin.LIVE if getattr(first, name) is None else origin)
        for name, origin in zero_values["provenance"].items()
    }
    chain: list[Keyframe] = [
        Keyframe(target_gen=value_of(first.target_gen, 0), target_time=0.0, **zero_values)
    ]

    for builder in waypoints[1:]:
        previous = chain[-1]
        values = _resolve(builder, previous, refresh_rate)

        if builder.target_gen is None:
            target_gen = previous.target_gen
        else:
            target_gen = builder.target_gen.value
            if target_gen <= previous.target_gen:
                diagnostics.add(
                    f"T {target_gen}",
                    f"target generation must be later than previous ({previous.target_gen})",
                )

        if builder.pause_seconds is not None:
            target_time = builder.pause_seconds.value * 1000.0 + previous.target_time
        else:
            target_time = previous.target_time + (
                (target_gen - previous.target_gen) * 1000.0 / (values["gps"] * values["step"])
            )
        chain.append(Keyframe(target_gen=target_gen, target_time=target_time, **values))

    zero = chain[0]
    resolved_pois = tuple(
        Keyframe(**_resolve(builder, zero, refresh_rate, initial=zero)) for builder in pois
    )
    LOGGER.debug("Resolved %d keyframes and %d POIs", len(chain), len(resolved_pois))
    return tuple(chain), resolved_pois


def check_autofit(waypoints: list[Waypoint], diagnostics: DiagnosticList) -> None:
    """Report AUTOFIT keyframes that also set X, Y or ZOOM explicitly."""
    for waypoint in waypoints:
        if not waypoint.autofit:
            continue
        parts = []
        if waypoint.x is not None:
            parts.append(f"X {format_number(waypoint.x.value)}")
        if waypoint.y is not None:
            parts.append(f"Y {format_number(waypoint.y.value)}")
        if waypoint.zoom is not None:
            parts.append(f"ZOOM {describe_zoom(waypoint.zoom.value)}")
        if not parts:
            continue
        if len(parts) == 1:
            text = parts[0]
        else:
            text = ", ".join(parts[:-1]) + " and " + parts[-1]
        diagnostics.overwrites("AUTOFIT", text)


# ═══════════════════════════════════════════════════════════════════════
#  Interpolation
# ═══════════════════════════════════════════════════════════════════════

def bezier_x(t: float, x0: float, x1: float, x2: float, x3: float) -> float:
    """x of a cubic Bézier with control x values ``x0..x3`` at parameter t."""
    c = 3.0 * (x1 - x0)
    b = 3.0 * (x2 - x1) - c
    a = x3 - x0 - c - b
    return a * t ** 3 + b * t ** 2 + c * t + x0


def ease(t: float) -> float:
    """Ease-in/ease-out used for camera moves."""
    return bezier_x(t, 0.0, 0.0, 1.0, 1.0)


def _mix(a: float, b: float, p: float) -> float:
    """``a`` to ``b`` at progress ``p``; the endpoints come back unchanged."""
    if p <= 0.0:
        return a
    if p >= 1.0:
        return b
    return a + p * (b - a)


def interpolate(start: Keyframe, end: Keyframe, elapsed: float) -> Keyframe:
    """The camera at ``elapsed`` ms between two keyframes."""
    start_time = start.target_time
    end_time = end.target_time
    elapsed = min(elapsed, end_time)

    # a one-frame PAUSE jumps straight to the destination
    if math.isclose(end_time - start_time, SINGLE_FRAME_MS):
        start_time = end_time

    linear = 1.0
    bezier = 1.0
    if end_time != start_time:
        linear = round(1_000_000 * ((elapsed - start_time) / (end_time - start_time))) / 1_000_000
        bezier = ease(linear)

    px = linear if end.x_linear or end.autofit else bezier
    py = linear if end.y_linear or end.autofit else bezier
    pz = linear if end.zoom_linear or end.autofit else bezier

    if end.zoom_linear:
        zoom = _mix(start.zoom, end.zoom, pz)
    elif pz <= 0.0:
        zoom = start.zoom
    elif pz >= 1.0:
        zoom = end.zoom
    else:
        zoom = start.zoom * (end.zoom / start.zoom) ** pz

    start_angle, end_angle = start.angle, end.angle
    if end_angle - start_angle > 180:
        start_angle += 360
    elif end_angle - start_angle < -180:
        end_angle += 360
    if bezier <= 0.0:
        angle = start.angle
    elif bezier >= 1.0:
        angle = end.angle
    else:
        angle = (start_angle + bezier * (end_angle - start_angle)) % 360

    return replace(
        end,
        x=_mix(start.x, end.x, px),
        y=_mix(start.y, end.y, py),
        zoom=zoom,
        angle=angle,
        tilt=_mix(start.tilt, end.tilt, bezier),
        layers=int(_mix(start.layers, end.layers, linear)),
        depth=_mix(start.depth, end.depth, linear),
        target_gen=int(_mix(start.target_gen, end.target_gen, linear)),
        target_time=elapsed,
    )


# ── Chain queries ───────────────────────────────────────────────────────

def find_waypoint_near(chain: tuple[Keyframe, ...], generation: int) -> int:
    """Index of the first keyframe at or beyond ``generation`` (else the last)."""
    for index, keyframe in enumerate(chain):
        if keyframe.target_gen >= generation:
            return index
    return len(chain) - 1


def elapsed_time_to(chain: tuple[Keyframe, ...], generation: int) -> float:
    """Playback time (ms) at which ``generation`` is reached."""
    index = find_waypoint_near(chain, generation)
    keyframe = chain[index]
    rate = keyframe.gps * keyframe.step
    if generation > keyframe.target_gen:
        return keyframe.target_time + (generation - keyframe.target_gen) * 1000.0 / rate
    if index > 0:
        previous = chain[index - 1]
        return previous.target_time + (generation - previous.target_gen) * 1000.0 / rate
    return generation * 1000.0 / rate


def find_closest_waypoint(chain: tuple[Keyframe, ...], generation: int) -> tuple[int, float]:
    """(index, elapsed ms) to resume playback at ``generation``."""
    index = find_waypoint_near(chain, generation)
    elapsed = 0.0
    if index > 0:
        current, previous = chain[index], chain[index - 1]
        generations = current.target_gen - previous.target_gen
        if generations:
            elapsed = (
                (current.target_time - previous.target_time)
                * (generation - previous.target_gen) / generations
                + previous.target_time
            )
    return index, elapsed


# ═══════════════════════════════════════════════════════════════════════
#  Playback cursor
# ═══════════════════════════════════════════════════════════════════════

class WaypointCursor:
    """Mutable walk over an immutable keyframe chain."""

    def __init__(self, chain: tuple[Keyframe, ...]) -> None:
        self.chain = chain
        self.index: int = 0
        self.processed: set[int] = set()
        self.last_reached: bool = False
        self.using_temp: bool = False
        self.temp_start: Keyframe | None = None
        self.temp_end: Keyframe | None = None
        # AUTOFIT keyframes take the fitted camera when reached
        self.overrides: dict[int, Keyframe] = {}
        self.current: Keyframe = chain[0]

    def at(self, index: int) -> Keyframe:
        return self.overrides.get(index, self.chain[index])

    def update(
        self, elapsed: float, generation: int, fitted: Keyframe | None = None
    ) -> tuple[Keyframe, bool]:
        """
        Position at ``elapsed`` ms.

        Returns the interpolated keyframe and whether playback has ended
        (the last keyframe was reached on an earlier call and its target
        generation is met).
        """
        if self.using_temp and self.temp_start is not None and self.temp_end is not None:
            self.current = interpolate(self.temp_start, self.temp_end, elapsed)
            if elapsed >= self.temp_end.target_time:
                self.using_temp = False
            return self.current, False

        ended = False
        index = self.index
        found = False
        while index < len(self.chain):
            keyframe = self.at(index)
            if keyframe.target_time >= elapsed or index not in self.processed:
                found = True
                break
            index += 1

        if not found:
            index = len(self.chain) - 1
            self.current = self.at(index)
            if generation >= self.current.target_gen and self.last_reached:
                ended = True
            self.last_reached = True
        else:
            self.processed.add(index)
            if index > 0:
                if self.chain[index].autofit and fitted is not None:
                    self.overrides[index] = replace(
                        self.chain[index], x=fitted.x, y=fitted.y, zoom=fitted.zoom
                    )
                self.current = interpolate(self.at(index - 1), self.at(index), elapsed)
            else:
                self.current = self.at(0)

        self.index = index
        return self.current, ended

    def at_last(self, elapsed: float) -> bool:
        return self.index >= len(self.chain) - 1 and elapsed >= self.at(self.index).target_time

    def stepped_back(self, elapsed: float) -> None:
        """Forget keyframes beyond ``elapsed`` after a step back."""
        for index in range(len(self.chain) - 1, -1, -1):
            if self.at(index).target_time > elapsed and index in self.processed:
                self.index = index
                self.processed.discard(index)

    def reset_playback(self) -> None:
        self.processed.clear()
        self.index = 0
        self.last_reached = False
        self.using_temp = False
        self.overrides.clear()

    def create_temporary_position(
        self, start: Keyframe, generation: int, elapsed: float
    ) -> float:
        """
        Blend from a manually moved camera back onto the scripted path.

        ``start`` is the user's camera.  The blend starts one second in the
        past and ends at the scripted position for now; the returned time is
        the new elapsed playback time.
        """
        if self.using_temp and self.temp_end is not None:
            elapsed = self.temp_end.target_time
            end = self.temp_end
        else:
            end, _ = self.update(elapsed, generation)
        self.temp_start = replace(start, target_gen=generation, target_time=elapsed - 1000.0)
        self.temp_end = replace(end, autofit=False, target_time=elapsed)
        self.using_temp = True
        LOGGER.debug("Temporary waypoint pair at %.1f ms (generation %d)", elapsed, generation)
        return self.temp_start.target_time


__all__ = [
    "DEFAULT_POI_SPEED",
    "Keyframe",
    "PoiAction",
    "Waypoint",
    "WaypointCursor",
    "bezier_x",
    "build_chain",
    "check_autofit",
    "describe_zoom",
    "ease",
    "elapsed_time_to",
    "find_closest_waypoint",
    "find_waypoint_near",
    "interpolate",
]
