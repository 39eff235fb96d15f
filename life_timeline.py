"""
Timeline runtime.

``Timeline`` is the immutable result of interpreting a script.
``PlaybackContext`` is everything that changes while it plays: elapsed time,
the waypoint cursor, POI transitions, pending generation steps and history
jobs.  The host calls ``tick(delta_ms)`` once per frame and draws whatever
the returned ``FrameResult`` describes.
"""

from __future__ import annotations

import enum
import logging
import time
from dataclasses import dataclass, field, replace
from typing import Optional

from life import Camera, LifeEngine
from life_annotations import AnnotationFrame, AnnotationRegistry, Colour
from life_config import ViewerSettings
from life_diagnostics import Diagnostic
from life_keywords import MAX_ZOOM, MIN_ZOOM
from life_paste import PasteSchedule, Snippet
from life_waypoints import Keyframe, PoiAction, WaypointCursor, interpolate

LOGGER = logging.getLogger("lifescript.timeline")


# ═══════════════════════════════════════════════════════════════════════
#  Immutable timeline
# ═══════════════════════════════════════════════════════════════════════

class TrackMode(enum.Enum):
    TRACK = "TRACK"
    BOX = "TRACKBOX"
    LOOP = "TRACKLOOP"


@dataclass(frozen=True)
class TrackSettings:
    """Camera drift in cells per generation; the box edges move independently."""

    mode: TrackMode
    east: float
    south: float
    west: float
    north: float
    period: int = 0

    @classmethod
    def uniform(cls, mode: TrackMode, dx: float, dy: float, period: int = 0) -> TrackSettings:
        return cls(mode, east=dx, south=dy, west=dx, north=dy, period=period)

    @property
    def velocity(self) -> tuple[float, float]:
        return (self.east + self.west) / 2, (self.north + self.south) / 2

    def describe(self) -> str:
        if self.mode is TrackMode.BOX:
            parts: tuple[float, ...] = (self.east, self.south, self.west, self.north)
        elif self.mode is TrackMode.LOOP:
            parts = (self.period, self.east, self.south)
        else:
            parts = (self.east, self.south)
        return " ".join([self.mode.value, *(f"{p:g}" for p in parts)])


@dataclass(frozen=True)
class Timeline:
    """Everything one parse produced.  Rebuilt on every load."""

    keyframes: tuple[Keyframe, ...]
    pois: tuple[Keyframe, ...] = ()
    pastes: PasteSchedule = field(default_factory=PasteSchedule)
    snippets: tuple[Snippet, ...] = ()
    recipes: dict[str, tuple[int, ...]] = field(default_factory=dict)
    annotations: AnnotationRegistry = field(default_factory=AnnotationRegistry)
    diagnostics: tuple[Diagnostic, ...] = ()
    title: str = ""
    track: Optional[TrackSettings] = None
    state_colours: dict[int, Colour] = field(default_factory=dict)
    element_colours: dict[str, Colour] = field(default_factory=dict)
    autostart: bool = False
    start_from: int = -1
    view_only: bool = False
    no_step_back: bool = False
    no_report: bool = False
    grid_major: int = 10
    max_grid_power: int = 12
    width: int = -1
    height: int = -1
    default_poi: int = -1
    commands: int = 0

    @property
    def clean(self) -> bool:
        return not self.diagnostics

    @property
    def waypoints_active(self) -> bool:
        return len(self.keyframes) > 1

    @property
    def custom_theme(self) -> bool:
        return bool(self.element_colours)

    @property
    def stop_generation(self) -> int:
        return self.keyframes[0].stop

    @property
    def loop_generation(self) -> int:
        return self.keyframes[0].loop


# ═══════════════════════════════════════════════════════════════════════
#  Per-frame results
# ═══════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class StepReport:
    requested: int
    completed: int
    bailed_out: bool = False


@dataclass
class HistoryJob:
    """Run the engine forward to ``target`` across as many ticks as it takes."""

    target: int
    reached: bool = False


@dataclass(frozen=True)
class FrameResult:
    generation: int
    elapsed_ms: float
    camera: Camera
    steps: StepReport
    annotations: tuple[AnnotationFrame, ...]
    control_locked: bool
    playing: bool
    ended: bool = False
    message: str = ""
    events: tuple[str, ...] = ()


@dataclass
class _PoiTransition:
    start: Keyframe
    end: Keyframe
    index: int
    frame: int = 0


def fit_camera(engine: LifeEngine, settings: ViewerSettings) -> Optional[tuple[float, float, float]]:
    """(x, y, zoom) that frames the live cells in the viewport, if any."""
    box = engine.bounding_box()
    if box is None:
        return None
    left, top, right, bottom = box
    width = right - left + 1
    height = bottom - top + 1
    zoom = min(settings.viewport_width / width, settings.viewport_height / height)
    zoom = max(MIN_ZOOM, min(MAX_ZOOM, zoom))
    return (left + right + 1) / 2, (top + bottom + 1) / 2, zoom


# ═══════════════════════════════════════════════════════════════════════
#  Playback
# ═══════════════════════════════════════════════════════════════════════

class PlaybackContext:
    """Mutable playback state for one ``Timeline`` driving one engine."""

    def __init__(
        self,
        timeline: Timeline,
        engine: LifeEngine,
        settings: ViewerSettings | None = None,
    ) -> None:
        self.timeline = timeline
        self.engine = engine
        self.settings = settings or ViewerSettings()
        self.camera: Camera = engine.camera

        self.cursor = WaypointCursor(timeline.keyframes)
        self.elapsed_ms: float = 0.0
        self.playing: bool = timeline.autostart and (
            timeline.clean or not self.settings.stop_on_errors
        )
        self.control_locked: bool = False
        self.ended: bool = False

        # the keyframe whose gps/step/stop/loop currently apply
        self.active: Keyframe = timeline.keyframes[0]
        self.poi_index: int = -1
        self.transition: Optional[_PoiTransition] = None
        self.history: Optional[HistoryJob] = None

        self.pending_steps: int = 0
        self._gen_accumulator: float = 0.0
        self._stop_fired: bool = False
        self._track_origin: Optional[tuple[float, float, float, float, float]] = None
        self._events: list[str] = []

        self.active.apply_to(self.camera)
        if engine.generation == 0:
            applied = timeline.pastes.apply(engine, 0)
            if applied:
                engine.mark_initial()
        if timeline.default_poi >= 0:
            self.poi_index = timeline.default_poi
            self.active = timeline.pois[timeline.default_poi]
            self.active.apply_to(self.camera)
        if timeline.start_from > 0:
            self.history = HistoryJob(timeline.start_from)

    # ── Host controls ───────────────────────────────────────────────

    def play(self) -> None:
        self.playing = True

    def pause(self) -> None:
        self.playing = False

    def reset(self) -> None:
        """Back to generation 0 and the start of the waypoint chain."""
        self.engine.reset()
        self.elapsed_ms = 0.0
        self._gen_accumulator = 0.0
        self.pending_steps = 0
        self._stop_fired = False
        self.ended = False
        self.cursor.reset_playback()
        self._track_origin = None
        if not self.timeline.waypoints_active and self.poi_index < 0:
            self.active = self.timeline.keyframes[0]

    def manual_camera_change(self, camera: Camera) -> None:
        """The user moved the camera; blend back onto the script if it drives it."""
        if self.control_locked and self.transition is None and self.timeline.waypoints_active:
            start = Keyframe.from_camera(camera, self.active.gps, self.active.step)
            self.elapsed_ms = self.cursor.create_temporary_position(
                start, self.engine.generation, self.elapsed_ms
            )
            self._events.append("temporary")
            return
        self.camera.offset_x = camera.offset_x
        self.camera.offset_y = camera.offset_y
        self.camera.zoom = camera.zoom
        self.camera.angle = camera.angle
        self.camera.tilt = camera.tilt
        self.camera.layers = camera.layers
        self.camera.depth = camera.depth

    def go_to_poi(self, index: int) -> None:
        pois = self.timeline.pois
        if not 0 <= index < len(pois):
            raise IndexError(f"POI {index} out of range (0..{len(pois) - 1})")
        poi = pois[index]
        self.poi_index = index
        start = Keyframe.from_camera(self.camera, self.active.gps, self.active.step)
        if poi.speed == 0:
            self._arrive(poi)
            return
        self.transition = _PoiTransition(
            start=replace(start, target_time=0.0),
            end=replace(poi, target_time=float(poi.speed)),
            index=index,
        )
        LOGGER.debug("Moving to POI %d over %d frames", index, poi.speed)

    # ── Frame ───────────────────────────────────────────────────────

    def tick(self, delta_ms: float) -> FrameResult:
        """Advance one frame: camera, generation steps, pastes, annotations."""
        timeline = self.timeline
        if self.playing:
            self.elapsed_ms += delta_ms

        message = ""
        if self.transition is not None:
            self._advance_transition(self.transition)
            message = self.active.message
        elif timeline.waypoints_active:
            # paused or finished: the camera belongs to the user
            if self.playing and not self.ended:
                fitted = self._fitted_keyframe()
                keyframe, ended = self.cursor.update(
                    self.elapsed_ms, self.engine.generation, fitted
                )
                keyframe.apply_to(self.camera)
                self.active = keyframe
                if ended:
                    self.ended = True
                    self._events.append("end")
            message = self.active.message
        else:
            message = self.active.message
            if self.active.autofit:
                self._autofit()

        report = self._run_steps(delta_ms)

        if timeline.track is not None and not timeline.waypoints_active:
            self._track(timeline.track)

        self.control_locked = (
            self.transition is not None
            or (timeline.waypoints_active and self.playing and not self.ended)
            or (timeline.track is not None and self.playing)
        )
        frames = timeline.annotations.frames(
            self.engine.generation, self.engine.population, self.camera
        )
        events = tuple(self._events)
        self._events.clear()
        return FrameResult(
            generation=self.engine.generation,
            elapsed_ms=self.elapsed_ms,
            camera=self.camera.copy(),
            steps=report,
            annotations=tuple(frames),
            control_locked=self.control_locked,
            playing=self.playing,
            ended=self.ended,
            message=message,
            events=events,
        )

    # ── Stepping ────────────────────────────────────────────────────

    def _step_once(self) -> None:
        self.engine.step_generation()
        self.timeline.pastes.apply(self.engine, self.engine.generation)

    def _run_steps(self, delta_ms: float) -> StepReport:
        """Bounded work loop: never more than the frame budget or step cap."""
        budget = self.settings.frame_budget_ms
        cap = self.settings.max_steps_per_tick

        if self.history is not None and not self.history.reached:
            return self._run_history(self.history, budget, cap)

        if self.playing:
            self._gen_accumulator += delta_ms * self.active.gps / 1000.0
            whole = int(self._gen_accumulator)
            self._gen_accumulator -= whole
            self.pending_steps += whole * self.active.step

        requested = min(self.pending_steps, cap)
        completed = 0
        bailed = False
        started = time.perf_counter()
        while completed < requested:
            if self._check_stop_loop():
                break
            self._step_once()
            completed += 1
            if completed < requested and (time.perf_counter() - started) * 1000.0 > budget:
                bailed = True
                break
        self.pending_steps = max(0, self.pending_steps - completed)
        if not self.playing:
            self.pending_steps = 0
        else:
            self._check_stop_loop()
        if bailed:
            LOGGER.debug(
                "Frame budget exceeded after %d of %d steps (generation %d)",
                completed, requested, self.engine.generation,
            )
        return StepReport(requested, completed, bailed)

    def _run_history(self, job: HistoryJob, budget: float, cap: int) -> StepReport:
        if self.engine.generation > job.target:
            self.engine.reset()
        requested = min(job.target - self.engine.generation, cap)
        completed = 0
        bailed = False
        started = time.perf_counter()
        while completed < requested:
            self._step_once()
            completed += 1
            if completed < requested and (time.perf_counter() - started) * 1000.0 > budget:
                bailed = True
                break
        if self.engine.generation >= job.target:
            job.reached = True
            self._events.append("history")
            LOGGER.debug("History computed to generation %d", job.target)
        return StepReport(requested, completed, bailed)

    def _check_stop_loop(self) -> bool:
        """Apply STOP/LOOP; returns True when stepping must halt this frame."""
        generation = self.engine.generation
        stop = self.active.stop
        loop = self.active.loop
        if stop >= 0 and generation >= stop and not self._stop_fired:
            self._stop_fired = True
            self.playing = False
            self.pending_steps = 0
            self._events.append("stop")
            LOGGER.debug("STOP reached at generation %d", generation)
            return True
        if loop >= 0 and generation >= loop:
            self._events.append("loop")
            LOGGER.debug("LOOP at generation %d", generation)
            self.reset()
            return True
        return False

    # ── Camera drivers ──────────────────────────────────────────────

    def _advance_transition(self, transition: _PoiTransition) -> None:
        transition.frame += 1
        if transition.frame >= transition.end.target_time:
            self.transition = None
            self._arrive(self.timeline.pois[transition.index])
            return
        interpolate(transition.start, transition.end, float(transition.frame)).apply_to(self.camera)

    def _arrive(self, poi: Keyframe) -> None:
        poi.apply_to(self.camera)
        self.active = poi
        self._stop_fired = False
        self._events.append("poi")
        LOGGER.debug("Arrived at POI %d", self.poi_index)
        if poi.reset:
            self.reset()
        if poi.action is PoiAction.PLAY:
            self.playing = True
        elif poi.action is PoiAction.STOP:
            self.playing = False
        if poi.start_gen >= 0:
            self.history = HistoryJob(poi.start_gen)

    def _fitted_keyframe(self) -> Optional[Keyframe]:
        fit = fit_camera(self.engine, self.settings)
        if fit is None:
            return None
        x, y, zoom = fit
        return replace(self.active, x=x, y=y, zoom=zoom)

    def _autofit(self) -> None:
        fit = fit_camera(self.engine, self.settings)
        if fit is not None:
            self.camera.offset_x, self.camera.offset_y, self.camera.zoom = fit

    def _track(self, track: TrackSettings) -> None:
        if self._track_origin is None:
            box = self.engine.bounding_box()
            width, height = 1.0, 1.0
            if box is not None:
                width, height = box[2] - box[0] + 1.0, box[3] - box[1] + 1.0
            self._track_origin = (
                self.camera.offset_x, self.camera.offset_y, self.camera.zoom, width, height,
            )
        x0, y0, zoom0, width, height = self._track_origin
        generation = self.engine.generation
        vx, vy = track.velocity
        self.camera.offset_x = x0 + vx * generation
        self.camera.offset_y = y0 + vy * generation
        if track.mode is TrackMode.BOX:
            grown_w = width + (track.east - track.west) * generation
            grown_h = height + (track.south - track.north) * generation
            fit = min(
                self.settings.viewport_width / max(grown_w, 1.0),
                self.settings.viewport_height / max(grown_h, 1.0),
            )
            self.camera.zoom = max(MIN_ZOOM, min(zoom0, fit))


__all__ = [
    "FrameResult",
    "HistoryJob",
    "PlaybackContext",
    "StepReport",
    "Timeline",
    "TrackMode",
    "TrackSettings",
    "fit_camera",
]
