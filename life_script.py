"""
The life-script interpreter.

``interpret`` reads the script blocks of a pattern document and returns an
immutable ``Timeline``.  Every command word maps to one ``Command`` member
and every member has exactly one handler in ``HANDLERS``.  Handlers consume
their arguments from the shared ``ScriptReader``; anything wrong with the
script becomes a diagnostic, never an exception, and reading carries on with
the next token.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, replace
from typing import Callable, Optional

import numpy as np
from numpy.typing import NDArray

from life import CUSTOM_THEME, THEMES, Camera, theme_from_name, theme_name
from life_annotations import NO_ZOOM_RANGE, Align, AnnotationRegistry, Arrow, Colour, Label, Polygon, Style
from life_config import ViewerSettings
from life_diagnostics import DiagnosticList, Setting, SuppressFlags
from life_keywords import (
    ALIGN_WORDS,
    ALL_WORD,
    CUSTOM_WORD,
    EVERY_WORD,
    FIXED_WORD,
    INITIAL_WORD,
    MAX_ANNOTATION_ZOOM,
    MAX_DEPTH,
    MAX_GRID_MAJOR,
    MAX_GRID_POWER,
    MAX_LABEL_SIZE,
    MAX_LAYERS,
    MAX_LINE_SIZE,
    MAX_NEG_ZOOM,
    MAX_PASTE_DELTA,
    MAX_START_FROM,
    MAX_STEP,
    MAX_TILT,
    MAX_TRACK_SPEED,
    MAX_VIEWER_HEIGHT,
    MAX_VIEWER_WIDTH,
    MAX_ZOOM,
    MIN_ANNOTATION_ZOOM,
    MIN_DEPTH,
    MIN_GPS,
    MIN_GRID_MAJOR,
    MIN_GRID_POWER,
    MIN_LABEL_SIZE,
    MIN_LAYERS,
    MIN_LINE_SIZE,
    MIN_NEG_ZOOM,
    MIN_STEP,
    MIN_TILT,
    MIN_TRACK_SPEED,
    MIN_VIEWER_HEIGHT,
    MIN_VIEWER_WIDTH,
    MIN_ZOOM,
    OFF_WORD,
    MAX_PASTE_MODE,
    SINGLE_FRAME_SECONDS,
    START_MARKERS,
    STRING_DELIMITER,
    VARIABLE_PREFIX,
    XT_WORD,
    YT_WORD,
    Command,
    is_script_command,
    lookup,
)
from life_paste import PasteEntry, PasteMode, PasteSchedule, Snippet, Trigger, evolve_cells
from life_rle import Transform, apply_transform, decode_rle, is_rle_fragment
from life_timeline import Timeline, TrackMode, TrackSettings
from life_tokens import ScriptReader, format_number, is_numeric, script_source
from life_waypoints import (
    MAX_POI_SPEED,
    Keyframe,
    PoiAction,
    Waypoint,
    build_chain,
    check_autofit,
)

LOGGER = logging.getLogger("lifescript.script")

DEFAULT_GRID_MAJOR = 10

THEME_ELEMENTS: tuple[str, ...] = (
    "BACKGROUND", "ALIVE", "DEAD", "GRID", "GRIDMAJOR", "LABEL", "ARROW", "POLY", "STARS",
)
# Elements that colour annotations rather than the theme
ANNOTATION_ELEMENTS: tuple[str, ...] = ("LABEL", "ARROW", "POLY")

NAMED_COLOURS: dict[str, Colour] = {
    "black": (0, 0, 0),
    "white": (255, 255, 255),
    "red": (255, 0, 0),
    "green": (0, 128, 0),
    "lime": (0, 255, 0),
    "blue": (0, 0, 255),
    "yellow": (255, 255, 0),
    "cyan": (0, 255, 255),
    "aqua": (0, 255, 255),
    "magenta": (255, 0, 255),
    "fuchsia": (255, 0, 255),
    "orange": (255, 165, 0),
    "purple": (128, 0, 128),
    "pink": (255, 192, 203),
    "brown": (165, 42, 42),
    "gray": (128, 128, 128),
    "grey": (128, 128, 128),
    "silver": (192, 192, 192),
    "navy": (0, 0, 128),
    "teal": (0, 128, 128),
    "olive": (128, 128, 0),
    "maroon": (128, 0, 0),
    "gold": (255, 215, 0),
    "skyblue": (135, 206, 235),
    "violet": (238, 130, 238),
}


@dataclass(frozen=True)
class PatternInfo:
    """Pattern metadata available to ``#N``-style variables."""

    name: str = ""
    rule: str = "B3/S23"
    alias: str = ""
    originator: str = ""
    seed: str = ""
    program: str = "life-script"
    neighbourhood: str = "Moore"


class _StringTarget(enum.Enum):
    MESSAGE = "message"
    TITLE = "title"
    LABEL = "label"


def shorten(message: str, length: int) -> str:
    if len(message) > length:
        return message[: length - 1] + "..."
    return message


def decode_hex(token: str) -> Optional[Colour]:
    """``#rrggbb`` to an RGB triple."""
    if len(token) != 7 or not token.startswith("#"):
        return None
    try:
        value = int(token[1:], 16)
    except ValueError:
        return None
    return (value >> 16) & 255, (value >> 8) & 255, value & 255


def _convert_zoom(value: float) -> Optional[float]:
    """Zoom literal to magnification: ``-n`` means ``1/n``."""
    if MIN_ZOOM <= value <= MAX_ZOOM:
        return value
    if MIN_NEG_ZOOM <= value <= MAX_NEG_ZOOM:
        return -(1 / value)
    return None


def _annotation_zoom(value: float) -> Optional[float]:
    if MIN_ANNOTATION_ZOOM <= value <= MAX_ANNOTATION_ZOOM:
        return value
    if MIN_NEG_ZOOM <= value <= MAX_NEG_ZOOM:
        return -(1 / value)
    return None


def _style_kind(command: Command) -> str:
    for kind in ANNOTATION_ELEMENTS:
        if command.value.startswith(kind):
            return kind
    raise ValueError(f"{command.value} is not an annotation command")


# ═══════════════════════════════════════════════════════════════════════
#  Interpreter state
# ═══════════════════════════════════════════════════════════════════════

class Interpreter:
    """One parse.  Create, call ``run`` once, read the ``Timeline``."""

    def __init__(
        self,
        info: PatternInfo | None = None,
        settings: ViewerSettings | None = None,
        camera: Camera | None = None,
    ) -> None:
        self.info = info or PatternInfo()
        self.settings = settings or ViewerSettings()
        self.camera = camera or Camera()
        self.reader = ScriptReader("")
        self.diagnostics = DiagnosticList()
        self.suppress = SuppressFlags()
        self.commands = 0

        # waypoints and POIs
        self.waypoints: list[Waypoint] = []
        self.pois: list[Waypoint] = []
        self.current = Waypoint()
        self.waypoints_found = False
        self.poi_found = False
        self.default_poi = -1

        # strings
        self.string_target: Optional[_StringTarget] = None
        self.pending_label: Optional[Label] = None
        self.title = ""

        # viewer
        self.max_grid_power = self.settings.max_grid_power
        self.grid_major = DEFAULT_GRID_MAJOR
        self.width = -1
        self.height = -1
        self.autostart = False
        self.start_from = -1
        self.view_only = False
        self.no_step_back = False
        self.no_report = False
        self.add_poi_labels = False
        self.track: Optional[TrackSettings] = None

        # colours
        self.state_colours: dict[int, Colour] = {}
        self.element_colours: dict[str, Colour] = {}

        # annotations
        self.styles: dict[str, Style] = {
            "LABEL": Style(),
            "ARROW": Style.for_lines(),
            "POLY": Style.for_lines(),
        }
        self.labels: list[Label] = []
        self.arrows: list[Arrow] = []
        self.polygons: list[Polygon] = []

        # pastes
        self.snippets: dict[str, Snippet] = {}
        self.recipes: dict[str, tuple[int, ...]] = {}
        self.pastes: list[PasteEntry] = []
        self.paste_gen = 0
        self.paste_deltas: tuple[int, ...] = ()
        self.paste_every = 0
        self.paste_end = -1
        self.paste_mode = PasteMode.OR
        self.paste_dx = 0
        self.paste_dy = 0
        self.paste_evolve = 0

    @property
    def max_grid_size(self) -> int:
        return 1 << self.max_grid_power

    @property
    def first(self) -> Waypoint:
        """Waypoint zero, open or closed."""
        return self.waypoints[0] if self.waypoints else self.current

    # ── Argument helpers ────────────────────────────────────────────

    def argument_error(self, source: str, kind: str = "numeric", item: str = "argument") -> None:
        """Report a missing or non-numeric argument, eating a bad token."""
        peek = self.reader.peek_token()
        if not peek or is_script_command(peek):
            self.diagnostics.add(source, f"{item} missing")
        else:
            self.diagnostics.add(f"{source} {peek}", f"{item} must be {kind}")
            self.reader.next_token()

    def read_number(
        self,
        source: str,
        low: float | None = None,
        high: float | None = None,
        *,
        integer: bool = False,
        below: float | None = None,
    ) -> Optional[float]:
        """
        Read one numeric argument in ``[low, high]`` (or ``[low, below)``).

        Reports ``argument out of range`` or a missing/non-numeric argument
        and returns None on failure.
        """
        if not self.reader.next_is_numeric():
            self.argument_error(source)
            return None
        value = self.reader.next_as_number()
        if integer:
            value = int(value)
        if (
            (low is not None and value < low)
            or (high is not None and value > high)
            or (below is not None and value >= below)
        ):
            self.diagnostics.add(f"{source} {format_number(value)}", "argument out of range")
            return None
        return value

    def read_coordinate(self, source: str) -> Optional[float]:
        size = self.max_grid_size
        return self.read_number(source, -size, below=2 * size)

    def read_annotation_zoom(self, source: str) -> Optional[float]:
        if not self.reader.next_is_numeric():
            self.argument_error(source)
            return None
        value = self.reader.next_as_number()
        zoom = _annotation_zoom(value)
        if zoom is None:
            self.diagnostics.add(f"{source} {format_number(value)}", "argument out of range")
        return zoom

    def read_fixed(self) -> bool:
        if self.reader.peek_token() == FIXED_WORD:
            self.reader.next_token()
            return True
        return False

    def read_off(self) -> bool:
        if self.reader.peek_token() == OFF_WORD:
            self.reader.next_token()
            return True
        return False

    def read_transform(self) -> Transform:
        transform = Transform.from_word(self.reader.peek_token())
        if transform is None:
            return Transform.IDENTITY
        self.reader.next_token()
        return transform

    def read_position(self) -> tuple[int, int]:
        """Optional ``x y`` pair (either may be omitted)."""
        x = y = 0
        if self.reader.next_is_numeric():
            x = int(self.reader.next_as_number())
        if self.reader.next_is_numeric():
            y = int(self.reader.next_as_number())
        return x, y

    def read_rle(self, first: str) -> str:
        """Join ``first`` with the RLE fragments that follow it."""
        text = first
        while not text.endswith("!"):
            peek = self.reader.peek_token()
            if (
                not peek
                or is_script_command(peek)
                or is_numeric(peek)
                or Transform.from_word(peek) is not None
                or not is_rle_fragment(peek)
            ):
                return text
            text += self.reader.next_token()
        return text

    def copy_initial(self, word: str) -> None:
        if not self.current.is_poi:
            self.diagnostics.add(f"{word} {INITIAL_WORD}", "only valid at a POI")
            return
        self.current.copy_initial(word, self.waypoints[0] if self.waypoints else None, self.diagnostics)

    # ── Waypoint flow ───────────────────────────────────────────────

    def close_waypoint(self, *, poi: bool = False) -> None:
        """Store the current waypoint and open a new one."""
        if self.current.is_poi:
            self.pois.append(self.current)
        else:
            self.waypoints.append(self.current)
        self.current = Waypoint(is_poi=poi)

    # ── Strings ─────────────────────────────────────────────────────

    def substitute(self, text: str) -> str:
        """Expand ``#N``-style variables; unknown ones are left as written."""
        info = self.info
        values = {
            "N": info.name,
            "R": info.rule,
            "A": info.alias or info.rule,
            "O": info.originator,
            "S": info.seed,
            "T": info.program,
            "D": info.neighbourhood,
            VARIABLE_PREFIX: VARIABLE_PREFIX,
        }
        out: list[str] = []
        index = 0
        while index < len(text):
            char = text[index]
            if char == VARIABLE_PREFIX and index + 1 < len(text):
                key = text[index + 1]
                if key in values:
                    out.append(values[key])
                else:
                    out.append(text[index : index + 2])
                index += 2
                continue
            out.append(char)
            index += 1
        return "".join(out)

    def validate_string(self, text: str, target: _StringTarget) -> None:
        first = text.find("\\n")
        if first == -1:
            return
        if target is _StringTarget.TITLE:
            self.diagnostics.add(
                f'TITLE "{shorten(text, 23)}"', "only one line allowed"
            )
        elif target is _StringTarget.MESSAGE and text.find("\\n", first + 2) != -1:
            self.diagnostics.add(f'"{shorten(text, 23)}', "only two lines allowed")

    def finish_string(self, text: str) -> None:
        target = self.string_target or _StringTarget.MESSAGE
        self.string_target = None
        self.validate_string(text, target)
        if target is _StringTarget.TITLE:
            if self.title:
                self.diagnostics.add(
                    f'TITLE "{shorten(text, 20)}"', f'overwrites "{self.title}"'
                )
            self.title = self.substitute(text)
        elif target is _StringTarget.LABEL and self.pending_label is not None:
            self.labels.append(replace(self.pending_label, text=self.substitute(text)))
            self.pending_label = None
        else:
            self.current.message = Setting(self.substitute(text), f'"{shorten(text, 20)}"')

    # ── Main loop ───────────────────────────────────────────────────

    def run(self, text: str) -> Timeline:
        source = script_source(text)
        self.reader = reader = ScriptReader(source)
        # bare script text without a start marker is read whole
        if reader.find_any(START_MARKERS, 0) == -1 and source != text:
            reader.consume_remaining()

        string: Optional[str] = None
        token = reader.next_token()
        while token:
            if string is not None:
                if token.endswith(STRING_DELIMITER):
                    self.finish_string(f"{string} {token[:-1]}")
                    string = None
                else:
                    string = f"{string} {token}"
            elif token.startswith(STRING_DELIMITER):
                if len(token) > 1 and token.endswith(STRING_DELIMITER):
                    self.finish_string(token[1:-1])
                else:
                    string = token[1:]
            else:
                self.dispatch(token)
            token = reader.next_token()

        if string is not None:
            self.diagnostics.add(f"{STRING_DELIMITER}{string}", "unterminated string")

        return self.finish()

    def dispatch(self, token: str) -> None:
        command = lookup(token)
        if command is None:
            self.commands += 1
            self.diagnostics.add(token, "unknown or misspelt command")
            return
        if command is not Command.SCRIPT_END:
            self.commands += 1
        HANDLERS[command](self, command, token)

    # ── End of script ───────────────────────────────────────────────

    def finish(self) -> Timeline:
        diagnostics = self.diagnostics

        if self.waypoints_found and self.track is not None:
            diagnostics.add(self.track.mode.value, "can not be used with Waypoints")
            self.track = None

        if self.track is not None and self.track.mode is TrackMode.LOOP:
            period = self.track.period
            if self.grid_major > 0:
                period *= self.grid_major
            self.first.loop = Setting(period, TrackMode.LOOP.value)

        self.close_waypoint()
        first = self.waypoints[0]

        if self.poi_found and not self.waypoints_found and self.default_poi != -1:
            # the initial POI is also where playback starts
            initial = self.pois[self.default_poi]
            for name in ("x", "y", "zoom", "angle", "tilt", "layers", "depth", "theme", "gps", "step"):
                setting = getattr(initial, name)
                if setting is not None:
                    setattr(first, name, setting)

        check_autofit(self.waypoints, diagnostics)

        if self.pois and self.pois[0].action is PoiAction.PLAY:
            self.autostart = True

        self.check_custom_theme()

        if self.view_only:
            reason = "not possible due to VIEWONLY"
            if self.autostart:
                diagnostics.add("AUTOSTART", reason)
                self.autostart = False
            if self.start_from != -1:
                diagnostics.add(f"STARTFROM {self.start_from}", reason)
                self.start_from = -1
            if first.stop is not None:
                diagnostics.add(f"STOP {format_number(first.stop.value)}", reason)
                first.stop = None
            if first.loop is not None:
                diagnostics.add(f"LOOP {format_number(first.loop.value)}", reason)
                first.loop = None

        if self.add_poi_labels:
            for label in self.labels:
                self.pois.append(
                    Waypoint(
                        x=Setting(label.x, "POIADDLABELS"),
                        y=Setting(label.y, "POIADDLABELS"),
                        zoom=Setting(label.zoom, "POIADDLABELS"),
                        message=Setting(label.text, "POIADDLABELS"),
                        is_poi=True,
                    )
                )

        live = Keyframe.from_camera(self.camera, float(self.settings.refresh_rate), 1)
        chain, pois = build_chain(
            self.waypoints, self.pois, live, self.settings.refresh_rate, diagnostics
        )

        # identical buffers with the same evolution count are evolved once
        evolved: dict[tuple[str, int], tuple[NDArray[np.uint8], int, int]] = {}
        entries = []
        for entry in self.pastes:
            if entry.evolve > 0:
                key = (entry.fingerprint, entry.evolve)
                if key not in evolved:
                    evolved[key] = evolve_cells(entry.cells, entry.evolve)
                cells, dx, dy = evolved[key]
                entry = replace(entry, cells=cells, x=entry.x + dx, y=entry.y + dy)
            entries.append(entry)

        timeline = Timeline(
            keyframes=chain,
            pois=pois,
            pastes=PasteSchedule(tuple(entries)),
            snippets=tuple(self.snippets.values()),
            recipes=dict(self.recipes),
            annotations=AnnotationRegistry(
                labels=tuple(self.labels),
                arrows=tuple(self.arrows),
                polygons=tuple(self.polygons),
            ),
            diagnostics=diagnostics.as_tuple(),
            title=self.title,
            track=self.track,
            state_colours=dict(self.state_colours),
            element_colours=dict(self.element_colours),
            autostart=self.autostart,
            start_from=self.start_from,
            view_only=self.view_only,
            no_step_back=self.no_step_back,
            no_report=self.no_report,
            grid_major=self.grid_major,
            max_grid_power=self.max_grid_power,
            width=self.width,
            height=self.height,
            default_poi=self.default_poi,
            commands=self.commands,
        )
        return timeline

    def check_custom_theme(self) -> None:
        custom = bool(self.element_colours)
        reported = False
        for waypoint in self.waypoints + self.pois:
            if waypoint.theme is not None and waypoint.theme.value == CUSTOM_THEME and not custom:
                if not reported:
                    self.diagnostics.add(f"THEME {CUSTOM_WORD}", "no custom THEME defined")
                    reported = True
                waypoint.theme = None
        first = self.waypoints[0]
        if custom and first.theme is None:
            first.theme = Setting(CUSTOM_THEME, "COLOR")

    # ═══════════════════════════════════════════════════════════════════
    #  Handlers: keyframes and points of interest
    # ═══════════════════════════════════════════════════════════════════

    def cmd_script_start(self, command: Command, word: str) -> None:
        self.diagnostics.add(word, "already in a script block")

    def cmd_script_end(self, command: Command, word: str) -> None:
        if self.reader.find_any(START_MARKERS) == -1:
            self.reader.consume_remaining()

    def cmd_t(self, command: Command, word: str) -> None:
        value = self.read_number(word, 0, integer=True)
        if value is None:
            return
        if value > 0:
            self.close_waypoint()
        self.current.target_gen = Setting(int(value), f"{word} {int(value)}")
        self.waypoints_found = True

    def cmd_pause(self, command: Command, word: str) -> None:
        value = self.read_number(word, 0)
        if value is None:
            return
        value = max(value, SINGLE_FRAME_SECONDS)
        self.close_waypoint()
        self.current.pause_seconds = Setting(value, f"{word} {format_number(value)}")
        self.waypoints_found = True

    def cmd_poi(self, command: Command, word: str) -> None:
        self.close_waypoint(poi=True)
        self.poi_found = True
        if self.reader.peek_token() == INITIAL_WORD:
            self.reader.next_token()
            if self.default_poi != -1:
                self.diagnostics.add(f"{word} {INITIAL_WORD}", "overrides previous initial POI")
            self.default_poi = len(self.pois)

    def cmd_poi_t(self, command: Command, word: str) -> None:
        value = self.read_number(word, 0, integer=True)
        if value is None:
            return
        if not self.current.is_poi:
            self.diagnostics.add(f"{word} {int(value)}", "only valid at a POI")
            return
        self.current.start_gen = int(value)

    def cmd_poi_action(self, command: Command, word: str) -> None:
        action = PoiAction.PLAY if command is Command.POI_PLAY else PoiAction.STOP
        self.current.set_action(action, self.diagnostics)

    def cmd_poi_reset(self, command: Command, word: str) -> None:
        self.current.set_reset(self.diagnostics)

    def cmd_poi_trans(self, command: Command, word: str) -> None:
        value = self.read_number(word, 0, MAX_POI_SPEED, integer=True)
        if value is not None:
            self.current.set_speed(int(value), self.diagnostics)

    def cmd_poi_add_labels(self, command: Command, word: str) -> None:
        self.add_poi_labels = True

    def cmd_all(self, command: Command, word: str) -> None:
        if self.reader.peek_token() != INITIAL_WORD:
            self.diagnostics.add(word, f"must be followed by {INITIAL_WORD}")
            return
        self.reader.next_token()
        if not self.current.is_poi:
            self.diagnostics.add(f"{ALL_WORD} {INITIAL_WORD}", "only valid at a POI")
            return
        self.current.copy_initial_all(self.waypoints[0], self.diagnostics)

    def cmd_initial(self, command: Command, word: str) -> None:
        self.diagnostics.add(word, "must follow POI, ALL or a POI setting")

    def cmd_off(self, command: Command, word: str) -> None:
        self.diagnostics.add(word, "must follow LOOP or STOP")

    # ═══════════════════════════════════════════════════════════════════
    #  Handlers: camera and playback
    # ═══════════════════════════════════════════════════════════════════

    def read_initial(self, command: Command) -> bool:
        """Handle ``<field> INITIAL``; True if it was present."""
        if self.reader.peek_token() != INITIAL_WORD:
            return False
        self.reader.next_token()
        self.copy_initial(command.value)
        return True

    def cmd_position(self, command: Command, word: str) -> None:
        if self.read_initial(command):
            return
        half = self.max_grid_size / 2
        value = self.read_number(word, -half, half)
        if value is not None:
            self.current.set_field(
                command.value.lower(), value, f"{command.value} {format_number(value)}",
                self.diagnostics, self.suppress,
            )

    def cmd_zoom(self, command: Command, word: str) -> None:
        if self.read_initial(command):
            return
        if not self.reader.next_is_numeric():
            self.argument_error(word)
            return
        literal = self.reader.next_as_number()
        zoom = _convert_zoom(literal)
        if zoom is None:
            self.diagnostics.add(f"{word} {format_number(literal)}", "argument out of range")
            return
        self.current.set_field(
            "zoom", zoom, f"{command.value} {format_number(literal)}", self.diagnostics, self.suppress
        )

    def cmd_ranged(self, command: Command, word: str) -> None:
        """ANGLE, TILT, LAYERS, DEPTH and STEP."""
        if self.read_initial(command):
            return
        name, low, high, integer = RANGED_FIELDS[command]
        value = self.read_number(word, low, high, integer=integer)
        if value is not None:
            self.current.set_field(
                name, value, f"{command.value} {format_number(value)}", self.diagnostics, self.suppress
            )

    def cmd_gps(self, command: Command, word: str) -> None:
        if self.read_initial(command):
            return
        value = self.read_number(word, MIN_GPS, integer=True)
        if value is None:
            return
        source = f"{command.value} {int(value)}"
        rate = self.settings.refresh_rate
        if value > rate:
            # faster than the refresh rate: several steps per displayed generation
            step = int(value // rate)
            if step >= 2:
                self.current.set_field(
                    "step", min(step, MAX_STEP), source, self.diagnostics, self.suppress
                )
            value = rate
        self.current.set_field("gps", float(value), source, self.diagnostics, self.suppress)

    def cmd_stop_loop(self, command: Command, word: str) -> None:
        if self.read_initial(command):
            return
        name = command.value.lower()
        # outside a POI STOP and LOOP always belong to waypoint zero
        target = self.current if self.current.is_poi else self.first
        if self.read_off():
            target.set_field(name, -1, f"{command.value} {OFF_WORD}", self.diagnostics, self.suppress)
            return
        value = self.read_number(word, 1, integer=True)
        if value is not None:
            target.set_field(
                name, int(value), f"{command.value} {int(value)}", self.diagnostics, self.suppress
            )

    def cmd_theme(self, command: Command, word: str) -> None:
        if self.read_initial(command):
            return
        peek = self.reader.peek_token()
        if self.reader.next_is_numeric():
            value = self.read_number(word, 0, len(THEMES) - 1, integer=True)
            if value is None:
                return
            theme = int(value)
        elif peek == CUSTOM_WORD:
            self.reader.next_token()
            theme = CUSTOM_THEME
        else:
            theme = theme_from_name(peek) if peek else -1
            if theme == -1:
                if not peek or is_script_command(peek):
                    self.diagnostics.add(word, "argument missing")
                else:
                    self.diagnostics.add(f"{word} {peek}", "unknown theme name")
                    self.reader.next_token()
                return
            self.reader.next_token()
        self.current.set_field(
            "theme", theme, f"{command.value} {theme_name(theme)}", self.diagnostics, self.suppress
        )

    def cmd_interpolation(self, command: Command, word: str) -> None:
        """LINEAR or BEZIER for X, Y, ZOOM or ALL."""
        linear = command is Command.LINEAR
        axis = self.reader.peek_token()
        names = INTERPOLATION_AXES.get(axis)
        if names is None:
            self.argument_error(word, "X, Y, ZOOM or ALL")
            return
        self.reader.next_token()
        source = f"{word} {axis}"
        for name in names:
            current: Setting[bool] | None = getattr(self.current, name)
            if current is not None:
                if current.value == linear:
                    self.diagnostics.add(source, "already defined")
                else:
                    self.diagnostics.overwrites(source, "LINEAR" if current.value else "BEZIER")
            setattr(self.current, name, Setting(linear, source))

    def cmd_autofit(self, command: Command, word: str) -> None:
        self.current.autofit = not self.read_off()

    def cmd_grid(self, command: Command, word: str) -> None:
        self.current.grid = Setting(not self.read_off(), word)

    def cmd_stars(self, command: Command, word: str) -> None:
        self.current.stars = Setting(not self.read_off(), word)

    def cmd_grid_major(self, command: Command, word: str) -> None:
        value = self.read_number(word, MIN_GRID_MAJOR, MAX_GRID_MAJOR, integer=True)
        if value is not None:
            self.grid_major = int(value)

    def cmd_time(self, command: Command, word: str) -> None:
        self.current.interval = True

    # ── Track modes ─────────────────────────────────────────────────

    def read_speeds(self, source: str, count: int) -> tuple[Optional[list[float]], str]:
        speeds: list[float] = []
        for _ in range(count):
            value = self.read_number(source, MIN_TRACK_SPEED, MAX_TRACK_SPEED)
            if value is None:
                return None, source
            speeds.append(value)
            source = f"{source} {format_number(value)}"
        return speeds, source

    def set_track(self, track: TrackSettings, source: str) -> None:
        if self.track is not None:
            self.diagnostics.overwrites(source, self.track.describe())
        self.track = track

    def cmd_track(self, command: Command, word: str) -> None:
        speeds, source = self.read_speeds(word, 2)
        if speeds is not None:
            self.set_track(TrackSettings.uniform(TrackMode.TRACK, *speeds), source)

    def cmd_track_loop(self, command: Command, word: str) -> None:
        period = self.read_number(word, 1, integer=True)
        if period is None:
            return
        speeds, source = self.read_speeds(f"{word} {int(period)}", 2)
        if speeds is not None:
            self.set_track(
                TrackSettings.uniform(TrackMode.LOOP, *speeds, period=int(period)), source
            )

    def cmd_track_box(self, command: Command, word: str) -> None:
        speeds, source = self.read_speeds(word, 4)
        if speeds is None:
            return
        east, south, west, north = speeds
        if west > east:
            self.diagnostics.add(f"{word} W {west:.2f} E {east:.2f}", "W is greater than E")
            return
        if north > south:
            self.diagnostics.add(f"{word} N {north:.2f} S {south:.2f}", "N is greater than S")
            return
        self.set_track(TrackSettings(TrackMode.BOX, east, south, west, north), source)

    # ═══════════════════════════════════════════════════════════════════
    #  Handlers: pastes
    # ═══════════════════════════════════════════════════════════════════

    def make_entry(self, cells: NDArray[np.uint8], x: int, y: int, source: str) -> PasteEntry:
        """A paste entry using the current PASTET/PASTEMODE/PASTEDELTA state."""
        if self.paste_every > 0:
            trigger = Trigger.repeating(self.paste_every, self.paste_gen, self.paste_end)
            dx, dy = self.paste_dx, self.paste_dy
        else:
            trigger = Trigger.at(self.paste_gen, self.paste_deltas)
            dx = dy = 0
        return PasteEntry(
            cells=cells, x=x, y=y, trigger=trigger, mode=self.paste_mode,
            delta_x=dx, delta_y=dy, evolve=self.paste_evolve, source=source,
        )

    def cmd_rle(self, command: Command, word: str) -> None:
        name = self.reader.peek_token()
        if not name or is_script_command(name):
            self.diagnostics.add(word, "argument missing")
            return
        self.reader.next_token()
        if is_numeric(name):
            self.diagnostics.add(f"{word} {name}", "argument must be a name")
            return
        first = self.reader.peek_token()
        if not first or is_script_command(first):
            self.diagnostics.add(f"{word} {name}", "argument missing")
            return
        self.reader.next_token()
        text = self.read_rle(first)
        x, y = self.read_position()
        transform = self.read_transform()
        cells = decode_rle(text)
        if cells is None:
            self.diagnostics.add(f"{word} {name}", "invalid rle")
            return
        if name in self.snippets:
            self.diagnostics.add(f"{word} {name}", "already defined")
        self.snippets[name] = Snippet(name, cells, x, y, transform)

    def cmd_paste(self, command: Command, word: str) -> None:
        first = self.reader.peek_token()
        if not first or is_script_command(first):
            self.diagnostics.add(word, "argument missing")
            return
        self.reader.next_token()
        snippet = self.snippets.get(first)
        if snippet is not None:
            text = first
            cells: Optional[NDArray[np.uint8]] = snippet.placed()
            base_x, base_y = snippet.x, snippet.y
        else:
            text = self.read_rle(first)
            cells = decode_rle(text)
            base_x = base_y = 0
        x, y = self.read_position()
        transform = self.read_transform()
        if cells is None:
            self.diagnostics.add(f"{word} {text}", "invalid name or rle")
            return
        cells = apply_transform(cells, transform)
        x += base_x
        y += base_y
        self.pastes.append(self.make_entry(cells, x, y, text))

        train = self.reader.peek_token()
        if train not in (XT_WORD, YT_WORD):
            return
        self.reader.next_token()
        if not (self.reader.next_is_numeric() and self.reader.forward_is_numeric(1)):
            self.diagnostics.add(f"{word} {train}", "missing number pair")
            return
        # each pair moves the copy and delays it; the paste generation advances
        while self.reader.next_is_numeric() and self.reader.forward_is_numeric(1):
            distance = int(self.reader.next_as_number())
            delay = int(self.reader.next_as_number())
            if delay < 0:
                self.diagnostics.add(f"{word} {train} {distance} {delay}", "argument out of range")
                return
            if train == XT_WORD:
                x += distance
            else:
                y += distance
            self.paste_gen += delay
            self.pastes.append(
                PasteEntry(
                    cells=cells, x=x, y=y, trigger=Trigger.at(self.paste_gen),
                    mode=self.paste_mode, evolve=self.paste_evolve, source=text,
                )
            )

    def read_deltas(self, source: str, *, recipes: bool = False) -> Optional[tuple[int, ...]]:
        """Generation gaps (each >= 0), optionally with named recipes spliced in."""
        deltas: list[int] = []
        while True:
            if self.reader.next_is_numeric():
                value = self.read_number(source, 0, integer=True)
                if value is None:
                    return None
                deltas.append(int(value))
                source = f"{source} {int(value)}"
            elif recipes and self.reader.peek_token() in self.recipes:
                name = self.reader.next_token()
                deltas.extend(self.recipes[name])
                source = f"{source} {name}"
            else:
                return tuple(deltas)

    def cmd_recipe(self, command: Command, word: str) -> None:
        name = self.reader.peek_token()
        if not name or is_script_command(name):
            self.diagnostics.add(word, "argument missing")
            return
        self.reader.next_token()
        if is_numeric(name):
            self.diagnostics.add(f"{word} {name}", "argument must be a name")
            return
        deltas = self.read_deltas(f"{word} {name}")
        if deltas is None:
            return
        if name in self.recipes:
            self.diagnostics.add(f"{word} {name}", "already defined")
        self.recipes[name] = deltas

    def cmd_paste_t(self, command: Command, word: str) -> None:
        if self.reader.next_is_numeric():
            value = self.read_number(word, 0, integer=True)
            if value is None:
                return
            deltas = self.read_deltas(f"{word} {int(value)}", recipes=True)
            if deltas is None:
                return
            self.paste_gen = int(value)
            self.paste_every = 0
            self.paste_end = -1
            self.paste_deltas = deltas
            return

        if self.reader.peek_token() != EVERY_WORD:
            self.argument_error(word)
            return
        self.reader.next_token()
        source = f"{word} {EVERY_WORD}"
        every = self.read_number(source, 1, integer=True)
        if every is None:
            return
        source = f"{source} {int(every)}"
        start, end = 0, -1
        if self.reader.next_is_numeric():
            value = self.read_number(source, 0, integer=True)
            if value is None:
                return
            start = int(value)
            source = f"{source} {start}"
            if self.reader.next_is_numeric():
                value = self.read_number(source, start + every, integer=True)
                if value is None:
                    return
                end = int(value)
        self.paste_every = int(every)
        self.paste_gen = start
        self.paste_end = end
        self.paste_deltas = ()

    def cmd_paste_delta(self, command: Command, word: str) -> None:
        dx = self.read_number(word, -MAX_PASTE_DELTA, MAX_PASTE_DELTA, integer=True)
        if dx is None:
            return
        dy = self.read_number(f"{word} {int(dx)}", -MAX_PASTE_DELTA, MAX_PASTE_DELTA, integer=True)
        if dy is None:
            return
        self.paste_dx, self.paste_dy = int(dx), int(dy)

    def cmd_paste_mode(self, command: Command, word: str) -> None:
        peek = self.reader.peek_token()
        mode = PasteMode.from_word(peek)
        if mode is not None:
            self.reader.next_token()
        elif self.reader.next_is_numeric():
            value = self.read_number(word, 0, MAX_PASTE_MODE, integer=True)
            if value is None:
                return
            mode = PasteMode(int(value))
        else:
            self.argument_error(word, "a paste mode name, 4-digit table or 0..15")
            return
        self.paste_mode = mode

    def cmd_paste_evolve(self, command: Command, word: str) -> None:
        value = self.read_number(word, 0, integer=True)
        if value is not None:
            self.paste_evolve = int(value)

    # ═══════════════════════════════════════════════════════════════════
    #  Handlers: annotations
    # ═══════════════════════════════════════════════════════════════════

    def cmd_label(self, command: Command, word: str) -> None:
        x = self.read_coordinate(word)
        if x is None:
            return
        source = f"{word} {format_number(x)}"
        y = self.read_coordinate(source)
        if y is None:
            return
        source = f"{source} {format_number(y)}"
        zoom = self.read_annotation_zoom(source)
        if zoom is None:
            return
        source = f"{source} {format_number(zoom)}"
        fixed = self.read_fixed()
        if not self.reader.peek_token().startswith(STRING_DELIMITER):
            self.argument_error(source, "a string")
            return
        self.pending_label = Label(x, y, zoom, "", self.styles["LABEL"], fixed)
        self.string_target = _StringTarget.LABEL

    def cmd_arrow(self, command: Command, word: str) -> None:
        source = word
        coords: list[float] = []
        for _ in range(4):
            value = self.read_coordinate(source)
            if value is None:
                return
            coords.append(value)
            source = f"{source} {format_number(value)}"
        zoom = self.read_annotation_zoom(source)
        if zoom is None:
            return
        fixed = self.read_fixed()
        x1, y1, x2, y2 = coords
        self.arrows.append(Arrow(x1, y1, x2, y2, zoom, self.styles["ARROW"], fixed))

    def cmd_polygon(self, command: Command, word: str) -> None:
        size = self.max_grid_size
        coords: list[tuple[float, float]] = []
        zoom: Optional[float] = None
        while self.reader.next_is_numeric():
            x = self.reader.next_as_number()
            if self.reader.next_is_numeric():
                y = self.reader.next_as_number()
                if not (-size <= x < 2 * size and -size <= y < 2 * size):
                    self.diagnostics.add(
                        f"{word} {format_number(x)} {format_number(y)}", "coordinate out of range"
                    )
                    return
                coords.append((x, y))
            else:
                # an unpaired number is the zoom
                zoom = _annotation_zoom(x)
                if zoom is None:
                    self.diagnostics.add(f"{word} {format_number(x)}", "zoom out of range")
                    return
        if len(coords) < 2:
            self.diagnostics.add(word, "requires at least 2 coordinate pairs")
            return
        if zoom is None:
            self.argument_error(word)
            return
        fixed = self.read_fixed()
        self.polygons.append(
            Polygon(tuple(coords), zoom, command is Command.POLY_FILL, self.styles["POLY"], fixed)
        )

    # ── Shared style state ──────────────────────────────────────────

    def update_style(self, command: Command, **changes) -> None:
        kind = _style_kind(command)
        self.styles[kind] = replace(self.styles[kind], **changes)

    def cmd_style_t(self, command: Command, word: str) -> None:
        if self.reader.peek_token() == ALL_WORD:
            self.reader.next_token()
            self.update_style(command, t1=-1, t2=-1, fade=0)
            return
        t1 = self.read_number(word, 0, integer=True)
        if t1 is None:
            return
        source = f"{word} {int(t1)}"
        if not self.reader.next_is_numeric():
            self.argument_error(source)
            return
        t2 = int(self.reader.next_as_number())
        if t2 < t1:
            self.diagnostics.add(f"{source} {t2}", "second argument must be >= first")
            return
        source = f"{source} {t2}"
        limit = (t2 - int(t1)) >> 1
        if not self.reader.next_is_numeric():
            self.argument_error(source)
            return
        fade = int(self.reader.next_as_number())
        if not 0 <= fade <= limit:
            self.diagnostics.add(f"{source} {fade}", f"third argument must from 0 to {limit}")
            return
        self.update_style(command, t1=int(t1), t2=t2, fade=fade)

    def cmd_style_alpha(self, command: Command, word: str) -> None:
        value = self.read_number(word, 0, 1)
        if value is not None:
            self.update_style(command, alpha=value)

    def cmd_style_size(self, command: Command, word: str) -> None:
        if command is Command.LABEL_SIZE:
            value = self.read_number(word, MIN_LABEL_SIZE, MAX_LABEL_SIZE)
            if value is not None:
                self.update_style(command, size=value, size_fixed=self.read_fixed())
            return
        value = self.read_number(word, MIN_LINE_SIZE, MAX_LINE_SIZE)
        if value is None:
            return
        if command is Command.ARROW_SIZE and self.reader.next_is_numeric():
            head = self.read_number(f"{word} {format_number(value)}", 0, 1)
            if head is None:
                return
            self.update_style(command, size=value, head=head)
            return
        self.update_style(command, size=value)

    def cmd_style_angle(self, command: Command, word: str) -> None:
        value = self.read_number(word, 0, below=360)
        if value is not None:
            self.update_style(command, angle=value, angle_fixed=self.read_fixed())

    def cmd_style_track(self, command: Command, word: str) -> None:
        if self.read_fixed():
            self.update_style(command, dx=0.0, dy=0.0)
            return
        speeds, _ = self.read_speeds(word, 2)
        if speeds is not None:
            self.update_style(command, dx=speeds[0], dy=speeds[1])

    def cmd_style_view(self, command: Command, word: str) -> None:
        if self.read_off():
            self.update_style(command, view_distance=-1.0)
            return
        value = self.read_number(word, 0, self.max_grid_size / 2)
        if value is not None:
            self.update_style(command, view_distance=value)

    def cmd_style_zoom_range(self, command: Command, word: str) -> None:
        if self.read_off():
            self.update_style(command, min_zoom=NO_ZOOM_RANGE, max_zoom=NO_ZOOM_RANGE)
            return
        low = self.read_annotation_zoom(word)
        if low is None:
            return
        source = f"{word} {format_number(low)}"
        high = self.read_annotation_zoom(source)
        if high is None:
            return
        if high < low:
            self.diagnostics.add(f"{source} {format_number(high)}", "second argument must be >= first")
            return
        self.update_style(command, min_zoom=low, max_zoom=high)

    def cmd_style_shadow(self, command: Command, word: str) -> None:
        self.update_style(command, shadow=not self.read_off())

    def cmd_label_align(self, command: Command, word: str) -> None:
        peek = self.reader.peek_token()
        if peek not in ALIGN_WORDS:
            self.argument_error(word, "LEFT, CENTER or RIGHT")
            return
        self.reader.next_token()
        self.update_style(command, align=Align(peek))

    def cmd_style_target(self, command: Command, word: str) -> None:
        if self.read_off():
            self.update_style(command, target=None, standoff=0.0)
            return
        x = self.read_coordinate(word)
        if x is None:
            return
        source = f"{word} {format_number(x)}"
        y = self.read_coordinate(source)
        if y is None:
            return
        standoff = 0.0
        if self.reader.next_is_numeric():
            value = self.read_number(f"{source} {format_number(y)}", 0)
            if value is None:
                return
            standoff = value
        self.update_style(command, target=(x, y), standoff=standoff)

    # ═══════════════════════════════════════════════════════════════════
    #  Handlers: colours and viewer
    # ═══════════════════════════════════════════════════════════════════

    def read_colour(self, prefix: str) -> Optional[Colour]:
        """``r g b``, ``#rrggbb`` or a colour name after ``prefix``."""
        reader = self.reader
        if reader.next_is_numeric():
            source = prefix
            components: list[int] = []
            valid = True
            for item in ("RED", "GREEN", "BLUE"):
                if not reader.next_is_numeric():
                    self.argument_error(source, item=item)
                    return None
                value = int(reader.next_as_number())
                source = f"{source} {value}"
                if not 0 <= value <= 255:
                    self.diagnostics.add(source, f"{item} out of range")
                    valid = False
                components.append(value)
            if not valid:
                return None
            return components[0], components[1], components[2]

        peek = reader.peek_token()
        colour = decode_hex(peek) or NAMED_COLOURS.get(peek.lower())
        if colour is not None:
            reader.next_token()
            return colour
        if not peek or is_script_command(peek):
            self.diagnostics.add(prefix, "name missing")
        else:
            reason = "bad hex definition" if peek.startswith("#") else "name not known"
            self.diagnostics.add(f"{prefix} {peek}", reason)
            reader.next_token()
        return None

    def cmd_colour(self, command: Command, word: str) -> None:
        element = self.reader.peek_token()
        if self.reader.next_is_numeric():
            state = int(self.reader.next_as_number())
            prefix = f"{word} {state}"
            colour = self.read_colour(prefix)
            if not 0 <= state <= 255:
                self.diagnostics.add(prefix, "STATE out of range")
                return
            if colour is None:
                return
            previous = self.state_colours.get(state)
            if previous is not None:
                self.diagnostics.overwrites(
                    f"{prefix} {' '.join(map(str, colour))}", " ".join(map(str, previous))
                )
            self.state_colours[state] = colour
            return

        if element not in THEME_ELEMENTS:
            if not element or is_script_command(element):
                self.diagnostics.add(word, "argument missing")
            else:
                self.diagnostics.add(f"{word} {element}", "illegal element")
                self.reader.next_token()
            return

        self.reader.next_token()
        prefix = f"{word} {element}"
        colour = self.read_colour(prefix)
        if colour is None:
            return
        if element in ANNOTATION_ELEMENTS:
            # annotation colours apply to those created afterwards
            self.styles[element] = replace(self.styles[element], colour=colour)
        else:
            previous = self.element_colours.get(element)
            if previous is not None:
                self.diagnostics.overwrites(
                    f"{prefix} {' '.join(map(str, colour))}", " ".join(map(str, previous))
                )
            self.element_colours[element] = colour

    def cmd_title(self, command: Command, word: str) -> None:
        if not self.reader.peek_token().startswith(STRING_DELIMITER):
            self.diagnostics.add(word, "argument must be a quoted string")
            return
        self.string_target = _StringTarget.TITLE

    def cmd_suppress(self, command: Command, word: str) -> None:
        self.suppress.arm_all()

    def cmd_viewer_size(self, command: Command, word: str) -> None:
        if command is Command.WIDTH:
            name, low, high = "width", MIN_VIEWER_WIDTH, MAX_VIEWER_WIDTH
        else:
            name, low, high = "height", MIN_VIEWER_HEIGHT, MAX_VIEWER_HEIGHT
        value = self.read_number(word, low, high, integer=True)
        if value is None:
            return
        previous = getattr(self, name)
        if previous != -1 and not self.suppress.consume(name):
            self.diagnostics.overwrites(f"{command.value} {int(value)}", previous)
        setattr(self, name, int(value))

    def cmd_max_grid_size(self, command: Command, word: str) -> None:
        value = self.read_number(word, MIN_GRID_POWER, MAX_GRID_POWER, integer=True)
        if value is not None:
            self.max_grid_power = int(value)

    def cmd_autostart(self, command: Command, word: str) -> None:
        self.autostart = not self.read_off()

    def cmd_start_from(self, command: Command, word: str) -> None:
        value = self.read_number(word, 0, MAX_START_FROM, integer=True)
        if value is not None:
            self.start_from = int(value)

    def cmd_no_step_back(self, command: Command, word: str) -> None:
        self.no_step_back = True

    def cmd_no_report(self, command: Command, word: str) -> None:
        self.no_report = True

    def cmd_view_only(self, command: Command, word: str) -> None:
        self.view_only = True


# ═══════════════════════════════════════════════════════════════════════
#  Dispatch tables
# ═══════════════════════════════════════════════════════════════════════

RANGED_FIELDS: dict[Command, tuple[str, float, float, bool]] = {
    Command.ANGLE: ("angle", 0, 359, True),
    Command.TILT: ("tilt", MIN_TILT, MAX_TILT, False),
    Command.LAYERS: ("layers", MIN_LAYERS, MAX_LAYERS, True),
    Command.DEPTH: ("depth", MIN_DEPTH, MAX_DEPTH, False),
    Command.STEP: ("step", MIN_STEP, MAX_STEP, True),
}

INTERPOLATION_AXES: dict[str, tuple[str, ...]] = {
    "X": ("x_linear",),
    "Y": ("y_linear",),
    "ZOOM": ("zoom_linear",),
    ALL_WORD: ("x_linear", "y_linear", "zoom_linear"),
}

Handler = Callable[[Interpreter, Command, str], None]

HANDLERS: dict[Command, Handler] = {
    Command.SCRIPT_START: Interpreter.cmd_script_start,
    Command.SCRIPT_END: Interpreter.cmd_script_end,
    # keyframes and points of interest
    Command.T: Interpreter.cmd_t,
    Command.PAUSE: Interpreter.cmd_pause,
    Command.POI: Interpreter.cmd_poi,
    Command.POI_T: Interpreter.cmd_poi_t,
    Command.POI_PLAY: Interpreter.cmd_poi_action,
    Command.POI_STOP: Interpreter.cmd_poi_action,
    Command.POI_RESET: Interpreter.cmd_poi_reset,
    Command.POI_TRANS: Interpreter.cmd_poi_trans,
    Command.POI_ADD_LABELS: Interpreter.cmd_poi_add_labels,
    Command.ALL: Interpreter.cmd_all,
    Command.INITIAL: Interpreter.cmd_initial,
    Command.OFF: Interpreter.cmd_off,
    # camera and playback
    Command.X: Interpreter.cmd_position,
    Command.Y: Interpreter.cmd_position,
    Command.ZOOM: Interpreter.cmd_zoom,
    Command.ANGLE: Interpreter.cmd_ranged,
    Command.TILT: Interpreter.cmd_ranged,
    Command.LAYERS: Interpreter.cmd_ranged,
    Command.DEPTH: Interpreter.cmd_ranged,
    Command.STEP: Interpreter.cmd_ranged,
    Command.LINEAR: Interpreter.cmd_interpolation,
    Command.BEZIER: Interpreter.cmd_interpolation,
    Command.THEME: Interpreter.cmd_theme,
    Command.GPS: Interpreter.cmd_gps,
    Command.STOP: Interpreter.cmd_stop_loop,
    Command.LOOP: Interpreter.cmd_stop_loop,
    Command.AUTOFIT: Interpreter.cmd_autofit,
    Command.GRID: Interpreter.cmd_grid,
    Command.GRID_MAJOR: Interpreter.cmd_grid_major,
    Command.STARS: Interpreter.cmd_stars,
    Command.TIME: Interpreter.cmd_time,
    Command.TRACK: Interpreter.cmd_track,
    Command.TRACK_BOX: Interpreter.cmd_track_box,
    Command.TRACK_LOOP: Interpreter.cmd_track_loop,
    # pastes
    Command.RLE: Interpreter.cmd_rle,
    Command.PASTE: Interpreter.cmd_paste,
    Command.PASTE_T: Interpreter.cmd_paste_t,
    Command.PASTE_DELTA: Interpreter.cmd_paste_delta,
    Command.PASTE_MODE: Interpreter.cmd_paste_mode,
    Command.PASTE_EVOLVE: Interpreter.cmd_paste_evolve,
    Command.RECIPE: Interpreter.cmd_recipe,
    # annotations
    Command.LABEL: Interpreter.cmd_label,
    Command.ARROW: Interpreter.cmd_arrow,
    Command.POLY_LINE: Interpreter.cmd_polygon,
    Command.POLY_FILL: Interpreter.cmd_polygon,
    Command.LABEL_ALIGN: Interpreter.cmd_label_align,
    # colours and viewer
    Command.COLOR: Interpreter.cmd_colour,
    Command.TITLE: Interpreter.cmd_title,
    Command.SUPPRESS: Interpreter.cmd_suppress,
    Command.WIDTH: Interpreter.cmd_viewer_size,
    Command.HEIGHT: Interpreter.cmd_viewer_size,
    Command.MAX_GRID_SIZE: Interpreter.cmd_max_grid_size,
    Command.AUTOSTART: Interpreter.cmd_autostart,
    Command.START_FROM: Interpreter.cmd_start_from,
    Command.NO_STEP_BACK: Interpreter.cmd_no_step_back,
    Command.NO_REPORT: Interpreter.cmd_no_report,
    Command.VIEW_ONLY: Interpreter.cmd_view_only,
}

# LABEL*/ARROW*/POLY* style commands share one handler per setting
_STYLE_HANDLERS: dict[str, Handler] = {
    "T": Interpreter.cmd_style_t,
    "ALPHA": Interpreter.cmd_style_alpha,
    "SIZE": Interpreter.cmd_style_size,
    "ANGLE": Interpreter.cmd_style_angle,
    "TRACK": Interpreter.cmd_style_track,
    "VIEWDIST": Interpreter.cmd_style_view,
    "ZOOMRANGE": Interpreter.cmd_style_zoom_range,
    "SHADOW": Interpreter.cmd_style_shadow,
    "TARGET": Interpreter.cmd_style_target,
}
for _kind in ANNOTATION_ELEMENTS:
    for _suffix, _handler in _STYLE_HANDLERS.items():
        HANDLERS[Command(_kind + _suffix)] = _handler

_unhandled = [command.value for command in Command if command not in HANDLERS]
if _unhandled:
    raise RuntimeError(f"commands without a handler: {', '.join(_unhandled)}")


# ═══════════════════════════════════════════════════════════════════════
#  Entry point
# ═══════════════════════════════════════════════════════════════════════

def interpret(
    text: str,
    info: PatternInfo | None = None,
    settings: ViewerSettings | None = None,
    *,
    camera: Camera | None = None,
) -> Timeline:
    """Parse the script blocks in ``text`` into a ``Timeline``.

    ``camera`` is the live view used to back-fill waypoint zero; it defaults
    to a fresh ``Camera``.  Script problems are reported in
    ``Timeline.diagnostics``; this function does not raise for them.
    """
    timeline = Interpreter(info, settings, camera).run(text)
    if timeline.clean:
        LOGGER.debug(
            "Parsed %d commands: %d keyframes, %d POIs, %d pastes, %d annotations",
            timeline.commands, len(timeline.keyframes), len(timeline.pois),
            len(timeline.pastes), len(timeline.annotations),
        )
    else:
        LOGGER.info(
            "Script has %d problem(s), first: %s",
            len(timeline.diagnostics), timeline.diagnostics[0],
        )
    return timeline


__all__ = [
    "HANDLERS",
    "Interpreter",
    "PatternInfo",
    "decode_hex",
    "interpret",
    "shorten",
]
