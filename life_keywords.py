"""
Keyword table for life-script.

Every command word maps to exactly one member of the closed ``Command``
enumeration; the interpreter keeps a handler for each member.  Argument
words (``OFF``, ``FIXED``, transforms, paste modes, ...) are listed
separately so the interpreter can tell "a missing argument" from "a bad
argument".
"""

from __future__ import annotations

import enum


class Command(enum.Enum):
    # block markers
    SCRIPT_START = "[["
    SCRIPT_END = "]]"

    # keyframes and points of interest
    T = "T"
    PAUSE = "PAUSE"
    POI = "POI"
    POI_T = "POIT"
    POI_PLAY = "POIPLAY"
    POI_STOP = "POISTOP"
    POI_RESET = "POIRESET"
    POI_TRANS = "POITRANS"
    POI_ADD_LABELS = "POIADDLABELS"
    ALL = "ALL"
    INITIAL = "INITIAL"
    OFF = "OFF"

    # camera and playback
    X = "X"
    Y = "Y"
    ZOOM = "ZOOM"
    ANGLE = "ANGLE"
    TILT = "TILT"
    LAYERS = "LAYERS"
    DEPTH = "DEPTH"
    LINEAR = "LINEAR"
    BEZIER = "BEZIER"
    THEME = "THEME"
    GPS = "GPS"
    STEP = "STEP"
    STOP = "STOP"
    LOOP = "LOOP"
    AUTOFIT = "AUTOFIT"
    GRID = "GRID"
    GRID_MAJOR = "GRIDMAJOR"
    STARS = "STARS"
    TIME = "TIME"
    TRACK = "TRACK"
    TRACK_BOX = "TRACKBOX"
    TRACK_LOOP = "TRACKLOOP"

    # pastes
    RLE = "RLE"
    PASTE = "PASTE"
    PASTE_T = "PASTET"
    PASTE_DELTA = "PASTEDELTA"
    PASTE_MODE = "PASTEMODE"
    PASTE_EVOLVE = "PASTEEVOLVE"
    RECIPE = "RECIPE"

    # annotations
    LABEL = "LABEL"
    LABEL_T = "LABELT"
    LABEL_ALPHA = "LABELALPHA"
    LABEL_SIZE = "LABELSIZE"
    LABEL_ANGLE = "LABELANGLE"
    LABEL_TRACK = "LABELTRACK"
    LABEL_VIEW = "LABELVIEWDIST"
    LABEL_ZOOM_RANGE = "LABELZOOMRANGE"
    LABEL_SHADOW = "LABELSHADOW"
    LABEL_ALIGN = "LABELALIGN"
    LABEL_TARGET = "LABELTARGET"
    ARROW = "ARROW"
    ARROW_T = "ARROWT"
    ARROW_ALPHA = "ARROWALPHA"
    ARROW_SIZE = "ARROWSIZE"
    ARROW_ANGLE = "ARROWANGLE"
    ARROW_TRACK = "ARROWTRACK"
    ARROW_VIEW = "ARROWVIEWDIST"
    ARROW_ZOOM_RANGE = "ARROWZOOMRANGE"
    ARROW_SHADOW = "ARROWSHADOW"
    ARROW_TARGET = "ARROWTARGET"
    POLY_LINE = "POLYLINE"
    POLY_FILL = "POLYFILL"
    POLY_T = "POLYT"
    POLY_ALPHA = "POLYALPHA"
    POLY_SIZE = "POLYSIZE"
    POLY_ANGLE = "POLYANGLE"
    POLY_TRACK = "POLYTRACK"
    POLY_VIEW = "POLYVIEWDIST"
    POLY_ZOOM_RANGE = "POLYZOOMRANGE"
    POLY_SHADOW = "POLYSHADOW"
    POLY_TARGET = "POLYTARGET"

    # colours and viewer
    COLOR = "COLOR"
    TITLE = "TITLE"
    SUPPRESS = "SUPPRESS"
    WIDTH = "WIDTH"
    HEIGHT = "HEIGHT"
    MAX_GRID_SIZE = "MAXGRIDSIZE"
    AUTOSTART = "AUTOSTART"
    START_FROM = "STARTFROM"
    NO_STEP_BACK = "NOSTEPBACK"
    NO_REPORT = "NOREPORT"
    VIEW_ONLY = "VIEWONLY"


# Aliases share a handler with their canonical command
ALIASES: dict[str, Command] = {
    "SCRIPT": Command.SCRIPT_START,
    "ENDSCRIPT": Command.SCRIPT_END,
    "Z": Command.ZOOM,
    "COLOUR": Command.COLOR,
}

KEYWORDS: dict[str, Command] = {c.value: c for c in Command} | ALIASES

START_MARKERS: tuple[str, ...] = ("[[", "SCRIPT")
END_MARKERS: tuple[str, ...] = ("]]", "ENDSCRIPT")

# ── Argument words ──────────────────────────────────────────────────────
OFF_WORD = "OFF"
INITIAL_WORD = "INITIAL"
ALL_WORD = "ALL"
FIXED_WORD = "FIXED"
EVERY_WORD = "EVERY"
CUSTOM_WORD = "CUSTOM"
XT_WORD = "XT"
YT_WORD = "YT"
STRING_DELIMITER = '"'
VARIABLE_PREFIX = "#"

ALIGN_WORDS: tuple[str, ...] = ("LEFT", "CENTER", "RIGHT")
PASTE_MODE_WORDS: tuple[str, ...] = (
    "ZERO", "AND", "X", "DIFF", "Y", "XOR", "OR", "NOR",
    "XNOR", "NOTY", "NOTX", "NAND", "ONE", "COPY", "NOT",
)
MAX_PASTE_MODE = 15
TRANSFORM_WORDS: tuple[str, ...] = (
    "IDENTITY", "FLIP", "FLIPX", "FLIPY", "SWAPXY", "SWAPXYFLIP", "RCW", "RCCW",
)

RESERVED_WORDS: frozenset[str] = frozenset(
    (OFF_WORD, INITIAL_WORD, ALL_WORD, EVERY_WORD, XT_WORD, YT_WORD)
    + PASTE_MODE_WORDS
)


def lookup(token: str) -> Command | None:
    return KEYWORDS.get(token)


def is_script_command(token: str) -> bool:
    """True for any word that would start or qualify a command."""
    return token in KEYWORDS or token in RESERVED_WORDS


# ── Ranges ──────────────────────────────────────────────────────────────
REFRESH_RATE = 60
MIN_GPS = 1
MIN_STEP, MAX_STEP = 1, 64
MIN_ZOOM, MAX_ZOOM = 0.0625, 64.0
MIN_NEG_ZOOM, MAX_NEG_ZOOM = -16.0, -1.0
MIN_ANNOTATION_ZOOM, MAX_ANNOTATION_ZOOM = 0.0625, 64.0
MIN_TILT, MAX_TILT = 1.0, 5.0
MIN_LAYERS, MAX_LAYERS = 1, 10
MIN_DEPTH, MAX_DEPTH = 0.0, 1.0
MIN_TRACK_SPEED, MAX_TRACK_SPEED = -2.0, 2.0
MAX_PASTE_DELTA = 4096
MIN_GRID_POWER, MAX_GRID_POWER = 9, 14
MIN_GRID_MAJOR, MAX_GRID_MAJOR = 0, 16
MIN_LINE_SIZE, MAX_LINE_SIZE = 1.0, 16.0
MIN_LABEL_SIZE, MAX_LABEL_SIZE = 4.0, 128.0
DEFAULT_LABEL_SIZE = 18.0
DEFAULT_LINE_SIZE = 2.0
DEFAULT_ARROW_HEAD = 0.1
MIN_VIEWER_WIDTH, MAX_VIEWER_WIDTH = 480, 4096
MIN_VIEWER_HEIGHT, MAX_VIEWER_HEIGHT = 240, 4096
SINGLE_FRAME_SECONDS = 1.0 / REFRESH_RATE
MAX_START_FROM = 1_000_000


__all__ = [
    "ALIASES",
    "Command",
    "KEYWORDS",
    "RESERVED_WORDS",
    "is_script_command",
    "lookup",
]
