import logging
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from life import CUSTOM_THEME, THEMES, Camera
from life_keywords import Command
from life_paste import PasteMode
from life_script import HANDLERS, PatternInfo, decode_hex, interpret, shorten
from life_waypoints import DEFAULT_POI_SPEED, PoiAction


def diagnostics(script: str) -> list[tuple[str, str]]:
    return [tuple(d) for d in interpret(script).diagnostics]


def test_every_command_has_a_handler():
    assert set(HANDLERS) == set(Command)


def test_parse_is_repeatable():
    script = (
        '[[ X 10 ZOOM 2 T 100 X 50 LINEAR X PASTET EVERY 5 10 30 PASTE bo$2bo$3o! 4 4 '
        'LABELT 100 200 20 LABEL 10 20 1 "hello" POI Y 3 POIPLAY ]]'
    )
    assert interpret(script) == interpret(script)


def test_camera_settings_reach_waypoint_zero():
    timeline = interpret("[[ X 10 Y -5 ZOOM 2 ANGLE 45 TILT 2 LAYERS 3 DEPTH 0.5 ]]")
    assert timeline.clean
    first = timeline.keyframes[0]
    assert (first.x, first.y, first.zoom, first.angle) == (10, -5, 2, 45)
    assert (first.tilt, first.layers, first.depth) == (2, 3, 0.5)
    assert not timeline.waypoints_active


def test_unset_fields_come_from_the_live_camera():
    timeline = interpret("[[ ANGLE 90 ]]", camera=Camera(offset_x=12.0, zoom=3.0))
    assert timeline.keyframes[0].x == 12.0
    assert timeline.keyframes[0].zoom == 3.0


def test_unknown_command():
    assert diagnostics("[[ FOO ZOOM 2 ]]") == [("FOO", "unknown or misspelt command")]


def test_argument_errors():
    assert diagnostics("[[ ZOOM ]]") == [("ZOOM", "argument missing")]
    assert diagnostics("[[ ANGLE abc ]]") == [("ANGLE abc", "argument must be numeric")]
    assert diagnostics("[[ ANGLE 400 ]]") == [("ANGLE 400", "argument out of range")]
    assert diagnostics("[[ ZOOM 100 ]]") == [("ZOOM 100", "argument out of range")]


def test_zoom_overwrite_and_suppress():
    assert diagnostics("[[ ZOOM 2 ZOOM 4 ]]") == [("ZOOM 4", "overwrites 2")]
    assert diagnostics("[[ ZOOM -2 Z 4 ]]") == [("ZOOM 4", "overwrites -2")]
    timeline = interpret("[[ SUPPRESS ZOOM 2 ZOOM 4 ]]")
    assert timeline.clean
    assert timeline.keyframes[0].zoom == 4


def test_negative_zoom_is_reciprocal():
    assert interpret("[[ ZOOM -4 ]]").keyframes[0].zoom == pytest.approx(0.25)


def test_waypoint_chain_timing():
    timeline = interpret("[[ X 0 T 120 X 100 LINEAR X ]]")
    assert timeline.clean
    assert len(timeline.keyframes) == 2
    second = timeline.keyframes[1]
    assert second.target_gen == 120
    assert second.target_time == pytest.approx(2000.0)
    assert second.x_linear
    assert not timeline.keyframes[0].x_linear


def test_pause_adds_wall_time():
    timeline = interpret("[[ T 60 PAUSE 2 ]]")
    assert timeline.keyframes[-1].target_time == pytest.approx(3000.0)
    assert timeline.keyframes[-1].target_gen == 60


def test_target_generation_must_increase():
    assert diagnostics("[[ T 100 T 50 ]]") == [
        ("T 50", "target generation must be later than previous (100)")
    ]


def test_gps_above_refresh_rate_becomes_steps():
    first = interpret("[[ GPS 240 ]]").keyframes[0]
    assert first.step == 4
    assert first.gps == 60


def test_stop_and_loop_belong_to_waypoint_zero():
    timeline = interpret("[[ T 100 STOP 50 ]]")
    assert timeline.stop_generation == 50
    assert interpret("[[ LOOP 30 LOOP OFF ]]").loop_generation == -1


def test_interpolation_modes():
    assert diagnostics("[[ LINEAR X LINEAR X ]]") == [("LINEAR X", "already defined")]
    assert diagnostics("[[ LINEAR ALL BEZIER ZOOM ]]") == [("BEZIER ZOOM", "overwrites LINEAR")]
    assert diagnostics("[[ LINEAR Q ]]") == [("LINEAR Q", "argument must be X, Y, ZOOM or ALL")]


def test_themes():
    assert interpret("[[ THEME Ocean ]]").keyframes[0].theme == THEMES.index("Ocean")
    assert interpret("[[ THEME 3 ]]").keyframes[0].theme == 3
    assert diagnostics("[[ THEME Bogus ]]") == [("THEME Bogus", "unknown theme name")]

    timeline = interpret("[[ THEME CUSTOM ]]")
    assert [tuple(d) for d in timeline.diagnostics] == [("THEME CUSTOM", "no custom THEME defined")]
    assert timeline.keyframes[0].theme == Camera().theme


def test_colours_make_a_custom_theme():
    timeline = interpret("[[ COLOR BACKGROUND 0 0 64 COLOUR ALIVE #00ff00 COLOR DEAD navy ]]")
    assert timeline.clean
    assert timeline.custom_theme
    assert timeline.element_colours == {
        "BACKGROUND": (0, 0, 64), "ALIVE": (0, 255, 0), "DEAD": (0, 0, 128),
    }
    assert timeline.keyframes[0].theme == CUSTOM_THEME


def test_colour_errors():
    assert diagnostics("[[ COLOR ALIVE 300 0 0 ]]") == [("COLOR ALIVE 300", "RED out of range")]
    assert diagnostics("[[ COLOR FOO ]]") == [("COLOR FOO", "illegal element")]
    assert diagnostics("[[ COLOR ALIVE bogus ]]") == [("COLOR ALIVE bogus", "name not known")]
    assert diagnostics("[[ COLOR ALIVE #zzzzzz ]]") == [("COLOR ALIVE #zzzzzz", "bad hex definition")]
    assert diagnostics("[[ COLOR 1 red COLOR 1 blue ]]") == [("COLOR 1 0 0 255", "overwrites 255 0 0")]


def test_annotation_colour_does_not_make_a_custom_theme():
    timeline = interpret('[[ COLOR LABEL red LABEL 0 0 1 "x" ]]')
    assert not timeline.custom_theme
    assert timeline.annotations.labels[0].style.colour == (255, 0, 0)


def test_label_with_style_and_variables():
    timeline = interpret(
        '[[ LABELT 100 200 20 LABELSIZE 24 FIXED LABELALIGN LEFT LABEL 10 20 1 "hello #N" ]]',
        PatternInfo(name="Gun"),
    )
    assert timeline.clean
    label = timeline.annotations.labels[0]
    assert label.text == "hello Gun"
    assert (label.x, label.y, label.zoom) == (10, 20, 1)
    assert (label.style.t1, label.style.t2, label.style.fade) == (100, 200, 20)
    assert label.style.size == 24
    assert label.style.size_fixed
    assert label.style.align.value == "LEFT"


def test_label_timing_errors():
    assert diagnostics("[[ LABELT 100 200 60 ]]") == [
        ("LABELT 100 200 60", "third argument must from 0 to 50")
    ]
    assert diagnostics("[[ ARROWT 100 50 0 ]]")[0] == ("ARROWT 100 50", "second argument must be >= first")
    assert diagnostics("[[ LABEL 0 0 1 ]]") == [("LABEL 0 0 1", "argument missing")]


def test_style_applies_only_to_later_annotations():
    timeline = interpret("[[ ARROW 0 0 5 5 1 ARROWALPHA 0.5 ARROW 1 1 6 6 1 FIXED ]]")
    first, second = timeline.annotations.arrows
    assert first.style.alpha == 1.0
    assert second.style.alpha == 0.5
    assert second.position_fixed


def test_polygons():
    timeline = interpret("[[ POLYFILL 0 0 10 0 10 10 2 ]]")
    polygon = timeline.annotations.polygons[0]
    assert polygon.coords == ((0, 0), (10, 0), (10, 10))
    assert polygon.zoom == 2
    assert polygon.filled
    assert diagnostics("[[ POLYLINE 0 0 1 ]]") == [("POLYLINE", "requires at least 2 coordinate pairs")]


def test_title_and_messages():
    timeline = interpret('[[ TITLE "My #N" "Hello there" ]]', PatternInfo(name="Gun"))
    assert timeline.title == "My Gun"
    assert timeline.keyframes[0].message == "Hello there"
    assert diagnostics('[[ TITLE hello ]]')[0] == ("TITLE", "argument must be a quoted string")
    assert diagnostics('[[ "oops ]]') == [('"oops ]]', "unterminated string")]


def test_repeating_paste_schedule():
    timeline = interpret("[[ PASTET EVERY 5 10 30 PASTE bo$2bo$3o! ]]")
    entry = timeline.pastes.entries[0]
    assert entry.trigger.schedule(40) == [10, 15, 20, 25, 30]
    assert diagnostics("[[ PASTET EVERY 5 10 12 ]]") == [("PASTET EVERY 5 10 12", "argument out of range")]


def test_paste_delta_applies_to_repeating_pastes_only():
    timeline = interpret(
        "[[ PASTEDELTA 4 0 PASTET EVERY 10 PASTE 2o$2o! 0 0 PASTET 5 PASTE 2o$2o! 0 0 ]]"
    )
    repeating, single = timeline.pastes.entries
    assert repeating.position(20) == (8, 0)
    assert single.delta_x == 0
    assert single.trigger.generations == (5,)


def test_named_rle_snippets_and_modes():
    timeline = interpret("[[ RLE bar 3o! 0 0 RCW PASTEMODE XOR PASTE bar 5 5 FLIPX ]]")
    assert timeline.clean
    entry = timeline.pastes.entries[0]
    assert entry.cells.shape == (3, 1)
    assert (entry.x, entry.y) == (5, 5)
    assert entry.mode is PasteMode.XOR
    assert entry.source == "bar"
    assert [s.name for s in timeline.snippets] == ["bar"]
    assert diagnostics("[[ PASTEMODE FOO ]]") == [
        ("PASTEMODE FOO", "argument must be a paste mode name, 4-digit table or 0..15")
    ]
    assert diagnostics("[[ PASTE glider ]]") == [("PASTE glider", "invalid name or rle")]


def test_paste_trains():
    timeline = interpret("[[ PASTE 3o! 0 0 XT 10 5 10 5 ]]")
    entries = timeline.pastes.entries
    assert [e.x for e in entries] == [0, 10, 20]
    assert [e.trigger.generations for e in entries] == [(0,), (5,), (10,)]


def test_paste_delays_never_go_backwards():
    assert diagnostics("[[ PASTET 10 -5 PASTE o! ]]") == [("PASTET 10 -5", "argument out of range")]
    timeline = interpret("[[ PASTET 10 -5 PASTE o! ]]")
    assert timeline.pastes.entries[0].trigger.generations == (0,)

    timeline = interpret("[[ PASTET 10 0 5 PASTE o! ]]")
    assert timeline.clean
    assert timeline.pastes.entries[0].trigger.generations == (10, 10, 15)

    assert diagnostics("[[ PASTE o! 0 0 XT 5 -3 ]]") == [("PASTE XT 5 -3", "argument out of range")]


def test_recipes_expand_inside_paste_timing():
    timeline = interpret("[[ RECIPE hop 5 10 PASTET 20 hop 1 hop PASTE o! ]]")
    assert timeline.clean
    assert timeline.recipes == {"hop": (5, 10)}
    assert timeline.pastes.entries[0].trigger.generations == (20, 25, 35, 36, 41, 51)

    assert diagnostics("[[ RECIPE ]]") == [("RECIPE", "argument missing")]
    assert diagnostics("[[ RECIPE 5 ]]") == [("RECIPE 5", "argument must be a name")]
    assert diagnostics("[[ RECIPE hop 1 RECIPE hop 2 ]]") == [("RECIPE hop", "already defined")]
    assert diagnostics("[[ RECIPE hop 1 -2 ]]") == [("RECIPE hop 1 -2", "argument out of range")]


@pytest.mark.parametrize(
    "word, mode",
    [
        ("NOTY", PasteMode.NOTY),
        ("NOR", PasteMode.NOR),
        ("0110", PasteMode.XOR),
        ("1101", PasteMode.MODE_1101),
        ("12", PasteMode.NOTX),
        ("NOT", PasteMode.NOTX),
        ("COPY", PasteMode.X),
        ("0", PasteMode.ZERO),
    ],
)
def test_paste_modes_by_name_table_or_number(word, mode):
    timeline = interpret(f"[[ PASTEMODE {word} PASTE o! ]]")
    assert timeline.clean
    assert timeline.pastes.entries[0].mode is mode


def test_paste_mode_number_out_of_range():
    assert diagnostics("[[ PASTEMODE 16 ]]") == [("PASTEMODE 16", "argument out of range")]


def test_pastes_can_be_evolved_before_playback():
    timeline = interpret("[[ PASTEEVOLVE 1 PASTE 3o! 0 0 ]]")
    entry = timeline.pastes.entries[0]
    assert entry.cells.shape == (3, 1)
    assert (entry.x, entry.y) == (1, -1)


def test_points_of_interest():
    timeline = interpret("[[ ZOOM 2 POI X 10 ZOOM INITIAL POIPLAY POITRANS 30 POI INITIAL Y 4 ]]")
    assert timeline.clean
    first, second = timeline.pois
    assert (first.x, first.zoom) == (10, 2)
    assert first.action is PoiAction.PLAY
    assert first.speed == 30
    assert timeline.autostart
    assert timeline.default_poi == 1
    assert second.y == 4


def test_poi_transition_speed_overwrite():
    assert diagnostics("[[ POI POITRANS 12 POITRANS 20 ]]") == [("POITRANS 20", "overwrites 12")]
    assert interpret("[[ POI POITRANS 20 ]]").pois[0].speed == 20
    assert interpret("[[ POI X 1 ]]").pois[0].speed == DEFAULT_POI_SPEED


def test_autofit_conflict_names_zoom_as_written():
    assert diagnostics("[[ AUTOFIT X 5 ZOOM -2 ]]") == [("AUTOFIT", "overwrites X 5 and ZOOM -2")]


def test_poi_only_commands():
    assert diagnostics("[[ X INITIAL ]]") == [("X INITIAL", "only valid at a POI")]
    assert diagnostics("[[ POIT 5 ]]") == [("POIT 5", "only valid at a POI")]
    assert diagnostics("[[ ALL ]]") == [("ALL", "must be followed by INITIAL")]
    assert diagnostics("[[ OFF ]]") == [("OFF", "must follow LOOP or STOP")]


def test_add_labels_as_points_of_interest():
    timeline = interpret('[[ POIADDLABELS LABEL 5 6 2 "spot" ]]')
    poi = timeline.pois[-1]
    assert (poi.x, poi.y, poi.zoom, poi.message) == (5, 6, 2, "spot")


def test_track_modes():
    timeline = interpret("[[ TRACK 0.5 -0.25 ]]")
    assert timeline.track.velocity == (0.5, -0.25)
    assert diagnostics("[[ TRACK 1 0 T 10 ]]") == [("TRACK", "can not be used with Waypoints")]
    assert diagnostics("[[ TRACKBOX 0 0 1 0 ]]") == [("TRACKBOX W 1.00 E 0.00", "W is greater than E")]
    assert diagnostics("[[ TRACK 1 0 TRACK 0 1 ]]") == [("TRACK 0 1", "overwrites TRACK 1 0")]


def test_viewer_settings():
    timeline = interpret("[[ WIDTH 600 HEIGHT 400 GRIDMAJOR 5 MAXGRIDSIZE 10 NOSTEPBACK NOREPORT ]]")
    assert timeline.clean
    assert (timeline.width, timeline.height, timeline.grid_major) == (600, 400, 5)
    assert timeline.max_grid_power == 10
    assert timeline.no_step_back and timeline.no_report
    assert diagnostics("[[ WIDTH 600 WIDTH 800 ]]") == [("WIDTH 800", "overwrites 600")]


def test_view_only_cancels_playback_settings():
    timeline = interpret("[[ AUTOSTART STARTFROM 50 VIEWONLY ]]")
    assert not timeline.autostart
    assert timeline.start_from == -1
    assert [tuple(d) for d in timeline.diagnostics] == [
        ("AUTOSTART", "not possible due to VIEWONLY"),
        ("STARTFROM 50", "not possible due to VIEWONLY"),
    ]


def test_pattern_documents():
    document = "#N Glider\n#C [[ ZOOM 4\n#C ]]\nx = 3, y = 3, rule = B3/S23\nbo$2bo$3o!\n"
    assert interpret(document).keyframes[0].zoom == 4

    # comments without a script block are not commands
    unmarked = "#C ZOOM 4\nx = 3, y = 3\nbo$2bo$3o!\n"
    timeline = interpret(unmarked)
    assert timeline.clean
    assert timeline.commands == 0


def test_bare_script_text_needs_no_markers():
    assert interpret("ZOOM 4").keyframes[0].zoom == 4


def test_nested_start_marker():
    assert diagnostics("[[ [[ ]]") == [("[[", "already in a script block")]


def test_helpers():
    assert decode_hex("#ff8000") == (255, 128, 0)
    assert decode_hex("#ff80") is None
    assert shorten("abcdefgh", 5) == "abcd..."
    assert shorten("abc", 5) == "abc"


def test_problems_are_logged(caplog):
    caplog.set_level(logging.INFO, logger="lifescript.script")
    interpret("[[ FOO ]]")
    assert "Script has 1 problem(s)" in caplog.text
