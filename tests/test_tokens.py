import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from life_tokens import ScriptReader, as_number, format_number, is_numeric, script_source


def test_reader_splits_on_whitespace_and_braces():
    reader = ScriptReader("[[ X 10{Y 20}\n  ZOOM\t-2 ]]")
    tokens = []
    while not reader.exhausted:
        tokens.append(reader.next_token())
    assert tokens == ["[[", "X", "10", "Y", "20", "ZOOM", "-2", "]]"]
    assert reader.next_token() == ""


def test_numeric_tokens_include_fractions():
    assert is_numeric("12")
    assert is_numeric("-0.5")
    assert is_numeric("3/4")
    assert not is_numeric("abc")
    assert not is_numeric("1/x")
    assert not is_numeric("")
    assert as_number("3/4") == pytest.approx(0.75)
    assert as_number("5/0") == 0.0
    with pytest.raises(ValueError):
        as_number("ZOOM")


def test_format_number_drops_integral_decimals():
    assert format_number(2.0) == "2"
    assert format_number(-16) == "-16"
    assert format_number(0.5) == "0.5"


def test_peek_and_search_positions():
    reader = ScriptReader("A B C B D")
    assert reader.peek_token() == "A"
    assert reader.peek_token(2) == "C"
    assert reader.find_token("B") == 1
    assert reader.peek_token() == "C"
    assert reader.find_token("B") == 3
    assert reader.find_token("Z") == -1
    assert reader.position == 4
    reader.step_back()
    assert reader.next_token() == "B"
    assert reader.find_any(("D", "E")) == 4
    assert reader.exhausted


def test_forward_numeric_lookahead():
    reader = ScriptReader("XT 10 5 T")
    reader.next_token()
    assert reader.next_is_numeric()
    assert reader.forward_is_numeric(1)
    assert not reader.forward_is_numeric(2)
    assert reader.next_as_number() == 10.0


def test_script_source_uses_comment_lines_of_documents():
    document = "#N Glider\n#C [[ ZOOM 4\n#C ]]\nx = 3, y = 3\nbo$2bo$3o!\n"
    source = script_source(document)
    assert "ZOOM 4" in source
    assert "Glider" not in source
    assert "bo$2bo" not in source

    bare = "[[ ZOOM 4 ]]"
    assert script_source(bare) == bare
