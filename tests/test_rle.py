import sys
from pathlib import Path

import numpy as np

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from life_rle import (
    Transform,
    apply_transform,
    decode_rle,
    encode_rle,
    is_rle_fragment,
    read_pattern,
)


def test_decode_glider():
    cells = decode_rle("bo$2bo$3o!")
    assert cells is not None
    assert cells.shape == (3, 3)
    assert int(cells.sum()) == 5
    assert cells[0].tolist() == [0, 1, 0]
    assert cells[2].tolist() == [1, 1, 1]


def test_decode_rejects_bad_or_empty_text():
    assert decode_rle("glider") is None
    assert decode_rle("3b!") is None
    assert decode_rle("") is None


def test_decode_multistate_letters():
    cells = decode_rle("2A$.C!")
    assert cells is not None
    assert cells.tolist() == [[1, 1], [0, 3]]
    wide = decode_rle("pA!")
    assert wide is not None
    assert int(wide[0, 0]) == 25


def test_encode_two_state_cells():
    cells = np.array([[0, 1, 0], [0, 0, 1], [1, 1, 1]], dtype=np.uint8)
    assert encode_rle(cells) == "bo$2bo$3o!"


def test_transforms():
    cells = np.array([[1, 0], [0, 0]], dtype=np.uint8)
    assert apply_transform(cells, Transform.RCW).tolist() == [[0, 1], [0, 0]]
    assert apply_transform(cells, Transform.RCCW).tolist() == [[0, 0], [1, 0]]
    assert apply_transform(cells, Transform.FLIP).tolist() == [[0, 0], [0, 1]]
    assert apply_transform(cells, Transform.FLIP_X).tolist() == [[0, 1], [0, 0]]
    assert apply_transform(cells, Transform.FLIP_Y).tolist() == [[0, 0], [1, 0]]
    assert apply_transform(cells, Transform.IDENTITY).tolist() == cells.tolist()
    assert Transform.from_word("SWAPXY") is Transform.SWAP_XY
    assert Transform.from_word("SIDEWAYS") is None


def test_rle_fragments():
    assert is_rle_fragment("bo$2bo$3o!")
    assert not is_rle_fragment("123")
    assert not is_rle_fragment("glider")


def test_read_pattern_metadata():
    document = (
        "#N Blinker\n"
        "#O John Conway\n"
        "#C [[ ZOOM 4 ]]\n"
        "x = 3, y = 1, rule = B3/S23\n"
        "3o!\n"
    )
    pattern = read_pattern(document)
    assert pattern.name == "Blinker"
    assert pattern.originator == "John Conway"
    assert pattern.rule == "B3/S23"
    assert pattern.cells is not None
    assert pattern.cells.tolist() == [[1, 1, 1]]
