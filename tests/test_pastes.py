import sys
from pathlib import Path

import numpy as np
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from life import LifeEngine
from life_paste import (
    PasteEntry,
    PasteMode,
    PasteSchedule,
    Snippet,
    Trigger,
    apply_paste,
    blend,
    evolve_cells,
    evolve_entry,
)
from life_rle import Transform


def cells(rows: list[list[int]]) -> np.ndarray:
    return np.array(rows, dtype=np.uint8)


def test_every_rule_respects_start_and_end():
    assert Trigger.repeating(5, 10, 30).schedule(40) == [10, 15, 20, 25, 30]
    assert Trigger.repeating(5, 10, 29).schedule(40) == [10, 15, 20, 25]
    assert Trigger.repeating(5, 10, 30).last == 30
    assert Trigger.repeating(5, 10).last == -1


def test_absolute_trigger_deltas_accumulate():
    trigger = Trigger.at(3, (2, 4))
    assert trigger.generations == (3, 5, 9)
    assert trigger.fires(5)
    assert not trigger.fires(4)
    assert trigger.last == 9


def test_blend_modes():
    dest = cells([[1, 1], [0, 1]])
    src = cells([[1, 0], [1, 1]])
    assert blend(dest, src, PasteMode.OR).tolist() == [[1, 1], [1, 1]]
    assert blend(dest, src, PasteMode.COPY).tolist() == [[1, 0], [1, 1]]
    assert blend(dest, src, PasteMode.XOR).tolist() == [[0, 1], [1, 0]]
    assert blend(dest, src, PasteMode.AND).tolist() == [[1, 0], [0, 1]]
    assert blend(dest, src, PasteMode.NOT).tolist() == [[0, 1], [0, 0]]


def test_blend_truth_table_covers_every_cell_pair():
    # pattern/grid pairs: (1,1) (0,1) / (1,0) (0,0)
    dest = cells([[1, 1], [0, 0]])
    src = cells([[1, 0], [1, 0]])
    expected = {
        PasteMode.ZERO: [[0, 0], [0, 0]],
        PasteMode.ONE: [[1, 1], [1, 1]],
        PasteMode.NOR: [[0, 0], [0, 1]],
        PasteMode.XNOR: [[1, 0], [0, 1]],
        PasteMode.DIFF: [[0, 1], [0, 0]],
        PasteMode.Y: [[1, 1], [0, 0]],
        PasteMode.NOTY: [[0, 0], [1, 1]],
        PasteMode.MODE_0010: [[0, 0], [1, 0]],
        PasteMode.NAND: [[0, 1], [1, 1]],
    }
    for mode, result in expected.items():
        assert blend(dest, src, mode).tolist() == result, mode.word


def test_paste_mode_words():
    assert PasteMode.from_word("0110") is PasteMode.XOR
    assert PasteMode.from_word("0010") is PasteMode.MODE_0010
    assert PasteMode.from_word("NOT") is PasteMode.NOTX
    assert PasteMode.from_word("COPY") is PasteMode.X
    assert PasteMode.from_word("MODE_0010") is None
    assert PasteMode.from_word("FOO") is None
    assert PasteMode.MODE_1011.word == "1011"
    assert PasteMode.NOT.word == "NOTX"


def test_negative_paste_delta_is_rejected():
    with pytest.raises(ValueError):
        Trigger.at(10, (4, -5))


def test_repeating_paste_moves_by_delta():
    entry = PasteEntry(
        cells=cells([[1]]), x=0, y=0, trigger=Trigger.repeating(10), delta_x=5, delta_y=-1,
    )
    assert entry.position(0) == (0, 0)
    assert entry.position(20) == (10, -2)


def test_schedule_applies_due_entries():
    engine = LifeEngine(16)
    schedule = PasteSchedule((
        PasteEntry(cells=cells([[1, 1]]), x=0, y=0, trigger=Trigger.at(0)),
        PasteEntry(cells=cells([[1]]), x=3, y=3, trigger=Trigger.at(4)),
    ))
    assert schedule.apply(engine, 0) == 1
    assert engine.population == 2
    assert schedule.apply(engine, 1) == 0
    assert schedule.apply(engine, 4) == 1
    assert engine.get_cell_state(3, 3) == 1
    assert schedule.last_generation == 4


def test_apply_paste_xor_clears_existing_cells():
    engine = LifeEngine(16)
    engine.set_cell_state(0, 0, 1)
    apply_paste(engine, PasteEntry(cells=cells([[1, 1]]), x=0, y=0, trigger=Trigger.at(0), mode=PasteMode.XOR), 0)
    assert engine.get_cell_state(0, 0) == 0
    assert engine.get_cell_state(1, 0) == 1


def test_evolve_cells_reports_offset():
    evolved, dx, dy = evolve_cells(cells([[1, 1, 1]]), 1)
    assert evolved.tolist() == [[1], [1], [1]]
    assert (dx, dy) == (1, -1)

    empty, _, _ = evolve_cells(cells([[1]]), 1)
    assert empty.size == 0


def test_evolve_entry_shifts_position():
    entry = PasteEntry(cells=cells([[1, 1, 1]]), x=10, y=10, trigger=Trigger.at(0), evolve=1)
    evolved = evolve_entry(entry)
    assert (evolved.x, evolved.y) == (11, 9)
    assert evolved.height == 3
    assert evolved.fingerprint != entry.fingerprint


def test_snippet_applies_its_transform():
    snippet = Snippet("bar", cells([[1, 1, 1]]), transform=Transform.SWAP_XY)
    assert snippet.placed().shape == (3, 1)
