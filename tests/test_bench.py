import csv
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import life_bench
from life_script import interpret

BLINKER = """#N Blinker
#C [[ ZOOM 4 STOP 10 ]]
x = 3, y = 1, rule = B3/S23
3o!
"""


def write_document(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "pattern.rle"
    path.write_text(text, encoding="utf-8")
    return path


def test_play_writes_csv_and_summary(tmp_path, capsys):
    document = write_document(tmp_path, BLINKER)
    csv_path = tmp_path / "run.csv"
    json_path = tmp_path / "run.json"

    status = life_bench.main([
        str(document), "-n", "30", "--play",
        "--csv", str(csv_path), "--json", str(json_path),
    ])

    assert status == 0
    out = capsys.readouterr().out
    assert "Script OK" in out

    with open(csv_path, newline="") as handle:
        rows = list(csv.DictReader(handle))
    assert len(rows) == 30
    assert rows[0]["zoom"] == "4.0000"
    assert [row["event"] for row in rows].count("stop") == 1

    summary = json.loads(json_path.read_text())
    assert summary["clean"] is True
    assert summary["frames"] == 30
    assert summary["generation"] == 10
    assert summary["population"] == 3
    assert summary["camera"]["zoom"] == 4
    assert [event for _, event in summary["events"]] == ["stop"]


def test_strict_fails_on_script_errors(tmp_path, capsys):
    document = write_document(tmp_path, "#C [[ FOO ]]\n3o!\n")

    assert life_bench.main([str(document), "-n", "1"]) == 0
    assert life_bench.main([str(document), "-n", "1", "--strict"]) == 1
    out = capsys.readouterr().out
    assert "Script errors: 1" in out
    assert "unknown or misspelt command" in out


def test_missing_document(tmp_path):
    assert life_bench.main([str(tmp_path / "absent.rle")]) == 2


def test_bad_config_and_log_level(tmp_path, capsys):
    document = write_document(tmp_path, BLINKER)
    config = tmp_path / "config.json"
    config.write_text("[]")

    assert life_bench.main([str(document), "--config", str(config)]) == 2
    assert life_bench.main([str(document), "--log-level", "chatty"]) == 2
    assert "unknown log level" in capsys.readouterr().err


def test_describe_timeline():
    timeline = interpret('[[ TITLE "Show" TRACK 1 0 ]]')
    lines = life_bench.describe_timeline(timeline)
    assert "Title: Show" in lines
    assert "Track: TRACK 1 0" in lines
    assert lines[-1] == "Script OK"
