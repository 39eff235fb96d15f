#!/usr/bin/env python3
"""
Headless playback harness for life-script.

Reads a pattern document, interprets its script blocks, then plays the
resulting timeline for a fixed number of frames without a display.
Script diagnostics go to stdout; per-frame telemetry can be written as
CSV and a run summary as JSON.

Usage:
  life-script pattern.rle                  # 600 frames, diagnostics + summary
  life-script pattern.rle -n 1200 --play   # force playback on
  life-script pattern.rle --csv run.csv    # per-frame telemetry
  life-script pattern.rle --json -         # JSON summary on stdout
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import Any, Optional, Sequence

import numpy as np

from life import LifeEngine, PlaybackRecorder
from life_config import LEVELS, Config, load_config
from life_diagnostics import ConfigError
from life_logging import configure_logging
from life_rle import read_pattern
from life_script import PatternInfo, interpret
from life_timeline import FrameResult, PlaybackContext, Timeline

LOGGER = logging.getLogger("lifescript.bench")


def describe_timeline(timeline: Timeline) -> list[str]:
    """Human-readable lines for the parse result."""
    lines = [
        f"Commands: {timeline.commands}  Keyframes: {len(timeline.keyframes)}  "
        f"POIs: {len(timeline.pois)}  Pastes: {len(timeline.pastes)}  "
        f"Annotations: {len(timeline.annotations)}",
    ]
    if timeline.title:
        lines.append(f"Title: {timeline.title}")
    if timeline.track is not None:
        lines.append(f"Track: {timeline.track.describe()}")
    if timeline.clean:
        lines.append("Script OK")
    else:
        lines.append(f"Script errors: {len(timeline.diagnostics)}")
        for diagnostic in timeline.diagnostics:
            lines.append(f"  {diagnostic.source:<30} {diagnostic.reason}")
    return lines


def play(
    context: PlaybackContext,
    frames: int,
    recorder: Optional[PlaybackRecorder] = None,
) -> list[FrameResult]:
    """Tick ``context`` at the refresh rate, stopping early when playback ends."""
    frame_ms = 1000.0 / context.settings.refresh_rate
    results: list[FrameResult] = []
    for frame in range(frames):
        result = context.tick(frame_ms)
        results.append(result)
        if recorder is not None:
            recorder.log(
                frame,
                result.generation,
                result.elapsed_ms,
                context.engine.population,
                result.camera,
                result.steps.requested,
                result.steps.completed,
                ";".join(result.events),
            )
        if result.ended:
            LOGGER.info("Playback ended at frame %d (generation %d)", frame, result.generation)
            break
    return results


def summarize(timeline: Timeline, context: PlaybackContext, results: list[FrameResult]) -> dict[str, Any]:
    camera = context.camera
    completed = np.array([r.steps.completed for r in results], dtype=np.int64)
    events = [(index, event) for index, r in enumerate(results) for event in r.events]
    return {
        "clean": timeline.clean,
        "diagnostics": [list(d) for d in timeline.diagnostics],
        "keyframes": len(timeline.keyframes),
        "pois": len(timeline.pois),
        "pastes": len(timeline.pastes),
        "annotations": len(timeline.annotations),
        "frames": len(results),
        "generation": context.engine.generation,
        "population": context.engine.population,
        "steps_per_frame": float(completed.mean()) if completed.size else 0.0,
        "camera": {
            "x": camera.offset_x,
            "y": camera.offset_y,
            "zoom": camera.zoom,
            "angle": camera.angle,
        },
        "events": events,
    }


def run(args: argparse.Namespace, config: Config) -> int:
    settings = config.viewer
    path = Path(args.document)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        LOGGER.error("Cannot read %s: %s", path, exc)
        return 2

    document = read_pattern(text)
    engine = LifeEngine(settings.grid_size)
    if document.cells is not None:
        engine.load(document.cells)
    else:
        LOGGER.warning("No pattern body in %s; starting from an empty grid", path)

    info = PatternInfo(name=document.name, rule=document.rule, originator=document.originator)
    t0 = time.perf_counter()
    timeline = interpret(text, info, settings, camera=engine.camera.copy())
    LOGGER.debug("Interpreted %s in %.1fms", path, (time.perf_counter() - t0) * 1000)

    for line in describe_timeline(timeline):
        print(line)

    context = PlaybackContext(timeline, engine, settings)
    if args.play:
        context.play()

    recorder: Optional[PlaybackRecorder] = None
    if args.csv:
        recorder = PlaybackRecorder(Path(args.csv))
        recorder.open()
    try:
        results = play(context, args.frames, recorder)
    finally:
        if recorder is not None:
            recorder.close()

    summary = summarize(timeline, context, results)
    print(
        f"Frames: {summary['frames']}  Generation: {summary['generation']}  "
        f"Population: {summary['population']:,}"
    )
    if args.json == "-":
        print(json.dumps(summary, indent=2))
    elif args.json:
        Path(args.json).write_text(json.dumps(summary, indent=2), encoding="utf-8")
        print(f"Summary saved to: {args.json}")

    if args.strict and not timeline.clean:
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Interpret and play a life-script pattern headlessly")
    parser.add_argument("document", help="Pattern document (RLE with #C script comments) or bare script")
    parser.add_argument("-n", "--frames", type=int, default=600,
                        help="Number of frames to play (default: 600)")
    parser.add_argument("--play", action="store_true",
                        help="Start playback even without AUTOSTART")
    parser.add_argument("--config", type=str, default=None,
                        help="JSON configuration file (default: LIFESCRIPT_* environment)")
    parser.add_argument("--csv", type=str, default=None,
                        help="Write per-frame telemetry to this CSV file")
    parser.add_argument("--json", type=str, default=None,
                        help="Write the run summary as JSON to this path ('-' for stdout)")
    parser.add_argument("--log-level", type=str, default=None,
                        help="Override the configured log level")
    parser.add_argument("--strict", action="store_true",
                        help="Exit with status 1 when the script has errors")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 2

    level = config.logging.numeric_level
    if args.log_level:
        level = LEVELS.get(args.log_level.upper(), -1)
        if level < 0:
            print(f"error: unknown log level {args.log_level!r}", file=sys.stderr)
            return 2
    configure_logging(level=level, log_file=config.logging.log_file)

    return run(args, config)


if __name__ == "__main__":
    sys.exit(main())
