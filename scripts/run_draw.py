#!/usr/bin/env python3
"""
Run a single race draw from the command line.

Usage:
    python scripts/run_draw.py --names "Ana, Bo, Cy, Dee" --winners 2 --seed test
    python scripts/run_draw.py --names-file people.txt --realtime
    python scripts/run_draw.py --names "A;B;C" --seed demo --dump-telemetry analysis/demo_ticks.json

Headless runs use the manual clock and finish instantly; ``--realtime``
drives the draw on the asyncio clock and redraws a text board as it goes.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import os
from pathlib import Path
import sys
from typing import Optional, Sequence


def _preparse_env(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Consume env-affecting flags before importing engine modules."""

    pre_parser = argparse.ArgumentParser(add_help=False)
    pre_parser.add_argument("--config", type=Path)
    return pre_parser.parse_known_args(argv)[0]


REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.append(str(REPO_ROOT))

ENV_ARGS = _preparse_env()
if getattr(ENV_ARGS, "config", None):
    os.environ["DERBY_DRAW_CONFIG"] = str(ENV_ARGS.config)

from derby_draw.bot.race_broadcast import render_commentary, render_draw_board  # noqa: E402
from derby_draw.engine import (  # noqa: E402
    AsyncioTickScheduler,
    DrawError,
    ManualTickScheduler,
    Phase,
    TelemetryCollector,
    TickSnapshot,
)
from derby_draw.engine.race_loop import DEFAULT_DURATION, DEFAULT_WINNERS  # noqa: E402
from derby_draw.simulation import DrawSession, parse_participants  # noqa: E402

BOARD_REFRESH_SECONDS = 0.25


def _load_names(args: argparse.Namespace):
    chunks = []
    if args.names:
        chunks.append(args.names)
    if args.names_file:
        chunks.append(Path(args.names_file).read_text(encoding="utf-8"))
    return parse_participants("\n".join(chunks))


def _print_board(snapshot: TickSnapshot) -> None:
    print(f"\n--- {snapshot.elapsed:5.2f}s {'(slow motion)' if snapshot.slow_motion else ''}")
    print(render_draw_board(snapshot))
    print(render_commentary(snapshot))


async def _run_realtime(session: DrawSession, args: argparse.Namespace, names) -> None:
    last_board = -BOARD_REFRESH_SECONDS

    def on_tick(snapshot: TickSnapshot) -> None:
        nonlocal last_board
        if snapshot.phase is Phase.RACE and snapshot.elapsed - last_board >= BOARD_REFRESH_SECONDS:
            last_board = snapshot.elapsed
            if not args.silent:
                _print_board(snapshot)

    session.on_tick.append(on_tick)
    session.start(names, num_winners=args.winners, seed=args.seed, duration=args.duration, record=bool(args.record))
    await session.handle.wait()


def main() -> None:
    parser = argparse.ArgumentParser(description="Run a horse-race draw.")
    parser.add_argument("--config", type=Path, help="Alternate balance config (JSON).")
    parser.add_argument("--names", help="Participants separated by commas, semicolons or new lines.")
    parser.add_argument("--names-file", type=Path, help="Text file with one participant per line.")
    parser.add_argument("--winners", type=int, default=DEFAULT_WINNERS, help="How many winners to draw.")
    parser.add_argument("--seed", help="Seed string; the same seed replays the same race.")
    parser.add_argument("--duration", type=float, default=DEFAULT_DURATION, help="Nominal race length in seconds.")
    parser.add_argument("--realtime", action="store_true", help="Run on the wall clock and show a live board.")
    parser.add_argument("--record", type=Path, help="Write the captured race frames to this JSON file.")
    parser.add_argument("--dump-telemetry", type=Path, help="Write per-tick telemetry to this JSON file.")
    parser.add_argument("--silent", action="store_true", help="Only print the winners.")
    args = parser.parse_args()

    names = _load_names(args)
    telemetry = TelemetryCollector() if args.dump_telemetry else None

    try:
        if args.realtime:
            session = DrawSession(scheduler=AsyncioTickScheduler(), telemetry=telemetry, duration=args.duration, verbose=not args.silent)
            asyncio.run(_run_realtime(session, args, names))
        else:
            scheduler = ManualTickScheduler()
            session = DrawSession(scheduler=scheduler, telemetry=telemetry, duration=args.duration, verbose=not args.silent)
            session.start(names, num_winners=args.winners, seed=args.seed, duration=args.duration, record=bool(args.record))
            scheduler.run()
    except DrawError as err:
        parser.error(str(err))

    race = session.race
    if args.silent and race is not None:
        print(", ".join(race.winners))

    if args.record:
        count = session.recorder.save(str(args.record))
        print(f"Saved {count} frames to {args.record}")
    if telemetry is not None:
        args.dump_telemetry.parent.mkdir(parents=True, exist_ok=True)
        args.dump_telemetry.write_text(json.dumps(telemetry.as_dicts(), indent=2))
        print(f"Saved {len(telemetry.frames)} telemetry frames to {args.dump_telemetry}")


if __name__ == "__main__":
    main()
