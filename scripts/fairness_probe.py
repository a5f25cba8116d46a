#!/usr/bin/env python3
"""
Monte Carlo check that the draw favours neither participants nor lanes.

Example usage:
    python scripts/fairness_probe.py --runners 6 --simulations 500
    python scripts/fairness_probe.py --names "Ana,Bo,Cy" --dump-summary analysis/fairness.json
"""

from __future__ import annotations

import argparse
import json
from pathlib import Path
import sys

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.append(str(REPO_ROOT))

from derby_draw.engine.race_loop import DEFAULT_DURATION  # noqa: E402
from derby_draw.simulation import Bookie, parse_participants  # noqa: E402


def main() -> None:
    parser = argparse.ArgumentParser(description="Estimate win and lane rates over many seeded draws.")
    parser.add_argument("--names", help="Participants separated by commas, semicolons or new lines.")
    parser.add_argument("--runners", type=int, default=6, help="Generate this many runners when --names is absent.")
    parser.add_argument("--simulations", type=int, default=500)
    parser.add_argument("--duration", type=float, default=DEFAULT_DURATION)
    parser.add_argument("--seed-prefix", default="probe")
    parser.add_argument("--dump-summary", type=Path, help="Write the summary to this JSON file.")
    parser.add_argument("--silent", action="store_true")
    args = parser.parse_args()

    names = parse_participants(args.names) if args.names else [f"Runner {idx + 1}" for idx in range(args.runners)]
    bookie = Bookie(names, duration=args.duration, verbose=not args.silent)
    odds = bookie.run_monte_carlo(simulations=args.simulations, seed_prefix=args.seed_prefix)
    if odds is None:
        parser.error("Nothing to simulate.")

    print("\nLane win rates:")
    for lane, rate in enumerate(bookie.lane_win_rates.tolist(), start=1):
        print(f"  Lane {lane:>2}: {rate*100:5.1f}%")
    print(f"Max deviation from a uniform share: {bookie.fairness_spread()*100:.1f} points")

    if args.dump_summary:
        summary = {
            "simulations": args.simulations,
            "duration": args.duration,
            "odds": odds,
            "lane_win_rates": bookie.lane_win_rates.tolist(),
            "fairness_spread": bookie.fairness_spread(),
        }
        args.dump_summary.parent.mkdir(parents=True, exist_ok=True)
        args.dump_summary.write_text(json.dumps(summary, indent=2))
        print(f"Saved summary to {args.dump_summary}")


if __name__ == "__main__":
    main()
