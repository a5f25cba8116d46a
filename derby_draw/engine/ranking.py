"""
Standings for a finished (or timed-out) draw and the live top-3 board.

Finishers are ordered by finish time and always receive strictly increasing
displayed times; everyone still on the track is ordered by progress, with the
per-runner tie-break bias guaranteeing a total order.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, List, Optional, Sequence, Tuple

from .data_models import LeaderboardEntry, ResultEntry, Runner

TIME_QUANTUM = Decimal("0.01")
LEADERBOARD_SIZE = 3


def clamp_winner_count(requested: int, participant_count: int) -> int:
    """Bound the requested number of winners to [1, participant_count]."""
    if participant_count <= 0:
        return 0
    try:
        requested = int(requested)
    except (TypeError, ValueError):
        requested = 1
    return max(1, min(requested, participant_count))


def round_finish_time(raw: float) -> Decimal:
    return Decimal(repr(raw)).quantize(TIME_QUANTUM, rounding=ROUND_HALF_UP)


def order_runners(runners: Iterable[Runner]) -> Tuple[List[Runner], List[Runner]]:
    """Split into (finishers by time, others by progress descending)."""
    pool = list(runners)
    finished = sorted((r for r in pool if r.is_finished), key=lambda r: r.finish_time)
    remaining = sorted(
        (r for r in pool if not r.is_finished),
        key=lambda r: r.ranking_key,
        reverse=True,
    )
    return finished, remaining


def enforce_increasing_times(raw_times: Sequence[float]) -> List[Decimal]:
    """Round to hundredths, bumping any time that does not beat its predecessor."""
    emitted: List[Decimal] = []
    previous: Optional[Decimal] = None
    for raw in raw_times:
        value = round_finish_time(raw)
        if previous is not None and value <= previous:
            value = previous + TIME_QUANTUM
        emitted.append(value)
        previous = value
    return emitted


def compute_results(runners: Iterable[Runner], num_winners: int) -> Tuple[List[ResultEntry], List[str]]:
    """Full standings plus the winner names (a prefix of the standings)."""
    finished, remaining = order_runners(runners)
    times = enforce_increasing_times([runner.finish_time for runner in finished])

    results: List[ResultEntry] = []
    for runner, finish in zip(finished, times):
        results.append(
            ResultEntry(
                place=len(results) + 1,
                name=runner.name,
                lane=runner.lane,
                progress=1.0,
                time=finish,
            )
        )
    for runner in remaining:
        results.append(
            ResultEntry(
                place=len(results) + 1,
                name=runner.name,
                lane=runner.lane,
                progress=runner.progress,
            )
        )

    winner_count = clamp_winner_count(num_winners, len(results))
    winners = [entry.name for entry in results[:winner_count]]
    return results, winners


def leaderboard(runners: Iterable[Runner], size: int = LEADERBOARD_SIZE) -> List[LeaderboardEntry]:
    """Live top-N by progress, each with its gap (in percentage points) to the next runner."""
    ordered = sorted(runners, key=lambda r: r.ranking_key, reverse=True)
    board: List[LeaderboardEntry] = []
    for idx, runner in enumerate(ordered[:size]):
        gap = 0.0
        if idx + 1 < min(size, len(ordered)):
            gap = runner.progress - ordered[idx + 1].progress
        board.append(
            LeaderboardEntry(
                rank=idx + 1,
                name=runner.name,
                progress=runner.progress,
                gap_percent=gap * 100.0,
            )
        )
    return board
