from decimal import Decimal

import pytest

from derby_draw.engine.data_models import ResultEntry, Runner
from derby_draw.engine.ranking import (
    clamp_winner_count,
    compute_results,
    enforce_increasing_times,
    leaderboard,
    round_finish_time,
)


def _runner(name: str, lane: int, progress: float = 0.0, finish_time=None) -> Runner:
    return Runner(
        name=name,
        lane=lane,
        fatigue=0.03,
        bursts_left=0,
        next_burst_at=1.0,
        tie_break_bias=(lane + 0.5) * 1e-6,
        progress=1.0 if finish_time is not None else progress,
        finish_time=finish_time,
    )


def test_clamp_winner_count():
    assert clamp_winner_count(10, 4) == 4
    assert clamp_winner_count(2, 4) == 2
    assert clamp_winner_count(0, 4) == 1
    assert clamp_winner_count(-3, 4) == 1
    assert clamp_winner_count(3, 0) == 0


def test_round_finish_time_rounds_half_up():
    assert round_finish_time(2.675) == Decimal("2.68")
    assert round_finish_time(5.123) == Decimal("5.12")


def test_same_hundredth_times_are_separated():
    assert enforce_increasing_times([12.341, 12.344]) == [Decimal("12.34"), Decimal("12.35")]
    assert enforce_increasing_times([4.0, 4.001, 4.002]) == [Decimal("4.00"), Decimal("4.01"), Decimal("4.02")]


def test_compute_results_orders_finishers_then_progress():
    runners = [
        _runner("Ana", 0, finish_time=10.5),
        _runner("Bo", 1, finish_time=10.2),
        _runner("Cy", 2, progress=0.9),
        _runner("Dee", 3, progress=0.95),
    ]
    results, winners = compute_results(runners, 2)

    assert [entry.name for entry in results] == ["Bo", "Ana", "Dee", "Cy"]
    assert [entry.place for entry in results] == [1, 2, 3, 4]
    assert winners == ["Bo", "Ana"]
    assert results[0].time == Decimal("10.20")
    assert results[0].progress == 1.0
    assert results[2].time is None
    assert results[2].progress == pytest.approx(0.95)


def test_compute_results_clamps_winner_count():
    runners = [_runner(name, lane, progress=0.1 * (lane + 1)) for lane, name in enumerate("ABCD")]
    _, winners = compute_results(runners, 10)
    assert winners == ["D", "C", "B", "A"]

    _, winners = compute_results(runners, 0)
    assert winners == ["D"]


def test_tie_break_bias_orders_equal_progress():
    runners = [_runner("Low", 1, progress=0.5), _runner("High", 2, progress=0.5)]
    results, _ = compute_results(runners, 1)
    assert [entry.name for entry in results] == ["High", "Low"]


def test_finisher_times_strictly_increase():
    runners = [_runner(f"R{i}", i, finish_time=8.0 + i * 0.001) for i in range(5)]
    results, _ = compute_results(runners, 3)
    times = [entry.time for entry in results]
    assert all(later - earlier >= Decimal("0.01") for earlier, later in zip(times, times[1:]))


def test_leaderboard_gaps():
    runners = [
        _runner("A", 0, progress=0.8),
        _runner("B", 1, progress=0.5),
        _runner("C", 2, progress=0.45),
        _runner("D", 3, progress=0.1),
    ]
    board = leaderboard(runners)
    assert [entry.name for entry in board] == ["A", "B", "C"]
    assert [entry.rank for entry in board] == [1, 2, 3]
    assert board[0].gap_percent == pytest.approx(30.0)
    assert board[1].gap_percent == pytest.approx(5.0)
    assert board[2].gap_percent == 0.0


def test_leaderboard_with_short_field():
    board = leaderboard([_runner("Solo", 0, progress=0.3)])
    assert len(board) == 1
    assert board[0].gap_percent == 0.0

    board = leaderboard([_runner("A", 0, progress=0.4), _runner("B", 1, progress=0.3)])
    assert board[0].gap_percent == pytest.approx(10.0)
    assert board[1].gap_percent == 0.0


def test_result_entry_describe():
    assert ResultEntry(place=1, name="Ana", lane=0, progress=1.0, time=Decimal("10.20")).describe() == "1. Ana - 10.20s"
    assert ResultEntry(place=3, name="Cy", lane=2, progress=0.9).describe() == "3. Cy - 90% complete"
