import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from derby_draw.bot.race_broadcast import (
    DrawBroadcastCog,
    format_standings,
    render_commentary,
    render_draw_board,
    render_progress_bar,
)
from derby_draw.engine import AsyncioTickScheduler, DrawRaceLoop, LeaderboardEntry, Phase, RaceEvent, ResultEntry, RunnerSnapshot, TickSnapshot
from derby_draw.simulation import DrawSession


def _snapshot() -> TickSnapshot:
    return TickSnapshot(
        phase=Phase.RACE,
        elapsed=12.5,
        slow_motion=True,
        racers=[
            RunnerSnapshot(name="Ana", lane=0, progress=0.5, color="#ffffff", event=RaceEvent.SPRINT, is_finished=False),
            RunnerSnapshot(name="Bo", lane=1, progress=1.0, color="#ffd700", event=RaceEvent.NONE, is_finished=True),
        ],
        leaderboard=[
            LeaderboardEntry(rank=1, name="Bo", progress=1.0, gap_percent=50.0),
            LeaderboardEntry(rank=2, name="Ana", progress=0.5, gap_percent=0.0),
        ],
    )


def test_progress_bar_is_clamped():
    assert render_progress_bar(0.5, 10) == "#####....."
    assert render_progress_bar(1.2, 4) == "####"
    assert render_progress_bar(-1.0, 4) == "...."


def test_board_shows_lanes_events_and_finishers():
    board = render_draw_board(_snapshot(), width=10).splitlines()
    assert board[0].startswith(" 1 Ana")
    assert "[#####.....]" in board[0]
    assert board[0].endswith("Sprint!")
    assert board[1].endswith("FIN")


def test_commentary_lists_leaders_with_gaps():
    text = render_commentary(_snapshot())
    assert "1. Bo at 100.0% (+50.0%)" in text
    assert "2. Ana at 50.0%" in text
    assert "Slow motion" in text
    assert render_commentary(TickSnapshot(phase=Phase.IDLE, elapsed=0.0, slow_motion=False)).startswith("Waiting")


def test_standings_mark_winners():
    results = [
        ResultEntry(place=1, name="Bo", lane=1, progress=1.0, time=Decimal("19.87")),
        ResultEntry(place=2, name="Ana", lane=0, progress=0.97),
    ]
    lines = format_standings(results, ["Bo"]).splitlines()
    assert lines == ["1. Bo - 19.87s *", "2. Ana - 97% complete"]
    assert format_standings([], []) == "No standings recorded."


def test_board_renders_a_live_draw():
    loop = DrawRaceLoop()
    loop.start(["Ana", "Bo", "Cy"], num_winners=1, seed="board")
    board = render_draw_board(loop.tick(1.0 / 60.0))
    assert len(board.splitlines()) == 3


def test_cancelled_playback_propagates_and_cleans_up():
    async def scenario():
        cog = DrawBroadcastCog(MagicMock())
        session = DrawSession(scheduler=AsyncioTickScheduler(), verbose=False)
        session.start("Ana, Bo", num_winners=1, seed="cancel")
        message = MagicMock()
        message.edit = AsyncMock()
        task = asyncio.create_task(cog.playback_draw(7, session, message))
        cog.sessions[7] = session
        cog.playback_tasks[7] = task
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        session.reset()
        return cog, message

    cog, message = asyncio.run(scenario())
    assert message.edit.await_count >= 1
    assert cog.sessions == {}
    assert cog.playback_tasks == {}
