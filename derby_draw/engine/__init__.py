"""
Draw engine package: a seeded horse-race animation that produces a ranking.

The package is split into the random source, data models, the physics step,
ranking and the celebration particles. ``DrawRaceLoop`` composes these pieces
into the idle -> race -> celebrate -> idle lifecycle; schedulers drive it.
"""

from .data_models import (  # noqa: F401
    LeaderboardEntry,
    Particle,
    Phase,
    Race,
    RaceEvent,
    ResultEntry,
    Runner,
)
from .errors import DrawError, EmptyParticipantSet  # noqa: F401
from .random_source import RandomSource, SeededRandom, UnseededRandom, make_random_source  # noqa: F401
from .ranking import clamp_winner_count, compute_results, leaderboard  # noqa: F401
from .telemetry import TelemetryCollector, TelemetryFrame, TelemetryRacerFrame  # noqa: F401
from .scheduler import AsyncioTickScheduler, ManualTickScheduler, TickHandle, TickScheduler  # noqa: F401
from .race_loop import DrawRaceLoop, RaceListener, RunnerSnapshot, TickSnapshot  # noqa: F401

__all__ = [
    "LeaderboardEntry",
    "Particle",
    "Phase",
    "Race",
    "RaceEvent",
    "ResultEntry",
    "Runner",
    "DrawError",
    "EmptyParticipantSet",
    "RandomSource",
    "SeededRandom",
    "UnseededRandom",
    "make_random_source",
    "clamp_winner_count",
    "compute_results",
    "leaderboard",
    "TelemetryCollector",
    "TelemetryFrame",
    "TelemetryRacerFrame",
    "AsyncioTickScheduler",
    "ManualTickScheduler",
    "TickHandle",
    "TickScheduler",
    "DrawRaceLoop",
    "RaceListener",
    "RunnerSnapshot",
    "TickSnapshot",
]
