from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Sequence

RUNNER_COLORS = (
    "#ffffff",
    "#ffd700",
    "#00ffff",
    "#ff69b4",
    "#7fffd4",
    "#ffa500",
    "#adff2f",
    "#dda0dd",
    "#87cefa",
    "#90ee90",
)


class Phase(Enum):
    """Lifecycle of a draw: resting, racing, then the post-race celebration."""

    IDLE = "idle"
    RACE = "race"
    CELEBRATE = "celebrate"


class RaceEvent(Enum):
    """Transient speed modifier attached to a runner."""

    NONE = "none"
    SPRINT = "sprint"
    STUMBLE = "stumble"

    @property
    def label(self) -> str:
        return {
            RaceEvent.NONE: "",
            RaceEvent.SPRINT: "Sprint!",
            RaceEvent.STUMBLE: "Stumble!",
        }[self]


@dataclass
class Runner:
    """Mutable per-tick state for one participant."""

    name: str
    lane: int
    fatigue: float
    bursts_left: int
    next_burst_at: float
    tie_break_bias: float
    color: str = RUNNER_COLORS[0]
    progress: float = 0.0
    velocity: float = 0.0
    target_velocity: float = 0.0
    event: RaceEvent = RaceEvent.NONE
    event_until: float = 0.0
    last_event_at: float = 0.0
    last_burst_boost: float = 0.0
    finish_time: Optional[float] = None

    @property
    def is_finished(self) -> bool:
        return self.finish_time is not None

    @property
    def ranking_key(self) -> float:
        return self.progress + self.tie_break_bias

    def event_active(self, now: float) -> bool:
        return self.event is not RaceEvent.NONE and now < self.event_until


@dataclass(frozen=True)
class ResultEntry:
    place: int
    name: str
    lane: int
    progress: float
    time: Optional[Decimal] = None

    def describe(self) -> str:
        if self.time is not None:
            return f"{self.place}. {self.name} - {self.time:.2f}s"
        return f"{self.place}. {self.name} - {round(self.progress * 100)}% complete"


@dataclass(frozen=True)
class LeaderboardEntry:
    rank: int
    name: str
    progress: float
    gap_percent: float


@dataclass(frozen=True)
class Particle:
    x: float
    y: float
    vx: float
    vy: float
    life: float
    color: str


@dataclass
class Race:
    """One run of the draw. Built fresh by every start; never shared between runs."""

    runners: Dict[str, Runner]
    duration: float
    num_winners: int
    seed: Optional[str] = None
    requested_winners: int = 0
    phase: Phase = Phase.RACE
    elapsed: float = 0.0
    tick: int = 0
    slow_motion: bool = False
    celebration_elapsed: float = 0.0
    results: List[ResultEntry] = field(default_factory=list)
    winners: List[str] = field(default_factory=list)

    @property
    def runners_by_lane(self) -> Sequence[Runner]:
        return sorted(self.runners.values(), key=lambda runner: runner.lane)

    @property
    def finished_count(self) -> int:
        return sum(1 for runner in self.runners.values() if runner.is_finished)

    @property
    def remaining(self) -> float:
        return self.duration - self.elapsed

    def leader(self) -> Optional[Runner]:
        if not self.runners:
            return None
        return max(self.runners.values(), key=lambda runner: runner.ranking_key)

    def leader_progress(self) -> float:
        return max((runner.progress for runner in self.runners.values()), default=0.0)
