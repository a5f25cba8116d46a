from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Sequence

from derby_draw.config import get_config

from .celebration import FireworksShow, celebration_rng
from .data_models import LeaderboardEntry, Particle, Phase, Race, RaceEvent, ResultEntry
from .errors import EmptyParticipantSet
from .physics import FIRST_TICK_DT, SLOW_MOTION_FACTOR, PhysicsContext, PhysicsKernel, frame_dt
from .random_source import make_random_source
from .ranking import clamp_winner_count, compute_results, leaderboard
from .telemetry import TelemetryCollector, TelemetryFrame, TelemetryRacerFrame

DEFAULT_DURATION = float(get_config("draw.duration_seconds", 20.0))
DEFAULT_WINNERS = int(get_config("draw.default_winners", 3))
DEFAULT_FRAME_INTERVAL = float(get_config("draw.frame_interval", 1.0 / 60.0))
CELEBRATION_SECONDS = float(get_config("draw.celebration_seconds", 5.0))
TIMEOUT_GRACE = float(get_config("draw.timeout_grace_seconds", 2.0))


@dataclass
class RunnerSnapshot:
    name: str
    lane: int
    progress: float
    color: str
    event: RaceEvent
    is_finished: bool


@dataclass
class TickSnapshot:
    phase: Phase
    elapsed: float
    slow_motion: bool
    racers: List[RunnerSnapshot] = field(default_factory=list)
    leaderboard: List[LeaderboardEntry] = field(default_factory=list)
    winners: List[str] = field(default_factory=list)
    results: List[ResultEntry] = field(default_factory=list)
    particles: List[Particle] = field(default_factory=list)


class RaceListener:
    """Lifecycle hooks, e.g. for a recording sink. Both default to no-ops."""

    def race_started(self, race: Race) -> None:
        pass

    def race_finished(self, race: Race) -> None:
        pass


class DrawRaceLoop:
    """Drives one draw at a time through idle -> race -> celebrate -> idle."""

    def __init__(
        self,
        duration: float = DEFAULT_DURATION,
        telemetry: Optional[TelemetryCollector] = None,
        listeners: Optional[Iterable[RaceListener]] = None,
    ) -> None:
        if duration <= 0:
            raise ValueError(f"Race duration must be positive, got {duration}")
        self.duration = duration
        self.telemetry = telemetry
        self.listeners: List[RaceListener] = list(listeners or [])
        self.race: Optional[Race] = None
        self.kernel: Optional[PhysicsKernel] = None
        self.fireworks: Optional[FireworksShow] = None

    @property
    def phase(self) -> Phase:
        if self.race is None:
            return Phase.IDLE
        return self.race.phase

    def start(
        self,
        participants: Sequence[str],
        num_winners: int = DEFAULT_WINNERS,
        seed: Optional[str] = None,
        duration: Optional[float] = None,
    ) -> Race:
        names = list(dict.fromkeys(name for name in participants if name))
        if not names:
            raise EmptyParticipantSet("A draw needs at least one participant.")
        race_duration = self.duration if duration is None else duration
        if race_duration <= 0:
            raise ValueError(f"Race duration must be positive, got {race_duration}")

        self.reset()
        source = make_random_source(seed)
        self.kernel = PhysicsKernel(race_duration, source)
        self.race = Race(
            runners=self.kernel.spawn_runners(names),
            duration=race_duration,
            num_winners=clamp_winner_count(num_winners, len(names)),
            seed=seed or None,
            requested_winners=num_winners,
        )
        if self.telemetry is not None:
            self.telemetry.clear()
        self._notify("race_started", self.race)
        return self.race

    def reset(self) -> None:
        self.race = None
        self.kernel = None
        self.fireworks = None

    def tick(self, frame_interval: float = DEFAULT_FRAME_INTERVAL) -> TickSnapshot:
        if self.race is not None:
            if self.race.phase is Phase.RACE:
                self._tick_race(frame_interval)
            elif self.race.phase is Phase.CELEBRATE:
                self._tick_celebration(frame_interval)
        return self.snapshot()

    def run_until_finished(
        self,
        frame_interval: float = DEFAULT_FRAME_INTERVAL,
        on_tick: Optional[Callable[[TickSnapshot], None]] = None,
        include_celebration: bool = False,
    ) -> List[TickSnapshot]:
        if frame_interval <= 0:
            raise ValueError(f"Frame interval must be positive, got {frame_interval}")
        if self.race is None:
            return []

        horizon = self.race.duration + TIMEOUT_GRACE
        if include_celebration:
            horizon += CELEBRATION_SECONDS
        max_ticks = math.ceil(horizon / frame_interval) + 2

        snapshots: List[TickSnapshot] = []
        for _ in range(max_ticks):
            snapshot = self.tick(frame_interval)
            snapshots.append(snapshot)
            if on_tick:
                on_tick(snapshot)
            if snapshot.phase is Phase.IDLE:
                break
            if snapshot.phase is Phase.CELEBRATE and not include_celebration:
                break
        return snapshots

    def snapshot(self) -> TickSnapshot:
        race = self.race
        if race is None:
            return TickSnapshot(phase=Phase.IDLE, elapsed=0.0, slow_motion=False)

        racers = [
            RunnerSnapshot(
                name=runner.name,
                lane=runner.lane,
                progress=runner.progress,
                color=runner.color,
                event=runner.event if runner.event_active(race.elapsed) else RaceEvent.NONE,
                is_finished=runner.is_finished,
            )
            for runner in race.runners_by_lane
        ]
        particles: List[Particle] = []
        if race.phase is Phase.CELEBRATE and self.fireworks is not None:
            particles = self.fireworks.particles()
        return TickSnapshot(
            phase=race.phase,
            elapsed=race.elapsed,
            slow_motion=race.slow_motion,
            racers=racers,
            leaderboard=leaderboard(race.runners.values()),
            winners=list(race.winners),
            results=list(race.results),
            particles=particles,
        )

    # --- Phases ----------------------------------------------------------

    def _tick_race(self, frame_interval: float) -> None:
        race = self.race
        kernel = self.kernel
        first_tick = race.tick == 0

        dt = frame_dt(frame_interval, first_tick=first_tick)
        race.elapsed += FIRST_TICK_DT if first_tick else max(0.0, frame_interval)
        if kernel.update_slow_motion(race):
            dt *= SLOW_MOTION_FACTOR

        context = PhysicsContext(leader_progress=race.leader_progress(), elapsed=race.elapsed, dt=dt)
        kernel.step(race, context)
        race.tick += 1

        if self.telemetry is not None:
            self._record_frame(race, dt)

        if self._race_is_over(race):
            self._finish_race(race)

    def _race_is_over(self, race: Race) -> bool:
        if race.elapsed >= race.duration + TIMEOUT_GRACE:
            return True
        leader = race.leader()
        if leader is None or leader.progress < 1.0:
            return False
        return race.finished_count >= min(race.num_winners, len(race.runners))

    def _finish_race(self, race: Race) -> None:
        race.results, race.winners = compute_results(race.runners.values(), race.num_winners)
        race.phase = Phase.CELEBRATE
        race.celebration_elapsed = 0.0
        self.fireworks = FireworksShow(celebration_rng(race.seed))
        self._notify("race_finished", race)

    def _tick_celebration(self, frame_interval: float) -> None:
        race = self.race
        if self.fireworks is not None:
            self.fireworks.step(frame_dt(frame_interval))
        race.celebration_elapsed += max(0.0, frame_interval)
        if race.celebration_elapsed >= CELEBRATION_SECONDS:
            race.phase = Phase.IDLE
            self.fireworks = None

    # --- Helpers ---------------------------------------------------------

    def _record_frame(self, race: Race, dt: float) -> None:
        racers = [
            TelemetryRacerFrame(
                name=runner.name,
                lane=runner.lane,
                progress=runner.progress,
                velocity=runner.velocity,
                target_velocity=runner.target_velocity,
                event=runner.event.value,
                burst_boost=runner.last_burst_boost,
                finish_time=runner.finish_time,
            )
            for runner in race.runners_by_lane
        ]
        self.telemetry.record_frame(
            TelemetryFrame(
                tick=race.tick,
                time=race.elapsed,
                dt=dt,
                slow_motion=race.slow_motion,
                phase=race.phase.value,
                racers=racers,
            )
        )

    def _notify(self, hook: str, race: Race) -> None:
        for listener in list(self.listeners):
            try:
                getattr(listener, hook)(race)
            except Exception as exc:
                print(f"Warning: {type(listener).__name__}.{hook} failed: {exc}")
