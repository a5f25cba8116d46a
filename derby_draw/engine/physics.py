from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from derby_draw.config import BALANCE_CONFIG

from .data_models import RUNNER_COLORS, Race, RaceEvent, Runner
from .random_source import RandomSource


def _race_engine_config() -> Dict[str, object]:
    if not isinstance(BALANCE_CONFIG, dict):
        return {}
    config = BALANCE_CONFIG.get("race_engine")
    if not isinstance(config, dict):
        return {}
    return config


_RACE_ENGINE_CONFIG = _race_engine_config()


def _value(key: str, default: float) -> float:
    value = _RACE_ENGINE_CONFIG.get(key, default)
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _range(key: str, default: Tuple[float, float]) -> Tuple[float, float]:
    value = _RACE_ENGINE_CONFIG.get(key)
    if isinstance(value, (list, tuple)) and len(value) == 2:
        try:
            return float(value[0]), float(value[1])
        except (TypeError, ValueError):
            return default
    return default


# --- Tuning, overridable through configs/draw_balance.json ---

MIN_DT = _value("min_dt", 0.001)
MAX_DT = _value("max_dt", 0.05)
FIRST_TICK_DT = _value("first_tick_dt", 0.016)
SLOW_MOTION_FACTOR = _value("slow_motion_factor", 0.6)
SLOW_MOTION_LEAD = _value("slow_motion_lead_progress", 0.9)
SLOW_MOTION_REMAINING = _value("slow_motion_remaining_seconds", 2.0)

MAX_VELOCITY = _value("max_velocity", 0.28)
INERTIA = _value("inertia", 0.45)
FATIGUE_DRAIN = _value("fatigue_drain", 0.15)
FATIGUE_RANGE = _range("fatigue_range", (0.02, 0.04))
NOISE_AMPLITUDE = _value("noise_amplitude", 0.008)

RUBBER_BAND_SCALE = _value("rubber_band_scale", 0.5)
RUBBER_BAND_CAP = _value("rubber_band_cap", 0.18)
DRAFTING_WINDOW = _value("drafting_window", 0.03)
DRAFTING_BONUS = _value("drafting_bonus", 0.04)

BURST_COUNT_RANGE = _range("burst_count_range", (2, 3))
FIRST_BURST_RANGE = _range("first_burst_range", (0.15, 0.75))
BURST_BOOST_RANGE = _range("burst_boost_range", (1.25, 1.7))
BURST_SPACING_RANGE = _range("burst_spacing_range", (0.12, 0.2))

EVENT_INTERVAL_RANGE = _range("event_interval_range", (2.0, 4.0))
EVENT_DURATION = _value("event_duration", 0.6)
SPRINT_CHANCE = _value("sprint_chance", 0.25)
STUMBLE_CHANCE = _value("stumble_chance", 0.15)
EVENT_MULTIPLIERS = {
    RaceEvent.NONE: 1.0,
    RaceEvent.SPRINT: _value("sprint_multiplier", 1.35),
    RaceEvent.STUMBLE: _value("stumble_multiplier", 0.7),
}

TIE_BREAK_SCALE = 1e-6


def clamp(value: float, low: float, high: float) -> float:
    return min(max(value, low), high)


def frame_dt(frame_interval: float, first_tick: bool = False) -> float:
    """Simulation step for one frame, before any slow-motion scaling."""
    if first_tick:
        return FIRST_TICK_DT
    return clamp(frame_interval, MIN_DT, MAX_DT)


@dataclass
class PhysicsContext:
    """Per-tick inputs shared read-only by every runner."""

    leader_progress: float
    elapsed: float
    dt: float


class PhysicsKernel:
    """Advances every unfinished runner by one tick."""

    def __init__(self, duration: float, source: RandomSource):
        if duration <= 0:
            raise ValueError(f"Race duration must be positive, got {duration}")
        self.duration = duration
        self.base_speed = 1.0 / duration
        self.source = source

    def spawn_runners(self, names: Sequence[str]) -> Dict[str, Runner]:
        """Shuffle the field into lanes and roll each runner's fixed parameters."""
        order: List[str] = self.source.shuffle(list(names))
        runners: Dict[str, Runner] = {}
        low_bursts, high_bursts = (int(bound) for bound in BURST_COUNT_RANGE)
        for lane, name in enumerate(order):
            runners[name] = Runner(
                name=name,
                lane=lane,
                fatigue=self.source.uniform(*FATIGUE_RANGE),
                bursts_left=self.source.randrange(low_bursts, high_bursts + 1),
                next_burst_at=self.source.uniform(*FIRST_BURST_RANGE),
                tie_break_bias=self.source.next() * TIE_BREAK_SCALE + lane * TIE_BREAK_SCALE,
                color=RUNNER_COLORS[lane % len(RUNNER_COLORS)],
            )
        return runners

    def update_slow_motion(self, race: Race) -> bool:
        """Latch slow motion once the leader nears the line or time runs short."""
        if not race.slow_motion:
            if race.leader_progress() >= SLOW_MOTION_LEAD or race.remaining <= SLOW_MOTION_REMAINING:
                race.slow_motion = True
        return race.slow_motion

    def step(self, race: Race, context: PhysicsContext) -> None:
        for runner in race.runners_by_lane:
            if runner.is_finished:
                continue
            self._step_runner(runner, context)

    # --- Helpers ---------------------------------------------------------

    def _step_runner(self, runner: Runner, context: PhysicsContext) -> None:
        dt = context.dt
        now = context.elapsed

        burst_boost = self._consume_burst(runner)
        target = self._calculate_target_velocity(runner, context.leader_progress, burst_boost)
        runner.target_velocity = target

        velocity = runner.velocity + (target - runner.velocity) * INERTIA
        velocity = max(0.0, velocity - runner.fatigue * dt * FATIGUE_DRAIN)

        self._roll_event(runner, now)
        if runner.event is not RaceEvent.NONE:
            if now < runner.event_until:
                velocity *= EVENT_MULTIPLIERS[runner.event]
            else:
                runner.event = RaceEvent.NONE
        runner.velocity = clamp(velocity, 0.0, MAX_VELOCITY)

        runner.progress += runner.velocity * dt
        if runner.progress >= 1.0:
            runner.progress = 1.0
            runner.finish_time = now + runner.tie_break_bias

    def _consume_burst(self, runner: Runner) -> float:
        runner.last_burst_boost = 0.0
        if runner.bursts_left <= 0 or runner.progress < runner.next_burst_at:
            return 0.0
        boost = self.source.uniform(*BURST_BOOST_RANGE)
        runner.bursts_left -= 1
        runner.next_burst_at = runner.progress + self.source.uniform(*BURST_SPACING_RANGE)
        runner.last_burst_boost = boost
        return boost

    def _calculate_target_velocity(
        self, runner: Runner, leader_progress: float, burst_boost: float
    ) -> float:
        noise = self.source.uniform(-NOISE_AMPLITUDE, NOISE_AMPLITUDE)
        gap = leader_progress - runner.progress
        rubber = clamp(gap * RUBBER_BAND_SCALE, 0.0, RUBBER_BAND_CAP)
        drafting = DRAFTING_BONUS if 0.0 < gap < DRAFTING_WINDOW else 0.0

        total = self.base_speed * (1.0 + rubber) + noise + drafting
        if burst_boost > 0.0:
            total *= burst_boost
        return clamp(total, 0.0, MAX_VELOCITY)

    def _roll_event(self, runner: Runner, now: float) -> None:
        if runner.event is not RaceEvent.NONE:
            return
        interval = self.source.uniform(*EVENT_INTERVAL_RANGE)
        if now - runner.last_event_at <= interval:
            return
        roll = self.source.next()
        if roll < SPRINT_CHANCE:
            event = RaceEvent.SPRINT
        elif roll < SPRINT_CHANCE + STUMBLE_CHANCE:
            event = RaceEvent.STUMBLE
        else:
            return
        runner.event = event
        runner.event_until = now + EVENT_DURATION
        runner.last_event_at = now
