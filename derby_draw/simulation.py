import json
import re
from dataclasses import asdict
from typing import Callable, Dict, List, Optional, Sequence, Union

import numpy as np

from derby_draw.config import get_config
from derby_draw.engine import (
    DrawRaceLoop,
    ManualTickScheduler,
    Phase,
    Race,
    RaceListener,
    TelemetryCollector,
    TickHandle,
    TickScheduler,
    TickSnapshot,
)
from derby_draw.engine.race_loop import DEFAULT_DURATION, DEFAULT_WINNERS
from derby_draw.engine.physics import MAX_DT

PARTICIPANT_SEPARATORS = re.compile(r"[\n,;]+")


def parse_participants(raw: Union[str, Sequence[str]]) -> List[str]:
    """
    Turns free text (one name per line, or comma/semicolon separated) into a
    clean participant list: blanks dropped, first occurrence of a name kept.
    """
    if isinstance(raw, str):
        chunks = PARTICIPANT_SEPARATORS.split(raw)
    else:
        chunks = list(raw)
    names = (chunk.strip() for chunk in chunks if chunk)
    return list(dict.fromkeys(name for name in names if name))


def _snapshot_to_dict(snapshot: TickSnapshot) -> Dict:
    data = asdict(snapshot)
    data["phase"] = snapshot.phase.value
    for racer in data["racers"]:
        racer["event"] = racer["event"].value
    for entry in data["results"]:
        entry["time"] = None if entry["time"] is None else str(entry["time"])
    return data


class SnapshotRecorder(RaceListener):
    """
    Captures the frames of a race between ``race_started`` and ``race_finished``.
    Enabled per race through the session's ``record`` flag.
    """

    def __init__(self):
        self.enabled = False
        self.capturing = False
        self.frames: List[TickSnapshot] = []
        self._closing = False

    def race_started(self, race: Race) -> None:
        self.frames = []
        self.capturing = self.enabled
        self._closing = False

    def race_finished(self, race: Race) -> None:
        # keep the finishing frame, which is captured right after this hook
        self._closing = True

    def capture(self, snapshot: TickSnapshot) -> None:
        if not self.capturing:
            return
        self.frames.append(snapshot)
        if self._closing:
            self.capturing = False

    def stop(self) -> None:
        self.capturing = False

    def save(self, path: str) -> int:
        with open(path, "w", encoding="utf-8") as handle:
            json.dump([_snapshot_to_dict(frame) for frame in self.frames], handle, indent=2)
        return len(self.frames)


class DrawSession:
    """
    Binds the draw loop to a clock. Every start first cancels whatever the
    previous draw left scheduled, so at most one race is ever ticking.
    """

    def __init__(
        self,
        scheduler: Optional[TickScheduler] = None,
        telemetry: Optional[TelemetryCollector] = None,
        duration: float = DEFAULT_DURATION,
        verbose: bool = True,
    ):
        self.scheduler = scheduler or ManualTickScheduler()
        self.recorder = SnapshotRecorder()
        self.loop = DrawRaceLoop(duration=duration, telemetry=telemetry, listeners=[self.recorder])
        self.verbose = verbose
        self.on_tick: List[Callable[[TickSnapshot], None]] = []
        self._handle: Optional[TickHandle] = None
        self._last_phase = Phase.IDLE

    @property
    def phase(self) -> Phase:
        return self.loop.phase

    @property
    def race(self) -> Optional[Race]:
        return self.loop.race

    @property
    def handle(self) -> Optional[TickHandle]:
        return self._handle

    def start(
        self,
        participants: Union[str, Sequence[str]],
        num_winners: int = DEFAULT_WINNERS,
        seed: Optional[str] = None,
        duration: Optional[float] = None,
        record: bool = False,
    ) -> Race:
        names = parse_participants(participants)
        previous_record = self.recorder.enabled
        self.recorder.enabled = record
        try:
            race = self.loop.start(names, num_winners=num_winners, seed=seed, duration=duration)
        except ValueError:
            self.recorder.enabled = previous_record
            raise
        self._cancel_handle()
        self._last_phase = race.phase
        if self.verbose:
            seed_label = race.seed if race.seed else "unseeded"
            clamped = "" if race.requested_winners == race.num_winners else f" (asked for {race.requested_winners})"
            print(
                f"[DerbyDraw] Race started: {len(race.runners)} runners, "
                f"{race.num_winners} winner(s){clamped}, {race.duration:.1f}s, seed={seed_label}"
            )
        self._handle = self.scheduler.schedule(self._on_tick)
        return race

    def reset(self) -> None:
        self._cancel_handle()
        self.recorder.stop()
        self.loop.reset()
        self._last_phase = Phase.IDLE
        if self.verbose:
            print("[DerbyDraw] Reset.")

    def _cancel_handle(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _on_tick(self, interval: float) -> bool:
        snapshot = self.loop.tick(interval)
        try:
            self.recorder.capture(snapshot)
        except Exception as exc:
            print(f"Warning: Failed to record snapshot: {exc}")
        for callback in list(self.on_tick):
            try:
                callback(snapshot)
            except Exception as exc:
                print(f"Warning: Tick renderer failed: {exc}")

        if snapshot.phase is not self._last_phase:
            self._report_transition(snapshot)
            self._last_phase = snapshot.phase
        return snapshot.phase is not Phase.IDLE

    def _report_transition(self, snapshot: TickSnapshot) -> None:
        if not self.verbose:
            return
        if snapshot.phase is Phase.CELEBRATE:
            print(f"[DerbyDraw] Race finished after {snapshot.elapsed:.2f}s.")
            for entry in snapshot.results:
                print(f"  {entry.describe()}")
            print(f"[DerbyDraw] Winners: {', '.join(snapshot.winners)}")
        elif snapshot.phase is Phase.IDLE:
            print("[DerbyDraw] Celebration over.")


class Bookie:
    """
    Estimates how often each participant wins a draw by replaying it under
    many seeds, and how often each lane wins (a fair draw favours no lane).
    """

    def __init__(
        self,
        participants: Sequence[str],
        duration: float = DEFAULT_DURATION,
        frame_interval: float = MAX_DT,
        verbose: bool = True,
    ):
        self.participants = parse_participants(participants)
        self.duration = duration
        self.frame_interval = frame_interval
        self.verbose = verbose
        self.win_probabilities: Dict[str, float] = {}
        self.lane_win_rates: np.ndarray = np.zeros(len(self.participants))
        self.opening_odds: Dict[str, Dict[str, float]] = {}

    def run_monte_carlo(self, simulations: int = 1000, seed_prefix: str = "bookie"):
        """
        Runs ``simulations`` seeded draws headlessly and returns the odds table,
        or None when there is nobody to race.
        """
        if self.verbose:
            print(f"\nBookie: Running {simulations} Monte Carlo simulations...")
        if not self.participants or simulations <= 0:
            if self.verbose:
                print("Bookie: Simulation cancelled, nothing to simulate.")
            return None

        index = {name: idx for idx, name in enumerate(self.participants)}
        win_counts = np.zeros(len(self.participants), dtype=np.int64)
        lane_wins = np.zeros(len(self.participants), dtype=np.int64)

        loop = DrawRaceLoop(duration=self.duration)
        for sim in range(simulations):
            race = loop.start(self.participants, num_winners=1, seed=f"{seed_prefix}:{sim}")
            loop.run_until_finished(frame_interval=self.frame_interval)
            winner = race.winners[0]
            win_counts[index[winner]] += 1
            lane_wins[race.runners[winner].lane] += 1

        probabilities = win_counts / simulations
        self.win_probabilities = dict(zip(self.participants, probabilities.tolist()))
        self.lane_win_rates = lane_wins / simulations

        if self.verbose:
            print("Monte Carlo complete. Calculating odds...")
        self._calculate_all_odds()
        return self.opening_odds

    def fairness_spread(self) -> float:
        """Largest distance between any lane's win rate and a uniform share."""
        if not len(self.lane_win_rates):
            return 0.0
        uniform = 1.0 / len(self.lane_win_rates)
        return float(np.max(np.abs(self.lane_win_rates - uniform)))

    def _calculate_odds_from_win_rate(self, win_rate: float) -> float:
        if win_rate == 0:
            return float(get_config("bookie.max_odds", 999.0))
        fair_odds = (1 / win_rate) - 1
        return float(np.clip(fair_odds, 0.0, get_config("bookie.max_odds", 999.0)))

    def _calculate_all_odds(self):
        for name, probability in self.win_probabilities.items():
            odds = self._calculate_odds_from_win_rate(probability)
            self.opening_odds[name] = {
                "probability": probability,
                "odds": odds,
            }
            if self.verbose:
                print(f"  -> {name}: {odds:.2f} to 1 (Prob: {probability*100:.1f}%)")
