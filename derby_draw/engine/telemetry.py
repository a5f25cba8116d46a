from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional, Sequence


@dataclass
class TelemetryRacerFrame:
    name: str
    lane: int
    progress: float
    velocity: float
    target_velocity: float
    event: str
    burst_boost: float
    finish_time: Optional[float] = None


@dataclass
class TelemetryFrame:
    tick: int
    time: float
    dt: float
    slow_motion: bool
    phase: str
    racers: List[TelemetryRacerFrame] = field(default_factory=list)


class TelemetryCollector:
    def __init__(self) -> None:
        self.frames: List[TelemetryFrame] = []

    def record_frame(self, frame: TelemetryFrame) -> None:
        self.frames.append(frame)

    def export(self) -> Sequence[TelemetryFrame]:
        return tuple(self.frames)

    def as_dicts(self) -> List[Dict[str, Any]]:
        return [asdict(frame) for frame in self.frames]

    def clear(self) -> None:
        self.frames.clear()
