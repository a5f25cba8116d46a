from __future__ import annotations

from typing import List, Optional, Tuple

import numpy as np

from derby_draw.config import get_config

from .data_models import Particle
from .random_source import fold_seed

FIREWORK_COLORS = (
    "#ff4d4f",
    "#40c463",
    "#ffd700",
    "#60a5fa",
    "#f472b6",
    "#22d3ee",
    "#a78bfa",
    "#f97316",
)


def _pair(key: str, default: Tuple[float, float]) -> Tuple[float, float]:
    value = get_config(f"celebration.{key}", default)
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return float(value[0]), float(value[1])
    return default


BURSTS = int(get_config("celebration.bursts", 6))
PARTICLES_PER_BURST = _pair("particles_per_burst", (60, 110))
ORIGIN_X = _pair("origin_x", (0.3, 0.7))
ORIGIN_Y = _pair("origin_y", (0.35, 0.65))
SPEED_RANGE = _pair("speed_range", (0.35, 1.2))
LIFE_RANGE = _pair("life_range", (1.0, 2.2))
DRAG = float(get_config("celebration.drag", 0.985))
GRAVITY = float(get_config("celebration.gravity", 4.8))
POSITION_SCALE = float(get_config("celebration.position_scale", 0.5))
LIFE_DECAY = float(get_config("celebration.life_decay", 0.5))


def celebration_rng(seed: Optional[str]) -> np.random.Generator:
    """Fireworks replay with the race seed; unseeded races get OS entropy."""
    if seed:
        return np.random.default_rng(fold_seed(f"{seed}:celebration"))
    return np.random.default_rng()


class FireworksShow:
    """Decorative particle bursts shown after the draw. Field coordinates are 0..1, y grows downward."""

    def __init__(self, rng: np.random.Generator, bursts: int = BURSTS):
        positions: List[np.ndarray] = []
        velocities: List[np.ndarray] = []
        lives: List[np.ndarray] = []
        colors: List[np.ndarray] = []

        low_count, high_count = (int(bound) for bound in PARTICLES_PER_BURST)
        for burst in range(bursts):
            origin = (rng.uniform(*ORIGIN_X), rng.uniform(*ORIGIN_Y))
            count = int(rng.integers(low_count, high_count))
            angles = rng.uniform(0.0, 2.0 * np.pi, size=count)
            speeds = rng.uniform(*SPEED_RANGE, size=count)

            positions.append(np.tile(origin, (count, 1)))
            velocities.append(np.column_stack((np.cos(angles) * speeds, np.sin(angles) * speeds)))
            lives.append(rng.uniform(*LIFE_RANGE, size=count))
            colors.append((burst + np.arange(count)) % len(FIREWORK_COLORS))

        self.positions = np.concatenate(positions) if positions else np.zeros((0, 2))
        self.velocities = np.concatenate(velocities) if velocities else np.zeros((0, 2))
        self.lives = np.concatenate(lives) if lives else np.zeros(0)
        self.color_index = np.concatenate(colors) if colors else np.zeros(0, dtype=int)

    def __len__(self) -> int:
        return int(self.lives.shape[0])

    @property
    def is_spent(self) -> bool:
        return len(self) == 0

    def step(self, dt: float) -> None:
        if self.is_spent:
            return
        self.velocities *= DRAG
        self.velocities[:, 1] += GRAVITY * dt
        self.positions += self.velocities * dt * POSITION_SCALE
        self.lives -= dt * LIFE_DECAY

        alive = self.lives > 0.0
        if not alive.all():
            self.positions = self.positions[alive]
            self.velocities = self.velocities[alive]
            self.lives = self.lives[alive]
            self.color_index = self.color_index[alive]

    def particles(self) -> List[Particle]:
        return [
            Particle(
                x=float(pos[0]),
                y=float(pos[1]),
                vx=float(vel[0]),
                vy=float(vel[1]),
                life=float(life),
                color=FIREWORK_COLORS[int(color)],
            )
            for pos, vel, life, color in zip(self.positions, self.velocities, self.lives, self.color_index)
        ]
