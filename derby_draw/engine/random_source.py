"""
Replayable random streams for the draw.

A seeded stream folds the seed text into a 32-bit state and runs a
Mulberry32-style generator over it, so the same seed replays the same race.
Without a seed the platform generator is used and no replay is possible.
"""

from __future__ import annotations

import random
from typing import MutableSequence, Optional, TypeVar

MASK_32 = 0xFFFFFFFF
STATE_INCREMENT = 0x6D2B79F5
TWO_POW_32 = 4294967296.0

T = TypeVar("T")


def fold_seed(seed: str) -> int:
    """Reduce a seed string to 32 bits: ``acc = (acc * 31 + codepoint) mod 2**32``."""
    acc = 0
    for char in seed:
        acc = (acc * 31 + ord(char)) & MASK_32
    return acc


def _imul(a: int, b: int) -> int:
    return (a * b) & MASK_32


class RandomSource:
    """Uniform values in [0, 1) plus the few helpers the engine needs."""

    seed: Optional[str] = None

    def next(self) -> float:
        raise NotImplementedError

    def uniform(self, low: float, high: float) -> float:
        return low + self.next() * (high - low)

    def randrange(self, low: int, high: int) -> int:
        """Integer in [low, high)."""
        span = high - low
        if span <= 0:
            return low
        return low + min(int(self.next() * span), span - 1)

    def shuffle(self, items: MutableSequence[T]) -> MutableSequence[T]:
        """In-place Fisher-Yates shuffle driven by this stream."""
        for idx in range(len(items) - 1, 0, -1):
            swap = self.randrange(0, idx + 1)
            items[idx], items[swap] = items[swap], items[idx]
        return items


class SeededRandom(RandomSource):
    def __init__(self, seed: str) -> None:
        self.seed = seed
        self.state = fold_seed(seed)

    def next_u32(self) -> int:
        self.state = (self.state + STATE_INCREMENT) & MASK_32
        t = self.state
        r = _imul(t ^ (t >> 15), t | 1)
        r ^= (r + _imul(r ^ (r >> 7), r | 61)) & MASK_32
        return (r ^ (r >> 14)) & MASK_32

    def next(self) -> float:
        return self.next_u32() / TWO_POW_32


class UnseededRandom(RandomSource):
    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()

    def next(self) -> float:
        return self._rng.random()


def make_random_source(seed: Optional[str]) -> RandomSource:
    if seed:
        return SeededRandom(seed)
    return UnseededRandom()

