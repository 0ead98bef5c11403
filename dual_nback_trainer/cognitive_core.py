from __future__ import annotations

import math
import random
from enum import Enum
from typing import TypeVar

T = TypeVar("T")


class BlockState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    STOPPED = "stopped"


class SeededRng:
    """Simple seeded RNG wrapper to keep deterministic streams explicit."""

    def __init__(self, seed: int) -> None:
        self._rng = random.Random(int(seed))

    def randint(self, a: int, b: int) -> int:
        return self._rng.randint(a, b)

    def choice(self, seq: tuple[T, ...] | list[T]) -> T:
        return self._rng.choice(seq)


def clamp_int(value: float, lo: int, hi: int) -> int:
    """Clamp into [lo, hi], truncating in-range values to int. NaN maps to lo."""

    if math.isnan(value) or value <= lo:
        return lo
    if value >= hi:
        return hi
    return int(value)


def round_half_up(x: float) -> int:
    # Matches the usual on-screen percentage rounding (2.5 -> 3).
    return int(math.floor(x + 0.5))


def percent(part: int, whole: int) -> int:
    """Whole-number percentage, 0 when there is nothing to divide by."""

    if whole <= 0:
        return 0
    return round_half_up(part / whole * 100.0)
