from __future__ import annotations

from dataclasses import dataclass

from .cognitive_core import SeededRng

GRID_POSITIONS = 9
LETTERS: tuple[str, ...] = ("C", "H", "K", "L", "Q", "R", "S", "T", "V")


@dataclass(frozen=True, slots=True)
class Stimulus:
    position: int  # 0..8, row-major over the 3x3 grid
    letter: str


class SequenceGenerator:
    """Draws stimuli uniformly and independently.

    Position and letter are independent of each other and of every earlier
    stimulus. No target match rate is enforced at any lag, so a block may
    contain few or no N-back matches.
    """

    def __init__(self, rng: SeededRng) -> None:
        self._rng = rng

    def next_stimulus(self) -> Stimulus:
        position = int(self._rng.randint(0, GRID_POSITIONS - 1))
        letter = str(self._rng.choice(LETTERS))
        return Stimulus(position=position, letter=letter)

    def generate(self, block_length: int) -> tuple[Stimulus, ...]:
        if block_length < 0:
            raise ValueError("block_length must be >= 0")
        return tuple(self.next_stimulus() for _ in range(int(block_length)))
