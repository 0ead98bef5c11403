from __future__ import annotations

from collections.abc import Iterator, Sequence
from dataclasses import dataclass

from .nback_sequence import Stimulus
from .responses import ResponseLatch


@dataclass(frozen=True, slots=True)
class TrialResult:
    index: int
    is_position_match: bool
    is_audio_match: bool
    position_response: bool
    audio_response: bool
    position_correct: bool
    audio_correct: bool


def evaluate_trial(
    sequence: Sequence[Stimulus],
    index: int,
    n: int,
    latch: ResponseLatch,
) -> TrialResult:
    """Score one trial against the stimulus ``n`` trials back.

    A correct response is either a flagged match (hit) or an unflagged
    non-match (correct rejection). Trials with ``index < n`` have nothing to
    compare against and are never matches.
    """

    current = sequence[index]
    compare_index = index - n
    if compare_index >= 0:
        previous = sequence[compare_index]
        is_position_match = previous.position == current.position
        is_audio_match = previous.letter == current.letter
    else:
        is_position_match = False
        is_audio_match = False

    position_response = bool(latch.position)
    audio_response = bool(latch.audio)

    return TrialResult(
        index=int(index),
        is_position_match=is_position_match,
        is_audio_match=is_audio_match,
        position_response=position_response,
        audio_response=audio_response,
        position_correct=is_position_match == position_response,
        audio_correct=is_audio_match == audio_response,
    )


class ResultLog:
    """Append-only log of trial results in strictly increasing index order."""

    def __init__(self) -> None:
        self._results: list[TrialResult] = []

    def append(self, result: TrialResult) -> None:
        expected = len(self._results)
        if result.index != expected:
            raise ValueError(f"expected result for trial {expected}, got {result.index}")
        self._results.append(result)

    def clear(self) -> None:
        self._results = []

    def snapshot(self) -> tuple[TrialResult, ...]:
        return tuple(self._results)

    def __len__(self) -> int:
        return len(self._results)

    def __iter__(self) -> Iterator[TrialResult]:
        return iter(tuple(self._results))
