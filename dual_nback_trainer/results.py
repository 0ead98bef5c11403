from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from .cognitive_core import percent
from .nback_scoring import TrialResult


@dataclass(frozen=True, slots=True)
class ChannelTotals:
    """Signal-detection counts for one channel over eligible trials."""

    eligible: int
    correct: int
    matches: int
    responses: int
    hits: int
    misses: int
    false_alarms: int
    correct_rejections: int

    @property
    def accuracy_pct(self) -> int:
        return percent(self.correct, self.eligible)


@dataclass(frozen=True, slots=True)
class BlockAccuracy:
    position_pct: int
    audio_pct: int
    combined_pct: int


@dataclass(frozen=True, slots=True)
class BlockSummary:
    """End-of-block statistics derived from the result log.

    Only eligible trials (``index >= n``) are counted; the first ``n``
    trials are the practice window and have nothing to compare against.
    """

    n: int
    block_length: int
    interval_ms: int
    trials_completed: int
    trials_scored: int
    completed: bool

    position: ChannelTotals
    audio: ChannelTotals
    accuracy: BlockAccuracy


def _channel_totals(flags: list[tuple[bool, bool]]) -> ChannelTotals:
    # flags: (is_match, responded) per eligible trial
    hits = sum(1 for m, r in flags if m and r)
    misses = sum(1 for m, r in flags if m and not r)
    false_alarms = sum(1 for m, r in flags if not m and r)
    correct_rejections = sum(1 for m, r in flags if not m and not r)
    return ChannelTotals(
        eligible=len(flags),
        correct=hits + correct_rejections,
        matches=hits + misses,
        responses=hits + false_alarms,
        hits=hits,
        misses=misses,
        false_alarms=false_alarms,
        correct_rejections=correct_rejections,
    )


def eligible_results(results: Iterable[TrialResult], n: int) -> list[TrialResult]:
    return [r for r in results if r.index >= n]


def block_accuracy(results: Iterable[TrialResult], n: int) -> BlockAccuracy:
    eligible = eligible_results(results, n)
    total = len(eligible)
    pos_correct = sum(1 for r in eligible if r.position_correct)
    audio_correct = sum(1 for r in eligible if r.audio_correct)
    return BlockAccuracy(
        position_pct=percent(pos_correct, total),
        audio_pct=percent(audio_correct, total),
        combined_pct=percent(pos_correct + audio_correct, 2 * total),
    )


def summarize_block(
    results: Iterable[TrialResult],
    *,
    n: int,
    block_length: int,
    interval_ms: int,
) -> BlockSummary:
    all_results = list(results)
    eligible = eligible_results(all_results, n)
    return BlockSummary(
        n=int(n),
        block_length=int(block_length),
        interval_ms=int(interval_ms),
        trials_completed=len(all_results),
        trials_scored=len(eligible),
        completed=len(all_results) >= block_length,
        position=_channel_totals([(r.is_position_match, r.position_response) for r in eligible]),
        audio=_channel_totals([(r.is_audio_match, r.audio_response) for r in eligible]),
        accuracy=block_accuracy(eligible, n),
    )
