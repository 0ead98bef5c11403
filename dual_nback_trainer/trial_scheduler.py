from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from .clock import TimerQueue
from .cognitive_core import BlockState
from .nback_scoring import ResultLog, TrialResult, evaluate_trial
from .nback_sequence import Stimulus
from .responses import ResponseCapture, ResponseLatch

logger = logging.getLogger(__name__)

MIN_ISI_MS = 150
MIN_PRESENT_MS = 200
CLEAR_LEAD_MS = 50


@dataclass(frozen=True, slots=True)
class TrialTiming:
    interval_ms: int
    isi_ms: int
    present_ms: int
    clear_at_ms: int  # offset from trial start
    advance_at_ms: int  # offset from trial start


def trial_timing(interval_ms: int) -> TrialTiming:
    interval_ms = int(interval_ms)
    isi_ms = max(MIN_ISI_MS, (interval_ms * 3) // 10)
    present_ms = max(MIN_PRESENT_MS, interval_ms - isi_ms)
    return TrialTiming(
        interval_ms=interval_ms,
        isi_ms=isi_ms,
        present_ms=present_ms,
        clear_at_ms=present_ms - CLEAR_LEAD_MS,
        advance_at_ms=interval_ms,
    )


class TrialScheduler:
    """Per-block timing state machine: IDLE -> RUNNING -> STOPPED.

    Each trial presents its stimulus, arms a fresh ResponseLatch and schedules
    two timers relative to the trial start:

    - clear-presentation at ``present_ms - 50``: hides the stimulus only.
    - advance-and-score at ``interval_ms``: scores the latch, appends the
      result, then starts the next trial or finishes the block.

    Trial ``k`` starts exactly ``k * interval_ms`` after the block start, so a
    late ``fire_due()`` replays the missed trials with their true timing.
    """

    def __init__(
        self,
        *,
        timers: TimerQueue,
        sequence: Sequence[Stimulus],
        n: int,
        interval_ms: int,
        capture: ResponseCapture,
        log: ResultLog,
        block_length: int | None = None,
        fallback: Callable[[], Stimulus] | None = None,
        on_present: Callable[[Stimulus], None] | None = None,
        on_finish: Callable[[], None] | None = None,
    ) -> None:
        if n < 1:
            raise ValueError("n must be >= 1")
        if interval_ms <= 0:
            raise ValueError("interval_ms must be > 0")

        self._timers = timers
        self._sequence = tuple(sequence)
        self._n = int(n)
        self._timing = trial_timing(interval_ms)
        self._capture = capture
        self._log = log
        self._block_length = len(self._sequence) if block_length is None else int(block_length)
        self._fallback = fallback
        self._on_present = on_present
        self._on_finish = on_finish

        self._state = BlockState.IDLE
        self._started_at_s: float | None = None
        self._index = -1
        self._presented: list[Stimulus] = []
        self._presentation: Stimulus | None = None
        self._clear_timer: int | None = None
        self._advance_timer: int | None = None
        self._fallback_count = 0

    @property
    def state(self) -> BlockState:
        return self._state

    @property
    def timing(self) -> TrialTiming:
        return self._timing

    @property
    def block_length(self) -> int:
        return self._block_length

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def presentation(self) -> Stimulus | None:
        """Stimulus currently on screen, or None during the ISI."""
        return self._presentation

    @property
    def fallback_count(self) -> int:
        return self._fallback_count

    def trial_started_at_s(self, index: int) -> float:
        assert self._started_at_s is not None
        return self._started_at_s + (index * self._timing.interval_ms) / 1000.0

    def start(self) -> bool:
        if self._state is not BlockState.IDLE:
            return False
        if self._block_length <= 0:
            self._state = BlockState.STOPPED
            return False
        self._state = BlockState.RUNNING
        self._started_at_s = self._timers.now()
        self._begin_trial(0)
        return True

    def stop(self) -> bool:
        if self._state is not BlockState.RUNNING:
            return False
        self._cancel_pending()
        self._capture.disarm()
        self._presentation = None
        self._state = BlockState.STOPPED
        return True

    def _begin_trial(self, index: int) -> None:
        self._index = index
        latch = ResponseLatch()
        self._capture.arm(latch)

        if index < len(self._sequence):
            stimulus = self._sequence[index]
        else:
            stimulus = self._fallback_stimulus(index)
        self._presented.append(stimulus)
        self._presentation = stimulus
        if self._on_present is not None:
            self._on_present(stimulus)

        t0 = self._started_at_s
        assert t0 is not None
        base_ms = index * self._timing.interval_ms
        self._clear_timer = self._timers.schedule_at(
            t0 + (base_ms + self._timing.clear_at_ms) / 1000.0,
            self._clear_presentation,
        )
        self._advance_timer = self._timers.schedule_at(
            t0 + (base_ms + self._timing.advance_at_ms) / 1000.0,
            lambda: self._advance_and_score(index, latch),
        )

    def _fallback_stimulus(self, index: int) -> Stimulus:
        if self._fallback is None:
            raise IndexError(f"no stimulus for trial {index}")
        logger.warning("No stimulus for trial %d; generating a replacement", index)
        self._fallback_count += 1
        return self._fallback()

    def _clear_presentation(self) -> None:
        self._clear_timer = None
        self._presentation = None

    def _advance_and_score(self, index: int, latch: ResponseLatch) -> None:
        self._advance_timer = None
        if self._state is not BlockState.RUNNING:
            return
        self._timers.cancel(self._clear_timer)
        self._clear_timer = None
        self._capture.disarm()

        result: TrialResult = evaluate_trial(self._presented, index, self._n, latch)
        self._log.append(result)

        if index + 1 < self._block_length:
            self._begin_trial(index + 1)
            return

        self._presentation = None
        self._state = BlockState.STOPPED
        if self._on_finish is not None:
            self._on_finish()

    def _cancel_pending(self) -> None:
        self._timers.cancel(self._clear_timer)
        self._timers.cancel(self._advance_timer)
        self._clear_timer = None
        self._advance_timer = None
