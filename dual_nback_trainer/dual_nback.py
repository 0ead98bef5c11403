from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Protocol

from .clock import Clock, TimerQueue
from .cognitive_core import BlockState, SeededRng, clamp_int
from .nback_scoring import ResultLog, TrialResult
from .nback_sequence import SequenceGenerator, Stimulus
from .responses import ResponseCapture, ResponseChannel
from .results import BlockAccuracy, BlockSummary, block_accuracy, eligible_results, summarize_block
from .trial_scheduler import TrialScheduler, TrialTiming

logger = logging.getLogger(__name__)

N_MIN, N_MAX = 1, 8
BLOCK_LENGTH_MIN, BLOCK_LENGTH_MAX = 10, 100
INTERVAL_MS_MIN, INTERVAL_MS_MAX = 1200, 5000


@dataclass(frozen=True, slots=True)
class DualNBackConfig:
    n: int = 2
    block_length: int = 20
    interval_ms: int = 2500
    speech_enabled: bool = True

    def clamped(self) -> DualNBackConfig:
        """Copy with every setting forced into range (never rejected)."""

        return replace(
            self,
            n=clamp_int(self.n, N_MIN, N_MAX),
            block_length=clamp_int(self.block_length, BLOCK_LENGTH_MIN, BLOCK_LENGTH_MAX),
            interval_ms=clamp_int(self.interval_ms, INTERVAL_MS_MIN, INTERVAL_MS_MAX),
            speech_enabled=bool(self.speech_enabled),
        )


class Announcer(Protocol):
    """Best-effort audio output for the letter of each trial."""

    def announce(self, letter: str) -> None: ...


@dataclass(frozen=True, slots=True)
class DualNBackSnapshot:
    """View model for the UI (pure data)."""

    state: BlockState
    config: DualNBackConfig
    trial_index: int  # -1 before the first trial of a block
    trials_completed: int
    highlight_position: int | None
    letter: str | None
    in_practice: bool
    accuracy: BlockAccuracy
    position_responses: int
    audio_responses: int
    summary: BlockSummary | None = None


class DualNBackBlock:
    """Runs one dual N-back block at a time.

    Lifecycle: IDLE -> RUNNING -> STOPPED, with ``reset()`` returning to
    IDLE. All timing goes through the injected Clock; the host loop must call
    ``update()`` regularly (once per frame) to fire due timers.
    """

    def __init__(
        self,
        *,
        clock: Clock,
        seed: int,
        config: DualNBackConfig | None = None,
        announcer: Announcer | None = None,
    ) -> None:
        self._clock = clock
        self._seed = int(seed)
        self._timers = TimerQueue(clock)
        self._gen = SequenceGenerator(SeededRng(self._seed))
        self._config = (config or DualNBackConfig()).clamped()
        self._block_config = self._config
        self._announcer = announcer

        self._state = BlockState.IDLE
        self._sequence: tuple[Stimulus, ...] = ()
        self._log = ResultLog()
        self._capture = ResponseCapture()
        self._scheduler: TrialScheduler | None = None

    @property
    def seed(self) -> int:
        return self._seed

    @property
    def state(self) -> BlockState:
        return self._state

    @property
    def running(self) -> bool:
        return self._state is BlockState.RUNNING

    @property
    def config(self) -> DualNBackConfig:
        return self._config

    @property
    def block_config(self) -> DualNBackConfig:
        """Settings of the current (or most recent) block."""
        return self._block_config

    @property
    def sequence(self) -> tuple[Stimulus, ...]:
        return self._sequence

    @property
    def timing(self) -> TrialTiming | None:
        return None if self._scheduler is None else self._scheduler.timing

    @property
    def current_index(self) -> int:
        return -1 if self._scheduler is None else self._scheduler.current_index

    @property
    def in_practice(self) -> bool:
        idx = self.current_index
        return 0 <= idx < self._block_config.n

    @property
    def presentation(self) -> Stimulus | None:
        return None if self._scheduler is None else self._scheduler.presentation

    @property
    def fallback_count(self) -> int:
        return 0 if self._scheduler is None else self._scheduler.fallback_count

    def configure(self, config: DualNBackConfig) -> bool:
        if self._state is BlockState.RUNNING:
            return False
        self._config = config.clamped()
        return True

    def start(self, config: DualNBackConfig | None = None) -> bool:
        if self._state is BlockState.RUNNING:
            return False
        if config is not None:
            self._config = config.clamped()
        cfg = self._config
        self._block_config = cfg

        self._timers.cancel_all()
        self._log.clear()
        self._capture.disarm()
        self._sequence = self._gen.generate(cfg.block_length)
        self._scheduler = TrialScheduler(
            timers=self._timers,
            sequence=self._sequence,
            n=cfg.n,
            interval_ms=cfg.interval_ms,
            capture=self._capture,
            log=self._log,
            block_length=cfg.block_length,
            fallback=self._gen.next_stimulus,
            on_present=self._announce,
            on_finish=self._on_block_finished,
        )
        logger.info(
            "Starting block: n=%d length=%d interval=%dms speech=%s seed=%d",
            cfg.n,
            cfg.block_length,
            cfg.interval_ms,
            cfg.speech_enabled,
            self._seed,
        )
        self._state = BlockState.RUNNING
        self._scheduler.start()
        return True

    def stop(self) -> bool:
        if self._state is not BlockState.RUNNING:
            return False
        assert self._scheduler is not None
        self._scheduler.stop()
        self._timers.cancel_all()
        self._state = BlockState.STOPPED
        logger.info("Block stopped after %d trial(s)", len(self._log))
        return True

    def reset(self) -> bool:
        if self._state is BlockState.RUNNING:
            return False
        self._timers.cancel_all()
        self._capture.disarm()
        self._sequence = ()
        self._log.clear()
        self._scheduler = None
        self._state = BlockState.IDLE
        return True

    def update(self) -> None:
        if self._state is not BlockState.RUNNING:
            return
        self._timers.fire_due()

    def press(self, channel: ResponseChannel) -> bool:
        """Register a match press. Returns True if a live trial latched it."""

        if self._state is not BlockState.RUNNING:
            return False
        # Fire anything already due so a late press lands on the next trial.
        self.update()
        return self._capture.press(channel)

    def press_position_match(self) -> bool:
        return self.press(ResponseChannel.POSITION)

    def press_audio_match(self) -> bool:
        return self.press(ResponseChannel.AUDIO)

    def results(self) -> tuple[TrialResult, ...]:
        return self._log.snapshot()

    def accuracy(self) -> BlockAccuracy:
        return block_accuracy(self._log, self._block_config.n)

    def summary(self) -> BlockSummary:
        cfg = self._block_config
        return summarize_block(
            self._log,
            n=cfg.n,
            block_length=cfg.block_length,
            interval_ms=cfg.interval_ms,
        )

    def snapshot(self) -> DualNBackSnapshot:
        results = self._log.snapshot()
        eligible = eligible_results(results, self._block_config.n)
        shown = self.presentation
        summary = None
        if self._state is BlockState.STOPPED and results:
            summary = self.summary()
        return DualNBackSnapshot(
            state=self._state,
            config=self._config,
            trial_index=self.current_index,
            trials_completed=len(results),
            highlight_position=None if shown is None else shown.position,
            letter=None if shown is None else shown.letter,
            in_practice=self._state is BlockState.RUNNING and self.in_practice,
            accuracy=block_accuracy(eligible, self._block_config.n),
            position_responses=sum(1 for r in eligible if r.position_response),
            audio_responses=sum(1 for r in eligible if r.audio_response),
            summary=summary,
        )

    def _announce(self, stimulus: Stimulus) -> None:
        if self._announcer is None or not self._block_config.speech_enabled:
            return
        try:
            self._announcer.announce(stimulus.letter)
        except Exception:
            logger.debug("Announcer failed for %r", stimulus.letter, exc_info=True)

    def _on_block_finished(self) -> None:
        self._state = BlockState.STOPPED
        logger.info("Block complete: %d trial(s)", len(self._log))


def build_dual_nback_block(
    *,
    clock: Clock,
    seed: int,
    config: DualNBackConfig | None = None,
    announcer: Announcer | None = None,
) -> DualNBackBlock:
    return DualNBackBlock(clock=clock, seed=seed, config=config, announcer=announcer)
