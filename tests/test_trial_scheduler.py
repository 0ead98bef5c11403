from __future__ import annotations

from dataclasses import dataclass

import pytest

from dual_nback_trainer.clock import TimerQueue
from dual_nback_trainer.cognitive_core import BlockState
from dual_nback_trainer.nback_scoring import ResultLog
from dual_nback_trainer.nback_sequence import Stimulus
from dual_nback_trainer.responses import ResponseCapture, ResponseChannel
from dual_nback_trainer.trial_scheduler import TrialScheduler, trial_timing


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += float(dt)


EXAMPLE = tuple(Stimulus(position=p, letter=l) for p, l in zip([0, 1, 0, 2, 0], "CHCKC"))


def _build(clock: FakeClock, *, sequence=EXAMPLE, n: int = 2, interval_ms: int = 2500, **kwargs):
    timers = TimerQueue(clock)
    capture = ResponseCapture()
    log = ResultLog()
    scheduler = TrialScheduler(
        timers=timers,
        sequence=sequence,
        n=n,
        interval_ms=interval_ms,
        capture=capture,
        log=log,
        **kwargs,
    )
    return scheduler, timers, capture, log


@pytest.mark.parametrize(
    ("interval_ms", "isi_ms", "present_ms"),
    [(2500, 750, 1750), (1200, 360, 840), (5000, 1500, 3500), (333, 150, 200)],
)
def test_trial_timing_derivation(interval_ms: int, isi_ms: int, present_ms: int) -> None:
    t = trial_timing(interval_ms)
    assert t.isi_ms == isi_ms
    assert t.present_ms == present_ms
    assert t.clear_at_ms == present_ms - 50
    assert t.advance_at_ms == interval_ms


def test_block_of_five_runs_to_completion_with_worked_example_scores() -> None:
    clock = FakeClock()
    finished: list[bool] = []
    scheduler, timers, _, log = _build(clock, on_finish=lambda: finished.append(True))

    assert scheduler.state is BlockState.IDLE
    assert scheduler.start() is True
    assert scheduler.state is BlockState.RUNNING

    for _ in range(5):
        clock.advance(2.5)
        timers.fire_due()

    results = log.snapshot()
    assert [r.index for r in results] == [0, 1, 2, 3, 4]
    assert scheduler.state is BlockState.STOPPED
    assert finished == [True]
    assert scheduler.presentation is None
    assert timers.pending_count == 0

    assert (results[2].is_position_match, results[2].is_audio_match) == (True, True)
    assert (results[2].position_correct, results[2].audio_correct) == (False, False)
    assert (results[3].is_position_match, results[3].is_audio_match) == (False, False)
    assert (results[3].position_correct, results[3].audio_correct) == (True, True)
    assert scheduler.fallback_count == 0


def test_presentation_is_cleared_before_the_isi_and_replaced_next_trial() -> None:
    clock = FakeClock()
    presented: list[Stimulus] = []
    scheduler, timers, _, _ = _build(clock, on_present=presented.append)

    scheduler.start()
    assert scheduler.presentation == EXAMPLE[0]
    assert presented == [EXAMPLE[0]]

    clock.advance(1.65)
    timers.fire_due()
    assert scheduler.presentation == EXAMPLE[0]

    clock.t = 1.7
    timers.fire_due()
    assert scheduler.presentation is None
    assert scheduler.current_index == 0

    clock.t = 2.5
    timers.fire_due()
    assert scheduler.current_index == 1
    assert scheduler.presentation == EXAMPLE[1]
    assert presented == [EXAMPLE[0], EXAMPLE[1]]


def test_advance_fires_exactly_at_interval_not_before() -> None:
    clock = FakeClock()
    scheduler, timers, _, log = _build(clock)
    scheduler.start()

    clock.t = 2.499
    timers.fire_due()
    assert len(log) == 0

    clock.t = 2.5
    timers.fire_due()
    assert len(log) == 1


def test_late_poll_replays_missed_trials_on_their_own_schedule() -> None:
    clock = FakeClock()
    scheduler, timers, _, log = _build(clock)
    scheduler.start()

    clock.t = 7.6
    timers.fire_due()

    assert len(log) == 3
    assert scheduler.current_index == 3
    assert scheduler.trial_started_at_s(3) == pytest.approx(7.5)
    # Trial 3 started at 7.5, so its clear timer (7.5 + 1.7) has not fired.
    assert scheduler.presentation == EXAMPLE[3]


def test_press_is_attributed_to_the_trial_on_screen() -> None:
    clock = FakeClock()
    scheduler, timers, capture, log = _build(clock)
    scheduler.start()

    clock.t = 5.0
    timers.fire_due()  # trials 0 and 1 scored, trial 2 on screen
    capture.press(ResponseChannel.POSITION)
    capture.press(ResponseChannel.AUDIO)

    clock.t = 7.5
    timers.fire_due()

    results = log.snapshot()
    assert [r.position_response for r in results] == [False, False, True]
    assert results[2].position_correct is True
    assert results[2].audio_correct is True


def test_stop_cancels_both_timers_and_blocks_further_results() -> None:
    clock = FakeClock()
    scheduler, timers, capture, log = _build(clock)
    scheduler.start()

    clock.t = 2.5
    timers.fire_due()
    clock.t = 3.0  # mid-presentation of trial 1
    timers.fire_due()
    assert timers.pending_count == 2

    assert scheduler.stop() is True
    assert timers.pending_count == 0
    assert scheduler.state is BlockState.STOPPED
    assert scheduler.presentation is None
    assert capture.armed is False

    clock.t = 100.0
    timers.fire_due()
    assert len(log) == 1
    assert scheduler.stop() is False
    assert scheduler.start() is False


def test_missing_stimulus_falls_back_to_generation() -> None:
    clock = FakeClock()
    extra = Stimulus(position=8, letter="V")
    scheduler, timers, _, log = _build(
        clock,
        sequence=EXAMPLE[:3],
        block_length=4,
        fallback=lambda: extra,
    )
    scheduler.start()
    clock.t = 10.0
    timers.fire_due()

    assert len(log) == 4
    assert scheduler.fallback_count == 1
    assert log.snapshot()[3].is_position_match is False


def test_missing_stimulus_without_fallback_raises() -> None:
    clock = FakeClock()
    scheduler, timers, _, _ = _build(clock, sequence=EXAMPLE[:1], block_length=2)
    scheduler.start()
    clock.t = 2.5
    with pytest.raises(IndexError):
        timers.fire_due()


def test_invalid_arguments_are_rejected() -> None:
    clock = FakeClock()
    with pytest.raises(ValueError):
        _build(clock, n=0)
    with pytest.raises(ValueError):
        _build(clock, interval_ms=0)
