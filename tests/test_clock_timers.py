from __future__ import annotations

from dataclasses import dataclass

import pytest

from dual_nback_trainer.clock import TimerQueue


@dataclass
class FakeClock:
    t: float = 0.0

    def now(self) -> float:
        return self.t

    def advance(self, dt: float) -> None:
        self.t += float(dt)


def test_timers_fire_only_once_due_and_in_due_order() -> None:
    clock = FakeClock()
    timers = TimerQueue(clock)
    fired: list[str] = []

    timers.schedule(2.0, lambda: fired.append("late"))
    timers.schedule(1.0, lambda: fired.append("early"))

    assert timers.fire_due() == 0
    clock.advance(1.0)
    assert timers.fire_due() == 1
    assert fired == ["early"]

    clock.advance(5.0)
    assert timers.fire_due() == 1
    assert fired == ["early", "late"]
    assert timers.pending_count == 0


def test_same_instant_timers_fire_in_schedule_order() -> None:
    clock = FakeClock()
    timers = TimerQueue(clock)
    fired: list[int] = []

    for i in range(4):
        timers.schedule_at(1.0, lambda i=i: fired.append(i))

    clock.advance(1.0)
    timers.fire_due()
    assert fired == [0, 1, 2, 3]


def test_callbacks_can_chain_timers_that_are_already_due() -> None:
    clock = FakeClock()
    timers = TimerQueue(clock)
    fired: list[float] = []

    def step(at: float) -> None:
        fired.append(at)
        if at < 3.0:
            timers.schedule_at(at + 1.0, lambda: step(at + 1.0))

    timers.schedule_at(1.0, lambda: step(1.0))
    clock.advance(10.0)

    assert timers.fire_due() == 3
    assert fired == [1.0, 2.0, 3.0]


def test_cancel_and_cancel_all() -> None:
    clock = FakeClock()
    timers = TimerQueue(clock)
    fired: list[str] = []

    a = timers.schedule(1.0, lambda: fired.append("a"))
    timers.schedule(1.0, lambda: fired.append("b"))
    assert timers.cancel(a) is True
    assert timers.cancel(a) is False
    assert timers.cancel(None) is False

    assert timers.cancel_all() == 1
    clock.advance(2.0)
    assert timers.fire_due() == 0
    assert fired == []


def test_negative_delay_is_rejected() -> None:
    timers = TimerQueue(FakeClock())
    with pytest.raises(ValueError):
        timers.schedule(-0.1, lambda: None)
