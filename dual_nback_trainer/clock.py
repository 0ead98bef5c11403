from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol


class Clock(Protocol):
    """Monotonic clock abstraction.

    Core logic depends on this interface rather than calling real time directly.
    """

    def now(self) -> float:
        """Return monotonic seconds."""


class RealClock:
    """Production clock backed by time.monotonic()."""

    def now(self) -> float:
        return time.monotonic()


@dataclass(slots=True)
class _Timer:
    timer_id: int
    due_at_s: float
    callback: Callable[[], None]


class TimerQueue:
    """One-shot timers on an injected clock, fired from the host loop.

    Nothing runs on its own: ``fire_due()`` must be called (normally once per
    frame) and runs every callback whose due time has passed, earliest first.
    Timers due at the same instant fire in the order they were scheduled.
    Callbacks may schedule or cancel timers; both take effect immediately.
    """

    def __init__(self, clock: Clock) -> None:
        self._clock = clock
        self._timers: list[_Timer] = []
        self._next_id = 1

    @property
    def pending_count(self) -> int:
        return len(self._timers)

    def now(self) -> float:
        return self._clock.now()

    def schedule(self, delay_s: float, callback: Callable[[], None]) -> int:
        if delay_s < 0.0:
            raise ValueError("delay_s must be >= 0")
        return self.schedule_at(self._clock.now() + float(delay_s), callback)

    def schedule_at(self, due_at_s: float, callback: Callable[[], None]) -> int:
        timer_id = self._next_id
        self._next_id += 1
        self._timers.append(_Timer(timer_id=timer_id, due_at_s=float(due_at_s), callback=callback))
        return timer_id

    def cancel(self, timer_id: int | None) -> bool:
        if timer_id is None:
            return False
        for i, timer in enumerate(self._timers):
            if timer.timer_id == timer_id:
                del self._timers[i]
                return True
        return False

    def cancel_all(self) -> int:
        count = len(self._timers)
        self._timers.clear()
        return count

    def fire_due(self) -> int:
        """Run due callbacks. Returns how many fired."""

        fired = 0
        now = self._clock.now()
        while True:
            due = [t for t in self._timers if t.due_at_s <= now]
            if not due:
                return fired
            timer = min(due, key=lambda t: (t.due_at_s, t.timer_id))
            self._timers.remove(timer)
            timer.callback()
            fired += 1
