from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class ResponseChannel(StrEnum):
    POSITION = "position"
    AUDIO = "audio"


@dataclass(slots=True)
class ResponseLatch:
    """Response flags owned by a single trial.

    Created fresh when the trial's stimulus is presented and read once when
    the trial is scored.
    """

    position: bool = False
    audio: bool = False

    def set(self, channel: ResponseChannel) -> None:
        if channel is ResponseChannel.POSITION:
            self.position = True
        else:
            self.audio = True

    def is_set(self, channel: ResponseChannel) -> bool:
        return self.position if channel is ResponseChannel.POSITION else self.audio


class ResponseCapture:
    """Routes match presses into the latch of the trial currently on screen.

    The scheduler arms it with a new latch at trial start and disarms it at
    the scoring instant. While disarmed every press is dropped.
    """

    def __init__(self) -> None:
        self._latch: ResponseLatch | None = None

    @property
    def armed(self) -> bool:
        return self._latch is not None

    def arm(self, latch: ResponseLatch) -> None:
        self._latch = latch

    def disarm(self) -> ResponseLatch | None:
        latch = self._latch
        self._latch = None
        return latch

    def press(self, channel: ResponseChannel) -> bool:
        """Latch a press. Returns False if no trial is accepting responses."""

        if self._latch is None:
            return False
        self._latch.set(channel)
        return True
