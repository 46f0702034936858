"""Shared fixtures: headless Qt and a hand-driven timer factory."""

from __future__ import annotations

import os
from collections.abc import Callable

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


class ManualTimer:
    """Timer that only fires when the test says so."""

    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self.started = False
        self.cancelled = False

    def start(self) -> None:
        """Mark the timer as running."""
        self.started = True

    def cancel(self) -> None:
        """Mark the timer as cancelled."""
        self.cancelled = True

    @property
    def active(self) -> bool:
        """Return ``True`` if started and not cancelled."""
        return self.started and not self.cancelled

    def fire(self) -> None:
        """Run the callback as the real timer would."""
        self.callback()


class ManualTimers:
    """Timer factory recording every timer it creates."""

    def __init__(self) -> None:
        self.created: list[ManualTimer] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(delay, callback)
        self.created.append(timer)
        return timer

    def active(self) -> list[ManualTimer]:
        """Return the timers still waiting to fire."""
        return [timer for timer in self.created if timer.active]

    def fire_all(self) -> int:
        """Fire every active timer once; returns how many fired."""
        pending = self.active()
        for timer in pending:
            timer.cancelled = True
            timer.fire()
        return len(pending)


@pytest.fixture()
def timers() -> ManualTimers:
    """Provide a fresh manual timer factory."""
    return ManualTimers()
