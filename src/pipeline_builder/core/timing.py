"""Debouncer and Throttler — small stateful rate limiters owning their own timers.

Timers come from a *timer factory* ``factory(delay_s, callback) -> timer``
where the returned object has ``start()`` and ``cancel()``.
``threading.Timer`` fits that shape and is the default; the GUI passes a
``QTimer``-backed factory so callbacks run on the Qt event loop.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import Any, Protocol

logger = logging.getLogger(__name__)


class Timer(Protocol):
    """A one-shot timer handle."""

    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], Timer]


def thread_timer(delay: float, callback: Callable[[], None]) -> Timer:
    """Default timer factory backed by a daemon ``threading.Timer``."""
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    return timer


class Debouncer:
    """Delay *callback* until calls stop arriving for *delay* seconds.

    Every call cancels the pending timer and starts a new one with the
    latest arguments, so a burst of calls results in a single invocation.

    Args:
        delay: Quiet period in seconds.
        callback: Function to invoke once the burst settles.
        timer_factory: Creates the underlying one-shot timer.
    """

    def __init__(
        self,
        delay: float,
        callback: Callable[..., Any],
        *,
        timer_factory: TimerFactory | None = None,
    ) -> None:
        """Initialise an idle debouncer.

        Args:
            delay: Quiet period in seconds.
            callback: Function to invoke once the burst settles.
            timer_factory: Timer factory; ``thread_timer`` if ``None``.
        """
        self.delay = delay
        self._callback = callback
        self._timer_factory = timer_factory or thread_timer
        self._timer: Timer | None = None
        self._args: tuple[Any, ...] = ()
        self._kwargs: dict[str, Any] = {}
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def pending(self) -> bool:
        """Return ``True`` while an invocation is scheduled."""
        return self._timer is not None

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        """Schedule the callback, replacing any pending invocation."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._args = args
            self._kwargs = kwargs
            self._generation += 1
            generation = self._generation
            timer = self._timer_factory(self.delay, lambda: self._fire(generation))
            self._timer = timer
        timer.start()

    def cancel(self) -> None:
        """Drop the pending invocation, if any."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def flush(self) -> bool:
        """Run the pending invocation now.

        Returns:
            ``True`` if something was pending and has been run.
        """
        with self._lock:
            if self._timer is None:
                return False
            self._timer.cancel()
            generation = self._generation
        self._fire(generation)
        return True

    def _fire(self, generation: int) -> None:
        with self._lock:
            # A timer that was replaced or cancelled after it started firing.
            if self._timer is None or generation != self._generation:
                return
            self._timer = None
            args, kwargs = self._args, self._kwargs
        self._callback(*args, **kwargs)


class Throttler:
    """Let at most one call through per *interval* seconds.

    Calls arriving inside the interval after a successful call are dropped.

    Args:
        interval: Minimum spacing between invocations, in seconds.
        callback: Function to invoke.
        clock: Monotonic clock used to measure the interval.
    """

    def __init__(
        self,
        interval: float,
        callback: Callable[..., Any],
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialise the throttler.

        Args:
            interval: Minimum spacing between invocations, in seconds.
            callback: Function to invoke.
            clock: Monotonic clock, injectable for tests.
        """
        self.interval = interval
        self._callback = callback
        self._clock = clock
        self._last: float | None = None

    def __call__(self, *args: Any, **kwargs: Any) -> bool:
        """Invoke the callback unless the previous call is too recent.

        Returns:
            ``True`` if the callback ran, ``False`` if the call was dropped.
        """
        now = self._clock()
        if self._last is not None and now - self._last < self.interval:
            logger.debug("Throttled call to %r", self._callback)
            return False
        self._last = now
        self._callback(*args, **kwargs)
        return True

    def reset(self) -> None:
        """Forget the last call so the next one goes through."""
        self._last = None
