"""QTimer-backed timer factory so debounced callbacks run on the GUI thread."""

from __future__ import annotations

from collections.abc import Callable

from PySide6.QtCore import QTimer


class QtTimer:
    """One-shot ``QTimer`` exposing the ``start``/``cancel`` timer interface.

    Args:
        delay: Delay in seconds.
        callback: Invoked on the Qt event loop when the timer fires.
    """

    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self._timer = QTimer()
        self._timer.setSingleShot(True)
        self._timer.setInterval(int(delay * 1000))
        self._timer.timeout.connect(callback)

    def start(self) -> None:
        """Start (or restart) the countdown."""
        self._timer.start()

    def cancel(self) -> None:
        """Stop the countdown without firing."""
        self._timer.stop()

    def is_active(self) -> bool:
        """Return ``True`` while the countdown is running."""
        return self._timer.isActive()


def qt_timer(delay: float, callback: Callable[[], None]) -> QtTimer:
    """Timer factory for ``Debouncer`` and ``GraphStore`` inside the GUI."""
    return QtTimer(delay, callback)
