from __future__ import annotations
from typing import Callable

from PySide6 import QtCore

from utils.CONSTANT import RELAYOUT_DELAY_MS


class Debouncer(QtCore.QObject):
    """Cancelable one-shot delay that coalesces bursts of triggers.

    Each trigger() restarts the timer, so only the last trigger of a burst
    reaches the action. Work already running is never interrupted.
    """

    fired = QtCore.Signal()

    def __init__(self, action: Callable[[], None], delay_ms: int = RELAYOUT_DELAY_MS, parent=None):
        super().__init__(parent)
        self._action = action
        self._timer = QtCore.QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(max(0, int(delay_ms)))
        self._timer.timeout.connect(self._fire)

    @property
    def delay_ms(self) -> int:
        return int(self._timer.interval())

    def trigger(self) -> None:
        # start() on an active timer restarts it
        self._timer.start()

    def cancel(self) -> bool:
        """Drop the pending action; returns True when one was pending."""
        if self._timer.isActive():
            self._timer.stop()
            return True
        return False

    def is_pending(self) -> bool:
        return self._timer.isActive()

    def flush(self) -> bool:
        """Run a pending action now instead of waiting for the delay."""
        if not self.cancel():
            return False
        self._fire()
        return True

    def _fire(self) -> None:
        self._action()
        self.fired.emit()
