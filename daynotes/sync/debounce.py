from __future__ import annotations

from typing import Callable, Optional

from PySide6.QtCore import QObject, QTimer


class Debouncer(QObject):
    """
    Single-slot cancellable alarm: schedule() (re)starts the countdown, so the
    callback runs once, `interval_ms` after the most recent schedule().
    """

    def __init__(
        self,
        callback: Callable[[], None],
        *,
        interval_ms: int,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._callback = callback
        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(max(0, int(interval_ms)))
        self._timer.timeout.connect(self._fire)

    @property
    def interval_ms(self) -> int:
        return self._timer.interval()

    def set_interval(self, interval_ms: int) -> None:
        self._timer.setInterval(max(0, int(interval_ms)))

    @property
    def is_pending(self) -> bool:
        return self._timer.isActive()

    def schedule(self) -> None:
        self._timer.start()

    def cancel(self) -> None:
        if self._timer.isActive():
            self._timer.stop()

    def flush(self) -> bool:
        """Run the pending callback now. Returns False if nothing was pending."""
        if not self._timer.isActive():
            return False
        self._timer.stop()
        self._fire()
        return True

    def _fire(self) -> None:
        self._callback()
