"""
------------------------------------------------------------------------------
Project:        ChartDeck
File:           core/refresh.py
Version:        1.0.0
Description:    Scheduled work for report views: an in-flight gate so that
                overlapping refreshes never queue, cancellable timer tasks,
                and the fixed-interval auto-refresh scheduler.
------------------------------------------------------------------------------
"""

from typing import Callable, Optional

from PyQt6.QtCore import QObject, QTimer, pyqtSignal

from core.logger import get_logger

logger = get_logger("refresh")

MIN_REFRESH_INTERVAL_MS = 5000


class RefreshGate:
    """At most one refresh in flight. A trigger while busy is dropped, not queued."""

    def __init__(self) -> None:
        self._busy = False
        self.suppressed = 0

    @property
    def busy(self) -> bool:
        return self._busy

    def try_acquire(self) -> bool:
        if self._busy:
            self.suppressed += 1
            logger.debug("Refresh already in flight, trigger suppressed")
            return False
        self._busy = True
        return True

    def release(self) -> None:
        self._busy = False


class ScheduledTask(QObject):
    """
    A QTimer-backed callback that is owned and cancelled explicitly.
    `cancel()` must be called on teardown; it is safe to call repeatedly.
    """

    fired = pyqtSignal()

    def __init__(self, callback: Callable[[], None], interval_ms: int,
                 single_shot: bool = True, parent: Optional[QObject] = None):
        super().__init__(parent)
        self._callback = callback
        self._timer = QTimer(self)
        self._timer.setSingleShot(single_shot)
        self._timer.setInterval(int(interval_ms))
        self._timer.timeout.connect(self._on_timeout)

    @property
    def interval(self) -> int:
        return self._timer.interval()

    def is_active(self) -> bool:
        return self._timer.isActive()

    def start(self, interval_ms: Optional[int] = None) -> None:
        if interval_ms is not None:
            self._timer.setInterval(int(interval_ms))
        self._timer.start()

    def cancel(self) -> None:
        self._timer.stop()

    def _on_timeout(self) -> None:
        self._callback()
        self.fired.emit()


class AutoRefreshScheduler(QObject):
    """
    Re-runs `refresh` every `interval` ms while a report with auto-refresh
    enabled is open. `refresh` receives a completion callback and must call
    it when its fetch settles; ticks arriving before that are skipped.
    """

    tick_skipped = pyqtSignal()

    def __init__(self, refresh: Callable[[Callable[[], None]], None], parent: Optional[QObject] = None):
        super().__init__(parent)
        self._refresh = refresh
        self.gate = RefreshGate()
        self._task = ScheduledTask(self._tick, MIN_REFRESH_INTERVAL_MS, single_shot=False, parent=self)

    def is_running(self) -> bool:
        return self._task.is_active()

    def start(self, interval_ms: int) -> None:
        interval_ms = max(int(interval_ms), MIN_REFRESH_INTERVAL_MS)
        logger.info(f"Auto-refresh every {interval_ms} ms")
        self._task.start(interval_ms)

    def stop(self) -> None:
        if self._task.is_active():
            logger.info("Auto-refresh stopped")
        self._task.cancel()
        self.gate.release()

    def _tick(self) -> None:
        if not self.gate.try_acquire():
            self.tick_skipped.emit()
            return
        self._refresh(self.gate.release)
