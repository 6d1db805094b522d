from typing import Callable, Set

from PyQt6.QtCore import QObject, QThread, pyqtSignal

from core.logger import get_logger
from core.results import Result

logger = get_logger("gui.workers")


class ApiWorker(QThread):
    """
    Runs one service call off the GUI thread.
    The Result is delivered through `finished`, i.e. on the receiver's thread.
    """
    finished = pyqtSignal(object)  # Result

    def __init__(self, task: Callable[[], Result], parent=None):
        super().__init__(parent)
        self.task = task

    def run(self):
        try:
            result = self.task()
        except Exception as e:
            # Anything the controller did not map to ApiError still has to settle the call
            logger.exception("Background task crashed")
            result = Result.fail(str(e))
        self.finished.emit(result)


class ThreadRunner(QObject):
    """
    Runner for ReportController: each task on its own ApiWorker,
    completion callback invoked on the GUI thread.
    """

    def __init__(self, parent=None):
        super().__init__(parent)
        self._workers: Set[ApiWorker] = set()

    def __call__(self, task: Callable[[], Result], done: Callable[[Result], None]) -> None:
        worker = ApiWorker(task)
        self._workers.add(worker)

        def on_finished(result: Result, w=worker):
            self._workers.discard(w)
            w.deleteLater()
            done(result)

        worker.finished.connect(on_finished)
        worker.start()

    @property
    def pending(self) -> int:
        return len(self._workers)

    def wait_all(self, msecs: int = 5000) -> None:
        """Blocks until running workers are done (used on shutdown)."""
        for worker in list(self._workers):
            worker.wait(msecs)
