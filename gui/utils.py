import shutil
import subprocess

from PyQt6.QtWidgets import QMessageBox, QWidget

from core.logger import get_logger
from core.utils.formatting import format_relative_time

logger = get_logger("gui.utils")


def format_updated(value) -> str:
    """'Updated 5 minutes ago' style label for report cards."""
    if not value:
        return ""
    return f"Updated {format_relative_time(value)}"


def confirm_action(parent: QWidget, text: str, title: str = "ChartDeck") -> bool:
    """Yes/No question; only an explicit Yes confirms."""
    answer = QMessageBox.question(
        parent, title, text,
        QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
        QMessageBox.StandardButton.No,
    )
    return answer == QMessageBox.StandardButton.Yes


def show_notification(parent, title, text, duration=3000):
    """
    Shows a system-level notification using notify-send (FreeDesktop).
    Falls back to the log when notify-send is not installed.
    """
    if shutil.which("notify-send"):
        try:
            subprocess.run(["notify-send", "-a", "ChartDeck", "-t", str(duration), title, text], check=False)
        except OSError as e:
            logger.error(f"Failed to send system notification: {e}")
    else:
        logger.info(f"[Notification] {title}: {text}")
