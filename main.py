"""
------------------------------------------------------------------------------
Project:        ChartDeck
File:           main.py
Version:        1.0.0
Description:    Application entry point. Initializes the Qt environment,
                logging and the reporting service client, then launches the
                main window.
------------------------------------------------------------------------------
"""

import argparse
import sys

from PyQt6.QtWidgets import QApplication
from PyQt6.QtCore import QCoreApplication, QTimer

from core.api_client import ReportApiClient
from core.config import AppConfig
from core.lifecycle import ReportController
from core.logger import setup_logging, get_logger
from gui.main_window import MainWindow
from gui.workers import ThreadRunner


def main() -> None:
    """
    ChartDeck Entry Point.
    Initializes infrastructure and launches the GUI.
    """
    parser = argparse.ArgumentParser(description="ChartDeck - Report and chart dashboards")
    parser.add_argument("-P", "--profile", type=str, help="Application profile for isolation (e.g. 'dev', 'staging')")
    parser.add_argument("--api-url", type=str, help="Override the reporting service URL for this session")
    args, _unknown = parser.parse_known_args()

    app = QApplication(sys.argv)

    app_id = "chartdeck"
    if args.profile:
        app_id = f"chartdeck-{args.profile}"
    QCoreApplication.setApplicationName(app_id)

    app_config = AppConfig(profile=args.profile)

    setup_logging(
        level=app_config.get_log_level(),
        log_file=str(app_config.get_log_file_path()),
        component_levels=app_config.get_log_components()
    )
    logger = get_logger("core")
    logger.info(f"ChartDeck started (Profile: {args.profile or 'default'})")

    api_url = args.api_url or app_config.get_api_url()
    client = ReportApiClient(api_url, token=app_config.get_api_token(),
                             timeout=app_config.get_request_timeout())
    logger.info(f"Reporting service: {client.base_url}")

    runner = ThreadRunner()
    controller = ReportController(client, runner=runner)

    window = MainWindow(controller, app_config=app_config)
    if args.profile:
        window.setWindowTitle(f"{window.windowTitle()} [PROFILE: {args.profile.upper()}]")
    window.show()
    QTimer.singleShot(0, window.start)

    sys.exit(app.exec())


if __name__ == "__main__":
    main()
