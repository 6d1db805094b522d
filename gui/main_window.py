"""
------------------------------------------------------------------------------
Project:        ChartDeck
File:           gui/main_window.py
Version:        1.0.0
Description:    Main application window. Switches between the report list,
                the open report and the report editor, and owns the
                auto-refresh schedule of the open report.
------------------------------------------------------------------------------
"""

import os
from typing import Optional

from PyQt6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QPushButton, QLabel, QComboBox,
    QStackedWidget, QScrollArea, QFileDialog
)
from PyQt6.QtCore import Qt
from PyQt6.QtGui import QAction, QCloseEvent, QKeySequence

from core.config import AppConfig
from core.exporters.csv_export import export_filename
from core.filter_expression import summarize
from core.lifecycle import ReportController, View
from core.logger import get_logger
from core.models.reporting import DateRangeSpec
from core.refresh import AutoRefreshScheduler
from gui.chart_builder import ChartBuilderDialog
from gui.report_canvas import ReportCanvas
from gui.report_editor import ReportEditorWidget
from gui.reports_list import ReportsListWidget
from gui.utils import confirm_action, show_notification
from gui.workers import ThreadRunner

logger = get_logger("gui.main_window")

STATUS_TIMEOUT_MS = 5000
PILL_STYLE = "background: #eef2ff; color: #3730a3; border-radius: 8px; padding: 2px 8px; font-size: 8pt;"


class ReportHeader(QWidget):
    """Title, filter pills and report-level actions above the canvas."""

    def __init__(self, parent=None):
        super().__init__(parent)
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        top = QHBoxLayout()
        self.btn_back = QPushButton(self.tr("← Reports"))
        top.addWidget(self.btn_back)
        self.lbl_title = QLabel()
        self.lbl_title.setTextFormat(Qt.TextFormat.PlainText)
        self.lbl_title.setStyleSheet("font-size: 16pt; font-weight: bold; color: #2c3e50;")
        top.addWidget(self.lbl_title, 1)

        self.combo_date_range = QComboBox()
        self.combo_date_range.setToolTip(self.tr("Default date range of this report"))
        top.addWidget(self.combo_date_range)
        self.btn_refresh = QPushButton(self.tr("Refresh"))
        top.addWidget(self.btn_refresh)
        self.btn_export = QPushButton(self.tr("Export PDF"))
        top.addWidget(self.btn_export)
        self.btn_edit = QPushButton(self.tr("Edit Report"))
        top.addWidget(self.btn_edit)
        self.btn_add_chart = QPushButton(self.tr("+ Add Chart"))
        top.addWidget(self.btn_add_chart)
        layout.addLayout(top)

        self.pills_row = QHBoxLayout()
        self.pills_row.setSpacing(6)
        layout.addLayout(self.pills_row)
        self.lbl_description = QLabel()
        self.lbl_description.setTextFormat(Qt.TextFormat.PlainText)
        self.lbl_description.setStyleSheet("color: #64748b;")
        self.lbl_description.setWordWrap(True)
        layout.addWidget(self.lbl_description)

    def set_pills(self, texts, overflow_text: str = ""):
        while self.pills_row.count():
            item = self.pills_row.takeAt(0)
            if item.widget():
                item.widget().deleteLater()
        for text in texts:
            pill = QLabel(text)
            pill.setTextFormat(Qt.TextFormat.PlainText)
            pill.setStyleSheet(PILL_STYLE)
            self.pills_row.addWidget(pill)
        if overflow_text:
            more = QLabel(overflow_text)
            more.setStyleSheet("color: #64748b; font-size: 8pt;")
            self.pills_row.addWidget(more)
        self.pills_row.addStretch()


class MainWindow(QMainWindow):
    """
    Args:
        controller: The report controller (GUI instances use a ThreadRunner).
        app_config: Settings (export dir, refresh defaults).
    """

    def __init__(self, controller: ReportController, app_config: Optional[AppConfig] = None, parent=None):
        super().__init__(parent)
        self.controller = controller
        self.app_config = app_config
        self.setWindowTitle("ChartDeck")
        self.resize(1400, 900)

        self.controller.notify = self.notify
        self.controller.confirm = lambda text: confirm_action(self, text)

        self.scheduler = AutoRefreshScheduler(self._auto_refresh, parent=self)
        self.scheduler.tick_skipped.connect(lambda: logger.debug("Auto-refresh tick skipped, previous refresh still running"))

        self.central_stack = QStackedWidget()
        self.setCentralWidget(self.central_stack)

        self.reports_list = ReportsListWidget(controller)
        self.reports_list.create_requested.connect(self.create_report)
        self.central_stack.addWidget(self.reports_list)

        self.report_page = QWidget()
        page_ly = QVBoxLayout(self.report_page)
        self.header = ReportHeader()
        page_ly.addWidget(self.header)
        self.canvas = ReportCanvas(controller, app_config)
        self.canvas.edit_chart_requested.connect(self.edit_chart)
        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setWidget(self.canvas)
        page_ly.addWidget(scroll, 1)
        self.central_stack.addWidget(self.report_page)

        self.editor = ReportEditorWidget(controller, app_config)
        self.central_stack.addWidget(self.editor)

        self.header.btn_back.clicked.connect(self.controller.close_report)
        self.header.btn_refresh.clicked.connect(lambda: self.controller.refresh_all())
        self.header.btn_edit.clicked.connect(self.edit_report)
        self.header.btn_add_chart.clicked.connect(lambda: self.edit_chart(None))
        self.header.btn_export.clicked.connect(self.export_report_pdf)
        self.header.combo_date_range.currentIndexChanged.connect(self._on_date_range_selected)

        self._setup_menubar()
        self.controller.add_listener(self._on_state_changed)
        self._show_view(self.controller.state.view)

    def _setup_menubar(self):
        menubar = self.menuBar()
        file_menu = menubar.addMenu(self.tr("&File"))
        action_new = QAction(self.tr("&New Report"), self)
        action_new.setShortcut(QKeySequence.StandardKey.New)
        action_new.triggered.connect(self.create_report)
        file_menu.addAction(action_new)
        action_export = QAction(self.tr("Export Report as PDF..."), self)
        action_export.triggered.connect(self.export_report_pdf)
        file_menu.addAction(action_export)
        file_menu.addSeparator()
        action_exit = QAction(self.tr("E&xit"), self)
        action_exit.triggered.connect(self.close)
        file_menu.addAction(action_exit)

        view_menu = menubar.addMenu(self.tr("&View"))
        action_refresh = QAction(self.tr("&Refresh"), self)
        action_refresh.setShortcut(QKeySequence.StandardKey.Refresh)
        action_refresh.triggered.connect(self.refresh)
        view_menu.addAction(action_refresh)

    def start(self):
        """Initial loads after the window is shown."""
        self.controller.load_metadata()
        self.controller.load_reports()

    # --- Controller sync ---

    def _on_state_changed(self, topic: str):
        if topic == "view":
            self._show_view(self.controller.state.view)
        elif topic == "report":
            self._update_header()
            self._update_schedule()
        elif topic == "metadata":
            self._update_header()

    def _show_view(self, view: View):
        target = {View.LIST: self.reports_list, View.REPORT: self.report_page, View.EDIT: self.editor}[view]
        self.central_stack.setCurrentWidget(target)
        if view == View.LIST:
            self.reports_list.populate()

    def _update_header(self):
        report = self.controller.current_report
        if report is None:
            self.header.lbl_title.clear()
            self.header.set_pills([])
            return
        catalog = self.controller.catalog
        self.header.lbl_title.setText(report.title)
        self.header.lbl_description.setText(report.description)
        self.header.lbl_description.setVisible(bool(report.description))
        for btn in (self.header.btn_edit, self.header.btn_add_chart):
            btn.setVisible(report.can_edit)
        summary = summarize(report.filters, catalog)
        self.header.set_pills([p.text for p in summary.pills], summary.overflow_text)

        combo = self.header.combo_date_range
        combo.blockSignals(True)
        combo.clear()
        for opt in catalog.date_range_options():
            combo.addItem(opt.label or str(opt.value), opt.value)
        idx = combo.findData(report.date_range.type)
        if idx < 0:
            combo.addItem(catalog.date_range_label(report.date_range.type), report.date_range.type)
            idx = combo.count() - 1
        combo.setCurrentIndex(idx)
        combo.setEnabled(report.can_edit)
        combo.blockSignals(False)

    def _update_schedule(self):
        report = self.controller.current_report
        if report is not None and report.auto_refresh.enabled:
            self.scheduler.start(report.auto_refresh.interval or self._default_refresh_interval())
        else:
            self.scheduler.stop()

    def _default_refresh_interval(self) -> int:
        if self.app_config is not None:
            return self.app_config.get_auto_refresh_interval()
        return AppConfig.DEFAULT_AUTO_REFRESH_INTERVAL

    def _auto_refresh(self, done):
        if not self.controller.refresh_all(on_done=done):
            done()

    # --- Actions ---

    def refresh(self):
        if self.controller.current_report is not None:
            self.controller.refresh_all()
        else:
            self.controller.load_reports()

    def _on_date_range_selected(self):
        range_type = self.header.combo_date_range.currentData()
        report = self.controller.current_report
        if report is None or not range_type or range_type == report.date_range.type:
            return
        self.controller.change_date_range(DateRangeSpec(type=range_type))

    def create_report(self):
        self.editor.load(None)
        self.controller.set_view(View.EDIT)

    def edit_report(self):
        report = self.controller.current_report
        if report is None:
            return
        self.editor.load(report)
        self.controller.start_edit_report()

    def edit_chart(self, chart_id: Optional[str]):
        report = self.controller.current_report
        if report is None:
            return
        chart = report.find_chart(chart_id) if chart_id else None
        dialog = ChartBuilderDialog(self.controller, chart, self)
        dialog.exec()

    def export_report_pdf(self):
        report = self.controller.current_report
        if report is None:
            return
        start_dir = self.app_config.get_export_dir() if self.app_config else ""
        suggested = os.path.join(start_dir, export_filename(report.title, "pdf"))
        path, _ = QFileDialog.getSaveFileName(self, self.tr("Export Report"), suggested, "PDF (*.pdf)")
        if path:
            self.canvas.export_report_pdf(path)

    def notify(self, message: str, level: str = "info"):
        self.statusBar().showMessage(message, STATUS_TIMEOUT_MS)
        if level == "error":
            logger.warning(message)
            # errors stay non-blocking; the tray notice covers a backgrounded window
            if not self.isActiveWindow():
                show_notification(self, "ChartDeck", message)

    def closeEvent(self, event: QCloseEvent):
        self.scheduler.stop()
        self.canvas.teardown()
        runner = self.controller.runner
        if isinstance(runner, ThreadRunner):
            runner.wait_all()
        super().closeEvent(event)
