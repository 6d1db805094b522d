"""
------------------------------------------------------------------------------
Project:        ChartDeck
File:           gui/report_canvas.py
Version:        1.0.0
Description:    Report canvas: chart cards placed on the 12-column grid,
                draggable by their header and resizable from the bottom-right
                grip when the report is editable. Each card has a menu for
                edit/delete/refresh and the export formats.
------------------------------------------------------------------------------
"""

import html
import os
from typing import Dict, Optional

from PyQt6.QtWidgets import (QWidget, QVBoxLayout, QHBoxLayout, QLabel, QFrame,
                             QToolButton, QMenu, QFileDialog, QSizePolicy)
from PyQt6.QtCore import Qt, QEvent, QPoint, pyqtSignal
from PyQt6.QtGui import QCursor

from core.config import AppConfig
from core.exporters.csv_export import export_chart_csv, export_filename
from core.exporters.pdf_report import ChartPage, PdfReportGenerator
from core.layout import GridLayoutEngine
from core.lifecycle import ReportController
from core.logger import get_logger
from core.models.reporting import Chart
from core.refresh import ScheduledTask
from core.rendering import ChartRenderer
from gui.charts import ChartView

logger = get_logger("gui.canvas")

HEADER_HEIGHT = 32
GRIP_SIZE = 14
MEASURE_DELAYS_MS = (50, 200)
EXPORT_FORMATS = ("csv", "png", "pdf")


class ResizeGrip(QLabel):
    """Bottom-right handle; reports pixel deltas while pressed."""
    resize_started = pyqtSignal()
    resize_moved = pyqtSignal(int, int)
    resize_finished = pyqtSignal()

    def __init__(self, parent=None):
        super().__init__("◢", parent)
        self.setFixedSize(GRIP_SIZE, GRIP_SIZE)
        self.setStyleSheet("color: #94a3b8; font-size: 9pt;")
        self.setCursor(QCursor(Qt.CursorShape.SizeFDiagCursor))
        self._origin: Optional[QPoint] = None

    def mousePressEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            self._origin = event.globalPosition().toPoint()
            self.resize_started.emit()

    def mouseMoveEvent(self, event):
        if self._origin is not None:
            delta = event.globalPosition().toPoint() - self._origin
            self.resize_moved.emit(delta.x(), delta.y())

    def mouseReleaseEvent(self, event):
        if self._origin is not None:
            self._origin = None
            self.resize_finished.emit()


class ChartCard(QFrame):
    """One chart on the canvas: header (title, menu), chart surface, resize grip."""
    drag_started = pyqtSignal(str)
    drag_moved = pyqtSignal(str, int, int)
    drag_finished = pyqtSignal(str)
    action_requested = pyqtSignal(str, str)  # chart_id, action
    menu_toggled = pyqtSignal(str)

    def __init__(self, chart: Chart, can_edit: bool, renderer: ChartRenderer, parent=None):
        super().__init__(parent)
        self.chart = chart
        self.can_edit = can_edit
        self._drag_origin: Optional[QPoint] = None
        self.setObjectName("ChartCard")
        self.setStyleSheet("""
            QFrame#ChartCard {
                background: white; border: 1px solid #e2e8f0; border-radius: 12px;
            }
        """)

        layout = QVBoxLayout(self)
        layout.setContentsMargins(12, 8, 12, 4)
        layout.setSpacing(4)

        self.header = QWidget()
        self.header.setFixedHeight(HEADER_HEIGHT)
        header_ly = QHBoxLayout(self.header)
        header_ly.setContentsMargins(0, 0, 0, 0)
        self.lbl_title = QLabel(f"<span style='color: #475569; font-weight: bold;'>{html.escape(chart.title)}</span>")
        header_ly.addWidget(self.lbl_title, 1)
        if can_edit:
            self.header.setCursor(QCursor(Qt.CursorShape.OpenHandCursor))

        self.btn_menu = QToolButton()
        self.btn_menu.setText("⋮")
        self.btn_menu.setToolTip(self.tr("Chart actions"))
        self.btn_menu.setAutoRaise(True)
        self.btn_menu.clicked.connect(self.show_menu)
        header_ly.addWidget(self.btn_menu)
        layout.addWidget(self.header)

        self.view = ChartView(renderer=renderer)
        self.view.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Expanding)
        layout.addWidget(self.view, 1)

        self.grip = ResizeGrip(self)
        self.grip.setVisible(can_edit)
        self.header.installEventFilter(self)

    def menu_actions(self):
        """(action, label) pairs; edit and delete only for editable reports."""
        actions = []
        if self.can_edit:
            actions.append(("edit", self.tr("Edit")))
        actions.append(("refresh", self.tr("Refresh")))
        actions.append(("csv", self.tr("Export CSV")))
        actions.append(("png", self.tr("Export PNG")))
        actions.append(("pdf", self.tr("Export PDF")))
        if self.can_edit:
            actions.append(("delete", self.tr("Delete")))
        return actions

    def show_menu(self):
        menu = QMenu(self)
        chosen = {}
        for key, label in self.menu_actions():
            if key == "delete":
                menu.addSeparator()
            chosen[menu.addAction(label)] = key
        self.menu_toggled.emit(self.chart.id)
        action = menu.exec(self.btn_menu.mapToGlobal(QPoint(0, self.btn_menu.height())))
        self.menu_toggled.emit(self.chart.id)
        if action in chosen:
            self.action_requested.emit(self.chart.id, chosen[action])

    def resizeEvent(self, event):
        super().resizeEvent(event)
        self.grip.move(self.width() - GRIP_SIZE - 2, self.height() - GRIP_SIZE - 2)
        self.grip.raise_()

    def eventFilter(self, obj, event):
        if obj is self.header and self.can_edit:
            etype = event.type()
            if etype == QEvent.Type.MouseButtonPress and event.button() == Qt.MouseButton.LeftButton:
                self._drag_origin = event.globalPosition().toPoint()
                self.drag_started.emit(self.chart.id)
                return True
            if etype == QEvent.Type.MouseMove and self._drag_origin is not None:
                delta = event.globalPosition().toPoint() - self._drag_origin
                self.drag_moved.emit(self.chart.id, delta.x(), delta.y())
                return True
            if etype == QEvent.Type.MouseButtonRelease and self._drag_origin is not None:
                self._drag_origin = None
                self.drag_finished.emit(self.chart.id)
                return True
        return super().eventFilter(obj, event)


class ReportCanvas(QWidget):
    """
    Lays out the current report's charts with GridLayoutEngine and keeps
    the cards in sync with the controller's report and chart data.
    """
    edit_chart_requested = pyqtSignal(str)

    def __init__(self, controller: ReportController, config: Optional[AppConfig] = None, parent=None):
        super().__init__(parent)
        self.controller = controller
        self.config = config
        self.renderer = ChartRenderer()
        self.engine = GridLayoutEngine(on_layout_change=self.controller.save_layouts)
        self.cards: Dict[str, ChartCard] = {}
        self._report_id: Optional[str] = None
        self._gesture_start = None

        self.setSizePolicy(QSizePolicy.Policy.Expanding, QSizePolicy.Policy.Minimum)
        self.lbl_empty = QLabel(self.tr("No charts yet. Use 'Add Chart' to create one."), self)
        self.lbl_empty.setStyleSheet("color: #94a3b8;")
        self.lbl_empty.setAlignment(Qt.AlignmentFlag.AlignCenter)

        # Parent size is not final right after mount; measure again shortly after
        self._measure_tasks = [ScheduledTask(self.measure, delay, parent=self) for delay in MEASURE_DELAYS_MS]

        self.controller.add_listener(self._on_state_changed)

    # --- Controller sync ---

    def _on_state_changed(self, topic: str):
        if topic == "report":
            self.rebuild()
        elif topic == "chart_data":
            self.update_data()

    def rebuild(self):
        report = self.controller.current_report
        for card in self.cards.values():
            card.setParent(None)
            card.deleteLater()
        self.cards = {}

        if report is None:
            self._report_id = None
            self.engine.load([])
            self.teardown()
            self._apply_geometry()
            return

        if report.id != self._report_id:
            self._report_id = report.id
            for task in self._measure_tasks:
                task.start()

        self.engine.can_edit = report.can_edit
        self.engine.load_charts(report.charts)
        for chart in report.charts:
            card = ChartCard(chart, report.can_edit, self.renderer, self)
            card.action_requested.connect(self.handle_action)
            card.menu_toggled.connect(self.controller.toggle_menu)
            card.drag_started.connect(self._on_drag_started)
            card.drag_moved.connect(self._on_drag_moved)
            card.drag_finished.connect(self._on_drag_finished)
            card.grip.resize_started.connect(lambda cid=chart.id: self._on_resize_started(cid))
            card.grip.resize_moved.connect(lambda dx, dy, cid=chart.id: self._on_resize_moved(cid, dx, dy))
            card.grip.resize_finished.connect(lambda cid=chart.id: self._on_resize_finished(cid))
            card.show()
            self.cards[chart.id] = card
        self.update_data()
        self._apply_geometry()

    def update_data(self):
        for chart_id, card in self.cards.items():
            state = self.controller.chart_state(chart_id)
            card.view.show_chart(card.chart, state.data, error=state.error, loading=state.loading)

    # --- Geometry ---

    def measure(self):
        if self.engine.set_container_width(self.width()):
            self._apply_geometry()

    def resizeEvent(self, event):
        super().resizeEvent(event)
        self.measure()

    def _apply_geometry(self):
        self.lbl_empty.setVisible(not self.cards)
        self.lbl_empty.setGeometry(0, 0, self.width(), 120)
        for chart_id, card in self.cards.items():
            rect = self.engine.rect(chart_id)
            if rect is None:
                continue
            px = self.engine.to_pixels(rect)
            card.setGeometry(px.x, px.y, px.width, px.height)
        self.setMinimumHeight(max(self.engine.container_height(), 120))

    def teardown(self):
        for task in self._measure_tasks:
            task.cancel()

    # --- Gestures ---

    def _on_drag_started(self, chart_id: str):
        if self.engine.begin_drag(chart_id):
            self._gesture_start = self.engine.to_pixels(self.engine.rect(chart_id))
            self.cards[chart_id].raise_()

    def _on_drag_moved(self, chart_id: str, dx: int, dy: int):
        if self._gesture_start is None:
            return
        rect = self.engine.rect(chart_id)
        x, y = self.engine.grid_position(self._gesture_start.x + dx, self._gesture_start.y + dy, rect.w)
        if self.engine.drag_to(chart_id, x, y):
            self._apply_geometry()

    def _on_drag_finished(self, chart_id: str):
        self._gesture_start = None
        self.engine.end_drag(chart_id)
        self._apply_geometry()

    def _on_resize_started(self, chart_id: str):
        if self.engine.begin_resize(chart_id):
            self._gesture_start = self.engine.to_pixels(self.engine.rect(chart_id))

    def _on_resize_moved(self, chart_id: str, dx: int, dy: int):
        if self._gesture_start is None:
            return
        rect = self.engine.rect(chart_id)
        w, h = self.engine.grid_size(self._gesture_start.width + dx, self._gesture_start.height + dy, rect.x)
        if self.engine.resize_to(chart_id, w, h):
            self._apply_geometry()

    def _on_resize_finished(self, chart_id: str):
        self._gesture_start = None
        self.engine.end_resize(chart_id)
        self._apply_geometry()

    # --- Menu actions ---

    def handle_action(self, chart_id: str, action: str):
        if action == "edit":
            self.edit_chart_requested.emit(chart_id)
        elif action == "delete":
            self.controller.delete_chart(chart_id)
        elif action == "refresh":
            self.controller.refresh_chart(chart_id)
        elif action in EXPORT_FORMATS:
            self.export_chart(chart_id, action)

    def export_bytes(self, chart_id: str, fmt: str) -> bytes:
        card = self.cards[chart_id]
        state = self.controller.chart_state(chart_id)
        if fmt == "csv":
            return export_chart_csv(card.chart, state.data)
        if fmt == "png":
            return card.view.to_png()
        if fmt == "pdf":
            page = ChartPage(chart=card.chart, data=state.data, image=card.view.to_png())
            return PdfReportGenerator().generate_chart(page)
        raise ValueError(f"Unsupported export format: {fmt}")

    def export_chart(self, chart_id: str, fmt: str, path: Optional[str] = None) -> Optional[str]:
        card = self.cards.get(chart_id)
        if card is None:
            return None
        if path is None:
            start_dir = self.config.get_export_dir() if self.config else ""
            suggested = os.path.join(start_dir, export_filename(card.chart.title, fmt))
            path, _ = QFileDialog.getSaveFileName(self, self.tr("Export Chart"), suggested,
                                                  f"{fmt.upper()} (*.{fmt})")
            if not path:
                return None
        try:
            with open(path, "wb") as f:
                f.write(self.export_bytes(chart_id, fmt))
        except OSError as e:
            logger.error(f"Export of chart {chart_id} to {path} failed: {e}")
            self.controller.notify(f"Export failed: {e}", "error")
            return None
        logger.info(f"Exported chart {chart_id} as {fmt} to {path}")
        self.controller.notify(f"Exported to {os.path.basename(path)}", "success")
        return path

    def export_report_pdf(self, path: str) -> bool:
        """All charts of the current report, one page each."""
        report = self.controller.current_report
        if report is None:
            return False
        pages = []
        for chart in report.charts:
            card = self.cards.get(chart.id)
            state = self.controller.chart_state(chart.id)
            pages.append(ChartPage(chart=chart, data=state.data,
                                   image=card.view.to_png() if card else None))
        try:
            with open(path, "wb") as f:
                f.write(PdfReportGenerator().generate_report(report, pages))
        except OSError as e:
            logger.error(f"Report PDF export to {path} failed: {e}")
            self.controller.notify(f"Export failed: {e}", "error")
            return False
        self.controller.notify(f"Exported to {os.path.basename(path)}", "success")
        return True
