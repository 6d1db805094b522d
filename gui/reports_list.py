from typing import List

from PyQt6.QtWidgets import (QWidget, QVBoxLayout, QHBoxLayout, QLineEdit, QPushButton,
                             QListWidget, QListWidgetItem, QLabel, QMenu)
from PyQt6.QtCore import Qt, pyqtSignal
from PyQt6.QtGui import QFont

from core.lifecycle import ReportController
from core.models.reporting import Report
from gui.utils import format_updated

ROLE_REPORT_ID = Qt.ItemDataRole.UserRole


def filter_reports(reports: List[Report], query: str) -> List[Report]:
    """Case-insensitive match on title and description."""
    needle = (query or "").strip().lower()
    if not needle:
        return list(reports)
    return [r for r in reports if needle in r.title.lower() or needle in (r.description or "").lower()]


class ReportsListWidget(QWidget):
    """Searchable report list, pinned reports in their own section on top."""
    create_requested = pyqtSignal()

    def __init__(self, controller: ReportController, parent=None):
        super().__init__(parent)
        self.controller = controller

        layout = QVBoxLayout(self)
        header = QHBoxLayout()
        title = QLabel(self.tr("Reports"))
        title.setStyleSheet("font-size: 16pt; font-weight: bold; color: #2c3e50;")
        header.addWidget(title)
        header.addStretch()
        self.edit_search = QLineEdit()
        self.edit_search.setPlaceholderText(self.tr("Search reports..."))
        self.edit_search.setClearButtonEnabled(True)
        self.edit_search.textChanged.connect(self.populate)
        header.addWidget(self.edit_search)
        self.btn_new = QPushButton(self.tr("+ New Report"))
        self.btn_new.clicked.connect(self.create_requested)
        header.addWidget(self.btn_new)
        layout.addLayout(header)

        self.list = QListWidget()
        self.list.setContextMenuPolicy(Qt.ContextMenuPolicy.CustomContextMenu)
        self.list.customContextMenuRequested.connect(self._show_context_menu)
        self.list.itemActivated.connect(self._on_item_activated)
        self.list.itemDoubleClicked.connect(self._on_item_activated)
        layout.addWidget(self.list, 1)

        self.lbl_status = QLabel()
        self.lbl_status.setStyleSheet("color: #94a3b8;")
        layout.addWidget(self.lbl_status)

        self.controller.add_listener(self._on_state_changed)

    def _on_state_changed(self, topic: str):
        if topic == "reports":
            self.populate()

    def populate(self):
        reports = filter_reports(self.controller.state.reports, self.edit_search.text())
        pinned = [r for r in reports if r.is_pinned]
        others = [r for r in reports if not r.is_pinned]
        self.list.clear()
        if pinned:
            self._add_section(self.tr("Pinned"))
            for report in pinned:
                self._add_report(report)
            if others:
                self._add_section(self.tr("All Reports"))
        for report in others:
            self._add_report(report)

        if self.controller.state.loading and not reports:
            self.lbl_status.setText(self.tr("Loading..."))
        elif not reports:
            self.lbl_status.setText(self.tr("No reports found") if self.edit_search.text() else self.tr("No reports yet"))
        else:
            self.lbl_status.setText(self.tr("{n} reports").format(n=len(reports)))

    def _add_section(self, text: str):
        item = QListWidgetItem(text)
        font = QFont()
        font.setBold(True)
        item.setFont(font)
        item.setFlags(Qt.ItemFlag.NoItemFlags)
        self.list.addItem(item)

    def _add_report(self, report: Report):
        meta = [self.tr("{n} charts").format(n=report.chart_count)]
        updated = format_updated(report.updated_at)
        if updated:
            meta.append(updated)
        prefix = "📌 " if report.is_pinned else ""
        item = QListWidgetItem(f"{prefix}{report.title}\n    {' · '.join(meta)}")
        item.setData(ROLE_REPORT_ID, report.id)
        if report.description:
            item.setToolTip(report.description)
        self.list.addItem(item)

    def report_ids(self) -> List[str]:
        """Report ids in display order (section headers skipped)."""
        ids = []
        for i in range(self.list.count()):
            rid = self.list.item(i).data(ROLE_REPORT_ID)
            if rid:
                ids.append(rid)
        return ids

    def _on_item_activated(self, item: QListWidgetItem):
        report_id = item.data(ROLE_REPORT_ID)
        if report_id:
            self.controller.open_report(report_id)

    def _show_context_menu(self, pos):
        item = self.list.itemAt(pos)
        report_id = item.data(ROLE_REPORT_ID) if item else None
        if not report_id:
            return
        report = next((r for r in self.controller.state.reports if r.id == report_id), None)
        menu = QMenu(self)
        open_action = menu.addAction(self.tr("Open"))
        pin_action = menu.addAction(self.tr("Unpin") if report and report.is_pinned else self.tr("Pin"))
        dup_action = menu.addAction(self.tr("Duplicate"))
        menu.addSeparator()
        delete_action = menu.addAction(self.tr("Delete"))

        action = menu.exec(self.list.mapToGlobal(pos))
        if action == open_action:
            self.controller.open_report(report_id)
        elif action == pin_action:
            self.controller.toggle_pin(report_id)
        elif action == dup_action:
            self.controller.duplicate_report(report_id)
        elif action == delete_action:
            self.controller.delete_report(report_id)
