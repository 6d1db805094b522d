from typing import Optional

from PyQt6.QtWidgets import (
    QWidget, QVBoxLayout, QHBoxLayout, QFormLayout, QLineEdit, QTextEdit, QComboBox,
    QPushButton, QLabel, QCheckBox, QSpinBox, QFrame, QScrollArea
)
from PyQt6.QtCore import pyqtSignal

from core.config import AppConfig
from core.lifecycle import ReportController
from core.logger import get_logger
from core.models.filters import FilterExpression
from core.models.reporting import (
    AutoRefreshPolicy, DATE_FIELDS, DateRangeSpec, Report, Visibility,
)
from core.refresh import MIN_REFRESH_INTERVAL_MS
from gui.filter_builder import FilterBuilderWidget

logger = get_logger("gui.report_editor")

DATE_FIELD_LABELS = {"dateEntered": "Date Entered", "gradedDate": "Graded Date", "createdAt": "Created At"}


class ReportEditorWidget(QWidget):
    """Settings of a single report (create or edit) with integrated filter builder."""
    cancelled = pyqtSignal()

    def __init__(self, controller: ReportController, app_config: Optional[AppConfig] = None, parent=None):
        super().__init__(parent)
        self.controller = controller
        self.app_config = app_config
        self.report: Optional[Report] = None
        self._init_ui()

    def _init_ui(self):
        self.layout = QVBoxLayout(self)

        self.lbl_heading = QLabel()
        self.lbl_heading.setStyleSheet("font-size: 14pt; font-weight: bold; color: #2c3e50;")
        self.layout.addWidget(self.lbl_heading)

        # Meta Info
        self.meta_frame = QFrame()
        self.meta_frame.setFrameShape(QFrame.Shape.StyledPanel)
        self.meta_frame.setStyleSheet("background: #fdfdfd; border-radius: 6px;")
        meta_layout = QFormLayout(self.meta_frame)

        self.edit_name = QLineEdit()
        self.edit_desc = QTextEdit()
        self.edit_desc.setMaximumHeight(60)
        meta_layout.addRow(self.tr("Report Name:"), self.edit_name)
        meta_layout.addRow(self.tr("Description:"), self.edit_desc)

        self.combo_visibility = QComboBox()
        for vis in Visibility:
            self.combo_visibility.addItem(self.tr(vis.value.capitalize()), vis.value)
        meta_layout.addRow(self.tr("Visibility:"), self.combo_visibility)

        self.combo_date_range = QComboBox()
        meta_layout.addRow(self.tr("Default date range:"), self.combo_date_range)

        self.combo_date_field = QComboBox()
        for field in DATE_FIELDS:
            self.combo_date_field.addItem(self.tr(DATE_FIELD_LABELS.get(field, field)), field)
        meta_layout.addRow(self.tr("Date field:"), self.combo_date_field)

        refresh_row = QHBoxLayout()
        self.chk_auto_refresh = QCheckBox(self.tr("Auto-refresh every"))
        self.spin_interval = QSpinBox()
        self.spin_interval.setRange(MIN_REFRESH_INTERVAL_MS // 1000, 24 * 3600)
        self.spin_interval.setSuffix(self.tr(" s"))
        self.chk_auto_refresh.toggled.connect(self.spin_interval.setEnabled)
        refresh_row.addWidget(self.chk_auto_refresh)
        refresh_row.addWidget(self.spin_interval)
        refresh_row.addStretch()
        meta_layout.addRow(self.tr("Refresh:"), refresh_row)
        self.layout.addWidget(self.meta_frame)

        # --- Filter Section ---
        filter_box = QFrame()
        filter_box.setFrameShape(QFrame.Shape.StyledPanel)
        filter_box.setStyleSheet("background: #f8fafc; border: 1px solid #e2e8f0; border-radius: 8px;")
        filter_vbox = QVBoxLayout(filter_box)
        filter_vbox.addWidget(QLabel(self.tr("<b>Report Filters:</b> applied to every chart")))
        self.filter_builder = FilterBuilderWidget(self.controller.catalog)
        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setWidget(self.filter_builder)
        filter_vbox.addWidget(scroll)
        self.layout.addWidget(filter_box, 1)

        self.lbl_error = QLabel()
        self.lbl_error.setStyleSheet("color: #e74c3c;")
        self.lbl_error.setVisible(False)
        self.layout.addWidget(self.lbl_error)

        btn_row = QHBoxLayout()
        btn_row.addStretch()
        self.btn_cancel = QPushButton(self.tr("Cancel"))
        self.btn_cancel.clicked.connect(self.cancel)
        self.btn_save = QPushButton(self.tr("Save"))
        self.btn_save.setDefault(True)
        self.btn_save.clicked.connect(self.save)
        btn_row.addWidget(self.btn_cancel)
        btn_row.addWidget(self.btn_save)
        self.layout.addLayout(btn_row)

    def _new_report(self) -> Report:
        """Blank report seeded with the configured refresh interval."""
        if self.app_config is None:
            return Report()
        return Report(auto_refresh=AutoRefreshPolicy(interval=self.app_config.get_auto_refresh_interval()))

    def load(self, report: Optional[Report]):
        """`None` starts a new report."""
        self.report = report
        data = report or self._new_report()
        self.lbl_heading.setText(self.tr("Edit Report") if report else self.tr("New Report"))
        self.edit_name.setText(data.title)
        self.edit_desc.setPlainText(data.description)
        self.combo_visibility.setCurrentIndex(max(self.combo_visibility.findData(data.visibility.value), 0))

        self.combo_date_range.clear()
        for opt in self.controller.catalog.date_range_options():
            self.combo_date_range.addItem(opt.label or str(opt.value), opt.value)
        idx = self.combo_date_range.findData(data.date_range.type)
        if idx < 0:
            self.combo_date_range.addItem(self.controller.catalog.date_range_label(data.date_range.type), data.date_range.type)
            idx = self.combo_date_range.count() - 1
        self.combo_date_range.setCurrentIndex(idx)

        self.combo_date_field.setCurrentIndex(max(self.combo_date_field.findData(data.date_field), 0))
        self.chk_auto_refresh.setChecked(data.auto_refresh.enabled)
        self.spin_interval.setValue(data.auto_refresh.interval // 1000)
        self.spin_interval.setEnabled(data.auto_refresh.enabled)

        self.filter_builder.set_catalog(self.controller.catalog)
        self.filter_builder.set_expression(data.filters)
        self.lbl_error.setVisible(False)

    def collect(self) -> Report:
        """Form state as a Report carrying only the editable settings."""
        base = self.report or Report()
        date_range = base.date_range
        range_type = self.combo_date_range.currentData()
        if range_type and range_type != date_range.type:
            date_range = DateRangeSpec(type=range_type)
        expression: FilterExpression = self.filter_builder.expression
        return base.model_copy(update={
            "title": self.edit_name.text().strip(),
            "description": self.edit_desc.toPlainText().strip(),
            "visibility": Visibility(self.combo_visibility.currentData()),
            "date_range": date_range,
            "date_field": self.combo_date_field.currentData(),
            "filters": None if expression.is_empty() else expression,
            "auto_refresh": AutoRefreshPolicy(enabled=self.chk_auto_refresh.isChecked(),
                                              interval=self.spin_interval.value() * 1000),
        })

    def save(self) -> bool:
        payload = self.collect().settings_payload()
        filter_check = self.filter_builder.editor.validate()
        if not filter_check.is_valid:
            self.show_error(self.tr("Please complete or remove the incomplete filter conditions"))
            return False
        if self.report is not None and self.report.id:
            check = self.controller.update_report(self.report.id, payload)
        else:
            check = self.controller.create_report(payload)
        if not check.is_valid:
            self.show_error(check.first_error())
            return False
        self.lbl_error.setVisible(False)
        return True

    def cancel(self):
        self.controller.cancel_edit_report()
        self.cancelled.emit()

    def show_error(self, message: str):
        self.lbl_error.setText(message)
        self.lbl_error.setVisible(True)
