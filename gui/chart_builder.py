"""
------------------------------------------------------------------------------
Project:        ChartDeck
File:           gui/chart_builder.py
Version:        1.0.0
Description:    Chart builder dialog. Edits one chart through
                ChartConfigEditor (data, filters, display options, target and
                comparison) with a live preview rendered by the same view the
                report canvas uses.
------------------------------------------------------------------------------
"""

from typing import Any, Dict, List, Optional

from PyQt6.QtWidgets import (
    QDialog, QVBoxLayout, QHBoxLayout, QFormLayout, QLineEdit, QComboBox, QCheckBox,
    QDoubleSpinBox, QPushButton, QLabel, QTabWidget, QWidget, QSplitter, QDialogButtonBox
)
from PyQt6.QtCore import Qt

from core.catalog import CatalogAdapter
from core.chart_config import (
    ChartConfigEditor, DECIMAL_CHOICES, GAUGE_FORMATS, KPI_FORMATS, PAGE_SIZES,
    SORT_FIELDS, SORT_ORDERS, TOP_N_CHOICES, option_enabled,
)
from core.lifecycle import ReportController
from core.logger import get_logger
from core.models.catalog import CatalogOption
from core.models.reporting import Chart, ChartComparison, ChartTarget, ChartType, DateRangeSpec
from core.results import Result
from gui.charts import ChartView
from gui.filter_builder import FilterBuilderWidget

logger = get_logger("gui.chart_builder")

OPTION_LABELS = {
    "showLegend": "Show legend",
    "showDataLabels": "Show data labels",
    "smooth": "Smooth lines",
    "showPoints": "Show points",
    "stacked": "Stacked",
    "relative": "Relative (100%)",
    "showCenterText": "Show total in center",
    "showTrend": "Show trend",
    "showSummaryRow": "Show summary row",
    "format": "Format",
    "decimals": "Decimals",
    "prefix": "Prefix",
    "suffix": "Suffix",
    "pageSize": "Rows per page",
    "gaugeMin": "Minimum",
    "gaugeMax": "Maximum",
    "columns": "Columns",
}
BOOLEAN_OPTIONS = {"showLegend", "showDataLabels", "smooth", "showPoints", "stacked",
                   "relative", "showCenterText", "showTrend", "showSummaryRow"}


def _fill_combo(combo: QComboBox, options: List[CatalogOption], current: Any, empty_label: Optional[str] = None):
    combo.blockSignals(True)
    combo.clear()
    if empty_label is not None:
        combo.addItem(empty_label, None)
    for opt in options:
        combo.addItem(opt.label or str(opt.value), opt.value)
    idx = combo.findData(current)
    if idx < 0 and current not in (None, ""):
        # Keep values the catalog does not list (yet)
        combo.addItem(str(current), current)
        idx = combo.count() - 1
    combo.setCurrentIndex(max(idx, 0))
    combo.blockSignals(False)


class ChartBuilderDialog(QDialog):
    """Create or edit a chart of the current report."""

    def __init__(self, controller: ReportController, chart: Optional[Chart] = None, parent=None):
        super().__init__(parent)
        self.controller = controller
        self.editor = ChartConfigEditor(chart)
        self._loading = False
        self._preview_seq = 0
        self.option_widgets: Dict[str, QWidget] = {}
        self._options_shown = None

        self.setWindowTitle(self.tr("Add Chart") if self.editor.is_new else self.tr("Edit Chart"))
        self.resize(1100, 680)
        self._init_ui()
        self._load_from_chart()

    @property
    def catalog(self) -> CatalogAdapter:
        return self.controller.catalog

    @property
    def chart(self) -> Chart:
        return self.editor.chart

    # --- UI ---

    def _init_ui(self):
        layout = QVBoxLayout(self)
        splitter = QSplitter(Qt.Orientation.Horizontal)

        self.tabs = QTabWidget()
        self.tabs.addTab(self._build_data_tab(), self.tr("Data"))
        self.tabs.addTab(self._build_filter_tab(), self.tr("Filters"))
        self.tabs.addTab(self._build_display_tab(), self.tr("Display"))
        self.tabs.addTab(self._build_target_tab(), self.tr("Target"))
        splitter.addWidget(self.tabs)

        preview_box = QWidget()
        preview_ly = QVBoxLayout(preview_box)
        header = QHBoxLayout()
        header.addWidget(QLabel(f"<b>{self.tr('Preview')}</b>"))
        header.addStretch()
        self.btn_preview = QPushButton(self.tr("Refresh Preview"))
        self.btn_preview.clicked.connect(self.request_preview)
        header.addWidget(self.btn_preview)
        preview_ly.addLayout(header)
        self.preview = ChartView()
        preview_ly.addWidget(self.preview, 1)
        splitter.addWidget(preview_box)
        splitter.setSizes([520, 580])
        layout.addWidget(splitter, 1)

        self.lbl_errors = QLabel()
        self.lbl_errors.setStyleSheet("color: #e74c3c;")
        self.lbl_errors.setWordWrap(True)
        self.lbl_errors.setVisible(False)
        layout.addWidget(self.lbl_errors)

        self.buttons = QDialogButtonBox(QDialogButtonBox.StandardButton.Save | QDialogButtonBox.StandardButton.Cancel)
        self.buttons.accepted.connect(self.save)
        self.buttons.rejected.connect(self.reject)
        layout.addWidget(self.buttons)

    def _build_data_tab(self) -> QWidget:
        tab = QWidget()
        form = QFormLayout(tab)

        self.edit_title = QLineEdit()
        self.edit_title.textEdited.connect(lambda t: self._update({"title": t}))
        form.addRow(self.tr("Title:"), self.edit_title)

        self.edit_desc = QLineEdit()
        self.edit_desc.textEdited.connect(lambda t: self._update({"description": t}))
        form.addRow(self.tr("Description:"), self.edit_desc)

        self.combo_type = QComboBox()
        self.combo_type.currentIndexChanged.connect(lambda: self._set_type(self.combo_type.currentData()))
        form.addRow(self.tr("Chart type:"), self.combo_type)

        self.combo_dataset = QComboBox()
        self.combo_dataset.currentIndexChanged.connect(lambda: self._update({"dataset": self.combo_dataset.currentData()}, reload=True))
        form.addRow(self.tr("Dataset:"), self.combo_dataset)

        self.combo_metric = QComboBox()
        self.combo_metric.currentIndexChanged.connect(lambda: self._update({"metric": self.combo_metric.currentData() or ""}, reload=True))
        form.addRow(self.tr("Metric:"), self.combo_metric)

        self.combo_aggregation = QComboBox()
        self.combo_aggregation.currentIndexChanged.connect(lambda: self._update({"aggregation": self.combo_aggregation.currentData()}))
        form.addRow(self.tr("Aggregation:"), self.combo_aggregation)

        self.combo_view_by = QComboBox()
        self.combo_view_by.currentIndexChanged.connect(lambda: self._update({"viewBy": self.combo_view_by.currentData()}, reload=True))
        self.lbl_view_by = QLabel(self.tr("View by:"))
        form.addRow(self.lbl_view_by, self.combo_view_by)

        self.combo_segment_by = QComboBox()
        self.combo_segment_by.currentIndexChanged.connect(lambda: self._update({"segmentBy": self.combo_segment_by.currentData()}))
        self.lbl_segment_by = QLabel(self.tr("Segment by:"))
        form.addRow(self.lbl_segment_by, self.combo_segment_by)

        self.combo_top_n = QComboBox()
        self.combo_top_n.addItem(self.tr("All"), None)
        for n in TOP_N_CHOICES:
            self.combo_top_n.addItem(self.tr("Top {n}").format(n=n), n)
        self.combo_top_n.currentIndexChanged.connect(lambda: self._update({"topN": self.combo_top_n.currentData()}, reload=True))
        self.lbl_top_n = QLabel(self.tr("Limit:"))
        form.addRow(self.lbl_top_n, self.combo_top_n)

        self.chk_show_others = QCheckBox(self.tr("Group the rest as 'Others'"))
        self.chk_show_others.toggled.connect(lambda v: self._update({"showOthers": v}))
        form.addRow("", self.chk_show_others)

        sort_row = QHBoxLayout()
        self.combo_sort_by = QComboBox()
        for key in SORT_FIELDS:
            self.combo_sort_by.addItem(self.tr(key.capitalize()), key)
        self.combo_sort_by.currentIndexChanged.connect(lambda: self._update({"sortBy": self.combo_sort_by.currentData()}))
        self.combo_sort_order = QComboBox()
        for key, label in zip(SORT_ORDERS, ("Descending", "Ascending")):
            self.combo_sort_order.addItem(self.tr(label), key)
        self.combo_sort_order.currentIndexChanged.connect(lambda: self._update({"sortOrder": self.combo_sort_order.currentData()}))
        sort_row.addWidget(self.combo_sort_by)
        sort_row.addWidget(self.combo_sort_order)
        self.sort_widget = QWidget()
        self.sort_widget.setLayout(sort_row)
        self.lbl_sort = QLabel(self.tr("Sort:"))
        form.addRow(self.lbl_sort, self.sort_widget)
        return tab

    def _build_filter_tab(self) -> QWidget:
        tab = QWidget()
        layout = QVBoxLayout(tab)
        layout.addWidget(QLabel(self.tr("Chart filters are combined with the report filters.")))
        self.filter_builder = FilterBuilderWidget(self.catalog, self.chart.filters)
        self.filter_builder.changed.connect(lambda expr: self._set_filters(expr))
        layout.addWidget(self.filter_builder, 1)

        range_row = QHBoxLayout()
        self.chk_override_range = QCheckBox(self.tr("Override report date range"))
        self.chk_override_range.toggled.connect(self._set_override_range)
        self.combo_date_range = QComboBox()
        self.combo_date_range.currentIndexChanged.connect(self._on_date_range_changed)
        range_row.addWidget(self.chk_override_range)
        range_row.addWidget(self.combo_date_range, 1)
        layout.addLayout(range_row)
        return tab

    def _build_display_tab(self) -> QWidget:
        tab = QWidget()
        self.display_form = QFormLayout(tab)
        return tab

    def _build_target_tab(self) -> QWidget:
        tab = QWidget()
        form = QFormLayout(tab)
        self.chk_target = QCheckBox(self.tr("Set a target value"))
        self.chk_target.toggled.connect(self._set_target_enabled)
        form.addRow(self.chk_target)

        self.spin_target = QDoubleSpinBox()
        self.spin_target.setRange(-1e12, 1e12)
        self.spin_target.setDecimals(2)
        self.spin_target.valueChanged.connect(self._on_target_changed)
        form.addRow(self.tr("Target:"), self.spin_target)

        self.chk_target_line = QCheckBox(self.tr("Show target line"))
        self.chk_target_line.toggled.connect(self._on_target_changed)
        form.addRow("", self.chk_target_line)

        self.chk_comparison = QCheckBox(self.tr("Compare with"))
        self.chk_comparison.toggled.connect(self._set_comparison_enabled)
        self.combo_comparison = QComboBox()
        self.combo_comparison.currentIndexChanged.connect(self._on_comparison_type_changed)
        form.addRow(self.chk_comparison, self.combo_comparison)
        return tab

    # --- Sync chart -> widgets ---

    def _load_from_chart(self):
        self._loading = True
        chart = self.chart
        self.edit_title.setText(chart.title)
        self.edit_desc.setText(chart.description)

        types = self.catalog.chart_types() or [CatalogOption(value=t.value, label=t.value.capitalize()) for t in ChartType]
        _fill_combo(self.combo_type, types, chart.chart_type)
        datasets = [CatalogOption(value=d, label=d.capitalize()) for d in self.catalog.datasets()]
        _fill_combo(self.combo_dataset, datasets, chart.dataset)
        self._reload_dependent()

        for combo, value in ((self.combo_top_n, chart.top_n), (self.combo_sort_by, chart.sort_by),
                             (self.combo_sort_order, chart.sort_order)):
            combo.blockSignals(True)
            combo.setCurrentIndex(max(combo.findData(value), 0))
            combo.blockSignals(False)
        self.chk_show_others.setChecked(chart.show_others)

        self.chk_override_range.setChecked(chart.override_date_range)
        current_range = chart.date_range.type if chart.date_range else None
        _fill_combo(self.combo_date_range, self.catalog.date_range_options(), current_range)
        self.combo_date_range.setEnabled(chart.override_date_range)

        self.chk_target.setChecked(chart.target is not None)
        self.spin_target.setValue(chart.target.value if chart.target else ChartTarget().value)
        self.chk_target_line.setChecked(chart.target.show_line if chart.target else True)
        self.chk_comparison.setChecked(chart.comparison.enabled)
        _fill_combo(self.combo_comparison, self.catalog.comparison_types(), chart.comparison.type)

        self._loading = False
        self._refresh_visibility()

    def _reload_dependent(self):
        """Metric, aggregation and dimension lists depend on dataset, metric and viewBy."""
        chart = self.chart
        metrics = [CatalogOption(value=m.value, label=m.label) for m in self.catalog.metrics_for_dataset(chart.dataset)]
        _fill_combo(self.combo_metric, metrics, chart.metric, empty_label=self.tr("Select metric..."))
        _fill_combo(self.combo_aggregation, self.catalog.aggregations_for_metric(chart.dataset, chart.metric), chart.aggregation)
        _fill_combo(self.combo_view_by, self.catalog.view_by_options(), chart.view_by)
        _fill_combo(self.combo_segment_by, self.catalog.segment_by_options(chart.view_by), chart.segment_by,
                    empty_label=self.tr("None"))

    def _refresh_visibility(self):
        controls = self.editor.visible_controls()
        for widget in (self.lbl_view_by, self.combo_view_by):
            widget.setVisible(controls.dimensions)
        for widget in (self.lbl_segment_by, self.combo_segment_by):
            widget.setVisible(controls.segment_by)
        for widget in (self.lbl_top_n, self.combo_top_n, self.lbl_sort, self.sort_widget):
            widget.setVisible(controls.sort_and_limit)
        self.chk_show_others.setVisible(controls.sort_and_limit and self.chart.top_n is not None)
        self.chk_target_line.setVisible(controls.target_line)
        self.chk_comparison.setVisible(controls.trend)
        self.combo_comparison.setVisible(controls.trend)
        self.spin_target.setEnabled(self.chart.target is not None)
        self.chk_target_line.setEnabled(self.chart.target is not None)
        self.combo_comparison.setEnabled(self.chart.comparison.enabled)
        self.btn_preview.setEnabled(self.editor.can_preview)
        self._rebuild_display_options(controls.options)

    def _rebuild_display_options(self, keys):
        shown = (self.chart.chart_type, tuple(keys))
        if shown == self._options_shown:
            return
        self._options_shown = shown
        # The toggle that triggered the rebuild may still be emitting
        while self.display_form.rowCount():
            row = self.display_form.takeRow(0)
            for item in (row.labelItem, row.fieldItem):
                if item is not None and item.widget() is not None:
                    item.widget().hide()
                    item.widget().deleteLater()
        self.option_widgets = {}
        if not keys:
            self.display_form.addRow(QLabel(self.tr("This chart type has no display options.")))
            return
        for key in keys:
            widget = self._option_widget(key)
            self.option_widgets[key] = widget
            if isinstance(widget, QCheckBox):
                self.display_form.addRow(widget)
            else:
                self.display_form.addRow(self.tr(OPTION_LABELS.get(key, key)) + ":", widget)

    def _option_widget(self, key: str) -> QWidget:
        chart = self.chart
        value = chart.options.get(key)
        if key in BOOLEAN_OPTIONS:
            chk = QCheckBox(self.tr(OPTION_LABELS.get(key, key)))
            chk.setChecked(option_enabled(chart, key))
            chk.toggled.connect(lambda v, k=key: self._set_option(k, v))
            return chk
        if key in ("format", "decimals", "pageSize"):
            choices = {
                "format": GAUGE_FORMATS if chart.type_enum is ChartType.GAUGE else KPI_FORMATS,
                "decimals": DECIMAL_CHOICES,
                "pageSize": PAGE_SIZES,
            }[key]
            combo = QComboBox()
            _fill_combo(combo, [CatalogOption(value=c, label=str(c).capitalize()) for c in choices], value)
            combo.currentIndexChanged.connect(lambda _i, k=key, c=combo: self._set_option(k, c.currentData()))
            return combo
        if key in ("gaugeMin", "gaugeMax"):
            spin = QDoubleSpinBox()
            spin.setRange(-1e12, 1e12)
            spin.setValue(float(value if value is not None else (0 if key == "gaugeMin" else 100)))
            spin.valueChanged.connect(lambda v, k=key: self._set_option(k, v))
            return spin
        edit = QLineEdit()
        if key == "columns":
            edit.setPlaceholderText(self.tr("field1, field2 (empty = all)"))
            edit.setText(", ".join(value or []))
            edit.editingFinished.connect(lambda k=key, e=edit: self._set_option(
                k, [c.strip() for c in e.text().split(",") if c.strip()] or None))
        else:
            edit.setText(value or "")
            edit.textEdited.connect(lambda t, k=key: self._set_option(k, t))
        return edit

    # --- Widgets -> chart ---

    def _update(self, partial: Dict[str, Any], reload: bool = False):
        if self._loading:
            return
        self.editor.update_config(partial)
        if reload:
            self._loading = True
            self._reload_dependent()
            self._loading = False
        self._refresh_visibility()

    def _set_type(self, chart_type: Optional[str]):
        if self._loading or not chart_type:
            return
        self.editor.set_chart_type(chart_type)
        self._refresh_visibility()

    def _set_option(self, key: str, value: Any):
        if self._loading:
            return
        self.editor.update_options({key: value})
        if key == "stacked":
            # 'relative' appears/disappears with 'stacked'
            self._refresh_visibility()

    def _set_filters(self, expression):
        if not self._loading:
            self.editor.set_filters(expression)

    def _set_override_range(self, enabled: bool):
        if self._loading:
            return
        report = self.controller.current_report
        self.editor.set_override_date_range(enabled, report.date_range if report else None)
        self.combo_date_range.setEnabled(enabled)
        if enabled and self.chart.date_range:
            self.combo_date_range.blockSignals(True)
            self.combo_date_range.setCurrentIndex(max(self.combo_date_range.findData(self.chart.date_range.type), 0))
            self.combo_date_range.blockSignals(False)

    def _on_date_range_changed(self):
        if self._loading or not self.chart.override_date_range:
            return
        range_type = self.combo_date_range.currentData()
        if range_type:
            self.editor.update_config({"dateRange": DateRangeSpec(type=range_type)})

    def _set_target_enabled(self, enabled: bool):
        if self._loading:
            return
        self.editor.set_target_enabled(enabled)
        if enabled:
            self._on_target_changed()
        self._refresh_visibility()

    def _on_target_changed(self, *_args):
        if self._loading or self.chart.target is None:
            return
        self.editor.update_config({"target": ChartTarget(value=self.spin_target.value(),
                                                         show_line=self.chk_target_line.isChecked())})

    def _set_comparison_enabled(self, enabled: bool):
        if self._loading:
            return
        self.editor.set_comparison_enabled(enabled)
        if enabled:
            self.combo_comparison.blockSignals(True)
            self.combo_comparison.setCurrentIndex(max(self.combo_comparison.findData(self.chart.comparison.type), 0))
            self.combo_comparison.blockSignals(False)
        self._refresh_visibility()

    def _on_comparison_type_changed(self):
        if self._loading or not self.chart.comparison.enabled:
            return
        self.editor.update_config({"comparison": ChartComparison(enabled=True, type=self.combo_comparison.currentData())})

    # --- Preview & Save ---

    def request_preview(self) -> bool:
        self._preview_seq += 1
        seq = self._preview_seq
        self.preview.show_chart(self.chart, None, loading=True)
        started = self.controller.preview_chart(self.editor, lambda result: self._on_preview(seq, result))
        if not started:
            self.preview.show_chart(self.chart, None)
        return started

    def _on_preview(self, seq: int, result: Result):
        if seq != self._preview_seq:
            logger.debug("Dropping superseded preview response")
            return
        if result:
            self.preview.show_chart(self.chart, result.value)
        else:
            self.preview.show_chart(self.chart, None, error=result.error)

    def show_errors(self, errors: Dict[str, str]):
        messages = list(dict.fromkeys(errors.values()))
        self.lbl_errors.setText("\n".join(messages))
        self.lbl_errors.setVisible(bool(messages))
        if "title" in errors or "metric" in errors:
            self.tabs.setCurrentIndex(0)
        elif any(k.startswith("filters.") for k in errors):
            self.tabs.setCurrentIndex(1)

    def save(self):
        check = self.controller.save_chart(self.editor)
        if not check.is_valid:
            self.show_errors(check.errors)
            return
        for warning in check.warnings:
            logger.info(f"Chart '{self.chart.title}': {warning}")
        self.accept()
