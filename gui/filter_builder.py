from typing import Any, Dict, Optional

from PyQt6.QtWidgets import (QWidget, QVBoxLayout, QHBoxLayout, QPushButton,
                             QLabel, QComboBox, QLineEdit, QFrame)
from PyQt6.QtCore import pyqtSignal

from core.catalog import CatalogAdapter, field_type_of
from core.filter_expression import FilterExpressionEditor
from core.models.filters import FieldType, FilterCondition, FilterExpression, FilterLogic

LOGIC_LABELS = {FilterLogic.AND: "AND (All)", FilterLogic.OR: "OR (Any)"}
LIST_OPERATORS = ("in", "not_in")


class FilterConditionRow(QWidget):
    """
    A single row representing a filter condition: [Field] [Operator] [Value] [and Value] [Remove]
    Emits patches; the builder owns the expression.
    """
    patch_requested = pyqtSignal(str, dict)
    remove_requested = pyqtSignal(str)

    def __init__(self, condition: FilterCondition, catalog: CatalogAdapter, parent=None):
        super().__init__(parent)
        self.condition = condition
        self.catalog = catalog

        layout = QHBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        self.combo_field = QComboBox()
        self.combo_field.addItem(self.tr("Select field..."), "")
        for f in catalog.filter_fields():
            self.combo_field.addItem(f.label, f.value)
        self._select(self.combo_field, condition.field)
        self.combo_field.currentIndexChanged.connect(
            lambda: self.patch_requested.emit(self.condition.id, {"field": self.combo_field.currentData()}))
        layout.addWidget(self.combo_field, 2)

        self.combo_op = QComboBox()
        for opt in catalog.operators_for_field(condition.field):
            self.combo_op.addItem(opt.label, opt.value)
        self._select(self.combo_op, condition.operator)
        self.combo_op.currentIndexChanged.connect(
            lambda: self.patch_requested.emit(self.condition.id, {"operator": self.combo_op.currentData()}))
        layout.addWidget(self.combo_op, 1)

        self.value_edit = self._build_value_editor()
        layout.addWidget(self.value_edit, 2)
        self.value_edit.setVisible(condition.takes_value)

        self.lbl_and = QLabel(self.tr("and"))
        self.value_to_edit = QLineEdit()
        self.value_to_edit.setPlaceholderText(self.tr("To"))
        if condition.value_to is not None:
            self.value_to_edit.setText(str(condition.value_to))
        self.value_to_edit.editingFinished.connect(
            lambda: self.patch_requested.emit(self.condition.id, {"valueTo": self._typed(self.value_to_edit.text())}))
        layout.addWidget(self.lbl_and)
        layout.addWidget(self.value_to_edit, 1)
        self.lbl_and.setVisible(condition.is_range)
        self.value_to_edit.setVisible(condition.is_range)

        self.btn_remove = QPushButton("✕")
        self.btn_remove.setToolTip(self.tr("Remove condition"))
        self.btn_remove.setFixedWidth(28)
        self.btn_remove.clicked.connect(lambda: self.remove_requested.emit(self.condition.id))
        layout.addWidget(self.btn_remove)

        self.lbl_error = QLabel()
        self.lbl_error.setStyleSheet("color: #e74c3c; font-size: 8pt;")
        self.lbl_error.setVisible(False)
        layout.addWidget(self.lbl_error)

    @staticmethod
    def _select(combo: QComboBox, value: Any):
        idx = combo.findData(value)
        combo.blockSignals(True)
        combo.setCurrentIndex(max(idx, 0))
        combo.blockSignals(False)

    def _field_type(self) -> FieldType:
        return field_type_of(self.condition.field)

    def _typed(self, text: str) -> Any:
        """Numbers for number fields when parseable; anything else stays text for validation to flag."""
        text = text.strip()
        if self._field_type() == FieldType.NUMBER and text:
            try:
                num = float(text)
            except ValueError:
                return text
            return int(num) if num.is_integer() else num
        return text

    def _build_value_editor(self) -> QWidget:
        cond = self.condition
        ftype = self._field_type()
        if ftype == FieldType.BOOLEAN:
            combo = QComboBox()
            combo.addItem("—", None)
            combo.addItem(self.tr("Yes"), True)
            combo.addItem(self.tr("No"), False)
            self._select(combo, cond.value if isinstance(cond.value, bool) else None)
            combo.currentIndexChanged.connect(
                lambda: self.patch_requested.emit(cond.id, {"value": combo.currentData()}))
            return combo

        options = self.catalog.field_options(cond.field) if ftype == FieldType.SELECT else []
        if options and cond.operator not in LIST_OPERATORS:
            combo = QComboBox()
            combo.addItem(self.tr("Select..."), "")
            for opt in options:
                combo.addItem(opt.label, opt.value)
            self._select(combo, cond.value)
            combo.currentIndexChanged.connect(
                lambda: self.patch_requested.emit(cond.id, {"value": combo.currentData()}))
            return combo

        edit = QLineEdit()
        if cond.operator in LIST_OPERATORS:
            edit.setPlaceholderText(self.tr("Comma separated values"))
            if isinstance(cond.value, (list, tuple)):
                edit.setText(", ".join(str(v) for v in cond.value))
            edit.editingFinished.connect(lambda: self.patch_requested.emit(
                cond.id, {"value": [v.strip() for v in edit.text().split(",") if v.strip()]}))
        else:
            edit.setPlaceholderText(self.tr("Value"))
            if cond.value not in (None, ""):
                edit.setText(str(cond.value))
            edit.editingFinished.connect(
                lambda: self.patch_requested.emit(cond.id, {"value": self._typed(edit.text())}))
        return edit

    def set_error(self, message: Optional[str]):
        self.setToolTip(message or "")
        self.lbl_error.setText(message or "")
        self.lbl_error.setVisible(bool(message))


class FilterBuilderWidget(QWidget):
    """
    Flat list of conditions joined by one AND/OR combinator.
    The combinator is only shown once two or more conditions exist.
    """
    changed = pyqtSignal(object)  # FilterExpression

    def __init__(self, catalog: Optional[CatalogAdapter] = None,
                 expression: Optional[FilterExpression] = None, parent=None):
        super().__init__(parent)
        self.catalog = catalog or CatalogAdapter()
        self.editor = FilterExpressionEditor(expression, on_change=self._on_expression_changed)
        self.rows: Dict[str, FilterConditionRow] = {}
        self._structural = False

        self.main_layout = QVBoxLayout(self)
        self.main_layout.setContentsMargins(0, 0, 0, 0)

        header_layout = QHBoxLayout()
        self.combo_logic = QComboBox()
        for logic, label in LOGIC_LABELS.items():
            self.combo_logic.addItem(self.tr(label), logic)
        self.combo_logic.currentIndexChanged.connect(self._on_logic_changed)
        header_layout.addWidget(self.combo_logic)
        header_layout.addStretch()
        self.btn_add_condition = QPushButton(self.tr("+ Condition"))
        self.btn_add_condition.clicked.connect(self.add_condition)
        header_layout.addWidget(self.btn_add_condition)
        self.main_layout.addLayout(header_layout)

        self.frame = QFrame()
        self.frame.setFrameShape(QFrame.Shape.NoFrame)
        self.children_layout = QVBoxLayout(self.frame)
        self.children_layout.setContentsMargins(0, 0, 0, 0)
        self.main_layout.addWidget(self.frame)

        self.lbl_empty = QLabel(self.tr("No filters. All data is included."))
        self.lbl_empty.setStyleSheet("color: #94a3b8;")
        self.main_layout.addWidget(self.lbl_empty)
        self.main_layout.addStretch()

        self._rebuild()

    @property
    def expression(self) -> FilterExpression:
        return self.editor.expression

    def set_catalog(self, catalog: CatalogAdapter):
        self.catalog = catalog
        self._rebuild()

    def set_expression(self, expression: Optional[FilterExpression]):
        self.editor = FilterExpressionEditor(expression, on_change=self._on_expression_changed)
        self._rebuild()

    def to_payload(self):
        return self.editor.to_payload()

    # --- Editing ---

    def add_condition(self):
        self._structural = True
        self.editor.add_condition()

    def remove_condition(self, condition_id: str):
        self._structural = True
        self.editor.remove_condition(condition_id)

    def apply_patch(self, condition_id: str, patch: dict):
        # Field and operator changes alter the row's editors
        self._structural = "field" in patch or "operator" in patch
        self.editor.update_condition(condition_id, patch)

    def _on_logic_changed(self):
        wanted = self.combo_logic.currentData()
        if wanted != self.editor.logic:
            self.editor.toggle_logic()

    def _on_expression_changed(self, expression: FilterExpression):
        if self._structural:
            self._structural = False
            self._rebuild()
        else:
            for cond in expression.conditions:
                row = self.rows.get(cond.id)
                if row:
                    row.condition = cond
            self.show_errors()
        self.changed.emit(expression)

    # --- View ---

    def _rebuild(self):
        for row in self.rows.values():
            row.setParent(None)
            row.deleteLater()
        self.rows = {}
        for cond in self.editor.conditions:
            row = FilterConditionRow(cond, self.catalog)
            row.patch_requested.connect(self.apply_patch)
            row.remove_requested.connect(self.remove_condition)
            self.children_layout.addWidget(row)
            self.rows[cond.id] = row

        self.combo_logic.blockSignals(True)
        self.combo_logic.setCurrentIndex(max(self.combo_logic.findData(self.editor.logic), 0))
        self.combo_logic.blockSignals(False)
        self.combo_logic.setVisible(self.editor.can_toggle_logic)
        self.lbl_empty.setVisible(not self.rows)
        self.show_errors()

    def show_errors(self):
        check = self.editor.validate()
        for cond_id, row in self.rows.items():
            msgs = [msg for key, msg in check.errors.items() if key.startswith(f"{cond_id}.")]
            row.set_error(msgs[0] if msgs else None)
