import pytest
from PyQt6.QtWidgets import QComboBox, QLineEdit

from core.models.filters import FilterCondition, FilterExpression, FilterLogic
from gui.filter_builder import FilterBuilderWidget


@pytest.fixture
def builder(qtbot, catalog):
    widget = FilterBuilderWidget(catalog)
    qtbot.addWidget(widget)
    return widget


def only_row(builder):
    assert len(builder.rows) == 1
    return next(iter(builder.rows.values()))


def choose(combo: QComboBox, value):
    idx = combo.findData(value)
    assert idx >= 0, f"{value} not offered"
    combo.setCurrentIndex(idx)


def test_empty_state(builder):
    assert builder.rows == {}
    assert not builder.lbl_empty.isHidden()
    assert builder.combo_logic.isHidden()
    assert builder.to_payload() is None


def test_add_condition_creates_row(builder, qtbot):
    with qtbot.waitSignal(builder.changed):
        builder.btn_add_condition.click()
    row = only_row(builder)
    assert builder.lbl_empty.isHidden()
    assert row.combo_field.currentData() == ""
    assert row.lbl_error.text() == "Select a field"


def test_logic_selector_needs_two_conditions(builder):
    builder.add_condition()
    assert builder.combo_logic.isHidden()
    builder.add_condition()
    assert not builder.combo_logic.isHidden()
    choose(builder.combo_logic, FilterLogic.OR)
    assert builder.expression.logic == FilterLogic.OR


def test_field_change_rebuilds_operator_list(builder):
    builder.add_condition()
    choose(only_row(builder).combo_field, "qualityScorePercent")
    row = only_row(builder)
    ops = [row.combo_op.itemData(i) for i in range(row.combo_op.count())]
    assert ops == ["equals", "not_equals", "greater_than", "greater_or_equal",
                   "less_than", "less_or_equal", "between"]
    assert isinstance(row.value_edit, QLineEdit)


def test_number_value_is_typed(builder):
    builder.add_condition()
    choose(only_row(builder).combo_field, "qualityScorePercent")
    row = only_row(builder)
    row.value_edit.setText("42")
    row.value_edit.editingFinished.emit()
    assert builder.expression.conditions[0].value == 42
    assert row.lbl_error.isHidden()


def test_between_shows_upper_bound(builder):
    builder.add_condition()
    choose(only_row(builder).combo_field, "qualityScorePercent")
    choose(only_row(builder).combo_op, "between")
    row = only_row(builder)
    assert not row.value_to_edit.isHidden()
    row.value_edit.setText("60")
    row.value_edit.editingFinished.emit()
    assert row.lbl_error.text() == "Enter an upper bound"
    row.value_to_edit.setText("90.5")
    row.value_to_edit.editingFinished.emit()
    cond = builder.expression.conditions[0]
    assert (cond.value, cond.value_to) == (60, 90.5)


def test_boolean_field_uses_yes_no(builder):
    builder.add_condition()
    choose(only_row(builder).combo_field, "isArchived")
    row = only_row(builder)
    assert isinstance(row.value_edit, QComboBox)
    assert row.combo_op.count() == 1
    choose(row.value_edit, True)
    assert builder.expression.conditions[0].value is True


def test_select_field_offers_catalog_options(builder):
    builder.add_condition()
    choose(only_row(builder).combo_field, "priority")
    row = only_row(builder)
    assert isinstance(row.value_edit, QComboBox)
    choose(row.value_edit, "high")
    assert builder.expression.conditions[0].value == "high"

    choose(row.combo_op, "in")
    row = only_row(builder)
    assert isinstance(row.value_edit, QLineEdit)
    row.value_edit.setText("high, low")
    row.value_edit.editingFinished.emit()
    assert builder.expression.conditions[0].value == ["high", "low"]


def test_valueless_operator_hides_value(builder):
    builder.add_condition()
    choose(only_row(builder).combo_field, "notes")
    choose(only_row(builder).combo_op, "is_empty")
    assert only_row(builder).value_edit.isHidden()
    assert builder.editor.validate().is_valid


def test_remove_condition(builder):
    builder.add_condition()
    row = only_row(builder)
    row.btn_remove.click()
    assert builder.rows == {}
    assert builder.expression.is_empty()


def test_set_expression_loads_rows(builder):
    expr = FilterExpression(logic=FilterLogic.OR, conditions=[
        FilterCondition(field="status", operator="equals", value="open"),
        FilterCondition(field="notes", operator="contains", value="refund"),
    ])
    builder.set_expression(expr)
    assert len(builder.rows) == 2
    assert builder.combo_logic.currentData() == FilterLogic.OR
    assert builder.to_payload()["conditions"][1]["value"] == "refund"
