import pytest
from unittest.mock import MagicMock

from core.filter_expression import FilterExpressionEditor, summarize, validate_expression
from core.models.filters import FilterCondition, FilterExpression, FilterLogic


@pytest.fixture
def editor():
    return FilterExpressionEditor()


def test_add_condition_defaults(editor):
    cond = editor.add_condition()
    assert cond.field == ""
    assert cond.operator == "equals"
    assert cond.value == ""
    assert cond.logic == FilterLogic.AND
    assert len(editor.conditions) == 1


def test_remove_condition_by_id(editor):
    first = editor.add_condition()
    second = editor.add_condition()
    assert editor.remove_condition(first.id)
    assert [c.id for c in editor.conditions] == [second.id]
    assert not editor.remove_condition("missing")


def test_field_change_resets_operator_and_values(editor):
    cond = editor.add_condition()
    editor.update_condition(cond.id, {"field": "qualityScorePercent"})
    editor.update_condition(cond.id, {"operator": "between", "value": 10, "valueTo": 50})

    updated = editor.update_condition(cond.id, {"field": "status", "operator": "in", "value": "x"})
    assert updated.field == "status"
    assert updated.operator == "equals"
    assert updated.value == ""
    assert updated.value_to is None
    # Identity survives the rewrite
    assert updated.id == cond.id


def test_field_change_under_or_leaves_siblings_alone(editor):
    first = editor.add_condition()
    second = editor.add_condition()
    editor.update_condition(first.id, {"field": "status"})
    editor.update_condition(first.id, {"operator": "in", "value": ["open", "pending"]})
    editor.update_condition(second.id, {"field": "agent"})
    editor.update_condition(second.id, {"value": "a1"})
    assert editor.toggle_logic() == FilterLogic.OR

    updated = editor.update_condition(first.id, {"field": "notes"})
    assert updated.operator == "equals"
    assert updated.value == ""
    assert editor.logic == FilterLogic.OR
    other = editor.conditions[1]
    assert (other.field, other.operator, other.value) == ("agent", "equals", "a1")


def test_operator_change_clears_upper_bound(editor):
    cond = editor.add_condition()
    editor.update_condition(cond.id, {"field": "qualityScorePercent"})
    editor.update_condition(cond.id, {"operator": "between", "value": 10, "valueTo": 50})
    updated = editor.update_condition(cond.id, {"operator": "greater_than"})
    assert updated.value == 10
    assert updated.value_to is None


def test_update_unknown_key_raises(editor):
    cond = editor.add_condition()
    with pytest.raises(KeyError):
        editor.update_condition(cond.id, {"colour": "red"})


def test_update_unknown_id_is_ignored(editor):
    assert editor.update_condition("nope", {"value": 1}) is None


def test_toggle_logic_needs_two_conditions(editor):
    editor.add_condition()
    assert editor.toggle_logic() == FilterLogic.AND
    editor.add_condition()
    assert editor.can_toggle_logic
    assert editor.toggle_logic() == FilterLogic.OR
    assert editor.toggle_logic() == FilterLogic.AND


def test_on_change_called_per_mutation():
    listener = MagicMock()
    editor = FilterExpressionEditor(on_change=listener)
    cond = editor.add_condition()
    editor.update_condition(cond.id, {"field": "notes"})
    editor.remove_condition(cond.id)
    assert listener.call_count == 3


def test_editor_works_on_copy():
    original = FilterExpression(conditions=[FilterCondition(field="notes", operator="contains", value="x")])
    editor = FilterExpressionEditor(original)
    editor.update_condition(editor.conditions[0].id, {"value": "y"})
    assert original.conditions[0].value == "x"


def test_operators_follow_field_type(editor):
    cond = editor.add_condition()
    editor.update_condition(cond.id, {"field": "isArchived"})
    assert editor.operators_for(cond.id) == ["equals"]
    editor.update_condition(cond.id, {"field": "status"})
    assert editor.operators_for(cond.id) == ["equals", "not_equals", "in", "not_in"]


def test_payload_is_deterministic(editor):
    assert editor.to_payload() is None
    cond = editor.add_condition()
    editor.update_condition(cond.id, {"field": "qualityScorePercent"})
    editor.update_condition(cond.id, {"operator": "between", "value": 60, "valueTo": 90})
    other = editor.add_condition()
    editor.update_condition(other.id, {"field": "notes"})
    editor.update_condition(other.id, {"operator": "contains", "value": "refund"})

    payload = editor.to_payload()
    assert payload == {
        "logic": "AND",
        "conditions": [
            {"field": "qualityScorePercent", "operator": "between", "value": 60, "valueTo": 90, "logic": "AND"},
            {"field": "notes", "operator": "contains", "value": "refund", "logic": "AND"},
        ],
        "groups": [],
    }
    assert list(payload["conditions"][0].keys()) == ["field", "operator", "value", "valueTo", "logic"]


def test_groups_are_carried_through():
    expr = FilterExpression.from_payload({"logic": "or", "conditions": [], "groups": [{"logic": "AND"}]})
    assert expr.logic == FilterLogic.OR
    assert expr.to_payload()["groups"] == [{"logic": "AND"}]


def test_validation_reports_each_problem():
    expr = FilterExpression(conditions=[
        FilterCondition(id="a", field=""),
        FilterCondition(id="b", field="status", operator="contains", value="x"),
        FilterCondition(id="c", field="notes", operator="contains", value="  "),
        FilterCondition(id="d", field="qualityScorePercent", operator="between", value=1),
        FilterCondition(id="e", field="isArchived", operator="equals", value=""),
        FilterCondition(id="f", field="notes", operator="is_empty", value=""),
    ])
    check = validate_expression(expr)
    assert not check.is_valid
    assert set(check.errors) == {"a.field", "b.operator", "c.value", "d.valueTo", "e.value"}
    assert check.first_error() == "Select a field"


def test_validation_accepts_complete_conditions():
    expr = FilterExpression(conditions=[
        FilterCondition(field="isArchived", operator="equals", value=False),
        FilterCondition(field="status", operator="in", value=["open", "closed"]),
    ])
    assert validate_expression(expr).is_valid
    assert validate_expression(None).is_valid


def test_summary_pills_and_overflow(catalog):
    expr = FilterExpression(conditions=[
        FilterCondition(field="agent", operator="equals", value="a1"),
        FilterCondition(field="isArchived", operator="equals", value=True),
        FilterCondition(field="qualityScorePercent", operator="between", value=60, value_to=90),
        FilterCondition(field="notes", operator="is_empty"),
        FilterCondition(field="tags", operator="contains", value="vip"),
    ])
    summary = summarize(expr, catalog)
    assert [p.text for p in summary.pills] == [
        "CS Agent = Alice",
        "Archived = Yes",
        "Score between 60 and 90",
    ]
    assert summary.overflow == 2
    assert summary.overflow_text == "+2 more"


def test_summary_valueless_operator_has_no_value():
    expr = FilterExpression(conditions=[FilterCondition(field="notes", operator="is_not_empty")])
    pill = summarize(expr).pills[0]
    assert pill.value is None
    assert pill.text == "notes is not empty"


def test_summary_of_nothing():
    assert summarize(None).pills == []
    assert summarize(FilterExpression()).overflow_text == ""
