"""
------------------------------------------------------------------------------
Project:        ChartDeck
File:           core/filter_expression.py
Version:        1.0.0
Description:    Editing operations over a FilterExpression (add, remove,
                update, toggle logic), inline validation and the read-only
                pill summary shown on report headers.
------------------------------------------------------------------------------
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from core.catalog import CatalogAdapter, field_type_of, operators_for_type
from core.logger import get_logger
from core.models.filters import (
    DEFAULT_OPERATOR, RANGE_OPERATORS, FieldType, FilterCondition, FilterExpression, FilterLogic,
)
from core.results import ValidationResult

logger = get_logger("filters")

_PATCH_ALIASES = {"valueTo": "value_to"}
_PATCHABLE = {"field", "operator", "value", "value_to", "logic"}


class FilterExpressionEditor:
    """
    Keeps a FilterExpression well-formed while it is edited.

    Conditions are addressed by their stable `id`, never by position.
    `on_change` (optional) receives the expression after every mutation.
    """

    def __init__(self, expression: Optional[FilterExpression] = None,
                 on_change: Optional[Callable[[FilterExpression], None]] = None):
        self._expression = expression.model_copy(deep=True) if expression else FilterExpression()
        self.on_change = on_change

    @property
    def expression(self) -> FilterExpression:
        return self._expression

    @property
    def conditions(self) -> List[FilterCondition]:
        return self._expression.conditions

    @property
    def logic(self) -> FilterLogic:
        return self._expression.logic

    @property
    def can_toggle_logic(self) -> bool:
        """The combinator only matters once two or more conditions exist."""
        return len(self._expression.conditions) >= 2

    def _changed(self) -> None:
        if self.on_change:
            self.on_change(self._expression)

    def add_condition(self) -> FilterCondition:
        cond = FilterCondition(field="", operator=DEFAULT_OPERATOR, value="", logic=FilterLogic.AND)
        self._expression.conditions = [*self._expression.conditions, cond]
        self._changed()
        return cond

    def remove_condition(self, condition_id: str) -> bool:
        remaining = [c for c in self._expression.conditions if c.id != condition_id]
        if len(remaining) == len(self._expression.conditions):
            logger.debug(f"remove_condition: unknown id {condition_id}")
            return False
        self._expression.conditions = remaining
        self._changed()
        return True

    def update_condition(self, condition_id: str, patch: Dict[str, Any]) -> Optional[FilterCondition]:
        """
        Merges `patch` into the condition. A patch that changes `field`
        resets operator to 'equals' and clears value/valueTo; every other
        key in such a patch is ignored.
        """
        cond = self._expression.find(condition_id)
        if cond is None:
            logger.debug(f"update_condition: unknown id {condition_id}")
            return None

        changes = {_PATCH_ALIASES.get(k, k): v for k, v in patch.items()}
        unknown = set(changes) - _PATCHABLE
        if unknown:
            raise KeyError(f"Unsupported condition keys: {sorted(unknown)}")

        if "field" in changes and changes["field"] != cond.field:
            updated = cond.model_copy(update={
                "field": changes["field"] or "",
                "operator": DEFAULT_OPERATOR,
                "value": "",
                "value_to": None,
            })
        else:
            changes.pop("field", None)
            if "operator" in changes and changes["operator"] not in RANGE_OPERATORS:
                changes["value_to"] = None
            data = cond.model_dump()
            data.update(changes)
            updated = FilterCondition.model_validate(data)
            updated.id = cond.id

        self._expression.conditions = [updated if c.id == condition_id else c
                                       for c in self._expression.conditions]
        self._changed()
        return updated

    def toggle_logic(self) -> FilterLogic:
        """Flips AND/OR. Ignored while fewer than two conditions exist."""
        if self.can_toggle_logic:
            self._expression.logic = self._expression.logic.flipped()
            self._changed()
        return self._expression.logic

    def operators_for(self, condition_id: str) -> List[str]:
        cond = self._expression.find(condition_id)
        return operators_for_type(field_type_of(cond.field if cond else ""))

    def validate(self) -> ValidationResult:
        return validate_expression(self._expression)

    def to_payload(self) -> Optional[Dict[str, Any]]:
        """Wire form, or None when there are no conditions."""
        if self._expression.is_empty():
            return None
        return self._expression.to_payload()


def validate_expression(expression: Optional[FilterExpression]) -> ValidationResult:
    """
    Inline problems keyed by '<condition id>.<attribute>':
    missing field, operator not legal for the field type, missing value,
    missing upper bound for 'between'.
    """
    errors: Dict[str, str] = {}
    if expression is None:
        return ValidationResult()

    for cond in expression.conditions:
        if not cond.field:
            errors[f"{cond.id}.field"] = "Select a field"
            continue
        field_type = field_type_of(cond.field)
        if cond.operator not in operators_for_type(field_type):
            errors[f"{cond.id}.operator"] = (
                f"Operator '{cond.operator}' is not available for {field_type.value} fields"
            )
            continue
        if cond.takes_value and _is_blank(cond.value) and field_type != FieldType.BOOLEAN:
            errors[f"{cond.id}.value"] = "Enter a value"
        if field_type == FieldType.BOOLEAN and not isinstance(cond.value, bool):
            errors[f"{cond.id}.value"] = "Choose Yes or No"
        if cond.is_range and _is_blank(cond.value_to):
            errors[f"{cond.id}.valueTo"] = "Enter an upper bound"
    return ValidationResult(errors=errors)


def _is_blank(val: Any) -> bool:
    if val is None:
        return True
    if isinstance(val, str):
        return val.strip() == ""
    if isinstance(val, (list, tuple)):
        return len(val) == 0
    return False


# --- Pill Summary ---

PILL_FIELD_LABELS: Dict[str, str] = {
    "status": "Status",
    "priority": "Priority",
    "qualityScorePercent": "Score",
    "qualityGrade": "Grade",
    "categories": "Category",
    "agent": "CS Agent",
    "createdBy": "QA Agent",
    "tags": "Tag",
    "isArchived": "Archived",
}

PILL_OPERATOR_LABELS: Dict[str, str] = {
    "equals": "=",
    "not_equals": "≠",
    "contains": "contains",
    "greater_than": ">",
    "greater_or_equal": "≥",
    "less_than": "<",
    "less_or_equal": "≤",
    "between": "between",
    "in": "in",
    "not_in": "not in",
    "is_empty": "is empty",
    "is_not_empty": "is not empty",
}

MAX_PILLS = 3


@dataclass(frozen=True)
class FilterPill:
    field: str
    operator: str
    value: Optional[str] = None

    @property
    def text(self) -> str:
        parts = [self.field, self.operator]
        if self.value is not None:
            parts.append(self.value)
        return " ".join(parts)


@dataclass(frozen=True)
class FilterSummary:
    pills: List[FilterPill]
    overflow: int = 0

    @property
    def overflow_text(self) -> str:
        return f"+{self.overflow} more" if self.overflow > 0 else ""


def _pill_value(cond: FilterCondition, catalog: Optional[CatalogAdapter]) -> str:
    val = cond.value
    if val is True:
        return "Yes"
    if val is False:
        return "No"
    if isinstance(val, (list, tuple)):
        return ", ".join(str(v) for v in val)
    if catalog is not None:
        label = None
        if cond.field == "agent":
            label = catalog.agent_label(val)
        elif cond.field == "createdBy":
            label = catalog.qa_agent_label(val)
        if label:
            return label
    text = "" if val is None else str(val)
    if cond.is_range and cond.value_to is not None:
        text = f"{text} and {cond.value_to}"
    return text


def summarize(expression: Optional[FilterExpression],
              catalog: Optional[CatalogAdapter] = None,
              limit: int = MAX_PILLS) -> FilterSummary:
    """First `limit` conditions as pills plus the count of the rest. Pure."""
    if expression is None or not expression.conditions:
        return FilterSummary(pills=[])
    pills = []
    for cond in expression.conditions[:limit]:
        pills.append(FilterPill(
            field=PILL_FIELD_LABELS.get(cond.field, cond.field),
            operator=PILL_OPERATOR_LABELS.get(cond.operator, cond.operator),
            value=_pill_value(cond, catalog) if cond.takes_value else None,
        ))
    return FilterSummary(pills=pills, overflow=max(0, len(expression.conditions) - limit))
