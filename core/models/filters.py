"""
------------------------------------------------------------------------------
Project:        ChartDeck
File:           core/models/filters.py
Version:        1.0.0
Description:    Filter Expression model: a combinator (AND/OR) over an
                ordered list of typed conditions. Evaluation happens on the
                aggregation service; these models only stay well-formed and
                serialize deterministically.
------------------------------------------------------------------------------
"""

import uuid
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FieldType(str, Enum):
    TEXT = "text"
    NUMBER = "number"
    SELECT = "select"
    BOOLEAN = "boolean"


class FilterLogic(str, Enum):
    AND = "AND"
    OR = "OR"

    def flipped(self) -> "FilterLogic":
        return FilterLogic.OR if self is FilterLogic.AND else FilterLogic.AND


# Declared operator subset per field type, in display order.
OPERATORS_BY_TYPE: Dict[FieldType, List[str]] = {
    FieldType.TEXT: [
        "equals", "not_equals", "contains", "not_contains",
        "starts_with", "ends_with", "is_empty", "is_not_empty",
    ],
    FieldType.NUMBER: [
        "equals", "not_equals", "greater_than", "greater_or_equal",
        "less_than", "less_or_equal", "between",
    ],
    FieldType.SELECT: ["equals", "not_equals", "in", "not_in"],
    FieldType.BOOLEAN: ["equals"],
}

VALUELESS_OPERATORS = frozenset({"is_empty", "is_not_empty"})
RANGE_OPERATORS = frozenset({"between"})
DEFAULT_OPERATOR = "equals"


def _new_condition_id() -> str:
    return uuid.uuid4().hex


class FilterCondition(BaseModel):
    """
    A single predicate `{field, operator, value, valueTo?}`.

    `id` is a client-side handle so edits address a condition by identity
    rather than by list position. It never leaves the process.
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True, validate_assignment=True)

    id: str = Field(default_factory=_new_condition_id, exclude=True)
    field: str = ""
    operator: str = DEFAULT_OPERATOR
    value: Any = ""
    value_to: Any = Field(default=None, alias="valueTo")
    logic: FilterLogic = FilterLogic.AND

    @field_validator("operator", mode="before")
    @classmethod
    def _default_operator(cls, v: Any) -> str:
        return v or DEFAULT_OPERATOR

    @property
    def takes_value(self) -> bool:
        return self.operator not in VALUELESS_OPERATORS

    @property
    def is_range(self) -> bool:
        return self.operator in RANGE_OPERATORS


class FilterExpression(BaseModel):
    """
    Top-level predicate. `groups` is carried through untouched: nested
    sub-expressions are reserved and never evaluated or edited here.
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True, validate_assignment=True)

    logic: FilterLogic = FilterLogic.AND
    conditions: List[FilterCondition] = Field(default_factory=list)
    groups: List[Dict[str, Any]] = Field(default_factory=list)

    @field_validator("logic", mode="before")
    @classmethod
    def _normalize_logic(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.upper() or FilterLogic.AND
        return v or FilterLogic.AND

    @classmethod
    def from_payload(cls, data: Optional[Dict[str, Any]]) -> "FilterExpression":
        """Builds an expression from a wire dict, `None` yields an empty one."""
        if not data:
            return cls()
        return cls.model_validate(data)

    def is_empty(self) -> bool:
        return not self.conditions

    def find(self, condition_id: str) -> Optional[FilterCondition]:
        for cond in self.conditions:
            if cond.id == condition_id:
                return cond
        return None

    def to_payload(self) -> Dict[str, Any]:
        """Deterministic wire form: fixed key order, no client ids, `valueTo` only when set."""
        conditions = []
        for cond in self.conditions:
            entry: Dict[str, Any] = {
                "field": cond.field,
                "operator": cond.operator,
                "value": cond.value,
            }
            if cond.value_to is not None:
                entry["valueTo"] = cond.value_to
            entry["logic"] = cond.logic.value
            conditions.append(entry)
        return {
            "logic": self.logic.value,
            "conditions": conditions,
            "groups": list(self.groups),
        }
