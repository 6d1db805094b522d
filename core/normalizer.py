"""
------------------------------------------------------------------------------
Project:        ChartDeck
File:           core/normalizer.py
Version:        1.0.0
Description:    Data Shape Normalizer. The aggregation service returns either
                an array of points `[{name, value, count?}]` (grouped) or a
                bare aggregate `{value, count?, comparison?}` (ungrouped).
                Array-based renderers go through `normalize_to_array`; KPI and
                gauge read the scalar form via `extract_scalar`.
------------------------------------------------------------------------------
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional


def normalize_to_array(data: Any, default_name: str = "Total") -> List[Dict[str, Any]]:
    """
    Returns `data` unchanged if it is already a list; wraps an object
    carrying `value` as a single `{name, value, count}` point; anything
    else yields an empty list.
    """
    if isinstance(data, list):
        return data
    if isinstance(data, dict) and "value" in data:
        return [{"name": default_name, "value": data.get("value"), "count": data.get("count")}]
    return []


def has_data(data: Any) -> bool:
    """False for None and empty containers, the renderer's 'empty' state."""
    if data is None:
        return False
    if isinstance(data, (list, dict, str)):
        return len(data) > 0
    return True


def rows(data: Any) -> List[Dict[str, Any]]:
    """Array form restricted to mapping rows; malformed entries are dropped."""
    return [row for row in normalize_to_array(data) if isinstance(row, dict)]


@dataclass(frozen=True)
class ScalarResult:
    value: Any
    count: Optional[Any] = None
    comparison: Optional[Any] = None


def extract_scalar(data: Any) -> ScalarResult:
    """
    Reads the ungrouped aggregate. A bare number is its own value; an
    object contributes `value`, `count` and `comparison`.
    """
    if isinstance(data, dict):
        return ScalarResult(
            value=data.get("value"),
            count=data.get("count"),
            comparison=data.get("comparison"),
        )
    if isinstance(data, list):
        # Grouped payload on a scalar chart: nothing to show as one value
        return ScalarResult(value=None)
    return ScalarResult(value=data)
