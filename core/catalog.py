"""
------------------------------------------------------------------------------
Project:        ChartDeck
File:           core/catalog.py
Version:        1.0.0
Description:    Metric/Dimension Catalog Adapter. Read-only lookups over the
                metadata payload: which metrics, aggregations, dimensions,
                filter fields and operators are valid in the editors.
------------------------------------------------------------------------------
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from core.logger import get_logger
from core.models.catalog import CatalogMetadata, CatalogOption, Metric
from core.models.filters import FieldType, OPERATORS_BY_TYPE
from core.models.reporting import COMPARISON_TYPES

logger = get_logger("catalog")

DEFAULT_AGGREGATIONS = ("avg", "sum", "count")
ALL_AGGREGATIONS = "all"
NO_DIMENSION = "none"
ALL_TIME_LABEL = "All Time"

OPERATOR_LABELS: Dict[str, str] = {
    "equals": "Equals",
    "not_equals": "Not equals",
    "contains": "Contains",
    "not_contains": "Does not contain",
    "starts_with": "Starts with",
    "ends_with": "Ends with",
    "is_empty": "Is empty",
    "is_not_empty": "Is not empty",
    "greater_than": "Greater than",
    "greater_or_equal": "Greater or equal",
    "less_than": "Less than",
    "less_or_equal": "Less or equal",
    "between": "Between",
    "in": "Is any of",
    "not_in": "Is none of",
}

COMPARISON_LABELS: Dict[str, str] = {
    "previousPeriod": "Previous period",
    "samePeriodLastWeek": "Same period last week",
    "samePeriodLastMonth": "Same period last month",
    "samePeriodLastYear": "Same period last year",
}


@dataclass(frozen=True)
class FilterField:
    """A filterable field of the ticket dataset. `options_key` names the catalog list for selects."""
    value: str
    label: str
    type: FieldType
    options_key: Optional[str] = None


FILTER_FIELDS: List[FilterField] = [
    FilterField("status", "Status", FieldType.SELECT, "statuses"),
    FilterField("priority", "Priority", FieldType.SELECT, "priorities"),
    FilterField("qualityScorePercent", "Quality Score", FieldType.NUMBER),
    FilterField("qualityGrade", "Quality Grade", FieldType.SELECT, "quality_grades"),
    FilterField("categories", "Category", FieldType.SELECT, "categories"),
    FilterField("agent", "CS Agent", FieldType.SELECT, "agents"),
    FilterField("createdBy", "QA Agent", FieldType.SELECT, "qa_agents"),
    FilterField("tags", "Tags", FieldType.TEXT),
    FilterField("notes", "Notes", FieldType.TEXT),
    FilterField("feedback", "Feedback", FieldType.TEXT),
    FilterField("ticketId", "Ticket ID", FieldType.TEXT),
    FilterField("isArchived", "Archived", FieldType.BOOLEAN),
]

_FIELDS_BY_NAME = {f.value: f for f in FILTER_FIELDS}


def field_type_of(field: str) -> FieldType:
    """Declared type of a filter field. Unknown or empty fields are text."""
    known = _FIELDS_BY_NAME.get(field)
    return known.type if known else FieldType.TEXT


def operators_for_type(field_type: FieldType) -> List[str]:
    return list(OPERATORS_BY_TYPE[field_type])


class CatalogAdapter:
    """
    Answers read-only questions about the metadata catalog.
    Works with an empty catalog so editors can open before metadata arrives.
    """

    def __init__(self, metadata: Optional[CatalogMetadata] = None):
        self.metadata = metadata or CatalogMetadata()

    @classmethod
    def from_payload(cls, payload: Optional[Dict[str, Any]]) -> "CatalogAdapter":
        metadata = CatalogMetadata.model_validate(payload or {})
        logger.debug(f"Catalog loaded: {len(metadata.datasets)} datasets, "
                     f"{sum(len(m) for m in metadata.metrics.values())} metrics")
        return cls(metadata)

    # --- Metrics & Aggregations ---

    def datasets(self) -> List[str]:
        return list(self.metadata.datasets)

    def metrics_for_dataset(self, dataset: str) -> List[Metric]:
        return list(self.metadata.metrics.get(dataset, []))

    def find_metric(self, dataset: str, metric: str) -> Optional[Metric]:
        for m in self.metrics_for_dataset(dataset):
            if m.value == metric:
                return m
        return None

    def aggregations_for_metric(self, dataset: str, metric: str) -> List[CatalogOption]:
        """
        Catalog aggregations allowed for the metric, in catalog order.
        Undeclared metrics allow avg/sum/count; 'all' allows every aggregation.
        """
        found = self.find_metric(dataset, metric)
        allowed = (found.aggregations if found and found.aggregations else None) or list(DEFAULT_AGGREGATIONS)
        if ALL_AGGREGATIONS in allowed:
            return list(self.metadata.aggregations)
        return [a for a in self.metadata.aggregations if a.value in allowed]

    # --- Dimensions ---

    def view_by_options(self) -> List[CatalogOption]:
        return list(self.metadata.view_by_options)

    def segment_by_options(self, view_by: str) -> List[CatalogOption]:
        """Secondary dimensions: never 'none' and never the primary dimension."""
        return [o for o in self.metadata.view_by_options if o.value not in (NO_DIMENSION, view_by)]

    def chart_types(self) -> List[CatalogOption]:
        return list(self.metadata.chart_types)

    def date_range_options(self) -> List[CatalogOption]:
        return list(self.metadata.date_range_options)

    def comparison_types(self) -> List[CatalogOption]:
        return [CatalogOption(value=t, label=COMPARISON_LABELS[t]) for t in COMPARISON_TYPES]

    # --- Filters ---

    def filter_fields(self) -> List[FilterField]:
        return list(FILTER_FIELDS)

    def find_field(self, field: str) -> Optional[FilterField]:
        return _FIELDS_BY_NAME.get(field)

    def field_options(self, field: str) -> List[CatalogOption]:
        """Choices for a select-type field, empty for other types."""
        known = _FIELDS_BY_NAME.get(field)
        if not known or not known.options_key:
            return []
        return list(getattr(self.metadata, known.options_key))

    def operators_for_field(self, field: str) -> List[CatalogOption]:
        """
        Exactly the declared operator subset for the field's type, in
        declared order, labelled from the catalog where it provides a label.
        """
        catalog_labels = {o.value: o.label for o in self.metadata.filter_operators if o.label}
        return [
            CatalogOption(value=op, label=catalog_labels.get(op, OPERATOR_LABELS.get(op, op)))
            for op in operators_for_type(field_type_of(field))
        ]

    # --- Labels ---

    def _find_label(self, options: List[CatalogOption], value: Any) -> Optional[str]:
        for opt in options:
            if opt.value == value:
                return opt.label or None
        return None

    def agent_label(self, value: Any) -> Optional[str]:
        return self._find_label(self.metadata.agents, value)

    def qa_agent_label(self, value: Any) -> Optional[str]:
        return self._find_label(self.metadata.qa_agents, value)

    def date_range_label(self, range_type: Optional[str]) -> str:
        return self._find_label(self.metadata.date_range_options, range_type) or ALL_TIME_LABEL

    def view_by_label(self, value: str) -> str:
        return self._find_label(self.metadata.view_by_options, value) or value

    def aggregation_label(self, value: str) -> str:
        return self._find_label(self.metadata.aggregations, value) or value

    def metric_label(self, dataset: str, metric: str) -> str:
        found = self.find_metric(dataset, metric)
        return (found.label if found and found.label else None) or metric
