"""
------------------------------------------------------------------------------
Project:        ChartDeck
File:           core/models/catalog.py
Version:        1.0.0
Description:    Read-only catalog entities supplied by the metadata endpoint:
                metrics, aggregations, dimensions, date ranges, operators and
                the option lists used by select-type filter fields.
------------------------------------------------------------------------------
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CatalogOption(BaseModel):
    """Generic `{value, label}` pair (aggregation, dimension, date range, operator...)."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    value: Any
    label: str = ""

    @field_validator("label", mode="before")
    @classmethod
    def _label_default(cls, v: Any) -> str:
        return "" if v is None else str(v)

    @property
    def display(self) -> str:
        return self.label or str(self.value)


class Metric(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    value: str
    label: str = ""
    type: Optional[str] = None
    aggregations: Optional[List[str]] = None


def _coerce_options(v: Any) -> Any:
    # Plain strings are accepted as options whose label equals their value
    if v is None:
        return []
    return [{"value": item, "label": str(item)} if not isinstance(item, dict) else item for item in v]


class CatalogMetadata(BaseModel):
    """Everything the editors need to offer valid choices. Fetched once per session."""
    model_config = ConfigDict(extra="ignore", populate_by_name=True, frozen=True)

    datasets: List[str] = Field(default_factory=list)
    metrics: Dict[str, List[Metric]] = Field(default_factory=dict)
    aggregations: List[CatalogOption] = Field(default_factory=list)
    chart_types: List[CatalogOption] = Field(default_factory=list, alias="chartTypes")
    view_by_options: List[CatalogOption] = Field(default_factory=list, alias="viewByOptions")
    date_range_options: List[CatalogOption] = Field(default_factory=list, alias="dateRangeOptions")
    filter_operators: List[CatalogOption] = Field(default_factory=list, alias="filterOperators")
    statuses: List[CatalogOption] = Field(default_factory=list)
    priorities: List[CatalogOption] = Field(default_factory=list)
    quality_grades: List[CatalogOption] = Field(default_factory=list, alias="qualityGrades")
    categories: List[CatalogOption] = Field(default_factory=list)
    agents: List[CatalogOption] = Field(default_factory=list)
    qa_agents: List[CatalogOption] = Field(default_factory=list, alias="qaAgents")

    @field_validator(
        "aggregations", "chart_types", "view_by_options", "date_range_options",
        "filter_operators", "statuses", "priorities", "quality_grades",
        "categories", "agents", "qa_agents", mode="before",
    )
    @classmethod
    def _accept_plain_values(cls, v: Any) -> Any:
        return _coerce_options(v)

    @field_validator("datasets", mode="before")
    @classmethod
    def _datasets_list(cls, v: Any) -> Any:
        if v is None:
            return []
        return [item.get("value") if isinstance(item, dict) else item for item in v]

    @field_validator("metrics", mode="before")
    @classmethod
    def _metrics_dict(cls, v: Any) -> Any:
        return v or {}
