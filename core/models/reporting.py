"""
------------------------------------------------------------------------------
Project:        ChartDeck
File:           core/models/reporting.py
Version:        1.0.0
Description:    Report and Chart definitions as exchanged with the reporting
                service. Wire names are camelCase, attributes snake_case.
------------------------------------------------------------------------------
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from core.models.filters import FilterExpression

GRID_COLUMNS = 12
MIN_W, MAX_W = 2, 12
MIN_H, MAX_H = 2, 10

DATE_FIELDS = ("dateEntered", "gradedDate", "createdAt")
COMPARISON_TYPES = ("previousPeriod", "samePeriodLastWeek", "samePeriodLastMonth", "samePeriodLastYear")
DEFAULT_TARGET_VALUE = 85
DEFAULT_REFRESH_INTERVAL_MS = 300000


class ChartType(str, Enum):
    KPI = "kpi"
    BAR = "bar"
    COLUMN = "column"
    LINE = "line"
    AREA = "area"
    DONUT = "donut"
    COMBO = "combo"
    TABLE = "table"
    HEATMAP = "heatmap"
    GAUGE = "gauge"

    @classmethod
    def parse(cls, value: Any) -> Optional["ChartType"]:
        """Returns the matching member or None for an unknown type string."""
        try:
            return cls(value)
        except ValueError:
            return None


class Visibility(str, Enum):
    PRIVATE = "private"
    SHARED = "shared"
    PUBLIC = "public"


def default_chart_options() -> Dict[str, Any]:
    return {
        "showDataLabels": False,
        "showLegend": True,
        "smooth": True,
        "showPoints": True,
        "format": "number",
        "decimals": 1,
    }


def _as_int(v: Any, default: int) -> int:
    try:
        return int(v)
    except (TypeError, ValueError):
        return default


class LayoutRect(BaseModel):
    """
    Rectangle on the 12-column grid, in grid units.
    Out-of-range values are clamped rather than rejected.
    """
    model_config = ConfigDict(extra="ignore", frozen=True)

    x: int = 0
    y: int = 0
    w: int = 6
    h: int = 4

    @model_validator(mode="before")
    @classmethod
    def _clamp(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        w = min(max(_as_int(data.get("w"), 6), MIN_W), MAX_W)
        h = min(max(_as_int(data.get("h"), 4), MIN_H), MAX_H)
        x = min(max(_as_int(data.get("x"), 0), 0), GRID_COLUMNS - w)
        y = max(_as_int(data.get("y"), 0), 0)
        return {"x": x, "y": y, "w": w, "h": h}

    @property
    def bottom(self) -> int:
        return self.y + self.h

    def overlaps(self, other: "LayoutRect") -> bool:
        return (self.x < other.x + other.w and other.x < self.x + self.w
                and self.y < other.y + other.h and other.y < self.y + self.h)

    def moved(self, **changes: int) -> "LayoutRect":
        data = self.model_dump()
        data.update(changes)
        return LayoutRect.model_validate(data)


class ChartTarget(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    value: float = DEFAULT_TARGET_VALUE
    show_line: bool = Field(default=True, alias="showLine")


class ChartComparison(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    enabled: bool = False
    type: Optional[str] = None


class DateRangeSpec(BaseModel):
    """`{type}` descriptor, custom ranges may carry extra keys (start/end)."""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    type: str = "last30days"


class AutoRefreshPolicy(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    enabled: bool = False
    interval: int = DEFAULT_REFRESH_INTERVAL_MS


class Chart(BaseModel):
    """
    One chart's complete declarative definition.

    `chart_type` is kept as a plain string so that a type the client does
    not know survives a load/save round trip and renders as a placeholder.
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True, validate_assignment=True)

    id: Optional[str] = Field(default=None, alias="_id")
    title: str = ""
    description: str = ""
    chart_type: str = Field(default=ChartType.COLUMN.value, alias="chartType")
    dataset: str = "tickets"
    metric: str = ""
    aggregation: str = "avg"
    view_by: str = Field(default="none", alias="viewBy")
    segment_by: Optional[str] = Field(default=None, alias="segmentBy")
    top_n: Optional[int] = Field(default=None, alias="topN")
    show_others: bool = Field(default=True, alias="showOthers")
    sort_by: str = Field(default="value", alias="sortBy")
    sort_order: str = Field(default="desc", alias="sortOrder")
    filters: Optional[FilterExpression] = None
    override_date_range: bool = Field(default=False, alias="overrideDateRange")
    date_range: Optional[DateRangeSpec] = Field(default=None, alias="dateRange")
    target: Optional[ChartTarget] = None
    comparison: ChartComparison = Field(default_factory=ChartComparison)
    options: Dict[str, Any] = Field(default_factory=default_chart_options)
    layout: LayoutRect = Field(default_factory=LayoutRect)

    @field_validator("chart_type", mode="before")
    @classmethod
    def _type_string(cls, v: Any) -> str:
        if isinstance(v, ChartType):
            return v.value
        return str(v) if v is not None else ChartType.COLUMN.value

    @field_validator("segment_by", mode="before")
    @classmethod
    def _empty_segment(cls, v: Any) -> Any:
        return v or None

    @field_validator("top_n", mode="before")
    @classmethod
    def _empty_top_n(cls, v: Any) -> Any:
        return None if v in ("", None) else v

    @field_validator("view_by", mode="before")
    @classmethod
    def _view_by_default(cls, v: Any) -> Any:
        return v or "none"

    @field_validator("comparison", mode="before")
    @classmethod
    def _comparison_default(cls, v: Any) -> Any:
        return v if v is not None else ChartComparison()

    @field_validator("options", mode="before")
    @classmethod
    def _options_dict(cls, v: Any) -> Any:
        return dict(v) if v else {}

    @field_validator("layout", mode="before")
    @classmethod
    def _layout_default(cls, v: Any) -> Any:
        return v if v is not None else LayoutRect()

    @property
    def type_enum(self) -> Optional[ChartType]:
        return ChartType.parse(self.chart_type)

    @property
    def is_grouped(self) -> bool:
        return self.view_by != "none"

    def option(self, key: str, default: Any = None) -> Any:
        return self.options.get(key, default)

    def to_payload(self) -> Dict[str, Any]:
        """Wire form without the server-assigned identity."""
        data = self.model_dump(mode="json", by_alias=True, exclude={"id", "filters"})
        data["filters"] = self.filters.to_payload() if self.filters is not None else None
        return data


class ChartLayoutEntry(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    chart_id: str = Field(alias="chartId")
    layout: LayoutRect

    def to_payload(self) -> Dict[str, Any]:
        return {"chartId": self.chart_id, "layout": self.layout.model_dump()}


class Report(BaseModel):
    """
    A named collection of charts sharing default filters and date range.
    Chart identities are unique within a report.
    """
    model_config = ConfigDict(extra="ignore", populate_by_name=True, validate_assignment=True)

    id: Optional[str] = Field(default=None, alias="_id")
    title: str = ""
    description: str = ""
    visibility: Visibility = Visibility.PRIVATE
    date_range: DateRangeSpec = Field(default_factory=DateRangeSpec, alias="dateRange")
    date_field: str = Field(default="dateEntered", alias="dateField")
    filters: Optional[FilterExpression] = None
    auto_refresh: AutoRefreshPolicy = Field(default_factory=AutoRefreshPolicy, alias="autoRefresh")
    is_pinned: bool = Field(default=False, alias="isPinned")
    charts: List[Chart] = Field(default_factory=list)
    can_edit: bool = Field(default=False, alias="canEdit")
    charts_count: Optional[int] = Field(default=None, alias="chartsCount")
    updated_at: Optional[str] = Field(default=None, alias="updatedAt")
    created_at: Optional[str] = Field(default=None, alias="createdAt")

    @field_validator("date_range", mode="before")
    @classmethod
    def _date_range_default(cls, v: Any) -> Any:
        return v if v is not None else DateRangeSpec()

    @field_validator("auto_refresh", mode="before")
    @classmethod
    def _auto_refresh_default(cls, v: Any) -> Any:
        return v if v is not None else AutoRefreshPolicy()

    @field_validator("charts", mode="before")
    @classmethod
    def _charts_list(cls, v: Any) -> Any:
        return v or []

    @model_validator(mode="after")
    def _unique_chart_ids(self) -> "Report":
        seen = set()
        for chart in self.charts:
            if chart.id is None:
                continue
            if chart.id in seen:
                raise ValueError(f"Duplicate chart id in report: {chart.id}")
            seen.add(chart.id)
        return self

    @property
    def chart_count(self) -> int:
        if self.charts_count is not None and not self.charts:
            return self.charts_count
        return len(self.charts)

    def find_chart(self, chart_id: str) -> Optional[Chart]:
        for chart in self.charts:
            if chart.id == chart_id:
                return chart
        return None

    def settings_payload(self) -> Dict[str, Any]:
        """Editable report settings as sent on create/update."""
        return {
            "title": self.title,
            "description": self.description,
            "visibility": self.visibility.value,
            "dateRange": self.date_range.model_dump(mode="json"),
            "dateField": self.date_field,
            "filters": self.filters.to_payload() if self.filters is not None else None,
            "autoRefresh": self.auto_refresh.model_dump(mode="json"),
        }
