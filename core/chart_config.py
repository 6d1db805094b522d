"""
------------------------------------------------------------------------------
Project:        ChartDeck
File:           core/chart_config.py
Version:        1.0.0
Description:    Chart Configuration editing. Holds one Chart as an atomic
                value, applies merge-style edits, decides which controls and
                display options apply to the current chart type, validates
                before save and builds the live preview request.
------------------------------------------------------------------------------
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from core.filter_expression import validate_expression
from core.logger import get_logger
from core.models.filters import FilterExpression
from core.models.reporting import (
    Chart, ChartComparison, ChartTarget, ChartType, DateRangeSpec, default_chart_options,
)
from core.results import ValidationResult

logger = get_logger("chart_config")

COMMON_OPTIONS: Tuple[str, ...] = ("showLegend", "showDataLabels")

OPTIONS_BY_TYPE: Dict[ChartType, Tuple[str, ...]] = {
    ChartType.KPI: ("format", "decimals", "prefix", "suffix", "showTrend"),
    ChartType.LINE: COMMON_OPTIONS + ("smooth", "showPoints"),
    ChartType.AREA: COMMON_OPTIONS + ("smooth", "showPoints", "stacked"),
    ChartType.BAR: COMMON_OPTIONS + ("stacked", "relative"),
    ChartType.COLUMN: COMMON_OPTIONS + ("stacked", "relative"),
    ChartType.DONUT: COMMON_OPTIONS + ("showCenterText",),
    ChartType.TABLE: ("showSummaryRow", "pageSize", "columns"),
    ChartType.GAUGE: ("format", "gaugeMin", "gaugeMax"),
    ChartType.HEATMAP: COMMON_OPTIONS,
    ChartType.COMBO: COMMON_OPTIONS,
}

# Toggles that read as enabled unless explicitly switched off
DEFAULT_ON_OPTIONS = frozenset({"showLegend", "smooth", "showPoints", "showTrend"})

TARGET_LINE_TYPES = frozenset({ChartType.COLUMN, ChartType.LINE, ChartType.AREA})
TREND_TYPES = frozenset({ChartType.KPI})

KPI_FORMATS = ("number", "percentage", "currency", "duration")
GAUGE_FORMATS = ("number", "percentage")
DECIMAL_CHOICES = (0, 1, 2, 3, 4)
PAGE_SIZES = (5, 10, 20, 50, 100)
DEFAULT_PAGE_SIZE = 10
TOP_N_CHOICES = (5, 10, 15, 20, 50)
SORT_FIELDS = ("value", "label")
SORT_ORDERS = ("desc", "asc")
DEFAULT_COMPARISON_TYPE = "previousPeriod"

_FIELD_BY_ALIAS = {f.alias: name for name, f in Chart.model_fields.items() if f.alias}
_READ_ONLY = {"id"}


def option_enabled(chart: Chart, key: str) -> bool:
    """Boolean option with its default applied."""
    val = chart.options.get(key)
    if val is None:
        return key in DEFAULT_ON_OPTIONS
    return bool(val)


def applicable_options(chart_type: str, options: Optional[Dict[str, Any]] = None) -> Tuple[str, ...]:
    """
    Display options that apply to `chart_type`. `relative` only applies to
    bar/column while `stacked` is on. Unknown types have none.
    """
    known = ChartType.parse(chart_type)
    if known is None:
        return ()
    keys = OPTIONS_BY_TYPE[known]
    if "relative" in keys and not (options or {}).get("stacked"):
        keys = tuple(k for k in keys if k != "relative")
    return keys


@dataclass(frozen=True)
class ChartControls:
    """Which secondary controls the builder shows for the current config."""
    dimensions: bool
    segment_by: bool
    sort_and_limit: bool
    target_line: bool
    trend: bool
    options: Tuple[str, ...]


def visible_controls(chart: Chart) -> ChartControls:
    """
    Hidden controls keep their values: switching to kpi hides the
    dimension selectors but leaves viewBy/segmentBy/topN in the config.
    """
    kind = chart.type_enum
    dimensions = kind is not ChartType.KPI
    grouped = dimensions and chart.is_grouped
    return ChartControls(
        dimensions=dimensions,
        segment_by=grouped,
        sort_and_limit=grouped,
        target_line=kind in TARGET_LINE_TYPES,
        trend=kind in TREND_TYPES,
        options=applicable_options(chart.chart_type, chart.options),
    )


def option_warnings(chart: Chart) -> List[str]:
    """Explicitly enabled options that have no effect on this chart type."""
    shared_defaults = set(default_chart_options())
    allowed = set(OPTIONS_BY_TYPE.get(chart.type_enum, ())) if chart.type_enum else set()
    warnings = []
    for key, val in chart.options.items():
        if key in allowed or key in shared_defaults or not val:
            continue
        warnings.append(f"Option '{key}' has no effect on {chart.chart_type} charts")
    if chart.options.get("relative") and not chart.options.get("stacked") and "relative" in allowed:
        warnings.append("Option 'relative' only applies to stacked charts")
    return warnings


def validate_chart(chart: Chart) -> ValidationResult:
    """Title and metric are required. Filter problems are reported per condition."""
    errors: Dict[str, str] = {}
    if not (chart.title or "").strip():
        errors["title"] = "Please enter a chart title"
    if not chart.metric:
        errors["metric"] = "Please select a metric"
    filter_check = validate_expression(chart.filters)
    for key, msg in filter_check.errors.items():
        errors[f"filters.{key}"] = msg
    return ValidationResult(errors=errors, warnings=tuple(option_warnings(chart)))


class ChartConfigEditor:
    """
    Edits a Chart by merging partial updates.

    An existing chart is merged over the builder defaults, options included,
    so partially stored option bags pick up the default toggles.
    """

    def __init__(self, chart: Optional[Chart] = None):
        if chart is None:
            self._chart = Chart()
        else:
            merged = {**default_chart_options(), **chart.options}
            self._chart = chart.model_copy(deep=True, update={"options": merged})
        self.is_new = chart is None or chart.id is None

    @property
    def chart(self) -> Chart:
        return self._chart

    def update_config(self, partial: Dict[str, Any]) -> Chart:
        """
        Replaces only the given keys (wire or attribute names). A dataset
        change clears `metric` unless the same update supplies one.
        """
        changes = {_FIELD_BY_ALIAS.get(k, k): v for k, v in partial.items()}
        unknown = set(changes) - set(Chart.model_fields) | (set(changes) & _READ_ONLY)
        if unknown:
            raise KeyError(f"Unsupported chart keys: {sorted(unknown)}")

        if "options" in changes:
            changes["options"] = {**self._chart.options, **(changes["options"] or {})}
        if "dataset" in changes and changes["dataset"] != self._chart.dataset:
            changes.setdefault("metric", "")

        updated = self._chart.model_copy(deep=True)
        for key, val in changes.items():
            setattr(updated, key, val)
        self._chart = updated
        return updated

    def update_options(self, partial: Dict[str, Any]) -> Chart:
        return self.update_config({"options": partial})

    def set_chart_type(self, chart_type: str) -> Chart:
        """Only the type changes; metric, dimensions and options are kept."""
        return self.update_config({"chart_type": chart_type})

    def set_filters(self, expression: Optional[FilterExpression]) -> Chart:
        if expression is not None and expression.is_empty():
            expression = None
        return self.update_config({"filters": expression})

    def set_target_enabled(self, enabled: bool) -> Chart:
        return self.update_config({"target": ChartTarget() if enabled else None})

    def set_comparison_enabled(self, enabled: bool) -> Chart:
        current_type = self._chart.comparison.type or DEFAULT_COMPARISON_TYPE
        return self.update_config({
            "comparison": ChartComparison(enabled=enabled, type=DEFAULT_COMPARISON_TYPE if enabled else current_type)
        })

    def set_override_date_range(self, enabled: bool, fallback: Optional[DateRangeSpec] = None) -> Chart:
        changes: Dict[str, Any] = {"override_date_range": enabled}
        if enabled and self._chart.date_range is None:
            changes["date_range"] = (fallback or DateRangeSpec()).model_copy()
        return self.update_config(changes)

    def visible_controls(self) -> ChartControls:
        return visible_controls(self._chart)

    def validate(self) -> ValidationResult:
        return validate_chart(self._chart)

    @property
    def can_preview(self) -> bool:
        return bool(self._chart.metric)

    def effective_date_range(self, report_date_range: Optional[DateRangeSpec]) -> Optional[DateRangeSpec]:
        if self._chart.override_date_range:
            return self._chart.date_range
        return report_date_range

    def preview_payload(self, report_filters: Optional[FilterExpression] = None,
                        report_date_range: Optional[DateRangeSpec] = None) -> Dict[str, Any]:
        """Unsaved chart config plus the report's ambient filters and date range."""
        payload = self._chart.to_payload()
        payload["reportFilters"] = report_filters.to_payload() if report_filters is not None else None
        date_range = self.effective_date_range(report_date_range)
        payload["dateRange"] = date_range.model_dump(mode="json") if date_range is not None else None
        logger.debug(f"Preview payload for '{self._chart.title}' ({self._chart.chart_type})")
        return payload
