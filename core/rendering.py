"""
------------------------------------------------------------------------------
Project:        ChartDeck
File:           core/rendering.py
Version:        1.0.0
Description:    Chart Type Dispatcher. Resolves the loading/error/empty/ready
                state of a chart and, when ready, turns the chart definition
                plus its fetched data into a render model for one of the
                fixed chart types. Widgets only paint these models.
------------------------------------------------------------------------------
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

from core.chart_config import DEFAULT_PAGE_SIZE, TARGET_LINE_TYPES, option_enabled
from core.logger import get_logger
from core.models.reporting import Chart, ChartType
from core.normalizer import extract_scalar, has_data, rows
from core.utils.formatting import (
    format_cell, format_change, format_grouped, format_value, humanize_key, percent_change,
)

logger = get_logger("render")

NO_DATA_MESSAGE = "No data available"
LOADING_MESSAGE = "Loading..."
INTERNAL_ID_KEY = "_id"
HEATMAP_DAYS = ("Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat")
HEATMAP_HOURS = 24
HEATMAP_MIN_INTENSITY = 0.1


class RenderState(str, Enum):
    LOADING = "loading"
    ERROR = "error"
    EMPTY = "empty"
    READY = "ready"


def resolve_state(data: Any, error: Optional[str] = None, loading: bool = False) -> RenderState:
    """Loading wins over error, error over empty. Driven only by the inputs."""
    if loading:
        return RenderState.LOADING
    if error:
        return RenderState.ERROR
    if not has_data(data):
        return RenderState.EMPTY
    return RenderState.READY


def _num(val: Any) -> float:
    if isinstance(val, bool):
        return float(val)
    try:
        return float(val)
    except (TypeError, ValueError):
        return 0.0


# --- Render Models ---

@dataclass(frozen=True)
class Placeholder:
    state: RenderState
    message: str


@dataclass(frozen=True)
class DataPoint:
    name: str
    value: float
    count: Optional[float] = None


@dataclass(frozen=True)
class KpiTile:
    value: Any
    text: str
    show_trend: bool = False
    change: Optional[float] = None
    change_text: str = ""
    trend: str = "flat"
    target: Optional[float] = None
    progress: Optional[float] = None
    achieved: bool = False


@dataclass(frozen=True)
class CartesianChart:
    """Bar (horizontal), column, line and area share one shape."""
    kind: ChartType
    points: List[DataPoint]
    horizontal: bool = False
    show_legend: bool = True
    show_data_labels: bool = False
    smooth: bool = False
    show_points: bool = False
    stacked: bool = False
    relative: bool = False
    target_line: Optional[float] = None

    @property
    def max_value(self) -> float:
        values = [p.value for p in self.points]
        if self.target_line is not None:
            values.append(self.target_line)
        return max(values + [0.0])


@dataclass(frozen=True)
class DonutSlice:
    name: str
    value: float
    percent: float


@dataclass(frozen=True)
class DonutChart:
    slices: List[DonutSlice]
    total: float
    total_text: str
    show_center_text: bool = False
    show_legend: bool = True
    show_data_labels: bool = False


@dataclass(frozen=True)
class ComboChart:
    """`value` as bars on the left axis, `count` as a line on the right axis."""
    points: List[DataPoint]
    show_legend: bool = True
    show_data_labels: bool = False


@dataclass(frozen=True)
class TableColumn:
    field: str
    label: str


@dataclass(frozen=True)
class TableView:
    columns: List[TableColumn]
    rows: List[List[str]]
    summary: Optional[List[str]] = None
    page_size: int = DEFAULT_PAGE_SIZE

    @property
    def page_count(self) -> int:
        if not self.rows:
            return 1
        return (len(self.rows) + self.page_size - 1) // self.page_size

    def page(self, index: int) -> List[List[str]]:
        index = min(max(index, 0), self.page_count - 1)
        start = index * self.page_size
        return self.rows[start:start + self.page_size]


@dataclass(frozen=True)
class HeatmapGrid:
    """7 x 24 cells, rows Sun..Sat, columns 0..23h."""
    cells: List[List[float]]
    max_value: float
    days: tuple = HEATMAP_DAYS

    def intensity(self, day_index: int, hour: int) -> float:
        return max(HEATMAP_MIN_INTENSITY, self.cells[day_index][hour] / self.max_value)


@dataclass(frozen=True)
class GaugeDial:
    value: Any
    text: str
    minimum: float
    maximum: float
    percentage: float
    target: Optional[float] = None


RenderModel = Union[Placeholder, KpiTile, CartesianChart, DonutChart, ComboChart,
                    TableView, HeatmapGrid, GaugeDial]


def _points(data: Any) -> List[DataPoint]:
    result = []
    for row in rows(data):
        count = row.get("count")
        result.append(DataPoint(
            name=str(row.get("name", "")),
            value=_num(row.get("value")),
            count=_num(count) if count is not None else None,
        ))
    return result


def table_columns(chart: Chart, table_rows: List[Dict[str, Any]]) -> List[TableColumn]:
    """
    Configured `options.columns` when it is a non-empty list, otherwise the
    first row's keys minus the internal id, with humanized labels.
    """
    configured = chart.options.get("columns")
    if isinstance(configured, list) and configured:
        columns = []
        for col in configured:
            if isinstance(col, dict) and col.get("field"):
                columns.append(TableColumn(field=str(col["field"]),
                                           label=str(col.get("label") or humanize_key(str(col["field"])))))
            elif isinstance(col, str):
                columns.append(TableColumn(field=col, label=humanize_key(col)))
        if columns:
            return columns
    if not table_rows:
        return []
    return [TableColumn(field=key, label=humanize_key(key))
            for key in table_rows[0].keys() if key != INTERNAL_ID_KEY]


class ChartRenderer:
    """
    Dispatches a chart to its renderer by type. Unknown types produce a
    visible placeholder; nothing here raises on bad data.
    """

    def __init__(self) -> None:
        self._renderers: Dict[ChartType, Callable[[Chart, Any], RenderModel]] = {
            ChartType.KPI: self._render_kpi,
            ChartType.BAR: self._render_cartesian,
            ChartType.COLUMN: self._render_cartesian,
            ChartType.LINE: self._render_cartesian,
            ChartType.AREA: self._render_cartesian,
            ChartType.DONUT: self._render_donut,
            ChartType.COMBO: self._render_combo,
            ChartType.TABLE: self._render_table,
            ChartType.HEATMAP: self._render_heatmap,
            ChartType.GAUGE: self._render_gauge,
        }

    def render(self, chart: Chart, data: Any, error: Optional[str] = None,
               loading: bool = False) -> RenderModel:
        state = resolve_state(data, error, loading)
        if state is RenderState.LOADING:
            return Placeholder(state, LOADING_MESSAGE)
        if state is RenderState.ERROR:
            return Placeholder(state, str(error))
        if state is RenderState.EMPTY:
            return Placeholder(state, NO_DATA_MESSAGE)

        kind = chart.type_enum
        if kind is None:
            logger.warning(f"Unknown chart type '{chart.chart_type}' for chart {chart.id}")
            return Placeholder(RenderState.READY, f"Unknown chart type: {chart.chart_type}")
        return self._renderers[kind](chart, data)

    # --- Scalar renderers (raw object path) ---

    def _render_kpi(self, chart: Chart, data: Any) -> RenderModel:
        scalar = extract_scalar(data)
        if scalar.value is None and not isinstance(data, dict):
            return Placeholder(RenderState.EMPTY, NO_DATA_MESSAGE)

        opts = chart.options
        text = format_value(scalar.value, opts.get("format"), opts.get("decimals", 1))
        if scalar.value is not None:
            text = f"{opts.get('prefix') or ''}{text}{opts.get('suffix') or ''}"

        show_trend = option_enabled(chart, "showTrend") and scalar.comparison is not None
        change = percent_change(scalar.value, scalar.comparison) if show_trend else None
        change_text = format_change(change)
        trend = "flat"
        if change_text.startswith("+"):
            trend = "up"
        elif change_text.startswith("-"):
            trend = "down"

        target = chart.target.value if chart.target and chart.target.value else None
        progress = None
        achieved = False
        if target is not None and scalar.value is not None:
            current = _num(scalar.value)
            progress = min(current / target * 100, 100.0)
            achieved = current >= target

        return KpiTile(value=scalar.value, text=text, show_trend=show_trend, change=change,
                       change_text=change_text, trend=trend, target=target,
                       progress=progress, achieved=achieved)

    def _render_gauge(self, chart: Chart, data: Any) -> RenderModel:
        scalar = extract_scalar(data)
        if scalar.value is None and not isinstance(data, dict):
            return Placeholder(RenderState.EMPTY, NO_DATA_MESSAGE)

        minimum = _num(chart.options.get("gaugeMin") or 0)
        maximum = _num(chart.options.get("gaugeMax") or 100)
        span = maximum - minimum
        percentage = 0.0
        if span > 0 and scalar.value is not None:
            percentage = (_num(scalar.value) - minimum) / span * 100
        percentage = min(max(percentage, 0.0), 100.0)
        target = chart.target.value if chart.target and chart.target.value else None
        return GaugeDial(value=scalar.value, text=format_value(scalar.value, chart.options.get("format")),
                         minimum=minimum, maximum=maximum, percentage=percentage, target=target)

    # --- Array renderers (normalized path) ---

    def _render_cartesian(self, chart: Chart, data: Any) -> RenderModel:
        points = _points(data)
        if not points:
            return Placeholder(RenderState.EMPTY, NO_DATA_MESSAGE)
        kind = chart.type_enum
        opts = chart.options
        stacked = kind in (ChartType.BAR, ChartType.COLUMN, ChartType.AREA) and bool(opts.get("stacked"))
        line_family = kind in (ChartType.LINE, ChartType.AREA)
        target_line = None
        if kind in TARGET_LINE_TYPES and chart.target and chart.target.show_line:
            target_line = chart.target.value
        return CartesianChart(
            kind=kind,
            points=points,
            horizontal=kind is ChartType.BAR,
            show_legend=option_enabled(chart, "showLegend"),
            show_data_labels=option_enabled(chart, "showDataLabels"),
            smooth=line_family and option_enabled(chart, "smooth"),
            show_points=line_family and option_enabled(chart, "showPoints"),
            stacked=stacked,
            relative=stacked and kind in (ChartType.BAR, ChartType.COLUMN) and bool(opts.get("relative")),
            target_line=target_line,
        )

    def _render_donut(self, chart: Chart, data: Any) -> RenderModel:
        points = _points(data)
        if not points:
            return Placeholder(RenderState.EMPTY, NO_DATA_MESSAGE)
        total = sum(p.value for p in points)
        slices = [DonutSlice(name=p.name, value=p.value,
                             percent=(p.value / total * 100) if total else 0.0)
                  for p in points]
        return DonutChart(slices=slices, total=total, total_text=format_grouped(total),
                          show_center_text=option_enabled(chart, "showCenterText"),
                          show_legend=option_enabled(chart, "showLegend"),
                          show_data_labels=option_enabled(chart, "showDataLabels"))

    def _render_combo(self, chart: Chart, data: Any) -> RenderModel:
        points = _points(data)
        if not points:
            return Placeholder(RenderState.EMPTY, NO_DATA_MESSAGE)
        return ComboChart(points=points, show_legend=option_enabled(chart, "showLegend"),
                          show_data_labels=option_enabled(chart, "showDataLabels"))

    def _render_table(self, chart: Chart, data: Any) -> RenderModel:
        table_rows = rows(data)
        if not table_rows:
            return Placeholder(RenderState.EMPTY, NO_DATA_MESSAGE)
        columns = table_columns(chart, table_rows)
        body = [[format_cell(row.get(col.field)) for col in columns] for row in table_rows]

        summary = None
        if chart.options.get("showSummaryRow"):
            summary = []
            for i, col in enumerate(columns):
                values = [row.get(col.field) for row in table_rows]
                numeric = [v for v in values if isinstance(v, (int, float)) and not isinstance(v, bool)]
                if numeric and len(numeric) == len([v for v in values if v is not None]):
                    summary.append(format_grouped(sum(numeric), 2))
                else:
                    summary.append("Total" if i == 0 else "")

        try:
            page_size = int(chart.options.get("pageSize") or DEFAULT_PAGE_SIZE)
        except (TypeError, ValueError):
            page_size = DEFAULT_PAGE_SIZE
        return TableView(columns=columns, rows=body, summary=summary, page_size=max(page_size, 1))

    def _render_heatmap(self, chart: Chart, data: Any) -> RenderModel:
        cells = [[0.0] * HEATMAP_HOURS for _ in HEATMAP_DAYS]
        values = []
        for row in rows(data):
            day = row.get("day") or row.get("dayOfWeek")
            hour = row.get("hour")
            value = _num(row.get("value"))
            values.append(value)
            try:
                day_index, hour_index = int(day) - 1, int(hour)
            except (TypeError, ValueError):
                continue
            if 0 <= day_index < len(HEATMAP_DAYS) and 0 <= hour_index < HEATMAP_HOURS:
                cells[day_index][hour_index] = value
        if not values:
            return Placeholder(RenderState.EMPTY, NO_DATA_MESSAGE)
        return HeatmapGrid(cells=cells, max_value=max(values + [1.0]))
