import pytest

from core.models.reporting import Chart, ChartTarget
from core.rendering import (
    CartesianChart, ChartRenderer, ComboChart, DonutChart, GaugeDial, HeatmapGrid, KpiTile,
    Placeholder, RenderState, TableView, resolve_state, table_columns,
)

GROUPED = [
    {"name": "Alice", "value": 80, "count": 4},
    {"name": "Bob", "value": 60, "count": 2},
]


@pytest.fixture
def renderer():
    return ChartRenderer()


def chart(chart_type, **kwargs):
    return Chart(chart_type=chart_type, title="T", metric="qualityScore", **kwargs)


# --- STATES ---

def test_state_precedence():
    assert resolve_state([1], error="boom", loading=True) == RenderState.LOADING
    assert resolve_state([1], error="boom") == RenderState.ERROR
    assert resolve_state([]) == RenderState.EMPTY
    assert resolve_state(None) == RenderState.EMPTY
    assert resolve_state(0) == RenderState.READY


def test_placeholders(renderer):
    assert renderer.render(chart("bar"), None, loading=True) == Placeholder(RenderState.LOADING, "Loading...")
    assert renderer.render(chart("bar"), None, error="Timeout").message == "Timeout"
    assert renderer.render(chart("bar"), []).message == "No data available"


def test_unknown_type_renders_placeholder(renderer):
    model = renderer.render(chart("sunburst"), GROUPED)
    assert isinstance(model, Placeholder)
    assert "sunburst" in model.message


# --- SCALAR CHARTS ---

def test_kpi_with_trend_and_target(renderer):
    c = chart("kpi", options={"format": "percentage", "decimals": 1, "suffix": " pts"},
              target=ChartTarget(value=90))
    model = renderer.render(c, {"value": 85.25, "comparison": 80})
    assert isinstance(model, KpiTile)
    assert model.text == "85.3% pts"
    assert model.show_trend
    assert model.change_text == "+6.6%"
    assert model.trend == "up"
    assert model.target == 90
    assert model.progress == pytest.approx(85.25 / 90 * 100)
    assert not model.achieved


def test_kpi_zero_comparison_has_no_trend(renderer):
    model = renderer.render(chart("kpi"), {"value": 10, "comparison": 0})
    assert model.change is None
    assert model.change_text == ""
    assert model.trend == "flat"


def test_kpi_trend_can_be_switched_off(renderer):
    model = renderer.render(chart("kpi", options={"showTrend": False}), {"value": 10, "comparison": 5})
    assert not model.show_trend


def test_kpi_renders_scalar_zero(renderer):
    model = renderer.render(chart("kpi"), 0)
    assert isinstance(model, KpiTile)
    assert model.text == "0"


def test_kpi_missing_value_reads_na(renderer):
    model = renderer.render(chart("kpi"), {"count": 3})
    assert model.text == "N/A"


def test_gauge_is_clamped(renderer):
    c = chart("gauge", options={"gaugeMin": 0, "gaugeMax": 50, "format": "number"})
    assert renderer.render(c, {"value": 25}).percentage == 50.0
    assert renderer.render(c, {"value": 80}).percentage == 100.0
    assert renderer.render(c, {"value": -5}).percentage == 0.0
    model = renderer.render(chart("gauge", options={}), 42)
    assert isinstance(model, GaugeDial)
    assert model.maximum == 100


# --- ARRAY CHARTS ---

def test_bar_is_horizontal_with_points(renderer):
    model = renderer.render(chart("bar"), GROUPED)
    assert isinstance(model, CartesianChart)
    assert model.horizontal
    assert [p.name for p in model.points] == ["Alice", "Bob"]
    assert model.points[1].count == 2


def test_top_n_is_left_to_the_service(renderer):
    column = chart("column", view_by="agent", top_n=5, sort_by="value", sort_order="desc")
    data = [{"name": f"Agent {i}", "value": 100 - i * 5} for i in range(8)]
    model = renderer.render(column, data)
    assert isinstance(model, CartesianChart)
    assert len(model.points) == 8
    assert model.points[-1].name == "Agent 7"


def test_scalar_payload_is_normalized_for_array_charts(renderer):
    model = renderer.render(chart("column"), {"value": 12, "count": 3})
    assert [(p.name, p.value) for p in model.points] == [("Total", 12.0)]


def test_target_line_only_where_supported(renderer):
    target = ChartTarget(value=70)
    assert renderer.render(chart("column", target=target), GROUPED).target_line == 70
    assert renderer.render(chart("bar", target=target), GROUPED).target_line is None
    hidden = ChartTarget(value=70, show_line=False)
    assert renderer.render(chart("line", target=hidden), GROUPED).target_line is None


def test_stacked_and_relative_flags(renderer):
    model = renderer.render(chart("column", options={"stacked": True, "relative": True}), GROUPED)
    assert model.stacked and model.relative
    model = renderer.render(chart("column", options={"relative": True}), GROUPED)
    assert not model.relative
    model = renderer.render(chart("line", options={"stacked": True}), GROUPED)
    assert not model.stacked


def test_line_smoothing_defaults_on(renderer):
    model = renderer.render(chart("line", options={}), GROUPED)
    assert model.smooth and model.show_points
    model = renderer.render(chart("column", options={}), GROUPED)
    assert not model.smooth


def test_area_honours_show_points(renderer):
    assert renderer.render(chart("area", options={}), GROUPED).show_points
    assert not renderer.render(chart("area", options={"showPoints": False}), GROUPED).show_points


def test_max_value_includes_target(renderer):
    model = renderer.render(chart("column", target=ChartTarget(value=120)), GROUPED)
    assert model.max_value == 120


def test_donut_percentages(renderer):
    model = renderer.render(chart("donut", options={"showCenterText": True}), [
        {"name": "A", "value": 3}, {"name": "B", "value": 1}])
    assert isinstance(model, DonutChart)
    assert [s.percent for s in model.slices] == [75.0, 25.0]
    assert model.total_text == "4"
    assert model.show_center_text


def test_combo_keeps_counts(renderer):
    model = renderer.render(chart("combo"), GROUPED)
    assert isinstance(model, ComboChart)
    assert [p.count for p in model.points] == [4.0, 2.0]


# --- TABLE ---

def test_table_columns_from_first_row():
    cols = table_columns(Chart(), [{"_id": "x", "agentName": "A", "value": 1}])
    assert [(c.field, c.label) for c in cols] == [("agentName", "Agent Name"), ("value", "Value")]


def test_table_columns_from_options():
    c = Chart(options={"columns": [{"field": "value", "label": "Score"}, "count"]})
    cols = table_columns(c, [{"name": "A"}])
    assert [(col.field, col.label) for col in cols] == [("value", "Score"), ("count", "Count")]


def test_table_with_summary_and_pages(renderer):
    data = [{"name": f"Row {i}", "value": i} for i in range(12)]
    model = renderer.render(chart("table", options={"showSummaryRow": True, "pageSize": 5}), data)
    assert isinstance(model, TableView)
    assert model.page_count == 3
    assert model.page(2) == [["Row 10", "10"], ["Row 11", "11"]]
    assert model.page(9) == model.page(2)
    assert model.summary == ["Total", "66"]


def test_table_missing_cells(renderer):
    model = renderer.render(chart("table"), [{"name": "A", "value": None}])
    assert model.rows == [["A", "-"]]
    assert model.summary is None


# --- HEATMAP ---

def test_heatmap_grid(renderer):
    data = [{"day": 1, "hour": 0, "value": 4}, {"day": 7, "hour": 23, "value": 8}, {"day": 9, "hour": 1, "value": 2}]
    model = renderer.render(chart("heatmap"), data)
    assert isinstance(model, HeatmapGrid)
    assert model.cells[0][0] == 4
    assert model.cells[6][23] == 8
    assert model.max_value == 8
    assert model.intensity(6, 23) == 1.0
    assert model.intensity(3, 3) == pytest.approx(0.1)
