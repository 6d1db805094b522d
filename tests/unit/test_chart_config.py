import pytest

from core.chart_config import (
    ChartConfigEditor, applicable_options, option_enabled, option_warnings, validate_chart, visible_controls,
)
from core.models.filters import FilterCondition, FilterExpression
from core.models.reporting import Chart, ChartType, DateRangeSpec


def test_new_chart_defaults():
    editor = ChartConfigEditor()
    chart = editor.chart
    assert editor.is_new
    assert chart.chart_type == "column"
    assert chart.dataset == "tickets"
    assert chart.aggregation == "avg"
    assert chart.view_by == "none"
    assert chart.options["showLegend"] is True
    assert chart.options["decimals"] == 1


def test_existing_chart_merges_default_options(make_chart):
    chart = make_chart("c1", options={"stacked": True})
    editor = ChartConfigEditor(chart)
    assert not editor.is_new
    assert editor.chart.options["stacked"] is True
    assert editor.chart.options["showLegend"] is True
    # Original is untouched
    assert "showLegend" not in chart.options


def test_update_config_accepts_wire_and_attribute_names():
    editor = ChartConfigEditor()
    editor.update_config({"viewBy": "agent", "top_n": 10, "title": "Scores"})
    assert editor.chart.view_by == "agent"
    assert editor.chart.top_n == 10
    assert editor.chart.title == "Scores"


def test_update_config_rejects_unknown_and_id():
    editor = ChartConfigEditor()
    with pytest.raises(KeyError):
        editor.update_config({"flavour": "mint"})
    with pytest.raises(KeyError):
        editor.update_config({"_id": "abc"})


def test_options_merge_instead_of_replace():
    editor = ChartConfigEditor()
    editor.update_options({"stacked": True})
    editor.update_options({"relative": True})
    assert editor.chart.options["stacked"] is True
    assert editor.chart.options["relative"] is True
    assert editor.chart.options["showLegend"] is True


def test_dataset_change_clears_metric_unless_supplied():
    editor = ChartConfigEditor()
    editor.update_config({"metric": "qualityScore"})
    editor.update_config({"dataset": "calls"})
    assert editor.chart.metric == ""

    editor.update_config({"dataset": "tickets", "metric": "ticketCount"})
    assert editor.chart.metric == "ticketCount"

    editor.update_config({"dataset": "tickets"})
    assert editor.chart.metric == "ticketCount"


def test_type_switch_keeps_hidden_values():
    editor = ChartConfigEditor()
    editor.update_config({"metric": "qualityScore", "viewBy": "agent", "segmentBy": "category", "topN": 5})
    editor.set_chart_type("kpi")
    controls = editor.visible_controls()
    assert not controls.dimensions
    assert not controls.segment_by
    assert editor.chart.view_by == "agent"
    assert editor.chart.segment_by == "category"
    assert editor.chart.top_n == 5

    editor.set_chart_type(ChartType.BAR.value)
    controls = editor.visible_controls()
    assert controls.dimensions and controls.segment_by and controls.sort_and_limit


def test_visible_controls_for_ungrouped_column():
    controls = visible_controls(Chart(chart_type="column", view_by="none"))
    assert controls.dimensions
    assert not controls.segment_by
    assert not controls.sort_and_limit
    assert controls.target_line
    assert not controls.trend


def test_trend_only_for_kpi():
    assert visible_controls(Chart(chart_type="kpi")).trend
    assert not visible_controls(Chart(chart_type="gauge")).trend
    assert not visible_controls(Chart(chart_type="donut")).target_line


def test_relative_only_when_stacked():
    assert "relative" not in applicable_options("bar", {})
    assert "relative" in applicable_options("bar", {"stacked": True})
    assert "stacked" in applicable_options("area")
    assert "relative" not in applicable_options("area", {"stacked": True})
    assert applicable_options("sunburst") == ()


def test_option_enabled_defaults():
    chart = Chart(options={})
    assert option_enabled(chart, "showLegend")
    assert option_enabled(chart, "showTrend")
    assert not option_enabled(chart, "showDataLabels")
    chart = Chart(options={"showLegend": False})
    assert not option_enabled(chart, "showLegend")


def test_option_warnings_for_inapplicable_toggles():
    chart = Chart(chart_type="line", options={"stacked": True, "showCenterText": False})
    warnings = option_warnings(chart)
    assert warnings == ["Option 'stacked' has no effect on line charts"]

    chart = Chart(chart_type="bar", options={"relative": True})
    assert "Option 'relative' only applies to stacked charts" in option_warnings(chart)


def test_validate_requires_title_and_metric():
    check = validate_chart(Chart(title="  "))
    assert set(check.errors) == {"title", "metric"}
    assert validate_chart(Chart(title="Ok", metric="qualityScore")).is_valid


def test_validate_includes_filter_problems():
    chart = Chart(title="Ok", metric="qualityScore",
                  filters=FilterExpression(conditions=[FilterCondition(id="x", field="")]))
    check = validate_chart(chart)
    assert "filters.x.field" in check.errors


def test_empty_filters_are_dropped():
    editor = ChartConfigEditor()
    editor.set_filters(FilterExpression())
    assert editor.chart.filters is None


def test_target_and_comparison_toggles():
    editor = ChartConfigEditor()
    editor.set_target_enabled(True)
    assert editor.chart.target.value == 85
    assert editor.chart.target.show_line
    editor.set_target_enabled(False)
    assert editor.chart.target is None

    editor.set_comparison_enabled(True)
    assert editor.chart.comparison.enabled
    assert editor.chart.comparison.type == "previousPeriod"
    editor.set_comparison_enabled(False)
    assert not editor.chart.comparison.enabled


def test_override_date_range_seeds_from_report():
    editor = ChartConfigEditor()
    report_range = DateRangeSpec(type="last7days")
    assert editor.effective_date_range(report_range) is report_range

    editor.set_override_date_range(True, report_range)
    assert editor.chart.date_range.type == "last7days"
    editor.update_config({"dateRange": DateRangeSpec(type="thisYear")})
    assert editor.effective_date_range(report_range).type == "thisYear"


def test_preview_payload_carries_report_context():
    editor = ChartConfigEditor()
    assert not editor.can_preview
    editor.update_config({"metric": "qualityScore", "title": "Preview"})
    assert editor.can_preview
    report_filters = FilterExpression(conditions=[FilterCondition(field="status", value="open")])
    payload = editor.preview_payload(report_filters, DateRangeSpec(type="last7days"))
    assert payload["metric"] == "qualityScore"
    assert payload["chartType"] == "column"
    assert payload["reportFilters"]["conditions"][0]["field"] == "status"
    assert payload["dateRange"] == {"type": "last7days"}
    assert "_id" not in payload
