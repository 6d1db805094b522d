import pytest
from pydantic import ValidationError

from core.models.filters import FilterExpression
from core.models.reporting import Chart, ChartType, Report, Visibility


def test_report_from_wire():
    report = Report.model_validate({
        "_id": "r1",
        "title": "Quality",
        "visibility": "shared",
        "dateRange": {"type": "custom", "start": "2025-01-01", "end": "2025-01-31"},
        "autoRefresh": {"enabled": True, "interval": 60000},
        "filters": {"logic": "AND", "conditions": [{"field": "status", "operator": "equals", "value": "open"}]},
        "charts": [{"_id": "c1", "title": "A", "chartType": "kpi"}],
        "canEdit": True,
        "unknownKey": 1,
    })
    assert report.visibility == Visibility.SHARED
    assert report.date_range.type == "custom"
    assert report.date_range.model_dump()["start"] == "2025-01-01"
    assert report.auto_refresh.interval == 60000
    assert report.filters.conditions[0].field == "status"
    assert report.find_chart("c1").type_enum == ChartType.KPI
    assert report.can_edit


def test_report_defaults():
    report = Report.model_validate({"_id": "r1", "dateRange": None, "autoRefresh": None, "charts": None})
    assert not report.can_edit
    assert report.date_range.type == "last30days"
    assert not report.auto_refresh.enabled
    assert report.charts == []
    assert report.date_field == "dateEntered"


def test_duplicate_chart_ids_rejected():
    with pytest.raises(ValidationError):
        Report.model_validate({"_id": "r1", "charts": [{"_id": "x"}, {"_id": "x"}]})


def test_chart_count_prefers_loaded_charts():
    assert Report(charts_count=4).chart_count == 4
    assert Report(charts=[Chart(id="a")], charts_count=4).chart_count == 1


def test_settings_payload():
    report = Report(id="r1", title="Quality", charts=[Chart(id="a")])
    payload = report.settings_payload()
    assert payload == {
        "title": "Quality",
        "description": "",
        "visibility": "private",
        "dateRange": {"type": "last30days"},
        "dateField": "dateEntered",
        "filters": None,
        "autoRefresh": {"enabled": False, "interval": 300000},
    }


def test_unknown_chart_type_survives_round_trip():
    chart = Chart.model_validate({"_id": "c1", "chartType": "sankey"})
    assert chart.type_enum is None
    assert chart.to_payload()["chartType"] == "sankey"


def test_chart_empty_values_normalized():
    chart = Chart.model_validate({"segmentBy": "", "topN": "", "viewBy": None, "options": None,
                                  "comparison": None, "layout": None})
    assert chart.segment_by is None
    assert chart.top_n is None
    assert chart.view_by == "none"
    assert chart.options == {}
    assert not chart.comparison.enabled
    assert chart.layout.w == 6


def test_chart_payload_uses_wire_names():
    chart = Chart(id="c1", title="T", chart_type=ChartType.GAUGE, view_by="agent",
                  filters=FilterExpression.from_payload({"conditions": [{"field": "notes", "value": "x"}]}))
    payload = chart.to_payload()
    assert "_id" not in payload
    assert payload["chartType"] == "gauge"
    assert payload["viewBy"] == "agent"
    assert payload["layout"] == {"x": 0, "y": 0, "w": 6, "h": 4}
    assert payload["filters"]["conditions"] == [
        {"field": "notes", "operator": "equals", "value": "x", "logic": "AND"}]


def test_filter_payload_none_is_empty():
    assert FilterExpression.from_payload(None).is_empty()
