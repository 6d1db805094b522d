import os

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from unittest.mock import MagicMock
from PyQt6.QtCore import QLocale

from core.api_client import ReportApiClient
from core.catalog import CatalogAdapter
from core.lifecycle import ReportController, run_inline
from core.models.reporting import Chart, Report

CATALOG_PAYLOAD = {
    "datasets": ["tickets"],
    "metrics": {
        "tickets": [
            {"value": "qualityScore", "label": "Quality Score", "type": "number",
             "aggregations": ["avg", "min", "max"]},
            {"value": "ticketCount", "label": "Ticket Count", "aggregations": ["all"]},
            {"value": "resolutionTime", "label": "Resolution Time"},
        ]
    },
    "aggregations": [
        {"value": "avg", "label": "Average"},
        {"value": "sum", "label": "Sum"},
        {"value": "count", "label": "Count"},
        {"value": "min", "label": "Minimum"},
        {"value": "max", "label": "Maximum"},
    ],
    "chartTypes": [{"value": t, "label": t.title()} for t in
                   ("kpi", "bar", "column", "line", "area", "donut", "combo", "table", "heatmap", "gauge")],
    "viewByOptions": [
        {"value": "none", "label": "None"},
        {"value": "agent", "label": "Agent"},
        {"value": "category", "label": "Category"},
        {"value": "day", "label": "Day"},
    ],
    "dateRangeOptions": [
        {"value": "last7days", "label": "Last 7 days"},
        {"value": "last30days", "label": "Last 30 days"},
        {"value": "thisYear", "label": "This year"},
    ],
    "filterOperators": [{"value": "in", "label": "Is one of"}],
    "statuses": ["open", "closed"],
    "priorities": [{"value": "high", "label": "High"}, {"value": "low", "label": "Low"}],
    "qualityGrades": ["A", "B", "C"],
    "categories": ["Billing", "Shipping"],
    "agents": [{"value": "a1", "label": "Alice"}, {"value": "a2", "label": "Bob"}],
    "qaAgents": [{"value": "q1", "label": "Quinn"}],
}


@pytest.fixture(autouse=True)
def force_english_locale(request):
    """Ensures most tests run in English locale to avoid label mismatches."""
    # Skip if test is explicitly marked as 'localized' (e.g. checking translated labels)
    if "localized" in request.keywords:
        yield
        return

    original_locale = QLocale.system()
    QLocale.setDefault(QLocale(QLocale.Language.English, QLocale.Country.UnitedStates))
    yield
    QLocale.setDefault(original_locale)


@pytest.fixture
def catalog_payload():
    return dict(CATALOG_PAYLOAD)


@pytest.fixture
def catalog():
    return CatalogAdapter.from_payload(CATALOG_PAYLOAD)


@pytest.fixture
def make_chart():
    def _make(chart_id="c1", **overrides):
        data = {"_id": chart_id, "title": f"Chart {chart_id}", "chartType": "column",
                "dataset": "tickets", "metric": "qualityScore", "aggregation": "avg",
                "viewBy": "agent", "layout": {"x": 0, "y": 0, "w": 6, "h": 4}}
        data.update(overrides)
        return Chart.model_validate(data)
    return _make


@pytest.fixture
def make_report(make_chart):
    def _make(report_id="r1", charts=None, **overrides):
        if charts is None:
            charts = [make_chart("c1"), make_chart("c2", layout={"x": 6, "y": 0, "w": 6, "h": 4})]
        data = {"_id": report_id, "title": f"Report {report_id}", "canEdit": True}
        data.update(overrides)
        report = Report.model_validate(data)
        return report.model_copy(update={"charts": charts})
    return _make


@pytest.fixture
def mock_client(catalog):
    client = MagicMock(spec=ReportApiClient)
    client.get_metadata.return_value = catalog.metadata
    client.list_reports.return_value = []
    client.get_report_data.return_value = {}
    return client


@pytest.fixture
def controller(mock_client):
    """Controller running every call inline, with a confirm that always agrees."""
    ctrl = ReportController(mock_client, runner=run_inline,
                            notify=MagicMock(), confirm=MagicMock(return_value=True))
    return ctrl


def pytest_configure(config):
    config.addinivalue_line("markers", "localized: mark test to run with real language settings")
    config.addinivalue_line("markers", "level2: intensive tests, need --level2 to run")


def pytest_addoption(parser):
    parser.addoption(
        "--level2", action="store_true", default=False, help="run level 2 intensive integration tests"
    )


def pytest_collection_modifyitems(config, items):
    if config.getoption("--level2"):
        # --level2 given in cli: do not skip
        return
    skip_level2 = pytest.mark.skip(reason="need --level2 option to run")
    for item in items:
        if "level2" in item.keywords:
            item.add_marker(skip_level2)
