from core.catalog import CatalogAdapter, field_type_of
from core.models.filters import FieldType


def test_empty_catalog_is_usable():
    adapter = CatalogAdapter()
    assert adapter.datasets() == []
    assert adapter.metrics_for_dataset("tickets") == []
    assert adapter.aggregations_for_metric("tickets", "x") == []
    assert adapter.date_range_label("last7days") == "All Time"


def test_metrics_for_dataset(catalog):
    assert [m.value for m in catalog.metrics_for_dataset("tickets")] == [
        "qualityScore", "ticketCount", "resolutionTime"]
    assert catalog.metrics_for_dataset("unknown") == []
    assert catalog.metric_label("tickets", "qualityScore") == "Quality Score"
    assert catalog.metric_label("tickets", "nope") == "nope"


def test_aggregations_follow_metric(catalog):
    assert [a.value for a in catalog.aggregations_for_metric("tickets", "qualityScore")] == ["avg", "min", "max"]
    # 'all' opens the full catalog list
    assert len(catalog.aggregations_for_metric("tickets", "ticketCount")) == 5
    # Undeclared aggregations fall back to avg/sum/count
    assert [a.value for a in catalog.aggregations_for_metric("tickets", "resolutionTime")] == ["avg", "sum", "count"]


def test_segment_options_exclude_none_and_primary(catalog):
    values = [o.value for o in catalog.segment_by_options("agent")]
    assert values == ["category", "day"]


def test_operators_for_field(catalog):
    ops = catalog.operators_for_field("status")
    assert [o.value for o in ops] == ["equals", "not_equals", "in", "not_in"]
    # Catalog label wins over the built-in one
    assert ops[2].label == "Is one of"
    assert [o.value for o in catalog.operators_for_field("isArchived")] == ["equals"]
    assert "between" in [o.value for o in catalog.operators_for_field("qualityScorePercent")]


def test_field_types():
    assert field_type_of("qualityScorePercent") == FieldType.NUMBER
    assert field_type_of("isArchived") == FieldType.BOOLEAN
    assert field_type_of("") == FieldType.TEXT
    assert field_type_of("somethingElse") == FieldType.TEXT


def test_field_options_and_labels(catalog):
    assert [o.value for o in catalog.field_options("status")] == ["open", "closed"]
    assert catalog.field_options("notes") == []
    assert catalog.agent_label("a2") == "Bob"
    assert catalog.qa_agent_label("q1") == "Quinn"
    assert catalog.agent_label("zz") is None
    assert catalog.date_range_label("last7days") == "Last 7 days"
    assert catalog.view_by_label("agent") == "Agent"
    assert catalog.aggregation_label("avg") == "Average"


def test_comparison_types(catalog):
    values = [o.value for o in catalog.comparison_types()]
    assert values[0] == "previousPeriod"
    assert len(values) == 4
