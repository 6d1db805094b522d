from datetime import datetime, timezone

from core.utils.formatting import (
    format_cell, format_change, format_duration, format_grouped, format_relative_time,
    format_value, humanize_key, parse_timestamp, percent_change,
)

# --- VALUES ---

def test_number_format_groups_and_trims():
    """Verifies grouping with at most `decimals` fraction digits."""
    assert format_value(1234.56) == "1,234.6"
    assert format_value(1234.56, "number", 2) == "1,234.56"
    assert format_value(3.0) == "3"
    assert format_value(0) == "0"

def test_percentage_format_keeps_fixed_decimals():
    assert format_value(85.25, "percentage", 1) == "85.3%"
    assert format_value(85, "percentage", 2) == "85.00%"

def test_currency_format():
    assert format_value(1234.5, "currency") == "$1,234.5"

def test_duration_format():
    """Duration values are milliseconds."""
    assert format_value(125 * 60000, "duration") == "2h 5m"
    assert format_value(45 * 60000, "duration") == "45m"
    assert format_duration(0) == "0m"

def test_missing_and_non_numeric_values():
    assert format_value(None) == "N/A"
    assert format_value("n/a yet") == "n/a yet"

def test_rounding_is_half_up():
    assert format_grouped(2.5, 0) == "3"
    assert format_grouped(0.125, 2) == "0.13"

# --- TREND ---

def test_percent_change():
    assert percent_change(110, 100) == 10.0
    assert percent_change(90, 100) == -10.0
    assert percent_change(5, 0) is None
    assert percent_change(5, None) is None

def test_format_change_signs():
    assert format_change(12.46) == "+12.5%"
    assert format_change(-3.0) == "-3.0%"
    assert format_change(0.01) == ""
    assert format_change(None) == ""

# --- TABLE CELLS ---

def test_humanize_key():
    assert humanize_key("qualityScore") == "Quality Score"
    assert humanize_key("name") == "Name"

def test_format_cell():
    assert format_cell(None) == "-"
    assert format_cell(True) == "true"
    assert format_cell(4.0) == "4"
    assert format_cell(["a", "b"]) == '["a", "b"]'
    assert format_cell("text") == "text"

# --- TIMESTAMPS ---

def test_parse_timestamp_handles_zulu():
    dt = parse_timestamp("2025-06-13T10:00:00Z")
    assert dt == datetime(2025, 6, 13, 10, 0, tzinfo=timezone.utc)
    assert parse_timestamp("not a date") is None
    assert parse_timestamp(None) is None

def test_relative_time():
    now = datetime(2025, 6, 13, 12, 0, tzinfo=timezone.utc)
    assert format_relative_time("2025-06-13T11:59:30Z", now) == "just now"
    assert format_relative_time("2025-06-13T11:55:00Z", now) == "5m ago"
    assert format_relative_time("2025-06-13T09:00:00Z", now) == "3h ago"
    assert format_relative_time("2025-06-11T12:00:00Z", now) == "2d ago"
    assert format_relative_time("2025-01-01T00:00:00Z", now) == "2025-01-01"
    assert format_relative_time(None, now) == "---"
