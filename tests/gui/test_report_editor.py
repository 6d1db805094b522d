import pytest
from unittest.mock import MagicMock

from core.lifecycle import View
from core.models.filters import FilterCondition, FilterExpression
from core.models.reporting import Report, Visibility
from gui.report_editor import ReportEditorWidget


@pytest.fixture
def editor(qtbot, controller):
    controller.load_metadata()
    widget = ReportEditorWidget(controller)
    qtbot.addWidget(widget)
    return widget


@pytest.fixture
def existing():
    return Report(
        id="r1", title="Quality", description="Weekly", visibility=Visibility.SHARED,
        date_field="gradedDate", can_edit=True,
        auto_refresh={"enabled": True, "interval": 60000},
        filters=FilterExpression(conditions=[FilterCondition(field="status", value="open")]),
    )


def test_new_report_form(editor):
    editor.load(None)
    assert editor.lbl_heading.text() == "New Report"
    assert editor.edit_name.text() == ""
    assert editor.combo_date_range.currentData() == "last30days"
    assert not editor.spin_interval.isEnabled()
    assert editor.filter_builder.rows == {}


def test_load_existing_report(editor, existing):
    editor.load(existing)
    assert editor.lbl_heading.text() == "Edit Report"
    assert editor.edit_name.text() == "Quality"
    assert editor.combo_visibility.currentData() == Visibility.SHARED
    assert editor.combo_date_field.currentData() == "gradedDate"
    assert editor.chk_auto_refresh.isChecked()
    assert editor.spin_interval.value() == 60
    assert len(editor.filter_builder.rows) == 1


def test_unknown_date_range_is_kept(editor):
    editor.load(Report(id="r1", title="Q", date_range={"type": "lastQuarter"}))
    assert editor.combo_date_range.currentData() == "lastQuarter"
    assert editor.collect().date_range.type == "lastQuarter"


def test_collect_reads_form(editor, existing):
    editor.load(existing)
    editor.edit_name.setText("  Quality v2 ")
    editor.combo_date_range.setCurrentIndex(editor.combo_date_range.findData("thisYear"))
    editor.chk_auto_refresh.setChecked(False)
    report = editor.collect()
    assert report.id == "r1"
    assert report.title == "Quality v2"
    assert report.date_range.type == "thisYear"
    assert not report.auto_refresh.enabled
    assert report.filters.conditions[0].value == "open"


def test_save_requires_title(editor, mock_client):
    editor.load(None)
    assert not editor.save()
    assert editor.lbl_error.text() == "Please enter a report title"
    assert not editor.lbl_error.isHidden()
    mock_client.create_report.assert_not_called()


def test_save_blocks_incomplete_filters(editor, mock_client):
    editor.load(None)
    editor.edit_name.setText("Backlog")
    editor.filter_builder.add_condition()
    assert not editor.save()
    assert "incomplete filter" in editor.lbl_error.text()
    mock_client.create_report.assert_not_called()


def test_save_creates_report(editor, controller, mock_client, make_report):
    mock_client.create_report.return_value = make_report("r9")
    mock_client.get_report.return_value = make_report("r9")
    editor.load(None)
    editor.edit_name.setText("Backlog")
    assert editor.save()
    payload = mock_client.create_report.call_args[0][0]
    assert payload["title"] == "Backlog"
    assert payload["filters"] is None
    assert controller.current_report.id == "r9"


def test_save_updates_existing(editor, controller, mock_client, existing):
    mock_client.update_report.return_value = existing
    editor.load(existing)
    editor.edit_name.setText("Quality v2")
    assert editor.save()
    report_id, payload = mock_client.update_report.call_args[0]
    assert report_id == "r1"
    assert payload["title"] == "Quality v2"
    assert payload["autoRefresh"] == {"enabled": True, "interval": 60000}
    assert payload["filters"]["conditions"][0]["field"] == "status"


def test_cancel_returns_to_list(editor, controller, qtbot):
    controller.set_view(View.EDIT)
    with qtbot.waitSignal(editor.cancelled):
        editor.btn_cancel.click()
    assert controller.state.view == View.LIST


def test_new_report_uses_configured_refresh_interval(qtbot, controller):
    app_config = MagicMock()
    app_config.get_auto_refresh_interval.return_value = 120000
    widget = ReportEditorWidget(controller, app_config)
    qtbot.addWidget(widget)
    widget.load(None)
    assert widget.spin_interval.value() == 120
