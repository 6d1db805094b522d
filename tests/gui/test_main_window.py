import pytest
from unittest.mock import MagicMock, patch
from PyQt6.QtCore import Qt
from PyQt6.QtWidgets import QLabel

from core.lifecycle import View
from gui.main_window import MainWindow

REPORT_FILTERS = {"logic": "AND", "conditions": [
    {"field": "status", "operator": "equals", "value": "open"},
    {"field": "agent", "operator": "equals", "value": "a1"},
]}


@pytest.fixture
def window(qtbot, controller):
    controller.load_metadata()
    w = MainWindow(controller)
    qtbot.addWidget(w)
    return w


@pytest.fixture
def open_report(controller, mock_client, make_report):
    def _open(**overrides):
        mock_client.get_report.return_value = make_report(**overrides)
        controller.open_report("r1")
        return controller.current_report
    return _open


def pill_texts(header):
    texts = []
    for i in range(header.pills_row.count()):
        widget = header.pills_row.itemAt(i).widget()
        if isinstance(widget, QLabel):
            texts.append(widget.text())
    return texts


def test_main_window_title(window):
    assert window.windowTitle() == "ChartDeck"


def test_new_report_action_exists(window):
    file_menu = None
    for action in window.menuBar().actions():
        if "File" in action.text().replace("&", ""):
            file_menu = action.menu()
            break
    assert file_menu is not None
    texts = [a.text().replace("&", "") for a in file_menu.actions()]
    assert "New Report" in texts


def test_starts_on_report_list(window):
    assert window.central_stack.currentWidget() is window.reports_list


def test_open_report_switches_view(window, open_report):
    open_report(filters=REPORT_FILTERS, description="Weekly QA")
    assert window.central_stack.currentWidget() is window.report_page
    assert window.header.lbl_title.text() == "Report r1"
    assert window.header.lbl_description.text() == "Weekly QA"
    assert pill_texts(window.header) == ["Status = open", "CS Agent = Alice"]
    assert window.header.combo_date_range.currentData() == "last30days"


def test_read_only_report_hides_edit_actions(window, open_report):
    open_report(canEdit=False)
    assert window.header.btn_edit.isHidden()
    assert window.header.btn_add_chart.isHidden()
    assert not window.header.combo_date_range.isEnabled()


def test_back_returns_to_list(window, controller, open_report):
    open_report()
    window.header.btn_back.click()
    assert controller.current_report is None
    assert window.central_stack.currentWidget() is window.reports_list
    assert window.header.lbl_title.text() == ""


def test_auto_refresh_follows_report(window, controller, open_report):
    open_report(autoRefresh={"enabled": True, "interval": 60000})
    assert window.scheduler.is_running()
    assert window.scheduler._task.interval == 60000

    controller.close_report()
    assert not window.scheduler.is_running()


def test_auto_refresh_disabled_by_default(window, open_report):
    open_report()
    assert not window.scheduler.is_running()


def test_auto_refresh_tick_completes(window, mock_client, open_report):
    open_report()
    done = MagicMock()
    window._auto_refresh(done)
    done.assert_called_once()
    assert mock_client.get_report_data.call_count == 2


def test_create_report_opens_editor(window, controller):
    window.create_report()
    assert controller.state.view == View.EDIT
    assert window.central_stack.currentWidget() is window.editor
    assert window.editor.lbl_heading.text() == "New Report"


def test_edit_report_loads_editor(window, controller, open_report):
    open_report()
    window.header.btn_edit.click()
    assert window.central_stack.currentWidget() is window.editor
    assert window.editor.edit_name.text() == "Report r1"

    window.editor.btn_cancel.click()
    assert window.central_stack.currentWidget() is window.report_page


def test_date_range_change_is_persisted(window, mock_client, open_report, make_report):
    open_report()
    mock_client.update_report.return_value = make_report(dateRange={"type": "thisYear"})
    combo = window.header.combo_date_range
    combo.setCurrentIndex(combo.findData("thisYear"))
    mock_client.update_report.assert_called_once_with("r1", {"dateRange": {"type": "thisYear"}})
    assert combo.currentData() == "thisYear"


def test_notify_uses_status_bar(window, controller):
    controller.notify("Report created", "success")
    assert window.statusBar().currentMessage() == "Report created"


def test_auto_refresh_falls_back_to_configured_interval(qtbot, controller, open_report):
    controller.load_metadata()
    app_config = MagicMock()
    app_config.get_auto_refresh_interval.return_value = 120000
    app_config.get_export_dir.return_value = ""
    w = MainWindow(controller, app_config)
    qtbot.addWidget(w)
    open_report(autoRefresh={"enabled": True, "interval": 0})
    assert w.scheduler._task.interval == 120000


def test_error_notice_does_not_block(window, controller):
    with patch("gui.main_window.show_notification") as notice, \
            patch("PyQt6.QtWidgets.QMessageBox.exec") as modal:
        controller.notify("Failed to load reports: Timeout", "error")
    assert window.statusBar().currentMessage() == "Failed to load reports: Timeout"
    modal.assert_not_called()
    # the window was never shown, so the tray notice takes over
    notice.assert_called_once_with(window, "ChartDeck", "Failed to load reports: Timeout")


def test_header_shows_markup_as_text(window, open_report):
    open_report(title="<i>Q3</i> review", description="A <b>bold</b> claim")
    assert window.header.lbl_title.textFormat() == Qt.TextFormat.PlainText
    assert window.header.lbl_description.textFormat() == Qt.TextFormat.PlainText
    assert window.header.lbl_title.text() == "<i>Q3</i> review"
