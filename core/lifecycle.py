"""
------------------------------------------------------------------------------
Project:        ChartDeck
File:           core/lifecycle.py
Version:        1.0.0
Description:    Report/Chart Lifecycle Controller. Owns the application state
                (active view, selected report, report list, loaded report,
                per-chart data) and orchestrates every call to the reporting
                service. Local state is merged only when a call succeeds;
                late responses for a report or chart that is no longer
                current are dropped.
------------------------------------------------------------------------------
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from core.api_client import ApiError, ReportApiClient
from core.catalog import CatalogAdapter
from core.chart_config import ChartConfigEditor, validate_chart
from core.logger import get_logger
from core.models.reporting import Chart, ChartLayoutEntry, DateRangeSpec, Report
from core.refresh import RefreshGate
from core.results import Result, ValidationResult

logger = get_logger("lifecycle")

CONFIRM_DELETE_REPORT = "Are you sure you want to delete this report? This action cannot be undone."
CONFIRM_DELETE_CHART = "Delete this chart?"

Task = Callable[[], Result]
Runner = Callable[[Task, Callable[[Result], None]], None]
Notifier = Callable[[str, str], None]
Confirmer = Callable[[str], bool]
Listener = Callable[[str], None]


class View(str, Enum):
    LIST = "list"
    REPORT = "report"
    EDIT = "edit"


@dataclass
class ChartDataState:
    data: Any = None
    error: Optional[str] = None
    loading: bool = False


@dataclass
class AppState:
    view: View = View.LIST
    selected_report_id: Optional[str] = None
    reports: List[Report] = field(default_factory=list)
    current_report: Optional[Report] = None
    catalog: CatalogAdapter = field(default_factory=CatalogAdapter)
    chart_data: Dict[str, ChartDataState] = field(default_factory=dict)
    open_menu_id: Optional[str] = None
    loading: bool = False


def run_inline(task: Task, done: Callable[[Result], None]) -> None:
    """Default runner: executes the task on the calling thread."""
    done(task())


def _notify_nothing(message: str, level: str) -> None:
    logger.debug(f"[{level}] {message}")


def _confirm_never(message: str) -> bool:
    return False


def pinned_first(reports: List[Report]) -> List[Report]:
    """Pinned reports first, then most recently updated."""
    by_update = sorted(reports, key=lambda r: r.updated_at or "", reverse=True)
    return sorted(by_update, key=lambda r: not r.is_pinned)


class ReportController:
    """
    Orchestrates report and chart lifecycle against a ReportApiClient.

    Args:
        client: The HTTP client.
        runner: Executes a task and delivers its Result; the GUI passes a
            thread-backed runner, tests use `run_inline`.
        notify: Transient user notification `(message, level)`.
        confirm: Asked before every destructive call; False aborts.
    """

    def __init__(self, client: ReportApiClient, runner: Runner = run_inline,
                 notify: Notifier = _notify_nothing, confirm: Confirmer = _confirm_never):
        self.client = client
        self.runner = runner
        self.notify = notify
        self.confirm = confirm
        self.state = AppState()
        self.refresh_gate = RefreshGate()
        self._listeners: List[Listener] = []

    # --- Plumbing ---

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def _emit(self, topic: str) -> None:
        for listener in list(self._listeners):
            listener(topic)

    def _run(self, label: str, call: Callable[[], Any], done: Callable[[Result], None]) -> None:
        def task() -> Result:
            try:
                return Result.ok(call())
            except ApiError as e:
                logger.error(f"{label} failed: {e.message}")
                return Result.fail(e.message)
        self.runner(task, done)

    def _fail(self, message: str, result: Result) -> None:
        self.notify(f"{message}: {result.error}", "error")

    @property
    def catalog(self) -> CatalogAdapter:
        return self.state.catalog

    @property
    def current_report(self) -> Optional[Report]:
        return self.state.current_report

    def _is_current(self, report_id: Optional[str]) -> bool:
        report = self.state.current_report
        return report is not None and report_id is not None and report.id == report_id

    def _replace_in_list(self, report: Report) -> None:
        self.state.reports = [report if r.id == report.id else r for r in self.state.reports]

    # --- Views ---

    def set_view(self, view: View) -> None:
        self.state.view = view
        self._emit("view")

    def start_edit_report(self) -> None:
        if self.state.current_report is not None:
            self.set_view(View.EDIT)

    def cancel_edit_report(self) -> None:
        self.set_view(View.REPORT if self.state.current_report is not None else View.LIST)

    def toggle_menu(self, chart_id: Optional[str]) -> None:
        self.state.open_menu_id = None if self.state.open_menu_id == chart_id else chart_id
        self._emit("menu")

    def close_report(self) -> None:
        self.state.selected_report_id = None
        self.state.current_report = None
        self.state.chart_data = {}
        self.state.open_menu_id = None
        self.set_view(View.LIST)
        self._emit("report")

    # --- Loading ---

    def load_metadata(self) -> None:
        def done(result: Result) -> None:
            if not result:
                self._fail("Failed to load metadata", result)
                return
            self.state.catalog = CatalogAdapter(result.value)
            self._emit("metadata")
        self._run("load_metadata", self.client.get_metadata, done)

    def load_reports(self) -> None:
        self.state.loading = True

        def done(result: Result) -> None:
            self.state.loading = False
            if not result:
                self._fail("Failed to load reports", result)
                self._emit("reports")
                return
            self.state.reports = list(result.value)
            self._emit("reports")
        self._run("load_reports", self.client.list_reports, done)

    def open_report(self, report_id: str, show: bool = False) -> None:
        """`show` switches to the report view even when the editor is active."""
        self.state.selected_report_id = report_id
        self.state.loading = True
        self._run("get_report", lambda: self.client.get_report(report_id),
                  lambda result: self.apply_report(report_id, result, show=show))

    def apply_report(self, report_id: str, result: Result, show: bool = False) -> None:
        """Stores a fetched report unless the selection moved on meanwhile."""
        if report_id != self.state.selected_report_id:
            logger.debug(f"Dropping stale report response for {report_id}")
            return
        self.state.loading = False
        if not result:
            self._fail("Failed to load report", result)
            self._emit("report")
            return
        report: Report = result.value
        previous = self.state.current_report
        self.state.current_report = report
        if previous is None or previous.id != report.id:
            self.state.chart_data = {}
            self.state.open_menu_id = None
        else:
            known = {c.id for c in report.charts}
            self.state.chart_data = {k: v for k, v in self.state.chart_data.items() if k in known}
        if show or self.state.view != View.EDIT:
            self.state.view = View.REPORT
        self._emit("view")
        self._emit("report")
        self.fetch_all_chart_data()

    # --- Report mutations ---

    def create_report(self, payload: Dict[str, Any]) -> ValidationResult:
        if not str(payload.get("title") or "").strip():
            return ValidationResult(errors={"title": "Please enter a report title"})

        def done(result: Result) -> None:
            if not result:
                self._fail("Failed to create report", result)
                return
            report: Report = result.value
            self.state.reports = [report, *self.state.reports]
            self.notify("Report created", "success")
            self._emit("reports")
            if report.id:
                self.open_report(report.id, show=True)
        self._run("create_report", lambda: self.client.create_report(payload), done)
        return ValidationResult()

    def update_report(self, report_id: str, payload: Dict[str, Any],
                      on_done: Optional[Callable[[Result], None]] = None) -> ValidationResult:
        if "title" in payload and not str(payload.get("title") or "").strip():
            return ValidationResult(errors={"title": "Please enter a report title"})

        def done(result: Result) -> None:
            if not result:
                self._fail("Failed to update report", result)
            else:
                report: Report = result.value
                if self._is_current(report_id):
                    # Updates may come back without resolved charts
                    if not report.charts and self.state.current_report.charts:
                        report = report.model_copy(update={
                            "charts": self.state.current_report.charts,
                            "can_edit": self.state.current_report.can_edit,
                        })
                    self.state.current_report = report
                    if self.state.view == View.EDIT:
                        self.state.view = View.REPORT
                        self._emit("view")
                    self._emit("report")
                self._replace_in_list(report)
                self.notify("Report updated", "success")
                self._emit("reports")
            if on_done:
                on_done(result)
        self._run("update_report", lambda: self.client.update_report(report_id, payload), done)
        return ValidationResult()

    def delete_report(self, report_id: str) -> bool:
        """Returns False when the confirmation was declined."""
        if not self.confirm(CONFIRM_DELETE_REPORT):
            return False

        def done(result: Result) -> None:
            if not result:
                self._fail("Failed to delete report", result)
                return
            self.state.reports = [r for r in self.state.reports if r.id != report_id]
            if self.state.selected_report_id == report_id:
                self.close_report()
            self.notify("Report deleted", "success")
            self._emit("reports")
        self._run("delete_report", lambda: self.client.delete_report(report_id), done)
        return True

    def duplicate_report(self, report_id: str) -> None:
        def done(result: Result) -> None:
            if not result:
                self._fail("Failed to duplicate report", result)
                return
            self.state.reports = [result.value, *self.state.reports]
            self.notify("Report duplicated", "success")
            self._emit("reports")
        self._run("duplicate_report", lambda: self.client.duplicate_report(report_id), done)

    def toggle_pin(self, report_id: str) -> None:
        report = next((r for r in self.state.reports if r.id == report_id), None)
        if report is None:
            return
        pinned = not report.is_pinned

        def done(result: Result) -> None:
            if not result:
                self._fail("Failed to update pin", result)
                return
            self.state.reports = pinned_first([
                r.model_copy(update={"is_pinned": pinned}) if r.id == report_id else r
                for r in self.state.reports
            ])
            if self._is_current(report_id):
                self.state.current_report = self.state.current_report.model_copy(update={"is_pinned": pinned})
            self.notify("Pinned" if pinned else "Unpinned", "success")
            self._emit("reports")
        self._run("toggle_pin", lambda: self.client.update_report(report_id, {"isPinned": pinned}), done)

    def change_date_range(self, date_range: DateRangeSpec) -> None:
        """Persists the report's default range, then re-fetches every chart."""
        report = self.state.current_report
        if report is None or report.id is None:
            return

        def refetch(result: Result) -> None:
            if result and self._is_current(report.id):
                self.fetch_all_chart_data()
        self.update_report(report.id, {"dateRange": date_range.model_dump(mode="json")}, on_done=refetch)

    # --- Chart mutations ---

    def add_chart(self, chart: Chart) -> ValidationResult:
        check = validate_chart(chart)
        report = self.state.current_report
        if not check.is_valid or report is None or report.id is None:
            return check
        report_id = report.id

        def done(result: Result) -> None:
            if not result:
                self._fail("Failed to add chart", result)
                return
            if not self._is_current(report_id):
                return
            current = self.state.current_report
            self.state.current_report = current.model_copy(update={"charts": [*current.charts, result.value]})
            self._replace_in_list(self.state.current_report)
            self.notify("Chart added", "success")
            self._emit("report")
            if result.value.id:
                self.refresh_chart(result.value.id)
        self._run("add_chart", lambda: self.client.add_chart(report_id, chart.to_payload()), done)
        return check

    def update_chart(self, chart_id: str, chart: Chart) -> ValidationResult:
        """Saves the chart, then re-fetches the whole report instead of merging."""
        check = validate_chart(chart)
        report = self.state.current_report
        if not check.is_valid or report is None or report.id is None:
            return check
        report_id = report.id

        def done(result: Result) -> None:
            if not result:
                self._fail("Failed to update chart", result)
                return
            self.notify("Chart updated", "success")
            if self._is_current(report_id):
                self.open_report(report_id)
        self._run("update_chart", lambda: self.client.update_chart(report_id, chart_id, chart.to_payload()), done)
        return check

    def save_chart(self, editor: ChartConfigEditor) -> ValidationResult:
        """Create or update depending on whether the edited chart has an identity."""
        chart = editor.chart
        if chart.id:
            return self.update_chart(chart.id, chart)
        return self.add_chart(chart)

    def delete_chart(self, chart_id: str) -> bool:
        report = self.state.current_report
        if report is None or report.id is None:
            return False
        if not self.confirm(CONFIRM_DELETE_CHART):
            return False
        report_id = report.id

        def done(result: Result) -> None:
            if not result:
                self._fail("Failed to delete chart", result)
                return
            if not self._is_current(report_id):
                return
            current = self.state.current_report
            self.state.current_report = current.model_copy(
                update={"charts": [c for c in current.charts if c.id != chart_id]})
            self.state.chart_data.pop(chart_id, None)
            if self.state.open_menu_id == chart_id:
                self.state.open_menu_id = None
            self.notify("Chart deleted", "success")
            self._emit("report")
        self._run("delete_chart", lambda: self.client.delete_chart(report_id, chart_id), done)
        return True

    def save_layouts(self, entries: List[ChartLayoutEntry]) -> bool:
        """Persists the full arrangement. Never called through for read-only reports."""
        report = self.state.current_report
        if report is None or report.id is None or not report.can_edit:
            return False
        report_id = report.id

        def done(result: Result) -> None:
            if not result:
                self._fail("Failed to save layout", result)
                return
            if not self._is_current(report_id):
                return
            by_id = {e.chart_id: e.layout for e in entries}
            current = self.state.current_report
            charts = [c.model_copy(update={"layout": by_id[c.id]}) if c.id in by_id else c
                      for c in current.charts]
            self.state.current_report = current.model_copy(update={"charts": charts})
        self._run("save_layouts", lambda: self.client.save_layouts(report_id, entries), done)
        return True

    # --- Chart data ---

    def fetch_all_chart_data(self, on_done: Optional[Callable[[], None]] = None) -> None:
        report = self.state.current_report
        if report is None or report.id is None:
            if on_done:
                on_done()
            return
        report_id = report.id
        for chart in report.charts:
            entry = self.state.chart_data.setdefault(chart.id, ChartDataState())
            entry.loading = True
        self._emit("chart_data")

        def done(result: Result) -> None:
            try:
                self.apply_chart_data(report_id, result)
            finally:
                if on_done:
                    on_done()
        self._run("get_report_data", lambda: self.client.get_report_data(report_id), done)

    def apply_chart_data(self, report_id: str, result: Result) -> None:
        """Merges a batched data response, keyed by the report it was requested for."""
        if not self._is_current(report_id):
            logger.debug(f"Dropping stale chart data for report {report_id}")
            return
        if not result:
            for entry in self.state.chart_data.values():
                entry.loading = False
            self._fail("Failed to load chart data", result)
            self._emit("chart_data")
            return
        payload: Dict[str, Any] = result.value
        for chart in self.state.current_report.charts:
            if chart.id not in payload:
                self.state.chart_data.setdefault(chart.id, ChartDataState()).loading = False
                continue
            entry = payload[chart.id]
            if isinstance(entry, dict) and ("data" in entry or "error" in entry):
                self.state.chart_data[chart.id] = ChartDataState(data=entry.get("data"), error=entry.get("error"))
            else:
                self.state.chart_data[chart.id] = ChartDataState(data=entry)
        self._emit("chart_data")

    def refresh_all(self, on_done: Optional[Callable[[], None]] = None) -> bool:
        """Manual/auto refresh. Returns False when one is already in flight."""
        if not self.refresh_gate.try_acquire():
            return False

        def finished() -> None:
            self.refresh_gate.release()
            if on_done:
                on_done()
        self.fetch_all_chart_data(on_done=finished)
        return True

    def refresh_chart(self, chart_id: str) -> None:
        report = self.state.current_report
        if report is None or report.find_chart(chart_id) is None:
            return
        report_id = report.id
        self.state.chart_data.setdefault(chart_id, ChartDataState()).loading = True
        self._emit("chart_data")

        def done(result: Result) -> None:
            if not self._is_current(report_id) or self.state.current_report.find_chart(chart_id) is None:
                logger.debug(f"Dropping stale data for chart {chart_id}")
                return
            if result:
                self.state.chart_data[chart_id] = ChartDataState(data=result.value)
            else:
                self.state.chart_data[chart_id] = ChartDataState(data=None, error=result.error)
                self._fail("Failed to refresh chart", result)
            self._emit("chart_data")
        self._run("get_chart_data", lambda: self.client.get_chart_data(chart_id), done)

    def chart_state(self, chart_id: str) -> ChartDataState:
        return self.state.chart_data.get(chart_id) or ChartDataState()

    def preview_chart(self, editor: ChartConfigEditor, on_result: Callable[[Result], None]) -> bool:
        """Live preview of an unsaved chart. False when no metric is chosen yet."""
        if not editor.can_preview:
            self.notify("Please select a metric", "error")
            return False
        report = self.state.current_report
        payload = editor.preview_payload(
            report.filters if report else None,
            report.date_range if report else None,
        )

        def done(result: Result) -> None:
            if not result:
                self._fail("Failed to preview", result)
            on_result(result)
        self._run("preview_chart", lambda: self.client.preview_chart(payload), done)
        return True
