"""
------------------------------------------------------------------------------
Project:        ChartDeck
File:           core/api_client.py
Version:        1.0.0
Description:    HTTP client for the reporting service (reports, charts,
                layouts, chart data, preview and metadata). Unwraps the
                `{"data": ...}` envelope and converts every failure into
                ApiError.
------------------------------------------------------------------------------
"""

import time
from typing import Any, Dict, Iterable, List, Optional

import requests
from pydantic import ValidationError

from core.logger import get_logger, log_http_exchange
from core.models.catalog import CatalogMetadata
from core.models.reporting import Chart, ChartLayoutEntry, Report

logger = get_logger("api")

DEFAULT_TIMEOUT = 30


class ApiError(Exception):
    """Any failed call to the reporting service."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status = status


class ReportApiClient:
    """
    Thin wrapper around a requests.Session.

    Args:
        base_url: Service root, e.g. 'http://localhost:5000'.
        token: Optional bearer token.
        timeout: Per-request timeout in seconds.
    """

    def __init__(self, base_url: str, token: str = "", timeout: int = DEFAULT_TIMEOUT,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Accept": "application/json"})
        if token:
            self.session.headers["Authorization"] = f"Bearer {token}"

    @property
    def reports_url(self) -> str:
        return f"{self.base_url}/api/reports"

    def _request(self, method: str, path: str, payload: Any = None) -> Any:
        url = f"{self.reports_url}{path}"
        started = time.monotonic()
        status = None
        try:
            resp = self.session.request(method, url, json=payload, timeout=self.timeout)
            status = resp.status_code
        except requests.RequestException as e:
            logger.error(f"{method} {url} failed: {e}")
            raise ApiError(f"Connection failed: {e}") from e
        finally:
            log_http_exchange(method, url, status, (time.monotonic() - started) * 1000)

        try:
            body = resp.json() if resp.content else {}
        except ValueError:
            body = None

        if not resp.ok:
            message = body.get("message") if isinstance(body, dict) else None
            message = message or f"HTTP {resp.status_code}"
            logger.error(f"{method} {url} -> {resp.status_code}: {message}")
            raise ApiError(message, status=resp.status_code)

        if body is None:
            raise ApiError("Invalid JSON in response", status=resp.status_code)
        if not isinstance(body, dict):
            raise ApiError("Unexpected response envelope", status=resp.status_code)
        return body.get("data")

    @staticmethod
    def _parse(model, data: Any, what: str):
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.error(f"Malformed {what}: {e}")
            raise ApiError(f"Malformed {what} in response") from e

    # --- Catalog ---

    def get_metadata(self) -> CatalogMetadata:
        return self._parse(CatalogMetadata, self._request("GET", "/metadata") or {}, "metadata")

    # --- Reports ---

    def list_reports(self) -> List[Report]:
        data = self._request("GET", "") or []
        if not isinstance(data, list):
            raise ApiError("Expected a list of reports")
        return [self._parse(Report, item, "report") for item in data]

    def get_report(self, report_id: str) -> Report:
        return self._parse(Report, self._request("GET", f"/{report_id}"), "report")

    def create_report(self, payload: Dict[str, Any]) -> Report:
        return self._parse(Report, self._request("POST", "", payload), "report")

    def update_report(self, report_id: str, payload: Dict[str, Any]) -> Report:
        return self._parse(Report, self._request("PUT", f"/{report_id}", payload), "report")

    def delete_report(self, report_id: str) -> None:
        self._request("DELETE", f"/{report_id}")

    def duplicate_report(self, report_id: str) -> Report:
        return self._parse(Report, self._request("POST", f"/{report_id}/duplicate"), "report")

    # --- Charts ---

    def add_chart(self, report_id: str, payload: Dict[str, Any]) -> Chart:
        return self._parse(Chart, self._request("POST", f"/{report_id}/charts", payload), "chart")

    def update_chart(self, report_id: str, chart_id: str, payload: Dict[str, Any]) -> Any:
        return self._request("PUT", f"/{report_id}/charts/{chart_id}", payload)

    def delete_chart(self, report_id: str, chart_id: str) -> None:
        self._request("DELETE", f"/{report_id}/charts/{chart_id}")

    def save_layouts(self, report_id: str, entries: Iterable[ChartLayoutEntry]) -> Any:
        payload = {"layouts": [e.to_payload() for e in entries]}
        return self._request("PUT", f"/{report_id}/charts/layouts", payload)

    # --- Data ---

    def get_report_data(self, report_id: str) -> Dict[str, Any]:
        """Batched `{chartId: {data, error?}}` for every chart of a report."""
        data = self._request("GET", f"/{report_id}/data") or {}
        if not isinstance(data, dict):
            raise ApiError("Expected chart data keyed by chart id")
        return data

    def get_chart_data(self, chart_id: str) -> Any:
        data = self._request("GET", f"/charts/{chart_id}/data")
        if isinstance(data, dict) and "chartData" in data:
            return data["chartData"]
        return data

    def preview_chart(self, payload: Dict[str, Any]) -> Any:
        return self._request("POST", "/charts/preview", payload)
