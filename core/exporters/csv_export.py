"""
------------------------------------------------------------------------------
Project:        ChartDeck
File:           core/exporters/csv_export.py
Version:        1.0.0
Description:    CSV export of a chart's last fetched data, using the same
                column set as the table renderer (UTF-8 with BOM for Excel).
------------------------------------------------------------------------------
"""

import csv
import io
import json
import re
from typing import Any

from core.logger import get_logger
from core.models.reporting import Chart
from core.normalizer import rows
from core.rendering import table_columns

logger = get_logger("export")

_UNSAFE_FILENAME = re.compile(r"[^\w\-. ]+")


def csv_cell(val: Any) -> str:
    """Scalars as text, lists/objects as JSON, missing values empty."""
    if val is None:
        return ""
    if isinstance(val, (dict, list, tuple)):
        return json.dumps(val, ensure_ascii=False)
    if isinstance(val, bool):
        return "true" if val else "false"
    return str(val)


def export_chart_csv(chart: Chart, data: Any, delimiter: str = ",") -> bytes:
    """
    Returns CSV bytes for the chart's data: one header row of field keys,
    one row per data point. Ungrouped aggregates become a single 'Total' row.
    """
    table_rows = rows(data)
    columns = table_columns(chart, table_rows)

    output = io.BytesIO()
    output.write(b'\xef\xbb\xbf')
    wrapper = io.TextIOWrapper(output, encoding='utf-8', newline='')
    writer = csv.writer(wrapper, delimiter=delimiter)

    if columns:
        writer.writerow([c.field for c in columns])
        for row in table_rows:
            writer.writerow([csv_cell(row.get(c.field)) for c in columns])

    wrapper.flush()
    result = output.getvalue()
    wrapper.detach()
    logger.info(f"CSV export of '{chart.title}': {len(table_rows)} rows, {len(columns)} columns")
    return result


def export_filename(title: str, extension: str) -> str:
    """Filesystem-safe file name derived from a chart/report title."""
    base = _UNSAFE_FILENAME.sub("_", title or "").strip().replace(" ", "_") or "chart"
    return f"{base}.{extension.lstrip('.')}"
