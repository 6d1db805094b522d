"""
------------------------------------------------------------------------------
Project:        ChartDeck
File:           core/utils/formatting.py
Version:        1.0.0
Description:    Centralized value formatting for chart labels, KPI tiles and
                table cells (number, percentage, currency, duration).
------------------------------------------------------------------------------
"""

import json
import math
import re
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Optional, Union

Number = Union[int, float, Decimal]

VALUE_FORMATS = ("number", "percentage", "currency", "duration")
MISSING_VALUE = "N/A"
MISSING_CELL = "-"


def _to_number(val: Any) -> Optional[float]:
    if isinstance(val, bool):
        return None
    try:
        num = float(val)
    except (TypeError, ValueError):
        return None
    return None if math.isnan(num) else num


def _round_half_up(val: float, decimals: int = 0) -> Decimal:
    quant = Decimal(1).scaleb(-decimals)
    return Decimal(str(val)).quantize(quant, rounding=ROUND_HALF_UP)


def format_grouped(val: Number, max_decimals: int = 3) -> str:
    """
    Formats with thousands separators and at most `max_decimals` fraction
    digits, trailing zeros trimmed: 1234.5 -> '1,234.5', 3.0 -> '3'.
    """
    rounded = _round_half_up(float(val), max(0, max_decimals))
    s = f"{rounded:,.{max(0, max_decimals)}f}"
    if "." in s:
        s = s.rstrip("0").rstrip(".")
    return "0" if s == "-0" else s


def format_duration(ms: Number) -> str:
    """Milliseconds to 'Hh Mm' (>= 60 minutes) or 'Mm'."""
    mins = int(_round_half_up(float(ms) / 60000))
    hours = mins // 60
    if hours > 0:
        return f"{hours}h {mins % 60}m"
    return f"{mins}m"


def format_value(val: Any, fmt: Optional[str] = "number", decimals: Optional[int] = 1) -> str:
    """
    Formats a chart value.
        number:     1,234.6   (grouped, at most `decimals` fraction digits)
        percentage: 85.3%     (fixed `decimals`)
        currency:   $1,234.5
        duration:   2h 5m     (input in milliseconds)
    `None` renders as 'N/A'; non-numeric values are returned as text.
    """
    if val is None:
        return MISSING_VALUE

    decimals = 1 if decimals is None else int(decimals)
    num = _to_number(val)
    if num is None:
        return str(val)

    if fmt == "percentage":
        return f"{_round_half_up(num, decimals):.{decimals}f}%"
    if fmt == "currency":
        return f"${format_grouped(num)}"
    if fmt == "duration":
        return format_duration(num)
    return format_grouped(num, decimals)


def percent_change(value: Any, comparison: Any) -> Optional[float]:
    """
    ((value - comparison) / comparison) * 100, or None when there is no
    usable comparison (missing, non-numeric or zero).
    """
    cur = _to_number(value)
    prev = _to_number(comparison)
    if cur is None or prev is None or prev == 0:
        return None
    return (cur - prev) / prev * 100


def format_change(change: Optional[float]) -> str:
    """'+12.5%', '-3.0%' or '' for no trend."""
    if change is None:
        return ""
    rounded = _round_half_up(change, 1)
    if rounded > 0:
        return f"+{rounded:.1f}%"
    if rounded < 0:
        return f"{rounded:.1f}%"
    return ""


_CAMEL_SPLIT = re.compile(r"([A-Z])")


def humanize_key(key: str) -> str:
    """camelCase field key to a column label: 'qualityScore' -> 'Quality Score'."""
    spaced = _CAMEL_SPLIT.sub(r" \1", key)
    return spaced[:1].upper() + spaced[1:]


def format_cell(val: Any) -> str:
    """Table cell text. Missing values render as '-'."""
    if val is None:
        return MISSING_CELL
    if isinstance(val, bool):
        return "true" if val else "false"
    if isinstance(val, (dict, list)):
        return json.dumps(val, ensure_ascii=False)
    if isinstance(val, float) and val.is_integer():
        return str(int(val))
    return str(val)


def parse_timestamp(val: Any) -> Optional[datetime]:
    """ISO timestamp (optionally with 'Z') to an aware datetime."""
    if not val:
        return None
    text = str(val).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(text)
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def format_relative_time(val: Any, now: Optional[datetime] = None) -> str:
    """'just now', '5m ago', '3h ago', '2d ago' or the date for older entries."""
    dt = parse_timestamp(val)
    if dt is None:
        return "---"
    now = now or datetime.now(timezone.utc)
    seconds = int((now - dt).total_seconds())
    if seconds < 60:
        return "just now"
    if seconds < 3600:
        return f"{seconds // 60}m ago"
    if seconds < 86400:
        return f"{seconds // 3600}h ago"
    if seconds < 7 * 86400:
        return f"{seconds // 86400}d ago"
    return dt.strftime("%Y-%m-%d")
