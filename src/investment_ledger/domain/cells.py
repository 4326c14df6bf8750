"""
Coercion of raw spreadsheet cell values into canonical strings and numbers.

Cells arrive from openpyxl (str, int, float, bool, datetime, rich text) or
from JSON-shaped imports, where computed and rich cells are wrapped in
mappings such as ``{"result": 12}``, ``{"text": "..."}`` or
``{"richText": [{"text": "a"}, {"text": "b"}]}``.
"""
import math
from collections.abc import Mapping
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any

from openpyxl.cell.cell import ILLEGAL_CHARACTERS_RE
from openpyxl.utils.datetime import from_excel

# Serial numbers outside this window are not treated as dates (1900-01-01 .. 9999-12-31).
_EXCEL_SERIAL_RANGE = (1, 2958465)


def _unwrap(value: Any) -> Any:
    if isinstance(value, Mapping):
        if value.get("text"):
            return str(value["text"])
        rich = value.get("richText")
        if rich:
            return "".join(str(part.get("text", "")) for part in rich if isinstance(part, Mapping))
        if value.get("result") is not None:
            return value["result"]
        return None
    return value


def _format_number(value: float) -> str:
    if value.is_integer():
        return str(int(value))
    return repr(value)


def cell_to_string(value: Any) -> str:
    value = _unwrap(value)
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, (date, time)):
        return value.isoformat()
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return _format_number(value) if math.isfinite(value) else ""
    # CellRichText and friends render their plain text through str().
    return strip_control_chars(str(value))


def try_number(value: Any) -> float | None:
    """Return a finite float for ``value`` or None when it carries no number."""
    value = _unwrap(value)
    if value is None or isinstance(value, (date, time)):
        return None
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    else:
        text = str(value).strip().replace(",", "")
        if not text:
            return None
        try:
            number = float(Decimal(text))
        except (InvalidOperation, ValueError):
            return None
    return number if math.isfinite(number) else None


def cell_to_number(value: Any) -> float:
    number = try_number(value)
    return 0.0 if number is None else number


def cell_to_date(value: Any) -> str:
    """Coerce a date cell to ``YYYY-MM-DD``; plain Excel serials are converted too."""
    value = _unwrap(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        low, high = _EXCEL_SERIAL_RANGE
        if low <= value <= high:
            converted = from_excel(value)
            if isinstance(converted, datetime):
                return converted.date().isoformat()
    return cell_to_string(value).strip()


def is_blank(value: Any) -> bool:
    return not cell_to_string(value).strip()


def strip_control_chars(text: str) -> str:
    """Drop control characters that cannot be stored in an xlsx cell."""
    return ILLEGAL_CHARACTERS_RE.sub("", text)
