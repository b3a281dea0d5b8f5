"""Rendering of loosely-typed cell values as CSV text."""
from datetime import date, datetime, time
from typing import Any

import pandas as pd


def is_missing(value: Any) -> bool:
    """True for None and NaN/NaT; any string, even blank, is a value."""
    if value is None:
        return True
    if isinstance(value, str):
        return False
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def format_cell(value: Any) -> str:
    """Render a cell value the way spreadsheet software will read it back.

    - None / NaN -> ""
    - bool -> "TRUE" / "FALSE"
    - integral float -> no trailing ".0" (5225.0 -> "5225")
    - datetime -> ISO-8601, date only at midnight
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if is_missing(value):
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, pd.Timestamp):
        value = value.to_pydatetime()
    if isinstance(value, datetime):
        if value.time() == time(0) and value.tzinfo is None:
            return value.date().isoformat()
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)
