"""File I/O and date formatting utilities."""

import json
import os
from typing import Any

MONTH_NAMES = ['Jan', 'Feb', 'Mar', 'Apr', 'May', 'Jun',
               'Jul', 'Aug', 'Sep', 'Oct', 'Nov', 'Dec']


def write_json(data: Any, path: str) -> None:
    os.makedirs(os.path.dirname(path) or '.', exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, ensure_ascii=False, indent=2)


def read_json(path: str) -> Any:
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def format_date_mmmdd(date_string: str) -> str:
    """Format an ISO date (YYYY-MM-DD) as MMMdd, e.g. "Jan05". Invalid → ""."""
    if not date_string:
        return ""
    parts = str(date_string)[:10].split('-')
    if len(parts) != 3:
        return ""
    try:
        year, month, day = (int(p) for p in parts)
    except ValueError:
        return ""
    if year < 1 or not 1 <= month <= 12 or not 1 <= day <= 31:
        return ""
    return f"{MONTH_NAMES[month - 1]}{day:02d}"


def sprint_dates(start_date: str, end_date: str) -> str:
    """Return "MMMdd-MMMdd" when both dates are valid, else ""."""
    start = format_date_mmmdd(start_date)
    end = format_date_mmmdd(end_date)
    if start and end:
        return f"{start}-{end}"
    return ""
