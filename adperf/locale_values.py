"""Number and date parsing for mixed European/US spreadsheet cells."""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any

_STRIP_CHARS = re.compile(r"[€$£%\s ]")
_DMY = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_PLACEHOLDERS = {"", "-", "--", "n/a", "na", "none", "null"}


def parse_number(raw: Any) -> float:
    """Parse a cell as a number using `.` thousands and `,` decimal separators.

    Blank, placeholder or otherwise unparseable cells return 0.0.
    """
    if raw is None or isinstance(raw, bool):
        return 0.0
    if isinstance(raw, (int, float)):
        value = float(raw)
        if value != value or value in (float("inf"), float("-inf")):
            return 0.0
        return value
    text = _STRIP_CHARS.sub("", str(raw))
    if text.lower() in _PLACEHOLDERS:
        return 0.0
    cleaned = text.replace(".", "").replace(",", ".")
    try:
        return float(cleaned)
    except ValueError:
        return 0.0


def is_unparseable_number(raw: Any) -> bool:
    """True for non-blank cells that `parse_number` degrades to 0."""
    if raw is None or isinstance(raw, (int, float)):
        return False
    text = _STRIP_CHARS.sub("", str(raw))
    if text.lower() in _PLACEHOLDERS:
        return False
    try:
        float(text.replace(".", "").replace(",", "."))
    except ValueError:
        return True
    return False


def parse_date(raw: Any) -> date | None:
    """Parse DD/MM/YYYY or ISO-like dates; None when neither matches."""
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw.date()
    if isinstance(raw, date):
        return raw
    text = str(raw).strip()
    if not text:
        return None
    match = _DMY.match(text)
    if match:
        day, month, year = (int(part) for part in match.groups())
        try:
            return date(year, month, day)
        except ValueError:
            return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def format_day(raw: Any) -> str:
    """Render a day cell as the text used in record identity keys.

    Text and native date cells for the same calendar day both come out as ISO;
    unparseable cells keep their stripped text.
    """
    parsed = parse_date(raw)
    if parsed is not None:
        return parsed.isoformat()
    return "" if raw is None else str(raw).strip()


def to_text(raw: Any) -> str:
    if raw is None:
        return ""
    if isinstance(raw, float) and raw.is_integer():
        return str(int(raw))
    return str(raw).strip()
