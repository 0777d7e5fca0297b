"""
Lenient date handling for values coming out of the document store.

Every parser here returns ``None`` instead of raising, so the engine can turn
a bad date into a warning.
"""
from datetime import date, datetime
from typing import Optional

DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%d/%m/%Y",
    "%d-%m-%Y",
    "%d.%m.%Y",
)


def parse_date(value) -> Optional[date]:
    """Parse a date, datetime or date string to a calendar ``date``."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def days_between(start: date, end: date) -> int:
    """Calendar days from ``start`` to ``end`` (negative if end is earlier)."""
    return (end - start).days


def parse_float(value) -> Optional[float]:
    """Parse a numeric reading such as ``"36.8"`` or ``"95 %"``."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip().rstrip("%").strip()
    for suffix in ("°C", "°F", "C", "F", "kg", "g"):
        if text.endswith(suffix):
            text = text[: -len(suffix)].strip()
            break
    try:
        return float(text)
    except ValueError:
        return None
