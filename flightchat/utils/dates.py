import dateparser
from datetime import datetime, timedelta
from typing import Optional
import pytz
import re

ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

_WEEKDAYS = {
    'monday': 0, 'tuesday': 1, 'wednesday': 2, 'thursday': 3,
    'friday': 4, 'saturday': 5, 'sunday': 6
}


def get_current_datetime(tz: str = "UTC") -> datetime:
    return datetime.now(pytz.timezone(tz))


def _parse_next_weekday(text: str, base_date: datetime) -> Optional[datetime]:
    """Parse 'next Monday', 'this Friday', 'friday' against base_date."""
    text_lower = text.lower().strip()
    for day_name, day_num in _WEEKDAYS.items():
        if day_name not in text_lower:
            continue
        days_until = (day_num - base_date.weekday()) % 7
        if 'this' in text_lower:
            # "this Friday" on a Friday means today
            pass
        elif days_until == 0:
            # bare or "next" weekday on the same weekday means a week out
            days_until = 7
        return base_date + timedelta(days=days_until)
    return None


def to_iso_date(text: str, tz: str = "UTC") -> str:
    """Convert free text ("tomorrow", "next friday", "1 May 2025") to YYYY-MM-DD.

    Returns an empty string when the text cannot be read as a date.
    """
    if not text:
        return ""
    text_lower = text.lower().strip()
    if ISO_DATE_RE.match(text_lower):
        return text_lower

    base_date = get_current_datetime(tz)

    if re.search(r'\b(next|this)?\s*(monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b', text_lower):
        dt = _parse_next_weekday(text_lower, base_date)
        if dt:
            return dt.date().isoformat()

    if text_lower == 'today':
        return base_date.date().isoformat()
    elif text_lower == 'tomorrow':
        return (base_date + timedelta(days=1)).date().isoformat()

    dt = dateparser.parse(
        text,
        settings={"RELATIVE_BASE": base_date.replace(tzinfo=None), "PREFER_DATES_FROM": "future"},
    )
    if dt:
        return dt.date().isoformat()

    return ""


def format_duration_minutes(total_minutes: int) -> str:
    """
    Convert duration in minutes to a compact human string, e.g. 85 -> "1h 25min".
    """
    if total_minutes is None or total_minutes < 0:
        return ""
    h = total_minutes // 60
    m = total_minutes % 60
    if h and m:
        return f"{h}h {m}min"
    if h:
        return f"{h}h"
    return f"{m}min"
