"""
Google Calendar deep links.
"""

from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urlencode

GOOGLE_CALENDAR_BASE = "https://calendar.google.com/calendar/render"


def _to_gcal_stamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%SZ")


def build_google_calendar_url(
    title: str,
    start: datetime,
    end: datetime,
    details: Optional[str] = None,
    location: Optional[str] = None,
) -> str:
    """Build an "add event" link; opening it never touches the booking."""
    params = {
        "action": "TEMPLATE",
        "text": title[:200],
        "dates": f"{_to_gcal_stamp(start)}/{_to_gcal_stamp(end)}",
    }
    if details:
        params["details"] = details[:500]
    if location:
        params["location"] = location[:200]
    return f"{GOOGLE_CALENDAR_BASE}?{urlencode(params)}"
