"""
Date and time parsing utilities.
"""

import re
from datetime import datetime, timedelta
from typing import Optional

import pytz
from dateparser import parse as parse_date

DATE_PATTERNS = [
    re.compile(r"\b\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4}\b"),
    re.compile(
        r"\b(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\s+\d{1,2}(?:st|nd|rd|th)?(?:\s*,?\s*\d{4})?",
        re.IGNORECASE,
    ),
    re.compile(r"\b(?:today|tomorrow)\b", re.IGNORECASE),
    re.compile(r"\bnext\s+(?:monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b", re.IGNORECASE),
    re.compile(r"\b(?:monday|tuesday|wednesday|thursday|friday|saturday|sunday)\b", re.IGNORECASE),
    re.compile(r"\b\d{4}-\d{2}-\d{2}\b"),
]

TIME_PATTERNS = [
    re.compile(r"\b\d{1,2}(?::\d{2})?\s*(?:am|pm|a\.m\.|p\.m\.)", re.IGNORECASE),
    re.compile(r"\b(?:[01]?\d|2[0-3]):[0-5]\d\b"),
    re.compile(r"\b(?:noon|midday)\b", re.IGNORECASE),
]

WEEKDAYS = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


def looks_like_date(text: str) -> bool:
    """Return ``True`` if ``text`` mentions a calendar day."""
    return any(p.search(text or "") for p in DATE_PATTERNS)


def mentions_time(text: str) -> bool:
    """Return ``True`` if ``text`` mentions a clock time."""
    return any(p.search(text or "") for p in TIME_PATTERNS)


def parse_iso_datetime(value: str, tz_name: str) -> Optional[datetime]:
    """Parse an ISO 8601 string; naive values are read as clinic-local time."""
    try:
        parsed = datetime.fromisoformat((value or "").strip().replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = pytz.timezone(tz_name).localize(parsed)
    return parsed


class DateParser:
    """Natural-language date parsing anchored to a clinic timezone."""

    def __init__(self, tz_name: str):
        self.tz = pytz.timezone(tz_name)

    def today(self):
        return datetime.now(self.tz).date()

    def parse_natural_date(self, text: str) -> Optional[str]:
        """
        Parse dates like 'next Friday', 'May 20' or '2025-05-20'.

        Weekday names that parse to a past day roll forward to the next
        occurrence; any other past date is rejected.

        Args:
            text: Natural language date string

        Returns:
            Date in YYYY-MM-DD format or None if parsing fails
        """
        if not text or not text.strip():
            return None

        today = self.today()
        settings = {
            "PREFER_DATES_FROM": "future",
            "RELATIVE_BASE": datetime.combine(today, datetime.min.time()),
        }
        parsed = parse_date(text, settings=settings, languages=["en"])
        if not parsed:
            return self._parse_weekday_fallback(text, today)

        if parsed.tzinfo is not None:
            parsed = parsed.astimezone(self.tz)
        result = parsed.date()

        if result < today:
            return self._parse_weekday_fallback(text, today)
        return result.strftime("%Y-%m-%d")

    @staticmethod
    def _parse_weekday_fallback(text: str, today) -> Optional[str]:
        lowered = text.strip().lower()
        for idx, name in enumerate(WEEKDAYS):
            if name in lowered:
                days_ahead = (idx - today.weekday() + 7) % 7
                if "next" in lowered and days_ahead == 0:
                    days_ahead = 7
                return (today + timedelta(days=days_ahead)).strftime("%Y-%m-%d")
        return None
