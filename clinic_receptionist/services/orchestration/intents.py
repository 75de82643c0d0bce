"""
Keyword intent detection for free-text turns.
"""

import re
from typing import Iterable

from ...core.models import ClinicScheduleConfig
from ...utils.date import looks_like_date, mentions_time
from ..slots import format_working_hours

SHORT_QUESTION_MAX_CHARS = 80

HOURS_PHRASES = [
    "what are your hours",
    "what are the hours",
    "when are you open",
    "opening hours",
    "open hours",
    "hours?",
    "horario",
    "horarios",
    "öffnungszeiten",
]

INSURANCE_PHRASES = [
    "insurance",
    "insured",
    "seguro",
    "versicherung",
]

BOOKING_INTENT_RE = re.compile(
    r"\b(book|booking|appointment|appt|schedule|available|availability|slot|slots|"
    r"reschedule|change|come in|see the dentist|cita|termin)\b",
    re.IGNORECASE,
)


def is_hours_only_question(text: str) -> bool:
    """Short message that only asks for opening hours."""
    text = (text or "").strip().lower()
    if not text or len(text) > SHORT_QUESTION_MAX_CHARS:
        return False
    return any(p in text or text == p.rstrip("?") for p in HOURS_PHRASES)


def is_insurance_only_question(text: str) -> bool:
    """Short message about insurance with no booking request attached."""
    text = (text or "").strip().lower()
    if not text or len(text) > SHORT_QUESTION_MAX_CHARS:
        return False
    if BOOKING_INTENT_RE.search(text) or looks_like_date(text) or mentions_time(text):
        return False
    return any(p in text for p in INSURANCE_PHRASES)


def has_booking_intent(texts: Iterable[str]) -> bool:
    return any(BOOKING_INTENT_RE.search(t or "") for t in texts)


def has_fixed_date_or_time(texts: Iterable[str]) -> bool:
    """``True`` once the patient has named a day or a clock time."""
    return any(looks_like_date(t) or mentions_time(t) for t in texts)


def hours_answer(config: ClinicScheduleConfig) -> str:
    return f"We're open {format_working_hours(config)}. Need a specific day?"


def insurance_answer(config: ClinicScheduleConfig) -> str:
    if config.insurance_accepted:
        notes = (config.insurance_notes or "").strip()
        return notes or "We accept insurance. Ask us which plans when you visit."
    return "We do not accept insurance. We can discuss payment when you book."
