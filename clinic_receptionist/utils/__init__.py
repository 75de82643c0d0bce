"""
Utility modules for the clinic receptionist.
"""

from .validation import ValidationUtils
from .date import DateParser, looks_like_date, mentions_time, parse_iso_datetime
from .signature import sign_clinic_slug, verify_clinic_signature, hash_client_ip
from .calendar import build_google_calendar_url
from .logging import get_logger, configure_logging

__all__ = [
    "ValidationUtils",
    "DateParser",
    "looks_like_date",
    "mentions_time",
    "parse_iso_datetime",
    "sign_clinic_slug",
    "verify_clinic_signature",
    "hash_client_ip",
    "build_google_calendar_url",
    "get_logger",
    "configure_logging",
]
