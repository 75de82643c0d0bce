"""
Slot availability services.
"""

from .calculator import (
    SLOT_MINUTES,
    DEFAULT_WORKING_HOURS,
    day_window,
    format_time,
    slots_for_day,
    next_days_with_slots,
    next_slots,
)
from .availability import AvailabilityService
from .hours import format_working_hours

__all__ = [
    "SLOT_MINUTES",
    "DEFAULT_WORKING_HOURS",
    "day_window",
    "format_time",
    "slots_for_day",
    "next_days_with_slots",
    "next_slots",
    "AvailabilityService",
    "format_working_hours",
]
