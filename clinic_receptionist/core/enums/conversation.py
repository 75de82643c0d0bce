"""
Guided conversation enums.
"""

from enum import Enum


class ConversationState(str, Enum):
    """States of the guided dialogue."""

    GREETING = "GREETING"
    BOOKING_REASON = "BOOKING_REASON"
    BOOKING_DATE = "BOOKING_DATE"
    BOOKING_TIME = "BOOKING_TIME"
    PATIENT_DETAILS = "PATIENT_DETAILS"
    VERIFY_ACCOUNT = "VERIFY_ACCOUNT"
    MANAGE_BOOKING = "MANAGE_BOOKING"
    CLINIC_INFO = "CLINIC_INFO"
    EMERGENCY = "EMERGENCY"
    BOOKING_SUCCESS = "BOOKING_SUCCESS"
    CANCEL_SUCCESS = "CANCEL_SUCCESS"


class DetailsStep(str, Enum):
    """Sub-steps of patient details collection."""

    NAME = "name"
    EMAIL = "email"
    WHATSAPP = "whatsapp"


class EventType(str, Enum):
    """Kinds of input the guided dialogue accepts."""

    CHIP = "chip"
    TEXT = "text"
