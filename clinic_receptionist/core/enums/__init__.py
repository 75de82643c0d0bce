"""
Enums for the clinic receptionist.
"""

from .clinic import PlanTier, AppointmentStatus, ACTIVE_STATUSES, ToolName
from .conversation import ConversationState, DetailsStep, EventType

__all__ = [
    "PlanTier",
    "AppointmentStatus",
    "ACTIVE_STATUSES",
    "ToolName",
    "ConversationState",
    "DetailsStep",
    "EventType",
]
