"""
Data models for the clinic receptionist.
"""

from .clinic import DayHours, Holiday, ClinicScheduleConfig, ClinicProfile, WEEKDAY_NAMES
from .slots import Slot, WorkingDay
from .chat import ChatMessage, ChatTurnRequest, ChatTurnResponse, SuggestedSlot, GuardDecision
from .executor import ExecutorResult, VerifiedAppointment, VerifyResult
from .conversation import Chip, ConversationContext, DialogueEvent, DialogueReply
from .tools import ToolResult

__all__ = [
    "DayHours",
    "Holiday",
    "ClinicScheduleConfig",
    "ClinicProfile",
    "WEEKDAY_NAMES",
    "Slot",
    "WorkingDay",
    "ChatMessage",
    "ChatTurnRequest",
    "ChatTurnResponse",
    "SuggestedSlot",
    "GuardDecision",
    "ExecutorResult",
    "VerifiedAppointment",
    "VerifyResult",
    "Chip",
    "ConversationContext",
    "DialogueEvent",
    "DialogueReply",
    "ToolResult",
]
