"""
Free-text chat orchestration.
"""

from .orchestrator import ChatOrchestrator, FALLBACK_MESSAGE, TIMEOUT_MESSAGE, MAX_TOOL_CALLS_PER_TURN
from .compression import HistoryCompressor, HistorySummary
from .tools import ToolExecutor, tool_schemas_for
from .prompts import build_system_prompt

__all__ = [
    "ChatOrchestrator",
    "FALLBACK_MESSAGE",
    "TIMEOUT_MESSAGE",
    "MAX_TOOL_CALLS_PER_TURN",
    "HistoryCompressor",
    "HistorySummary",
    "ToolExecutor",
    "tool_schemas_for",
    "build_system_prompt",
]
