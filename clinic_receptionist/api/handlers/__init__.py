"""
API handlers.
"""

from .health import HealthHandler
from .chat import ChatHandler
from .dialogue import DialogueHandler
from .slots import SlotsHandler

__all__ = ["HealthHandler", "ChatHandler", "DialogueHandler", "SlotsHandler"]
