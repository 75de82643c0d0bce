"""
Guided dialogue services.
"""

from .state_machine import DialogueStateMachine, display_suggestions, reset_flow
from . import messages

__all__ = ["DialogueStateMachine", "display_suggestions", "reset_flow", "messages"]
