"""
Clinic receptionist: conversational appointment scheduling for embedded clinic chat.
"""

__version__ = "1.0.0"
