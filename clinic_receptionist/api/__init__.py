"""
HTTP API for the clinic receptionist.
"""

from .app import create_app

__all__ = ["create_app"]
