"""
Configuration management for the clinic receptionist.
"""

from .settings import Settings, get_settings
from .plans import PLAN_USAGE_LIMITS, UsageLimits, get_usage_limits, has_plan_feature

__all__ = [
    "Settings",
    "get_settings",
    "PLAN_USAGE_LIMITS",
    "UsageLimits",
    "get_usage_limits",
    "has_plan_feature",
]
