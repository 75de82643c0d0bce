"""
Abuse and rate-limit guard.
"""

from .abuse import AbuseGuard, detect_human_takeover
from .counters import CounterStore, SQLiteCounterStore
from .rate_limit import RateLimiter, LimitCheck
from . import messages

__all__ = [
    "AbuseGuard",
    "detect_human_takeover",
    "CounterStore",
    "SQLiteCounterStore",
    "RateLimiter",
    "LimitCheck",
    "messages",
]
