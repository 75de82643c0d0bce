"""
Booking executor services.
"""

from .client import ExecutorClient, build_idempotency_key

__all__ = ["ExecutorClient", "build_idempotency_key"]
