"""
Custom exceptions for the clinic receptionist.
"""

from .clinic import (
    ClinicReceptionistError,
    ClinicNotFoundError,
    PlanExpiredError,
    InvalidSignatureError,
)
from .external import (
    ExternalAPIError,
    ExecutorError,
    RecordStoreError,
    CompletionServiceError,
    CompletionTimeoutError,
)

__all__ = [
    "ClinicReceptionistError",
    "ClinicNotFoundError",
    "PlanExpiredError",
    "InvalidSignatureError",
    "ExternalAPIError",
    "ExecutorError",
    "RecordStoreError",
    "CompletionServiceError",
    "CompletionTimeoutError",
]
