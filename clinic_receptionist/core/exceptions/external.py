"""
External collaborator exceptions.
"""

from .clinic import ClinicReceptionistError


class ExternalAPIError(ClinicReceptionistError):
    """Base exception for external API errors."""
    pass


class ExecutorError(ExternalAPIError):
    """Exception raised when the booking executor cannot be reached or answers garbage."""
    pass


class RecordStoreError(ExternalAPIError):
    """Exception raised when the record store request fails."""
    pass


class CompletionServiceError(ExternalAPIError):
    """Exception raised when the completion service fails or responds malformed."""
    pass


class CompletionTimeoutError(CompletionServiceError):
    """Exception raised when the completion service exceeds its time budget."""
    pass
