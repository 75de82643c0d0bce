"""
Clinic access exceptions.
"""


class ClinicReceptionistError(Exception):
    """Base exception for the clinic receptionist."""
    pass


class ClinicNotFoundError(ClinicReceptionistError):
    """Exception raised when no clinic matches the embed slug."""
    pass


class PlanExpiredError(ClinicReceptionistError):
    """Exception raised when the clinic subscription has lapsed."""
    pass


class InvalidSignatureError(ClinicReceptionistError):
    """Exception raised when an embed signature does not verify."""
    pass
