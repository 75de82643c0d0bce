"""
Record store services.
"""

from .client import ClinicStore, RestClinicStore, profile_from_record

__all__ = ["ClinicStore", "RestClinicStore", "profile_from_record"]
