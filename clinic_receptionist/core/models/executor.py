"""
Booking executor request/response models.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ExecutorResult(BaseModel):
    """Shape shared by the booking and modify/cancel endpoints."""

    model_config = ConfigDict(extra="ignore")

    ok: bool
    error: Optional[str] = None


class VerifiedAppointment(BaseModel):
    """Upcoming appointment returned by patient verification."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: str
    start_time: str
    end_time: Optional[str] = None
    reason: Optional[str] = None


class VerifyResult(BaseModel):
    """Patient verification outcome."""

    model_config = ConfigDict(extra="ignore")

    ok: bool
    patient_name: Optional[str] = None
    appointments: List[VerifiedAppointment] = Field(default_factory=list)
    error: Optional[str] = None
