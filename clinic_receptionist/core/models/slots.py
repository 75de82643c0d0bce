"""
Slot availability models.
"""

from pydantic import BaseModel, ConfigDict


class Slot(BaseModel):
    """A bookable 30-minute interval."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    label: str
    start: str  # ISO 8601 with offset
    end: str


class WorkingDay(BaseModel):
    """A clinic-local date that still has at least one open slot."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    date: str  # YYYY-MM-DD
    label: str
