"""
Clinic and plan enums.
"""

from enum import Enum


class PlanTier(str, Enum):
    """Subscription tiers."""

    STARTER = "starter"
    PRO = "pro"
    ELITE = "elite"

    @classmethod
    def from_string(cls, value: str | None) -> "PlanTier":
        """Normalize a stored plan name, mapping legacy names onto tiers."""
        if not value:
            return cls.STARTER

        value = value.strip().lower()
        if value == "enterprise":
            return cls.ELITE
        for tier in cls:
            if tier.value == value:
                return tier
        return cls.STARTER


class AppointmentStatus(str, Enum):
    """Appointment statuses held by the record store."""

    PENDING = "pending"
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    COMPLETED = "completed"


# Statuses that block a slot
ACTIVE_STATUSES = (
    AppointmentStatus.PENDING,
    AppointmentStatus.SCHEDULED,
    AppointmentStatus.CONFIRMED,
)


class ToolName(str, Enum):
    """Tools exposed to the completion service."""

    BOOK_APPOINTMENT = "book_appointment"
    MODIFY_APPOINTMENT = "modify_appointment"
    CANCEL_APPOINTMENT = "cancel_appointment"
