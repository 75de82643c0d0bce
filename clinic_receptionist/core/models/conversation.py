"""
Guided dialogue models.

The conversation context is held by the client and replayed on every call,
so everything here round-trips through JSON.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..enums import ConversationState, DetailsStep, EventType
from .executor import VerifiedAppointment
from .slots import WorkingDay


class Chip(BaseModel):
    """A selectable suggestion rendered by the widget."""

    key: str
    label: str
    value: Optional[str] = None
    variant: Optional[str] = None


class ConversationContext(BaseModel):
    """Current state plus the flow variables accumulated so far."""

    model_config = ConfigDict(extra="ignore")

    state: ConversationState = ConversationState.GREETING

    # Booking selections
    service: Optional[str] = None
    selected_date: Optional[str] = None
    slot_start: Optional[str] = None
    slot_end: Optional[str] = None
    working_days: List[WorkingDay] = Field(default_factory=list)

    # Patient details
    details_step: DetailsStep = DetailsStep.NAME
    patient_name: Optional[str] = None
    patient_email: Optional[str] = None
    patient_phone: Optional[str] = None

    # Verification / manage
    verify_attempts: int = 0
    verified_email: Optional[str] = None
    verified_appointments: List[VerifiedAppointment] = Field(default_factory=list)
    reschedule: bool = False

    # Idempotency key of the last committed booking
    committed_key: Optional[str] = None
    last_booked_start: Optional[str] = None
    last_booked_end: Optional[str] = None

    # Set on replies to a duplicate submission whose first copy is still in flight
    busy: bool = False


class DialogueEvent(BaseModel):
    """A chip selection or a free-text message."""

    model_config = ConfigDict(extra="ignore")

    type: EventType
    key: Optional[str] = None
    value: Optional[str] = None
    text: Optional[str] = None


class DialogueReply(BaseModel):
    """What the widget renders after one dialogue step."""

    context: ConversationContext
    message: str
    suggestions: List[Chip] = Field(default_factory=list)
    open_url: Optional[str] = None
    ignored: bool = False
