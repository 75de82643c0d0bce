"""
Free-text chat models.
"""

from dataclasses import dataclass
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ChatMessage(BaseModel):
    """One message of the client-held transcript."""

    model_config = ConfigDict(extra="ignore")

    role: Literal["user", "assistant"]
    content: str = ""


class ChatTurnRequest(BaseModel):
    """Inbound free-text chat turn."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    messages: List[ChatMessage] = Field(default_factory=list)
    clinic_slug: str = Field(alias="clinicSlug", min_length=1)
    sig: Optional[str] = None
    location_id: Optional[str] = Field(default=None, alias="locationId")
    agent_id: Optional[str] = Field(default=None, alias="agentId")
    failed_attempts: int = Field(default=0, ge=0)
    selected_date: Optional[str] = Field(default=None, alias="selectedDate")


class SuggestedSlot(BaseModel):
    """Slot offered to the patient as a selectable value."""

    label: str
    value: str


class ChatTurnResponse(BaseModel):
    """Outbound chat turn."""

    message: str
    suggested_slots: Optional[List[SuggestedSlot]] = None
    reset_conversation: Optional[bool] = None
    failed_attempts: Optional[int] = None
    human_takeover: Optional[bool] = None


@dataclass
class GuardDecision:
    """Outcome of classifying a message batch."""

    reject: bool
    message: Optional[str] = None
    reset_conversation: bool = False
    human_takeover: bool = False
    failed_attempts: Optional[int] = None
    reason: Optional[str] = None
