"""
Guided dialogue handler.
"""

from datetime import datetime
from typing import Optional

import pytz
from fastapi import APIRouter
from pydantic import BaseModel, ConfigDict, Field

from ...core.exceptions import PlanExpiredError
from ...core.models import ConversationContext, DialogueEvent, DialogueReply
from ...services.dialogue import DialogueStateMachine
from ..dependencies import Services
from .common import verify_signature


class DialogueTurnRequest(BaseModel):
    """Client-held context plus the event to apply."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    clinic_slug: str = Field(alias="clinicSlug", min_length=1)
    sig: Optional[str] = None
    location_id: Optional[str] = Field(default=None, alias="locationId")
    agent_id: Optional[str] = Field(default=None, alias="agentId")
    context: Optional[ConversationContext] = None
    event: Optional[DialogueEvent] = None


class DialogueHandler:
    """Handler for the guided (chip) conversation endpoint."""

    def __init__(self, services: Services):
        self.services = services
        self.router = APIRouter()
        self._setup_routes()

    def _setup_routes(self):
        """Setup dialogue routes."""

        @self.router.post("/dialogue", response_model=DialogueReply, response_model_exclude_none=True)
        async def dialogue_turn(body: DialogueTurnRequest):
            """Advance the guided conversation by one event."""
            verify_signature(self.services.settings, body.clinic_slug, body.sig)
            clinic = await self.services.store.get_clinic(body.clinic_slug, body.location_id, body.agent_id)
            if clinic.is_expired(datetime.now(pytz.utc)):
                raise PlanExpiredError(f"Plan expired for {clinic.slug}")

            machine = DialogueStateMachine(
                clinic,
                self.services.availability,
                self.services.executor,
                sig=body.sig,
                settings=self.services.settings,
            )
            if body.event is None:
                return machine.start()

            return await machine.handle(body.context or ConversationContext(), body.event)
