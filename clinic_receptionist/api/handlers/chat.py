"""
Free-text chat handler.
"""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from ...core.models import ChatTurnRequest, ChatTurnResponse
from ..dependencies import Services
from .common import client_ip, verify_signature


class ChatHandler:
    """Handler for the embed chat endpoint."""

    def __init__(self, services: Services):
        self.services = services
        self.router = APIRouter()
        self._setup_routes()

    def _setup_routes(self):
        """Setup chat routes."""

        @self.router.post("/chat", response_model=ChatTurnResponse, response_model_exclude_none=True)
        async def chat_turn(body: ChatTurnRequest, request: Request):
            """Answer one patient message."""
            verify_signature(self.services.settings, body.clinic_slug, body.sig)
            try:
                return await self.services.orchestrator.handle_turn(body, client_ip=client_ip(request))
            except ValueError as e:
                return JSONResponse({"error": str(e)}, status_code=400)
