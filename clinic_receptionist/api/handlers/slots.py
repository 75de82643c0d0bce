"""
Slot query handler.
"""

from datetime import datetime
from typing import Optional

import pytz
from fastapi import APIRouter, Query
from fastapi.responses import JSONResponse

from ...core.exceptions import PlanExpiredError
from ..dependencies import Services
from .common import verify_signature

DATE_SLOT_LIMIT = 24
NEXT_SLOT_LIMIT = 12


class SlotsHandler:
    """Handler for the slot-query endpoint."""

    def __init__(self, services: Services):
        self.services = services
        self.router = APIRouter()
        self._setup_routes()

    def _setup_routes(self):
        """Setup slot routes."""

        @self.router.get("/slots")
        async def get_slots(
            clinic_slug: str = Query(alias="clinicSlug", min_length=1),
            sig: Optional[str] = Query(default=None),
            location: Optional[str] = Query(default=None),
            agent: Optional[str] = Query(default=None),
            date: Optional[str] = Query(default=None, pattern=r"^\d{4}-\d{2}-\d{2}$"),
            days: Optional[int] = Query(default=None, ge=0),
        ):
            """Open slots for a date, the next working days, or the next few slots."""
            verify_signature(self.services.settings, clinic_slug, sig)
            clinic = await self.services.store.get_clinic(clinic_slug, location, agent)
            now = datetime.now(pytz.timezone(clinic.schedule.timezone))
            if clinic.is_expired(now):
                raise PlanExpiredError(f"Plan expired for {clinic.slug}")
            availability = self.services.availability

            if date:
                try:
                    slots = await availability.slots_for_date(clinic, date, limit=DATE_SLOT_LIMIT, now=now)
                except ValueError:
                    return JSONResponse({"error": "Invalid date"}, status_code=400)
                return {"slots": [s.model_dump() for s in slots]}

            if days:
                working = await availability.working_days(clinic, now=now)
                return {"workingDays": [{"dateStr": d.date, "label": d.label} for d in working]}

            slots = await availability.upcoming_slots(clinic, count=NEXT_SLOT_LIMIT, now=now)
            today = now.date()
            has_today = any(datetime.fromisoformat(s.start).date() == today for s in slots)
            return {"slots": [s.model_dump() for s in slots], "hasSlotsToday": has_today}
