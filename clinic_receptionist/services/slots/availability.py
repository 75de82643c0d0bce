"""
Availability lookups that pair the record store with the slot calculator.
"""

from datetime import date, datetime, time, timedelta
from typing import List, Optional

import pytz

from ...config import Settings, get_settings
from ...core.models import ClinicProfile, Slot, WorkingDay
from ..store import ClinicStore
from .calculator import SLOT_DURATION, next_days_with_slots, next_slots, slots_for_day


class AvailabilityService:
    """Fetch booked starts for a clinic and compute free slots from them."""

    def __init__(self, store: ClinicStore, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or get_settings()

    async def _booked_starts(self, clinic: ClinicProfile, now: datetime) -> List[str]:
        horizon = timedelta(days=self.settings.booked_lookahead_days + 1)
        return await self.store.list_booked_starts(clinic.id, now - SLOT_DURATION, now + horizon)

    async def _booked_starts_on(self, clinic: ClinicProfile, day: date) -> List[str]:
        """Booked starts around one clinic-local day, whatever its distance from today."""
        tz = pytz.timezone(clinic.schedule.timezone)
        day_start = tz.localize(datetime.combine(day, time.min))
        day_end = tz.localize(datetime.combine(day + timedelta(days=1), time.min))
        return await self.store.list_booked_starts(clinic.id, day_start - SLOT_DURATION, day_end + SLOT_DURATION)

    def _now(self, clinic: ClinicProfile, now: Optional[datetime]) -> datetime:
        return now or datetime.now(pytz.timezone(clinic.schedule.timezone))

    async def working_days(
        self, clinic: ClinicProfile, count: Optional[int] = None, now: Optional[datetime] = None
    ) -> List[WorkingDay]:
        now = self._now(clinic, now)
        booked = await self._booked_starts(clinic, now)
        return next_days_with_slots(
            clinic.schedule,
            booked,
            count=count or self.settings.working_days_count,
            now=now,
            max_days=self.settings.working_days_max_days,
        )

    async def slots_for_date(
        self,
        clinic: ClinicProfile,
        date_str: str,
        limit: int = 24,
        time_only: bool = True,
        now: Optional[datetime] = None,
    ) -> List[Slot]:
        now = self._now(clinic, now)
        booked = await self._booked_starts_on(clinic, date.fromisoformat(date_str))
        return slots_for_day(clinic.schedule, date_str, booked, limit=limit, time_only=time_only, now=now)

    async def upcoming_slots(
        self, clinic: ClinicProfile, count: Optional[int] = None, now: Optional[datetime] = None
    ) -> List[Slot]:
        now = self._now(clinic, now)
        booked = await self._booked_starts(clinic, now)
        return next_slots(
            clinic.schedule,
            booked,
            count=count or self.settings.suggested_slot_count,
            now=now,
            max_days=self.settings.next_slots_max_days,
            max_per_day=self.settings.max_slots_per_day,
        )

    async def is_bookable(self, clinic: ClinicProfile, start: datetime, now: Optional[datetime] = None) -> bool:
        """``True`` if ``start`` is a free grid slot on its clinic-local day."""
        tz = pytz.timezone(clinic.schedule.timezone)
        local_start = start.astimezone(tz)
        slots = await self.slots_for_date(
            clinic, local_start.date().isoformat(), limit=48, time_only=True, now=now
        )
        return any(datetime.fromisoformat(s.start) == local_start for s in slots)
