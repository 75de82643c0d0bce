"""
Clinic configuration models.
"""

import re
from datetime import date, datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..enums import PlanTier

_HHMM = re.compile(r"^([01]?\d|2[0-4]):([0-5]\d)$")

WEEKDAY_NAMES = ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]


class DayHours(BaseModel):
    """Opening window for one weekday, as clinic-local HH:MM strings."""

    model_config = ConfigDict(extra="ignore")

    open: str
    close: str

    @field_validator("open", "close")
    @classmethod
    def _check_hhmm(cls, value: str) -> str:
        value = value.strip()
        if not _HHMM.match(value):
            raise ValueError(f"expected HH:MM, got {value!r}")
        return value

    @staticmethod
    def to_minutes(value: str) -> int:
        hours, minutes = value.split(":")
        return int(hours) * 60 + int(minutes)


class Holiday(BaseModel):
    """Closure spanning one or more days (inclusive)."""

    model_config = ConfigDict(extra="ignore")

    start_date: date
    end_date: Optional[date] = None
    label: Optional[str] = None

    def covers(self, day: date) -> bool:
        return self.start_date <= day <= (self.end_date or self.start_date)


class ClinicScheduleConfig(BaseModel):
    """Everything the slot calculator needs to know about a clinic."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    clinic_id: str
    timezone: str
    # None or empty means "not configured"; a weekday mapped to None is closed
    working_hours: Optional[Dict[str, Optional[DayHours]]] = None
    insurance_accepted: bool = False
    insurance_notes: Optional[str] = None
    holidays: List[Holiday] = Field(default_factory=list)

    @field_validator("working_hours", mode="before")
    @classmethod
    def _lower_weekdays(cls, value):
        if isinstance(value, dict):
            return {str(k).strip().lower(): v for k, v in value.items()}
        return value

    def is_holiday(self, day: date) -> bool:
        return any(h.covers(day) for h in self.holidays)


class ClinicProfile(BaseModel):
    """Clinic record as resolved for one embed request."""

    model_config = ConfigDict(extra="ignore")

    id: str
    slug: str
    name: str
    plan: PlanTier = PlanTier.STARTER
    plan_expires_at: Optional[datetime] = None
    schedule: ClinicScheduleConfig
    address: Optional[str] = None
    phone: Optional[str] = None
    agent_name: Optional[str] = None
    agent_persona: Optional[str] = None
    locale: Optional[str] = None

    @field_validator("plan", mode="before")
    @classmethod
    def _normalize_plan(cls, value):
        if isinstance(value, PlanTier):
            return value
        return PlanTier.from_string(value)

    def is_expired(self, now: datetime) -> bool:
        return self.plan_expires_at is not None and self.plan_expires_at <= now
