"""
Record store adapter.

Clinics, patients and appointments live in an external store reached over a
small REST surface. The engine only reads from it.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx
import pytz
from pydantic import ValidationError

from ...config import Settings, get_settings
from ...core.enums import ACTIVE_STATUSES
from ...core.exceptions import ClinicNotFoundError, RecordStoreError
from ...core.models import ClinicProfile
from ...utils.logging import get_logger

logger = get_logger("clinic_receptionist.store")


class ClinicStore(ABC):
    """Read access to clinic records."""

    @abstractmethod
    async def get_clinic(
        self, slug: str, location_id: Optional[str] = None, agent_id: Optional[str] = None
    ) -> ClinicProfile:
        """Resolve a clinic, with location/agent overrides applied."""

    @abstractmethod
    async def list_booked_starts(self, clinic_id: str, start: datetime, end: datetime) -> List[str]:
        """Start times of active appointments in ``[start, end)``."""

    @abstractmethod
    async def find_patient_name(self, clinic_id: str, email: str) -> Optional[str]:
        """Full name of a known patient, if any."""


def profile_from_record(record: Dict[str, Any], default_timezone: str) -> ClinicProfile:
    """Build a :class:`ClinicProfile` from a flat store record."""
    tz_name = record.get("timezone") or default_timezone
    if tz_name not in pytz.all_timezones_set:
        logger.warning(f"Clinic {record.get('slug')} has unknown timezone {tz_name!r}; using {default_timezone}")
        tz_name = default_timezone

    schedule = {
        "clinic_id": str(record["id"]),
        "timezone": tz_name,
        "working_hours": record.get("working_hours") or None,
        "insurance_accepted": bool(record.get("insurance_accepted")),
        "insurance_notes": record.get("insurance_notes"),
        "holidays": record.get("holidays") or [],
    }
    return ClinicProfile(
        id=str(record["id"]),
        slug=record.get("slug") or "",
        name=record.get("name") or "the clinic",
        plan=record.get("plan"),
        plan_expires_at=record.get("plan_expires_at"),
        schedule=schedule,
        address=record.get("address"),
        phone=record.get("phone"),
        agent_name=record.get("agent_name"),
        agent_persona=record.get("agent_persona"),
        locale=record.get("locale"),
    )


class RestClinicStore(ClinicStore):
    """Clinic store backed by the platform's internal REST API."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.base_url = self.settings.store_api_base.rstrip("/")
        self.timeout = self.settings.external_timeout

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.settings.store_api_token:
            headers["Authorization"] = f"Bearer {self.settings.store_api_token}"
        return headers

    async def _get(self, path: str, params: Optional[Dict] = None) -> Any:
        """GET with error mapping; returns ``None`` on 404."""
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.get(
                    f"{self.base_url}{path}", params=params, headers=self._headers()
                )
                if response.status_code == 404:
                    return None
                response.raise_for_status()
                return response.json()
        except httpx.TimeoutException as e:
            raise RecordStoreError("Record store timed out") from e
        except httpx.HTTPStatusError as e:
            raise RecordStoreError(f"Record store HTTP error {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            raise RecordStoreError(f"Record store request failed: {e}") from e

    async def get_clinic(
        self, slug: str, location_id: Optional[str] = None, agent_id: Optional[str] = None
    ) -> ClinicProfile:
        params = {}
        if location_id:
            params["location"] = location_id
        if agent_id:
            params["agent"] = agent_id

        record = await self._get(f"/clinics/{slug.strip().lower()}", params=params)
        if not record:
            raise ClinicNotFoundError(f"No clinic for slug {slug!r}")
        try:
            return profile_from_record(record.get("data", record), self.settings.timezone)
        except (KeyError, ValidationError) as e:
            raise RecordStoreError(f"Malformed clinic record for {slug!r}: {e}") from e

    async def list_booked_starts(self, clinic_id: str, start: datetime, end: datetime) -> List[str]:
        params = {
            "from": start.isoformat(),
            "to": end.isoformat(),
            "status": ",".join(s.value for s in ACTIVE_STATUSES),
        }
        result = await self._get(f"/clinics/{clinic_id}/appointments", params=params) or {}
        rows = result.get("data", []) if isinstance(result, dict) else result
        return [row["start_time"] for row in rows if row.get("start_time")]

    async def find_patient_name(self, clinic_id: str, email: str) -> Optional[str]:
        result = await self._get(f"/clinics/{clinic_id}/patients", params={"email": email})
        if not result:
            return None
        record = result.get("data", result) if isinstance(result, dict) else None
        if isinstance(record, list):
            record = record[0] if record else None
        if not record:
            return None
        name = (record.get("full_name") or "").strip()
        return name or None
