"""
Booking/modification executor client.

The executor durably creates, moves and cancels appointments and sends the
notifications that go with them. This client only speaks its HTTP contract.
"""

import hashlib
import json
from typing import Any, Dict, Optional

import httpx

from ...config import Settings, get_settings
from ...core.exceptions import ExecutorError
from ...core.models import ExecutorResult, VerifyResult
from ...utils.logging import get_logger

logger = get_logger("clinic_receptionist.executor")


def build_idempotency_key(payload: Dict[str, Any]) -> str:
    """Stable key for a commit payload so a retried request is recognised."""
    relevant = {k: v for k, v in payload.items() if k != "sig" and v is not None}
    raw = json.dumps(relevant, sort_keys=True, ensure_ascii=False)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()


class ExecutorClient:
    """HTTP client for the executor endpoints."""

    CONFIRM_BOOKING = "/api/embed/confirm-booking"
    MODIFY_CANCEL = "/api/embed/modify-cancel"
    VERIFY_PATIENT = "/api/embed/verify-patient"
    HUMAN_TAKEOVER = "/api/embed/human-takeover"

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.base_url = self.settings.executor_api_base.rstrip("/")
        self.timeout = self.settings.external_timeout

    async def _post(
        self, path: str, data: Dict[str, Any], headers: Optional[Dict[str, str]] = None
    ) -> Dict[str, Any]:
        """POST JSON and return the decoded body.

        Error statuses that still carry a JSON object are returned as-is so
        the caller sees ``{ok: false, error}``; anything else raises.
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}{path}", json=data, headers=headers or {}
                )
        except httpx.TimeoutException as e:
            raise ExecutorError("Executor request timed out") from e
        except httpx.HTTPError as e:
            raise ExecutorError(f"Executor request failed: {e}") from e

        try:
            body = response.json()
        except ValueError as e:
            raise ExecutorError(f"Executor returned non-JSON (HTTP {response.status_code})") from e
        if not isinstance(body, dict):
            raise ExecutorError(f"Executor returned unexpected body (HTTP {response.status_code})")

        if response.is_error:
            logger.warning(f"Executor {path} answered HTTP {response.status_code}: {body.get('error')}")
            body.setdefault("ok", False)
        return body

    @staticmethod
    def _result(body: Dict[str, Any]) -> ExecutorResult:
        ok = body.get("ok") is True
        error = None if ok else (body.get("error") or "Request failed")
        return ExecutorResult(ok=ok, error=error)

    async def confirm_booking(
        self,
        clinic_slug: str,
        sig: Optional[str],
        patient_name: str,
        start_time: str,
        end_time: str,
        patient_email: Optional[str] = None,
        patient_phone: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> ExecutorResult:
        """Create an appointment; sends an Idempotency-Key header."""
        payload = {
            "clinicSlug": clinic_slug,
            "sig": sig,
            "patient_name": patient_name,
            "patient_email": patient_email,
            "patient_phone": patient_phone,
            "start_time": start_time,
            "end_time": end_time,
            "reason": reason,
        }
        payload = {k: v for k, v in payload.items() if v is not None}
        headers = {"Idempotency-Key": build_idempotency_key(payload)}
        return self._result(await self._post(self.CONFIRM_BOOKING, payload, headers))

    async def modify_appointment(
        self,
        clinic_slug: str,
        sig: Optional[str],
        new_start_time: str,
        new_end_time: str,
        patient_email: Optional[str] = None,
        patient_whatsapp: Optional[str] = None,
    ) -> ExecutorResult:
        """Move the patient's next appointment."""
        payload = {
            "clinicSlug": clinic_slug,
            "sig": sig,
            "action": "modify",
            "patient_email": patient_email,
            "patient_whatsapp": patient_whatsapp,
            "new_start_time": new_start_time,
            "new_end_time": new_end_time,
        }
        payload = {k: v for k, v in payload.items() if v is not None}
        headers = {"Idempotency-Key": build_idempotency_key(payload)}
        return self._result(await self._post(self.MODIFY_CANCEL, payload, headers))

    async def cancel_appointment(
        self,
        clinic_slug: str,
        sig: Optional[str],
        patient_email: Optional[str] = None,
        patient_whatsapp: Optional[str] = None,
    ) -> ExecutorResult:
        """Cancel the patient's next appointment."""
        payload = {
            "clinicSlug": clinic_slug,
            "sig": sig,
            "action": "cancel",
            "patient_email": patient_email,
            "patient_whatsapp": patient_whatsapp,
        }
        payload = {k: v for k, v in payload.items() if v is not None}
        return self._result(await self._post(self.MODIFY_CANCEL, payload))

    async def verify_patient(
        self,
        clinic_slug: str,
        sig: Optional[str],
        patient_email: Optional[str] = None,
        patient_whatsapp: Optional[str] = None,
    ) -> VerifyResult:
        """Look up a patient's upcoming appointments."""
        payload = {
            "clinicSlug": clinic_slug,
            "sig": sig,
            "patient_email": patient_email,
            "patient_whatsapp": patient_whatsapp,
        }
        payload = {k: v for k, v in payload.items() if v is not None}
        body = await self._post(self.VERIFY_PATIENT, payload)
        if body.get("ok") is not True:
            return VerifyResult(ok=False, error=body.get("error") or "Not found")
        return VerifyResult.model_validate(body)

    async def notify_human_takeover(
        self, clinic_slug: str, sig: Optional[str], reason: str
    ) -> bool:
        """Ask the platform to alert the clinic owner. Never raises."""
        try:
            body = await self._post(
                self.HUMAN_TAKEOVER,
                {"clinicSlug": clinic_slug, "sig": sig, "reason": reason},
            )
        except ExecutorError as e:
            logger.error(f"Human takeover notification failed for {clinic_slug}: {e}")
            return False
        return body.get("ok") is True
