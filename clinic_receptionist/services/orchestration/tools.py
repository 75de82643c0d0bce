"""
Tools offered to the completion service and their local execution.

Every argument is re-validated here before the executor sees it; the
conversation is client-held and the model may hallucinate values.
"""

import json
from datetime import datetime
from typing import Any, Dict, List, Optional

import pytz

from ...config import has_plan_feature
from ...core.enums import PlanTier, ToolName
from ...core.exceptions import ExecutorError, RecordStoreError
from ...core.models import ClinicProfile, ToolResult
from ...utils.date import parse_iso_datetime
from ...utils.event_log import log_event
from ...utils.logging import get_logger
from ...utils.validation import ValidationUtils
from ..executor import ExecutorClient
from ..slots import AvailabilityService
from ..slots.calculator import SLOT_DURATION

logger = get_logger("clinic_receptionist.tools")

BOOK_APPOINTMENT_TOOL = {
    "type": "function",
    "function": {
        "name": ToolName.BOOK_APPOINTMENT.value,
        "description": (
            "Call when you have preferred date, time, name, and at least one of email or WhatsApp. "
            "Creates the appointment."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "patient_name": {"type": "string", "description": "Full name"},
                "patient_email": {"type": "string", "description": "Email (optional if patient_whatsapp provided)"},
                "patient_whatsapp": {"type": "string", "description": "WhatsApp/phone (optional if patient_email provided)"},
                "start_time": {"type": "string", "description": "ISO 8601 e.g. 2025-02-25T14:00:00-05:00"},
                "end_time": {"type": "string", "description": "ISO 8601, 30 min after start"},
            },
            "required": ["patient_name", "start_time", "end_time"],
        },
    },
}

MODIFY_APPOINTMENT_TOOL = {
    "type": "function",
    "function": {
        "name": ToolName.MODIFY_APPOINTMENT.value,
        "description": "Move the patient's next appointment. Needs email or WhatsApp and the new time.",
        "parameters": {
            "type": "object",
            "properties": {
                "patient_email": {"type": "string"},
                "patient_whatsapp": {"type": "string"},
                "new_start_time": {"type": "string", "description": "ISO 8601"},
                "new_end_time": {"type": "string", "description": "ISO 8601, 30 min after start"},
            },
            "required": ["new_start_time", "new_end_time"],
        },
    },
}

CANCEL_APPOINTMENT_TOOL = {
    "type": "function",
    "function": {
        "name": ToolName.CANCEL_APPOINTMENT.value,
        "description": "Cancel the patient's next appointment. Needs email or WhatsApp.",
        "parameters": {
            "type": "object",
            "properties": {
                "patient_email": {"type": "string"},
                "patient_whatsapp": {"type": "string"},
            },
            "required": [],
        },
    },
}

MSG_NEED_CONTACT = "Please share your email or WhatsApp number so I can do that for you."
MSG_NEED_NAME = "Could you tell me your full name?"
MSG_NEED_TIME = "Which day and time would you like?"
MSG_BOOKED = "You're booked! We sent you a confirmation. Need to change or cancel later? Just type 'change' or 'cancel' anytime."
MSG_RESCHEDULED = "Your appointment has been moved. We sent you an updated confirmation."
MSG_CANCELLED = "Your appointment has been cancelled."
MSG_FAILED = "Sorry, I couldn't complete that. Please try again or call the clinic."


def tool_schemas_for(plan: PlanTier) -> List[Dict[str, Any]]:
    """Tools the model may call for a clinic on ``plan``."""
    tools = [BOOK_APPOINTMENT_TOOL]
    if has_plan_feature(plan, "modify_cancel_via_ai"):
        tools += [MODIFY_APPOINTMENT_TOOL, CANCEL_APPOINTMENT_TOOL]
    return tools


def _arg(args: Dict[str, Any], name: str) -> Optional[str]:
    value = args.get(name)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


class ToolExecutor:
    """Validate and execute one model tool call for a clinic."""

    def __init__(
        self,
        clinic: ClinicProfile,
        sig: Optional[str],
        executor: ExecutorClient,
        availability: AvailabilityService,
    ):
        self.clinic = clinic
        self.sig = sig
        self.executor = executor
        self.availability = availability
        self.tz = pytz.timezone(clinic.schedule.timezone)

    async def run(self, name: str, raw_arguments: Optional[str], now: Optional[datetime] = None) -> ToolResult:
        """Execute tool ``name``; never raises for bad input or executor failures."""
        try:
            args = json.loads(raw_arguments or "{}")
        except json.JSONDecodeError:
            args = None
        if not isinstance(args, dict):
            logger.warning(f"Unreadable arguments for tool {name}")
            return ToolResult(False, "Tool arguments were unreadable. Ask the patient to repeat the details.", MSG_FAILED)

        handlers = {
            ToolName.BOOK_APPOINTMENT.value: self._book,
            ToolName.MODIFY_APPOINTMENT.value: self._modify,
            ToolName.CANCEL_APPOINTMENT.value: self._cancel,
        }
        handler = handlers.get(name)
        if handler is None or (
            name != ToolName.BOOK_APPOINTMENT.value
            and not has_plan_feature(self.clinic.plan, "modify_cancel_via_ai")
        ):
            return ToolResult(False, f"Tool {name} is not available. Ask the patient to call the clinic.", MSG_FAILED)

        now = now or datetime.now(self.tz)
        result = await handler(args, now)
        log_event("tool_call", {"clinic": self.clinic.slug, "tool": name, "ok": result.ok})
        return result

    def _contact(self, args: Dict[str, Any]):
        """Return (email, whatsapp, error_result)."""
        email = _arg(args, "patient_email")
        whatsapp = _arg(args, "patient_whatsapp")
        if not email and not whatsapp:
            return None, None, ToolResult(
                False,
                "Not done: need at least email or WhatsApp. Ask the patient for one.",
                MSG_NEED_CONTACT,
            )
        if email:
            ok, error = ValidationUtils.validate_email(email)
            if not ok:
                return None, None, ToolResult(False, f"Not done: invalid email ({error}). Ask for a valid one.", error)
            email = ValidationUtils.normalize_email(email)
        if whatsapp:
            ok, error = ValidationUtils.validate_phone(whatsapp)
            if not ok:
                return None, None, ToolResult(False, f"Not done: invalid WhatsApp number ({error}). Ask again.", error)
            whatsapp = ValidationUtils.normalize_phone(whatsapp)
        return email, whatsapp, None

    async def _check_slot(self, raw_start: Optional[str], now: datetime):
        """Return (start, end, error_result) for a requested start time."""
        start = parse_iso_datetime(raw_start or "", self.clinic.schedule.timezone)
        if start is None:
            return None, None, ToolResult(False, "Not done: start time missing or not ISO 8601. Ask for date and time.", MSG_NEED_TIME)
        start = start.astimezone(self.tz)
        if start <= now:
            return None, None, ToolResult(False, "Not done: that time is in the past. Ask for a future time.", MSG_NEED_TIME)

        try:
            bookable = await self.availability.is_bookable(self.clinic, start, now=now)
            alternatives = [] if bookable else await self.availability.upcoming_slots(self.clinic, count=3, now=now)
        except RecordStoreError:
            logger.exception(f"Availability check failed for {self.clinic.slug}")
            return None, None, ToolResult(False, "Not done: availability could not be checked. Apologize.", MSG_FAILED)

        if not bookable:
            offer = ", ".join(s.label for s in alternatives) or "none in the next two weeks"
            return None, None, ToolResult(
                False,
                f"Not done: {start.isoformat()} is not an open slot. Offer these instead: {offer}.",
                f"Sorry, that time isn't available. Open times: {offer}.",
            )
        end = self.tz.normalize(start + SLOT_DURATION)
        return start, end, None

    async def _book(self, args: Dict[str, Any], now: datetime) -> ToolResult:
        name = _arg(args, "patient_name")
        email, whatsapp, error = self._contact(args)
        if error:
            return error
        ok, name_error = ValidationUtils.validate_name(name or "")
        if not ok:
            return ToolResult(False, f"Not done: {name_error} Ask for the patient's full name.", MSG_NEED_NAME)

        start, end, error = await self._check_slot(_arg(args, "start_time"), now)
        if error:
            return error

        try:
            result = await self.executor.confirm_booking(
                self.clinic.slug,
                self.sig,
                patient_name=name,
                start_time=start.isoformat(),
                end_time=end.isoformat(),
                patient_email=email,
                patient_phone=whatsapp,
            )
        except ExecutorError:
            logger.exception(f"Booking executor unreachable for {self.clinic.slug}")
            return ToolResult(False, "Booking failed: system unavailable. Apologize and ask them to try again or call the clinic.", MSG_FAILED)

        if not result.ok:
            return ToolResult(
                False,
                f"Booking failed: {result.error}. Apologize and ask them to try again or call the clinic.",
                MSG_FAILED,
            )
        return ToolResult(
            True,
            "Booked successfully. Tell the patient they are booked and we sent a confirmation. "
            "Then add: Need to change or cancel later? Just type 'change' or 'cancel' anytime.",
            MSG_BOOKED,
        )

    async def _modify(self, args: Dict[str, Any], now: datetime) -> ToolResult:
        email, whatsapp, error = self._contact(args)
        if error:
            return error
        start, end, error = await self._check_slot(_arg(args, "new_start_time"), now)
        if error:
            return error

        try:
            result = await self.executor.modify_appointment(
                self.clinic.slug,
                self.sig,
                new_start_time=start.isoformat(),
                new_end_time=end.isoformat(),
                patient_email=email,
                patient_whatsapp=whatsapp,
            )
        except ExecutorError:
            logger.exception(f"Modify executor unreachable for {self.clinic.slug}")
            return ToolResult(False, "Modify failed: system unavailable. Ask them to call the clinic.", MSG_FAILED)

        if not result.ok:
            return ToolResult(False, f"Failed: {result.error}. Ask them to call the clinic.", result.error or MSG_FAILED)
        return ToolResult(True, "Appointment rescheduled. Confirm to the patient.", MSG_RESCHEDULED)

    async def _cancel(self, args: Dict[str, Any], now: datetime) -> ToolResult:
        email, whatsapp, error = self._contact(args)
        if error:
            return error

        try:
            result = await self.executor.cancel_appointment(
                self.clinic.slug, self.sig, patient_email=email, patient_whatsapp=whatsapp
            )
        except ExecutorError:
            logger.exception(f"Cancel executor unreachable for {self.clinic.slug}")
            return ToolResult(False, "Cancel failed: system unavailable. Ask them to call the clinic.", MSG_FAILED)

        if not result.ok:
            return ToolResult(False, f"Failed: {result.error}. Ask them to call the clinic.", result.error or MSG_FAILED)
        return ToolResult(True, "Appointment cancelled. Confirm to the patient.", MSG_CANCELLED)
