"""Deterministic controller for the guided (chip-driven) conversation.

The :class:`DialogueStateMachine` takes the client-held
:class:`ConversationContext` plus one :class:`DialogueEvent` and returns the
next context with the message and chips to render. Every
:class:`ConversationState` has exactly one handler; adding a state without a
handler fails at import time.

Executor commits (book, reschedule, cancel) are keyed and tracked while in
flight. A duplicate submission of the same commit, from a double tap or a
retried request, is answered with ``ignored`` and ``busy`` set so the widget
keeps its loading indicator; a replay after success is caught by
``committed_key`` and, across workers, by the executor's Idempotency-Key.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Awaitable, Callable, Dict, List, Optional, Set

import pytz

from ...config import Settings, get_settings, has_plan_feature
from ...core.enums import ConversationState, DetailsStep, EventType
from ...core.exceptions import ExecutorError, RecordStoreError
from ...core.models import (
    Chip,
    ClinicProfile,
    ConversationContext,
    DialogueEvent,
    DialogueReply,
    VerifiedAppointment,
)
from ...utils.calendar import build_google_calendar_url
from ...utils.date import DateParser, parse_iso_datetime
from ...utils.event_log import log_event
from ...utils.logging import get_logger
from ...utils.validation import ValidationUtils
from ..executor import ExecutorClient, build_idempotency_key
from ..slots import AvailabilityService, format_working_hours
from ..slots.calculator import SLOT_DURATION, format_time
from . import messages as msg

logger = get_logger("clinic_receptionist.dialogue")

S = ConversationState

Handler = Callable[["DialogueStateMachine", ConversationContext, DialogueEvent], Awaitable[DialogueReply]]


class DialogueStateMachine:
    """Guided booking, verification, info and emergency flows for one clinic."""

    # Commit keys with an executor call in flight, shared by every request in this process
    _in_flight: Set[str] = set()

    def __init__(
        self,
        clinic: ClinicProfile,
        availability: AvailabilityService,
        executor: ExecutorClient,
        sig: Optional[str] = None,
        settings: Optional[Settings] = None,
    ):
        self.clinic = clinic
        self.availability = availability
        self.executor = executor
        self.sig = sig
        self.settings = settings or get_settings()
        self.tz = pytz.timezone(clinic.schedule.timezone)
        self.date_parser = DateParser(clinic.schedule.timezone)

    # ------------------------------------------------------------------
    def start(self) -> DialogueReply:
        """Reply for a brand new conversation."""
        return self._reply(ConversationContext(), msg.GREETING_MESSAGE, msg.GREETING_CHIPS)

    async def handle(self, ctx: ConversationContext, event: DialogueEvent) -> DialogueReply:
        """Apply ``event`` to ``ctx`` (in place) and return what to render."""
        # A busy flag echoed back by the client is always stale
        ctx.busy = False

        if event.type == EventType.CHIP and event.key == "gcal":
            # Opening the calendar link never changes state
            return DialogueReply(
                context=ctx, message=msg.MSG_CALENDAR, open_url=event.value,
                suggestions=self._suggestions_for(ctx),
            )

        before = ctx.state
        handler = self._HANDLERS[ctx.state]
        reply = await handler(self, ctx, event)
        if reply.context.state != before:
            log_event("state_transition", {
                "clinic": self.clinic.slug,
                "from": before.value,
                "to": reply.context.state.value,
                "event": event.key or event.type.value,
            })
        return reply

    # ------------------------------------------------------------------
    def _reply(
        self,
        ctx: ConversationContext,
        message: str,
        suggestions: List[Chip],
        state: Optional[ConversationState] = None,
    ) -> DialogueReply:
        if state is not None:
            ctx.state = state
        return DialogueReply(context=ctx, message=message, suggestions=display_suggestions(ctx.state, suggestions))

    def _suggestions_for(self, ctx: ConversationContext) -> List[Chip]:
        """Chips that belong to the current state, for re-prompts."""
        if ctx.state == S.GREETING:
            return msg.GREETING_CHIPS
        if ctx.state == S.BOOKING_REASON:
            return msg.SERVICE_CHIPS + [msg.BACK]
        if ctx.state == S.BOOKING_DATE:
            return self._day_chips(ctx)
        if ctx.state == S.MANAGE_BOOKING:
            return msg.MANAGE_CHIPS
        if ctx.state in (S.CLINIC_INFO, S.EMERGENCY):
            return msg.INFO_CHIPS if ctx.state == S.CLINIC_INFO else [msg.BACK]
        if ctx.state == S.BOOKING_SUCCESS:
            return self._success_chips(ctx)
        if ctx.state == S.CANCEL_SUCCESS:
            return msg.INFO_CHIPS
        return []

    def _pick_option(self, ctx: ConversationContext) -> DialogueReply:
        return self._reply(ctx, msg.MSG_PICK_OPTION, self._suggestions_for(ctx))

    def _to_greeting(self, ctx: ConversationContext, message: str = msg.GREETING_MESSAGE) -> DialogueReply:
        reset_flow(ctx)
        return self._reply(ctx, message, msg.GREETING_CHIPS, S.GREETING)

    def _format_start(self, iso_value: Optional[str]) -> str:
        parsed = parse_iso_datetime(iso_value or "", self.clinic.schedule.timezone)
        if parsed is None:
            return iso_value or ""
        local = parsed.astimezone(self.tz)
        return f"{local.strftime('%a %b')} {local.day}, {format_time(local)}"

    @staticmethod
    def _day_chips(ctx: ConversationContext) -> List[Chip]:
        return [Chip(key=f"date:{d.date}", label=d.label, value=d.date) for d in ctx.working_days] + [msg.BACK]

    async def _exclusive(
        self, ctx: ConversationContext, key: str, commit: Callable[[], Awaitable[DialogueReply]]
    ) -> DialogueReply:
        """Run ``commit`` unless the same commit is already in flight in this process.

        A duplicate submission gets an ignored reply with ``busy`` set, so the
        widget keeps its loading indicator until the first request answers.
        """
        if key in self._in_flight:
            logger.info(f"Ignoring duplicate submission for {self.clinic.slug}")
            ctx.busy = True
            return DialogueReply(context=ctx, message="", ignored=True)
        self._in_flight.add(key)
        try:
            return await commit()
        finally:
            self._in_flight.discard(key)

    # ------------------------------------------------------------------
    async def _on_greeting(self, ctx: ConversationContext, event: DialogueEvent) -> DialogueReply:
        key = event.key if event.type == EventType.CHIP else None
        if key == "book":
            return self._enter_booking_reason(ctx)
        if key == "change_cancel":
            ctx.verify_attempts = 0
            return self._reply(ctx, msg.MSG_VERIFY_PROMPT, [msg.BACK], S.VERIFY_ACCOUNT)
        if key == "clinic_info":
            location = self.clinic.address or self.clinic.name
            hours = format_working_hours(self.clinic.schedule)
            return self._reply(
                ctx, msg.MSG_CLINIC_INFO.format(location=location, hours=hours), msg.INFO_CHIPS, S.CLINIC_INFO
            )
        if key == "emergency":
            phone = self.clinic.phone or "the clinic"
            return self._reply(ctx, msg.MSG_EMERGENCY.format(phone=phone), [msg.BACK], S.EMERGENCY)
        return self._pick_option(ctx)

    def _enter_booking_reason(self, ctx: ConversationContext) -> DialogueReply:
        reset_flow(ctx)
        return self._reply(ctx, msg.MSG_BOOKING_REASON, msg.SERVICE_CHIPS + [msg.BACK], S.BOOKING_REASON)

    async def _on_booking_reason(self, ctx: ConversationContext, event: DialogueEvent) -> DialogueReply:
        if event.type != EventType.CHIP:
            return self._pick_option(ctx)
        if event.key == "back":
            return self._to_greeting(ctx)
        if event.key not in msg.SERVICE_KEYS:
            return self._pick_option(ctx)

        ctx.service = event.key
        return await self._enter_booking_date(ctx)

    async def _enter_booking_date(self, ctx: ConversationContext) -> DialogueReply:
        try:
            ctx.working_days = await self.availability.working_days(self.clinic)
        except RecordStoreError:
            logger.exception(f"Working days lookup failed for {self.clinic.slug}")
            ctx.working_days = []
        ctx.selected_date = None
        ctx.slot_start = ctx.slot_end = None
        if not ctx.working_days:
            return self._reply(ctx, msg.MSG_NO_DAYS, [msg.BACK], S.BOOKING_DATE)
        return self._reply(ctx, msg.MSG_PICK_DAY, self._day_chips(ctx), S.BOOKING_DATE)

    async def _on_booking_date(self, ctx: ConversationContext, event: DialogueEvent) -> DialogueReply:
        if event.type == EventType.CHIP and event.key == "back":
            ctx.working_days = []
            if ctx.reschedule:
                return self._reply(ctx, msg.MSG_PICK_OPTION, msg.MANAGE_CHIPS, S.MANAGE_BOOKING)
            ctx.service = None
            return self._reply(ctx, msg.MSG_BOOKING_REASON, msg.SERVICE_CHIPS + [msg.BACK], S.BOOKING_REASON)

        if event.type == EventType.CHIP:
            date_str = event.value or (event.key or "").removeprefix("date:")
        else:
            date_str = self.date_parser.parse_natural_date(event.text or "")
        if not date_str or not _is_iso_date(date_str):
            return self._reply(ctx, msg.MSG_BAD_DATE, self._day_chips(ctx))

        return await self._enter_booking_time(ctx, date_str)

    async def _enter_booking_time(
        self, ctx: ConversationContext, date_str: str, message: str = msg.MSG_CHOOSE_SLOT
    ) -> DialogueReply:
        try:
            slots = await self.availability.slots_for_date(self.clinic, date_str)
        except RecordStoreError:
            logger.exception(f"Slot lookup failed for {self.clinic.slug} on {date_str}")
            slots = []
        ctx.selected_date = date_str
        ctx.slot_start = ctx.slot_end = None
        if not slots:
            return self._reply(ctx, msg.MSG_NO_SLOTS_DAY, [msg.BACK], S.BOOKING_TIME)
        chips = [Chip(key=f"slot:{s.start}", label=s.label, value=s.start) for s in slots]
        return self._reply(ctx, message, chips, S.BOOKING_TIME)

    async def _on_booking_time(self, ctx: ConversationContext, event: DialogueEvent) -> DialogueReply:
        if event.type == EventType.CHIP and event.key == "back":
            return await self._enter_booking_date(ctx)
        raw = ""
        if event.type == EventType.CHIP:
            raw = event.value or (event.key or "").removeprefix("slot:")
        start = parse_iso_datetime(raw, self.clinic.schedule.timezone) if raw else None
        if start is None:
            if ctx.selected_date:
                return await self._enter_booking_time(ctx, ctx.selected_date, msg.MSG_PICK_OPTION)
            return self._reply(ctx, msg.MSG_PICK_OPTION, [msg.BACK])

        local_start = start.astimezone(self.tz)
        ctx.slot_start = local_start.isoformat()
        ctx.slot_end = self.tz.normalize(local_start + SLOT_DURATION).isoformat()

        if ctx.reschedule:
            key = build_idempotency_key({
                "clinic": self.clinic.slug,
                "action": "modify",
                "email": ctx.verified_email,
                "start": ctx.slot_start,
            })
            return await self._exclusive(ctx, key, lambda: self._commit_reschedule(ctx, start))

        ctx.details_step = DetailsStep.NAME
        return self._reply(ctx, msg.MSG_ENTER_NAME, [], S.PATIENT_DETAILS)

    async def _commit_reschedule(self, ctx: ConversationContext, start: datetime) -> DialogueReply:
        day = ctx.selected_date or start.astimezone(self.tz).date().isoformat()
        try:
            bookable = await self.availability.is_bookable(self.clinic, start)
        except RecordStoreError:
            logger.exception(f"Availability re-check failed for {self.clinic.slug}")
            return await self._enter_booking_time(ctx, day, msg.MSG_CALL_CLINIC)
        if not bookable:
            return await self._enter_booking_time(ctx, day, msg.MSG_SLOT_TAKEN)

        try:
            result = await self.executor.modify_appointment(
                self.clinic.slug, self.sig, ctx.slot_start, ctx.slot_end,
                patient_email=ctx.verified_email,
            )
        except ExecutorError:
            logger.exception(f"Reschedule failed for {self.clinic.slug}")
            return await self._enter_booking_time(ctx, day, msg.MSG_CALL_CLINIC)

        if not result.ok:
            return await self._enter_booking_time(ctx, day, result.error or msg.MSG_CALL_CLINIC)
        log_event("appointment_rescheduled", {"clinic": self.clinic.slug})
        return self._to_greeting(ctx, msg.MSG_RESCHEDULED)

    async def _on_patient_details(self, ctx: ConversationContext, event: DialogueEvent) -> DialogueReply:
        if event.type == EventType.CHIP:
            if event.key == "back" and ctx.selected_date:
                return await self._enter_booking_time(ctx, ctx.selected_date)
            return self._reply(ctx, _details_prompt(ctx.details_step), [])

        text = (event.text or "").strip()
        if ctx.details_step == DetailsStep.NAME:
            ok, error = ValidationUtils.validate_name(text)
            if not ok:
                return self._reply(ctx, error, [])
            ctx.patient_name = text
            ctx.details_step = DetailsStep.EMAIL
            return self._reply(ctx, msg.MSG_ENTER_EMAIL, [])

        if ctx.details_step == DetailsStep.EMAIL:
            email = ValidationUtils.extract_email(text) or text
            ok, error = ValidationUtils.validate_email(email)
            if not ok:
                return self._reply(ctx, error, [])
            ctx.patient_email = ValidationUtils.normalize_email(email)
            if has_plan_feature(self.clinic.plan, "whatsapp_collection"):
                ctx.details_step = DetailsStep.WHATSAPP
                return self._reply(ctx, msg.MSG_ENTER_WHATSAPP, [])
            return await self._submit_booking(ctx)

        ok, error = ValidationUtils.validate_phone(text)
        if not ok:
            return self._reply(ctx, error, [])
        ctx.patient_phone = ValidationUtils.normalize_phone(text)
        return await self._submit_booking(ctx)

    async def _submit_booking(self, ctx: ConversationContext) -> DialogueReply:
        if not (ctx.slot_start and ctx.slot_end and ctx.patient_name and (ctx.patient_email or ctx.patient_phone)):
            return self._reply(ctx, msg.MSG_DETAILS_INCOMPLETE, [])

        key = build_idempotency_key({
            "clinic": self.clinic.slug,
            "start": ctx.slot_start,
            "name": ctx.patient_name,
            "email": ctx.patient_email,
            "phone": ctx.patient_phone,
        })
        if ctx.committed_key == key:
            return self._booking_success(ctx)

        start = parse_iso_datetime(ctx.slot_start, self.clinic.schedule.timezone)
        if start is None:
            return self._reply(ctx, msg.MSG_DETAILS_INCOMPLETE, [])
        return await self._exclusive(ctx, key, lambda: self._commit_booking(ctx, key, start))

    async def _commit_booking(self, ctx: ConversationContext, key: str, start: datetime) -> DialogueReply:
        try:
            bookable = await self.availability.is_bookable(self.clinic, start)
        except RecordStoreError:
            logger.exception(f"Availability re-check failed for {self.clinic.slug}")
            return self._reply(ctx, msg.MSG_BOOKING_FAILED, [])
        if not bookable:
            day = ctx.selected_date or start.astimezone(self.tz).date().isoformat()
            return await self._enter_booking_time(ctx, day, msg.MSG_SLOT_TAKEN)

        try:
            result = await self.executor.confirm_booking(
                self.clinic.slug,
                self.sig,
                patient_name=ctx.patient_name,
                start_time=ctx.slot_start,
                end_time=ctx.slot_end,
                patient_email=ctx.patient_email,
                patient_phone=ctx.patient_phone,
                reason=ctx.service,
            )
        except ExecutorError:
            logger.exception(f"Booking commit failed for {self.clinic.slug}")
            return self._reply(ctx, msg.MSG_BOOKING_FAILED, [])

        if not result.ok:
            return self._reply(ctx, result.error or msg.MSG_BOOKING_FAILED, [])

        ctx.committed_key = key
        log_event("appointment_booked", {"clinic": self.clinic.slug, "service": ctx.service})
        return self._booking_success(ctx)

    def _booking_success(self, ctx: ConversationContext) -> DialogueReply:
        ctx.last_booked_start, ctx.last_booked_end = ctx.slot_start, ctx.slot_end
        message = msg.MSG_BOOKED.format(start=self._format_start(ctx.slot_start))
        return self._reply(ctx, message, self._success_chips(ctx), S.BOOKING_SUCCESS)

    def _calendar_links_enabled(self) -> bool:
        if not has_plan_feature(self.clinic.plan, "google_calendar_link"):
            return False
        allowed = [loc.lower() for loc in self.settings.calendar_link_locales]
        return not allowed or (self.clinic.locale or "").lower() in allowed

    def _success_chips(self, ctx: ConversationContext) -> List[Chip]:
        chips = [Chip(key="book_another", label="Book another"), msg.BACK]
        if not (self._calendar_links_enabled() and ctx.last_booked_start and ctx.last_booked_end):
            return chips
        start = parse_iso_datetime(ctx.last_booked_start, self.clinic.schedule.timezone)
        end = parse_iso_datetime(ctx.last_booked_end, self.clinic.schedule.timezone)
        if start is None or end is None:
            return chips
        details = self.clinic.name + (f" - {self.clinic.address}" if self.clinic.address else "")
        url = build_google_calendar_url(
            f"Appointment at {self.clinic.name}", start, end, details=details, location=self.clinic.address
        )
        return [Chip(key="gcal", label="Add to Google Calendar", value=url)] + chips

    async def _on_verify_account(self, ctx: ConversationContext, event: DialogueEvent) -> DialogueReply:
        max_attempts = self.settings.verify_max_attempts
        if event.type == EventType.CHIP:
            if event.key == "back":
                return self._to_greeting(ctx)
            if event.key == "book":
                return self._enter_booking_reason(ctx)
            return self._reply(ctx, msg.MSG_VERIFY_PROMPT, [msg.BACK])

        if ctx.verify_attempts >= max_attempts:
            return self._reply(ctx, msg.MSG_VERIFY_EXHAUSTED, msg.INFO_CHIPS)

        email = ValidationUtils.extract_email(event.text or "")
        result = None
        if email and ValidationUtils.validate_email(email)[0]:
            try:
                result = await self.executor.verify_patient(self.clinic.slug, self.sig, patient_email=email)
            except ExecutorError:
                logger.exception(f"Patient verification failed for {self.clinic.slug}")
                return self._reply(ctx, msg.MSG_CALL_CLINIC, [msg.BACK])

        if result is None or not result.ok:
            ctx.verify_attempts += 1
            log_event("verify_failed", {"clinic": self.clinic.slug, "attempt": ctx.verify_attempts})
            if ctx.verify_attempts >= max_attempts:
                return self._reply(ctx, msg.MSG_VERIFY_EXHAUSTED, msg.INFO_CHIPS)
            return self._reply(
                ctx,
                msg.MSG_VERIFY_FAILED.format(attempt=ctx.verify_attempts, max_attempts=max_attempts),
                [msg.BACK],
            )

        ctx.verify_attempts = 0
        upcoming = _sorted_upcoming(result.appointments, self.clinic.schedule.timezone)
        if not upcoming:
            return self._reply(ctx, msg.MSG_NO_UPCOMING, msg.INFO_CHIPS)
        ctx.verified_email = email
        ctx.verified_appointments = upcoming
        message = msg.MSG_WELCOME_BACK.format(start=self._format_start(upcoming[0].start_time))
        return self._reply(ctx, message, msg.MANAGE_CHIPS, S.MANAGE_BOOKING)

    async def _on_manage_booking(self, ctx: ConversationContext, event: DialogueEvent) -> DialogueReply:
        key = event.key if event.type == EventType.CHIP else None
        if key == "back":
            return self._to_greeting(ctx)
        if key == "reschedule":
            ctx.reschedule = True
            return await self._enter_booking_date(ctx)
        if key != "cancel_appointment":
            return self._pick_option(ctx)

        cancel_key = build_idempotency_key({
            "clinic": self.clinic.slug, "action": "cancel", "email": ctx.verified_email,
        })
        return await self._exclusive(ctx, cancel_key, lambda: self._commit_cancel(ctx))

    async def _commit_cancel(self, ctx: ConversationContext) -> DialogueReply:
        try:
            result = await self.executor.cancel_appointment(
                self.clinic.slug, self.sig, patient_email=ctx.verified_email
            )
        except ExecutorError:
            logger.exception(f"Cancel failed for {self.clinic.slug}")
            return self._reply(ctx, msg.MSG_CALL_CLINIC, msg.MANAGE_CHIPS)
        if not result.ok:
            return self._reply(ctx, result.error or msg.MSG_CALL_CLINIC, msg.MANAGE_CHIPS)

        log_event("appointment_cancelled", {"clinic": self.clinic.slug})
        reset_flow(ctx)
        return self._reply(ctx, msg.MSG_CANCELLED, msg.INFO_CHIPS, S.CANCEL_SUCCESS)

    async def _on_info(self, ctx: ConversationContext, event: DialogueEvent) -> DialogueReply:
        key = event.key if event.type == EventType.CHIP else None
        if key == "back":
            return self._to_greeting(ctx)
        if key == "book" and ctx.state == S.CLINIC_INFO:
            return self._enter_booking_reason(ctx)
        return self._pick_option(ctx)

    async def _on_finished(self, ctx: ConversationContext, event: DialogueEvent) -> DialogueReply:
        key = event.key if event.type == EventType.CHIP else None
        if key == "book_another" or key == "book":
            return self._enter_booking_reason(ctx)
        if key == "back":
            return self._to_greeting(ctx)
        return self._pick_option(ctx)

    _HANDLERS: Dict[ConversationState, Handler] = {
        S.GREETING: _on_greeting,
        S.BOOKING_REASON: _on_booking_reason,
        S.BOOKING_DATE: _on_booking_date,
        S.BOOKING_TIME: _on_booking_time,
        S.PATIENT_DETAILS: _on_patient_details,
        S.VERIFY_ACCOUNT: _on_verify_account,
        S.MANAGE_BOOKING: _on_manage_booking,
        S.CLINIC_INFO: _on_info,
        S.EMERGENCY: _on_info,
        S.BOOKING_SUCCESS: _on_finished,
        S.CANCEL_SUCCESS: _on_finished,
    }


_unhandled = set(ConversationState) - set(DialogueStateMachine._HANDLERS)
if _unhandled:
    raise RuntimeError(f"Dialogue states without a handler: {sorted(s.value for s in _unhandled)}")


def display_suggestions(state: ConversationState, suggestions: List[Chip]) -> List[Chip]:
    """Chips as rendered; time-slot lists always end with a single Back."""
    if state == S.BOOKING_TIME and not any(c.key == "back" for c in suggestions):
        return list(suggestions) + [msg.BACK]
    return list(suggestions)


def reset_flow(ctx: ConversationContext) -> None:
    """Drop every accumulated flow variable except the last committed booking."""
    fresh = ConversationContext()
    for name in (
        "service", "selected_date", "slot_start", "slot_end", "working_days",
        "details_step", "patient_name", "patient_email", "patient_phone",
        "verify_attempts", "verified_email", "verified_appointments", "reschedule",
    ):
        setattr(ctx, name, getattr(fresh, name))


def _details_prompt(step: DetailsStep) -> str:
    return {
        DetailsStep.NAME: msg.MSG_ENTER_NAME,
        DetailsStep.EMAIL: msg.MSG_ENTER_EMAIL,
        DetailsStep.WHATSAPP: msg.MSG_ENTER_WHATSAPP,
    }[step]


def _is_iso_date(value: str) -> bool:
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except ValueError:
        return False
    return True


def _sorted_upcoming(appointments: List[VerifiedAppointment], tz_name: str) -> List[VerifiedAppointment]:
    now = datetime.now(pytz.utc) - timedelta(minutes=1)
    upcoming = []
    for appt in appointments:
        start = parse_iso_datetime(appt.start_time, tz_name)
        if start is not None and start > now:
            upcoming.append((start, appt))
    upcoming.sort(key=lambda pair: pair[0])
    return [appt for _, appt in upcoming]
