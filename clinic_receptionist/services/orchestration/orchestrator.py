"""Free-text chat turn orchestration.

One call to :meth:`ChatOrchestrator.handle_turn` runs the whole pipeline for a
patient message: guard, quotas, short-circuit answers, prompt assembly,
history compression, and a bounded completion/tool loop. The loop resolves at
most one tool call per turn followed by exactly one follow-up completion.
"""

import asyncio
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

import openai
import pytz

from ...config import Settings, get_settings, get_usage_limits
from ...core.exceptions import (
    CompletionServiceError,
    CompletionTimeoutError,
    PlanExpiredError,
    RecordStoreError,
)
from ...core.models import (
    ChatMessage,
    ChatTurnRequest,
    ChatTurnResponse,
    ClinicProfile,
    Slot,
    SuggestedSlot,
)
from ...utils.event_log import log_event, set_turn_id
from ...utils.logging import get_logger
from ...utils.signature import hash_client_ip
from ...utils.validation import ValidationUtils
from ..executor import ExecutorClient
from ..guard import AbuseGuard, RateLimiter
from ..slots import AvailabilityService
from ..store import ClinicStore
from .compression import HistoryCompressor
from .intents import (
    has_booking_intent,
    has_fixed_date_or_time,
    hours_answer,
    insurance_answer,
    is_hours_only_question,
    is_insurance_only_question,
)
from .prompts import build_system_prompt
from .tools import ToolExecutor, tool_schemas_for

logger = get_logger("clinic_receptionist.orchestrator")

FALLBACK_MESSAGE = "Sorry, I didn't get that. Try: Book • Hours • Insurance? Or call the clinic."
TIMEOUT_MESSAGE = "Sorry, that took too long. Please send your message again, or call the clinic."

# Tool invocations resolved per turn; each is followed by one follow-up completion
MAX_TOOL_CALLS_PER_TURN = 1


class ChatOrchestrator:
    """Runs free-text chat turns against the completion service."""

    def __init__(
        self,
        store: ClinicStore,
        executor: ExecutorClient,
        availability: AvailabilityService,
        rate_limiter: RateLimiter,
        completion_client: Any,
        compressor: HistoryCompressor,
        guard: Optional[AbuseGuard] = None,
        settings: Optional[Settings] = None,
    ):
        self.store = store
        self.executor = executor
        self.availability = availability
        self.rate_limiter = rate_limiter
        self.client = completion_client
        self.compressor = compressor
        self.settings = settings or get_settings()
        self.guard = guard or AbuseGuard(self.settings)

    # ------------------------------------------------------------------
    def _clean_messages(self, request: ChatTurnRequest) -> List[ChatMessage]:
        limit = self.settings.message_max_chars
        return [
            ChatMessage(role=m.role, content=m.content.strip()[:limit])
            for m in request.messages
            if m.content and m.content.strip()
        ]

    async def handle_turn(
        self,
        request: ChatTurnRequest,
        client_ip: Optional[str] = None,
        now: Optional[datetime] = None,
    ) -> ChatTurnResponse:
        """Answer one free-text turn.

        Raises:
            ValueError: If the transcript has no user message.
            ClinicNotFoundError: If the slug matches no clinic.
            PlanExpiredError: If the clinic's plan has lapsed.
        """
        set_turn_id(uuid.uuid4().hex)
        messages = self._clean_messages(request)
        user_texts = [m.content for m in messages if m.role == "user"]
        if not user_texts:
            raise ValueError("messages must include a user message")

        decision = self.guard.classify(messages, request.failed_attempts)
        if decision.reject:
            log_event("guard_reject", {"clinic": request.clinic_slug, "reason": decision.reason})
            return ChatTurnResponse(
                message=decision.message,
                reset_conversation=decision.reset_conversation or None,
                failed_attempts=decision.failed_attempts,
            )

        if client_ip:
            ip_check = await self.rate_limiter.check_ip(hash_client_ip(client_ip), now=now)
            if not ip_check.allowed:
                return ChatTurnResponse(message=ip_check.message)

        try:
            clinic = await self.store.get_clinic(request.clinic_slug, request.location_id, request.agent_id)
        except RecordStoreError:
            logger.exception(f"Clinic lookup failed for {request.clinic_slug}")
            return ChatTurnResponse(message=FALLBACK_MESSAGE)

        tz = pytz.timezone(clinic.schedule.timezone)
        now = now.astimezone(tz) if now else datetime.now(tz)
        if clinic.is_expired(now):
            raise PlanExpiredError(f"Plan expired for {clinic.slug}")

        limits = get_usage_limits(clinic.plan)
        session = self.rate_limiter.check_session(len(messages), limits)
        if not session.allowed:
            return ChatTurnResponse(message=session.message)
        daily = await self.rate_limiter.check_clinic_day(clinic, limits, now=now)
        if not daily.allowed:
            return ChatTurnResponse(message=daily.message)

        if decision.human_takeover:
            log_event("human_takeover", {"clinic": clinic.slug})
            await self.executor.notify_human_takeover(clinic.slug, request.sig, "Patient asked for staff")

        reply = await self._answer(clinic, request, messages, user_texts, now)
        if decision.human_takeover:
            reply.message = f"{decision.message}\n\n{reply.message}"
            reply.human_takeover = True
        if request.failed_attempts:
            reply.failed_attempts = 0
        return reply

    # ------------------------------------------------------------------
    async def _answer(
        self,
        clinic: ClinicProfile,
        request: ChatTurnRequest,
        messages: List[ChatMessage],
        user_texts: List[str],
        now: datetime,
    ) -> ChatTurnResponse:
        last = user_texts[-1]
        if is_hours_only_question(last):
            log_event("short_circuit", {"clinic": clinic.slug, "intent": "hours"})
            return ChatTurnResponse(message=hours_answer(clinic.schedule))
        if is_insurance_only_question(last):
            log_event("short_circuit", {"clinic": clinic.slug, "intent": "insurance"})
            return ChatTurnResponse(message=insurance_answer(clinic.schedule))

        returning_name = await self._returning_patient(clinic, user_texts)
        slots = await self._suggest_slots(clinic, user_texts, request.selected_date, now)
        prompt = build_system_prompt(clinic, now, returning_name, slots)

        history = [{"role": m.role, "content": m.content} for m in messages]
        history = await self.compressor.compress(history)

        tools = ToolExecutor(clinic, request.sig, self.executor, self.availability)
        text = await self._complete_with_tools(clinic, prompt, history, tools, now)
        return ChatTurnResponse(
            message=text,
            suggested_slots=[SuggestedSlot(label=s.label, value=s.start) for s in slots] or None,
        )

    async def _returning_patient(self, clinic: ClinicProfile, user_texts: List[str]) -> Optional[str]:
        email = next(
            (e for e in (ValidationUtils.extract_email(t) for t in reversed(user_texts)) if e), None
        )
        if not email:
            return None
        try:
            return await self.store.find_patient_name(clinic.id, email)
        except RecordStoreError:
            logger.exception(f"Returning patient lookup failed for {clinic.slug}")
            return None

    async def _suggest_slots(
        self,
        clinic: ClinicProfile,
        user_texts: List[str],
        selected_date: Optional[str],
        now: datetime,
    ) -> List[Slot]:
        """Fresh suggestions for this turn only."""
        try:
            if selected_date:
                return await self.availability.slots_for_date(
                    clinic, selected_date, limit=self.settings.suggested_slot_count, time_only=True, now=now
                )
            if has_booking_intent(user_texts) and not has_fixed_date_or_time(user_texts):
                return await self.availability.upcoming_slots(clinic, now=now)
        except ValueError:
            logger.warning(f"Ignoring malformed selectedDate {selected_date!r}")
        except RecordStoreError:
            logger.exception(f"Slot suggestion lookup failed for {clinic.slug}")
        return []

    # ------------------------------------------------------------------
    async def _complete(
        self,
        messages: List[Dict[str, Any]],
        deadline: float,
        temperature: float,
        tools: Optional[List[Dict[str, Any]]] = None,
    ):
        """One completion call bounded by the turn deadline; returns the message."""
        remaining = deadline - asyncio.get_running_loop().time()
        if remaining <= 0:
            raise CompletionTimeoutError("Turn deadline exceeded before completion call")

        kwargs: Dict[str, Any] = {
            "model": self.settings.chat_model,
            "messages": messages,
            "max_tokens": self.settings.chat_max_tokens,
            "temperature": temperature,
        }
        if tools:
            kwargs["tools"] = tools
            kwargs["tool_choice"] = "auto"

        try:
            response = await asyncio.wait_for(self.client.chat.completions.create(**kwargs), timeout=remaining)
        except (asyncio.TimeoutError, openai.APITimeoutError) as e:
            raise CompletionTimeoutError("Completion service timed out") from e
        except openai.APIError as e:
            raise CompletionServiceError(f"Completion service error: {e}") from e

        choices = getattr(response, "choices", None)
        if not choices or getattr(choices[0], "message", None) is None:
            raise CompletionServiceError("Completion service returned no choices")
        return choices[0].message

    async def _complete_with_tools(
        self,
        clinic: ClinicProfile,
        prompt: str,
        history: List[Dict[str, str]],
        tools: ToolExecutor,
        now: datetime,
    ) -> str:
        deadline = asyncio.get_running_loop().time() + self.settings.completion_timeout
        chat: List[Dict[str, Any]] = [{"role": "system", "content": prompt}] + history
        fallback: Optional[str] = None

        try:
            message = await self._complete(
                chat, deadline, self.settings.chat_temperature, tools=tool_schemas_for(clinic.plan)
            )
            for call in (message.tool_calls or [])[:MAX_TOOL_CALLS_PER_TURN]:
                result = await tools.run(call.function.name, call.function.arguments, now=now)
                fallback = result.public_text
                chat.append({
                    "role": "assistant",
                    "content": message.content,
                    "tool_calls": [{
                        "id": call.id,
                        "type": "function",
                        "function": {"name": call.function.name, "arguments": call.function.arguments},
                    }],
                })
                chat.append({"role": "tool", "tool_call_id": call.id, "content": result.model_text})
                message = await self._complete(chat, deadline, self.settings.followup_temperature)
        except CompletionTimeoutError:
            logger.exception(f"Completion timed out for {clinic.slug}")
            log_event("completion_error", {"clinic": clinic.slug, "kind": "timeout"})
            return fallback or TIMEOUT_MESSAGE
        except CompletionServiceError:
            logger.exception(f"Completion failed for {clinic.slug}")
            log_event("completion_error", {"clinic": clinic.slug, "kind": "service"})
            return fallback or FALLBACK_MESSAGE

        return (message.content or "").strip() or fallback or FALLBACK_MESSAGE
