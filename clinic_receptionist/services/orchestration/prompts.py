"""
System prompt assembly for the free-text receptionist.
"""

from datetime import datetime, timedelta
from typing import List, Optional

from ...config import has_plan_feature
from ...core.models import ClinicProfile, Slot
from ..slots import format_working_hours
from .intents import insurance_answer

HOLIDAY_LOOKAHEAD_DAYS = 60

MODIFY_CANCEL_BLOCK = """
Change appointment: if the patient wants to change or reschedule, ask for their WhatsApp number or email. Once you have it, suggest 2-3 alternative times and when they pick one, call modify_appointment(patient_email or patient_whatsapp, new_start_time, new_end_time).
Cancel appointment: if the patient wants to cancel, ask them to confirm their WhatsApp number or email, then call cancel_appointment(patient_email or patient_whatsapp).
If the appointment they want to change or cancel is within 2 hours from now, say: "Please call the clinic directly for urgent changes."
After every booking confirmation, say: "Need to change or cancel later? Just type 'change' or 'cancel' anytime.\""""

NO_MODIFY_BLOCK = """
Change or cancel: this clinic handles changes by phone. Ask the patient to call the clinic."""


def _holidays_line(clinic: ClinicProfile, today) -> Optional[str]:
    horizon = today + timedelta(days=HOLIDAY_LOOKAHEAD_DAYS)
    closed = []
    for holiday in clinic.schedule.holidays:
        end = holiday.end_date or holiday.start_date
        if end < today or holiday.start_date > horizon:
            continue
        span = holiday.start_date.isoformat()
        if end != holiday.start_date:
            span = f"{span} to {end.isoformat()}"
        closed.append(f"{span} ({holiday.label})" if holiday.label else span)
    if not closed:
        return None
    return f"- Closed dates: {', '.join(closed)}. Do not book on these days."


def _slots_block(slots: List[Slot]) -> Optional[str]:
    if not slots:
        return None
    lines = "\n".join(f"  - {s.label}: start_time {s.start}, end_time {s.end}" for s in slots)
    return f"- Open slots you may offer (use these exact start/end values):\n{lines}"


def build_system_prompt(
    clinic: ClinicProfile,
    now: datetime,
    returning_patient_name: Optional[str] = None,
    suggested_slots: Optional[List[Slot]] = None,
) -> str:
    """Assemble the system prompt for one turn; ``now`` is clinic-local."""
    schedule = clinic.schedule
    agent = (clinic.agent_name or "").strip()
    intro = (
        f'You are {agent}, the professional AI receptionist for the dental clinic "{clinic.name}".'
        if agent
        else f'You are the professional AI receptionist for the dental clinic "{clinic.name}".'
    )

    lines = [
        intro,
        "",
        "Your job: help patients book appointments; answer simple clinic questions (hours, insurance, location); "
        "handle emergencies calmly; collect patient details before booking. Be friendly, calm and simple.",
    ]
    if clinic.agent_persona:
        lines += ["", f"Persona: {clinic.agent_persona.strip()}"]

    lines += [
        "",
        "Rules:",
        "- Use short sentences (1-3). Use simple words.",
        "- Never give a medical diagnosis.",
        "- If the patient describes serious pain, bleeding or trauma: recommend calling the clinic immediately "
        "and offer the earliest available booking.",
        "- Collect in this order: preferred date, preferred time, name, email, WhatsApp number. One question at a time.",
        "- When you have date, time, name and at least one of email or WhatsApp, call book_appointment. "
        "Use 30-minute slots.",
        f"- Today: {now.strftime('%A %Y-%m-%d %H:%M')}. Timezone: {schedule.timezone}. "
        "Output start_time and end_time in ISO 8601 with the clinic's offset.",
        f"- Hours: {format_working_hours(schedule)}",
        f"- Insurance: {insurance_answer(schedule)}",
    ]
    if clinic.address:
        lines.append(f"- Address: {clinic.address}")
    if clinic.phone:
        lines.append(f"- Phone: {clinic.phone}")

    closed = _holidays_line(clinic, now.date())
    if closed:
        lines.append(closed)
    slots = _slots_block(suggested_slots or [])
    if slots:
        lines.append(slots)
    if returning_patient_name:
        lines += [
            "",
            f'Returning patient: "{returning_patient_name}". Say "Welcome back, {returning_patient_name}!" '
            "and only ask for the preferred date and time.",
        ]

    lines.append(
        MODIFY_CANCEL_BLOCK if has_plan_feature(clinic.plan, "modify_cancel_via_ai") else NO_MODIFY_BLOCK
    )
    lines += [
        "- Reply in the same language the patient uses. Keep the tone human and warm.",
        "- Never: ask all questions at once; guess availability; promise unavailable times; discuss internal system logic.",
    ]
    return "\n".join(lines)
