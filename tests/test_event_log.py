import json

import pytest

from clinic_receptionist.services.dialogue import DialogueStateMachine
from clinic_receptionist.core.models import DialogueEvent
from clinic_receptionist.core.enums import EventType
from clinic_receptionist.utils.event_log import get_log_path, log_event, set_turn_id


def read_events(path):
    return [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]


def test_log_event_writes_json_line(event_log_file):
    set_turn_id("turn-1")

    log_event("guard_reject", {"clinic": "bright-smiles", "reason": "url"})
    log_event("tool_call", {"tool": "book_appointment"}, turn_id="turn-2")

    assert get_log_path() == event_log_file
    first, second = read_events(event_log_file)
    assert first["event"] == "guard_reject"
    assert first["turn_id"] == "turn-1"
    assert first["reason"] == "url"
    assert "ts" in first
    assert second["turn_id"] == "turn-2"


@pytest.mark.asyncio
async def test_state_transitions_are_logged(event_log_file, clinic, availability, mock_executor, settings):
    machine = DialogueStateMachine(clinic, availability, mock_executor, settings=settings)
    ctx = machine.start().context

    await machine.handle(ctx, DialogueEvent(type=EventType.CHIP, key="emergency"))
    await machine.handle(ctx, DialogueEvent(type=EventType.TEXT, text="hello"))

    transitions = [e for e in read_events(event_log_file) if e["event"] == "state_transition"]
    assert len(transitions) == 1
    assert transitions[0]["from"] == "GREETING"
    assert transitions[0]["to"] == "EMERGENCY"
    assert transitions[0]["event"] == "emergency"
