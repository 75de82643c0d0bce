"""
Pytest configuration and fixtures.
"""

import json
from datetime import datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import pytest
import pytz

from clinic_receptionist.config import Settings
from clinic_receptionist.core.enums import PlanTier
from clinic_receptionist.core.models import (
    ClinicProfile,
    ClinicScheduleConfig,
    ExecutorResult,
    VerifyResult,
)
from clinic_receptionist.services.executor import ExecutorClient
from clinic_receptionist.services.slots import AvailabilityService
from clinic_receptionist.services.store import ClinicStore
from clinic_receptionist.utils.event_log import set_log_path

NEW_YORK = pytz.timezone("America/New_York")

WEEKDAY_HOURS = {
    "monday": {"open": "09:00", "close": "17:00"},
    "tuesday": {"open": "09:00", "close": "17:00"},
    "wednesday": {"open": "09:00", "close": "17:00"},
    "thursday": {"open": "09:00", "close": "17:00"},
    "friday": {"open": "09:00", "close": "17:00"},
    "saturday": None,
    "sunday": None,
}


@pytest.fixture(autouse=True)
def event_log_file(tmp_path):
    """Keep event log writes inside the test's tmp dir."""
    path = tmp_path / "events.jsonl"
    set_log_path(path)
    return path


@pytest.fixture
def settings(tmp_path):
    """Settings isolated from any local .env file."""
    return Settings(
        _env_file=None,
        counter_db_path=str(tmp_path / "counters.db"),
        event_log_path=str(tmp_path / "events.jsonl"),
        chat_protection_secret=None,
        openai_api_key="sk-test",
    )


@pytest.fixture
def schedule():
    """Mon-Fri 09:00-17:00 in New York."""
    return ClinicScheduleConfig(
        clinic_id="clinic-1",
        timezone="America/New_York",
        working_hours=WEEKDAY_HOURS,
        insurance_accepted=True,
        insurance_notes="We accept Delta Dental and Cigna.",
    )


@pytest.fixture
def clinic(schedule):
    return ClinicProfile(
        id="clinic-1",
        slug="bright-smiles",
        name="Bright Smiles",
        plan=PlanTier.PRO,
        schedule=schedule,
        address="12 Main St",
        phone="+12125550100",
    )


@pytest.fixture
def wednesday_morning():
    """Wednesday 2025-01-15 08:00 clinic-local."""
    return NEW_YORK.localize(datetime(2025, 1, 15, 8, 0))


@pytest.fixture
def mock_store(clinic):
    """Mock record store."""
    store = Mock(spec=ClinicStore)
    store.get_clinic = AsyncMock(return_value=clinic)
    store.list_booked_starts = AsyncMock(return_value=[])
    store.find_patient_name = AsyncMock(return_value=None)
    return store


@pytest.fixture
def mock_executor():
    """Mock booking executor that accepts everything."""
    executor = Mock(spec=ExecutorClient)
    executor.confirm_booking = AsyncMock(return_value=ExecutorResult(ok=True))
    executor.modify_appointment = AsyncMock(return_value=ExecutorResult(ok=True))
    executor.cancel_appointment = AsyncMock(return_value=ExecutorResult(ok=True))
    executor.verify_patient = AsyncMock(return_value=VerifyResult(ok=False, error="No appointment found"))
    executor.notify_human_takeover = AsyncMock(return_value=True)
    return executor


@pytest.fixture
def availability(mock_store, settings):
    return AvailabilityService(mock_store, settings)


def make_completion(content=None, tool_calls=None):
    """Shape-compatible stand-in for a chat completion response."""
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def make_tool_call(name, arguments, call_id="call_1"):
    return SimpleNamespace(
        id=call_id,
        type="function",
        function=SimpleNamespace(name=name, arguments=json.dumps(arguments)),
    )


def make_completion_client(*responses):
    """Completion client whose ``create`` returns/raises ``responses`` in order."""
    create = AsyncMock(side_effect=list(responses))
    return SimpleNamespace(chat=SimpleNamespace(completions=SimpleNamespace(create=create)))
