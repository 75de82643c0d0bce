import httpx
import pytest

from clinic_receptionist.core.enums import PlanTier
from clinic_receptionist.core.exceptions import ClinicNotFoundError, RecordStoreError
from clinic_receptionist.services.store import RestClinicStore, profile_from_record

RECORD = {
    "id": 7,
    "slug": "bright-smiles",
    "name": "Bright Smiles",
    "plan": "Enterprise",
    "timezone": "Europe/Berlin",
    "working_hours": {"Monday": {"open": "08:00", "close": "16:00"}},
    "insurance_accepted": True,
    "address": "12 Main St",
    "agent_name": "Noa",
}


@pytest.fixture
def use_transport(monkeypatch):
    def _install(handler):
        transport = httpx.MockTransport(handler)
        original_client = httpx.AsyncClient

        def client_factory(*args, **kwargs):
            kwargs["transport"] = transport
            return original_client(*args, **kwargs)

        monkeypatch.setattr(httpx, "AsyncClient", client_factory)

    return _install


@pytest.fixture
def store(settings):
    return RestClinicStore(settings.model_copy(update={
        "store_api_base": "https://store.example.com/internal/",
        "store_api_token": "secret-token",
    }))


def test_profile_from_record():
    profile = profile_from_record(RECORD, "America/New_York")

    assert profile.id == "7"
    assert profile.plan == PlanTier.ELITE
    assert profile.schedule.timezone == "Europe/Berlin"
    assert "monday" in profile.schedule.working_hours
    assert profile.agent_name == "Noa"


def test_unknown_timezone_falls_back_to_default():
    profile = profile_from_record(dict(RECORD, timezone="Mars/Olympus"), "America/New_York")

    assert profile.schedule.timezone == "America/New_York"


@pytest.mark.asyncio
async def test_get_clinic(store, use_transport):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"data": RECORD})

    use_transport(handler)

    clinic = await store.get_clinic("Bright-Smiles", location_id="loc-2")

    assert clinic.slug == "bright-smiles"
    assert seen["path"] == "/internal/clinics/bright-smiles"
    assert seen["params"] == {"location": "loc-2"}
    assert seen["auth"] == "Bearer secret-token"


@pytest.mark.asyncio
async def test_unknown_clinic(store, use_transport):
    use_transport(lambda request: httpx.Response(404, json={"error": "not found"}))

    with pytest.raises(ClinicNotFoundError):
        await store.get_clinic("nobody")


@pytest.mark.asyncio
async def test_malformed_record(store, use_transport):
    use_transport(lambda request: httpx.Response(200, json={"name": "No id"}))

    with pytest.raises(RecordStoreError):
        await store.get_clinic("bright-smiles")


@pytest.mark.asyncio
async def test_server_error(store, use_transport):
    use_transport(lambda request: httpx.Response(500, text="boom"))

    with pytest.raises(RecordStoreError):
        await store.get_clinic("bright-smiles")


@pytest.mark.asyncio
async def test_list_booked_starts_filters_active(store, use_transport, wednesday_morning):
    seen = {}

    def handler(request):
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"data": [
            {"start_time": "2025-01-15T14:00:00-05:00"},
            {"start_time": None},
        ]})

    use_transport(handler)

    starts = await store.list_booked_starts("7", wednesday_morning, wednesday_morning)

    assert starts == ["2025-01-15T14:00:00-05:00"]
    assert "cancelled" not in seen["params"]["status"].split(",")
    assert "confirmed" in seen["params"]["status"].split(",")


@pytest.mark.asyncio
async def test_find_patient_name(store, use_transport):
    use_transport(lambda request: httpx.Response(200, json={"data": [{"full_name": " Jane Doe "}]}))

    assert await store.find_patient_name("7", "jane@example.com") == "Jane Doe"


@pytest.mark.asyncio
async def test_find_patient_name_unknown(store, use_transport):
    use_transport(lambda request: httpx.Response(200, json={"data": []}))

    assert await store.find_patient_name("7", "who@example.com") is None
