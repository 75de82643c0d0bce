import asyncio
from datetime import datetime
from unittest.mock import AsyncMock, Mock

import pytest
import pytz

from clinic_receptionist.config import UsageLimits, get_usage_limits
from clinic_receptionist.core.enums import PlanTier
from clinic_receptionist.services.guard import CounterStore, RateLimiter, SQLiteCounterStore
from clinic_receptionist.services.guard.messages import (
    CHAT_LIMIT_MESSAGE,
    RATE_LIMIT_MESSAGE,
    SESSION_LIMIT_MESSAGE,
)


@pytest.fixture
def counters(tmp_path):
    return SQLiteCounterStore(str(tmp_path / "counters.db"))


@pytest.mark.asyncio
async def test_increment_returns_new_value(counters):
    assert await counters.increment("k", 60) == 1
    assert await counters.increment("k", 60) == 2
    assert await counters.get("k") == 2
    assert await counters.get("missing") == 0


@pytest.mark.asyncio
async def test_expired_counter_restarts(counters):
    await counters.increment("k", -1)

    assert await counters.get("k") == 0
    assert await counters.increment("k", 60) == 1


@pytest.mark.asyncio
async def test_concurrent_increments_are_not_lost(counters):
    results = await asyncio.gather(*(counters.increment("burst", 60) for _ in range(20)))

    assert sorted(results) == list(range(1, 21))
    assert await counters.get("burst") == 20


@pytest.mark.asyncio
async def test_counters_are_shared_between_instances(tmp_path):
    path = str(tmp_path / "shared.db")
    first = SQLiteCounterStore(path)
    second = SQLiteCounterStore(path)

    await first.increment("k", 60)
    await second.increment("k", 60)

    assert await first.get("k") == 2


@pytest.mark.asyncio
async def test_purge_expired(counters):
    await counters.increment("old", -1)
    await counters.increment("fresh", 60)

    assert await counters.purge_expired() == 1
    assert await counters.get("fresh") == 1


def test_plan_limits():
    assert get_usage_limits(PlanTier.STARTER) == UsageLimits(per_session=40, per_day=300)
    assert get_usage_limits(PlanTier.PRO) == UsageLimits(per_session=120, per_day=1500)
    assert get_usage_limits(PlanTier.ELITE) == UsageLimits(per_session=300, per_day=5000)


def test_session_limit_is_inclusive():
    limits = UsageLimits(per_session=3, per_day=10)

    assert RateLimiter.check_session(2, limits).allowed is True
    blocked = RateLimiter.check_session(3, limits)
    assert blocked.allowed is False
    assert blocked.message == SESSION_LIMIT_MESSAGE


@pytest.mark.asyncio
async def test_clinic_day_allows_up_to_limit(counters, clinic, settings):
    limiter = RateLimiter(counters, settings)
    limits = UsageLimits(per_session=10, per_day=2)
    now = pytz.utc.localize(datetime(2025, 1, 15, 15, 0))

    first = await limiter.check_clinic_day(clinic, limits, now)
    second = await limiter.check_clinic_day(clinic, limits, now)
    third = await limiter.check_clinic_day(clinic, limits, now)

    assert (first.allowed, second.allowed) == (True, True)
    assert third.allowed is False
    assert third.message == CHAT_LIMIT_MESSAGE
    assert third.count == 3


@pytest.mark.asyncio
async def test_clinic_day_uses_clinic_local_date(clinic, settings):
    counters = Mock(spec=CounterStore)
    counters.increment = AsyncMock(return_value=1)
    limiter = RateLimiter(counters, settings)

    # 03:00 UTC on the 16th is still the 15th in New York
    await limiter.check_clinic_day(clinic, UsageLimits(10, 10), pytz.utc.localize(datetime(2025, 1, 16, 3, 0)))

    key = counters.increment.await_args.args[0]
    assert key == "clinic:clinic-1:2025-01-15"


@pytest.mark.asyncio
async def test_ip_limit_per_minute(counters, settings):
    limiter = RateLimiter(counters, settings.model_copy(update={"ip_rate_limit_per_minute": 2}))
    now = pytz.utc.localize(datetime(2025, 1, 15, 15, 0, 5))

    assert (await limiter.check_ip("abc", now)).allowed is True
    assert (await limiter.check_ip("abc", now)).allowed is True
    blocked = await limiter.check_ip("abc", now)
    assert blocked.allowed is False
    assert blocked.message == RATE_LIMIT_MESSAGE

    next_minute = pytz.utc.localize(datetime(2025, 1, 15, 15, 1, 0))
    assert (await limiter.check_ip("abc", next_minute)).allowed is True
