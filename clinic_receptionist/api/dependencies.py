"""
Service wiring for the HTTP layer.
"""

from dataclasses import dataclass
from typing import Optional

from agents import set_default_openai_key
from openai import AsyncOpenAI

from ..config import Settings, get_settings
from ..services.executor import ExecutorClient
from ..services.guard import RateLimiter, SQLiteCounterStore
from ..services.orchestration import ChatOrchestrator, HistoryCompressor
from ..services.slots import AvailabilityService
from ..services.store import ClinicStore, RestClinicStore


@dataclass
class Services:
    """Everything the handlers need, built once per app."""

    settings: Settings
    store: ClinicStore
    executor: ExecutorClient
    availability: AvailabilityService
    rate_limiter: RateLimiter
    orchestrator: ChatOrchestrator


def build_services(settings: Optional[Settings] = None) -> Services:
    """Wire the production collaborators from settings."""
    settings = settings or get_settings()
    if settings.openai_api_key:
        set_default_openai_key(settings.openai_api_key)
    store = RestClinicStore(settings)
    executor = ExecutorClient(settings)
    availability = AvailabilityService(store, settings)
    rate_limiter = RateLimiter(SQLiteCounterStore(settings.counter_db_path), settings)
    completion_client = AsyncOpenAI(
        api_key=settings.openai_api_key,
        timeout=settings.completion_timeout,
        max_retries=0,
    )
    orchestrator = ChatOrchestrator(
        store=store,
        executor=executor,
        availability=availability,
        rate_limiter=rate_limiter,
        completion_client=completion_client,
        compressor=HistoryCompressor(settings),
        settings=settings,
    )
    return Services(
        settings=settings,
        store=store,
        executor=executor,
        availability=availability,
        rate_limiter=rate_limiter,
        orchestrator=orchestrator,
    )
