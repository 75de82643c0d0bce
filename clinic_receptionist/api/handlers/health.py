"""
Health check handler.
"""

import sqlite3
from datetime import datetime

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from ...config import Settings
from ...services.guard import CounterStore
from ...utils.logging import get_logger

logger = get_logger("clinic_receptionist.health")

READY_PROBE_KEY = "health:ready"


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str
    timestamp: str
    version: str
    uptime: float


class HealthHandler:
    """Handler for health check endpoints."""

    def __init__(self, settings: Settings, counters: CounterStore):
        self.settings = settings
        self.counters = counters
        self.start_time = datetime.now()
        self.router = APIRouter()
        self._setup_routes()

    def _setup_routes(self):
        """Setup health check routes."""

        @self.router.get("/", response_model=HealthResponse)
        async def health_check():
            """Basic health check endpoint."""
            return HealthResponse(
                status="healthy",
                timestamp=datetime.now().isoformat(),
                version=self.settings.app_version,
                uptime=(datetime.now() - self.start_time).total_seconds(),
            )

        @self.router.get("/ready")
        async def readiness_check():
            """Ready once the shared rate-limit counters can be read."""
            try:
                await self.counters.get(READY_PROBE_KEY)
            except sqlite3.Error:
                logger.exception(f"Counter database unavailable at {self.settings.counter_db_path}")
                return JSONResponse(status_code=503, content={"status": "unavailable", "counters": "unreachable"})
            return {"status": "ready", "counters": "ok"}

        @self.router.get("/live")
        async def liveness_check():
            """Liveness check for container orchestration."""
            return {"status": "alive"}
