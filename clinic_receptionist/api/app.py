"""
FastAPI application factory and configuration.
"""

from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..config import get_settings
from ..core.exceptions import (
    ClinicNotFoundError,
    InvalidSignatureError,
    PlanExpiredError,
    RecordStoreError,
)
from ..utils.event_log import set_log_path
from ..utils.logging import configure_logging, get_logger
from .dependencies import Services, build_services
from .handlers import ChatHandler, DialogueHandler, HealthHandler, SlotsHandler
from .middleware import LoggingMiddleware, SecurityHeaders

logger = get_logger("clinic_receptionist.api")


def _register_error_handlers(app: FastAPI) -> None:
    """Map domain errors to ``{error}`` bodies; internal detail stays in the logs."""

    @app.exception_handler(InvalidSignatureError)
    async def _invalid_signature(request: Request, exc: InvalidSignatureError):
        return JSONResponse({"error": "Invalid signature"}, status_code=401)

    @app.exception_handler(ClinicNotFoundError)
    async def _clinic_not_found(request: Request, exc: ClinicNotFoundError):
        return JSONResponse({"error": "Clinic not found"}, status_code=404)

    @app.exception_handler(PlanExpiredError)
    async def _plan_expired(request: Request, exc: PlanExpiredError):
        return JSONResponse({"error": "Plan expired"}, status_code=403)

    @app.exception_handler(RecordStoreError)
    async def _store_error(request: Request, exc: RecordStoreError):
        logger.error(f"Record store failure on {request.url.path}: {exc}")
        return JSONResponse({"error": "Service temporarily unavailable. Please try again."}, status_code=502)


def create_app(services: Optional[Services] = None) -> FastAPI:
    """Create and configure FastAPI application."""
    settings = services.settings if services else get_settings()
    configure_logging(settings.log_level)
    set_log_path(settings.event_log_path)
    services = services or build_services(settings)

    app = FastAPI(
        title=settings.app_name,
        description="Conversational appointment scheduling for embedded clinic chat",
        version=settings.app_version,
        debug=settings.debug,
    )

    # The widget is embedded on clinic websites
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeaders)
    app.add_middleware(LoggingMiddleware)
    _register_error_handlers(app)

    app.include_router(HealthHandler(settings, services.rate_limiter.counters).router, prefix="/health", tags=["health"])
    app.include_router(ChatHandler(services).router, prefix="/api/embed", tags=["embed"])
    app.include_router(DialogueHandler(services).router, prefix="/api/embed", tags=["embed"])
    app.include_router(SlotsHandler(services).router, prefix="/api/embed", tags=["embed"])

    app.state.services = services
    return app
