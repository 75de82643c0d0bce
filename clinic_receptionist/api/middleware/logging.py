"""
Request logging middleware.
"""

import time

from starlette.middleware.base import BaseHTTPMiddleware

from ...utils.logging import get_logger

logger = get_logger("clinic_receptionist.http")


class LoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path, status and latency; never bodies."""

    async def dispatch(self, request, call_next):
        started = time.perf_counter()
        try:
            resp = await call_next(request)
        except Exception:
            logger.exception(f"{request.method} {request.url.path} failed")
            raise
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(f"{request.method} {request.url.path} -> {resp.status_code} ({elapsed_ms:.0f} ms)")
        return resp
