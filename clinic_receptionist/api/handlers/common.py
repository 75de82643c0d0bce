"""
Helpers shared by the embed handlers.
"""

from typing import Optional

from fastapi import Request

from ...config import Settings
from ...core.exceptions import InvalidSignatureError
from ...utils.logging import get_logger
from ...utils.signature import verify_clinic_signature

logger = get_logger("clinic_receptionist.api")

_warned_unsigned = False


def verify_signature(settings: Settings, slug: str, sig: Optional[str]) -> None:
    """Raise :class:`InvalidSignatureError` unless ``sig`` signs ``slug``."""
    global _warned_unsigned
    secret = settings.chat_protection_secret
    if not secret:
        if not _warned_unsigned:
            logger.warning("CHAT_PROTECTION_SECRET is not set; embed signatures are not verified")
            _warned_unsigned = True
        return
    if not verify_clinic_signature(slug, sig, secret):
        raise InvalidSignatureError(f"Invalid signature for {slug!r}")


def client_ip(request: Request) -> Optional[str]:
    """First hop of X-Forwarded-For, then X-Real-IP, then the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = (request.headers.get("x-real-ip") or "").strip()
    if real_ip:
        return real_ip
    return request.client.host if request.client else None
