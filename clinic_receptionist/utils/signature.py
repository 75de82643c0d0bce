"""
Embed signature helpers.

Each embed URL carries ``sig``, the hex HMAC-SHA256 of the lower-cased clinic
slug keyed with the chat protection secret.
"""

import hashlib
import hmac
from typing import Optional


def sign_clinic_slug(slug: str, secret: str) -> str:
    """Return the embed signature for ``slug``."""
    message = slug.strip().lower().encode("utf-8")
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def verify_clinic_signature(slug: str, sig: Optional[str], secret: str) -> bool:
    """Constant-time check of ``sig`` against the expected signature."""
    if not sig or not slug:
        return False
    expected = sign_clinic_slug(slug, secret)
    return hmac.compare_digest(expected, sig.strip().lower())


def hash_client_ip(ip: str) -> str:
    """Hash an IP so it can be used as a counter key without storing it."""
    return hashlib.sha256(ip.encode("utf-8")).hexdigest()[:32]
