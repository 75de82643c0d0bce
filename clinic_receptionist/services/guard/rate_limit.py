"""
IP-scoped and clinic-scoped usage ceilings.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import pytz

from ...config import Settings, UsageLimits, get_settings
from ...core.models import ClinicProfile
from ...utils.event_log import log_event
from ...utils.logging import get_logger
from .counters import CounterStore
from .messages import CHAT_LIMIT_MESSAGE, RATE_LIMIT_MESSAGE, SESSION_LIMIT_MESSAGE

logger = get_logger("clinic_receptionist.guard")

MINUTE = 60
# Day counters outlive the clinic-local day they belong to
DAY_TTL = 2 * 24 * 60 * 60


@dataclass
class LimitCheck:
    allowed: bool
    message: Optional[str] = None
    count: Optional[int] = None


class RateLimiter:
    """Consults the shared counters before any model call."""

    def __init__(self, counters: CounterStore, settings: Optional[Settings] = None):
        self.counters = counters
        self.settings = settings or get_settings()

    async def check_ip(self, ip_hash: str, now: Optional[datetime] = None) -> LimitCheck:
        """Per-minute ceiling for one client IP hash."""
        now = now or datetime.now(pytz.utc)
        bucket = now.astimezone(pytz.utc).strftime("%Y%m%d%H%M")
        count = await self.counters.increment(f"ip:{ip_hash}:{bucket}", MINUTE * 2)
        if count > self.settings.ip_rate_limit_per_minute:
            log_event("rate_limited", {"scope": "ip", "count": count})
            return LimitCheck(False, RATE_LIMIT_MESSAGE, count)
        return LimitCheck(True, count=count)

    @staticmethod
    def check_session(message_count: int, limits: UsageLimits) -> LimitCheck:
        """Per-conversation ceiling; the transcript is client-held so its length is the count."""
        if message_count >= limits.per_session:
            return LimitCheck(False, SESSION_LIMIT_MESSAGE, message_count)
        return LimitCheck(True, count=message_count)

    async def check_clinic_day(
        self, clinic: ClinicProfile, limits: UsageLimits, now: Optional[datetime] = None
    ) -> LimitCheck:
        """Per-clinic ceiling for the clinic-local calendar day (increment-then-compare)."""
        tz = pytz.timezone(clinic.schedule.timezone)
        local_day = (now or datetime.now(pytz.utc)).astimezone(tz).date().isoformat()
        count = await self.counters.increment(f"clinic:{clinic.id}:{local_day}", DAY_TTL)
        if count > limits.per_day:
            logger.info(f"Clinic {clinic.slug} reached daily chat limit ({limits.per_day})")
            log_event("rate_limited", {"scope": "clinic_day", "clinic": clinic.slug, "count": count})
            return LimitCheck(False, CHAT_LIMIT_MESSAGE, count)
        return LimitCheck(True, count=count)
