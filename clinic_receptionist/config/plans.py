"""
Plan tier limits and feature gates.
"""

from typing import Dict, NamedTuple

from ..core.enums import PlanTier


class UsageLimits(NamedTuple):
    per_session: int
    per_day: int


PLAN_USAGE_LIMITS: Dict[PlanTier, UsageLimits] = {
    PlanTier.STARTER: UsageLimits(per_session=40, per_day=300),
    PlanTier.PRO: UsageLimits(per_session=120, per_day=1500),
    PlanTier.ELITE: UsageLimits(per_session=300, per_day=5000),
}

PLAN_ORDER = [PlanTier.STARTER, PlanTier.PRO, PlanTier.ELITE]

# Minimum tier that unlocks each feature
PLAN_FEATURES: Dict[str, PlanTier] = {
    "whatsapp_collection": PlanTier.ELITE,
    "google_calendar_link": PlanTier.PRO,
    "modify_cancel_via_ai": PlanTier.PRO,
}


def get_usage_limits(plan: PlanTier) -> UsageLimits:
    """Return the chat usage limits for ``plan``."""
    return PLAN_USAGE_LIMITS.get(plan, PLAN_USAGE_LIMITS[PlanTier.STARTER])


def has_plan_feature(plan: PlanTier, feature: str) -> bool:
    """Return ``True`` when ``plan`` is at or above the tier for ``feature``."""
    required = PLAN_FEATURES.get(feature)
    if required is None:
        return False
    return PLAN_ORDER.index(plan) >= PLAN_ORDER.index(required)
