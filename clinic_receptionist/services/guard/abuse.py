"""
Message batch classification: abuse, loops, unclear input and human takeover.

Everything here is pure; counters live in :mod:`.rate_limit`.
"""

import re
from typing import List, Optional, Sequence

from ...config import Settings, get_settings
from ...core.models import ChatMessage, GuardDecision
from .messages import ABUSE_MESSAGE, HUMAN_TAKEOVER_MESSAGE, RESET_MESSAGE, UNCLEAR_MESSAGE

URL_RE = re.compile(r"(https?://|www\.)\S+", re.IGNORECASE)
SPECIAL_ONLY_RE = re.compile(r"^[\s\W_]+$")
HUMAN_TAKEOVER_RE = re.compile(r"\b(complaint|complain|refund|angry|lawyer|sue)\b", re.IGNORECASE)


def detect_human_takeover(text: str) -> bool:
    """``True`` when the patient asks for something only staff can handle."""
    return bool(HUMAN_TAKEOVER_RE.search(text or ""))


class AbuseGuard:
    """Classify the latest user message of a transcript."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def _reject_unclear(self, failed_attempts: int, reason: str) -> GuardDecision:
        attempts = failed_attempts + 1
        if attempts >= self.settings.unclear_attempts_before_reset:
            return GuardDecision(
                reject=True,
                message=RESET_MESSAGE,
                reset_conversation=True,
                failed_attempts=0,
                reason=reason,
            )
        return GuardDecision(
            reject=True, message=UNCLEAR_MESSAGE, failed_attempts=attempts, reason=reason
        )

    def classify(self, messages: Sequence[ChatMessage], failed_attempts: int = 0) -> GuardDecision:
        """Return the guard decision for ``messages``."""
        user_texts: List[str] = [
            m.content.strip() for m in messages if m.role == "user" and m.content.strip()
        ]
        if not user_texts:
            return GuardDecision(reject=False)
        last = user_texts[-1]

        if len(last) > self.settings.max_message_length:
            return GuardDecision(reject=True, message=ABUSE_MESSAGE, reason="too_long")
        if URL_RE.search(last):
            return GuardDecision(reject=True, message=ABUSE_MESSAGE, reason="url")

        if user_texts.count(last) >= self.settings.repeat_threshold:
            return self._reject_unclear(failed_attempts, "loop")
        if SPECIAL_ONLY_RE.match(last):
            return self._reject_unclear(failed_attempts, "special_chars")

        burst = self.settings.burst_user_messages
        tail = [m.role for m in messages[-burst:]]
        if len(tail) == burst and all(role == "user" for role in tail):
            return self._reject_unclear(failed_attempts, "burst")

        if detect_human_takeover(last):
            return GuardDecision(
                reject=False,
                message=HUMAN_TAKEOVER_MESSAGE,
                human_takeover=True,
                reason="human_takeover",
            )
        return GuardDecision(reject=False)
