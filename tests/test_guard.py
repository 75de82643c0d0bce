import pytest

from clinic_receptionist.core.models import ChatMessage
from clinic_receptionist.services.guard import AbuseGuard, detect_human_takeover
from clinic_receptionist.services.guard.messages import (
    ABUSE_MESSAGE,
    HUMAN_TAKEOVER_MESSAGE,
    RESET_MESSAGE,
    UNCLEAR_MESSAGE,
)


def user(text):
    return ChatMessage(role="user", content=text)


def bot(text):
    return ChatMessage(role="assistant", content=text)


@pytest.fixture
def guard(settings):
    return AbuseGuard(settings)


def test_plain_booking_request_passes(guard):
    decision = guard.classify([user("hi"), bot("Hello! How can I help?"), user("I'd like a cleaning on Friday")])

    assert decision.reject is False
    assert decision.human_takeover is False


def test_empty_transcript_passes(guard):
    assert guard.classify([]).reject is False
    assert guard.classify([user("   ")]).reject is False


def test_overlong_message_is_abuse(guard):
    decision = guard.classify([user("a" * 501)])

    assert decision.reject is True
    assert decision.message == ABUSE_MESSAGE
    assert decision.reason == "too_long"


def test_exactly_max_length_is_allowed(guard):
    assert guard.classify([user("a " * 250)]).reject is False


@pytest.mark.parametrize("text", ["see http://spam.example", "visit www.cheap-pills.biz now"])
def test_urls_are_abuse(guard, text):
    decision = guard.classify([user(text)])

    assert decision.reject is True
    assert decision.message == ABUSE_MESSAGE
    assert decision.failed_attempts is None


def test_special_characters_only_is_unclear(guard):
    decision = guard.classify([user("?!?!...")], failed_attempts=0)

    assert decision.reject is True
    assert decision.message == UNCLEAR_MESSAGE
    assert decision.failed_attempts == 1


def test_third_unclear_attempt_resets_conversation(guard):
    decision = guard.classify([user("???")], failed_attempts=2)

    assert decision.reject is True
    assert decision.message == RESET_MESSAGE
    assert decision.reset_conversation is True
    assert decision.failed_attempts == 0


def test_repeated_message_is_a_loop(guard):
    messages = [user("tomorrow"), bot("Which time?"), user("tomorrow"), bot("Which time?"), user("tomorrow")]

    decision = guard.classify(messages)

    assert decision.reject is True
    assert decision.reason == "loop"
    assert decision.message == UNCLEAR_MESSAGE


def test_burst_of_user_messages_is_unclear(guard):
    messages = [user(f"message {i}") for i in range(5)]

    decision = guard.classify(messages)

    assert decision.reject is True
    assert decision.reason == "burst"


def test_human_takeover_does_not_reject(guard):
    decision = guard.classify([user("I want a refund for my last visit")])

    assert decision.reject is False
    assert decision.human_takeover is True
    assert decision.message == HUMAN_TAKEOVER_MESSAGE


@pytest.mark.parametrize(
    "text,expected",
    [
        ("I want to file a complaint", True),
        ("my LAWYER will call", True),
        ("I'm going to sue", True),
        ("I have an issue with my tooth", False),
        ("refunding is not what I asked about", False),
    ],
)
def test_detect_human_takeover_uses_word_boundaries(text, expected):
    assert detect_human_takeover(text) is expected
