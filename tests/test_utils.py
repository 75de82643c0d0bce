"""
Tests for utility functions.
"""

from datetime import date, datetime
from urllib.parse import parse_qs, urlparse

import pytest
import pytz

import clinic_receptionist.utils.date as date_module
from clinic_receptionist.utils.calendar import build_google_calendar_url
from clinic_receptionist.utils.date import DateParser, looks_like_date, mentions_time, parse_iso_datetime
from clinic_receptionist.utils.signature import hash_client_ip, sign_clinic_slug, verify_clinic_signature
from clinic_receptionist.utils.validation import ValidationUtils


class TestValidationUtils:
    """Test patient detail validation."""

    def test_validate_email(self):
        assert ValidationUtils.validate_email("jane@example.com") == (True, None)
        assert ValidationUtils.validate_email("")[0] is False
        assert ValidationUtils.validate_email("jane@example")[0] is False
        assert ValidationUtils.validate_email("a" * 250 + "@example.com") == (False, "Email is too long.")

    def test_validate_email_rejects_disposable_domains(self):
        ok, error = ValidationUtils.validate_email("Jane@YOPMAIL.com")

        assert ok is False
        assert error == "Please use a permanent email address."

    def test_validate_phone(self):
        assert ValidationUtils.validate_phone("+1 (212) 555-0199") == (True, None)
        assert ValidationUtils.validate_phone("555-0199")[0] is False
        assert ValidationUtils.validate_phone("1" * 16)[0] is False
        assert ValidationUtils.validate_phone("0000000000")[0] is False

    def test_validate_name(self):
        assert ValidationUtils.validate_name("Jane Doe") == (True, None)
        assert ValidationUtils.validate_name("J")[0] is False
        assert ValidationUtils.validate_name("12345")[0] is False
        assert ValidationUtils.validate_name("José")[0] is True

    def test_normalizers(self):
        assert ValidationUtils.normalize_email("  Jane@Example.COM ") == "jane@example.com"
        assert ValidationUtils.normalize_phone("+1 (212) 555-0199") == "+12125550199"
        assert ValidationUtils.normalize_phone("212.555.0199") == "2125550199"

    def test_extract_email(self):
        assert ValidationUtils.extract_email("sure, it's Jane.Doe@Example.com thanks") == "jane.doe@example.com"
        assert ValidationUtils.extract_email("no email here") is None


class TestSignature:
    """Test embed signature helpers."""

    def test_round_trip_is_case_insensitive_on_slug(self):
        sig = sign_clinic_slug("Bright-Smiles", "s3cret")

        assert verify_clinic_signature("bright-smiles", sig, "s3cret") is True
        assert verify_clinic_signature("bright-smiles", sig.upper(), "s3cret") is True

    def test_rejects_wrong_secret_or_missing_sig(self):
        sig = sign_clinic_slug("bright-smiles", "s3cret")

        assert verify_clinic_signature("bright-smiles", sig, "other") is False
        assert verify_clinic_signature("other-clinic", sig, "s3cret") is False
        assert verify_clinic_signature("bright-smiles", None, "s3cret") is False

    def test_hash_client_ip(self):
        hashed = hash_client_ip("203.0.113.9")

        assert hashed == hash_client_ip("203.0.113.9")
        assert "203" not in hashed
        assert len(hashed) == 32


class TestCalendarLink:
    """Test Google Calendar deep links."""

    def test_link_fields(self):
        tz = pytz.timezone("America/New_York")
        start = tz.localize(datetime(2030, 1, 16, 9, 0))
        end = tz.localize(datetime(2030, 1, 16, 9, 30))

        url = build_google_calendar_url("Appointment at Bright Smiles", start, end, location="12 Main St")
        query = parse_qs(urlparse(url).query)

        assert query["action"] == ["TEMPLATE"]
        assert query["dates"] == ["20300116T140000Z/20300116T143000Z"]
        assert query["location"] == ["12 Main St"]
        assert "details" not in query

    def test_long_fields_are_truncated(self):
        start = datetime(2030, 1, 16, 14, 0, tzinfo=pytz.utc)

        url = build_google_calendar_url("t" * 300, start, start, details="d" * 900)
        query = parse_qs(urlparse(url).query)

        assert len(query["text"][0]) == 200
        assert len(query["details"][0]) == 500


class TestDateHelpers:
    """Test date detection and parsing."""

    @pytest.mark.parametrize("text", ["next friday", "May 20", "05/20/2025", "tomorrow", "2025-05-20"])
    def test_looks_like_date(self, text):
        assert looks_like_date(text) is True

    def test_plain_text_is_not_a_date(self):
        assert looks_like_date("I need a cleaning") is False

    @pytest.mark.parametrize("text", ["3pm", "at 10:30", "around noon", "9 a.m."])
    def test_mentions_time(self, text):
        assert mentions_time(text) is True

    def test_parse_iso_datetime(self):
        naive = parse_iso_datetime("2025-01-15T09:00:00", "America/New_York")
        zulu = parse_iso_datetime("2025-01-15T14:00:00Z", "America/New_York")

        assert naive.isoformat() == "2025-01-15T09:00:00-05:00"
        assert naive == zulu
        assert parse_iso_datetime("not a date", "America/New_York") is None


class TestDateParser:
    """Test natural language day parsing."""

    @pytest.fixture
    def parser(self, monkeypatch):
        parser = DateParser("America/New_York")
        # Wednesday
        monkeypatch.setattr(parser, "today", lambda: date(2025, 1, 15))
        return parser

    def test_uses_dateparser_result(self, parser, monkeypatch):
        monkeypatch.setattr(date_module, "parse_date", lambda text, settings, languages: datetime(2025, 1, 20))

        assert parser.parse_natural_date("January 20") == "2025-01-20"

    def test_weekday_fallback(self, parser, monkeypatch):
        monkeypatch.setattr(date_module, "parse_date", lambda text, settings, languages: None)

        assert parser.parse_natural_date("friday please") == "2025-01-17"
        assert parser.parse_natural_date("wednesday") == "2025-01-15"
        assert parser.parse_natural_date("next wednesday") == "2025-01-22"

    def test_past_dates_are_rejected(self, parser, monkeypatch):
        monkeypatch.setattr(date_module, "parse_date", lambda text, settings, languages: datetime(2024, 12, 1))

        assert parser.parse_natural_date("December 1") is None

    def test_blank_text(self, parser):
        assert parser.parse_natural_date("   ") is None
