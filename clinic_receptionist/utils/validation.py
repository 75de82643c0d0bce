"""
Validation utilities for patient-supplied contact details.
"""

import re
from typing import Optional, Tuple

# Common disposable/temporary email domains (subset)
DISPOSABLE_DOMAINS = frozenset({
    "tempmail.com", "throwaway.email", "guerrillamail.com", "10minutemail.com",
    "mailinator.com", "fakeinbox.com", "trashmail.com", "yopmail.com",
    "temp-mail.org", "getnada.com", "maildrop.cc", "sharklasers.com",
    "grr.la", "guerrillamail.info", "discard.email", "tempail.com",
    "emailondeck.com", "mohmal.com", "dispostable.com", "mailnesia.com",
})

EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
EMAIL_SEARCH_RE = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
MAX_EMAIL_LENGTH = 254


class ValidationUtils:
    """Validation utilities for various data types."""

    @staticmethod
    def validate_email(email: str) -> Tuple[bool, Optional[str]]:
        """
        Validate an email address, rejecting disposable domains.

        Args:
            email: Email address to validate

        Returns:
            Tuple of (is_valid, error_message)
        """
        value = (email or "").strip().lower()
        if not value:
            return False, "Email is required."
        if len(value) > MAX_EMAIL_LENGTH:
            return False, "Email is too long."
        if not EMAIL_RE.match(value):
            return False, "Please enter a valid email address."
        if value.split("@", 1)[1] in DISPOSABLE_DOMAINS:
            return False, "Please use a permanent email address."
        return True, None

    @staticmethod
    def validate_phone(phone: str) -> Tuple[bool, Optional[str]]:
        """
        Validate an international phone number (10 to 15 digits).

        Args:
            phone: Phone number to validate

        Returns:
            Tuple of (is_valid, error_message)
        """
        digits = re.sub(r"\D", "", phone or "")
        if len(digits) < 10:
            return False, "Please enter a valid phone number with country code."
        if len(digits) > 15:
            return False, "Phone number is too long."
        if re.match(r"^(\d)\1{9,}$", digits) or re.match(r"^0+$", digits):
            return False, "Please enter a valid phone number."
        return True, None

    @staticmethod
    def validate_name(name: str) -> Tuple[bool, Optional[str]]:
        """
        Validate a patient's full name.

        Args:
            name: Name to validate

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not name or not isinstance(name, str):
            return False, "Please enter your full name."

        name = name.strip()
        if len(name) < 2:
            return False, "That name looks too short. Please enter your full name."
        if len(name) > 100:
            return False, "That name is too long."
        if not re.search(r"[^\W\d_]", name):
            return False, "Please enter your name using letters."
        return True, None

    @staticmethod
    def normalize_email(email: str) -> str:
        return (email or "").strip().lower()

    @staticmethod
    def normalize_phone(phone: str) -> str:
        """Keep a leading plus and the digits."""
        raw = (phone or "").strip()
        digits = re.sub(r"\D", "", raw)
        return f"+{digits}" if raw.startswith("+") else digits

    @staticmethod
    def extract_email(text: str) -> Optional[str]:
        """Return the first email address found in free text."""
        match = EMAIL_SEARCH_RE.search(text or "")
        return match.group(0).lower() if match else None
