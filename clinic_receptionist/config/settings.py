"""
Application settings and configuration.
"""

from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # Application
    app_name: str = "Clinic Receptionist"
    app_version: str = "1.0.0"
    debug: bool = False
    log_level: str = "INFO"
    event_log_path: str = "clinic_event_log.jsonl"

    # Completion service
    openai_api_key: Optional[str] = None
    chat_model: str = "gpt-4o-mini"
    summary_model: str = "gpt-4o-mini"
    chat_max_tokens: int = 300
    chat_temperature: float = 0.5
    followup_temperature: float = 0.3
    completion_timeout: float = 55.0

    # External collaborators
    executor_api_base: str = "http://localhost:3000"
    store_api_base: str = "http://localhost:3000/api/internal"
    store_api_token: Optional[str] = None
    external_timeout: float = 10.0

    # Embed signature
    chat_protection_secret: Optional[str] = None

    # Counters
    counter_db_path: str = "counters.db"

    # Guard thresholds
    max_message_length: int = Field(default=500, ge=1)
    repeat_threshold: int = Field(default=3, ge=2)
    unclear_attempts_before_reset: int = 3
    burst_user_messages: int = 5
    ip_rate_limit_per_minute: int = 20

    # History handling
    history_compress_threshold: int = 10
    history_keep_recent: int = 4
    message_max_chars: int = 4000

    # Slot search
    next_slots_max_days: int = 14
    working_days_max_days: int = 21
    max_slots_per_day: int = 4
    suggested_slot_count: int = 5
    working_days_count: int = 5
    booked_lookahead_days: int = 21

    # Guided flow
    verify_max_attempts: int = 3
    # Locales offered the Google Calendar link; empty means every locale
    calendar_link_locales: List[str] = Field(default_factory=list)

    # Fallback timezone for clinics without one
    timezone: str = "America/New_York"


def get_settings() -> Settings:
    """Get application settings instance."""
    return Settings()
