"""Application configuration using pydantic-settings."""

from __future__ import annotations

from datetime import datetime
from zoneinfo import ZoneInfo

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from ``CONFROOM_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CONFROOM_",
        extra="ignore",
    )

    app_name: str = "Conference Room Booking Service"

    # The whole system runs on one local wall clock; dates and times are
    # stored and compared without timezone conversion.
    timezone: str = "Africa/Harare"

    default_currency: str = "USD"
    booking_number_prefix: str = "BK"

    # Flip confirmed bookings to completed when they are read after their end.
    complete_on_read: bool = True

    log_level: str = "INFO"
    seed_sample_data: bool = False

    def local_now(self) -> datetime:
        """Current wall-clock time in the operating timezone, without tzinfo."""
        return datetime.now(ZoneInfo(self.timezone)).replace(tzinfo=None)


settings = Settings()
