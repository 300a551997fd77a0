from decimal import Decimal
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    app_name: str = "SkinSense API"
    database_url: str = (
        "postgresql+psycopg2://skinsense:skinsense@db:5432/skinsense"  # pragma: allowlist secret
    )
    redis_url: str = "redis://redis:6379/0"
    timezone: str = "America/New_York"
    cors_origins: list[str] = ["http://localhost:3000"]

    business_name: str = "SkinSense"
    business_email: str = "info@skinsense.com"
    business_phone: str = "+1234567890"
    frontend_url: str = "http://localhost:3000"

    business_open_hour: int = 9
    business_close_hour: int = 18
    slot_interval_minutes: int = 30
    max_advance_days: int = 183
    closed_weekdays: list[int] = [6]

    refund_full_hours: float = 24.0
    refund_partial_hours: float = 4.0
    refund_partial_rate: Decimal = Decimal("0.5")

    invoice_prefix: str = "SS"

    booking_lock_enabled: bool = False
    booking_lock_timeout_seconds: int = 10

    notifications_mock_mode: bool = False
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    email_from: str = "SkinSense <no-reply@skinsense.com>"
    twilio_api_base_url: str = "https://api.twilio.com/2010-04-01"
    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_phone_number: str = ""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()


settings = get_settings()
