from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Celery worker configuration."""

    redis_url: str = "redis://redis:6379/0"
    timezone: str = "America/New_York"
    api_base_url: str = "http://api:8000"
    # Staff account the worker acts as when calling the back-office API.
    reminder_actor_id: str = ""
    reminder_interval_minutes: int = 15
    api_timeout_seconds: float = 30.0

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
