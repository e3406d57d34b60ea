"""Application configuration."""

import os
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    supabase_url: str
    supabase_service_key: str
    supabase_meals_table: str = "meals"
    supabase_images_bucket: str = "meal-images"
    openai_api_key: str
    openai_model: str = "gpt-5.2"
    openai_reasoning_effort: str = "low"
    openai_store: bool = False
    openai_timeout_seconds: float = 60.0
    timezone: str = "UTC"
    late_meal_start_hour: int = 21
    late_meal_end_hour: int = 5
    recovery_batch_size: int = 10
    recover_on_startup: bool = True
    recovery_user_ids: str | None = None
    history_limit: int = 100
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_user_ids(raw: str | None) -> list[str]:
    """Parse a comma-separated list of user ids from env."""
    if raw is None:
        return []
    ids: list[str] = []
    for chunk in raw.split(","):
        value = chunk.strip()
        if value and value not in ids:
            ids.append(value)
    return ids


def parse_timezone(name: str | None) -> ZoneInfo:
    """Return the named IANA zone, falling back to UTC."""
    if not name:
        return ZoneInfo("UTC")
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return ZoneInfo("UTC")
