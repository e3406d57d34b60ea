"""Tests for configuration helpers."""

from zoneinfo import ZoneInfo

from meal_signals.config import Settings, parse_timezone, parse_user_ids


def test_settings_defaults(settings: Settings) -> None:
    assert settings.supabase_meals_table == "meals"
    assert settings.supabase_images_bucket == "meal-images"
    assert settings.late_meal_start_hour == 21
    assert settings.late_meal_end_hour == 5
    assert settings.recovery_batch_size == 10
    assert settings.openai_store is False


def test_settings_read_environment(monkeypatch) -> None:
    monkeypatch.setenv("SUPABASE_URL", "https://env.supabase.co")
    monkeypatch.setenv("SUPABASE_SERVICE_KEY", "header.payload.signature")
    monkeypatch.setenv("OPENAI_API_KEY", "env-key")
    monkeypatch.setenv("RECOVERY_BATCH_SIZE", "4")
    monkeypatch.setenv("RECOVER_ON_STARTUP", "false")

    settings = Settings()

    assert settings.supabase_url == "https://env.supabase.co"
    assert settings.recovery_batch_size == 4
    assert settings.recover_on_startup is False


def test_parse_user_ids() -> None:
    assert parse_user_ids(None) == []
    assert parse_user_ids("") == []
    assert parse_user_ids(" alice, bob ,,alice") == ["alice", "bob"]


def test_parse_timezone() -> None:
    assert parse_timezone("America/New_York") == ZoneInfo("America/New_York")
    assert parse_timezone(None) == ZoneInfo("UTC")
    assert parse_timezone("Not/AZone") == ZoneInfo("UTC")
