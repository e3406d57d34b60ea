"""Tests for container wiring."""

import asyncio
from zoneinfo import ZoneInfo

from meal_signals.containers import build_container


def test_build_container_creates_services(settings) -> None:
    settings.timezone = "Europe/Berlin"
    settings.recovery_batch_size = 3
    settings.late_meal_start_hour = 22

    container = build_container(settings)

    assert container.capture_pipeline is not None
    assert container.recovery_service.batch_size == 3
    assert container.insights_service.timezone_name == "Europe/Berlin"
    analyzer = container.capture_pipeline.analyzer
    assert analyzer.tz == ZoneInfo("Europe/Berlin")
    assert analyzer.late_window.start_hour == 22
    assert container.recognition_service.model == settings.openai_model
    asyncio.run(container.close_resources())


def test_build_container_falls_back_to_utc(settings) -> None:
    settings.timezone = "Mars/Olympus_Mons"

    container = build_container(settings)

    assert container.insights_service.timezone_name == "UTC"
    asyncio.run(container.close_resources())
