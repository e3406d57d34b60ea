"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import create_client

from meal_signals.adapters.openai_vision_client import OpenAIVisionClient
from meal_signals.adapters.supabase_image_storage import SupabaseImageStorage
from meal_signals.adapters.supabase_meal_repository import SupabaseMealRepository
from meal_signals.config import Settings, parse_timezone
from meal_signals.domain.signals import LateMealWindow
from meal_signals.services.analysis import MealAnalyzer
from meal_signals.services.capture import CapturePipeline
from meal_signals.services.insights import InsightsService
from meal_signals.services.meals import MealHistoryService
from meal_signals.services.recognition import RecognitionService
from meal_signals.services.recovery import RecoveryService


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    recognition_service: RecognitionService
    capture_pipeline: CapturePipeline
    recovery_service: RecoveryService
    history_service: MealHistoryService
    insights_service: InsightsService
    close_resources: Callable[[], Awaitable[None]]


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = create_client(
        resolved_settings.supabase_url, resolved_settings.supabase_service_key
    )
    meal_repository = SupabaseMealRepository(
        supabase_client, table=resolved_settings.supabase_meals_table
    )
    image_storage = SupabaseImageStorage(
        supabase_client, bucket=resolved_settings.supabase_images_bucket
    )
    openai_client = OpenAIVisionClient.create(
        resolved_settings.openai_api_key,
        timeout_seconds=resolved_settings.openai_timeout_seconds,
    )
    recognition_service = RecognitionService(
        client=openai_client,
        model=resolved_settings.openai_model,
        reasoning_effort=resolved_settings.openai_reasoning_effort,
        store=resolved_settings.openai_store,
    )
    tz = parse_timezone(resolved_settings.timezone)
    analyzer = MealAnalyzer(
        repository=meal_repository,
        recognizer=recognition_service,
        late_window=LateMealWindow(
            start_hour=resolved_settings.late_meal_start_hour,
            end_hour=resolved_settings.late_meal_end_hour,
        ),
        tz=tz,
    )
    capture_pipeline = CapturePipeline(
        repository=meal_repository,
        storage=image_storage,
        analyzer=analyzer,
    )
    recovery_service = RecoveryService(
        repository=meal_repository,
        storage=image_storage,
        analyzer=analyzer,
        batch_size=resolved_settings.recovery_batch_size,
    )
    history_service = MealHistoryService(
        meal_repository, default_limit=resolved_settings.history_limit
    )
    insights_service = InsightsService(meal_repository, timezone_name=tz.key)

    async def close_resources() -> None:
        await capture_pipeline.drain()
        await openai_client.client.close()

    return AppContainer(
        settings=resolved_settings,
        recognition_service=recognition_service,
        capture_pipeline=capture_pipeline,
        recovery_service=recovery_service,
        history_service=history_service,
        insights_service=insights_service,
        close_resources=close_resources,
    )
