"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

from fastapi import FastAPI, HTTPException, Request, status

from meal_signals.app_logging import configure_logging
from meal_signals.config import parse_user_ids
from meal_signals.containers import AppContainer
from meal_signals.domain.insights import Insights
from meal_signals.domain.meals import Meal, MealSource
from meal_signals.domain.signals import signal_table
from meal_signals.services.capture import CaptureHandle
from meal_signals.services.insights import insight_messages
from meal_signals.services.recovery import RecoveryReport


def create_app(container: AppContainer) -> FastAPI:
    """Create a FastAPI app configured with dependencies."""
    configure_logging()
    logger = logging.getLogger(__name__)
    recovery_user_ids = parse_user_ids(container.settings.recovery_user_ids)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        state_container: AppContainer = app.state.container
        if state_container.settings.recover_on_startup:
            for user_id in recovery_user_ids:
                try:
                    report = await state_container.recovery_service.recover_pending(
                        user_id
                    )
                except Exception:
                    logger.exception(
                        "Startup recovery failed", extra={"user_id": user_id}
                    )
                    continue
                logger.info(
                    "Startup recovery finished",
                    extra={
                        "user_id": user_id,
                        "completed": len(report.completed),
                        "failed": len(report.failed),
                    },
                )
        yield
        await state_container.capture_pipeline.drain()
        await state_container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.get("/signals")
    async def signals() -> dict[str, object]:
        """Return the static signal table."""
        return {"signals": signal_table()}

    @app.post("/users/{user_id}/meals", status_code=status.HTTP_202_ACCEPTED)
    async def capture_meal(
        user_id: str, request: Request, source: MealSource = MealSource.PHONE_PHOTO
    ) -> dict[str, object]:
        """Accept a meal photo; analysis continues in the background."""
        state_container: AppContainer = request.app.state.container
        image_bytes = await request.body()
        if not image_bytes:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail="Empty image body"
            )
        content_type = request.headers.get("content-type", "")
        mime_type = content_type if content_type.startswith("image/") else None
        handle = await state_container.capture_pipeline.capture(
            user_id, image_bytes, mime_type=mime_type, source=source
        )
        return _serialize_handle(handle)

    @app.get("/users/{user_id}/meals")
    async def list_meals(
        user_id: str, request: Request, limit: int | None = None
    ) -> dict[str, object]:
        """Return the user's most recent meals."""
        state_container: AppContainer = request.app.state.container
        meals = state_container.history_service.list_recent(user_id, limit)
        return {"meals": [_serialize_meal(meal) for meal in meals]}

    @app.post("/users/{user_id}/meals/recover")
    async def recover_meals(user_id: str, request: Request) -> dict[str, object]:
        """Re-run analysis for meals left pending."""
        state_container: AppContainer = request.app.state.container
        report = await state_container.recovery_service.recover_pending(user_id)
        return _serialize_report(report)

    @app.get("/users/{user_id}/meals/{meal_id}")
    async def get_meal(
        user_id: str, meal_id: UUID, request: Request
    ) -> dict[str, object]:
        """Return one meal with its current status."""
        state_container: AppContainer = request.app.state.container
        meal = state_container.history_service.get_meal(user_id, meal_id)
        if meal is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return _serialize_meal(meal)

    @app.delete("/users/{user_id}/meals/{meal_id}")
    async def delete_meal(
        user_id: str, meal_id: UUID, request: Request
    ) -> dict[str, str]:
        """Delete one meal."""
        state_container: AppContainer = request.app.state.container
        if not state_container.history_service.delete_meal(user_id, meal_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return {"status": "deleted"}

    @app.get("/users/{user_id}/insights")
    async def insights(
        user_id: str, request: Request, window: str = "30d"
    ) -> dict[str, object]:
        """Return signal insights for a preset window."""
        state_container: AppContainer = request.app.state.container
        try:
            result = state_container.insights_service.get_insights(user_id, window)
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
            ) from exc
        return _serialize_insights(result)

    return app


def _serialize_handle(handle: CaptureHandle) -> dict[str, object]:
    return {
        "meal_id": str(handle.meal_id),
        "status": "pending",
        "logged_at": handle.logged_at.isoformat(),
        "image_stored": handle.image_stored,
        "upload_error": handle.upload_error,
    }


def _serialize_meal(meal: Meal) -> dict[str, object]:
    nutrition = meal.nutrition
    return {
        "id": str(meal.id),
        "user_id": meal.user_id,
        "logged_at": meal.logged_at.isoformat(),
        "status": meal.status.value,
        "source": meal.source.value,
        "image_ref": meal.image_ref,
        "foods": [food.model_dump() for food in meal.foods],
        "flags": meal.flags,
        "nutrition": nutrition.model_dump() if nutrition else None,
        "error_message": meal.error_message,
    }


def _serialize_report(report: RecoveryReport) -> dict[str, object]:
    return {
        "examined": report.examined,
        "completed": [str(meal_id) for meal_id in report.completed],
        "failed": [str(meal_id) for meal_id in report.failed],
        "skipped": [str(meal_id) for meal_id in report.skipped],
    }


def _serialize_insights(insights: Insights) -> dict[str, object]:
    window = insights.window
    return {
        "window": (
            {
                "key": window.key,
                "label": window.label,
                "start": window.start.isoformat(),
                "end": window.end.isoformat(),
            }
            if window
            else None
        ),
        "total_meals": insights.total_meals,
        "date_range": insights.date_range,
        "days_tracked": insights.days_tracked,
        "signals": {
            key: {
                "metric": signal.metric.value,
                "count": signal.count,
                "value": signal.value,
                "concern_level": signal.concern_level.value,
            }
            for key, signal in insights.signals.items()
        },
        "late_caffeine_count": insights.late_caffeine_count,
        "avg_dinner_time": insights.avg_dinner_time,
        "patterns": {
            "busiest_day": insights.patterns.busiest_day,
            "weekend_vs_weekday": insights.patterns.weekend_vs_weekday,
        },
        "messages": insight_messages(insights),
    }
