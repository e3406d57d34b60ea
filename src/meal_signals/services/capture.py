"""Optimistic capture pipeline with background recognition."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import UUID

from meal_signals.domain.errors import ImageUploadError
from meal_signals.domain.meals import MealSource, NewMeal
from meal_signals.services.analysis import MealAnalyzer
from meal_signals.services.meals import ImageStorage, MealRepository
from meal_signals.services.recognition import detect_mime_type

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True)
class CaptureHandle:
    """Acknowledgment returned once the pending meal exists."""

    meal_id: UUID
    logged_at: datetime
    image_ref: str | None
    upload_error: str | None = None

    @property
    def image_stored(self) -> bool:
        return self.image_ref is not None


@dataclass
class CapturePipeline:
    """Creates pending meals and analyzes them in detached tasks."""

    repository: MealRepository
    storage: ImageStorage
    analyzer: MealAnalyzer
    clock: Callable[[], datetime] = _utcnow
    _tasks: set[asyncio.Task[object]] = field(
        default_factory=set, init=False, repr=False
    )

    async def capture(
        self,
        user_id: str,
        image_bytes: bytes,
        mime_type: str | None = None,
        source: MealSource = MealSource.PHONE_PHOTO,
    ) -> CaptureHandle:
        """Persist a pending meal and schedule its analysis.

        Returns as soon as the record exists. If the upload fails the meal is
        still created without an image reference and the handle carries the
        upload error; the background analysis uses the in-memory bytes.
        """
        resolved_mime = mime_type or detect_mime_type(image_bytes)
        logged_at = self.clock()
        image_ref: str | None = None
        upload_error: str | None = None
        try:
            image_ref = self._upload(user_id, image_bytes, resolved_mime)
        except ImageUploadError as exc:
            upload_error = str(exc)
            logger.warning("Meal image upload failed", extra={"user_id": user_id})

        meal_id = self.repository.create_meal(
            NewMeal(
                user_id=user_id,
                logged_at=logged_at,
                image_ref=image_ref,
                source=source,
            )
        )
        logger.info(
            "Pending meal created",
            extra={"meal_id": str(meal_id), "has_image": image_ref is not None},
        )
        self._spawn(meal_id, logged_at, image_bytes, resolved_mime)
        return CaptureHandle(
            meal_id=meal_id,
            logged_at=logged_at,
            image_ref=image_ref,
            upload_error=upload_error,
        )

    @property
    def in_flight(self) -> int:
        """Number of analyses that have not finished yet."""
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for every in-flight analysis to reach a terminal state."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def _upload(self, user_id: str, image_bytes: bytes, mime_type: str) -> str:
        try:
            return self.storage.put(user_id, image_bytes, mime_type)
        except ImageUploadError:
            raise
        except Exception as exc:
            raise ImageUploadError(f"Image upload failed: {exc}") from exc

    def _spawn(
        self, meal_id: UUID, logged_at: datetime, image_bytes: bytes, mime_type: str
    ) -> None:
        # Claimed before the task starts so recovery never picks the meal up.
        self.analyzer.claim(meal_id)
        task = asyncio.create_task(
            self.analyzer.analyze(meal_id, logged_at, image_bytes, mime_type),
            name=f"analyze-meal-{meal_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        task.add_done_callback(lambda _: self.analyzer.release(meal_id))
