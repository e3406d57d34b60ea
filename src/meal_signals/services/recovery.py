"""Recovery of meals left pending by an interrupted session."""

import logging
from dataclasses import dataclass, field
from uuid import UUID

from meal_signals.domain.errors import NO_IMAGE_MESSAGE
from meal_signals.domain.meals import Meal, MealQuery, MealStatus, TerminalState
from meal_signals.services.analysis import MealAnalyzer
from meal_signals.services.meals import ImageStorage, MealRepository

logger = logging.getLogger(__name__)


@dataclass
class RecoveryReport:
    """Outcome of one recovery pass."""

    examined: int = 0
    completed: list[UUID] = field(default_factory=list)
    failed: list[UUID] = field(default_factory=list)
    skipped: list[UUID] = field(default_factory=list)


@dataclass
class RecoveryService:
    """Re-drives a bounded batch of pending meals through analysis."""

    repository: MealRepository
    storage: ImageStorage
    analyzer: MealAnalyzer
    batch_size: int = 10

    async def recover_pending(self, user_id: str) -> RecoveryReport:
        """Move each pending meal in the batch to a terminal state once."""
        report = RecoveryReport()
        pending = self.repository.query_meals(
            user_id, MealQuery(status=MealStatus.PENDING, limit=self.batch_size)
        )
        if not pending:
            logger.info("No pending meals to recover", extra={"user_id": user_id})
            return report

        logger.info(
            "Recovering pending meals",
            extra={"user_id": user_id, "count": len(pending)},
        )
        seen: set[UUID] = set()
        for meal in pending:
            if meal.id in seen or meal.status is not MealStatus.PENDING:
                report.skipped.append(meal.id)
                continue
            seen.add(meal.id)
            if not self.analyzer.claim(meal.id):
                logger.info(
                    "Meal analysis already in flight", extra={"meal_id": str(meal.id)}
                )
                report.skipped.append(meal.id)
                continue
            report.examined += 1

            try:
                state = await self._recover(meal)
            finally:
                self.analyzer.release(meal.id)

            if state.status is MealStatus.COMPLETED:
                report.completed.append(meal.id)
            else:
                report.failed.append(meal.id)
        return report

    async def _recover(self, meal: Meal) -> TerminalState:
        if not meal.image_ref:
            logger.info("Pending meal has no image", extra={"meal_id": str(meal.id)})
            return self.analyzer.fail(meal.id, NO_IMAGE_MESSAGE)
        try:
            image_bytes = self.storage.get(meal.image_ref)
        except Exception as exc:
            logger.warning(
                "Could not fetch stored meal image", extra={"meal_id": str(meal.id)}
            )
            return self.analyzer.fail(meal.id, f"Could not fetch image: {exc}")
        return await self.analyzer.analyze(meal.id, meal.logged_at, image_bytes)
