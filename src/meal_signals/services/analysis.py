"""Shared analysis step that moves a pending meal to a terminal state."""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, tzinfo
from uuid import UUID

from meal_signals.domain.errors import RecognitionError
from meal_signals.domain.meals import Completed, Failed, TerminalState, unique_flags
from meal_signals.domain.recognition import FoodAnalysis
from meal_signals.domain.signals import LATE_MEAL_FLAG, LateMealWindow
from meal_signals.services.meals import MealRepository
from meal_signals.services.recognition import RecognitionClient

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass
class MealAnalyzer:
    """Runs recognition for one meal and writes exactly one terminal update."""

    repository: MealRepository
    recognizer: RecognitionClient
    late_window: LateMealWindow = field(default_factory=LateMealWindow)
    tz: tzinfo = UTC
    clock: Callable[[], datetime] = _utcnow
    _claimed: set[UUID] = field(default_factory=set, init=False, repr=False)

    def claim(self, meal_id: UUID) -> bool:
        """Reserve a meal for one analysis pass; False if already in flight."""
        if meal_id in self._claimed:
            return False
        self._claimed.add(meal_id)
        return True

    def release(self, meal_id: UUID) -> None:
        self._claimed.discard(meal_id)

    async def analyze(
        self,
        meal_id: UUID,
        logged_at: datetime,
        image_bytes: bytes,
        mime_type: str | None = None,
    ) -> TerminalState:
        """Analyze image bytes and persist the outcome; never raises."""
        try:
            analysis = await self.recognizer.analyze(image_bytes, mime_type)
            state: TerminalState = self.completed_state(analysis, logged_at)
        except RecognitionError as exc:
            logger.warning(
                "Meal analysis failed",
                extra={"meal_id": str(meal_id), "kind": exc.kind},
            )
            state = Failed(error_message=str(exc) or "Analysis failed")
        except Exception as exc:
            logger.exception(
                "Unexpected meal analysis error", extra={"meal_id": str(meal_id)}
            )
            state = Failed(error_message=str(exc) or "Unknown error")
        return self.finish(meal_id, state)

    def completed_state(self, analysis: FoodAnalysis, logged_at: datetime) -> Completed:
        """Build the completed state, deriving the late-meal flag locally."""
        flags = unique_flags(analysis.flags)
        if self.is_late(logged_at) and LATE_MEAL_FLAG not in flags:
            flags.append(LATE_MEAL_FLAG)
        return Completed(
            foods=list(analysis.foods),
            flags=flags,
            nutrition=analysis.nutrition,
            analyzed_at=self.clock(),
        )

    def is_late(self, logged_at: datetime) -> bool:
        """Return whether a capture time falls in the late-night window."""
        if logged_at.tzinfo is None:
            logged_at = logged_at.replace(tzinfo=UTC)
        return self.late_window.contains(logged_at.astimezone(self.tz).hour)

    def fail(self, meal_id: UUID, message: str) -> TerminalState:
        """Mark a meal failed without running recognition."""
        return self.finish(meal_id, Failed(error_message=message))

    def finish(self, meal_id: UUID, state: TerminalState) -> TerminalState:
        """Persist a terminal state; storage errors are logged, not raised."""
        try:
            self.repository.update_meal(meal_id, state)
        except Exception:
            logger.exception(
                "Failed to persist meal state",
                extra={"meal_id": str(meal_id), "status": state.status.value},
            )
            return state
        logger.info(
            "Meal analysis finished",
            extra={"meal_id": str(meal_id), "status": state.status.value},
        )
        return state
