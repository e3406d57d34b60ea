"""Meal persistence interfaces and history service."""

from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

from meal_signals.domain.meals import Meal, MealQuery, NewMeal, TerminalState


class MealRepository(Protocol):
    """Persistence interface for meal records."""

    def create_meal(self, meal: NewMeal) -> UUID:
        """Create a pending meal record and return its id."""

    def update_meal(self, meal_id: UUID, state: TerminalState) -> None:
        """Apply a terminal state to a pending meal in a single atomic write."""

    def get_meal(self, meal_id: UUID) -> Meal | None:
        """Return a meal by id, if present."""

    def query_meals(self, user_id: str, query: MealQuery) -> list[Meal]:
        """Return meals matching the filter, newest first."""

    def delete_meal(self, meal_id: UUID) -> None:
        """Delete a meal record."""


class ImageStorage(Protocol):
    """Blob storage for meal images."""

    def put(self, user_id: str, image_bytes: bytes, mime_type: str) -> str:
        """Store image bytes and return a reference to them."""

    def get(self, ref: str) -> bytes:
        """Return the bytes stored under a reference."""


@dataclass
class MealHistoryService:
    """Read and delete access to a user's meals."""

    repository: MealRepository
    default_limit: int = 100

    def list_recent(self, user_id: str, limit: int | None = None) -> list[Meal]:
        """Return the most recent meals, any status."""
        return self.repository.query_meals(
            user_id, MealQuery(limit=limit or self.default_limit)
        )

    def get_meal(self, user_id: str, meal_id: UUID) -> Meal | None:
        """Return a meal if it belongs to the user."""
        meal = self.repository.get_meal(meal_id)
        if meal is None or meal.user_id != user_id:
            return None
        return meal

    def delete_meal(self, user_id: str, meal_id: UUID) -> bool:
        """Delete a meal owned by the user; return whether it existed."""
        meal = self.get_meal(user_id, meal_id)
        if meal is None:
            return False
        self.repository.delete_meal(meal_id)
        return True
