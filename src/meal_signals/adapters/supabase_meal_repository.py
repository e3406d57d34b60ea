"""Supabase repository for captured meals."""

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID

from supabase import Client

from meal_signals.domain.meals import (
    Completed,
    Failed,
    Meal,
    MealQuery,
    MealSource,
    MealState,
    MealStatus,
    NewMeal,
    Pending,
    TerminalState,
)
from meal_signals.domain.recognition import FoodItem, NutritionEstimate
from meal_signals.services.meals import MealRepository

_COLUMNS = (
    "id, user_id, logged_at, status, image_ref, source, foods, flags, nutrition, "
    "error_message, analyzed_at"
)


@dataclass
class SupabaseMealRepository(MealRepository):
    """Supabase implementation for meal records."""

    client: Client
    table: str = "meals"

    def create_meal(self, meal: NewMeal) -> UUID:
        """Insert a pending meal row and return its id."""
        response = (
            self.client.table(self.table)
            .insert(
                {
                    "user_id": meal.user_id,
                    "logged_at": meal.logged_at.isoformat(),
                    "status": MealStatus.PENDING.value,
                    "image_ref": meal.image_ref,
                    "source": meal.source.value,
                    "foods": [],
                    "flags": [],
                    "nutrition": None,
                }
            )
            .execute()
        )
        if not response.data:
            raise RuntimeError("Failed to create meal")
        return UUID(response.data[0]["id"])

    def update_meal(self, meal_id: UUID, state: TerminalState) -> None:
        """Write a terminal state in one row update, only while pending."""
        (
            self.client.table(self.table)
            .update(_state_payload(state))
            .eq("id", str(meal_id))
            .eq("status", MealStatus.PENDING.value)
            .execute()
        )

    def get_meal(self, meal_id: UUID) -> Meal | None:
        """Return a meal by id."""
        response = (
            self.client.table(self.table)
            .select(_COLUMNS)
            .eq("id", str(meal_id))
            .limit(1)
            .execute()
        )
        if not response.data:
            return None
        return _parse_row(response.data[0])

    def query_meals(self, user_id: str, query: MealQuery) -> list[Meal]:
        """Return a user's meals matching the filter, newest first."""
        request = (
            self.client.table(self.table).select(_COLUMNS).eq("user_id", user_id)
        )
        if query.status is not None:
            request = request.eq("status", query.status.value)
        if query.start is not None:
            request = request.gte("logged_at", query.start.isoformat())
        if query.end is not None:
            request = request.lte("logged_at", query.end.isoformat())
        response = request.order("logged_at", desc=True).limit(query.limit).execute()
        return [_parse_row(row) for row in response.data or []]

    def delete_meal(self, meal_id: UUID) -> None:
        """Delete a meal row."""
        self.client.table(self.table).delete().eq("id", str(meal_id)).execute()


def _state_payload(state: TerminalState) -> dict[str, object]:
    if isinstance(state, Completed):
        analyzed_at = state.analyzed_at or datetime.now(tz=UTC)
        return {
            "status": MealStatus.COMPLETED.value,
            "foods": [food.model_dump() for food in state.foods],
            "flags": list(state.flags),
            "nutrition": state.nutrition.model_dump() if state.nutrition else None,
            "analyzed_at": analyzed_at.isoformat(),
            "error_message": None,
        }
    return {
        "status": MealStatus.FAILED.value,
        "error_message": state.error_message,
    }


def _parse_row(row: dict[str, object]) -> Meal:
    source_raw = row.get("source")
    source = (
        MealSource(source_raw)
        if source_raw in {item.value for item in MealSource}
        else MealSource.PHONE_PHOTO
    )
    return Meal(
        id=UUID(str(row["id"])),
        user_id=str(row.get("user_id", "")),
        logged_at=_parse_datetime(row.get("logged_at"))
        or datetime.min.replace(tzinfo=UTC),
        state=_parse_state(row),
        image_ref=str(row["image_ref"]) if row.get("image_ref") else None,
        source=source,
    )


def _parse_state(row: dict[str, object]) -> MealState:
    status = row.get("status")
    if status == MealStatus.COMPLETED.value:
        foods_raw = row.get("foods") or []
        nutrition_raw = row.get("nutrition")
        return Completed(
            foods=[FoodItem.model_validate(food) for food in foods_raw],
            flags=[str(flag) for flag in row.get("flags") or []],
            nutrition=(
                NutritionEstimate.model_validate(nutrition_raw)
                if isinstance(nutrition_raw, dict)
                else None
            ),
            analyzed_at=_parse_datetime(row.get("analyzed_at")),
        )
    if status == MealStatus.FAILED.value:
        return Failed(error_message=str(row.get("error_message") or "Analysis failed"))
    return Pending()


def _parse_datetime(value: object) -> datetime | None:
    if isinstance(value, str) and value:
        return datetime.fromisoformat(value)
    return None
