"""Domain models for captured meals."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from uuid import UUID

from meal_signals.domain.recognition import FoodItem, NutritionEstimate


class MealStatus(StrEnum):
    """Lifecycle states of a captured meal."""

    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class MealSource(StrEnum):
    """Where the meal image came from."""

    PHONE_PHOTO = "phone_photo"
    GALLERY = "gallery"


@dataclass(frozen=True)
class Pending:
    """Meal awaiting analysis."""

    status = MealStatus.PENDING


@dataclass(frozen=True)
class Completed:
    """Meal with recognition results written in one update."""

    foods: list[FoodItem]
    flags: list[str]
    nutrition: NutritionEstimate | None
    analyzed_at: datetime | None = None

    status = MealStatus.COMPLETED


@dataclass(frozen=True)
class Failed:
    """Meal whose analysis ended in an error."""

    error_message: str

    status = MealStatus.FAILED


MealState = Pending | Completed | Failed
TerminalState = Completed | Failed


@dataclass(frozen=True)
class NewMeal:
    """Values required to create a pending meal record."""

    user_id: str
    logged_at: datetime
    image_ref: str | None = None
    source: MealSource = MealSource.PHONE_PHOTO


@dataclass(frozen=True)
class Meal:
    """A captured meal and its current lifecycle state."""

    id: UUID
    user_id: str
    logged_at: datetime
    state: MealState = field(default_factory=Pending)
    image_ref: str | None = None
    source: MealSource = MealSource.PHONE_PHOTO

    @property
    def status(self) -> MealStatus:
        return self.state.status

    @property
    def foods(self) -> list[FoodItem]:
        if isinstance(self.state, Completed):
            return self.state.foods
        return []

    @property
    def flags(self) -> list[str]:
        if isinstance(self.state, Completed):
            return self.state.flags
        return []

    @property
    def nutrition(self) -> NutritionEstimate | None:
        if isinstance(self.state, Completed):
            return self.state.nutrition
        return None

    @property
    def error_message(self) -> str | None:
        if isinstance(self.state, Failed):
            return self.state.error_message
        return None


@dataclass(frozen=True)
class MealQuery:
    """Filter for listing meals, newest first."""

    status: MealStatus | None = None
    start: datetime | None = None
    end: datetime | None = None
    limit: int = 100


def unique_flags(flags: list[str]) -> list[str]:
    """Drop repeated flags while keeping first-seen order."""
    seen: set[str] = set()
    result: list[str] = []
    for flag in flags:
        cleaned = flag.strip()
        if not cleaned or cleaned in seen:
            continue
        seen.add(cleaned)
        result.append(cleaned)
    return result
