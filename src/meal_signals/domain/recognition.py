"""Models for food recognition results."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

ContainerType = Literal["plastic_bottle", "glass", "can", "none"]


class FoodItem(BaseModel):
    """Single food identified in a meal photo."""

    name: str = Field(min_length=1)
    portion: str = ""
    container: ContainerType | None = None


class NutritionEstimate(BaseModel):
    """Rough nutrition totals for the whole meal."""

    calories: float = Field(ge=0.0)
    protein: float = Field(ge=0.0)
    carbs: float = Field(ge=0.0)
    fat: float = Field(ge=0.0)
    sodium: float = Field(ge=0.0)


class FoodAnalysis(BaseModel):
    """Structured output for a recognized meal."""

    model_config = ConfigDict(populate_by_name=True)

    foods: list[FoodItem]
    flags: list[str] = Field(default_factory=list)
    nutrition: NutritionEstimate = Field(alias="estimated_nutrition")
