"""Food recognition service using vision-capable LLMs."""

import base64
from dataclasses import dataclass
from typing import Protocol

from pydantic import ValidationError

from meal_signals.domain.errors import RecognitionMalformedError
from meal_signals.domain.recognition import FoodAnalysis

_NUMBER = {"type": "number", "minimum": 0}

ANALYSIS_SCHEMA: dict[str, object] = {
    "type": "object",
    "properties": {
        "foods": {
            "type": "array",
            "items": {
                "type": "object",
                "properties": {
                    "name": {"type": "string"},
                    "portion": {"type": "string"},
                    "container": {
                        "anyOf": [
                            {
                                "type": "string",
                                "enum": ["plastic_bottle", "glass", "can", "none"],
                            },
                            {"type": "null"},
                        ]
                    },
                },
                "required": ["name", "portion", "container"],
                "additionalProperties": False,
            },
        },
        "flags": {"type": "array", "items": {"type": "string"}},
        "estimated_nutrition": {
            "type": "object",
            "properties": {
                "calories": _NUMBER,
                "protein": _NUMBER,
                "carbs": _NUMBER,
                "fat": _NUMBER,
                "sodium": _NUMBER,
            },
            "required": ["calories", "protein", "carbs", "fat", "sodium"],
            "additionalProperties": False,
        },
    },
    "required": ["foods", "flags", "estimated_nutrition"],
    "additionalProperties": False,
}

ANALYSIS_PROMPT = """Analyze this meal image. List each food with a short name,
a portion description and, for drinks, the container.

Apply these flags when detected (only include applicable ones):
- "plastic_bottle": beverage in a plastic bottle
- "plastic_container_hot": hot food served in a plastic container
- "processed_meat": bacon, sausage, hot dog, ham, salami, deli meat, jerky
- "ultra_processed": frozen meals, fast food, packaged snacks, instant noodles
- "charred_grilled": visibly charred or blackened food
- "fried": deep fried or pan fried foods
- "high_sugar_beverage": soda, juice, energy drinks, sweetened coffee or tea
- "caffeine": coffee, espresso, tea, energy drinks, caffeinated soda
- "alcohol": beer, wine, cocktails, spirits, hard seltzer
- "high_sodium": estimated sodium above 1000mg
- "refined_grain": white bread, white rice, regular pasta, pastries, pizza dough
- "spicy_irritant": very spicy foods, hot sauce, chili peppers, wasabi
- "acidic_trigger": citrus, tomato-based dishes, vinegar-heavy foods, coffee

Estimate nutrition for the whole meal: calories, protein, carbs and fat in
grams, sodium in milligrams. Only include flags that clearly apply."""


class VisionModelClient(Protocol):
    """Interface for LLM vision extraction."""

    async def extract(  # noqa: PLR0913
        self,
        *,
        model: str,
        reasoning_effort: str | None,
        store: bool,
        image_data_url: str,
        schema: dict[str, object],
        prompt: str,
    ) -> dict[str, object]:
        """Return structured vision extraction data."""


class RecognitionClient(Protocol):
    """Interface the capture pipeline uses to analyze meal photos."""

    async def analyze(
        self, image_bytes: bytes, mime_type: str | None = None
    ) -> FoodAnalysis:
        """Return foods, flags and nutrition or raise a RecognitionError."""


@dataclass
class RecognitionService(RecognitionClient):
    """Service that prepares recognition prompts and validates results."""

    client: VisionModelClient
    model: str
    reasoning_effort: str | None
    store: bool

    async def analyze(
        self, image_bytes: bytes, mime_type: str | None = None
    ) -> FoodAnalysis:
        """Recognize foods in an image via the configured client."""
        data_url = _to_data_url(image_bytes, mime_type)
        raw = await self.client.extract(
            model=self.model,
            reasoning_effort=self.reasoning_effort,
            store=self.store,
            image_data_url=data_url,
            schema=ANALYSIS_SCHEMA,
            prompt=ANALYSIS_PROMPT,
        )
        try:
            return FoodAnalysis.model_validate(raw)
        except ValidationError as exc:
            raise RecognitionMalformedError(
                f"Recognition response failed validation: {exc.error_count()} errors"
            ) from exc


def _to_data_url(image_bytes: bytes, mime_type: str | None = None) -> str:
    """Convert bytes to a base64 data URL for image input."""
    resolved = mime_type or detect_mime_type(image_bytes)
    encoded = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{resolved};base64,{encoded}"


def detect_mime_type(image_bytes: bytes) -> str:
    """Infer a basic image MIME type from file signatures."""
    if image_bytes.startswith(b"\xff\xd8\xff"):
        return "image/jpeg"
    if image_bytes.startswith(b"\x89PNG\r\n\x1a\n"):
        return "image/png"
    if image_bytes[:4] == b"RIFF" and image_bytes[8:12] == b"WEBP":
        return "image/webp"
    return "image/jpeg"
