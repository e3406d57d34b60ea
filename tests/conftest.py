"""Shared test fixtures."""

import asyncio
import random
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from uuid import UUID, uuid4

import pytest

from meal_signals.config import Settings
from meal_signals.containers import AppContainer
from meal_signals.domain.errors import ImageFetchError, ImageUploadError
from meal_signals.domain.meals import (
    Completed,
    Meal,
    MealQuery,
    MealState,
    MealStatus,
    NewMeal,
    Pending,
    TerminalState,
)
from meal_signals.domain.recognition import FoodAnalysis, FoodItem
from meal_signals.domain.signals import LateMealWindow
from meal_signals.services.analysis import MealAnalyzer
from meal_signals.services.capture import CapturePipeline
from meal_signals.services.insights import InsightsService
from meal_signals.services.meals import (
    ImageStorage,
    MealHistoryService,
    MealRepository,
)
from meal_signals.services.recognition import (
    RecognitionClient,
    RecognitionService,
    VisionModelClient,
)
from meal_signals.services.recovery import RecoveryService

JPEG_BYTES = b"\xff\xd8\xff\xe0fake-jpeg-bytes"
PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-png-bytes"
FIXED_NOW = datetime(2024, 3, 6, 12, 30, tzinfo=UTC)


def sample_payload() -> dict[str, object]:
    return {
        "foods": [
            {"name": "bacon", "portion": "2 strips", "container": None},
            {"name": "cola", "portion": "500 ml", "container": "plastic_bottle"},
        ],
        "flags": ["processed_meat", "plastic_bottle", "high_sugar_beverage"],
        "estimated_nutrition": {
            "calories": 520,
            "protein": 14,
            "carbs": 58,
            "fat": 24,
            "sodium": 980,
        },
    }


def sample_analysis(flags: list[str] | None = None) -> FoodAnalysis:
    analysis = FoodAnalysis.model_validate(sample_payload())
    if flags is not None:
        analysis = analysis.model_copy(update={"flags": flags})
    return analysis


def make_meal(
    logged_at: datetime,
    flags: list[str] | None = None,
    user_id: str = "user-1",
    state: MealState | None = None,
    image_ref: str | None = None,
) -> Meal:
    return Meal(
        id=uuid4(),
        user_id=user_id,
        logged_at=logged_at,
        state=state
        or Completed(
            foods=[FoodItem(name="meal")],
            flags=list(flags or []),
            nutrition=None,
        ),
        image_ref=image_ref,
    )


@dataclass
class InMemoryMealRepository(MealRepository):
    """In-memory meal repository for tests."""

    meals: dict[UUID, Meal] = field(default_factory=dict)
    updates: list[tuple[UUID, TerminalState]] = field(default_factory=list)
    fail_updates: bool = False

    def add(self, meal: Meal) -> Meal:
        self.meals[meal.id] = meal
        return meal

    def create_meal(self, meal: NewMeal) -> UUID:
        meal_id = uuid4()
        self.meals[meal_id] = Meal(
            id=meal_id,
            user_id=meal.user_id,
            logged_at=meal.logged_at,
            state=Pending(),
            image_ref=meal.image_ref,
            source=meal.source,
        )
        return meal_id

    def update_meal(self, meal_id: UUID, state: TerminalState) -> None:
        if self.fail_updates:
            raise RuntimeError("database unavailable")
        self.updates.append((meal_id, state))
        current = self.meals.get(meal_id)
        if current is None or current.status is not MealStatus.PENDING:
            return
        self.meals[meal_id] = replace(current, state=state)

    def get_meal(self, meal_id: UUID) -> Meal | None:
        return self.meals.get(meal_id)

    def query_meals(self, user_id: str, query: MealQuery) -> list[Meal]:
        results = [
            meal
            for meal in self.meals.values()
            if meal.user_id == user_id
            and (query.status is None or meal.status is query.status)
            and (query.start is None or meal.logged_at >= query.start)
            and (query.end is None or meal.logged_at <= query.end)
        ]
        results.sort(key=lambda meal: meal.logged_at, reverse=True)
        return results[: query.limit]

    def delete_meal(self, meal_id: UUID) -> None:
        self.meals.pop(meal_id, None)


@dataclass
class InMemoryImageStorage(ImageStorage):
    """In-memory image storage for tests."""

    blobs: dict[str, bytes] = field(default_factory=dict)
    fail_put: bool = False
    fail_get: bool = False

    def put(self, user_id: str, image_bytes: bytes, mime_type: str) -> str:
        if self.fail_put:
            raise ImageUploadError("bucket unavailable")
        extension = mime_type.split("/")[-1]
        ref = f"{user_id}/{len(self.blobs) + 1}.{extension}"
        self.blobs[ref] = image_bytes
        return ref

    def get(self, ref: str) -> bytes:
        if self.fail_get or ref not in self.blobs:
            raise ImageFetchError(f"missing object {ref}")
        return self.blobs[ref]


@dataclass
class FakeVisionModelClient(VisionModelClient):
    """Fake vision client returning a fixed payload."""

    payload: dict[str, object] = field(default_factory=sample_payload)
    calls: list[dict[str, object]] = field(default_factory=list)

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
        self.calls.append(
            {
                "model": model,
                "reasoning_effort": reasoning_effort,
                "store": store,
                "image_data_url": image_data_url,
            }
        )
        return self.payload


@dataclass
class FakeRecognitionClient(RecognitionClient):
    """Scripted recognizer; results are consumed in order."""

    results: list[FoodAnalysis | Exception] = field(default_factory=list)
    calls: list[tuple[bytes, str | None]] = field(default_factory=list)
    gate: asyncio.Event | None = None

    async def analyze(
        self, image_bytes: bytes, mime_type: str | None = None
    ) -> FoodAnalysis:
        self.calls.append((image_bytes, mime_type))
        if self.gate is not None:
            await self.gate.wait()
        result = self.results.pop(0) if self.results else sample_analysis()
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def rng() -> random.Random:
    return random.Random(20240306)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        openai_api_key="openai-key",
        recover_on_startup=False,
    )


@pytest.fixture
def meal_repository() -> InMemoryMealRepository:
    return InMemoryMealRepository()


@pytest.fixture
def image_storage() -> InMemoryImageStorage:
    return InMemoryImageStorage()


@pytest.fixture
def recognizer() -> FakeRecognitionClient:
    return FakeRecognitionClient()


@pytest.fixture
def analyzer(
    meal_repository: InMemoryMealRepository, recognizer: FakeRecognitionClient
) -> MealAnalyzer:
    return MealAnalyzer(
        repository=meal_repository,
        recognizer=recognizer,
        late_window=LateMealWindow(),
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def vision_client() -> FakeVisionModelClient:
    return FakeVisionModelClient()


@pytest.fixture
def container(
    settings: Settings,
    meal_repository: InMemoryMealRepository,
    image_storage: InMemoryImageStorage,
    vision_client: FakeVisionModelClient,
) -> AppContainer:
    recognition_service = RecognitionService(
        client=vision_client,
        model=settings.openai_model,
        reasoning_effort=settings.openai_reasoning_effort,
        store=settings.openai_store,
    )
    analyzer = MealAnalyzer(repository=meal_repository, recognizer=recognition_service)
    capture_pipeline = CapturePipeline(
        repository=meal_repository, storage=image_storage, analyzer=analyzer
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        recognition_service=recognition_service,
        capture_pipeline=capture_pipeline,
        recovery_service=RecoveryService(
            repository=meal_repository, storage=image_storage, analyzer=analyzer
        ),
        history_service=MealHistoryService(meal_repository),
        insights_service=InsightsService(meal_repository),
        close_resources=close_resources,
    )


