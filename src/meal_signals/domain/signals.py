"""Dietary signal taxonomy and concern thresholds."""

from dataclasses import dataclass
from enum import StrEnum
from types import MappingProxyType


class Metric(StrEnum):
    """Normalization strategy for a signal count."""

    PER_DAY = "perDay"
    PER_WEEK = "perWeek"
    PERCENT = "percent"


class ConcernLevel(StrEnum):
    """Severity band for a normalized signal rate."""

    LOW = "low"
    MODERATE = "moderate"
    ELEVATED = "elevated"


@dataclass(frozen=True)
class Thresholds:
    """Lower bounds (exclusive) of the moderate and elevated bands."""

    moderate: float
    elevated: float

    def classify(self, value: float) -> ConcernLevel:
        """Return the band for a value; both bounds compare strictly."""
        if value > self.elevated:
            return ConcernLevel.ELEVATED
        if value > self.moderate:
            return ConcernLevel.MODERATE
        return ConcernLevel.LOW


@dataclass(frozen=True)
class SignalDefinition:
    """Static description of one tracked signal."""

    key: str
    label: str
    flags: tuple[str, ...]
    metric: Metric
    thresholds: Thresholds
    unit: str


@dataclass(frozen=True)
class LateMealWindow:
    """Clock hours that count as a late meal (wraps past midnight)."""

    start_hour: int = 21
    end_hour: int = 5

    def contains(self, hour: int) -> bool:
        if self.start_hour <= self.end_hour:
            return self.start_hour <= hour < self.end_hour
        return hour >= self.start_hour or hour < self.end_hour


LATE_MEAL_FLAG = "late_meal"
CAFFEINE_FLAG = "caffeine"

_DEFINITIONS = (
    SignalDefinition(
        key="plastic",
        label="Plastic Bottles",
        flags=("plastic", "plastic_bottle"),
        metric=Metric.PER_DAY,
        thresholds=Thresholds(moderate=0.5, elevated=1),
        unit="per day",
    ),
    SignalDefinition(
        key="plastic_hot",
        label="Hot Food in Plastic",
        flags=("plastic_container_hot",),
        metric=Metric.PER_DAY,
        thresholds=Thresholds(moderate=0.15, elevated=0.3),
        unit="per day",
    ),
    SignalDefinition(
        key="processed_meat",
        label="Processed Meat",
        flags=("processed_meat",),
        metric=Metric.PER_WEEK,
        thresholds=Thresholds(moderate=2, elevated=3),
        unit="servings per week",
    ),
    SignalDefinition(
        key="charred_grilled",
        label="Charred or Grilled",
        flags=("charred_grilled", "charred"),
        metric=Metric.PER_WEEK,
        thresholds=Thresholds(moderate=2, elevated=4),
        unit="times per week",
    ),
    SignalDefinition(
        key="ultra_processed",
        label="Ultra-Processed",
        flags=("ultra_processed",),
        metric=Metric.PERCENT,
        thresholds=Thresholds(moderate=30, elevated=50),
        unit="% of meals",
    ),
    SignalDefinition(
        key="high_sugar_beverage",
        label="Sugary Drinks",
        flags=("high_sugar_beverage",),
        metric=Metric.PER_DAY,
        thresholds=Thresholds(moderate=0.5, elevated=1),
        unit="per day",
    ),
    SignalDefinition(
        key="caffeine",
        label="Caffeine",
        flags=(CAFFEINE_FLAG,),
        metric=Metric.PER_DAY,
        thresholds=Thresholds(moderate=3, elevated=4),
        unit="per day",
    ),
    SignalDefinition(
        key="alcohol",
        label="Alcohol",
        flags=("alcohol",),
        metric=Metric.PER_WEEK,
        thresholds=Thresholds(moderate=7, elevated=14),
        unit="drinks per week",
    ),
    SignalDefinition(
        key="fried_food",
        label="Fried Foods",
        flags=("fried_food", "fried"),
        metric=Metric.PER_WEEK,
        thresholds=Thresholds(moderate=3, elevated=5),
        unit="times per week",
    ),
    SignalDefinition(
        key="refined_grain",
        label="Refined Grains",
        flags=("refined_grain",),
        metric=Metric.PERCENT,
        thresholds=Thresholds(moderate=40, elevated=60),
        unit="% of meals",
    ),
    SignalDefinition(
        key="high_sodium",
        label="High Sodium",
        flags=("high_sodium",),
        metric=Metric.PER_DAY,
        thresholds=Thresholds(moderate=0.7, elevated=1.2),
        unit="meals per day",
    ),
    SignalDefinition(
        key="spicy_irritant",
        label="Spicy Foods",
        flags=("spicy_irritant",),
        metric=Metric.PER_WEEK,
        thresholds=Thresholds(moderate=4, elevated=7),
        unit="times per week",
    ),
    SignalDefinition(
        key="acidic_trigger",
        label="Acidic Foods",
        flags=("acidic_trigger",),
        metric=Metric.PER_WEEK,
        thresholds=Thresholds(moderate=4, elevated=7),
        unit="times per week",
    ),
    SignalDefinition(
        key="late_meal",
        label="Late Meals",
        flags=(LATE_MEAL_FLAG,),
        metric=Metric.PERCENT,
        thresholds=Thresholds(moderate=15, elevated=25),
        unit="% of meals after 9pm",
    ),
)

SIGNALS: MappingProxyType[str, SignalDefinition] = MappingProxyType(
    {definition.key: definition for definition in _DEFINITIONS}
)
KNOWN_FLAGS: frozenset[str] = frozenset(
    flag for definition in _DEFINITIONS for flag in definition.flags
)


def signal_table() -> list[dict[str, object]]:
    """Return the signal table in a serializable form for UI and reports."""
    return [
        {
            "key": definition.key,
            "label": definition.label,
            "flags": list(definition.flags),
            "metric": definition.metric.value,
            "unit": definition.unit,
            "moderate": definition.thresholds.moderate,
            "elevated": definition.thresholds.elevated,
        }
        for definition in SIGNALS.values()
    ]
