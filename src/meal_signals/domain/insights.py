"""Domain models for dietary insights."""

from dataclasses import dataclass, field
from datetime import datetime

from meal_signals.domain.signals import ConcernLevel, Metric


@dataclass(frozen=True)
class SignalInsight:
    """Count, normalized rate and concern band for one signal."""

    signal: str
    metric: Metric
    count: int
    value: float
    concern_level: ConcernLevel

    @property
    def per_day(self) -> float | None:
        return self.value if self.metric is Metric.PER_DAY else None

    @property
    def per_week(self) -> float | None:
        return self.value if self.metric is Metric.PER_WEEK else None

    @property
    def percent(self) -> float | None:
        return self.value if self.metric is Metric.PERCENT else None


@dataclass(frozen=True)
class InsightPatterns:
    """Day-of-week summary."""

    busiest_day: str
    weekend_vs_weekday: str


@dataclass(frozen=True)
class InsightWindow:
    """Inclusive time range used to select meals."""

    key: str
    label: str
    start: datetime
    end: datetime

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment <= self.end


@dataclass(frozen=True)
class Insights:
    """Aggregated signal statistics for a set of analyzed meals."""

    total_meals: int
    date_range: str
    days_tracked: int
    signals: dict[str, SignalInsight]
    late_caffeine_count: int
    avg_dinner_time: str
    patterns: InsightPatterns
    window: InsightWindow | None = field(default=None)

    def signal(self, key: str) -> SignalInsight:
        return self.signals[key]
