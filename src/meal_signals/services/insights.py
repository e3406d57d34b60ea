"""Insights engine turning analyzed meals into signal statistics."""

import math
from dataclasses import dataclass
from datetime import UTC, date, datetime, timedelta, tzinfo
from zoneinfo import ZoneInfo

from meal_signals.domain.insights import (
    InsightPatterns,
    Insights,
    InsightWindow,
    SignalInsight,
)
from meal_signals.domain.meals import Meal, MealQuery, MealStatus
from meal_signals.domain.signals import (
    CAFFEINE_FLAG,
    SIGNALS,
    ConcernLevel,
    Metric,
    SignalDefinition,
)
from meal_signals.services.meals import MealRepository

NO_DATA = "no data"
NOT_AVAILABLE = "N/A"
LATE_CAFFEINE_HOUR = 14
DINNER_START_HOUR = 17
DINNER_END_HOUR = 23
WEEKEND_SKEW = 1.2
DAY_NAMES = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)

TIME_WINDOWS: dict[str, tuple[str, int]] = {
    "7d": ("Week", 7),
    "30d": ("1M", 30),
    "90d": ("3M", 90),
    "180d": ("6M", 180),
    "365d": ("1Y", 365),
}


def compute_insights(
    meals: list[Meal], window: InsightWindow | None = None, tz: tzinfo = UTC
) -> Insights:
    """Aggregate meals into per-signal rates and concern levels.

    Pure and deterministic: clock values come only from each meal's
    ``logged_at`` rendered in ``tz``. Flags outside the signal table are
    ignored. When ``window`` is given, meals outside it are dropped first.
    """
    selected = sorted(
        (
            meal
            for meal in meals
            if window is None or window.contains(_aware(meal.logged_at))
        ),
        key=lambda meal: (_aware(meal.logged_at), str(meal.id)),
    )
    if not selected:
        return _empty_insights(window)

    total_meals = len(selected)
    day_span = _day_span(selected)
    local_times = [_aware(meal.logged_at).astimezone(tz) for meal in selected]

    signals = {
        key: _signal_insight(
            definition,
            _count_signal(selected, definition.flags),
            day_span,
            total_meals,
        )
        for key, definition in SIGNALS.items()
    }

    late_caffeine_count = sum(
        1
        for meal, local in zip(selected, local_times, strict=True)
        if CAFFEINE_FLAG in meal.flags and local.hour >= LATE_CAFFEINE_HOUR
    )

    return Insights(
        total_meals=total_meals,
        date_range=_date_range(local_times),
        days_tracked=day_span,
        signals=signals,
        late_caffeine_count=late_caffeine_count,
        avg_dinner_time=_avg_dinner_time(local_times),
        patterns=InsightPatterns(
            busiest_day=_busiest_day(local_times),
            weekend_vs_weekday=_weekend_pattern(local_times),
        ),
        window=window,
    )


def resolve_window(key: str, now: datetime, tz: tzinfo = UTC) -> InsightWindow:
    """Build a preset window ending at ``now``.

    ``7d`` is the current Monday-to-Sunday week; the others trail ``now`` by
    their number of days.
    """
    if key not in TIME_WINDOWS:
        raise ValueError(f"Unknown insights window: {key}")
    label, days = TIME_WINDOWS[key]
    local_now = _aware(now).astimezone(tz)
    if key == "7d":
        start = (local_now - timedelta(days=local_now.weekday())).replace(
            hour=0, minute=0, second=0, microsecond=0
        )
        end = start + timedelta(days=7) - timedelta(microseconds=1)
    else:
        start = local_now - timedelta(days=days)
        end = local_now
    return InsightWindow(key=key, label=label, start=start, end=end)


def insight_messages(insights: Insights) -> list[str]:
    """Return short plain-language notes for signals above the low band."""
    messages: list[str] = []
    plastic = insights.signal("plastic")
    if plastic.concern_level is not ConcernLevel.LOW:
        messages.append(
            f"You had {plastic.count} drinks from plastic bottles "
            f"({plastic.value:.1f}/day). Reusable bottles reduce microplastic "
            "exposure."
        )
    processed_meat = insights.signal("processed_meat")
    if processed_meat.concern_level is not ConcernLevel.LOW:
        messages.append(
            f"Processed meat: {processed_meat.value:.1f} servings/week. "
            "Common guidance is fewer than 3 per week."
        )
    late_meal = insights.signal("late_meal")
    if late_meal.concern_level is not ConcernLevel.LOW:
        messages.append(f"{late_meal.value:.0f}% of meals were eaten after 9pm.")
    if insights.late_caffeine_count > 0:
        messages.append(
            f"{insights.late_caffeine_count} caffeinated drinks after 2pm."
        )
    alcohol = insights.signal("alcohol")
    if alcohol.concern_level is not ConcernLevel.LOW:
        messages.append(f"Alcohol: {alcohol.value:.1f} drinks/week.")
    return messages


@dataclass
class InsightsService:
    """Loads analyzed meals for a window and computes insights."""

    repository: MealRepository
    timezone_name: str = "UTC"
    max_meals: int = 5000

    def get_insights(
        self, user_id: str, window_key: str = "30d", now: datetime | None = None
    ) -> Insights:
        """Return insights over completed meals in a preset window."""
        tz = ZoneInfo(self.timezone_name)
        window = resolve_window(window_key, now or datetime.now(tz=tz), tz)
        meals = self.repository.query_meals(
            user_id,
            MealQuery(
                status=MealStatus.COMPLETED,
                start=window.start.astimezone(UTC),
                end=window.end.astimezone(UTC),
                limit=self.max_meals,
            ),
        )
        return compute_insights(meals, window, tz)


def _signal_insight(
    definition: SignalDefinition, count: int, day_span: int, total_meals: int
) -> SignalInsight:
    if definition.metric is Metric.PER_DAY:
        value = count / day_span
    elif definition.metric is Metric.PER_WEEK:
        value = (count / day_span) * 7
    else:
        value = float(_round_half_up(100 * count / total_meals))
    return SignalInsight(
        signal=definition.key,
        metric=definition.metric,
        count=count,
        value=value,
        concern_level=definition.thresholds.classify(value),
    )


def _empty_insights(window: InsightWindow | None) -> Insights:
    return Insights(
        total_meals=0,
        date_range=NO_DATA,
        days_tracked=0,
        signals={
            key: SignalInsight(
                signal=key,
                metric=definition.metric,
                count=0,
                value=0.0,
                concern_level=ConcernLevel.LOW,
            )
            for key, definition in SIGNALS.items()
        },
        late_caffeine_count=0,
        avg_dinner_time=NOT_AVAILABLE,
        patterns=InsightPatterns(
            busiest_day=NOT_AVAILABLE, weekend_vs_weekday=NOT_AVAILABLE
        ),
        window=window,
    )


def _count_signal(meals: list[Meal], flags: tuple[str, ...]) -> int:
    return sum(1 for meal in meals if any(flag in meal.flags for flag in flags))


def _day_span(meals: list[Meal]) -> int:
    earliest = _aware(meals[0].logged_at)
    latest = _aware(meals[-1].logged_at)
    return max(math.ceil((latest - earliest) / timedelta(days=1)), 1)


def _date_range(local_times: list[datetime]) -> str:
    first = min(local_times).date()
    last = max(local_times).date()
    return f"{_format_date(first)} - {_format_date(last)}"


def _format_date(day: date) -> str:
    return f"{day.month}/{day.day}/{day.year}"


def _avg_dinner_time(local_times: list[datetime]) -> str:
    dinner_hours = [
        local.hour + local.minute / 60
        for local in local_times
        if DINNER_START_HOUR <= local.hour <= DINNER_END_HOUR
    ]
    if not dinner_hours:
        return NOT_AVAILABLE
    return format_clock(sum(dinner_hours) / len(dinner_hours))


def format_clock(hour: float) -> str:
    """Format fractional hours as ``h:mm am/pm``."""
    total_minutes = _round_half_up(hour * 60) % (24 * 60)
    h, m = divmod(total_minutes, 60)
    suffix = "pm" if h >= 12 else "am"
    display = h - 12 if h > 12 else 12 if h == 0 else h
    return f"{display}:{m:02d} {suffix}"


def _busiest_day(local_times: list[datetime]) -> str:
    counts = [0] * 7
    for local in local_times:
        counts[_sunday_index(local)] += 1
    return DAY_NAMES[counts.index(max(counts))]


def _weekend_pattern(local_times: list[datetime]) -> str:
    weekend = sum(1 for local in local_times if _sunday_index(local) in {0, 6})
    weekday = len(local_times) - weekend
    weekend_avg = weekend / 2
    weekday_avg = weekday / 5
    if weekend_avg > weekday_avg * WEEKEND_SKEW:
        return "More meals on weekends"
    if weekday_avg > weekend_avg * WEEKEND_SKEW:
        return "More meals on weekdays"
    return "Similar patterns"


def _sunday_index(moment: datetime) -> int:
    return (moment.weekday() + 1) % 7


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _aware(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment
