"""Shared building blocks for the domain analyzers."""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable
from datetime import datetime
from functools import cached_property

from ..aggregation import daily_series, date_key, group_by_day, hour_in_timezone
from ..models import (
    AnalysisContext,
    AnalyzedInsight,
    BristolStoolLog,
    CaffeineLog,
    ExerciseLog,
    FoodEntry,
    InsightType,
    LogType,
    MetricSample,
    MetricType,
    SupplementLog,
    SymptomLog,
    WeatherRecord,
)

Analyzer = Callable[[AnalysisContext], list[AnalyzedInsight]]

# Most cohort comparisons require this many observed days per side.
MIN_COHORT = 2

BUSY_DAY_EVENTS = 4
CALM_DAY_EVENTS = 1


def correlation(title: str, description: str, confidence: float, *signals: str) -> AnalyzedInsight:
    return AnalyzedInsight(
        type=InsightType.CORRELATION,
        title=title,
        description=description,
        confidence=confidence,
        related_signals=frozenset(signals),
    )


def recommendation(
    title: str, description: str, confidence: float, *signals: str
) -> AnalyzedInsight:
    return AnalyzedInsight(
        type=InsightType.RECOMMENDATION,
        title=title,
        description=description,
        confidence=confidence,
        related_signals=frozenset(signals),
    )


def prediction(title: str, description: str, confidence: float, *signals: str) -> AnalyzedInsight:
    return AnalyzedInsight(
        type=InsightType.PREDICTION,
        title=title,
        description=description,
        confidence=confidence,
        related_signals=frozenset(signals),
    )


def pct(delta: float, base: float) -> int:
    """Relative change as a whole percentage; a zero base counts as 1."""
    return round(delta / (base or 1) * 100)


class DailySignals:
    """Per-day views of a context, computed on first access.

    Each analyzer builds its own instance, so nothing is shared between
    analyzers.
    """

    def __init__(self, ctx: AnalysisContext) -> None:
        self.ctx = ctx
        self.tz = ctx.timezone

    def day(self, record_time: datetime) -> str:
        return date_key(record_time, self.tz)

    def hour(self, record_time: datetime) -> int:
        return hour_in_timezone(record_time, self.tz)

    # -- metric samples --

    def samples(self, *metric_types: MetricType) -> list[MetricSample]:
        return self.ctx.metrics_of(*metric_types)

    @cached_property
    def sleep_samples(self) -> list[MetricSample]:
        return self.samples(MetricType.SLEEP)

    @cached_property
    def hrv_samples(self) -> list[MetricSample]:
        return self.samples(MetricType.HRV)

    @cached_property
    def step_samples(self) -> list[MetricSample]:
        return self.samples(MetricType.STEPS)

    @cached_property
    def weight_samples(self) -> list[MetricSample]:
        return self.samples(MetricType.WEIGHT)

    @cached_property
    def heart_samples(self) -> list[MetricSample]:
        return self.samples(MetricType.HEART_RATE, MetricType.RESTING_HEART_RATE)

    @cached_property
    def sleep(self) -> dict[str, float]:
        """Hours slept, last sample of each day."""
        return daily_series(self.sleep_samples, self.tz)

    @cached_property
    def hrv(self) -> dict[str, float]:
        return daily_series(self.hrv_samples, self.tz)

    @cached_property
    def steps(self) -> dict[str, float]:
        return daily_series(self.step_samples, self.tz)

    @cached_property
    def weight(self) -> dict[str, float]:
        return daily_series(self.weight_samples, self.tz)

    @cached_property
    def resting_hr(self) -> dict[str, float]:
        """Lowest heart rate of each day."""
        return daily_series(self.heart_samples, self.tz, reduce="min")

    @cached_property
    def mean_hr(self) -> dict[str, float]:
        return daily_series(self.heart_samples, self.tz, reduce="mean")

    @cached_property
    def calories_burned(self) -> dict[str, float]:
        return daily_series(
            self.samples(MetricType.CALORIES_BURNED, MetricType.ACTIVE_CALORIES), self.tz
        )

    # -- food --

    @cached_property
    def foods(self) -> list[FoodEntry]:
        return list(self.ctx.foods)

    def food_total(self, nutrient: str) -> dict[str, float]:
        """Daily sum of a nutrient over entries that report it."""
        return daily_series(
            self.foods,
            self.tz,
            timestamp_field="logged_at",
            value=lambda f: getattr(f, nutrient),
        )

    @cached_property
    def sodium(self) -> dict[str, float]:
        return self._positive(self.food_total("sodium"))

    @cached_property
    def sugar(self) -> dict[str, float]:
        return self._positive(self.food_total("sugar"))

    @cached_property
    def fiber(self) -> dict[str, float]:
        return self._positive(self.food_total("fiber"))

    @cached_property
    def calorie_intake(self) -> dict[str, float]:
        return self._positive(self.food_total("calories"))

    @staticmethod
    def _positive(series: dict[str, float]) -> dict[str, float]:
        return {day: value for day, value in series.items() if value > 0}

    @cached_property
    def dairy_days(self) -> set[str]:
        return {self.day(f.logged_at) for f in self.foods if f.contains_dairy}

    @cached_property
    def gluten_days(self) -> set[str]:
        return {self.day(f.logged_at) for f in self.foods if f.contains_gluten}

    @cached_property
    def food_days(self) -> set[str]:
        return {self.day(f.logged_at) for f in self.foods}

    @cached_property
    def late_meal_days(self) -> set[str]:
        """Days with any meal logged at or after 21:00."""
        return {self.day(f.logged_at) for f in self.foods if self.hour(f.logged_at) >= 21}

    # -- manual logs --

    @cached_property
    def symptom_logs(self) -> list[SymptomLog]:
        return self.ctx.logs_of(LogType.SYMPTOM)  # type: ignore[return-value]

    @cached_property
    def caffeine_logs(self) -> list[CaffeineLog]:
        return self.ctx.logs_of(LogType.CAFFEINE)  # type: ignore[return-value]

    @cached_property
    def exercise_logs(self) -> list[ExerciseLog]:
        return self.ctx.logs_of(LogType.EXERCISE)  # type: ignore[return-value]

    @cached_property
    def supplement_logs(self) -> list[SupplementLog]:
        return self.ctx.logs_of(LogType.SUPPLEMENT)  # type: ignore[return-value]

    @cached_property
    def bristol_logs(self) -> list[BristolStoolLog]:
        return self.ctx.logs_of(LogType.BRISTOL_STOOL)  # type: ignore[return-value]

    @cached_property
    def symptoms_by_day(self) -> dict[str, list[str]]:
        """Lower-cased symptom names reported on each day."""
        grouped = group_by_day(self.symptom_logs, "logged_at", self.tz)
        return {day: [s.value.lower() for s in logs] for day, logs in grouped.items()}

    @cached_property
    def symptom_counts(self) -> dict[str, float]:
        return {day: float(len(names)) for day, names in self.symptoms_by_day.items()}

    def symptom_count(self, day: str) -> float:
        """Symptoms reported on ``day``; zero when none were logged."""
        return self.symptom_counts.get(day, 0.0)

    @cached_property
    def caffeine_mg(self) -> dict[str, float]:
        return daily_series(
            self.caffeine_logs,
            self.tz,
            timestamp_field="logged_at",
            value=lambda c: float(c.milligrams),
            reduce="sum",
        )

    @cached_property
    def first_caffeine_hour(self) -> dict[str, int]:
        hours: dict[str, int] = {}
        for log in self.caffeine_logs:
            day, hour = self.day(log.logged_at), self.hour(log.logged_at)
            if day not in hours or hour < hours[day]:
                hours[day] = hour
        return hours

    @cached_property
    def exercise_by_day(self) -> dict[str, list[ExerciseLog]]:
        return group_by_day(self.exercise_logs, "logged_at", self.tz)

    @cached_property
    def supplement_days(self) -> set[str]:
        return {self.day(s.logged_at) for s in self.supplement_logs}

    @cached_property
    def bristol(self) -> dict[str, float]:
        """Mean stool type per day."""
        return daily_series(
            self.bristol_logs,
            self.tz,
            timestamp_field="logged_at",
            value=lambda b: float(b.stool_type),
            reduce="mean",
        )

    # -- calendar and weather --

    @cached_property
    def event_counts(self) -> dict[str, int]:
        """Number of timed or all-day events starting on each day."""
        counts: Counter[str] = Counter(self.day(e.start_time) for e in self.ctx.events)
        return dict(counts)

    @cached_property
    def busy_days(self) -> list[str]:
        return sorted(d for d, n in self.event_counts.items() if n >= BUSY_DAY_EVENTS)

    @cached_property
    def calm_days(self) -> list[str]:
        return sorted(d for d, n in self.event_counts.items() if n <= CALM_DAY_EVENTS)

    @cached_property
    def weather_by_day(self) -> dict[str, WeatherRecord]:
        return {w.date.isoformat(): w for w in self.ctx.weather}

    def weather_field(self, name: str) -> dict[str, float]:
        values: dict[str, float] = {}
        for day, record in self.weather_by_day.items():
            value = getattr(record, name)
            if value is not None:
                values[day] = float(value)
        return values
