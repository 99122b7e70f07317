"""Weight trend, smoothed over seven days, against food and sleep."""

from __future__ import annotations

from collections.abc import Callable
from statistics import fmean

import structlog

from ..aggregation import compare_values, moving_average, relative_cohorts, shift_day
from ..models import AnalysisContext, AnalyzedInsight
from .base import MIN_COHORT, DailySignals, correlation, prediction

logger = structlog.get_logger(__name__)

MIN_WEIGHT_SAMPLES = 5
TREND_MIN_DAYS = 14


class WeightTrend:
    """Seven-day moving average of daily weight and its day-over-day steps."""

    def __init__(self, signals: DailySignals) -> None:
        self.signals = signals
        self.by_date = moving_average(signals.weight)
        self.dates = sorted(self.by_date)

    def steps(self) -> list[tuple[str, float]]:
        """(previous weigh-in day, change to the next weigh-in) pairs."""
        return [
            (prev, self.by_date[day] - self.by_date[prev])
            for prev, day in zip(self.dates, self.dates[1:])
        ]

    def split_steps(
        self,
        in_high: Callable[[str], bool],
        in_low: Callable[[str], bool],
    ) -> tuple[list[float], list[float]]:
        high = [change for prev, change in self.steps() if in_high(prev)]
        low = [change for prev, change in self.steps() if in_low(prev)]
        return high, low


def analyze_weight(ctx: AnalysisContext) -> list[AnalyzedInsight]:
    signals = DailySignals(ctx)
    if len(signals.weight_samples) < MIN_WEIGHT_SAMPLES:
        return []

    trend = WeightTrend(signals)
    insights = [
        insight
        for insight in (
            _sodium(trend),
            _sleep(trend),
            _late_eating(trend),
            _calories(trend),
            _direction(trend),
        )
        if insight is not None
    ]
    logger.debug("weight_analyzed", days=len(trend.dates), insights=len(insights))
    return insights


def _sodium(trend: WeightTrend) -> AnalyzedInsight | None:
    signals = trend.signals
    if len(signals.foods) < 5 or len(signals.sodium) < 3:
        return None

    def next_day_change(days: list[str]) -> list[float]:
        changes = []
        for day in days:
            today, tomorrow = trend.by_date.get(day), trend.by_date.get(shift_day(day, 1))
            if today and tomorrow:
                changes.append(tomorrow - today)
        return changes

    cohorts = relative_cohorts(signals.sodium, 1.3, 0.7)
    comparison = compare_values(
        next_day_change(cohorts.high), next_day_change(cohorts.low), min_samples=MIN_COHORT
    )
    if comparison is None or comparison.difference <= 0.15:
        return None
    return correlation(
        "Sodium causes water weight",
        f"Weight (7-day avg) increases {comparison.difference:.2f}kg more after "
        "high-sodium meals.",
        0.79,
        "weight",
        "food",
        "sodium",
    )


def _sleep(trend: WeightTrend) -> AnalyzedInsight | None:
    signals = trend.signals
    if len(signals.sleep_samples) < 5:
        return None

    sleep = signals.sleep
    poor, good = trend.split_steps(
        lambda d: 0 < sleep.get(d, 0) < 6,
        lambda d: sleep.get(d, 0) >= 7.5,
    )
    comparison = compare_values(poor, good, min_samples=MIN_COHORT)
    if comparison is None or comparison.difference <= 0.08:
        return None
    return correlation(
        "Poor sleep affects weight",
        f"Weight (7-day avg) trends {comparison.difference:.2f}kg higher after poor sleep.",
        0.74,
        "weight",
        "sleep",
    )


def _late_eating(trend: WeightTrend) -> AnalyzedInsight | None:
    signals = trend.signals
    if len(signals.foods) < 5:
        return None

    late_days = signals.late_meal_days
    late, normal = trend.split_steps(lambda d: d in late_days, lambda d: d not in late_days)
    comparison = compare_values(late, normal, min_samples=MIN_COHORT)
    if comparison is None or comparison.difference <= 0.1:
        return None
    return correlation(
        "Late eating affects weight",
        f"Weight (7-day avg) trends {comparison.difference:.2f}kg higher after eating "
        "past 9pm.",
        0.73,
        "weight",
        "food",
    )


def _calories(trend: WeightTrend) -> AnalyzedInsight | None:
    signals = trend.signals
    calories = signals.calorie_intake
    if len(signals.foods) < 5 or len(calories) < 5:
        return None

    average = fmean(calories.values())
    surplus, deficit = trend.split_steps(
        lambda d: calories.get(d, 0) > average * 1.3,
        lambda d: 0 < calories.get(d, 0) < average * 0.7,
    )
    comparison = compare_values(surplus, deficit, min_samples=MIN_COHORT)
    if comparison is None or comparison.difference <= 0.15:
        return None
    return correlation(
        "Calories affect weight trend",
        f"Weight (7-day avg) trends {comparison.difference:.2f}kg more on surplus vs "
        "deficit days.",
        0.78,
        "weight",
        "food",
        "calories",
    )


def _direction(trend: WeightTrend) -> AnalyzedInsight | None:
    if len(trend.dates) < TREND_MIN_DAYS:
        return None

    first = fmean(trend.by_date[d] for d in trend.dates[:7])
    last = fmean(trend.by_date[d] for d in trend.dates[-7:])
    diff = last - first
    if abs(diff) <= 0.5:
        return None
    return prediction(
        f"Weight trending {'up' if diff > 0 else 'down'}",
        f"You've {'gained' if diff > 0 else 'lost'} ~{abs(diff):.1f}kg (7-day avg) over the "
        "tracking period.",
        0.85,
        "weight",
    )
