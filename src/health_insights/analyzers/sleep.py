"""Sleep duration, regularity and what moves it."""

from __future__ import annotations

from collections import Counter
from datetime import datetime
from statistics import fmean, pstdev

import structlog

from ..aggregation import compare_cohorts, compare_values, relative_cohorts
from ..models import AnalysisContext, AnalyzedInsight
from .base import MIN_COHORT, DailySignals, correlation, recommendation

logger = structlog.get_logger(__name__)

MIN_SLEEP_SAMPLES = 3
RECOMMENDED_SLEEP_HOURS = 7.0
LATE_CAFFEINE_HOUR = 14
CONSISTENCY_WINDOW = 7


def analyze_sleep(ctx: AnalysisContext) -> list[AnalyzedInsight]:
    """Sleep observations and sleep-related correlations.

    Args:
        ctx: Analysis context.

    Returns:
        Zero or more insights; empty with fewer than three sleep samples.
    """
    signals = DailySignals(ctx)
    if len(signals.sleep_samples) < MIN_SLEEP_SAMPLES:
        return []

    insights: list[AnalyzedInsight] = []
    for rule in (
        _duration,
        _caffeine_timing,
        _meal_timing,
        _exercise_timing,
        _steps,
        _consistency,
        _bedtime_regularity,
        _calendar_load,
        _calories,
        _sodium,
    ):
        insight = rule(signals)
        if insight is not None:
            insights.append(insight)

    logger.debug("sleep_analyzed", samples=len(signals.sleep_samples), insights=len(insights))
    return insights


def _duration(signals: DailySignals) -> AnalyzedInsight | None:
    average = fmean(s.value for s in signals.sleep_samples)
    if average >= RECOMMENDED_SLEEP_HOURS:
        return None
    return recommendation(
        "Improve sleep duration",
        f"Your average sleep is {average:.1f} hours. Aim for 7-9 hours.",
        0.85,
        "sleep",
    )


def _caffeine_timing(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.caffeine_logs) < 3:
        return None

    late: list[float] = []
    early: list[float] = []
    for log in signals.caffeine_logs:
        sleep = signals.sleep.get(signals.day(log.logged_at))
        if not sleep:
            continue
        if signals.hour(log.logged_at) >= LATE_CAFFEINE_HOUR:
            late.append(sleep)
        else:
            early.append(sleep)

    comparison = compare_values(early, late, min_samples=MIN_COHORT)
    if comparison is None or comparison.difference <= 0.5:
        return None
    return correlation(
        "Late caffeine hurts sleep",
        f"You sleep {comparison.difference:.1f}h less after caffeine past 2pm "
        f"({comparison.low_mean:.1f}h vs {comparison.high_mean:.1f}h).",
        0.84,
        "sleep",
        "caffeine",
    )


def _meal_timing(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.foods) < 5:
        return None

    # Only the first meal logged on each day counts.
    first_meal_hour: dict[str, int] = {}
    for food in signals.foods:
        first_meal_hour.setdefault(signals.day(food.logged_at), signals.hour(food.logged_at))

    late: list[float] = []
    early: list[float] = []
    for day, hour in first_meal_hour.items():
        sleep = signals.sleep.get(day)
        if not sleep:
            continue
        if hour >= 21:
            late.append(sleep)
        elif 17 <= hour <= 19:
            early.append(sleep)

    comparison = compare_values(early, late, min_samples=MIN_COHORT)
    if comparison is None or comparison.difference <= 0.4:
        return None
    return correlation(
        "Late eating affects sleep",
        f"Eating after 9pm correlates with {comparison.difference:.1f}h less sleep.",
        0.76,
        "sleep",
        "food",
    )


def _exercise_timing(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.exercise_logs) < 3:
        return None

    morning: list[float] = []
    evening: list[float] = []
    for log in signals.exercise_logs:
        sleep = signals.sleep.get(signals.day(log.logged_at))
        if not sleep:
            continue
        hour = signals.hour(log.logged_at)
        if hour < 12:
            morning.append(sleep)
        elif hour >= 18:
            evening.append(sleep)

    comparison = compare_values(morning, evening, min_samples=MIN_COHORT)
    if comparison is None or comparison.difference <= 0.3:
        return None
    return correlation(
        "Morning workouts = better sleep",
        f"You sleep {comparison.difference:.1f}h more after morning exercise vs evening.",
        0.78,
        "sleep",
        "exercise",
    )


def _steps(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.step_samples) < 5 or len(signals.sleep_samples) < 5:
        return None

    comparison = compare_cohorts(relative_cohorts(signals.steps, 1.2, 0.8), signals.sleep)
    if comparison is None or comparison.difference <= 0.3:
        return None
    return correlation(
        "Active days improve sleep",
        f"High-step days correlate with {comparison.difference:.1f}h more sleep.",
        0.80,
        "sleep",
        "steps",
    )


def _consistency(signals: DailySignals) -> AnalyzedInsight | None:
    recent_days = sorted(signals.sleep, reverse=True)[:CONSISTENCY_WINDOW]
    if len(recent_days) < CONSISTENCY_WINDOW:
        return None

    values = [signals.sleep[d] for d in recent_days]
    spread = pstdev(values)
    if spread > 1.5:
        return recommendation(
            "Inconsistent sleep schedule",
            f"Your sleep varies by ±{spread:.1f}h. Consistent timing improves sleep quality.",
            0.82,
            "sleep",
        )
    if spread < 0.5 and fmean(values) >= RECOMMENDED_SLEEP_HOURS:
        return recommendation(
            "Excellent sleep consistency!",
            f"Your sleep varies only ±{spread:.1f}h. Great habit!",
            0.88,
            "sleep",
        )
    return None


def _bedtime_regularity(signals: DailySignals) -> AnalyzedInsight | None:
    bedtimes: list[datetime] = []
    for sample in signals.sleep_samples:
        raw = sample.metadata.get("bedtime")
        if not isinstance(raw, str):
            continue
        try:
            bedtime = datetime.fromisoformat(raw)
        except ValueError:
            continue
        if bedtime.tzinfo is None:
            bedtime = bedtime.replace(tzinfo=sample.recorded_at.tzinfo)
        bedtimes.append(bedtime)

    if len(bedtimes) < 5:
        return None
    by_hour = Counter(signals.hour(b) for b in bedtimes)
    if len(by_hour) <= 1:
        return None
    if max(by_hour.values()) / len(bedtimes) >= 0.4:
        return None
    return recommendation(
        "Inconsistent bedtime",
        "Your bedtimes vary widely. A consistent schedule improves sleep quality.",
        0.80,
        "sleep",
    )


def _calendar_load(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.ctx.events) < 5 or len(signals.sleep_samples) < 5:
        return None

    sleep = signals.sleep
    busy = [sleep[d] for d in signals.busy_days if sleep.get(d)]
    calm = [sleep[d] for d in signals.calm_days if sleep.get(d)]
    comparison = compare_values(calm, busy, min_samples=MIN_COHORT)
    if comparison is None or comparison.difference <= 0.4:
        return None
    return correlation(
        "Busy days hurt sleep",
        f"Days with 4+ events correlate with {comparison.difference:.1f}h less sleep.",
        0.75,
        "sleep",
        "calendar",
    )


def _calories(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.foods) < 5 or len(signals.sleep_samples) < 5:
        return None
    if len(signals.calorie_intake) < 3:
        return None

    comparison = compare_cohorts(relative_cohorts(signals.calorie_intake, 1.2, 0.8), signals.sleep)
    if comparison is None or abs(comparison.difference) <= 0.4:
        return None

    well_fed = comparison.difference > 0
    return correlation(
        "Well-fed days = better sleep" if well_fed else "Light eating days = better sleep",
        f"Days with {'higher' if well_fed else 'lower'} calorie intake correlate with "
        f"{abs(comparison.difference):.1f}h more sleep.",
        0.72,
        "sleep",
        "food",
        "calories",
    )


def _sodium(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.foods) < 5 or len(signals.sleep_samples) < 5:
        return None
    if len(signals.sodium) < 3:
        return None

    comparison = compare_cohorts(relative_cohorts(signals.sodium, 1.3, 0.7), signals.sleep)
    if comparison is None or -comparison.difference <= 0.4:
        return None
    return correlation(
        "High sodium disrupts sleep",
        f"You sleep {-comparison.difference:.1f}h less on high-sodium days.",
        0.76,
        "sleep",
        "food",
        "sodium",
    )
