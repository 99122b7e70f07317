"""Food composition and meal timing against weight, gut, symptoms and sleep."""

from __future__ import annotations

from collections.abc import Collection

import structlog

from ..aggregation import compare_values, relative_cohorts, shift_day
from ..models import AnalysisContext, AnalyzedInsight
from .base import MIN_COHORT, DailySignals, correlation, pct, recommendation

logger = structlog.get_logger(__name__)

MIN_FOOD_ENTRIES = 5
MIN_NUTRIENT_DAYS = 3
IDEAL_BRISTOL = 3.5
LATE_MEAL_HOUR = 21


def analyze_nutrition(ctx: AnalysisContext) -> list[AnalyzedInsight]:
    signals = DailySignals(ctx)
    if len(signals.foods) < MIN_FOOD_ENTRIES:
        return []

    insights = [
        insight
        for insight in (
            _sodium_weight(signals),
            _sugar_symptoms(signals),
            _tag_digestion(signals),
            _gluten_digestion(signals),
            _fiber_digestion(signals),
            _late_meals_sleep(signals),
            _evening_eating(signals),
        )
        if insight is not None
    ]
    logger.debug("nutrition_analyzed", foods=len(signals.foods), insights=len(insights))
    return insights


def _split_by_tag(
    outcome_by_date: dict[str, float], tagged_days: Collection[str]
) -> tuple[list[float], list[float]]:
    tagged = [v for d, v in sorted(outcome_by_date.items()) if d in tagged_days]
    untagged = [v for d, v in sorted(outcome_by_date.items()) if d not in tagged_days]
    return tagged, untagged


def _sodium_weight(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.weight_samples) < 5 or len(signals.sodium) < MIN_NUTRIENT_DAYS:
        return None

    weight = signals.weight
    cohorts = relative_cohorts(signals.sodium, 1.3, 0.7)

    def overnight_change(days: list[str]) -> list[float]:
        changes = []
        for day in days:
            before, after = weight.get(day), weight.get(shift_day(day, 1))
            if before and after:
                changes.append(after - before)
        return changes

    comparison = compare_values(
        overnight_change(cohorts.high), overnight_change(cohorts.low), min_samples=MIN_COHORT
    )
    if comparison is None or comparison.difference <= 0.3:
        return None
    return correlation(
        "Sodium causes water retention",
        f"High-sodium days show {comparison.difference:.1f}kg more weight gain overnight.",
        0.79,
        "food",
        "weight",
        "sodium",
    )


def _sugar_symptoms(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.symptom_logs) < 3 or len(signals.sugar) < MIN_NUTRIENT_DAYS:
        return None

    cohorts = relative_cohorts(signals.sugar, 1.3, 0.7)
    comparison = compare_values(
        [signals.symptom_count(d) for d in cohorts.high],
        [signals.symptom_count(d) for d in cohorts.low],
        min_samples=MIN_COHORT,
    )
    if comparison is None or comparison.difference <= 0.5:
        return None
    return correlation(
        "High sugar = more symptoms",
        f"You report {pct(comparison.difference, comparison.low_mean)}% more symptoms "
        "on high-sugar days.",
        0.74,
        "food",
        "symptom",
        "sugar",
    )


def _tag_digestion(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.bristol_logs) < 5:
        return None

    dairy, no_dairy = _split_by_tag(signals.bristol, signals.dairy_days)
    comparison = compare_values(dairy, no_dairy, min_samples=MIN_COHORT)
    # Higher Bristol type means looser stool.
    if comparison is None or comparison.difference <= 1.0:
        return None
    return correlation(
        "Dairy affects digestion",
        f"Bristol scores are {comparison.difference:.1f} points higher (looser) on dairy days.",
        0.78,
        "food",
        "bristol",
        "dairy",
    )


def _gluten_digestion(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.bristol_logs) < 5:
        return None

    gluten, no_gluten = _split_by_tag(signals.bristol, signals.gluten_days)
    comparison = compare_values(gluten, no_gluten, min_samples=MIN_COHORT)
    if comparison is None or abs(comparison.difference) <= 1.0:
        return None
    direction = "looser" if comparison.difference > 0 else "harder"
    return correlation(
        "Gluten impacts digestion",
        f"Gluten days correlate with {direction} stools "
        f"({abs(comparison.difference):.1f} Bristol points).",
        0.75,
        "food",
        "bristol",
        "gluten",
    )


def _fiber_digestion(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.bristol_logs) < 5 or len(signals.fiber) < MIN_NUTRIENT_DAYS:
        return None

    cohorts = relative_cohorts(signals.fiber, 1.2, 0.8)
    bristol = signals.bristol
    comparison = compare_values(
        [bristol[d] for d in cohorts.high if d in bristol],
        [bristol[d] for d in cohorts.low if d in bristol],
        min_samples=MIN_COHORT,
    )
    if comparison is None:
        return None
    high_from_ideal = abs(comparison.high_mean - IDEAL_BRISTOL)
    low_from_ideal = abs(comparison.low_mean - IDEAL_BRISTOL)
    if low_from_ideal - high_from_ideal <= 0.5:
        return None
    return correlation(
        "Fiber improves digestion",
        "High-fiber days have more ideal Bristol scores (closer to type 3-4).",
        0.77,
        "food",
        "bristol",
        "fiber",
    )


def _late_meals_sleep(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.sleep_samples) < 5:
        return None

    late, normal = _split_by_tag(signals.sleep, signals.late_meal_days)
    comparison = compare_values(normal, late, min_samples=MIN_COHORT)
    if comparison is None or comparison.difference <= 0.4:
        return None
    return correlation(
        "Late meals disrupt sleep",
        f"Eating after 9pm correlates with {comparison.difference:.1f}h less sleep.",
        0.76,
        "food",
        "sleep",
    )


def _evening_eating(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.foods) < 8:
        return None

    hours = [signals.hour(f.logged_at) for f in signals.foods]
    morning = sum(1 for h in hours if 6 <= h < 12)
    evening = sum(1 for h in hours if 18 <= h < 24)
    if morning == 0 or evening == 0:
        return None

    balance = evening / (morning + evening)
    if balance <= 0.6:
        return None
    return recommendation(
        "Heavy evening eating pattern",
        f"{round(balance * 100)}% of meals logged after 6pm. "
        "Consider more breakfast/lunch to balance.",
        0.75,
        "food",
    )
