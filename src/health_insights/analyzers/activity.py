"""Daily step counts: activity level and what moves with it."""

from __future__ import annotations

from statistics import fmean

import structlog

from ..aggregation import compare_cohorts, compare_values, relative_cohorts
from ..models import AnalysisContext, AnalyzedInsight
from .base import MIN_COHORT, DailySignals, correlation, pct, recommendation

logger = structlog.get_logger(__name__)

MIN_STEP_SAMPLES = 5
LOW_ACTIVITY_STEPS = 5000
HIGH_ACTIVITY_STEPS = 10000
MOOD_SYMPTOMS = (
    "anxiety",
    "stress",
    "depression",
    "fatigue",
    "low energy",
    "irritability",
    "mood",
)


def analyze_activity(ctx: AnalysisContext) -> list[AnalyzedInsight]:
    signals = DailySignals(ctx)
    if len(signals.step_samples) < MIN_STEP_SAMPLES:
        return []

    insights = [
        insight
        for insight in (
            _activity_level(signals),
            _mood(signals),
            _sleep(signals),
            _hrv(signals),
            _calorie_burn(signals),
            _rain(signals),
        )
        if insight is not None
    ]
    insights.extend(_temperature(signals))
    logger.debug("activity_analyzed", samples=len(signals.step_samples), insights=len(insights))
    return insights


def _activity_level(signals: DailySignals) -> AnalyzedInsight | None:
    average = fmean(s.value for s in signals.step_samples)
    if average < LOW_ACTIVITY_STEPS:
        return recommendation(
            "Increase daily movement",
            f"Your average is {round(average):,} steps. Aim for 7,000-10,000.",
            0.80,
            "steps",
        )
    if average >= HIGH_ACTIVITY_STEPS:
        return recommendation(
            "Great activity level!",
            f"Averaging {round(average):,} steps/day. Excellent movement!",
            0.90,
            "steps",
        )
    return None


def _mood(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.symptom_logs) < 5:
        return None

    mood_counts = {
        day: float(sum(1 for name in names if any(m in name for m in MOOD_SYMPTOMS)))
        for day, names in signals.symptoms_by_day.items()
    }
    cohorts = relative_cohorts(signals.steps, 1.2, 0.8)
    comparison = compare_values(
        [mood_counts.get(d, 0.0) for d in cohorts.high],
        [mood_counts.get(d, 0.0) for d in cohorts.low],
        min_samples=MIN_COHORT,
    )
    if comparison is None or -comparison.difference <= 0.3:
        return None
    return correlation(
        "More steps = better mood",
        f"You report {pct(-comparison.difference, comparison.high_mean)}% fewer mood symptoms "
        "on active days.",
        0.79,
        "steps",
        "symptom",
        "mood",
    )


def _sleep(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.sleep_samples) < 5:
        return None

    comparison = compare_cohorts(relative_cohorts(signals.steps, 1.2, 0.8), signals.sleep)
    if comparison is None or comparison.difference <= 0.3:
        return None
    return correlation(
        "Active days = better sleep",
        f"You sleep {comparison.difference:.1f}h more on high-step days.",
        0.81,
        "steps",
        "sleep",
    )


def _hrv(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.hrv_samples) < 5:
        return None

    comparison = compare_cohorts(relative_cohorts(signals.steps, 1.2, 0.8), signals.hrv)
    if comparison is None or comparison.difference <= 3:
        return None
    return correlation(
        "Walking boosts HRV",
        f"Your HRV is {round(comparison.difference)}ms higher on active days.",
        0.77,
        "steps",
        "hrv",
    )


def _calorie_burn(signals: DailySignals) -> AnalyzedInsight | None:
    burned = signals.calories_burned
    if len(burned) < 5:
        return None

    pairs = [(steps, burned[d]) for d, steps in signals.steps.items() if burned.get(d)]
    if len(pairs) < 5:
        return None

    mean_steps = fmean(p[0] for p in pairs)
    mean_burn = fmean(p[1] for p in pairs)
    agreeing = sum(
        1
        for steps, burn in pairs
        if (steps > mean_steps and burn > mean_burn) or (steps < mean_steps and burn < mean_burn)
    )
    if agreeing / len(pairs) <= 0.7:
        return None
    return correlation(
        "Steps predict calorie burn",
        "More steps strongly correlate with calories burned. Keep moving!",
        0.85,
        "steps",
        "calories",
    )


def _rain(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.ctx.weather) < 5:
        return None

    rain = signals.weather_field("precipitation_mm")
    rainy = [s for d, s in sorted(signals.steps.items()) if rain.get(d, 0) > 1]
    dry = [s for d, s in sorted(signals.steps.items()) if d in rain and rain[d] == 0]
    comparison = compare_values(dry, rainy, min_samples=MIN_COHORT)
    if comparison is None or comparison.difference <= 1000:
        return None
    return correlation(
        "Rain reduces activity",
        f"You walk {round(comparison.difference):,} fewer steps on rainy days.",
        0.79,
        "steps",
        "weather",
    )


def _temperature(signals: DailySignals) -> list[AnalyzedInsight]:
    if len(signals.ctx.weather) < 5:
        return []

    temperature = signals.weather_field("temperature_high")
    hot: list[float] = []
    nice: list[float] = []
    cold: list[float] = []
    for day, steps in sorted(signals.steps.items()):
        high = temperature.get(day)
        if high is None:
            continue
        if high > 30:
            hot.append(steps)
        elif 15 <= high <= 25:
            nice.append(steps)
        elif high < 5:
            cold.append(steps)

    insights = []
    heat = compare_values(nice, hot, min_samples=MIN_COHORT)
    if heat is not None and heat.difference > 1500:
        insights.append(
            correlation(
                "Heat reduces activity",
                f"You walk {round(heat.difference):,} fewer steps when it's over 30°C.",
                0.76,
                "steps",
                "weather",
            )
        )
    chill = compare_values(nice, cold, min_samples=MIN_COHORT)
    if chill is not None and chill.difference > 1500:
        insights.append(
            correlation(
                "Cold reduces activity",
                f"You walk {round(chill.difference):,} fewer steps when it's below 5°C.",
                0.76,
                "steps",
                "weather",
            )
        )
    return insights
