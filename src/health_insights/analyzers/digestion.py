"""Bristol stool scale logs against caffeine, supplements and hydration."""

from __future__ import annotations

from statistics import fmean

import structlog

from ..aggregation import compare_values
from ..models import AnalysisContext, AnalyzedInsight
from .base import MIN_COHORT, DailySignals, correlation, recommendation

logger = structlog.get_logger(__name__)

MIN_BRISTOL_LOGS = 5
IDEAL_TYPE = 3.5
CAFFEINE_WINDOW_HOURS = 2


def analyze_digestion(ctx: AnalysisContext) -> list[AnalyzedInsight]:
    signals = DailySignals(ctx)
    if len(signals.bristol_logs) < MIN_BRISTOL_LOGS:
        return []

    insights = [
        insight
        for insight in (
            _caffeine_timing(signals),
            _supplements(signals),
            _hydration(signals),
            _overall(signals),
        )
        if insight is not None
    ]
    logger.debug("digestion_analyzed", logs=len(signals.bristol_logs), insights=len(insights))
    return insights


def _caffeine_timing(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.caffeine_logs) < 5:
        return None

    considered = after_caffeine = 0
    for log in signals.bristol_logs:
        caffeine_hour = signals.first_caffeine_hour.get(signals.day(log.logged_at))
        if caffeine_hour is None:
            continue
        considered += 1
        gap = signals.hour(log.logged_at) - caffeine_hour
        if 0 < gap <= CAFFEINE_WINDOW_HOURS:
            after_caffeine += 1

    if considered < 5 or after_caffeine / considered <= 0.4:
        return None
    return correlation(
        "Caffeine triggers BMs",
        f"{round(after_caffeine / considered * 100)}% of bowel movements occur within 2h "
        "of caffeine.",
        0.82,
        "bristol",
        "caffeine",
    )


def _supplements(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.supplement_logs) < 5:
        return None

    ordered = sorted(signals.bristol.items())
    comparison = compare_values(
        [t for d, t in ordered if d not in signals.supplement_days],
        [t for d, t in ordered if d in signals.supplement_days],
        min_samples=MIN_COHORT,
    )
    if comparison is None:
        return None
    without_gap = abs(comparison.high_mean - IDEAL_TYPE)
    with_gap = abs(comparison.low_mean - IDEAL_TYPE)
    if without_gap - with_gap <= 0.5:
        return None
    return correlation(
        "Supplements improve digestion",
        "Bristol scores are closer to ideal (3-4) on days you take supplements.",
        0.74,
        "bristol",
        "supplement",
    )


def _hydration(signals: DailySignals) -> AnalyzedInsight | None:
    sodium = signals.sodium
    if len(signals.foods) < 5 or len(signals.step_samples) < 5 or len(sodium) < 3:
        return None

    average_steps = fmean(s.value for s in signals.step_samples)
    average_sodium = fmean(sodium.values())
    dehydrated: list[float] = []
    hydrated: list[float] = []
    for day, stool_type in sorted(signals.bristol.items()):
        day_sodium, day_steps = sodium.get(day), signals.steps.get(day)
        if not day_sodium or not day_steps:
            continue
        if day_sodium > average_sodium * 1.2 and day_steps < average_steps * 0.8:
            dehydrated.append(stool_type)
        elif day_sodium < average_sodium * 0.8 and day_steps > average_steps * 1.2:
            hydrated.append(stool_type)

    comparison = compare_values(hydrated, dehydrated, min_samples=MIN_COHORT)
    # Lower type means harder stool.
    if comparison is None or comparison.difference <= 0.8:
        return None
    return correlation(
        "Hydration affects digestion",
        "High sodium + low activity days correlate with harder stools. Stay hydrated!",
        0.73,
        "bristol",
        "food",
        "steps",
    )


def _overall(signals: DailySignals) -> AnalyzedInsight | None:
    average = fmean(log.stool_type for log in signals.bristol_logs)
    if average < 3:
        return recommendation(
            "Consider more fiber & water",
            f"Your average Bristol is {average:.1f} (hard). Increase fiber and hydration.",
            0.80,
            "bristol",
        )
    if average > 5:
        return recommendation(
            "Monitor loose stools",
            f"Your average Bristol is {average:.1f} (loose). Track food triggers.",
            0.80,
            "bristol",
        )
    return None
