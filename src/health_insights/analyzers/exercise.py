"""Workout load, timing and recovery."""

from __future__ import annotations

from collections import defaultdict
from datetime import timedelta

import structlog

from ..aggregation import compare_cohorts, compare_values, relative_cohorts
from ..models import AnalysisContext, AnalyzedInsight
from .base import MIN_COHORT, DailySignals, correlation, recommendation

logger = structlog.get_logger(__name__)

MIN_EXERCISE_LOGS = 3
MIN_INTENSITY_DAYS = 3
STRONG_WEEK_DAYS = 4


def analyze_exercise(ctx: AnalysisContext) -> list[AnalyzedInsight]:
    """Recovery and timing effects of logged workouts.

    Intensity per day is the summed training volume of that day's workouts
    (sets x reps x weight, with nominal loads when details are missing).
    """
    signals = DailySignals(ctx)
    if len(signals.exercise_logs) < MIN_EXERCISE_LOGS:
        return []

    intensity = {
        day: sum(log.intensity_score for log in logs)
        for day, logs in signals.exercise_by_day.items()
    }

    insights: list[AnalyzedInsight] = []
    for insight in (
        _intensity_resting_hr(signals, intensity),
        _intensity_hrv(signals, intensity),
        _timing_sleep(signals),
        _rest_day_hrv(signals),
    ):
        if insight is not None:
            insights.append(insight)
    insights.extend(_workout_symptoms(signals))
    week = _strong_week(signals)
    if week is not None:
        insights.append(week)

    logger.debug("exercise_analyzed", logs=len(signals.exercise_logs), insights=len(insights))
    return insights


def _intensity_resting_hr(
    signals: DailySignals, intensity: dict[str, float]
) -> AnalyzedInsight | None:
    if len(signals.heart_samples) < 5 or len(intensity) < MIN_INTENSITY_DAYS:
        return None

    comparison = compare_cohorts(
        relative_cohorts(intensity, 1.3, 0.7), signals.resting_hr, offset_days=1
    )
    if comparison is None or comparison.difference <= 3:
        return None
    return correlation(
        "Intense workouts elevate resting HR",
        f"Resting HR is {round(comparison.difference)} bpm higher the day after intense workouts.",
        0.78,
        "exercise",
        "heart_rate",
    )


def _intensity_hrv(signals: DailySignals, intensity: dict[str, float]) -> AnalyzedInsight | None:
    if len(signals.hrv_samples) < 5 or len(intensity) < MIN_INTENSITY_DAYS:
        return None

    comparison = compare_cohorts(relative_cohorts(intensity, 1.3, 0.7), signals.hrv, offset_days=1)
    if comparison is None or -comparison.difference <= 5:
        return None
    return correlation(
        "Intense exercise lowers HRV",
        f"HRV drops {round(-comparison.difference)}ms the day after intense workouts. "
        "Allow recovery.",
        0.80,
        "exercise",
        "hrv",
    )


def _timing_sleep(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.sleep_samples) < 5:
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
    if comparison is None or comparison.difference <= 0.4:
        return None
    return correlation(
        "Morning workouts = better sleep",
        f"You sleep {comparison.difference:.1f}h more on morning vs evening workout days.",
        0.77,
        "exercise",
        "sleep",
    )


def _rest_day_hrv(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.hrv_samples) < 5:
        return None

    workout_days = signals.exercise_by_day
    rest = [v for d, v in sorted(signals.hrv.items()) if d not in workout_days and v]
    active = [v for d, v in sorted(signals.hrv.items()) if d in workout_days and v]
    comparison = compare_values(rest, active, min_samples=MIN_COHORT)
    if comparison is None or comparison.difference <= 5:
        return None
    return correlation(
        "Rest days boost HRV",
        f"Your HRV is {round(comparison.difference)}ms higher on rest days. Recovery matters!",
        0.76,
        "exercise",
        "hrv",
    )


def _workout_symptoms(signals: DailySignals) -> list[AnalyzedInsight]:
    if len(signals.symptom_logs) < 3:
        return []

    days_by_workout: dict[str, set[str]] = defaultdict(set)
    for day, logs in signals.exercise_by_day.items():
        for log in logs:
            days_by_workout[log.value.strip().lower()].add(day)

    insights = []
    for name, days in days_by_workout.items():
        if len(days) < 3:
            continue
        symptom_days = sum(1 for d in days if signals.symptoms_by_day.get(d))
        rate = symptom_days / len(days)
        if rate > 0.5:
            insights.append(
                correlation(
                    f"{name.capitalize()} may trigger symptoms",
                    f"You report symptoms {round(rate * 100)}% of days after {name}.",
                    0.70,
                    "exercise",
                    "symptom",
                )
            )
    return insights


def _strong_week(signals: DailySignals) -> AnalyzedInsight | None:
    week_ago = signals.ctx.reference_time - timedelta(days=7)
    days = {signals.day(log.logged_at) for log in signals.exercise_logs if log.logged_at > week_ago}
    if len(days) < STRONG_WEEK_DAYS:
        return None
    return recommendation(
        "Strong workout week!",
        f"{len(days)} workout days this week. Remember to include rest for recovery.",
        0.85,
        "exercise",
    )
