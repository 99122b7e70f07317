"""Heart-rate variability and resting heart rate against lifestyle signals.

HRV rules need five HRV samples; resting heart rate rules need five heart
rate samples. The two families run independently of each other.
"""

from __future__ import annotations

from collections.abc import Callable
from statistics import fmean

import structlog

from ..aggregation import (
    cohort_split,
    compare_cohorts,
    compare_values,
    longest_streak,
    moving_average,
    relative_cohorts,
)
from ..models import AnalysisContext, AnalyzedInsight
from .base import MIN_COHORT, DailySignals, correlation, pct, recommendation

logger = structlog.get_logger(__name__)

MIN_HRV_SAMPLES = 5
MIN_HR_SAMPLES = 5
PRESSURE_BAND_HPA = 5
OVERTRAINING_STREAK_DAYS = 6

Rule = Callable[[DailySignals], AnalyzedInsight | None]


def analyze_hrv(ctx: AnalysisContext) -> list[AnalyzedInsight]:
    signals = DailySignals(ctx)
    rules: list[Rule] = []
    if len(signals.hrv_samples) >= MIN_HRV_SAMPLES:
        rules += [
            _sleep,
            _calendar,
            _dairy,
            _exercise,
            _caffeine_free,
            _sodium,
            _steps,
            _weight,
            _symptoms,
            _pressure,
            _calories,
        ]
    if len(signals.heart_samples) >= MIN_HR_SAMPLES:
        rules += [_hr_symptoms, _sleep_debt, _overtraining, _hr_weight]

    insights = [insight for insight in (rule(signals) for rule in rules) if insight is not None]
    logger.debug(
        "hrv_analyzed",
        hrv_samples=len(signals.hrv_samples),
        hr_samples=len(signals.heart_samples),
        insights=len(insights),
    )
    return insights


def _split_hrv(
    signals: DailySignals, in_group: Callable[[str], bool]
) -> tuple[list[float], list[float]]:
    inside = [v for d, v in sorted(signals.hrv.items()) if in_group(d)]
    outside = [v for d, v in sorted(signals.hrv.items()) if not in_group(d)]
    return inside, outside


def _weight_trend(signals: DailySignals) -> dict[str, float] | None:
    if len(signals.weight_samples) < 7:
        return None
    return moving_average(signals.weight)


# -- HRV --


def _sleep(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.sleep_samples) < 5:
        return None

    cohorts = cohort_split(signals.sleep, lambda h: h >= 7, lambda h: h < 6)
    comparison = compare_cohorts(cohorts, signals.hrv)
    if comparison is None or comparison.difference <= 5:
        return None
    return correlation(
        "Sleep boosts HRV",
        f"Your HRV is {round(comparison.difference)}ms higher after 7+ hours of sleep.",
        0.83,
        "hrv",
        "sleep",
    )


def _calendar(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.ctx.events) < 5:
        return None

    hrv = signals.hrv
    comparison = compare_values(
        [hrv[d] for d in signals.calm_days if d in hrv],
        [hrv[d] for d in signals.busy_days if d in hrv],
        min_samples=MIN_COHORT,
    )
    if comparison is None or comparison.difference <= 5:
        return None
    return correlation(
        "Busy days stress your body",
        f"HRV drops {round(comparison.difference)}ms on days with 4+ calendar events.",
        0.76,
        "hrv",
        "calendar",
    )


def _dairy(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.foods) < 5:
        return None

    dairy, no_dairy = _split_hrv(signals, lambda d: d in signals.dairy_days)
    comparison = compare_values(no_dairy, dairy, min_samples=MIN_COHORT)
    if comparison is None or comparison.difference <= 5:
        return None
    return correlation(
        "Dairy may affect HRV",
        f"Your HRV is {round(comparison.difference)}ms lower on days with dairy.",
        0.72,
        "hrv",
        "food",
        "dairy",
    )


def _exercise(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.exercise_logs) < 3:
        return None

    active, rest = _split_hrv(signals, lambda d: d in signals.exercise_by_day)
    comparison = compare_values(rest, active, min_samples=MIN_COHORT)
    if comparison is None or comparison.difference <= 5:
        return None
    return correlation(
        "Exercise temporarily lowers HRV",
        f"HRV is {round(comparison.difference)}ms higher on rest days. Recovery is important!",
        0.79,
        "hrv",
        "exercise",
    )


def _caffeine_free(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.caffeine_logs) < 5:
        return None

    caffeine_free = [v for d, v in sorted(signals.hrv.items()) if d not in signals.caffeine_mg]
    if len(caffeine_free) < MIN_COHORT:
        return None
    overall = fmean(s.value for s in signals.hrv_samples)
    gain = fmean(caffeine_free) - overall
    if gain <= 5:
        return None
    return correlation(
        "No caffeine = higher HRV",
        f"Your HRV is {round(gain)}ms higher on caffeine-free days.",
        0.75,
        "hrv",
        "caffeine",
    )


def _sodium(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.foods) < 5 or len(signals.sodium) < 3:
        return None

    comparison = compare_cohorts(relative_cohorts(signals.sodium, 1.3, 0.7), signals.hrv)
    if comparison is None or -comparison.difference <= 4:
        return None
    return correlation(
        "Sodium lowers HRV",
        f"High-sodium days show {round(-comparison.difference)}ms lower HRV.",
        0.73,
        "hrv",
        "food",
        "sodium",
    )


def _steps(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.step_samples) < 5:
        return None

    comparison = compare_cohorts(relative_cohorts(signals.steps, 1.2, 0.6), signals.hrv)
    if comparison is None or comparison.difference <= 4:
        return None
    return correlation(
        "Active days boost HRV",
        f"HRV is {round(comparison.difference)}ms higher on high-step days.",
        0.78,
        "hrv",
        "steps",
    )


def _weight(signals: DailySignals) -> AnalyzedInsight | None:
    trend = _weight_trend(signals)
    if trend is None:
        return None

    comparison = compare_cohorts(relative_cohorts(trend, 1.02, 0.98), signals.hrv)
    if comparison is None or -comparison.difference <= 4:
        return None
    return correlation(
        "Lower weight = higher HRV",
        f"HRV is {round(-comparison.difference)}ms higher when weight (7-day avg) "
        "is below average.",
        0.74,
        "hrv",
        "weight",
    )


def _symptoms(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.symptom_logs) < 5:
        return None

    with_symptoms, without = _split_hrv(signals, lambda d: d in signals.symptoms_by_day)
    comparison = compare_values(without, with_symptoms, min_samples=MIN_COHORT)
    if comparison is None or comparison.difference <= 4:
        return None
    return correlation(
        "Low HRV predicts symptoms",
        f"HRV is {round(comparison.difference)}ms lower on days with symptoms.",
        0.79,
        "hrv",
        "symptom",
    )


def _pressure(signals: DailySignals) -> AnalyzedInsight | None:
    pressure = signals.weather_field("pressure_hpa")
    if len(signals.ctx.weather) < 5 or not pressure:
        return None

    reference = fmean(pressure.values())
    cohorts = cohort_split(
        pressure,
        lambda p: p > reference + PRESSURE_BAND_HPA,
        lambda p: p < reference - PRESSURE_BAND_HPA,
    )
    comparison = compare_cohorts(cohorts, signals.hrv)
    if comparison is None or comparison.difference <= 4:
        return None
    return correlation(
        "Weather pressure affects HRV",
        f"HRV is {round(comparison.difference)}ms lower on low-pressure days.",
        0.71,
        "hrv",
        "weather",
    )


def _calories(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.foods) < 5 or len(signals.calorie_intake) < 5:
        return None

    cohorts = relative_cohorts(signals.calorie_intake, 1.3, 0.7)
    comparison = compare_cohorts(cohorts, signals.hrv)
    if comparison is None or abs(comparison.difference) <= 4:
        return None
    better = "surplus" if comparison.difference > 0 else "deficit"
    return correlation(
        f"Calorie {better} boosts HRV",
        f"HRV is {round(abs(comparison.difference))}ms higher on "
        f"{'high' if better == 'surplus' else 'low'}-calorie days.",
        0.72,
        "hrv",
        "food",
        "calories",
    )


# -- resting heart rate --


def _hr_symptoms(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.symptom_logs) < 5:
        return None

    cohorts = relative_cohorts(signals.resting_hr, 1.1, 0.9)
    comparison = compare_values(
        [signals.symptom_count(d) for d in cohorts.high],
        [signals.symptom_count(d) for d in cohorts.low],
        min_samples=MIN_COHORT,
    )
    if comparison is None or comparison.difference <= 0.3:
        return None
    return correlation(
        "High HR correlates with symptoms",
        f"You report {pct(comparison.difference, comparison.low_mean)}% more symptoms "
        "on elevated HR days.",
        0.75,
        "heart_rate",
        "symptom",
    )


def _sleep_debt(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.sleep_samples) < 7:
        return None

    sleep = signals.sleep
    ordered = sorted(sleep)
    debt: list[float] = []
    rested: list[float] = []
    for i, day in enumerate(ordered):
        if i < 3 or day not in signals.resting_hr:
            continue
        prior = [sleep[d] for d in ordered[i - 3 : i] if sleep[d]]
        if len(prior) < 2:
            continue
        recent = fmean(prior)
        if recent < 6.5:
            debt.append(signals.resting_hr[day])
        elif recent >= 7.5:
            rested.append(signals.resting_hr[day])

    comparison = compare_values(debt, rested, min_samples=MIN_COHORT)
    if comparison is None or comparison.difference <= 3:
        return None
    return correlation(
        "Sleep debt raises resting HR",
        f"Your resting HR is {round(comparison.difference)} bpm higher when sleep-deprived.",
        0.80,
        "heart_rate",
        "sleep",
    )


def _overtraining(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.exercise_logs) < 5:
        return None

    streak = longest_streak(signals.exercise_by_day)
    if streak < OVERTRAINING_STREAK_DAYS:
        return None

    recent = [signals.resting_hr[d] for d in sorted(signals.resting_hr)[-7:]]
    if len(recent) < 5:
        return None
    half = len(recent) // 2
    if fmean(recent[half:]) - fmean(recent[:half]) <= 3:
        return None
    return recommendation(
        "Possible overtraining",
        f"{streak} consecutive workout days with rising resting HR. Consider a rest day.",
        0.78,
        "heart_rate",
        "exercise",
    )


def _hr_weight(signals: DailySignals) -> AnalyzedInsight | None:
    trend = _weight_trend(signals)
    if trend is None:
        return None

    comparison = compare_cohorts(relative_cohorts(trend, 1.02, 0.98), signals.resting_hr)
    if comparison is None or comparison.difference <= 2:
        return None
    return correlation(
        "Weight affects resting HR",
        f"Resting HR is {round(comparison.difference)} bpm higher when weight (7-day avg) "
        "is elevated.",
        0.77,
        "heart_rate",
        "weight",
    )
