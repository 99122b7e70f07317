"""Symptom frequency, clustering and the signals that move with symptom load."""

from __future__ import annotations

from collections import Counter
from collections.abc import Callable, Iterable
from itertools import combinations
from statistics import fmean

import structlog

from ..aggregation import compare_values, weekday_in_timezone
from ..models import AnalysisContext, AnalyzedInsight
from .base import MIN_COHORT, DailySignals, correlation, pct

logger = structlog.get_logger(__name__)

MIN_SYMPTOM_LOGS = 3
CLUSTER_MIN_SYMPTOMS = 10
WEEKDAYS = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")

Rule = Callable[[DailySignals], AnalyzedInsight | None]


def analyze_symptoms(ctx: AnalysisContext) -> list[AnalyzedInsight]:
    signals = DailySignals(ctx)
    if len(signals.symptom_logs) < MIN_SYMPTOM_LOGS:
        return []

    rules: tuple[Rule, ...] = (
        _recurring,
        _weekday,
        _supplements,
        _poor_sleep,
        _dairy,
        _gluten,
        _gut,
        _busy_days,
        _under_eating,
        _very_low_sleep,
        _clusters,
        _low_activity,
    )
    insights = [insight for insight in (rule(signals) for rule in rules) if insight is not None]
    insights.extend(_calorie_bands(signals))
    for rule in (_evening_supplements, _pressure, _humidity):
        insight = rule(signals)
        if insight is not None:
            insights.append(insight)

    logger.debug("symptoms_analyzed", logs=len(signals.symptom_logs), insights=len(insights))
    return insights


def _counts(signals: DailySignals, days: Iterable[str]) -> list[float]:
    return [signals.symptom_count(d) for d in days]


def _banded(
    signals: DailySignals,
    values_by_date: dict[str, float],
    in_high: Callable[[float], bool],
    in_low: Callable[[float], bool],
) -> tuple[list[float], list[float]]:
    """Symptom counts on days where ``values_by_date`` falls in each band."""
    ordered = sorted(values_by_date.items())
    high = _counts(signals, (d for d, v in ordered if in_high(v)))
    low = _counts(signals, (d for d, v in ordered if in_low(v)))
    return high, low


def _symptom_days_split(signals: DailySignals, tagged: set[str]) -> tuple[list[float], list[float]]:
    """Symptom counts on symptomatic days, split by whether the day is tagged."""
    days = sorted(signals.symptoms_by_day)
    return (
        _counts(signals, (d for d in days if d in tagged)),
        _counts(signals, (d for d in days if d not in tagged)),
    )


def _recurring(signals: DailySignals) -> AnalyzedInsight | None:
    counts = Counter(log.value for log in signals.symptom_logs)
    name, count = counts.most_common(1)[0]
    if count < 3:
        return None
    share = round(count / len(signals.symptom_logs) * 100)
    return correlation(
        f"Recurring {name}",
        f"You've logged {name} {count} times ({share}% of all symptoms). "
        "Common triggers: sleep, stress, diet. Review your notes for patterns.",
        0.75,
        "symptom",
    )


def _weekday(signals: DailySignals) -> AnalyzedInsight | None:
    by_weekday: dict[int, list[str]] = {}
    for log in signals.symptom_logs:
        weekday = weekday_in_timezone(log.logged_at, signals.tz)
        by_weekday.setdefault(weekday, []).append(log.value.lower())

    weekday, names = max(by_weekday.items(), key=lambda item: len(item[1]))
    if len(names) < 3:
        return None
    top, top_count = Counter(names).most_common(1)[0]
    day_name = WEEKDAYS[weekday]
    return correlation(
        f"{day_name}s trigger symptoms (mainly {top})",
        f"You report symptoms on {day_name}s {len(names)} times - most often {top} "
        f"({top_count} times). Consider work stress, social plans, or routine changes "
        "on this day.",
        0.74,
        "symptom",
    )


def _supplements(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.supplement_logs) < 5:
        return None

    with_supplements, without = _symptom_days_split(signals, signals.supplement_days)
    comparison = compare_values(without, with_supplements, min_samples=MIN_COHORT)
    if comparison is None or comparison.difference <= 0.3:
        return None
    return correlation(
        "Supplements may reduce symptoms",
        f"You report {pct(comparison.difference, comparison.low_mean)}% fewer symptoms "
        "on days you take supplements.",
        0.73,
        "symptom",
        "supplement",
    )


def _poor_sleep(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.sleep_samples) < 5:
        return None

    poor, good = _banded(signals, signals.sleep, lambda h: h < 6, lambda h: h >= 7.5)
    comparison = compare_values(poor, good, min_samples=MIN_COHORT)
    if comparison is None or comparison.difference <= 0.3:
        return None
    return correlation(
        "Poor sleep = more symptoms",
        f"You report {pct(comparison.difference, comparison.low_mean)}% more symptoms "
        "after <6h sleep.",
        0.81,
        "symptom",
        "sleep",
    )


def _dairy(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.foods) < 5:
        return None

    dairy, no_dairy = _symptom_days_split(signals, signals.dairy_days)
    comparison = compare_values(dairy, no_dairy, min_samples=MIN_COHORT)
    if comparison is None or comparison.difference <= 0.4:
        return None
    return correlation(
        "Dairy may trigger symptoms",
        f"You report {pct(comparison.difference, comparison.low_mean)}% more symptoms "
        "on dairy days.",
        0.76,
        "symptom",
        "food",
        "dairy",
    )


def _gluten(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.foods) < 5:
        return None

    gluten, no_gluten = _symptom_days_split(signals, signals.gluten_days)
    comparison = compare_values(gluten, no_gluten, min_samples=MIN_COHORT)
    if comparison is None or comparison.difference <= 0.4:
        return None
    return correlation(
        "Gluten may trigger symptoms",
        f"You report {pct(comparison.difference, comparison.low_mean)}% more symptoms "
        "on gluten days.",
        0.74,
        "symptom",
        "food",
        "gluten",
    )


def _gut(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.bristol_logs) < 5:
        return None

    abnormal_days = [d for d, t in sorted(signals.bristol.items()) if t < 3 or t > 5]
    normal_days = [d for d, t in sorted(signals.bristol.items()) if 3 <= t <= 5]
    comparison = compare_values(
        _counts(signals, abnormal_days), _counts(signals, normal_days), min_samples=MIN_COHORT
    )
    if comparison is None or comparison.difference <= 0.3:
        return None

    on_abnormal_days = Counter(
        name for d in abnormal_days for name in signals.symptoms_by_day.get(d, [])
    )
    top = ", ".join(name for name, _ in on_abnormal_days.most_common(3)) or "more symptoms"
    return correlation(
        "Gut issues linked to symptoms",
        f"Abnormal digestion correlates with {top}. Days with Bristol <3 or >5 have "
        f"{pct(comparison.difference, comparison.low_mean)}% more reports.",
        0.77,
        "symptom",
        "bristol",
    )


def _busy_days(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.ctx.events) < 5:
        return None

    comparison = compare_values(
        _counts(signals, signals.busy_days),
        _counts(signals, signals.calm_days),
        min_samples=MIN_COHORT,
    )
    if comparison is None or comparison.difference <= 0.3:
        return None
    return correlation(
        "Busy days trigger symptoms",
        f"You report {pct(comparison.difference, comparison.low_mean)}% more symptoms "
        "on days with 4+ events.",
        0.75,
        "symptom",
        "calendar",
    )


def _under_eating(signals: DailySignals) -> AnalyzedInsight | None:
    calories = signals.calorie_intake
    if len(signals.foods) < 5 or len(calories) < 5:
        return None

    average = fmean(calories.values())
    low, normal = _banded(
        signals,
        calories,
        lambda c: c < average * 0.7,
        lambda c: average * 0.9 <= c <= average * 1.1,
    )
    comparison = compare_values(low, normal, min_samples=MIN_COHORT)
    if comparison is None or comparison.difference <= 0.3:
        return None
    return correlation(
        "Under-eating triggers symptoms",
        f"Low-calorie days correlate with {pct(comparison.difference, comparison.low_mean)}% "
        "more symptoms.",
        0.72,
        "symptom",
        "food",
        "calories",
    )


def _very_low_sleep(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.sleep_samples) < 5:
        return None

    very_low, normal = _banded(signals, signals.sleep, lambda h: h < 5, lambda h: 7 <= h <= 9)
    comparison = compare_values(very_low, normal, min_samples=MIN_COHORT)
    if comparison is None or comparison.difference <= 0.5:
        return None
    return correlation(
        "Very low sleep spikes symptoms",
        f"Days with <5h sleep have {pct(comparison.difference, comparison.low_mean)}% "
        "more symptoms.",
        0.83,
        "symptom",
        "sleep",
    )


def _clusters(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.symptom_logs) < CLUSTER_MIN_SYMPTOMS:
        return None

    pairs: Counter[tuple[str, str]] = Counter()
    totals: Counter[str] = Counter()
    for _, names in sorted(signals.symptoms_by_day.items()):
        if len(names) < 2:
            continue
        totals.update(names)
        for first, second in combinations(names, 2):
            if first != second:
                pairs[tuple(sorted((first, second)))] += 1  # type: ignore[index]

    if not pairs:
        return None
    (first, second), together = pairs.most_common(1)[0]
    if together < 3:
        return None
    rate = round(together / (totals[first] or 1) * 100)
    if rate < 40:
        return None
    return correlation(
        f"{first} & {second} cluster together",
        f"When you have {first}, {second} appears {rate}% of the time ({together} days). "
        "This pattern suggests a common underlying trigger. Try tracking what differs "
        "on days they both occur.",
        0.77,
        "symptom",
    )


def _low_activity(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.step_samples) < 5 or len(signals.symptom_logs) < 5:
        return None

    average = fmean(s.value for s in signals.step_samples)
    low, high = _banded(
        signals, signals.steps, lambda s: s < average * 0.6, lambda s: s > average * 1.3
    )
    comparison = compare_values(low, high, min_samples=MIN_COHORT)
    if comparison is None or comparison.difference <= 0.3:
        return None
    return correlation(
        "Low activity days = more symptoms",
        f"Sedentary days have {pct(comparison.difference, comparison.low_mean)}% more "
        "symptoms than active days.",
        0.76,
        "symptom",
        "steps",
    )


def _calorie_bands(signals: DailySignals) -> list[AnalyzedInsight]:
    calories = signals.calorie_intake
    if len(signals.foods) < 5 or len(signals.symptom_logs) < 5 or len(calories) < 5:
        return []

    average = fmean(calories.values())
    normal = _counts(
        signals, (d for d, c in sorted(calories.items()) if average * 0.75 <= c <= average * 1.25)
    )
    very_low = _counts(signals, (d for d, c in sorted(calories.items()) if c < average * 0.5))
    very_high = _counts(signals, (d for d, c in sorted(calories.items()) if c > average * 1.5))

    insights = []
    under = compare_values(very_low, normal, min_samples=MIN_COHORT)
    if under is not None and under.difference > 0.4:
        insights.append(
            correlation(
                "Undereating triggers symptoms",
                f"Days under {round(average * 0.5)} cal have "
                f"{pct(under.difference, under.low_mean)}% more symptoms.",
                0.75,
                "symptom",
                "food",
                "calories",
            )
        )
    over = compare_values(very_high, normal, min_samples=MIN_COHORT)
    if over is not None and over.difference > 0.4:
        insights.append(
            correlation(
                "Overeating triggers symptoms",
                f"Days over {round(average * 1.5)} cal have "
                f"{pct(over.difference, over.low_mean)}% more symptoms.",
                0.74,
                "symptom",
                "food",
                "calories",
            )
        )
    return insights


def _evening_supplements(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.supplement_logs) < 5 or len(signals.symptom_logs) < 5:
        return None

    morning_days: set[str] = set()
    evening_days: set[str] = set()
    for log in signals.supplement_logs:
        hour = signals.hour(log.logged_at)
        if hour < 12:
            morning_days.add(signals.day(log.logged_at))
        elif hour >= 17:
            evening_days.add(signals.day(log.logged_at))

    morning = evening = 0
    for log in signals.symptom_logs:
        day = signals.day(log.logged_at)
        if day in morning_days:
            morning += 1
        elif day in evening_days:
            evening += 1

    if morning < 3 or evening < 3 or evening <= morning * 1.3:
        return None
    return correlation(
        "Evening supplements trigger symptoms",
        f"You report {round((evening / morning - 1) * 100)}% more symptoms on days "
        "with evening supplements.",
        0.72,
        "symptom",
        "supplement",
    )


def _weather_band(
    signals: DailySignals, field: str, band: float
) -> tuple[list[float], list[float]] | None:
    """Symptom counts on days above and below the field's mean by ``band``."""
    if len(signals.ctx.weather) < 5 or len(signals.symptom_logs) < 5:
        return None
    values = signals.weather_field(field)
    if not values:
        return None
    average = fmean(values.values())
    return _banded(signals, values, lambda v: v > average + band, lambda v: v < average - band)


def _pressure(signals: DailySignals) -> AnalyzedInsight | None:
    bands = _weather_band(signals, "pressure_hpa", 5)
    if bands is None:
        return None

    high, low = bands
    comparison = compare_values(low, high, min_samples=MIN_COHORT)
    if comparison is None or comparison.difference <= 0.4:
        return None
    return correlation(
        "Low pressure triggers symptoms",
        f"You report {pct(comparison.difference, comparison.low_mean)}% more symptoms "
        "on low-pressure days.",
        0.73,
        "symptom",
        "weather",
    )


def _humidity(signals: DailySignals) -> AnalyzedInsight | None:
    bands = _weather_band(signals, "humidity_avg", 10)
    if bands is None:
        return None

    high, low = bands
    comparison = compare_values(high, low, min_samples=MIN_COHORT)
    if comparison is None or comparison.difference <= 0.4:
        return None
    return correlation(
        "High humidity worsens symptoms",
        f"Humid days have {pct(comparison.difference, comparison.low_mean)}% more symptoms.",
        0.71,
        "symptom",
        "weather",
    )
