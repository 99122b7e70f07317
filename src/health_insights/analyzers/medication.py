"""Medication adherence and what changes on missed days."""

from __future__ import annotations

from collections.abc import Callable

import structlog

from ..aggregation import compare_values, daily_series
from ..models import AnalysisContext, AnalyzedInsight
from .base import MIN_COHORT, DailySignals, correlation, recommendation

logger = structlog.get_logger(__name__)

MIN_MEDICATION_LOGS = 5
ADHERENCE_MIN_LOGS = 7


def analyze_medication(ctx: AnalysisContext) -> list[AnalyzedInsight]:
    signals = DailySignals(ctx)
    if len(ctx.medications) < MIN_MEDICATION_LOGS:
        return []

    # Last log of the day decides whether that day counts as taken.
    taken_by_day = {
        day: bool(value)
        for day, value in daily_series(
            ctx.medications,
            ctx.timezone,
            timestamp_field="logged_at",
            value=lambda m: float(m.took_medication),
        ).items()
    }

    insights = [
        insight
        for insight in (
            _adherence(signals, taken_by_day),
            _missed_symptoms(signals, taken_by_day),
            _split_outcome(
                signals,
                taken_by_day,
                signals.sleep,
                threshold=0.5,
                build=lambda diff: correlation(
                    "Medication affects sleep",
                    f"You sleep {diff:.1f}h less on days you miss medication.",
                    0.79,
                    "medication",
                    "sleep",
                ),
                enabled=len(signals.sleep_samples) >= 5,
            ),
            _split_outcome(
                signals,
                taken_by_day,
                signals.hrv,
                threshold=5,
                build=lambda diff: correlation(
                    "Medication impacts HRV",
                    f"Your HRV is {round(diff)}ms lower when medication is skipped.",
                    0.76,
                    "medication",
                    "hrv",
                ),
                enabled=len(signals.hrv_samples) >= 5,
            ),
        )
        if insight is not None
    ]
    logger.debug("medication_analyzed", days=len(taken_by_day), insights=len(insights))
    return insights


def _adherence(signals: DailySignals, taken_by_day: dict[str, bool]) -> AnalyzedInsight | None:
    if len(signals.ctx.medications) < ADHERENCE_MIN_LOGS:
        return None

    rate = sum(taken_by_day.values()) / len(taken_by_day)
    if rate < 0.7:
        return recommendation(
            "Medication consistency",
            f"You've taken medication {round(rate * 100)}% of logged days. "
            "Try setting a daily reminder.",
            0.82,
            "medication",
        )
    if rate >= 0.9:
        return recommendation(
            "Great medication habits!",
            f"{round(rate * 100)}% adherence rate. Keep it up!",
            0.90,
            "medication",
        )
    return None


def _missed_symptoms(
    signals: DailySignals, taken_by_day: dict[str, bool]
) -> AnalyzedInsight | None:
    if len(signals.symptom_logs) < 5:
        return None

    taken_days = sum(taken_by_day.values())
    missed_days = len(taken_by_day) - taken_days

    counts: dict[str, list[int]] = {}
    for day, names in sorted(signals.symptoms_by_day.items()):
        took = taken_by_day.get(day)
        if took is None:
            continue
        for name in names:
            with_med, without_med = counts.setdefault(name, [0, 0])
            counts[name] = [with_med + took, without_med + (not took)]

    for name, (with_med, without_med) in counts.items():
        if without_med < 2:
            continue
        rate_taken = with_med / taken_days if taken_days else 0.0
        rate_missed = without_med / missed_days if missed_days else 0.0
        if rate_missed <= rate_taken * 1.5:
            continue
        increase = round((rate_missed - rate_taken) / rate_taken * 100) if rate_taken else 100
        return correlation(
            f"{name[:1].upper()}{name[1:]} linked to missed meds",
            f"You report {name} {increase}% more on days you skip medication.",
            min(0.88, 0.68 + without_med / 10 * 0.2),
            "symptom",
            "medication",
        )
    return None


def _split_outcome(
    signals: DailySignals,
    taken_by_day: dict[str, bool],
    outcome_by_date: dict[str, float],
    *,
    threshold: float,
    build: Callable[[float], AnalyzedInsight],
    enabled: bool,
) -> AnalyzedInsight | None:
    """Outcome on taken days minus missed days, when it exceeds ``threshold``."""
    missed_days = sum(1 for took in taken_by_day.values() if not took)
    if not enabled or missed_days < 2:
        return None

    taken: list[float] = []
    missed: list[float] = []
    for day, took in sorted(taken_by_day.items()):
        value = outcome_by_date.get(day)
        if not value:
            continue
        (taken if took else missed).append(value)
    comparison = compare_values(taken, missed, min_samples=MIN_COHORT)
    if comparison is None or comparison.difference <= threshold:
        return None
    return build(comparison.difference)
