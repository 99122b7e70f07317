"""Calendar load against activity, sleep, symptoms and HRV, plus look-ahead."""

from __future__ import annotations

from datetime import timedelta

import structlog

from ..aggregation import compare_values, date_key, to_local
from ..models import AnalysisContext, AnalyzedInsight
from .base import MIN_COHORT, DailySignals, correlation, pct, prediction

logger = structlog.get_logger(__name__)

MIN_EVENTS = 5
EARLY_START_HOUR = 8
HEAVY_WEEK_EVENTS = 15


def analyze_calendar(ctx: AnalysisContext) -> list[AnalyzedInsight]:
    """Busy-versus-calm day comparisons and the next day's schedule.

    Busy days have four or more events and calm days at most one. Events
    titled with the ``[auto]`` prefix never reach the context.
    """
    signals = DailySignals(ctx)
    if len(ctx.events) < MIN_EVENTS:
        return []

    insights = [
        insight
        for insight in (
            _steps(signals),
            _sleep(signals),
            _symptoms(signals),
            _early_start(signals),
            _hrv(signals),
            _heavy_week(signals),
        )
        if insight is not None
    ]
    logger.debug("calendar_analyzed", events=len(ctx.events), insights=len(insights))
    return insights


def _busy_vs_calm(
    signals: DailySignals, outcome_by_date: dict[str, float]
) -> tuple[list[float], list[float]]:
    busy = [outcome_by_date[d] for d in signals.busy_days if outcome_by_date.get(d)]
    calm = [outcome_by_date[d] for d in signals.calm_days if outcome_by_date.get(d)]
    return busy, calm


def _steps(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.step_samples) < 5:
        return None

    busy, calm = _busy_vs_calm(signals, signals.steps)
    comparison = compare_values(calm, busy, min_samples=MIN_COHORT)
    if comparison is None or comparison.difference <= 1000:
        return None
    return correlation(
        "Busy days = less walking",
        f"You walk {round(comparison.difference):,} fewer steps on days with 4+ events.",
        0.76,
        "calendar",
        "steps",
    )


def _sleep(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.sleep_samples) < 5:
        return None

    busy, calm = _busy_vs_calm(signals, signals.sleep)
    comparison = compare_values(calm, busy, min_samples=MIN_COHORT)
    if comparison is None or comparison.difference <= 0.4:
        return None
    return correlation(
        "Busy days hurt sleep",
        f"You sleep {comparison.difference:.1f}h less on days with many events.",
        0.78,
        "calendar",
        "sleep",
    )


def _symptoms(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.symptom_logs) < 5:
        return None

    comparison = compare_values(
        [signals.symptom_count(d) for d in signals.busy_days],
        [signals.symptom_count(d) for d in signals.calm_days],
        min_samples=MIN_COHORT,
    )
    if comparison is None or comparison.difference <= 0.3:
        return None
    return correlation(
        "Busy schedule triggers symptoms",
        f"You report {pct(comparison.difference, comparison.low_mean)}% more symptoms "
        "on packed days.",
        0.75,
        "calendar",
        "symptom",
    )


def _early_start(signals: DailySignals) -> AnalyzedInsight | None:
    ctx = signals.ctx
    tomorrow = date_key(ctx.reference_time + timedelta(days=1), ctx.timezone)
    upcoming = sorted(
        (e for e in ctx.events if not e.is_all_day and signals.day(e.start_time) == tomorrow),
        key=lambda e: e.start_time,
    )
    early = next((e for e in upcoming if signals.hour(e.start_time) < EARLY_START_HOUR), None)
    if early is None:
        return None

    starts_at = to_local(early.start_time, ctx.timezone)
    return prediction(
        "Early start tomorrow",
        f'"{early.title}" at {starts_at:%H:%M}. Consider going to bed early tonight.',
        0.92,
        "calendar",
        "sleep",
    )


def _hrv(signals: DailySignals) -> AnalyzedInsight | None:
    if len(signals.hrv_samples) < 5:
        return None

    busy, calm = _busy_vs_calm(signals, signals.hrv)
    comparison = compare_values(calm, busy, min_samples=MIN_COHORT)
    if comparison is None or comparison.difference <= 5:
        return None
    return correlation(
        "Calendar stress affects HRV",
        f"Your HRV is {round(comparison.difference)}ms lower on days with 4+ events.",
        0.77,
        "calendar",
        "hrv",
    )


def _heavy_week(signals: DailySignals) -> AnalyzedInsight | None:
    now = signals.ctx.reference_time
    horizon = now + timedelta(days=7)
    upcoming = [e for e in signals.ctx.events if now <= e.start_time <= horizon]
    if len(upcoming) < HEAVY_WEEK_EVENTS:
        return None
    return prediction(
        "Heavy week ahead",
        f"{len(upcoming)} events in the next 7 days. Plan recovery time and prioritize sleep.",
        0.88,
        "calendar",
    )
